"""
Tavara.care Coordination Service - Visit Service

Care visit scheduling. Virtual visits are free and scheduled at once;
in-person visits are paid through a PayPal checkout order and only
scheduled after the order is captured.
"""

import time
from datetime import date, datetime
from typing import Callable, List, Dict, Optional

from sqlalchemy.orm import Session

from tavara.config import VISIT_TYPES
from tavara.core.errors import NotFoundError, ConflictError, IntegrationError
from tavara.core.logging import logger
from tavara.core.settings import get_settings
from tavara.db.models import Profile, VisitBooking
from tavara.integrations.paypal_client import PayPalClient
from tavara.monitoring.metrics import metrics_collector

settings = get_settings()

BOOKING_STATUSES = ["scheduled", "completed", "cancelled"]


def visit_fee() -> str:
    return f"{settings.VISIT_FEE_TTD:.2f}"


def poll_payment_status(
    status_fn: Callable[[], str],
    interval: Optional[float] = None,
    timeout: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic
) -> str:
    """
    Poll status_fn until it reports a final status or the timeout passes.

    Returns:
        str: "completed", "failed", or "timeout"
    """
    interval = interval or settings.PAYMENT_POLL_INTERVAL_SECONDS
    timeout = timeout or settings.PAYMENT_POLL_TIMEOUT_SECONDS
    deadline = clock() + timeout

    while True:
        status = status_fn()
        if status in ("completed", "failed"):
            return status
        if clock() + interval > deadline:
            logger.warning(f"Payment polling timed out after {timeout}s")
            return "timeout"
        sleep(interval)


class VisitService:
    """Visit bookings and their payments."""

    def __init__(self, paypal_client: PayPalClient = None):
        self.paypal_client = paypal_client or PayPalClient()
        logger.info("VisitService initialized")

    def _get_profile(self, db: Session, user_id: str) -> Profile:
        profile = db.get(Profile, user_id)
        if profile is None:
            raise NotFoundError("Profile", user_id)
        return profile

    def schedule_virtual_visit(self, db: Session, user_id: str, visit_date: date, visit_time: str) -> VisitBooking:
        profile = self._get_profile(db, user_id)

        booking = VisitBooking(
            user_id=profile.id,
            booking_date=visit_date,
            booking_time=visit_time,
            visit_type="virtual",
            status="scheduled",
            payment_status="not_required"
        )
        db.add(booking)
        profile.visit_scheduling_status = "scheduled"
        profile.visit_scheduled_date = datetime.combine(visit_date, datetime.min.time())
        profile.visit_notes = {
            "visit_type": "virtual",
            "visit_date": visit_date.isoformat(),
            "visit_time": visit_time
        }
        db.commit()

        logger.info(f"Virtual visit scheduled for {profile.id}", extra={"booking_id": booking.id})
        return booking

    def create_visit_payment(
        self,
        db: Session,
        user_id: str,
        visit_type: str,
        visit_date: date,
        visit_time: str,
        return_url: str,
        cancel_url: str
    ) -> Dict:
        """
        Create the PayPal order for an in-person visit.

        The order id is stored on the profile as a pending payment.

        Returns:
            Dict: order_id, approval_url, amount and currency
        """
        if visit_type not in VISIT_TYPES:
            raise ValueError(f"Unknown visit type: {visit_type}")
        if visit_type != "in_person":
            raise ValueError("Payment only required for in-person visits")
        profile = self._get_profile(db, user_id)

        order = self.paypal_client.create_order(
            amount=visit_fee(),
            currency=settings.PAYMENT_CURRENCY,
            description=f"In-Person Care Visit - {visit_date.isoformat()} at {visit_time}",
            custom_id=profile.id,
            return_url=return_url,
            cancel_url=cancel_url
        )

        profile.visit_payment_status = "pending"
        profile.visit_payment_reference = order["order_id"]
        db.commit()

        logger.info(f"Visit payment order {order['order_id']} created", extra={"user_id": profile.id})
        return {
            "order_id": order["order_id"],
            "approval_url": order["approval_url"],
            "amount": visit_fee(),
            "currency": settings.PAYMENT_CURRENCY
        }

    def complete_visit_payment(
        self,
        db: Session,
        user_id: str,
        order_id: str,
        visit_date: date,
        visit_time: str,
        visit_type: str = "in_person"
    ) -> Dict:
        """
        Capture an approved order, then schedule the visit and book it.

        Raises:
            ConflictError: the order was already used for a booking
            IntegrationError: PayPal did not complete the capture
        """
        profile = self._get_profile(db, user_id)
        if db.query(VisitBooking).filter(VisitBooking.payment_reference == order_id).first():
            raise ConflictError("Payment has already been applied to a booking")

        capture = self.paypal_client.capture_order(order_id)
        if capture.get("status") != "COMPLETED":
            logger.warning(f"Capture of {order_id} returned {capture.get('status')}")
            raise IntegrationError("paypal", "Payment capture failed")

        amount = visit_fee()
        profile.visit_payment_status = "completed"
        profile.visit_payment_reference = order_id
        profile.visit_scheduling_status = "scheduled"
        profile.visit_scheduled_date = datetime.combine(visit_date, datetime.min.time())
        profile.visit_notes = {
            "visit_type": visit_type,
            "visit_date": visit_date.isoformat(),
            "visit_time": visit_time,
            "payment_completed": True,
            "payment_reference": order_id,
            "payment_amount": amount,
            "payment_currency": settings.PAYMENT_CURRENCY
        }
        booking = VisitBooking(
            user_id=profile.id,
            booking_date=visit_date,
            booking_time=visit_time,
            visit_type=visit_type,
            status="scheduled",
            payment_status="completed",
            payment_reference=order_id,
            payment_amount=float(amount),
            payment_currency=settings.PAYMENT_CURRENCY
        )
        db.add(booking)
        db.commit()

        metrics_collector.record_payment()
        logger.info(f"Visit payment {order_id} completed", extra={"user_id": profile.id, "booking_id": booking.id})
        return {
            "success": True,
            "payment_status": "completed",
            "visit_scheduled": True,
            "payment_reference": order_id,
            "booking_id": booking.id
        }

    def get_payment_status(self, order_id: str) -> str:
        """Map a PayPal order status to completed, failed or pending."""
        order = self.paypal_client.get_order(order_id)
        status = order.get("status")
        if status == "COMPLETED":
            return "completed"
        if status in ("VOIDED", "CANCELLED"):
            return "failed"
        return "pending"

    def wait_for_payment(self, order_id: str, **poll_kwargs) -> str:
        return poll_payment_status(lambda: self.get_payment_status(order_id), **poll_kwargs)

    def list_bookings(self, db: Session, user_id: Optional[str] = None, status: Optional[str] = None) -> List[VisitBooking]:
        query = db.query(VisitBooking)
        if user_id:
            query = query.filter(VisitBooking.user_id == user_id)
        if status:
            query = query.filter(VisitBooking.status == status)
        return query.order_by(VisitBooking.booking_date.asc()).all()

    def update_booking_status(self, db: Session, booking_id: str, status: str) -> VisitBooking:
        if status not in BOOKING_STATUSES:
            raise ValueError(f"Unknown booking status: {status}")
        booking = db.get(VisitBooking, booking_id)
        if booking is None:
            raise NotFoundError("VisitBooking", booking_id)

        booking.status = status
        if status == "completed":
            self._get_profile(db, booking.user_id).visit_scheduling_status = "completed"
        db.commit()
        return booking
