"""
Tavara.care Coordination Service - Visit Scheduling Routes

Virtual visits are free and booked straight away. In-person visits are
booked after the PayPal order is approved and captured.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from tavara.api.schemas import VisitRequest, VisitPaymentCompletion, VisitBookingResponse
from tavara.api.dependencies import get_current_profile, get_request_id
from tavara.core.logging import log_request
from tavara.core.settings import get_settings
from tavara.db.base import get_db
from tavara.db.models import Profile
from tavara.services.visit_service import VisitService, visit_fee

settings = get_settings()

router = APIRouter(prefix="/visits", tags=["Visits"])
visit_service = VisitService()


def _schedule_page(outcome: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/family/schedule-visit?payment={outcome}"


@router.get("/fees", summary="Visit and trial day fees")
def fees():
    return {
        "in_person_visit": visit_fee(),
        "trial_day": f"{settings.TRIAL_FEE_TTD:.2f}",
        "currency": settings.PAYMENT_CURRENCY
    }


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Schedule a visit",
    description="Virtual visits are booked immediately; in-person visits return a PayPal approval link"
)
def schedule_visit(
    body: VisitRequest,
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id),
    current: Profile = Depends(get_current_profile)
):
    log_request(endpoint="/visits", method="POST", request_id=request_id, user_id=current.id, visit_type=body.visit_type)

    if body.visit_type == "virtual":
        booking = visit_service.schedule_virtual_visit(db, current.id, body.visit_date, body.visit_time)
        return {
            "success": True,
            "payment_required": False,
            "booking": VisitBookingResponse.model_validate(booking).model_dump()
        }

    payment = visit_service.create_visit_payment(
        db,
        current.id,
        body.visit_type,
        body.visit_date,
        body.visit_time,
        return_url=body.return_url or _schedule_page("success"),
        cancel_url=body.cancel_url or _schedule_page("cancelled")
    )
    return {"success": True, "payment_required": True, **payment}


@router.post("/payments/complete", summary="Capture an approved visit payment")
def complete_payment(
    body: VisitPaymentCompletion,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    return visit_service.complete_visit_payment(
        db, current.id, body.order_id, body.visit_date, body.visit_time, visit_type=body.visit_type
    )


@router.get("/payments/{order_id}/status", summary="PayPal order status")
def payment_status(order_id: str, current: Profile = Depends(get_current_profile)):
    return {"order_id": order_id, "status": visit_service.get_payment_status(order_id)}


@router.get("", response_model=List[VisitBookingResponse], summary="My visit bookings")
def my_bookings(
    booking_status: Optional[str] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    return visit_service.list_bookings(db, user_id=current.id, status=booking_status)
