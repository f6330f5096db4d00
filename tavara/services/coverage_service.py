"""
Tavara.care Coordination Service - Shift Coverage Service

Time-off requests raised by caregivers and the coverage workflow:

    pending_family_approval -> approved -> (claim) -> covered
                            -> denied
                            -> expired

Families and caregivers can act through the API or by replying
APPROVE / DENY / CLAIM / CONFIRM / DECLINE over WhatsApp.
"""

from datetime import datetime, timedelta
from typing import List, Dict, Optional

from sqlalchemy.orm import Session

from tavara.config import COVERAGE_REPLY_KEYWORDS
from tavara.core.errors import NotFoundError, ConflictError
from tavara.core.logging import logger
from tavara.core.settings import get_settings
from tavara.db.models import (
    CarePlan,
    CareShift,
    CareTeamMember,
    Profile,
    ShiftCoverageRequest,
    ShiftCoverageClaim
)
from tavara.services.notification_service import NotificationService
from tavara.services.scheduling_service import format_time
from tavara.utils.helpers import display_profile_name

settings = get_settings()

OPEN_REQUEST_STATUSES = ["pending_family_approval", "approved"]


def _shift_window(shift: CareShift) -> str:
    return (
        f"{shift.start_time.strftime('%a %b %d')} "
        f"{format_time(shift.start_time.strftime('%H:%M'))} - "
        f"{format_time(shift.end_time.strftime('%H:%M'))}"
    )


class CoverageService:
    """Shift coverage requests and claims."""

    def __init__(self, notification_service: NotificationService = None):
        self.notification_service = notification_service or NotificationService()
        logger.info("CoverageService initialized")

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_request(self, db: Session, request_id: str) -> ShiftCoverageRequest:
        request = db.get(ShiftCoverageRequest, request_id)
        if request is None:
            raise NotFoundError("ShiftCoverageRequest", request_id)
        return request

    def get_claim(self, db: Session, claim_id: str) -> ShiftCoverageClaim:
        claim = db.get(ShiftCoverageClaim, claim_id)
        if claim is None:
            raise NotFoundError("ShiftCoverageClaim", claim_id)
        return claim

    def _active_team(self, db: Session, care_plan_id: str) -> List[CareTeamMember]:
        return (
            db.query(CareTeamMember)
            .filter(
                CareTeamMember.care_plan_id == care_plan_id,
                CareTeamMember.status == "active"
            )
            .all()
        )

    def list_requests(
        self,
        db: Session,
        family_id: Optional[str] = None,
        care_plan_id: Optional[str] = None,
        status: Optional[str] = None
    ) -> List[ShiftCoverageRequest]:
        query = db.query(ShiftCoverageRequest).join(CareShift, ShiftCoverageRequest.shift_id == CareShift.id)
        if family_id:
            query = query.filter(CareShift.family_id == family_id)
        if care_plan_id:
            query = query.filter(CareShift.care_plan_id == care_plan_id)
        if status:
            query = query.filter(ShiftCoverageRequest.status == status)
        return query.order_by(ShiftCoverageRequest.requested_at.desc()).all()

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    def request_time_off(
        self,
        db: Session,
        shift_id: str,
        caregiver_id: str,
        reason: str,
        request_message: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> ShiftCoverageRequest:
        """
        Raise a time-off request for a shift the caregiver is assigned to.

        The family is notified and has COVERAGE_REQUEST_TTL_HOURS to respond.
        """
        now = now or datetime.utcnow()
        shift = db.get(CareShift, shift_id)
        if shift is None:
            raise NotFoundError("CareShift", shift_id)
        if shift.caregiver_id != caregiver_id:
            raise PermissionError("Only the assigned caregiver can request time off for this shift")

        existing = (
            db.query(ShiftCoverageRequest)
            .filter(
                ShiftCoverageRequest.shift_id == shift_id,
                ShiftCoverageRequest.status.in_(OPEN_REQUEST_STATUSES)
            )
            .first()
        )
        if existing:
            raise ConflictError("A coverage request is already open for this shift")

        request = ShiftCoverageRequest(
            shift_id=shift.id,
            requesting_caregiver_id=caregiver_id,
            reason=reason,
            request_message=request_message,
            status="pending_family_approval",
            requested_at=now,
            expires_at=now + timedelta(hours=settings.COVERAGE_REQUEST_TTL_HOURS)
        )
        db.add(request)
        db.commit()

        caregiver = db.get(Profile, caregiver_id)
        family = db.get(Profile, shift.family_id)
        message = (
            "SHIFT COVERAGE REQUEST\n"
            f"{display_profile_name(caregiver) or 'Your caregiver'} has requested time off for:\n"
            f"{shift.title}\n{_shift_window(shift)}\n"
            f"Reason: {reason}\n"
            + (f"Message: {request_message}\n" if request_message else "")
            + "Reply APPROVE to allow this request or DENY to decline it.\n"
            f"Request expires in {settings.COVERAGE_REQUEST_TTL_HOURS} hours."
        )
        self.notification_service.notify_profile(
            db, family, message, "time_off_request", shift_id=shift.id, coverage_request_id=request.id
        )

        logger.info(f"Coverage request {request.id} raised for shift {shift.id}",
                    extra={"caregiver_id": caregiver_id, "shift_id": shift.id})
        return request

    def respond_to_request(
        self,
        db: Session,
        request_id: str,
        family_id: str,
        approved: bool,
        now: Optional[datetime] = None
    ) -> ShiftCoverageRequest:
        """
        Family approves or denies a pending request.

        Approval broadcasts the shift to the other active care team members.
        """
        now = now or datetime.utcnow()
        request = self.get_request(db, request_id)
        shift = request.shift
        if shift.family_id != family_id:
            raise PermissionError("Only the family that owns the shift can respond")
        if request.status != "pending_family_approval":
            raise ConflictError(f"Request is already {request.status}")
        if request.expires_at and request.expires_at <= now:
            self._expire(db, request)
            db.commit()
            raise ConflictError("Request has expired")

        request.status = "approved" if approved else "denied"
        request.family_response_at = now
        request.family_response_by = family_id
        db.commit()

        caregiver = db.get(Profile, request.requesting_caregiver_id)
        decision = "approved" if approved else "denied"
        self.notification_service.notify_profile(
            db, caregiver,
            f"Your time-off request for {shift.title} ({_shift_window(shift)}) was {decision}.",
            "time_off_response", shift_id=shift.id, coverage_request_id=request.id
        )

        if approved:
            self.broadcast_available_shift(db, request)

        logger.info(f"Coverage request {request.id} {decision}", extra={"family_id": family_id})
        return request

    def broadcast_available_shift(self, db: Session, request: ShiftCoverageRequest) -> int:
        """Tell every other active team member the shift can be claimed."""
        shift = request.shift
        plan = db.get(CarePlan, shift.care_plan_id)
        requester = db.get(Profile, request.requesting_caregiver_id)

        message = (
            "SHIFT AVAILABLE\n"
            f"{shift.title}\n{_shift_window(shift)}\n"
            f"Originally: {display_profile_name(requester) or 'Team member'}\n"
            f"Client: {plan.title if plan else 'Care plan'}\n"
            + (f"Location: {shift.location}\n" if shift.location else "")
            + "Reply CLAIM to take this shift. First come, first served!"
        )

        notified = 0
        for member in self._active_team(db, shift.care_plan_id):
            if member.caregiver_id == request.requesting_caregiver_id:
                continue
            self.notification_service.notify_profile(
                db, member.caregiver, message, "coverage_available",
                shift_id=shift.id, coverage_request_id=request.id
            )
            notified += 1
        return notified

    def claim_shift(self, db: Session, request_id: str, caregiver_id: str) -> ShiftCoverageClaim:
        """
        A team member offers to cover an approved request.

        Only one claim per request may await family confirmation at a time.
        """
        request = self.get_request(db, request_id)
        if request.status != "approved":
            raise ConflictError(f"Request is not open for claims (status {request.status})")
        if caregiver_id == request.requesting_caregiver_id:
            raise ValueError("The requesting caregiver cannot claim their own shift")

        shift = request.shift
        member = (
            db.query(CareTeamMember)
            .filter(
                CareTeamMember.care_plan_id == shift.care_plan_id,
                CareTeamMember.caregiver_id == caregiver_id,
                CareTeamMember.status == "active"
            )
            .first()
        )
        if member is None:
            raise PermissionError("Only active care team members can claim this shift")

        open_claim = (
            db.query(ShiftCoverageClaim)
            .filter(
                ShiftCoverageClaim.coverage_request_id == request.id,
                ShiftCoverageClaim.status == "pending_family_confirmation"
            )
            .first()
        )
        if open_claim:
            raise ConflictError("This shift has already been claimed")

        claim = ShiftCoverageClaim(coverage_request_id=request.id, claiming_caregiver_id=caregiver_id)
        db.add(claim)
        db.commit()

        family = db.get(Profile, shift.family_id)
        message = (
            "SHIFT CLAIM\n"
            f"{display_profile_name(member.caregiver) or 'A team member'} wants to cover:\n"
            f"{shift.title}\n{_shift_window(shift)}\n"
            "Reply CONFIRM to assign this caregiver or DECLINE to look for other options."
        )
        self.notification_service.notify_profile(
            db, family, message, "coverage_claimed", shift_id=shift.id, coverage_request_id=request.id
        )
        return claim

    def confirm_claim(
        self,
        db: Session,
        claim_id: str,
        family_id: str,
        confirmed: bool = True,
        now: Optional[datetime] = None
    ) -> ShiftCoverageClaim:
        """
        Family confirms or declines a claim.

        Confirming reassigns the shift, marks the request covered and
        rejects every other claim. Declining reopens the request for claims.
        """
        now = now or datetime.utcnow()
        claim = self.get_claim(db, claim_id)
        request = claim.coverage_request
        shift = request.shift
        if shift.family_id != family_id:
            raise PermissionError("Only the family that owns the shift can confirm coverage")
        if claim.status != "pending_family_confirmation":
            raise ConflictError(f"Claim is already {claim.status}")

        claimer = db.get(Profile, claim.claiming_caregiver_id)
        if not confirmed:
            claim.status = "declined"
            db.commit()
            self.notification_service.notify_profile(
                db, claimer, f"Your claim for {shift.title} was declined by the family.",
                "coverage_declined", shift_id=shift.id, coverage_request_id=request.id
            )
            return claim

        claim.status = "confirmed"
        claim.confirmed_at = now
        for other in request.claims:
            if other.id != claim.id and other.status == "pending_family_confirmation":
                other.status = "rejected"
        request.status = "covered"
        shift.caregiver_id = claim.claiming_caregiver_id
        shift.status = "assigned"
        shift.reminder_sent_at = None
        db.commit()

        self.notification_service.notify_profile(
            db, claimer,
            f"You're confirmed for {shift.title} ({_shift_window(shift)}). Thank you for covering!",
            "coverage_confirmed", shift_id=shift.id, coverage_request_id=request.id
        )
        logger.info(f"Shift {shift.id} covered by {claim.claiming_caregiver_id}",
                    extra={"coverage_request_id": request.id})
        return claim

    def _expire(self, db: Session, request: ShiftCoverageRequest):
        request.status = "expired"
        shift = request.shift
        start = f"{shift.start_time.strftime('%a %b %d')} {format_time(shift.start_time.strftime('%H:%M'))}"
        caregiver = db.get(Profile, request.requesting_caregiver_id)
        family = db.get(Profile, shift.family_id)

        self.notification_service.notify_profile(
            db, family,
            "TIME-OFF REQUEST EXPIRED\n"
            f"The time-off request from {display_profile_name(caregiver) or 'your caregiver'} for "
            f"{shift.title} ({start}) has expired and was automatically denied. "
            "Please coordinate directly with your caregiver if needed.",
            "request_expired", shift_id=shift.id, coverage_request_id=request.id
        )
        self.notification_service.notify_profile(
            db, caregiver,
            "TIME-OFF REQUEST EXPIRED\n"
            f"Your time-off request for {shift.title} ({start}) has expired and was automatically "
            "denied. Please coordinate directly with the family if you still need coverage.",
            "request_expired_caregiver", shift_id=shift.id, coverage_request_id=request.id
        )

    def expire_requests(self, db: Session, now: Optional[datetime] = None) -> int:
        """Expire pending requests past their deadline and notify both sides."""
        now = now or datetime.utcnow()
        expired = (
            db.query(ShiftCoverageRequest)
            .filter(
                ShiftCoverageRequest.status == "pending_family_approval",
                ShiftCoverageRequest.expires_at <= now
            )
            .all()
        )
        for request in expired:
            self._expire(db, request)
        db.commit()

        if expired:
            logger.info(f"Expired {len(expired)} coverage requests")
        return len(expired)

    # ------------------------------------------------------------------
    # WhatsApp replies
    # ------------------------------------------------------------------

    def process_whatsapp_reply(self, db: Session, phone_number: str, content: str) -> Dict:
        """
        Act on a keyword reply from a family or caregiver.

        APPROVE/DENY answer the sender's newest pending request, CLAIM
        claims the newest approved request on one of the sender's care
        teams, CONFIRM/DECLINE answer the newest pending claim.

        Returns:
            Dict: action, handled and the id of the affected row
        """
        entry = self.notification_service.log_incoming_whatsapp(db, phone_number, content)
        keyword = (content or "").strip().upper()
        result = {"action": keyword if keyword in COVERAGE_REPLY_KEYWORDS else None, "handled": False, "id": None}

        profile = db.query(Profile).filter(Profile.phone_number == phone_number).first()
        if profile is None or result["action"] is None:
            logger.info(f"Ignored WhatsApp reply from {phone_number}")
            return result

        entry.user_id = profile.id
        try:
            if keyword in ("APPROVE", "DENY"):
                request = (
                    db.query(ShiftCoverageRequest)
                    .join(CareShift, ShiftCoverageRequest.shift_id == CareShift.id)
                    .filter(
                        CareShift.family_id == profile.id,
                        ShiftCoverageRequest.status == "pending_family_approval"
                    )
                    .order_by(ShiftCoverageRequest.requested_at.desc())
                    .first()
                )
                if request:
                    self.respond_to_request(db, request.id, profile.id, keyword == "APPROVE")
                    result.update(handled=True, id=request.id)

            elif keyword == "CLAIM":
                plan_ids = [
                    m.care_plan_id for m in db.query(CareTeamMember).filter(
                        CareTeamMember.caregiver_id == profile.id,
                        CareTeamMember.status == "active"
                    )
                ]
                request = (
                    db.query(ShiftCoverageRequest)
                    .join(CareShift, ShiftCoverageRequest.shift_id == CareShift.id)
                    .filter(
                        CareShift.care_plan_id.in_(plan_ids),
                        ShiftCoverageRequest.status == "approved",
                        ShiftCoverageRequest.requesting_caregiver_id != profile.id
                    )
                    .order_by(ShiftCoverageRequest.requested_at.desc())
                    .first()
                ) if plan_ids else None
                if request:
                    claim = self.claim_shift(db, request.id, profile.id)
                    result.update(handled=True, id=claim.id)

            else:
                claim = (
                    db.query(ShiftCoverageClaim)
                    .join(ShiftCoverageRequest, ShiftCoverageClaim.coverage_request_id == ShiftCoverageRequest.id)
                    .join(CareShift, ShiftCoverageRequest.shift_id == CareShift.id)
                    .filter(
                        CareShift.family_id == profile.id,
                        ShiftCoverageClaim.status == "pending_family_confirmation"
                    )
                    .order_by(ShiftCoverageClaim.claimed_at.desc())
                    .first()
                )
                if claim:
                    self.confirm_claim(db, claim.id, profile.id, keyword == "CONFIRM")
                    result.update(handled=True, id=claim.id)
        except (ConflictError, PermissionError, ValueError) as e:
            logger.warning(f"WhatsApp {keyword} from {phone_number} not applied: {e}")

        entry.processed = True
        entry.processed_at = datetime.utcnow()
        db.commit()
        return result
