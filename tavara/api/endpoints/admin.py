"""
Tavara.care Coordination Service - Admin Routes

Manual assignments, automatic assignment runs, user nudges, lead and
feedback review, audit log queries and the periodic jobs that a
scheduler calls (shift reminders, coverage expiry).
"""

from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from tavara.api.dependencies import get_request_id, require_admin
from tavara.api.schemas import (
    AdminAssignmentRequest,
    AutomaticAssignmentRequest,
    DeactivateAssignmentRequest,
    NudgeRequest,
    LeadResponse,
    FeedbackResponse,
    FeedbackStatusUpdate,
    ProfileResponse,
    VisitBookingResponse,
    BookingStatusUpdate
)
from tavara.core.logging import log_request
from tavara.db.base import get_db
from tavara.db.models import Profile
from tavara.monitoring.audit_logger import audit_logger
from tavara.services.coverage_service import CoverageService
from tavara.services.journey_service import JourneyService
from tavara.services.lead_service import LeadService
from tavara.services.matching_service import MatchingService
from tavara.services.notification_service import NotificationService
from tavara.services.scheduling_service import SchedulingService
from tavara.services.visit_service import VisitService

router = APIRouter(prefix="/admin", tags=["Admin"])
matching_service = MatchingService()
journey_service = JourneyService()
notification_service = NotificationService()
lead_service = LeadService()
scheduling_service = SchedulingService(notification_service=notification_service)
coverage_service = CoverageService(notification_service=notification_service)
visit_service = VisitService()


# ----------------------------------------------------------------------
# Matching
# ----------------------------------------------------------------------

@router.post("/assignments", status_code=status.HTTP_201_CREATED, summary="Create a manual assignment")
def create_admin_assignment(
    body: AdminAssignmentRequest,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_admin),
    request_id: str = Depends(get_request_id)
):
    log_request(endpoint="/admin/assignments", method="POST", request_id=request_id,
                family_user_id=body.family_user_id, caregiver_id=body.caregiver_id)
    return matching_service.create_admin_assignment(
        db,
        admin.id,
        body.family_user_id,
        body.caregiver_id,
        admin_match_score=body.admin_match_score,
        reason=body.reason,
        notes=body.notes
    )


@router.post("/assignments/{assignment_id}/deactivate", summary="Deactivate an assignment")
def deactivate_assignment(
    assignment_id: str,
    body: DeactivateAssignmentRequest,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_admin)
):
    matching_service.deactivate_assignment(db, assignment_id, body.reason, actor_id=admin.id)
    return {"success": True, "assignment_id": assignment_id}


@router.post("/automatic-assignment", summary="Run automatic assignment")
def run_automatic_assignment(
    body: AutomaticAssignmentRequest,
    db: Session = Depends(get_db),
    _: Profile = Depends(require_admin)
):
    return matching_service.trigger_automatic_assignment(db, body.family_user_id)


@router.get("/families/{family_user_id}/assignments", summary="Existing assignments of a family")
def family_assignments(
    family_user_id: str,
    db: Session = Depends(get_db),
    _: Profile = Depends(require_admin)
):
    return matching_service.get_existing_assignments(db, family_user_id)


@router.get("/families", response_model=List[ProfileResponse], summary="Family users")
def list_families(db: Session = Depends(get_db), _: Profile = Depends(require_admin)):
    return matching_service.list_family_users(db)


@router.get("/professionals", response_model=List[ProfileResponse], summary="Professional caregivers")
def list_professionals(db: Session = Depends(get_db), _: Profile = Depends(require_admin)):
    return matching_service.list_professionals(db)


@router.get("/recalculations", summary="Match recalculation log")
def recalculation_log(
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    _: Profile = Depends(require_admin)
):
    return [
        {
            "id": entry.id,
            "caregiver_id": entry.caregiver_id,
            "recalculation_type": entry.recalculation_type,
            "status": entry.status,
            "assignments_created": entry.assignments_created,
            "assignments_removed": entry.assignments_removed,
            "error_message": entry.error_message,
            "created_at": entry.created_at,
            "processed_at": entry.processed_at
        }
        for entry in matching_service.list_recalculation_log(db, limit=limit)
    ]


@router.get("/journey-overview", summary="Journey progress across all users")
def journey_overview(db: Session = Depends(get_db), _: Profile = Depends(require_admin)):
    return journey_service.get_admin_journey_overview(db)


# ----------------------------------------------------------------------
# Communications
# ----------------------------------------------------------------------

@router.post("/nudges", summary="Nudge users by email and/or WhatsApp")
def send_nudges(
    body: NudgeRequest,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_admin)
):
    return notification_service.send_nudge(
        db,
        admin.id,
        body.user_ids,
        channel=body.channel,
        message_type=body.message_type,
        custom_message=body.custom_message,
        current_step=body.current_step
    )


@router.get("/communications", summary="Admin communication history")
def list_communications(
    user_id: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    _: Profile = Depends(require_admin)
):
    return [
        {
            "id": c.id,
            "admin_id": c.admin_id,
            "target_user_id": c.target_user_id,
            "message_type": c.message_type,
            "channel": c.channel,
            "custom_message": c.custom_message,
            "delivery_status": c.delivery_status,
            "sent_at": c.sent_at
        }
        for c in notification_service.list_communications(db, user_id=user_id, limit=limit)
    ]


@router.get("/leads", response_model=List[LeadResponse], summary="Captured leads")
def list_leads(
    source: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    _: Profile = Depends(require_admin)
):
    return lead_service.list_leads(db, source=source, limit=limit)


@router.get("/feedback", response_model=List[FeedbackResponse], summary="Submitted feedback")
def list_feedback(
    feedback_status: Optional[str] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    _: Profile = Depends(require_admin)
):
    return lead_service.list_feedback(db, status=feedback_status)


@router.patch("/feedback/{feedback_id}", response_model=FeedbackResponse, summary="Update feedback status")
def update_feedback(
    feedback_id: str,
    body: FeedbackStatusUpdate,
    db: Session = Depends(get_db),
    _: Profile = Depends(require_admin)
):
    return lead_service.update_feedback_status(db, feedback_id, body.status)


# ----------------------------------------------------------------------
# Visits
# ----------------------------------------------------------------------

@router.get("/visits", response_model=List[VisitBookingResponse], summary="All visit bookings")
def list_visits(
    booking_status: Optional[str] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    _: Profile = Depends(require_admin)
):
    return visit_service.list_bookings(db, status=booking_status)


@router.patch("/visits/{booking_id}", response_model=VisitBookingResponse, summary="Update a visit booking")
def update_visit(
    booking_id: str,
    body: BookingStatusUpdate,
    db: Session = Depends(get_db),
    _: Profile = Depends(require_admin)
):
    return visit_service.update_booking_status(db, booking_id, body.status)


# ----------------------------------------------------------------------
# Audit & jobs
# ----------------------------------------------------------------------

@router.get("/audit-logs", summary="Query audit logs")
def audit_logs(
    days: int = Query(default=7, ge=1, le=90),
    event_type: Optional[str] = Query(default=None),
    _: Profile = Depends(require_admin)
):
    end = datetime.utcnow()
    entries = audit_logger.query_logs(end - timedelta(days=days - 1), end, event_type=event_type)
    return {"entries": entries, "total": len(entries)}


@router.post("/jobs/shift-reminders", summary="Send due shift reminders")
def run_shift_reminders(db: Session = Depends(get_db), _: Profile = Depends(require_admin)):
    return {"reminders_sent": scheduling_service.send_shift_reminders(db)}


@router.post("/jobs/expire-coverage", summary="Expire stale coverage requests")
def run_coverage_expiry(db: Session = Depends(get_db), _: Profile = Depends(require_admin)):
    return {"requests_expired": coverage_service.expire_requests(db)}
