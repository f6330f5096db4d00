"""
Tavara.care Coordination Service - Shift Coverage Routes

Time-off requests, family responses, claims by other team members and
keyword replies arriving over WhatsApp.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from tavara.api.dependencies import get_current_profile, require_plan_access, validate_request
from tavara.api.schemas import (
    TimeOffRequest,
    CoverageResponseRequest,
    ClaimConfirmRequest,
    CoverageRequestResponse,
    CoverageClaimResponse,
    WhatsAppInboundMessage
)
from tavara.db.base import get_db
from tavara.db.models import Profile
from tavara.services.coverage_service import CoverageService

router = APIRouter(prefix="/coverage", tags=["Coverage"])
coverage_service = CoverageService()


@router.post(
    "/shifts/{shift_id}/time-off",
    response_model=CoverageRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request time off for an assigned shift"
)
def request_time_off(
    shift_id: str,
    body: TimeOffRequest,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    return coverage_service.request_time_off(db, shift_id, current.id, body.reason, body.request_message)


@router.get("/requests", response_model=List[CoverageRequestResponse], summary="Coverage requests")
def list_requests(
    care_plan_id: Optional[str] = Query(default=None),
    request_status: Optional[str] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    if care_plan_id:
        require_plan_access(db, care_plan_id, current)
        return coverage_service.list_requests(db, care_plan_id=care_plan_id, status=request_status)
    family_id = None if current.role == "admin" else current.id
    return coverage_service.list_requests(db, family_id=family_id, status=request_status)


@router.post(
    "/requests/{request_id}/respond",
    response_model=CoverageRequestResponse,
    summary="Approve or deny a time-off request"
)
def respond_to_request(
    request_id: str,
    body: CoverageResponseRequest,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    return coverage_service.respond_to_request(db, request_id, current.id, body.approved)


@router.post(
    "/requests/{request_id}/claims",
    response_model=CoverageClaimResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Claim an approved shift"
)
def claim_shift(
    request_id: str,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    return coverage_service.claim_shift(db, request_id, current.id)


@router.post("/claims/{claim_id}/confirm", response_model=CoverageClaimResponse, summary="Confirm or decline a claim")
def confirm_claim(
    claim_id: str,
    body: ClaimConfirmRequest,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    return coverage_service.confirm_claim(db, claim_id, current.id, body.confirmed)


@router.post(
    "/whatsapp-replies",
    summary="Handle a WhatsApp keyword reply",
    description="APPROVE, DENY, CLAIM, CONFIRM or DECLINE sent by a family or caregiver"
)
def whatsapp_reply(
    body: WhatsAppInboundMessage,
    db: Session = Depends(get_db),
    _: dict = Depends(validate_request)
):
    return coverage_service.process_whatsapp_reply(db, body.phone_number, body.content)
