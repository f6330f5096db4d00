"""
Tavara.care Coordination Service - Profile Routes
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from tavara.api.dependencies import (
    get_current_profile,
    get_request_id,
    require_admin,
    require_self_or_admin,
    validate_request
)
from tavara.api.schemas import (
    ProfileCreate,
    ProfileUpdate,
    ProfileResponse,
    AvailabilityUpdate,
    CareAssessmentRequest,
    CareRecipientRequest,
    DocumentRequest,
    Role
)
from tavara.core.logging import log_request
from tavara.db.base import get_db
from tavara.db.models import Profile
from tavara.services.profile_service import ProfileService

router = APIRouter(prefix="/profiles", tags=["Profiles"])
profile_service = ProfileService()


@router.post(
    "",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a profile"
)
def create_profile(
    body: ProfileCreate,
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id),
    _: dict = Depends(validate_request)
):
    log_request(endpoint="/profiles", method="POST", request_id=request_id, role=body.role.value)
    if body.role == Role.ADMIN:
        raise PermissionError("Admin profiles cannot be self-registered")
    fields = body.model_dump(exclude_unset=True, exclude={"role"})
    return profile_service.create_profile(db, body.role.value, **fields)


@router.get("", response_model=List[ProfileResponse], summary="List profiles by role")
def list_profiles(
    role: Role = Query(...),
    db: Session = Depends(get_db),
    _: Profile = Depends(require_admin)
):
    return profile_service.list_by_role(db, role.value)


@router.get("/{profile_id}", response_model=ProfileResponse, summary="Get a profile")
def get_profile(
    profile_id: str,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_self_or_admin(current, profile_id)
    return profile_service.get_profile(db, profile_id)


@router.patch("/{profile_id}", response_model=ProfileResponse, summary="Update a profile")
def update_profile(
    profile_id: str,
    body: ProfileUpdate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_self_or_admin(current, profile_id)
    return profile_service.update_profile(db, profile_id, body.model_dump(exclude_unset=True))


@router.put(
    "/{profile_id}/availability",
    response_model=ProfileResponse,
    summary="Toggle matching availability",
    description="Changing availability recalculates the caregiver's automatic matches"
)
def set_availability(
    profile_id: str,
    body: AvailabilityUpdate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_self_or_admin(current, profile_id)
    return profile_service.set_availability(db, profile_id, body.available_for_matching)


@router.put("/{profile_id}/care-assessment", summary="Save the family care assessment")
def save_care_assessment(
    profile_id: str,
    body: CareAssessmentRequest,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_self_or_admin(current, profile_id)
    assessment = profile_service.save_care_assessment(db, profile_id, body.care_types, body.schedule, body.details)
    return {"id": assessment.id, "profile_id": assessment.profile_id}


@router.put("/{profile_id}/care-recipient", summary="Save the care recipient profile")
def save_care_recipient(
    profile_id: str,
    body: CareRecipientRequest,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_self_or_admin(current, profile_id)
    recipient = profile_service.save_care_recipient(db, profile_id, body.full_name, body.birth_year, body.story)
    return {"id": recipient.id, "user_id": recipient.user_id, "full_name": recipient.full_name}


@router.post("/{profile_id}/documents", status_code=status.HTTP_201_CREATED, summary="Register a document")
def add_document(
    profile_id: str,
    body: DocumentRequest,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_self_or_admin(current, profile_id)
    document = profile_service.add_document(db, profile_id, body.document_type, body.file_path)
    return {"id": document.id, "document_type": document.document_type}
