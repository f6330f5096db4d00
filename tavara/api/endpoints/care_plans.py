"""
Tavara.care Coordination Service - Care Plan Routes

Families own care plans and invite professionals to their care team.
An invited caregiver may accept or decline by changing their own status.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from tavara.api.dependencies import get_current_profile, get_request_id, require_plan_access
from tavara.api.schemas import (
    CarePlanCreate,
    CarePlanUpdate,
    CarePlanResponse,
    TeamMemberInvite,
    TeamMemberUpdate,
    TeamMemberResponse
)
from tavara.core.errors import NotFoundError
from tavara.core.logging import log_request
from tavara.db.base import get_db
from tavara.db.models import Profile, CareTeamMember
from tavara.services.care_plan_service import CarePlanService

router = APIRouter(prefix="/care-plans", tags=["Care Plans"])
care_plan_service = CarePlanService()

SELF_SERVICE_MEMBER_STATUSES = ["active", "declined"]


@router.post("", response_model=CarePlanResponse, status_code=status.HTTP_201_CREATED, summary="Create a care plan")
def create_plan(
    body: CarePlanCreate,
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id),
    current: Profile = Depends(get_current_profile)
):
    log_request(endpoint="/care-plans", method="POST", request_id=request_id, user_id=current.id, plan_type=body.plan_type)
    return care_plan_service.create_plan(
        db, current.id, body.title, description=body.description, plan_type=body.plan_type, metadata=body.metadata
    )


@router.get("", response_model=List[CarePlanResponse], summary="My care plans")
def list_plans(
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    if current.role == "professional":
        return care_plan_service.list_caregiver_plans(db, current.id)
    return care_plan_service.list_plans(db, current.id)


@router.get("/{care_plan_id}", response_model=CarePlanResponse, summary="A care plan")
def get_plan(
    care_plan_id: str,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    return require_plan_access(db, care_plan_id, current)


@router.patch("/{care_plan_id}", response_model=CarePlanResponse, summary="Update a care plan")
def update_plan(
    care_plan_id: str,
    body: CarePlanUpdate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_plan_access(db, care_plan_id, current, owner_only=True)
    return care_plan_service.update_plan(db, care_plan_id, body.model_dump(exclude_unset=True))


@router.post(
    "/{care_plan_id}/team",
    response_model=TeamMemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite a caregiver to the care team"
)
def invite_member(
    care_plan_id: str,
    body: TeamMemberInvite,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_plan_access(db, care_plan_id, current, owner_only=True)
    return care_plan_service.invite_member(
        db,
        care_plan_id,
        body.caregiver_id,
        role=body.role,
        regular_rate=body.regular_rate,
        overtime_rate=body.overtime_rate,
        display_name=body.display_name,
        notes=body.notes
    )


@router.get("/{care_plan_id}/team", response_model=List[TeamMemberResponse], summary="Care team members")
def list_members(
    care_plan_id: str,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_plan_access(db, care_plan_id, current)
    return care_plan_service.list_members(db, care_plan_id)


@router.patch("/team/{member_id}", response_model=TeamMemberResponse, summary="Update a care team member")
def update_member(
    member_id: str,
    body: TeamMemberUpdate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    member = db.get(CareTeamMember, member_id)
    if member is None:
        raise NotFoundError("CareTeamMember", member_id)

    updates = body.model_dump(exclude_unset=True)
    if member.caregiver_id == current.id:
        # Caregivers answer their own invitation and nothing else
        if set(updates) != {"status"} or updates["status"] not in SELF_SERVICE_MEMBER_STATUSES:
            raise HTTPException(status_code=403, detail="Caregivers can only accept or decline an invitation")
    else:
        require_plan_access(db, member.care_plan_id, current, owner_only=True)

    return care_plan_service.update_member(db, member.id, updates, actor_id=current.id)
