"""
Tavara.care Coordination Service - Scheduling Routes
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from tavara.api.dependencies import (
    get_current_profile,
    require_plan_access,
    require_self_or_admin,
    validate_request
)
from tavara.api.schemas import (
    ShiftCreate,
    CustomShiftsRequest,
    ShiftAssignRequest,
    ShiftStatusUpdate,
    ShiftResponse
)
from tavara.db.base import get_db
from tavara.db.models import Profile
from tavara.services.scheduling_service import (
    SchedulingService,
    list_shift_options,
    generate_time_options,
    format_time
)

router = APIRouter(prefix="/scheduling", tags=["Scheduling"])
scheduling_service = SchedulingService()


@router.get("/shift-options", summary="Standard shift options with time ranges")
def shift_options(_: dict = Depends(validate_request)):
    return list_shift_options()


@router.get("/time-options", summary="Half-hour time picker values")
def time_options(_: dict = Depends(validate_request)):
    return [{"value": value, "label": format_time(value)} for value in generate_time_options()]


@router.post(
    "/care-plans/{care_plan_id}/shifts",
    response_model=ShiftResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a shift"
)
def create_shift(
    care_plan_id: str,
    body: ShiftCreate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_plan_access(db, care_plan_id, current, owner_only=True)
    return scheduling_service.create_shift(
        db,
        care_plan_id,
        body.title,
        body.start_time,
        body.end_time,
        caregiver_id=body.caregiver_id,
        description=body.description,
        location=body.location,
        recurring_pattern=body.recurring_pattern
    )


@router.post(
    "/care-plans/{care_plan_id}/custom-shifts",
    response_model=List[ShiftResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Generate shifts from custom definitions"
)
def create_custom_shifts(
    care_plan_id: str,
    body: CustomShiftsRequest,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    plan = require_plan_access(db, care_plan_id, current, owner_only=True)
    return scheduling_service.generate_shifts_from_custom_definitions(
        db, plan.id, plan.family_id, [s.model_dump() for s in body.shifts]
    )


@router.get("/care-plans/{care_plan_id}/shifts", response_model=List[ShiftResponse], summary="Shifts of a care plan")
def list_shifts(
    care_plan_id: str,
    start: Optional[datetime] = Query(default=None),
    end: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_plan_access(db, care_plan_id, current)
    return scheduling_service.list_shifts(db, care_plan_id, start=start, end=end)


@router.get("/caregivers/{caregiver_id}/shifts", response_model=List[ShiftResponse], summary="Shifts of a caregiver")
def caregiver_shifts(
    caregiver_id: str,
    upcoming_only: bool = Query(default=True),
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_self_or_admin(current, caregiver_id)
    return scheduling_service.list_caregiver_shifts(db, caregiver_id, upcoming_only=upcoming_only)


@router.put("/shifts/{shift_id}/caregiver", response_model=ShiftResponse, summary="Assign or release a shift")
def assign_caregiver(
    shift_id: str,
    body: ShiftAssignRequest,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    shift = scheduling_service.get_shift(db, shift_id)
    require_plan_access(db, shift.care_plan_id, current, owner_only=True)
    return scheduling_service.assign_caregiver(db, shift_id, body.caregiver_id)


@router.put("/shifts/{shift_id}/status", response_model=ShiftResponse, summary="Change shift status")
def update_shift_status(
    shift_id: str,
    body: ShiftStatusUpdate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    shift = scheduling_service.get_shift(db, shift_id)
    require_plan_access(db, shift.care_plan_id, current)
    return scheduling_service.update_status(db, shift_id, body.status)
