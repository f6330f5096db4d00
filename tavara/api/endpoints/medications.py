"""
Tavara.care Coordination Service - Medication Routes
"""

from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from tavara.api.dependencies import get_current_profile, require_plan_access
from tavara.api.schemas import (
    MedicationCreate,
    MedicationUpdate,
    MedicationResponse,
    AdministrationRequest
)
from tavara.db.base import get_db
from tavara.db.models import Profile
from tavara.services.medication_service import MedicationService

router = APIRouter(prefix="/medications", tags=["Medications"])
medication_service = MedicationService()


@router.post(
    "/care-plans/{care_plan_id}",
    response_model=MedicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a medication"
)
def add_medication(
    care_plan_id: str,
    body: MedicationCreate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_plan_access(db, care_plan_id, current)
    return medication_service.add_medication(
        db, care_plan_id, body.name, dosage=body.dosage, instructions=body.instructions, schedule=body.schedule
    )


@router.get("/care-plans/{care_plan_id}", response_model=List[MedicationResponse], summary="Medications of a care plan")
def list_medications(
    care_plan_id: str,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_plan_access(db, care_plan_id, current)
    return medication_service.list_medications(db, care_plan_id)


@router.patch("/{medication_id}", response_model=MedicationResponse, summary="Update a medication")
def update_medication(
    medication_id: str,
    body: MedicationUpdate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    medication = medication_service.get_medication(db, medication_id)
    require_plan_access(db, medication.care_plan_id, current)
    return medication_service.update_medication(db, medication.id, body.model_dump(exclude_unset=True))


@router.delete("/{medication_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a medication")
def delete_medication(
    medication_id: str,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    medication = medication_service.get_medication(db, medication_id)
    require_plan_access(db, medication.care_plan_id, current, owner_only=True)
    medication_service.delete_medication(db, medication.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{medication_id}/administrations",
    summary="Record a dose",
    description=(
        "When another dose falls inside the conflict window the dose is not recorded "
        "until a resolution (cancel, dual_entry or override) is supplied"
    )
)
def record_administration(
    medication_id: str,
    body: AdministrationRequest,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    medication = medication_service.get_medication(db, medication_id)
    require_plan_access(db, medication.care_plan_id, current)
    return medication_service.record_administration(
        db,
        medication.id,
        body.administered_at,
        current.id,
        notes=body.notes,
        resolution=body.resolution
    )


@router.get("/{medication_id}/administrations", summary="Recent doses")
def administration_history(
    medication_id: str,
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    medication = medication_service.get_medication(db, medication_id)
    require_plan_access(db, medication.care_plan_id, current)
    return medication_service.get_administration_history(db, medication.id, limit=limit)
