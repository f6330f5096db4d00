"""
Tavara.care Coordination Service - Matching Routes

Match views for families and caregivers. Admin tooling for manual
assignments lives in the admin router.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tavara.api.dependencies import get_current_profile, require_self_or_admin, require_admin
from tavara.api.schemas import MatchScoreResponse
from tavara.db.base import get_db
from tavara.db.models import Profile
from tavara.services.matching_service import MatchingService

router = APIRouter(prefix="/matching", tags=["Matching"])
matching_service = MatchingService()


@router.get("/score", response_model=MatchScoreResponse, summary="Score a family against a caregiver")
def match_score(
    family_user_id: str = Query(...),
    caregiver_id: str = Query(...),
    db: Session = Depends(get_db),
    _: Profile = Depends(require_admin)
):
    return matching_service.calculate_match_score(db, family_user_id, caregiver_id).to_dict()


@router.get(
    "/families/{family_user_id}",
    summary="Caregiver matches for a family",
    description="Triggers automatic assignment once when the family has no matches yet"
)
def family_matches(
    family_user_id: str,
    best_only: bool = Query(default=True),
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_self_or_admin(current, family_user_id)
    matches = matching_service.get_family_matches(db, family_user_id, best_only=best_only)
    return {"family_user_id": family_user_id, "matches": matches, "total": len(matches)}


@router.get("/professionals/{caregiver_id}", summary="Family assignments of a caregiver")
def professional_assignments(
    caregiver_id: str,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_self_or_admin(current, caregiver_id)
    assignments = matching_service.get_professional_assignments(db, caregiver_id)
    return {"caregiver_id": caregiver_id, "assignments": assignments, "total": len(assignments)}


@router.get(
    "/professionals/{caregiver_id}/current",
    summary="Merged current assignments",
    description="Manual, care team and automatic assignments ordered by priority, then newest first"
)
def current_assignments(
    caregiver_id: str,
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_self_or_admin(current, caregiver_id)
    assignments = matching_service.get_current_assignments(db, caregiver_id, limit=limit)
    return {"caregiver_id": caregiver_id, "assignments": assignments, "total": len(assignments)}
