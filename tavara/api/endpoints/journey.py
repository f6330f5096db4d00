"""
Tavara.care Coordination Service - Journey Routes
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tavara.api.dependencies import get_current_profile, require_self_or_admin
from tavara.db.base import get_db
from tavara.db.models import Profile
from tavara.services.journey_service import JourneyService

router = APIRouter(prefix="/journey", tags=["Journey"])
journey_service = JourneyService()


@router.get("/{user_id}", summary="Onboarding progress for a user")
def user_journey(
    user_id: str,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_self_or_admin(current, user_id)
    return journey_service.get_user_journey_progress(db, user_id)


@router.get(
    "/{user_id}/family",
    summary="12-step family journey",
    description="Stage, completion percentage and the next required step of a family user"
)
def family_journey(
    user_id: str,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_self_or_admin(current, user_id)
    return journey_service.get_family_journey(db, user_id)
