"""
Tavara.care Coordination Service - Profile Service

Create, read and update platform profiles. Flipping a professional's
matching availability triggers a match recalculation.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from tavara.config import ROLES
from tavara.core.errors import NotFoundError, ConflictError
from tavara.core.logging import logger
from tavara.db.models import (
    Profile,
    CareNeedsAssessment,
    CareRecipientProfile,
    ProfessionalDocument
)
from tavara.services.recalculation_service import RecalculationService

# Columns a client may set directly
EDITABLE_FIELDS = {
    "full_name", "first_name", "last_name", "email", "phone_number", "location", "address",
    "avatar_url", "care_types", "care_services", "care_schedule", "custom_schedule",
    "care_recipient_name", "relationship_to_recipient", "professional_type", "years_of_experience",
    "certifications", "hourly_rate", "expected_rate", "work_type", "bio", "languages",
    "background_check", "legally_authorized", "commute_mode", "additional_notes",
    "availability", "available_for_matching", "training_completed", "orientation_scheduled",
    "contribution_interests", "joined_activities", "trial_status", "care_model",
}


class ProfileService:
    """Profile management."""

    def __init__(self, recalculation_service: RecalculationService = None):
        self.recalculation_service = recalculation_service or RecalculationService()
        logger.info("ProfileService initialized")

    def create_profile(self, db: Session, role: str, **fields: Any) -> Profile:
        """
        Create a profile.

        Args:
            db: Database session
            role: family, professional, community or admin
            **fields: Column values from EDITABLE_FIELDS

        Returns:
            Profile: The new row

        Raises:
            ValueError: Unknown role or field
            ConflictError: Email already registered
        """
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        unknown = set(fields) - EDITABLE_FIELDS - {"id"}
        if unknown:
            raise ValueError(f"Unknown profile fields: {', '.join(sorted(unknown))}")

        email = fields.get("email")
        if email and db.query(Profile).filter(Profile.email == email).first():
            raise ConflictError(f"A profile already exists for {email}")

        profile = Profile(role=role, **fields)
        if not profile.full_name and (profile.first_name or profile.last_name):
            profile.full_name = " ".join(p for p in (profile.first_name, profile.last_name) if p)
        db.add(profile)
        db.commit()

        logger.info(f"Created {role} profile {profile.id}", extra={"profile_id": profile.id, "role": role})
        return profile

    def get_profile(self, db: Session, profile_id: str) -> Profile:
        profile = db.get(Profile, profile_id)
        if profile is None:
            raise NotFoundError("Profile", profile_id)
        return profile

    def list_by_role(self, db: Session, role: str) -> List[Profile]:
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        return (
            db.query(Profile)
            .filter(Profile.role == role)
            .order_by(Profile.created_at.desc())
            .all()
        )

    def update_profile(self, db: Session, profile_id: str, updates: Dict[str, Any]) -> Profile:
        """
        Apply a partial update.

        Changing available_for_matching on a professional runs
        a match recalculation after the update is committed.
        """
        unknown = set(updates) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown profile fields: {', '.join(sorted(unknown))}")

        profile = self.get_profile(db, profile_id)
        previous_available = bool(profile.available_for_matching)

        for field, value in updates.items():
            setattr(profile, field, value)
        db.commit()

        new_available = bool(profile.available_for_matching)
        if profile.role == "professional" and previous_available != new_available:
            self.recalculation_service.recalculate_on_availability_change(
                db, profile.id, previous_available, new_available
            )
            db.refresh(profile)

        return profile

    def set_availability(self, db: Session, profile_id: str, available: bool) -> Profile:
        """Toggle whether a professional is offered to families."""
        profile = self.get_profile(db, profile_id)
        if profile.role != "professional":
            raise ValueError("Only professionals can change matching availability")
        return self.update_profile(db, profile_id, {"available_for_matching": available})

    # ------------------------------------------------------------------
    # Onboarding rows
    # ------------------------------------------------------------------

    def save_care_assessment(
        self,
        db: Session,
        profile_id: str,
        care_types: Optional[List[str]] = None,
        schedule: Optional[str] = None,
        details: Optional[Dict] = None
    ) -> CareNeedsAssessment:
        profile = self.get_profile(db, profile_id)
        if profile.role != "family":
            raise ValueError("Care assessments belong to family profiles")

        assessment = db.query(CareNeedsAssessment).filter(CareNeedsAssessment.profile_id == profile_id).first()
        if assessment is None:
            assessment = CareNeedsAssessment(profile_id=profile_id)
            db.add(assessment)
        assessment.care_types = care_types
        assessment.schedule = schedule
        assessment.details = details

        # the assessment feeds matching
        if care_types:
            profile.care_types = care_types
        if schedule:
            profile.care_schedule = schedule
        db.commit()
        return assessment

    def save_care_recipient(
        self,
        db: Session,
        profile_id: str,
        full_name: Optional[str] = None,
        birth_year: Optional[int] = None,
        story: Optional[str] = None
    ) -> CareRecipientProfile:
        self.get_profile(db, profile_id)
        recipient = db.query(CareRecipientProfile).filter(CareRecipientProfile.user_id == profile_id).first()
        if recipient is None:
            recipient = CareRecipientProfile(user_id=profile_id)
            db.add(recipient)
        recipient.full_name = full_name
        recipient.birth_year = birth_year
        recipient.story = story
        db.commit()
        return recipient

    def add_document(self, db: Session, profile_id: str, document_type: str, file_path: str) -> ProfessionalDocument:
        profile = self.get_profile(db, profile_id)
        if profile.role != "professional":
            raise ValueError("Documents can only be uploaded by professionals")
        document = ProfessionalDocument(user_id=profile_id, document_type=document_type, file_path=file_path)
        db.add(document)
        db.commit()
        return document
