"""
Tavara.care Coordination Service - Journey Service

Onboarding progress per role, the 12-step family journey
and the admin overview across all users.
"""

from typing import List, Dict, Optional

from sqlalchemy.orm import Session

from tavara.config import (
    USER_JOURNEY_STEPS,
    FALLBACK_JOURNEY_STEPS,
    FAMILY_JOURNEY_STEPS,
    FOUNDATION_STEPS_FOR_SCHEDULING,
    MATCHING_STEP_ID,
    MATCHING_PREREQUISITE_STEP_IDS,
    TRIAL_SCHEDULED_STATUSES,
    TRIAL_PAID_STATUSES,
    TRIAL_STARTED_STATUSES
)
from tavara.core.errors import NotFoundError
from tavara.core.logging import logger
from tavara.db.models import (
    Profile,
    CareNeedsAssessment,
    CareRecipientProfile,
    CarePlan,
    Medication,
    MealPlan,
    ProfessionalDocument
)
from tavara.utils.helpers import as_list, display_profile_name


def completion_percentage(steps: List[Dict]) -> int:
    if not steps:
        return 0
    completed = sum(1 for step in steps if step["completed"])
    # halves round up
    return int(completed / len(steps) * 100 + 0.5)


def next_incomplete_step(steps: List[Dict]) -> Optional[Dict]:
    return next((step for step in steps if not step["completed"]), None)


def journey_stage(steps: List[Dict], care_model: Optional[str] = None) -> str:
    """
    Stage reached by the furthest completed work.

    Any trial step or a chosen care model means conversion, any scheduling
    step means trial, four foundation steps mean scheduling.
    """
    completed = [step["category"] for step in steps if step["completed"]]
    if "trial" in completed or care_model:
        return "conversion"
    if "scheduling" in completed:
        return "trial"
    if completed.count("foundation") >= FOUNDATION_STEPS_FOR_SCHEDULING:
        return "scheduling"
    return "foundation"


class JourneyService:
    """Computes onboarding progress from stored rows."""

    def __init__(self):
        logger.info("JourneyService initialized")

    def _family_facts(self, db: Session, profile: Profile) -> Dict:
        assessment = (
            db.query(CareNeedsAssessment)
            .filter(CareNeedsAssessment.profile_id == profile.id)
            .first()
        )
        recipient = (
            db.query(CareRecipientProfile)
            .filter(CareRecipientProfile.user_id == profile.id)
            .first()
        )
        plan_ids = [p.id for p in db.query(CarePlan.id).filter(CarePlan.family_id == profile.id)]
        has_medications = bool(plan_ids) and db.query(Medication.id).filter(
            Medication.care_plan_id.in_(plan_ids)
        ).first() is not None
        has_meal_plans = bool(plan_ids) and db.query(MealPlan.id).filter(
            MealPlan.care_plan_id.in_(plan_ids)
        ).first() is not None

        return {
            "has_assessment": assessment is not None,
            "has_recipient": recipient is not None,
            "recipient_named": recipient is not None and bool(recipient.full_name),
            "has_medications": has_medications,
            "has_meal_plans": has_meal_plans,
            "care_plan_ids": plan_ids
        }

    def get_user_journey_progress(self, db: Session, user_id: str) -> Dict:
        """
        Role-specific onboarding checklist.

        Args:
            db: Database session
            user_id: Profile id

        Returns:
            Dict: steps, completion_percentage and next_step
        """
        profile = db.get(Profile, user_id)
        if profile is None:
            raise NotFoundError("Profile", user_id)

        catalogue = USER_JOURNEY_STEPS.get(profile.role, FALLBACK_JOURNEY_STEPS)
        steps = [
            {"id": step_id, "title": title, "description": description, "link": link, "completed": False}
            for step_id, title, description, link in catalogue
        ]
        has_name = bool(display_profile_name(profile))

        if profile.role == "family":
            facts = self._family_facts(db, profile)
            flags = [
                has_name,
                facts["has_assessment"],
                facts["recipient_named"],
                facts["has_recipient"],
                facts["has_medications"],
                facts["has_meal_plans"],
                profile.visit_scheduling_status in ("scheduled", "completed"),
            ]
        elif profile.role == "professional":
            has_documents = db.query(ProfessionalDocument.id).filter(
                ProfessionalDocument.user_id == profile.id
            ).first() is not None
            flags = [
                True,
                bool(profile.professional_type and profile.years_of_experience),
                has_documents,
                bool(as_list(profile.availability)),
                bool(profile.training_completed),
                bool(profile.orientation_scheduled),
            ]
        elif profile.role == "community":
            flags = [
                has_name,
                bool(as_list(profile.contribution_interests)),
                bool(as_list(profile.joined_activities)),
            ]
        elif profile.role == "admin":
            # system configuration is assumed done for existing admins
            flags = [has_name, True]
        else:
            flags = [has_name]

        for step, completed in zip(steps, flags):
            step["completed"] = completed

        return {
            "user_id": profile.id,
            "role": profile.role,
            "steps": steps,
            "completion_percentage": completion_percentage(steps),
            "next_step": next_incomplete_step(steps)
        }

    def get_family_journey(self, db: Session, user_id: str) -> Dict:
        """
        The 12-step family journey with stage tracking.

        The completion percentage counts all twelve steps, optional
        ones included.
        """
        profile = db.get(Profile, user_id)
        if profile is None:
            raise NotFoundError("Profile", user_id)
        if profile.role != "family":
            raise ValueError("The family journey is only available to family users")

        facts = self._family_facts(db, profile)
        visit_status = profile.visit_scheduling_status or "not_started"
        trial_status = profile.trial_status or "not_started"
        care_model = profile.care_model or (profile.visit_notes or {}).get("care_model")

        completion = {
            1: bool(display_profile_name(profile)),
            2: facts["has_assessment"],
            3: facts["recipient_named"],
            4: facts["has_recipient"],
            5: facts["has_medications"],
            6: facts["has_meal_plans"],
            7: visit_status in ("scheduled", "completed"),
            8: visit_status == "completed",
            9: trial_status in TRIAL_SCHEDULED_STATUSES,
            10: trial_status in TRIAL_PAID_STATUSES,
            11: trial_status in TRIAL_STARTED_STATUSES,
            12: bool(care_model),
        }
        matching_unlocked = all(completion[i] for i in MATCHING_PREREQUISITE_STEP_IDS)

        steps = []
        for step_id, title, description, category, optional, link in FAMILY_JOURNEY_STEPS:
            steps.append({
                "id": step_id,
                "title": title,
                "description": description,
                "category": category,
                "optional": optional,
                "link": link,
                "completed": completion[step_id],
                "locked": step_id == MATCHING_STEP_ID and not matching_unlocked
            })

        return {
            "user_id": profile.id,
            "steps": steps,
            "completion_percentage": completion_percentage(steps),
            "next_step": next_incomplete_step(steps),
            "journey_stage": journey_stage(steps, care_model),
            "care_model": care_model,
            "visit_status": visit_status,
            "trial_completed": trial_status in TRIAL_PAID_STATUSES,
            "care_plan_ids": facts["care_plan_ids"]
        }

    def get_admin_journey_overview(self, db: Session) -> Dict:
        """Progress of every non-admin user, with averages per role."""
        profiles = (
            db.query(Profile)
            .filter(Profile.role != "admin")
            .order_by(Profile.created_at.desc())
            .all()
        )

        users = []
        by_role: Dict[str, List[int]] = {}
        for profile in profiles:
            progress = self.get_user_journey_progress(db, profile.id)
            next_step = progress["next_step"]
            users.append({
                "user_id": profile.id,
                "full_name": display_profile_name(profile),
                "email": profile.email,
                "role": profile.role,
                "completion_percentage": progress["completion_percentage"],
                "next_step_id": next_step["id"] if next_step else None,
                "next_step_title": next_step["title"] if next_step else None
            })
            by_role.setdefault(profile.role, []).append(progress["completion_percentage"])

        averages = {
            role: round(sum(values) / len(values), 1)
            for role, values in by_role.items()
        }
        return {
            "total_users": len(users),
            "average_completion_by_role": averages,
            "users": users
        }
