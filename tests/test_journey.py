"""
Tavara.care Coordination Service - Journey Tests
"""

from datetime import date

import pytest

from tavara.db.models import (
    MealPlan,
    CareNeedsAssessment,
    CareRecipientProfile,
    Medication,
    ProfessionalDocument
)
from tavara.services.journey_service import JourneyService, completion_percentage, journey_stage


@pytest.fixture
def journey_service():
    return JourneyService()


class TestUserJourney:
    """Role checklists."""

    def test_new_family(self, db, journey_service, make_profile):
        """Test a named family with nothing else has one step done."""
        profile = make_profile("family", full_name="New Family")

        progress = journey_service.get_user_journey_progress(db, profile.id)

        assert len(progress["steps"]) == 7
        assert progress["steps"][0]["completed"] is True
        assert progress["completion_percentage"] == 14
        assert progress["next_step"]["id"] == 2

    def test_professional_steps(self, db, journey_service, make_profile):
        profile = make_profile(
            "professional",
            professional_type="Nurse",
            years_of_experience="4 years",
            availability=["mon_fri_8am_4pm"]
        )
        db.add(ProfessionalDocument(user_id=profile.id, document_type="certification", file_path="a.pdf"))
        db.commit()

        progress = journey_service.get_user_journey_progress(db, profile.id)

        assert [s["completed"] for s in progress["steps"]] == [True, True, True, True, False, False]
        assert progress["next_step"]["title"] == "Complete training modules"

    def test_community_steps(self, db, journey_service, make_profile):
        profile = make_profile("community", full_name="Helper", contribution_interests=["Volunteer"])

        progress = journey_service.get_user_journey_progress(db, profile.id)

        assert progress["completion_percentage"] == 67

    def test_completion_percentage_empty(self):
        assert completion_percentage([]) == 0


class TestFamilyJourney:
    """Twelve-step family journey."""

    def test_matching_locked_until_story(self, db, journey_service, family):
        """Test step 4 stays locked until steps 1-3 are complete."""
        db.add(CareNeedsAssessment(profile_id=family.id, care_types=["Personal Care"]))
        db.commit()

        journey = journey_service.get_family_journey(db, family.id)
        matching = journey["steps"][3]
        assert matching["locked"] is True

        db.add(CareRecipientProfile(user_id=family.id, full_name="Grandma Rose"))
        db.commit()

        journey = journey_service.get_family_journey(db, family.id)
        assert journey["steps"][3]["locked"] is False
        assert journey["steps"][3]["completed"] is True

    def test_percentage_counts_every_step(self, db, journey_service, family, care_plan):
        """Test optional steps count toward the percentage."""
        db.add(CareNeedsAssessment(profile_id=family.id))
        db.add(CareRecipientProfile(user_id=family.id))
        db.add(Medication(care_plan_id=care_plan.id, name="Metformin"))
        db.commit()

        journey = journey_service.get_family_journey(db, family.id)

        # profile, assessment, matching and medication of 12 steps
        assert journey["completion_percentage"] == 33
        assert journey["journey_stage"] == "scheduling"
        assert journey["care_plan_ids"] == [care_plan.id]

    def test_scheduled_visit_means_trial_stage(self, db, journey_service, family):
        """Test a scheduled visit moves the stage on with foundation steps still open."""
        family.visit_scheduling_status = "scheduled"
        db.add(CareNeedsAssessment(profile_id=family.id))
        db.add(CareRecipientProfile(user_id=family.id, full_name="Grandma Rose"))
        db.commit()

        journey = journey_service.get_family_journey(db, family.id)

        assert [s["id"] for s in journey["steps"] if s["completed"]] == [1, 2, 3, 4, 7]
        assert journey["completion_percentage"] == 42
        assert journey["journey_stage"] == "trial"
        assert journey["next_step"]["id"] == 5

    def test_care_model_means_conversion(self, db, journey_service, make_profile):
        profile = make_profile("family", full_name="Decided Family", care_model="subscribe")

        assert journey_service.get_family_journey(db, profile.id)["journey_stage"] == "conversion"

    @pytest.mark.parametrize("completed_categories,expected", [
        ([], "foundation"),
        (["foundation"] * 3, "foundation"),
        (["foundation"] * 4, "scheduling"),
        (["foundation", "scheduling"], "trial"),
        (["trial"], "conversion"),
    ])
    def test_stage_rule(self, completed_categories, expected):
        steps = [{"category": c, "completed": True} for c in completed_categories]
        steps.append({"category": "conversion", "completed": False})

        assert journey_stage(steps) == expected

    def test_percentage_rounds_halves_up(self):
        steps = [{"completed": True}] + [{"completed": False}] * 7

        assert completion_percentage(steps) == 13

    def test_stage_moves_to_conversion(self, db, journey_service, family, care_plan):
        family.visit_scheduling_status = "completed"
        family.trial_status = "completed"
        family.care_model = "hire"
        db.add(CareNeedsAssessment(profile_id=family.id))
        db.add(CareRecipientProfile(user_id=family.id, full_name="Grandma Rose"))
        db.add(Medication(care_plan_id=care_plan.id, name="Metformin"))
        db.commit()

        db.add(MealPlan(care_plan_id=care_plan.id, title="Week 1",
                        start_date=date(2024, 1, 1), end_date=date(2024, 1, 7)))
        db.commit()

        journey = journey_service.get_family_journey(db, family.id)

        assert journey["completion_percentage"] == 100
        assert journey["journey_stage"] == "conversion"
        assert journey["trial_completed"] is True
        assert journey["next_step"] is None

    def test_only_for_families(self, db, journey_service, caregiver):
        with pytest.raises(ValueError):
            journey_service.get_family_journey(db, caregiver.id)


class TestAdminOverview:

    def test_averages_by_role(self, db, journey_service, admin, family, caregiver):
        overview = journey_service.get_admin_journey_overview(db)

        assert overview["total_users"] == 2
        assert set(overview["average_completion_by_role"]) == {"family", "professional"}
