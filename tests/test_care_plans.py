"""
Tavara.care Coordination Service - Care Plan Tests
"""

import pytest

from tavara.core.errors import ConflictError, NotFoundError
from tavara.db.models import CareShift, CaregiverAssignment
from tavara.services.care_plan_service import CarePlanService
from tavara.services.scheduling_service import SchedulingService


@pytest.fixture
def care_plan_service(notification_service):
    return CarePlanService(scheduling_service=SchedulingService(notification_service=notification_service))


class TestCarePlans:

    def test_create_generates_custom_shifts(self, db, care_plan_service, family):
        """Test custom shift definitions in metadata become open shifts."""
        plan = care_plan_service.create_plan(
            db, family.id, " Dad's recovery ", plan_type="both",
            metadata={"custom_shifts": [{"days": ["monday"], "start_time": "08:00", "end_time": "12:00"}]}
        )

        assert plan.title == "Dad's recovery"
        assert plan.status == "active"
        assert db.query(CareShift).filter_by(care_plan_id=plan.id, status="open").count() == 1

    def test_only_families_own_plans(self, db, care_plan_service, caregiver):
        with pytest.raises(ValueError):
            care_plan_service.create_plan(db, caregiver.id, "Plan")

    def test_unknown_plan_type(self, db, care_plan_service, family):
        with pytest.raises(ValueError):
            care_plan_service.create_plan(db, family.id, "Plan", plan_type="weekly")

    def test_update_merges_metadata(self, db, care_plan_service, care_plan):
        care_plan_service.update_plan(db, care_plan.id, {"metadata": {"notes": "Diabetic"}, "status": "completed"})
        plan = care_plan_service.update_plan(db, care_plan.id, {"metadata": {"allergies": "None"}})

        assert plan.plan_metadata == {"notes": "Diabetic", "allergies": "None"}
        assert plan.status == "completed"
        with pytest.raises(ValueError):
            care_plan_service.update_plan(db, care_plan.id, {"status": "paused"})

    def test_caregiver_sees_active_plans(self, db, care_plan_service, caregiver, team_member):
        plans = care_plan_service.list_caregiver_plans(db, caregiver.id)

        assert [p.title for p in plans] == ["Mum's care"]

    def test_unknown_plan(self, db, care_plan_service):
        with pytest.raises(NotFoundError):
            care_plan_service.get_plan(db, "missing")


class TestCareTeam:
    """Invitations and the care_team assignment they create."""

    def test_invite_uses_profile_name(self, db, care_plan_service, care_plan, caregiver):
        member = care_plan_service.invite_member(db, care_plan.id, caregiver.id, regular_rate=30.0)

        assert member.status == "invited"
        assert member.display_name == "Andre Baptiste"

    def test_duplicate_invite(self, db, care_plan_service, care_plan, caregiver):
        care_plan_service.invite_member(db, care_plan.id, caregiver.id)

        with pytest.raises(ConflictError):
            care_plan_service.invite_member(db, care_plan.id, caregiver.id)

    def test_only_professionals(self, db, care_plan_service, care_plan, make_profile):
        other_family = make_profile("family", full_name="Other Family")

        with pytest.raises(ValueError):
            care_plan_service.invite_member(db, care_plan.id, other_family.id)

    def test_activation_links_caregiver(self, db, care_plan_service, care_plan, family, caregiver):
        """Test an active member gets a care_team assignment."""
        member = care_plan_service.invite_member(db, care_plan.id, caregiver.id)

        care_plan_service.update_member(db, member.id, {"status": "active"}, actor_id=family.id)

        assignment = db.query(CaregiverAssignment).one()
        assert assignment.assignment_type == "care_team"
        assert assignment.care_plan_id == care_plan.id
        assert assignment.is_active is True

    def test_removal_deactivates_link(self, db, care_plan_service, care_plan, caregiver):
        member = care_plan_service.invite_member(db, care_plan.id, caregiver.id)
        care_plan_service.update_member(db, member.id, {"status": "active"})

        care_plan_service.update_member(db, member.id, {"status": "removed"})

        assignment = db.query(CaregiverAssignment).one()
        assert assignment.is_active is False
        assert "removed from care team" in assignment.notes

    def test_link_kept_while_on_another_plan(self, db, care_plan_service, care_plan, family, caregiver):
        """Test leaving one of the family's plans keeps the link for the other."""
        second_plan = care_plan_service.create_plan(db, family.id, "Dad's care")
        first = care_plan_service.invite_member(db, care_plan.id, caregiver.id)
        second = care_plan_service.invite_member(db, second_plan.id, caregiver.id)
        care_plan_service.update_member(db, first.id, {"status": "active"})
        care_plan_service.update_member(db, second.id, {"status": "active"})

        care_plan_service.update_member(db, first.id, {"status": "removed"})

        assignment = db.query(CaregiverAssignment).one()
        assert assignment.is_active is True
        assert assignment.assignment_type == "care_team"

        care_plan_service.update_member(db, second.id, {"status": "removed"})

        db.refresh(assignment)
        assert assignment.is_active is False

    def test_invalid_status(self, db, care_plan_service, team_member):
        with pytest.raises(ValueError):
            care_plan_service.update_member(db, team_member.id, {"status": "on_leave"})
