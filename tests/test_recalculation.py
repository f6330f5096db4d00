"""
Tavara.care Coordination Service - Recalculation & Profile Tests
"""

import pytest

from tavara.core.errors import ConflictError, NotFoundError
from tavara.db.models import (
    AdminCommunication,
    AdminMatchIntervention,
    AutomaticAssignment,
    CaregiverAssignment,
    MatchRecalculationLog
)
from tavara.monitoring.metrics import metrics_collector
from tavara.services.matching_service import MatchingService
from tavara.services.profile_service import ProfileService
from tavara.services.recalculation_service import RecalculationService


@pytest.fixture
def recalculation_service():
    return RecalculationService()


@pytest.fixture
def profile_service():
    return ProfileService()


class TestRecalculation:
    """Availability changes drive assignment changes."""

    def test_became_available_assigns_good_matches(self, db, recalculation_service, make_profile,
                                                   family, caregiver):
        """Test only families at or above the threshold are assigned."""
        make_profile("family", full_name="Poor Fit")

        result = recalculation_service.recalculate_on_availability_change(db, caregiver.id, False, True)

        assert result["status"] == "completed"
        assert result["recalculation_type"] == "became_available"
        assert result["assignments_created"] == 1
        assignment = db.query(CaregiverAssignment).one()
        assert assignment.family_user_id == family.id
        assert assignment.assignment_type == "automatic"
        assert db.query(AutomaticAssignment).count() == 1
        notice = db.query(AdminCommunication).one()
        assert notice.message_type == "new_match_available"
        assert notice.target_user_id == family.id

    def test_already_linked_family_skipped(self, db, recalculation_service, family, caregiver):
        MatchingService().create_unified_assignment(db, family.id, caregiver.id, "manual")

        result = recalculation_service.recalculate_on_availability_change(db, caregiver.id, False, True)

        assert result["assignments_created"] == 0

    def test_became_unavailable_deactivates(self, db, recalculation_service, family, caregiver):
        """Test every active assignment of the caregiver is deactivated."""
        assignment_id = MatchingService().create_unified_assignment(db, family.id, caregiver.id, "automatic")

        result = recalculation_service.recalculate_on_availability_change(db, caregiver.id, True, False)

        assert result["assignments_removed"] == 1
        assignment = db.get(CaregiverAssignment, assignment_id)
        assert assignment.is_active is False
        assert "caregiver became unavailable" in assignment.notes
        assert db.query(AdminCommunication).one().message_type == "caregiver_unavailable"

    def test_upgraded_assignment_leaves_no_source_rows(self, db, recalculation_service, admin, family, caregiver):
        """Test an automatic match upgraded by an admin disappears entirely when deactivated."""
        matching = MatchingService()
        matching.trigger_automatic_assignment(db, family.id)
        matching.create_admin_assignment(db, admin.id, family.id, caregiver.id, 90)

        recalculation_service.recalculate_on_availability_change(db, caregiver.id, True, False)

        assert matching.get_current_assignments(db, caregiver.id) == []
        assert db.query(AutomaticAssignment).filter_by(is_active=True).count() == 0
        assert db.query(AdminMatchIntervention).filter_by(status="active").count() == 0

    def test_upgrade_retires_automatic_mirror(self, db, admin, family, caregiver):
        matching = MatchingService()
        matching.trigger_automatic_assignment(db, family.id)

        matching.create_admin_assignment(db, admin.id, family.id, caregiver.id, 90)

        current = matching.get_current_assignments(db, caregiver.id)
        assert [a["assignment_type"] for a in current] == ["manual"]

    def test_no_change_logs_completed(self, db, recalculation_service, caregiver):
        result = recalculation_service.recalculate_on_availability_change(db, caregiver.id, True, True)

        log = db.get(MatchRecalculationLog, result["log_id"])
        assert log.status == "completed"
        assert log.assignments_created == 0
        assert log.processed_at is not None
        assert metrics_collector.get_metrics()["recalculations"]["completed"] == 1

    def test_requires_professional(self, db, recalculation_service, family):
        with pytest.raises(ValueError):
            recalculation_service.recalculate_on_availability_change(db, family.id, False, True)

    def test_unknown_caregiver(self, db, recalculation_service):
        with pytest.raises(NotFoundError):
            recalculation_service.recalculate_on_availability_change(db, "missing", False, True)


class TestProfileService:
    """Profile creation and updates."""

    def test_create_builds_full_name(self, db, profile_service):
        profile = profile_service.create_profile(db, "family", first_name="Ana", last_name="Ramdial")

        assert profile.full_name == "Ana Ramdial"

    def test_duplicate_email(self, db, profile_service, family):
        with pytest.raises(ConflictError):
            profile_service.create_profile(db, "family", email=family.email)

    def test_unknown_field_rejected(self, db, profile_service):
        with pytest.raises(ValueError):
            profile_service.create_profile(db, "family", favourite_colour="blue")

    def test_unknown_role_rejected(self, db, profile_service):
        with pytest.raises(ValueError):
            profile_service.create_profile(db, "superuser")

    def test_availability_toggle_recalculates(self, db, profile_service, family, caregiver):
        """Test switching a caregiver off removes their assignments."""
        MatchingService().create_unified_assignment(db, family.id, caregiver.id, "automatic")

        profile = profile_service.set_availability(db, caregiver.id, False)

        assert profile.available_for_matching is False
        log = db.query(MatchRecalculationLog).one()
        assert log.recalculation_type == "became_unavailable"
        assert log.assignments_removed == 1

    def test_family_availability_rejected(self, db, profile_service, family):
        with pytest.raises(ValueError):
            profile_service.set_availability(db, family.id, False)

    def test_care_assessment_feeds_matching(self, db, profile_service, family):
        """Test assessment answers are copied onto the profile."""
        profile_service.save_care_assessment(
            db, family.id, care_types=["Medical Support"], schedule="sat_sun_8am_4pm"
        )

        db.refresh(family)
        assert family.care_types == ["Medical Support"]
        assert family.care_schedule == "sat_sun_8am_4pm"

    def test_documents_only_for_professionals(self, db, profile_service, family, caregiver):
        document = profile_service.add_document(db, caregiver.id, "certification", "docs/cpr.pdf")
        assert document.user_id == caregiver.id

        with pytest.raises(ValueError):
            profile_service.add_document(db, family.id, "certification", "docs/cpr.pdf")
