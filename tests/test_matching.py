"""
Tavara.care Coordination Service - Matching Service Tests

Unified assignments, admin interventions, automatic assignment
and the merged caregiver view.
"""

from datetime import datetime, timedelta

import pytest

from tavara.core.errors import NotFoundError
from tavara.db.models import (
    CaregiverAssignment,
    AdminMatchIntervention,
    AutomaticAssignment
)
from tavara.services.matching_service import (
    MatchingService,
    merge_current_assignments,
    is_premium_match
)


@pytest.fixture
def matching_service():
    return MatchingService()


class TestMergeCurrentAssignments:
    """Priority-then-recency ordering of the merged view."""

    def test_priority_then_newest(self):
        """Test manual before care team before automatic, newest first within a type."""
        now = datetime(2024, 6, 1, 12, 0)
        manual = [{"id": "m1", "assignment_type": "manual", "created_at": now - timedelta(days=5)}]
        care_team = [
            {"id": "c1", "assignment_type": "care_team", "created_at": now - timedelta(days=2)},
            {"id": "c2", "assignment_type": "care_team", "created_at": now},
        ]
        automatic = [{"id": "a1", "assignment_type": "automatic", "created_at": now + timedelta(days=1)}]

        merged = merge_current_assignments(manual, care_team, automatic)

        assert [r["id"] for r in merged] == ["m1", "c2", "c1", "a1"]

    def test_limit(self):
        records = [{"id": str(i), "assignment_type": "automatic", "created_at": datetime(2024, 1, i + 1)}
                   for i in range(5)]

        merged = merge_current_assignments([], [], records, limit=2)

        assert [r["id"] for r in merged] == ["4", "3"]


class TestUnifiedAssignment:
    """Create-or-update of the family/caregiver pair."""

    def test_creates_single_active_row(self, db, matching_service, family, caregiver):
        """Test one active assignment per pair."""
        first = matching_service.create_unified_assignment(db, family.id, caregiver.id, "automatic")
        second = matching_service.create_unified_assignment(db, family.id, caregiver.id, "automatic")

        assert first == second
        active = db.query(CaregiverAssignment).filter(CaregiverAssignment.is_active.is_(True)).all()
        assert len(active) == 1

    def test_higher_priority_upgrades(self, db, matching_service, family, caregiver):
        """Test a manual assignment replaces the automatic type in place."""
        assignment_id = matching_service.create_unified_assignment(db, family.id, caregiver.id, "automatic")
        matching_service.create_unified_assignment(
            db, family.id, caregiver.id, "manual", admin_override_score=95
        )

        assignment = db.get(CaregiverAssignment, assignment_id)
        assert assignment.assignment_type == "manual"
        assert assignment.match_score == 95.0

    def test_lower_priority_never_downgrades(self, db, matching_service, family, caregiver):
        """Test an automatic source leaves a manual assignment untouched."""
        assignment_id = matching_service.create_unified_assignment(
            db, family.id, caregiver.id, "manual", admin_override_score=90
        )
        matching_service.create_unified_assignment(db, family.id, caregiver.id, "automatic")

        assignment = db.get(CaregiverAssignment, assignment_id)
        assert assignment.assignment_type == "manual"
        assert assignment.match_score == 90.0

    def test_rejects_out_of_range_override(self, db, matching_service, family, caregiver):
        with pytest.raises(ValueError):
            matching_service.create_unified_assignment(
                db, family.id, caregiver.id, "manual", admin_override_score=120
            )

    def test_rejects_unknown_type(self, db, matching_service, family, caregiver):
        with pytest.raises(ValueError):
            matching_service.create_unified_assignment(db, family.id, caregiver.id, "referral")


class TestAdminAssignment:
    """Admin interventions."""

    def test_records_intervention_and_assignment(self, db, matching_service, admin, family, caregiver):
        """Test the intervention keeps both the admin and calculated scores."""
        result = matching_service.create_admin_assignment(
            db, admin.id, family.id, caregiver.id, admin_match_score=88, reason="Family request"
        )

        intervention = db.get(AdminMatchIntervention, result["intervention_id"])
        assignment = db.get(CaregiverAssignment, result["assignment_id"])
        assert intervention.admin_match_score == 88.0
        assert intervention.calculated_match_score == float(result["calculated_match_score"])
        assert assignment.assignment_type == "manual"
        assert assignment.created_by == admin.id

    def test_requires_roles(self, db, matching_service, admin, family, caregiver):
        """Test the family and caregiver ids must carry the right roles."""
        with pytest.raises(ValueError):
            matching_service.create_admin_assignment(db, admin.id, caregiver.id, family.id)

    def test_deactivate_cascades_to_intervention(self, db, matching_service, admin, family, caregiver):
        """Test deactivation also closes the admin intervention."""
        result = matching_service.create_admin_assignment(db, admin.id, family.id, caregiver.id)

        matching_service.deactivate_assignment(db, result["assignment_id"], "No longer needed", actor_id=admin.id)

        assignment = db.get(CaregiverAssignment, result["assignment_id"])
        intervention = db.get(AdminMatchIntervention, result["intervention_id"])
        assert assignment.is_active is False
        assert "No longer needed" in assignment.notes
        assert intervention.status == "inactive"

    def test_deactivate_unknown_assignment(self, db, matching_service):
        with pytest.raises(NotFoundError):
            matching_service.deactivate_assignment(db, "missing", "gone")


class TestAutomaticAssignment:
    """Best-candidate assignment for families."""

    def test_assigns_best_candidates(self, db, matching_service, make_profile, family):
        """Test the highest scoring caregivers are kept."""
        strong = make_profile(
            "professional",
            full_name="Strong Match",
            care_types=["Personal Care", "Companionship"],
            care_schedule="mon_fri_8am_4pm",
            years_of_experience="10 years",
            location="Port of Spain, Trinidad"
        )
        for i in range(3):
            make_profile("professional", full_name=f"Weak {i}", location="Scarborough, Tobago")

        result = matching_service.trigger_automatic_assignment(db, family.id)

        assert result["success"] is True
        assert result["assignments_created"] == 3
        assert result["assignments"][0]["caregiver_id"] == strong.id
        assert db.query(AutomaticAssignment).count() == 3

    def test_skips_family_with_assignments(self, db, matching_service, family, caregiver):
        matching_service.create_unified_assignment(db, family.id, caregiver.id, "manual")

        result = matching_service.trigger_automatic_assignment(db, family.id)

        assert result["assignments_created"] == 0
        assert result["message"] == "Family already has active assignments"

    def test_no_caregivers_available(self, db, matching_service, family):
        result = matching_service.trigger_automatic_assignment(db, family.id)

        assert result["success"] is False
        assert result["message"] == "No available caregivers found"

    def test_unavailable_caregivers_ignored(self, db, matching_service, make_profile, family):
        make_profile("professional", full_name="Away", available_for_matching=False)

        result = matching_service.trigger_automatic_assignment(db, family.id)

        assert result["assignments_created"] == 0

    def test_batch_over_all_families(self, db, matching_service, make_profile, family, caregiver):
        make_profile("family", full_name="Second Family")

        result = matching_service.trigger_automatic_assignment(db)

        assert result["families_processed"] == 2
        assert result["assignments_created"] == 2


class TestReadViews:
    """Family cards and caregiver listings."""

    def test_family_matches_trigger_assignment(self, db, matching_service, family, caregiver):
        """Test a family with no assignments gets one on first view."""
        cards = matching_service.get_family_matches(db, family.id)

        assert len(cards) == 1
        card = cards[0]
        assert card["caregiver_id"] == caregiver.id
        assert card["full_name"] == "Andre Baptiste"
        assert card["hourly_rate"] == 35.0
        assert card["score_breakdown"]["overall"] == int(card["match_score"])
        assert isinstance(card["is_premium"], bool)

    def test_card_defaults(self, db, matching_service, make_profile, family):
        """Test missing caregiver fields fall back to display defaults."""
        bare = make_profile("professional")
        matching_service.create_unified_assignment(db, family.id, bare.id, "manual")

        card = matching_service.get_family_matches(db, family.id)[0]

        assert card["full_name"] == "Professional Caregiver"
        assert card["location"] == "Trinidad and Tobago"
        assert card["care_types"] == ["General Care"]

    def test_premium_badge_is_stable(self):
        assert is_premium_match("abc") == is_premium_match("abc")

    def test_current_assignments_merge_sources(self, db, matching_service, admin, make_profile,
                                               caregiver, team_member):
        """Test the caregiver view lists manual and care team links."""
        other_family = make_profile("family", full_name="Other Family")
        matching_service.create_admin_assignment(db, admin.id, other_family.id, caregiver.id)

        current = matching_service.get_current_assignments(db, caregiver.id)

        assert [r["assignment_type"] for r in current] == ["manual", "care_team"]
        assert current[1]["care_plan_title"] == "Mum's care"

    def test_current_assignments_skip_missing_family(self, db, matching_service, caregiver):
        """Test orphaned automatic rows are left out."""
        db.add(AutomaticAssignment(family_user_id="deleted-family", caregiver_id=caregiver.id,
                                   match_score=70.0, is_active=True))
        db.commit()

        assert matching_service.get_current_assignments(db, caregiver.id) == []

    def test_professional_assignments(self, db, matching_service, family, caregiver):
        matching_service.create_unified_assignment(db, family.id, caregiver.id, "automatic")

        rows = matching_service.get_professional_assignments(db, caregiver.id)

        assert rows[0]["family_name"] == "Maria Lopez"
        assert rows[0]["family_location"] == "Port of Spain, Trinidad"
