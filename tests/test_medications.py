"""
Tavara.care Coordination Service - Medication Tests
"""

from datetime import datetime, timedelta

import pytest

from tavara.core.errors import NotFoundError
from tavara.db.models import Medication, MedicationAdministration
from tavara.services.medication_service import MedicationService

MORNING = datetime(2024, 6, 3, 8, 0)


@pytest.fixture
def medication_service():
    return MedicationService()


@pytest.fixture
def medication(db, medication_service, care_plan):
    return medication_service.add_medication(db, care_plan.id, " Metformin ", dosage="500mg")


class TestMedications:

    def test_add_and_list(self, db, medication_service, care_plan, medication):
        medication_service.add_medication(db, care_plan.id, "Amlodipine")

        names = [m.name for m in medication_service.list_medications(db, care_plan.id)]

        assert names == ["Amlodipine", "Metformin"]

    def test_name_required(self, db, medication_service, care_plan):
        with pytest.raises(ValueError):
            medication_service.add_medication(db, care_plan.id, "  ")

    def test_unknown_plan(self, db, medication_service):
        with pytest.raises(NotFoundError):
            medication_service.add_medication(db, "missing", "Metformin")

    def test_update_ignores_unknown_keys(self, db, medication_service, medication):
        medication_service.update_medication(db, medication.id, {"dosage": "850mg", "care_plan_id": "other"})

        assert medication.dosage == "850mg"
        assert medication.care_plan_id != "other"

    def test_delete_removes_history(self, db, medication_service, medication, family):
        medication_service.record_administration(db, medication.id, MORNING, family.id)

        medication_service.delete_medication(db, medication.id)

        assert db.query(Medication).count() == 0
        assert db.query(MedicationAdministration).count() == 0


class TestConflictDetection:
    """Second doses inside the conflict window."""

    def test_first_dose_records(self, db, medication_service, medication, family):
        result = medication_service.record_administration(db, medication.id, MORNING, family.id)

        assert result["success"] is True
        assert result["requires_resolution"] is False
        assert result["message"] is None
        row = db.get(MedicationAdministration, result["administration_id"])
        assert row.administered_by_role == "family"
        assert row.conflict_detected is False

    def test_conflict_requires_resolution(self, db, medication_service, medication, family, caregiver):
        """Test a dose within the window is held back until resolved."""
        medication_service.record_administration(db, medication.id, MORNING, family.id)

        result = medication_service.record_administration(
            db, medication.id, MORNING + timedelta(minutes=90), caregiver.id
        )

        assert result["success"] is False
        assert result["requires_resolution"] is True
        assert result["administration_id"] is None
        assert result["message"] == (
            "This medication was already administered by Maria Lopez (family member) at "
            "2024-06-03 08:00 AM (within 2 hour window). Recording both entries for safety."
        )
        assert db.query(MedicationAdministration).count() == 1

    def test_outside_window_is_clean(self, db, medication_service, medication, family):
        medication_service.record_administration(db, medication.id, MORNING, family.id)

        result = medication_service.record_administration(
            db, medication.id, MORNING + timedelta(hours=3), family.id
        )

        assert result["success"] is True
        assert result["conflicts"] == []

    def test_dual_entry_links_earliest(self, db, medication_service, medication, family, caregiver):
        first = medication_service.record_administration(db, medication.id, MORNING, family.id)
        medication_service.record_administration(
            db, medication.id, MORNING + timedelta(hours=3), family.id
        )

        result = medication_service.record_administration(
            db, medication.id, MORNING + timedelta(hours=1), caregiver.id, resolution="dual_entry"
        )

        row = db.get(MedicationAdministration, result["administration_id"])
        assert row.conflict_detected is True
        assert row.conflict_resolution_method == "dual_entry"
        assert row.original_administration_id == first["administration_id"]
        assert row.administered_by_role == "professional"

    def test_override_records_without_link(self, db, medication_service, medication, family, caregiver):
        medication_service.record_administration(db, medication.id, MORNING, family.id)

        result = medication_service.record_administration(
            db, medication.id, MORNING, caregiver.id, resolution="override"
        )

        row = db.get(MedicationAdministration, result["administration_id"])
        assert row.conflict_resolution_method == "override"
        assert row.original_administration_id is None

    def test_cancel_records_nothing(self, db, medication_service, medication, family):
        medication_service.record_administration(db, medication.id, MORNING, family.id)

        result = medication_service.record_administration(
            db, medication.id, MORNING, family.id, resolution="cancel"
        )

        assert result["success"] is False
        assert result["message"] == "Administration cancelled"
        assert db.query(MedicationAdministration).count() == 1

    def test_unknown_resolution(self, db, medication_service, medication, family):
        with pytest.raises(ValueError):
            medication_service.record_administration(db, medication.id, MORNING, family.id, resolution="skip")

    def test_history_newest_first(self, db, medication_service, medication, family):
        for hours in (0, 4, 8):
            medication_service.record_administration(
                db, medication.id, MORNING + timedelta(hours=hours), family.id
            )

        history = medication_service.get_administration_history(db, medication.id, limit=2)

        assert [h["administered_at"].hour for h in history] == [16, 12]
        assert history[0]["administered_by_name"] == "Maria Lopez"
