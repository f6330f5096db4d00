"""
Tavara.care Coordination Service - Medication Service

Medications per care plan and administration records with
double-dose conflict detection.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Dict, Optional

from sqlalchemy.orm import Session

from tavara.config import ADMINISTERED_BY_LABELS, MEDICATION_RESOLUTIONS
from tavara.core.errors import NotFoundError
from tavara.core.logging import logger
from tavara.core.settings import get_settings
from tavara.db.models import CarePlan, Medication, MedicationAdministration, Profile
from tavara.utils.helpers import display_profile_name

settings = get_settings()


@dataclass
class ConflictDetectionResult:
    """Administrations of the same medication inside the conflict window."""
    conflicts: List[MedicationAdministration] = field(default_factory=list)
    time_window: int = 2

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


def format_conflict_message(conflicts: List[MedicationAdministration], time_window: int) -> str:
    """Warning shown before a second dose is recorded."""
    if not conflicts:
        return ""
    conflict = conflicts[0]
    admin_name = display_profile_name(conflict.administrator) or "Another user"
    role = ADMINISTERED_BY_LABELS.get(conflict.administered_by_role, "caregiver")
    time_str = conflict.administered_at.strftime("%Y-%m-%d %I:%M %p")
    return (
        f"This medication was already administered by {admin_name} ({role}) at {time_str} "
        f"(within {time_window} hour window). Recording both entries for safety."
    )


class MedicationService:
    """Medication management."""

    def __init__(self):
        logger.info("MedicationService initialized")

    def get_medication(self, db: Session, medication_id: str) -> Medication:
        medication = db.get(Medication, medication_id)
        if medication is None:
            raise NotFoundError("Medication", medication_id)
        return medication

    def add_medication(
        self,
        db: Session,
        care_plan_id: str,
        name: str,
        dosage: Optional[str] = None,
        instructions: Optional[str] = None,
        schedule: Optional[Dict] = None
    ) -> Medication:
        if db.get(CarePlan, care_plan_id) is None:
            raise NotFoundError("CarePlan", care_plan_id)
        if not name or not name.strip():
            raise ValueError("Medication name is required")

        medication = Medication(
            care_plan_id=care_plan_id,
            name=name.strip(),
            dosage=dosage,
            instructions=instructions,
            schedule=schedule
        )
        db.add(medication)
        db.commit()
        return medication

    def list_medications(self, db: Session, care_plan_id: str) -> List[Medication]:
        return (
            db.query(Medication)
            .filter(Medication.care_plan_id == care_plan_id)
            .order_by(Medication.name.asc())
            .all()
        )

    def update_medication(self, db: Session, medication_id: str, updates: Dict) -> Medication:
        medication = self.get_medication(db, medication_id)
        for key in ("name", "dosage", "instructions", "schedule"):
            if key in updates:
                setattr(medication, key, updates[key])
        db.commit()
        return medication

    def delete_medication(self, db: Session, medication_id: str):
        medication = self.get_medication(db, medication_id)
        db.query(MedicationAdministration).filter(
            MedicationAdministration.medication_id == medication.id
        ).delete()
        db.delete(medication)
        db.commit()

    def detect_conflicts(
        self,
        db: Session,
        medication_id: str,
        administered_at: datetime,
        window_hours: Optional[int] = None
    ) -> ConflictDetectionResult:
        """
        Find administered doses within +/- window_hours of administered_at.

        Conflicts are ordered oldest first.
        """
        window_hours = window_hours or settings.MEDICATION_CONFLICT_WINDOW_HOURS
        window = timedelta(hours=window_hours)

        conflicts = (
            db.query(MedicationAdministration)
            .filter(
                MedicationAdministration.medication_id == medication_id,
                MedicationAdministration.status == "administered",
                MedicationAdministration.administered_at >= administered_at - window,
                MedicationAdministration.administered_at <= administered_at + window
            )
            .order_by(MedicationAdministration.administered_at.asc())
            .all()
        )
        return ConflictDetectionResult(conflicts=conflicts, time_window=window_hours)

    def record_administration(
        self,
        db: Session,
        medication_id: str,
        administered_at: datetime,
        administered_by: str,
        notes: Optional[str] = None,
        resolution: Optional[str] = None
    ) -> Dict:
        """
        Record a dose, checking for an earlier dose in the conflict window.

        Args:
            resolution: cancel, dual_entry or override; required when a
                conflict exists

        Returns:
            Dict: success, requires_resolution, conflict message and the
            administration id (None when nothing was recorded)
        """
        medication = self.get_medication(db, medication_id)
        if resolution is not None and resolution not in MEDICATION_RESOLUTIONS:
            raise ValueError(f"Unknown conflict resolution: {resolution}")

        profile = db.get(Profile, administered_by)
        if profile is None:
            raise NotFoundError("Profile", administered_by)
        role = "family" if profile.role == "family" else "professional"

        result = self.detect_conflicts(db, medication.id, administered_at)
        message = format_conflict_message(result.conflicts, result.time_window)

        if result.has_conflicts and resolution is None:
            return {
                "success": False,
                "requires_resolution": True,
                "conflicts": [self.serialize_administration(c) for c in result.conflicts],
                "time_window": result.time_window,
                "message": message,
                "administration_id": None
            }

        if resolution == "cancel":
            logger.info(f"Administration of {medication.id} cancelled after conflict")
            return {
                "success": False,
                "requires_resolution": False,
                "conflicts": [self.serialize_administration(c) for c in result.conflicts],
                "time_window": result.time_window,
                "message": "Administration cancelled",
                "administration_id": None
            }

        administration = MedicationAdministration(
            medication_id=medication.id,
            administered_at=administered_at,
            administered_by=administered_by,
            administered_by_role=role,
            status="administered",
            notes=notes,
            conflict_detected=result.has_conflicts,
            conflict_resolution_method=resolution if result.has_conflicts else None,
            original_administration_id=(
                result.conflicts[0].id if result.has_conflicts and resolution == "dual_entry" else None
            )
        )
        db.add(administration)
        db.commit()

        if result.has_conflicts:
            logger.warning(
                f"Medication {medication.id} recorded despite conflict ({resolution})",
                extra={"administration_id": administration.id}
            )
        return {
            "success": True,
            "requires_resolution": False,
            "conflicts": [self.serialize_administration(c) for c in result.conflicts],
            "time_window": result.time_window,
            "message": message or None,
            "administration_id": administration.id
        }

    def get_administration_history(self, db: Session, medication_id: str, limit: int = 10) -> List[Dict]:
        rows = (
            db.query(MedicationAdministration)
            .filter(MedicationAdministration.medication_id == medication_id)
            .order_by(MedicationAdministration.administered_at.desc())
            .limit(limit)
            .all()
        )
        return [self.serialize_administration(row) for row in rows]

    def serialize_administration(self, row: MedicationAdministration) -> Dict:
        return {
            "id": row.id,
            "medication_id": row.medication_id,
            "administered_at": row.administered_at,
            "administered_by": row.administered_by,
            "administered_by_name": display_profile_name(row.administrator),
            "administered_by_role": row.administered_by_role,
            "status": row.status,
            "notes": row.notes,
            "conflict_detected": bool(row.conflict_detected),
            "conflict_resolution_method": row.conflict_resolution_method,
            "original_administration_id": row.original_administration_id
        }
