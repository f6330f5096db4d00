"""
Tavara.care Coordination Service - Match Recalculation

Re-runs matching when a caregiver's availability flips.
Becoming available scores every family not yet linked to the caregiver;
becoming unavailable deactivates the caregiver's assignments.
"""

from typing import Dict
from datetime import datetime

from sqlalchemy.orm import Session

from tavara.core.errors import NotFoundError
from tavara.core.logging import logger
from tavara.core.settings import get_settings
from tavara.db.models import (
    Profile,
    CaregiverAssignment,
    AutomaticAssignment,
    MatchRecalculationLog,
    AdminCommunication
)
from tavara.monitoring.metrics import metrics_collector
from tavara.services.match_scoring import calculate_match_score
from tavara.services.matching_service import MatchingService
from tavara.utils.helpers import display_profile_name

settings = get_settings()


class RecalculationService:
    """Availability-driven match recalculation."""

    def __init__(self, matching_service: MatchingService = None):
        self.matching_service = matching_service or MatchingService()
        logger.info("RecalculationService initialized")

    def recalculate_on_availability_change(
        self,
        db: Session,
        caregiver_id: str,
        previous_available: bool,
        new_available: bool
    ) -> Dict:
        """
        Recalculate assignments after a caregiver toggles availability.

        Args:
            db: Database session
            caregiver_id: Professional profile id
            previous_available: Availability before the change
            new_available: Availability after the change

        Returns:
            Dict: Log id, status and assignment counts
        """
        caregiver = db.get(Profile, caregiver_id)
        if caregiver is None:
            raise NotFoundError("Profile", caregiver_id)
        if caregiver.role != "professional":
            raise ValueError(f"Profile {caregiver_id} is not a professional caregiver")

        recalculation_type = "became_available" if new_available else "became_unavailable"
        log = MatchRecalculationLog(
            caregiver_id=caregiver_id,
            recalculation_type=recalculation_type,
            status="processing"
        )
        db.add(log)
        db.commit()

        logger.info(
            f"Recalculating matches for caregiver {caregiver_id}: {previous_available} -> {new_available}",
            extra={"caregiver_id": caregiver_id, "recalculation_type": recalculation_type}
        )

        try:
            if previous_available == new_available:
                created, removed = 0, 0
            elif new_available:
                created, removed = self._handle_available(db, caregiver), 0
            else:
                created, removed = 0, self._handle_unavailable(db, caregiver)

            log.status = "completed"
            log.assignments_created = created
            log.assignments_removed = removed
            log.processed_at = datetime.utcnow()
            db.commit()
        except Exception as e:
            db.rollback()
            log = db.get(MatchRecalculationLog, log.id)
            log.status = "failed"
            log.error_message = str(e)
            log.processed_at = datetime.utcnow()
            db.commit()
            metrics_collector.record_recalculation("failed")
            logger.error(f"Recalculation failed for caregiver {caregiver_id}: {str(e)}")
            raise

        metrics_collector.record_recalculation("completed")
        return {
            "log_id": log.id,
            "status": log.status,
            "recalculation_type": recalculation_type,
            "assignments_created": log.assignments_created,
            "assignments_removed": log.assignments_removed
        }

    def _handle_available(self, db: Session, caregiver: Profile) -> int:
        linked = {
            row.family_user_id
            for row in db.query(CaregiverAssignment.family_user_id).filter(
                CaregiverAssignment.caregiver_id == caregiver.id,
                CaregiverAssignment.is_active.is_(True)
            )
        }
        families = db.query(Profile).filter(Profile.role == "family").all()

        created = 0
        for family in families:
            if family.id in linked:
                continue
            try:
                match = calculate_match_score(family, caregiver)
                if match.overall < settings.MATCH_THRESHOLD:
                    continue

                self.matching_service.create_unified_assignment(
                    db,
                    family.id,
                    caregiver.id,
                    "automatic",
                    assignment_reason="Caregiver became available",
                    match=match
                )
                db.add(AutomaticAssignment(
                    family_user_id=family.id,
                    caregiver_id=caregiver.id,
                    match_score=float(match.overall),
                    match_explanation=match.explanation,
                    is_active=True
                ))
                db.add(AdminCommunication(
                    target_user_id=family.id,
                    message_type="new_match_available",
                    channel="in_app",
                    custom_message=(
                        f"A new caregiver match is available: {display_profile_name(caregiver) or 'a caregiver'} "
                        f"({match.overall}% match)."
                    ),
                    delivery_status="sent"
                ))
                db.commit()
                created += 1
            except Exception as e:
                db.rollback()
                logger.error(f"Failed to process family {family.id} for caregiver {caregiver.id}: {str(e)}")
                continue

        return created

    def _handle_unavailable(self, db: Session, caregiver: Profile) -> int:
        assignments = (
            db.query(CaregiverAssignment)
            .filter(
                CaregiverAssignment.caregiver_id == caregiver.id,
                CaregiverAssignment.is_active.is_(True)
            )
            .all()
        )
        note = f"Deactivated: caregiver became unavailable on {datetime.utcnow().date().isoformat()}"

        removed = 0
        for assignment in assignments:
            try:
                self.matching_service.deactivate_row(db, assignment, note)
                db.add(AdminCommunication(
                    target_user_id=assignment.family_user_id,
                    message_type="caregiver_unavailable",
                    channel="in_app",
                    custom_message=(
                        f"{display_profile_name(caregiver) or 'Your caregiver'} is no longer available. "
                        "We are finding you a new match."
                    ),
                    delivery_status="sent"
                ))
                db.commit()
                removed += 1
            except Exception as e:
                db.rollback()
                logger.error(f"Failed to deactivate assignment {assignment.id}: {str(e)}")
                continue

        return removed
