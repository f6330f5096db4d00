"""
Tavara.care Coordination Service - Matching Service

Owns the family/caregiver assignment lifecycle:
  - scoring pairs
  - creating and upgrading unified assignments
  - admin interventions and automatic assignment
  - the views families, professionals and admins read
"""

from typing import List, Dict, Optional
from datetime import datetime

from sqlalchemy.orm import Session

from tavara.config import (
    ASSIGNMENT_PRIORITY,
    MATCH_CARD_DEFAULTS,
    UNKNOWN_FAMILY_NAME,
    PREMIUM_HASH_MODULUS,
    PREMIUM_HASH_CUTOFF
)
from tavara.core.errors import NotFoundError
from tavara.core.logging import logger, log_assignment_event
from tavara.core.settings import get_settings
from tavara.db.models import (
    Profile,
    CarePlan,
    CareTeamMember,
    CaregiverAssignment,
    AdminMatchIntervention,
    AutomaticAssignment,
    MatchRecalculationLog
)
from tavara.monitoring.audit_logger import audit_logger
from tavara.monitoring.metrics import metrics_collector
from tavara.services.match_scoring import MatchScore, calculate_match_score
from tavara.utils.helpers import profile_rate, stable_string_hash, display_profile_name, as_list

settings = get_settings()


def assignment_priority(assignment_type: str) -> int:
    return ASSIGNMENT_PRIORITY.get(assignment_type, len(ASSIGNMENT_PRIORITY) + 1)


def merge_current_assignments(
    manual: List[Dict],
    care_team: List[Dict],
    automatic: List[Dict],
    limit: Optional[int] = None
) -> List[Dict]:
    """
    Merge the three tagged assignment sets into one list.

    Sorted by priority (manual, care_team, automatic), then newest first.

    Args:
        manual: Records tagged "manual"
        care_team: Records tagged "care_team"
        automatic: Records tagged "automatic"
        limit: Keep only the first N records

    Returns:
        List[Dict]: Merged records
    """
    merged = list(manual) + list(care_team) + list(automatic)

    # two stable passes: recency first, then priority
    merged.sort(key=lambda r: r.get("created_at") or datetime.min, reverse=True)
    merged.sort(key=lambda r: assignment_priority(r.get("assignment_type")))

    if limit is not None:
        return merged[:limit]
    return merged


def is_premium_match(assignment_id: str) -> bool:
    """Stable premium badge for roughly 30% of matches."""
    return stable_string_hash(assignment_id) % PREMIUM_HASH_MODULUS < PREMIUM_HASH_CUTOFF


class MatchingService:
    """
    Family/caregiver matching and assignment management.
    """

    def __init__(self):
        logger.info("MatchingService initialized")

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_profile(self, db: Session, profile_id: str, role: Optional[str] = None) -> Profile:
        profile = db.get(Profile, profile_id)
        if profile is None:
            raise NotFoundError("Profile", profile_id)
        if role and profile.role != role:
            raise ValueError(f"Profile {profile_id} does not have role {role}")
        return profile

    def calculate_match_score(self, db: Session, family_user_id: str, caregiver_id: str) -> MatchScore:
        """
        Score a family against a caregiver.

        Args:
            db: Database session
            family_user_id: Family profile id
            caregiver_id: Professional profile id

        Returns:
            MatchScore: Overall and per-dimension scores
        """
        family = self._get_profile(db, family_user_id)
        caregiver = self._get_profile(db, caregiver_id)
        return calculate_match_score(family, caregiver)

    def _active_assignment(self, db: Session, family_user_id: str, caregiver_id: str):
        return (
            db.query(CaregiverAssignment)
            .filter(
                CaregiverAssignment.family_user_id == family_user_id,
                CaregiverAssignment.caregiver_id == caregiver_id,
                CaregiverAssignment.is_active.is_(True)
            )
            .first()
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_unified_assignment(
        self,
        db: Session,
        family_user_id: str,
        caregiver_id: str,
        assignment_type: str,
        admin_override_score: Optional[float] = None,
        assignment_reason: Optional[str] = None,
        notes: Optional[str] = None,
        care_plan_id: Optional[str] = None,
        created_by: Optional[str] = None,
        match: Optional[MatchScore] = None
    ) -> str:
        """
        Create or update the active assignment for a family/caregiver pair.

        An existing active assignment is updated in place. Its type only
        moves toward a higher priority; a lower-priority source leaves it
        untouched.

        Args:
            db: Database session
            family_user_id: Family profile id
            caregiver_id: Professional profile id
            assignment_type: manual, care_team or automatic
            admin_override_score: Score to store instead of the computed one (0-100)
            assignment_reason: Why the assignment exists
            notes: Free-text notes
            care_plan_id: Linked care plan
            created_by: Acting profile id
            match: Pre-computed score for the pair

        Returns:
            str: Assignment id

        Raises:
            ValueError: Unknown type or override out of range
        """
        if assignment_type not in ASSIGNMENT_PRIORITY:
            raise ValueError(f"Unknown assignment type: {assignment_type}")
        if admin_override_score is not None and not 0 <= admin_override_score <= 100:
            raise ValueError("Match score must be between 0 and 100")

        if match is None:
            match = self.calculate_match_score(db, family_user_id, caregiver_id)
        score = float(admin_override_score) if admin_override_score is not None else float(match.overall)

        existing = self._active_assignment(db, family_user_id, caregiver_id)
        if existing is not None:
            if assignment_priority(assignment_type) > assignment_priority(existing.assignment_type):
                logger.info(
                    f"Keeping {existing.assignment_type} assignment {existing.id} over {assignment_type}",
                    extra={"assignment_id": existing.id}
                )
                return existing.id

            previous_type = existing.assignment_type
            existing.assignment_type = assignment_type
            existing.match_score = score
            existing.shift_compatibility_score = match.schedule_score
            existing.match_explanation = match.explanation
            if assignment_reason is not None:
                existing.assignment_reason = assignment_reason
            if notes is not None:
                existing.notes = notes
            if care_plan_id is not None:
                existing.care_plan_id = care_plan_id
            if previous_type == "automatic" and assignment_type != "automatic":
                # the automatic mirror no longer describes this pair
                db.query(AutomaticAssignment).filter(
                    AutomaticAssignment.family_user_id == family_user_id,
                    AutomaticAssignment.caregiver_id == caregiver_id,
                    AutomaticAssignment.is_active.is_(True)
                ).update({"is_active": False}, synchronize_session=False)
            db.commit()

            log_assignment_event("updated", family_user_id, caregiver_id, assignment_type,
                                 match_score=score, previous_type=previous_type)
            audit_logger.log_assignment_change("updated", existing.id, assignment_type, created_by,
                                               {"previous_type": previous_type, "match_score": score})
            return existing.id

        assignment = CaregiverAssignment(
            family_user_id=family_user_id,
            caregiver_id=caregiver_id,
            assignment_type=assignment_type,
            match_score=score,
            shift_compatibility_score=match.schedule_score,
            match_explanation=match.explanation,
            status="active",
            is_active=True,
            care_plan_id=care_plan_id,
            assignment_reason=assignment_reason,
            notes=notes,
            created_by=created_by
        )
        db.add(assignment)
        db.commit()

        metrics_collector.record_assignment(assignment_type)
        log_assignment_event("created", family_user_id, caregiver_id, assignment_type, match_score=score)
        audit_logger.log_assignment_change("created", assignment.id, assignment_type, created_by,
                                           {"match_score": score})
        return assignment.id

    def create_admin_assignment(
        self,
        db: Session,
        admin_id: str,
        family_user_id: str,
        caregiver_id: str,
        admin_match_score: Optional[float] = None,
        reason: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Dict:
        """
        Record an admin intervention and the manual assignment it creates.

        Returns:
            Dict: intervention_id, assignment_id, calculated and stored scores
        """
        family = self._get_profile(db, family_user_id, role="family")
        caregiver = self._get_profile(db, caregiver_id, role="professional")
        if admin_match_score is not None and not 0 <= admin_match_score <= 100:
            raise ValueError("Match score must be between 0 and 100")

        match = calculate_match_score(family, caregiver)
        stored_score = float(admin_match_score) if admin_match_score is not None else float(match.overall)

        intervention = AdminMatchIntervention(
            family_user_id=family_user_id,
            caregiver_id=caregiver_id,
            admin_id=admin_id,
            admin_match_score=stored_score,
            calculated_match_score=float(match.overall),
            reason=reason,
            notes=notes,
            status="active"
        )
        db.add(intervention)
        db.commit()

        assignment_id = self.create_unified_assignment(
            db,
            family_user_id,
            caregiver_id,
            "manual",
            admin_override_score=stored_score,
            assignment_reason=reason,
            notes=notes,
            created_by=admin_id,
            match=match
        )

        audit_logger.log_admin_intervention(admin_id, family_user_id, caregiver_id,
                                            stored_score, float(match.overall), reason)

        return {
            "intervention_id": intervention.id,
            "assignment_id": assignment_id,
            "calculated_match_score": match.overall,
            "admin_match_score": stored_score
        }

    def deactivate_assignment(
        self,
        db: Session,
        assignment_id: str,
        reason: str,
        actor_id: Optional[str] = None
    ) -> None:
        assignment = db.get(CaregiverAssignment, assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment", assignment_id)
        self.deactivate_row(db, assignment, reason)
        db.commit()
        audit_logger.log_assignment_change("deactivated", assignment.id, assignment.assignment_type,
                                           actor_id, {"reason": reason})

    def deactivate_row(self, db: Session, assignment: CaregiverAssignment, note: str) -> None:
        """
        Deactivate a unified assignment and every source row of its pair.

        An upgraded assignment keeps the rows of the types it replaced,
        so both source tables are cleared whatever the current type.
        Caller commits.
        """
        assignment.is_active = False
        assignment.status = "inactive"
        assignment.notes = f"{assignment.notes}\n{note}" if assignment.notes else note

        db.query(AutomaticAssignment).filter(
            AutomaticAssignment.family_user_id == assignment.family_user_id,
            AutomaticAssignment.caregiver_id == assignment.caregiver_id,
            AutomaticAssignment.is_active.is_(True)
        ).update({"is_active": False}, synchronize_session=False)
        db.query(AdminMatchIntervention).filter(
            AdminMatchIntervention.family_user_id == assignment.family_user_id,
            AdminMatchIntervention.caregiver_id == assignment.caregiver_id,
            AdminMatchIntervention.status == "active"
        ).update({"status": "inactive"}, synchronize_session=False)

        metrics_collector.record_deactivation()
        log_assignment_event("deactivated", assignment.family_user_id, assignment.caregiver_id,
                             assignment.assignment_type, reason=note)

    # ------------------------------------------------------------------
    # Automatic assignment
    # ------------------------------------------------------------------

    def _active_assignments_for_family(self, db: Session, family_user_id: str) -> List[CaregiverAssignment]:
        return (
            db.query(CaregiverAssignment)
            .filter(
                CaregiverAssignment.family_user_id == family_user_id,
                CaregiverAssignment.is_active.is_(True)
            )
            .all()
        )

    def _candidate_pool(self, db: Session) -> List[Profile]:
        return (
            db.query(Profile)
            .filter(
                Profile.role == "professional",
                Profile.available_for_matching.is_(True)
            )
            .order_by(Profile.created_at.desc())
            .limit(settings.AUTO_ASSIGNMENT_CANDIDATE_POOL)
            .all()
        )

    def _assign_family(self, db: Session, family: Profile) -> Dict:
        existing = self._active_assignments_for_family(db, family.id)
        if existing:
            return {
                "success": True,
                "family_user_id": family.id,
                "message": "Family already has active assignments",
                "assignments_created": 0,
                "assignments": [self._assignment_summary(a) for a in existing]
            }

        candidates = self._candidate_pool(db)
        if not candidates:
            logger.warning(f"No available caregivers for family {family.id}")
            return {
                "success": False,
                "family_user_id": family.id,
                "message": "No available caregivers found",
                "assignments_created": 0,
                "assignments": []
            }

        scored = [(caregiver, calculate_match_score(family, caregiver)) for caregiver in candidates]
        scored.sort(key=lambda pair: pair[1].overall, reverse=True)

        created = []
        for caregiver, match in scored[:settings.AUTO_ASSIGNMENT_LIMIT]:
            assignment_id = self.create_unified_assignment(
                db,
                family.id,
                caregiver.id,
                "automatic",
                assignment_reason="Automatic assignment",
                match=match
            )
            db.add(AutomaticAssignment(
                family_user_id=family.id,
                caregiver_id=caregiver.id,
                match_score=float(match.overall),
                match_explanation=match.explanation,
                is_active=True
            ))
            db.commit()
            created.append({
                "assignment_id": assignment_id,
                "caregiver_id": caregiver.id,
                "match_score": match.overall
            })

        logger.info(
            f"Created {len(created)} automatic assignments for family {family.id}",
            extra={"family_user_id": family.id, "assignments_created": len(created)}
        )
        return {
            "success": True,
            "family_user_id": family.id,
            "message": f"Created {len(created)} automatic assignments",
            "assignments_created": len(created),
            "assignments": created
        }

    def trigger_automatic_assignment(self, db: Session, family_user_id: Optional[str] = None) -> Dict:
        """
        Assign the best available caregivers to one family, or to every family.

        Args:
            db: Database session
            family_user_id: Family to process; all families when omitted

        Returns:
            Dict: Result for the family, or a batch summary
        """
        if family_user_id:
            family = self._get_profile(db, family_user_id, role="family")
            return self._assign_family(db, family)

        families = db.query(Profile).filter(Profile.role == "family").all()
        results = []
        total_created = 0
        for family in families:
            try:
                result = self._assign_family(db, family)
            except Exception as e:
                db.rollback()
                logger.error(f"Automatic assignment failed for family {family.id}: {str(e)}")
                result = {"success": False, "family_user_id": family.id, "message": str(e),
                          "assignments_created": 0, "assignments": []}
            total_created += result["assignments_created"]
            results.append(result)

        return {
            "success": True,
            "families_processed": len(families),
            "assignments_created": total_created,
            "results": results
        }

    # ------------------------------------------------------------------
    # Read views
    # ------------------------------------------------------------------

    @staticmethod
    def _assignment_summary(assignment: CaregiverAssignment) -> Dict:
        return {
            "assignment_id": assignment.id,
            "caregiver_id": assignment.caregiver_id,
            "assignment_type": assignment.assignment_type,
            "match_score": assignment.match_score
        }

    def get_family_matches(self, db: Session, family_user_id: str, best_only: bool = True) -> List[Dict]:
        """
        Caregiver cards for a family, best first.

        Triggers automatic assignment once when the family has none.

        Args:
            db: Database session
            family_user_id: Family profile id
            best_only: Return only the top match

        Returns:
            List[Dict]: Enriched match cards
        """
        family = self._get_profile(db, family_user_id, role="family")

        assignments = self._active_assignments_for_family(db, family_user_id)
        if not assignments:
            logger.info(f"No assignments for family {family_user_id}, triggering automatic assignment")
            self._assign_family(db, family)
            assignments = self._active_assignments_for_family(db, family_user_id)

        assignments.sort(key=lambda a: (assignment_priority(a.assignment_type), -(a.match_score or 0)))
        if best_only:
            assignments = assignments[:1]

        return [self._match_card(db, family, a) for a in assignments]

    def _match_card(self, db: Session, family: Profile, assignment: CaregiverAssignment) -> Dict:
        caregiver = db.get(Profile, assignment.caregiver_id)
        score_breakdown = None
        if caregiver is not None and caregiver.role == "professional":
            score_breakdown = calculate_match_score(family, caregiver).to_dict()

        name = display_profile_name(caregiver) if caregiver else None
        care_types = as_list(caregiver.care_types) if caregiver else []
        rate = profile_rate(caregiver) if caregiver else None

        return {
            "id": assignment.id,
            "caregiver_id": assignment.caregiver_id,
            "full_name": name or MATCH_CARD_DEFAULTS["full_name"],
            "avatar_url": caregiver.avatar_url if caregiver else None,
            "location": (caregiver.location if caregiver else None) or MATCH_CARD_DEFAULTS["location"],
            "care_types": care_types or MATCH_CARD_DEFAULTS["care_types"],
            "years_of_experience": (caregiver.years_of_experience if caregiver else None)
            or MATCH_CARD_DEFAULTS["years_of_experience"],
            "hourly_rate": rate,
            "match_score": assignment.match_score,
            "shift_compatibility_score": assignment.shift_compatibility_score,
            "match_explanation": assignment.match_explanation,
            "assignment_type": assignment.assignment_type,
            "is_premium": is_premium_match(assignment.id),
            "score_breakdown": score_breakdown
        }

    def get_professional_assignments(self, db: Session, caregiver_id: str) -> List[Dict]:
        """Active assignments of a caregiver, by priority then newest."""
        self._get_profile(db, caregiver_id, role="professional")
        assignments = (
            db.query(CaregiverAssignment)
            .filter(
                CaregiverAssignment.caregiver_id == caregiver_id,
                CaregiverAssignment.is_active.is_(True)
            )
            .all()
        )
        assignments.sort(key=lambda a: a.created_at or datetime.min, reverse=True)
        assignments.sort(key=lambda a: assignment_priority(a.assignment_type))

        results = []
        for assignment in assignments:
            family = db.get(Profile, assignment.family_user_id)
            care_plan = db.get(CarePlan, assignment.care_plan_id) if assignment.care_plan_id else None
            results.append({
                "id": assignment.id,
                "family_user_id": assignment.family_user_id,
                "family_name": display_profile_name(family) or UNKNOWN_FAMILY_NAME,
                "family_location": family.location if family else None,
                "assignment_type": assignment.assignment_type,
                "match_score": assignment.match_score,
                "shift_compatibility_score": assignment.shift_compatibility_score,
                "match_explanation": assignment.match_explanation,
                "care_plan_id": assignment.care_plan_id,
                "care_plan_title": care_plan.title if care_plan else None,
                "created_at": assignment.created_at
            })
        return results

    def get_current_assignments(self, db: Session, caregiver_id: str, limit: Optional[int] = None) -> List[Dict]:
        """
        Merged view of a caregiver's manual, care team and automatic assignments.

        Records whose family profile no longer exists are skipped.
        """
        manual = []
        interventions = (
            db.query(AdminMatchIntervention)
            .filter(
                AdminMatchIntervention.caregiver_id == caregiver_id,
                AdminMatchIntervention.status == "active"
            )
            .all()
        )
        for record in interventions:
            family = db.get(Profile, record.family_user_id)
            if family is None:
                logger.warning(f"Skipping intervention {record.id}: family {record.family_user_id} missing")
                continue
            manual.append({
                "id": record.id,
                "family_user_id": record.family_user_id,
                "family_name": display_profile_name(family) or UNKNOWN_FAMILY_NAME,
                "assignment_type": "manual",
                "match_score": record.admin_match_score,
                "care_plan_id": None,
                "care_plan_title": None,
                "notes": record.notes,
                "created_at": record.created_at
            })

        care_team = []
        memberships = (
            db.query(CareTeamMember)
            .filter(
                CareTeamMember.caregiver_id == caregiver_id,
                CareTeamMember.status == "active"
            )
            .all()
        )
        for member in memberships:
            family = db.get(Profile, member.family_id)
            if family is None:
                logger.warning(f"Skipping care team member {member.id}: family {member.family_id} missing")
                continue
            care_team.append({
                "id": member.id,
                "family_user_id": member.family_id,
                "family_name": display_profile_name(family) or UNKNOWN_FAMILY_NAME,
                "assignment_type": "care_team",
                "match_score": None,
                "care_plan_id": member.care_plan_id,
                "care_plan_title": member.care_plan.title if member.care_plan else None,
                "notes": member.notes,
                "created_at": member.created_at
            })

        automatic = []
        auto_rows = (
            db.query(AutomaticAssignment)
            .filter(
                AutomaticAssignment.caregiver_id == caregiver_id,
                AutomaticAssignment.is_active.is_(True)
            )
            .all()
        )
        for record in auto_rows:
            family = db.get(Profile, record.family_user_id)
            if family is None:
                logger.warning(f"Skipping automatic assignment {record.id}: family {record.family_user_id} missing")
                continue
            automatic.append({
                "id": record.id,
                "family_user_id": record.family_user_id,
                "family_name": display_profile_name(family) or UNKNOWN_FAMILY_NAME,
                "assignment_type": "automatic",
                "match_score": record.match_score,
                "care_plan_id": None,
                "care_plan_title": None,
                "notes": record.match_explanation,
                "created_at": record.created_at
            })

        return merge_current_assignments(manual, care_team, automatic, limit)

    def get_existing_assignments(self, db: Session, family_user_id: str) -> Dict:
        """Automatic and admin assignments of a family, for the admin matching screen."""
        automatic = (
            db.query(AutomaticAssignment)
            .filter(
                AutomaticAssignment.family_user_id == family_user_id,
                AutomaticAssignment.is_active.is_(True)
            )
            .order_by(AutomaticAssignment.match_score.desc())
            .all()
        )
        manual = (
            db.query(AdminMatchIntervention)
            .filter(
                AdminMatchIntervention.family_user_id == family_user_id,
                AdminMatchIntervention.status == "active"
            )
            .order_by(AdminMatchIntervention.created_at.desc())
            .all()
        )
        return {
            "automatic": [
                {
                    "id": a.id,
                    "caregiver_id": a.caregiver_id,
                    "caregiver_name": display_profile_name(a.caregiver),
                    "match_score": a.match_score,
                    "match_explanation": a.match_explanation,
                    "created_at": a.created_at
                }
                for a in automatic
            ],
            "manual": [
                {
                    "id": m.id,
                    "caregiver_id": m.caregiver_id,
                    "caregiver_name": display_profile_name(m.caregiver),
                    "admin_match_score": m.admin_match_score,
                    "calculated_match_score": m.calculated_match_score,
                    "reason": m.reason,
                    "notes": m.notes,
                    "created_at": m.created_at
                }
                for m in manual
            ]
        }

    # ------------------------------------------------------------------
    # Admin listings
    # ------------------------------------------------------------------

    def list_family_users(self, db: Session) -> List[Profile]:
        return (
            db.query(Profile)
            .filter(Profile.role == "family")
            .order_by(Profile.created_at.desc())
            .all()
        )

    def list_professionals(self, db: Session) -> List[Profile]:
        return (
            db.query(Profile)
            .filter(Profile.role == "professional")
            .order_by(Profile.created_at.desc())
            .all()
        )

    def list_recalculation_log(self, db: Session, limit: int = 50) -> List[MatchRecalculationLog]:
        return (
            db.query(MatchRecalculationLog)
            .order_by(MatchRecalculationLog.created_at.desc())
            .limit(limit)
            .all()
        )
