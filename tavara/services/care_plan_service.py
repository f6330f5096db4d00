"""
Tavara.care Coordination Service - Care Plan Service

Care plans owned by families and the care team members invited to them.
Activating a team member links the caregiver to the family through a
care_team assignment; removing them from their last active team
deactivates it.
"""

from typing import List, Dict, Optional

from sqlalchemy.orm import Session

from tavara.config import CARE_PLAN_TYPES, CARE_TEAM_STATUSES, CARE_TEAM_ROLES
from tavara.core.errors import NotFoundError, ConflictError
from tavara.core.logging import logger
from tavara.db.models import CarePlan, CareTeamMember, CaregiverAssignment, Profile
from tavara.services.matching_service import MatchingService
from tavara.services.scheduling_service import SchedulingService
from tavara.utils.helpers import display_profile_name

PLAN_STATUSES = ["active", "completed", "cancelled"]


class CarePlanService:
    """Care plans and care teams."""

    def __init__(self, matching_service: MatchingService = None, scheduling_service: SchedulingService = None):
        self.matching_service = matching_service or MatchingService()
        self.scheduling_service = scheduling_service or SchedulingService()
        logger.info("CarePlanService initialized")

    def get_plan(self, db: Session, care_plan_id: str) -> CarePlan:
        plan = db.get(CarePlan, care_plan_id)
        if plan is None:
            raise NotFoundError("CarePlan", care_plan_id)
        return plan

    def create_plan(
        self,
        db: Session,
        family_id: str,
        title: str,
        description: Optional[str] = None,
        plan_type: str = "scheduled",
        metadata: Optional[Dict] = None
    ) -> CarePlan:
        """
        Create a care plan; custom shifts in metadata["custom_shifts"] are
        turned into open shifts straight away.
        """
        family = db.get(Profile, family_id)
        if family is None:
            raise NotFoundError("Profile", family_id)
        if family.role != "family":
            raise ValueError("Care plans belong to family users")
        if plan_type not in CARE_PLAN_TYPES:
            raise ValueError(f"Unknown plan type: {plan_type}")
        if not title or not title.strip():
            raise ValueError("Care plan title is required")

        plan = CarePlan(
            family_id=family_id,
            title=title.strip(),
            description=description,
            plan_type=plan_type,
            status="active",
            plan_metadata=metadata or {}
        )
        db.add(plan)
        db.commit()

        custom_shifts = (metadata or {}).get("custom_shifts")
        if custom_shifts:
            self.scheduling_service.generate_shifts_from_custom_definitions(db, plan.id, family_id, custom_shifts)

        logger.info(f"Care plan {plan.id} created", extra={"family_id": family_id})
        return plan

    def list_plans(self, db: Session, family_id: str) -> List[CarePlan]:
        return (
            db.query(CarePlan)
            .filter(CarePlan.family_id == family_id)
            .order_by(CarePlan.created_at.desc())
            .all()
        )

    def list_caregiver_plans(self, db: Session, caregiver_id: str) -> List[CarePlan]:
        return (
            db.query(CarePlan)
            .join(CareTeamMember, CareTeamMember.care_plan_id == CarePlan.id)
            .filter(CareTeamMember.caregiver_id == caregiver_id, CareTeamMember.status == "active")
            .order_by(CarePlan.created_at.desc())
            .all()
        )

    def update_plan(self, db: Session, care_plan_id: str, updates: Dict) -> CarePlan:
        plan = self.get_plan(db, care_plan_id)
        if "status" in updates and updates["status"] not in PLAN_STATUSES:
            raise ValueError(f"Unknown care plan status: {updates['status']}")
        if "plan_type" in updates and updates["plan_type"] not in CARE_PLAN_TYPES:
            raise ValueError(f"Unknown plan type: {updates['plan_type']}")

        for key in ("title", "description", "status", "plan_type"):
            if key in updates:
                setattr(plan, key, updates[key])
        if "metadata" in updates:
            plan.plan_metadata = {**(plan.plan_metadata or {}), **(updates["metadata"] or {})}
        db.commit()
        return plan

    # ------------------------------------------------------------------
    # Care team
    # ------------------------------------------------------------------

    def invite_member(
        self,
        db: Session,
        care_plan_id: str,
        caregiver_id: str,
        role: str = "caregiver",
        regular_rate: Optional[float] = None,
        overtime_rate: Optional[float] = None,
        display_name: Optional[str] = None,
        notes: Optional[str] = None
    ) -> CareTeamMember:
        plan = self.get_plan(db, care_plan_id)
        caregiver = db.get(Profile, caregiver_id)
        if caregiver is None:
            raise NotFoundError("Profile", caregiver_id)
        if caregiver.role != "professional":
            raise ValueError("Only professional caregivers can join a care team")
        if role not in CARE_TEAM_ROLES:
            raise ValueError(f"Unknown care team role: {role}")

        existing = (
            db.query(CareTeamMember)
            .filter(
                CareTeamMember.care_plan_id == plan.id,
                CareTeamMember.caregiver_id == caregiver_id,
                CareTeamMember.status.in_(["invited", "active"])
            )
            .first()
        )
        if existing:
            raise ConflictError("Caregiver is already on this care team")

        member = CareTeamMember(
            care_plan_id=plan.id,
            family_id=plan.family_id,
            caregiver_id=caregiver_id,
            role=role,
            status="invited",
            display_name=display_name or display_profile_name(caregiver),
            regular_rate=regular_rate,
            overtime_rate=overtime_rate,
            notes=notes
        )
        db.add(member)
        db.commit()
        return member

    def list_members(self, db: Session, care_plan_id: str) -> List[CareTeamMember]:
        return (
            db.query(CareTeamMember)
            .filter(CareTeamMember.care_plan_id == care_plan_id)
            .order_by(CareTeamMember.created_at.asc())
            .all()
        )

    def update_member(self, db: Session, member_id: str, updates: Dict, actor_id: Optional[str] = None) -> CareTeamMember:
        """
        Update a team member's role, rates or status.

        Becoming active creates a care_team assignment for the pair;
        leaving the team deactivates it unless the caregiver is still
        active on another of the family's care plans.
        """
        member = db.get(CareTeamMember, member_id)
        if member is None:
            raise NotFoundError("CareTeamMember", member_id)
        if "status" in updates and updates["status"] not in CARE_TEAM_STATUSES:
            raise ValueError(f"Unknown care team status: {updates['status']}")
        if "role" in updates and updates["role"] not in CARE_TEAM_ROLES:
            raise ValueError(f"Unknown care team role: {updates['role']}")

        previous_status = member.status
        for key in ("role", "status", "display_name", "regular_rate", "overtime_rate", "notes"):
            if key in updates:
                setattr(member, key, updates[key])
        db.commit()

        if member.status == "active" and previous_status != "active":
            self.matching_service.create_unified_assignment(
                db,
                member.family_id,
                member.caregiver_id,
                "care_team",
                care_plan_id=member.care_plan_id,
                assignment_reason="Care team member",
                created_by=actor_id
            )
        elif previous_status == "active" and member.status in ("removed", "declined"):
            still_on_team = (
                db.query(CareTeamMember.id)
                .filter(
                    CareTeamMember.family_id == member.family_id,
                    CareTeamMember.caregiver_id == member.caregiver_id,
                    CareTeamMember.status == "active",
                    CareTeamMember.id != member.id
                )
                .first()
            )
            if still_on_team is not None:
                return member

            assignment = (
                db.query(CaregiverAssignment)
                .filter(
                    CaregiverAssignment.family_user_id == member.family_id,
                    CaregiverAssignment.caregiver_id == member.caregiver_id,
                    CaregiverAssignment.assignment_type == "care_team",
                    CaregiverAssignment.is_active.is_(True)
                )
                .first()
            )
            if assignment is not None:
                self.matching_service.deactivate_row(db, assignment, "Deactivated: removed from care team")
                db.commit()

        return member
