"""
Tavara.care Coordination Service - Payroll Service

Work logs entered by care team members, their expenses, and the
payroll entries created when a family approves a log.
"""

from datetime import datetime, date, timedelta
from typing import List, Dict, Optional

from sqlalchemy.orm import Session

from tavara.config import RATE_TYPES, EXPENSE_CATEGORIES, PAYMENT_STATUSES
from tavara.core.errors import NotFoundError, ConflictError
from tavara.core.logging import logger
from tavara.core.settings import get_settings
from tavara.db.models import (
    CareTeamMember,
    CareShift,
    WorkLog,
    WorkLogExpense,
    PayrollEntry
)
from tavara.monitoring.audit_logger import audit_logger
from tavara.monitoring.metrics import metrics_collector

settings = get_settings()

BILLABLE_EXPENSE_STATUSES = ["approved", "pending"]


def resolve_display_name(member: Optional[CareTeamMember], member_id: Optional[str] = None) -> str:
    """Team member display name, then profile name, then a short id."""
    if member is not None:
        if member.display_name:
            return member.display_name
        if member.caregiver is not None and member.caregiver.full_name:
            return member.caregiver.full_name
    member_id = member_id or (member.id if member is not None else None)
    if member_id:
        return f"Member: {member_id[:8]}"
    return "Unknown"


def work_log_hours(work_log: WorkLog) -> float:
    return round((work_log.end_time - work_log.start_time).total_seconds() / 3600, 2)


def filter_payroll_entries(
    entries: List[Dict],
    caregiver_name: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None
) -> List[Dict]:
    """
    Filter serialized payroll entries.

    Names match case-insensitively by substring. The date range is inclusive
    of date_to and uses entered_at, falling back to created_at.
    """
    start = datetime.combine(date_from, datetime.min.time()) if date_from else None
    end = datetime.combine(date_to, datetime.min.time()) + timedelta(days=1) if date_to else None

    filtered = []
    for entry in entries:
        if caregiver_name and caregiver_name.lower() not in (entry.get("caregiver_name") or "").lower():
            continue
        entry_date = entry.get("entered_at") or entry.get("created_at")
        if entry_date is not None:
            if start and entry_date < start:
                continue
            if end and entry_date >= end:
                continue
        filtered.append(entry)
    return filtered


class PayrollService:
    """Work logs and payroll."""

    def __init__(self):
        logger.info("PayrollService initialized")

    def _get_log(self, db: Session, work_log_id: str) -> WorkLog:
        work_log = db.get(WorkLog, work_log_id)
        if work_log is None:
            raise NotFoundError("WorkLog", work_log_id)
        return work_log

    # ------------------------------------------------------------------
    # Work logs
    # ------------------------------------------------------------------

    def create_work_log(
        self,
        db: Session,
        care_team_member_id: str,
        start_time: datetime,
        end_time: datetime,
        notes: Optional[str] = None,
        base_rate: Optional[float] = None,
        rate_multiplier: Optional[float] = None,
        rate_type: str = "regular",
        shift_id: Optional[str] = None
    ) -> WorkLog:
        member = db.get(CareTeamMember, care_team_member_id)
        if member is None:
            raise NotFoundError("CareTeamMember", care_team_member_id)
        if end_time <= start_time:
            raise ValueError("Work log end time must be after its start time")
        if rate_type not in RATE_TYPES:
            raise ValueError(f"Unknown rate type: {rate_type}")
        if shift_id and db.get(CareShift, shift_id) is None:
            raise NotFoundError("CareShift", shift_id)

        work_log = WorkLog(
            care_team_member_id=member.id,
            care_plan_id=member.care_plan_id,
            shift_id=shift_id,
            start_time=start_time,
            end_time=end_time,
            notes=notes,
            status="pending",
            base_rate=base_rate,
            rate_multiplier=rate_multiplier,
            rate_type=rate_type
        )
        db.add(work_log)
        db.commit()

        logger.info(f"Work log {work_log.id} created", extra={"care_plan_id": member.care_plan_id})
        return work_log

    def add_expense(
        self,
        db: Session,
        work_log_id: str,
        category: str,
        amount: float,
        description: Optional[str] = None,
        receipt_url: Optional[str] = None
    ) -> WorkLogExpense:
        work_log = self._get_log(db, work_log_id)
        if category not in EXPENSE_CATEGORIES:
            raise ValueError(f"Unknown expense category: {category}")
        if amount < 0:
            raise ValueError("Expense amount cannot be negative")

        expense = WorkLogExpense(
            work_log_id=work_log.id,
            category=category,
            amount=amount,
            description=description,
            receipt_url=receipt_url
        )
        db.add(expense)
        db.commit()
        return expense

    def update_expense_status(self, db: Session, expense_id: str, status: str) -> WorkLogExpense:
        if status not in ("pending", "approved", "rejected"):
            raise ValueError(f"Unknown expense status: {status}")
        expense = db.get(WorkLogExpense, expense_id)
        if expense is None:
            raise NotFoundError("WorkLogExpense", expense_id)
        expense.status = status
        db.commit()
        return expense

    def get_rates(self, db: Session, work_log: WorkLog) -> Dict:
        """
        Effective rates of a work log.

        Base rate: the log's own, then the member's regular rate, then
        DEFAULT_BASE_RATE. The multiplier defaults to 1.
        """
        member = work_log.team_member
        base_rate = work_log.base_rate or (member.regular_rate if member else None) or settings.DEFAULT_BASE_RATE
        multiplier = work_log.rate_multiplier or 1
        return {
            "base_rate": base_rate,
            "rate_multiplier": multiplier,
            "current_rate": round(base_rate * multiplier, 2)
        }

    def update_rates(self, db: Session, work_log_id: str, base_rate: float, rate_multiplier: float) -> WorkLog:
        if base_rate < 0 or rate_multiplier <= 0:
            raise ValueError("Rates must be positive")
        work_log = self._get_log(db, work_log_id)
        work_log.base_rate = base_rate
        work_log.rate_multiplier = rate_multiplier
        db.commit()
        return work_log

    def serialize_work_log(self, db: Session, work_log: WorkLog) -> Dict:
        member = work_log.team_member
        return {
            "id": work_log.id,
            "care_team_member_id": work_log.care_team_member_id,
            "care_plan_id": work_log.care_plan_id,
            "caregiver_id": member.caregiver_id if member else None,
            "caregiver_name": resolve_display_name(member, work_log.care_team_member_id),
            "shift_id": work_log.shift_id,
            "start_time": work_log.start_time,
            "end_time": work_log.end_time,
            "hours": work_log_hours(work_log),
            "notes": work_log.notes,
            "status": work_log.status,
            "rate_type": work_log.rate_type or "regular",
            **self.get_rates(db, work_log),
            "expenses": [
                {
                    "id": e.id,
                    "category": e.category,
                    "description": e.description,
                    "amount": e.amount,
                    "receipt_url": e.receipt_url,
                    "status": e.status
                }
                for e in work_log.expenses
            ],
            "created_at": work_log.created_at
        }

    def list_work_logs(self, db: Session, care_plan_id: str) -> List[Dict]:
        logs = (
            db.query(WorkLog)
            .filter(WorkLog.care_plan_id == care_plan_id)
            .order_by(WorkLog.created_at.desc())
            .all()
        )
        return [self.serialize_work_log(db, log) for log in logs]

    def approve_work_log(self, db: Session, work_log_id: str) -> PayrollEntry:
        """
        Approve a pending log and create its payroll entry.

        Hours land in the bucket of the log's rate type; shadow hours are
        recorded but unpaid. Approved and pending expenses are added to
        the total.
        """
        work_log = self._get_log(db, work_log_id)
        if work_log.status != "pending":
            raise ConflictError(f"Work log is already {work_log.status}")

        rates = self.get_rates(db, work_log)
        rate = rates["current_rate"]
        hours = work_log_hours(work_log)
        rate_type = work_log.rate_type or "regular"
        expense_total = round(sum(
            e.amount for e in work_log.expenses if (e.status or "pending") in BILLABLE_EXPENSE_STATUSES
        ), 2)

        entry = PayrollEntry(
            care_plan_id=work_log.care_plan_id,
            care_team_member_id=work_log.care_team_member_id,
            work_log_id=work_log.id,
            regular_rate=rates["base_rate"],
            expense_total=expense_total,
            payment_status="pending",
            entered_at=datetime.utcnow()
        )
        if rate_type == "regular":
            entry.regular_hours = hours
            entry.regular_rate = rate
        elif rate_type == "overtime":
            entry.overtime_hours = hours
            entry.overtime_rate = rate
        elif rate_type == "holiday":
            entry.holiday_hours = hours
            entry.holiday_rate = rate
        else:
            entry.shadow_hours = hours

        paid_hours = 0.0 if rate_type == "shadow" else hours
        entry.total_amount = round(paid_hours * rate + expense_total, 2)

        work_log.status = "approved"
        db.add(entry)
        db.commit()

        logger.info(
            f"Work log {work_log.id} approved: {hours}h {rate_type} at {rate}",
            extra={"payroll_entry_id": entry.id, "total_amount": entry.total_amount}
        )
        return entry

    def reject_work_log(self, db: Session, work_log_id: str, reason: str) -> WorkLog:
        work_log = self._get_log(db, work_log_id)
        if work_log.status != "pending":
            raise ConflictError(f"Work log is already {work_log.status}")
        if not reason or not reason.strip():
            raise ValueError("A rejection reason is required")

        work_log.status = "rejected"
        rejection = f"Rejected: {reason.strip()}"
        work_log.notes = f"{work_log.notes}\n{rejection}" if work_log.notes else rejection
        db.commit()
        return work_log

    # ------------------------------------------------------------------
    # Payroll entries
    # ------------------------------------------------------------------

    def list_payroll_entries(self, db: Session, care_plan_id: str) -> List[Dict]:
        entries = (
            db.query(PayrollEntry)
            .filter(PayrollEntry.care_plan_id == care_plan_id)
            .order_by(PayrollEntry.created_at.desc())
            .all()
        )
        return [
            {
                "id": e.id,
                "care_plan_id": e.care_plan_id,
                "care_team_member_id": e.care_team_member_id,
                "work_log_id": e.work_log_id,
                "caregiver_name": resolve_display_name(e.team_member, e.care_team_member_id),
                "regular_hours": e.regular_hours or 0.0,
                "regular_rate": e.regular_rate or 0.0,
                "overtime_hours": e.overtime_hours or 0.0,
                "overtime_rate": e.overtime_rate,
                "holiday_hours": e.holiday_hours or 0.0,
                "holiday_rate": e.holiday_rate,
                "shadow_hours": e.shadow_hours or 0.0,
                "expense_total": e.expense_total or 0.0,
                "total_amount": e.total_amount,
                "payment_status": e.payment_status if e.payment_status in PAYMENT_STATUSES else "pending",
                "payment_date": e.payment_date,
                "entered_at": e.entered_at,
                "created_at": e.created_at
            }
            for e in entries
        ]

    def process_payment(
        self,
        db: Session,
        payroll_entry_id: str,
        payment_date: Optional[datetime] = None,
        actor_id: Optional[str] = None
    ) -> PayrollEntry:
        entry = db.get(PayrollEntry, payroll_entry_id)
        if entry is None:
            raise NotFoundError("PayrollEntry", payroll_entry_id)
        if entry.payment_status == "paid":
            raise ConflictError("Payroll entry is already paid")

        entry.payment_status = "paid"
        entry.payment_date = payment_date or datetime.utcnow()
        db.commit()

        metrics_collector.record_payment()
        audit_logger.log_payroll_payment(entry.id, entry.total_amount, actor_id)
        logger.info(f"Payroll entry {entry.id} paid", extra={"total_amount": entry.total_amount})
        return entry
