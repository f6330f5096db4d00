"""
Tavara.care Coordination Service - Payroll Routes

Care team members log their hours; the owning family approves logs,
which creates payroll entries, and records payments.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from tavara.api.dependencies import get_current_profile, require_plan_access
from tavara.api.schemas import (
    WorkLogCreate,
    ExpenseCreate,
    ExpenseStatusUpdate,
    RateUpdate,
    RejectWorkLogRequest,
    PaymentRequest,
    PayrollEntryResponse
)
from tavara.core.errors import NotFoundError
from tavara.db.base import get_db
from tavara.db.models import Profile, CareTeamMember, WorkLog, WorkLogExpense, PayrollEntry
from tavara.services.payroll_service import PayrollService, filter_payroll_entries

router = APIRouter(prefix="/payroll", tags=["Payroll"])
payroll_service = PayrollService()


def _work_log(db: Session, work_log_id: str) -> WorkLog:
    work_log = db.get(WorkLog, work_log_id)
    if work_log is None:
        raise NotFoundError("WorkLog", work_log_id)
    return work_log


@router.post("/work-logs", status_code=status.HTTP_201_CREATED, summary="Log hours worked")
def create_work_log(
    body: WorkLogCreate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    member = db.get(CareTeamMember, body.care_team_member_id)
    if member is None:
        raise NotFoundError("CareTeamMember", body.care_team_member_id)
    if member.caregiver_id != current.id:
        require_plan_access(db, member.care_plan_id, current, owner_only=True)

    work_log = payroll_service.create_work_log(
        db,
        member.id,
        body.start_time,
        body.end_time,
        notes=body.notes,
        base_rate=body.base_rate,
        rate_multiplier=body.rate_multiplier,
        rate_type=body.rate_type,
        shift_id=body.shift_id
    )
    return payroll_service.serialize_work_log(db, work_log)


@router.post("/work-logs/{work_log_id}/expenses", status_code=status.HTTP_201_CREATED, summary="Add an expense")
def add_expense(
    work_log_id: str,
    body: ExpenseCreate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    work_log = _work_log(db, work_log_id)
    require_plan_access(db, work_log.care_plan_id, current)
    expense = payroll_service.add_expense(
        db, work_log.id, body.category, body.amount, description=body.description, receipt_url=body.receipt_url
    )
    return {"id": expense.id, "work_log_id": expense.work_log_id, "amount": expense.amount, "status": expense.status}


@router.put("/expenses/{expense_id}/status", summary="Approve or reject an expense")
def update_expense_status(
    expense_id: str,
    body: ExpenseStatusUpdate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    expense = db.get(WorkLogExpense, expense_id)
    if expense is None:
        raise NotFoundError("WorkLogExpense", expense_id)
    require_plan_access(db, expense.work_log.care_plan_id, current, owner_only=True)
    expense = payroll_service.update_expense_status(db, expense_id, body.status)
    return {"id": expense.id, "status": expense.status}


@router.put("/work-logs/{work_log_id}/rates", summary="Set the rates of a work log")
def update_rates(
    work_log_id: str,
    body: RateUpdate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    work_log = _work_log(db, work_log_id)
    require_plan_access(db, work_log.care_plan_id, current, owner_only=True)
    work_log = payroll_service.update_rates(db, work_log.id, body.base_rate, body.rate_multiplier)
    return payroll_service.get_rates(db, work_log)


@router.get("/care-plans/{care_plan_id}/work-logs", summary="Work logs of a care plan")
def list_work_logs(
    care_plan_id: str,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_plan_access(db, care_plan_id, current)
    return payroll_service.list_work_logs(db, care_plan_id)


@router.post(
    "/work-logs/{work_log_id}/approve",
    response_model=PayrollEntryResponse,
    summary="Approve a work log",
    description="Creates the payroll entry for the log"
)
def approve_work_log(
    work_log_id: str,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    work_log = _work_log(db, work_log_id)
    require_plan_access(db, work_log.care_plan_id, current, owner_only=True)
    return payroll_service.approve_work_log(db, work_log.id)


@router.post("/work-logs/{work_log_id}/reject", summary="Reject a work log")
def reject_work_log(
    work_log_id: str,
    body: RejectWorkLogRequest,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    work_log = _work_log(db, work_log_id)
    require_plan_access(db, work_log.care_plan_id, current, owner_only=True)
    return payroll_service.serialize_work_log(db, payroll_service.reject_work_log(db, work_log.id, body.reason))


@router.get("/care-plans/{care_plan_id}/entries", summary="Payroll entries of a care plan")
def list_payroll_entries(
    care_plan_id: str,
    caregiver_name: Optional[str] = Query(default=None),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_plan_access(db, care_plan_id, current)
    entries = payroll_service.list_payroll_entries(db, care_plan_id)
    return filter_payroll_entries(entries, caregiver_name=caregiver_name, date_from=date_from, date_to=date_to)


@router.post("/entries/{entry_id}/pay", response_model=PayrollEntryResponse, summary="Mark an entry paid")
def pay_entry(
    entry_id: str,
    body: PaymentRequest,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    entry = db.get(PayrollEntry, entry_id)
    if entry is None:
        raise NotFoundError("PayrollEntry", entry_id)
    require_plan_access(db, entry.care_plan_id, current, owner_only=True)
    return payroll_service.process_payment(db, entry.id, payment_date=body.payment_date, actor_id=current.id)
