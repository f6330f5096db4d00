"""
Tavara.care Coordination Service - Scheduling Service

Standardized shift catalogue, custom shift generation for care plans,
care shift management and shift reminders.
"""

from datetime import datetime, date, time, timedelta
from typing import List, Dict, Optional

from sqlalchemy.orm import Session

from tavara.config import (
    SHIFT_OPTIONS,
    SPECIAL_SHIFT_TYPES,
    DEFAULT_SHIFT_RANGE,
    DEFAULT_SHIFT_DESCRIPTION,
    SHIFT_STATUSES,
    WEEKDAYS
)
from tavara.core.errors import NotFoundError
from tavara.core.logging import logger
from tavara.core.settings import get_settings
from tavara.db.models import CarePlan, CareShift, Profile
from tavara.services.notification_service import NotificationService

settings = get_settings()


# ---------------------------------------------------------------------------
# Shift catalogue
# ---------------------------------------------------------------------------

def get_shift_time_range(shift_id: str) -> Dict:
    """
    Time range of a standardized shift option.

    Unknown ids fall back to 08:00-16:00 with a generic description.
    """
    option = SHIFT_OPTIONS.get(shift_id)
    if option is None:
        start, end = DEFAULT_SHIFT_RANGE
        return {
            "id": shift_id,
            "label": shift_id,
            "start": start,
            "end": end,
            "description": DEFAULT_SHIFT_DESCRIPTION,
            "is_special_type": False
        }

    label, start, end, description = option
    return {
        "id": shift_id,
        "label": label,
        "start": start,
        "end": end,
        "description": description,
        "is_special_type": shift_id in SPECIAL_SHIFT_TYPES
    }


def list_shift_options() -> List[Dict]:
    return [get_shift_time_range(shift_id) for shift_id in SHIFT_OPTIONS]


def format_time(value: str) -> str:
    """"13:05" -> "1:05 PM"."""
    hours_str, minutes_str = value.split(":")[:2]
    hours = int(hours_str)
    minutes = int(minutes_str)
    period = "PM" if hours >= 12 else "AM"
    return f"{hours % 12 or 12}:{minutes:02d} {period}"


def generate_time_options() -> List[str]:
    """Half-hour slots "00:00" .. "23:30"."""
    return [f"{hour:02d}:{minute:02d}" for hour in range(24) for minute in (0, 30)]


def _parse_clock(value: str) -> time:
    try:
        hours, minutes = (int(part) for part in value.split(":")[:2])
        return time(hours, minutes)
    except (ValueError, AttributeError) as e:
        raise ValueError(f"Invalid time of day: {value}") from e


def next_occurrence(days: List[str], today: date) -> date:
    """First date on or after today falling on one of the given weekdays."""
    wanted = {WEEKDAYS.index(day) for day in days}
    for offset in range(7):
        candidate = today + timedelta(days=offset)
        if candidate.weekday() in wanted:
            return candidate
    return today + timedelta(days=7)


class SchedulingService:
    """Care shifts for care plans."""

    def __init__(self, notification_service: NotificationService = None):
        self.notification_service = notification_service or NotificationService()
        logger.info("SchedulingService initialized")

    def _get_plan(self, db: Session, care_plan_id: str) -> CarePlan:
        plan = db.get(CarePlan, care_plan_id)
        if plan is None:
            raise NotFoundError("CarePlan", care_plan_id)
        return plan

    def get_shift(self, db: Session, shift_id: str) -> CareShift:
        shift = db.get(CareShift, shift_id)
        if shift is None:
            raise NotFoundError("CareShift", shift_id)
        return shift

    def generate_shifts_from_custom_definitions(
        self,
        db: Session,
        care_plan_id: str,
        family_id: str,
        custom_shifts: Optional[List[Dict]],
        today: Optional[date] = None
    ) -> List[CareShift]:
        """
        Create one open shift per custom definition.

        Each shift lands on the next occurrence of any of its days, today
        included. An end time earlier than the start rolls over to the
        next day.

        Args:
            db: Database session
            care_plan_id: Care plan the shifts belong to
            family_id: Owning family
            custom_shifts: [{"days": [...], "start_time": "HH:MM", "end_time": "HH:MM", "title": ...}]
            today: Reference date, defaults to the current UTC date

        Returns:
            List[CareShift]: Created shifts
        """
        if not custom_shifts:
            return []

        self._get_plan(db, care_plan_id)
        today = today or datetime.utcnow().date()

        created = []
        for definition in custom_shifts:
            days = [day.lower() for day in definition.get("days") or []]
            if not days:
                raise ValueError("A custom shift needs at least one day")
            unknown = [day for day in days if day not in WEEKDAYS]
            if unknown:
                raise ValueError(f"Unknown weekday: {', '.join(unknown)}")

            start_clock = definition["start_time"]
            end_clock = definition["end_time"]
            on_date = next_occurrence(days, today)
            start = datetime.combine(on_date, _parse_clock(start_clock))
            end = datetime.combine(on_date, _parse_clock(end_clock))
            if end < start:
                end += timedelta(days=1)

            summary = (
                f"{', '.join(day.capitalize() for day in days)} "
                f"{format_time(start_clock)}-{format_time(end_clock)}"
            )
            shift = CareShift(
                care_plan_id=care_plan_id,
                family_id=family_id,
                title=definition.get("title") or f"Custom: {summary}",
                description=f"Custom shift: {summary}",
                status="open",
                start_time=start,
                end_time=end,
                recurring_pattern=",".join(days)
            )
            db.add(shift)
            created.append(shift)

        db.commit()
        logger.info(
            f"Generated {len(created)} custom shifts for care plan {care_plan_id}",
            extra={"care_plan_id": care_plan_id}
        )
        return created

    def create_shift(
        self,
        db: Session,
        care_plan_id: str,
        title: str,
        start_time: datetime,
        end_time: datetime,
        caregiver_id: Optional[str] = None,
        description: Optional[str] = None,
        location: Optional[str] = None,
        recurring_pattern: Optional[str] = None
    ) -> CareShift:
        plan = self._get_plan(db, care_plan_id)
        if end_time <= start_time:
            raise ValueError("Shift end time must be after its start time")
        if caregiver_id and db.get(Profile, caregiver_id) is None:
            raise NotFoundError("Profile", caregiver_id)

        shift = CareShift(
            care_plan_id=plan.id,
            family_id=plan.family_id,
            caregiver_id=caregiver_id,
            title=title,
            description=description,
            location=location,
            status="assigned" if caregiver_id else "open",
            start_time=start_time,
            end_time=end_time,
            recurring_pattern=recurring_pattern
        )
        db.add(shift)
        db.commit()
        return shift

    def list_shifts(
        self,
        db: Session,
        care_plan_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[CareShift]:
        query = db.query(CareShift).filter(CareShift.care_plan_id == care_plan_id)
        if start:
            query = query.filter(CareShift.start_time >= start)
        if end:
            query = query.filter(CareShift.start_time <= end)
        return query.order_by(CareShift.start_time.asc()).all()

    def list_caregiver_shifts(self, db: Session, caregiver_id: str, upcoming_only: bool = True) -> List[CareShift]:
        query = db.query(CareShift).filter(CareShift.caregiver_id == caregiver_id)
        if upcoming_only:
            query = query.filter(CareShift.end_time >= datetime.utcnow())
        return query.order_by(CareShift.start_time.asc()).all()

    def assign_caregiver(self, db: Session, shift_id: str, caregiver_id: Optional[str]) -> CareShift:
        """Assign a caregiver to a shift, or release it with caregiver_id=None."""
        shift = self.get_shift(db, shift_id)
        if caregiver_id:
            caregiver = db.get(Profile, caregiver_id)
            if caregiver is None:
                raise NotFoundError("Profile", caregiver_id)
            if caregiver.role != "professional":
                raise ValueError("Only professional caregivers can be assigned to shifts")

        shift.caregiver_id = caregiver_id
        shift.status = "assigned" if caregiver_id else "open"
        shift.reminder_sent_at = None
        db.commit()
        return shift

    def update_status(self, db: Session, shift_id: str, status: str) -> CareShift:
        if status not in SHIFT_STATUSES:
            raise ValueError(f"Unknown shift status: {status}")
        shift = self.get_shift(db, shift_id)
        shift.status = status
        db.commit()
        return shift

    def send_shift_reminders(self, db: Session, now: Optional[datetime] = None) -> int:
        """
        Remind caregivers of shifts starting within SHIFT_REMINDER_LEAD_HOURS.

        Each shift gets at most one reminder.

        Returns:
            int: Reminders sent
        """
        now = now or datetime.utcnow()
        horizon = now + timedelta(hours=settings.SHIFT_REMINDER_LEAD_HOURS)

        shifts = (
            db.query(CareShift)
            .filter(
                CareShift.start_time >= now,
                CareShift.start_time <= horizon,
                CareShift.caregiver_id.isnot(None),
                CareShift.reminder_sent_at.is_(None),
                CareShift.status != "cancelled"
            )
            .all()
        )

        for shift in shifts:
            caregiver = db.get(Profile, shift.caregiver_id)
            message = (
                "SHIFT REMINDER\n"
                f"You have an upcoming shift:\n{shift.title}\n"
                f"{shift.start_time.strftime('%A, %B %d at')} {format_time(shift.start_time.strftime('%H:%M'))}"
            )
            if shift.location:
                message += f"\n{shift.location}"

            self.notification_service.notify_profile(
                db, caregiver, message, "shift_reminder", shift_id=shift.id
            )
            shift.reminder_sent_at = now

        db.commit()
        if shifts:
            logger.info(f"Sent {len(shifts)} shift reminders")
        return len(shifts)
