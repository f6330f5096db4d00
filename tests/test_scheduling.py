"""
Tavara.care Coordination Service - Scheduling Tests
"""

from datetime import date, datetime, timedelta

import pytest

from tavara.core.errors import NotFoundError
from tavara.db.models import CareShift, ShiftNotification
from tavara.services.scheduling_service import (
    SchedulingService,
    get_shift_time_range,
    list_shift_options,
    format_time,
    generate_time_options,
    next_occurrence
)

MONDAY = date(2024, 6, 3)


@pytest.fixture
def scheduling_service(notification_service):
    return SchedulingService(notification_service=notification_service)


class TestShiftCatalogue:

    def test_known_shift(self):
        shift = get_shift_time_range("weekday_evening_6pm_6am")

        assert shift["start"] == "18:00"
        assert shift["end"] == "06:00"
        assert shift["is_special_type"] is False

    def test_special_type(self):
        assert get_shift_time_range("live_in_care")["is_special_type"] is True

    def test_unknown_shift_falls_back(self):
        """Test unknown ids get the default daytime range."""
        shift = get_shift_time_range("brunch_shift")

        assert (shift["start"], shift["end"]) == ("08:00", "16:00")
        assert shift["label"] == "brunch_shift"

    def test_catalogue_lists_every_option(self):
        ids = [option["id"] for option in list_shift_options()]

        assert "mon_fri_8am_4pm" in ids
        assert len(ids) == len(set(ids))

    @pytest.mark.parametrize("value,expected", [
        ("00:00", "12:00 AM"),
        ("09:05", "9:05 AM"),
        ("12:30", "12:30 PM"),
        ("18:00", "6:00 PM"),
    ])
    def test_format_time(self, value, expected):
        assert format_time(value) == expected

    def test_time_options(self):
        options = generate_time_options()

        assert len(options) == 48
        assert options[0] == "00:00"
        assert options[-1] == "23:30"

    def test_next_occurrence_includes_today(self):
        assert next_occurrence(["monday"], MONDAY) == MONDAY
        assert next_occurrence(["sunday", "wednesday"], MONDAY) == date(2024, 6, 5)


class TestCustomShifts:

    def test_overnight_rolls_to_next_day(self, db, scheduling_service, care_plan):
        """Test an end earlier than the start finishes the next morning."""
        shifts = scheduling_service.generate_shifts_from_custom_definitions(
            db, care_plan.id, care_plan.family_id,
            [{"days": ["Wednesday"], "start_time": "20:00", "end_time": "06:00"}],
            today=MONDAY
        )

        shift = shifts[0]
        assert shift.start_time == datetime(2024, 6, 5, 20, 0)
        assert shift.end_time == datetime(2024, 6, 6, 6, 0)
        assert shift.status == "open"
        assert shift.title == "Custom: Wednesday 8:00 PM-6:00 AM"
        assert shift.recurring_pattern == "wednesday"

    def test_one_shift_per_definition(self, db, scheduling_service, care_plan):
        definitions = [
            {"days": ["monday", "friday"], "start_time": "08:00", "end_time": "16:00", "title": "Weekday days"},
            {"days": ["saturday"], "start_time": "09:00", "end_time": "13:00"},
        ]

        shifts = scheduling_service.generate_shifts_from_custom_definitions(
            db, care_plan.id, care_plan.family_id, definitions, today=MONDAY
        )

        assert [s.title for s in shifts][0] == "Weekday days"
        assert shifts[0].start_time.date() == MONDAY
        assert db.query(CareShift).count() == 2

    def test_empty_definitions(self, db, scheduling_service, care_plan):
        assert scheduling_service.generate_shifts_from_custom_definitions(
            db, care_plan.id, care_plan.family_id, None
        ) == []

    @pytest.mark.parametrize("definition", [
        {"days": [], "start_time": "08:00", "end_time": "16:00"},
        {"days": ["funday"], "start_time": "08:00", "end_time": "16:00"},
        {"days": ["monday"], "start_time": "8am", "end_time": "16:00"},
    ])
    def test_invalid_definitions(self, db, scheduling_service, care_plan, definition):
        with pytest.raises(ValueError):
            scheduling_service.generate_shifts_from_custom_definitions(
                db, care_plan.id, care_plan.family_id, [definition], today=MONDAY
            )


class TestShiftManagement:

    def test_create_with_caregiver_is_assigned(self, db, scheduling_service, care_plan, caregiver):
        shift = scheduling_service.create_shift(
            db, care_plan.id, "Morning", datetime(2024, 6, 3, 8), datetime(2024, 6, 3, 16),
            caregiver_id=caregiver.id
        )

        assert shift.status == "assigned"
        assert shift.family_id == care_plan.family_id

    def test_end_before_start(self, db, scheduling_service, care_plan):
        with pytest.raises(ValueError):
            scheduling_service.create_shift(
                db, care_plan.id, "Backwards", datetime(2024, 6, 3, 16), datetime(2024, 6, 3, 8)
            )

    def test_unknown_plan(self, db, scheduling_service):
        with pytest.raises(NotFoundError):
            scheduling_service.create_shift(
                db, "missing", "Morning", datetime(2024, 6, 3, 8), datetime(2024, 6, 3, 16)
            )

    def test_assign_and_release(self, db, scheduling_service, care_plan, caregiver):
        shift = scheduling_service.create_shift(
            db, care_plan.id, "Morning", datetime(2024, 6, 3, 8), datetime(2024, 6, 3, 16)
        )

        scheduling_service.assign_caregiver(db, shift.id, caregiver.id)
        assert shift.status == "assigned"

        scheduling_service.assign_caregiver(db, shift.id, None)
        assert shift.status == "open"
        assert shift.caregiver_id is None

    def test_assign_requires_professional(self, db, scheduling_service, care_plan, family):
        shift = scheduling_service.create_shift(
            db, care_plan.id, "Morning", datetime(2024, 6, 3, 8), datetime(2024, 6, 3, 16)
        )

        with pytest.raises(ValueError):
            scheduling_service.assign_caregiver(db, shift.id, family.id)

    def test_status_validation(self, db, scheduling_service, care_plan):
        shift = scheduling_service.create_shift(
            db, care_plan.id, "Morning", datetime(2024, 6, 3, 8), datetime(2024, 6, 3, 16)
        )

        assert scheduling_service.update_status(db, shift.id, "completed").status == "completed"
        with pytest.raises(ValueError):
            scheduling_service.update_status(db, shift.id, "paused")

    def test_list_shifts_in_window(self, db, scheduling_service, care_plan):
        for day in (3, 4, 10):
            scheduling_service.create_shift(
                db, care_plan.id, f"Day {day}", datetime(2024, 6, day, 8), datetime(2024, 6, day, 16)
            )

        shifts = scheduling_service.list_shifts(
            db, care_plan.id, start=datetime(2024, 6, 3), end=datetime(2024, 6, 5)
        )

        assert [s.title for s in shifts] == ["Day 3", "Day 4"]


class TestShiftReminders:

    def test_reminds_once(self, db, scheduling_service, care_plan, caregiver, whatsapp_sent):
        """Test an upcoming assigned shift gets exactly one reminder."""
        now = datetime(2024, 6, 3, 8, 0)
        scheduling_service.create_shift(
            db, care_plan.id, "Evening", now + timedelta(hours=10), now + timedelta(hours=18),
            caregiver_id=caregiver.id, location="Port of Spain"
        )

        assert scheduling_service.send_shift_reminders(db, now=now) == 1
        assert scheduling_service.send_shift_reminders(db, now=now) == 0

        notification = db.query(ShiftNotification).one()
        assert notification.notification_type == "shift_reminder"
        assert notification.delivery_status == "sent"
        assert whatsapp_sent[0]["to"] == "18685550202"
        assert "SHIFT REMINDER" in whatsapp_sent[0]["text"]["body"]
        assert "Port of Spain" in whatsapp_sent[0]["text"]["body"]

    def test_skips_unassigned_and_distant(self, db, scheduling_service, care_plan, caregiver):
        now = datetime(2024, 6, 3, 8, 0)
        scheduling_service.create_shift(
            db, care_plan.id, "Open", now + timedelta(hours=2), now + timedelta(hours=6)
        )
        scheduling_service.create_shift(
            db, care_plan.id, "Next week", now + timedelta(days=7), now + timedelta(days=7, hours=8),
            caregiver_id=caregiver.id
        )

        assert scheduling_service.send_shift_reminders(db, now=now) == 0

    def test_reassignment_rearms_reminder(self, db, scheduling_service, make_profile, care_plan, caregiver):
        now = datetime(2024, 6, 3, 8, 0)
        shift = scheduling_service.create_shift(
            db, care_plan.id, "Evening", now + timedelta(hours=10), now + timedelta(hours=18),
            caregiver_id=caregiver.id
        )
        scheduling_service.send_shift_reminders(db, now=now)

        relief = make_profile("professional", full_name="Relief Carer")
        scheduling_service.assign_caregiver(db, shift.id, relief.id)

        assert scheduling_service.send_shift_reminders(db, now=now) == 1
        statuses = [n.delivery_status for n in db.query(ShiftNotification).all()]
        assert sorted(statuses) == ["no_phone", "sent"]
