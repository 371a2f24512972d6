"""Tests for the SQLModel repositories."""

from datetime import date, time

import pytest

from agenda.models.blocked_date import BlockedDateCreate
from agenda.models.calendar import CalendarCreate
from agenda.repositories.appointment import AppointmentRepository
from agenda.repositories.blocked_date import BlockedDateRepository
from agenda.repositories.calendar import CalendarRepository
from agenda.scheduling.working_hours import TimeWindow
from conftest import MONDAY, TUESDAY, make_appointment, make_calendar


def _new_row(calendar_id: int, **overrides) -> dict:
    values = {
        "calendar_id": calendar_id,
        "appointment_date": TUESDAY,
        "start_time": time(10, 0),
        "end_time": time(10, 30),
        "email": "  Ana@Example.COM ",
        "cpf_rf": "529.982.247-25",
        "status": "confirmed",
    }
    values.update(overrides)
    return values


class TestCalendarRepository:
    def test_create_normalises_working_hours(self, session) -> None:
        repo = CalendarRepository(session)
        calendar = repo.create(
            CalendarCreate(title="Clínica", working_hours={"tue": {"start": "09:00", "end": "12:00"}}),
            created_by=None,
        )

        assert calendar.working_hours == [{"day": 2, "start": "09:00", "end": "12:00"}]
        assert calendar.advance_booking_max == 30

    def test_settings_snapshot(self, session, calendar) -> None:
        settings = CalendarRepository(session).get_with_working_hours(calendar.id)

        assert settings.id == calendar.id
        assert settings.is_active
        assert settings.working_hours.windows_for(2) == [TimeWindow(time(9, 0), time(17, 0))]

    def test_missing_calendar(self, session) -> None:
        assert CalendarRepository(session).find_by_id(999) is None
        assert CalendarRepository(session).update_working_hours(999, []) is False

    def test_update_status(self, session, calendar) -> None:
        repo = CalendarRepository(session)

        assert repo.update_status(calendar.id, "archived") is True
        assert repo.find_by_id(calendar.id).is_active is False
        assert repo.get_active_calendars() == []

        with pytest.raises(ValueError):
            repo.update_status(calendar.id, "deleted")

    def test_update_working_hours(self, session, calendar) -> None:
        repo = CalendarRepository(session)

        assert repo.update_working_hours(calendar.id, {"mon": {"closed": True}}) is True
        assert repo.find_by_id(calendar.id).working_hours.windows_for(1) == []


class TestAppointmentRepository:
    def test_create_normalises_identity(self, session, calendar) -> None:
        repo = AppointmentRepository(session)
        repo.begin_transaction()
        appointment_id = repo.create_appointment(_new_row(calendar.id))
        repo.commit()

        appointment = repo.find_by_id(appointment_id)
        assert appointment.email == "ana@example.com"
        assert appointment.cpf_rf == "52998224725"
        assert len(appointment.confirmation_token) == 64

    def test_duplicate_token_returns_none(self, session, calendar) -> None:
        repo = AppointmentRepository(session)
        repo.begin_transaction()
        assert repo.create_appointment(_new_row(calendar.id, confirmation_token="same")) is not None
        assert repo.create_appointment(_new_row(calendar.id, confirmation_token="same")) is None
        repo.rollback()

    def test_slot_availability(self, session, calendar) -> None:
        repo = AppointmentRepository(session)
        make_appointment(session, calendar.id, TUESDAY, time(10, 0))
        make_appointment(session, calendar.id, TUESDAY, time(10, 0), status="cancelled")

        assert repo.is_slot_available(calendar.id, TUESDAY, time(10, 0), 1) is False
        assert repo.is_slot_available(calendar.id, TUESDAY, time(10, 0), 2) is True
        assert repo.is_slot_available(calendar.id, TUESDAY, time(10, 30), 1, lock=True) is True

    def test_appointments_by_date(self, session, calendar) -> None:
        make_appointment(session, calendar.id, TUESDAY, time(11, 0))
        make_appointment(session, calendar.id, TUESDAY, time(9, 0), status="pending")
        make_appointment(session, calendar.id, TUESDAY, time(10, 0), status="cancelled")
        make_appointment(session, calendar.id, MONDAY, time(9, 0))

        rows = AppointmentRepository(session).get_appointments_by_date(calendar.id, TUESDAY)

        assert [r.start_time for r in rows] == [time(9, 0), time(11, 0)]

    def test_identity_lookups(self, session, calendar) -> None:
        make_appointment(session, calendar.id, TUESDAY, time(9, 0), email="ana@example.com", cpf_rf="1234567")
        repo = AppointmentRepository(session)

        assert len(repo.find_by_email("ANA@example.com")) == 1
        assert len(repo.find_by_cpf_rf("123.456.7")) == 1
        assert repo.find_by_user_id(99) == []

    def test_cancel_is_conditional(self, session, calendar) -> None:
        appointment = make_appointment(session, calendar.id, TUESDAY, time(9, 0))
        repo = AppointmentRepository(session)

        assert repo.cancel(appointment.id, None, "Imprevisto") is True
        assert repo.cancel(appointment.id, None, "De novo") is False

        session.refresh(appointment)
        assert appointment.status == "cancelled"
        assert appointment.cancellation_reason == "Imprevisto"
        assert appointment.cancelled_at is not None

    def test_confirm_only_pending(self, session, calendar) -> None:
        pending = make_appointment(session, calendar.id, TUESDAY, time(9, 0), status="pending")
        cancelled = make_appointment(session, calendar.id, TUESDAY, time(9, 30), status="cancelled")
        repo = AppointmentRepository(session)

        assert repo.confirm(pending.id, None) is True
        assert repo.confirm(pending.id, None) is False
        assert repo.confirm(cancelled.id, None) is False

    def test_audit_timestamps_are_stored(self, session, calendar) -> None:
        repo = AppointmentRepository(session)
        repo.begin_transaction()
        appointment_id = repo.create_appointment(_new_row(calendar.id, status="pending"))
        repo.commit()

        assert appointment_id is not None
        assert repo.confirm(appointment_id, None) is True
        assert repo.cancel(appointment_id, None, "Imprevisto") is True

        appointment = repo.find_by_id(appointment_id)
        session.refresh(appointment)
        assert appointment.created_at is not None
        assert appointment.approved_at is not None
        assert appointment.cancelled_at is not None
        assert appointment.updated_at is not None


class TestBlockedDateRepository:
    def test_multi_day_block(self, session, calendar) -> None:
        repo = BlockedDateRepository(session)
        repo.create(BlockedDateCreate(calendar_id=calendar.id, start_date=MONDAY, end_date=date(2030, 1, 16)))

        assert repo.is_date_blocked(calendar.id, TUESDAY)
        assert not repo.is_date_blocked(calendar.id, date(2030, 1, 17))

    def test_global_block_applies_to_every_calendar(self, session, calendar) -> None:
        other = make_calendar(session, title="Outro")
        repo = BlockedDateRepository(session)
        repo.create(BlockedDateCreate(calendar_id=None, start_date=TUESDAY))

        assert repo.is_date_blocked(other.id, TUESDAY)

    def test_block_of_another_calendar_is_ignored(self, session, calendar) -> None:
        other = make_calendar(session, title="Outro")
        repo = BlockedDateRepository(session)
        repo.create(BlockedDateCreate(calendar_id=other.id, start_date=TUESDAY))

        assert not repo.is_date_blocked(calendar.id, TUESDAY)

    def test_time_range_needs_a_time(self, session, calendar) -> None:
        repo = BlockedDateRepository(session)
        repo.create(
            BlockedDateCreate(
                calendar_id=calendar.id,
                block_type="time_range",
                start_date=TUESDAY,
                start_time=time(12, 0),
                end_time=time(13, 0),
            )
        )

        assert not repo.is_date_blocked(calendar.id, TUESDAY)
        assert repo.is_date_blocked(calendar.id, TUESDAY, time(12, 30))
        assert not repo.is_date_blocked(calendar.id, TUESDAY, time(13, 0))
        assert repo.get_time_ranges(calendar.id, TUESDAY) == [TimeWindow(time(12, 0), time(13, 0))]

    def test_yearly_recurring_block(self, session, calendar) -> None:
        repo = BlockedDateRepository(session)
        repo.create(
            BlockedDateCreate(
                calendar_id=calendar.id,
                block_type="recurring",
                start_date=date(2029, 1, 1),
                recurring_pattern={"type": "yearly", "dates": ["01-15"]},
            )
        )

        assert repo.is_date_blocked(calendar.id, TUESDAY)
        assert repo.is_date_blocked(calendar.id, date(2031, 1, 15))
        assert not repo.is_date_blocked(calendar.id, MONDAY)

    def test_recurring_block_respects_end_date(self, session, calendar) -> None:
        repo = BlockedDateRepository(session)
        repo.create(
            BlockedDateCreate(
                calendar_id=calendar.id,
                block_type="recurring",
                start_date=date(2029, 1, 1),
                end_date=date(2029, 12, 31),
                recurring_pattern={"type": "monthly", "days": [15]},
            )
        )

        assert not repo.is_date_blocked(calendar.id, TUESDAY)

    def test_invalid_block_type(self, session, calendar) -> None:
        with pytest.raises(ValueError):
            BlockedDateRepository(session).create(
                BlockedDateCreate(calendar_id=calendar.id, block_type="forever", start_date=TUESDAY)
            )

    def test_list_and_delete(self, session, calendar) -> None:
        repo = BlockedDateRepository(session)
        block = repo.create(BlockedDateCreate(calendar_id=calendar.id, start_date=TUESDAY))

        assert [b.id for b in repo.list_for_calendar(calendar.id)] == [block.id]
        assert repo.delete(block.id) is True
        assert repo.delete(block.id) is False
