"""Shared test fixtures for the scheduling engine tests."""

from datetime import date, datetime, time
from typing import Generator

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session

from agenda.database import create_db_and_tables, create_db_engine
from agenda.models.appointment import Appointment
from agenda.models.calendar import Calendar
from agenda.models.user import User
from agenda.core.security import get_password_hash
from agenda.repositories.appointment import generate_confirmation_token
from agenda.scheduling.times import add_minutes
from agenda.scheduling.working_hours import WorkingHours

# 2030-01-14 é segunda-feira
MONDAY = date(2030, 1, 14)
TUESDAY = date(2030, 1, 15)
SUNDAY = date(2030, 1, 13)

WEEKDAY_HOURS = [{"day": d, "start": "09:00", "end": "17:00"} for d in range(1, 6)]


@pytest.fixture
def engine() -> Engine:
    """In-memory SQLite engine shared by a single session."""
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    create_db_and_tables(engine)
    return engine


@pytest.fixture
def file_engine(tmp_path) -> Engine:
    """File-backed SQLite engine, for tests that open several connections."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'agenda-test.db'}")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def fixed_now() -> datetime:
    """Monday 2030-01-14 08:00 local time."""
    return datetime(2030, 1, 14, 8, 0)


@pytest.fixture
def clock(fixed_now):
    return lambda: fixed_now


def make_calendar(session: Session, **overrides) -> Calendar:
    values = dict(
        title="Atendimento",
        slot_duration=30,
        max_appointments_per_slot=1,
        minimum_interval_between_bookings=0,
        cancellation_min_hours=24,
        working_hours=WorkingHours.parse(WEEKDAY_HOURS).to_json(),
    )
    values.update(overrides)
    calendar = Calendar(**values)
    session.add(calendar)
    session.commit()
    session.refresh(calendar)
    return calendar


def make_appointment(session: Session, calendar_id: int, day: date, start: time, **overrides) -> Appointment:
    values = dict(
        calendar_id=calendar_id,
        appointment_date=day,
        start_time=start,
        end_time=add_minutes(start, 30),
        email="someone@example.com",
        cpf_rf="52998224725",
        status="confirmed",
        confirmation_token=generate_confirmation_token(),
    )
    values.update(overrides)
    appointment = Appointment(**values)
    session.add(appointment)
    session.commit()
    session.refresh(appointment)
    return appointment


def make_user(session: Session, email: str, role: str = "user", **overrides) -> User:
    user = User(
        name=email.split("@")[0],
        email=email,
        role=role,
        password_hash=get_password_hash("secret"),
        **overrides,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def calendar(session) -> Calendar:
    """Active calendar, Mon-Fri 09:00-17:00, 30 min slots, capacity 1."""
    return make_calendar(session)


@pytest.fixture
def valid_submission() -> dict:
    return {
        "calendar_id": 1,
        "appointment_date": "2030-01-15",
        "start_time": "10:00",
        "name": "Ana",
        "email": "ana@example.com",
        "cpf_rf": "529.982.247-25",
        "consent_given": True,
    }
