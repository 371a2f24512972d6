"""Calendar repository - database access for calendars"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlmodel import Session, select

from agenda.models.calendar import CALENDAR_STATUSES, Calendar, CalendarCreate
from agenda.scheduling.times import utc_now
from agenda.scheduling.working_hours import WorkingHours

logger = logging.getLogger(__name__)


@dataclass
class CalendarSettings:
    """Detached snapshot of a calendar row with decoded working hours."""

    id: int
    title: str = ""
    status: str = "active"
    slot_duration: int = 30
    slot_interval: int = 0
    slots_per_day: int = 0
    max_appointments_per_slot: int = 1
    advance_booking_min: int = 0
    advance_booking_max: int = 0
    allow_cancellation: bool = True
    cancellation_min_hours: int = 0
    minimum_interval_between_bookings: int = 0
    requires_approval: bool = False
    visibility: str = "public"
    scheduling_visibility: str = "public"
    working_hours: WorkingHours = field(default_factory=WorkingHours)

    def __post_init__(self):
        self.working_hours = WorkingHours.parse(self.working_hours)

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def is_private(self) -> bool:
        return self.visibility == "private"

    @property
    def booking_requires_login(self) -> bool:
        return self.scheduling_visibility == "private" or self.is_private

    @classmethod
    def from_row(cls, row: Calendar) -> "CalendarSettings":
        return cls(
            id=row.id,
            title=row.title,
            status=row.status,
            slot_duration=row.slot_duration,
            slot_interval=row.slot_interval,
            slots_per_day=row.slots_per_day,
            max_appointments_per_slot=row.max_appointments_per_slot,
            advance_booking_min=row.advance_booking_min,
            advance_booking_max=row.advance_booking_max,
            allow_cancellation=row.allow_cancellation,
            cancellation_min_hours=row.cancellation_min_hours,
            minimum_interval_between_bookings=row.minimum_interval_between_bookings,
            requires_approval=row.requires_approval,
            visibility=row.visibility,
            scheduling_visibility=row.scheduling_visibility,
            working_hours=WorkingHours.parse(row.working_hours),
        )


class CalendarRepository:
    """Repository for calendar database operations"""

    def __init__(self, session: Session):
        self.session = session

    def get_row(self, calendar_id: int) -> Optional[Calendar]:
        return self.session.get(Calendar, calendar_id)

    def find_by_id(self, calendar_id: int) -> Optional[CalendarSettings]:
        row = self.get_row(calendar_id)
        return CalendarSettings.from_row(row) if row else None

    def get_with_working_hours(self, calendar_id: int) -> Optional[CalendarSettings]:
        """Calendar with its working-hours JSON decoded into ``WorkingHours``."""
        return self.find_by_id(calendar_id)

    def get_active_calendars(self, limit: int = 50, offset: int = 0) -> list[Calendar]:
        return self.session.exec(
            select(Calendar)
            .where(Calendar.status == "active")
            .order_by(Calendar.title)
            .offset(offset)
            .limit(limit)
        ).all()

    def create(self, data: CalendarCreate, created_by: Optional[int] = None) -> Calendar:
        values = data.model_dump()
        values["working_hours"] = WorkingHours.parse(values.get("working_hours")).to_json()

        calendar = Calendar(**values, created_by=created_by)
        self.session.add(calendar)
        self.session.commit()
        self.session.refresh(calendar)
        logger.info(f"Calendar {calendar.id} created by user {created_by}")
        return calendar

    def update_working_hours(self, calendar_id: int, working_hours) -> bool:
        calendar = self.get_row(calendar_id)
        if not calendar:
            return False

        calendar.working_hours = WorkingHours.parse(working_hours).to_json()
        calendar.updated_at = utc_now()
        self.session.add(calendar)
        self.session.commit()
        return True

    def update_status(self, calendar_id: int, status: str) -> bool:
        if status not in CALENDAR_STATUSES:
            raise ValueError(f"Invalid calendar status: {status}")

        calendar = self.get_row(calendar_id)
        if not calendar:
            return False

        calendar.status = status
        calendar.updated_at = utc_now()
        self.session.add(calendar)
        self.session.commit()
        return True
