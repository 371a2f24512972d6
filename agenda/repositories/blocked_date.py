"""Blocked date repository - holidays and blocks per calendar"""

from datetime import date, time
from typing import Optional

from sqlmodel import Session, or_, select

from agenda.models.blocked_date import BLOCK_TYPES, BlockedDate, BlockedDateCreate
from agenda.scheduling.blocking import matches_recurring_pattern
from agenda.scheduling.working_hours import TimeWindow


def _covers(block: BlockedDate, day: date) -> bool:
    if block.block_type == "recurring":
        if day < block.start_date or (block.end_date and day > block.end_date):
            return False
        return matches_recurring_pattern(day, block.recurring_pattern)

    end = block.end_date or block.start_date
    return block.start_date <= day <= end


class BlockedDateRepository:
    """Repository for blocked dates (calendar_id NULL applies to every calendar)"""

    def __init__(self, session: Session):
        self.session = session

    def get_blocks_for_date(self, calendar_id: int, day: date) -> list[BlockedDate]:
        candidates = self.session.exec(
            select(BlockedDate).where(
                or_(BlockedDate.calendar_id == calendar_id, BlockedDate.calendar_id.is_(None)),
                BlockedDate.start_date <= day,
            )
        ).all()
        return [b for b in candidates if _covers(b, day)]

    def is_date_blocked(self, calendar_id: int, day: date, at: Optional[time] = None) -> bool:
        """Whole-day blocks always count; time ranges only when ``at`` is given."""
        for block in self.get_blocks_for_date(calendar_id, day):
            if block.block_type in ("full_day", "recurring"):
                return True
            if block.block_type == "time_range" and at is not None:
                if block.start_time and block.end_time and block.start_time <= at < block.end_time:
                    return True
        return False

    def get_time_ranges(self, calendar_id: int, day: date) -> list[TimeWindow]:
        return [
            TimeWindow(b.start_time, b.end_time)
            for b in self.get_blocks_for_date(calendar_id, day)
            if b.block_type == "time_range" and b.start_time and b.end_time
        ]

    def list_for_calendar(self, calendar_id: Optional[int] = None) -> list[BlockedDate]:
        query = select(BlockedDate)
        if calendar_id is not None:
            query = query.where(BlockedDate.calendar_id == calendar_id)
        return self.session.exec(query.order_by(BlockedDate.start_date)).all()

    def create(self, data: BlockedDateCreate, created_by: Optional[int] = None) -> BlockedDate:
        if data.block_type not in BLOCK_TYPES:
            raise ValueError(f"Invalid block type: {data.block_type}")

        block = BlockedDate(**data.model_dump(), created_by=created_by)
        self.session.add(block)
        self.session.commit()
        self.session.refresh(block)
        return block

    def delete(self, block_id: int) -> bool:
        block = self.session.get(BlockedDate, block_id)
        if not block:
            return False
        self.session.delete(block)
        self.session.commit()
        return True
