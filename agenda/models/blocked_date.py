from typing import Any, Optional
from datetime import date, datetime, time
from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field

from agenda.scheduling.times import utc_now


BLOCK_TYPES = ("full_day", "time_range", "recurring")


class BlockedDateBase(SQLModel):
    # None = vale para todos os calendários
    calendar_id: Optional[int] = Field(default=None, foreign_key="calendar.id", index=True)

    block_type: str = Field(default="full_day", index=True)
    # full_day | time_range | recurring

    start_date: date = Field(index=True)
    end_date: Optional[date] = None  # bloqueio de vários dias

    # só para time_range
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    reason: str = "Bloqueio"


class BlockedDate(BlockedDateBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # {"type": "weekly", "days": [0, 6]} | {"type": "monthly", "days": [1, 15]}
    # | {"type": "yearly", "dates": ["12-25"]}
    recurring_pattern: Any = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utc_now)
    created_by: Optional[int] = Field(default=None, foreign_key="user.id")


class BlockedDateCreate(BlockedDateBase):
    recurring_pattern: Any = None
