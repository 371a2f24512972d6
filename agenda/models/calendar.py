from typing import Any, Optional
from datetime import datetime
from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field

from agenda.scheduling.times import utc_now


CALENDAR_STATUSES = ("active", "inactive", "archived")
VISIBILITIES = ("public", "private")


class CalendarBase(SQLModel):
    title: str
    description: Optional[str] = None

    # CONFIGURAÇÃO DOS SLOTS (minutos)
    slot_duration: int = Field(default=30, gt=0)
    slot_interval: int = Field(default=0, ge=0)  # pausa entre um slot e outro
    slots_per_day: int = Field(default=0, ge=0)  # 0 = ilimitado (por pessoa)
    max_appointments_per_slot: int = Field(default=1, ge=1)

    # JANELA DE RESERVA
    advance_booking_min: int = Field(default=0, ge=0)  # horas de antecedência mínima
    advance_booking_max: int = Field(default=30, ge=0)  # dias à frente, 0 = sem limite

    # CANCELAMENTO
    allow_cancellation: bool = True
    cancellation_min_hours: int = Field(default=24, ge=0)

    # anti-abuso: horas mínimas entre reservas da mesma pessoa (0 = desligado)
    minimum_interval_between_bookings: int = Field(default=24, ge=0)

    requires_approval: bool = False

    visibility: str = "public"  # public | private
    scheduling_visibility: str = "public"  # public | private

    status: str = Field(default="active", index=True)
    # active | inactive | archived


class Calendar(CalendarBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # [{"day": 1, "start": "09:00", "end": "17:00"}, ...] ou {"mon": {...}}
    working_hours: Any = Field(default=None, sa_column=Column(JSON))

    created_by: Optional[int] = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: Optional[datetime] = None


class CalendarCreate(CalendarBase):
    working_hours: Any = None
