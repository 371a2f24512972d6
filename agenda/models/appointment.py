from typing import Optional
from datetime import date, datetime, time
from sqlmodel import SQLModel, Field

from agenda.scheduling.times import utc_now


ACTIVE_STATUSES = ("confirmed", "pending")


class Appointment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    calendar_id: int = Field(foreign_key="calendar.id", index=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)

    appointment_date: date = Field(index=True)
    start_time: time = Field(index=True)
    end_time: time

    # CONTATO (quem não está logado se identifica por email + CPF/RF)
    name: Optional[str] = None
    email: Optional[str] = Field(default=None, index=True)
    cpf_rf: Optional[str] = Field(default=None, index=True)
    phone: Optional[str] = None
    user_notes: Optional[str] = None
    user_ip: Optional[str] = None
    consent_given: bool = False

    # STATUS DO AGENDAMENTO
    status: str = Field(default="pending", index=True)
    # pending | confirmed | cancelled

    # token para o convidado cancelar sem login
    confirmation_token: str = Field(index=True, unique=True, max_length=64)

    approved_at: Optional[datetime] = None
    approved_by: Optional[int] = None

    cancelled_at: Optional[datetime] = Field(default=None, index=True)
    cancelled_by: Optional[int] = None
    cancellation_reason: Optional[str] = None

    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: Optional[datetime] = None


class AppointmentCreate(SQLModel):
    calendar_id: int
    appointment_date: str = ""
    start_time: str = ""
    name: Optional[str] = None
    email: Optional[str] = None
    cpf_rf: Optional[str] = None
    phone: Optional[str] = None
    user_notes: Optional[str] = None
    consent_given: bool = False


class AppointmentCancel(SQLModel):
    token: Optional[str] = None
    reason: Optional[str] = None
