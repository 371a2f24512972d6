"""Appointment repository - database access for appointments"""

import logging
import secrets
from datetime import date, time
from typing import Iterable, Mapping, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from agenda.models.appointment import ACTIVE_STATUSES, Appointment
from agenda.models.calendar import Calendar
from agenda.scheduling.documents import only_digits
from agenda.scheduling.times import utc_now

logger = logging.getLogger(__name__)


def generate_confirmation_token() -> str:
    return secrets.token_hex(32)


class AppointmentRepository:
    """Repository for appointment database operations"""

    def __init__(self, session: Session):
        self.session = session

    # =========================
    # TRANSAÇÃO
    # =========================

    def begin_transaction(self) -> None:
        # descarta a transação de leitura aberta automaticamente pela sessão
        if self.session.in_transaction():
            self.session.rollback()
        self.session.begin()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    # =========================
    # LEITURA
    # =========================

    def find_by_id(self, appointment_id: int) -> Optional[Appointment]:
        return self.session.get(Appointment, appointment_id)

    def get_appointments_by_date(
        self,
        calendar_id: int,
        appointment_date: date,
        statuses: Iterable[str] = ACTIVE_STATUSES,
        lock: bool = False,
    ) -> list[Appointment]:
        query = (
            select(Appointment)
            .where(
                Appointment.calendar_id == calendar_id,
                Appointment.appointment_date == appointment_date,
                Appointment.status.in_(list(statuses)),
            )
            .order_by(Appointment.start_time)
        )
        if lock:
            query = query.with_for_update()
        return self.session.exec(query).all()

    def is_slot_available(
        self,
        calendar_id: int,
        appointment_date: date,
        start_time: time,
        max_per_slot: int = 1,
        lock: bool = False,
    ) -> bool:
        """Active bookings for the slot are below ``max_per_slot``.

        With ``lock`` the calendar row is locked first (SELECT ... FOR UPDATE), so
        concurrent bookings on the same calendar wait for each other. SQLite
        ignores FOR UPDATE; there the BEGIN IMMEDIATE transaction already holds
        the writer lock.
        """
        if lock:
            self.session.exec(select(Calendar.id).where(Calendar.id == calendar_id).with_for_update())

        count = self.session.exec(
            select(func.count(Appointment.id)).where(
                Appointment.calendar_id == calendar_id,
                Appointment.appointment_date == appointment_date,
                Appointment.start_time == start_time,
                Appointment.status.in_(list(ACTIVE_STATUSES)),
            )
        ).one()
        return int(count) < max_per_slot

    def find_by_user_id(self, user_id: int, statuses: Optional[Iterable[str]] = None) -> list[Appointment]:
        query = select(Appointment).where(Appointment.user_id == user_id)
        if statuses:
            query = query.where(Appointment.status.in_(list(statuses)))
        return self.session.exec(
            query.order_by(Appointment.appointment_date.desc(), Appointment.start_time.desc())
        ).all()

    def find_by_email(self, email: str) -> list[Appointment]:
        return self.session.exec(
            select(Appointment)
            .where(Appointment.email == (email or "").strip().lower())
            .order_by(Appointment.appointment_date.desc())
        ).all()

    def find_by_cpf_rf(self, cpf_rf: str) -> list[Appointment]:
        return self.session.exec(
            select(Appointment)
            .where(Appointment.cpf_rf == only_digits(cpf_rf))
            .order_by(Appointment.appointment_date.desc())
        ).all()

    # =========================
    # ESCRITA
    # =========================

    def create_appointment(self, data: Mapping) -> Optional[int]:
        """Insere o agendamento e retorna o id, ou None se o banco recusar.

        Não faz commit: quem chama controla a transação.
        """
        values = dict(data)
        values.setdefault("confirmation_token", generate_confirmation_token())
        values.setdefault("created_at", utc_now())
        if values.get("email"):
            values["email"] = values["email"].strip().lower()
        if values.get("cpf_rf"):
            values["cpf_rf"] = only_digits(values["cpf_rf"])

        appointment = Appointment(**values)
        try:
            self.session.add(appointment)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to insert appointment: {e}")
            return None

        return appointment.id

    def cancel(self, appointment_id: int, cancelled_by: Optional[int] = None, reason: Optional[str] = None) -> bool:
        now = utc_now()
        result = self.session.exec(
            update(Appointment)
            .where(Appointment.id == appointment_id, Appointment.status != "cancelled")
            .values(
                status="cancelled",
                cancelled_at=now,
                cancelled_by=cancelled_by,
                cancellation_reason=reason,
                updated_at=now,
            )
        )
        self.session.commit()
        return result.rowcount > 0

    def confirm(self, appointment_id: int, approved_by: Optional[int] = None) -> bool:
        now = utc_now()
        result = self.session.exec(
            update(Appointment)
            .where(Appointment.id == appointment_id, Appointment.status == "pending")
            .values(status="confirmed", approved_at=now, approved_by=approved_by, updated_at=now)
        )
        self.session.commit()
        return result.rowcount > 0
