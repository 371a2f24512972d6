"""
Appointment Handler

Orquestra o ciclo de vida do agendamento:

    pending -> confirmed (aprovação) | cancelled
    confirmed -> cancelled
    cancelled é final

Um handler por requisição; o contexto de autorização chega pronto e nada é
compartilhado entre requisições.
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Mapping, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from agenda import config
from agenda.core.errors import SchedulingError
from agenda.core.security import AuthorizationContext
from agenda.repositories.appointment import AppointmentRepository, generate_confirmation_token
from agenda.repositories.blocked_date import BlockedDateRepository
from agenda.repositories.calendar import CalendarRepository, CalendarSettings
from agenda.scheduling.availability import AvailabilityCalculator
from agenda.scheduling.times import add_minutes, format_time, local_now, parse_date, parse_time, utc_now
from agenda.scheduling.validator import AppointmentValidator

logger = logging.getLogger(__name__)


class AppointmentHandler:
    def __init__(
        self,
        calendar_repository,
        appointment_repository,
        blocked_date_repository,
        auth: Optional[AuthorizationContext] = None,
        validator: Optional[AppointmentValidator] = None,
        clock: Callable[[], datetime] = local_now,
        holidays=None,
    ):
        self.calendar_repository = calendar_repository
        self.appointment_repository = appointment_repository
        self.blocked_date_repository = blocked_date_repository
        self.auth = auth or AuthorizationContext.anonymous()
        self.clock = clock
        self.holidays = config.GLOBAL_HOLIDAYS if holidays is None else holidays
        self.validator = validator or AppointmentValidator(
            appointment_repository, blocked_date_repository, clock=clock, holidays=self.holidays
        )

    @classmethod
    def from_session(cls, session: Session, auth: Optional[AuthorizationContext] = None) -> "AppointmentHandler":
        return cls(
            CalendarRepository(session),
            AppointmentRepository(session),
            BlockedDateRepository(session),
            auth=auth,
        )

    # =========================
    # DISPONIBILIDADE
    # =========================

    def get_available_slots(self, calendar_id: int, day: str) -> Union[list, SchedulingError]:
        calendar = self.calendar_repository.get_with_working_hours(calendar_id)
        if calendar is None:
            return SchedulingError("invalid_calendar")
        if not calendar.is_active:
            return SchedulingError("calendar_inactive")
        if calendar.is_private and not self.auth.is_authenticated:
            return SchedulingError("login_required")

        target = parse_date(day)
        if target is None:
            return SchedulingError("invalid_date")

        calculator = AvailabilityCalculator(self.appointment_repository, self.blocked_date_repository, self.holidays)
        return calculator.get_available_slots(calendar, target, self.auth)

    # =========================
    # CRIAÇÃO
    # =========================

    def process_appointment(self, data: Mapping) -> Union[dict, SchedulingError]:
        calendar = self.calendar_repository.get_with_working_hours(data.get("calendar_id"))
        if calendar is None:
            return SchedulingError("invalid_calendar")
        if not calendar.is_active:
            return SchedulingError("calendar_inactive")

        if not data.get("consent_given"):
            return SchedulingError("consent_required")

        repo = self.appointment_repository
        repo.begin_transaction()

        try:
            result = self.validator.validate(data, calendar, self.auth)
            if isinstance(result, SchedulingError):
                repo.rollback()
                return result

            row = self._build_row(data, calendar)
            appointment_id = repo.create_appointment(row)
            if not appointment_id:
                repo.rollback()
                logger.error(f"❌ Appointment insert failed on calendar {calendar.id}")
                return SchedulingError("creation_failed")

            repo.commit()
        except SQLAlchemyError:
            logger.exception(f"❌ Storage error while booking on calendar {calendar.id}")
            repo.rollback()
            return SchedulingError("creation_failed")
        except Exception:
            # nada foi gravado: libera a transação e deixa o erro subir
            repo.rollback()
            raise

        created = repo.find_by_id(appointment_id)
        token = created.confirmation_token if created is not None else row["confirmation_token"]

        logger.info(
            f"✅ Appointment {appointment_id} created on calendar {calendar.id} "
            f"({row['appointment_date']} {format_time(row['start_time'])}, {row['status']})"
        )

        return {
            "success": True,
            "requires_approval": bool(calendar.requires_approval),
            "appointment_id": appointment_id,
            "confirmation_token": token,
        }

    def _build_row(self, data: Mapping, calendar: CalendarSettings) -> dict:
        start = parse_time(data.get("start_time"))

        if calendar.requires_approval:
            status, approved_at = "pending", None
        else:
            status, approved_at = "confirmed", utc_now()

        return {
            "calendar_id": calendar.id,
            "user_id": self.auth.user_id,
            "appointment_date": parse_date(data.get("appointment_date")),
            "start_time": start,
            "end_time": add_minutes(start, calendar.slot_duration),
            "name": data.get("name"),
            "email": data.get("email") or self.auth.email,
            "cpf_rf": data.get("cpf_rf"),
            "phone": data.get("phone"),
            "user_notes": data.get("user_notes"),
            "user_ip": data.get("user_ip"),
            "consent_given": True,
            "status": status,
            "approved_at": approved_at,
            "confirmation_token": generate_confirmation_token(),
        }

    # =========================
    # CANCELAMENTO / APROVAÇÃO
    # =========================

    def cancel_appointment(
        self,
        appointment_id: int,
        token: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Union[bool, SchedulingError]:
        appointment = self.appointment_repository.find_by_id(appointment_id)
        if appointment is None:
            return SchedulingError("not_found")

        calendar = self.calendar_repository.find_by_id(appointment.calendar_id)

        # autorização antes do status: quem não pode cancelar não fica sabendo do estado
        if not self._can_manage(appointment, token):
            return SchedulingError("unauthorized")

        if appointment.status == "cancelled":
            return SchedulingError("already_cancelled")

        if not self.auth.has_scheduling_bypass():
            error = self._check_cancellation_policy(appointment, calendar)
            if error is not None:
                return error

        cancelled = self.appointment_repository.cancel(appointment_id, self.auth.user_id, reason)
        if cancelled:
            logger.info(f"Appointment {appointment_id} cancelled (by user {self.auth.user_id})")
        return cancelled

    def _can_manage(self, appointment, token: Optional[str]) -> bool:
        if self.auth.has_scheduling_bypass():
            return True
        if self.auth.is_authenticated and appointment.user_id == self.auth.user_id:
            return True
        if token and appointment.confirmation_token:
            return secrets.compare_digest(str(token), str(appointment.confirmation_token))
        return False

    def _check_cancellation_policy(self, appointment, calendar) -> Optional[SchedulingError]:
        if calendar is not None and not calendar.allow_cancellation:
            return SchedulingError("cancellation_not_allowed")

        min_hours = calendar.cancellation_min_hours if calendar is not None else 0
        remaining = self._hours_until(appointment)
        if remaining <= 0 or remaining < min_hours:
            return SchedulingError("cancellation_window_closed")
        return None

    def _hours_until(self, appointment) -> float:
        starts_at = datetime.combine(parse_date(appointment.appointment_date), parse_time(appointment.start_time))
        return (starts_at - self.clock()) / timedelta(hours=1)

    def approve_appointment(self, appointment_id: int) -> Union[bool, SchedulingError]:
        if not self.auth.has_scheduling_bypass():
            return SchedulingError("unauthorized")

        appointment = self.appointment_repository.find_by_id(appointment_id)
        if appointment is None:
            return SchedulingError("not_found")
        if appointment.status == "cancelled":
            return SchedulingError("already_cancelled")
        if appointment.status != "pending":
            return SchedulingError("invalid_status")

        approved = self.appointment_repository.confirm(appointment_id, self.auth.user_id)
        if approved:
            logger.info(f"Appointment {appointment_id} approved by user {self.auth.user_id}")
        return approved

    # =========================
    # MEUS AGENDAMENTOS
    # =========================

    def get_user_appointments(self) -> Union[list, SchedulingError]:
        if not self.auth.is_authenticated:
            return SchedulingError("login_required")

        calendars = {}
        result = []
        for appointment in self.appointment_repository.find_by_user_id(self.auth.user_id):
            if appointment.calendar_id not in calendars:
                calendars[appointment.calendar_id] = self.calendar_repository.find_by_id(appointment.calendar_id)
            calendar = calendars[appointment.calendar_id]

            result.append(
                {
                    "id": appointment.id,
                    "calendar_id": appointment.calendar_id,
                    "calendar_title": calendar.title if calendar else None,
                    "appointment_date": parse_date(appointment.appointment_date).isoformat(),
                    "start_time": format_time(parse_time(appointment.start_time)),
                    "end_time": format_time(parse_time(appointment.end_time)),
                    "status": appointment.status,
                    "can_cancel": self._can_cancel(appointment, calendar),
                }
            )
        return result

    def _can_cancel(self, appointment, calendar) -> bool:
        if appointment.status == "cancelled" or self._hours_until(appointment) <= 0:
            return False
        if self.auth.has_scheduling_bypass():
            return True
        return self._check_cancellation_policy(appointment, calendar) is None
