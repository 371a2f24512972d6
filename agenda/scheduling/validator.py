"""
Appointment Validator

Regras aplicadas a uma solicitação de agendamento, sempre na mesma ordem e
parando na primeira falha:

    1. campos obrigatórios           -> missing_fields
    2. data                          -> invalid_date
    3. horário                       -> invalid_time
    4. CPF / RF                      -> cpf_rf_required / invalid_cpf_rf
    5. calendário privado            -> login_required
       a. data no passado            -> past_date
       b. janela de antecedência     -> booking_window_min / booking_window_max
       c. feriado / bloqueio         -> date_blocked
    6. capacidade do horário         -> slot_full (nunca ignorada)
    7. limite diário                 -> daily_limit
    8. intervalo entre reservas      -> booking_too_soon
    9. horário de funcionamento      -> outside_working_hours
       a. início fora da grade de slots -> invalid_slot

Quem tem bypass pula 5a-5c, 7, 8 e 9 (9a inclusive).
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable, Mapping, Optional, Union

from agenda.core.errors import SchedulingError
from agenda.core.security import AuthorizationContext
from agenda.scheduling import working_hours as wh
from agenda.scheduling.blocking import is_day_blocked
from agenda.scheduling.documents import only_digits, validate_cpf, validate_rf
from agenda.scheduling.slots import generate_day_slots
from agenda.scheduling.times import ends_before_midnight, local_now, parse_date, parse_time

logger = logging.getLogger(__name__)


def resolve_identity(data: Mapping, auth: Optional[AuthorizationContext] = None):
    """User id when logged in, else email, else the CPF/RF digits."""
    if auth is not None and auth.is_authenticated:
        return auth.user_id
    email = (data.get("email") or "").strip().lower()
    if email:
        return email
    return only_digits(data.get("cpf_rf") or "") or None


class AppointmentValidator:
    def __init__(
        self,
        appointment_repository,
        blocked_date_repository,
        clock: Callable[[], datetime] = local_now,
        holidays: Optional[Iterable[str]] = None,
    ):
        self.appointment_repository = appointment_repository
        self.blocked_date_repository = blocked_date_repository
        self.clock = clock
        self.holidays = holidays

    def validate(
        self,
        data: Mapping,
        calendar,
        auth: Optional[AuthorizationContext] = None,
    ) -> Union[bool, SchedulingError]:
        """Returns ``True`` or the first ``SchedulingError`` found."""
        auth = auth or AuthorizationContext.anonymous()
        error = self._run(data, calendar, auth)
        if error is not None:
            logger.info(f"Booking rejected on calendar {calendar.id}: {error.code}")
            return error
        return True

    def _run(self, data: Mapping, calendar, auth: AuthorizationContext) -> Optional[SchedulingError]:
        raw_date = data.get("appointment_date")
        raw_time = data.get("start_time")
        email = (data.get("email") or "").strip()

        # 1. obrigatórios
        if not raw_date or not raw_time or (not auth.is_authenticated and not email):
            return SchedulingError("missing_fields")

        # 2 / 3. formato
        day = parse_date(raw_date)
        if day is None:
            return SchedulingError("invalid_date")

        start = parse_time(raw_time)
        # o término precisa caber no mesmo dia
        if start is None or not ends_before_midnight(start, calendar.slot_duration):
            return SchedulingError("invalid_time")

        # 4. documento
        document = only_digits(data.get("cpf_rf") or "")
        if not document:
            return SchedulingError("cpf_rf_required")
        if not (validate_cpf(document) or validate_rf(document)):
            return SchedulingError("invalid_cpf_rf")

        # 5. visibilidade
        if calendar.booking_requires_login and not auth.is_authenticated:
            return SchedulingError("login_required")

        bypass = auth.has_scheduling_bypass()

        if not bypass:
            error = self._check_booking_window(calendar, day, start)
            if error is not None:
                return error

            if is_day_blocked(self.blocked_date_repository, calendar.id, day, start, self.holidays):
                return SchedulingError("date_blocked")

        # 6. capacidade, conferida dentro da transação de quem chama
        if not self.appointment_repository.is_slot_available(
            calendar.id, day, start, calendar.max_appointments_per_slot, lock=True
        ):
            return SchedulingError("slot_full")

        if bypass:
            return None

        identity = resolve_identity(data, auth)

        # 7. limite diário
        if calendar.slots_per_day > 0:
            if self.get_daily_appointment_count(identity, calendar.id, day) >= calendar.slots_per_day:
                return SchedulingError("daily_limit")

        # 8. anti-abuso
        result = self.check_booking_interval(identity, calendar.id, calendar.minimum_interval_between_bookings)
        if result is not True:
            return result

        # 9. funcionamento
        if not self.is_within_working_hours(day, start, calendar):
            return SchedulingError("outside_working_hours")

        if not self.is_on_slot_grid(day, start, calendar):
            return SchedulingError("invalid_slot")

        return None

    def _check_booking_window(self, calendar, day: date, start: time) -> Optional[SchedulingError]:
        now = self.clock()
        starts_at = datetime.combine(day, start)

        if starts_at < now:
            return SchedulingError("past_date")

        if calendar.advance_booking_min > 0 and starts_at < now + timedelta(hours=calendar.advance_booking_min):
            return SchedulingError("booking_window_min")

        if calendar.advance_booking_max > 0 and day > now.date() + timedelta(days=calendar.advance_booking_max):
            return SchedulingError("booking_window_max")

        return None

    def get_daily_appointment_count(self, identity, calendar_id: int, day: date) -> int:
        """Active appointments of ``identity`` on ``day`` for the calendar."""
        if identity is None:
            return 0

        rows = self.appointment_repository.get_appointments_by_date(calendar_id, day)
        return sum(1 for row in rows if _belongs_to(row, identity))

    def check_booking_interval(self, identity, calendar_id: int, min_hours: int) -> Union[bool, SchedulingError]:
        """
        Impede que a mesma pessoa reserve de novo enquanto tiver um
        agendamento próximo (menos de ``min_hours`` horas a partir de agora).

        Args:
            identity: id do usuário (int), email (contém "@") ou CPF/RF
            calendar_id: só agendamentos deste calendário contam
            min_hours: 0 desliga a regra

        Returns:
            True ou SchedulingError("booking_too_soon")
        """
        if not min_hours or identity is None:
            return True

        if isinstance(identity, int):
            appointments = self.appointment_repository.find_by_user_id(identity)
        elif "@" in str(identity):
            appointments = self.appointment_repository.find_by_email(identity)
        else:
            appointments = self.appointment_repository.find_by_cpf_rf(identity)

        now = self.clock()
        limit = now + timedelta(hours=min_hours)

        for appointment in appointments:
            if appointment.status == "cancelled" or appointment.calendar_id != calendar_id:
                continue

            day = parse_date(appointment.appointment_date)
            start = parse_time(appointment.start_time)
            if day is None or start is None:
                continue

            starts_at = datetime.combine(day, start)
            if now < starts_at < limit:
                return SchedulingError("booking_too_soon")

        return True

    def is_within_working_hours(self, day: Union[date, str], start: Union[time, str], calendar) -> bool:
        return wh.is_within_working_hours(calendar.working_hours, day, start)

    def is_on_slot_grid(self, day: date, start: time, calendar) -> bool:
        """``start`` is one of the generated slot starts for the day.

        Days without windows are not restricted (same rule as working hours).
        """
        windows = wh.resolve_windows(calendar.working_hours, day)
        if not windows:
            return True
        slots = generate_day_slots(windows, calendar.slot_duration, calendar.slot_interval)
        return any(slot.start == start for slot in slots)


def _belongs_to(row, identity) -> bool:
    if isinstance(identity, int):
        return row.user_id == identity
    if "@" in identity:
        return (row.email or "").lower() == identity
    return only_digits(row.cpf_rf or "") == identity
