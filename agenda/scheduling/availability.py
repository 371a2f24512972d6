"""
Availability

Answers "what can be booked on calendar C on day D".
"""

import logging
from collections import Counter
from datetime import date
from typing import Iterable, List, Optional, Union

from agenda.core.errors import SchedulingError
from agenda.core.security import AuthorizationContext
from agenda.scheduling.blocking import is_day_blocked
from agenda.scheduling.slots import Slot, generate_day_slots
from agenda.scheduling.times import format_time, parse_time
from agenda.scheduling.working_hours import weekday_index

logger = logging.getLogger(__name__)


class AvailabilityCalculator:
    def __init__(self, appointment_repository, blocked_date_repository, holidays: Optional[Iterable[str]] = None):
        self.appointment_repository = appointment_repository
        self.blocked_date_repository = blocked_date_repository
        self.holidays = holidays

    def get_available_slots(
        self,
        calendar,
        day: date,
        auth: Optional[AuthorizationContext] = None,
    ) -> Union[List[dict], SchedulingError]:
        """
        Calcula os horários livres do dia.

        Algoritmo:
            1. Calendário inativo -> erro
            2. Dia bloqueado/feriado (sem bypass) -> lista vazia
            3. Janelas do dia da semana -> slots candidatos
            4. Uma única consulta de agendamentos ativos -> contagem por horário
            5. Remove slots lotados e slots dentro de bloqueios de horário

        Returns:
            list[dict] com {time: "HH:MM:SS", display: "HH:MM", available: int}
        """
        if calendar is None:
            return SchedulingError("invalid_calendar")
        if not calendar.is_active:
            return SchedulingError("calendar_inactive")

        bypass = auth is not None and auth.has_scheduling_bypass()

        if not bypass and is_day_blocked(self.blocked_date_repository, calendar.id, day, holidays=self.holidays):
            logger.debug(f"Calendar {calendar.id} blocked on {day}")
            return []

        windows = calendar.working_hours.windows_for(weekday_index(day))
        if not windows:
            return []

        candidates = generate_day_slots(windows, calendar.slot_duration, calendar.slot_interval)

        booked = Counter(
            format_time(parse_time(appointment.start_time))
            for appointment in self.appointment_repository.get_appointments_by_date(calendar.id, day)
        )

        blocked_ranges = [] if bypass else self.blocked_date_repository.get_time_ranges(calendar.id, day)

        result = []
        for slot in candidates:
            available = calendar.max_appointments_per_slot - booked[slot.time]
            if available <= 0:
                continue
            if _inside_any(slot, blocked_ranges):
                continue
            result.append({"time": slot.time, "display": slot.display, "available": available})

        return result


def _inside_any(slot: Slot, ranges) -> bool:
    return any(r.start <= slot.start < r.end for r in ranges)
