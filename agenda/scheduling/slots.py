"""
Slot Generation

Turns working-hours windows into discrete candidate start times.
"""

from dataclasses import dataclass
from datetime import time
from typing import Iterable, List

from agenda.scheduling.times import format_display, format_time, from_minutes, to_minutes
from agenda.scheduling.working_hours import TimeWindow


@dataclass(frozen=True)
class Slot:
    start: time

    @property
    def time(self) -> str:
        return format_time(self.start)

    @property
    def display(self) -> str:
        return format_display(self.start)


def generate_slots(window: TimeWindow, slot_duration: int, slot_interval: int = 0) -> List[Slot]:
    """
    Gera os slots de uma janela.

    Cada slot começa em ``anterior + duração + intervalo``; a geração para
    quando o próximo início alcança o fechamento da janela
    (09:00-10:30, 30 + 10 min -> 09:00, 09:40, 10:20).

    Args:
        window: janela de atendimento (start, end)
        slot_duration: duração do slot em minutos (> 0)
        slot_interval: pausa entre slots em minutos (>= 0)

    Returns:
        list[Slot] em ordem crescente
    """
    if slot_duration <= 0:
        raise ValueError("slot_duration must be positive")
    step = slot_duration + max(slot_interval, 0)

    window_start = to_minutes(window.start)
    window_end = to_minutes(window.end)

    slots = []
    current = window_start
    while current < window_end:
        slots.append(Slot(from_minutes(current)))
        current += step

    return slots


def generate_day_slots(windows: Iterable[TimeWindow], slot_duration: int, slot_interval: int = 0) -> List[Slot]:
    """Slots for every window of the day, concatenated in window order."""
    slots: List[Slot] = []
    for window in windows:
        slots.extend(generate_slots(window, slot_duration, slot_interval))
    return slots
