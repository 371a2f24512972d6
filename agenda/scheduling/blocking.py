"""
Date Blocking

Holiday / blocked-date checks shared by availability and validation.
"""

from datetime import date, time
from typing import Iterable, Optional

from agenda import config
from agenda.scheduling.times import parse_date
from agenda.scheduling.working_hours import weekday_index


def matches_recurring_pattern(day: date, pattern) -> bool:
    """
    Verifica um padrão recorrente.

    - weekly:  {"type": "weekly", "days": [0, 6]}    (0 = domingo)
    - monthly: {"type": "monthly", "days": [1, 15]}
    - yearly:  {"type": "yearly", "dates": ["12-25"]}

    Padrão vazio, sem ``type`` ou de tipo desconhecido nunca casa.
    """
    if not isinstance(pattern, dict) or not pattern:
        return False

    kind = pattern.get("type")
    if kind == "weekly":
        return weekday_index(day) in _ints(pattern.get("days"))
    if kind == "monthly":
        return day.day in _ints(pattern.get("days"))
    if kind == "yearly":
        return day.strftime("%m-%d") in set(pattern.get("dates") or [])
    return False


def _ints(values) -> set:
    result = set()
    for value in values or []:
        try:
            result.add(int(value))
        except (TypeError, ValueError):
            continue
    return result


def is_global_holiday(day: date, holidays: Optional[Iterable[str]] = None) -> bool:
    if holidays is None:
        holidays = config.GLOBAL_HOLIDAYS
    return any(parse_date(h) == day for h in holidays)


def is_day_blocked(
    blocked_date_repository,
    calendar_id: int,
    day: date,
    at: Optional[time] = None,
    holidays: Optional[Iterable[str]] = None,
) -> bool:
    """Global holiday, or a calendar/global block covering the date (and time)."""
    if is_global_holiday(day, holidays):
        return True
    return blocked_date_repository.is_date_blocked(calendar_id, day, at)
