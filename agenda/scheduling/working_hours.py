"""
Working Hours

Typed view over a calendar's ``working_hours`` column. Two stored formats are
accepted (plus their JSON-encoded strings):

- list:  [{"day": 0-6, "start": "09:00", "end": "17:00"}, ...]   (0 = Sunday)
- keyed: {"mon": {"start": "08:00", "end": "18:00", "closed": false}, ...}
         or {"1": [{"start": "08:00", "end": "12:00"}, ...], ...}

The configuration is decoded once, at the repository boundary, into a
``WorkingHours`` instance; nothing downstream touches the raw JSON.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import date, time
from typing import Any, Dict, List, NamedTuple, Set, Union

from agenda.scheduling.times import parse_date, parse_time

logger = logging.getLogger(__name__)


DAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


class TimeWindow(NamedTuple):
    start: time
    end: time


def weekday_index(day: date) -> int:
    """0 = Sunday ... 6 = Saturday (ISO weekday modulo 7)."""
    return day.isoweekday() % 7


@dataclass
class WorkingHours:
    # dia da semana -> janelas, na ordem em que foram configuradas
    days: Dict[int, List[TimeWindow]] = field(default_factory=dict)
    closed: Set[int] = field(default_factory=set)

    def is_empty(self) -> bool:
        return not self.days and not self.closed

    def is_configured(self, weekday: int) -> bool:
        return weekday in self.days or weekday in self.closed

    def windows_for(self, weekday: int) -> List[TimeWindow]:
        if weekday in self.closed:
            return []
        return list(self.days.get(weekday, []))

    @classmethod
    def parse(cls, raw: Union[str, list, dict, None, "WorkingHours"]) -> "WorkingHours":
        if isinstance(raw, WorkingHours):
            return raw

        if isinstance(raw, str):
            try:
                raw = json.loads(raw) if raw.strip() else None
            except ValueError:
                logger.warning("Ignoring undecodable working_hours JSON")
                raw = None

        hours = cls()
        if isinstance(raw, list):
            for entry in raw:
                if isinstance(entry, dict) and "day" in entry:
                    hours._add(_to_weekday(entry["day"]), entry)
        elif isinstance(raw, dict):
            for key, value in raw.items():
                weekday = _to_weekday(key)
                if weekday is None:
                    continue
                entries = value if isinstance(value, list) else [value]
                for entry in entries:
                    if isinstance(entry, dict):
                        hours._add(weekday, entry)
        return hours

    def _add(self, weekday, entry: Dict[str, Any]) -> None:
        if weekday is None:
            return
        if entry.get("closed"):
            self.closed.add(weekday)
            return

        start = parse_time(entry.get("start"))
        end = parse_time(entry.get("end"))
        if start is None or end is None or end <= start:
            # dia presente mas sem janela válida: fica "configurado" sem horários
            self.days.setdefault(weekday, [])
            return
        self.days.setdefault(weekday, []).append(TimeWindow(start, end))

    def to_json(self) -> list:
        """Serialise back to the list format."""
        data = [{"day": weekday, "closed": True} for weekday in sorted(self.closed)]
        for weekday in sorted(self.days):
            for window in self.days[weekday]:
                data.append(
                    {
                        "day": weekday,
                        "start": window.start.strftime("%H:%M"),
                        "end": window.end.strftime("%H:%M"),
                    }
                )
        return data


def _to_weekday(key) -> Union[int, None]:
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key % 7 if 0 <= key <= 7 else None

    key = str(key).strip().lower()
    if key.isdigit():
        return _to_weekday(int(key))
    if key[:3] in DAY_NAMES:
        return DAY_NAMES.index(key[:3])
    return None


def resolve_windows(working_hours, target_date: Union[date, str]) -> List[TimeWindow]:
    """Open windows for the weekday of ``target_date`` (empty when closed/absent).

    Holidays and blocked dates are not considered here.
    """
    hours = WorkingHours.parse(working_hours)
    day = parse_date(target_date)
    if day is None:
        return []
    return hours.windows_for(weekday_index(day))


def is_within_working_hours(working_hours, target_date: Union[date, str], start: Union[time, str]) -> bool:
    """True when ``start`` falls inside an open window (start inclusive, end exclusive).

    An empty configuration or an unconfigured weekday means "no restriction".
    """
    hours = WorkingHours.parse(working_hours)
    if hours.is_empty():
        return True

    day = parse_date(target_date)
    at = parse_time(start)
    if day is None or at is None:
        return False

    weekday = weekday_index(day)
    if not hours.is_configured(weekday):
        return True
    if weekday in hours.closed:
        return False

    return any(window.start <= at < window.end for window in hours.days[weekday])
