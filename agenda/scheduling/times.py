"""Date/time parsing and formatting shared by the scheduling services."""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

import pytz

from agenda import config


DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def utc_now() -> datetime:
    """Timezone-aware UTC timestamp for audit columns (created_at, cancelled_at ...)."""
    return datetime.now(timezone.utc)


def local_now() -> datetime:
    """Current wall-clock time in the configured timezone (naive)."""
    try:
        tz = pytz.timezone(config.TIMEZONE)
    except pytz.UnknownTimeZoneError:
        tz = pytz.UTC
    return datetime.now(tz).replace(tzinfo=None)


def parse_date(value: Union[date, str, None]) -> Optional[date]:
    """Parse ``YYYY-MM-DD``; returns None for malformed or impossible dates."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None

    value = str(value).strip()
    if not DATE_RE.match(value):
        return None

    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        # ex.: 2030-02-30
        return None


def parse_time(value: Union[time, timedelta, str, None]) -> Optional[time]:
    """Parse ``HH:MM`` or ``HH:MM:SS`` (hour < 24, minute/second < 60)."""
    if isinstance(value, time):
        return value
    if isinstance(value, timedelta):
        # timedelta desde a meia-noite
        return (datetime.min + value).time()
    if not value:
        return None

    match = TIME_RE.match(str(value).strip())
    if not match:
        return None

    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3) or 0)
    if hour >= 24 or minute >= 60 or second >= 60:
        return None
    return time(hour, minute, second)


def format_time(value: time) -> str:
    return value.strftime("%H:%M:%S")


def format_display(value: time) -> str:
    return value.strftime("%H:%M")


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def ends_before_midnight(value: time, minutes: int) -> bool:
    return to_minutes(value) + minutes < 24 * 60


def add_minutes(value: time, minutes: int) -> time:
    if not ends_before_midnight(value, minutes):
        raise ValueError(f"{format_display(value)} + {minutes} min passes midnight")
    return from_minutes(to_minutes(value) + minutes)
