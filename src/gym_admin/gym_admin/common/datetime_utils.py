from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Tuple

from ..core.constants import CHECK_IN_TIME, DEFAULT_WEEK_START
from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (AttributeError, ValueError):
        raise ValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD)")


def parse_clock_time(value: str) -> time:
    """Parse H:M[:S] into a minute-precision time.

    Single digit parts are accepted ("9:5" -> 09:05); seconds are dropped.
    """
    parts = (value or "").strip().split(":")
    if len(parts) < 2:
        raise ValidationError(f"Invalid time: {value!r} (expected HH:MM)")
    try:
        return time(hour=int(parts[0]), minute=int(parts[1]))
    except ValueError:
        raise ValidationError(f"Invalid time: {value!r} (expected HH:MM)")


def format_clock_time(value: time) -> str:
    return value.strftime("%H:%M")


def canonical_check_in(day: date) -> datetime:
    """Timestamp stored for an attendance mark on ``day``."""
    return datetime.combine(day, CHECK_IN_TIME)


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def week_range(today: date, *, week_start: int = DEFAULT_WEEK_START) -> Tuple[date, date]:
    """First and last day of the week containing ``today``.

    ``week_start`` uses ``date.weekday()`` numbering (Sunday=6).
    """
    offset = (today.weekday() - week_start) % 7
    start = today - timedelta(days=offset)
    return start, start + timedelta(days=6)
