"""Double-booking rule for agenda events.

Two active events collide when they share the exact same date and
minute-precision time. Denied events never collide.
"""

from __future__ import annotations

from datetime import date, time
from typing import Iterable, Optional

from .model import Event


def _minute(value: time) -> time:
    return value.replace(second=0, microsecond=0)


def find_conflict(
    events: Iterable[Event],
    candidate_date: date,
    candidate_time: time,
    exclude_id: Optional[int] = None,
) -> Optional[Event]:
    slot_time = _minute(candidate_time)
    for ev in events:
        if exclude_id is not None and ev.id == exclude_id:
            continue
        if not ev.is_active:
            continue
        if ev.date == candidate_date and _minute(ev.time) == slot_time:
            return ev
    return None


def has_conflict(
    events: Iterable[Event],
    candidate_date: date,
    candidate_time: time,
    exclude_id: Optional[int] = None,
) -> bool:
    return find_conflict(events, candidate_date, candidate_time, exclude_id) is not None
