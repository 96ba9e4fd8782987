from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence

from .model import AttendanceRecord


class AttendanceStore(Protocol):
    """Attendance marks; at most one per (member, day)."""

    async def list_for_date(self, day: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    async def list_range(self, *, start: date, end: date) -> Sequence[AttendanceRecord]:
        """Marks whose day falls in [start, end], both inclusive."""

        raise NotImplementedError

    async def create(self, *, member_id: str, day: date) -> AttendanceRecord:
        """Mark ``member_id`` present; marking an already present member is a no-op."""

        raise NotImplementedError

    async def delete_for_member_and_date(self, *, member_id: str, day: date) -> int:
        """Returns the number of marks removed."""

        raise NotImplementedError
