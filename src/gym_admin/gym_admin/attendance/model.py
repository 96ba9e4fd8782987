from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one member marked present on one day."""

    id: int
    member_id: str
    check_in_date: datetime

    @property
    def day(self) -> date:
        return self.check_in_date.date()


@dataclass(frozen=True)
class DailyAttendanceCount:
    """Read-model for the weekly attendance summary."""

    day: date
    weekday_name: str
    count: int

    def to_dict(self) -> dict:
        return {"date": self.day.strftime("%Y-%m-%d"), "name": self.weekday_name, "count": self.count}
