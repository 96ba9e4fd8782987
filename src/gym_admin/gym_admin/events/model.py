from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..common.datetime_utils import format_clock_time
from ..core.enums import EventStatus


@dataclass(frozen=True)
class Event:
    """Domain entity: a scheduled agenda commitment."""

    id: Optional[int]
    title: str
    date: date
    time: time
    responsible: str
    status: EventStatus = EventStatus.ACTIVE
    created_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == EventStatus.ACTIVE

    @property
    def local_key(self) -> Optional[str]:
        return str(self.id) if self.id is not None else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "date": self.date.strftime("%Y-%m-%d"),
            "time": format_clock_time(self.time),
            "responsible": self.responsible,
            "status": self.status.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class EventDraft:
    """Form payload for create/edit; any field may still be missing."""

    title: Optional[str] = None
    date: Optional[date] = None
    time: Optional[time] = None
    responsible: Optional[str] = None
    status: Optional[EventStatus] = None
