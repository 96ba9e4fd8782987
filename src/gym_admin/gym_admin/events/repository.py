from __future__ import annotations

from datetime import date, time
from typing import Optional, Protocol, Sequence

from ..core.enums import EventStatus
from .model import Event


class EventStore(Protocol):
    """Durable persistence for agenda events.

    Every method is a suspension point. Implementations raise ``StoreError``
    when the store is unreachable and ``ConflictError`` when the store itself
    refuses a second active event in a slot.
    """

    async def list_all(self) -> Sequence[Event]:
        raise NotImplementedError

    async def list_range(self, *, start: date, end: date) -> Sequence[Event]:
        raise NotImplementedError

    async def get(self, event_id: int) -> Optional[Event]:
        raise NotImplementedError

    async def insert(
        self,
        *,
        title: str,
        date: date,
        time: time,
        responsible: str,
        status: EventStatus = EventStatus.ACTIVE,
    ) -> Event:
        raise NotImplementedError

    async def update(self, event_id: int, **changes) -> Event:
        """Partial update; raises ``NotFoundError`` when the id is unknown."""

        raise NotImplementedError

    async def delete(self, event_id: int) -> bool:
        raise NotImplementedError
