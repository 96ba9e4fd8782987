from __future__ import annotations

from datetime import date, time
from typing import Optional, Sequence

from ..core.constants import MSG_SLOT_TAKEN
from ..core.enums import EventStatus
from ..core.exceptions import ConflictError, NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, normalize_mysql_time, run_blocking
from .model import Event
from .repository import EventStore

_COLUMNS = "id, title, date, time, responsible, status, created_at"
_UPDATABLE = ("title", "date", "time", "responsible", "status")


def _to_event(r: dict) -> Event:
    return Event(
        id=int(r["id"]),
        title=r["title"],
        date=r["date"],
        time=normalize_mysql_time(r["time"]).replace(second=0),
        responsible=r["responsible"],
        status=EventStatus(r["status"]),
        created_at=r.get("created_at"),
    )


class MySQLEventRepository(EventStore):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    async def list_all(self) -> Sequence[Event]:
        return await run_blocking("load", self._list_all)

    async def list_range(self, *, start: date, end: date) -> Sequence[Event]:
        return await run_blocking("load", self._list_range, start, end)

    async def get(self, event_id: int) -> Optional[Event]:
        return await run_blocking("load", self._get, int(event_id))

    async def insert(
        self,
        *,
        title: str,
        date: date,
        time: time,
        responsible: str,
        status: EventStatus = EventStatus.ACTIVE,
    ) -> Event:
        return await run_blocking("save", self._insert, title, date, time, responsible, status)

    async def update(self, event_id: int, **changes) -> Event:
        return await run_blocking("save", self._update, int(event_id), changes)

    async def delete(self, event_id: int) -> bool:
        return await run_blocking("save", self._delete, int(event_id))

    def _list_all(self) -> list[Event]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM agenda_events ORDER BY date ASC, time ASC, id ASC")
            return [_to_event(r) for r in fetchall(cur)]

    def _list_range(self, start: date, end: date) -> list[Event]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM agenda_events
                WHERE date BETWEEN %s AND %s
                ORDER BY date ASC, time ASC, id ASC
                """,
                (start, end),
            )
            return [_to_event(r) for r in fetchall(cur)]

    def _get(self, event_id: int) -> Optional[Event]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM agenda_events WHERE id=%s", (event_id,))
            r = fetchone(cur)
            return _to_event(r) if r else None

    def _insert(self, title: str, day: date, at: time, responsible: str, status: EventStatus) -> Event:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO agenda_events(title, date, time, responsible, status)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (title, day, at, responsible, EventStatus(status).value),
                )
                new_id = int(cur.lastrowid)
                cur.execute(f"SELECT {_COLUMNS} FROM agenda_events WHERE id=%s", (new_id,))
                return _to_event(fetchone(cur))
        except Exception as exc:
            if is_duplicate_key(exc):
                raise ConflictError(MSG_SLOT_TAKEN) from exc
            raise

    def _update(self, event_id: int, changes: dict) -> Event:
        unknown = set(changes) - set(_UPDATABLE)
        if unknown:
            raise ValueError(f"Cannot update columns: {sorted(unknown)}")

        params: list[object] = []
        assignments: list[str] = []
        for column in _UPDATABLE:
            if column in changes:
                value = changes[column]
                assignments.append(f"{column}=%s")
                params.append(value.value if isinstance(value, EventStatus) else value)

        try:
            with db_cursor(self._conn_factory) as (_, cur):
                if assignments:
                    cur.execute(
                        f"UPDATE agenda_events SET {', '.join(assignments)} WHERE id=%s",
                        (*params, event_id),
                    )
                # rowcount is 0 for an unchanged row too, so re-read to tell "missing" apart.
                cur.execute(f"SELECT {_COLUMNS} FROM agenda_events WHERE id=%s", (event_id,))
                r = fetchone(cur)
                if not r:
                    raise NotFoundError(f"Event {event_id} no longer exists")
                return _to_event(r)
        except Exception as exc:
            if is_duplicate_key(exc):
                raise ConflictError(MSG_SLOT_TAKEN) from exc
            raise

    def _delete(self, event_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM agenda_events WHERE id=%s", (event_id,))
            return cur.rowcount > 0
