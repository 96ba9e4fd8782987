"""
Pytest configuration and shared in-memory stores.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time
from typing import Optional

import pytest

from src.gym_admin.gym_admin.attendance.model import AttendanceRecord
from src.gym_admin.gym_admin.common.confirmation import StaticConfirmation
from src.gym_admin.gym_admin.common.datetime_utils import canonical_check_in
from src.gym_admin.gym_admin.core.enums import EventStatus
from src.gym_admin.gym_admin.core.exceptions import ConflictError, NotFoundError, StoreError
from src.gym_admin.gym_admin.events.model import Event
from src.gym_admin.gym_admin.members.model import Member


class InMemoryEvents:
    """Event store that enforces the active-slot unique index like MySQL does."""

    def __init__(self, events: Optional[list[Event]] = None):
        self._rows: dict[int, Event] = {}
        self._id = 0
        self.writes: list[tuple] = []
        self.list_calls = 0
        self.fail_writes: Optional[Exception] = None
        self.fail_reads: Optional[Exception] = None
        for ev in events or []:
            self.seed(ev)

    def seed(self, ev: Event) -> Event:
        self._id = max(self._id, ev.id or 0) + (0 if ev.id else 1)
        stored = replace(ev, id=ev.id or self._id, created_at=ev.created_at or datetime(2025, 6, 1, 9, 0))
        self._rows[stored.id] = stored
        return stored

    def _check_slot(self, candidate: Event) -> None:
        if candidate.status != EventStatus.ACTIVE:
            return
        for ev in self._rows.values():
            if ev.id != candidate.id and ev.status == EventStatus.ACTIVE and (ev.date, ev.time) == (candidate.date, candidate.time):
                raise ConflictError("duplicate active slot", existing=ev)

    async def list_all(self):
        self.list_calls += 1
        if self.fail_reads:
            raise self.fail_reads
        return sorted(self._rows.values(), key=lambda e: (e.date, e.time, e.id))

    async def list_range(self, *, start: date, end: date):
        return [e for e in await self.list_all() if start <= e.date <= end]

    async def get(self, event_id: int):
        return self._rows.get(int(event_id))

    async def insert(self, *, title, date, time, responsible, status=EventStatus.ACTIVE):
        if self.fail_writes:
            raise self.fail_writes
        self._id += 1
        ev = Event(
            id=self._id,
            title=title,
            date=date,
            time=time,
            responsible=responsible,
            status=status,
            created_at=datetime(2025, 6, 1, 10, 0),
        )
        self._check_slot(ev)
        self._rows[ev.id] = ev
        self.writes.append(("insert", ev.id))
        return ev

    async def update(self, event_id: int, **changes):
        if self.fail_writes:
            raise self.fail_writes
        current = self._rows.get(int(event_id))
        if current is None:
            raise NotFoundError(f"Event {event_id} no longer exists")
        updated = replace(current, **changes)
        self._check_slot(updated)
        self._rows[current.id] = updated
        self.writes.append(("update", current.id, tuple(sorted(changes))))
        return updated

    async def delete(self, event_id: int) -> bool:
        if self.fail_writes:
            raise self.fail_writes
        self.writes.append(("delete", int(event_id)))
        return self._rows.pop(int(event_id), None) is not None


class InMemoryAttendance:
    def __init__(self):
        self._rows: dict[tuple[str, date], AttendanceRecord] = {}
        self._id = 0
        self.creates: list[tuple[str, date]] = []
        self.deletes: list[tuple[str, date]] = []
        self.fail_members: set[str] = set()
        self.fail_reads: Optional[Exception] = None

    def mark(self, member_id: str, day: date) -> None:
        self._id += 1
        self._rows[(member_id, day)] = AttendanceRecord(id=self._id, member_id=member_id, check_in_date=canonical_check_in(day))

    async def list_for_date(self, day: date):
        if self.fail_reads:
            raise self.fail_reads
        return [r for (_, d), r in sorted(self._rows.items()) if d == day]

    async def list_range(self, *, start: date, end: date):
        if self.fail_reads:
            raise self.fail_reads
        return [r for (_, d), r in sorted(self._rows.items()) if start <= d <= end]

    async def create(self, *, member_id: str, day: date):
        self.creates.append((member_id, day))
        if member_id in self.fail_members:
            raise StoreError(f"insert failed for {member_id}")
        if (member_id, day) not in self._rows:
            self.mark(member_id, day)
        return self._rows[(member_id, day)]

    async def delete_for_member_and_date(self, *, member_id: str, day: date) -> int:
        self.deletes.append((member_id, day))
        if member_id in self.fail_members:
            raise StoreError(f"delete failed for {member_id}")
        return 1 if self._rows.pop((member_id, day), None) else 0

    @property
    def write_count(self) -> int:
        return len(self.creates) + len(self.deletes)

    def present_on(self, day: date) -> set[str]:
        return {m for (m, d) in self._rows if d == day}


class InMemoryMembers:
    def __init__(self, members: list[Member]):
        self._members = members

    async def list_members(self):
        return list(self._members)


@pytest.fixture
def yoga():
    return Event(
        id=1,
        title="Yoga",
        date=date(2025, 6, 10),
        time=time(18, 0),
        responsible="Ana",
    )


@pytest.fixture
def event_store(yoga):
    return InMemoryEvents([yoga])


@pytest.fixture
def empty_event_store():
    return InMemoryEvents()


@pytest.fixture
def attendance_store():
    return InMemoryAttendance()


@pytest.fixture
def members():
    return InMemoryMembers(
        [
            Member(id="A", full_name="Alice Souza"),
            Member(id="B", full_name="Bruno Lima"),
            Member(id="C", full_name="Carla Dias"),
        ]
    )


@pytest.fixture
def confirm_yes():
    return StaticConfirmation(answer=True)


@pytest.fixture
def confirm_no():
    return StaticConfirmation(answer=False)


@pytest.fixture
def members_with_inactive():
    return InMemoryMembers(
        [
            Member(id="A", full_name="Alice Souza"),
            Member(id="D", full_name="Diego Ramos", active=False),
            Member(id="E", full_name="Elisa Prado", active=False),
        ]
    )
