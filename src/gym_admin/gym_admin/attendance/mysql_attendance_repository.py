from __future__ import annotations

from datetime import date
from typing import Sequence

from ..common.datetime_utils import canonical_check_in, day_bounds
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, run_blocking
from .model import AttendanceRecord
from .repository import AttendanceStore


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(id=int(r["id"]), member_id=str(r["member_id"]), check_in_date=r["check_in_date"])


class MySQLAttendanceRepository(AttendanceStore):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    async def list_for_date(self, day: date) -> Sequence[AttendanceRecord]:
        return await run_blocking("load", self._list_range, day, day)

    async def list_range(self, *, start: date, end: date) -> Sequence[AttendanceRecord]:
        return await run_blocking("load", self._list_range, start, end)

    async def create(self, *, member_id: str, day: date) -> AttendanceRecord:
        return await run_blocking("save", self._create, str(member_id), day)

    async def delete_for_member_and_date(self, *, member_id: str, day: date) -> int:
        return await run_blocking("save", self._delete, str(member_id), day)

    def _list_range(self, start: date, end: date) -> list[AttendanceRecord]:
        lower, _ = day_bounds(start)
        _, upper = day_bounds(end)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, member_id, check_in_date
                FROM attendance
                WHERE check_in_date >= %s AND check_in_date < %s
                ORDER BY check_in_date ASC, member_id ASC
                """,
                (lower, upper),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def _create(self, member_id: str, day: date) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            # Unique (member_id, check_in_day): a repeated mark keeps the existing row.
            cur.execute(
                """
                INSERT INTO attendance(member_id, check_in_date)
                VALUES(%s,%s)
                ON DUPLICATE KEY UPDATE id=id
                """,
                (member_id, canonical_check_in(day)),
            )
            lower, upper = day_bounds(day)
            cur.execute(
                """
                SELECT id, member_id, check_in_date
                FROM attendance
                WHERE member_id=%s AND check_in_date >= %s AND check_in_date < %s
                """,
                (member_id, lower, upper),
            )
            return _to_record(fetchone(cur))

    def _delete(self, member_id: str, day: date) -> int:
        lower, upper = day_bounds(day)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM attendance WHERE member_id=%s AND check_in_date >= %s AND check_in_date < %s",
                (member_id, lower, upper),
            )
            return int(cur.rowcount)
