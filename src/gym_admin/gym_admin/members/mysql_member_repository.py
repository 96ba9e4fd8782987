from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, run_blocking
from .model import Member
from .repository import MemberDirectory


class MySQLMemberRepository(MemberDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    async def list_members(self) -> Sequence[Member]:
        return await run_blocking("load", self._list_members)

    def _list_members(self) -> list[Member]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, full_name, status FROM members ORDER BY full_name ASC")
            return [
                Member(id=str(r["id"]), full_name=r["full_name"], active=bool(r.get("status", 1)))
                for r in fetchall(cur)
            ]
