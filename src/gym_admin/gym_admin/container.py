from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.reconciler import AttendanceReconciler
from .attendance.repository import AttendanceStore
from .attendance.service import AttendanceSummaryService
from .core.constants import DEFAULT_WEEK_START
from .database.connection import DatabaseConnection, as_db_config
from .events.mysql_event_repository import MySQLEventRepository
from .events.repository import EventStore
from .members.mysql_member_repository import MySQLMemberRepository
from .members.repository import MemberDirectory


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    events_repo: EventStore
    attendance_repo: AttendanceStore
    members_repo: MemberDirectory

    attendance_reconciler: AttendanceReconciler
    attendance_summary_service: AttendanceSummaryService


def wire(
    *,
    events_repo: EventStore,
    attendance_repo: AttendanceStore,
    members_repo: MemberDirectory,
    conn: Optional[DatabaseConnection] = None,
    week_start: int = DEFAULT_WEEK_START,
) -> Container:
    return Container(
        conn=conn,
        events_repo=events_repo,
        attendance_repo=attendance_repo,
        members_repo=members_repo,
        attendance_reconciler=AttendanceReconciler(attendance_repo),
        attendance_summary_service=AttendanceSummaryService(attendance_repo, week_start=week_start),
    )


def build_container(*, db_config: dict, week_start: int = DEFAULT_WEEK_START) -> Container:
    conn = DatabaseConnection.get_instance(as_db_config(db_config))

    return wire(
        conn=conn,
        events_repo=MySQLEventRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        members_repo=MySQLMemberRepository(conn),
        week_start=week_start,
    )
