"""Converge stored attendance marks for a day to the operator's selection.

The store is never edited in place: the reconciler computes which members
must gain a mark and which must lose one, then issues those creates and
deletes independently. Running it again with the same selection issues no
writes, so a failed or partial save can simply be retried.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import AbstractSet, Iterable, Mapping, Set, Tuple

from ..core.exceptions import StoreError
from .repository import AttendanceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PresenceDiff:
    to_create: frozenset
    to_delete: frozenset

    @property
    def is_empty(self) -> bool:
        return not self.to_create and not self.to_delete


def present_ids(presence: Mapping[str, bool]) -> Set[str]:
    """Member ids ticked in a checkbox-per-member map."""
    return {member_id for member_id, checked in presence.items() if checked}


def diff_presence(current: AbstractSet[str], desired: AbstractSet[str]) -> PresenceDiff:
    return PresenceDiff(
        to_create=frozenset(desired - current),
        to_delete=frozenset(current - desired),
    )


@dataclass(frozen=True)
class FailedWrite:
    member_id: str
    action: str
    error: str


@dataclass(frozen=True)
class ReconcileReport:
    day: date
    diff: PresenceDiff
    created: Tuple[str, ...] = ()
    deleted: Tuple[str, ...] = ()
    failed: Tuple[FailedWrite, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def writes(self) -> int:
        return len(self.diff.to_create) + len(self.diff.to_delete)


class PartialReconcileError(StoreError):
    """Some attendance writes failed; the others went through."""

    def __init__(self, report: ReconcileReport):
        members = ", ".join(f"{f.action} {f.member_id}" for f in report.failed)
        super().__init__(f"{len(report.failed)} attendance write(s) failed: {members}", operation="save")
        self.report = report


class AttendanceReconciler:
    def __init__(self, store: AttendanceStore):
        self._store = store

    async def reconcile(self, day: date, desired: Iterable[str]) -> ReconcileReport:
        records = await self._store.list_for_date(day)
        current = {r.member_id for r in records}
        diff = diff_presence(current, set(desired))

        if diff.is_empty:
            logger.debug("Attendance for %s already up to date (%d present)", day, len(current))
            return ReconcileReport(day=day, diff=diff)

        creates = sorted(diff.to_create)
        deletes = sorted(diff.to_delete)
        results = await asyncio.gather(
            *(self._store.create(member_id=m, day=day) for m in creates),
            *(self._store.delete_for_member_and_date(member_id=m, day=day) for m in deletes),
            return_exceptions=True,
        )

        created: list[str] = []
        deleted: list[str] = []
        failed: list[FailedWrite] = []
        jobs = [("create", m) for m in creates] + [("delete", m) for m in deletes]
        for (action, member_id), result in zip(jobs, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning("Attendance %s failed for member %s on %s: %s", action, member_id, day, result)
                failed.append(FailedWrite(member_id=member_id, action=action, error=str(result)))
            elif action == "create":
                created.append(member_id)
            else:
                deleted.append(member_id)

        logger.info(
            "Attendance %s reconciled: %d created, %d deleted, %d failed",
            day, len(created), len(deleted), len(failed),
        )
        return ReconcileReport(
            day=day,
            diff=diff,
            created=tuple(created),
            deleted=tuple(deleted),
            failed=tuple(failed),
        )
