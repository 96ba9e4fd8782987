from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Set

from ..common.confirmation import Confirmation
from ..common.datetime_utils import week_range
from ..common.optimistic import LocalState, MutationAttempt, MutationOutcome, StateSnapshot, apply_optimistic
from ..core.constants import DEFAULT_WEEK_START, MSG_COULD_NOT_LOAD, MSG_UNSAVED_CHANGES, WEEKDAY_NAMES
from ..core.enums import MutationState, OutcomeKind
from ..core.exceptions import StoreError
from ..members.model import Member
from ..members.repository import MemberDirectory
from .model import DailyAttendanceCount
from .reconciler import AttendanceReconciler, PartialReconcileError, ReconcileReport, present_ids
from .repository import AttendanceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _SheetSnapshot:
    baseline: frozenset
    presence: StateSnapshot


class _SheetState:
    """Last-fetched registrations plus the operator's unsaved ticks."""

    def __init__(self):
        self.baseline: frozenset = frozenset()
        self.presence: LocalState[str, bool] = LocalState()

    def snapshot(self) -> _SheetSnapshot:
        return _SheetSnapshot(baseline=self.baseline, presence=self.presence.snapshot())

    def restore(self, snapshot: _SheetSnapshot) -> None:
        self.baseline = snapshot.baseline
        self.presence.restore(snapshot.presence)


class AttendanceSheet:
    """One operator's attendance screen for a single day.

    Ticks are kept locally until ``save``; a tick is dirty while it differs
    from what the store held when the day was loaded.
    """

    def __init__(
        self,
        store: AttendanceStore,
        members: MemberDirectory,
        confirmation: Confirmation,
        *,
        reconciler: Optional[AttendanceReconciler] = None,
    ):
        self._store = store
        self._members = members
        self._confirmation = confirmation
        self._reconciler = reconciler or AttendanceReconciler(store)
        self._state = _SheetState()
        self._roster: List[Member] = []
        self.day: Optional[date] = None
        self.last_report: Optional[ReconcileReport] = None

    @property
    def members(self) -> List[Member]:
        return list(self._roster)

    @property
    def registered(self) -> Set[str]:
        return set(self._state.baseline)

    @property
    def desired_present_set(self) -> Set[str]:
        return present_ids(dict(self._state.presence.items()))

    @property
    def present_count(self) -> int:
        return len(self.desired_present_set)

    @property
    def has_unsaved_changes(self) -> bool:
        return bool(self._state.presence.dirty_keys)

    def is_present(self, member_id: str) -> bool:
        return bool(self._state.presence.get(member_id))

    def visible_members(self, search: str = "") -> List[Member]:
        needle = (search or "").strip().lower()
        if not needle:
            return self.members
        return [m for m in self._roster if needle in m.full_name.lower()]

    def set_present(self, member_id: str, present: bool) -> None:
        present = bool(present)
        self._state.presence.put(member_id, present, dirty=present != (member_id in self._state.baseline))

    def toggle(self, member_id: str) -> bool:
        new_value = not self.is_present(member_id)
        self.set_present(member_id, new_value)
        return new_value

    async def load(self, day: date) -> MutationOutcome:
        try:
            roster = await self._members.list_members()
            records = await self._store.list_for_date(day)
        except StoreError as exc:
            logger.warning("Loading attendance for %s failed: %s", day, exc)
            return MutationOutcome("load", MutationState.IDLE, OutcomeKind.TRANSPORT_ERROR, MSG_COULD_NOT_LOAD)
        except Exception:
            logger.exception("Loading attendance for %s failed", day)
            return MutationOutcome("load", MutationState.IDLE, OutcomeKind.TRANSPORT_ERROR, MSG_COULD_NOT_LOAD)

        registered = frozenset(r.member_id for r in records)
        # Inactive members stay listed only while they still hold a mark for the day.
        self._roster = [m for m in roster if m.active or m.id in registered]
        self._state.baseline = registered
        self._state.presence.replace_all({member_id: True for member_id in registered})
        self.day = day
        logger.debug("Loaded attendance for %s: %d of %d present", day, len(registered), len(self._roster))
        return MutationOutcome("load", MutationState.IDLE, OutcomeKind.SUCCESS, value=registered)

    async def change_date(self, new_day: date) -> MutationOutcome:
        """Switch the sheet to another day.

        Unsaved ticks only make sense against the day they were made for, so
        they are discarded, after explicit confirmation.
        """
        attempt = MutationAttempt("change_date")
        attempt.advance(MutationState.VALIDATING)
        if self.has_unsaved_changes and not self._confirmation.confirm(MSG_UNSAVED_CHANGES):
            return attempt.reject(OutcomeKind.DECLINED, "", value=self.day)
        return await self.load(new_day)

    async def save(self) -> MutationOutcome:
        attempt = MutationAttempt("save_attendance")
        attempt.advance(MutationState.VALIDATING)
        if self.day is None:
            return attempt.reject(OutcomeKind.VALIDATION_ERROR, "Pick a date before saving.")

        day = self.day
        desired = frozenset(self.desired_present_set)

        def mark_saved(state: _SheetState) -> None:
            state.baseline = desired
            state.presence.mark_clean()

        async def remote() -> ReconcileReport:
            try:
                report = await self._reconciler.reconcile(day, desired)
            except StoreError as exc:
                raise StoreError(str(exc), operation="save") from exc
            self.last_report = report
            if not report.ok:
                raise PartialReconcileError(report)
            return report

        return await apply_optimistic(self._state, mark_saved, remote, attempt=attempt)


class AttendanceSummaryService:
    def __init__(self, store: AttendanceStore, *, week_start: int = DEFAULT_WEEK_START):
        self._store = store
        self._week_start = int(week_start)

    async def weekly_counts(self, today: date) -> List[DailyAttendanceCount]:
        start, end = week_range(today, week_start=self._week_start)
        records = await self._store.list_range(start=start, end=end)
        by_day = Counter(r.day for r in records)

        out: list[DailyAttendanceCount] = []
        for offset in range(7):
            day = start + timedelta(days=offset)
            out.append(DailyAttendanceCount(day=day, weekday_name=WEEKDAY_NAMES[day.weekday()], count=by_day.get(day, 0)))
        return out
