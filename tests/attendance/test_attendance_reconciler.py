from __future__ import annotations

from datetime import date

import pytest

from src.gym_admin.gym_admin.attendance.reconciler import AttendanceReconciler, diff_presence, present_ids
from src.gym_admin.gym_admin.core.exceptions import StoreError

DAY = date(2025, 6, 10)


def test_diff_presence_is_two_set_differences():
    diff = diff_presence({"A", "B"}, {"B", "C"})
    assert diff.to_create == {"C"}
    assert diff.to_delete == {"A"}
    assert not diff.is_empty


def test_present_ids_ignores_unticked_members():
    assert present_ids({"A": True, "B": False, "C": True}) == {"A", "C"}


async def test_reconcile_creates_and_deletes_only_the_difference(attendance_store):
    attendance_store.mark("A", DAY)
    attendance_store.mark("B", DAY)

    report = await AttendanceReconciler(attendance_store).reconcile(DAY, {"B", "C"})

    assert attendance_store.creates == [("C", DAY)]
    assert attendance_store.deletes == [("A", DAY)]
    assert report.created == ("C",)
    assert report.deleted == ("A",)
    assert report.ok
    assert attendance_store.present_on(DAY) == {"B", "C"}


async def test_second_run_with_same_selection_writes_nothing(attendance_store):
    attendance_store.mark("A", DAY)
    reconciler = AttendanceReconciler(attendance_store)

    await reconciler.reconcile(DAY, {"B", "C"})
    writes_after_first = attendance_store.write_count
    report = await reconciler.reconcile(DAY, {"B", "C"})

    assert attendance_store.write_count == writes_after_first
    assert report.diff.is_empty
    assert report.writes == 0


async def test_other_days_are_left_alone(attendance_store):
    other_day = date(2025, 6, 11)
    attendance_store.mark("A", other_day)

    await AttendanceReconciler(attendance_store).reconcile(DAY, set())

    assert attendance_store.present_on(other_day) == {"A"}
    assert attendance_store.write_count == 0


async def test_one_failed_write_does_not_block_the_others(attendance_store):
    attendance_store.mark("A", DAY)
    attendance_store.mark("X", DAY)
    attendance_store.fail_members = {"X", "C"}

    report = await AttendanceReconciler(attendance_store).reconcile(DAY, {"B", "C"})

    assert not report.ok
    assert report.created == ("B",)
    assert report.deleted == ("A",)
    assert {(f.action, f.member_id) for f in report.failed} == {("create", "C"), ("delete", "X")}
    assert attendance_store.present_on(DAY) == {"B", "X"}


async def test_retry_after_partial_failure_converges(attendance_store):
    attendance_store.fail_members = {"C"}
    reconciler = AttendanceReconciler(attendance_store)
    await reconciler.reconcile(DAY, {"B", "C"})

    attendance_store.fail_members = set()
    report = await reconciler.reconcile(DAY, {"B", "C"})

    assert report.created == ("C",)
    assert attendance_store.present_on(DAY) == {"B", "C"}


async def test_fetch_failure_propagates(attendance_store):
    attendance_store.fail_reads = StoreError("down", operation="load")

    with pytest.raises(StoreError):
        await AttendanceReconciler(attendance_store).reconcile(DAY, {"A"})
    assert attendance_store.write_count == 0
