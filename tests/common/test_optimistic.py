from __future__ import annotations

import pytest

from src.gym_admin.gym_admin.common.optimistic import LocalState, MutationAttempt, apply_optimistic, classify_error
from src.gym_admin.gym_admin.core.constants import MSG_COULD_NOT_LOAD, MSG_COULD_NOT_SAVE
from src.gym_admin.gym_admin.core.enums import MutationState, OutcomeKind
from src.gym_admin.gym_admin.core.exceptions import ConflictError, StoreError, ValidationError


def _validating(name="op"):
    attempt = MutationAttempt(name)
    attempt.advance(MutationState.VALIDATING)
    return attempt


def test_restore_brings_back_items_and_dirty_flags():
    state = LocalState({"a": 1})
    state.put("b", 2)
    snap = state.snapshot()

    state.put("a", 10)
    state.remove("b")
    state.restore(snap)

    assert state.items() == [("a", 1), ("b", 2)]
    assert state.dirty_keys == {"b"}


def test_put_clean_clears_dirty_flag():
    state = LocalState()
    state.put("a", 1)
    state.put("a", 1, dirty=False)
    assert not state.is_dirty("a")


def test_illegal_transition_raises():
    attempt = MutationAttempt("op")
    with pytest.raises(RuntimeError):
        attempt.advance(MutationState.COMMITTED)


def test_rejected_attempt_is_terminal():
    attempt = _validating()
    attempt.reject(OutcomeKind.VALIDATION_ERROR, "nope")
    with pytest.raises(RuntimeError):
        attempt.advance(MutationState.OPTIMISTICALLY_APPLIED)


async def test_commit_keeps_local_change():
    state = LocalState({"a": 1})
    attempt = _validating()

    async def remote():
        return "stored"

    outcome = await apply_optimistic(state, lambda s: s.put("a", 2), remote, attempt=attempt)

    assert outcome.ok
    assert outcome.value == "stored"
    assert state.get("a") == 2
    assert attempt.history[-2:] == [MutationState.OPTIMISTICALLY_APPLIED, MutationState.COMMITTED]


async def test_remote_failure_restores_snapshot():
    state = LocalState({"a": 1})
    attempt = _validating()
    seen = []

    async def remote():
        seen.append(state.get("a"))
        raise StoreError("offline")

    outcome = await apply_optimistic(state, lambda s: s.put("a", 2), remote, attempt=attempt, revert_value="old")

    assert seen == [2]
    assert state.get("a") == 1
    assert state.dirty_keys == set()
    assert outcome.state == MutationState.ROLLED_BACK
    assert outcome.kind == OutcomeKind.TRANSPORT_ERROR
    assert outcome.value == "old"


async def test_failing_local_mutation_is_rejected_without_remote_call():
    state = LocalState({"a": 1})
    attempt = _validating()
    called = []

    def mutate(s):
        s.put("a", 2)
        raise ValidationError("bad input")

    async def remote():
        called.append(True)

    outcome = await apply_optimistic(state, mutate, remote, attempt=attempt)

    assert called == []
    assert state.get("a") == 1
    assert outcome.state == MutationState.REJECTED
    assert outcome.kind == OutcomeKind.VALIDATION_ERROR


@pytest.mark.parametrize(
    "exc, kind, message",
    [
        (ConflictError("taken"), OutcomeKind.CONFLICT_ERROR, "taken"),
        (ValidationError("bad"), OutcomeKind.VALIDATION_ERROR, "bad"),
        (StoreError("x", operation="load"), OutcomeKind.TRANSPORT_ERROR, MSG_COULD_NOT_LOAD),
        (StoreError("x"), OutcomeKind.TRANSPORT_ERROR, MSG_COULD_NOT_SAVE),
        (OSError("reset"), OutcomeKind.TRANSPORT_ERROR, MSG_COULD_NOT_SAVE),
    ],
)
def test_classify_error(exc, kind, message):
    assert classify_error(exc) == (kind, message)
