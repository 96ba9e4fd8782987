"""Optimistic update with rollback.

Every engine mutation follows the same shape: snapshot the local view,
mutate it so the UI reflects the change immediately, await the store, then
keep the change or restore the snapshot. ``apply_optimistic`` is the single
place that shape is implemented; callers only supply the local mutation and
the remote call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    Iterable,
    Iterator,
    List,
    Optional,
    Protocol,
    Set,
    Tuple,
    TypeVar,
)

from ..core.constants import MSG_COULD_NOT_LOAD, MSG_COULD_NOT_SAVE
from ..core.enums import MutationState, OutcomeKind
from ..core.exceptions import ConflictError, DomainError, NotFoundError, StoreError, ValidationError

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")
S = TypeVar("S", bound="SupportsSnapshot")


class SupportsSnapshot(Protocol):
    def snapshot(self) -> Any:
        raise NotImplementedError

    def restore(self, snapshot: Any) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class StateSnapshot(Generic[K, V]):
    items: Tuple[Tuple[K, V], ...]
    dirty: frozenset


class LocalState(Generic[K, V]):
    """Client-held mirror of a subset of store records.

    Each item carries a dirty flag: set when the item was changed locally and
    the store has not confirmed it yet.
    """

    def __init__(self, items: Optional[Dict[K, V]] = None):
        self._items: Dict[K, V] = dict(items or {})
        self._dirty: Set[K] = set()

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[K]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, key: K) -> Optional[V]:
        return self._items.get(key)

    def values(self) -> List[V]:
        return list(self._items.values())

    def items(self) -> List[Tuple[K, V]]:
        return list(self._items.items())

    def put(self, key: K, value: V, *, dirty: bool = True) -> None:
        self._items[key] = value
        if dirty:
            self._dirty.add(key)
        else:
            self._dirty.discard(key)

    def remove(self, key: K) -> Optional[V]:
        self._dirty.discard(key)
        return self._items.pop(key, None)

    def is_dirty(self, key: K) -> bool:
        return key in self._dirty

    @property
    def dirty_keys(self) -> Set[K]:
        return set(self._dirty)

    def mark_clean(self, keys: Optional[Iterable[K]] = None) -> None:
        if keys is None:
            self._dirty.clear()
        else:
            self._dirty.difference_update(keys)

    def replace_all(self, items: Dict[K, V]) -> None:
        """Reset to authoritative store content (everything clean)."""
        self._items = dict(items)
        self._dirty.clear()

    def snapshot(self) -> StateSnapshot[K, V]:
        return StateSnapshot(items=tuple(self._items.items()), dirty=frozenset(self._dirty))

    def restore(self, snapshot: StateSnapshot[K, V]) -> None:
        self._items = dict(snapshot.items)
        self._dirty = set(snapshot.dirty)


@dataclass(frozen=True)
class MutationOutcome:
    """Structured result handed back to the presentation layer."""

    operation: str
    state: MutationState
    kind: OutcomeKind
    message: str = ""
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.kind == OutcomeKind.SUCCESS


_ALLOWED = {
    MutationState.IDLE: {MutationState.VALIDATING},
    MutationState.VALIDATING: {MutationState.REJECTED, MutationState.OPTIMISTICALLY_APPLIED},
    MutationState.OPTIMISTICALLY_APPLIED: {MutationState.COMMITTED, MutationState.ROLLED_BACK},
    MutationState.REJECTED: set(),
    MutationState.COMMITTED: set(),
    MutationState.ROLLED_BACK: set(),
}


@dataclass
class MutationAttempt:
    """Walks one mutation through Idle → Validating → ... and records the path."""

    operation: str
    state: MutationState = MutationState.IDLE
    history: List[MutationState] = field(default_factory=lambda: [MutationState.IDLE])

    def advance(self, new_state: MutationState) -> None:
        if new_state not in _ALLOWED[self.state]:
            raise RuntimeError(f"{self.operation}: illegal transition {self.state.value} -> {new_state.value}")
        logger.debug("%s: %s -> %s", self.operation, self.state.value, new_state.value)
        self.state = new_state
        self.history.append(new_state)

    def reject(self, kind: OutcomeKind, message: str, *, value: Any = None) -> MutationOutcome:
        self.advance(MutationState.REJECTED)
        logger.info("%s rejected (%s): %s", self.operation, kind.value, message)
        return MutationOutcome(self.operation, self.state, kind, message, value)

    def outcome(self, kind: OutcomeKind, message: str = "", *, value: Any = None) -> MutationOutcome:
        return MutationOutcome(self.operation, self.state, kind, message, value)


def classify_error(exc: Exception) -> Tuple[OutcomeKind, str]:
    """Map an exception raised at a store boundary to an outcome kind and message."""
    if isinstance(exc, ConflictError):
        return OutcomeKind.CONFLICT_ERROR, str(exc)
    if isinstance(exc, (ValidationError, NotFoundError)):
        return OutcomeKind.VALIDATION_ERROR, str(exc)
    if isinstance(exc, StoreError):
        return OutcomeKind.TRANSPORT_ERROR, MSG_COULD_NOT_LOAD if exc.operation == "load" else MSG_COULD_NOT_SAVE
    if isinstance(exc, DomainError):
        return OutcomeKind.VALIDATION_ERROR, str(exc)
    return OutcomeKind.TRANSPORT_ERROR, MSG_COULD_NOT_SAVE


async def apply_optimistic(
    state: S,
    mutation: Callable[[S], None],
    remote_call: Callable[[], Awaitable[Any]],
    *,
    attempt: MutationAttempt,
    revert_value: Any = None,
) -> MutationOutcome:
    """Apply ``mutation`` locally, await ``remote_call``, then commit or revert.

    ``attempt`` must be in the Validating state. On failure the local state is
    restored to its pre-mutation snapshot and ``revert_value`` is returned as
    the outcome value.
    """
    snapshot = state.snapshot()
    try:
        mutation(state)
    except Exception as exc:
        state.restore(snapshot)
        kind, message = classify_error(exc)
        if not isinstance(exc, DomainError):
            logger.exception("%s: local update failed", attempt.operation)
        return attempt.reject(kind, message, value=revert_value)

    attempt.advance(MutationState.OPTIMISTICALLY_APPLIED)
    try:
        value = await remote_call()
    except Exception as exc:
        state.restore(snapshot)
        attempt.advance(MutationState.ROLLED_BACK)
        kind, message = classify_error(exc)
        if isinstance(exc, DomainError):
            logger.warning("%s rolled back (%s): %s", attempt.operation, kind.value, exc)
        else:
            logger.exception("%s rolled back after unexpected error", attempt.operation)
        return attempt.outcome(kind, message, value=revert_value)

    attempt.advance(MutationState.COMMITTED)
    logger.info("%s committed", attempt.operation)
    return attempt.outcome(OutcomeKind.SUCCESS, value=value)
