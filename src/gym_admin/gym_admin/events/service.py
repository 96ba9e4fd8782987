from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date, time
from typing import Iterable, List, Optional

from ..common.confirmation import Confirmation
from ..common.optimistic import LocalState, MutationAttempt, MutationOutcome, apply_optimistic
from ..common.validators import first_missing
from ..core.constants import (
    MSG_CONFIRM_DELETE,
    MSG_CONFIRM_DENY,
    MSG_COULD_NOT_LOAD,
    MSG_MISSING_FIELDS,
    MSG_SLOT_TAKEN,
)
from ..core.enums import EventStatus, MutationState, OutcomeKind, StatusFilter
from ..core.exceptions import ConflictError, DomainError, NotFoundError, StoreError
from .conflicts import find_conflict
from .model import Event, EventDraft
from .repository import EventStore

logger = logging.getLogger(__name__)


def filter_events(events: Iterable[Event], status_filter: StatusFilter = StatusFilter.ALL, search: str = "") -> List[Event]:
    """Status filter plus case-insensitive search over title and responsible."""
    needle = (search or "").strip().lower()
    out: list[Event] = []
    for ev in events:
        if status_filter != StatusFilter.ALL and ev.status.value != status_filter.value:
            continue
        if needle and needle not in ev.title.lower() and needle not in ev.responsible.lower():
            continue
        out.append(ev)
    return out


class EventMutationController:
    """Turns agenda intents into validated, persisted changes.

    Holds the session's local view of the agenda. Each mutation is checked
    against that view first, applied to it optimistically, then re-checked
    against a fresh read of the store before the write. Any store failure
    reverts the local view to its pre-mutation snapshot.

    Concurrent edits of the same slot are resolved by the store: the fresh
    read narrows the race window and the unique active-slot index closes it,
    so the slower writer gets a ``ConflictError`` and is rolled back. Other
    fields are last-writer-wins.
    """

    def __init__(self, store: EventStore, confirmation: Confirmation):
        self._store = store
        self._confirmation = confirmation
        self._state: LocalState[str, Event] = LocalState()
        self.last_attempt: Optional[MutationAttempt] = None

    @property
    def events(self) -> List[Event]:
        return sorted(self._state.values(), key=lambda e: (e.date, e.time, e.id or 0))

    @property
    def state(self) -> LocalState[str, Event]:
        return self._state

    def visible(self, status_filter: StatusFilter = StatusFilter.ALL, search: str = "") -> List[Event]:
        return filter_events(self.events, status_filter, search)

    async def refresh(self) -> MutationOutcome:
        try:
            events = await self._store.list_all()
        except StoreError as exc:
            logger.warning("Loading agenda failed: %s", exc)
            return MutationOutcome("refresh", MutationState.IDLE, OutcomeKind.TRANSPORT_ERROR, MSG_COULD_NOT_LOAD)
        except Exception:
            logger.exception("Loading agenda failed")
            return MutationOutcome("refresh", MutationState.IDLE, OutcomeKind.TRANSPORT_ERROR, MSG_COULD_NOT_LOAD)

        self._state.replace_all({e.local_key: e for e in events})
        logger.debug("Loaded %d agenda events", len(events))
        return MutationOutcome("refresh", MutationState.IDLE, OutcomeKind.SUCCESS, value=self.events)

    async def create(self, draft: EventDraft) -> MutationOutcome:
        attempt = self._begin("create")

        missing = self._missing_field(draft)
        if missing:
            return attempt.reject(OutcomeKind.VALIDATION_ERROR, f"{MSG_MISSING_FIELDS} Missing: {missing}.")

        candidate = Event(
            id=None,
            title=draft.title.strip(),
            date=draft.date,
            time=draft.time.replace(second=0, microsecond=0),
            responsible=draft.responsible.strip(),
            status=draft.status or EventStatus.ACTIVE,
        )
        rejected = self._reject_local_conflict(attempt, candidate)
        if rejected:
            return rejected

        pending_key = f"pending-{uuid.uuid4().hex}"

        async def remote() -> Event:
            await self._ensure_slot_free(candidate)
            return await self._store.insert(
                title=candidate.title,
                date=candidate.date,
                time=candidate.time,
                responsible=candidate.responsible,
                status=candidate.status,
            )

        outcome = await apply_optimistic(
            self._state,
            lambda s: s.put(pending_key, candidate),
            remote,
            attempt=attempt,
        )
        return await self._after(outcome)

    async def edit(self, event_id: int, draft: EventDraft) -> MutationOutcome:
        attempt = self._begin("edit")

        current = self._get_local(event_id)
        if current is None:
            return attempt.reject(OutcomeKind.VALIDATION_ERROR, f"Event {event_id} not found.")

        missing = self._missing_field(draft)
        if missing:
            return attempt.reject(OutcomeKind.VALIDATION_ERROR, f"{MSG_MISSING_FIELDS} Missing: {missing}.", value=current)

        status = draft.status or current.status
        if current.status == EventStatus.DENIED and status == EventStatus.ACTIVE:
            return attempt.reject(
                OutcomeKind.VALIDATION_ERROR, "A denied event cannot be reactivated.", value=current
            )

        updated = replace(
            current,
            title=draft.title.strip(),
            date=draft.date,
            time=draft.time.replace(second=0, microsecond=0),
            responsible=draft.responsible.strip(),
            status=status,
        )
        return await self._update(attempt, current, updated)

    async def move(self, event_id: int, new_date: Optional[date], new_time: Optional[time]) -> MutationOutcome:
        """Drag an event to another slot.

        On rejection or rollback ``outcome.value`` is the event as it was
        before the drag, so the caller can put it back where it was.
        """
        attempt = self._begin("move")

        current = self._get_local(event_id)
        if current is None:
            return attempt.reject(OutcomeKind.VALIDATION_ERROR, f"Event {event_id} not found.")

        missing = first_missing({"date": new_date, "time": new_time})
        if missing:
            return attempt.reject(OutcomeKind.VALIDATION_ERROR, f"{MSG_MISSING_FIELDS} Missing: {missing}.", value=current)

        updated = replace(current, date=new_date, time=new_time.replace(second=0, microsecond=0))
        return await self._update(attempt, current, updated, fields=("date", "time"))

    async def deny(self, event_id: int) -> MutationOutcome:
        attempt = self._begin("deny")

        current = self._get_local(event_id)
        if current is None:
            return attempt.reject(OutcomeKind.VALIDATION_ERROR, f"Event {event_id} not found.")
        if current.status == EventStatus.DENIED:
            return attempt.reject(OutcomeKind.VALIDATION_ERROR, "Event is already denied.", value=current)
        if not self._confirmation.confirm(MSG_CONFIRM_DENY):
            return attempt.reject(OutcomeKind.DECLINED, "", value=current)

        # Denying frees a slot, it can never create a collision: no conflict check.
        denied = replace(current, status=EventStatus.DENIED)

        async def remote() -> Event:
            return await self._store.update(int(event_id), status=EventStatus.DENIED)

        outcome = await apply_optimistic(
            self._state,
            lambda s: s.put(current.local_key, denied),
            remote,
            attempt=attempt,
            revert_value=current,
        )
        return await self._after(outcome)

    async def delete(self, event_id: int) -> MutationOutcome:
        attempt = self._begin("delete")

        current = self._get_local(event_id)
        if current is None:
            return attempt.reject(OutcomeKind.VALIDATION_ERROR, f"Event {event_id} not found.")
        if not self._confirmation.confirm(MSG_CONFIRM_DELETE):
            return attempt.reject(OutcomeKind.DECLINED, "", value=current)

        async def remote() -> bool:
            if not await self._store.delete(int(event_id)):
                raise NotFoundError(f"Event {event_id} no longer exists.")
            return True

        outcome = await apply_optimistic(
            self._state,
            lambda s: s.remove(current.local_key),
            remote,
            attempt=attempt,
            revert_value=current,
        )
        return await self._after(outcome)

    def _begin(self, operation: str) -> MutationAttempt:
        attempt = MutationAttempt(operation)
        attempt.advance(MutationState.VALIDATING)
        self.last_attempt = attempt
        return attempt

    def _get_local(self, event_id: int) -> Optional[Event]:
        return self._state.get(str(event_id))

    @staticmethod
    def _missing_field(draft: EventDraft) -> Optional[str]:
        return first_missing(
            {
                "title": draft.title,
                "date": draft.date,
                "time": draft.time,
                "responsible": draft.responsible,
            }
        )

    def _reject_local_conflict(
        self, attempt: MutationAttempt, candidate: Event, *, revert_value: Optional[Event] = None
    ) -> Optional[MutationOutcome]:
        if not candidate.is_active:
            return None
        clash = find_conflict(self._state.values(), candidate.date, candidate.time, candidate.id)
        if clash is None:
            return None
        logger.info(
            "%s blocked: slot %s %s held by event %s",
            attempt.operation, candidate.date, candidate.time.strftime("%H:%M"), clash.id,
        )
        return attempt.reject(OutcomeKind.VALIDATION_ERROR, MSG_SLOT_TAKEN, value=revert_value or clash)

    async def _ensure_slot_free(self, candidate: Event) -> None:
        """Repeat the conflict check against the store's current events."""
        if not candidate.is_active:
            return
        try:
            remote_events = await self._store.list_all()
        except StoreError as exc:
            raise StoreError(str(exc), operation="save") from exc
        clash = find_conflict(remote_events, candidate.date, candidate.time, candidate.id)
        if clash is not None:
            raise ConflictError(MSG_SLOT_TAKEN, existing=clash)

    async def _update(
        self,
        attempt: MutationAttempt,
        current: Event,
        updated: Event,
        *,
        fields: tuple = ("title", "date", "time", "responsible", "status"),
    ) -> MutationOutcome:
        rejected = self._reject_local_conflict(attempt, updated, revert_value=current)
        if rejected:
            return rejected

        async def remote() -> Event:
            await self._ensure_slot_free(updated)
            return await self._store.update(int(current.id), **{f: getattr(updated, f) for f in fields})

        outcome = await apply_optimistic(
            self._state,
            lambda s: s.put(current.local_key, updated),
            remote,
            attempt=attempt,
            revert_value=current,
        )
        return await self._after(outcome)

    async def _after(self, outcome: MutationOutcome) -> MutationOutcome:
        """Committed changes re-read the agenda to pick up server-assigned fields."""
        if not outcome.ok:
            return outcome
        try:
            events = await self._store.list_all()
        except DomainError as exc:
            logger.warning("%s committed but the agenda could not be reloaded: %s", outcome.operation, exc)
            self._state.mark_clean()
            return outcome
        except Exception:
            logger.exception("%s committed but the agenda could not be reloaded", outcome.operation)
            self._state.mark_clean()
            return outcome
        self._state.replace_all({e.local_key: e for e in events})
        return outcome
