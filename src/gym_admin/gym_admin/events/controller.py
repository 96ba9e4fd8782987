from __future__ import annotations

from typing import Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import BadRequest

from ..common.confirmation import StaticConfirmation
from ..common.datetime_utils import parse_clock_time, parse_iso_date
from ..common.optimistic import MutationOutcome
from ..core.enums import EventStatus, OutcomeKind, StatusFilter
from ..core.exceptions import ValidationError
from ..container import Container
from .model import Event, EventDraft
from .service import EventMutationController

_STATUS_CODES = {
    OutcomeKind.SUCCESS: 200,
    OutcomeKind.DECLINED: 200,
    OutcomeKind.VALIDATION_ERROR: 400,
    OutcomeKind.CONFLICT_ERROR: 409,
    OutcomeKind.TRANSPORT_ERROR: 502,
}


def _truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def _optional(payload: dict, key: str, parser):
    raw = payload.get(key)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        return parser(str(raw))
    except ValidationError as e:
        raise BadRequest(str(e))


def _parse_status(value) -> Optional[EventStatus]:
    # Missing status means "unchanged" on edit and "active" on create.
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return EventStatus(str(value).strip().lower())
    except ValueError:
        raise BadRequest(f"Unknown status: {value!r}")


def _text(payload: dict, key: str) -> Optional[str]:
    value = payload.get(key)
    if value is not None and not isinstance(value, str):
        raise BadRequest(f"{key} must be a string")
    return value


def _draft_from_payload(payload: dict) -> EventDraft:
    return EventDraft(
        title=_text(payload, "title"),
        date=_optional(payload, "date", parse_iso_date),
        time=_optional(payload, "time", parse_clock_time),
        responsible=_text(payload, "responsible"),
        status=_parse_status(payload.get("status")),
    )


def _json_payload() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return dict(request.form)
    if not isinstance(payload, dict):
        raise BadRequest("Expected a JSON object")
    return payload


def _outcome_response(outcome: MutationOutcome, controller: EventMutationController, *, created: bool = False):
    value = outcome.value
    body = {
        "operation": outcome.operation,
        "state": outcome.state.value,
        "result": outcome.kind.value,
        "message": outcome.message,
        "event": value.to_dict() if isinstance(value, Event) else None,
        "events": [e.to_dict() for e in controller.events],
    }
    code = _STATUS_CODES[outcome.kind]
    if created and outcome.ok:
        code = 201
    return jsonify(body), code


def register(app: Flask, container: Container) -> None:
    async def _loaded_controller(*, confirm: bool = False):
        controller = EventMutationController(container.events_repo, StaticConfirmation(answer=confirm))
        loaded = await controller.refresh()
        return controller, loaded

    @app.route("/agenda/events", methods=["GET"], endpoint="agenda_events")
    async def agenda_events():
        try:
            status_filter = StatusFilter((request.args.get("status") or "all").lower())
        except ValueError:
            raise BadRequest("status must be one of: all, active, denied")

        controller, loaded = await _loaded_controller()
        if not loaded.ok:
            return jsonify({"result": loaded.kind.value, "message": loaded.message}), 502

        events = controller.visible(status_filter, request.args.get("q") or "")
        return jsonify({"events": [e.to_dict() for e in events]})

    @app.route("/agenda/events", methods=["POST"], endpoint="agenda_events_create")
    async def agenda_events_create():
        draft = _draft_from_payload(_json_payload())
        controller, loaded = await _loaded_controller()
        if not loaded.ok:
            return _outcome_response(loaded, controller)
        outcome = await controller.create(draft)
        return _outcome_response(outcome, controller, created=True)

    @app.route("/agenda/events/<int:event_id>", methods=["PUT"], endpoint="agenda_events_edit")
    async def agenda_events_edit(event_id: int):
        draft = _draft_from_payload(_json_payload())
        controller, loaded = await _loaded_controller()
        if not loaded.ok:
            return _outcome_response(loaded, controller)
        outcome = await controller.edit(event_id, draft)
        return _outcome_response(outcome, controller)

    @app.route("/agenda/events/<int:event_id>/move", methods=["POST"], endpoint="agenda_events_move")
    async def agenda_events_move(event_id: int):
        payload = _json_payload()
        new_date = _optional(payload, "date", parse_iso_date)
        new_time = _optional(payload, "time", parse_clock_time)
        controller, loaded = await _loaded_controller()
        if not loaded.ok:
            return _outcome_response(loaded, controller)
        outcome = await controller.move(event_id, new_date, new_time)
        return _outcome_response(outcome, controller)

    @app.route("/agenda/events/<int:event_id>/deny", methods=["POST"], endpoint="agenda_events_deny")
    async def agenda_events_deny(event_id: int):
        controller, loaded = await _loaded_controller(confirm=_truthy(request.args.get("confirm")))
        if not loaded.ok:
            return _outcome_response(loaded, controller)
        outcome = await controller.deny(event_id)
        return _outcome_response(outcome, controller)

    @app.route("/agenda/events/<int:event_id>", methods=["DELETE"], endpoint="agenda_events_delete")
    async def agenda_events_delete(event_id: int):
        controller, loaded = await _loaded_controller(confirm=_truthy(request.args.get("confirm")))
        if not loaded.ok:
            return _outcome_response(loaded, controller)
        outcome = await controller.delete(event_id)
        return _outcome_response(outcome, controller)
