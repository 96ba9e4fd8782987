from __future__ import annotations

import logging
from datetime import date

from flask import Flask, jsonify, request
from werkzeug.exceptions import BadRequest

from ..common.confirmation import StaticConfirmation
from ..common.datetime_utils import parse_iso_date
from ..core.constants import MSG_COULD_NOT_LOAD
from ..core.enums import OutcomeKind
from ..core.exceptions import StoreError, ValidationError
from ..container import Container
from .service import AttendanceSheet

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    OutcomeKind.SUCCESS: 200,
    OutcomeKind.DECLINED: 200,
    OutcomeKind.VALIDATION_ERROR: 400,
    OutcomeKind.CONFLICT_ERROR: 409,
    OutcomeKind.TRANSPORT_ERROR: 502,
}


def _parse_day(value: str) -> date:
    try:
        return parse_iso_date(value)
    except ValidationError as e:
        raise BadRequest(str(e))


def _sheet_body(sheet: AttendanceSheet, search: str = "") -> dict:
    return {
        "date": sheet.day.strftime("%Y-%m-%d") if sheet.day else None,
        "present_count": sheet.present_count,
        "unsaved": sheet.has_unsaved_changes,
        "members": [
            {"id": m.id, "full_name": m.full_name, "present": sheet.is_present(m.id)}
            for m in sheet.visible_members(search)
        ],
    }


def register(app: Flask, container: Container) -> None:
    def _new_sheet() -> AttendanceSheet:
        # Each request works on its own sheet; nothing here is pending between requests.
        return AttendanceSheet(
            container.attendance_repo,
            container.members_repo,
            StaticConfirmation(answer=True),
            reconciler=container.attendance_reconciler,
        )

    @app.route("/attendance/weekly", methods=["GET"], endpoint="attendance_weekly")
    async def attendance_weekly():
        today = _parse_day(request.args["today"]) if request.args.get("today") else date.today()
        try:
            rows = await container.attendance_summary_service.weekly_counts(today)
        except StoreError as e:
            logger.warning("Weekly attendance summary failed: %s", e)
            return jsonify({"result": OutcomeKind.TRANSPORT_ERROR.value, "message": MSG_COULD_NOT_LOAD}), 502
        return jsonify({"days": [r.to_dict() for r in rows]})

    @app.route("/attendance/<day_s>", methods=["GET"], endpoint="attendance_day")
    async def attendance_day(day_s: str):
        sheet = _new_sheet()
        loaded = await sheet.load(_parse_day(day_s))
        if not loaded.ok:
            return jsonify({"result": loaded.kind.value, "message": loaded.message}), _STATUS_CODES[loaded.kind]
        return jsonify(_sheet_body(sheet, request.args.get("q") or ""))

    @app.route("/attendance/<day_s>", methods=["POST"], endpoint="attendance_save")
    async def attendance_save(day_s: str):
        day = _parse_day(day_s)
        payload = request.get_json(silent=True) or {}
        present = payload.get("present")
        if not isinstance(present, list):
            raise BadRequest("Expected {\"present\": [member ids]}")

        sheet = _new_sheet()
        loaded = await sheet.load(day)
        if not loaded.ok:
            return jsonify({"result": loaded.kind.value, "message": loaded.message}), _STATUS_CODES[loaded.kind]

        wanted = {str(member_id) for member_id in present}
        for member_id in sheet.registered | wanted:
            sheet.set_present(member_id, member_id in wanted)

        outcome = await sheet.save()
        body = _sheet_body(sheet)
        body.update(
            {
                "state": outcome.state.value,
                "result": outcome.kind.value,
                "message": outcome.message,
            }
        )
        report = sheet.last_report
        if report is not None:
            body["created"] = list(report.created)
            body["deleted"] = list(report.deleted)
            body["failed"] = [{"member_id": f.member_id, "action": f.action} for f in report.failed]
        return jsonify(body), _STATUS_CODES[outcome.kind]
