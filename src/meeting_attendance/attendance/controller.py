from __future__ import annotations

import secrets

from flask import Flask, jsonify, request, session

from ..common.datetime_utils import latest_sunday, parse_iso_date, today_local
from ..common.http import json_errors
from ..core.enums import AttendanceChoice
from ..core.exceptions import ValidationError
from ..container import Container
from .edit_session import CommitResult, EditSession

OPERATOR_KEY = "operator_key"


def _member_payload(s: EditSession, member) -> dict:
    record = s.attendance.get(member.member_id)
    return {
        "member_id": member.member_id,
        "name": member.name,
        "furigana": member.furigana,
        "unit_id": member.unit_id,
        "tier": s.view.tiers.get(member.member_id).value if member.member_id in s.view.tiers else None,
        "guest": member.member_id in s.guest_ids,
        "choice": s.choice(member.member_id).value,
        "is_online": bool(record and record.is_online),
        "is_away": bool(record and record.is_away),
        "memo": s.memos.get(member.member_id),
        "dirty": member.member_id in s.dirty_ids(),
    }


def _session_payload(s: EditSession) -> dict:
    summary = s.summary()
    return {
        "success": True,
        "event_date": s.view.event_date.isoformat(),
        "scope": s.view.scope,
        "combined": s.view.is_combined,
        "state": s.state.value,
        "members": [_member_payload(s, m) for m in s.roster],
        "summary": {
            "attended": summary.attended,
            "absent": summary.absent,
            "online": summary.online,
            "away": summary.away,
        },
        "dirty_ids": sorted(summary.dirty_ids),
    }


def _commit_payload(s: EditSession, result: CommitResult) -> dict:
    payload = _session_payload(s)
    payload["success"] = result.ok
    payload["written"] = sorted(result.written)
    payload["failures"] = [{"member_id": f.member_id, "reason": f.reason} for f in result.failures]
    return payload


def _body() -> dict:
    return request.get_json(silent=True) or {}


def register(app: Flask, container: Container) -> None:
    def _view():
        key = session.get(OPERATOR_KEY)
        if not key:
            key = secrets.token_hex(16)
            session[OPERATOR_KEY] = key
        return container.views.get(key)

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_load")
    @json_errors
    def attendance_load():
        date_s = request.args.get("date")
        event_date = parse_iso_date(date_s) if date_s else latest_sunday(today_local())
        scope = request.args.get("scope", "")

        s = _view().load(scope, event_date)
        if s is None:
            # A newer load from the same operator took over.
            return jsonify({"success": True, "superseded": True}), 200
        with _view().session() as current:
            return jsonify(_session_payload(current)), 200

    @app.route("/api/attendance/edit", methods=["POST"], endpoint="attendance_edit")
    @json_errors
    def attendance_edit():
        with _view().session() as s:
            s.enter_edit()
            return jsonify(_session_payload(s)), 200

    @app.route("/api/attendance/members/<member_id>/attendance", methods=["POST"], endpoint="attendance_set")
    @json_errors
    def attendance_set(member_id: str):
        raw = str(_body().get("choice", "")).strip().lower()
        try:
            choice = AttendanceChoice(raw)
        except ValueError:
            raise ValidationError(f"Unknown attendance choice: {raw!r}")
        with _view().session() as s:
            s.set_attendance(member_id, choice)
            return jsonify(_session_payload(s)), 200

    @app.route("/api/attendance/members/<member_id>/memo", methods=["POST"], endpoint="attendance_memo")
    @json_errors
    def attendance_memo(member_id: str):
        with _view().session() as s:
            s.set_memo(member_id, _body().get("memo"))
            return jsonify(_session_payload(s)), 200

    @app.route("/api/attendance/members/<member_id>/online", methods=["POST"], endpoint="attendance_online")
    @json_errors
    def attendance_online(member_id: str):
        with _view().session() as s:
            s.toggle_online(member_id)
            return jsonify(_session_payload(s)), 200

    @app.route("/api/attendance/members/<member_id>/away", methods=["POST"], endpoint="attendance_away")
    @json_errors
    def attendance_away(member_id: str):
        with _view().session() as s:
            s.toggle_away(member_id)
            return jsonify(_session_payload(s)), 200

    @app.route("/api/attendance/members/<member_id>", methods=["DELETE"], endpoint="attendance_remove")
    @json_errors
    def attendance_remove(member_id: str):
        with _view().session() as s:
            s.remove(member_id)
            return jsonify(_session_payload(s)), 200

    @app.route("/api/attendance/guests", methods=["POST"], endpoint="attendance_add_guest")
    @json_errors
    def attendance_add_guest():
        member = container.attendance_service.get_member(str(_body().get("member_id", "")))
        with _view().session() as s:
            s.add_guest(member)
            return jsonify(_session_payload(s)), 200

    @app.route("/api/attendance/search", methods=["GET"], endpoint="attendance_search")
    @json_errors
    def attendance_search():
        view = _view()
        exclude = set()
        if view.has_session:
            with view.session() as s:
                exclude = set(s.attendance)
        found = container.attendance_service.search_members(request.args.get("q", ""), exclude_ids=exclude)
        return jsonify(
            {
                "success": True,
                "members": [
                    {"member_id": m.member_id, "name": m.name, "furigana": m.furigana, "unit_id": m.unit_id}
                    for m in found
                ],
            }
        ), 200

    @app.route("/api/attendance/discard", methods=["POST"], endpoint="attendance_discard")
    @json_errors
    def attendance_discard():
        with _view().session() as s:
            s.discard(confirmed=bool(_body().get("confirmed", False)))
            return jsonify(_session_payload(s)), 200

    @app.route("/api/attendance/commit", methods=["POST"], endpoint="attendance_commit")
    @json_errors
    def attendance_commit():
        with _view().session() as s:
            result = s.commit(container.attendance_service, reported_by=session.get("user_id"))
            return jsonify(_commit_payload(s, result)), 200

    @app.route("/api/attendance/leave-warning", methods=["GET"], endpoint="attendance_leave_warning")
    @json_errors
    def attendance_leave_warning():
        view = _view()
        if not view.has_session:
            return jsonify({"success": True, "warning": None}), 200
        with view.session() as s:
            return jsonify({"success": True, "warning": s.leave_warning()}), 200

    @app.route("/api/attendance/records/delete", methods=["POST"], endpoint="attendance_delete_records")
    @json_errors
    def attendance_delete_records():
        data = _body()
        event_date = parse_iso_date(str(data.get("date", "")))
        deleted = container.attendance_service.delete_all_records_for_resolved_meetings(
            event_date,
            str(data.get("scope", "")),
            data.get("confirmation"),
        )
        return jsonify({"success": True, "deleted": deleted}), 200
