from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import latest_sunday, parse_iso_date, today_local
from ..common.http import json_errors
from ..common.validators import require_non_empty
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/meeting-modes", methods=["GET"], endpoint="meeting_modes_get")
    @json_errors
    def meeting_modes_get():
        date_s = request.args.get("date")
        event_date = parse_iso_date(date_s) if date_s else latest_sunday(today_local())
        locality_ids = request.args.getlist("locality_id")
        if not locality_ids:
            locality_ids = sorted({u.locality_id for u in container.organization_repo.list_units()})
        modes = container.meeting_service.get_combined_modes(event_date, locality_ids)
        return jsonify({"success": True, "event_date": event_date.isoformat(), "modes": modes}), 200

    @app.route("/api/meeting-modes", methods=["PUT"], endpoint="meeting_modes_put")
    @json_errors
    def meeting_modes_put():
        data = request.get_json(silent=True) or {}
        event_date = parse_iso_date(str(data.get("date", "")))
        locality_id = require_non_empty(str(data.get("locality_id", "")), "locality_id")
        container.meeting_service.set_combined_mode(
            event_date=event_date,
            locality_id=locality_id,
            combined=bool(data.get("combined", False)),
        )
        return jsonify({"success": True}), 200

    @app.route("/api/meetings/duplicates", methods=["GET"], endpoint="meeting_duplicates")
    @json_errors
    def meeting_duplicates():
        groups = container.meeting_service.duplicate_report()
        return jsonify(
            {
                "success": True,
                "groups": [
                    {
                        "event_date": g.key.event_date.isoformat(),
                        "kind": g.key.kind.value,
                        "unit_id": g.key.unit_id,
                        "locality_id": g.key.locality_id,
                        "meeting_ids": list(g.meeting_ids),
                        "attendance_counts": dict(g.attendance_counts),
                        "chosen_id": g.chosen_id,
                    }
                    for g in groups
                ],
            }
        ), 200
