from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import current_user_id, json_body, login_required
from ..common.validators import require_date_in_month, require_month_key
from ..container import Container
from .slot_brush import entries_to_slots


def register(app: Flask, container: Container) -> None:
    service = container.shift_request_service

    @app.route("/api/shift-requests/parse", methods=["POST"], endpoint="parse_shift_text")
    @login_required
    def parse_shift_text():
        body = json_body()
        return jsonify(service.parse(str(body.get("text") or "")).to_dict())

    @app.route("/api/shift-requests/<month_key>/days/<day>", methods=["GET"], endpoint="get_shift_day")
    @login_required
    def get_shift_day(month_key: str, day: str):
        day = require_date_in_month(day, month_key)
        state = service.get_day(user_id=current_user_id(), date=day)
        slots = [slot.to_dict() for slot in entries_to_slots(state.entries)]
        return jsonify({**state.to_dict(), "slots": slots})

    @app.route("/api/shift-requests/<month_key>/days/<day>", methods=["PUT"], endpoint="save_shift_day")
    @login_required
    def save_shift_day(month_key: str, day: str):
        day = require_date_in_month(day, month_key)
        body = json_body()
        if "text" in body:
            state = service.submit_text(
                user_id=current_user_id(),
                date=day,
                text=str(body.get("text") or ""),
                store_id=str(body.get("storeId") or ""),
                note=body.get("note") or None,
            )
        else:
            entries = service.entries_from_payload(body.get("entries"))
            state = service.save_day(user_id=current_user_id(), date=day, entries=entries)
        return jsonify(state.to_dict())

    @app.route("/api/shift-requests/<month_key>/days/<day>", methods=["DELETE"], endpoint="clear_shift_day")
    @login_required
    def clear_shift_day(month_key: str, day: str):
        day = require_date_in_month(day, month_key)
        state = service.clear_day(user_id=current_user_id(), date=day)
        return jsonify(state.to_dict())

    @app.route("/api/submit-windows/<month_key>", methods=["GET"], endpoint="get_submit_window")
    @login_required
    def get_submit_window(month_key: str):
        window = service.get_window(require_month_key(month_key))
        return jsonify({**window.to_dict(), "dates": window.dates()})
