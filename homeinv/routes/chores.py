from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from homeinv.records import utcnow
from homeinv.services import chores


bp = Blueprint("chores", __name__, url_prefix="/api")


def _store():
    return current_app.extensions["household_store"]


def _json_body(required: bool = True) -> dict:
    payload = request.get_json(silent=True)
    if payload is None and not required:
        return {}
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object.")
    return payload


@bp.post("/chores/add")
def add_chore():
    chore = chores.add_chore(_store(), _json_body())
    return jsonify(chore.to_dict()), 201


@bp.get("/chores/schedule")
def chore_schedule():
    store = _store()
    with store.transaction():
        entries = chores.chore_schedule_list(store)
    return jsonify({"chores": entries})


@bp.get("/chores/calendar")
def chore_calendar():
    today = utcnow()
    try:
        year = int(request.args.get("year", today.year))
        month = int(request.args.get("month", today.month))
    except ValueError:
        return jsonify({"error": "year and month must be integers."}), 400

    store = _store()
    with store.transaction():
        data = chores.calendar_month(store, year, month)
    return jsonify(data)


@bp.get("/chores/<chore_id>")
def chore_detail(chore_id: str):
    store = _store()
    with store.transaction():
        data = chores.chore_detail(store, chore_id)
    return jsonify(data)


@bp.patch("/chores/<chore_id>")
def update_chore(chore_id: str):
    chore = chores.update_chore(_store(), chore_id, _json_body())
    return jsonify(chore.to_dict())


@bp.delete("/chores/<chore_id>")
def delete_chore(chore_id: str):
    chores.delete_chore(_store(), chore_id)
    return jsonify({"success": True})


@bp.post("/chores/<chore_id>/done")
def mark_done(chore_id: str):
    completion = chores.mark_done(_store(), chore_id, _json_body(required=False))
    return jsonify(completion.to_dict()), 201


@bp.delete("/chore-history/<completion_id>")
def delete_completion(completion_id: str):
    chores.delete_completion(_store(), completion_id)
    return jsonify({"success": True})


@bp.post("/chore-history/clear")
def clear_history():
    removed = chores.clear_history(_store())
    return jsonify({"success": True, "removed": removed})
