from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from homeinv.services import reference_data


bp = Blueprint("settings", __name__, url_prefix="/api/settings")


def _store():
    return current_app.extensions["household_store"]


@bp.post("/<kind>")
def add_entry(kind: str):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Request body must be a JSON object."}), 400
    entry = reference_data.add_reference(_store(), kind, payload)
    return jsonify(entry.to_dict()), 201


@bp.delete("/<kind>/<entry_id>")
def remove_entry(kind: str, entry_id: str):
    reference_data.remove_reference(_store(), kind, entry_id)
    return jsonify({"success": True})
