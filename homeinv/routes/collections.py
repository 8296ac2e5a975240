"""Raw collection documents, checkpointing and the activity feed."""

from __future__ import annotations

from flask import Blueprint, abort, current_app, jsonify, request

from homeinv.services import activity_feed
from homeinv.store import COLLECTIONS


bp = Blueprint("collections", __name__, url_prefix="/api")


def _store():
    return current_app.extensions["household_store"]


def _collection_or_404(name: str) -> str:
    if name not in COLLECTIONS:
        abort(404, description=f"Unknown collection: {name}")
    return name


@bp.get("/<name>")
def read_collection(name: str):
    return jsonify(_store().serialize(_collection_or_404(name)))


@bp.post("/<name>")
def write_collection(name: str):
    payload = request.get_json(silent=True)
    if payload is None:
        return jsonify({"error": "Request body must be JSON."}), 400
    _store().replace_collection(_collection_or_404(name), payload)
    return jsonify({"success": True})


@bp.post("/checkpoint")
def checkpoint():
    written = _store().flush()
    return jsonify({"success": True, "written": written})


@bp.get("/activity")
def activity():
    try:
        limit = int(request.args.get("limit", 50))
    except ValueError:
        return jsonify({"error": "limit must be an integer."}), 400
    limit = max(1, min(limit, 200))
    events = activity_feed.recent_activity(limit)
    return jsonify({"events": events})
