from __future__ import annotations

from flask import Blueprint, current_app, jsonify


bp = Blueprint("health", __name__, url_prefix="/health")


@bp.get("")
def health():
    store = current_app.extensions["household_store"]
    scheduler = current_app.extensions.get("flush_scheduler")
    return jsonify(
        {
            "status": "ok",
            "backend": getattr(store.backend, "name", type(store.backend).__name__),
            "dirty": sorted(store.dirty),
            "flushScheduler": bool(scheduler is not None and scheduler.running),
        }
    )
