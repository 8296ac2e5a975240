from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from homeinv.services.dashboard import dashboard_summary


bp = Blueprint("dashboard", __name__, url_prefix="/api")


@bp.get("/dashboard")
def dashboard():
    store = current_app.extensions["household_store"]
    return jsonify(dashboard_summary(store, query=request.args.get("q")))
