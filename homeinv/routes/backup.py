from __future__ import annotations

import json

from flask import Blueprint, Response, current_app, jsonify, request

from homeinv.records import utcnow
from homeinv.services import backup
from homeinv.utils.csv_export import csv_response, rows_to_csv


bp = Blueprint("backup", __name__, url_prefix="/api")


def _store():
    return current_app.extensions["household_store"]


@bp.get("/export-backup")
def export_backup():
    now = utcnow()
    envelope = backup.export_backup(_store(), now=now)
    response = Response(
        json.dumps(envelope, indent=2, ensure_ascii=False),
        mimetype="application/json",
    )
    response.headers["Content-Disposition"] = (
        f'attachment; filename="{backup.backup_filename(now)}"'
    )
    return response


@bp.post("/import-backup")
def import_backup():
    envelope = request.get_json(silent=True)
    if envelope is None:
        return jsonify({"error": "Request body must be JSON."}), 400
    imported = backup.import_backup(_store(), envelope)
    return jsonify({"success": True, "imported": imported})


@bp.get("/export-csv")
def export_csv():
    rows = backup.inventory_csv_rows(_store())
    return csv_response(rows_to_csv(rows, backup.CSV_COLUMNS), backup.csv_filename())
