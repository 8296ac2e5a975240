from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from werkzeug.exceptions import HTTPException

from homeinv.store import RecordNotFound


bp = Blueprint("errors", __name__)


@bp.app_errorhandler(ValueError)
def handle_invalid_input(error: ValueError):
    return jsonify({"error": str(error) or "Invalid request."}), 400


@bp.app_errorhandler(RecordNotFound)
def handle_not_found(error: RecordNotFound):
    message = error.args[0] if error.args else "Not found."
    return jsonify({"error": message}), 404


@bp.app_errorhandler(Exception)
def handle_exception(error: Exception):
    if isinstance(error, HTTPException) and error.code != 500:
        return jsonify({"error": error.description or error.name}), error.code

    current_app.logger.exception("Unhandled exception", exc_info=error)
    return jsonify({"error": "Internal Server Error"}), 500
