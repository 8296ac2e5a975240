"""Logging setup for the household service.

Every record carries the id of the request that produced it. A client may
send its own ``X-Request-ID``; anything that does not look like an id is
replaced with a fresh one. The id is echoed back on the response.
"""

from __future__ import annotations

import logging
import re
import sys
import uuid
from logging.handlers import RotatingFileHandler
from pathlib import Path

from flask import Flask, g, has_request_context, request


REQUEST_ID_HEADER = "X-Request-ID"
LOG_FORMAT = "%(asctime)s [%(levelname)s] [req=%(request_id)s] %(name)s: %(message)s"
LOG_FILENAME = "homeinv.log"

_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        request_id = None
        if has_request_context():
            request_id = getattr(g, "request_id", None)
        record.request_id = request_id or "-"
        return True


def assign_request_id() -> str:
    supplied = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    if _REQUEST_ID_PATTERN.match(supplied):
        request_id = supplied
    else:
        request_id = uuid.uuid4().hex[:8]
    g.request_id = request_id
    return request_id


def init_request_ids(app: Flask) -> None:
    @app.before_request
    def _assign_request_id():
        assign_request_id()

    @app.after_request
    def _echo_request_id(response):
        request_id = getattr(g, "request_id", None)
        if request_id:
            response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _level(value, default: int = logging.INFO) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value or "").upper())
    return level if isinstance(level, int) else default


def configure_logging(app: Flask) -> Path:
    """Send logs to stdout and a rotating file under ``LOG_DIR``.

    Calling this again (one app per test, or a reload) swaps the handlers it
    added last time instead of stacking new ones.
    """

    logs_dir = Path(app.config.get("LOG_DIR") or Path(app.root_path).parent / "logs")
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / LOG_FILENAME
    level = _level(app.config.get("LOG_LEVEL"))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        if getattr(handler, "_homeinv_handler", False):
            root_logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    request_filter = RequestIdFilter()

    stream_handler = logging.StreamHandler(sys.stdout)
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=int(app.config.get("LOG_MAX_BYTES") or 5 * 1024 * 1024),
        backupCount=int(app.config.get("LOG_BACKUP_COUNT") or 5),
        encoding="utf-8",
    )
    for handler in (stream_handler, file_handler):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(request_filter)
        handler._homeinv_handler = True
        root_logger.addHandler(handler)

    for handler in app.logger.handlers:
        handler.addFilter(request_filter)

    app.logger.setLevel(level)
    logging.getLogger("werkzeug").setLevel(logging.INFO)
    # Flush runs every second; only its problems are interesting.
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("gunicorn.error").setLevel(logging.INFO)

    return log_path
