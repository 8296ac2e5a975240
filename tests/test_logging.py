import logging
import os
import sys

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from homeinv import create_app
from homeinv.extensions import db
from homeinv.utils.logging import REQUEST_ID_HEADER, RequestIdFilter, configure_logging


@pytest.fixture
def app():
    app = create_app({"TESTING": True, "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:"})
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _own_handlers():
    return [
        handler
        for handler in logging.getLogger().handlers
        if getattr(handler, "_homeinv_handler", False)
    ]


@pytest.fixture
def restore_root_logger():
    root_logger = logging.getLogger()
    level = root_logger.level
    yield
    for handler in _own_handlers():
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(level)


def test_supplied_request_id_is_echoed(client):
    response = client.get("/health", headers={REQUEST_ID_HEADER: "kitchen-tablet.42"})
    assert response.headers[REQUEST_ID_HEADER] == "kitchen-tablet.42"


def test_malformed_request_id_is_replaced(client):
    response = client.get("/health", headers={REQUEST_ID_HEADER: "not an id; drop table"})

    request_id = response.headers[REQUEST_ID_HEADER]
    assert request_id != "not an id; drop table"
    assert len(request_id) == 8


def test_request_id_filter_outside_request_uses_dash():
    record = logging.LogRecord("homeinv", logging.INFO, __file__, 1, "hello", None, None)
    assert RequestIdFilter().filter(record) is True
    assert record.request_id == "-"


def test_configure_logging_writes_file_and_does_not_stack_handlers(app, tmp_path, restore_root_logger):
    app.config.update(LOG_DIR=str(tmp_path), LOG_LEVEL="DEBUG")

    configure_logging(app)
    log_path = configure_logging(app)

    assert log_path == tmp_path / "homeinv.log"
    assert len(_own_handlers()) == 2
    assert logging.getLogger().level == logging.DEBUG

    logging.getLogger("homeinv.test").info("pantry restocked")
    for handler in _own_handlers():
        handler.flush()

    contents = log_path.read_text(encoding="utf-8")
    assert "[INFO] [req=-] homeinv.test: pantry restocked" in contents
