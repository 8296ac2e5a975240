import logging
import os

from flask import Flask
from sqlalchemy.pool import StaticPool

from .extensions import db
from .routes import (
    backup,
    chores,
    collections,
    dashboard,
    errors,
    health,
    items,
    purchases,
    settings,
)
from .services.activity_feed import ActivityFeedHandler
from .store import HouseholdStore, build_backend, initialize_flush_scheduler
from .utils.logging import configure_logging, init_request_ids
from config import Config
from . import models  # ensure models are registered with SQLAlchemy


def _flag(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def _ensure_storage_dirs(app: Flask) -> None:
    database_uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if database_uri.startswith("sqlite:///") and not database_uri.startswith("sqlite:///:memory:"):
        db_dir = os.path.dirname(database_uri[len("sqlite:///"):])
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
    if (app.config.get("STORAGE_BACKEND") or "").lower() == "file":
        os.makedirs(app.config["DATA_DIR"], exist_ok=True)


def _attach_activity_feed() -> None:
    app_logger = logging.getLogger("homeinv")
    if any(isinstance(handler, ActivityFeedHandler) for handler in app_logger.handlers):
        return
    handler = ActivityFeedHandler(level=logging.WARNING)
    app_logger.addHandler(handler)


def create_app(config_override=None):
    app = Flask(__name__)

    # load configuration from environment variables
    app.config.from_object(Config)
    if config_override:
        app.config.update(config_override)

    database_uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if database_uri.startswith("sqlite:///:memory:"):
        engine_options = app.config.setdefault("SQLALCHEMY_ENGINE_OPTIONS", {})
        connect_args = engine_options.setdefault("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        engine_options.setdefault("poolclass", StaticPool)

    if not app.config.get("TESTING"):
        configure_logging(app)
    _ensure_storage_dirs(app)

    db.init_app(app)
    with app.app_context():
        db.create_all()

    store = HouseholdStore(
        build_backend(app),
        app=app,
        currency=app.config.get("CURRENCY_SYMBOL") or "£",
    )
    store.load()
    app.extensions["household_store"] = store
    _attach_activity_feed()

    init_request_ids(app)

    app.register_blueprint(errors.bp)
    app.register_blueprint(health.bp)
    app.register_blueprint(items.bp)
    app.register_blueprint(purchases.bp)
    app.register_blueprint(chores.bp)
    app.register_blueprint(settings.bp)
    app.register_blueprint(backup.bp)
    app.register_blueprint(dashboard.bp)
    app.register_blueprint(collections.bp)

    if _flag(app.config.get("FLUSH_SCHEDULER_ENABLED")) and not app.config.get("TESTING"):
        initialize_flush_scheduler(app, store)

    return app
