"""In-memory household state with debounced persistence.

Every collection lives in memory as typed records and is the source of truth
for the running service. Mutations mark their collections dirty; a
background job (or an explicit checkpoint) writes dirty collections to the
configured document backend and logs what changed. A failed write is logged
and retried on the next flush; callers never see it.
"""

from __future__ import annotations

import atexit
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import Any, Callable, Iterator

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError

from homeinv.extensions import db
from homeinv.models import StoredDocument
from homeinv.records import (
    Chore,
    ChoreCompletion,
    InventoryItem,
    PurchaseLog,
    Settings,
)
from homeinv.services import change_log
from homeinv.services.ledger import normalize_item


logger = logging.getLogger("homeinv.store")

INVENTORY = "inventory"
PURCHASES = "purchases"
SETTINGS = "settings"
CHORES = "chores"
CHORE_HISTORY = "chore-history"
COLLECTIONS = (INVENTORY, PURCHASES, SETTINGS, CHORES, CHORE_HISTORY)

FLUSH_JOB_ID = "household-store-flush"


class RecordNotFound(LookupError):
    pass


class DatabaseDocumentBackend:
    """Keeps each collection as one JSON row in ``stored_document``."""

    name = "database"

    def read(self, name: str) -> Any:
        document = StoredDocument.query.filter_by(name=name).first()
        if document is None:
            return None
        try:
            return json.loads(document.payload)
        except ValueError:
            logger.exception("Stored document %s is not valid JSON; ignoring it", name)
            return None

    def write(self, name: str, payload: Any) -> None:
        text = json.dumps(payload, ensure_ascii=False)
        document = StoredDocument.query.filter_by(name=name).first()
        if document is None:
            db.session.add(StoredDocument(name=name, payload=text))
        else:
            document.payload = text
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise


class FileDocumentBackend:
    """Keeps each collection as ``<data_dir>/<name>.json``."""

    name = "file"

    def __init__(self, data_dir: str | os.PathLike) -> None:
        self.data_dir = Path(data_dir)

    def path_for(self, name: str) -> Path:
        return self.data_dir / f"{name}.json"

    def read(self, name: str) -> Any:
        path = self.path_for(name)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except (OSError, ValueError):
            logger.exception("Error reading %s from %s", name, path)
            return None

    def write(self, name: str, payload: Any) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(name)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=self.data_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def _parse_list(raw: Any, factory: Callable[[dict[str, Any]], Any], name: str) -> list:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError(f"{name} must be a JSON array.")
    try:
        return [factory(entry) for entry in raw]
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ValueError(f"Invalid {name} record: {exc}") from exc


class HouseholdStore:
    def __init__(self, backend, *, app=None, currency: str = "£") -> None:
        self.backend = backend
        self.app = app
        self.currency = currency

        self.items: list[InventoryItem] = []
        self.purchases: list[PurchaseLog] = []
        self.settings: Settings = Settings()
        self.chores: list[Chore] = []
        self.completions: list[ChoreCompletion] = []

        self._lock = threading.RLock()
        self._flush_lock = threading.Lock()
        self._dirty: set[str] = set()
        self._persisted: dict[str, Any] = {}
        self.scheduler: BackgroundScheduler | None = None

    # -- loading and serialising -------------------------------------------

    def _app_context(self):
        if self.app is None:
            return nullcontext()
        return self.app.app_context()

    def load(self) -> None:
        with self._lock, self._app_context():
            for name in COLLECTIONS:
                raw = self.backend.read(name)
                self._persisted[name] = raw
                try:
                    self._apply(name, raw)
                except ValueError:
                    logger.exception("Could not load %s; starting with an empty collection", name)
            self._dirty.clear()
        logger.info(
            "Loaded %s items, %s purchases, %s chores, %s completions (%s backend)",
            len(self.items),
            len(self.purchases),
            len(self.chores),
            len(self.completions),
            getattr(self.backend, "name", type(self.backend).__name__),
        )

    def _apply(self, name: str, raw: Any) -> None:
        if name == INVENTORY:
            self.items = [normalize_item(item) for item in _parse_list(raw, InventoryItem.from_dict, name)]
        elif name == PURCHASES:
            self.purchases = _parse_list(raw, PurchaseLog.from_dict, name)
        elif name == CHORES:
            self.chores = _parse_list(raw, Chore.from_dict, name)
        elif name == CHORE_HISTORY:
            self.completions = _parse_list(raw, ChoreCompletion.from_dict, name)
        elif name == SETTINGS:
            if raw is not None and not isinstance(raw, dict):
                raise ValueError("settings must be a JSON object.")
            try:
                self.settings = Settings.from_dict(raw)
            except (KeyError, TypeError, AttributeError) as exc:
                raise ValueError(f"Invalid settings record: {exc}") from exc
        else:
            raise ValueError(f"Unknown collection: {name}")

    def serialize(self, name: str) -> Any:
        with self._lock:
            if name == INVENTORY:
                return [item.to_dict() for item in self.items]
            if name == PURCHASES:
                return [purchase.to_dict() for purchase in self.purchases]
            if name == CHORES:
                return [chore.to_dict() for chore in self.chores]
            if name == CHORE_HISTORY:
                return [completion.to_dict() for completion in self.completions]
            if name == SETTINGS:
                return self.settings.to_dict()
        raise ValueError(f"Unknown collection: {name}")

    def replace_collection(self, name: str, raw: Any) -> None:
        """Swap a whole collection; nothing changes if ``raw`` is invalid."""

        self.replace_collections({name: raw})

    def replace_collections(self, documents: dict[str, Any]) -> None:
        """Swap several collections at once, all or nothing."""

        unknown = [name for name in documents if name not in COLLECTIONS]
        if unknown:
            raise ValueError(f"Unknown collection: {unknown[0]}")
        with self.transaction(*documents):
            previous = self._snapshot()
            try:
                for name, raw in documents.items():
                    self._apply(name, raw)
            except ValueError:
                self._restore(previous)
                raise

    def _snapshot(self) -> dict[str, Any]:
        return {
            INVENTORY: self.items,
            PURCHASES: self.purchases,
            SETTINGS: self.settings,
            CHORES: self.chores,
            CHORE_HISTORY: self.completions,
        }

    def _restore(self, previous: dict[str, Any]) -> None:
        self.items = previous[INVENTORY]
        self.purchases = previous[PURCHASES]
        self.settings = previous[SETTINGS]
        self.chores = previous[CHORES]
        self.completions = previous[CHORE_HISTORY]

    # -- mutation helpers ---------------------------------------------------

    @contextmanager
    def transaction(self, *names: str) -> Iterator["HouseholdStore"]:
        """Hold the writer lock and mark ``names`` dirty if the body succeeds."""

        with self._lock:
            yield self
            self._dirty.update(names)

    def get_item(self, item_id: str) -> InventoryItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise RecordNotFound(f"Item {item_id} not found.")

    def put_item(self, updated: InventoryItem) -> None:
        self.items = [updated if item.id == updated.id else item for item in self.items]

    def get_chore(self, chore_id: str) -> Chore:
        for chore in self.chores:
            if chore.id == chore_id:
                return chore
        raise RecordNotFound(f"Chore {chore_id} not found.")

    def put_chore(self, updated: Chore) -> None:
        self.chores = [updated if chore.id == updated.id else chore for chore in self.chores]

    # -- persistence --------------------------------------------------------

    @property
    def dirty(self) -> set[str]:
        with self._lock:
            return set(self._dirty)

    def flush(self) -> list[str]:
        """Write every dirty collection; returns the names that were saved."""

        with self._flush_lock:
            with self._lock:
                pending = [name for name in COLLECTIONS if name in self._dirty]
                payloads = {name: self.serialize(name) for name in pending}
                self._dirty.difference_update(pending)

            written = []
            with self._app_context():
                for name, payload in payloads.items():
                    try:
                        self.backend.write(name, payload)
                    except Exception:  # noqa: BLE001
                        logger.exception("Error writing %s; will retry on next flush", name)
                        with self._lock:
                            self._dirty.add(name)
                        continue
                    previous = self._persisted.get(name)
                    self._persisted[name] = payload
                    change_log.log_changes(name, previous, payload, currency=self.currency)
                    written.append(name)
            return written

    def close(self) -> None:
        scheduler = self.scheduler
        self.scheduler = None
        if scheduler is not None and scheduler.running:
            scheduler.shutdown(wait=False)
        self.flush()


def build_backend(app):
    backend_name = (app.config.get("STORAGE_BACKEND") or "database").lower()
    if backend_name == "file":
        return FileDocumentBackend(app.config["DATA_DIR"])
    if backend_name != "database":
        raise ValueError(f"Unsupported STORAGE_BACKEND: {backend_name}")
    return DatabaseDocumentBackend()


def initialize_flush_scheduler(app, store: HouseholdStore) -> BackgroundScheduler | None:
    if store.scheduler is not None:
        return store.scheduler

    interval = float(app.config.get("FLUSH_INTERVAL_SECONDS") or 1)
    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        store.flush,
        trigger=IntervalTrigger(seconds=interval),
        id=FLUSH_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    store.scheduler = scheduler
    app.extensions["flush_scheduler"] = scheduler
    atexit.register(store.close)
    logger.info("Store flush scheduled every %s seconds", interval)
    return scheduler
