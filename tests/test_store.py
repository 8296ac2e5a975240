import json
import os
import sys

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from homeinv import create_app
from homeinv.extensions import db
from homeinv.models import StoredDocument
from homeinv.services import activity_feed, change_log, inventory
from homeinv.store import (
    CHORES,
    INVENTORY,
    FileDocumentBackend,
    HouseholdStore,
)


@pytest.fixture
def app():
    app = create_app({"TESTING": True, "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:"})
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def file_app(tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "STORAGE_BACKEND": "file",
            "DATA_DIR": str(tmp_path),
        }
    )
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


class FlakyBackend:
    name = "flaky"

    def __init__(self, failures=1):
        self.failures = failures
        self.documents = {}

    def read(self, name):
        return self.documents.get(name)

    def write(self, name, payload):
        if self.failures:
            self.failures -= 1
            raise OSError("disk unavailable")
        self.documents[name] = payload


def test_mutations_mark_collections_dirty_until_flushed(file_app, tmp_path):
    store = file_app.extensions["household_store"]
    assert store.dirty == set()

    inventory.add_item(store, {"name": "Milk", "category": "general", "unit": "items", "quantity": 2})
    assert store.dirty == {INVENTORY}

    assert store.flush() == [INVENTORY]
    assert store.dirty == set()
    assert store.flush() == []

    with open(tmp_path / "inventory.json", encoding="utf-8") as handle:
        saved = json.load(handle)
    assert [entry["name"] for entry in saved] == ["Milk"]
    assert saved[0]["unassignedQuantity"] == 2


def test_file_backend_round_trip(file_app, tmp_path):
    store = file_app.extensions["household_store"]
    item = inventory.add_item(store, {"name": "Rice", "category": "general", "unit": "items", "quantity": 4})
    store.flush()

    reloaded = HouseholdStore(FileDocumentBackend(tmp_path), app=file_app)
    reloaded.load()

    assert reloaded.items == [item]
    assert reloaded.serialize(INVENTORY) == store.serialize(INVENTORY)


def test_failed_write_stays_dirty_and_retries(app):
    backend = FlakyBackend(failures=1)
    store = HouseholdStore(backend, app=app)
    store.load()

    inventory.add_item(store, {"name": "Tea", "category": "general", "unit": "items"})

    assert store.flush() == []
    assert store.dirty == {INVENTORY}
    assert len(store.items) == 1

    assert store.flush() == [INVENTORY]
    assert store.dirty == set()
    assert backend.documents[INVENTORY][0]["name"] == "Tea"


def test_load_normalizes_legacy_records_and_keeps_unknown_fields(tmp_path, app):
    legacy = [
        {
            "id": "legacy-1",
            "name": "Pasta",
            "category": "general",
            "quantity": 1,
            "unit": "items",
            "unassignedQuantity": 9,
            "locationQuantities": [
                {"locationId": "pantry", "quantity": 2},
                {"locationId": "fridge", "quantity": 0},
            ],
            "createdAt": "2024-01-05T08:30:00.000Z",
            "updatedAt": "2024-01-06T08:30:00.000Z",
            "barcode": "12345",
        }
    ]
    (tmp_path / "inventory.json").write_text(json.dumps(legacy), encoding="utf-8")

    store = HouseholdStore(FileDocumentBackend(tmp_path), app=app)
    store.load()

    item = store.items[0]
    assert item.quantity == 2
    assert item.unassigned_quantity == 0
    assert [entry.location_id for entry in item.location_quantities] == ["pantry"]

    data = store.serialize(INVENTORY)[0]
    assert data["barcode"] == "12345"
    assert data["createdAt"] == "2024-01-05T08:30:00.000Z"
    assert data["unassignedQuantity"] == 0


def test_unreadable_collection_loads_empty(tmp_path, app):
    (tmp_path / "chores.json").write_text("{not json", encoding="utf-8")
    (tmp_path / "inventory.json").write_text(json.dumps({"items": []}), encoding="utf-8")

    store = HouseholdStore(FileDocumentBackend(tmp_path), app=app)
    store.load()

    assert store.chores == []
    assert store.items == []


def test_replace_collection_rejects_invalid_documents(app):
    store = app.extensions["household_store"]
    inventory.add_item(store, {"name": "Soap", "category": "general", "unit": "items"})
    store.flush()

    with pytest.raises(ValueError):
        store.replace_collection(INVENTORY, [{"name": "missing id"}])
    with pytest.raises(ValueError):
        store.replace_collection(CHORES, {"not": "a list"})

    assert [item.name for item in store.items] == ["Soap"]
    assert store.dirty == set()


def test_database_backend_persists_documents(app):
    store = app.extensions["household_store"]
    inventory.add_item(store, {"name": "Flour", "category": "general", "unit": "items"})
    store.flush()

    document = StoredDocument.query.filter_by(name=INVENTORY).one()
    assert json.loads(document.payload)[0]["name"] == "Flour"

    reloaded = HouseholdStore(store.backend, app=app)
    reloaded.load()
    assert [item.name for item in reloaded.items] == ["Flour"]


def test_flush_records_change_lines_on_activity_feed(app):
    store = app.extensions["household_store"]
    inventory.add_item(store, {"name": "Coffee", "category": "general", "unit": "items"})
    store.flush()

    messages = [event["message"] for event in activity_feed.recent_activity(200)]
    assert 'Inventory: added "Coffee"' in messages


def test_change_log_descriptions():
    old_inventory = [{"id": "1", "name": "Milk", "quantity": 5}, {"id": "2", "name": "Eggs", "quantity": 6}]
    new_inventory = [{"id": "1", "name": "Milk", "quantity": 8}, {"id": "3", "name": "Bread", "quantity": 1}]
    assert change_log.describe_changes("inventory", old_inventory, new_inventory) == [
        'Inventory: added "Bread", removed "Eggs", "Milk" +3 (now 8)'
    ]

    purchase = {"id": "p1", "itemName": "Milk", "quantity": 2, "unitPrice": 1.1, "totalPrice": 2.2}
    assert change_log.describe_changes("purchases", [], [purchase]) == [
        'Purchase: 2x "Milk" @ £1.10 each (£2.20 total)'
    ]

    settings = {"categories": [{"id": "general", "name": "General"}], "locations": []}
    assert change_log.describe_changes("settings", None, settings) == ["Settings: initial save"]
    updated = {
        "categories": [{"id": "general", "name": "General"}, {"id": "dairy", "name": "Dairy"}],
        "locations": [],
    }
    assert change_log.describe_changes("settings", settings, updated) == [
        'Settings: added category "Dairy"'
    ]
    assert change_log.describe_changes("chores", [], []) == ["Saved chores"]
