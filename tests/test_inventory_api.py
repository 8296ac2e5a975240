import os
import sys

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from homeinv import create_app
from homeinv.extensions import db


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


def _create_item(client, **overrides):
    payload = {"name": "Milk", "category": "general", "unit": "items", "quantity": 0}
    payload.update(overrides)
    response = client.post("/api/items", json=payload)
    assert response.status_code == 201
    return response.get_json()


def test_add_item_starts_fully_unassigned(client):
    item = _create_item(client, quantity=5, minQuantity=2)

    assert item["quantity"] == 5
    assert item["unassignedQuantity"] == 5
    assert item["locationQuantities"] == []
    assert item["minQuantity"] == 2
    assert item["createdAt"] == item["updatedAt"]
    assert item["createdAt"].endswith("Z")


@pytest.mark.parametrize(
    "payload",
    [
        {"category": "general", "unit": "items"},
        {"name": "  ", "category": "general", "unit": "items"},
        {"name": "Milk", "category": "general", "unit": "items", "quantity": -1},
        {"name": "Milk", "category": "general", "unit": "items", "quantity": 1.5},
        {"name": "Milk", "category": "general", "unit": "items", "minQuantity": -3},
    ],
)
def test_add_item_rejects_invalid_payloads(client, app, payload):
    response = client.post("/api/items", json=payload)

    assert response.status_code == 400
    assert "error" in response.get_json()
    assert app.extensions["household_store"].items == []


def test_add_stock_logs_purchase(client, app):
    item = _create_item(client, quantity=5)

    response = client.post(
        f"/api/items/{item['id']}/stock/add",
        json={"amount": 3, "shopId": "shop", "unitPrice": 1.5},
    )

    assert response.status_code == 200
    data = response.get_json()
    assert data["item"]["quantity"] == 8
    assert data["item"]["unassignedQuantity"] == 8
    assert data["purchase"]["itemName"] == "Milk"
    assert data["purchase"]["quantity"] == 3
    assert data["purchase"]["totalPrice"] == 4.5
    assert data["purchase"]["shop"] == "shop"

    store = app.extensions["household_store"]
    assert [purchase.id for purchase in store.purchases] == [data["purchase"]["id"]]


def test_initial_stock_skips_purchase_log(client, app):
    item = _create_item(client)

    response = client.post(f"/api/items/{item['id']}/stock/add", json={"amount": 4, "initialStock": True})

    assert response.status_code == 200
    assert response.get_json()["purchase"] is None
    assert app.extensions["household_store"].purchases == []


def test_add_stock_validation_happens_before_mutation(client, app):
    item = _create_item(client, quantity=2)

    missing_shop = client.post(f"/api/items/{item['id']}/stock/add", json={"amount": 1})
    zero_amount = client.post(
        f"/api/items/{item['id']}/stock/add", json={"amount": 0, "shopId": "shop"}
    )
    negative_price = client.post(
        f"/api/items/{item['id']}/stock/add",
        json={"amount": 1, "shopId": "shop", "unitPrice": -1},
    )

    assert missing_shop.status_code == 400
    assert zero_amount.status_code == 400
    assert negative_price.status_code == 400
    store = app.extensions["household_store"]
    assert store.get_item(item["id"]).quantity == 2
    assert store.purchases == []


def test_move_and_remove_stock(client):
    item = _create_item(client, quantity=6)
    item_id = item["id"]

    moved = client.post(
        f"/api/items/{item_id}/stock/move", json={"amount": 10, "toLocationId": "fridge"}
    ).get_json()["item"]
    assert moved["locationQuantities"] == [{"locationId": "fridge", "quantity": 6}]
    assert moved["unassignedQuantity"] == 0

    moved = client.post(
        f"/api/items/{item_id}/stock/move",
        json={"amount": 2, "fromLocationId": "fridge", "toLocationId": ""},
    ).get_json()["item"]
    assert moved["locationQuantities"] == [{"locationId": "fridge", "quantity": 4}]
    assert moved["unassignedQuantity"] == 2

    removed = client.post(
        f"/api/items/{item_id}/stock/remove", json={"amount": 9, "locationId": "fridge"}
    ).get_json()["item"]
    assert removed["locationQuantities"] == []
    assert removed["quantity"] == 2
    assert removed["unassignedQuantity"] == 2


def test_move_requires_distinct_locations(client):
    item = _create_item(client, quantity=3)

    same = client.post(
        f"/api/items/{item['id']}/stock/move",
        json={"amount": 1, "fromLocationId": "fridge", "toLocationId": "fridge"},
    )
    nowhere = client.post(f"/api/items/{item['id']}/stock/move", json={"amount": 1})

    assert same.status_code == 400
    assert nowhere.status_code == 400


def test_unknown_item_returns_404(client):
    response = client.post("/api/items/missing/stock/remove", json={"amount": 1})
    assert response.status_code == 404
    assert "missing" in response.get_json()["error"]

    assert client.get("/api/items/missing").status_code == 404
    assert client.delete("/api/items/missing").status_code == 404


def test_update_and_delete_item(client, app):
    item = _create_item(client, quantity=3)

    response = client.patch(
        f"/api/items/{item['id']}",
        json={"name": "Oat milk", "minQuantity": None, "quantity": 99, "barcode": "42"},
    )
    assert response.status_code == 200
    updated = response.get_json()
    assert updated["name"] == "Oat milk"
    assert updated["quantity"] == 3
    assert updated["barcode"] == "42"
    assert "minQuantity" not in updated

    assert client.delete(f"/api/items/{item['id']}").status_code == 200
    assert app.extensions["household_store"].items == []


def test_listing_filters_and_display_quantity(client):
    rice = _create_item(client, name="Rice", quantity=5)
    _create_item(client, name="apples", quantity=0)
    beans = _create_item(client, name="Beans", quantity=3, minQuantity=3)
    client.post(f"/api/items/{rice['id']}/stock/move", json={"amount": 2, "toLocationId": "pantry"})

    names = [entry["name"] for entry in client.get("/api/items").get_json()["items"]]
    assert names == ["apples", "Beans", "Rice"]

    pantry = client.get("/api/items?location=pantry").get_json()["items"]
    assert [(entry["name"], entry["displayQuantity"]) for entry in pantry] == [("Rice", 2)]

    unassigned = client.get("/api/items?location=unassigned").get_json()["items"]
    assert [(entry["name"], entry["displayQuantity"]) for entry in unassigned] == [
        ("Beans", 3),
        ("Rice", 3),
    ]

    assert [entry["name"] for entry in client.get("/api/items?stock=out").get_json()["items"]] == ["apples"]
    assert [entry["id"] for entry in client.get("/api/items?stock=low").get_json()["items"]] == [beans["id"]]
    assert [entry["name"] for entry in client.get("/api/items?q=GENERAL").get_json()["items"]] == [
        "apples",
        "Beans",
        "Rice",
    ]
    assert [entry["name"] for entry in client.get("/api/items?q=ric").get_json()["items"]] == ["Rice"]
    assert client.get("/api/items?stock=bogus").status_code == 400


def test_item_detail_has_location_breakdown(client):
    item = _create_item(client, quantity=5)
    client.post(f"/api/items/{item['id']}/stock/move", json={"amount": 2, "toLocationId": "home"})
    client.post(f"/api/items/{item['id']}/stock/move", json={"amount": 1, "toLocationId": "garage"})

    detail = client.get(f"/api/items/{item['id']}").get_json()

    assert detail["categoryName"] == "General"
    assert detail["unitLabel"] == "Items"
    assert detail["unassignedQuantity"] == 2
    assert detail["locationBreakdown"] == [
        {"locationId": "garage", "locationName": "garage", "quantity": 1},
        {"locationId": "home", "locationName": "Home", "quantity": 2},
    ]


def test_stock_alerts(client):
    _create_item(client, name="Empty", quantity=0)
    _create_item(client, name="Low", quantity=1, minQuantity=2)
    _create_item(client, name="Fine", quantity=9, minQuantity=2)

    alerts = client.get("/api/stock-alerts").get_json()

    assert [item["name"] for item in alerts["outOfStock"]] == ["Empty"]
    assert [item["name"] for item in alerts["lowStock"]] == ["Low"]


def test_request_id_header_is_returned(client):
    response = client.get("/api/items")
    assert response.headers.get("X-Request-ID")
