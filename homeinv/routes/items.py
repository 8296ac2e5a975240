from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from homeinv.services import inventory
from homeinv.services.reference_data import item_unit_label


bp = Blueprint("items", __name__, url_prefix="/api")

STOCK_FILTERS = ("out", "low")


def _store():
    return current_app.extensions["household_store"]


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object.")
    return payload


@bp.get("/items")
def list_items():
    """List items with optional ``q``, ``category``, ``location`` and ``stock`` filters.

    ``location=unassigned`` lists items holding unplaced stock; any other
    location id lists items stocked there. ``displayQuantity`` is the amount
    held in that location (the total when no location filter is given).
    """

    stock = (request.args.get("stock") or "").strip() or None
    if stock is not None and stock not in STOCK_FILTERS:
        return jsonify({"error": "stock must be 'out' or 'low'."}), 400

    store = _store()
    with store.transaction():
        results = inventory.list_items(
            store,
            query=request.args.get("q"),
            category=(request.args.get("category") or "").strip() or None,
            location=(request.args.get("location") or "").strip() or None,
            stock=stock,
        )
        settings = store.settings

    payload = []
    for item, display_quantity in results:
        data = item.to_dict()
        data["displayQuantity"] = display_quantity
        data["unitLabel"] = item_unit_label(settings, item, display_quantity)
        payload.append(data)
    return jsonify({"items": payload, "count": len(payload)})


@bp.post("/items")
def create_item():
    item = inventory.add_item(_store(), _json_body())
    return jsonify(item.to_dict()), 201


@bp.get("/items/<item_id>")
def item_detail(item_id: str):
    store = _store()
    with store.transaction():
        data = inventory.item_detail(store, item_id)
    return jsonify(data)


@bp.patch("/items/<item_id>")
def update_item(item_id: str):
    item = inventory.update_item(_store(), item_id, _json_body())
    return jsonify(item.to_dict())


@bp.delete("/items/<item_id>")
def delete_item(item_id: str):
    inventory.delete_item(_store(), item_id)
    return jsonify({"success": True})


@bp.post("/items/<item_id>/stock/add")
def add_stock(item_id: str):
    result = inventory.add_stock(_store(), item_id, _json_body())
    return jsonify(
        {
            "item": result.item.to_dict(),
            "purchase": result.purchase.to_dict() if result.purchase else None,
        }
    )


@bp.post("/items/<item_id>/stock/remove")
def remove_stock(item_id: str):
    item = inventory.remove_stock(_store(), item_id, _json_body())
    return jsonify({"item": item.to_dict()})


@bp.post("/items/<item_id>/stock/move")
def move_stock(item_id: str):
    item = inventory.move_stock(_store(), item_id, _json_body())
    return jsonify({"item": item.to_dict()})


@bp.get("/stock-alerts")
def stock_alerts():
    store = _store()
    with store.transaction():
        alerts = inventory.stock_alerts(list(store.items))
    return jsonify(
        {key: [item.to_dict() for item in items] for key, items in alerts.items()}
    )
