"""Item-level inventory operations used by the HTTP routes.

Request payloads are validated here, before anything is mutated; invalid
input raises ``ValueError`` with a message meant for the user. Once a
request is valid, the stock arithmetic is delegated to ``services.ledger``,
which clamps instead of failing.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from homeinv.records import InventoryItem, PurchaseLog, utcnow
from homeinv.services import ledger
from homeinv.services.reference_data import item_unit_label, label_for
from homeinv.store import INVENTORY, PURCHASES, HouseholdStore


UNASSIGNED_FILTER = "unassigned"
EDITABLE_FIELDS = ("name", "category", "unit", "minQuantity")
LEDGER_FIELDS = ("id", "quantity", "locationQuantities", "unassignedQuantity", "createdAt", "updatedAt")


def _require_text(payload: dict[str, Any], key: str, label: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{label} is required.")
    return value.strip()


def _int_value(value: Any, label: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{label} must be a whole number.")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{label} must be a whole number.")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{label} must be a whole number.")


def positive_amount(value: Any, label: str = "Quantity") -> int:
    amount = _int_value(value, label)
    if amount <= 0:
        raise ValueError(f"{label} must be greater than zero.")
    return amount


def _non_negative_int(value: Any, label: str) -> int:
    amount = _int_value(value, label)
    if amount < 0:
        raise ValueError(f"{label} cannot be negative.")
    return amount


def _optional_min_quantity(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return _non_negative_int(value, "Minimum quantity")


def _price(value: Any) -> float:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValueError("Unit price must be a number.")
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValueError("Unit price must be a number.")
    if price < 0:
        raise ValueError("Unit price cannot be negative.")
    return value if isinstance(value, (int, float)) else price


def _extra_fields(payload: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value
        for key, value in payload.items()
        if key not in EDITABLE_FIELDS and key not in LEDGER_FIELDS
    }


def add_item(store: HouseholdStore, payload: dict[str, Any], *, now: datetime | None = None) -> InventoryItem:
    name = _require_text(payload, "name", "Name")
    category = _require_text(payload, "category", "Category")
    unit = _require_text(payload, "unit", "Unit")
    quantity = _non_negative_int(payload.get("quantity", 0), "Quantity")
    min_quantity = _optional_min_quantity(payload.get("minQuantity"))

    now = now or utcnow()
    extra = _extra_fields(payload)
    item = InventoryItem(
        id=str(uuid.uuid4()),
        name=name,
        category=category,
        quantity=quantity,
        unit=unit,
        created_at=now,
        updated_at=now,
        min_quantity=min_quantity,
        extra=extra,
    )
    with store.transaction(INVENTORY):
        store.items = store.items + [item]
    return item


def update_item(
    store: HouseholdStore,
    item_id: str,
    payload: dict[str, Any],
    *,
    now: datetime | None = None,
) -> InventoryItem:
    """Edit descriptive fields; stock levels only change through the ledger."""

    changes: dict[str, Any] = {}
    if "name" in payload:
        changes["name"] = _require_text(payload, "name", "Name")
    if "category" in payload:
        changes["category"] = _require_text(payload, "category", "Category")
    if "unit" in payload:
        changes["unit"] = _require_text(payload, "unit", "Unit")
    if "minQuantity" in payload:
        changes["min_quantity"] = _optional_min_quantity(payload.get("minQuantity"))

    with store.transaction(INVENTORY):
        item = store.get_item(item_id)
        extra = _extra_fields(payload)
        if extra:
            changes["extra"] = {**item.extra, **extra}
        updated = replace(item, updated_at=now or utcnow(), **changes)
        store.put_item(updated)
    return updated


def delete_item(store: HouseholdStore, item_id: str) -> InventoryItem:
    with store.transaction(INVENTORY):
        item = store.get_item(item_id)
        store.items = [existing for existing in store.items if existing.id != item_id]
    return item


@dataclass(frozen=True)
class StockAddition:
    item: InventoryItem
    purchase: PurchaseLog | None


def add_stock(
    store: HouseholdStore,
    item_id: str,
    payload: dict[str, Any],
    *,
    now: datetime | None = None,
) -> StockAddition:
    """Add stock to the unassigned pool and log the purchase.

    ``initialStock`` records stock that was already in the house, so no
    purchase entry (and no shop) is needed.
    """

    amount = positive_amount(payload.get("amount", payload.get("quantity")))
    initial_stock = bool(payload.get("initialStock"))
    shop_id = str(payload.get("shopId") or payload.get("shop") or "").strip()
    unit_price = _price(payload.get("unitPrice"))
    if not initial_stock and not shop_id:
        raise ValueError("Select a shop or mark the stock as initial stock.")

    now = now or utcnow()
    with store.transaction(INVENTORY, PURCHASES):
        item = store.get_item(item_id)
        updated = ledger.add_stock(item, amount, now=now)
        store.put_item(updated)

        purchase = None
        if not initial_stock:
            purchase = PurchaseLog(
                id=str(uuid.uuid4()),
                item_id=item.id,
                item_name=item.name,
                quantity=amount,
                unit_price=unit_price,
                total_price=amount * unit_price,
                shop=shop_id,
                purchased_at=now,
            )
            store.purchases = [purchase] + store.purchases
    return StockAddition(item=updated, purchase=purchase)


def _optional_location(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("Location must be a location id.")
    value = value.strip()
    if not value or value == UNASSIGNED_FILTER:
        return None
    return value


def remove_stock(
    store: HouseholdStore,
    item_id: str,
    payload: dict[str, Any],
    *,
    now: datetime | None = None,
) -> InventoryItem:
    amount = positive_amount(payload.get("amount"))
    location_id = _optional_location(payload.get("locationId"))

    with store.transaction(INVENTORY):
        item = store.get_item(item_id)
        updated = ledger.remove_stock(item, amount, location_id, now=now)
        store.put_item(updated)
    return updated


def move_stock(
    store: HouseholdStore,
    item_id: str,
    payload: dict[str, Any],
    *,
    now: datetime | None = None,
) -> InventoryItem:
    amount = positive_amount(payload.get("amount"))
    from_location_id = _optional_location(payload.get("fromLocationId"))
    to_location_id = _optional_location(payload.get("toLocationId")) or ledger.UNASSIGNED
    if from_location_id is None and to_location_id == ledger.UNASSIGNED:
        raise ValueError("Select a destination location.")
    if from_location_id is not None and from_location_id == to_location_id:
        raise ValueError("Move locations must be different.")

    with store.transaction(INVENTORY):
        item = store.get_item(item_id)
        updated = ledger.move_between_locations(
            item, from_location_id, to_location_id, amount, now=now
        )
        store.put_item(updated)
    return updated


def is_out_of_stock(item: InventoryItem) -> bool:
    return item.quantity == 0


def is_low_stock(item: InventoryItem) -> bool:
    return item.min_quantity is not None and 0 < item.quantity <= item.min_quantity


def stock_alerts(items: list[InventoryItem]) -> dict[str, list[InventoryItem]]:
    return {
        "outOfStock": [item for item in items if is_out_of_stock(item)],
        "lowStock": [item for item in items if is_low_stock(item)],
    }


def list_items(
    store: HouseholdStore,
    *,
    query: str | None = None,
    category: str | None = None,
    location: str | None = None,
    stock: str | None = None,
) -> list[tuple[InventoryItem, int]]:
    """Filter and sort items; returns ``(item, display_quantity)`` pairs.

    The display quantity is the stock held in the filtered location, or the
    total when no location filter is active.
    """

    settings = store.settings
    needle = (query or "").strip().lower()
    results = []
    for item in list(store.items):
        display_quantity = item.quantity
        if location:
            if location == UNASSIGNED_FILTER:
                display_quantity = item.unassigned_quantity
            else:
                display_quantity = ledger.get_location_quantity(item, location)
            if display_quantity <= 0:
                continue
        if category and item.category != category:
            continue
        if stock == "out" and not is_out_of_stock(item):
            continue
        if stock == "low" and not is_low_stock(item):
            continue
        if needle:
            category_name = label_for(settings.categories, item.category).lower()
            if needle not in item.name.lower() and needle not in category_name:
                continue
        results.append((item, display_quantity))

    if stock:
        results.sort(key=lambda entry: (entry[0].quantity, entry[0].name.lower()))
    else:
        results.sort(key=lambda entry: entry[0].name.lower())
    return results


def item_detail(store: HouseholdStore, item_id: str) -> dict[str, Any]:
    item = store.get_item(item_id)
    settings = store.settings
    breakdown = [
        {
            "locationId": entry.location_id,
            "locationName": label_for(settings.locations, entry.location_id),
            "quantity": entry.quantity,
        }
        for entry in sorted(
            item.location_quantities,
            key=lambda entry: label_for(settings.locations, entry.location_id).lower(),
        )
    ]
    data = item.to_dict()
    data.update(
        {
            "categoryName": label_for(settings.categories, item.category),
            "unitLabel": item_unit_label(settings, item),
            "locationBreakdown": breakdown,
            "outOfStock": is_out_of_stock(item),
            "lowStock": is_low_stock(item),
        }
    )
    return data
