from __future__ import annotations

from datetime import datetime
from typing import Any

from homeinv.records import InventoryItem, Settings, format_timestamp, utcnow
from homeinv.services import chore_schedule
from homeinv.services.inventory import stock_alerts
from homeinv.services.reference_data import item_unit_label, label_for
from homeinv.store import HouseholdStore


QUICK_SEARCH_LIMIT = 8
UPCOMING_LIMIT = 5


def _item_summary(settings: Settings, item: InventoryItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "quantity": item.quantity,
        "minQuantity": item.min_quantity,
        "unitLabel": item_unit_label(settings, item),
        "categoryName": label_for(settings.categories, item.category),
    }


def quick_search(items: list[InventoryItem], query: str | None) -> list[InventoryItem]:
    needle = (query or "").strip().lower()
    if not needle:
        return []
    return [item for item in items if needle in item.name.lower()][:QUICK_SEARCH_LIMIT]


def dashboard_summary(
    store: HouseholdStore,
    *,
    query: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    now = now or utcnow()
    with store.transaction():
        items = list(store.items)
        chores = list(store.chores)
        completions = list(store.completions)
        settings = store.settings

    overdue = [
        chore for chore in chores if chore_schedule.is_overdue(chore, completions, now)
    ]
    upcoming = chore_schedule.upcoming_chores(chores, completions, now, limit=UPCOMING_LIMIT)
    alerts = stock_alerts(items)

    return {
        "overdueChores": [{"id": chore.id, "name": chore.name} for chore in overdue],
        "upcomingChores": [
            {
                "id": chore.id,
                "name": chore.name,
                "nextDueDate": format_timestamp(due),
                "daysUntilDue": days,
            }
            for chore, due, days in upcoming
        ],
        "outOfStock": [_item_summary(settings, item) for item in alerts["outOfStock"]],
        "lowStock": [_item_summary(settings, item) for item in alerts["lowStock"]],
        "searchResults": [
            _item_summary(settings, item) for item in quick_search(items, query)
        ],
    }
