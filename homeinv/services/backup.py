"""Whole-household backup envelope and the inventory CSV export."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from homeinv.records import format_timestamp, utcnow
from homeinv.services.reference_data import unit_label
from homeinv.store import (
    CHORE_HISTORY,
    CHORES,
    INVENTORY,
    PURCHASES,
    SETTINGS,
    HouseholdStore,
)


logger = logging.getLogger("homeinv.backup")

BACKUP_VERSION = 1

# envelope field -> stored collection
BACKUP_FIELDS = (
    ("inventory", INVENTORY),
    ("purchases", PURCHASES),
    ("settings", SETTINGS),
    ("chores", CHORES),
    ("choreHistory", CHORE_HISTORY),
)

CSV_COLUMNS = (("name", "Name"), ("quantity", "Quantity"), ("unit", "Unit"))


def export_backup(store: HouseholdStore, *, now: datetime | None = None) -> dict[str, Any]:
    envelope: dict[str, Any] = {
        "version": BACKUP_VERSION,
        "exportedAt": format_timestamp(now or utcnow()),
    }
    with store.transaction():
        for field, collection in BACKUP_FIELDS:
            envelope[field] = store.serialize(collection)
    return envelope


def backup_filename(now: datetime | None = None) -> str:
    return f"home-inventory-backup-{(now or utcnow()).date().isoformat()}.json"


def import_backup(store: HouseholdStore, envelope: Any) -> list[str]:
    """Replace every collection present in ``envelope`` and persist at once.

    Fields missing from the envelope leave their collection untouched.
    Returns the names of the replaced collections.
    """

    if not isinstance(envelope, dict):
        raise ValueError("Backup must be a JSON object.")
    version = envelope.get("version")
    if version != BACKUP_VERSION or isinstance(version, bool):
        raise ValueError(f"Unsupported backup version: {version!r}")

    documents = {
        collection: envelope[field]
        for field, collection in BACKUP_FIELDS
        if field in envelope
    }
    store.replace_collections(documents)
    store.flush()
    logger.info("Imported backup with %s", ", ".join(documents) or "no collections")
    return list(documents)


def inventory_csv_rows(store: HouseholdStore) -> list[dict[str, Any]]:
    """Items ordered by quantity, then name, with their unit label."""

    with store.transaction():
        items = list(store.items)
        unit_types = store.settings.unit_types
    ordered = sorted(items, key=lambda item: (item.quantity, item.name.lower(), item.name))
    return [
        {
            "name": item.name,
            "quantity": item.quantity,
            "unit": unit_label(unit_types, item.unit, item.quantity),
        }
        for item in ordered
    ]


def csv_filename(now: datetime | None = None) -> str:
    return f"inventory-{(now or utcnow()).date().isoformat()}.csv"
