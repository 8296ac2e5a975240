from __future__ import annotations

import re
from dataclasses import replace
from typing import Any, Iterable

from homeinv.records import InventoryItem, NamedEntry, Settings, UnitType
from homeinv.store import SETTINGS, HouseholdStore, RecordNotFound


UNKNOWN_LABEL = "Unknown"

# URL segment -> Settings attribute
REFERENCE_LISTS = {
    "categories": "categories",
    "unit-types": "unit_types",
    "locations": "locations",
    "shops": "shops",
}


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-")
    return slug


def label_for(entries: Iterable[NamedEntry], entry_id: str | None) -> str:
    """Display name for ``entry_id``, falling back to the raw id."""

    for entry in entries:
        if entry.id == entry_id:
            return entry.name
    return entry_id or UNKNOWN_LABEL


def unit_label(unit_types: Iterable[UnitType], unit_id: str | None, quantity: int) -> str:
    for unit in unit_types:
        if unit.id == unit_id:
            return unit.singular if quantity == 1 else unit.plural
    return unit_id or ""


def item_unit_label(settings: Settings, item: InventoryItem, quantity: int | None = None) -> str:
    return unit_label(settings.unit_types, item.unit, item.quantity if quantity is None else quantity)


def _resolve_list(kind: str) -> str:
    attribute = REFERENCE_LISTS.get(kind)
    if attribute is None:
        raise RecordNotFound(f"Unknown settings list: {kind}")
    return attribute


def _build_entry(kind: str, payload: dict[str, Any]):
    if kind == "unit-types":
        singular = (payload.get("singular") or "").strip()
        if not singular:
            raise ValueError("Singular label is required.")
        plural = (payload.get("plural") or "").strip() or singular
        entry_id = (payload.get("id") or "").strip() or slugify(plural)
        if not entry_id:
            raise ValueError("Unit type id could not be derived from its label.")
        return UnitType(id=entry_id, singular=singular, plural=plural)

    name = (payload.get("name") or "").strip()
    if not name:
        raise ValueError("Name is required.")
    entry_id = (payload.get("id") or "").strip() or slugify(name)
    if not entry_id:
        raise ValueError("An id could not be derived from the name.")
    return NamedEntry(id=entry_id, name=name)


def add_reference(store: HouseholdStore, kind: str, payload: dict[str, Any]):
    attribute = _resolve_list(kind)
    entry = _build_entry(kind, payload)

    with store.transaction(SETTINGS):
        current = getattr(store.settings, attribute)
        if any(existing.id == entry.id for existing in current):
            raise ValueError(f'"{entry.id}" already exists.')
        store.settings = replace(store.settings, **{attribute: current + (entry,)})
    return entry


def remove_reference(store: HouseholdStore, kind: str, entry_id: str) -> None:
    """Drop a settings entry; records that still point at it keep the raw id."""

    attribute = _resolve_list(kind)
    with store.transaction(SETTINGS):
        current = getattr(store.settings, attribute)
        remaining = tuple(entry for entry in current if entry.id != entry_id)
        if len(remaining) == len(current):
            raise RecordNotFound(f"{entry_id} not found in {kind}.")
        store.settings = replace(store.settings, **{attribute: remaining})
