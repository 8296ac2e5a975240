"""Human-readable summaries of what changed between two saved collections."""

from __future__ import annotations

import logging
from typing import Any

from homeinv.services import activity_feed


logger = logging.getLogger("homeinv.changes")

_SETTINGS_LISTS = (
    ("categories", "category", "name"),
    ("locations", "location", "name"),
    ("shops", "shop", "name"),
    ("unitTypes", "unit type", "singular"),
)


def find_changes(
    old: list[dict[str, Any]] | None, new: list[dict[str, Any]] | None
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    old = old or []
    new = new or []
    old_ids = {entry.get("id") for entry in old}
    new_ids = {entry.get("id") for entry in new}
    added = [entry for entry in new if entry.get("id") not in old_ids]
    removed = [entry for entry in old if entry.get("id") not in new_ids]
    return added, removed


def _settings_lines(old: dict[str, Any] | None, new: dict[str, Any]) -> list[str]:
    if not old:
        return ["Settings: initial save"]

    changes = []
    for key, label, name_key in _SETTINGS_LISTS:
        added, removed = find_changes(old.get(key), new.get(key))
        changes.extend(f'added {label} "{entry.get(name_key)}"' for entry in added)
        changes.extend(f'removed {label} "{entry.get(name_key)}"' for entry in removed)
    if not changes:
        return []
    return ["Settings: " + ", ".join(changes)]


def _inventory_lines(old: list[dict[str, Any]] | None, new: list[dict[str, Any]]) -> list[str]:
    old = old or []
    added, removed = find_changes(old, new)
    messages = [f'added "{entry.get("name")}"' for entry in added]
    messages.extend(f'removed "{entry.get("name")}"' for entry in removed)

    previous = {entry.get("id"): entry for entry in old}
    for entry in new:
        before = previous.get(entry.get("id"))
        if before is None or before.get("quantity") == entry.get("quantity"):
            continue
        diff = (entry.get("quantity") or 0) - (before.get("quantity") or 0)
        sign = "+" if diff > 0 else ""
        messages.append(f'"{entry.get("name")}" {sign}{diff} (now {entry.get("quantity")})')

    if not messages:
        return []
    return ["Inventory: " + ", ".join(messages)]


def _purchase_lines(
    old: list[dict[str, Any]] | None, new: list[dict[str, Any]], currency: str
) -> list[str]:
    added, _ = find_changes(old, new)
    lines = []
    for entry in added:
        unit_price = float(entry.get("unitPrice") or 0)
        total_price = float(entry.get("totalPrice") or 0)
        lines.append(
            f'Purchase: {entry.get("quantity")}x "{entry.get("itemName")}" '
            f"@ {currency}{unit_price:.2f} each ({currency}{total_price:.2f} total)"
        )
    return lines


def describe_changes(name: str, old: Any, new: Any, *, currency: str = "£") -> list[str]:
    if name == "settings" and new:
        return _settings_lines(old, new)
    if name == "inventory" and isinstance(new, list):
        return _inventory_lines(old, new)
    if name == "purchases" and isinstance(new, list):
        return _purchase_lines(old, new, currency)
    return [f"Saved {name}"]


def log_changes(name: str, old: Any, new: Any, *, currency: str = "£") -> list[str]:
    lines = describe_changes(name, old, new, currency=currency)
    for line in lines:
        logger.info(line)
        activity_feed.record_activity("info", line, source="store", collection=name)
    return lines
