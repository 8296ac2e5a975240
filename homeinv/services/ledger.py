"""Stock ledger for a single inventory item.

An item's ``quantity`` is split between named location buckets and the
unassigned pool. Only the total and the buckets are stored; the unassigned
pool is always ``quantity - sum(buckets)``, so the two can never drift
apart.

Every operation returns the item to keep using. Requests that cannot move
any stock (non-positive amounts, empty or missing source buckets) return the
item unchanged instead of raising, and over-sized requests are clamped to
what the source holds. Input validation belongs to the callers in
``services.inventory``.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from homeinv.records import InventoryItem, LocationQuantity, utcnow


UNASSIGNED = ""


def get_unassigned_quantity(item: InventoryItem) -> int:
    return item.unassigned_quantity


def get_location_quantity(item: InventoryItem, location_id: str) -> int:
    for entry in item.location_quantities:
        if entry.location_id == location_id:
            return entry.quantity
    return 0


def _with_bucket_delta(
    buckets: tuple[LocationQuantity, ...], location_id: str, delta: int
) -> tuple[LocationQuantity, ...]:
    updated = []
    found = False
    for entry in buckets:
        if entry.location_id == location_id:
            entry = replace(entry, quantity=entry.quantity + delta)
            found = True
        updated.append(entry)
    if not found:
        updated.append(LocationQuantity(location_id, delta))
    return tuple(entry for entry in updated if entry.quantity > 0)


def normalize_item(item: InventoryItem) -> InventoryItem:
    """Repair a stored record so the ledger invariants hold.

    Buckets with no stock are dropped, repeated buckets for one location are
    merged and a total smaller than the assigned stock is raised to match.
    """

    merged: dict[str, LocationQuantity] = {}
    for entry in item.location_quantities:
        first = merged.get(entry.location_id)
        if first is None:
            merged[entry.location_id] = entry
        else:
            merged[entry.location_id] = replace(first, quantity=first.quantity + entry.quantity)
    buckets = tuple(entry for entry in merged.values() if entry.quantity > 0)
    assigned = sum(entry.quantity for entry in buckets)
    quantity = max(item.quantity, assigned, 0)

    if buckets == item.location_quantities and quantity == item.quantity:
        return item
    return replace(item, quantity=quantity, location_quantities=buckets)


def add_stock(item: InventoryItem, amount: int, *, now: datetime | None = None) -> InventoryItem:
    """New stock always lands in the unassigned pool."""

    if amount <= 0:
        return item
    return replace(item, quantity=item.quantity + amount, updated_at=now or utcnow())


def remove_stock(
    item: InventoryItem,
    amount: int,
    location_id: str | None = None,
    *,
    now: datetime | None = None,
) -> InventoryItem:
    """Take up to ``amount`` from one bucket; never touches other buckets.

    ``location_id=None`` draws from the unassigned pool.
    """

    if amount <= 0:
        return item

    buckets = item.location_quantities
    if location_id is None:
        removed = min(amount, item.unassigned_quantity)
    else:
        removed = min(amount, get_location_quantity(item, location_id))
        if removed > 0:
            buckets = _with_bucket_delta(buckets, location_id, -removed)

    if removed <= 0:
        return item

    return replace(
        item,
        quantity=max(0, item.quantity - removed),
        location_quantities=buckets,
        updated_at=now or utcnow(),
    )


def move_between_locations(
    item: InventoryItem,
    from_location_id: str | None,
    to_location_id: str | None,
    amount: int,
    *,
    now: datetime | None = None,
) -> InventoryItem:
    """Move up to ``amount`` units from one bucket to another.

    The source is a location id or ``None`` for the unassigned pool; the
    destination is a location id or ``""`` (or ``None``) for the unassigned
    pool. The total quantity never changes.
    """

    source_unassigned = from_location_id is None or from_location_id == UNASSIGNED
    target_unassigned = not to_location_id

    if source_unassigned and target_unassigned:
        return item
    if not source_unassigned and from_location_id == to_location_id:
        return item

    if source_unassigned:
        available = item.unassigned_quantity
    else:
        if not any(entry.location_id == from_location_id for entry in item.location_quantities):
            return item
        available = get_location_quantity(item, from_location_id)

    moved = min(amount, available)
    if moved <= 0:
        return item

    buckets = item.location_quantities
    if not source_unassigned:
        buckets = _with_bucket_delta(buckets, from_location_id, -moved)
    if not target_unassigned:
        buckets = _with_bucket_delta(buckets, to_location_id, moved)

    return replace(item, location_quantities=buckets, updated_at=now or utcnow())


def move_to_location(
    item: InventoryItem,
    to_location_id: str,
    amount: int,
    *,
    now: datetime | None = None,
) -> InventoryItem:
    """Place up to ``amount`` unassigned units into ``to_location_id``."""

    return move_between_locations(item, None, to_location_id, amount, now=now)


def check_invariants(item: InventoryItem) -> list[str]:
    problems = []
    if item.quantity < 0:
        problems.append("quantity is negative")
    if any(entry.quantity <= 0 for entry in item.location_quantities):
        problems.append("location bucket with no stock")
    if item.assigned_quantity > item.quantity:
        problems.append("assigned stock exceeds total quantity")
    return problems
