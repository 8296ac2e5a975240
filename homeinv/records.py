"""Record types shared by the ledger, the chore scheduler and the store.

Records travel as camelCase JSON documents (the shape the browser client
reads and writes). Each dataclass knows how to build itself from such a
document and how to render itself back. Fields the service does not know
about are carried in ``extra`` so that a load/save cycle never drops data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    """Current UTC time truncated to the millisecond precision we persist."""

    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        parsed = datetime.fromisoformat(raw)
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _price(value: Any, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{label} must be a number, got {value!r}")
    return value


def _extra(
    data: dict[str, Any], known: tuple[str, ...], nullable: tuple[str, ...] = ()
) -> dict[str, Any]:
    """Fields outside ``known``, plus ``nullable`` fields stored as an explicit null."""

    return {
        key: value
        for key, value in data.items()
        if key not in known or (key in nullable and value is None)
    }


@dataclass(frozen=True)
class LocationQuantity:
    location_id: str
    quantity: int
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update({"locationId": self.location_id, "quantity": self.quantity})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LocationQuantity":
        return cls(
            location_id=str(data["locationId"]),
            quantity=int(data.get("quantity") or 0),
            extra=_extra(data, ("locationId", "quantity")),
        )


_ITEM_FIELDS = (
    "id",
    "name",
    "category",
    "quantity",
    "unit",
    "minQuantity",
    "locationQuantities",
    "unassignedQuantity",
    "createdAt",
    "updatedAt",
)


@dataclass(frozen=True)
class InventoryItem:
    id: str
    name: str
    category: str
    quantity: int
    unit: str
    created_at: datetime
    updated_at: datetime
    min_quantity: int | None = None
    location_quantities: tuple[LocationQuantity, ...] = ()
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def assigned_quantity(self) -> int:
        return sum(entry.quantity for entry in self.location_quantities)

    @property
    def unassigned_quantity(self) -> int:
        return max(0, self.quantity - self.assigned_quantity)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update(
            {
                "id": self.id,
                "name": self.name,
                "category": self.category,
                "quantity": self.quantity,
                "unit": self.unit,
                "locationQuantities": [entry.to_dict() for entry in self.location_quantities],
                "unassignedQuantity": self.unassigned_quantity,
                "createdAt": format_timestamp(self.created_at),
                "updatedAt": format_timestamp(self.updated_at),
            }
        )
        if self.min_quantity is not None:
            data["minQuantity"] = self.min_quantity
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InventoryItem":
        created_at = parse_timestamp(data.get("createdAt") or data.get("dateAdded") or utcnow())
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            category=str(data.get("category") or ""),
            quantity=int(data.get("quantity") or 0),
            unit=str(data.get("unit") or "items"),
            created_at=created_at,
            updated_at=parse_timestamp(data.get("updatedAt") or created_at),
            min_quantity=_optional_int(data.get("minQuantity")),
            location_quantities=tuple(
                LocationQuantity.from_dict(entry)
                for entry in data.get("locationQuantities") or []
            ),
            extra=_extra(data, _ITEM_FIELDS, nullable=("minQuantity",)),
        )


_PURCHASE_FIELDS = (
    "id",
    "itemId",
    "itemName",
    "quantity",
    "unitPrice",
    "totalPrice",
    "shop",
    "purchasedAt",
)


@dataclass(frozen=True)
class PurchaseLog:
    id: str
    item_id: str
    item_name: str
    quantity: int
    unit_price: float
    total_price: float
    shop: str
    purchased_at: datetime
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update(
            {
                "id": self.id,
                "itemId": self.item_id,
                "itemName": self.item_name,
                "quantity": self.quantity,
                "unitPrice": self.unit_price,
                "totalPrice": self.total_price,
                "shop": self.shop,
                "purchasedAt": format_timestamp(self.purchased_at),
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PurchaseLog":
        quantity = int(data.get("quantity") or 0)
        unit_price = data.get("unitPrice")
        unit_price = 0 if unit_price is None else _price(unit_price, "unitPrice")
        total_price = data.get("totalPrice")
        if total_price is not None:
            total_price = _price(total_price, "totalPrice")
        return cls(
            id=str(data["id"]),
            item_id=str(data.get("itemId") or ""),
            item_name=str(data.get("itemName") or ""),
            quantity=quantity,
            unit_price=unit_price,
            total_price=quantity * unit_price if total_price is None else total_price,
            shop=str(data.get("shop") or ""),
            purchased_at=parse_timestamp(data["purchasedAt"]),
            extra=_extra(data, _PURCHASE_FIELDS),
        )


_CHORE_FIELDS = ("id", "name", "frequencyDays", "createdAt", "updatedAt")


@dataclass(frozen=True)
class Chore:
    id: str
    name: str
    created_at: datetime
    updated_at: datetime
    frequency_days: int | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update(
            {
                "id": self.id,
                "name": self.name,
                "createdAt": format_timestamp(self.created_at),
                "updatedAt": format_timestamp(self.updated_at),
            }
        )
        if self.frequency_days is not None:
            data["frequencyDays"] = self.frequency_days
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Chore":
        created_at = parse_timestamp(data["createdAt"])
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            created_at=created_at,
            updated_at=parse_timestamp(data.get("updatedAt") or created_at),
            frequency_days=_optional_int(data.get("frequencyDays")),
            extra=_extra(data, _CHORE_FIELDS, nullable=("frequencyDays",)),
        )


_COMPLETION_FIELDS = ("id", "choreId", "choreName", "completedAt", "notes")


@dataclass(frozen=True)
class ChoreCompletion:
    id: str
    chore_id: str
    chore_name: str
    completed_at: datetime
    notes: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update(
            {
                "id": self.id,
                "choreId": self.chore_id,
                "choreName": self.chore_name,
                "completedAt": format_timestamp(self.completed_at),
            }
        )
        if self.notes is not None:
            data["notes"] = self.notes
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChoreCompletion":
        return cls(
            id=str(data["id"]),
            chore_id=str(data.get("choreId") or ""),
            chore_name=str(data.get("choreName") or ""),
            completed_at=parse_timestamp(data["completedAt"]),
            notes=data.get("notes"),
            extra=_extra(data, _COMPLETION_FIELDS, nullable=("notes",)),
        )

@dataclass(frozen=True)
class NamedEntry:
    """A category, location or shop: an id plus a display name."""

    id: str
    name: str
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update({"id": self.id, "name": self.name})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NamedEntry":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            extra=_extra(data, ("id", "name")),
        )


@dataclass(frozen=True)
class UnitType:
    id: str
    singular: str
    plural: str
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def name(self) -> str:
        return self.singular

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update({"id": self.id, "singular": self.singular, "plural": self.plural})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UnitType":
        singular = str(data.get("singular") or data.get("id") or "")
        return cls(
            id=str(data["id"]),
            singular=singular,
            plural=str(data.get("plural") or singular),
            extra=_extra(data, ("id", "singular", "plural")),
        )


DEFAULT_CATEGORIES = (NamedEntry(id="general", name="General"),)
DEFAULT_UNIT_TYPES = (UnitType(id="items", singular="Item", plural="Items"),)
DEFAULT_LOCATIONS = (NamedEntry(id="home", name="Home"),)
DEFAULT_SHOPS = (NamedEntry(id="shop", name="Shop"),)

_SETTINGS_FIELDS = ("categories", "unitTypes", "locations", "shops")


@dataclass(frozen=True)
class Settings:
    categories: tuple[NamedEntry, ...] = DEFAULT_CATEGORIES
    unit_types: tuple[UnitType, ...] = DEFAULT_UNIT_TYPES
    locations: tuple[NamedEntry, ...] = DEFAULT_LOCATIONS
    shops: tuple[NamedEntry, ...] = DEFAULT_SHOPS
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update(
            {
                "categories": [entry.to_dict() for entry in self.categories],
                "unitTypes": [entry.to_dict() for entry in self.unit_types],
                "locations": [entry.to_dict() for entry in self.locations],
                "shops": [entry.to_dict() for entry in self.shops],
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Settings":
        if not data:
            return cls()

        def _entries(key: str, factory, default):
            raw = data.get(key)
            if raw is None:
                return default
            return tuple(factory(entry) for entry in raw)

        return cls(
            categories=_entries("categories", NamedEntry.from_dict, DEFAULT_CATEGORIES),
            unit_types=_entries("unitTypes", UnitType.from_dict, DEFAULT_UNIT_TYPES),
            locations=_entries("locations", NamedEntry.from_dict, DEFAULT_LOCATIONS),
            shops=_entries("shops", NamedEntry.from_dict, DEFAULT_SHOPS),
            extra=_extra(data, _SETTINGS_FIELDS),
        )
