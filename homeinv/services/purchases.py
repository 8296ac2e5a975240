"""Purchase history search and per-shop price comparison."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from homeinv.records import InventoryItem, NamedEntry, PurchaseLog
from homeinv.services.reference_data import label_for
from homeinv.store import PURCHASES, HouseholdStore, RecordNotFound


def delete_purchase(store: HouseholdStore, purchase_id: str) -> PurchaseLog:
    with store.transaction(PURCHASES):
        for purchase in store.purchases:
            if purchase.id == purchase_id:
                break
        else:
            raise RecordNotFound(f"Purchase {purchase_id} not found.")
        store.purchases = [entry for entry in store.purchases if entry.id != purchase_id]
    return purchase


def clear_purchases(store: HouseholdStore) -> int:
    with store.transaction(PURCHASES):
        removed = len(store.purchases)
        store.purchases = []
    return removed


def search_purchases(
    purchases: Iterable[PurchaseLog],
    shops: Iterable[NamedEntry],
    query: str | None = None,
) -> tuple[list[PurchaseLog], float]:
    """Purchases whose item name or shop label contains ``query``, plus their total."""

    shops = list(shops)
    needle = (query or "").strip().lower()
    matches = []
    for purchase in purchases:
        if needle:
            shop_name = label_for(shops, purchase.shop).lower()
            if needle not in purchase.item_name.lower() and needle not in shop_name:
                continue
        matches.append(purchase)
    total_spent = sum(purchase.total_price for purchase in matches)
    return matches, total_spent


@dataclass(frozen=True)
class ShopPrice:
    shop_id: str
    average: float
    count: int
    last_price: float

    def to_dict(self, shops: Iterable[NamedEntry] = ()) -> dict:
        return {
            "shopId": self.shop_id,
            "shopName": label_for(shops, self.shop_id),
            "average": self.average,
            "count": self.count,
            "lastPrice": self.last_price,
        }


@dataclass(frozen=True)
class ItemPriceSummary:
    item_id: str
    item_name: str
    shop_prices: tuple[ShopPrice, ...]

    @property
    def cheapest_shop_id(self) -> str | None:
        return self.shop_prices[0].shop_id if self.shop_prices else None

    @property
    def has_purchases(self) -> bool:
        return bool(self.shop_prices)


def shop_prices_for(item_id: str, purchases: Iterable[PurchaseLog]) -> tuple[ShopPrice, ...]:
    grouped: dict[str, list[PurchaseLog]] = {}
    for purchase in purchases:
        if purchase.item_id == item_id:
            grouped.setdefault(purchase.shop, []).append(purchase)

    prices = []
    for shop_id, entries in grouped.items():
        latest = max(entries, key=lambda entry: entry.purchased_at)
        prices.append(
            ShopPrice(
                shop_id=shop_id,
                average=sum(entry.unit_price for entry in entries) / len(entries),
                count=len(entries),
                last_price=latest.unit_price,
            )
        )
    prices.sort(key=lambda price: price.average)
    return tuple(prices)


def item_price_summaries(
    items: Iterable[InventoryItem],
    purchases: Iterable[PurchaseLog],
    *,
    query: str | None = None,
    shop_id: str | None = None,
) -> list[ItemPriceSummary]:
    """Price comparison rows for items that have at least one purchase."""

    purchases = list(purchases)
    needle = (query or "").strip().lower()
    summaries = []
    for item in items:
        summary = ItemPriceSummary(
            item_id=item.id,
            item_name=item.name,
            shop_prices=shop_prices_for(item.id, purchases),
        )
        if not summary.has_purchases:
            continue
        if needle and needle not in item.name.lower():
            continue
        if shop_id and not any(price.shop_id == shop_id for price in summary.shop_prices):
            continue
        summaries.append(summary)
    return summaries


def shop_win_counts(summaries: Iterable[ItemPriceSummary]) -> dict[str, int]:
    """How many items each shop is cheapest for, among items bought at several shops."""

    counts: dict[str, int] = {}
    for summary in summaries:
        if summary.cheapest_shop_id and len(summary.shop_prices) > 1:
            counts[summary.cheapest_shop_id] = counts.get(summary.cheapest_shop_id, 0) + 1
    return counts


def shops_with_purchases(
    shops: Iterable[NamedEntry], purchases: Iterable[PurchaseLog]
) -> list[NamedEntry]:
    used = {purchase.shop for purchase in purchases}
    return [shop for shop in shops if shop.id in used]
