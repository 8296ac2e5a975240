from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from homeinv.services import purchases
from homeinv.services.reference_data import label_for


bp = Blueprint("purchases", __name__, url_prefix="/api")


def _store():
    return current_app.extensions["household_store"]


@bp.delete("/purchases/<purchase_id>")
def delete_purchase(purchase_id: str):
    purchases.delete_purchase(_store(), purchase_id)
    return jsonify({"success": True})


@bp.post("/purchases/clear")
def clear_purchases():
    removed = purchases.clear_purchases(_store())
    return jsonify({"success": True, "removed": removed})


@bp.get("/purchases/history")
def purchase_history():
    store = _store()
    with store.transaction():
        shops = store.settings.shops
        matches, total_spent = purchases.search_purchases(
            list(store.purchases), shops, request.args.get("q")
        )

    entries = []
    for purchase in matches:
        data = purchase.to_dict()
        data["shopName"] = label_for(shops, purchase.shop)
        entries.append(data)
    return jsonify({"purchases": entries, "count": len(entries), "totalSpent": total_spent})


@bp.get("/prices")
def price_comparison():
    store = _store()
    with store.transaction():
        items = list(store.items)
        logs = list(store.purchases)
        shops = store.settings.shops

    summaries = purchases.item_price_summaries(
        items,
        logs,
        query=request.args.get("q"),
        shop_id=(request.args.get("shop") or "").strip() or None,
    )
    return jsonify(
        {
            "items": [
                {
                    "itemId": summary.item_id,
                    "itemName": summary.item_name,
                    "cheapestShopId": summary.cheapest_shop_id,
                    "shopPrices": [price.to_dict(shops) for price in summary.shop_prices],
                }
                for summary in summaries
            ],
            "shopWinCounts": purchases.shop_win_counts(summaries),
            "shops": [shop.to_dict() for shop in purchases.shops_with_purchases(shops, logs)],
        }
    )
