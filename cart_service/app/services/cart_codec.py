# cart_service/app/services/cart_codec.py
from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Dict, Union

from cart_service.app.core.errors import MalformedRecord
from cart_service.app.models.cart import Cart, LineItem

REQUIRED_ITEM_FIELDS = ("sku", "name", "price", "qty")


def cart_to_dict(cart: Cart) -> Dict[str, Any]:
    """Public/storage shape: {total, tax, items: [{sku, name, price, qty, subtotal}]}."""
    return {
        "total": float(cart.total),
        "tax": float(cart.tax),
        "items": [
            {
                "sku": it.sku,
                "name": it.name,
                "price": float(it.price),
                "qty": it.qty,
                "subtotal": float(it.subtotal),
            }
            for it in cart.items
        ],
    }


def encode_cart(cart: Cart) -> str:
    return json.dumps(cart_to_dict(cart), ensure_ascii=False)


def _decode_item(idx: int, raw: Any) -> LineItem:
    if not isinstance(raw, dict):
        raise MalformedRecord(f"items[{idx}] is not an object")
    missing = [f for f in REQUIRED_ITEM_FIELDS if f not in raw]
    if missing:
        raise MalformedRecord(f"items[{idx}] missing {', '.join(missing)}")

    qty = raw["qty"]
    # bool is an int subclass
    if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
        raise MalformedRecord(f"items[{idx}].qty must be a positive integer")

    price = raw["price"]
    if isinstance(price, bool) or not isinstance(price, (int, float, str)):
        raise MalformedRecord(f"items[{idx}].price must be a number")
    try:
        price_dec = Decimal(str(price))
    except ArithmeticError as e:
        raise MalformedRecord(f"items[{idx}].price must be a number") from e
    if not price_dec.is_finite() or price_dec < 0:
        raise MalformedRecord(f"items[{idx}].price must be non-negative")

    for f in ("sku", "name"):
        if not isinstance(raw[f], str):
            raise MalformedRecord(f"items[{idx}].{f} must be a string")

    # stored subtotal is ignored; LineItem derives it from price * qty
    return LineItem(sku=raw["sku"], name=raw["name"], price=price_dec, qty=qty)


def decode_cart(raw: Union[str, bytes]) -> Cart:
    try:
        doc = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedRecord(f"not valid JSON: {e}") from e
    if not isinstance(doc, dict):
        raise MalformedRecord("record is not an object")
    items = doc.get("items")
    if not isinstance(items, list):
        raise MalformedRecord("items must be a list")
    return Cart(items=[_decode_item(i, it) for i, it in enumerate(items)])
