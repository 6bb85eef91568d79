# cart_service/app/services/cart_engine.py
"""
Cart mutation engine.

Each operation is one read-mutate-write against a single cart key:
load the record, apply the change in memory, write the whole record back
with a fresh TTL. Totals and tax are derived from the items at write time.
Same-key requests are not serialized (last write wins).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from cart_service.app.core.errors import (
    CartNotFound,
    CartServiceError,
    InvalidQuantity,
    ItemNotInCart,
    NegativeQuantity,
    OutOfStock,
    ShippingDataMissing,
)
from cart_service.app.core.metrics import cart_operations, items_added
from cart_service.app.integrations.catalogue.client import CatalogueClient
from cart_service.app.models.cart import SHIPPING_SKU, Cart, LineItem, ShippingDetails
from cart_service.app.services.cart_store import CartStore
from cart_service.app.services.pricing import to_money

logger = logging.getLogger(__name__)


def _record(op: str, result: str) -> None:
    cart_operations.inc({"op": op, "result": result})


def _record_failure(op: str, cart_id: str, exc: CartServiceError) -> None:
    result = type(exc).__name__
    _record(op, result)
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", op, cart_id, exc.detail)
    elif exc.status_code == 404:
        logger.info("%s %s: %s", op, cart_id, exc.detail)
    else:
        logger.warning("%s %s rejected: %s", op, cart_id, exc.detail)


class CartEngine:
    def __init__(self, store: CartStore, catalogue: CatalogueClient, ttl_seconds: Optional[int] = None):
        self.store = store
        self.catalogue = catalogue
        self.ttl_seconds = ttl_seconds or store.ttl_seconds

    # ---------- helpers ----------

    def _load(self, cart_id: str, *, create_if_absent: bool) -> Cart:
        try:
            return self.store.get(cart_id)
        except CartNotFound:
            if create_if_absent:
                return Cart()
            raise

    def _save(self, cart_id: str, cart: Cart) -> Cart:
        self.store.put(cart_id, cart, ttl=self.ttl_seconds)
        return cart

    def _run(self, op: str, cart_id: str, fn, *args):
        try:
            result = fn(*args)
        except CartServiceError as e:
            _record_failure(op, cart_id, e)
            raise
        _record(op, "ok")
        return result

    # ---------- operations ----------

    def get_cart(self, cart_id: str) -> Cart:
        return self._run("get", cart_id, self.store.get, cart_id)

    def delete_cart(self, cart_id: str) -> None:
        self._run("delete", cart_id, self._delete, cart_id)
        logger.info("deleted cart %s", cart_id)

    def _delete(self, cart_id: str) -> None:
        if not self.store.delete(cart_id):
            raise CartNotFound(f"no cart {cart_id!r}")

    def add_item(self, cart_id: str, sku: str, qty: int) -> Cart:
        cart = self._run("add", cart_id, self._add_item, cart_id, sku, qty)
        items_added.inc(by=qty)
        logger.info("added %s x %s to cart %s (total %s)", qty, sku, cart_id, cart.total)
        return cart

    def _add_item(self, cart_id: str, sku: str, qty: int) -> Cart:
        if qty <= 0:
            raise InvalidQuantity(f"qty={qty}")
        cart = self._load(cart_id, create_if_absent=True)
        product = self.catalogue.lookup(sku)
        if product.instock == 0:
            raise OutOfStock(f"sku {sku!r} has no stock")

        line = cart.find(sku)
        if line is None:
            cart.items.append(LineItem(sku=sku, name=product.name, price=product.price, qty=qty))
        else:
            # price follows the catalogue at the time of each add
            line.qty += qty
            line.price = to_money(product.price)
            line.name = product.name
        return self._save(cart_id, cart)

    def update_item(self, cart_id: str, sku: str, qty: int) -> Cart:
        cart = self._run("update", cart_id, self._update_item, cart_id, sku, qty)
        logger.info("set %s qty=%s in cart %s (total %s)", sku, qty, cart_id, cart.total)
        return cart

    def _update_item(self, cart_id: str, sku: str, qty: int) -> Cart:
        if qty < 0:
            raise NegativeQuantity(f"qty={qty}")
        cart = self._load(cart_id, create_if_absent=False)
        line = cart.find(sku)
        if line is None:
            raise ItemNotInCart(f"sku {sku!r} not in cart {cart_id!r}")
        if qty == 0:
            cart.remove(sku)
        else:
            line.qty = qty
        return self._save(cart_id, cart)

    def add_shipping(self, cart_id: str, payload: Mapping[str, Any]) -> Cart:
        cart = self._run("shipping", cart_id, self._add_shipping, cart_id, payload)
        logger.info("shipping set on cart %s (total %s)", cart_id, cart.total)
        return cart

    def _add_shipping(self, cart_id: str, payload: Mapping[str, Any]) -> Cart:
        try:
            details = ShippingDetails.model_validate(dict(payload or {}))
        except (TypeError, ValueError, ValidationError) as e:
            raise ShippingDataMissing(str(e)) from e
        cart = self._load(cart_id, create_if_absent=True)
        line = LineItem(
            sku=SHIPPING_SKU,
            name=f"shipping to {details.location}",
            price=details.cost,
            qty=1,
        )
        existing = cart.find(SHIPPING_SKU)
        if existing is None:
            cart.items.append(line)
        else:
            cart.items[cart.items.index(existing)] = line
        return self._save(cart_id, cart)

    def rename_cart(self, old_id: str, new_id: str) -> Cart:
        cart = self._run("rename", old_id, self._rename, old_id, new_id)
        logger.info("renamed cart %s -> %s", old_id, new_id)
        return cart

    def _rename(self, old_id: str, new_id: str) -> Cart:
        if not self.store.rename(old_id, new_id):
            raise CartNotFound(f"no cart {old_id!r}")
        return self.store.get(new_id)

    def health(self) -> Dict[str, Any]:
        return {"app": "OK", "redis": self.store.ping()}
