from decimal import Decimal

import pytest

from cart_service.app.core.errors import CartNotFound, MalformedRecord, StoreUnavailable
from cart_service.app.models.cart import Cart, LineItem
from cart_service.app.services.cart_store import CartStore


def _cart() -> Cart:
    return Cart(items=[LineItem("SKU1", "Widget", Decimal("10.00"), 2)])


def test_put_then_get(store):
    store.put("c1", _cart())
    cart = store.get("c1")
    assert [(it.sku, it.qty) for it in cart.items] == [("SKU1", 2)]
    assert cart.total == Decimal("20.00")


def test_get_missing_is_not_found(store):
    with pytest.raises(CartNotFound):
        store.get("nope")


def test_get_corrupt_record_is_surfaced_not_emptied(store, redis_double):
    redis_double.set("c1", "{broken")
    with pytest.raises(MalformedRecord):
        store.get("c1")
    # record left as-is for inspection
    assert redis_double.get("c1") == "{broken"


def test_put_sets_and_refreshes_ttl(store, redis_double):
    store.put("c1", _cart())
    redis_double.advance(3000)
    assert redis_double.ttl("c1") == 600
    store.put("c1", _cart())
    assert redis_double.ttl("c1") == 3600


def test_record_expires(store, redis_double):
    store.put("c1", _cart())
    redis_double.advance(3601)
    with pytest.raises(CartNotFound):
        store.get("c1")
    assert store.exists("c1") is False


def test_delete_reports_existence(store):
    assert store.delete("c1") is False
    store.put("c1", _cart())
    assert store.delete("c1") is True
    assert store.exists("c1") is False


def test_rename_moves_record_and_refreshes_ttl(store, redis_double):
    store.put("old", _cart())
    redis_double.advance(1000)
    assert store.rename("old", "new") is True
    assert store.exists("old") is False
    assert store.get("new").items[0].sku == "SKU1"
    assert redis_double.ttl("new") == 3600


def test_rename_missing_source(store):
    assert store.rename("ghost", "new") is False
    assert store.exists("new") is False


def test_rename_overwrites_target(store):
    store.put("old", _cart())
    store.put("new", Cart())
    assert store.rename("old", "new") is True
    assert len(store.get("new").items) == 1


def test_copy_rename_fallback(redis_double):
    store = CartStore(redis_double, ttl_seconds=60, atomic_rename=False)
    assert store.rename("ghost", "new") is False
    store.put("old", _cart())
    assert store.rename("old", "new") is True
    assert store.exists("old") is False
    assert store.get("new").total == Decimal("20.00")


def test_backend_down_is_store_unavailable(store, redis_double):
    redis_double.down = True
    with pytest.raises(StoreUnavailable):
        store.get("c1")
    with pytest.raises(StoreUnavailable):
        store.put("c1", _cart())
    with pytest.raises(StoreUnavailable):
        store.rename("a", "b")
    assert store.ping() is False
