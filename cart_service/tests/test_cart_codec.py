import json
from decimal import Decimal

import pytest

from cart_service.app.core.errors import MalformedRecord
from cart_service.app.models.cart import Cart, LineItem
from cart_service.app.services.cart_codec import cart_to_dict, decode_cart, encode_cart


def test_encode_emits_public_shape_with_derived_fields():
    cart = Cart(items=[LineItem("SKU1", "Widget", Decimal("10.00"), 2)])
    doc = json.loads(encode_cart(cart))
    assert doc == {
        "total": 20.0,
        "tax": 4.0,
        "items": [{"sku": "SKU1", "name": "Widget", "price": 10.0, "qty": 2, "subtotal": 20.0}],
    }


def test_empty_cart_encodes_to_zeroes():
    assert cart_to_dict(Cart()) == {"total": 0.0, "tax": 0.0, "items": []}


def test_decode_recomputes_subtotal_instead_of_trusting_it():
    raw = json.dumps({
        "total": 999,
        "tax": 999,
        "items": [{"sku": "A", "name": "a", "price": 2.5, "qty": 4, "subtotal": 1}],
    })
    cart = decode_cart(raw)
    assert cart.items[0].subtotal == Decimal("10.00")
    assert cart.total == Decimal("10.00")
    assert cart.tax == Decimal("2.00")


def test_decode_accepts_record_without_totals():
    cart = decode_cart('{"items": []}')
    assert cart.items == []


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[]",
        '{"total": 0}',
        '{"items": {}}',
        '{"items": ["x"]}',
        '{"items": [{"sku": "A", "name": "a", "price": 1}]}',
        '{"items": [{"sku": "A", "name": "a", "price": 1, "qty": 0}]}',
        '{"items": [{"sku": "A", "name": "a", "price": 1, "qty": 1.5}]}',
        '{"items": [{"sku": "A", "name": "a", "price": -1, "qty": 1}]}',
        '{"items": [{"sku": "A", "name": "a", "price": "abc", "qty": 1}]}',
        '{"items": [{"sku": null, "name": "a", "price": 1, "qty": 1}]}',
        '{"items": [{"sku": "A", "name": 7, "price": 1, "qty": 1}]}',
    ],
)
def test_decode_rejects_bad_records(raw):
    with pytest.raises(MalformedRecord):
        decode_cart(raw)
