"""
Cart pricing: line subtotals, cart total and tax.

All money is Decimal, rounded half-up to cents.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Union

MONEY_PRECISION = Decimal("0.01")
TAX_RATE = Decimal("0.20")

Number = Union[str, int, float, Decimal]


def to_money(value: Number) -> Decimal:
    """Normalize a number to a 2-dp Decimal. Floats go through str() to avoid binary noise."""
    if isinstance(value, float):
        value = str(value)
    try:
        dec = value if isinstance(value, Decimal) else Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"not a money amount: {value!r}") from e
    return dec.quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def compute_subtotal(price: Number, qty: int) -> Decimal:
    return to_money(to_money(price) * qty)


def _subtotal_of(item: Any) -> Decimal:
    if isinstance(item, Mapping):
        return to_money(item["subtotal"])
    return to_money(item.subtotal)


def compute_total(items: Iterable[Any]) -> Decimal:
    """Sum of line subtotals; 0.00 for no items."""
    return to_money(sum((_subtotal_of(it) for it in items), Decimal("0")))


def compute_tax(total: Number) -> Decimal:
    return to_money(to_money(total) * TAX_RATE)
