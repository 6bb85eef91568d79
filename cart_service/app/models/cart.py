from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from cart_service.app.services.pricing import compute_subtotal, compute_tax, compute_total, to_money

SHIPPING_SKU = "SHIP"


@dataclass
class LineItem:
    """One SKU in a cart. subtotal is derived, never stored."""

    sku: str
    name: str
    price: Decimal
    qty: int

    def __post_init__(self):
        self.price = to_money(self.price)

    @property
    def subtotal(self) -> Decimal:
        return compute_subtotal(self.price, self.qty)


@dataclass
class Cart:
    items: List[LineItem] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return compute_total(self.items)

    @property
    def tax(self) -> Decimal:
        return compute_tax(self.total)

    def find(self, sku: str) -> Optional[LineItem]:
        return next((it for it in self.items if it.sku == sku), None)

    def remove(self, sku: str) -> None:
        self.items = [it for it in self.items if it.sku != sku]


class ProductInfo(BaseModel):
    """Catalogue answer for one SKU."""

    sku: str
    name: str
    price: Decimal = Field(ge=0)
    # None when the catalogue does not report stock; only 0 blocks an add
    instock: Optional[int] = Field(default=None, ge=0)


class ShippingDetails(BaseModel):
    # distance and location must be present; only cost (the line price) is typed
    distance: Any
    cost: Decimal = Field(ge=0)
    location: Any
