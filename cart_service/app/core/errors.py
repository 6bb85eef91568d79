"""
Cart service error kinds.

Each error carries the HTTP status and plain-text message the API answers with,
so routes never translate them one by one.
"""
from __future__ import annotations

from typing import Optional


class CartServiceError(Exception):
    status_code: int = 500
    message: str = "internal error"

    def __init__(self, detail: Optional[str] = None):
        # detail goes to logs; message is what clients see
        self.detail = detail or self.message
        super().__init__(self.detail)


# --- validation (raised before any I/O) ---

class QuantityNotANumber(CartServiceError):
    status_code = 400
    message = "quantity must be a number"


class InvalidQuantity(CartServiceError):
    status_code = 400
    message = "quantity has to be greater than zero"


class NegativeQuantity(CartServiceError):
    status_code = 400
    message = "negative quantity not allowed"


class ShippingDataMissing(CartServiceError):
    status_code = 400
    message = "shipping data missing"


# --- not found (terminal, nothing persisted) ---

class CartNotFound(CartServiceError):
    status_code = 404
    message = "cart not found"


class ItemNotInCart(CartServiceError):
    status_code = 404
    message = "not in cart"


class ProductNotFound(CartServiceError):
    status_code = 404
    message = "product not found"


class OutOfStock(CartServiceError):
    status_code = 404
    message = "out of stock"


# --- collaborator failures ---

class CatalogueUnavailable(CartServiceError):
    status_code = 503
    message = "catalogue unavailable"


class StoreUnavailable(CartServiceError):
    status_code = 503
    message = "cart store unavailable"


class MalformedRecord(CartServiceError):
    status_code = 500
    message = "malformed cart record"
