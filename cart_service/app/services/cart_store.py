# cart_service/app/services/cart_store.py
from __future__ import annotations

import logging
from typing import Optional

from redis import Redis
from redis.exceptions import RedisError, ResponseError

from cart_service.app.core.errors import CartNotFound, StoreUnavailable
from cart_service.app.models.cart import Cart
from cart_service.app.services.cart_codec import decode_cart, encode_cart

logger = logging.getLogger(__name__)


class CartStore:
    """
    Typed access to cart records in Redis: one JSON string per cart id, with expiry.

    Backend failures surface as StoreUnavailable; a miss as CartNotFound.
    """

    def __init__(self, redis: Redis, ttl_seconds: int, *, atomic_rename: bool = True):
        self._redis = redis
        self.ttl_seconds = ttl_seconds
        self.atomic_rename = atomic_rename

    def get(self, cart_id: str) -> Cart:
        try:
            raw = self._redis.get(cart_id)
        except RedisError as e:
            raise StoreUnavailable(f"get {cart_id!r}: {e}") from e
        if raw is None:
            raise CartNotFound(f"no cart {cart_id!r}")
        # MalformedRecord propagates; corrupt data is never read as an empty cart
        return decode_cart(raw)

    def put(self, cart_id: str, cart: Cart, ttl: Optional[int] = None) -> None:
        try:
            self._redis.set(cart_id, encode_cart(cart), ex=ttl or self.ttl_seconds)
        except RedisError as e:
            raise StoreUnavailable(f"set {cart_id!r}: {e}") from e

    def delete(self, cart_id: str) -> bool:
        try:
            return bool(self._redis.delete(cart_id))
        except RedisError as e:
            raise StoreUnavailable(f"delete {cart_id!r}: {e}") from e

    def exists(self, cart_id: str) -> bool:
        try:
            return bool(self._redis.exists(cart_id))
        except RedisError as e:
            raise StoreUnavailable(f"exists {cart_id!r}: {e}") from e

    def rename(self, old_id: str, new_id: str) -> bool:
        """Move the record at old_id to new_id (overwriting), refreshing its TTL."""
        if not self.atomic_rename:
            return self._rename_by_copy(old_id, new_id)
        try:
            self._redis.rename(old_id, new_id)
        except ResponseError as e:
            if "no such key" in str(e).lower():
                return False
            raise StoreUnavailable(f"rename {old_id!r}: {e}") from e
        except RedisError as e:
            raise StoreUnavailable(f"rename {old_id!r}: {e}") from e
        try:
            self._redis.expire(new_id, self.ttl_seconds)
        except RedisError as e:
            # the record already lives at new_id; only the TTL refresh was lost
            logger.warning("rename %s -> %s: TTL refresh failed: %s", old_id, new_id, e)
        return True

    def _rename_by_copy(self, old_id: str, new_id: str) -> bool:
        # Not atomic: a crash between put and delete leaves both keys; a crash
        # before put loses nothing. Only used for backends without RENAME.
        try:
            cart = self.get(old_id)
        except CartNotFound:
            return False
        self.put(new_id, cart)
        if old_id != new_id:
            self.delete(old_id)
        return True

    def ping(self) -> bool:
        try:
            return bool(self._redis.ping())
        except RedisError:
            return False
