# cart_service/app/services/engine_provider.py
from __future__ import annotations

from typing import Optional

from cart_service.app.core.config import settings
from cart_service.app.core.redis_conn import get_redis
from cart_service.app.integrations.catalogue.client import CatalogueClient
from cart_service.app.services.cart_engine import CartEngine
from cart_service.app.services.cart_store import CartStore

_ENGINE: Optional[CartEngine] = None


def _new_engine() -> CartEngine:
    store = CartStore(
        get_redis(),
        ttl_seconds=settings.cart_ttl_seconds,
        atomic_rename=settings.atomic_rename,
    )
    catalogue = CatalogueClient(settings.catalogue_url, timeout=settings.catalogue_timeout_seconds)
    return CartEngine(store, catalogue, ttl_seconds=settings.cart_ttl_seconds)


def get_engine() -> CartEngine:
    """FastAPI dependency; tests swap it via app.dependency_overrides."""
    global _ENGINE
    if _ENGINE is None:
        _ENGINE = _new_engine()
    return _ENGINE


def reset_engine() -> None:
    """Drop the process engine (closing its catalogue client); the next call rebuilds it."""
    global _ENGINE
    if _ENGINE is not None:
        _ENGINE.catalogue.close()
    _ENGINE = None
