from __future__ import annotations

import json
from typing import Any, Dict, Optional, Tuple

import httpx
import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from cart_service.app.integrations.catalogue.client import CatalogueClient
from cart_service.app.services.cart_engine import CartEngine
from cart_service.app.services.cart_store import CartStore
from cart_service.app.services.engine_provider import get_engine
from cart_service.main import app

TTL = 3600

PRODUCTS: Dict[str, Dict[str, Any]] = {
    "TEST-SKU": {"sku": "TEST-SKU", "name": "Test Product", "price": 10.00, "instock": 100},
    "SKU1": {"sku": "SKU1", "name": "Widget", "price": 10.00, "instock": 5},
    "CHEAP": {"sku": "CHEAP", "name": "Cheap Thing", "price": 0.35, "instock": 10},
    "GONE": {"sku": "GONE", "name": "Sold Out", "price": 3.00, "instock": 0},
}


class InMemoryRedis:
    """Just enough of redis.Redis (decode_responses=True) for CartStore."""

    def __init__(self):
        self.data: Dict[str, Tuple[str, Optional[float]]] = {}
        self.now = 0.0
        self.down = False

    def _check(self) -> None:
        if self.down:
            raise RedisConnectionError("connection refused")

    def _alive(self, key: str) -> bool:
        entry = self.data.get(key)
        if entry is None:
            return False
        _, expires_at = entry
        if expires_at is not None and expires_at <= self.now:
            del self.data[key]
            return False
        return True

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def get(self, name):
        self._check()
        return self.data[name][0] if self._alive(name) else None

    def set(self, name, value, ex=None):
        self._check()
        self.data[name] = (value, self.now + ex if ex else None)
        return True

    def delete(self, *names):
        self._check()
        n = 0
        for k in names:
            if self._alive(k):
                del self.data[k]
                n += 1
        return n

    def exists(self, *names):
        self._check()
        return sum(1 for k in names if self._alive(k))

    def rename(self, src, dst):
        self._check()
        if not self._alive(src):
            raise ResponseError("no such key")
        self.data[dst] = self.data.pop(src)
        return True

    def expire(self, name, time):
        self._check()
        if not self._alive(name):
            return False
        self.data[name] = (self.data[name][0], self.now + time)
        return True

    def ttl(self, name):
        if not self._alive(name):
            return -2
        expires_at = self.data[name][1]
        return -1 if expires_at is None else int(expires_at - self.now)

    def ping(self):
        self._check()
        return True


class CatalogueStub:
    """httpx MockTransport handler serving PRODUCTS; records requested paths."""

    def __init__(self, products: Dict[str, Dict[str, Any]]):
        self.products = dict(products)
        self.calls = []
        self.fail_with: Optional[Exception] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request.url.path)
        if self.fail_with is not None:
            raise self.fail_with
        sku = request.url.path.rsplit("/", 1)[-1]
        product = self.products.get(sku)
        if product is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, content=json.dumps(product))


@pytest.fixture
def redis_double() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def catalogue_stub() -> CatalogueStub:
    return CatalogueStub(PRODUCTS)


@pytest.fixture
def catalogue(catalogue_stub):
    client = CatalogueClient("http://catalogue:8080", transport=httpx.MockTransport(catalogue_stub))
    yield client
    client.close()


@pytest.fixture
def store(redis_double) -> CartStore:
    return CartStore(redis_double, ttl_seconds=TTL)


@pytest.fixture
def engine(store, catalogue) -> CartEngine:
    return CartEngine(store, catalogue, ttl_seconds=TTL)


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_engine, None)
