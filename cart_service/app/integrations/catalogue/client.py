# cart_service/app/integrations/catalogue/client.py
from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from cart_service.app.core.config import settings
from cart_service.app.core.errors import CatalogueUnavailable, ProductNotFound
from cart_service.app.core.metrics import catalogue_lookup_duration
from cart_service.app.models.cart import ProductInfo

logger = logging.getLogger(__name__)


class CatalogueClient:
    """
    Blocking client for the product catalogue.

    lookup() makes exactly one request; retry policy, if any, belongs to callers.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = (base_url or settings.catalogue_url).rstrip("/")
        self._http = httpx.Client(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.catalogue_timeout_seconds,
            transport=transport,
        )

    def lookup(self, sku: str) -> ProductInfo:
        stop = catalogue_lookup_duration.timer()
        try:
            r = self._http.get(f"/product/{quote(sku, safe='')}")
        except httpx.HTTPError as e:
            logger.error("catalogue request for %s failed: %s", sku, e)
            raise CatalogueUnavailable(f"catalogue request failed: {e}") from e
        finally:
            stop()

        if r.status_code == 404:
            raise ProductNotFound(f"catalogue has no sku {sku!r}")
        if not r.is_success:
            logger.error("catalogue answered %s for %s", r.status_code, sku)
            raise CatalogueUnavailable(f"catalogue answered HTTP {r.status_code}")

        try:
            return ProductInfo.model_validate(r.json())
        except (ValueError, ValidationError) as e:
            logger.error("catalogue response for %s not understood: %s", sku, e)
            raise CatalogueUnavailable("catalogue response not understood") from e

    def close(self) -> None:
        self._http.close()

