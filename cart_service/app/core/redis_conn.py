# cart_service/app/core/redis_conn.py
from __future__ import annotations

from typing import Optional

from redis import Redis as SyncRedis

from cart_service.app.core.config import settings

# Module-level singleton
_sync_client: Optional[SyncRedis] = None


def get_redis() -> SyncRedis:
    """
    Return a singleton synchronous Redis client.
    Cart records are JSON strings, so responses are decoded to str.
    """
    global _sync_client
    if _sync_client is None:
        _sync_client = SyncRedis.from_url(
            settings.effective_redis_url,
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout_seconds,
            socket_connect_timeout=settings.redis_socket_timeout_seconds,
        )
    return _sync_client


def close_redis() -> None:
    global _sync_client
    if _sync_client is not None:
        _sync_client.close()
        _sync_client = None
