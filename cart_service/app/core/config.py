from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env from repo root if present
ENV_PATH = Path(__file__).resolve().parents[3] / ".env"
if ENV_PATH.exists():
    load_dotenv(dotenv_path=ENV_PATH)


class Settings(BaseSettings):
    """Cart service settings (loaded from env).

    Collaborators:
      - Redis holds one JSON record per cart id, expiring after cart_ttl_seconds.
      - The catalogue answers GET /product/<sku> with {sku, name, price, instock}.
    """

    # --- service ---
    service_name: str = Field(default="cart", description="Service name")
    version: str = Field(default="0.1.0", description="Service version")
    environment: str = Field(default="dev", description="Environment name (dev/staging/prod)")
    host: str = Field(default="0.0.0.0", description="API bind host")
    port: int = Field(
        default=8080,
        validation_alias=AliasChoices("cart_server_port", "port"),
        description="API bind port",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_format: str = Field(default="text", description="text|json")

    # --- Redis (cart records) ---
    redis_host: str = Field(default="redis", description="Redis host")
    redis_port: int = Field(default=6379, description="Redis port")
    redis_db: int = Field(default=0, description="Redis database index")
    # Full URL wins over host/port/db when set
    redis_url: str = Field(default="", description="Redis connection URL override")
    redis_socket_timeout_seconds: float = Field(
        default=5.0, description="Socket timeout for Redis calls (s)"
    )
    cart_ttl_seconds: int = Field(default=3600, ge=1, description="TTL for cart keys (seconds)")
    atomic_rename: bool = Field(
        default=True,
        description="Use Redis RENAME; when false, rename is get/set/delete back-to-back",
    )

    # --- Catalogue ---
    catalogue_host: str = Field(default="catalogue", description="Catalogue host")
    catalogue_port: int = Field(default=8080, description="Catalogue port")
    catalogue_timeout_seconds: float = Field(
        default=5.0, description="Timeout for a single catalogue lookup (s)"
    )

    # --- CORS ---
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_methods: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_headers: List[str] = Field(default_factory=lambda: ["*"])

    # pydantic-settings v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ---- Convenience helpers ----
    @property
    def effective_redis_url(self) -> str:
        """Explicit REDIS_URL, else one built from host/port/db."""
        return self.redis_url or f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    @property
    def catalogue_url(self) -> str:
        return f"http://{self.catalogue_host}:{self.catalogue_port}"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
