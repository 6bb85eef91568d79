# cart_service/main.py
from __future__ import annotations

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from cart_service.app.core.logging import setup_logging
from cart_service.app.core.config import settings
from cart_service.app.core.errors import CartServiceError
from cart_service.app.core.redis_conn import close_redis
from cart_service.app.services.engine_provider import reset_engine

from cart_service.app.api.routes_health import router as health_router
from cart_service.app.api.routes_cart import router as cart_router
from cart_service.app.api.routes_metrics import router as metrics_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    logger.info(
        "%s %s starting (redis=%s catalogue=%s ttl=%ss)",
        settings.service_name,
        settings.version,
        settings.effective_redis_url,
        settings.catalogue_url,
        settings.cart_ttl_seconds,
    )
    yield
    reset_engine()
    close_redis()


def create_app() -> FastAPI:
    # Initialize logging early so all imports use correct handlers/levels
    setup_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title=settings.service_name or "cart",
        version=settings.version or "0.1.0",
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
        lifespan=_lifespan,
    )

    # Domain errors answer with their status and a plain-text message
    @app.exception_handler(CartServiceError)
    async def _cart_error(request: Request, exc: CartServiceError):
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    # --- Global JSON error handler: convert unexpected 500s to JSON so clients/jq can parse ---
    @app.exception_handler(Exception)
    async def _unhandled_exc_to_json(request: Request, exc: Exception):
        tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        logger.error("unhandled exception on %s %s\n%s", request.method, request.url.path, tb)
        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "detail": str(exc),
                "path": str(request.url),
                "method": request.method,
            },
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins or ["*"],
        allow_credentials=True,
        allow_methods=settings.cors_allow_methods or ["*"],
        allow_headers=settings.cors_allow_headers or ["*"],
    )

    # Routes
    app.include_router(health_router)
    app.include_router(cart_router)
    app.include_router(metrics_router)

    # Friendly root
    @app.get("/")
    def root():
        return {
            "service": settings.service_name,
            "version": settings.version,
            "environment": settings.environment,
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
