from __future__ import annotations

from fastapi import APIRouter, Depends

from cart_service.app.services.cart_engine import CartEngine
from cart_service.app.services.engine_provider import get_engine

router = APIRouter(tags=["health"])


@router.get("/health")
def health(engine: CartEngine = Depends(get_engine)):
    # Redis being down is reported in the body, never as an error status
    return engine.health()
