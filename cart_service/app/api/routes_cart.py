from __future__ import annotations

import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, Path as PathParam, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

from cart_service.app.core.errors import QuantityNotANumber
from cart_service.app.services.cart_codec import cart_to_dict
from cart_service.app.services.cart_engine import CartEngine
from cart_service.app.services.engine_provider import get_engine

router = APIRouter(tags=["cart"])


def _parse_qty(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise QuantityNotANumber(f"qty={raw!r}") from None


@router.get("/cart/{cart_id}")
def get_cart(cart_id: str, engine: CartEngine = Depends(get_engine)) -> Dict[str, Any]:
    return cart_to_dict(engine.get_cart(cart_id))


@router.delete("/cart/{cart_id}", response_class=PlainTextResponse)
def delete_cart(cart_id: str, engine: CartEngine = Depends(get_engine)) -> str:
    engine.delete_cart(cart_id)
    return "OK"


@router.get("/add/{cart_id}/{sku}/{qty}")
def add_item(
    cart_id: str,
    sku: str,
    qty: str = PathParam(..., description="Units to add (integer > 0)"),
    engine: CartEngine = Depends(get_engine),
) -> Dict[str, Any]:
    return cart_to_dict(engine.add_item(cart_id, sku, _parse_qty(qty)))


@router.get("/update/{cart_id}/{sku}/{qty}")
def update_item(
    cart_id: str,
    sku: str,
    qty: str = PathParam(..., description="New quantity (0 removes the line)"),
    engine: CartEngine = Depends(get_engine),
) -> Dict[str, Any]:
    return cart_to_dict(engine.update_item(cart_id, sku, _parse_qty(qty)))


@router.post("/shipping/{cart_id}")
async def add_shipping(
    cart_id: str,
    request: Request,
    engine: CartEngine = Depends(get_engine),
) -> Dict[str, Any]:
    # body is parsed here so unreadable JSON answers 400 like any other bad payload
    try:
        payload = json.loads(await request.body() or b"{}")
    except ValueError:
        payload = {}
    body = payload if isinstance(payload, dict) else {}
    cart = await run_in_threadpool(engine.add_shipping, cart_id, body)
    return cart_to_dict(cart)


@router.get("/rename/{from_id}/{to_id}")
def rename_cart(from_id: str, to_id: str, engine: CartEngine = Depends(get_engine)) -> Dict[str, Any]:
    return cart_to_dict(engine.rename_cart(from_id, to_id))
