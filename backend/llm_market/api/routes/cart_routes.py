from __future__ import annotations

from fastapi import APIRouter, Depends

from llm_market.api.deps import resolve_session_id
from llm_market.container import cart_service, orchestrator, session_service
from llm_market.models.schemas import AddCartItemRequest

router = APIRouter(tags=["cart"])


@router.get("/cart")
def get_cart(session_id: str = Depends(resolve_session_id)) -> dict[str, object]:
    return cart_service.summary(session_service.get_state(session_id))


@router.post("/cart/items", status_code=201)
def add_cart_item(
    payload: AddCartItemRequest,
    session_id: str = Depends(resolve_session_id),
) -> dict[str, object]:
    return orchestrator.add_to_cart(session_id=session_id, product_id=payload.productId)


@router.delete("/cart/items/{product_id}")
def delete_cart_item(product_id: int, session_id: str = Depends(resolve_session_id)) -> dict[str, object]:
    return orchestrator.remove_from_cart(session_id=session_id, product_id=product_id)


@router.get("/checkout")
def checkout_summary(session_id: str = Depends(resolve_session_id)) -> dict[str, object]:
    return cart_service.checkout_summary(session_service.get_state(session_id))
