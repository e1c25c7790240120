from __future__ import annotations

from fastapi import APIRouter, Depends

from llm_market.api.deps import resolve_session_id
from llm_market.container import orchestrator

router = APIRouter(prefix="/products", tags=["products"])


@router.get("")
def list_visible_products(session_id: str = Depends(resolve_session_id)) -> dict[str, object]:
    return orchestrator.view(session_id=session_id)


@router.post("/next")
def show_next_products(session_id: str = Depends(resolve_session_id)) -> dict[str, object]:
    return orchestrator.show_next(session_id=session_id)


@router.post("/compare")
async def compare_products(session_id: str = Depends(resolve_session_id)) -> dict[str, object]:
    return await orchestrator.compare(session_id=session_id)


@router.post("/{product_id}/dismiss")
def dismiss_product(product_id: int, session_id: str = Depends(resolve_session_id)) -> dict[str, object]:
    return orchestrator.dismiss(session_id=session_id, product_id=product_id)
