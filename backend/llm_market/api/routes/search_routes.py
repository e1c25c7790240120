from __future__ import annotations

from fastapi import APIRouter, HTTPException

from llm_market.container import product_search_service
from llm_market.models.schemas import SearchRequest

router = APIRouter(prefix="/search", tags=["search"])


@router.post("")
def search_products(payload: SearchRequest) -> dict[str, object]:
    term = payload.searchTerm.strip()
    if not term:
        raise HTTPException(status_code=400, detail="Search term is required")
    outcome = product_search_service.search(term)
    if outcome.failed:
        raise HTTPException(status_code=500, detail="Failed to fetch products")
    return {"products": [product.to_dict() for product in outcome.products]}


@router.get("")
def search_usage() -> dict[str, object]:
    return {"message": "Products API endpoint - use POST with searchTerm"}
