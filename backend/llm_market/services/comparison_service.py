from __future__ import annotations

import json
from typing import Any, Protocol, Sequence

from llm_market.infrastructure.logging import get_logger
from llm_market.infrastructure.prompts import PRODUCT_COMPARISON_PROMPT
from llm_market.models.product import Comparison, Product, ProductAssessment

logger = get_logger(__name__)


class JsonCompletionClient(Protocol):
    def complete_json(self, *, system_prompt: str, user_prompt: str) -> dict[str, Any] | None: ...


class ComparisonService:
    def __init__(self, llm_client: JsonCompletionClient) -> None:
        self.llm_client = llm_client

    def compare(self, products: Sequence[Product]) -> Comparison | None:
        """Ask the model for pros/cons of exactly two products; ``None`` on any failure."""
        if len(products) != 2:
            return None
        first, second = products
        payload = self.llm_client.complete_json(
            system_prompt=PRODUCT_COMPARISON_PROMPT,
            user_prompt=self.build_prompt(first, second),
        )
        if payload is None:
            logger.info("comparison_unavailable", product_ids=[first.id, second.id])
            return None
        comparison = parse_comparison(payload, product_ids=(first.id, second.id))
        if comparison is None:
            logger.info("comparison_malformed", product_ids=[first.id, second.id])
        return comparison

    def build_prompt(self, first: Product, second: Product) -> str:
        return json.dumps(
            {
                "product1": self._describe(first),
                "product2": self._describe(second),
            }
        )

    def _describe(self, product: Product) -> dict[str, Any]:
        return {
            "name": product.name,
            "price": product.price,
            "rating": product.rating if product.rating is not None else "N/A",
            "reviewsCount": product.reviews_count if product.reviews_count is not None else "N/A",
        }


def parse_comparison(payload: dict[str, Any], *, product_ids: tuple[int, int]) -> Comparison | None:
    first = _parse_assessment(payload.get("product1"))
    second = _parse_assessment(payload.get("product2"))
    summary = payload.get("summary")
    if first is None or second is None or not isinstance(summary, str) or not summary.strip():
        return None
    return Comparison(first=first, second=second, summary=summary.strip(), product_ids=product_ids)


def _parse_assessment(raw: Any) -> ProductAssessment | None:
    if not isinstance(raw, dict):
        return None
    pros = raw.get("pros")
    cons = raw.get("cons")
    if not isinstance(pros, list) or not isinstance(cons, list):
        return None
    return ProductAssessment(
        pros=tuple(str(item).strip() for item in pros if str(item).strip()),
        cons=tuple(str(item).strip() for item in cons if str(item).strip()),
    )
