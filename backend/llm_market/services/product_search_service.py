from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from llm_market.infrastructure.logging import get_logger
from llm_market.infrastructure.search_client import SearchGatewayError
from llm_market.models.product import Product

logger = get_logger(__name__)


class ProductSearchClient(Protocol):
    def search(self, search_term: str) -> list[Product]: ...


@dataclass
class SearchOutcome:
    products: list[Product] = field(default_factory=list)
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class ProductSearchService:
    def __init__(self, search_client: ProductSearchClient) -> None:
        self.search_client = search_client

    def search(self, search_term: str) -> SearchOutcome:
        term = search_term.strip()
        if not term:
            raise ValueError("Search term is required")
        try:
            products = self.search_client.search(term)
        except SearchGatewayError as exc:
            logger.warning("search_failed", search_term=term, error=exc.message)
            return SearchOutcome(products=[], error=exc.message)
        except Exception:  # pragma: no cover - unexpected client bug
            logger.exception("search_crashed", search_term=term)
            return SearchOutcome(products=[], error="Failed to fetch products")
        logger.info("search_completed", search_term=term, count=len(products))
        return SearchOutcome(products=products)
