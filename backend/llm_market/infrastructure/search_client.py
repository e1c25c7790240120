from __future__ import annotations

import math
from typing import Any

import httpx

from llm_market.core.config import PLACEHOLDER_IMAGE_URL, Settings
from llm_market.infrastructure.logging import get_logger
from llm_market.models.product import Product

logger = get_logger(__name__)

UNKNOWN_PRODUCT_NAME = "Unknown Product"


class SearchGatewayError(RuntimeError):
    """Raised when the product-search provider cannot return usable results."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AsinDataClient:
    """Thin client for the ASIN Data API ``search`` request type."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def enabled(self) -> bool:
        return bool(self.settings.asin_data_api_key.strip())

    def search(self, search_term: str) -> list[Product]:
        if not self.enabled:
            raise SearchGatewayError("Product search API key is not configured")
        params = {
            "api_key": self.settings.asin_data_api_key,
            "type": "search",
            "amazon_domain": self.settings.amazon_domain,
            "search_term": search_term,
        }
        try:
            response = httpx.get(
                self.settings.asin_data_base_url,
                params=params,
                timeout=self.settings.search_timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise SearchGatewayError(f"Search provider returned HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise SearchGatewayError(f"Search provider request failed: {exc}") from exc
        except ValueError as exc:
            raise SearchGatewayError("Search provider returned invalid JSON") from exc

        if not isinstance(payload, dict):
            raise SearchGatewayError("Search provider returned an unexpected payload")
        rows = payload.get("search_results") or []
        if not isinstance(rows, list):
            raise SearchGatewayError("Search provider returned an unexpected payload")
        logger.info("search_results_received", count=len(rows))
        return [normalize_result(row, index=index) for index, row in enumerate(rows)]


def normalize_result(item: Any, *, index: int) -> Product:
    row = item if isinstance(item, dict) else {}
    return Product(
        id=index + 1,
        name=str(row.get("title") or UNKNOWN_PRODUCT_NAME),
        price=_parse_price(row.get("price")),
        image_url=str(row.get("image") or PLACEHOLDER_IMAGE_URL),
        asin=_optional_str(row.get("asin")),
        link=_optional_str(row.get("link")),
        rating=_optional_float(row.get("rating")),
        reviews_count=_optional_int(row.get("reviews_count") or row.get("ratings_total")),
    )


def _parse_price(raw: Any) -> float:
    if isinstance(raw, dict):
        raw = raw.get("value")
    if isinstance(raw, bool) or raw is None:
        return 0.0
    if isinstance(raw, str):
        raw = raw.replace("$", "").replace(",", "").strip()
    try:
        price = float(raw)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(price) or price < 0:
        return 0.0
    return price


def _optional_str(raw: Any) -> str | None:
    if raw is None or raw == "":
        return None
    return str(raw)


def _optional_float(raw: Any) -> float | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def _optional_int(raw: Any) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        raw = raw.replace(",", "").strip()
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        return None
