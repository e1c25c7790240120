from __future__ import annotations

import json
from typing import Any, Sequence

from llm_market.infrastructure.logging import get_logger
from llm_market.models.product import Product
from llm_market.store.key_value import KeyValueStore

logger = get_logger(__name__)


class CartRepository:
    """Keeps each session's cart as one JSON document under a single key."""

    def __init__(self, *, store: KeyValueStore, key_prefix: str = "cart") -> None:
        self.store = store
        self.key_prefix = key_prefix

    def load(self, session_id: str) -> list[Product]:
        try:
            payload = self.store.get(self._key(session_id))
        except Exception as exc:
            logger.warning("cart_load_failed", session_id=session_id, error=str(exc))
            return []
        if not payload:
            return []
        try:
            rows = json.loads(payload)
        except json.JSONDecodeError:
            logger.warning("cart_payload_malformed", session_id=session_id)
            return []
        if not isinstance(rows, list):
            logger.warning("cart_payload_malformed", session_id=session_id)
            return []
        return self._decode_rows(rows, session_id=session_id)

    def save(self, session_id: str, items: Sequence[Product]) -> None:
        payload = json.dumps([item.to_dict() for item in items])
        try:
            self.store.set(self._key(session_id), payload)
        except Exception as exc:
            logger.warning("cart_persist_failed", session_id=session_id, error=str(exc))

    def _key(self, session_id: str) -> str:
        return f"{self.key_prefix}:{session_id}"

    def _decode_rows(self, rows: list[Any], *, session_id: str) -> list[Product]:
        items: list[Product] = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            try:
                items.append(Product.from_dict(row))
            except (KeyError, TypeError, ValueError):
                logger.warning("cart_item_skipped", session_id=session_id)
        return items
