from __future__ import annotations

from dataclasses import replace
from threading import Lock
from typing import Any, Callable, Sequence

from llm_market.models.product import Product
from llm_market.orchestrator.types import ShoppingState
from llm_market.repositories.cart_repository import CartRepository


def add_to_cart(state: ShoppingState, product: Product) -> ShoppingState:
    # Duplicates are kept: adding the same product twice means two entries.
    return replace(state, cart=state.cart + (product,))


def remove_from_cart(state: ShoppingState, product_id: int) -> ShoppingState:
    return replace(state, cart=tuple(item for item in state.cart if item.id != product_id))


class CartService:
    def __init__(self, cart_repository: CartRepository, *, lock_stripes: int = 32) -> None:
        self.cart_repository = cart_repository
        self._save_locks = tuple(Lock() for _ in range(max(1, lock_stripes)))

    def rehydrate(self, state: ShoppingState, *, session_id: str) -> ShoppingState:
        return replace(state, cart=tuple(self.cart_repository.load(session_id)))

    def persist(self, session_id: str, read_cart: Callable[[], Sequence[Product] | None]) -> None:
        """Writes the session's newest cart to the store.

        ``read_cart`` is called under a per-session save lock, so when two
        writes for one session race the later one stores the later cart.
        ``None`` from ``read_cart`` skips the write.
        """
        with self._save_locks[hash(session_id) % len(self._save_locks)]:
            items = read_cart()
            if items is None:
                return
            self.cart_repository.save(session_id, items)

    def summary(self, state: ShoppingState) -> dict[str, Any]:
        return {
            "items": [item.to_dict() for item in state.cart],
            "itemCount": len(state.cart),
            "total": round(sum(item.price for item in state.cart), 2),
            "currency": "USD",
        }

    def checkout_summary(self, state: ShoppingState) -> dict[str, Any]:
        summary = self.summary(state)
        summary["orderPlacementAvailable"] = False
        summary["message"] = "Payment and shipping coming soon!"
        return summary
