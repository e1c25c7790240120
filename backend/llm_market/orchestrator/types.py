from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from llm_market.core.utils import is_past
from llm_market.models.product import Comparison, Product

SEARCH = "SEARCH"
COMMAND = "COMMAND"

DISMISS = "dismiss"
ADD_TO_CART = "add_to_cart"
SHOW_NEXT = "show_next"
COMPARE = "compare"
COMMAND_ACTIONS = (DISMISS, ADD_TO_CART, SHOW_NEXT, COMPARE)


@dataclass(frozen=True)
class Feedback:
    message: str
    expires_at: datetime
    success: bool = True

    def is_active(self, now: datetime) -> bool:
        return not is_past(self.expires_at, now=now)


@dataclass(frozen=True)
class ShoppingState:
    """Everything one shopping session shows, as a single immutable value."""

    results: tuple[Product, ...] = ()
    visible: tuple[Product, ...] = ()
    dismissed: frozenset[int] = frozenset()
    cursor: int = 0
    cart: tuple[Product, ...] = ()
    comparison: Comparison | None = None
    feedback: Feedback | None = None
    search_term: str = ""
    loading: bool = False

    @property
    def visible_ids(self) -> list[int]:
        return [product.id for product in self.visible]

    def find_result(self, product_id: int) -> Product | None:
        return next((product for product in self.results if product.id == product_id), None)


@dataclass
class CommandIntent:
    action: str
    position: int | None = None
    product_id: int | None = None
    product_name: str | None = None
    source: str = "llm"
