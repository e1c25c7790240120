from __future__ import annotations

from datetime import datetime
from typing import Any

from llm_market.core.utils import utc_now
from llm_market.orchestrator.carousel import has_more
from llm_market.orchestrator.types import ShoppingState
from llm_market.services.cart_service import CartService


class ResponseFormatter:
    """Turns a session state into the camelCase view payload clients render."""

    def __init__(self, cart_service: CartService) -> None:
        self.cart_service = cart_service

    def format(
        self,
        *,
        session_id: str,
        state: ShoppingState,
        action: str,
        success: bool,
        now: datetime | None = None,
        extra: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        moment = now or utc_now()
        feedback = None
        if state.feedback is not None and state.feedback.is_active(moment):
            feedback = {
                "message": state.feedback.message,
                "success": state.feedback.success,
                "expiresAt": state.feedback.expires_at.isoformat(),
            }
        cart = self.cart_service.summary(state)
        return {
            "sessionId": session_id,
            "searchTerm": state.search_term,
            "loading": state.loading,
            "products": [product.to_dict() for product in state.visible],
            "resultCount": len(state.results),
            "hasMore": has_more(state),
            "dismissedIds": sorted(state.dismissed),
            "cart": cart,
            "cartCount": cart["itemCount"],
            "comparison": state.comparison.to_dict() if state.comparison else None,
            "feedback": feedback,
            "metadata": {"action": action, "success": success, **(extra or {})},
        }
