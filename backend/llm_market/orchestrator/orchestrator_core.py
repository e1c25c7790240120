from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any

from fastapi import HTTPException

from llm_market.core.config import Settings
from llm_market.core.utils import expires_after
from llm_market.infrastructure.logging import get_logger
from llm_market.models.product import PLACEHOLDER_PRODUCT, Product
from llm_market.orchestrator import carousel
from llm_market.orchestrator.command_interpreter import CommandInterpreter
from llm_market.orchestrator.response_formatter import ResponseFormatter
from llm_market.orchestrator.types import (
    ADD_TO_CART,
    COMPARE,
    DISMISS,
    SEARCH,
    SHOW_NEXT,
    CommandIntent,
    Feedback,
    ShoppingState,
)
from llm_market.services.cart_service import CartService, add_to_cart, remove_from_cart
from llm_market.services.comparison_service import ComparisonService
from llm_market.services.product_search_service import ProductSearchService
from llm_market.services.session_service import SessionService

logger = get_logger(__name__)

NOT_UNDERSTOOD = "Sorry, I didn't understand that command."


class Orchestrator:
    def __init__(
        self,
        *,
        settings: Settings,
        interpreter: CommandInterpreter,
        search_service: ProductSearchService,
        cart_service: CartService,
        comparison_service: ComparisonService,
        session_service: SessionService,
        formatter: ResponseFormatter,
    ) -> None:
        self.settings = settings
        self.interpreter = interpreter
        self.search_service = search_service
        self.cart_service = cart_service
        self.comparison_service = comparison_service
        self.session_service = session_service
        self.formatter = formatter

    @property
    def capacity(self) -> int:
        return self.settings.carousel_capacity

    async def process_message(self, *, message: str, session_id: str) -> dict[str, Any]:
        text = message.strip()
        state = self.session_service.get_state(session_id)
        if not text:
            return self._respond(session_id, state, action="noop", success=False)

        kind = await asyncio.to_thread(self.interpreter.classify, text, state.visible)
        logger.info("message_classified", session_id=session_id, kind=kind)
        if kind == SEARCH:
            return await self.search(session_id=session_id, search_term=text)

        intent = await asyncio.to_thread(self.interpreter.interpret, text, state.visible)
        if intent is None:
            return self._not_understood(session_id, reason="no_action")
        return await self.apply_intent(session_id=session_id, intent=intent)

    async def search(self, *, session_id: str, search_term: str) -> dict[str, Any]:
        term = search_term.strip()
        if not term:
            raise HTTPException(status_code=400, detail="Search term is required")

        started = False

        def begin(state: ShoppingState) -> ShoppingState:
            nonlocal started
            if state.loading:
                return state
            started = True
            return replace(state, loading=True)

        state = self.session_service.update(session_id, begin)
        if not started:
            state = self.session_service.update(
                session_id,
                lambda current: self._with_feedback(current, "A search is already running.", success=False),
            )
            return self._respond(session_id, state, action="search", success=False)

        try:
            outcome = await asyncio.to_thread(self.search_service.search, term)
        finally:
            self.session_service.update(session_id, lambda current: replace(current, loading=False))

        products = outcome.products
        message = None
        if outcome.failed:
            products = [PLACEHOLDER_PRODUCT]
            message = "Product search is unavailable right now. Showing a sample product."
        elif not products:
            message = f'No products found for "{term}".'

        def finish(current: ShoppingState) -> ShoppingState:
            updated = carousel.start_search(current, products, search_term=term, capacity=self.capacity)
            if message:
                updated = self._with_feedback(updated, message, success=False)
            return updated

        state = self.session_service.update(session_id, finish)
        return self._respond(
            session_id,
            state,
            action="search",
            success=not outcome.failed,
            extra={"fallback": outcome.failed},
        )

    async def apply_intent(self, *, session_id: str, intent: CommandIntent) -> dict[str, Any]:
        extra = {"source": intent.source}
        if intent.action == SHOW_NEXT:
            return await asyncio.to_thread(self.show_next, session_id=session_id, extra=extra)
        if intent.action == COMPARE:
            return await self.compare(session_id=session_id, extra=extra)

        state = self.session_service.get_state(session_id)
        target = self.interpreter.resolve_target(intent, state.visible)
        if target is None:
            return self._not_understood(session_id, reason="no_target", action=intent.action)
        if intent.action == DISMISS:
            return await asyncio.to_thread(
                self.dismiss, session_id=session_id, product_id=target.id, extra=extra
            )
        if intent.action == ADD_TO_CART:
            return await asyncio.to_thread(
                self.add_to_cart, session_id=session_id, product_id=target.id, extra=extra
            )
        return self._not_understood(session_id, reason="unsupported_action", action=intent.action)

    def dismiss(self, *, session_id: str, product_id: int, extra: dict[str, Any] | None = None) -> dict[str, Any]:
        dismissed_name: str | None = None

        def transition(current: ShoppingState) -> ShoppingState:
            nonlocal dismissed_name
            target = next((product for product in current.visible if product.id == product_id), None)
            if target is None:
                return current
            dismissed_name = target.name
            updated = carousel.dismiss(current, product_id, capacity=self.capacity)
            return self._with_feedback(updated, f"Dismissed {target.name}.")

        state = self.session_service.update(session_id, transition)
        if dismissed_name is None:
            raise HTTPException(status_code=404, detail="Product is not currently shown")
        logger.info("product_dismissed", session_id=session_id, product_id=product_id)
        return self._respond(session_id, state, action=DISMISS, success=True, extra=extra)

    def show_next(self, *, session_id: str, extra: dict[str, Any] | None = None) -> dict[str, Any]:
        advanced = False

        def transition(current: ShoppingState) -> ShoppingState:
            nonlocal advanced
            updated, advanced = carousel.show_next(current, capacity=self.capacity)
            if not advanced:
                return self._with_feedback(current, "No more products to show.", success=False)
            return self._with_feedback(updated, "Showing the next products.")

        state = self.session_service.update(session_id, transition)
        return self._respond(session_id, state, action=SHOW_NEXT, success=advanced, extra=extra)

    def add_to_cart(self, *, session_id: str, product_id: int, extra: dict[str, Any] | None = None) -> dict[str, Any]:
        state = self.session_service.get_state(session_id)
        product = state.find_result(product_id)
        if product is None:
            raise HTTPException(status_code=404, detail="Product not found in current results")

        def transition(current: ShoppingState) -> ShoppingState:
            return self._with_feedback(add_to_cart(current, product), f"Added {product.name} to your cart.")

        state = self.session_service.update(session_id, transition)
        self._persist_cart(session_id)
        logger.info("cart_item_added", session_id=session_id, product_id=product_id, cart_items=len(state.cart))
        return self._respond(session_id, state, action=ADD_TO_CART, success=True, extra=extra)

    def remove_from_cart(self, *, session_id: str, product_id: int) -> dict[str, Any]:
        removed = False

        def transition(current: ShoppingState) -> ShoppingState:
            nonlocal removed
            updated = remove_from_cart(current, product_id)
            removed = updated.cart != current.cart
            return updated

        state = self.session_service.update(session_id, transition)
        if not removed:
            raise HTTPException(status_code=404, detail="Cart item not found")
        self._persist_cart(session_id)
        return self._respond(session_id, state, action="remove_from_cart", success=True)

    async def compare(self, *, session_id: str, extra: dict[str, Any] | None = None) -> dict[str, Any]:
        state = self.session_service.get_state(session_id)
        pair = state.visible
        if len(pair) != 2:
            state = self.session_service.update(
                session_id,
                lambda current: self._with_feedback(
                    current, "Two products need to be on screen to compare.", success=False
                ),
            )
            return self._respond(session_id, state, action=COMPARE, success=False, extra=extra)

        comparison = await asyncio.to_thread(self.comparison_service.compare, pair)
        compared_ids = [product.id for product in pair]

        def transition(current: ShoppingState) -> ShoppingState:
            if comparison is None:
                return self._with_feedback(current, "Couldn't generate a comparison right now.", success=False)
            if current.visible_ids != compared_ids:
                # The window moved while the model was answering.
                return current
            return self._with_feedback(replace(current, comparison=comparison), "Comparison ready.")

        state = self.session_service.update(session_id, transition)
        success = state.comparison is not None and comparison is not None
        return self._respond(session_id, state, action=COMPARE, success=success, extra=extra)

    def view(self, *, session_id: str) -> dict[str, Any]:
        state = self.session_service.get_state(session_id)
        return self._respond(session_id, state, action="view", success=True)

    def _persist_cart(self, session_id: str) -> None:
        # Store I/O stays outside the session lock; the newest committed cart wins.
        def newest_cart() -> tuple[Product, ...] | None:
            state = self.session_service.peek(session_id)
            return state.cart if state is not None else None

        self.cart_service.persist(session_id, newest_cart)

    def _not_understood(self, session_id: str, *, reason: str, action: str | None = None) -> dict[str, Any]:
        logger.info("command_unresolved", session_id=session_id, reason=reason, action=action)
        state = self.session_service.update(
            session_id,
            lambda current: self._with_feedback(current, NOT_UNDERSTOOD, success=False),
        )
        return self._respond(session_id, state, action="not_understood", success=False)

    def _with_feedback(self, state: ShoppingState, message: str, *, success: bool = True) -> ShoppingState:
        feedback = Feedback(
            message=message,
            expires_at=expires_after(self.settings.feedback_ttl_seconds),
            success=success,
        )
        return replace(state, feedback=feedback)

    def _respond(
        self,
        session_id: str,
        state: ShoppingState,
        *,
        action: str,
        success: bool,
        extra: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return self.formatter.format(
            session_id=session_id,
            state=state,
            action=action,
            success=success,
            extra=extra,
        )
