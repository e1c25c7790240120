from __future__ import annotations

from collections import OrderedDict
from datetime import datetime
from threading import RLock
from typing import Callable

from fastapi import HTTPException

from llm_market.core.utils import expires_after, generate_id, is_past, utc_now
from llm_market.infrastructure.logging import get_logger
from llm_market.orchestrator.types import ShoppingState
from llm_market.services.cart_service import CartService

logger = get_logger(__name__)


class SessionService:
    """Holds one ``ShoppingState`` per live session and serializes updates to it.

    A session that sees no access for ``idle_minutes`` expires, and at most
    ``max_sessions`` stay live (least recently used first out). Carts live in
    the key/value store, so an expired session id reopens with its cart.
    """

    def __init__(
        self,
        cart_service: CartService,
        *,
        idle_minutes: float = 30.0,
        max_sessions: int = 5000,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.cart_service = cart_service
        self.idle_minutes = idle_minutes
        self.max_sessions = max(1, max_sessions)
        self.clock = clock
        # Ordered by last access; every access moves the entry to the end.
        self._states: OrderedDict[str, ShoppingState] = OrderedDict()
        self._expires_at: dict[str, datetime] = {}
        self._lock = RLock()

    def open_session(self, session_id: str | None = None) -> tuple[str, ShoppingState]:
        """Returns the live session, or starts one and rehydrates its persisted cart.

        A known id that is not live (expired, or after a restart) is reopened
        under the same id so the stored cart comes back.
        """
        with self._lock:
            self._evict_expired()
            if session_id:
                live = self._live(session_id)
                if live is not None:
                    return session_id, live

        resolved = session_id or generate_id("session")
        rehydrated = self.cart_service.rehydrate(ShoppingState(), session_id=resolved)

        with self._lock:
            live = self._live(resolved)
            if live is not None:
                return resolved, live
            self._states[resolved] = rehydrated
            self._touch(resolved)
            evicted = self._evict_overflow()
        logger.info("session_opened", session_id=resolved, cart_items=len(rehydrated.cart), evicted=evicted)
        return resolved, rehydrated

    def get_state(self, session_id: str) -> ShoppingState:
        with self._lock:
            state = self._live(session_id)
        if state is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return state

    def peek(self, session_id: str) -> ShoppingState | None:
        """Current state without counting as activity; ``None`` when not live."""
        with self._lock:
            return self._live(session_id, touch=False)

    def update(self, session_id: str, transition: Callable[[ShoppingState], ShoppingState]) -> ShoppingState:
        with self._lock:
            current = self._live(session_id)
            if current is None:
                raise HTTPException(status_code=404, detail="Session not found")
            updated = transition(current)
            self._states[session_id] = updated
            return updated

    def close_session(self, session_id: str) -> None:
        with self._lock:
            self._drop(session_id)

    def reset(self) -> None:
        with self._lock:
            self._states.clear()
            self._expires_at.clear()

    @property
    def live_count(self) -> int:
        with self._lock:
            return len(self._states)

    def _live(self, session_id: str, *, touch: bool = True) -> ShoppingState | None:
        state = self._states.get(session_id)
        if state is None:
            return None
        if is_past(self._expires_at[session_id], now=self.clock()):
            self._drop(session_id)
            logger.info("session_expired", session_id=session_id)
            return None
        if touch:
            self._touch(session_id)
        return state

    def _touch(self, session_id: str) -> None:
        self._expires_at[session_id] = expires_after(self.idle_minutes * 60, now=self.clock())
        self._states.move_to_end(session_id)

    def _drop(self, session_id: str) -> None:
        self._states.pop(session_id, None)
        self._expires_at.pop(session_id, None)

    def _evict_expired(self) -> None:
        now = self.clock()
        while self._states:
            oldest = next(iter(self._states))
            if not is_past(self._expires_at[oldest], now=now):
                break
            self._drop(oldest)

    def _evict_overflow(self) -> int:
        evicted = 0
        while len(self._states) > self.max_sessions:
            self._drop(next(iter(self._states)))
            evicted += 1
        return evicted
