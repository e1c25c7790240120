from __future__ import annotations

from dataclasses import dataclass
from time import monotonic
from typing import Any, Callable, TypeVar

import redis
from redis.exceptions import RedisError

from llm_market.infrastructure.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RedisClientManager:
    """Optional Redis connection for the cart store.

    A command that fails drops the connection; the next command after
    ``retry_interval_seconds`` connects again. Callers pass a fallback that
    runs whenever no connection is available.
    """

    url: str
    enabled: bool
    retry_interval_seconds: float = 30.0
    _client: Any = None
    _last_error: str | None = None
    _retry_at: float = 0.0

    def connect(self) -> bool:
        if not self.enabled:
            return False
        try:
            client = redis.from_url(self.url, socket_timeout=2, socket_connect_timeout=2)
            client.ping()
        except (RedisError, OSError, ValueError) as exc:
            self._mark_unavailable(exc)
            return False
        self._client = client
        self._last_error = None
        logger.info("redis_connected")
        return True

    def disconnect(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            client.close()
        except RedisError as exc:
            logger.warning("redis_close_failed", error=str(exc))

    def run(self, command: Callable[[Any], T], *, fallback: Callable[[], T]) -> T:
        client = self._available_client()
        if client is None:
            return fallback()
        try:
            return command(client)
        except (RedisError, OSError) as exc:
            self._mark_unavailable(exc)
            return fallback()

    def _available_client(self) -> Any:
        if self._client is None and self.enabled and monotonic() >= self._retry_at:
            self.connect()
        return self._client

    def _mark_unavailable(self, exc: Exception) -> None:
        self._client = None
        self._last_error = str(exc)
        self._retry_at = monotonic() + self.retry_interval_seconds
        logger.warning("redis_unavailable", error=str(exc), retry_in_seconds=self.retry_interval_seconds)

    @property
    def status(self) -> str:
        if not self.enabled:
            return "disabled"
        if self._client is None:
            return "unavailable"
        return "connected"

    @property
    def error(self) -> str | None:
        return self._last_error

    @property
    def client(self) -> Any:
        return self._client
