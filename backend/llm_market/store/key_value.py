from __future__ import annotations

from abc import ABC, abstractmethod
from threading import RLock
from typing import Any

from llm_market.infrastructure.persistence_clients import RedisClientManager


class KeyValueStore(ABC):
    """String key/value storage used for client-side style persistence (the cart)."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError

    @property
    def backend(self) -> str:
        return "memory"


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self) -> None:
        self._values: dict[str, str] = {}
        self.lock = RLock()

    def get(self, key: str) -> str | None:
        with self.lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self.lock:
            self._values[key] = value

    def delete(self, key: str) -> None:
        with self.lock:
            self._values.pop(key, None)

    def clear(self) -> None:
        with self.lock:
            self._values.clear()


class RedisKeyValueStore(KeyValueStore):
    """Uses Redis while the manager has a connection, otherwise an in-process store."""

    def __init__(self, *, redis_manager: RedisClientManager, fallback: KeyValueStore | None = None) -> None:
        self.redis_manager = redis_manager
        self.fallback = fallback or InMemoryKeyValueStore()

    @property
    def backend(self) -> str:
        return "redis" if self.redis_manager.client is not None else self.fallback.backend

    def get(self, key: str) -> str | None:
        return self.redis_manager.run(
            lambda client: _decode(client.get(key)),
            fallback=lambda: self.fallback.get(key),
        )

    def set(self, key: str, value: str) -> None:
        self.redis_manager.run(
            lambda client: client.set(key, value),
            fallback=lambda: self.fallback.set(key, value),
        )

    def delete(self, key: str) -> None:
        self.redis_manager.run(
            lambda client: client.delete(key),
            fallback=lambda: self.fallback.delete(key),
        )


def _decode(payload: Any) -> str | None:
    if payload is None:
        return None
    if isinstance(payload, bytes):
        return payload.decode("utf-8")
    return str(payload)
