from __future__ import annotations

from typing import Any, Sequence

import pytest

from llm_market.container import (
    comparison_service,
    key_value_store,
    orchestrator,
    product_search_service,
    redis_manager,
    session_service,
)
from llm_market.infrastructure.llm_client import LLMCommandPrediction
from llm_market.infrastructure.search_client import SearchGatewayError
from llm_market.models.product import Product


class _StubSearchClient:
    def __init__(self) -> None:
        self.products: list[Product] = []
        self.error: str | None = None
        self.calls: list[str] = []

    def search(self, search_term: str) -> list[Product]:
        self.calls.append(search_term)
        if self.error is not None:
            raise SearchGatewayError(self.error)
        return list(self.products)


class _StubLLM:
    """Stands in for both the remote classifier and the JSON completion client."""

    def __init__(self) -> None:
        self.label: str | None = None
        self.prediction: LLMCommandPrediction | None = None
        self.json_payload: dict[str, Any] | None = None
        self.calls: list[str] = []

    def classify_message(self, *, message: str, visible_names: Sequence[str]) -> str | None:
        self.calls.append("classify_message")
        return self.label

    def extract_command(self, *, message: str, visible: Sequence[Product]) -> LLMCommandPrediction | None:
        self.calls.append("extract_command")
        return self.prediction

    def complete_json(self, *, system_prompt: str, user_prompt: str) -> dict[str, Any] | None:
        self.calls.append("complete_json")
        return self.json_payload


@pytest.fixture
def stub_search() -> _StubSearchClient:
    return _StubSearchClient()


@pytest.fixture
def stub_llm() -> _StubLLM:
    return _StubLLM()


@pytest.fixture(autouse=True)
def isolate_app_state(
    monkeypatch: pytest.MonkeyPatch,
    stub_search: _StubSearchClient,
    stub_llm: _StubLLM,
) -> None:
    # The container is module-global, so every test starts from empty sessions
    # and never reaches the real providers.
    session_service.reset()
    key_value_store.fallback.clear()  # type: ignore[attr-defined]
    monkeypatch.setattr(redis_manager, "_client", None)
    monkeypatch.setattr(redis_manager, "enabled", False)
    monkeypatch.setattr(product_search_service, "search_client", stub_search)
    monkeypatch.setattr(orchestrator.interpreter, "remote", stub_llm)
    monkeypatch.setattr(comparison_service, "llm_client", stub_llm)


@pytest.fixture
def sample_products() -> list[Product]:
    return [
        Product(id=1, name="Sony WH-1000XM5 Wireless Headphones", price=348.0, rating=4.6, reviews_count=1200),
        Product(id=2, name="Bose QuietComfort 45 Headphones", price=279.0, rating=4.5, reviews_count=980),
        Product(id=3, name="Anker Soundcore Life Q30", price=79.99, rating=4.4),
        Product(id=4, name="JBL Tune 510BT", price=29.95),
    ]
