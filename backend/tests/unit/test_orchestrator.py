from __future__ import annotations

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import replace
from datetime import timedelta
from typing import Any

import pytest
from fastapi import HTTPException

from llm_market.container import cart_service, orchestrator, session_service
from llm_market.infrastructure.llm_client import LLMCommandPrediction
from llm_market.models.product import Product
from llm_market.orchestrator.orchestrator_core import NOT_UNDERSTOOD
from llm_market.orchestrator.response_formatter import ResponseFormatter
from llm_market.orchestrator.types import ADD_TO_CART, COMMAND, SEARCH
from llm_market.store.key_value import KeyValueStore

_COMPARISON = {
    "product1": {"pros": ["Strong ANC"], "cons": ["Pricey"]},
    "product2": {"pros": ["Light"], "cons": ["Older"]},
    "summary": "Both are solid picks.",
}


def _open() -> str:
    session_id, _ = session_service.open_session()
    return session_id


def _search(session_id: str, term: str = "headphones") -> dict[str, Any]:
    return asyncio.run(orchestrator.search(session_id=session_id, search_term=term))


def _message(session_id: str, text: str) -> dict[str, Any]:
    return asyncio.run(orchestrator.process_message(message=text, session_id=session_id))


def _visible_ids(view: dict[str, Any]) -> list[int]:
    return [product["id"] for product in view["products"]]


def test_search_fills_window_and_resets_previous_state(stub_search: Any, sample_products: list[Product]) -> None:
    stub_search.products = sample_products
    session_id = _open()
    _search(session_id)
    orchestrator.dismiss(session_id=session_id, product_id=1)

    view = _search(session_id, "  wireless headphones ")

    assert stub_search.calls == ["headphones", "wireless headphones"]
    assert view["searchTerm"] == "wireless headphones"
    assert _visible_ids(view) == [1, 2]
    assert view["dismissedIds"] == []
    assert view["resultCount"] == 4
    assert view["hasMore"] is True
    assert view["loading"] is False


def test_failed_search_shows_placeholder_product(stub_search: Any) -> None:
    stub_search.error = "ASIN Data API returned 500"
    session_id = _open()

    view = _search(session_id)

    assert view["products"][0]["name"] == "Sample Product 1"
    assert view["products"][0]["price"] == 19.99
    assert view["metadata"] == {"action": "search", "success": False, "fallback": True}
    assert view["feedback"]["success"] is False
    assert view["loading"] is False


def test_empty_search_reports_no_results(stub_search: Any) -> None:
    session_id = _open()
    view = _search(session_id, "zzzz")

    assert view["products"] == []
    assert view["hasMore"] is False
    assert view["feedback"]["message"] == 'No products found for "zzzz".'


def test_blank_search_term_is_rejected() -> None:
    session_id = _open()
    with pytest.raises(HTTPException) as exc:
        _search(session_id, "   ")
    assert exc.value.status_code == 400


def test_search_is_ignored_while_another_is_running(stub_search: Any) -> None:
    session_id = _open()
    session_service.update(session_id, lambda state: replace(state, loading=True))

    view = _search(session_id)

    assert stub_search.calls == []
    assert view["feedback"]["message"] == "A search is already running."
    assert view["loading"] is True


def test_message_with_empty_window_is_a_search(stub_search: Any, stub_llm: Any, sample_products: list[Product]) -> None:
    stub_search.products = sample_products
    session_id = _open()

    view = _message(session_id, "noise cancelling headphones")

    assert stub_llm.calls == []
    assert stub_search.calls == ["noise cancelling headphones"]
    assert _visible_ids(view) == [1, 2]


def test_remote_search_label_starts_new_search(stub_search: Any, stub_llm: Any, sample_products: list[Product]) -> None:
    stub_search.products = sample_products
    session_id = _open()
    _search(session_id)
    stub_llm.label = SEARCH

    _message(session_id, "running shoes")

    assert stub_llm.calls == ["classify_message"]
    assert stub_search.calls[-1] == "running shoes"


def test_dismiss_second_one_through_keyword_fallback(stub_search: Any, sample_products: list[Product]) -> None:
    stub_search.products = sample_products
    session_id = _open()
    _search(session_id)

    view = _message(session_id, "dismiss the second one")

    assert _visible_ids(view) == [1, 3]
    assert view["dismissedIds"] == [2]
    assert view["feedback"]["message"] == "Dismissed Bose QuietComfort 45 Headphones."
    assert view["metadata"]["source"] == "rules"


def test_remote_extraction_adds_to_cart(stub_search: Any, stub_llm: Any, sample_products: list[Product]) -> None:
    stub_search.products = sample_products
    session_id = _open()
    _search(session_id)
    stub_llm.label = COMMAND
    stub_llm.prediction = LLMCommandPrediction(action=ADD_TO_CART, product_name="sony")

    view = _message(session_id, "I'll take the sony")

    assert view["cartCount"] == 1
    assert view["cart"]["items"][0]["name"] == sample_products[0].name
    assert view["feedback"]["message"] == f"Added {sample_products[0].name} to your cart."
    assert _visible_ids(view) == [1, 2]


def test_unresolvable_command_is_not_understood(stub_search: Any, stub_llm: Any, sample_products: list[Product]) -> None:
    stub_search.products = sample_products
    session_id = _open()
    _search(session_id)
    before = session_service.get_state(session_id)
    stub_llm.label = COMMAND

    view = _message(session_id, "hmm, the fancy one")
    after = session_service.get_state(session_id)

    assert view["feedback"]["message"] == NOT_UNDERSTOOD
    assert view["metadata"] == {"action": "not_understood", "success": False}
    assert (after.visible, after.cart, after.dismissed) == (before.visible, before.cart, before.dismissed)


def test_dismissing_hidden_product_is_not_found(stub_search: Any, sample_products: list[Product]) -> None:
    stub_search.products = sample_products
    session_id = _open()
    _search(session_id)

    with pytest.raises(HTTPException) as exc:
        orchestrator.dismiss(session_id=session_id, product_id=4)
    assert exc.value.status_code == 404


def test_show_next_replaces_window_and_reports_exhaustion(stub_search: Any, sample_products: list[Product]) -> None:
    stub_search.products = sample_products
    session_id = _open()
    _search(session_id)

    view = orchestrator.show_next(session_id=session_id)
    assert _visible_ids(view) == [3, 4]
    assert view["hasMore"] is False

    view = orchestrator.show_next(session_id=session_id)
    assert _visible_ids(view) == [3, 4]
    assert view["metadata"]["success"] is False
    assert view["feedback"]["message"] == "No more products to show."


def test_add_to_cart_accepts_any_product_from_current_results(
    stub_search: Any, sample_products: list[Product]
) -> None:
    stub_search.products = sample_products
    session_id = _open()
    _search(session_id)

    view = orchestrator.add_to_cart(session_id=session_id, product_id=4)
    assert view["cart"]["items"][0]["id"] == 4

    with pytest.raises(HTTPException) as exc:
        orchestrator.add_to_cart(session_id=session_id, product_id=99)
    assert exc.value.status_code == 404


def test_remove_from_cart(stub_search: Any, sample_products: list[Product]) -> None:
    stub_search.products = sample_products
    session_id = _open()
    _search(session_id)
    orchestrator.add_to_cart(session_id=session_id, product_id=1)

    view = orchestrator.remove_from_cart(session_id=session_id, product_id=1)
    assert view["cartCount"] == 0

    with pytest.raises(HTTPException):
        orchestrator.remove_from_cart(session_id=session_id, product_id=1)


def test_compare_stores_result_until_window_changes(
    stub_search: Any, stub_llm: Any, sample_products: list[Product]
) -> None:
    stub_search.products = sample_products
    stub_llm.json_payload = _COMPARISON
    session_id = _open()
    _search(session_id)

    view = asyncio.run(orchestrator.compare(session_id=session_id))
    assert view["comparison"]["productIds"] == [1, 2]
    assert view["comparison"]["summary"] == "Both are solid picks."

    view = orchestrator.dismiss(session_id=session_id, product_id=1)
    assert view["comparison"] is None

    asyncio.run(orchestrator.compare(session_id=session_id))
    view = orchestrator.show_next(session_id=session_id)
    assert view["comparison"] is None


def test_compare_requires_two_visible_products(stub_search: Any, stub_llm: Any, sample_products: list[Product]) -> None:
    stub_search.products = sample_products[:1]
    session_id = _open()
    _search(session_id)

    view = asyncio.run(orchestrator.compare(session_id=session_id))

    assert stub_llm.calls == []
    assert view["comparison"] is None
    assert view["feedback"]["message"] == "Two products need to be on screen to compare."


def test_compare_failure_leaves_state_alone(stub_search: Any, sample_products: list[Product]) -> None:
    stub_search.products = sample_products
    session_id = _open()
    _search(session_id)

    view = asyncio.run(orchestrator.compare(session_id=session_id))

    assert view["comparison"] is None
    assert view["metadata"]["success"] is False
    assert view["feedback"]["message"] == "Couldn't generate a comparison right now."


def test_compare_result_is_dropped_when_window_moved(
    stub_search: Any, stub_llm: Any, sample_products: list[Product]
) -> None:
    stub_search.products = sample_products
    session_id = _open()
    _search(session_id)

    def complete_json(*, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        orchestrator.dismiss(session_id=session_id, product_id=2)
        return _COMPARISON

    stub_llm.complete_json = complete_json

    view = asyncio.run(orchestrator.compare(session_id=session_id))

    assert _visible_ids(view) == [1, 3]
    assert view["comparison"] is None


def test_feedback_disappears_after_its_lifetime(stub_search: Any, sample_products: list[Product]) -> None:
    stub_search.products = sample_products
    session_id = _open()
    _search(session_id)
    orchestrator.dismiss(session_id=session_id, product_id=1)
    state = session_service.get_state(session_id)
    assert state.feedback is not None

    formatter = ResponseFormatter(cart_service=cart_service)
    fresh = formatter.format(session_id=session_id, state=state, action="view", success=True)
    stale = formatter.format(
        session_id=session_id,
        state=state,
        action="view",
        success=True,
        now=state.feedback.expires_at + timedelta(seconds=1),
    )

    assert fresh["feedback"]["message"] == "Dismissed Sony WH-1000XM5 Wireless Headphones."
    assert stale["feedback"] is None


def test_reopened_session_rehydrates_cart(stub_search: Any, sample_products: list[Product]) -> None:
    stub_search.products = sample_products
    session_id = _open()
    _search(session_id)
    orchestrator.add_to_cart(session_id=session_id, product_id=2)
    orchestrator.add_to_cart(session_id=session_id, product_id=1)

    session_service.reset()
    reopened_id, state = session_service.open_session(session_id)

    assert reopened_id == session_id
    assert [item.id for item in state.cart] == [2, 1]
    assert state.results == ()


def test_product_number_in_message_is_the_shown_id(stub_search: Any, sample_products: list[Product]) -> None:
    stub_search.products = sample_products
    session_id = _open()
    _search(session_id)
    orchestrator.dismiss(session_id=session_id, product_id=1)

    view = _message(session_id, "dismiss product 3")

    assert view["dismissedIds"] == [1, 3]
    assert 3 not in _visible_ids(view)
    assert 2 in _visible_ids(view)


def test_cart_write_happens_off_the_event_loop_without_session_lock(
    monkeypatch: pytest.MonkeyPatch, stub_search: Any, stub_llm: Any, sample_products: list[Product]
) -> None:
    stub_search.products = sample_products
    session_id = _open()
    _search(session_id)
    stub_llm.label = COMMAND
    writes: list[tuple[bool, bool]] = []

    class _ObservingStore(KeyValueStore):
        def get(self, key: str) -> str | None:
            return None

        def set(self, key: str, value: str) -> None:
            on_main_thread = threading.current_thread() is threading.main_thread()
            pool = ThreadPoolExecutor(max_workers=1)
            try:
                pool.submit(session_service.peek, "nobody").result(timeout=1)
                lock_free = True
            except FutureTimeoutError:
                lock_free = False
            finally:
                pool.shutdown(wait=False)
            writes.append((on_main_thread, lock_free))

        def delete(self, key: str) -> None:
            return None

    monkeypatch.setattr(cart_service.cart_repository, "store", _ObservingStore())

    view = _message(session_id, "add the second one to my cart")

    assert view["cartCount"] == 1
    assert writes == [(False, True)]
