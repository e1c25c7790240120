from __future__ import annotations

from dataclasses import replace
from itertools import permutations

from llm_market.models.product import Comparison, Product, ProductAssessment
from llm_market.orchestrator import carousel
from llm_market.orchestrator.types import ShoppingState


def _products(count: int) -> list[Product]:
    return [Product(id=index, name=f"Product {index}", price=float(index)) for index in range(1, count + 1)]


def _comparison() -> Comparison:
    return Comparison(first=ProductAssessment(), second=ProductAssessment(), summary="close call", product_ids=(1, 2))


def test_start_search_shows_first_two_and_resets_dismissed() -> None:
    stale = ShoppingState(dismissed=frozenset({1, 2}), cursor=5, comparison=_comparison())
    state = carousel.start_search(stale, _products(5), search_term="headphones")

    assert state.visible_ids == [1, 2]
    assert state.dismissed == frozenset()
    assert state.cursor == 2
    assert state.comparison is None
    assert state.search_term == "headphones"


def test_start_search_with_fewer_results_than_capacity() -> None:
    assert carousel.start_search(ShoppingState(), _products(1)).visible_ids == [1]
    assert carousel.start_search(ShoppingState(), []).visible_ids == []


def test_dismiss_walkthrough_from_three_results() -> None:
    state = carousel.start_search(ShoppingState(), _products(3))

    state = carousel.dismiss(state, 1)
    assert state.visible_ids == [2, 3]
    assert state.dismissed == frozenset({1})
    assert state.cursor == 3

    state = carousel.dismiss(state, 2)
    assert state.visible_ids == [3]
    assert state.dismissed == frozenset({1, 2})


def test_dismiss_of_hidden_product_is_a_no_op() -> None:
    state = carousel.start_search(ShoppingState(), _products(4))
    assert carousel.dismiss(state, 4) is state


def test_dismiss_clears_comparison() -> None:
    state = replace(carousel.start_search(ShoppingState(), _products(4)), comparison=_comparison())
    assert carousel.dismiss(state, 2).comparison is None


def test_dismissed_ids_never_return_and_window_has_no_duplicates() -> None:
    results = _products(5)
    for order in permutations(range(1, 6)):
        state = carousel.start_search(ShoppingState(), results)
        previous_cursor = state.cursor
        for product_id in order:
            state = carousel.dismiss(state, product_id)
            state, _ = carousel.show_next(state)
            assert not set(state.visible_ids) & state.dismissed
            assert len(state.visible_ids) == len(set(state.visible_ids))
            assert len(state.visible_ids) <= 2
            assert state.cursor >= previous_cursor
            previous_cursor = state.cursor


def test_show_next_replaces_whole_window() -> None:
    state = carousel.start_search(ShoppingState(), _products(5))
    state, advanced = carousel.show_next(state)

    assert advanced is True
    assert state.visible_ids == [3, 4]
    assert state.cursor == 4


def test_show_next_skips_dismissed_entries() -> None:
    state = carousel.start_search(ShoppingState(), _products(5))
    state = replace(state, dismissed=frozenset({3}))
    state, advanced = carousel.show_next(state)

    assert advanced is True
    assert state.visible_ids == [4, 5]
    assert state.cursor == 5


def test_show_next_takes_a_single_remaining_product() -> None:
    state = carousel.start_search(ShoppingState(), _products(3))
    state, advanced = carousel.show_next(state)

    assert advanced is True
    assert state.visible_ids == [3]


def test_show_next_at_end_reports_no_more_and_keeps_window() -> None:
    state = replace(carousel.start_search(ShoppingState(), _products(2)), comparison=_comparison())
    assert state.cursor == len(state.results)

    after, advanced = carousel.show_next(state)

    assert advanced is False
    assert after is state
    assert after.visible_ids == [1, 2]
    assert after.comparison is not None


def test_show_next_clears_comparison_when_it_advances() -> None:
    state = replace(carousel.start_search(ShoppingState(), _products(4)), comparison=_comparison())
    after, advanced = carousel.show_next(state)

    assert advanced is True
    assert after.comparison is None


def test_has_more_tracks_remaining_candidates() -> None:
    state = carousel.start_search(ShoppingState(), _products(3))
    assert carousel.has_more(state) is True

    state = carousel.dismiss(state, 1)
    assert carousel.has_more(state) is False
