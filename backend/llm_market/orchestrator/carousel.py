"""Reducers for the visible product window.

The window shows at most ``capacity`` products of the current result set.
``cursor`` points at the next result that may be pulled in when a slot opens
and only ever moves forward while the result set lives. Dismissed ids are
kept for the lifetime of the result set and never shown again.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from llm_market.models.product import Product
from llm_market.orchestrator.types import ShoppingState

DEFAULT_CAPACITY = 2


def start_search(
    state: ShoppingState,
    products: Sequence[Product],
    *,
    search_term: str = "",
    capacity: int = DEFAULT_CAPACITY,
) -> ShoppingState:
    results = tuple(products)
    return replace(
        state,
        results=results,
        visible=results[:capacity],
        dismissed=frozenset(),
        cursor=capacity,
        comparison=None,
        search_term=search_term,
    )


def dismiss(state: ShoppingState, product_id: int, *, capacity: int = DEFAULT_CAPACITY) -> ShoppingState:
    """Hide a visible product for good and pull the next candidate into its slot.

    Returns ``state`` unchanged when the product is not currently visible.
    """
    if product_id not in state.visible_ids:
        return state

    dismissed = state.dismissed | {product_id}
    visible = tuple(product for product in state.visible if product.id != product_id)
    taken, cursor = _scan(
        state.results,
        cursor=state.cursor,
        dismissed=dismissed,
        excluded={product.id for product in visible},
        limit=max(0, capacity - len(visible)),
    )
    return replace(
        state,
        visible=visible + taken,
        dismissed=dismissed,
        cursor=cursor,
        comparison=None,
    )


def show_next(state: ShoppingState, *, capacity: int = DEFAULT_CAPACITY) -> tuple[ShoppingState, bool]:
    """Replace the whole window with the next unseen products.

    The boolean is ``False`` when nothing qualified; the state is then
    returned untouched so the current window stays on screen.
    """
    taken, cursor = _scan(
        state.results,
        cursor=state.cursor,
        dismissed=state.dismissed,
        excluded=set(state.visible_ids),
        limit=capacity,
    )
    if not taken:
        return state, False
    return replace(state, visible=taken, cursor=cursor, comparison=None), True


def has_more(state: ShoppingState) -> bool:
    visible = set(state.visible_ids)
    return any(
        product.id not in state.dismissed and product.id not in visible
        for product in state.results[state.cursor:]
    )


def _scan(
    results: Sequence[Product],
    *,
    cursor: int,
    dismissed: frozenset[int],
    excluded: set[int],
    limit: int,
) -> tuple[tuple[Product, ...], int]:
    taken: list[Product] = []
    seen = set(excluded)
    index = cursor
    while index < len(results) and len(taken) < limit:
        candidate = results[index]
        index += 1
        if candidate.id in dismissed or candidate.id in seen:
            continue
        taken.append(candidate)
        seen.add(candidate.id)
    return tuple(taken), max(cursor, index)
