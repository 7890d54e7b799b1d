"""Incremental ("load more") pagination over grouped agenda output.

The visible prefix is taken over the flattened item sequence, not over whole
buckets, so a day that is only partly revealed shows the first items of that
day. Because grouping order is deterministic, revealing more never reorders or
removes already-visible items.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

from .models import FilterSignature, GroupedEntity, PaginationState, signature_text

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20


@dataclass(frozen=True)
class PageView(Generic[T]):
    """Result of paginate(): the visible buckets plus pagination metadata."""

    visible: tuple[GroupedEntity[T], ...]
    has_more: bool
    total_items: int
    display_count: int

    @property
    def visible_count(self) -> int:
        return sum(len(g) for g in self.visible)

    def visible_items(self) -> list[T]:
        return [item for g in self.visible for item in g.items]


def _page_size(page_size: int) -> int:
    if page_size < 1:
        logger.warning("Invalid page size %r; using %d", page_size, DEFAULT_PAGE_SIZE)
        return DEFAULT_PAGE_SIZE
    return page_size


def initial_state(
    signature: Union[FilterSignature, str, None], page_size: int = DEFAULT_PAGE_SIZE
) -> PaginationState:
    """Fresh state: one page visible for ``signature``."""
    return PaginationState(display_count=_page_size(page_size), reset_key=signature_text(signature))


def sync_state(
    state: Optional[PaginationState],
    signature: Union[FilterSignature, str, None],
    page_size: int = DEFAULT_PAGE_SIZE,
) -> PaginationState:
    """Return ``state`` unchanged for the same signature, a fresh state otherwise.

    Identical signatures always map to the same object, which keeps repeated
    resets idempotent.
    """
    key = signature_text(signature)
    if state is not None and state.reset_key == key:
        return state
    if state is not None:
        logger.debug(
            "Filter signature changed; pagination reset from %d to %d",
            state.display_count,
            _page_size(page_size),
        )
    return initial_state(key, page_size)


def count_items(groups: Sequence[GroupedEntity[Any]]) -> int:
    return sum(len(g) for g in groups)


def load_more(
    state: PaginationState, total_items: int, page_size: int = DEFAULT_PAGE_SIZE
) -> PaginationState:
    """Reveal one more page, capped at ``total_items``.

    ``display_count`` never shrinks: a state already at or beyond the total
    (e.g. the first page of a short list) is returned unchanged.
    """
    target = min(state.display_count + _page_size(page_size), total_items)
    if target <= state.display_count:
        return state
    return PaginationState(display_count=target, reset_key=state.reset_key)


def paginate(
    groups: Sequence[GroupedEntity[T]],
    state: PaginationState,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> PageView[T]:
    """Expose the first ``state.display_count`` items, re-grouped by day.

    Args:
        groups: Ordered day buckets from the grouping engine
        state: Current pagination state
        page_size: Page size (only used to sanitize a zero/negative display count)

    Returns:
        PageView with visible buckets, has_more and total_items
    """
    total = count_items(groups)
    display_count = state.display_count if state.display_count > 0 else _page_size(page_size)

    visible: list[GroupedEntity[T]] = []
    remaining = display_count
    for g in groups:
        if remaining <= 0:
            break
        if len(g.items) <= remaining:
            visible.append(g)
            remaining -= len(g.items)
        else:
            visible.append(
                GroupedEntity(key=g.key, items=g.items[:remaining], label=g.label, is_backlog=g.is_backlog)
            )
            remaining = 0

    return PageView(
        visible=tuple(visible),
        has_more=display_count < total,
        total_items=total,
        display_count=display_count,
    )


class PaginationController(Generic[T]):
    """Owns one PaginationState cell for a filtered view.

    Example:
        controller = PaginationController(page_size=20)
        view = controller.view(groups, criteria.signature())
        if view.has_more:
            controller.load_more()
    """

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self.page_size = _page_size(page_size)
        self.state: Optional[PaginationState] = None
        self._total_items = 0

    def view(
        self, groups: Sequence[GroupedEntity[T]], signature: Union[FilterSignature, str, None]
    ) -> PageView[T]:
        self.state = sync_state(self.state, signature, self.page_size)
        page = paginate(groups, self.state, self.page_size)
        self._total_items = page.total_items
        return page

    def load_more(self) -> PaginationState:
        if self.state is None:
            self.state = initial_state(None, self.page_size)
        self.state = load_more(self.state, self._total_items, self.page_size)
        return self.state

    def reset(self) -> None:
        if self.state is not None:
            self.state = initial_state(self.state.reset_key, self.page_size)


# ---------------------------------------------------------------------------
# Classic page-number pagination (tables)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PageSlice(Generic[T]):
    items: tuple[T, ...]
    current_page: int
    total_pages: int
    per_page: int
    total_items: int

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.current_page > 1


def page_slice(items: Sequence[T], page: int = 1, per_page: int = 10) -> PageSlice[T]:
    """Return one numbered page of ``items``; ``page`` is clamped to the valid range."""
    per_page = per_page if per_page > 0 else 10
    total = len(items)
    total_pages = max(1, math.ceil(total / per_page))
    current = max(1, min(page, total_pages))
    start = (current - 1) * per_page
    return PageSlice(
        items=tuple(items[start : start + per_page]),
        current_page=current,
        total_pages=total_pages,
        per_page=per_page,
        total_items=total,
    )
