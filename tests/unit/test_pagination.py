"""Unit tests for incremental pagination."""

import datetime

import pytest

from opsagenda.domain.models import GroupedEntity, PaginationState
from opsagenda.domain.pagination import (
    PaginationController,
    initial_state,
    load_more,
    page_slice,
    paginate,
    sync_state,
)

pytestmark = pytest.mark.unit


def _groups(*sizes: int) -> list[GroupedEntity[str]]:
    """Build consecutive day buckets with the given item counts."""
    groups = []
    counter = 0
    for offset, size in enumerate(sizes):
        items = tuple(f"item-{counter + i}" for i in range(size))
        counter += size
        groups.append(GroupedEntity(key=datetime.date(2024, 3, 15 + offset), items=items))
    return groups


class TestPaginate:
    """Tests for paginate()."""

    def test_load_more_sequence(self):
        groups = _groups(10, 10, 10, 15)
        state = initial_state("sig", page_size=20)

        first = paginate(groups, state, 20)
        state = load_more(state, first.total_items, 20)
        second = paginate(groups, state, 20)
        state = load_more(state, second.total_items, 20)
        third = paginate(groups, state, 20)

        assert (first.visible_count, first.has_more) == (20, True)
        assert (second.visible_count, second.has_more) == (40, True)
        assert (third.visible_count, third.has_more) == (45, False)
        assert third.total_items == 45

    def test_visible_prefix_is_stable(self):
        groups = _groups(7, 9, 12)
        state = initial_state("sig", page_size=10)

        before = paginate(groups, state, 10).visible_items()
        after = paginate(groups, load_more(state, 28, 10), 10).visible_items()

        assert after[: len(before)] == before

    def test_bucket_split_mid_way(self):
        groups = _groups(15, 15)

        page = paginate(groups, initial_state("sig", 20), 20)

        assert [len(g) for g in page.visible] == [15, 5]
        assert page.visible[1].key == groups[1].key
        assert page.visible[1].items == groups[1].items[:5]

    def test_short_list_has_no_more(self):
        page = paginate(_groups(3), initial_state("sig", 20), 20)

        assert page.visible_count == 3
        assert not page.has_more

    def test_empty_groups(self):
        page = paginate([], initial_state("sig", 20), 20)

        assert page.visible == ()
        assert page.total_items == 0
        assert not page.has_more

    def test_backlog_flag_survives_split(self):
        backlog = GroupedEntity(key=None, items=tuple(range(30)), label="Awaiting scheduling", is_backlog=True)

        page = paginate([backlog], initial_state("sig", 20), 20)

        assert page.visible[0].is_backlog
        assert page.visible[0].label == "Awaiting scheduling"
        assert len(page.visible[0]) == 20


class TestPaginationState:
    """Tests for state transitions."""

    def test_load_more_caps_at_total(self):
        state = load_more(PaginationState(display_count=40, reset_key="s"), total_items=45, page_size=20)

        assert state.display_count == 45

    def test_load_more_never_shrinks(self):
        state = PaginationState(display_count=20, reset_key="s")

        assert load_more(state, total_items=5, page_size=20) is state

    def test_sync_state_keeps_state_for_same_signature(self):
        state = PaginationState(display_count=60, reset_key="s")

        assert sync_state(state, "s", 20) is state

    def test_sync_state_resets_on_signature_change(self):
        state = PaginationState(display_count=60, reset_key="s")

        fresh = sync_state(state, "other", 20)

        assert fresh.display_count == 20
        assert fresh.reset_key == "other"

    def test_invalid_page_size_falls_back_to_default(self):
        assert initial_state("s", page_size=0).display_count == 20


class TestPaginationController:
    """Tests for PaginationController."""

    def test_reset_on_signature_change(self):
        controller = PaginationController(page_size=20)
        groups = _groups(50)

        controller.view(groups, "sig-a")
        controller.load_more()
        assert controller.view(groups, "sig-a").visible_count == 40

        page = controller.view(groups, "sig-b")

        assert page.visible_count == 20
        assert page.has_more

    def test_explicit_reset(self):
        controller = PaginationController(page_size=10)
        groups = _groups(30)
        controller.view(groups, "sig")
        controller.load_more()

        controller.reset()

        assert controller.view(groups, "sig").visible_count == 10


class TestPageSlice:
    """Tests for numbered page slicing."""

    def test_middle_page(self):
        result = page_slice(list(range(25)), page=2, per_page=10)

        assert result.items == tuple(range(10, 20))
        assert result.total_pages == 3
        assert result.has_next_page
        assert result.has_previous_page

    def test_page_is_clamped(self):
        result = page_slice(list(range(25)), page=9, per_page=10)

        assert result.current_page == 3
        assert result.items == tuple(range(20, 25))
        assert not result.has_next_page

    def test_empty_sequence_has_one_page(self):
        result = page_slice([], page=1, per_page=10)

        assert result.total_pages == 1
        assert result.items == ()
