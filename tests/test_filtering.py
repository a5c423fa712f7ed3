"""Tests for the filter/facet engine."""

import pytest

from cc_sync.core.filtering import (
    DEFAULT_CHIPS,
    FilterChip,
    available_chips,
    compute_filter_view,
    compute_view_indices,
    header_for_item,
    item_matches_text,
    item_passes_chips,
    toggle_chip,
)
from cc_sync.core.items import PickerItem, description_row, header

ALL = FilterChip.ALL
SEL = FilterChip.SELECTED
UNSEL = FilterChip.UNSELECTED
BASE = FilterChip.BASE
LOCKED = FilterChip.LOCKED


def _rows():
    return [
        header("Fruit", 2),  # 0
        description_row("things that grow"),  # 1
        PickerItem(key="apple", display="apple", selected=True),  # 2
        PickerItem(key="banana", display="banana", selected=False),  # 3
        header("Tools", 2),  # 4
        PickerItem(key="hammer", display="hammer", selected=True, is_read_only=True),  # 5
        PickerItem(key="saw", display="saw", selected=False, is_base=True),  # 6
    ]


class TestToggleChip:
    @pytest.mark.parametrize(
        "active, chip, expected",
        [
            pytest.param({ALL}, SEL, {SEL}, id="all-to-selected"),
            pytest.param({SEL}, SEL, {ALL}, id="last-chip-off-falls-back-to-all"),
            pytest.param({SEL}, UNSEL, {UNSEL}, id="selected-unselected-exclusive"),
            pytest.param({UNSEL, BASE}, SEL, {SEL, BASE}, id="exclusive-keeps-others"),
            pytest.param({SEL, LOCKED}, ALL, {ALL}, id="all-resets"),
            pytest.param({BASE}, LOCKED, {BASE, LOCKED}, id="combinable"),
        ],
    )
    def test_transitions(self, active, chip, expected):
        assert toggle_chip(active, chip) == frozenset(expected)

    def test_never_both_selected_and_unselected(self):
        active = DEFAULT_CHIPS
        for chip in (SEL, UNSEL, SEL, BASE, UNSEL, LOCKED):
            active = toggle_chip(active, chip)
            assert not {SEL, UNSEL} <= active


def test_base_chip_only_on_profile_tabs():
    assert BASE not in available_chips(False)
    assert BASE in available_chips(True)
    assert available_chips(True)[0] is ALL


class TestPredicates:
    def test_chips_and_together(self):
        locked_selected = PickerItem(key="k", selected=True, is_read_only=True)
        assert item_passes_chips(locked_selected, {SEL, LOCKED})
        assert not item_passes_chips(locked_selected, {UNSEL, LOCKED})

    def test_text_match_is_case_insensitive_and_covers_tags(self):
        item = PickerItem(key="k", display="Deploy", tag="[skill]", provider_tag="via alpha")
        assert item_matches_text(item, "deP")
        assert item_matches_text(item, "SKILL")
        assert not item_matches_text(item, "nothing")


class TestFilterView:
    def test_inactive_filter_is_none(self):
        assert compute_filter_view(_rows(), "", DEFAULT_CHIPS) is None

    def test_text_filter_keeps_header_and_description_of_matching_group(self):
        view = compute_filter_view(_rows(), "ban", DEFAULT_CHIPS)
        assert view == [0, 1, 3]

    def test_header_without_match_is_hidden(self):
        view = compute_filter_view(_rows(), "saw", DEFAULT_CHIPS)
        assert view == [4, 6]

    def test_chip_filter(self):
        view = compute_filter_view(_rows(), "", {LOCKED})
        assert view == [4, 5]

    def test_text_and_chip_combine(self):
        view = compute_filter_view(_rows(), "a", {UNSEL})
        assert view == [0, 1, 3, 4, 6]

    def test_filter_ignores_collapse(self):
        items = _rows()
        view = compute_filter_view(items, "apple", DEFAULT_CHIPS)
        assert compute_view_indices(items, view, collapsed={0}) == [0, 1, 2]


class TestViewIndices:
    def test_collapse_hides_children_only(self):
        assert compute_view_indices(_rows(), None, collapsed={0}) == [0, 4, 5, 6]

    def test_no_collapse_shows_everything(self):
        assert compute_view_indices(_rows(), None, collapsed=set()) == list(range(7))


@pytest.mark.parametrize(
    "index, expected",
    [
        pytest.param(0, -1, id="header-itself-has-no-parent"),
        pytest.param(2, 0, id="first-group"),
        pytest.param(6, 4, id="second-group"),
    ],
)
def test_header_for_item(index, expected):
    assert header_for_item(_rows(), index) == expected
