"""Filter/facet engine: pure functions computing the visible rows of a list.

Two predicate kinds narrow a list: free text and facet chips. When neither is
active the view is structural (headers always, children unless their header
is collapsed). When any is active the view is predicate-driven and collapse
state is ignored.

// [LAW:dataflow-not-control-flow] Chip predicates are a table; every active chip is applied.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Collection, Sequence

from cc_sync.core.items import PickerItem


class FilterChip(Enum):
    ALL = "all"
    SELECTED = "selected"
    UNSELECTED = "unselected"
    BASE = "base"
    LOCKED = "locked"

    @property
    def label(self) -> str:
        return _CHIP_LABELS[self]


_CHIP_LABELS: dict[FilterChip, str] = {
    FilterChip.ALL: "All",
    FilterChip.SELECTED: "✓ Sel",
    FilterChip.UNSELECTED: "○ Unsel",
    FilterChip.BASE: "● Base",
    FilterChip.LOCKED: "⊘ Lock",
}

_CHIP_PREDICATES: dict[FilterChip, Callable[[PickerItem], bool]] = {
    FilterChip.ALL: lambda it: True,
    FilterChip.SELECTED: lambda it: it.selected,
    FilterChip.UNSELECTED: lambda it: not it.selected,
    FilterChip.BASE: lambda it: it.is_base,
    FilterChip.LOCKED: lambda it: it.is_read_only,
}

# Chips that cannot be active together.
_EXCLUSIVE_PAIRS: dict[FilterChip, FilterChip] = {
    FilterChip.SELECTED: FilterChip.UNSELECTED,
    FilterChip.UNSELECTED: FilterChip.SELECTED,
}

DEFAULT_CHIPS: frozenset[FilterChip] = frozenset({FilterChip.ALL})


def available_chips(is_profile_tab: bool) -> tuple[FilterChip, ...]:
    """Chips offered in the chip bar. The Base chip only means something on profile tabs."""
    chips = [FilterChip.ALL, FilterChip.SELECTED, FilterChip.UNSELECTED]
    if is_profile_tab:
        chips.append(FilterChip.BASE)
    chips.append(FilterChip.LOCKED)
    return tuple(chips)


def toggle_chip(active: Collection[FilterChip], chip: FilterChip) -> frozenset[FilterChip]:
    """Return the chip set after toggling `chip`.

    All is exclusive with every other chip. Selected and Unselected exclude
    each other. Turning off the last explicit chip brings back All.
    """
    if chip is FilterChip.ALL:
        return DEFAULT_CHIPS

    result = set(active) - {FilterChip.ALL}
    if chip in result:
        result.discard(chip)
    else:
        result.add(chip)
        result.discard(_EXCLUSIVE_PAIRS.get(chip))
    return frozenset(result) if result else DEFAULT_CHIPS


def has_active_chip_filter(active: Collection[FilterChip]) -> bool:
    return FilterChip.ALL not in active


def item_passes_chips(item: PickerItem, active: Collection[FilterChip]) -> bool:
    """AND of every active chip predicate."""
    return all(_CHIP_PREDICATES[chip](item) for chip in active)


def item_matches_text(item: PickerItem, needle: str) -> bool:
    """Case-insensitive substring match on display text, tag and provider tag."""
    if not needle:
        return True
    haystack = " ".join((item.display, item.tag, item.provider_tag, item.effective_tag))
    return needle.lower() in haystack.lower()


def compute_filter_view(
    items: Sequence[PickerItem], text: str, active: Collection[FilterChip]
) -> list[int] | None:
    """Indices visible under the active predicates; None when nothing filters.

    A header is included iff any row in its group matches. A description row
    is included iff the header directly above it was included.
    """
    has_text = bool(text)
    has_chips = has_active_chip_filter(active)
    if not has_text and not has_chips:
        return None

    matches = [
        it.is_row_item
        and (not has_chips or item_passes_chips(it, active))
        and (not has_text or item_matches_text(it, text))
        for it in items
    ]

    view: list[int] = []
    for i, it in enumerate(items):
        if matches[i]:
            view.append(i)
        elif it.is_header:
            if _group_has_match(items, matches, i):
                view.append(i)
        elif it.is_description:
            if view and view[-1] == i - 1 and items[i - 1].is_header:
                view.append(i)
    return view


def _group_has_match(items: Sequence[PickerItem], matches: list[bool], header_idx: int) -> bool:
    for j in range(header_idx + 1, len(items)):
        if items[j].is_header:
            return False
        if matches[j]:
            return True
    return False


def header_for_item(items: Sequence[PickerItem], index: int) -> int:
    """Index of the nearest header above `index`, or -1."""
    for j in range(min(index, len(items)) - 1, -1, -1):
        if items[j].is_header:
            return j
    return -1


def compute_view_indices(
    items: Sequence[PickerItem],
    filter_view: list[int] | None,
    collapsed: Collection[int],
) -> list[int]:
    """Rows to render: the filter view when filtering, else the collapse-aware structure."""
    if filter_view is not None:
        return list(filter_view)
    indices: list[int] = []
    current_header = -1
    for i, it in enumerate(items):
        if it.is_header:
            current_header = i
            indices.append(i)
            continue
        if current_header >= 0 and current_header in collapsed:
            continue
        indices.append(i)
    return indices
