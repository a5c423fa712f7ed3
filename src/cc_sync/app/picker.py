"""Picker: an addressable, filterable, collapsible list of grouped rows.

The picker owns its rows, cursor, scroll window, collapse state and filter
state. Visibility is computed by cc_sync.core.filtering; this class only
keeps the cursor and viewport consistent with it.

The search affordance is not a row: when enabled it is addressed by the
sentinel index len(items), one past the last real row.

// [LAW:one-source-of-truth] items is canonical; the filter view is derived from it.
// [LAW:dataflow-not-control-flow] Key handling goes through dispatch tables per focus zone.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Collection, Iterable

from cc_sync.core.filtering import (
    DEFAULT_CHIPS,
    FilterChip,
    available_chips,
    compute_filter_view,
    compute_view_indices,
    has_active_chip_filter,
    header_for_item,
    toggle_chip,
)
from cc_sync.core.items import PickerItem

logger = logging.getLogger(__name__)

DEFAULT_HEIGHT = 20
SEARCH_ACTION_LABEL = "[+ Search projects]"
SEARCHING_LABEL = "Searching..."

# Chip bar + filter bar.
_CHROME_ROWS = 2
# "more above" / "more below" when the list overflows.
_INDICATOR_ROWS = 2


class PickerAction(Enum):
    """What the owner of a picker must do after a key was handled."""

    NONE = "none"
    CHANGED = "changed"  # selection changed
    SEARCH = "search"  # search action row activated
    LEAVE = "leave"  # focus returns to the sidebar


class Picker:
    """Multi-select list over grouped PickerItems."""

    def __init__(self, items: Iterable[PickerItem] | None = None, *, height: int = DEFAULT_HEIGHT):
        self.items: list[PickerItem] = list(items or [])
        self.cursor = 0
        self.offset = 0
        self.height = height
        self.width = 80
        self.focused = False

        self.has_search_action = False
        self.searching = False

        self.filter_text = ""
        self._filter_view: list[int] | None = None

        self.collapsed: set[int] = set()
        self.collapse_read_only = False

        self.active_chips: frozenset[FilterChip] = DEFAULT_CHIPS
        self.chip_focused = False
        self.chip_cursor = 0
        self.is_profile_tab = False

        self.preview_content: dict[str, str] | None = None
        self.preview_active = False
        self.preview_scroll = 0

        self._place_cursor_at_first()

    # ─── Row classification ──────────────────────────────────────────────

    @property
    def search_row_index(self) -> int:
        return len(self.items)

    def on_search_row(self) -> bool:
        return self.has_search_action and self.cursor == len(self.items)

    def current_item(self) -> PickerItem | None:
        if 0 <= self.cursor < len(self.items):
            return self.items[self.cursor]
        return None

    def _is_filtered_out(self, index: int) -> bool:
        return self._filter_view is not None and index not in self._filter_view

    def _is_skippable(self, index: int) -> bool:
        """True for rows the initial cursor placement passes over."""
        if not 0 <= index < len(self.items):
            return False
        it = self.items[index]
        if it.is_header or it.is_description:
            return True
        if self._is_filtered_out(index):
            return True
        return header_for_item(self.items, index) in self.collapsed

    def _place_cursor_at_first(self) -> None:
        self.offset = 0
        for i in range(len(self.items)):
            if not self._is_skippable(i):
                self.cursor = i
                self._clamp_scroll()
                return
        self.cursor = 0

    # ─── Views ───────────────────────────────────────────────────────────

    def _refilter(self) -> None:
        self._filter_view = compute_filter_view(self.items, self.filter_text, self.active_chips)

    @property
    def is_filtering(self) -> bool:
        return self._filter_view is not None

    def view_indices(self) -> list[int]:
        return compute_view_indices(self.items, self._filter_view, self.collapsed)

    def _visible_positions(self) -> list[int]:
        """View indices plus the search sentinel when it is enabled."""
        rows = self.view_indices()
        if self.has_search_action:
            rows.append(len(self.items))
        return rows

    def _cursor_position(self, rows: list[int]) -> int:
        try:
            return rows.index(self.cursor)
        except ValueError:
            return 0

    # ─── Selection ───────────────────────────────────────────────────────

    def toggle(self) -> bool:
        """Flip the row at the cursor. Headers, descriptions and read-only rows are skipped."""
        it = self.current_item()
        if it is None or not it.is_selectable:
            return False
        it.selected = not it.selected
        return True

    def _set_visible(self, selected: bool) -> bool:
        changed = False
        for i, it in enumerate(self.items):
            if it.is_selectable and not self._is_filtered_out(i) and it.selected != selected:
                it.selected = selected
                changed = True
        return changed

    def select_all(self) -> bool:
        """Select every visible selectable row; hidden rows keep their state."""
        return self._set_visible(True)

    def select_none(self) -> bool:
        return self._set_visible(False)

    def deselect_all(self) -> None:
        """Clear every selectable row regardless of the active filter."""
        for it in self.items:
            if it.is_selectable:
                it.selected = False

    def apply_selection(self, keys: Collection[str]) -> None:
        """selected = key in keys, for every selectable row."""
        for it in self.items:
            if it.is_selectable:
                it.selected = it.key in keys

    # ─── Navigation ──────────────────────────────────────────────────────

    def navigate(self, direction: int) -> bool:
        """Move one visible row up (-1) or down (+1); headers stop, descriptions do not."""
        if direction == 0:
            return False
        step = 1 if direction > 0 else -1
        rows = self._visible_positions()
        if self.cursor in rows:
            pos = rows.index(self.cursor)
        else:
            pos = -1
        nxt = pos + step
        while 0 <= nxt < len(rows):
            index = rows[nxt]
            if index == len(self.items) or not self.items[index].is_description:
                self.cursor = index
                self._clamp_scroll()
                return True
            nxt += step
        return False

    def is_at_first_visible(self) -> bool:
        indices = self.view_indices()
        return not indices or self.cursor <= indices[0]

    # ─── Filtering ───────────────────────────────────────────────────────

    def set_filter_text(self, text: str) -> None:
        self.filter_text = text
        self._refilter()
        self._place_cursor_at_first()

    def append_filter_text(self, chars: str) -> None:
        if chars:
            self.set_filter_text(self.filter_text + chars)

    def backspace_filter(self) -> bool:
        if not self.filter_text:
            return False
        self.set_filter_text(self.filter_text[:-1])
        return True

    def clear_filters(self) -> None:
        self.filter_text = ""
        self.active_chips = DEFAULT_CHIPS
        self._refilter()
        self._place_cursor_at_first()

    def chips(self) -> tuple[FilterChip, ...]:
        return available_chips(self.is_profile_tab)

    def toggle_facet_chip(self, chip: FilterChip) -> None:
        self.active_chips = toggle_chip(self.active_chips, chip)
        self._refilter()
        self._place_cursor_at_first()

    def has_active_chip_filter(self) -> bool:
        return has_active_chip_filter(self.active_chips)

    # ─── Collapse ────────────────────────────────────────────────────────

    def toggle_collapse(self, header_index: int | None = None) -> bool:
        index = self.cursor if header_index is None else header_index
        if not 0 <= index < len(self.items) or not self.items[index].is_header:
            return False
        self.set_collapsed(index, index not in self.collapsed)
        return True

    def set_collapsed(self, header_index: int, collapsed: bool) -> None:
        if collapsed:
            self.collapsed.add(header_index)
        else:
            self.collapsed.discard(header_index)
        self._clamp_scroll()

    def auto_collapse_read_only(self) -> None:
        """Collapse every group whose keyed rows are all read-only."""
        for i, it in enumerate(self.items):
            if not it.is_header:
                continue
            children = []
            for child in self.items[i + 1:]:
                if child.is_header:
                    break
                if child.is_row_item:
                    children.append(child)
            if children and all(c.is_read_only for c in children):
                self.collapsed.add(i)
        self._clamp_scroll()

    # ─── Item list mutation ──────────────────────────────────────────────

    def set_items(self, items: Iterable[PickerItem]) -> None:
        """Replace every row; cursor, filters, chips and collapse state reset."""
        self.items = list(items)
        self.filter_text = ""
        self._filter_view = None
        self.collapsed = set()
        self.active_chips = DEFAULT_CHIPS
        self.chip_focused = False
        self.chip_cursor = 0
        if self.collapse_read_only:
            self.auto_collapse_read_only()
        self._place_cursor_at_first()

    def add_items(self, new_items: Iterable[PickerItem]) -> int:
        """Append rows whose keys are not present yet. Returns how many keyed rows were added.

        A header (and its description) is appended only when at least one of
        its rows survives deduplication.
        """
        seen = set(self.all_keys())
        appended: list[PickerItem] = []
        added = 0
        for group in _groups(new_items):
            rows = []
            for it in group:
                if it.is_row_item:
                    if it.key in seen:
                        continue
                    seen.add(it.key)
                rows.append(it)
            if any(r.is_row_item for r in rows):
                appended.extend(rows)
                added += sum(1 for r in rows if r.is_row_item)
        if not appended:
            return 0
        at_search_row = self.on_search_row()
        self.items.extend(appended)
        if at_search_row:
            self.cursor = len(self.items)
        if self.is_filtering:
            self._refilter()
        self._clamp_scroll()
        logger.debug("picker: appended %d row(s)", added)
        return added

    def set_searching(self, searching: bool) -> None:
        self.searching = searching

    def set_search_action(self, enabled: bool) -> None:
        self.has_search_action = enabled

    @property
    def search_action_label(self) -> str:
        return SEARCHING_LABEL if self.searching else SEARCH_ACTION_LABEL

    def activate(self) -> PickerAction:
        """Enter: collapse a header, trigger the search row, or toggle an item."""
        if self.on_search_row():
            return PickerAction.NONE if self.searching else PickerAction.SEARCH
        it = self.current_item()
        if it is not None and it.is_header:
            self.toggle_collapse()
            return PickerAction.NONE
        return PickerAction.CHANGED if self.toggle() else PickerAction.NONE

    # ─── Queries ─────────────────────────────────────────────────────────

    def selected_keys(self) -> list[str]:
        """Keys of selected, selectable rows. Read-only rows never count."""
        return [it.key for it in self.items if it.is_selectable and it.selected]

    def all_keys(self) -> list[str]:
        return [it.key for it in self.items if not it.is_header and it.key]

    @property
    def selected_count(self) -> int:
        return sum(1 for it in self.items if it.is_selectable and it.selected)

    @property
    def total_count(self) -> int:
        return sum(1 for it in self.items if it.is_selectable)

    @property
    def visible_selectable_count(self) -> int:
        return sum(
            1 for i, it in enumerate(self.items) if it.is_selectable and not self._is_filtered_out(i)
        )

    # ─── Viewport ────────────────────────────────────────────────────────

    def set_height(self, height: int) -> None:
        self.height = height
        self._clamp_scroll()

    def set_width(self, width: int) -> None:
        self.width = width

    def _item_height(self) -> int:
        return max(1, self.height - _CHROME_ROWS)

    def _window_size(self, total_rows: int) -> int:
        """Rows the window shows; both indicator lines are reserved once the list overflows."""
        item_height = self._item_height()
        if total_rows <= item_height:
            return item_height
        return max(1, item_height - _INDICATOR_ROWS)

    def _scroll_offset(self, cursor_pos: int, total_rows: int) -> int:
        size = self._window_size(total_rows)
        offset = self.offset
        if cursor_pos < offset:
            offset = cursor_pos
        if cursor_pos >= offset + size:
            offset = cursor_pos - size + 1
        return max(0, min(offset, total_rows - size))

    def _window(self) -> tuple[list[int], int, int]:
        """(rows, offset, size) of the scroll window; rows and indicators both derive from it."""
        rows = self._visible_positions()
        offset = self._scroll_offset(self._cursor_position(rows), len(rows))
        return rows, offset, self._window_size(len(rows))

    def _clamp_scroll(self) -> None:
        if self.height <= 0:
            return
        _, self.offset, _ = self._window()

    def scroll_indicators(self) -> tuple[bool, bool]:
        """(more above, more below) for the current window."""
        rows, offset, size = self._window()
        return offset > 0, offset + size < len(rows)

    def visible_rows(self) -> list[int]:
        """Item indices inside the scroll window; len(items) stands for the search row."""
        rows, offset, size = self._window()
        return rows[offset: offset + size]

    # ─── Preview ─────────────────────────────────────────────────────────

    def set_preview(self, content_by_key: dict[str, str]) -> None:
        self.preview_content = content_by_key

    def add_preview(self, content_by_key: dict[str, str]) -> None:
        if self.preview_content is None:
            self.preview_content = {}
        self.preview_content.update(content_by_key)

    @property
    def has_preview(self) -> bool:
        return self.preview_content is not None

    def preview_text(self) -> str:
        it = self.current_item()
        if it is None or self.preview_content is None:
            return ""
        return self.preview_content.get(it.key, "")

    def open_preview(self) -> bool:
        if self.filter_text or self.preview_content is None:
            return False
        it = self.current_item()
        if it is None or it.key not in self.preview_content:
            return False
        self.preview_active = True
        self.preview_scroll = 0
        return True

    def close_preview(self) -> None:
        self.preview_active = False
        self.preview_scroll = 0

    def scroll_preview(self, delta: int) -> None:
        lines = self.preview_text().split("\n")
        max_scroll = max(0, len(lines) - self.height)
        self.preview_scroll = max(0, min(self.preview_scroll + delta, max_scroll))

    def preview_window(self) -> list[str]:
        lines = self.preview_text().split("\n")
        return lines[self.preview_scroll: self.preview_scroll + max(1, self.height)]

    # ─── Chip bar ────────────────────────────────────────────────────────

    def _chip_left(self) -> PickerAction:
        self.chip_cursor = max(0, self.chip_cursor - 1)
        return PickerAction.NONE

    def _chip_right(self) -> PickerAction:
        self.chip_cursor = min(len(self.chips()) - 1, self.chip_cursor + 1)
        return PickerAction.NONE

    def _chip_toggle(self) -> PickerAction:
        chips = self.chips()
        if 0 <= self.chip_cursor < len(chips):
            self.toggle_facet_chip(chips[self.chip_cursor])
        return PickerAction.NONE

    def _chip_leave(self) -> PickerAction:
        self.chip_focused = False
        return PickerAction.NONE

    def _chip_reset(self) -> PickerAction:
        self.chip_focused = False
        self.active_chips = DEFAULT_CHIPS
        self._refilter()
        self._place_cursor_at_first()
        return PickerAction.NONE

    # ─── List keys ───────────────────────────────────────────────────────

    def _key_up(self) -> PickerAction:
        if self.is_at_first_visible():
            self.chip_focused = True
            self.chip_cursor = min(self.chip_cursor, len(self.chips()) - 1)
        else:
            self.navigate(-1)
        return PickerAction.NONE

    def _key_down(self) -> PickerAction:
        self.navigate(+1)
        return PickerAction.NONE

    def _key_space(self) -> PickerAction:
        return PickerAction.CHANGED if self.toggle() else PickerAction.NONE

    def _key_right(self) -> PickerAction:
        self.open_preview()
        return PickerAction.NONE

    def _key_escape(self) -> PickerAction:
        if self.filter_text:
            self.set_filter_text("")
            return PickerAction.NONE
        if self.has_active_chip_filter():
            self._chip_reset()
            return PickerAction.NONE
        return PickerAction.LEAVE

    def _key_select_all(self) -> PickerAction:
        return PickerAction.CHANGED if self.select_all() else PickerAction.NONE

    def _key_select_none(self) -> PickerAction:
        return PickerAction.CHANGED if self.select_none() else PickerAction.NONE

    def _key_backspace(self) -> PickerAction:
        self.backspace_filter()
        return PickerAction.NONE

    # ─── Preview keys ────────────────────────────────────────────────────

    def _preview_close(self) -> PickerAction:
        self.close_preview()
        return PickerAction.NONE

    def _preview_up(self) -> PickerAction:
        self.scroll_preview(-1)
        return PickerAction.NONE

    def _preview_down(self) -> PickerAction:
        self.scroll_preview(+1)
        return PickerAction.NONE

    def handle_key(self, key: str, character: str | None = None) -> PickerAction:
        """Route one key press by focus zone: preview, chip bar, then list.

        `key` uses Textual key names ("up", "space", "escape", "ctrl+a").
        Printable characters not bound to a key extend the filter text.
        """
        if self.preview_active:
            handler = _PREVIEW_KEYS.get(key)
            return handler(self) if handler else PickerAction.NONE

        if self.chip_focused:
            handler = _CHIP_KEYS.get(key)
            if handler is not None:
                return handler(self)
            if _is_printable(character):
                self.chip_focused = False
                self.append_filter_text(character)
            return PickerAction.NONE

        handler = _LIST_KEYS.get(key)
        if handler is not None:
            return handler(self)
        if _is_printable(character):
            self.append_filter_text(character)
        return PickerAction.NONE


def _is_printable(character: str | None) -> bool:
    return bool(character) and character.isprintable()


_KeyHandler = Callable[[Picker], PickerAction]

_PREVIEW_KEYS: dict[str, _KeyHandler] = {
    "left": Picker._preview_close,
    "escape": Picker._preview_close,
    "up": Picker._preview_up,
    "down": Picker._preview_down,
}

_CHIP_KEYS: dict[str, _KeyHandler] = {
    "left": Picker._chip_left,
    "right": Picker._chip_right,
    "space": Picker._chip_toggle,
    "enter": Picker._chip_toggle,
    "down": Picker._chip_leave,
    "escape": Picker._chip_reset,
}

_LIST_KEYS: dict[str, _KeyHandler] = {
    "up": Picker._key_up,
    "down": Picker._key_down,
    "space": Picker._key_space,
    "enter": Picker.activate,
    "right": Picker._key_right,
    "left": lambda picker: PickerAction.LEAVE,
    "escape": Picker._key_escape,
    "ctrl+a": Picker._key_select_all,
    "ctrl+n": Picker._key_select_none,
    "backspace": Picker._key_backspace,
}


def _groups(items: Iterable[PickerItem]) -> list[list[PickerItem]]:
    """Split a flat row list at headers. Rows before the first header form their own group."""
    groups: list[list[PickerItem]] = []
    current: list[PickerItem] = []
    for it in items:
        if it.is_header and current:
            groups.append(current)
            current = []
        current.append(it)
    if current:
        groups.append(current)
    return groups
