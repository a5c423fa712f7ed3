"""Picker view: chip bar, filter bar and list body for one Picker.

The view holds no selection state. It renders whatever Picker it is given;
key handling stays with the app (single dispatcher), which calls refresh_view()
after every change.

// [LAW:one-source-of-truth] The Picker is the state; render_* are pure projections of it.
"""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.widgets import Static

from cc_sync.app.picker import Picker
from cc_sync.core.filtering import FilterChip
from cc_sync.core.items import PickerItem
from cc_sync.tui.chip import FacetChip

_CURSOR_STYLE = "reverse"
_HEADER_STYLE = "bold"
_MUTED_STYLE = "dim"
_TAG_STYLE = "cyan"


def _item_line(item: PickerItem, collapsed: bool) -> Text:
    if item.is_header:
        return Text(("▸ " if collapsed else "▾ ") + item.display, style=_HEADER_STYLE)
    if item.is_description:
        return Text("    " + item.description, style=f"{_MUTED_STYLE} italic")
    box = "[x]" if item.selected else "[ ]"
    line = Text(f"  {box} ", style=_MUTED_STYLE if item.is_read_only else "")
    line.append(item.display, style=_MUTED_STYLE if item.is_read_only else "")
    tag = item.effective_tag
    if tag:
        line.append("  ")
        line.append(tag, style=_TAG_STYLE)
    return line


def render_rows(picker: Picker) -> Text:
    """The list body: visible rows in the scroll window plus scroll indicators."""
    above, below = picker.scroll_indicators()
    body = Text()
    if above:
        body.append("  ↑ more\n", style=_MUTED_STYLE)
    for index in picker.visible_rows():
        if index == picker.search_row_index:
            line = Text("  " + picker.search_action_label, style="italic")
        else:
            line = _item_line(picker.items[index], index in picker.collapsed)
        if index == picker.cursor and picker.focused and not picker.chip_focused:
            line.stylize(_CURSOR_STYLE)
        line.truncate(max(1, picker.width), overflow="ellipsis")
        body.append_text(line)
        body.append("\n")
    if below:
        body.append("  ↓ more\n", style=_MUTED_STYLE)
    if not picker.items and not picker.has_search_action:
        body.append("  (nothing found)", style=_MUTED_STYLE)
    body.rstrip()
    return body


def render_preview(picker: Picker) -> Text:
    item = picker.current_item()
    title = item.display if item is not None else ""
    text = Text(f"{title}  (← to close)\n", style=_HEADER_STYLE)
    text.append("\n".join(picker.preview_window()))
    return text


def render_filter_bar(picker: Picker) -> Text:
    if picker.filter_text:
        bar = Text("Filter: ", style=_MUTED_STYLE)
        bar.append(picker.filter_text, style="bold")
        bar.append(f"  ({picker.visible_selectable_count} match)", style=_MUTED_STYLE)
        return bar
    return Text(
        f"{picker.selected_count}/{picker.total_count} selected  ·  type to filter",
        style=_MUTED_STYLE,
    )


class PickerView(Vertical):
    """Renders a Picker. The app swaps pickers in with show()."""

    DEFAULT_CSS = """
    PickerView {
        height: 1fr;
        padding: 0 1;
    }
    PickerView > #chip-bar {
        height: 1;
    }
    PickerView > #filter-bar {
        height: 1;
    }
    PickerView > #picker-body {
        height: 1fr;
    }
    """

    def __init__(self, picker: Picker | None = None, **kwargs):
        super().__init__(**kwargs)
        self.picker = picker

    def compose(self) -> ComposeResult:
        with Horizontal(id="chip-bar"):
            for chip in FilterChip:
                yield FacetChip(chip, id=f"chip-{chip.name.lower()}")
        yield Static(id="filter-bar")
        yield Static(id="picker-body")

    def on_mount(self) -> None:
        self.refresh_view()

    def show(self, picker: Picker | None) -> None:
        self.picker = picker
        self.refresh_view()

    def refresh_view(self) -> None:
        try:
            filter_bar = self.query_one("#filter-bar", Static)
            body = self.query_one("#picker-body", Static)
        except NoMatches:
            return
        picker = self.picker
        available = picker.chips() if picker is not None else ()
        for widget in self.query(FacetChip):
            widget.display = widget.chip in available
            if picker is None:
                continue
            position = available.index(widget.chip) if widget.chip in available else -1
            widget.sync(
                active=widget.chip in picker.active_chips,
                cursor=picker.chip_focused and position == picker.chip_cursor,
            )

        if picker is None:
            filter_bar.update("")
            body.update("")
            return
        filter_bar.update(render_filter_bar(picker))
        body.update(render_preview(picker) if picker.preview_active else render_rows(picker))

    def viewport_size(self) -> tuple[int, int]:
        """(height, width) handed to WizardContext.set_viewport; (0, 0) before layout.

        The height is the whole view, chip and filter bars included, since the
        picker subtracts its own chrome rows.
        """
        try:
            body = self.query_one("#picker-body", Static)
        except NoMatches:
            return 0, 0
        return self.size.height, max(1, body.size.width)
