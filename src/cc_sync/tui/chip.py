"""Facet chip widget: one clickable filter toggle in a picker's chip bar.

Rendering state (active, cursor) is pushed in from the Picker by the owning
view; the chip never decides its own state. A click only posts Pressed.
"""

from textual.message import Message
from textual.widgets import Static

from cc_sync.core.filtering import FilterChip


class FacetChip(Static):
    """Filter chip shown as ` Label `. Bold+accent when active, dim otherwise."""

    ALLOW_SELECT = False

    DEFAULT_CSS = """
    FacetChip {
        width: auto;
        height: 1;
        margin-right: 1;
        text-style: bold;
        background: $accent;
        color: $text;
    }

    FacetChip:hover {
        background: $primary;
        color: $text;
    }

    FacetChip.-off {
        text-style: bold;
        background: $surface-lighten-1;
        color: $text-muted;
    }

    FacetChip.-off:hover {
        background: $surface-lighten-2;
        color: $text;
    }

    FacetChip.-cursor {
        text-style: bold underline;
    }
    """

    class Pressed(Message):
        """Posted when a chip is clicked."""

        def __init__(self, chip: FilterChip) -> None:
            self.chip = chip
            super().__init__()

    def __init__(self, chip: FilterChip, **kwargs):
        super().__init__(f" {chip.label} ", **kwargs)
        self.chip = chip
        self.active = chip is FilterChip.ALL

    def sync(self, *, active: bool, cursor: bool) -> None:
        self.active = active
        self.set_class(not active, "-off")
        self.set_class(cursor, "-cursor")

    async def on_click(self, event) -> None:
        event.stop()
        self.post_message(self.Pressed(self.chip))
