"""Main TUI application using Textual.

// [LAW:locality-or-seam] Thin coordinator: state lives in WizardContext, rendering in
//   picker_view, scanning in DiscoveryCoordinator. This module only wires them.
// [LAW:single-enforcer] on_key is the sole key dispatcher (no Textual BINDINGS).
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Mapping, Sequence

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen, Screen
from textual.widgets import Header, Input, Label, Static

import cc_sync.io.settings
from cc_sync.app.context import WizardContext
from cc_sync.app.discovery import DiscoveryCoordinator, Scanner
from cc_sync.app.picker import Picker, PickerAction
from cc_sync.core.discovered import DiscoveryResult
from cc_sync.core.options import InitOptions
from cc_sync.core.sections import ALL_SECTIONS, BASE_TAB, Section
from cc_sync.tui.chip import FacetChip
from cc_sync.tui.picker_view import PickerView

logger = logging.getLogger(__name__)

_HINTS = {
    "sidebar": "↑↓ section · enter open · tab profile · n new · d delete · r reset · ctrl+s save · ? help · q quit",
    "picker": "space toggle · enter open/search · ctrl+a all · ctrl+n none · → preview · ← back · ctrl+s save",
}


class Zone(Enum):
    SIDEBAR = "sidebar"
    PICKER = "picker"


class NewProfileScreen(ModalScreen[str | None]):
    """Modal prompt for a profile name. Dismisses with the name, or None on escape."""

    DEFAULT_CSS = """
    NewProfileScreen {
        align: center middle;
    }
    NewProfileScreen > Vertical {
        width: 48;
        height: auto;
        padding: 1 2;
        border: round $accent;
        background: $panel;
    }
    """

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label("New profile name")
            yield Input(placeholder="e.g. work", id="profile-name")

    def on_mount(self) -> None:
        self.query_one(Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self.dismiss(event.value.strip() or None)

    def on_key(self, event) -> None:
        if event.key == "escape":
            event.stop()
            event.prevent_default()
            self.dismiss(None)


class ConfirmScreen(ModalScreen[bool]):
    """Yes/no question. y or enter dismisses True; n or escape dismisses False."""

    DEFAULT_CSS = """
    ConfirmScreen {
        align: center middle;
    }
    ConfirmScreen > Vertical {
        width: 52;
        height: auto;
        padding: 1 2;
        border: round $warning;
        background: $panel;
    }
    ConfirmScreen #dialog-body {
        margin: 1 0;
    }
    """

    def __init__(self, title: str, message: str, confirm_label: str = "Yes"):
        super().__init__()
        self.title_text = title
        self.body_text = message
        self.confirm_label = confirm_label

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static(Text(self.title_text, style="bold"), id="dialog-title")
            yield Static(Text(self.body_text), id="dialog-body")
            yield Static(
                Text(f"y/enter {self.confirm_label}  ·  n/esc cancel", style="dim"),
                id="dialog-hint",
            )

    def on_key(self, event) -> None:
        answer = _CONFIRM_ANSWERS.get(event.key)
        if answer is None:
            return
        event.stop()
        event.prevent_default()
        self.dismiss(answer)


_CONFIRM_ANSWERS = {"y": True, "enter": True, "n": False, "escape": False}


class SaveSummaryScreen(ConfirmScreen):
    """What ctrl+s is about to write. Confirming exits the wizard with the options."""

    DEFAULT_CSS = """
    SaveSummaryScreen > Vertical {
        width: 64;
        border: round $success;
    }
    """


class HelpScreen(ModalScreen[None]):
    """Key reference. Any key closes it."""

    DEFAULT_CSS = """
    HelpScreen {
        align: center middle;
    }
    HelpScreen > Vertical {
        width: 64;
        height: auto;
        padding: 1 2;
        border: round $accent;
        background: $panel;
    }
    """

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static(format_help(), id="help-body")

    def on_key(self, event) -> None:
        event.stop()
        event.prevent_default()
        self.dismiss(None)


_HELP_GROUPS: tuple[tuple[str, tuple[tuple[str, str], ...]], ...] = (
    ("Anywhere", (
        ("tab / shift+tab", "next / previous profile"),
        ("ctrl+s", "review and save"),
        ("?", "this help"),
    )),
    ("Sidebar", (
        ("↑ ↓", "choose section"),
        ("enter → space", "open section"),
        ("n / d", "new / delete profile"),
        ("r", "reset selections to defaults"),
        ("a", "toggle discovery at startup"),
        ("h", "this help"),
        ("q esc", "quit without saving"),
    )),
    ("Section list", (
        ("space", "toggle row or group"),
        ("enter", "toggle item, fold group, run search row"),
        ("ctrl+a / ctrl+n", "select all / none"),
        ("type", "filter rows"),
        ("esc", "clear filter or chips, then back"),
        ("↑ from top", "facet chips"),
        ("→ / ←", "preview / back"),
    )),
)


def format_help() -> Text:
    text = Text()
    for title, rows in _HELP_GROUPS:
        text.append(f"{title}\n", style="bold")
        for keys, action in rows:
            text.append(f"  {keys:<18}", style="cyan")
            text.append(f"{action}\n")
        text.append("\n")
    text.rstrip()
    return text


def format_summary(counts: Mapping[Section, int], profiles: Sequence[str]) -> str:
    """Save summary body: Base counts per non-empty section, then profile names."""
    parts = [f"{count} {section.label}" for section, count in counts.items() if count > 0]
    body = "Base: " + (", ".join(parts) or "nothing selected")
    if profiles:
        body += "\n\nProfiles: " + ", ".join(profiles)
    return body


class WizardApp(App):
    """Section/profile selection wizard. Exits with InitOptions on save, None on quit."""

    CSS_PATH = "styles.css"
    ENABLE_COMMAND_PALETTE = False
    TITLE = "cc-sync"

    def __init__(
        self,
        context: WizardContext,
        *,
        scanners: Mapping[Section, Scanner] | None = None,
        auto_discover: bool = True,
    ):
        super().__init__()
        self.context = context
        self.coordinator = DiscoveryCoordinator(context, scanners or {}, self._submit_scan)
        self.auto_discover = auto_discover
        self.section_index = 0
        self.zone = Zone.SIDEBAR
        # Widgets live on the default screen; App.query_one only sees the active
        # screen, which is a modal while a dialog is open.
        self._main: Screen | None = None

    # ─── Layout ──────────────────────────────────────────────────────────

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="tab-bar")
        with Horizontal(id="main"):
            yield Static(id="sidebar")
            yield PickerView(id="picker-view")
        yield Static(id="status")

    def on_mount(self) -> None:
        self._main = self.screen
        if self.auto_discover:
            self.coordinator.start()
        self.call_after_refresh(self._sync_viewport)
        self._refresh()

    def on_resize(self, event) -> None:
        self.call_after_refresh(self._sync_viewport)

    def _sync_viewport(self) -> None:
        height, width = self._main.query_one(PickerView).viewport_size()
        if height > 0:
            self.context.set_viewport(height, width)
        self._refresh()

    @property
    def section(self) -> Section:
        return ALL_SECTIONS[self.section_index]

    def current_picker(self) -> Picker | None:
        return self.context.picker(self.context.active_tab, self.section)

    # ─── Rendering ───────────────────────────────────────────────────────

    def _render_tabs(self) -> Text:
        text = Text()
        for name in self.context.tabs():
            style = "bold reverse" if name == self.context.active_tab else "dim"
            text.append(f" {name} ", style=style)
            text.append(" ")
        return text

    def _render_sidebar(self) -> Text:
        counts = self.context.section_counts(self.context.active_tab)
        text = Text()
        for i, section in enumerate(ALL_SECTIONS):
            selected, total = counts[section]
            line = Text(f" {section.label:<18} {selected:>3}/{total:<3}")
            if section in self.context.skip:
                line.append(" skip", style="dim")
            if i == self.section_index:
                line.stylize("bold reverse" if self.zone is Zone.SIDEBAR else "bold")
            text.append_text(line)
            text.append("\n")
        text.rstrip()
        return text

    def _refresh(self) -> None:
        if self._main is None:
            return
        picker = self.current_picker()
        for p in self.context.all_pickers():
            p.focused = False
        if picker is not None:
            picker.focused = self.zone is Zone.PICKER
        self._main.query_one("#tab-bar", Static).update(self._render_tabs())
        self._main.query_one("#sidebar", Static).update(self._render_sidebar())
        self._main.query_one(PickerView).show(picker)
        self._main.query_one("#status", Static).update(Text(_HINTS[self.zone.value], style="dim"))

    # ─── Key dispatch ────────────────────────────────────────────────────

    def on_key(self, event) -> None:
        if isinstance(self.screen, ModalScreen):
            return
        key = event.key
        handler = _GLOBAL_KEYS.get(key)
        if handler is None:
            if self.zone is Zone.PICKER:
                self._picker_key(key, event.character)
            else:
                handler = _SIDEBAR_KEYS.get(key)
                if handler is None:
                    return
                handler(self)
        else:
            handler(self)
        event.stop()
        event.prevent_default()
        self._refresh()

    def _picker_key(self, key: str, character: str | None) -> None:
        picker = self.current_picker()
        if picker is None:
            self.zone = Zone.SIDEBAR
            return
        action = picker.handle_key(key, character)
        _PICKER_ACTIONS[action](self)

    def _on_selection_changed(self) -> None:
        tab = self.context.active_tab
        if self.section is Section.PLUGINS:
            self.context.sync_plugin_ownership(tab)
        if tab == BASE_TAB:
            self.context.base_changed(self.section)

    def _on_search(self) -> None:
        self.coordinator.request(self.section)

    def _leave_picker(self) -> None:
        self.zone = Zone.SIDEBAR

    def _enter_picker(self) -> None:
        if self.current_picker() is not None:
            self.zone = Zone.PICKER

    def _move_section(self, delta: int) -> None:
        self.section_index = max(0, min(len(ALL_SECTIONS) - 1, self.section_index + delta))

    def _cycle_tab(self, delta: int) -> None:
        tabs = self.context.tabs()
        i = tabs.index(self.context.active_tab) if self.context.active_tab in tabs else 0
        self.context.switch_tab(tabs[(i + delta) % len(tabs)])

    def _new_profile(self) -> None:
        self.push_screen(NewProfileScreen(), self._on_profile_name)

    def _on_profile_name(self, name: str | None) -> None:
        if not name:
            return
        if not self.context.create_profile(name):
            self.notify(f"Cannot create profile {name!r}", severity="warning")
        self._refresh()

    def _delete_profile(self) -> None:
        name = self.context.active_tab
        if not self.context.is_profile(name):
            return
        self.push_screen(
            ConfirmScreen("Delete profile", f"Delete profile {name!r}?", "delete"),
            lambda confirmed: self._on_delete_confirmed(name, confirmed),
        )

    def _on_delete_confirmed(self, name: str, confirmed: bool) -> None:
        if confirmed and self.context.delete_profile(name):
            self.notify(f"Deleted profile {name!r}")
            self.context.switch_tab(BASE_TAB)
        self._refresh()

    def _reset(self) -> None:
        self.push_screen(
            ConfirmScreen("Reset", "Reset all selections to scan defaults?", "reset"),
            self._on_reset_confirmed,
        )

    def _on_reset_confirmed(self, confirmed: bool) -> None:
        if confirmed:
            self.context.reset_to_defaults()
            self.notify("Selections reset to defaults")
        self._refresh()

    def _toggle_auto_discover(self) -> None:
        enabled = not cc_sync.io.settings.load_discovery_settings().enabled
        cc_sync.io.settings.save_discovery_enabled(enabled)
        self.notify(f"Discovery at startup: {'on' if enabled else 'off'}")

    def _save(self) -> None:
        self.context.save_all(self.context.active_tab)
        counts = {
            section: selected
            for section, (selected, _) in self.context.section_counts(BASE_TAB).items()
        }
        if not any(counts.values()):
            self.notify("Nothing selected to save", severity="warning")
            return
        action = "update" if self.context.edit_mode else "initialize"
        self.push_screen(
            SaveSummaryScreen(
                f"{action.capitalize()} sync config",
                format_summary(counts, self.context.tabs()[1:]),
                action,
            ),
            self._on_save_confirmed,
        )

    def _on_save_confirmed(self, confirmed: bool) -> None:
        if not confirmed:
            return
        options = self.context.build_options()
        logger.info("wizard saved with %d profile(s)", len(options.profiles or {}))
        self.exit(options)

    def _quit(self) -> None:
        self.push_screen(
            ConfirmScreen("Quit", "Discard selections and exit?", "quit"),
            self._on_quit_confirmed,
        )

    def _on_quit_confirmed(self, confirmed: bool) -> None:
        if confirmed:
            logger.info("wizard cancelled")
            self.exit(None)

    def _help(self) -> None:
        self.push_screen(HelpScreen())

    # ─── Chip clicks ─────────────────────────────────────────────────────

    def on_facet_chip_pressed(self, message: FacetChip.Pressed) -> None:
        picker = self.current_picker()
        if picker is not None:
            picker.toggle_facet_chip(message.chip)
        self._refresh()

    # ─── Discovery ───────────────────────────────────────────────────────

    def _submit_scan(
        self,
        job: Callable[[], DiscoveryResult],
        on_done: Callable[[DiscoveryResult], None],
    ) -> None:
        """Run a scan in a thread worker; deliver its result on the app loop."""

        def _work():
            result = job()
            self.call_from_thread(self._on_scan_result, on_done, result)

        self.run_worker(_work, thread=True, exclusive=False, group="discovery")
        self._refresh()

    def _on_scan_result(self, on_done, result: DiscoveryResult) -> None:
        on_done(result)
        self._refresh()


_AppKeyHandler = Callable[[WizardApp], None]

_GLOBAL_KEYS: dict[str, _AppKeyHandler] = {
    "ctrl+s": WizardApp._save,
    "question_mark": WizardApp._help,
    "tab": lambda app: app._cycle_tab(+1),
    "shift+tab": lambda app: app._cycle_tab(-1),
}

_SIDEBAR_KEYS: dict[str, _AppKeyHandler] = {
    "up": lambda app: app._move_section(-1),
    "down": lambda app: app._move_section(+1),
    "enter": WizardApp._enter_picker,
    "right": WizardApp._enter_picker,
    "space": WizardApp._enter_picker,
    "n": WizardApp._new_profile,
    "d": WizardApp._delete_profile,
    "r": WizardApp._reset,
    "a": WizardApp._toggle_auto_discover,
    "h": WizardApp._help,
    "q": WizardApp._quit,
    "escape": WizardApp._quit,
}

_PICKER_ACTIONS: dict[PickerAction, _AppKeyHandler] = {
    PickerAction.NONE: lambda app: None,
    PickerAction.CHANGED: WizardApp._on_selection_changed,
    PickerAction.SEARCH: WizardApp._on_search,
    PickerAction.LEAVE: WizardApp._leave_picker,
}


def run_wizard(
    context: WizardContext,
    *,
    scanners: Mapping[Section, Scanner] | None = None,
    auto_discover: bool = True,
) -> InitOptions | None:
    return WizardApp(context, scanners=scanners, auto_discover=auto_discover).run()
