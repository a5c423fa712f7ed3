"""WizardContext: the root state of one wizard session.

Owns one Base picker per section, one picker per (profile, section), the
profile diff store and the discovery bookkeeping. There are no module-level
singletons; the TUI and the discovery coordinator receive this object.

Profiles are never edited against a snapshot. Leaving a profile tab stores
its diff against the current Base selection (save); entering it, or changing
Base, regenerates its pickers from the current Base plus that diff (rebuild).

// [LAW:one-source-of-truth] Base pickers are canonical; profile pickers are derived views.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Any, Callable, Collection, Iterable, Mapping

from cc_sync.app.picker import Picker
from cc_sync.app.profile_store import ProfileDiffStore
from cc_sync.core import items as item_builders
from cc_sync.core.items import PickerItem, copy_items, header
from cc_sync.core.options import InitOptions
from cc_sync.core.profiles import (
    Profile,
    ProfileValues,
    profile_to_section_diffs,
    section_diffs_to_profile,
)
from cc_sync.core.scan import ExistingConfig, Permissions, ScanResult
from cc_sync.core.section_diff import (
    SectionDiff,
    compute_diff,
    effective_keys,
    split_cmd_skill_keys,
)
from cc_sync.core.secrets import SecretRedactor, redact_mcp_servers
from cc_sync.core.sections import (
    ALL_SECTIONS,
    ALLOW_PREFIX,
    BASE_TAB,
    DENY_PREFIX,
    DISCOVERY_SECTIONS,
    FRAGMENT_SOURCE_SEP,
    GLOBAL_CLAUDE_MD_SOURCE,
    GLOBAL_MCP_SOURCE,
    KEYBINDINGS_KEY,
    PLUGIN_DIR_PREFIX,
    Section,
)

logger = logging.getLogger(__name__)

PROFILE_ONLY_LABEL = "Profile only"


# ─── Base picker construction ────────────────────────────────────────────────


def _claude_md_picker(scan: ScanResult) -> Picker:
    picker = Picker(item_builders.claude_md_items(scan.claude_md_sections, GLOBAL_CLAUDE_MD_SOURCE))
    picker.set_preview({sec.fragment_name: sec.content for sec in scan.claude_md_sections})
    return picker


def _commands_skills_picker(scan: ScanResult) -> Picker:
    picker = Picker(item_builders.commands_skills_items(scan.commands_skills))
    picker.collapse_read_only = True
    picker.auto_collapse_read_only()
    picker.set_preview({item.key: item.content for item in scan.commands_skills})
    return picker


# [LAW:dataflow-not-control-flow] One builder per section; construction never branches on section.
_BASE_BUILDERS: dict[Section, Callable[[ScanResult], Picker]] = {
    Section.PLUGINS: lambda scan: Picker(item_builders.plugin_items(scan)),
    Section.SETTINGS: lambda scan: Picker(item_builders.settings_items(scan.settings)),
    Section.CLAUDE_MD: _claude_md_picker,
    Section.PERMISSIONS: lambda scan: Picker(item_builders.permission_items(scan.permissions)),
    Section.MCP: lambda scan: Picker(item_builders.mcp_items(scan.mcp, GLOBAL_MCP_SOURCE)),
    Section.KEYBINDINGS: lambda scan: Picker(item_builders.keybindings_items(scan.keybindings)),
    Section.HOOKS: lambda scan: Picker(item_builders.hook_items(scan.hooks)),
    Section.COMMANDS_SKILLS: _commands_skills_picker,
}


def build_base_pickers(scan: ScanResult) -> dict[Section, Picker]:
    pickers = {section: _BASE_BUILDERS[section](scan) for section in ALL_SECTIONS}
    for section in DISCOVERY_SECTIONS:
        pickers[section].set_search_action(True)
    return pickers


def _existing_keys(config: ExistingConfig) -> dict[Section, set[str]]:
    """Per-section key sets recorded by a prior configuration."""
    return {
        Section.PLUGINS: set(config.plugins),
        Section.SETTINGS: set(config.settings),
        Section.CLAUDE_MD: set(config.claude_md_include),
        Section.PERMISSIONS: {ALLOW_PREFIX + r for r in config.permissions.allow}
        | {DENY_PREFIX + r for r in config.permissions.deny},
        Section.MCP: set(config.mcp),
        Section.KEYBINDINGS: {KEYBINDINGS_KEY} if config.keybindings else set(),
        Section.HOOKS: set(config.hooks),
        Section.COMMANDS_SKILLS: set(config.commands) | set(config.skills),
    }


class WizardContext:
    """Root orchestrator state, threaded explicitly through the app."""

    def __init__(
        self,
        scan: ScanResult,
        *,
        existing: ExistingConfig | None = None,
        existing_profiles: Mapping[str, Profile] | None = None,
        skip: Collection[Section] = (),
        redact: SecretRedactor | None = redact_mcp_servers,
    ):
        self.scan = scan
        self.existing = existing
        self.edit_mode = existing is not None
        self.skip: frozenset[Section] = frozenset(skip)
        self.redact = redact

        self.base: dict[Section, Picker] = build_base_pickers(scan)
        self.profiles: dict[str, dict[Section, Picker]] = {}
        self.diffs = ProfileDiffStore()
        self.active_tab = BASE_TAB

        # Discovery bookkeeping. Keys never overlap the scan snapshot.
        self.discovered_mcp: dict[str, Any] = {}
        self.mcp_sources: dict[str, str] = {}
        self.mcp_plugin_keys: dict[str, str] = {}  # server -> owning plugin key
        self.discovered_cmd_skills: list = []
        self.discovered_claude_md: dict[str, Any] = {}  # qualified key -> ClaudeMDSection
        # Values carried by restored profiles for keys neither scanned nor discovered yet.
        self.restored_values: dict[Section, dict[str, Any]] = {
            Section.SETTINGS: {},
            Section.MCP: {},
            Section.HOOKS: {},
        }

        if existing is not None:
            self.apply_existing_config(existing)
        self.apply_skip_flags(self.skip)
        if existing_profiles:
            self.restore_profiles(existing_profiles)

    # ─── Lookup ──────────────────────────────────────────────────────────

    def tabs(self) -> list[str]:
        return [BASE_TAB, *self.profiles]

    def is_profile(self, tab: str) -> bool:
        return tab != BASE_TAB and tab in self.profiles

    def picker(self, tab: str, section: Section) -> Picker | None:
        if tab == BASE_TAB:
            return self.base.get(section)
        return self.profiles.get(tab, {}).get(section)

    def pickers_for(self, section: Section) -> list[Picker]:
        """Base picker first, then every profile picker of `section`."""
        found = [self.base[section]]
        found.extend(pm[section] for pm in self.profiles.values() if section in pm)
        return found

    def all_pickers(self) -> Iterable[Picker]:
        yield from self.base.values()
        for pm in self.profiles.values():
            yield from pm.values()

    def set_searching(self, section: Section, searching: bool) -> None:
        for picker in self.pickers_for(section):
            picker.set_searching(searching)

    def set_viewport(self, height: int, width: int) -> None:
        for picker in self.all_pickers():
            picker.set_height(height)
            picker.set_width(width)

    def section_counts(self, tab: str) -> dict[Section, tuple[int, int]]:
        """(selected, total) per section for the sidebar."""
        counts = {}
        for section in ALL_SECTIONS:
            picker = self.picker(tab, section)
            counts[section] = (picker.selected_count, picker.total_count) if picker else (0, 0)
        return counts

    def profile_values(self) -> ProfileValues:
        restored = self.restored_values
        return ProfileValues(
            settings={**restored[Section.SETTINGS], **self.scan.settings},
            mcp={**restored[Section.MCP], **self.discovered_mcp, **self.scan.mcp},
            hooks={**restored[Section.HOOKS], **self.scan.hooks},
            keybindings=self.scan.keybindings,
        )

    # ─── Save / rebuild ──────────────────────────────────────────────────

    def save_diff(self, profile: str, section: Section) -> None:
        """Store the profile's deviation from the current Base selection.

        Keys the profile picker has no row for (restored adds for items not
        discovered yet) are carried over from the stored diff.
        """
        picker = self.picker(profile, section)
        if not self.is_profile(profile) or picker is None:
            return
        diff = compute_diff(self.base[section].selected_keys(), picker.selected_keys())
        present = set(picker.all_keys())
        previous = self.diffs.get(profile, section)
        diff.adds |= {k for k in previous.adds if k not in present}
        diff.removes |= {k for k in previous.removes if k not in present}
        self.diffs.set(profile, section, diff)

    def save_all(self, profile: str) -> None:
        for section in ALL_SECTIONS:
            self.save_diff(profile, section)

    def rebuild_section(self, profile: str, section: Section) -> None:
        """Regenerate a profile picker from the current Base and the stored diff."""
        if not self.is_profile(profile) or section not in self.base:
            return
        base_picker = self.base[section]
        diff = self.diffs.get(profile, section)
        base_selected = set(base_picker.selected_keys())
        effective = effective_keys(diff, base_selected)

        rows = copy_items(base_picker.items)
        for it in rows:
            # Ownership locks are re-derived from this profile's own plugin selection.
            if section is Section.MCP and it.key in self.mcp_plugin_keys:
                it.is_read_only = False
            if it.is_selectable:
                it.selected = it.key in effective
                it.is_base = it.key in base_selected

        if section is Section.PLUGINS:
            rows.extend(self._profile_only_rows(diff, base_picker))

        old = self.profiles[profile].get(section)
        picker = Picker(rows, height=old.height if old else base_picker.height)
        picker.set_width(old.width if old else base_picker.width)
        picker.is_profile_tab = True
        picker.set_search_action(base_picker.has_search_action)
        picker.set_searching(base_picker.searching)
        if base_picker.has_preview:
            picker.set_preview(base_picker.preview_content)
        if base_picker.collapse_read_only:
            picker.collapse_read_only = True
        self.profiles[profile][section] = picker

        if section in (Section.PLUGINS, Section.MCP):
            self.sync_plugin_ownership(profile)
        if picker.collapse_read_only:
            picker.auto_collapse_read_only()

    @staticmethod
    def _profile_only_rows(diff: SectionDiff, base_picker: Picker) -> list[PickerItem]:
        known = set(base_picker.all_keys())
        extra = sorted(k for k in diff.adds if k not in known)
        if not extra:
            return []
        return [
            header(PROFILE_ONLY_LABEL, len(extra)),
            *(PickerItem(key=k, display=k, selected=True) for k in extra),
        ]

    def rebuild_all(self, profile: str) -> None:
        for section in ALL_SECTIONS:
            self.rebuild_section(profile, section)

    def base_changed(self, section: Section) -> None:
        """Propagate a Base edit into every profile view of `section`."""
        affected = [section]
        if section is Section.PLUGINS and self.mcp_plugin_keys:
            self.sync_plugin_ownership(BASE_TAB)
            affected.append(Section.MCP)
        for name in self.profiles:
            for s in affected:
                self.rebuild_section(name, s)

    # ─── Tabs ────────────────────────────────────────────────────────────

    def create_profile(self, name: str) -> bool:
        name = (name or "").strip()
        if not self.diffs.create(name):
            return False
        self.save_all(self.active_tab)
        self.profiles[name] = {}
        self.rebuild_all(name)
        self.active_tab = name
        logger.info("profile created: %s", name)
        return True

    def delete_profile(self, name: str) -> bool:
        if not self.is_profile(name):
            return False
        del self.profiles[name]
        self.diffs.delete(name)
        if self.active_tab == name:
            self.active_tab = BASE_TAB
        logger.info("profile deleted: %s", name)
        return True

    def switch_tab(self, name: str) -> bool:
        """Save the tab being left, rebuild the tab being entered."""
        if name != BASE_TAB and name not in self.profiles:
            return False
        self.save_all(self.active_tab)
        self.active_tab = name
        self.rebuild_all(name)
        self.sync_plugin_ownership(name)
        return True

    # ─── Plugin-owned MCP servers ────────────────────────────────────────

    def plugin_key_from_source(self, source: str) -> str:
        """Installed plugin key (name@marketplace) owning a ~/.claude/plugins/<name> path, or ""."""
        if not source.startswith(PLUGIN_DIR_PREFIX):
            return ""
        name = posixpath.basename(source.rstrip("/"))
        for key in self.scan.plugin_keys:
            plugin, sep, _ = key.partition("@")
            if sep and plugin == name:
                return key
        return ""

    def sync_plugin_ownership(self, tab: str) -> None:
        """Owned servers are locked and selected while their plugin is selected in `tab`."""
        plugins = self.picker(tab, Section.PLUGINS)
        mcp = self.picker(tab, Section.MCP)
        if not self.mcp_plugin_keys or plugins is None or mcp is None:
            return
        selected_plugins = set(plugins.selected_keys())
        for it in mcp.items:
            plugin_key = self.mcp_plugin_keys.get(it.key)
            if not plugin_key:
                continue
            if plugin_key in selected_plugins:
                it.is_read_only = True
                it.selected = True
            else:
                it.is_read_only = False

    # ─── Discovery merge support ─────────────────────────────────────────

    def append_discovered(self, section: Section, rows: list[PickerItem]) -> int:
        """Append discovered rows to the Base picker and every profile picker.

        Profile copies take their selection from the stored diff against the
        Base selection, so a restored add or remove applies as soon as the
        row exists.
        """
        added = self.base[section].add_items(copy_items(rows))
        if not added:
            return 0
        base_selected = set(self.base[section].selected_keys())
        for name, pm in self.profiles.items():
            picker = pm.get(section)
            if picker is None:
                continue
            effective = effective_keys(self.diffs.get(name, section), base_selected)
            copies = copy_items(rows)
            for it in copies:
                if it.is_row_item:
                    it.is_base = it.key in base_selected
                    it.selected = it.key in effective
            picker.add_items(copies)
        return added

    def add_preview(self, section: Section, content_by_key: Mapping[str, str]) -> None:
        for picker in self.pickers_for(section):
            picker.add_preview(dict(content_by_key))

    def default_selected(self, section: Section, key: str) -> bool:
        """Selection for a newly discovered row: on, or its prior state in edit mode."""
        if self.existing is None:
            return True
        return key in _existing_keys(self.existing)[section]

    def snapshot_keys(self, section: Section) -> set[str]:
        """Keys the initial scan already reported for a discovery section."""
        if section is Section.MCP:
            return set(self.scan.mcp)
        if section is Section.COMMANDS_SKILLS:
            return {item.key for item in self.scan.commands_skills}
        if section is Section.CLAUDE_MD:
            return {sec.fragment_name for sec in self.scan.claude_md_sections}
        return set()

    def discovered_keys(self, section: Section) -> set[str]:
        if section is Section.MCP:
            return set(self.discovered_mcp)
        if section is Section.COMMANDS_SKILLS:
            return {item.key for item in self.discovered_cmd_skills}
        if section is Section.CLAUDE_MD:
            return set(self.discovered_claude_md)
        return set()

    # ─── Edit mode / skip / reset ────────────────────────────────────────

    def apply_existing_config(self, config: ExistingConfig) -> None:
        """Seed Base selection from a previously saved configuration."""
        self.existing = config
        self.edit_mode = True
        for section, keys in _existing_keys(config).items():
            self.base[section].apply_selection(keys)

    def restore_profiles(self, profiles: Mapping[str, Profile]) -> None:
        for name in sorted(profiles):
            if not self.create_profile(name):
                continue
            profile = profiles[name]
            self.restored_values[Section.SETTINGS].update(profile.settings.add)
            self.restored_values[Section.MCP].update(profile.mcp.add)
            self.restored_values[Section.HOOKS].update(profile.hooks.add)
            self.diffs.replace(name, profile_to_section_diffs(profile))
            self.rebuild_all(name)
        self.active_tab = BASE_TAB

    def apply_skip_flags(self, skip: Collection[Section]) -> None:
        self.skip = frozenset(skip)
        for section in self.skip:
            self.base[section].deselect_all()
        for name in self.profiles:
            for section in self.skip:
                self.rebuild_section(name, section)

    def reset_to_defaults(self) -> None:
        """Rebuild Base from the scan, drop discoveries and profile diffs, re-apply skips."""
        old = self.base
        self.base = build_base_pickers(self.scan)
        for section, picker in self.base.items():
            picker.set_height(old[section].height)
            picker.set_width(old[section].width)
        self.discovered_mcp.clear()
        self.mcp_sources.clear()
        self.mcp_plugin_keys.clear()
        self.discovered_cmd_skills.clear()
        self.discovered_claude_md.clear()
        for name in self.profiles:
            self.diffs.replace(name, {})
        self.apply_skip_flags(self.skip)
        for name in self.profiles:
            self.rebuild_all(name)
        logger.info("selections reset to scan defaults")

    # ─── Output ──────────────────────────────────────────────────────────

    def build_profiles(self) -> dict[str, Profile]:
        values = self.profile_values()
        result = {}
        for name in self.profiles:
            self.save_all(name)
            result[name] = section_diffs_to_profile(self.diffs.diffs(name), values, self.redact)
        return result

    def build_options(self) -> InitOptions:
        """Translate Base selections into the options bundle (nil-vs-empty convention)."""
        opts = InitOptions()

        plugins = self.base[Section.PLUGINS]
        plugin_keys = plugins.selected_keys()
        total = plugins.total_count
        opts.include_plugins = None if total and len(plugin_keys) == total else plugin_keys

        settings = self.base[Section.SETTINGS]
        settings_keys = settings.selected_keys()
        if settings_keys:
            opts.include_settings = True
            if len(settings_keys) != settings.total_count:
                opts.settings_filter = settings_keys

        perms = Permissions()
        for k in self.base[Section.PERMISSIONS].selected_keys():
            if k.startswith(ALLOW_PREFIX):
                perms.allow.append(k[len(ALLOW_PREFIX):])
            elif k.startswith(DENY_PREFIX):
                perms.deny.append(k[len(DENY_PREFIX):])
        opts.permissions = perms

        self._claude_md_options(opts)

        selected_plugins = set(plugin_keys)
        mcp_values = {**self.discovered_mcp, **self.scan.mcp}
        mcp: dict[str, Any] = {}
        for k in self.base[Section.MCP].selected_keys():
            if self.mcp_plugin_keys.get(k) in selected_plugins:
                continue
            if k in mcp_values:
                mcp[k] = mcp_values[k]
        opts.mcp = mcp

        opts.include_hooks = {
            k: self.scan.hooks[k]
            for k in self.base[Section.HOOKS].selected_keys()
            if k in self.scan.hooks
        }

        if self.base[Section.KEYBINDINGS].selected_keys():
            opts.keybindings = dict(self.scan.keybindings)

        opts.commands, opts.skills = split_cmd_skill_keys(
            self.base[Section.COMMANDS_SKILLS].selected_keys()
        )

        if self.profiles:
            opts.profiles = self.build_profiles()
        return opts

    def _claude_md_options(self, opts: InitOptions) -> None:
        picker = self.base[Section.CLAUDE_MD]
        selected = picker.selected_keys()
        if not selected:
            return
        opts.import_claude_md = True
        global_total = sum(
            1 for it in picker.items if it.is_selectable and FRAGMENT_SOURCE_SEP not in it.key
        )
        global_selected = [k for k in selected if FRAGMENT_SOURCE_SEP not in k]
        if not global_total or len(global_selected) != global_total:
            opts.claude_md_fragments = global_selected
        for k in selected:
            source, sep, fragment = k.partition(FRAGMENT_SOURCE_SEP)
            if sep:
                opts.project_claude_md.setdefault(source, []).append(fragment)
