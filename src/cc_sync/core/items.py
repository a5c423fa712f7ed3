"""Picker rows and the builders that turn scan data into grouped row lists.

Headers and description rows are structural: they carry no key and are never
selectable. Every other row is addressed by its key.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Iterable

from cc_sync.core.claudemd import ClaudeMDSection
from cc_sync.core.scan import CmdSkillItem, ItemSource, ItemType, Permissions, ScanResult
from cc_sync.core.sections import (
    ALLOW_PREFIX,
    DENY_PREFIX,
    FRAGMENT_SOURCE_SEP,
    KEYBINDINGS_KEY,
)
from cc_sync.core.values import SettingValue

BASE_MARKER = "●"


@dataclass
class PickerItem:
    """One row of a picker."""

    key: str = ""
    display: str = ""
    selected: bool = False
    is_header: bool = False
    is_base: bool = False  # inherited from Base (profile views)
    is_read_only: bool = False  # selection controlled elsewhere (e.g. owning plugin)
    tag: str = ""  # type indicator: "[cmd]", "[skill]", "via plugin"
    provider_tag: str = ""  # provenance, shown when read-only
    description: str = ""  # set only on description rows

    @property
    def is_description(self) -> bool:
        return not self.is_header and bool(self.description)

    @property
    def is_row_item(self) -> bool:
        """True for keyed rows (selectable or read-only)."""
        return not self.is_header and not self.description

    @property
    def is_selectable(self) -> bool:
        return self.is_row_item and not self.is_read_only

    @property
    def effective_tag(self) -> str:
        """Read-only rows explain the lock; inherited rows get the base marker."""
        if self.is_read_only:
            parts = [self.tag, self.provider_tag]
        elif self.is_base:
            parts = [BASE_MARKER, self.tag]
        else:
            parts = [self.tag]
        return " ".join(p for p in parts if p)

    def copy(self) -> PickerItem:
        return dataclasses.replace(self)


def header(label: str, count: int) -> PickerItem:
    return PickerItem(display=f"{label} ({count})", is_header=True)


def description_row(text: str) -> PickerItem:
    return PickerItem(description=text)


# ─── Builders ────────────────────────────────────────────────────────────────


def plugin_items(scan: ScanResult) -> list[PickerItem]:
    """Upstream and auto-forked plugin groups, all pre-selected."""
    items: list[PickerItem] = []
    groups = (
        ("Upstream", "Marketplace plugins — synced by reference", scan.upstream),
        ("Auto-forked", "Local plugins — synced as full copies", scan.auto_forked),
    )
    for label, desc, keys in groups:
        if not keys:
            continue
        items.append(header(label, len(keys)))
        items.append(description_row(desc))
        items.extend(PickerItem(key=k, display=k, selected=True) for k in keys)
    return items


def settings_items(settings: dict[str, Any]) -> list[PickerItem]:
    """One "key: value" row per setting, sorted by key."""
    return [
        PickerItem(
            key=k,
            display=f"{k}: {SettingValue.from_json(settings[k]).display()}",
            selected=True,
        )
        for k in sorted(settings)
    ]


def permission_items(perms: Permissions) -> list[PickerItem]:
    items: list[PickerItem] = []
    for label, prefix, rules in (
        ("Allow", ALLOW_PREFIX, perms.allow),
        ("Deny", DENY_PREFIX, perms.deny),
    ):
        if not rules:
            continue
        items.append(header(label, len(rules)))
        items.extend(PickerItem(key=prefix + r, display=r, selected=True) for r in rules)
    return items


def mcp_items(servers: dict[str, Any], source: str = "") -> list[PickerItem]:
    """Server rows sorted by name, under a source header when one is given."""
    keys = sorted(servers)
    items: list[PickerItem] = []
    if source and keys:
        items.append(header(source, len(keys)))
    items.extend(PickerItem(key=k, display=k, selected=True) for k in keys)
    return items


def extract_hook_command(payload: Any) -> str:
    """First command of the first hook entry; "" when the payload is malformed."""
    if not isinstance(payload, list) or not payload:
        return ""
    first = payload[0]
    if not isinstance(first, dict):
        return ""
    hooks = first.get("hooks")
    if not isinstance(hooks, list) or not hooks or not isinstance(hooks[0], dict):
        return ""
    command = hooks[0].get("command")
    return command if isinstance(command, str) else ""


def hook_items(hooks: dict[str, Any]) -> list[PickerItem]:
    items = []
    for k in sorted(hooks):
        command = extract_hook_command(hooks[k])
        display = f"{k}: {command}" if command else k
        items.append(PickerItem(key=k, display=display, selected=True))
    return items


def keybindings_items(keybindings: dict[str, Any]) -> list[PickerItem]:
    """A single toggle row for the whole keybindings map."""
    if not keybindings:
        return []
    return [PickerItem(key=KEYBINDINGS_KEY, display="Include keybindings", selected=True)]


def cmd_skill_row(item: CmdSkillItem, *, selected: bool = True) -> PickerItem:
    return PickerItem(key=item.key, display=item.name, selected=selected, tag=item.type_tag)


def commands_skills_items(scan_items: Iterable[CmdSkillItem]) -> list[PickerItem]:
    """Plugin items (read-only), global commands, global skills, then projects."""
    plugin: list[CmdSkillItem] = []
    global_cmds: list[CmdSkillItem] = []
    global_skills: list[CmdSkillItem] = []
    projects: dict[str, list[CmdSkillItem]] = {}

    for item in scan_items:
        if item.source is ItemSource.PLUGIN:
            plugin.append(item)
        elif item.source is ItemSource.GLOBAL:
            (global_cmds if item.type is ItemType.COMMAND else global_skills).append(item)
        else:
            projects.setdefault(item.source_label, []).append(item)

    items: list[PickerItem] = []
    if plugin:
        items.append(header("Installed plugins", len(plugin)))
        items.append(description_row("Auto-detected from plugins — view only"))
        for item in sorted(plugin, key=lambda i: i.key):
            row = cmd_skill_row(item)
            row.is_read_only = True
            row.provider_tag = f"via {item.source_label}"
            items.append(row)

    for label, group in (("Global commands", global_cmds), ("Global skills", global_skills)):
        if group:
            items.append(header(label, len(group)))
            items.extend(cmd_skill_row(i) for i in sorted(group, key=lambda i: i.name))

    for label in sorted(projects):
        items.extend(project_group_items(label, projects[label]))
    return items


def project_group_items(
    label: str, group: list[CmdSkillItem], *, selected_for=None
) -> list[PickerItem]:
    """A "Project: <label>" group. selected_for(key) overrides the default selection."""
    rows = [header(f"Project: {label}", len(group))]
    for item in sorted(group, key=lambda i: i.key):
        selected = True if selected_for is None else selected_for(item.key)
        rows.append(cmd_skill_row(item, selected=selected))
    return rows


def fragment_key(fragment_name: str, source: str = "") -> str:
    """Global fragments keep their name; discovered ones are source-qualified."""
    if not source:
        return fragment_name
    return f"{source}{FRAGMENT_SOURCE_SEP}{fragment_name}"


def claude_md_items(
    sections: list[ClaudeMDSection], source: str, *, qualify: bool = False
) -> list[PickerItem]:
    """A source header followed by one row per fragment."""
    rows: dict[str, PickerItem] = {}
    for sec in sections:
        key = fragment_key(sec.fragment_name, source if qualify else "")
        rows.setdefault(key, PickerItem(key=key, display=sec.label, selected=True))
    if not rows:
        return []
    return [header(source, len(rows)), *rows.values()]


def copy_items(items: Iterable[PickerItem]) -> list[PickerItem]:
    return [it.copy() for it in items]
