"""Inventory snapshot and prior-configuration shapes consumed by the wizard.

Both are produced outside this package (a local scan and the persisted sync
config). The `from_dict` loaders accept the JSON shapes the CLI reads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from cc_sync.core.claudemd import ClaudeMDSection
from cc_sync.core.sections import CMD_PREFIX, SKILL_PREFIX


class ItemType(Enum):
    COMMAND = "command"
    SKILL = "skill"


class ItemSource(Enum):
    PLUGIN = "plugin"
    GLOBAL = "global"
    PROJECT = "project"


@dataclass(frozen=True)
class CmdSkillItem:
    """A command (.md file) or skill (SKILL.md directory)."""

    name: str
    type: ItemType = ItemType.COMMAND
    source: ItemSource = ItemSource.GLOBAL
    source_label: str = ""  # plugin name, "global", or project label
    file_path: str = ""
    description: str = ""
    content: str = ""

    @property
    def key(self) -> str:
        """Unique key: cmd:global:x, skill:plugin:<plugin>:x, cmd:project:<label>:x."""
        prefix = CMD_PREFIX if self.type is ItemType.COMMAND else SKILL_PREFIX
        if self.source is ItemSource.GLOBAL:
            return f"{prefix}global:{self.name}"
        return f"{prefix}{self.source.value}:{self.source_label}:{self.name}"

    @property
    def type_tag(self) -> str:
        return "[cmd]" if self.type is ItemType.COMMAND else "[skill]"

    @classmethod
    def from_dict(cls, data: dict) -> CmdSkillItem:
        return cls(
            name=str(data.get("name", "")),
            type=ItemType(data.get("type", ItemType.COMMAND.value)),
            source=ItemSource(data.get("source", ItemSource.GLOBAL.value)),
            source_label=str(data.get("source_label", "")),
            file_path=str(data.get("file_path", "")),
            description=str(data.get("description", "")),
            content=str(data.get("content", "")),
        )


@dataclass
class Permissions:
    allow: list[str] = field(default_factory=list)
    deny: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict | None) -> Permissions:
        data = data or {}
        return cls(allow=list(data.get("allow") or []), deny=list(data.get("deny") or []))

    def to_dict(self) -> dict:
        return {"allow": list(self.allow), "deny": list(self.deny)}


@dataclass
class ScanResult:
    """Read-only per-section inventory of the local machine."""

    plugin_keys: list[str] = field(default_factory=list)
    upstream: list[str] = field(default_factory=list)
    auto_forked: list[str] = field(default_factory=list)
    settings: dict[str, Any] = field(default_factory=dict)
    hooks: dict[str, Any] = field(default_factory=dict)
    permissions: Permissions = field(default_factory=Permissions)
    claude_md_sections: list[ClaudeMDSection] = field(default_factory=list)
    mcp: dict[str, Any] = field(default_factory=dict)
    keybindings: dict[str, Any] = field(default_factory=dict)
    commands_skills: list[CmdSkillItem] = field(default_factory=list)

    def has_data(self) -> bool:
        return bool(
            self.plugin_keys
            or self.settings
            or self.hooks
            or self.permissions.allow
            or self.permissions.deny
            or self.claude_md_sections
            or self.mcp
            or self.keybindings
            or self.commands_skills
        )

    @classmethod
    def from_dict(cls, data: dict) -> ScanResult:
        upstream = list(data.get("upstream") or [])
        auto_forked = list(data.get("auto_forked") or [])
        return cls(
            plugin_keys=list(data.get("plugin_keys") or upstream + auto_forked),
            upstream=upstream,
            auto_forked=auto_forked,
            settings=dict(data.get("settings") or {}),
            hooks=dict(data.get("hooks") or {}),
            permissions=Permissions.from_dict(data.get("permissions")),
            claude_md_sections=[
                ClaudeMDSection(str(s.get("header", "")), str(s.get("content", "")))
                for s in data.get("claude_md_sections") or []
            ],
            mcp=dict(data.get("mcp") or {}),
            keybindings=dict(data.get("keybindings") or {}),
            commands_skills=[
                CmdSkillItem.from_dict(item) for item in data.get("commands_skills") or []
            ],
        )


@dataclass
class ExistingConfig:
    """Selections recorded by a previously saved sync config (edit mode)."""

    plugins: list[str] = field(default_factory=list)
    settings: dict[str, Any] = field(default_factory=dict)
    permissions: Permissions = field(default_factory=Permissions)
    claude_md_include: list[str] = field(default_factory=list)
    mcp: dict[str, Any] = field(default_factory=dict)
    hooks: dict[str, Any] = field(default_factory=dict)
    keybindings: dict[str, Any] = field(default_factory=dict)
    commands: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> ExistingConfig:
        claude_md = data.get("claude_md") or {}
        return cls(
            plugins=list(data.get("plugins") or []),
            settings=dict(data.get("settings") or {}),
            permissions=Permissions.from_dict(data.get("permissions")),
            claude_md_include=list(claude_md.get("include") or []),
            mcp=dict(data.get("mcp") or {}),
            hooks=dict(data.get("hooks") or {}),
            keybindings=dict(data.get("keybindings") or {}),
            commands=list(data.get("commands") or []),
            skills=list(data.get("skills") or []),
        )
