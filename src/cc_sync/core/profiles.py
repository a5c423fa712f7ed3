"""Sparse persisted profile representation and its conversion to/from section diffs.

A persisted profile records only what deviates from Base, section by section:

* list sections (plugins, CLAUDE.md, commands, skills) store add/remove keys;
* keyed sections (settings, MCP, hooks) store added key -> value plus removed
  keys. A removal excludes a Base entry; it never rewrites the Base value;
* permissions store added/removed rules split by allow/deny;
* keybindings are one switch over the whole map: an override map or an
  exclusion.

Commands and skills share one section in the picker (key prefix tells them
apart) but persist separately.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from cc_sync.core.section_diff import SectionDiff, split_cmd_skill_keys, sorted_keys
from cc_sync.core.secrets import SecretRedactor, redact_mcp_servers
from cc_sync.core.sections import (
    ALL_SECTIONS,
    ALLOW_PREFIX,
    DENY_PREFIX,
    KEYBINDINGS_KEY,
    Section,
)


@dataclass
class ListDiff:
    add: list[str] = field(default_factory=list)
    remove: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.add and not self.remove

    def to_dict(self) -> dict:
        return _sparse({"add": list(self.add), "remove": list(self.remove)})

    @classmethod
    def from_dict(cls, data: Any) -> ListDiff:
        data = data if isinstance(data, dict) else {}
        return cls(add=list(data.get("add") or []), remove=list(data.get("remove") or []))


@dataclass
class KeyedDiff:
    add: dict[str, Any] = field(default_factory=dict)
    remove: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.add and not self.remove

    def to_dict(self) -> dict:
        return _sparse({"add": dict(self.add), "remove": list(self.remove)})

    @classmethod
    def from_dict(cls, data: Any) -> KeyedDiff:
        data = data if isinstance(data, dict) else {}
        return cls(add=dict(data.get("add") or {}), remove=list(data.get("remove") or []))


@dataclass
class PermissionsDiff:
    add_allow: list[str] = field(default_factory=list)
    add_deny: list[str] = field(default_factory=list)
    remove_allow: list[str] = field(default_factory=list)
    remove_deny: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.add_allow or self.add_deny or self.remove_allow or self.remove_deny)

    def to_dict(self) -> dict:
        return _sparse({
            "add_allow": list(self.add_allow),
            "add_deny": list(self.add_deny),
            "remove_allow": list(self.remove_allow),
            "remove_deny": list(self.remove_deny),
        })

    @classmethod
    def from_dict(cls, data: Any) -> PermissionsDiff:
        data = data if isinstance(data, dict) else {}
        return cls(**{k: list(data.get(k) or []) for k in (
            "add_allow", "add_deny", "remove_allow", "remove_deny"
        )})


@dataclass
class KeybindingsOverride:
    override: dict[str, Any] = field(default_factory=dict)
    exclude: bool = False

    def is_empty(self) -> bool:
        return not self.override and not self.exclude

    def to_dict(self) -> dict:
        if self.exclude:
            return {"exclude": True}
        return _sparse({"override": dict(self.override)})

    @classmethod
    def from_dict(cls, data: Any) -> KeybindingsOverride:
        data = data if isinstance(data, dict) else {}
        return cls(override=dict(data.get("override") or {}), exclude=bool(data.get("exclude")))


@dataclass
class Profile:
    plugins: ListDiff = field(default_factory=ListDiff)
    settings: KeyedDiff = field(default_factory=KeyedDiff)
    permissions: PermissionsDiff = field(default_factory=PermissionsDiff)
    claude_md: ListDiff = field(default_factory=ListDiff)
    mcp: KeyedDiff = field(default_factory=KeyedDiff)
    hooks: KeyedDiff = field(default_factory=KeyedDiff)
    keybindings: KeybindingsOverride = field(default_factory=KeybindingsOverride)
    commands: ListDiff = field(default_factory=ListDiff)
    skills: ListDiff = field(default_factory=ListDiff)

    def is_empty(self) -> bool:
        return all(getattr(self, name).is_empty() for name in _PROFILE_PARTS)

    def to_dict(self) -> dict:
        """Sparse form: empty parts are omitted."""
        return _sparse({name: getattr(self, name).to_dict() for name in _PROFILE_PARTS})

    @classmethod
    def from_dict(cls, data: Any) -> Profile:
        data = data if isinstance(data, dict) else {}
        return cls(**{
            name: part_type.from_dict(data.get(name))
            for name, part_type in _PROFILE_PARTS.items()
        })


_PROFILE_PARTS: dict[str, type] = {
    "plugins": ListDiff,
    "settings": KeyedDiff,
    "permissions": PermissionsDiff,
    "claude_md": ListDiff,
    "mcp": KeyedDiff,
    "hooks": KeyedDiff,
    "keybindings": KeybindingsOverride,
    "commands": ListDiff,
    "skills": ListDiff,
}


def _sparse(d: dict) -> dict:
    return {k: v for k, v in d.items() if v}


@dataclass
class ProfileValues:
    """Value lookups for keyed additions (scan inventory plus discoveries)."""

    settings: Mapping[str, Any] = field(default_factory=dict)
    mcp: Mapping[str, Any] = field(default_factory=dict)
    hooks: Mapping[str, Any] = field(default_factory=dict)
    keybindings: Mapping[str, Any] = field(default_factory=dict)


# ─── Profile -> diffs ────────────────────────────────────────────────────────


def profile_to_section_diffs(profile: Profile) -> dict[Section, SectionDiff]:
    """Expand a persisted profile into one SectionDiff per section."""
    perms = profile.permissions
    kb = profile.keybindings
    return {
        Section.PLUGINS: SectionDiff(set(profile.plugins.add), set(profile.plugins.remove)),
        Section.SETTINGS: SectionDiff(set(profile.settings.add), set(profile.settings.remove)),
        Section.PERMISSIONS: SectionDiff(
            {ALLOW_PREFIX + r for r in perms.add_allow} | {DENY_PREFIX + r for r in perms.add_deny},
            {ALLOW_PREFIX + r for r in perms.remove_allow}
            | {DENY_PREFIX + r for r in perms.remove_deny},
        ),
        Section.CLAUDE_MD: SectionDiff(set(profile.claude_md.add), set(profile.claude_md.remove)),
        Section.MCP: SectionDiff(set(profile.mcp.add), set(profile.mcp.remove)),
        Section.HOOKS: SectionDiff(set(profile.hooks.add), set(profile.hooks.remove)),
        Section.KEYBINDINGS: SectionDiff(
            {KEYBINDINGS_KEY} if kb.override and not kb.exclude else set(),
            {KEYBINDINGS_KEY} if kb.exclude else set(),
        ),
        Section.COMMANDS_SKILLS: SectionDiff(
            set(profile.commands.add) | set(profile.skills.add),
            set(profile.commands.remove) | set(profile.skills.remove),
        ),
    }


# ─── diffs -> Profile ────────────────────────────────────────────────────────


def _split_rules(keys) -> tuple[list[str], list[str]]:
    allow = [k[len(ALLOW_PREFIX):] for k in sorted(keys) if k.startswith(ALLOW_PREFIX)]
    deny = [k[len(DENY_PREFIX):] for k in sorted(keys) if k.startswith(DENY_PREFIX)]
    return allow, deny


def _keyed(diff: SectionDiff, values: Mapping[str, Any]) -> KeyedDiff:
    # Additions without a known value cannot be persisted and are dropped.
    return KeyedDiff(
        add={k: values[k] for k in sorted(diff.adds) if k in values},
        remove=sorted_keys(diff.removes),
    )


def section_diffs_to_profile(
    diffs: Mapping[Section, SectionDiff],
    values: ProfileValues,
    redact: SecretRedactor | None = redact_mcp_servers,
) -> Profile:
    """Collapse per-section diffs into the sparse persisted form.

    MCP additions pass through `redact` once here, at serialization time.
    Missing sections count as empty diffs.
    """
    def get(section: Section) -> SectionDiff:
        return diffs.get(section) or SectionDiff()

    profile = Profile()

    plugins = get(Section.PLUGINS)
    profile.plugins = ListDiff(sorted_keys(plugins.adds), sorted_keys(plugins.removes))

    profile.settings = _keyed(get(Section.SETTINGS), values.settings)

    perms = get(Section.PERMISSIONS)
    add_allow, add_deny = _split_rules(perms.adds)
    remove_allow, remove_deny = _split_rules(perms.removes)
    profile.permissions = PermissionsDiff(add_allow, add_deny, remove_allow, remove_deny)

    claude_md = get(Section.CLAUDE_MD)
    profile.claude_md = ListDiff(sorted_keys(claude_md.adds), sorted_keys(claude_md.removes))

    mcp = _keyed(get(Section.MCP), values.mcp)
    if mcp.add and redact is not None:
        mcp.add = redact(mcp.add)
    profile.mcp = mcp

    profile.hooks = _keyed(get(Section.HOOKS), values.hooks)

    kb = get(Section.KEYBINDINGS)
    if KEYBINDINGS_KEY in kb.adds:
        profile.keybindings = KeybindingsOverride(override=dict(values.keybindings))
    elif KEYBINDINGS_KEY in kb.removes:
        profile.keybindings = KeybindingsOverride(exclude=True)

    cs = get(Section.COMMANDS_SKILLS)
    add_cmds, add_skills = split_cmd_skill_keys(cs.adds)
    remove_cmds, remove_skills = split_cmd_skill_keys(cs.removes)
    profile.commands = ListDiff(sorted(add_cmds), sorted(remove_cmds))
    profile.skills = ListDiff(sorted(add_skills), sorted(remove_skills))

    return profile


def empty_section_diffs() -> dict[Section, SectionDiff]:
    return {section: SectionDiff() for section in ALL_SECTIONS}
