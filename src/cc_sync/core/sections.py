"""Configuration sections and the key conventions shared across them.

This module is pure data, safe for `from` imports.

// [LAW:one-source-of-truth] Section order and key prefixes are defined here only.
"""

from enum import Enum


class Section(Enum):
    PLUGINS = "plugins"
    SETTINGS = "settings"
    CLAUDE_MD = "claude_md"
    PERMISSIONS = "permissions"
    MCP = "mcp"
    KEYBINDINGS = "keybindings"
    HOOKS = "hooks"
    COMMANDS_SKILLS = "commands_skills"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS: dict[Section, str] = {
    Section.PLUGINS: "Plugins",
    Section.SETTINGS: "Settings",
    Section.CLAUDE_MD: "CLAUDE.md",
    Section.PERMISSIONS: "Permissions",
    Section.MCP: "MCP",
    Section.KEYBINDINGS: "Keybindings",
    Section.HOOKS: "Hooks",
    Section.COMMANDS_SKILLS: "Commands & Skills",
}

# Sidebar display order.
ALL_SECTIONS: tuple[Section, ...] = tuple(Section)

# Sections whose pickers carry the [+ Search projects] action row.
DISCOVERY_SECTIONS: tuple[Section, ...] = (
    Section.CLAUDE_MD,
    Section.MCP,
    Section.COMMANDS_SKILLS,
)

BASE_TAB = "Base"

ALLOW_PREFIX = "allow:"
DENY_PREFIX = "deny:"
CMD_PREFIX = "cmd:"
SKILL_PREFIX = "skill:"
KEYBINDINGS_KEY = "keybindings"

# Separator between a discovered CLAUDE.md source and its fragment name.
FRAGMENT_SOURCE_SEP = "::"

GLOBAL_CLAUDE_MD_SOURCE = "~/.claude/CLAUDE.md"
GLOBAL_MCP_SOURCE = "~/.claude/.mcp.json"
PLUGIN_DIR_PREFIX = "~/.claude/plugins/"
