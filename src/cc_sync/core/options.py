"""The options bundle handed to the sync layer when the wizard finishes.

Collections follow a nil-vs-empty convention:

* ``None``: everything (no filter);
* empty: explicitly nothing;
* populated: exactly these.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from cc_sync.core.profiles import Profile
from cc_sync.core.scan import Permissions


@dataclass
class InitOptions:
    include_plugins: list[str] | None = None
    include_settings: bool = False
    settings_filter: list[str] | None = None
    permissions: Permissions = field(default_factory=Permissions)
    import_claude_md: bool = False
    claude_md_fragments: list[str] | None = None
    # Discovered CLAUDE.md fragments: source path -> fragment names.
    project_claude_md: dict[str, list[str]] = field(default_factory=dict)
    mcp: dict[str, Any] = field(default_factory=dict)
    include_hooks: dict[str, Any] = field(default_factory=dict)
    keybindings: dict[str, Any] | None = None
    commands: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)
    profiles: dict[str, Profile] | None = None

    def to_dict(self) -> dict:
        """JSON-ready form. None values are kept so "all" stays distinguishable from "none"."""
        return {
            "include_plugins": self.include_plugins,
            "include_settings": self.include_settings,
            "settings_filter": self.settings_filter,
            "permissions": self.permissions.to_dict(),
            "import_claude_md": self.import_claude_md,
            "claude_md_fragments": self.claude_md_fragments,
            "project_claude_md": {k: list(v) for k, v in self.project_claude_md.items()},
            "mcp": dict(self.mcp),
            "include_hooks": dict(self.include_hooks),
            "keybindings": self.keybindings,
            "commands": list(self.commands),
            "skills": list(self.skills),
            "profiles": (
                None
                if self.profiles is None
                else {name: p.to_dict() for name, p in sorted(self.profiles.items())}
            ),
        }
