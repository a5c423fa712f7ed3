"""Immutable values produced by background discovery scans.

A scan runs off the UI loop and communicates back exactly once with one
DiscoveryResult. Values are frozen so they can cross the thread boundary
without copying.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from cc_sync.core.sections import Section


@dataclass(frozen=True)
class DiscoveredItem:
    key: str
    value: Any  # MCP server config, CmdSkillItem or ClaudeMDSection
    provenance: str  # shortened source path or project label


@dataclass(frozen=True)
class DiscoveryResult:
    section: Section
    items: tuple[DiscoveredItem, ...] = ()

    @classmethod
    def empty(cls, section: Section) -> DiscoveryResult:
        return cls(section)

    def __len__(self) -> int:
        return len(self.items)
