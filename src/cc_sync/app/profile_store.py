"""Per-profile, per-section diff storage.

Base never has an entry: it is the reference every diff is taken against.
Unknown profile/section lookups return an empty diff instead of raising.
"""

from __future__ import annotations

from typing import Mapping

from cc_sync.core.profiles import empty_section_diffs
from cc_sync.core.section_diff import SectionDiff
from cc_sync.core.sections import BASE_TAB, Section


class ProfileDiffStore:
    def __init__(self):
        self._diffs: dict[str, dict[Section, SectionDiff]] = {}

    def create(self, name: str) -> bool:
        """Register a profile with empty diffs. False for Base or an existing name."""
        if not name or name == BASE_TAB or name in self._diffs:
            return False
        self._diffs[name] = empty_section_diffs()
        return True

    def delete(self, name: str) -> bool:
        return self._diffs.pop(name, None) is not None

    def get(self, name: str, section: Section) -> SectionDiff:
        return self._diffs.get(name, {}).get(section) or SectionDiff()

    def set(self, name: str, section: Section, diff: SectionDiff) -> None:
        if name in self._diffs:
            self._diffs[name][section] = diff

    def replace(self, name: str, diffs: Mapping[Section, SectionDiff]) -> None:
        """Install a full diff map (restored profiles); missing sections become empty."""
        if name not in self._diffs:
            return
        full = empty_section_diffs()
        full.update({section: diff.copy() for section, diff in diffs.items()})
        self._diffs[name] = full

    def diffs(self, name: str) -> dict[Section, SectionDiff]:
        return {section: diff.copy() for section, diff in self._diffs.get(name, {}).items()}

    def profiles(self) -> list[str]:
        """Profile names in creation order."""
        return list(self._diffs)

    def __contains__(self, name: str) -> bool:
        return name in self._diffs
