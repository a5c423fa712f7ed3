"""Set arithmetic between a Base key set and a profile key set.

A profile stores only its deviation from Base. The effective selection is
always recomputed from the current Base, so a Base change after the diff was
taken flows into the profile instead of being masked by a stale snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from cc_sync.core.sections import CMD_PREFIX, SKILL_PREFIX


@dataclass
class SectionDiff:
    adds: set[str] = field(default_factory=set)  # in profile, not in Base
    removes: set[str] = field(default_factory=set)  # in Base, not in profile

    @property
    def is_empty(self) -> bool:
        return not self.adds and not self.removes

    def effective_keys(self, base_keys: Iterable[str] | None) -> set[str]:
        return effective_keys(self, base_keys)

    def copy(self) -> SectionDiff:
        return SectionDiff(set(self.adds), set(self.removes))


def compute_diff(
    base_keys: Iterable[str] | None, profile_keys: Iterable[str] | None
) -> SectionDiff:
    base = set(base_keys or ())
    profile = set(profile_keys or ())
    return SectionDiff(adds=profile - base, removes=base - profile)


def effective_keys(diff: SectionDiff | None, base_keys: Iterable[str] | None) -> set[str]:
    """(Base - removes) | adds. Order-independent; never cached."""
    base = set(base_keys or ())
    if diff is None:
        return base
    return (base - diff.removes) | diff.adds


def sorted_keys(keys: Iterable[str]) -> list[str]:
    return sorted(keys)


def split_cmd_skill_keys(keys: Iterable[str]) -> tuple[list[str], list[str]]:
    """Partition Commands & Skills keys by kind. Unprefixed keys are dropped."""
    cmds: list[str] = []
    skills: list[str] = []
    for k in keys:
        if k.startswith(CMD_PREFIX):
            cmds.append(k)
        elif k.startswith(SKILL_PREFIX):
            skills.append(k)
    return cmds, skills
