"""CLAUDE.md splitting into named fragments.

A document is split at level-two headings ("## "). Text before the first
heading becomes the preamble fragment.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

PREAMBLE_FRAGMENT = "_preamble"
PREAMBLE_LABEL = "(preamble)"

_NON_ALNUM_HYPHEN = re.compile(r"[^a-z0-9-]")
_MULTI_HYPHEN = re.compile(r"-{2,}")


@dataclass(frozen=True)
class ClaudeMDSection:
    header: str  # "" for the preamble
    content: str

    @property
    def fragment_name(self) -> str:
        return header_to_fragment_name(self.header)

    @property
    def label(self) -> str:
        return self.header or PREAMBLE_LABEL


def split(content: str) -> list[ClaudeMDSection]:
    """Split CLAUDE.md content into sections. Blank input yields no sections."""
    if not content.strip():
        return []

    sections: list[ClaudeMDSection] = []
    current: list[str] = []
    header = ""
    in_preamble = True

    for line in content.split("\n"):
        if line.startswith("## "):
            if in_preamble:
                if current and "\n".join(current).strip():
                    sections.append(ClaudeMDSection("", "\n".join(current)))
                in_preamble = False
            else:
                sections.append(ClaudeMDSection(header, "\n".join(current)))
            header = line[3:].strip()
            current = [line]
            continue
        current.append(line)

    if in_preamble:
        if "\n".join(current).strip():
            sections.append(ClaudeMDSection("", "\n".join(current)))
    else:
        sections.append(ClaudeMDSection(header, "\n".join(current)))
    return sections


def header_to_fragment_name(header: str) -> str:
    """Slugify a heading into a fragment name ("Git Workflow" -> "git-workflow")."""
    if not header:
        return PREAMBLE_FRAGMENT
    slug = header.lower().replace(" ", "-")
    slug = _NON_ALNUM_HYPHEN.sub("", slug)
    slug = _MULTI_HYPHEN.sub("-", slug)
    return slug.strip("-")
