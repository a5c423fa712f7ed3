"""Tagged setting values.

Settings arrive as arbitrary JSON. Each value is tagged once on the way in so
display formatting and persistence dispatch on the tag instead of inspecting
types at every call site.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable


class ValueKind(Enum):
    STRING = "string"
    BOOL = "bool"
    NUMBER = "number"
    STRUCTURED = "structured"


_MAX_STRUCTURED_DISPLAY = 60


def _format_number(raw) -> str:
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    return str(raw)


def _format_structured(raw) -> str:
    text = json.dumps(raw, sort_keys=True, separators=(",", ":"), default=str)
    if len(text) > _MAX_STRUCTURED_DISPLAY:
        return text[: _MAX_STRUCTURED_DISPLAY - 3] + "..."
    return text


# [LAW:dataflow-not-control-flow] Display dispatch table keyed by tag.
_FORMATTERS: dict[ValueKind, Callable[[Any], str]] = {
    ValueKind.STRING: str,
    ValueKind.BOOL: lambda raw: "true" if raw else "false",
    ValueKind.NUMBER: _format_number,
    ValueKind.STRUCTURED: _format_structured,
}


@dataclass(frozen=True)
class SettingValue:
    """A JSON value with its kind resolved up front."""

    kind: ValueKind
    raw: Any

    @classmethod
    def from_json(cls, raw: Any) -> SettingValue:
        # bool is a subclass of int; it must be classified first.
        if isinstance(raw, bool):
            return cls(ValueKind.BOOL, raw)
        if isinstance(raw, (int, float)):
            return cls(ValueKind.NUMBER, raw)
        if isinstance(raw, str):
            return cls(ValueKind.STRING, raw)
        return cls(ValueKind.STRUCTURED, raw)

    def display(self) -> str:
        return _FORMATTERS[self.kind](self.raw)

    def to_json(self) -> Any:
        return self.raw
