"""Persisted wizard preferences in $XDG_CONFIG_HOME/cc-sync/settings.json.

Only the project-discovery knobs live here: whether discovery starts with the
wizard, how deep it walks the home directory and which directories it skips.
A file that does not hold a JSON object reads as no preferences, so a bad file
never blocks the wizard.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_MAX_DEPTH = 4
DEFAULT_EXCLUDES: tuple[str, ...] = (
    "node_modules",
    ".git",
    "Library",
    ".cache",
    ".Trash",
    "go/pkg",
)

ENABLED_KEY = "discovery_enabled"
MAX_DEPTH_KEY = "discovery_max_depth"
EXCLUDES_KEY = "discovery_excludes"


def settings_path() -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(config_home) / "cc-sync" / "settings.json"


def read_settings() -> dict:
    # [LAW:dataflow-not-control-flow] Always attempt read; empty dict is the "no data" value.
    try:
        data = json.loads(settings_path().read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def write_settings(data: dict) -> None:
    """Replace the preferences file through a sibling temp file and os.replace."""
    path = settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix="settings-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
            f.write("\n")
        os.replace(tmp_path, path)
    except BaseException:
        Path(tmp_path).unlink(missing_ok=True)
        raise


def update_settings(**changes) -> dict:
    """Merge changes over what is on disk, keeping keys this version does not know."""
    data = read_settings()
    data.update(changes)
    write_settings(data)
    return data


@dataclass(frozen=True)
class DiscoverySettings:
    enabled: bool = True
    max_depth: int = DEFAULT_MAX_DEPTH
    excludes: tuple[str, ...] = field(default=DEFAULT_EXCLUDES)


def load_discovery_settings() -> DiscoverySettings:
    """Discovery knobs with defaults for anything absent or malformed."""
    data = read_settings()
    depth = data.get(MAX_DEPTH_KEY, DEFAULT_MAX_DEPTH)
    if isinstance(depth, bool) or not isinstance(depth, int) or depth < 1:
        depth = DEFAULT_MAX_DEPTH
    excludes = data.get(EXCLUDES_KEY)
    if not isinstance(excludes, list) or not all(isinstance(e, str) for e in excludes):
        excludes = DEFAULT_EXCLUDES
    return DiscoverySettings(
        enabled=bool(data.get(ENABLED_KEY, True)),
        max_depth=depth,
        excludes=tuple(excludes),
    )


def save_discovery_enabled(enabled: bool) -> None:
    update_settings(**{ENABLED_KEY: bool(enabled)})
