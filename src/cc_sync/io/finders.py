"""Filesystem discovery scanners.

Each scanner locates candidate files under the home directory with `fd`,
falling back to `find`, reads what it finds and returns one DiscoveryResult.
The global ~/.claude copies are skipped (the initial scan already has them).

A missing tool, unreadable file or malformed document never raises: it only
shrinks the result.

// [LAW:locality-or-seam] External tool invocation is isolated behind run/which.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Sequence

import yaml

from cc_sync.core import claudemd
from cc_sync.core.discovered import DiscoveredItem, DiscoveryResult
from cc_sync.core.items import fragment_key
from cc_sync.core.scan import CmdSkillItem, ItemSource, ItemType
from cc_sync.core.sections import Section
from cc_sync.io.settings import DiscoverySettings

logger = logging.getLogger(__name__)

Runner = Callable[[Sequence[str]], subprocess.CompletedProcess]
Which = Callable[[str], "str | None"]


def run_command(cmd: Sequence[str]) -> subprocess.CompletedProcess:
    return subprocess.run(list(cmd), capture_output=True, text=True, check=False)


def _lines(output: str | None) -> list[str]:
    return [line.strip() for line in (output or "").split("\n") if line.strip()]


def shorten_path(path: str, home: str | None = None) -> str:
    """Replace the home directory prefix with ~ for display."""
    home = home if home is not None else os.path.expanduser("~")
    if home and path.startswith(home):
        return "~" + path[len(home):]
    return path


def find_paths(
    root: str,
    name: str,
    *,
    fd_pattern: str | None = None,
    directories: bool = False,
    hidden: bool = False,
    settings: DiscoverySettings | None = None,
    run: Runner = run_command,
    which: Which = shutil.which,
) -> list[str]:
    """Paths under `root` whose basename equals `name`, sorted.

    fd output is used when fd exists and succeeds; otherwise whatever find
    printed is used, even when it exits non-zero (permission errors).
    """
    settings = settings or DiscoverySettings()
    depth = str(settings.max_depth)
    raw: list[str] = []

    fd = which("fd")
    if fd:
        cmd = [fd]
        if hidden:
            cmd.append("-H")
        cmd += ["-I", "-t", "d" if directories else "f", "-d", depth, fd_pattern or name, root]
        for exclude in settings.excludes:
            cmd += ["-E", exclude]
        try:
            result = run(cmd)
        except OSError as exc:
            logger.debug("fd failed: %s", exc)
        else:
            if result.returncode == 0:
                raw = _lines(result.stdout)

    if not raw:
        cmd = ["find", root, "-maxdepth", depth]
        if directories:
            cmd += ["-type", "d"]
        cmd += ["-name", name]
        for exclude in settings.excludes:
            cmd += ["-not", "-path", f"*/{exclude}/*"]
        try:
            raw = _lines(run(cmd).stdout)
        except OSError as exc:
            logger.warning("find failed: %s", exc)
            return []

    return sorted({p.rstrip("/") for p in raw if os.path.basename(p.rstrip("/")) == name})


def _same_path(a: str, b: str) -> bool:
    return os.path.abspath(a) == os.path.abspath(b)


def _read_text(path: str) -> str | None:
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("skipping unreadable %s: %s", path, exc)
        return None


# ─── CLAUDE.md ───────────────────────────────────────────────────────────────


def search_claude_md(
    home: str | None = None,
    *,
    settings: DiscoverySettings | None = None,
    run: Runner = run_command,
    which: Which = shutil.which,
) -> DiscoveryResult:
    """Fragments of every project CLAUDE.md, keyed <source>::<fragment>."""
    home = home or os.path.expanduser("~")
    global_path = os.path.join(home, ".claude", "CLAUDE.md")
    found: dict[str, DiscoveredItem] = {}
    for path in find_paths(home, "CLAUDE.md", settings=settings, run=run, which=which):
        if _same_path(path, global_path):
            continue
        content = _read_text(path)
        if content is None:
            continue
        source = shorten_path(path, home)
        for section in claudemd.split(content):
            key = fragment_key(section.fragment_name, source)
            found.setdefault(key, DiscoveredItem(key, section, source))
    return DiscoveryResult(Section.CLAUDE_MD, tuple(found.values()))


# ─── .mcp.json ───────────────────────────────────────────────────────────────


def read_mcp_config(path: str) -> dict:
    """The mcpServers map of an .mcp.json file; {} when absent or malformed."""
    content = _read_text(path)
    if content is None:
        return {}
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        logger.debug("skipping malformed %s: %s", path, exc)
        return {}
    servers = data.get("mcpServers") if isinstance(data, dict) else None
    return servers if isinstance(servers, dict) else {}


def search_mcp_configs(
    home: str | None = None,
    *,
    settings: DiscoverySettings | None = None,
    run: Runner = run_command,
    which: Which = shutil.which,
) -> DiscoveryResult:
    """Servers from project .mcp.json files. First-found wins per server name."""
    home = home or os.path.expanduser("~")
    global_path = os.path.join(home, ".claude", ".mcp.json")
    found: dict[str, DiscoveredItem] = {}
    paths = find_paths(home, ".mcp.json", hidden=True, settings=settings, run=run, which=which)
    for path in paths:
        if _same_path(path, global_path):
            continue
        source = shorten_path(os.path.dirname(path), home)
        for name, cfg in read_mcp_config(path).items():
            found.setdefault(name, DiscoveredItem(name, cfg, source))
    return DiscoveryResult(Section.MCP, tuple(found.values()))


# ─── Commands & skills ───────────────────────────────────────────────────────


def _field(fields: dict, key: str) -> str:
    value = fields.get(key)
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def parse_frontmatter(content: str) -> tuple[str, str]:
    """(name, description) from a leading --- YAML block; ("", "") without one.

    A block that is not valid YAML, or not a mapping, counts as absent.
    """
    if not content.startswith("---"):
        return "", ""
    _, newline, rest = content[3:].partition("\n")
    if not newline:
        return "", ""
    block, fence, _ = ("\n" + rest).partition("\n---")
    if not fence:
        return "", ""
    try:
        fields = yaml.safe_load(block)
    except yaml.YAMLError as e:
        logger.debug("unparseable frontmatter: %s", e)
        return "", ""
    if not isinstance(fields, dict):
        return "", ""
    return _field(fields, "name"), _field(fields, "description")


def _scan_commands(claude_dir: Path, label: str) -> list[CmdSkillItem]:
    commands_dir = claude_dir / "commands"
    if not commands_dir.is_dir():
        return []
    items = []
    for entry in sorted(commands_dir.iterdir()):
        if entry.is_dir() or entry.suffix != ".md":
            continue
        content = _read_text(str(entry))
        if content is None:
            continue
        items.append(CmdSkillItem(
            name=entry.stem,
            type=ItemType.COMMAND,
            source=ItemSource.PROJECT,
            source_label=label,
            file_path=str(entry),
            description=parse_frontmatter(content)[1],
            content=content,
        ))
    return items


def _scan_skills(claude_dir: Path, label: str) -> list[CmdSkillItem]:
    skills_dir = claude_dir / "skills"
    if not skills_dir.is_dir():
        return []
    items = []
    for entry in sorted(skills_dir.iterdir()):
        skill_file = entry / "SKILL.md"
        if not entry.is_dir() or not skill_file.is_file():
            continue
        content = _read_text(str(skill_file))
        if content is None:
            continue
        items.append(CmdSkillItem(
            name=entry.name,
            type=ItemType.SKILL,
            source=ItemSource.PROJECT,
            source_label=label,
            file_path=str(skill_file),
            description=parse_frontmatter(content)[1],
            content=content,
        ))
    return items


def scan_project_commands_skills(project_dir: str) -> list[CmdSkillItem]:
    """Commands (.claude/commands/*.md) and skills (.claude/skills/*/SKILL.md) of one project."""
    root = Path(project_dir)
    claude_dir = root / ".claude"
    label = root.name
    try:
        return _scan_commands(claude_dir, label) + _scan_skills(claude_dir, label)
    except OSError as exc:
        logger.debug("skipping project %s: %s", project_dir, exc)
        return []


def search_commands_skills(
    home: str | None = None,
    *,
    settings: DiscoverySettings | None = None,
    run: Runner = run_command,
    which: Which = shutil.which,
) -> DiscoveryResult:
    """Project-local commands and skills from every .claude directory except ~/.claude."""
    home = home or os.path.expanduser("~")
    global_dir = os.path.join(home, ".claude")
    found: dict[str, DiscoveredItem] = {}
    dirs = find_paths(
        home, ".claude",
        fd_pattern="^.claude$", directories=True, hidden=True,
        settings=settings, run=run, which=which,
    )
    for path in dirs:
        if _same_path(path, global_dir):
            continue
        for item in scan_project_commands_skills(os.path.dirname(path)):
            found.setdefault(item.key, DiscoveredItem(item.key, item, item.source_label))
    return DiscoveryResult(Section.COMMANDS_SKILLS, tuple(found.values()))


def default_scanners(
    settings: DiscoverySettings | None = None, home: str | None = None
) -> dict[Section, Callable[[], DiscoveryResult]]:
    """The three discovery scanners bound to one home directory and settings."""
    return {
        Section.CLAUDE_MD: lambda: search_claude_md(home, settings=settings),
        Section.MCP: lambda: search_mcp_configs(home, settings=settings),
        Section.COMMANDS_SKILLS: lambda: search_commands_skills(home, settings=settings),
    }
