"""Tests for the filesystem discovery scanners.

External tools are replaced by a fake runner that prints a fixed listing, so
only the command construction and the file reading are exercised.
"""

import json
import subprocess

import pytest

from cc_sync.core.scan import ItemSource, ItemType
from cc_sync.core.sections import Section
from cc_sync.io.finders import (
    default_scanners,
    find_paths,
    parse_frontmatter,
    read_mcp_config,
    scan_project_commands_skills,
    search_claude_md,
    search_commands_skills,
    search_mcp_configs,
    shorten_path,
)
from cc_sync.io.settings import DiscoverySettings


class FakeRunner:
    """Answers fd and find with canned output and records every command."""

    def __init__(self, fd_output="", find_output="", fd_code=0, find_code=0):
        self.fd_output = fd_output
        self.find_output = find_output
        self.fd_code = fd_code
        self.find_code = find_code
        self.calls = []

    def __call__(self, cmd):
        self.calls.append(list(cmd))
        if cmd[0] == "find":
            return subprocess.CompletedProcess(cmd, self.find_code, self.find_output, "")
        return subprocess.CompletedProcess(cmd, self.fd_code, self.fd_output, "")


def _with_fd(name):
    return "/usr/bin/fd" if name == "fd" else None


def _without_fd(name):
    return None


def _write(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestFindPaths:
    def test_fd_command_and_output(self):
        run = FakeRunner(fd_output="/h/a/CLAUDE.md\n/h/b/CLAUDE.md\n/h/a/CLAUDE.md\n")
        settings = DiscoverySettings(max_depth=3, excludes=("node_modules",))
        paths = find_paths("/h", "CLAUDE.md", settings=settings, run=run, which=_with_fd)
        assert paths == ["/h/a/CLAUDE.md", "/h/b/CLAUDE.md"]
        assert run.calls == [[
            "/usr/bin/fd", "-I", "-t", "f", "-d", "3", "CLAUDE.md", "/h", "-E", "node_modules",
        ]]

    def test_fd_directories_hidden_with_pattern(self):
        run = FakeRunner(fd_output="/h/p/.claude/\n")
        paths = find_paths(
            "/h", ".claude", fd_pattern="^.claude$", directories=True, hidden=True,
            settings=DiscoverySettings(excludes=()), run=run, which=_with_fd,
        )
        assert paths == ["/h/p/.claude"]
        assert run.calls[0][:5] == ["/usr/bin/fd", "-H", "-I", "-t", "d"]
        assert "^.claude$" in run.calls[0]

    def test_falls_back_to_find_without_fd(self):
        run = FakeRunner(find_output="/h/x/.mcp.json\n")
        settings = DiscoverySettings(max_depth=2, excludes=(".git",))
        paths = find_paths("/h", ".mcp.json", settings=settings, run=run, which=_without_fd)
        assert paths == ["/h/x/.mcp.json"]
        assert run.calls == [[
            "find", "/h", "-maxdepth", "2", "-name", ".mcp.json", "-not", "-path", "*/.git/*",
        ]]

    def test_falls_back_to_find_when_fd_fails(self):
        run = FakeRunner(fd_output="garbage", fd_code=1, find_output="/h/CLAUDE.md")
        assert find_paths("/h", "CLAUDE.md", run=run, which=_with_fd) == ["/h/CLAUDE.md"]
        assert [c[0] for c in run.calls] == ["/usr/bin/fd", "find"]

    def test_find_output_used_despite_error_exit(self):
        run = FakeRunner(find_output="/h/ok/CLAUDE.md\n", find_code=1)
        assert find_paths("/h", "CLAUDE.md", run=run, which=_without_fd) == ["/h/ok/CLAUDE.md"]

    def test_find_type_flag_for_directories(self):
        run = FakeRunner()
        find_paths("/h", ".claude", directories=True, settings=DiscoverySettings(excludes=()),
                   run=run, which=_without_fd)
        assert run.calls[0] == ["find", "/h", "-maxdepth", "4", "-type", "d", "-name", ".claude"]

    def test_basename_filter(self):
        run = FakeRunner(find_output="/h/NOTCLAUDE.md\n/h/a/CLAUDE.md\n")
        assert find_paths("/h", "CLAUDE.md", run=run, which=_without_fd) == ["/h/a/CLAUDE.md"]

    def test_missing_tools_yield_nothing(self):
        def run(cmd):
            raise FileNotFoundError(cmd[0])

        assert find_paths("/h", "CLAUDE.md", run=run, which=_with_fd) == []


@pytest.mark.parametrize(
    "path, expected",
    [
        pytest.param("/home/u/proj", "~/proj", id="inside-home"),
        pytest.param("/srv/proj", "/srv/proj", id="outside-home"),
    ],
)
def test_shorten_path(path, expected):
    assert shorten_path(path, "/home/u") == expected


class TestSearchClaudeMd:
    def test_project_fragments_keyed_by_source(self, tmp_path):
        home = str(tmp_path)
        project = _write(tmp_path / "site" / "CLAUDE.md", "## Deploy\nuse make\n## Style\nblack\n")
        global_md = _write(tmp_path / ".claude" / "CLAUDE.md", "## Global\nskip me\n")
        run = FakeRunner(find_output=f"{project}\n{global_md}\n")

        result = search_claude_md(home, run=run, which=_without_fd)

        assert result.section is Section.CLAUDE_MD
        assert [item.key for item in result.items] == [
            "~/site/CLAUDE.md::deploy",
            "~/site/CLAUDE.md::style",
        ]
        assert {item.provenance for item in result.items} == {"~/site/CLAUDE.md"}
        assert result.items[0].value.header == "Deploy"

    def test_unreadable_file_is_skipped(self, tmp_path):
        run = FakeRunner(find_output=f"{tmp_path / 'gone' / 'CLAUDE.md'}\n")
        assert len(search_claude_md(str(tmp_path), run=run, which=_without_fd)) == 0


class TestSearchMcpConfigs:
    def test_first_found_wins_and_global_skipped(self, tmp_path):
        a = _write(tmp_path / "a" / ".mcp.json", json.dumps({"mcpServers": {"web": {"command": "a"}}}))
        b = _write(tmp_path / "b" / ".mcp.json", json.dumps(
            {"mcpServers": {"web": {"command": "b"}, "db": {"command": "b"}}}
        ))
        g = _write(tmp_path / ".claude" / ".mcp.json", json.dumps({"mcpServers": {"g": {}}}))
        run = FakeRunner(find_output=f"{b}\n{a}\n{g}\n")

        result = search_mcp_configs(str(tmp_path), run=run, which=_without_fd)

        by_key = {item.key: item for item in result.items}
        assert set(by_key) == {"web", "db"}
        assert by_key["web"].value == {"command": "a"}
        assert by_key["web"].provenance == "~/a"

    @pytest.mark.parametrize(
        "content",
        [
            pytest.param("{not json", id="malformed"),
            pytest.param("[]", id="not-object"),
            pytest.param('{"mcpServers": []}', id="servers-not-object"),
        ],
    )
    def test_read_mcp_config_tolerates_bad_files(self, tmp_path, content):
        path = _write(tmp_path / ".mcp.json", content)
        assert read_mcp_config(str(path)) == {}

    def test_read_missing_file(self, tmp_path):
        assert read_mcp_config(str(tmp_path / "absent.json")) == {}


class TestFrontmatter:
    @pytest.mark.parametrize(
        "content, expected",
        [
            pytest.param("---\nname: ship\ndescription: Ship it\n---\nbody", ("ship", "Ship it"), id="plain"),
            pytest.param('---\ndescription: "Quoted: yes"\n---\n', ("", "Quoted: yes"), id="quoted"),
            pytest.param("no frontmatter", ("", ""), id="absent"),
            pytest.param("---\nname: open\n", ("", ""), id="unterminated"),
            pytest.param(
                '---\nname: x\ndescription: "say \\"hi\\""\n---\n', ("x", 'say "hi"'), id="escaped-quotes"
            ),
            pytest.param(
                "---\ndescription: >-\n  first line\n  second line\n---\n",
                ("", "first line second line"),
                id="folded",
            ),
            pytest.param("---\n---\nbody", ("", ""), id="empty-block"),
            pytest.param("---\nname: [unclosed\n---\n", ("", ""), id="invalid-yaml"),
            pytest.param("---\n- a\n- b\n---\n", ("", ""), id="not-a-mapping"),
            pytest.param("---\nname: 42\n---\n", ("42", ""), id="scalar-coerced"),
        ],
    )
    def test_parse_frontmatter(self, content, expected):
        assert parse_frontmatter(content) == expected


class TestCommandsSkills:
    def _project(self, tmp_path):
        claude = tmp_path / "site" / ".claude"
        _write(claude / "commands" / "ship.md", "---\ndescription: Ship it\n---\nrun ship")
        _write(claude / "commands" / "notes.txt", "ignored")
        _write(claude / "skills" / "deploy" / "SKILL.md", "deploy steps")
        (claude / "skills" / "empty").mkdir(parents=True)
        return claude

    def test_scan_project(self, tmp_path):
        self._project(tmp_path)
        items = scan_project_commands_skills(str(tmp_path / "site"))
        assert [(i.name, i.type) for i in items] == [
            ("ship", ItemType.COMMAND),
            ("deploy", ItemType.SKILL),
        ]
        assert all(i.source is ItemSource.PROJECT and i.source_label == "site" for i in items)
        assert items[0].description == "Ship it"

    def test_project_without_claude_dir(self, tmp_path):
        assert scan_project_commands_skills(str(tmp_path)) == []

    def test_search_skips_global_dir(self, tmp_path):
        claude = self._project(tmp_path)
        _write(tmp_path / ".claude" / "commands" / "global.md", "global")
        run = FakeRunner(find_output=f"{claude}\n{tmp_path / '.claude'}\n")

        result = search_commands_skills(str(tmp_path), run=run, which=_without_fd)

        assert result.section is Section.COMMANDS_SKILLS
        assert [item.key for item in result.items] == [
            "cmd:project:site:ship",
            "skill:project:site:deploy",
        ]
        assert {item.provenance for item in result.items} == {"site"}


def test_default_scanners_cover_discovery_sections():
    scanners = default_scanners(DiscoverySettings(), home="/nonexistent")
    assert set(scanners) == {Section.CLAUDE_MD, Section.MCP, Section.COMMANDS_SKILLS}
