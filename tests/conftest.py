"""Pytest configuration and shared fixtures for cc-sync tests."""

import pytest

import cc_sync.io.logging_setup
from cc_sync.app.context import WizardContext
from cc_sync.core import claudemd
from cc_sync.core.scan import CmdSkillItem, ItemSource, ItemType, Permissions, ScanResult

CLAUDE_MD = """Global preamble text.

## Git Workflow
Always rebase.

## Testing
Run pytest before pushing.
"""


def make_scan() -> ScanResult:
    """A small but complete inventory: every section has at least one item."""
    return ScanResult(
        plugin_keys=["alpha@market", "beta@market", "local-tool@local"],
        upstream=["alpha@market", "beta@market"],
        auto_forked=["local-tool@local"],
        settings={"model": "opus", "verbose": True, "maxTokens": 4096},
        hooks={
            "PreToolUse": [{"matcher": "Bash", "hooks": [{"type": "command", "command": "lint.sh"}]}],
            "Stop": [{"hooks": [{"type": "command", "command": "notify.sh"}]}],
        },
        permissions=Permissions(allow=["Bash(git:*)", "Read"], deny=["Bash(rm:*)"]),
        claude_md_sections=claudemd.split(CLAUDE_MD),
        mcp={"github": {"command": "gh-mcp"}, "linear": {"command": "linear-mcp"}},
        keybindings={"ctrl+k": "clear"},
        commands_skills=[
            CmdSkillItem("review", ItemType.COMMAND, ItemSource.GLOBAL, "global", content="# review"),
            CmdSkillItem("deploy", ItemType.SKILL, ItemSource.GLOBAL, "global", content="deploy it"),
            CmdSkillItem("lint", ItemType.COMMAND, ItemSource.PLUGIN, "alpha", content="lint all"),
        ],
    )


@pytest.fixture
def scan():
    return make_scan()


@pytest.fixture
def context(scan):
    return WizardContext(scan, redact=None)


@pytest.fixture
def isolated_settings(tmp_path, monkeypatch):
    """Point the settings file at a temp XDG_CONFIG_HOME."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    return tmp_path / "config" / "cc-sync" / "settings.json"


@pytest.fixture
def isolated_logging(tmp_path, monkeypatch):
    """Route the log file into tmp_path and undo handler wiring afterwards."""
    log_file = tmp_path / "logs" / "wizard.log"
    monkeypatch.setenv("CC_SYNC_LOG_FILE", str(log_file))
    monkeypatch.delenv("CC_SYNC_LOG_LEVEL", raising=False)
    cc_sync.io.logging_setup.reset()
    yield log_file
    cc_sync.io.logging_setup.reset()
