"""Tests for MCP credential detection and redaction."""

import pytest

from cc_sync.core.secrets import (
    classify_secret,
    detect_mcp_secrets,
    redact_mcp_servers,
    replace_secrets,
)


@pytest.mark.parametrize(
    "key, value, flagged",
    [
        pytest.param("GITHUB_TOKEN", "abc", True, id="token-suffix"),
        pytest.param("openai_api_key", "abc", True, id="suffix-case-insensitive"),
        pytest.param("ENDPOINT", "sk-live123", True, id="value-prefix"),
        pytest.param("BLOB", "a" * 40, True, id="long-alnum"),
        pytest.param("URL", "https://example.com/some/long/path/that/is/long", False, id="long-url"),
        pytest.param("REGION", "us-east-1", False, id="plain"),
    ],
)
def test_classify_secret(key, value, flagged):
    assert bool(classify_secret(key, value)) is flagged


def test_detect_skips_templated_and_non_string_values():
    servers = {
        "gh": {"env": {"GITHUB_TOKEN": "${GITHUB_TOKEN}", "PORT": 8080}},
        "slack": {"env": {"SLACK_BOT_TOKEN": "xoxb-123"}},
        "bare": {"command": "x"},
        "odd": "not a dict",
    }
    found = detect_mcp_secrets(servers)
    assert [(s.server_name, s.env_key) for s in found] == [("slack", "SLACK_BOT_TOKEN")]


def test_replace_does_not_mutate_input():
    servers = {"slack": {"command": "s", "env": {"SLACK_BOT_TOKEN": "xoxb-123", "REGION": "eu"}}}
    out = replace_secrets(servers, detect_mcp_secrets(servers))
    assert out["slack"]["env"] == {"SLACK_BOT_TOKEN": "${SLACK_BOT_TOKEN}", "REGION": "eu"}
    assert servers["slack"]["env"]["SLACK_BOT_TOKEN"] == "xoxb-123"


def test_redact_is_idempotent():
    servers = {"svc": {"env": {"API_KEY": "secret"}}}
    once = redact_mcp_servers(servers)
    assert redact_mcp_servers(once) == once


def test_redact_without_secrets_returns_input():
    servers = {"svc": {"command": "run"}}
    assert redact_mcp_servers(servers) is servers
