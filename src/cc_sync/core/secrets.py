"""Credential detection for MCP server env blocks.

Flagged values are replaced with ${KEY} references so shared bundles never
carry literal secrets.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

SecretRedactor = Callable[[dict[str, Any]], dict[str, Any]]

_SECRET_KEY_SUFFIXES = ("_KEY", "_TOKEN", "_SECRET", "_PASSWORD", "_API_KEY", "_APIKEY")

# Known credential prefixes from common services.
_SECRET_VALUE_PREFIXES = (
    "sk-",
    "rnd_",
    "NRAK-",
    "xoxc-",
    "xoxd-",
    "xoxb-",
    "xoxp-",
    "shpat_",
    "pa-",
    "live_",
)

_LONG_VALUE_MIN = 32
_LONG_VALUE_ALNUM_RATIO = 0.8


@dataclass(frozen=True)
class DetectedSecret:
    server_name: str
    env_key: str
    value: str
    reason: str


def is_templated(value: str) -> bool:
    return value.startswith("${") and value.endswith("}")


def classify_secret(key: str, value: str) -> str:
    """Reason string when key/value looks like a credential, else ""."""
    upper = key.upper()
    for suffix in _SECRET_KEY_SUFFIXES:
        if upper.endswith(suffix):
            return f"key matches *{suffix}"
    for prefix in _SECRET_VALUE_PREFIXES:
        if value.startswith(prefix):
            return f"value matches {prefix}* prefix"
    if len(value) >= _LONG_VALUE_MIN:
        alnum = sum(1 for ch in value if ch.isalnum())
        if alnum / len(value) >= _LONG_VALUE_ALNUM_RATIO:
            return "long alphanumeric string (likely credential)"
    return ""


def detect_mcp_secrets(servers: dict[str, Any]) -> list[DetectedSecret]:
    """Scan server configs' env maps. Sorted by (server, key)."""
    found: list[DetectedSecret] = []
    for name, cfg in servers.items():
        env = cfg.get("env") if isinstance(cfg, dict) else None
        if not isinstance(env, dict):
            continue
        for key, value in env.items():
            if not isinstance(value, str) or is_templated(value):
                continue
            reason = classify_secret(str(key), value)
            if reason:
                found.append(DetectedSecret(name, str(key), value, reason))
    found.sort(key=lambda s: (s.server_name, s.env_key))
    return found


def replace_secrets(
    servers: dict[str, Any], secrets: list[DetectedSecret]
) -> dict[str, Any]:
    """Copy of `servers` with each detected env value rewritten to ${KEY}."""
    by_server: dict[str, set[str]] = {}
    for s in secrets:
        by_server.setdefault(s.server_name, set()).add(s.env_key)

    result: dict[str, Any] = {}
    for name, cfg in servers.items():
        keys = by_server.get(name)
        if not keys or not isinstance(cfg, dict) or not isinstance(cfg.get("env"), dict):
            result[name] = cfg
            continue
        replaced = copy.deepcopy(cfg)
        for key in keys:
            replaced["env"][key] = "${" + key + "}"
        result[name] = replaced
    return result


def redact_mcp_servers(servers: dict[str, Any]) -> dict[str, Any]:
    """Default redactor: detect then replace."""
    secrets = detect_mcp_secrets(servers)
    if not secrets:
        return servers
    logger.info("redacted %d MCP secret value(s)", len(secrets))
    return replace_secrets(servers, secrets)
