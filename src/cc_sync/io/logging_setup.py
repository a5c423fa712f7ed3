"""Where the wizard's log records go.

While the Textual screen is up, anything written to stderr tears the UI, so
stderr only sees warnings (bad input files, an empty scan). Discovery workers
and profile edits log at INFO into a per-run file that outlives the session:

    $CC_SYNC_LOG_FILE, or $CC_SYNC_LOG_DIR/wizard-<utc>-<pid>.log
    (default dir ~/.local/share/cc-sync/logs)

// [LAW:single-enforcer] Logger handler wiring is enforced in this module only.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

ROOT_LOGGER = "cc_sync"

_STDERR_FORMAT = "[%(name)s] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s"
# A wizard run is short; one rollover keeps a runaway discovery loop bounded.
_FILE_MAX_BYTES = 2 * 1024 * 1024
_FILE_BACKUPS = 1


@dataclass(frozen=True)
class LoggingRuntime:
    """Level and file chosen by configure(); the CLI logs them at startup."""

    level_name: str
    level: int
    file_path: str


_RUNTIME: LoggingRuntime | None = None


def _resolve_level(raw: str | None) -> tuple[str, int]:
    """Unknown names fall back to INFO rather than failing the run."""
    level = logging.getLevelName(str(raw or "INFO").strip().upper())
    if not isinstance(level, int):
        level = logging.INFO
    return logging.getLevelName(level), level


def _run_log_file() -> str:
    explicit = os.environ.get("CC_SYNC_LOG_FILE")
    if explicit:
        return explicit
    log_dir = os.environ.get("CC_SYNC_LOG_DIR") or os.path.expanduser("~/.local/share/cc-sync/logs")
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return os.path.join(log_dir, f"wizard-{stamp}-{os.getpid()}.log")


def _stderr_handler() -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(logging.WARNING)
    handler.setFormatter(logging.Formatter(_STDERR_FORMAT))
    return handler


def _file_handler(level: int, file_path: str) -> logging.Handler:
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        file_path, maxBytes=_FILE_MAX_BYTES, backupCount=_FILE_BACKUPS, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))
    return handler


def configure(level: str | None = None) -> LoggingRuntime:
    """Attach the stderr and run-file handlers to the cc_sync logger.

    `level` (the --log-level flag) wins over CC_SYNC_LOG_LEVEL. Only the first
    call wires handlers; later calls return the same runtime.
    """
    global _RUNTIME
    if _RUNTIME is not None:
        return _RUNTIME

    level_name, level_value = _resolve_level(level or os.environ.get("CC_SYNC_LOG_LEVEL"))
    file_path = _run_log_file()

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level_value)
    # Records stop here so a host application's root handlers never see wizard noise.
    logger.propagate = False
    logger.handlers.clear()
    logger.addHandler(_stderr_handler())
    logger.addHandler(_file_handler(level_value, file_path))

    _RUNTIME = LoggingRuntime(level_name=level_name, level=level_value, file_path=file_path)
    return _RUNTIME


def get_runtime() -> LoggingRuntime | None:
    return _RUNTIME


def reset() -> None:
    """Close and detach the handlers so configure() can wire them again."""
    global _RUNTIME
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    _RUNTIME = None
