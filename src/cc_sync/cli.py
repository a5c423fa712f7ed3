"""CLI entry point for cc-sync."""

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

import cc_sync.io.finders
import cc_sync.io.logging_setup
import cc_sync.io.settings
from cc_sync.app.context import WizardContext
from cc_sync.core.profiles import Profile
from cc_sync.core.scan import ExistingConfig, ScanResult
from cc_sync.core.sections import ALL_SECTIONS, Section

logger = logging.getLogger(__name__)


class InputError(Exception):
    """An input JSON file could not be read or parsed."""


def _skip_flag(section: Section) -> str:
    return "--skip-" + section.value.replace("_", "-")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cc-sync",
        description="Choose which Claude Code configuration to sync, with optional profiles",
    )
    parser.add_argument("--scan", type=Path, required=True, help="Scan result JSON of this machine")
    parser.add_argument(
        "--existing",
        type=Path,
        default=None,
        help="Previously saved sync config JSON (opens the wizard in edit mode)",
    )
    parser.add_argument(
        "--profiles",
        type=Path,
        default=None,
        help="Previously saved profiles JSON ({name: profile})",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Write the resulting options JSON here (default: stdout)",
    )
    parser.add_argument(
        "--no-discovery",
        action="store_true",
        help="Do not search projects at startup (the search row still works)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="Directory depth for project discovery (default: settings file, then 4)",
    )
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Emit the default selection without opening the wizard",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Log level for the log file (default: CC_SYNC_LOG_LEVEL or INFO)",
    )
    for section in ALL_SECTIONS:
        parser.add_argument(
            _skip_flag(section),
            dest=f"skip_{section.value}",
            action="store_true",
            help=f"Start with {section.label} deselected",
        )
    return parser


def _read_json(path: Path | None, default):
    if path is None:
        return default
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise InputError(f"cannot read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise InputError(f"{path}: expected a JSON object")
    return data


def build_context(args) -> WizardContext:
    scan = ScanResult.from_dict(_read_json(args.scan, {}))
    existing_data = _read_json(args.existing, None)
    existing = ExistingConfig.from_dict(existing_data) if existing_data is not None else None
    profiles = {
        name: Profile.from_dict(data)
        for name, data in _read_json(args.profiles, {}).items()
    }
    skip = [s for s in ALL_SECTIONS if getattr(args, f"skip_{s.value}", False)]
    return WizardContext(scan, existing=existing, existing_profiles=profiles, skip=skip)


def _write_output(options, output: Path | None) -> None:
    text = json.dumps(options.to_dict(), indent=2) + "\n"
    if output is None:
        sys.stdout.write(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    # [LAW:single-enforcer] Runtime logger configuration is centralized in io.logging_setup.
    log_runtime = cc_sync.io.logging_setup.configure(args.log_level)
    logger.info(
        "logging configured level=%s file=%s",
        log_runtime.level_name,
        log_runtime.file_path,
    )

    try:
        context = build_context(args)
    except InputError as exc:
        logger.error("%s", exc)
        print(f"cc-sync: {exc}", file=sys.stderr)
        return 2

    if not context.scan.has_data():
        logger.warning("scan %s lists no local configuration", args.scan)
        print(f"cc-sync: {args.scan} lists no local configuration", file=sys.stderr)

    if args.non_interactive:
        _write_output(context.build_options(), args.output)
        return 0

    settings = cc_sync.io.settings.load_discovery_settings()
    if args.max_depth is not None and args.max_depth > 0:
        settings = dataclasses.replace(settings, max_depth=args.max_depth)

    # Deferred: Textual is only needed for the interactive path.
    from cc_sync.tui.app import run_wizard

    options = run_wizard(
        context,
        scanners=cc_sync.io.finders.default_scanners(settings),
        auto_discover=settings.enabled and not args.no_discovery,
    )
    if options is None:
        print("cc-sync: cancelled", file=sys.stderr)
        return 1
    _write_output(options, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
