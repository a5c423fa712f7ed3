"""Background discovery: launch scans, merge their results into every live view.

Scans run wherever `submit` sends them; results come back as one immutable
DiscoveryResult each and are merged on the owning loop by `deliver`. Merging
only appends: existing rows, selections and profile diffs are never touched.

// [LAW:single-enforcer] deliver() is the only writer of discovered rows.
// [LAW:dataflow-not-control-flow] Per-section merge behavior lives in _MERGERS.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Callable, Mapping

from cc_sync.app.context import WizardContext
from cc_sync.core import items as item_builders
from cc_sync.core.discovered import DiscoveredItem, DiscoveryResult
from cc_sync.core.items import PickerItem, header
from cc_sync.core.sections import Section

logger = logging.getLogger(__name__)

Scanner = Callable[[], DiscoveryResult]
Job = Callable[[], DiscoveryResult]
Deliver = Callable[[DiscoveryResult], None]
Submit = Callable[[Job, Deliver], None]


def run_inline(job: Job, on_done: Deliver) -> None:
    """Synchronous submit: run the scan now and deliver on the caller's stack."""
    on_done(job())


def _by_provenance(found: list[DiscoveredItem]) -> dict[str, list[DiscoveredItem]]:
    groups: dict[str, list[DiscoveredItem]] = {}
    for item in found:
        groups.setdefault(item.provenance, []).append(item)
    return groups


# ─── Per-section mergers ─────────────────────────────────────────────────────


def _merge_mcp(ctx: WizardContext, found: list[DiscoveredItem]) -> list[PickerItem]:
    rows: list[PickerItem] = []
    for source, group in _by_provenance(found).items():
        rows.append(header(source, len(group)))
        for item in sorted(group, key=lambda i: i.key):
            ctx.discovered_mcp[item.key] = item.value
            ctx.mcp_sources[item.key] = source
            row = PickerItem(
                key=item.key,
                display=item.key,
                selected=ctx.default_selected(Section.MCP, item.key),
            )
            plugin_key = ctx.plugin_key_from_source(source)
            if plugin_key:
                ctx.mcp_plugin_keys[item.key] = plugin_key
                row.tag = f"via {posixpath.basename(source.rstrip('/'))}"
            rows.append(row)
    return rows


def _merge_commands_skills(ctx: WizardContext, found: list[DiscoveredItem]) -> list[PickerItem]:
    rows: list[PickerItem] = []
    for label, group in _by_provenance(found).items():
        values = [item.value for item in group]
        ctx.discovered_cmd_skills.extend(values)
        rows.extend(item_builders.project_group_items(
            label, values,
            selected_for=lambda key: ctx.default_selected(Section.COMMANDS_SKILLS, key),
        ))
    ctx.add_preview(Section.COMMANDS_SKILLS, {item.key: item.value.content for item in found})
    return rows


def _merge_claude_md(ctx: WizardContext, found: list[DiscoveredItem]) -> list[PickerItem]:
    rows: list[PickerItem] = []
    for source, group in _by_provenance(found).items():
        rows.append(header(source, len(group)))
        for item in group:
            ctx.discovered_claude_md[item.key] = item.value
            rows.append(PickerItem(
                key=item.key,
                display=item.value.label,
                selected=ctx.default_selected(Section.CLAUDE_MD, item.key),
            ))
    ctx.add_preview(Section.CLAUDE_MD, {item.key: item.value.content for item in found})
    return rows


_MERGERS: dict[Section, Callable[[WizardContext, list[DiscoveredItem]], list[PickerItem]]] = {
    Section.MCP: _merge_mcp,
    Section.COMMANDS_SKILLS: _merge_commands_skills,
    Section.CLAUDE_MD: _merge_claude_md,
}


class DiscoveryCoordinator:
    """Launches scanners and folds their results into a WizardContext."""

    def __init__(
        self,
        context: WizardContext,
        scanners: Mapping[Section, Scanner],
        submit: Submit = run_inline,
    ):
        self.context = context
        self.scanners = dict(scanners)
        self.submit = submit
        self.in_flight: set[Section] = set()

    def start(self) -> None:
        for section in self.scanners:
            self.request(section)

    def request(self, section: Section) -> bool:
        """Launch the scanner for `section` unless one is already running."""
        if section in self.in_flight or section not in self.scanners:
            return False
        self.in_flight.add(section)
        self.context.set_searching(section, True)
        logger.debug("discovery started: %s", section.label)
        self.submit(lambda: self.run_scan(section), self.deliver)
        return True

    def run_scan(self, section: Section) -> DiscoveryResult:
        """Run one scanner. Failures degrade to an empty result."""
        try:
            return self.scanners[section]()
        except Exception as exc:
            logger.warning("discovery failed for %s: %s", section.label, exc)
            return DiscoveryResult.empty(section)

    def deliver(self, result: DiscoveryResult) -> int:
        """Merge one result on the owning loop. Returns the number of rows added."""
        section = result.section
        ctx = self.context
        self.in_flight.discard(section)
        ctx.set_searching(section, False)

        merge = _MERGERS.get(section)
        if merge is None:
            return 0
        known = ctx.snapshot_keys(section) | ctx.discovered_keys(section)
        known |= set(ctx.base[section].all_keys())
        found: list[DiscoveredItem] = []
        for item in result.items:
            if item.key not in known:
                known.add(item.key)
                found.append(item)
        if not found:
            logger.debug("discovery found nothing new: %s", section.label)
            return 0

        added = ctx.append_discovered(section, merge(ctx, found))
        if section is Section.MCP and ctx.mcp_plugin_keys:
            for tab in ctx.tabs():
                ctx.sync_plugin_ownership(tab)
        logger.info("discovery merged %d %s item(s)", added, section.label)
        return added
