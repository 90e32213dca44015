"""
Engine orchestration — the audit pass and the remediation pass, independent
of how the inventory is reached or how the CLI is wired.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional

from .analyzers.aggregator import AuditResult, collect_findings
from .audit.action_log import ActionLog
from .config import TaggingConfig
from .inventory.base import InventorySource
from .models import RunOutcome
from .remediation.confirmation import ConfirmationController, ConfirmationMode, prompt_for_mode
from .remediation.executor import MutationExecutor
from .remediation.planner import plan_remediation
from .remediation.runner import RemediationRunner
from .reporting.console_table import render_findings_table, render_grouped_summary

logger = logging.getLogger("tag_governance.engine")


async def run_audit(
    source: InventorySource,
    tagging: TaggingConfig,
    boundary_filter: Optional[Iterable[str]] = None,
    action_log: Optional[ActionLog] = None,
    run_id: str = "",
    out: Callable[[str], None] = print,
) -> AuditResult:
    """Scan the inventory and print the findings table and grouped summary."""
    dictionary = tagging.dictionary()
    audit = await collect_findings(source, dictionary, boundary_filter or tagging.boundaries)

    for err in audit.boundary_errors:
        out(f"  ⚠  Skipped subscription {err['boundary_name']}: {err['message']}")
        if action_log:
            action_log.record(
                run_id, "boundary_skipped",
                boundary_id=err["boundary_id"], status="errored", message=err["message"],
            )

    out(
        f"\n  Scanned {audit.boundaries_scanned} subscriptions, "
        f"{audit.resources_scanned} resources."
    )
    if audit.boundaries_skipped:
        out(f"  ⚠  {audit.boundaries_skipped} subscriptions skipped; their resources were not checked.")
    if not audit.findings and audit.boundaries_skipped:
        out("  No inconsistent tags found in the subscriptions that could be scanned.")
    elif not audit.findings:
        out(f"  ✅ No inconsistent tags found. All resources use '{dictionary.canonical_key}'.")
    else:
        out(f"  Found {len(audit.findings)} inconsistent tags on {audit.affected_resources} resources:\n")
        out(render_findings_table(audit.findings))
        out("")
        out(render_grouped_summary(audit.findings))

    if action_log:
        for f in audit.findings:
            action_log.record(
                run_id, "finding",
                boundary_id=f.boundary.id, resource_id=f.resource.id,
                tag_key=f.key, tag_value=f.value,
                message="canonical present" if f.has_canonical else "",
            )
    return audit


async def run_remediation(
    source: InventorySource,
    tagging: TaggingConfig,
    audit: AuditResult,
    mode: Optional[ConfirmationMode] = None,
    action_log: Optional[ActionLog] = None,
    run_id: str = "",
    dry_run: bool = False,
    ask: Callable[[str], str] = input,
    out: Callable[[str], None] = print,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> RunOutcome:
    """
    Plan items from an audit result, select the confirmation mode (prompting
    if none was given) and dispatch every item.
    """
    items = plan_remediation(audit.findings, tagging.canonical_key)
    if not items:
        out("  Nothing to remediate.")
        return RunOutcome(dry_run=dry_run)

    conflicts = sum(1 for i in items if i.has_canonical)
    out(f"\n  {len(items)} remediation items planned ({conflicts} with an existing '{tagging.canonical_key}').")
    if conflicts and tagging.conflict_policy == "overwrite":
        out(f"  ⚠  Existing '{tagging.canonical_key}' values will be overwritten on {conflicts} items.")

    if mode is None:
        mode = prompt_for_mode(ask, out)
    logger.info(f"Confirmation mode: {mode.value}")
    if action_log:
        action_log.record(run_id, "mode_selected", status=mode.value)

    runner = RemediationRunner(
        controller=ConfirmationController(mode, ask=ask, out=out),
        executor=MutationExecutor(source, settle_seconds=tagging.settle_seconds, sleep=sleep),
        action_log=action_log,
        run_id=run_id,
        dry_run=dry_run,
        conflict_policy=tagging.conflict_policy,
        out=out,
    )
    return await runner.run(items)
