"""
Remediation run — dispatches planned items through the confirmation gate
and the mutation executor, and tallies the run outcome.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ..audit.action_log import ActionLog
from ..models import ItemResult, ItemStatus, RemediationItem, RunOutcome
from .confirmation import ConfirmationController
from .executor import MutationExecutor

logger = logging.getLogger("tag_governance.remediation.runner")


class RemediationRunner:
    """
    Sequential item-by-item dispatch.

    Abort is checked once, before the first item; there is no mid-run
    cancellation. An interrupted run leaves the inventory in whatever state
    the last completed call produced, and the action log shows how far it got.
    """

    def __init__(
        self,
        controller: ConfirmationController,
        executor: MutationExecutor,
        action_log: Optional[ActionLog] = None,
        run_id: str = "",
        dry_run: bool = False,
        conflict_policy: str = "overwrite",
        out: Callable[[str], None] = print,
    ):
        self.controller = controller
        self.executor = executor
        self.action_log = action_log
        self.run_id = run_id
        self.dry_run = dry_run
        self.conflict_policy = conflict_policy
        self._out = out

    def _log(self, result: ItemResult, action: str):
        if not self.action_log:
            return
        item = result.item
        self.action_log.record(
            self.run_id,
            action,
            boundary_id=item.boundary_id,
            resource_id=item.resource_id,
            tag_key=item.key,
            tag_value=item.value,
            status=result.status.value,
            message=result.message,
        )

    async def run(self, items: list[RemediationItem]) -> RunOutcome:
        outcome = RunOutcome(dry_run=self.dry_run)
        total = len(items)

        if self.controller.aborted:
            outcome.aborted = True
            for item in items:
                result = ItemResult(item=item, status=ItemStatus.SKIPPED, message="run aborted")
                outcome.record(result)
                self._log(result, "skip")
            logger.info(f"Run aborted before any mutation; {total} items skipped")
            return outcome

        for index, item in enumerate(items, 1):
            if item.has_canonical and self.conflict_policy == "skip":
                result = ItemResult(
                    item=item,
                    status=ItemStatus.SKIPPED,
                    message=f"conflict: '{item.canonical_key}' already present",
                )
                outcome.record(result)
                self._log(result, "skip")
                self._out(f"  ⏭  [{index}/{total}] {item.resource_name}: skipped ({result.message})")
                continue

            if not self.controller.should_proceed(item, index, total):
                result = ItemResult(item=item, status=ItemStatus.SKIPPED, message="declined by operator")
                outcome.record(result)
                self._log(result, "skip")
                self._out(f"  ⏭  [{index}/{total}] {item.resource_name}: skipped")
                continue

            if self.dry_run:
                result = ItemResult(
                    item=item,
                    status=ItemStatus.PLANNED,
                    message=f"would replace '{item.key}' with '{item.canonical_key}'",
                )
                outcome.record(result)
                self._log(result, "dry_run")
                self._out(f"  📝 [{index}/{total}] {item.resource_name}: {result.message}")
                continue

            result = await self.executor.apply(item)
            outcome.record(result)
            self._log(result, "remediate")
            if result.status is ItemStatus.REMEDIATED:
                self._out(f"  ✅ [{index}/{total}] {item.resource_name}: {result.message}")
            else:
                self._out(f"  ❌ [{index}/{total}] {item.resource_name}: {result.message}")

        logger.info(
            f"Run finished: {outcome.remediated} remediated, {outcome.skipped} skipped, "
            f"{outcome.errored} errored, {outcome.planned} planned"
        )
        return outcome
