"""
Mutation Executor — applies the delete / settle / merge sequence for one item.

Items are applied strictly one at a time. A failure is confined to its own
item: no retry, no rollback. If the merge fails after the delete succeeded,
the variant key is gone and the canonical value was not written; the
result message says so.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from ..config import DEFAULT_SETTLE_SECONDS
from ..errors import TagGovernanceError
from ..inventory.base import InventorySource
from ..models import ItemResult, ItemStatus, RemediationItem, TagOperation

logger = logging.getLogger("tag_governance.remediation.executor")


class MutationExecutor:
    """Executes remediation items against an inventory source."""

    def __init__(
        self,
        source: InventorySource,
        settle_seconds: float = DEFAULT_SETTLE_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.source = source
        self.settle_seconds = settle_seconds
        self._sleep = sleep
        self.boundary_switches = 0

    async def _ensure_boundary(self, boundary_id: str):
        if self.source.active_boundary != boundary_id:
            await self.source.set_active_boundary(boundary_id)
            self.boundary_switches += 1

    async def apply(self, item: RemediationItem) -> ItemResult:
        """Delete the variant key, wait, then merge the canonical key."""
        deleted = False
        try:
            await self._ensure_boundary(item.boundary_id)

            await self.source.mutate_tag(item.resource_id, item.key, item.value, TagOperation.DELETE)
            deleted = True
            logger.info(f"Deleted tag '{item.key}' from {item.resource_name}")

            if self.settle_seconds > 0:
                await self._sleep(self.settle_seconds)

            await self.source.mutate_tag(
                item.resource_id, item.canonical_key, item.value, TagOperation.MERGE
            )
            logger.info(f"Set tag '{item.canonical_key}'={item.value!r} on {item.resource_name}")

        except TagGovernanceError as e:
            if deleted:
                message = (
                    f"{type(e).__name__}: {e} (partial: '{item.key}' was deleted but "
                    f"'{item.canonical_key}' was not set)"
                )
            else:
                message = f"{type(e).__name__}: {e}"
            logger.error(f"Remediation failed for {item.resource_name}: {message}")
            return ItemResult(item=item, status=ItemStatus.ERRORED, message=message)

        return ItemResult(
            item=item,
            status=ItemStatus.REMEDIATED,
            message=f"'{item.key}' -> '{item.canonical_key}'",
        )
