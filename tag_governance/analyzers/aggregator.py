"""
Finding Aggregator
Walks every boundary and resource of an inventory source and collects one
Finding per variant key found.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..errors import AuthorizationError, InventoryError, NotFoundError
from ..inventory.base import InventorySource
from ..models import Boundary, Finding, VariantDictionary
from .tag_matcher import match_tags

logger = logging.getLogger("tag_governance.analyzers.aggregator")


@dataclass
class AuditResult:
    """Findings plus scan statistics for one audit pass."""
    findings: list[Finding] = field(default_factory=list)
    boundaries_scanned: int = 0
    resources_scanned: int = 0
    resources_with_tags: int = 0
    boundary_errors: list[dict] = field(default_factory=list)

    @property
    def affected_resources(self) -> int:
        return len({f.resource.id for f in self.findings})

    @property
    def boundaries_skipped(self) -> int:
        return len(self.boundary_errors)

    @property
    def scan_failed(self) -> bool:
        """True when subscriptions were selected but none of them could be read."""
        return self.boundaries_skipped > 0 and self.boundaries_scanned == 0

    def to_dict(self) -> dict:
        return {
            "boundaries_scanned": self.boundaries_scanned,
            "boundaries_skipped": self.boundaries_skipped,
            "resources_scanned": self.resources_scanned,
            "resources_with_tags": self.resources_with_tags,
            "findings": len(self.findings),
            "affected_resources": self.affected_resources,
            "boundary_errors": self.boundary_errors,
        }


def _selected(boundary: Boundary, wanted: Optional[set[str]]) -> bool:
    if not wanted:
        return True
    return boundary.id.lower() in wanted or boundary.name.lower() in wanted


async def collect_findings(
    source: InventorySource,
    dictionary: VariantDictionary,
    boundary_filter: Optional[Iterable[str]] = None,
) -> AuditResult:
    """
    Run one audit pass.

    Order of findings: boundary enumeration order, then resource order,
    then variant-dictionary order. Boundaries that cannot be entered are
    logged and skipped.
    """
    result = AuditResult()
    wanted = {b.lower() for b in boundary_filter} if boundary_filter else None

    boundaries = await source.list_boundaries()
    for boundary in boundaries:
        if not _selected(boundary, wanted):
            logger.debug(f"Skipping boundary {boundary.name} (not selected)")
            continue

        try:
            await source.set_active_boundary(boundary.id)
            resources = await source.list_tagged_resources()
        except (AuthorizationError, NotFoundError, InventoryError) as e:
            logger.warning(f"Skipping boundary {boundary.name} ({boundary.id}): {e}")
            result.boundary_errors.append({
                "boundary_id": boundary.id,
                "boundary_name": boundary.name,
                "error": type(e).__name__,
                "message": str(e),
            })
            continue

        result.boundaries_scanned += 1
        before = len(result.findings)
        for resource in resources:
            result.resources_scanned += 1
            if not resource.tags:
                continue
            result.resources_with_tags += 1

            match = match_tags(resource.tags, dictionary.variants, dictionary.canonical_key)
            for key, value in match.matches:
                result.findings.append(Finding(
                    boundary=boundary,
                    resource=resource,
                    key=key,
                    value=value,
                    has_canonical=match.has_canonical,
                ))

        logger.info(
            f"[{boundary.name}] {len(resources)} resources, "
            f"{len(result.findings) - before} findings"
        )

    return result
