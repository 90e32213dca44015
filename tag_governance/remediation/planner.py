"""
Remediation Planner — turns findings into remediation items, one per finding.
"""

from __future__ import annotations

from typing import Iterable

from ..models import Finding, RemediationItem


def plan_remediation(findings: Iterable[Finding], canonical_key: str) -> list[RemediationItem]:
    """
    Build one item per finding, preserving order.

    No dedup per resource: each variant key needs its own delete. The tag
    map is copied so later inventory changes do not leak into the snapshot.
    """
    items = []
    for f in findings:
        items.append(RemediationItem(
            boundary_id=f.boundary.id,
            boundary_name=f.boundary.name,
            resource_id=f.resource.id,
            resource_name=f.resource.name,
            resource_type=f.resource.type,
            resource_group=f.resource.resource_group,
            key=f.key,
            value=f.value,
            canonical_key=canonical_key,
            has_canonical=f.has_canonical,
            tags=dict(f.resource.tags or {}),
        ))
    return items
