"""
Console rendering — findings table and grouped summary.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from ..models import Finding, RunOutcome

FINDING_COLUMNS = [
    "BoundaryName",
    "ResourceName",
    "ResourceType",
    "ResourceGroup",
    "InconsistentTag",
    "TagValue",
    "HasCorrectTag",
]

MAX_COLUMN_WIDTH = 40


def _cell(value) -> str:
    text = str(value)
    if len(text) > MAX_COLUMN_WIDTH:
        return text[:MAX_COLUMN_WIDTH - 1] + "…"
    return text


def render_findings_table(findings: list[Finding]) -> str:
    """Fixed-width text table of findings, one row per finding."""
    rows = [{c: _cell(v) for c, v in f.to_row().items()} for f in findings]
    widths = {
        c: max([len(c)] + [len(r[c]) for r in rows])
        for c in FINDING_COLUMNS
    }
    lines = [
        "  " + " ".join(f"{c:<{widths[c]}s}" for c in FINDING_COLUMNS),
        "  " + " ".join("─" * widths[c] for c in FINDING_COLUMNS),
    ]
    for r in rows:
        lines.append("  " + " ".join(f"{r[c]:<{widths[c]}s}" for c in FINDING_COLUMNS))
    return "\n".join(lines)


def group_by_tag(findings: Iterable[Finding]) -> list[tuple[str, int]]:
    """Count findings per inconsistent tag name, most frequent first."""
    counts = Counter(f.key for f in findings)
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))


def render_grouped_summary(findings: list[Finding]) -> str:
    lines = ["  Inconsistent tags by name:"]
    for key, count in group_by_tag(findings):
        lines.append(f"    {key:<30s} {count:>6d}")
    return "\n".join(lines)


def render_outcome(outcome: RunOutcome) -> str:
    lines = [
        f"  Remediated: {outcome.remediated}",
        f"  Skipped:    {outcome.skipped}",
        f"  Errored:    {outcome.errored}",
    ]
    if outcome.dry_run:
        lines.append(f"  Planned:    {outcome.planned}  (dry run — no changes made)")
    if outcome.aborted:
        lines.append("  Run aborted before any change was made.")
    return "\n".join(lines)
