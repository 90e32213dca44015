"""
CSV exporter — Writes findings and remediation results to timestamped CSV files.
"""

from __future__ import annotations

import csv
from pathlib import Path

from ..models import Finding, RunOutcome
from .console_table import FINDING_COLUMNS


def export_findings_csv(findings: list[Finding], output_dir: Path, timestamp: str) -> Path:
    """
    Write one row per finding.

    Returns:
        Path to the created CSV file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"inconsistent_tags_{timestamp}.csv"

    with open(path, "w", newline="", encoding="utf-8-sig") as fh:
        writer = csv.DictWriter(fh, fieldnames=FINDING_COLUMNS + ["ResourceId"])
        writer.writeheader()
        for f in findings:
            writer.writerow({**f.to_row(), "ResourceId": f.resource.id})
    return path


RESULT_FIELDS = [
    "timestamp", "status", "boundary_name", "resource_name", "resource_type",
    "resource_group", "key", "value", "canonical_key", "has_canonical",
    "message", "resource_id",
]


def export_results_csv(outcome: RunOutcome, output_dir: Path, timestamp: str) -> Path:
    """Write one row per remediation item result."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"remediation_results_{timestamp}.csv"

    with open(path, "w", newline="", encoding="utf-8-sig") as fh:
        writer = csv.DictWriter(fh, fieldnames=RESULT_FIELDS, extrasaction="ignore")
        writer.writeheader()
        for r in outcome.results:
            writer.writerow(r.to_dict())
    return path
