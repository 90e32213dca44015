"""
JSON exporter — Full machine-readable record of an audit or remediation run.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .. import __version__
from ..analyzers.aggregator import AuditResult
from ..models import RunOutcome
from .console_table import group_by_tag


def export_json(
    audit: AuditResult,
    output_dir: Path,
    run_id: str,
    command: str,
    outcome: Optional[RunOutcome] = None,
    guardian_record: Optional[dict] = None,
) -> Path:
    """
    Write the run record to a JSON file.

    Returns:
        Path to the created JSON file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    payload = {
        "metadata": {
            "engine": "tag-governance",
            "version": __version__,
            "run_id": run_id,
            "command": command,
            "generated_utc": datetime.now(timezone.utc).isoformat(),
        },
        "audit": audit.to_dict(),
        "by_tag": dict(group_by_tag(audit.findings)),
        "findings": [
            {**f.to_row(), "ResourceId": f.resource.id, "BoundaryId": f.boundary.id}
            for f in audit.findings
        ],
    }
    if outcome is not None:
        payload["remediation"] = outcome.to_dict()
    if guardian_record:
        payload.update(guardian_record)

    filepath = output_dir / f"tag_governance_{run_id}.json"
    with open(filepath, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, default=str, ensure_ascii=False)
    return filepath
