"""
Markdown report — Human-readable run summary rendered with Jinja2.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..analyzers.aggregator import AuditResult
from ..models import RunOutcome
from .console_table import group_by_tag

TEMPLATE_DIR = Path(__file__).parent / "templates"


def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape([]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_markdown(
    audit: AuditResult,
    run_id: str,
    canonical_key: str,
    tenant_name: str = "Unknown Tenant",
    outcome: Optional[RunOutcome] = None,
) -> str:
    template = _environment().get_template("run_summary.md.j2")
    return template.render(
        run_id=run_id,
        tenant_name=tenant_name,
        canonical_key=canonical_key,
        generated_utc=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
        audit=audit,
        findings=[f.to_row() for f in audit.findings],
        by_tag=group_by_tag(audit.findings),
        outcome=outcome,
        failures=[r for r in outcome.results if r.status.value == "errored"] if outcome else [],
    )


def export_markdown(
    audit: AuditResult,
    output_dir: Path,
    run_id: str,
    canonical_key: str,
    tenant_name: str = "Unknown Tenant",
    outcome: Optional[RunOutcome] = None,
) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    filepath = output_dir / f"tag_governance_{run_id}.md"
    content = render_markdown(audit, run_id, canonical_key, tenant_name, outcome)
    with open(filepath, "w", encoding="utf-8") as fh:
        fh.write(content)
    return filepath
