"""Reporting package — console, CSV, JSON and Markdown output."""

from .console_table import (
    group_by_tag,
    render_findings_table,
    render_grouped_summary,
    render_outcome,
)
from .csv_export import export_findings_csv, export_results_csv
from .json_export import export_json
from .markdown_report import export_markdown

__all__ = [
    "group_by_tag",
    "render_findings_table",
    "render_grouped_summary",
    "render_outcome",
    "export_findings_csv",
    "export_results_csv",
    "export_json",
    "export_markdown",
]
