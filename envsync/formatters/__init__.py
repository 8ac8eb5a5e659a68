"""Output formatters for diff and sync report display."""

from __future__ import annotations

from ..models import TargetDiff
from ..orchestrator import RunReport
from .json_fmt import format_diff_json, format_report_json
from .terminal import format_diff_table, format_report_table

__all__ = [
    "format_diff_json",
    "format_diff_table",
    "format_report_json",
    "format_report_table",
    "render_diff",
    "render_report",
]


def render_diff(diff: TargetDiff, fmt: str = "table", mask: bool = True) -> str:
    """Render a :class:`TargetDiff` using the requested format.

    Args:
        diff: The diff to render.
        fmt: ``"table"`` for Rich terminal output, ``"json"`` for JSON.
        mask: When True, mask sensitive values.

    Returns:
        A string representation of the diff (may contain ANSI codes for table).
    """
    if fmt == "json":
        return format_diff_json(diff, mask=mask)
    return format_diff_table(diff, mask=mask)


def render_report(report: RunReport, fmt: str = "table", mask: bool = True) -> str:
    """Render a run report; the JSON form also carries every pass's entries."""
    if fmt == "json":
        return format_report_json(report, mask=mask)
    return format_report_table(report)
