"""Rich terminal table formatter for diff and report output."""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from ..engine import is_sensitive
from ..models import DiffEntry, DiffType, TargetDiff
from ..orchestrator import RunReport

# Status → (symbol, Rich style)
_STATUS_STYLE: dict[DiffType, tuple[str, str]] = {
    DiffType.ADD: ("+", "bold green"),
    DiffType.REMOVE: ("-", "bold red"),
    DiffType.CHANGE: ("~", "bold yellow"),
    DiffType.UNKNOWN: ("?", "bold magenta"),
    DiffType.UNCHANGED: ("=", "dim"),
}

_SUMMARY_LABELS = (
    (DiffType.ADD, "added"),
    (DiffType.CHANGE, "changed"),
    (DiffType.UNKNOWN, "unknown"),
    (DiffType.UNCHANGED, "unchanged"),
)


def _mask(entry: DiffEntry, value: str, mask_sensitive: bool) -> str:
    if mask_sensitive and (entry.sensitive or is_sensitive(entry.name)):
        return "*" * min(len(value), 8)
    return value


def _console(buf: StringIO) -> Console:
    return Console(file=buf, highlight=False, no_color=False, width=120)


def format_diff_table(diff: TargetDiff, *, mask: bool = True) -> str:
    """Render the diff as a Rich table and return the string output."""
    title = f"{diff.target_name}  ({diff.target_type})"
    if diff.project:
        title += f"  {diff.project}"
    table = Table(
        title=escape(title),
        show_header=True,
        header_style="bold cyan",
        expand=False,
        box=None,
        show_edge=True,
        padding=(0, 1),
    )

    table.add_column("", width=2, no_wrap=True)          # status symbol
    table.add_column("Secret", style="bold", no_wrap=True)
    table.add_column("Env", no_wrap=True)
    table.add_column("Local", no_wrap=False)
    table.add_column("Remote", no_wrap=False)

    for entry in diff.entries:
        symbol, style = _STATUS_STYLE[entry.type]
        if entry.type == DiffType.UNKNOWN:
            remote_val = "(exists, value hidden)"
        else:
            remote_val = _mask(entry, entry.old_value, mask)
        table.add_row(
            Text(symbol, style=style),
            Text(entry.name, style=style if entry.is_change else ""),
            Text(entry.environment),
            Text(_mask(entry, entry.new_value, mask) or "—"),
            Text(remote_val or "—", style="dim"),
        )

    buf = StringIO()
    console = _console(buf)
    if diff.entries:
        console.print(table)
    else:
        console.print(f"[bold]{escape(title)}[/]\n  [dim]No local values to sync.[/]")

    counts = diff.count_by_type()
    summary_parts = []
    for diff_type, label in _SUMMARY_LABELS:
        if counts[diff_type]:
            symbol, style = _STATUS_STYLE[diff_type]
            summary_parts.append(f"[{style}]{symbol}{counts[diff_type]} {label}[/]")
    if summary_parts:
        console.print("  " + "  ".join(summary_parts))

    return buf.getvalue()


def format_report_table(report: RunReport) -> str:
    """Render a per-pass summary followed by a run total line.

    Failed passes and failed secrets are always listed so that a failure
    never reads like an unchanged no-op.
    """
    buf = StringIO()
    console = _console(buf)

    for p in report.passes:
        label = escape(f"{p.target_name}/{p.environment}" if p.environment else p.target_name)
        if p.skipped:
            console.print(f"  [dim]-[/] {label}  [dim]skipped ({p.skipped})[/]")
            continue
        if p.error is not None:
            console.print(f"  [bold red]✗[/] {label}  [red]{escape(str(p.error))}[/]")
            continue
        result = p.result
        if result is None:
            continue
        mark = "[bold red]✗[/]" if result.failed else "[bold green]✓[/]"
        console.print(
            f"  {mark} {label}  "
            f"+{result.added} ~{result.changed} ?{result.unknown} ={result.unchanged}"
            + (f"  [red]{result.failed} failed[/]" if result.failed else "")
        )
        for err in result.errors:
            console.print(f"      [red]{escape(str(err))}[/]")

    verb = "Would sync" if report.dry_run else "Synced"
    totals = (
        f"{verb}: [green]{report.added} added[/], [yellow]{report.changed} changed[/], "
        f"[magenta]{report.unknown} unknown[/], [dim]{report.unchanged} unchanged[/]"
    )
    if report.failed or report.failed_passes:
        totals += (
            f", [bold red]{report.failed} failed[/]"
            f" ([bold red]{len(report.failed_passes)} target(s) failed[/])"
        )
    console.print(totals)

    if report.dry_run:
        console.print("\n[bold yellow]Dry-run mode — no changes were written.[/]")

    return buf.getvalue()
