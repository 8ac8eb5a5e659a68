"""JSON formatter for machine-readable diff and report output."""

from __future__ import annotations

import json

from ..engine import is_sensitive
from ..models import DiffEntry, DiffType, TargetDiff
from ..orchestrator import RunReport


def _mask(entry: DiffEntry, value: str, mask_sensitive: bool) -> str:
    if mask_sensitive and (entry.sensitive or is_sensitive(entry.name)):
        return "*" * min(len(value), 8)
    return value


def _entries(diff: TargetDiff, mask: bool) -> list[dict]:
    entries_out = []
    for entry in diff.entries:
        entries_out.append(
            {
                "name": entry.name,
                "status": entry.type.value,
                "environment": entry.environment,
                "local": _mask(entry, entry.new_value, mask),
                # The old value of an unknown entry is not trustworthy.
                "remote": None if entry.type == DiffType.UNKNOWN else _mask(entry, entry.old_value, mask),
            }
        )
    return entries_out


def format_diff_json(diff: TargetDiff, *, mask: bool = True) -> str:
    """Render the diff as a JSON string.

    Schema::

        {
          "target": "web",
          "type": "vercel",
          "project": "my-app",
          "summary": {"add": 1, "remove": 0, "change": 2, "unchanged": 5, "unknown": 0},
          "entries": [
            {
              "name": "DB_HOST",
              "status": "unchanged",
              "environment": "production",
              "local": "localhost",
              "remote": "localhost"
            },
            ...
          ]
        }
    """
    output = {
        "target": diff.target_name,
        "type": diff.target_type,
        "project": diff.project,
        "summary": {t.value: n for t, n in diff.count_by_type().items()},
        "entries": _entries(diff, mask),
    }
    return json.dumps(output, indent=2, ensure_ascii=False)


def format_report_json(report: RunReport, *, mask: bool = True) -> str:
    """Render a run report, including each pass's diff entries, as JSON."""
    passes_out = []
    for p in report.passes:
        item = {
            "target": p.target_name,
            "type": p.target_type,
            "environment": p.environment,
            "status": "skipped" if p.skipped else ("failed" if p.failed else "ok"),
        }
        if p.skipped:
            item["reason"] = p.skipped
        if p.error is not None:
            item["error"] = str(p.error)
        if p.diff is not None:
            item["entries"] = _entries(p.diff, mask)
        if p.result is not None:
            item.update(
                added=p.result.added,
                changed=p.result.changed,
                unknown=p.result.unknown,
                unchanged=p.result.unchanged,
                failed=p.result.failed,
                errors=[str(e) for e in p.result.errors],
            )
        passes_out.append(item)

    output = {
        "environment": report.local_env,
        "dry_run": report.dry_run,
        "ok": report.ok,
        "summary": {
            "added": report.added,
            "changed": report.changed,
            "unknown": report.unknown,
            "unchanged": report.unchanged,
            "failed": report.failed,
            "failed_targets": len(report.failed_passes),
        },
        "passes": passes_out,
    }
    return json.dumps(output, indent=2, ensure_ascii=False)
