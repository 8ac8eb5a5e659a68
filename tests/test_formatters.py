"""Tests for the table and JSON formatters."""

from __future__ import annotations

import json

from envsync.errors import RemoteReadError, SecretWriteError
from envsync.formatters import render_diff, render_report
from envsync.models import DiffEntry, DiffType, SyncResult, TargetDiff
from envsync.orchestrator import SKIP_NO_MAPPING, PassResult, RunReport


def _diff() -> TargetDiff:
    return TargetDiff(
        target_name="web",
        target_type="vercel",
        project="my-app",
        entries=[
            DiffEntry("DB_HOST", DiffType.UNCHANGED, "localhost", "localhost", "production"),
            DiffEntry("API_KEY", DiffType.CHANGE, "oldsecret", "newsecretvalue", "production", sensitive=True),
            DiffEntry("NEW_FLAG", DiffType.ADD, "", "on", "production"),
            DiffEntry("HIDDEN", DiffType.UNKNOWN, "", "v", "production"),
        ],
    )


def _report(dry_run: bool = False) -> RunReport:
    good = SyncResult(target_name="web", environment="production", added=1, changed=1, unchanged=1)
    bad = SyncResult(target_name="api", environment="default", added=0, failed=1)
    bad.errors.append(SecretWriteError("TOKEN", RuntimeError("boom")))
    return RunReport(
        local_env="live",
        dry_run=dry_run,
        passes=[
            PassResult("web", "vercel", "production", diff=_diff(), result=good),
            PassResult("api", "convex", "default", result=bad),
            PassResult("fly", "flyio", "", error=RemoteReadError("fly", RuntimeError("down"))),
            PassResult("local", "dotenv", skipped=SKIP_NO_MAPPING),
        ],
    )


# ---------------------------------------------------------------------------
# Diff
# ---------------------------------------------------------------------------


class TestDiffTable:
    def test_symbols_and_names(self):
        text = render_diff(_diff())
        assert "web  (vercel)  my-app" in text
        for name in ("DB_HOST", "API_KEY", "NEW_FLAG", "HIDDEN"):
            assert name in text
        assert "+1 added" in text
        assert "~1 changed" in text
        assert "?1 unknown" in text
        assert "=1 unchanged" in text

    def test_sensitive_values_masked(self):
        text = render_diff(_diff())
        assert "newsecretvalue" not in text
        assert "********" in text
        assert "localhost" in text

    def test_no_mask_shows_values(self):
        text = render_diff(_diff(), mask=False)
        assert "newsecretvalue" in text

    def test_unknown_remote_value_hidden(self):
        assert "(exists, value hidden)" in render_diff(_diff())

    def test_empty_diff(self):
        text = render_diff(TargetDiff(target_name="web", target_type="vercel"))
        assert "No local values to sync." in text


class TestDiffJson:
    def test_schema(self):
        data = json.loads(render_diff(_diff(), fmt="json"))
        assert data["target"] == "web"
        assert data["type"] == "vercel"
        assert data["project"] == "my-app"
        assert data["summary"] == {"add": 1, "remove": 0, "change": 1, "unchanged": 1, "unknown": 1}
        assert [e["status"] for e in data["entries"]] == ["unchanged", "change", "add", "unknown"]

    def test_masking_and_unknown_remote(self):
        entries = {e["name"]: e for e in json.loads(render_diff(_diff(), fmt="json"))["entries"]}
        assert entries["API_KEY"]["local"] == "********"
        assert entries["DB_HOST"]["remote"] == "localhost"
        assert entries["HIDDEN"]["remote"] is None

    def test_unmasked(self):
        entries = {e["name"]: e for e in json.loads(render_diff(_diff(), fmt="json", mask=False))["entries"]}
        assert entries["API_KEY"]["local"] == "newsecretvalue"


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


class TestReportTable:
    def test_lists_every_pass(self):
        text = render_report(_report())
        assert "web/production" in text
        assert "api/default" in text
        assert "failed to list secrets from fly: down" in text
        assert "skipped (no mapping)" in text

    def test_secret_errors_listed(self):
        assert "TOKEN: boom" in render_report(_report())

    def test_totals_mention_failures(self):
        text = render_report(_report())
        assert "Synced: 1 added, 1 changed, 0 unknown, 1 unchanged, 1 failed (1 target(s) failed)" in text

    def test_dry_run_wording(self):
        text = render_report(_report(dry_run=True))
        assert "Would sync:" in text
        assert "Dry-run mode" in text


class TestReportJson:
    def test_summary(self):
        data = json.loads(render_report(_report(), fmt="json"))
        assert data["environment"] == "live"
        assert data["ok"] is False
        assert data["summary"] == {
            "added": 1,
            "changed": 1,
            "unknown": 0,
            "unchanged": 1,
            "failed": 1,
            "failed_targets": 1,
        }

    def test_pass_statuses(self):
        passes = json.loads(render_report(_report(), fmt="json"))["passes"]
        assert [p["status"] for p in passes] == ["ok", "failed", "failed", "skipped"]
        assert passes[0]["entries"][1]["local"] == "********"
        assert passes[1]["errors"] == ["TOKEN: boom"]
        assert passes[2]["error"] == "failed to list secrets from fly: down"
        assert passes[3]["reason"] == "no mapping"
