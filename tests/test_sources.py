"""Tests for envsync.sources — local value lookup."""

from __future__ import annotations

from envsync.sources import CombinedSource, EnvSource, FileSource


def test_env_source_skips_empty_and_missing():
    src = EnvSource({"A": "1", "B": ""})
    assert src.get_all(["A", "B", "C"]) == {"A": "1"}
    assert src.get("B") == ""
    assert src.name == "environment"


def test_env_source_defaults_to_process_environment(monkeypatch):
    monkeypatch.setenv("ENVSYNC_TEST_VALUE", "x")
    assert EnvSource().get("ENVSYNC_TEST_VALUE") == "x"


def test_file_source_reads_requested_names(tmp_path):
    f = tmp_path / ".env.test"
    f.write_text("A=1\nB=2\n")
    src = FileSource(f)
    assert src.get_all(["A", "MISSING"]) == {"A": "1"}
    assert src.list_all() == {"A": "1", "B": "2"}
    assert src.name == str(f)


def test_file_source_parses_once(tmp_path):
    f = tmp_path / ".env"
    f.write_text("A=1\n")
    src = FileSource(f)
    assert src.get("A") == "1"
    f.write_text("A=2\n")
    assert src.get("A") == "1"


def test_file_source_missing_file(tmp_path):
    assert FileSource(tmp_path / "nope").get_all(["A"]) == {}


def test_combined_source_earlier_wins(tmp_path):
    f = tmp_path / ".env"
    f.write_text("A=file\nB=file\nC=\n")
    src = CombinedSource(EnvSource({"A": "env", "C": ""}), FileSource(f))
    assert src.get_all(["A", "B", "C"]) == {"A": "env", "B": "file"}
    assert src.name == f"environment + {f}"
