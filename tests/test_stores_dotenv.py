"""Tests for the local .env file store."""

from __future__ import annotations

from conftest import DictSource, make_target
from envsync.engine import SyncEngine
from envsync.env_file import parse_env_file
from envsync.models import DiffType
from envsync.stores import open_store
from envsync.stores.dotenv import DotenvStore


class TestDotenvStore:
    def test_list_missing_file_is_empty(self, tmp_path):
        assert DotenvStore(tmp_path / ".env.remote").list("local") == {}

    def test_set_creates_file(self, tmp_path):
        path = tmp_path / ".env.remote"
        store = DotenvStore(path)
        store.set("A", "1", "local")
        store.set("B", "two words", "local")
        assert parse_env_file(path) == {"A": "1", "B": "two words"}

    def test_delete(self, tmp_path):
        path = tmp_path / ".env.remote"
        path.write_text("A=1\nB=2\n")
        store = DotenvStore(path)
        store.delete("A", "local")
        store.delete("MISSING", "local")
        assert store.list("local") == {"B": "2"}

    def test_validate_missing_file_ok(self, tmp_path):
        DotenvStore(tmp_path / "nope").validate()

    def test_open_from_target_config(self, tmp_path):
        target = make_target(type="dotenv", path=str(tmp_path / "out.env"))
        store = open_store(target)
        assert isinstance(store, DotenvStore)
        assert store.path == tmp_path / "out.env"


def test_engine_sync_into_dotenv(tmp_path):
    path = tmp_path / ".env.remote"
    path.write_text("SAME=x\nOLD=stale\n")
    target = make_target(type="dotenv", mapping={"local": "test"}, path=str(path))
    engine = SyncEngine()

    source = DictSource({"SAME": "x", "OLD": "fresh", "NEW": "n"})
    diff = engine.preview(["SAME", "OLD", "NEW"], source, target, "local")
    assert {e.name: e.type for e in diff.entries} == {
        "SAME": DiffType.UNCHANGED,
        "OLD": DiffType.CHANGE,
        "NEW": DiffType.ADD,
    }

    result = engine.sync(["SAME", "OLD", "NEW"], source, target, "local")
    assert (result.added, result.changed, result.unchanged) == (1, 1, 1)
    assert parse_env_file(path) == {"SAME": "x", "OLD": "fresh", "NEW": "n"}
