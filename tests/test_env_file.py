"""Tests for envsync.env_file — parsing and writing .env files."""

from __future__ import annotations

import os
import stat

import pytest

from envsync.env_file import (
    infer_env_from_filename,
    parse_env_file,
    parse_value,
    quote_if_needed,
    remove_env_value,
    write_env_file,
)

# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def test_parse_simple_pairs(tmp_path):
    f = tmp_path / ".env"
    f.write_text("DB_HOST=localhost\nDB_PORT=5432\n")
    assert parse_env_file(f) == {"DB_HOST": "localhost", "DB_PORT": "5432"}


def test_parse_skips_comments_and_blank_lines(tmp_path):
    f = tmp_path / ".env"
    f.write_text("# a comment\n\n  # indented comment\nKEY=value\n\n")
    assert parse_env_file(f) == {"KEY": "value"}


def test_parse_quoted_values(tmp_path):
    f = tmp_path / ".env"
    f.write_text("A=\"my secret value\"\nB='single quoted'\n")
    assert parse_env_file(f) == {"A": "my secret value", "B": "single quoted"}


def test_parse_inline_comment_stripped(tmp_path):
    f = tmp_path / ".env"
    f.write_text("KEY=value # this is inline\n")
    assert parse_env_file(f) == {"KEY": "value"}


def test_parse_inline_comment_inside_quotes_preserved(tmp_path):
    f = tmp_path / ".env"
    f.write_text('KEY="value # not a comment"\n')
    assert parse_env_file(f) == {"KEY": "value # not a comment"}


def test_parse_hash_without_space_is_part_of_value(tmp_path):
    f = tmp_path / ".env"
    f.write_text("COLOR=#fff\nURL=http://x/#frag\n")
    assert parse_env_file(f) == {"COLOR": "#fff", "URL": "http://x/#frag"}


def test_parse_export_prefix(tmp_path):
    f = tmp_path / ".env"
    f.write_text("export DB_HOST=localhost\nexport DB_PORT=5432\n")
    assert parse_env_file(f) == {"DB_HOST": "localhost", "DB_PORT": "5432"}


def test_parse_empty_values(tmp_path):
    f = tmp_path / ".env"
    f.write_text('EMPTY=\nQUOTED=""\n')
    assert parse_env_file(f) == {"EMPTY": "", "QUOTED": ""}


def test_parse_value_with_equals(tmp_path):
    f = tmp_path / ".env"
    f.write_text("TOKEN=abc=def==\n")
    assert parse_env_file(f) == {"TOKEN": "abc=def=="}


def test_parse_missing_file_returns_empty(tmp_path):
    assert parse_env_file(tmp_path / "nonexistent.env") == {}


def test_parse_spaces_around_equals(tmp_path):
    f = tmp_path / ".env"
    f.write_text("KEY = value\n")
    assert parse_env_file(f) == {"KEY": "value"}


@pytest.mark.parametrize(
    "raw, expected",
    [
        (r'"hello\nworld"', "hello\nworld"),
        (r'"tab\there"', "tab\there"),
        (r'"say \"hi\""', 'say "hi"'),
        (r"'hello\nworld'", r"hello\nworld"),
        (r"hello\nworld", r"hello\nworld"),
        ('"unterminated', "unterminated"),
    ],
)
def test_parse_value_escapes_only_in_double_quotes(raw, expected):
    assert parse_value(raw) == expected


@pytest.mark.parametrize(
    "value, quoted",
    [
        ("plain", "plain"),
        ("", ""),
        ("has space", '"has space"'),
        ("cost$5", '"cost$5"'),
        ("a#b", '"a#b"'),
        ('say "hi"', '"say \\"hi\\""'),
        ("line1\nline2", '"line1\\nline2"'),
    ],
)
def test_quote_if_needed(value, quoted):
    assert quote_if_needed(value) == quoted


@pytest.mark.parametrize(
    "filename, env",
    [
        (".env.test", "test"),
        (".env.live", "live"),
        ("config/.env.live", "live"),
        ("test.env", "test"),
        ("env.live", "live"),
        ("secrets", ""),
    ],
)
def test_infer_env_from_filename(filename, env):
    assert infer_env_from_filename(filename) == env


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def test_write_new_file(tmp_path):
    f = tmp_path / ".env"
    write_env_file(f, {"DB_HOST": "localhost", "DB_PORT": "5432"})
    assert parse_env_file(f) == {"DB_HOST": "localhost", "DB_PORT": "5432"}


def test_write_preserves_comments_and_order(tmp_path):
    f = tmp_path / ".env"
    f.write_text("# database\nDB_HOST=old\n\nOTHER=1\n")
    write_env_file(f, {"DB_HOST": "new"})
    assert f.read_text() == "# database\nDB_HOST=new\n\nOTHER=1\n"


def test_write_appends_new_keys(tmp_path):
    f = tmp_path / ".env"
    f.write_text("A=1\n")
    write_env_file(f, {"B": "2"})
    assert f.read_text() == "A=1\nB=2\n"


def test_write_keeps_keys_not_in_updates(tmp_path):
    f = tmp_path / ".env"
    f.write_text("A=1\nB=2\n")
    write_env_file(f, {"A": "9"})
    assert parse_env_file(f) == {"A": "9", "B": "2"}


def test_write_value_with_spaces_gets_quoted(tmp_path):
    f = tmp_path / ".env"
    write_env_file(f, {"MSG": "hello world"})
    assert '"hello world"' in f.read_text()
    assert parse_env_file(f)["MSG"] == "hello world"


def test_write_special_characters_survive(tmp_path):
    original = {
        "DB_PASS": 's3cr3t!"$x',
        "EMPTY": "",
        "MULTI": "a\nb",
        "PATH_LIKE": "C:\\dir",
    }
    f = tmp_path / ".env"
    write_env_file(f, original)
    assert parse_env_file(f) == original


def test_write_updates_in_place(tmp_path):
    f = tmp_path / ".env.test"
    f.write_text("# keep\nA=1\nB=2\n")
    write_env_file(f, {"B": "3", "C": "4"})
    assert f.read_text() == "# keep\nA=1\nB=3\nC=4\n"


def test_remove_env_value(tmp_path):
    f = tmp_path / ".env"
    f.write_text("A=1\nB=2\n")
    assert remove_env_value(f, "A") is True
    assert f.read_text() == "B=2\n"
    assert remove_env_value(f, "A") is False
    assert remove_env_value(tmp_path / "missing", "A") is False


# ---------------------------------------------------------------------------
# Security: file permissions and atomic writes
# ---------------------------------------------------------------------------


def test_write_sets_owner_only_permissions(tmp_path):
    f = tmp_path / ".env"
    write_env_file(f, {"SECRET": "value"})
    mode = os.stat(f).st_mode
    assert mode & stat.S_IRUSR  # owner can read
    assert mode & stat.S_IWUSR  # owner can write
    assert not (mode & stat.S_IRGRP)  # group cannot read
    assert not (mode & stat.S_IROTH)  # others cannot read


def test_write_no_temp_file_left_on_success(tmp_path):
    f = tmp_path / ".env"
    write_env_file(f, {"A": "1"})
    assert list(tmp_path.glob(".env.tmp.*")) == []
