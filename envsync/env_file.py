"""Read and write .env files, preserving comments and blank lines."""

from __future__ import annotations

import os
import re
import stat
import tempfile
from pathlib import Path
from typing import Optional

# Matches:  KEY=value  or  KEY="value"  or  KEY='value'
# Handles optional `export` prefix, inline comments stripped.
_PAIR_RE = re.compile(
    r"""^
    (?:export\s+)?             # optional 'export' prefix
    ([A-Za-z_][A-Za-z0-9_.\-]*)   # key
    \s*=\s*                    # equals sign with optional whitespace
    (.*)                       # raw value (quotes handled below)
    $""",
    re.VERBOSE,
)

_COMMENT_RE = re.compile(r"^#")
_BLANK_RE = re.compile(r"^\s*$")

_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", '"': '"', "\\": "\\", "$": "$"}
_NEEDS_QUOTES = (" ", "\t", "\n", "\r", '"', "'", "\\", "$", "#")


def _unescape_double(value: str) -> str:
    out: list[str] = []
    chars = iter(value)
    for c in chars:
        if c == "\\":
            nxt = next(chars, "")
            out.append(_ESCAPES.get(nxt, "\\" + nxt))
        else:
            out.append(c)
    return "".join(out)


def _find_closing_quote(raw: str, quote: str) -> int:
    i = 1
    while i < len(raw):
        if quote == '"' and raw[i] == "\\":
            i += 2
            continue
        if raw[i] == quote:
            return i
        i += 1
    return -1


def parse_value(raw: str) -> str:
    """Decode the right-hand side of a ``KEY=value`` line."""
    raw = raw.strip()
    if raw and raw[0] in ('"', "'"):
        quote = raw[0]
        end = _find_closing_quote(raw, quote)
        if end < 0:
            # Unterminated quote: keep everything after the opening quote.
            inner = raw[1:]
        else:
            inner = raw[1:end]
        return _unescape_double(inner) if quote == '"' else inner
    # Unquoted: strip a trailing comment introduced by whitespace + '#'.
    return re.sub(r"\s+#.*$", "", raw).strip()


def quote_if_needed(value: str) -> str:
    """Wrap *value* in double quotes when it would not survive a round trip."""
    if not any(c in value for c in _NEEDS_QUOTES):
        return value
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
    return f'"{escaped}"'


def parse_env_file(path: str | Path) -> dict[str, str]:
    """Parse a .env file and return a key→value mapping.

    - Comments (#) and blank lines are ignored.
    - Inline comments after unquoted values are stripped.
    - Quoted values have their quotes removed.
    - ``export KEY=value`` syntax is supported.

    A missing file parses as empty.
    """
    pairs: dict[str, str] = {}
    file_path = Path(path)
    if not file_path.exists():
        return pairs

    for line in file_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if _BLANK_RE.match(stripped) or _COMMENT_RE.match(stripped):
            continue
        m = _PAIR_RE.match(stripped)
        if m:
            pairs[m.group(1)] = parse_value(m.group(2))

    return pairs


def infer_env_from_filename(path: str | Path) -> str:
    """Guess the local environment from an env file name.

    ``.env.test`` → ``test``, ``live.env`` → ``live``, ``env.test`` → ``test``.
    """
    base = Path(path).name
    if base.startswith(".env."):
        return base[len(".env."):]
    stem, dot, ext = base.rpartition(".")
    if not dot:
        return ""
    if ext == "env":
        return stem
    if stem == "env":
        return ext
    return ext


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


class _Line:
    """Internal representation of a single line in an .env file."""

    __slots__ = ("raw", "key")

    def __init__(self, raw: str, key: Optional[str] = None) -> None:
        self.raw = raw
        self.key = key  # None for comments / blank lines


def _read_lines(path: Path) -> list[_Line]:
    lines: list[_Line] = []
    if not path.exists():
        return lines
    for raw in path.read_text(encoding="utf-8").splitlines():
        stripped = raw.strip()
        m = None
        if not (_BLANK_RE.match(stripped) or _COMMENT_RE.match(stripped)):
            m = _PAIR_RE.match(stripped)
        lines.append(_Line(raw, key=m.group(1) if m else None))
    return lines


def _atomic_write(file_path: Path, content: str) -> None:
    # Write to a temp file in the same directory, then rename.
    fd, tmp_path = tempfile.mkstemp(dir=file_path.parent, prefix=".env.tmp.", suffix="")
    closed = False
    try:
        os.write(fd, content.encode("utf-8"))
        os.fchmod(fd, stat.S_IRUSR | stat.S_IWUSR)  # 0600, owner only
        os.close(fd)
        closed = True
        os.replace(tmp_path, file_path)
    except BaseException:
        if not closed:
            os.close(fd)
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def _render(lines: list[str]) -> str:
    return "\n".join(lines) + "\n" if lines else ""


def write_env_file(path: str | Path, updates: dict[str, str]) -> None:
    """Create or update *updates* in the .env file at *path*.

    Existing keys keep their position, every other line (comments, blank
    lines, unrelated keys) is left alone and new keys are appended.  The file
    is created if it does not exist.

    Args:
        path: Path to the .env file.
        updates: Mapping of key→value to write.
    """
    file_path = Path(path)
    written: set[str] = set()
    new_lines: list[str] = []

    for line in _read_lines(file_path):
        if line.key is None or line.key not in updates:
            new_lines.append(line.raw)
        elif line.key not in written:
            new_lines.append(f"{line.key}={quote_if_needed(updates[line.key])}")
            written.add(line.key)

    for key, value in updates.items():
        if key not in written:
            new_lines.append(f"{key}={quote_if_needed(value)}")

    _atomic_write(file_path, _render(new_lines))


def remove_env_value(path: str | Path, name: str) -> bool:
    """Remove every ``name=`` line from the file.  Returns True if one existed."""
    file_path = Path(path)
    if not file_path.exists():
        return False
    lines = _read_lines(file_path)
    kept = [line.raw for line in lines if line.key != name]
    if len(kept) == len(lines):
        return False
    _atomic_write(file_path, _render(kept))
    return True
