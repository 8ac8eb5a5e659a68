"""Include/exclude glob filtering of secret names per target."""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import Iterable

from .models import Target


def _matches(name: str, pattern: str) -> bool:
    # A wildcard never spans a '/'.
    name_parts = name.split("/")
    pattern_parts = pattern.split("/")
    if len(name_parts) != len(pattern_parts):
        return False
    return all(fnmatchcase(n, p) for n, p in zip(name_parts, pattern_parts))


def matches_any(name: str, patterns: Iterable[str]) -> bool:
    """Return True if *name* matches at least one glob in *patterns*."""
    return any(_matches(name, p) for p in patterns)


def should_sync(name: str, target: Target) -> bool:
    """Decide whether secret *name* applies to *target*.

    A non-empty include list acts as a gate; the exclude list is always
    checked and wins over include.
    """
    include = target.secrets.include
    if include and not matches_any(name, include):
        return False
    if matches_any(name, target.secrets.exclude):
        return False
    return True


def filter_secret_names(names: Iterable[str], target: Target) -> list[str]:
    """Return the names that apply to *target*, preserving input order."""
    return [name for name in names if should_sync(name, target)]
