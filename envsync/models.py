"""Core data models for envsync."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

LOCAL_TEST = "test"
LOCAL_LIVE = "live"
LOCAL_ENVIRONMENTS = (LOCAL_TEST, LOCAL_LIVE)

# Remote environment key used as the fallback when a remote name is unmapped.
DEFAULT_REMOTE = "default"

# Config keys tried, in order, to label a target with its project.
_PROJECT_KEYS = (
    "project",
    "deployment",
    "service_id",
    "project_ref",
    "app_name",
    "account_id",
    "secret_name",
    "prefix",
    "path",
)


class DiffType(str, Enum):
    """How one secret compares between the local source and a remote store."""

    ADD = "add"              # set locally, absent remotely
    REMOVE = "remove"        # never produced by a sync
    CHANGE = "change"        # set on both sides, values differ
    UNCHANGED = "unchanged"  # set on both sides, values identical
    UNKNOWN = "unknown"      # exists remotely but the value cannot be read


@dataclass(frozen=True)
class SecretsFilter:
    """Glob patterns restricting which secret names apply to a target."""

    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()


@dataclass(frozen=True)
class Target:
    """A configured sync destination.

    ``mapping`` maps remote environment names to local environments
    (``test`` or ``live``); several remote environments may share one local
    environment.  ``config`` holds the platform-specific fields.
    """

    name: str
    type: str
    mapping: dict[str, str] = field(default_factory=dict)
    secrets: SecretsFilter = field(default_factory=SecretsFilter)
    config: dict[str, Any] = field(default_factory=dict)

    @property
    def project(self) -> str:
        """Best-effort project label for display."""
        for key in _PROJECT_KEYS:
            value = (self.config or {}).get(key)
            if isinstance(value, str) and value:
                return value
        return ""

    def local_environments(self) -> list[str]:
        seen: list[str] = []
        for local in (self.mapping or {}).values():
            if local not in seen:
                seen.append(local)
        return seen

    def remote_environments(self) -> list[str]:
        return list(self.mapping or {})

    def map_to_remote(self, local_env: str) -> list[str]:
        """Return every remote environment mapped to *local_env*."""
        return [remote for remote, local in (self.mapping or {}).items() if local == local_env]

    def map_to_local(self, remote_env: str) -> str:
        """Return the local environment for *remote_env*, or ``""`` if unmapped.

        An exact entry wins; otherwise the ``default`` entry is used.
        """
        mapping = self.mapping or {}
        if remote_env in mapping:
            return mapping[remote_env]
        return mapping.get(DEFAULT_REMOTE, "")


@dataclass
class DiffEntry:
    """Comparison of one secret for one (target, remote environment) pair."""

    name: str
    type: DiffType
    old_value: str = ""
    new_value: str = ""
    environment: str = ""
    sensitive: bool = False

    @property
    def is_change(self) -> bool:
        return self.type != DiffType.UNCHANGED


@dataclass
class TargetDiff:
    """All diff entries computed for one target."""

    target_name: str
    target_type: str
    project: str = ""
    entries: list[DiffEntry] = field(default_factory=list)

    @property
    def changes(self) -> list[DiffEntry]:
        """Entries that will result in a write (excludes UNCHANGED)."""
        return [e for e in self.entries if e.is_change]

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)

    def count_by_type(self) -> dict[DiffType, int]:
        counts = {t: 0 for t in DiffType}
        for entry in self.entries:
            counts[entry.type] += 1
        return counts

    def group_by_environment(self) -> dict[str, list[DiffEntry]]:
        grouped: dict[str, list[DiffEntry]] = {}
        for entry in self.entries:
            grouped.setdefault(entry.environment, []).append(entry)
        return grouped


@dataclass
class SecretResult:
    """Outcome of writing a single secret."""

    name: str
    environment: str
    action: DiffType
    success: bool
    error: Optional[BaseException] = None


@dataclass
class SyncResult:
    """Counters and per-secret outcomes of one engine pass."""

    target_name: str
    environment: str
    dry_run: bool = False
    added: int = 0
    changed: int = 0
    unknown: int = 0
    unchanged: int = 0
    failed: int = 0
    errors: list[BaseException] = field(default_factory=list)
    results: list[SecretResult] = field(default_factory=list)

    def count(self, diff_type: DiffType) -> None:
        """Increment the counter matching *diff_type*."""
        if diff_type == DiffType.ADD:
            self.added += 1
        elif diff_type == DiffType.CHANGE:
            self.changed += 1
        elif diff_type == DiffType.UNKNOWN:
            self.unknown += 1
        elif diff_type == DiffType.UNCHANGED:
            self.unchanged += 1

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def ok(self) -> bool:
        return self.failed == 0
