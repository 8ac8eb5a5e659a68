"""Run the engine over every target mapped to a local environment."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .auth import AuthStatus
from .engine import PreviewCallback, ProgressCallback, SyncEngine, SyncOptions
from .errors import AuthenticationError
from .models import SyncResult, Target, TargetDiff
from .sources import Source

logger = logging.getLogger(__name__)

SKIP_NO_MAPPING = "no mapping"
SKIP_CANCELLED = "cancelled"


@dataclass
class PassResult:
    """Outcome of one (target, remote environment) pass."""

    target_name: str
    target_type: str
    environment: str = ""
    diff: Optional[TargetDiff] = None
    result: Optional[SyncResult] = None
    error: Optional[BaseException] = None
    skipped: str = ""

    @property
    def failed(self) -> bool:
        return self.error is not None or bool(self.result and self.result.failed)


@dataclass
class RunReport:
    """Everything one sync run did, pass by pass."""

    local_env: str
    dry_run: bool = False
    passes: list[PassResult] = field(default_factory=list)

    def _total(self, attr: str) -> int:
        return sum(getattr(p.result, attr) for p in self.passes if p.result is not None)

    @property
    def added(self) -> int:
        return self._total("added")

    @property
    def changed(self) -> int:
        return self._total("changed")

    @property
    def unknown(self) -> int:
        return self._total("unknown")

    @property
    def unchanged(self) -> int:
        return self._total("unchanged")

    @property
    def failed(self) -> int:
        """Number of secrets whose write failed."""
        return self._total("failed")

    @property
    def failed_passes(self) -> list[PassResult]:
        """Passes that raised before or during their write loop."""
        return [p for p in self.passes if p.error is not None]

    @property
    def skipped(self) -> list[PassResult]:
        return [p for p in self.passes if p.skipped]

    @property
    def ok(self) -> bool:
        return not self.failed_passes and self.failed == 0


def check_all_auth(engine: SyncEngine, targets: Iterable[Target]) -> list[AuthStatus]:
    """Check every target; raise :class:`AuthenticationError` if any fail."""
    statuses = [engine.check_auth(t) for t in targets]
    failed = [s for s in statuses if not s.authenticated]
    if failed:
        names = ", ".join(s.target_name for s in failed)
        raise AuthenticationError(f"authentication failed for: {names}", statuses=failed)
    return statuses


def run_sync(
    engine: SyncEngine,
    secret_names: list[str],
    source: Source,
    targets: list[Target],
    local_env: str,
    *,
    dry_run: bool,
    strict: bool = False,
    progress: Optional[ProgressCallback] = None,
    on_preview: Optional[PreviewCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> RunReport:
    """Preview and apply *local_env* to every target, one pass at a time.

    Authentication for all targets is checked first; a failure aborts the
    run before any store is touched.  With ``strict=False`` an error in one
    pass is recorded and later passes still run.  Once *cancel_event* is
    set, passes that have not started are reported as skipped.
    """
    check_all_auth(engine, targets)

    report = RunReport(local_env=local_env, dry_run=dry_run)

    for target in targets:
        remote_envs = target.map_to_remote(local_env)
        if not remote_envs:
            logger.info("Skipping %s: nothing mapped to %s.", target.name, local_env)
            report.passes.append(
                PassResult(target_name=target.name, target_type=target.type, skipped=SKIP_NO_MAPPING)
            )
            continue

        for remote_env in remote_envs:
            entry = PassResult(target_name=target.name, target_type=target.type, environment=remote_env)
            report.passes.append(entry)

            if cancel_event is not None and cancel_event.is_set():
                entry.skipped = SKIP_CANCELLED
                continue

            def record(diff: TargetDiff) -> None:
                entry.diff = diff
                if on_preview is not None:
                    on_preview(diff)

            options = SyncOptions(dry_run=dry_run, progress=progress, on_preview=record)
            try:
                entry.result = engine.sync(secret_names, source, target, remote_env, options)
            except Exception as exc:
                if strict:
                    raise
                logger.error("Sync of %s/%s failed: %s", target.name, remote_env, exc)
                entry.error = exc

    return report
