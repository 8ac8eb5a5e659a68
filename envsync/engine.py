"""Compute diffs between local values and a remote store, and apply them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional

from .auth import AuthStatus, check_auth, resolve_credentials
from .errors import (
    AuthenticationError,
    CredentialsNotFoundError,
    RemoteReadError,
    SecretWriteError,
    UnsupportedOperationError,
    WriteOnlyStoreError,
)
from .filter import filter_secret_names
from .models import DiffEntry, DiffType, SecretResult, SyncResult, Target, TargetDiff
from .sources import Source
from .stores import STORES, SecretStore, StoreInfo, get_store_info, open_store

logger = logging.getLogger(__name__)


# Keys that should always be masked in output (case-insensitive substring match)
_SENSITIVE_FRAGMENTS = (
    "pass",
    "password",
    "passwd",
    "secret",
    "token",
    "key",
    "api_key",
    "apikey",
    "auth",
    "credential",
    "private",
    "cert",
    "dsn",
)


def is_sensitive(key: str) -> bool:
    """Heuristically decide whether *key* looks like a sensitive variable."""
    lower = key.lower()
    return any(frag in lower for frag in _SENSITIVE_FRAGMENTS)


def classify(local_value: Optional[str], remote_value: Optional[str], write_only: bool) -> Optional[DiffType]:
    """Classify one secret.  ``None`` on either side means absent.

    Returns ``None`` when there is no local value: local absence never
    produces an entry, so it can never trigger a remote delete.
    """
    if not local_value:
        return None
    if write_only and remote_value is not None:
        return DiffType.UNKNOWN
    if remote_value is None:
        return DiffType.ADD
    if local_value != remote_value:
        return DiffType.CHANGE
    return DiffType.UNCHANGED


@dataclass
class ProgressEvent:
    """Emitted before (``done=False``) and after (``done=True``) each write."""

    target_name: str
    secret_name: str
    environment: str
    action: str
    done: bool = False
    success: bool = False
    error: Optional[BaseException] = None


ProgressCallback = Callable[[ProgressEvent], None]
PreviewCallback = Callable[[TargetDiff], None]


@dataclass
class SyncOptions:
    dry_run: bool = False
    progress: Optional[ProgressCallback] = None
    #: Receives the diff a sync is about to apply, before any write.
    on_preview: Optional[PreviewCallback] = None


class SyncEngine:
    """Reconciles local secret values with one target's remote environment.

    Each call opens its own store handle, so no remote state is shared
    between targets or between calls.
    """

    def __init__(self, registry: Mapping[str, StoreInfo] = STORES) -> None:
        self.registry = registry

    # ------------------------------------------------------------------
    # Store handles
    # ------------------------------------------------------------------

    def open(self, target: Target) -> SecretStore:
        """Resolve credentials and construct the store for *target*.

        Raises :class:`ConfigurationError` for an unknown type or missing
        platform field and :class:`AuthenticationError` when no credential
        can be found.
        """
        info = get_store_info(target.type, self.registry)
        token: Optional[str] = None
        if info.needs_token:
            try:
                token = resolve_credentials(target.type, target.config, self.registry).token
            except CredentialsNotFoundError as exc:
                raise AuthenticationError(f"authentication failed for {target.name}: {exc}") from exc
        return open_store(target, self.registry, token)

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def preview(
        self,
        secret_names: Iterable[str],
        source: Source,
        target: Target,
        remote_env: str,
    ) -> TargetDiff:
        """Compute what a sync of *remote_env* on *target* would change.

        Entries follow the order of *secret_names*.  Nothing is written.
        """
        return self._preview(self.open(target), secret_names, source, target, remote_env)

    def _preview(
        self,
        store: SecretStore,
        secret_names: Iterable[str],
        source: Source,
        target: Target,
        remote_env: str,
    ) -> TargetDiff:
        names = filter_secret_names(secret_names, target)
        local = source.get_all(names)

        try:
            remote = store.list(remote_env)
        except Exception as exc:
            raise RemoteReadError(target.name, exc) from exc

        write_only = get_store_info(target.type, self.registry).write_only

        diff = TargetDiff(target_name=target.name, target_type=target.type, project=target.project)
        for name in names:
            local_value = local.get(name, "")
            remote_value = remote.get(name)
            diff_type = classify(local_value, remote_value, write_only)
            if diff_type is None:
                continue
            diff.entries.append(
                DiffEntry(
                    name=name,
                    type=diff_type,
                    old_value=remote_value or "",
                    new_value=local_value,
                    environment=remote_env,
                    sensitive=is_sensitive(name),
                )
            )

        logger.debug(
            "Previewed %s/%s: %d of %d secrets have a local value.",
            target.name,
            remote_env,
            len(diff.entries),
            len(names),
        )
        return diff

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    def sync(
        self,
        secret_names: Iterable[str],
        source: Source,
        target: Target,
        remote_env: str,
        options: Optional[SyncOptions] = None,
    ) -> SyncResult:
        """Push local values for *remote_env* on *target*.

        Every entry that is not unchanged is written with ``set``; nothing is
        ever deleted.  A failed write is recorded in the result and the
        remaining secrets are still processed.
        """
        options = options or SyncOptions()
        store = self.open(target)
        diff = self._preview(store, secret_names, source, target, remote_env)
        if options.on_preview is not None:
            options.on_preview(diff)
        result = SyncResult(target_name=target.name, environment=remote_env, dry_run=options.dry_run)

        if options.dry_run:
            for entry in diff.entries:
                result.count(entry.type)
            return result

        if not store.supports_write:
            raise UnsupportedOperationError(f"{target.type} does not support writing")

        for entry in diff.entries:
            if entry.type == DiffType.UNCHANGED:
                result.count(entry.type)
                continue
            self._write(store, target, entry, result, options.progress)

        if result.failed:
            logger.warning(
                "%d of %d writes to %s/%s failed.",
                result.failed,
                len(diff.changes),
                target.name,
                remote_env,
            )
        return result

    def _write(
        self,
        store: SecretStore,
        target: Target,
        entry: DiffEntry,
        result: SyncResult,
        progress: Optional[ProgressCallback],
    ) -> None:
        event = ProgressEvent(
            target_name=target.name,
            secret_name=entry.name,
            environment=entry.environment,
            action=entry.type.value,
        )
        if progress is not None:
            progress(event)

        error: Optional[SecretWriteError] = None
        try:
            store.set(entry.name, entry.new_value, entry.environment)
        except Exception as exc:
            logger.debug("Writing %s to %s failed: %s", entry.name, target.name, exc)
            error = SecretWriteError(entry.name, exc)

        if error is None:
            result.count(entry.type)
        else:
            result.failed += 1
            result.errors.append(error)
        result.results.append(
            SecretResult(
                name=entry.name,
                environment=entry.environment,
                action=entry.type,
                success=error is None,
                error=error,
            )
        )

        if progress is not None:
            progress(
                ProgressEvent(
                    target_name=event.target_name,
                    secret_name=event.secret_name,
                    environment=event.environment,
                    action=event.action,
                    done=True,
                    success=error is None,
                    error=error,
                )
            )

    # ------------------------------------------------------------------
    # Pull / auth
    # ------------------------------------------------------------------

    def pull(self, target: Target, remote_env: str) -> dict[str, str]:
        """Return every secret in *remote_env* on *target*.

        Write-only platforms are rejected before any store is opened.
        """
        info = get_store_info(target.type, self.registry)
        if info.write_only:
            raise WriteOnlyStoreError(
                f"{info.display_name} is write-only: secret values cannot be read back"
            )
        store = self.open(target)
        try:
            return dict(store.list(remote_env))
        except Exception as exc:
            raise RemoteReadError(target.name, exc) from exc

    def check_auth(self, target: Target) -> AuthStatus:
        return check_auth(target, self.registry)
