"""Exception types raised by envsync."""

from __future__ import annotations

from typing import Optional


class EnvSyncError(Exception):
    """Base class for all envsync errors."""


class ConfigurationError(EnvSyncError):
    """The config file or a target definition is invalid or incomplete."""


class CredentialsNotFoundError(EnvSyncError):
    """No credential could be resolved for a store type."""


class AuthenticationError(EnvSyncError):
    """One or more targets failed authentication.

    ``statuses`` holds the failing :class:`envsync.auth.AuthStatus` objects
    when raised by the pre-flight check.
    """

    def __init__(self, message: str, statuses: Optional[list] = None) -> None:
        super().__init__(message)
        self.statuses = list(statuses or [])


class StoreError(EnvSyncError):
    """A remote platform rejected a request."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteReadError(EnvSyncError):
    """Listing secrets from a target failed."""

    def __init__(self, target_name: str, cause: BaseException) -> None:
        super().__init__(f"failed to list secrets from {target_name}: {cause}")
        self.target_name = target_name


class UnsupportedOperationError(EnvSyncError):
    """The requested operation is not possible for this platform."""


class WriteOnlyStoreError(UnsupportedOperationError):
    """Values cannot be read back from a write-only platform."""


class SecretWriteError(EnvSyncError):
    """Writing a single secret failed; recorded in a sync result, not raised."""

    def __init__(self, name: str, cause: BaseException) -> None:
        super().__init__(f"{name}: {cause}")
        self.name = name
        self.cause = cause
