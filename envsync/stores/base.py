"""Abstract base class and metadata for envsync secret stores."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Mapping, Optional

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

_VALID_ENV_KEY = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def sanitize_keys(data: dict[str, str]) -> dict[str, str]:
    """Filter out keys that are not valid environment variable names.

    Valid keys match ``[A-Za-z_][A-Za-z0-9_]*``.  Invalid keys are logged
    and dropped so they can never be written into a .env file.
    """
    clean: dict[str, str] = {}
    for key, value in data.items():
        if _VALID_ENV_KEY.match(key):
            clean[key] = value
        else:
            logger.warning("Skipping invalid env key from remote store: %r", key)
    return clean


class SecretStore(ABC):
    """Interface every platform store implements.

    A store instance owns any cached remote state for its lifetime and must
    not be shared between threads.
    """

    #: Platform type identifier, e.g. ``"vercel"``.
    identifier: str = ""
    display_name: str = ""
    #: False for stores that can only be read.
    supports_write: bool = True

    @abstractmethod
    def environments(self) -> list[str]:
        """Remote environment names this platform knows about."""

    @abstractmethod
    def default_mapping(self) -> dict[str, str]:
        """Suggested remote→local environment mapping for new targets."""

    def validate(self) -> None:
        """Check credentials and configuration; raise on failure."""
        self.list(self.environments()[0])

    @abstractmethod
    def list(self, environment: str) -> dict[str, str]:
        """Return every secret name→value in *environment*.

        Write-only platforms return the names they know with ``""`` values;
        presence of a key is the existence signal.
        """

    @abstractmethod
    def set(self, name: str, value: str, environment: str) -> None:
        """Create or update one secret."""

    @abstractmethod
    def delete(self, name: str, environment: str) -> None:
        """Remove one secret.  Deleting a missing secret is a no-op."""


# ---------------------------------------------------------------------------
# Typed per-platform options
# ---------------------------------------------------------------------------


def options_from_config(cls: type, store_type: str, config: Mapping[str, Any]) -> Any:
    """Build the options dataclass *cls* from a raw target config mapping.

    Fields without a default are required; a missing or empty required field
    raises :class:`ConfigurationError` naming the store type.
    """
    kwargs: dict[str, Any] = {}
    config = config or {}
    for f in fields(cls):
        value = config.get(f.name)
        if value is None or value == "":
            if f.metadata.get("required"):
                raise ConfigurationError(f"{store_type}: {f.name} is required")
            continue
        if not isinstance(value, str):
            value = str(value)
        kwargs[f.name] = value
    return cls(**kwargs)


StoreFactory = Callable[[Any, Optional[str]], SecretStore]


@dataclass(frozen=True)
class StoreInfo:
    """Static metadata for one platform type."""

    name: str
    display_name: str
    factory: StoreFactory
    options: type
    environments: tuple[str, ...] = ("default",)
    default_mapping: Mapping[str, str] = field(default_factory=dict)
    env_var: str = ""
    write_only: bool = False
    sdk_auth: bool = False
    beta: bool = False

    @property
    def needs_token(self) -> bool:
        return bool(self.env_var) and not self.sdk_auth

    def parse_options(self, config: Mapping[str, Any]) -> Any:
        return options_from_config(self.options, self.name, config)
