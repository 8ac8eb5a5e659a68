"""Local .env file store — treats another dotenv file as a sync target."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..env_file import parse_env_file, remove_env_value, write_env_file
from .base import SecretStore, StoreInfo

logger = logging.getLogger(__name__)

ENVIRONMENTS = ("local",)
DEFAULT_MAPPING = {"local": "test"}


@dataclass(frozen=True)
class DotenvOptions:
    path: str = ".env"


class DotenvStore(SecretStore):
    """Reads and writes ``KEY=VALUE`` lines in a local file.

    The file has no environments of its own; the remote environment argument
    is accepted and ignored.
    """

    identifier = "dotenv"
    display_name = "Local .env"

    def __init__(self, path: str | Path = ".env") -> None:
        self.path = Path(path)

    @classmethod
    def from_options(cls, options: DotenvOptions, token: Optional[str] = None) -> "DotenvStore":
        return cls(path=options.path)

    def environments(self) -> list[str]:
        return list(ENVIRONMENTS)

    def default_mapping(self) -> dict[str, str]:
        return dict(DEFAULT_MAPPING)

    def validate(self) -> None:
        # A missing file is fine; it is created on first write.
        if self.path.exists() and not os.access(self.path, os.R_OK):
            raise PermissionError(f"cannot read {self.path}")

    def list(self, environment: str) -> dict[str, str]:
        return parse_env_file(self.path)

    def set(self, name: str, value: str, environment: str) -> None:
        write_env_file(self.path, {name: value})
        logger.debug("Wrote %s to %s.", name, self.path)

    def delete(self, name: str, environment: str) -> None:
        if remove_env_value(self.path, name):
            logger.debug("Removed %s from %s.", name, self.path)


INFO = StoreInfo(
    name="dotenv",
    display_name="Local .env",
    factory=DotenvStore.from_options,
    options=DotenvOptions,
    environments=ENVIRONMENTS,
    default_mapping=DEFAULT_MAPPING,
)
