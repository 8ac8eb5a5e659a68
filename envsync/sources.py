"""Local secret sources: process environment and .env files."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional

from .env_file import parse_env_file


class Source(ABC):
    """Provides local secret values by name."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable description of where values come from."""

    @abstractmethod
    def get_all(self, names: Iterable[str]) -> dict[str, str]:
        """Return values for every name in *names* that this source knows.

        Names without a value are simply absent from the result.
        """

    def get(self, name: str) -> str:
        """Return the value for *name*, or ``""`` if unset."""
        return self.get_all([name]).get(name, "")


class EnvSource(Source):
    """Reads values from the process environment; empty variables are unset."""

    def __init__(self, environ: Optional[dict] = None) -> None:
        self._environ = os.environ if environ is None else environ

    @property
    def name(self) -> str:
        return "environment"

    def get_all(self, names: Iterable[str]) -> dict[str, str]:
        result: dict[str, str] = {}
        for name in names:
            value = self._environ.get(name, "")
            if value:
                result[name] = value
        return result


class FileSource(Source):
    """Reads values from a dotenv file, parsed once on first use."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._values: Optional[dict[str, str]] = None

    @property
    def name(self) -> str:
        return str(self.path)

    def _load(self) -> dict[str, str]:
        if self._values is None:
            self._values = parse_env_file(self.path)
        return self._values

    def get_all(self, names: Iterable[str]) -> dict[str, str]:
        values = self._load()
        return {name: values[name] for name in names if name in values}

    def list_all(self) -> dict[str, str]:
        return dict(self._load())


class CombinedSource(Source):
    """Tries several sources in order; earlier sources win."""

    def __init__(self, *sources: Source) -> None:
        self.sources = list(sources)

    @property
    def name(self) -> str:
        return " + ".join(s.name for s in self.sources)

    def get_all(self, names: Iterable[str]) -> dict[str, str]:
        names = list(names)
        result: dict[str, str] = {}
        for source in reversed(self.sources):
            for key, value in source.get_all(names).items():
                if value:
                    result[key] = value
        return result
