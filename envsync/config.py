"""Load and save the envsync.yaml schema file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .errors import ConfigurationError
from .models import LOCAL_ENVIRONMENTS, SecretsFilter, Target
from .stores import STORES, StoreInfo, store_types

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "envsync.yaml"
CONFIG_ENV_VAR = "ENVSYNC_CONFIG"
CURRENT_VERSION = 2

# Target keys that are not passed through to the store as platform config.
_TARGET_KEYS = ("type", "mapping", "include", "exclude")


@dataclass
class Config:
    """The tracked schema: secret names and target definitions, never values.

    ``targets`` maps each target name to its raw definition, kept in file
    order so that targets are synced in the order they were declared.
    """

    version: int = CURRENT_VERSION
    secrets: list[str] = field(default_factory=list)
    targets: dict[str, dict[str, Any]] = field(default_factory=dict)
    # Unrecognised top-level keys, written back unchanged.
    extra: dict[str, Any] = field(default_factory=dict)

    def has_secret(self, name: str) -> bool:
        return name in self.secrets

    def add_secret(self, name: str) -> bool:
        """Track *name*.  Returns False if it was already tracked."""
        if self.has_secret(name):
            return False
        self.secrets.append(name)
        return True

    def add_target(
        self,
        name: str,
        store_type: str,
        mapping: Mapping[str, str],
        **options: Any,
    ) -> None:
        definition: dict[str, Any] = {"type": store_type}
        definition.update({k: v for k, v in options.items() if v not in (None, "")})
        definition["mapping"] = dict(mapping)
        self.targets[name] = definition

    def get_targets(self) -> list[Target]:
        return [_to_target(name, definition) for name, definition in self.targets.items()]

    def get_target(self, name: str) -> Optional[Target]:
        definition = self.targets.get(name)
        if definition is None:
            return None
        return _to_target(name, definition)


def _shape_errors(definition: Mapping[str, Any]) -> list[str]:
    """Check the types of a target's ``mapping``, ``include`` and ``exclude``."""
    errors: list[str] = []
    mapping = definition.get("mapping")
    if mapping is not None and not (
        isinstance(mapping, dict)
        and all(isinstance(k, str) and isinstance(v, str) for k, v in mapping.items())
    ):
        errors.append("'mapping' must map remote environment names to test or live")
    for key in ("include", "exclude"):
        patterns = definition.get(key)
        if patterns is not None and not (
            isinstance(patterns, list) and all(isinstance(p, str) for p in patterns)
        ):
            errors.append(f"'{key}' must be a list of glob patterns")
    return errors


def _to_target(name: str, definition: Mapping[str, Any]) -> Target:
    definition = definition or {}
    return Target(
        name=name,
        type=str(definition.get("type", "")),
        mapping={str(k): str(v) for k, v in (definition.get("mapping") or {}).items()},
        secrets=SecretsFilter(
            include=tuple(definition.get("include") or ()),
            exclude=tuple(definition.get("exclude") or ()),
        ),
        config={k: v for k, v in definition.items() if k not in _TARGET_KEYS},
    )


def resolve_config_path(path: Optional[str | Path] = None) -> Path:
    """Return *path*, else ``$ENVSYNC_CONFIG``, else ``envsync.yaml``."""
    return Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILE)


def config_exists(path: Optional[str | Path] = None) -> bool:
    return resolve_config_path(path).exists()


def new_config() -> Config:
    return Config()


def load_config(path: Optional[str | Path] = None) -> Config:
    """Read and parse the config file.

    A missing ``version`` is treated as the current version.  Any read or
    parse failure raises :class:`ConfigurationError`.
    """
    file_path = resolve_config_path(path)
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"failed to read config file {file_path}: {exc}") from exc

    try:
        raw = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"failed to parse config file {file_path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(f"{file_path}: expected a mapping at the top level")

    secrets = raw.pop("secrets", None) or []
    targets = raw.pop("targets", None) or {}
    if not isinstance(secrets, list):
        raise ConfigurationError(f"{file_path}: 'secrets' must be a list of names")
    if not isinstance(targets, dict):
        raise ConfigurationError(f"{file_path}: 'targets' must be a mapping")

    try:
        version = int(raw.pop("version", None) or CURRENT_VERSION)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{file_path}: 'version' must be an integer") from exc

    definitions: dict[str, dict[str, Any]] = {}
    for name, definition in targets.items():
        if not isinstance(definition, dict):
            raise ConfigurationError(f"{file_path}: target '{name}' must be a mapping")
        shape_errors = _shape_errors(definition)
        if shape_errors:
            raise ConfigurationError(f"{file_path}: target '{name}': {'; '.join(shape_errors)}")
        definitions[str(name)] = definition

    logger.debug("Loaded %s: %d secrets, %d targets.", file_path, len(secrets), len(definitions))
    return Config(version=version, secrets=list(secrets), targets=definitions, extra=raw)


def save_config(cfg: Config, path: Optional[str | Path] = None) -> None:
    file_path = resolve_config_path(path)
    data: dict[str, Any] = {"version": cfg.version}
    data.update(cfg.extra)
    data["secrets"] = list(cfg.secrets)
    if cfg.targets:
        data["targets"] = cfg.targets

    try:
        if str(file_path.parent) not in ("", "."):
            file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(
            yaml.safe_dump(data, sort_keys=False, default_flow_style=False),
            encoding="utf-8",
        )
    except OSError as exc:
        raise ConfigurationError(f"failed to write config file {file_path}: {exc}") from exc


def validate_config(cfg: Config, registry: Mapping[str, StoreInfo] = STORES) -> list[str]:
    """Return a list of validation error strings (empty = valid)."""
    errors: list[str] = []

    if cfg.version > CURRENT_VERSION:
        errors.append(
            f"Unsupported config version {cfg.version}. "
            f"This release understands version {CURRENT_VERSION} or older."
        )

    for name in cfg.secrets:
        if not isinstance(name, str) or not name:
            errors.append(f"Invalid secret name {name!r}: names must be non-empty strings.")

    for name, definition in cfg.targets.items():
        shape_errors = _shape_errors(definition or {})
        if shape_errors:
            errors.extend(f"Target '{name}': {error}" for error in shape_errors)
            continue
        target = _to_target(name, definition)
        info = registry.get(target.type)
        if info is None:
            errors.append(
                f"Target '{target.name}': unknown type '{target.type}'. "
                f"Must be one of: {', '.join(store_types(registry))}"
            )
            continue
        try:
            info.parse_options(target.config)
        except ConfigurationError as exc:
            errors.append(f"Target '{target.name}': {exc}")
        for remote, local in target.mapping.items():
            if local not in LOCAL_ENVIRONMENTS:
                errors.append(
                    f"Target '{target.name}': mapping '{remote}' -> '{local}' is invalid. "
                    f"Local environment must be one of: {', '.join(LOCAL_ENVIRONMENTS)}"
                )

    return errors
