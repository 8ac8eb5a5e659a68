"""Store registry and factory."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..errors import ConfigurationError
from ..models import Target
from . import aws_secretsmanager, aws_ssm, convex, dotenv, flyio, supabase, vercel
from .base import SecretStore, StoreInfo

__all__ = [
    "STORES",
    "SecretStore",
    "StoreInfo",
    "env_var_for",
    "get_store_info",
    "is_write_only",
    "open_store",
    "parse_options",
    "store_types",
]

Registry = Mapping[str, StoreInfo]

STORES: Registry = {
    info.name: info
    for info in (
        dotenv.INFO,
        aws_ssm.INFO,
        aws_secretsmanager.INFO,
        vercel.INFO,
        convex.INFO,
        flyio.INFO,
        supabase.INFO,
    )
}


def get_store_info(store_type: str, registry: Registry = STORES) -> StoreInfo:
    """Return the metadata for *store_type* or raise :class:`ConfigurationError`."""
    try:
        return registry[store_type]
    except KeyError:
        known = ", ".join(sorted(registry))
        raise ConfigurationError(
            f"unknown target type {store_type!r} (supported: {known})"
        ) from None


def store_types(registry: Registry = STORES) -> list[str]:
    return sorted(registry)


def is_write_only(store_type: str, registry: Registry = STORES) -> bool:
    info = registry.get(store_type)
    return bool(info and info.write_only)


def env_var_for(store_type: str, registry: Registry = STORES) -> str:
    info = registry.get(store_type)
    return info.env_var if info else ""


def parse_options(target: Target, registry: Registry = STORES) -> Any:
    """Validate *target*'s platform fields into its typed options object."""
    return get_store_info(target.type, registry).parse_options(target.config)


def open_store(target: Target, registry: Registry = STORES, token: Optional[str] = None) -> SecretStore:
    """Construct a store handle for *target*.

    Required platform fields are checked before the factory runs, so a
    misconfigured target fails without touching the network.
    """
    info = get_store_info(target.type, registry)
    options = info.parse_options(target.config)
    return info.factory(options, token)
