"""Resolve platform credentials and check that targets can authenticate."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import CredentialsNotFoundError, EnvSyncError
from .models import Target
from .stores import STORES, StoreInfo, get_store_info

logger = logging.getLogger(__name__)

SOURCE_ENV = "env"
SOURCE_CONFIG = "config"
SOURCE_SDK = "sdk"
SOURCE_NONE = "none"

_INLINE_KEYS = ("token", "deploy_key", "api_key")
_UNRESOLVED_RE = re.compile(r"^\$(\{[A-Za-z_][A-Za-z0-9_]*\}|[A-Za-z_][A-Za-z0-9_]*)$")


@dataclass
class Credentials:
    token: str
    source: str


@dataclass
class AuthStatus:
    """Result of checking one target's credentials."""

    target_name: str
    store_type: str
    authenticated: bool
    source: str = ""
    env_var: str = ""
    error: Optional[BaseException] = None


def resolve_credentials(
    store_type: str,
    config: Optional[Mapping] = None,
    registry: Mapping[str, StoreInfo] = STORES,
) -> Credentials:
    """Find the token for *store_type*.

    Resolution order:

    1. The platform's environment variable (e.g. ``VERCEL_TOKEN``)
    2. An inline ``token`` / ``deploy_key`` / ``api_key`` in the target config,
       with ``${VAR}`` references expanded
    """
    info = get_store_info(store_type, registry)
    if info.env_var:
        value = os.environ.get(info.env_var, "")
        if value:
            return Credentials(token=value, source=SOURCE_ENV)

    for key in _INLINE_KEYS:
        raw = (config or {}).get(key)
        if isinstance(raw, str) and raw:
            value = os.path.expandvars(raw)
            # expandvars leaves a reference to an unset variable untouched.
            if value and not _UNRESOLVED_RE.match(value):
                return Credentials(token=value, source=SOURCE_CONFIG)

    hint = f"set {info.env_var} or " if info.env_var else ""
    raise CredentialsNotFoundError(
        f"no credentials found for {store_type} ({hint}add 'token' to the target config)"
    )


def check_auth(target: Target, registry: Mapping[str, StoreInfo] = STORES) -> AuthStatus:
    """Check whether *target* has usable credentials.

    No network call is made.  SDK-authenticated platforms defer to their own
    credential chain and platforms that need no credential always pass.
    """
    status = AuthStatus(target_name=target.name, store_type=target.type, authenticated=False)
    try:
        info = get_store_info(target.type, registry)
    except EnvSyncError as exc:
        status.error = exc
        return status
    status.env_var = info.env_var

    if info.sdk_auth:
        status.source = SOURCE_SDK
        status.authenticated = True
        return status

    if not info.needs_token:
        status.source = SOURCE_NONE
        status.authenticated = True
        return status

    try:
        creds = resolve_credentials(target.type, target.config, registry)
    except CredentialsNotFoundError as exc:
        logger.debug("No credentials for target %s: %s", target.name, exc)
        status.error = exc
        return status
    status.source = creds.source
    status.authenticated = True
    return status
