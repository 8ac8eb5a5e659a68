"""Convex deployment environment variables."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import requests

from ..errors import StoreError
from .base import SecretStore, StoreInfo
from .http import APIClient

logger = logging.getLogger(__name__)

ENVIRONMENTS = ("default",)
DEFAULT_MAPPING = {"default": "test"}


@dataclass(frozen=True)
class ConvexOptions:
    deployment: str = field(default="", metadata={"required": True})


class ConvexStore(SecretStore):
    """A Convex deployment has a single set of variables.

    Dev and prod deployments are configured as separate targets, so the
    environment argument is ignored.
    """

    identifier = "convex"
    display_name = "Convex"

    def __init__(self, deploy_key: str, deployment: str, session: Optional[requests.Session] = None) -> None:
        self.deployment = deployment
        self._api = APIClient(
            f"https://{deployment}.convex.cloud",
            deploy_key,
            platform="convex",
            auth_scheme="Convex",
            session=session,
        )

    @classmethod
    def from_options(cls, options: ConvexOptions, token: Optional[str] = None) -> "ConvexStore":
        return cls(deploy_key=token or "", deployment=options.deployment)

    def environments(self) -> list[str]:
        return list(ENVIRONMENTS)

    def default_mapping(self) -> dict[str, str]:
        return dict(DEFAULT_MAPPING)

    def list(self, environment: str) -> dict[str, str]:
        body = self._api.request(
            "POST",
            "/api/query",
            json={"path": "_system/cli/queryEnvironmentVariables", "args": {}, "format": "json"},
        ) or {}
        if body.get("status") != "success":
            raise StoreError(f"convex query failed: status {body.get('status')}")
        return {env["name"]: env.get("value", "") for env in body.get("value") or []}

    def set(self, name: str, value: str, environment: str) -> None:
        self._update([{"name": name, "value": value}])
        logger.debug("Set %s on %s.", name, self.deployment)

    def delete(self, name: str, environment: str) -> None:
        self._update([{"name": name}])

    def _update(self, changes: list[dict[str, str]]) -> None:
        self._api.request("POST", "/api/update_environment_variables", json={"changes": changes})


INFO = StoreInfo(
    name="convex",
    display_name="Convex",
    factory=ConvexStore.from_options,
    options=ConvexOptions,
    environments=ENVIRONMENTS,
    default_mapping=DEFAULT_MAPPING,
    env_var="CONVEX_DEPLOY_KEY",
)
