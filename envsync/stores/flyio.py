"""Fly.io app secrets via the Machines API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote

import requests

from .base import SecretStore, StoreInfo
from .http import APIClient

logger = logging.getLogger(__name__)

BASE_URL = "https://api.machines.dev/v1"
ENVIRONMENTS = ("default",)
DEFAULT_MAPPING = {"default": "live"}


@dataclass(frozen=True)
class FlyOptions:
    app_name: str = field(default="", metadata={"required": True})


class FlyStore(SecretStore):
    """Fly.io never returns secret values, only their names."""

    identifier = "flyio"
    display_name = "Fly.io"

    def __init__(self, token: str, app_name: str, session: Optional[requests.Session] = None) -> None:
        self.app_name = app_name
        self._api = APIClient(BASE_URL, token, platform="flyio", session=session)

    @classmethod
    def from_options(cls, options: FlyOptions, token: Optional[str] = None) -> "FlyStore":
        return cls(token=token or "", app_name=options.app_name)

    def environments(self) -> list[str]:
        return list(ENVIRONMENTS)

    def default_mapping(self) -> dict[str, str]:
        return dict(DEFAULT_MAPPING)

    @property
    def _secrets_path(self) -> str:
        return f"/apps/{quote(self.app_name, safe='')}/secrets"

    def list(self, environment: str) -> dict[str, str]:
        body = self._api.request("GET", self._secrets_path) or {}
        return {s["name"]: "" for s in body.get("secrets") or []}

    def set(self, name: str, value: str, environment: str) -> None:
        self._api.request("POST", self._secrets_path, json={"values": {name: value}}, ok=(200, 201))
        logger.debug("Set %s on %s.", name, self.app_name)

    def delete(self, name: str, environment: str) -> None:
        self._api.request("DELETE", f"{self._secrets_path}/{quote(name, safe='')}", ok=(200, 204))


INFO = StoreInfo(
    name="flyio",
    display_name="Fly.io",
    factory=FlyStore.from_options,
    options=FlyOptions,
    environments=ENVIRONMENTS,
    default_mapping=DEFAULT_MAPPING,
    env_var="FLY_API_TOKEN",
    write_only=True,
)
