"""Supabase Edge Function secrets via the management API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote

import requests

from .base import SecretStore, StoreInfo
from .http import APIClient

logger = logging.getLogger(__name__)

BASE_URL = "https://api.supabase.com"
ENVIRONMENTS = ("default",)
DEFAULT_MAPPING = {"default": "live"}


@dataclass(frozen=True)
class SupabaseOptions:
    project_ref: str = field(default="", metadata={"required": True})


class SupabaseStore(SecretStore):
    """The management API returns digests rather than values, so listed
    values are always empty."""

    identifier = "supabase"
    display_name = "Supabase"

    def __init__(self, token: str, project_ref: str, session: Optional[requests.Session] = None) -> None:
        self.project_ref = project_ref
        self._api = APIClient(BASE_URL, token, platform="supabase", session=session)

    @classmethod
    def from_options(cls, options: SupabaseOptions, token: Optional[str] = None) -> "SupabaseStore":
        return cls(token=token or "", project_ref=options.project_ref)

    def environments(self) -> list[str]:
        return list(ENVIRONMENTS)

    def default_mapping(self) -> dict[str, str]:
        return dict(DEFAULT_MAPPING)

    @property
    def _secrets_path(self) -> str:
        return f"/v1/projects/{quote(self.project_ref, safe='')}/secrets"

    def list(self, environment: str) -> dict[str, str]:
        body = self._api.request("GET", self._secrets_path) or []
        return {s["name"]: "" for s in body}

    def set(self, name: str, value: str, environment: str) -> None:
        self._api.request("POST", self._secrets_path, json=[{"name": name, "value": value}], ok=(200, 201))
        logger.debug("Set %s on %s.", name, self.project_ref)

    def delete(self, name: str, environment: str) -> None:
        self._api.request("DELETE", self._secrets_path, json=[name], ok=(200, 204))


INFO = StoreInfo(
    name="supabase",
    display_name="Supabase",
    factory=SupabaseStore.from_options,
    options=SupabaseOptions,
    environments=ENVIRONMENTS,
    default_mapping=DEFAULT_MAPPING,
    env_var="SUPABASE_ACCESS_TOKEN",
    write_only=True,
)
