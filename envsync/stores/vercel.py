"""Vercel project environment variables."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import quote

import requests

from .base import SecretStore, StoreInfo
from .http import APIClient

logger = logging.getLogger(__name__)

BASE_URL = "https://api.vercel.com"
ENVIRONMENTS = ("development", "preview", "production")
DEFAULT_MAPPING = {"development": "test", "preview": "test", "production": "live"}


@dataclass(frozen=True)
class VercelOptions:
    project: str = field(default="", metadata={"required": True})
    team_id: str = ""


class VercelStore(SecretStore):
    """One Vercel env var can target several environments at once.

    The store keeps the project's full env var list cached by key.  It is
    fetched on the first ``list`` and refreshed before every ``set`` and
    ``delete``; the cache belongs to this instance only.
    """

    identifier = "vercel"
    display_name = "Vercel"

    def __init__(
        self,
        token: str,
        project: str,
        team_id: str = "",
        session: Optional[requests.Session] = None,
    ) -> None:
        self.project = project
        self.team_id = team_id
        self._api = APIClient(BASE_URL, token, platform="vercel", session=session)
        self._env_vars: dict[str, dict[str, Any]] = {}

    @classmethod
    def from_options(cls, options: VercelOptions, token: Optional[str] = None) -> "VercelStore":
        return cls(token=token or "", project=options.project, team_id=options.team_id)

    def environments(self) -> list[str]:
        return list(ENVIRONMENTS)

    def default_mapping(self) -> dict[str, str]:
        return dict(DEFAULT_MAPPING)

    def validate(self) -> None:
        self._api.request("GET", "/v2/user", params=self._params())

    def list(self, environment: str) -> dict[str, str]:
        if not self._env_vars:
            self._refresh()
        return {
            key: env.get("value", "")
            for key, env in self._env_vars.items()
            if environment in env.get("target", [])
        }

    def set(self, name: str, value: str, environment: str) -> None:
        self._refresh()
        existing = self._env_vars.get(name)
        if existing is None:
            self._api.request(
                "POST",
                f"/v10/projects/{self._project_path}/env",
                json={"key": name, "value": value, "target": [environment], "type": "encrypted"},
                params=self._params(),
                ok=(200, 201),
            )
            logger.debug("Created %s for %s.", name, environment)
            return

        targets = list(existing.get("target", []))
        if environment not in targets:
            targets.append(environment)
        self._api.request(
            "PATCH",
            f"/v9/projects/{self._project_path}/env/{quote(existing['id'], safe='')}",
            json={"key": name, "value": value, "target": targets, "type": "encrypted"},
            params=self._params(),
        )
        logger.debug("Updated %s for %s.", name, ", ".join(targets))

    def delete(self, name: str, environment: str) -> None:
        self._refresh()
        existing = self._env_vars.get(name)
        if existing is None:
            return
        env_path = f"/v9/projects/{self._project_path}/env/{quote(existing['id'], safe='')}"
        targets = [t for t in existing.get("target", []) if t != environment]
        if not targets:
            self._api.request("DELETE", env_path, params=self._params(), ok=(200, 204))
            return
        self._api.request(
            "PATCH",
            env_path,
            json={
                "key": name,
                "value": existing.get("value", ""),
                "target": targets,
                "type": existing.get("type", "encrypted"),
            },
            params=self._params(),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def _project_path(self) -> str:
        return quote(self.project, safe="")

    def _params(self) -> Optional[dict[str, str]]:
        return {"teamId": self.team_id} if self.team_id else None

    def _refresh(self) -> None:
        body = self._api.request(
            "GET", f"/v9/projects/{self._project_path}/env", params=self._params()
        )
        self._env_vars = {env["key"]: env for env in (body or {}).get("envs", [])}


INFO = StoreInfo(
    name="vercel",
    display_name="Vercel",
    factory=VercelStore.from_options,
    options=VercelOptions,
    environments=ENVIRONMENTS,
    default_mapping=DEFAULT_MAPPING,
    env_var="VERCEL_TOKEN",
)
