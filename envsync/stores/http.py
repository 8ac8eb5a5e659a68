"""Shared plumbing for stores that talk to a JSON HTTP API."""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from ..errors import StoreError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class APIClient:
    """Thin wrapper around a :class:`requests.Session` for one platform.

    Every request carries an ``Authorization`` header and a timeout; a
    non-success status becomes a :class:`StoreError` with the platform's own
    error message when one can be decoded.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        platform: str,
        auth_scheme: str = "Bearer",
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.platform = platform
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {
            "Authorization": f"{auth_scheme} {token}",
            "Content-Type": "application/json",
        }

    def request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        params: Optional[dict] = None,
        ok: tuple[int, ...] = (200,),
    ) -> Any:
        url = f"{self.base_url}{endpoint}"
        logger.debug("%s %s", method, url)
        try:
            resp = self.session.request(
                method,
                url,
                headers=self.headers,
                json=json,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise StoreError(f"{self.platform} API request failed: {exc}") from exc

        if resp.status_code not in ok:
            raise self._error(resp)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise StoreError(f"{self.platform} API returned invalid JSON") from exc

    def _error(self, resp: requests.Response) -> StoreError:
        message = ""
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            err = body.get("error")
            if isinstance(err, dict):
                code = err.get("code")
                message = err.get("message", "")
                if message and code:
                    message = f"{message} ({code})"
            if not message:
                message = body.get("message") or (err if isinstance(err, str) else "")
        if not message:
            message = f"status {resp.status_code}, body: {resp.text}"
        return StoreError(f"{self.platform} API error: {message}", status_code=resp.status_code)
