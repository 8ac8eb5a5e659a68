"""AWS Secrets Manager — all secrets of a target live in one JSON secret."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from ..errors import StoreError
from .base import SecretStore, StoreInfo, sanitize_keys

logger = logging.getLogger(__name__)

ENVIRONMENTS = ("default",)
DEFAULT_MAPPING = {"default": "test"}


@dataclass(frozen=True)
class SecretsManagerOptions:
    region: str = field(default="", metadata={"required": True})
    secret_name: str = field(default="", metadata={"required": True})
    profile: str = ""


class SecretsManagerStore(SecretStore):
    """Stores all key/value pairs as a JSON object in a single AWS secret.

    The secret value looks like::

        {"DB_HOST": "localhost", "DB_PASS": "s3cret", ...}

    The secret is created on the first write if it does not exist yet.
    Every ``set`` re-reads the blob before merging, so one store instance
    must not be used from several threads at once.
    """

    identifier = "aws-secretsmanager"
    display_name = "AWS Secrets Manager"

    def __init__(self, secret_name: str, region: str, profile: str = "") -> None:
        self.secret_name = secret_name
        self.region = region
        session = boto3.Session(profile_name=profile or None)
        self._client = session.client(
            "secretsmanager",
            region_name=region,
            verify=True,
            config=BotoConfig(retries={"max_attempts": 3, "mode": "adaptive"}),
        )

    @classmethod
    def from_options(
        cls, options: SecretsManagerOptions, token: Optional[str] = None
    ) -> "SecretsManagerStore":
        return cls(
            secret_name=options.secret_name,
            region=options.region,
            profile=options.profile,
        )

    def environments(self) -> list[str]:
        return list(ENVIRONMENTS)

    def default_mapping(self) -> dict[str, str]:
        return dict(DEFAULT_MAPPING)

    def validate(self) -> None:
        self._read()

    def list(self, environment: str) -> dict[str, str]:
        return self._read()

    def set(self, name: str, value: str, environment: str) -> None:
        data = self._read()
        data[name] = value
        self._put_secret(data)

    def delete(self, name: str, environment: str) -> None:
        data = self._read()
        if name not in data:
            return
        del data[name]
        self._put_secret(data)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _read(self) -> dict[str, str]:
        try:
            response = self._client.get_secret_value(SecretId=self.secret_name)
        except ClientError as exc:
            if exc.response["Error"]["Code"] == "ResourceNotFoundException":
                logger.debug("Secret %r not found; treating as empty.", self.secret_name)
                return {}
            raise

        secret_string = response.get("SecretString") or "{}"
        try:
            data = json.loads(secret_string)
        except json.JSONDecodeError as exc:
            raise StoreError(
                f"aws-secretsmanager: secret '{self.secret_name}' does not contain valid JSON"
            ) from exc

        if not isinstance(data, dict):
            raise StoreError(
                f"aws-secretsmanager: secret '{self.secret_name}' must be a JSON object, "
                f"got {type(data).__name__}"
            )

        return sanitize_keys({k: str(v) for k, v in data.items()})

    def _put_secret(self, data: dict[str, str]) -> None:
        secret_string = json.dumps(data, indent=None, ensure_ascii=False)
        try:
            self._client.put_secret_value(
                SecretId=self.secret_name,
                SecretString=secret_string,
            )
            logger.debug("Updated secret %r (%d keys).", self.secret_name, len(data))
        except ClientError as exc:
            if exc.response["Error"]["Code"] != "ResourceNotFoundException":
                raise
            self._client.create_secret(Name=self.secret_name, SecretString=secret_string)
            logger.debug("Created secret %r (%d keys).", self.secret_name, len(data))


INFO = StoreInfo(
    name="aws-secretsmanager",
    display_name="AWS Secrets Manager",
    factory=SecretsManagerStore.from_options,
    options=SecretsManagerOptions,
    environments=ENVIRONMENTS,
    default_mapping=DEFAULT_MAPPING,
    sdk_auth=True,
    beta=True,
)
