"""AWS SSM Parameter Store — each secret is a SecureString under a path prefix."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from .base import SecretStore, StoreInfo, sanitize_keys

logger = logging.getLogger(__name__)

ENVIRONMENTS = ("default",)
DEFAULT_MAPPING = {"default": "test"}


@dataclass(frozen=True)
class SSMOptions:
    region: str = field(default="", metadata={"required": True})
    prefix: str = "/"
    profile: str = ""


class SSMStore(SecretStore):
    """Maps each secret to a separate SSM parameter under a common prefix.

    For example, with ``prefix = "/myapp/prod/"``::

        DB_HOST  →  /myapp/prod/DB_HOST  (SecureString)
        DB_PASS  →  /myapp/prod/DB_PASS  (SecureString)

    Credentials come from the boto3 credential chain (optionally a named
    profile); there is no token.
    """

    identifier = "aws-ssm"
    display_name = "AWS SSM Parameter Store"

    def __init__(self, region: str, prefix: str = "/", profile: str = "") -> None:
        if not prefix.endswith("/"):
            prefix = prefix + "/"
        self.prefix = prefix
        self.region = region
        session = boto3.Session(profile_name=profile or None)
        self._client = session.client(
            "ssm",
            region_name=region,
            verify=True,
            config=BotoConfig(retries={"max_attempts": 3, "mode": "adaptive"}),
        )

    @classmethod
    def from_options(cls, options: SSMOptions, token: Optional[str] = None) -> "SSMStore":
        return cls(region=options.region, prefix=options.prefix, profile=options.profile)

    def environments(self) -> list[str]:
        return list(ENVIRONMENTS)

    def default_mapping(self) -> dict[str, str]:
        return dict(DEFAULT_MAPPING)

    def validate(self) -> None:
        self._client.describe_parameters(MaxResults=1)

    def list(self, environment: str) -> dict[str, str]:
        """Fetch every parameter directly under :attr:`prefix`."""
        result: dict[str, str] = {}
        paginator = self._client.get_paginator("get_parameters_by_path")
        pages = paginator.paginate(
            Path=self.prefix,
            Recursive=False,
            WithDecryption=True,
        )
        for page in pages:
            for param in page.get("Parameters", []):
                name: str = param["Name"]
                result[name[len(self.prefix):]] = param["Value"]
        return sanitize_keys(result)

    def set(self, name: str, value: str, environment: str) -> None:
        full_name = f"{self.prefix}{name}"
        try:
            self._client.put_parameter(
                Name=full_name,
                Value=value,
                Type="SecureString",
                Overwrite=True,
            )
            logger.debug("Wrote parameter %r.", full_name)
        except ClientError:
            logger.error("Failed to write parameter %r.", full_name)
            raise

    def delete(self, name: str, environment: str) -> None:
        full_name = f"{self.prefix}{name}"
        try:
            self._client.delete_parameter(Name=full_name)
            logger.debug("Deleted parameter %r.", full_name)
        except ClientError as exc:
            if exc.response["Error"]["Code"] == "ParameterNotFound":
                return
            logger.error("Failed to delete parameter %r.", full_name)
            raise


INFO = StoreInfo(
    name="aws-ssm",
    display_name="AWS SSM Parameter Store",
    factory=SSMStore.from_options,
    options=SSMOptions,
    environments=ENVIRONMENTS,
    default_mapping=DEFAULT_MAPPING,
    sdk_auth=True,
    beta=True,
)
