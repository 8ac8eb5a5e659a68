"""Tests for envsync.auth — credential resolution order."""

from __future__ import annotations

import pytest

from conftest import make_target
from envsync.auth import check_auth, resolve_credentials
from envsync.errors import ConfigurationError, CredentialsNotFoundError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("VERCEL_TOKEN", "CONVEX_DEPLOY_KEY", "MY_KEY", "UNSET_VAR"):
        monkeypatch.delenv(var, raising=False)


class TestResolveCredentials:
    def test_env_var_wins_over_inline(self, monkeypatch):
        monkeypatch.setenv("VERCEL_TOKEN", "from-env")
        creds = resolve_credentials("vercel", {"token": "inline"})
        assert (creds.token, creds.source) == ("from-env", "env")

    def test_inline_token(self):
        creds = resolve_credentials("vercel", {"token": "inline"})
        assert (creds.token, creds.source) == ("inline", "config")

    def test_inline_deploy_key_expanded(self, monkeypatch):
        monkeypatch.setenv("MY_KEY", "prod:abc")
        creds = resolve_credentials("convex", {"deploy_key": "${MY_KEY}"})
        assert creds.token == "prod:abc"
        assert creds.source == "config"

    def test_unset_reference_is_not_found(self):
        with pytest.raises(CredentialsNotFoundError, match="VERCEL_TOKEN"):
            resolve_credentials("vercel", {"token": "${UNSET_VAR}"})

    def test_nothing_configured(self):
        with pytest.raises(CredentialsNotFoundError):
            resolve_credentials("vercel", {})

    def test_unknown_type(self):
        with pytest.raises(ConfigurationError):
            resolve_credentials("nope", {})


class TestCheckAuth:
    def test_token_platform_authenticated_from_env(self, monkeypatch):
        monkeypatch.setenv("VERCEL_TOKEN", "t")
        status = check_auth(make_target(type="vercel", project="p"))
        assert status.authenticated
        assert status.source == "env"
        assert status.env_var == "VERCEL_TOKEN"

    def test_token_platform_missing(self):
        status = check_auth(make_target(name="web", type="vercel", project="p"))
        assert not status.authenticated
        assert isinstance(status.error, CredentialsNotFoundError)
        assert status.target_name == "web"

    def test_sdk_platform(self):
        status = check_auth(make_target(type="aws-ssm", region="us-east-1"))
        assert status.authenticated
        assert status.source == "sdk"

    def test_credential_free_platform(self):
        status = check_auth(make_target(type="dotenv"))
        assert status.authenticated
        assert status.source == "none"

    def test_unknown_type_not_authenticated(self):
        status = check_auth(make_target(type="nope"))
        assert not status.authenticated
        assert isinstance(status.error, ConfigurationError)
