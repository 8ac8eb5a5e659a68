"""Shared fixtures: in-memory stores, a test registry and a fake HTTP session."""

from __future__ import annotations

import json
from dataclasses import dataclass
from types import SimpleNamespace
from typing import Optional

import pytest

from envsync.engine import SyncEngine
from envsync.errors import StoreError
from envsync.models import SecretsFilter, Target
from envsync.sources import Source
from envsync.stores.base import SecretStore, StoreInfo


# ---------------------------------------------------------------------------
# In-memory stores
# ---------------------------------------------------------------------------


class FakeStore(SecretStore):
    """Keeps secrets in a dict per environment and records every call."""

    identifier = "fake"
    display_name = "Fake"

    def __init__(self, initial=None, fail_on=(), list_error: Optional[Exception] = None):
        self.data = {env: dict(values) for env, values in (initial or {}).items()}
        self.fail_on = set(fail_on)
        self.list_error = list_error
        self.list_calls: list[str] = []
        self.set_calls: list[tuple[str, str, str]] = []
        self.delete_calls: list[tuple[str, str]] = []
        self.tokens: list[Optional[str]] = []

    def environments(self):
        return ["default"]

    def default_mapping(self):
        return {"default": "test"}

    def list(self, environment):
        self.list_calls.append(environment)
        if self.list_error is not None:
            raise self.list_error
        return dict(self.data.get(environment, {}))

    def set(self, name, value, environment):
        self.set_calls.append((name, value, environment))
        if name in self.fail_on:
            raise StoreError(f"rejected {name}")
        self.data.setdefault(environment, {})[name] = value

    def delete(self, name, environment):
        self.delete_calls.append((name, environment))
        self.data.get(environment, {}).pop(name, None)


class WriteOnlyFakeStore(FakeStore):
    """Lists names only, like platforms that never return values."""

    def list(self, environment):
        return {name: "" for name in super().list(environment)}


class ReadOnlyFakeStore(FakeStore):
    supports_write = False


@dataclass(frozen=True)
class FakeOptions:
    project: str = "demo"


def make_info(name: str, store: FakeStore, **kwargs) -> StoreInfo:
    def factory(options, token):
        store.tokens.append(token)
        return store

    return StoreInfo(
        name=name,
        display_name=name.title(),
        factory=factory,
        options=FakeOptions,
        default_mapping={"default": "test"},
        **kwargs,
    )


def make_target(
    name: str = "app",
    type: str = "fake",
    mapping: Optional[dict] = None,
    include=(),
    exclude=(),
    **config,
) -> Target:
    return Target(
        name=name,
        type=type,
        mapping={"default": "test"} if mapping is None else mapping,
        secrets=SecretsFilter(include=tuple(include), exclude=tuple(exclude)),
        config=config,
    )


class DictSource(Source):
    """Returns exactly what it was given, empty strings included."""

    def __init__(self, values: dict):
        self.values = dict(values)

    @property
    def name(self):
        return "dict"

    def get_all(self, names):
        return {n: self.values[n] for n in names if n in self.values}


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def write_only_store():
    return WriteOnlyFakeStore()


@pytest.fixture
def read_only_store():
    return ReadOnlyFakeStore()


@pytest.fixture
def registry(store, write_only_store, read_only_store, monkeypatch):
    monkeypatch.setenv("FAKE_WO_TOKEN", "wo-token")
    monkeypatch.delenv("FAKE_TOKEN", raising=False)
    return {
        "fake": make_info("fake", store),
        "fake-wo": make_info("fake-wo", write_only_store, env_var="FAKE_WO_TOKEN", write_only=True),
        "fake-ro": make_info("fake-ro", read_only_store),
        "fake-token": make_info("fake-token", FakeStore(), env_var="FAKE_TOKEN"),
        "fake-sdk": make_info("fake-sdk", FakeStore(), env_var="FAKE_SDK_TOKEN", sdk_auth=True),
    }


@pytest.fixture
def engine(registry):
    return SyncEngine(registry=registry)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, status_code: int = 200, body=None, text: Optional[str] = None):
        self.status_code = status_code
        if text is None:
            text = "" if body is None else json.dumps(body)
        self.text = text
        self.content = text.encode("utf-8")

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Stands in for requests.Session; replies with queued responses in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[SimpleNamespace] = []

    def request(self, method, url, **kwargs):
        self.requests.append(SimpleNamespace(method=method, url=url, **kwargs))
        if not self.responses:
            raise AssertionError(f"unexpected request: {method} {url}")
        resp = self.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp
