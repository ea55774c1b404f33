"""Pytest fixtures for apiaction tests."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio

from apiaction import ActionFactory, ActionSettings, HttpxTransport
from apiaction.observability.logging import ROOT_LOGGER_NAME, clear_context
from apiaction.ports.invalidation import CacheInvalidator

BASE_URL = "http://api.test"

ENV_VARS = (
    "BASE_URL",
    "API_URL",
    "APIACTION_BASE_URL",
    "APIACTION_TIMEOUT",
    "APIACTION_INVALIDATION_ERRORS",
    "APIACTION_LOG_LEVEL",
    "APIACTION_JSON_LOGS",
    "APIACTION_DEFAULT_HEADERS",
)


class StubServer:
    """httpx MockTransport handler that records requests and replays responses."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._responses: list[httpx.Response | Exception] = []

    def respond(
        self,
        status_code: int = 200,
        json: Any = None,
        text: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        if json is not None:
            response = httpx.Response(status_code, json=json, headers=headers)
        elif text is not None:
            response = httpx.Response(status_code, text=text, headers=headers)
        else:
            response = httpx.Response(status_code, headers=headers)
        self._responses.append(response)

    def fail_with(self, error: Exception) -> None:
        self._responses.append(error)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self._responses.pop(0) if self._responses else httpx.Response(200, json={})
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "no request was sent"
        return self.requests[-1]


class RecordingInvalidator(CacheInvalidator):
    """Invalidator that records tags and can fail on chosen ones."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.tags: list[str] = []
        self.failing = failing or set()

    def invalidate(self, tag: str) -> None:
        self.tags.append(tag)
        if tag in self.failing:
            raise RuntimeError(f"cannot invalidate {tag}")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_logging() -> Any:
    yield
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.handlers.clear()
    root_logger.propagate = True
    root_logger.setLevel(logging.NOTSET)
    clear_context()


@pytest.fixture
def stub_server() -> StubServer:
    return StubServer()


@pytest.fixture
def invalidator() -> RecordingInvalidator:
    return RecordingInvalidator()


@pytest.fixture
def settings() -> ActionSettings:
    return ActionSettings(base_url=BASE_URL, timeout=5.0)


@pytest.fixture
def make_factory(
    stub_server: StubServer,
    invalidator: RecordingInvalidator,
) -> Callable[..., ActionFactory]:
    def _make(**overrides: Any) -> ActionFactory:
        settings_kwargs = {"base_url": BASE_URL, "timeout": 5.0}
        settings_kwargs.update(overrides.pop("settings", {}))
        client = httpx.AsyncClient(transport=httpx.MockTransport(stub_server))
        return ActionFactory(
            settings=ActionSettings(**settings_kwargs),
            transport=HttpxTransport(client=client),
            invalidator=overrides.pop("invalidator", invalidator),
        )

    return _make


@pytest_asyncio.fixture
async def factory(make_factory: Callable[..., ActionFactory]) -> AsyncIterator[ActionFactory]:
    factory = make_factory()
    yield factory
    await factory.transport.client.aclose()  # type: ignore[attr-defined]
