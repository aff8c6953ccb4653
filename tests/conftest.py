"""Shared test fixtures and configuration."""

from __future__ import annotations

import contextlib
import json
from typing import TYPE_CHECKING, Any

import httpx
import pytest

from gaia_relay.config import RelaySettings

if TYPE_CHECKING:
    from collections.abc import Callable

BASE_URL = "http://gaia.test/v1"
API_KEY = "test-key"


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Set default timeout for all tests."""
    for item in items:
        with contextlib.suppress(AttributeError):
            item.add_marker(pytest.mark.timeout(3))


class StubProvider:
    """Stand-in for the Gaia API that records every request it receives."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]) -> None:
        self._responder = responder
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)

    @property
    def calls(self) -> int:
        return len(self.requests)

    @property
    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def settings() -> RelaySettings:
    return RelaySettings(base_url=BASE_URL, api_key=API_KEY)


@pytest.fixture
def unconfigured_settings() -> RelaySettings:
    return RelaySettings(base_url=BASE_URL, api_key=None)


@pytest.fixture
def provider_factory() -> Callable[..., StubProvider]:
    """Build a `StubProvider` from a responder function."""
    return StubProvider


@pytest.fixture
def completion_body() -> dict[str, Any]:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "gaia-default",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": "A blockchain is a shared ledger."},
                "finish_reason": "stop",
            },
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 7, "total_tokens": 17},
    }


@pytest.fixture
def sse_body() -> bytes:
    return (
        b'data: {"choices":[{"delta":{"content":"Hello"}}]}\n\n'
        b'data: {"choices":[{"delta":{"content":" learner"}}]}\n\n'
        b"data: [DONE]\n\n"
    )
