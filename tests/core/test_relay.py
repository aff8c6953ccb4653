"""Tests for the completion and streaming relay."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from gaia_relay.core.relay import GaiaRelay, parse_error_body
from gaia_relay.errors import ConfigurationError, RelayInternalError, UpstreamError
from gaia_relay.models import ChatCompletionRequest, ChatMessage


def _request(**kwargs: Any) -> ChatCompletionRequest:
    return ChatCompletionRequest(
        messages=[
            ChatMessage(role="system", content="You teach Web3."),
            ChatMessage(role="user", content="What is a wallet?"),
            ChatMessage(role="assistant", content="A key holder."),
            ChatMessage(role="user", content="And a seed phrase?"),
        ],
        **kwargs,
    )


@pytest.mark.asyncio
async def test_missing_api_key_fails_before_any_call(
    unconfigured_settings: Any,
    provider_factory: Any,
) -> None:
    provider = provider_factory(lambda _request: httpx.Response(200, json={}))
    relay = GaiaRelay(unconfigured_settings, transport=provider.transport())

    with pytest.raises(ConfigurationError, match="Gaia API key is not configured") as exc_info:
        await relay.create_chat_completion(_request())
    assert exc_info.value.status_code == 500

    with pytest.raises(ConfigurationError):
        await relay.open_stream(_request())
    with pytest.raises(ConfigurationError):
        await relay.get_node_info()

    assert provider.calls == 0


@pytest.mark.asyncio
async def test_create_chat_completion_forwards_request(
    settings: Any,
    provider_factory: Any,
    completion_body: dict[str, Any],
) -> None:
    provider = provider_factory(lambda _request: httpx.Response(200, json=completion_body))
    relay = GaiaRelay(settings, transport=provider.transport())

    result = await relay.create_chat_completion(_request())

    assert result == completion_body
    assert provider.calls == 1
    sent = provider.requests[0]
    assert sent.method == "POST"
    assert str(sent.url) == "http://gaia.test/v1/chat/completions"
    assert sent.headers["Authorization"] == "Bearer test-key"
    body = provider.last_json
    assert [m["content"] for m in body["messages"]] == [
        "You teach Web3.",
        "What is a wallet?",
        "A key holder.",
        "And a seed phrase?",
    ]
    assert body["temperature"] == 0.7
    assert body["max_tokens"] == 2000
    assert body["stream"] is False
    assert "model" not in body


@pytest.mark.asyncio
async def test_extra_fields_are_forwarded(
    settings: Any,
    provider_factory: Any,
    completion_body: dict[str, Any],
) -> None:
    provider = provider_factory(lambda _request: httpx.Response(200, json=completion_body))
    relay = GaiaRelay(settings, transport=provider.transport())

    await relay.create_chat_completion(
        _request(model="llama", temperature=0.1, top_p=0.9),
    )

    body = provider.last_json
    assert body["model"] == "llama"
    assert body["temperature"] == 0.1
    assert body["top_p"] == 0.9


@pytest.mark.asyncio
async def test_message_extra_fields_are_forwarded(
    settings: Any,
    provider_factory: Any,
    completion_body: dict[str, Any],
) -> None:
    provider = provider_factory(lambda _request: httpx.Response(200, json=completion_body))
    relay = GaiaRelay(settings, transport=provider.transport())
    chat_request = ChatCompletionRequest(
        messages=[ChatMessage(role="user", content="What is gas?", name="bob")],
    )

    await relay.create_chat_completion(chat_request)

    assert provider.last_json["messages"] == [
        {"role": "user", "content": "What is gas?", "name": "bob"},
    ]


@pytest.mark.asyncio
async def test_non_success_with_json_body(settings: Any, provider_factory: Any) -> None:
    error_body = {"error": {"message": "rate limited"}}
    provider = provider_factory(lambda _request: httpx.Response(429, json=error_body))
    relay = GaiaRelay(settings, transport=provider.transport())

    with pytest.raises(UpstreamError) as exc_info:
        await relay.create_chat_completion(_request())

    assert exc_info.value.status_code == 429
    assert exc_info.value.details == error_body
    assert exc_info.value.to_payload() == {"error": "Gaia API Error: 429", "details": error_body}
    assert provider.calls == 1  # no retry


@pytest.mark.asyncio
async def test_non_success_with_text_body(settings: Any, provider_factory: Any) -> None:
    provider = provider_factory(lambda _request: httpx.Response(502, text="upstream exploded"))
    relay = GaiaRelay(settings, transport=provider.transport())

    with pytest.raises(UpstreamError) as exc_info:
        await relay.create_chat_completion(_request())

    assert exc_info.value.status_code == 502
    assert exc_info.value.details == {"rawError": "upstream exploded"}


def test_parse_error_body_empty_text() -> None:
    assert parse_error_body("") == {"rawError": "No error details available"}
    assert parse_error_body('["x"]') == ["x"]


@pytest.mark.asyncio
async def test_transport_failure_becomes_internal_error(
    settings: Any,
    provider_factory: Any,
) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        msg = "connection refused"
        raise httpx.ConnectError(msg, request=request)

    relay = GaiaRelay(settings, transport=provider_factory(refuse).transport())

    with pytest.raises(RelayInternalError) as exc_info:
        await relay.create_chat_completion(_request())

    assert exc_info.value.status_code == 500
    assert exc_info.value.to_payload() == {
        "error": "Internal Server Error",
        "details": "connection refused",
    }
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_malformed_success_body_becomes_internal_error(
    settings: Any,
    provider_factory: Any,
) -> None:
    provider = provider_factory(lambda _request: httpx.Response(200, text="<html>oops</html>"))
    relay = GaiaRelay(settings, transport=provider.transport())

    with pytest.raises(RelayInternalError):
        await relay.create_chat_completion(_request())


@pytest.mark.asyncio
async def test_get_node_info(settings: Any, provider_factory: Any) -> None:
    info = {"node_version": "0.4.0", "chat_model": "llama"}
    provider = provider_factory(lambda _request: httpx.Response(200, json=info))
    relay = GaiaRelay(settings, transport=provider.transport())

    assert await relay.get_node_info() == info
    assert provider.requests[0].method == "GET"
    assert str(provider.requests[0].url) == "http://gaia.test/v1/node/info"


@pytest.mark.asyncio
async def test_open_stream_forces_streaming_and_copies_bytes(
    settings: Any,
    provider_factory: Any,
    sse_body: bytes,
) -> None:
    provider = provider_factory(
        lambda _request: httpx.Response(
            200,
            content=sse_body,
            headers={"Content-Type": "text/event-stream"},
        ),
    )
    relay = GaiaRelay(settings, transport=provider.transport())

    stream = await relay.open_stream(_request(stream=False))
    copied = b"".join([chunk async for chunk in stream.aiter_bytes()])

    assert copied == sse_body
    assert stream.status_code == 200
    assert provider.last_json["stream"] is True


@pytest.mark.asyncio
async def test_open_stream_rejected(settings: Any, provider_factory: Any) -> None:
    provider = provider_factory(
        lambda _request: httpx.Response(401, json={"error": "invalid api key"}),
    )
    relay = GaiaRelay(settings, transport=provider.transport())

    with pytest.raises(UpstreamError) as exc_info:
        await relay.open_stream(_request())

    assert exc_info.value.status_code == 401
    assert exc_info.value.details == {"error": "invalid api key"}


@pytest.mark.asyncio
async def test_stream_chat_completion_yields_events(
    settings: Any,
    provider_factory: Any,
    sse_body: bytes,
) -> None:
    provider = provider_factory(lambda _request: httpx.Response(200, content=sse_body))
    relay = GaiaRelay(settings, transport=provider.transport())

    events = [event async for event in relay.stream_chat_completion(_request())]

    assert events == [
        {"choices": [{"delta": {"content": "Hello"}}]},
        {"choices": [{"delta": {"content": " learner"}}]},
    ]


@pytest.mark.asyncio
async def test_stream_chat_completion_is_not_restartable(
    settings: Any,
    provider_factory: Any,
    sse_body: bytes,
) -> None:
    provider = provider_factory(lambda _request: httpx.Response(200, content=sse_body))
    relay = GaiaRelay(settings, transport=provider.transport())

    events = relay.stream_chat_completion(_request())
    first = [event async for event in events]
    again = [event async for event in events]
    fresh = [event async for event in relay.stream_chat_completion(_request())]

    assert len(first) == 2
    assert again == []
    assert fresh == first
    assert provider.calls == 2
