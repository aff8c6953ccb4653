"""Forwarding of chat completion requests to the Gaia provider."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

from gaia_relay.core.sse import aiter_stream_events
from gaia_relay.errors import ConfigurationError, RelayInternalError, UpstreamError

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from gaia_relay.config import RelaySettings
    from gaia_relay.models import ChatCompletionRequest

logger = logging.getLogger(__name__)

NO_ERROR_DETAILS = "No error details available"


def parse_error_body(text: str) -> Any:
    """Parse an upstream error body, wrapping non-JSON text as ``rawError``."""
    try:
        return json.loads(text)
    except ValueError:
        return {"rawError": text or NO_ERROR_DETAILS}


class UpstreamStream:
    """An open upstream event stream, copied to the caller chunk by chunk.

    Iterating drains the upstream response; the connection is released when
    iteration finishes, fails or is abandoned.
    """

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response) -> None:
        self._client = client
        self._response = response
        self.status_code = response.status_code

    async def aiter_bytes(self) -> AsyncGenerator[bytes, None]:
        try:
            async for chunk in self._response.aiter_bytes():
                yield chunk
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        await self._response.aclose()
        await self._client.aclose()


class GaiaRelay:
    """Relay chat requests to the upstream provider with a bearer credential.

    Each call opens its own HTTP client and enforces no timeout; a hung
    upstream hangs the call. ``transport`` replaces the network layer, which
    tests use to stub the provider.
    """

    def __init__(
        self,
        settings: RelaySettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=None)

    def _headers(self) -> dict[str, str]:
        if not self.settings.api_key:
            msg = "Gaia API key is not configured"
            raise ConfigurationError(msg)
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.api_key}",
        }

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        headers = self._headers()
        try:
            async with self._client() as client:
                response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.exception("Error calling Gaia API")
            raise RelayInternalError(str(exc)) from exc

        if not response.is_success:
            details = parse_error_body(response.text)
            logger.error("Upstream error %s: %s", response.status_code, details)
            raise UpstreamError(response.status_code, details)

        try:
            return response.json()
        except ValueError as exc:
            logger.exception("Malformed JSON in Gaia API response")
            raise RelayInternalError(str(exc)) from exc

    async def create_chat_completion(self, request: ChatCompletionRequest) -> Any:
        """Forward a chat completion request and return the provider's JSON."""
        return await self._request_json(
            "POST",
            self.settings.chat_completions_url,
            json=request.to_upstream_payload(),
        )

    async def get_node_info(self) -> Any:
        """Return the provider's node information."""
        return await self._request_json("GET", self.settings.node_info_url)

    async def open_stream(self, request: ChatCompletionRequest) -> UpstreamStream:
        """Start a streaming completion; streaming is forced on.

        Raises before any byte is relayed if the provider rejects the request.
        """
        headers = self._headers()
        client = self._client()
        try:
            upstream_request = client.build_request(
                "POST",
                self.settings.chat_completions_url,
                json=request.to_upstream_payload(stream=True),
                headers=headers,
            )
            response = await client.send(upstream_request, stream=True)
        except httpx.HTTPError as exc:
            await client.aclose()
            logger.exception("Error in streaming chat completion")
            raise RelayInternalError(str(exc)) from exc

        if not response.is_success:
            try:
                body = await response.aread()
            except httpx.HTTPError as exc:
                raise RelayInternalError(str(exc)) from exc
            finally:
                await response.aclose()
                await client.aclose()
            details = parse_error_body(body.decode(errors="replace"))
            logger.error("Upstream stream error %s: %s", response.status_code, details)
            raise UpstreamError(response.status_code, details)

        return UpstreamStream(client, response)

    async def stream_chat_completion(
        self,
        request: ChatCompletionRequest,
    ) -> AsyncGenerator[Any, None]:
        """Yield decoded stream events for in-process consumers."""
        stream = await self.open_stream(request)
        try:
            async for event in aiter_stream_events(stream.aiter_bytes()):
                yield event
        finally:
            await stream.aclose()
