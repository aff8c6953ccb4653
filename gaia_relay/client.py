"""In-process chat client for the education assistant."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from gaia_relay import constants
from gaia_relay.core.relay import GaiaRelay
from gaia_relay.core.sse import extract_content_from_chunk
from gaia_relay.models import (
    ChatCompletionRequest,
    ChatMessage,
    create_system_message,
    create_user_message,
)
from gaia_relay.prompts import build_education_prompt

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Sequence

    import httpx

    from gaia_relay.config import RelaySettings

logger = logging.getLogger(__name__)


def build_conversation(
    question: str,
    history: Sequence[ChatMessage] = (),
    *,
    wallet_address: str | None = None,
) -> list[ChatMessage]:
    """Prefix the education prompt, keep prior turns in order, append the question.

    System messages in ``history`` are dropped; the fresh prompt replaces them.
    """
    return [
        create_system_message(build_education_prompt(wallet_address)),
        *(m for m in history if m.role != "system"),
        create_user_message(question),
    ]


def extract_message_content(response: Any) -> str:
    """Return the first choice's message content of a completion response."""
    try:
        return response["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError) as exc:
        msg = f"invalid completion response: {response!r}"
        raise ValueError(msg) from exc


class GaiaClient:
    """Ask the education assistant questions through a `GaiaRelay`."""

    def __init__(
        self,
        settings: RelaySettings,
        *,
        model: str | None = None,
        temperature: float = constants.DEFAULT_TEMPERATURE,
        max_tokens: int = constants.DEFAULT_MAX_TOKENS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not settings.api_key:
            logger.warning(
                "Gaia API key is not set. Please set GAIA_API_KEY in your environment variables.",
            )
        self.relay = GaiaRelay(settings, transport=transport)
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    def _request(self, messages: list[ChatMessage], *, stream: bool) -> ChatCompletionRequest:
        return ChatCompletionRequest(
            messages=messages,
            model=self.model or constants.DEFAULT_GAIA_MODEL,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            stream=stream,
        )

    async def ask(
        self,
        question: str,
        history: Sequence[ChatMessage] = (),
        *,
        wallet_address: str | None = None,
    ) -> str:
        """Return the assistant's full answer to ``question``."""
        messages = build_conversation(question, history, wallet_address=wallet_address)
        response = await self.relay.create_chat_completion(self._request(messages, stream=False))
        return extract_message_content(response)

    async def stream_answer(
        self,
        question: str,
        history: Sequence[ChatMessage] = (),
        *,
        wallet_address: str | None = None,
    ) -> AsyncGenerator[str, None]:
        """Yield the assistant's answer as text deltas."""
        messages = build_conversation(question, history, wallet_address=wallet_address)
        async for event in self.relay.stream_chat_completion(self._request(messages, stream=True)):
            piece = extract_content_from_chunk(event)
            if piece:
                yield piece

    async def node_info(self) -> Any:
        return await self.relay.get_node_info()
