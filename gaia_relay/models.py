"""Chat data models shared by the relay, the API and the client."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

from gaia_relay import constants

Role = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    """Chat message model."""

    model_config = ConfigDict(extra="allow")

    role: Role
    content: str


class ChatCompletionRequest(BaseModel):
    """Chat completion request model.

    Extra fields are kept so they reach the upstream provider untouched.
    """

    model_config = ConfigDict(extra="allow")

    messages: list[ChatMessage]
    model: str | None = None
    temperature: float | None = constants.DEFAULT_TEMPERATURE
    max_tokens: int | None = constants.DEFAULT_MAX_TOKENS
    stream: bool = False

    def to_upstream_payload(self, *, stream: bool | None = None) -> dict:
        """Serialize for forwarding; unset optional fields are left to the provider."""
        payload = self.model_dump(exclude_none=True)
        if stream is not None:
            payload["stream"] = stream
        return payload


def create_chat_message(role: Role, content: str) -> ChatMessage:
    """Create a chat message with the given role."""
    return ChatMessage(role=role, content=content)


def create_system_message(content: str) -> ChatMessage:
    return create_chat_message("system", content)


def create_user_message(content: str) -> ChatMessage:
    return create_chat_message("user", content)


def create_assistant_message(content: str) -> ChatMessage:
    return create_chat_message("assistant", content)
