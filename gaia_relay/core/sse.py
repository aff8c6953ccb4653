"""Incremental decoding of OpenAI-style server-sent event streams."""

from __future__ import annotations

import codecs
import json
import logging
from typing import TYPE_CHECKING, Any

from gaia_relay import constants

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterable

logger = logging.getLogger(__name__)


class SSEDecoder:
    """Line-oriented event-stream decoder.

    The only state is the pending partial line: each chunk is appended to it,
    complete lines are split off and decoded, and the remainder waits for the
    next chunk. Once the ``[DONE]`` sentinel is seen the decoder is finished
    and ignores further input.
    """

    def __init__(self) -> None:
        self._pending = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.done = False

    @property
    def pending(self) -> str:
        """Text received after the last line break."""
        return self._pending

    def feed(self, chunk: bytes | str) -> list[Any]:
        """Consume one chunk and return the events completed by it."""
        if self.done:
            return []
        text = self._utf8.decode(chunk) if isinstance(chunk, bytes) else chunk
        *lines, self._pending = (self._pending + text).split("\n")

        events: list[Any] = []
        for line in lines:
            stripped = line.strip()
            if not stripped:
                continue
            if stripped == constants.SSE_DONE_LINE:
                self.done = True
                self._pending = ""
                break
            if not stripped.startswith(constants.SSE_DATA_PREFIX):
                # comments, event names and ids carry nothing we forward
                continue
            try:
                events.append(json.loads(stripped[len(constants.SSE_DATA_PREFIX) :]))
            except json.JSONDecodeError:
                logger.warning("Error parsing JSON from stream: %r", stripped)
        return events


async def aiter_stream_events(
    chunks: AsyncIterable[bytes | str],
) -> AsyncGenerator[Any, None]:
    """Yield decoded events from a byte stream until ``[DONE]`` or exhaustion.

    A partial line left over when the stream ends is dropped.
    """
    decoder = SSEDecoder()
    async for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
        if decoder.done:
            return
    if decoder.pending.strip():
        logger.debug("Discarding incomplete trailing line: %r", decoder.pending)


def extract_content_from_chunk(chunk: Any) -> str:
    """Return the assistant text delta carried by a completion chunk, if any."""
    if not isinstance(chunk, dict):
        return ""
    choices = chunk.get("choices") or [{}]
    first = choices[0] if isinstance(choices[0], dict) else {}
    delta = first.get("delta") or {}
    return delta.get("content") or delta.get("text") or ""
