"""Default configuration settings for the Gaia relay."""

from __future__ import annotations

# --- Upstream Provider ---
DEFAULT_GAIA_BASE_URL = "https://api.gaianet.ai/v1"
DEFAULT_GAIA_MODEL = "gaia-default"
CHAT_COMPLETIONS_PATH = "/chat/completions"
NODE_INFO_PATH = "/node/info"

# --- Request Defaults ---
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000

# --- Event Stream ---
SSE_DATA_PREFIX = "data: "
SSE_DONE_LINE = "data: [DONE]"
EVENT_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

# --- Diagnostics ---
ERROR_HISTORY_CAPACITY = 50
DEFAULT_RECENT_ERRORS = 10

# --- Server ---
DEFAULT_HOST = "0.0.0.0"  # noqa: S104
DEFAULT_PORT = 8000
