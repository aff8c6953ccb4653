"""Pydantic settings for the relay and config file loading."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, field_validator

from gaia_relay import constants

logger = logging.getLogger(__name__)

# --- Config File Loading ---

CONFIG_PATH = Path.home() / ".config" / "gaia-relay" / "config.toml"
CONFIG_PATH_2 = Path("gaia-relay-config.toml")

BASE_URL_ENV = "GAIA_MODEL_BASE_URL"
API_KEY_ENV = "GAIA_API_KEY"


def _replace_dashed_keys(cfg: dict[str, Any]) -> dict[str, Any]:
    """Replace dashed keys with underscores in the config options."""
    return {k.replace("-", "_"): v for k, v in cfg.items()}


def load_config(config_path_str: str | None = None) -> dict[str, Any]:
    """Load the TOML configuration file, keyed by section name."""
    if config_path_str:
        config_path = Path(config_path_str)
    elif CONFIG_PATH.exists():
        config_path = CONFIG_PATH
    elif CONFIG_PATH_2.exists():
        config_path = CONFIG_PATH_2
    else:
        return {}

    if config_path.exists():
        with config_path.open("rb") as f:
            cfg = tomllib.load(f)
            return {k: _replace_dashed_keys(v) for k, v in cfg.items() if isinstance(v, dict)}

    # Only an explicitly requested file is worth complaining about
    if config_path_str:
        logger.error("Config file not found at %s", config_path_str)
    return {}


# --- Relay Settings ---


class RelaySettings(BaseModel):
    """Process-wide settings for reaching the upstream provider.

    A missing ``api_key`` is allowed here; the relay reports it when a
    request is made.
    """

    base_url: str = constants.DEFAULT_GAIA_BASE_URL
    api_key: str | None = None

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("api_key")
    @classmethod
    def _empty_key_is_unset(cls, v: str | None) -> str | None:
        return v or None

    @property
    def chat_completions_url(self) -> str:
        """URL of the upstream chat completions endpoint."""
        return f"{self.base_url}{constants.CHAT_COMPLETIONS_PATH}"

    @property
    def node_info_url(self) -> str:
        """URL of the upstream node information endpoint."""
        return f"{self.base_url}{constants.NODE_INFO_PATH}"

    @classmethod
    def from_env(cls) -> RelaySettings:
        """Create settings from ``GAIA_MODEL_BASE_URL`` and ``GAIA_API_KEY``."""
        return cls(
            base_url=os.environ.get(BASE_URL_ENV) or constants.DEFAULT_GAIA_BASE_URL,
            api_key=os.environ.get(API_KEY_ENV),
        )
