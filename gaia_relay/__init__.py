"""Relay between the education platform and the Gaia chat-completion API."""

from __future__ import annotations

__version__ = "0.1.0"
