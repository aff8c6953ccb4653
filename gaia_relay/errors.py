"""Exceptions raised by the relay.

Every relay error carries the HTTP status it maps to and knows how to render
itself as the JSON error body returned to the browser.
"""

from __future__ import annotations

from typing import Any


class RelayError(Exception):
    """Base exception for all relay errors."""

    status_code: int = 500

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        """Render as the ``{error, details}`` body sent to the caller."""
        payload: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ConfigurationError(RelayError):
    """The relay is missing a required setting, such as the API key."""


class UpstreamError(RelayError):
    """The upstream provider answered with a non-success status."""

    def __init__(self, status_code: int, details: Any) -> None:
        super().__init__(f"Gaia API Error: {status_code}", details=details)
        self.status_code = status_code


class RelayInternalError(RelayError):
    """The outbound call failed before a usable answer was received."""

    def __init__(self, message: str) -> None:
        super().__init__("Internal Server Error", details=message)


def root_cause(exc: BaseException) -> BaseException:
    """Return the transport failure behind an internal error, else ``exc`` itself."""
    if isinstance(exc, RelayInternalError) and exc.__cause__ is not None:
        return exc.__cause__
    return exc


__all__ = [
    "ConfigurationError",
    "RelayError",
    "RelayInternalError",
    "UpstreamError",
    "root_cause",
]
