"""Error classification, bounded error history and error-handling adapters.

Failures caught anywhere in the relay are turned into an `ErrorInfo` with one
of a handful of categories, logged, and remembered in an `ErrorHistory` so
recent problems can be inspected without a debugger.
"""

from __future__ import annotations

import errno
import functools
import inspect
import logging
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from itertools import islice
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import httpx

from gaia_relay import constants

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorCategory(str, Enum):
    """Categories a failure can be classified into."""

    NETWORK = "NETWORK_ERROR"
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    API = "API_ERROR"
    VALIDATION = "VALIDATION_ERROR"
    UNKNOWN = "UNKNOWN_ERROR"


DEFAULT_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.NETWORK: (
        "Network error occurred. Please check your internet connection and try again."
    ),
    ErrorCategory.API: (
        "An error occurred while communicating with the server. Please try again later."
    ),
    ErrorCategory.AUTHENTICATION: (
        "Authentication error. Please check your credentials or log in again."
    ),
    ErrorCategory.VALIDATION: "Validation error. Please check your input and try again.",
    ErrorCategory.UNKNOWN: "An unexpected error occurred. Please try again later.",
}

USER_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.NETWORK: (
        "Unable to connect to the server. Please check your internet connection and try again."
    ),
    ErrorCategory.API: (
        "The server encountered an issue processing your request. Please try again later."
    ),
    ErrorCategory.AUTHENTICATION: (
        "Your session may have expired. Please log in again to continue."
    ),
    ErrorCategory.VALIDATION: "Please check your input and try again.",
    ErrorCategory.UNKNOWN: "Something went wrong. Please try again later.",
}

_NETWORK_NAMES = {"NetworkError", "AbortError"}
_NETWORK_CODES = {"ECONNREFUSED", "ECONNRESET", "ETIMEDOUT"}
_NETWORK_ERRNOS = {errno.ECONNREFUSED, errno.ECONNRESET, errno.ETIMEDOUT}
_NETWORK_TYPES = (ConnectionError, TimeoutError, httpx.TransportError)
_AUTH_STATUSES = {401, 403}


@dataclass
class ErrorInfo:
    """A classified failure."""

    category: ErrorCategory
    message: str
    cause: Any = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    context: dict[str, Any] | None = None

    def summary(self) -> dict[str, Any]:
        """JSON-friendly view without the original error object."""
        return {
            "category": self.category.value,
            "message": self.message,
            "occurred_at": self.occurred_at.isoformat(),
            "context": self.context,
        }


# --- Classification ---


def _field(error: Any, name: str) -> Any:
    if isinstance(error, Mapping):
        return error.get(name)
    return getattr(error, name, None)


def _error_name(error: Any) -> str | None:
    if isinstance(error, BaseException):
        return type(error).__name__
    name = _field(error, "name")
    return name if isinstance(name, str) else None


def _error_message(error: Any) -> str | None:
    message = _field(error, "message")
    if isinstance(message, str) and message:
        return message
    if isinstance(error, BaseException) and error.args:
        return str(error)
    return None


def _status(error: Any) -> int | None:
    for name in ("status", "status_code"):
        value = _field(error, name)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def _is_network_failure(error: Any, name: str | None, message: str) -> bool:
    if "network" in message or "fetch" in message:
        return True
    if name in _NETWORK_NAMES or isinstance(error, _NETWORK_TYPES):
        return True
    code = _field(error, "code")
    return code in _NETWORK_CODES or _field(error, "errno") in _NETWORK_ERRNOS


def classify_error(error: Any) -> ErrorCategory:
    """Assign exactly one category to a failure; the first matching rule wins."""
    if error is None:
        return ErrorCategory.UNKNOWN

    name = _error_name(error)
    message = _error_message(error) or ""
    status = _status(error)

    if _is_network_failure(error, name, message):
        return ErrorCategory.NETWORK
    if status in _AUTH_STATUSES:
        return ErrorCategory.AUTHENTICATION
    if (status is not None and status >= 400) or "API" in message or name == "ApiError":  # noqa: PLR2004
        return ErrorCategory.API
    is_validation_name = (name or "").endswith("ValidationError")
    if is_validation_name or "validation" in message or "invalid" in message:
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


def get_error_message(error: Any, category: ErrorCategory) -> str:
    """Return the failure's own message, or a default for its category."""
    return _error_message(error) or DEFAULT_MESSAGES[category]


# --- History ---


class ErrorHistory:
    """Bounded, newest-first store of classified errors.

    Not synchronized: concurrent writers may interleave, which is fine for
    diagnostics.
    """

    def __init__(self, capacity: int = constants.ERROR_HISTORY_CAPACITY) -> None:
        if capacity < 1:
            msg = f"capacity must be positive, got {capacity}"
            raise ValueError(msg)
        self.capacity = capacity
        self._errors: deque[ErrorInfo] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._errors)

    def add(self, info: ErrorInfo) -> None:
        # appendleft on a full deque drops the oldest entry from the right
        self._errors.appendleft(info)

    def recent(self, limit: int = constants.DEFAULT_RECENT_ERRORS) -> list[ErrorInfo]:
        """Return up to ``limit`` errors, newest first."""
        return list(islice(self._errors, max(limit, 0)))

    def clear(self) -> None:
        self._errors.clear()


# --- Handler ---


class ErrorHandler:
    """Classify, log and record failures into an injected `ErrorHistory`."""

    def __init__(
        self,
        history: ErrorHistory | None = None,
        *,
        log: logging.Logger | None = None,
    ) -> None:
        self.history = history if history is not None else ErrorHistory()
        self._logger = log or logger

    def handle_error(self, error: Any, context: dict[str, Any] | None = None) -> ErrorInfo:
        """Classify ``error``, log it and append it to the history."""
        category = classify_error(error)
        info = ErrorInfo(
            category=category,
            message=get_error_message(error, category),
            cause=error,
            context=context,
        )
        self._logger.error(
            "Error: type=%s message=%s timestamp=%s context=%s original=%r",
            info.category.value,
            info.message,
            info.occurred_at.isoformat(),
            info.context,
            info.cause,
        )
        self.history.add(info)
        return info

    def get_recent_errors(self, limit: int = constants.DEFAULT_RECENT_ERRORS) -> list[ErrorInfo]:
        return self.history.recent(limit)

    def clear_errors(self) -> None:
        self.history.clear()

    def format_error_for_user(self, error: Any) -> str:
        """One fixed end-user sentence per category, independent of the message.

        Unclassified failures are classified (and recorded) first.
        """
        info = error if isinstance(error, ErrorInfo) else self.handle_error(error)
        return USER_MESSAGES[info.category]


# --- Adapters ---


@dataclass
class Outcome(Generic[T]):
    """Result of a unit of work: either ``value`` or a classified ``error``."""

    value: T | None = None
    error: ErrorInfo | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def with_error_handling(
    func: Callable[..., Any],
    handler: ErrorHandler,
    context: dict[str, Any] | None = None,
) -> Callable[..., Any]:
    """Wrap ``func`` so failures come back as an `Outcome` instead of raising.

    Coroutine functions get an async wrapper. The recorded context is
    ``context`` plus the function name and its call arguments.
    """

    def _context(args: tuple[Any, ...], kwargs: dict[str, Any]) -> dict[str, Any]:
        return {
            **(context or {}),
            "function_name": getattr(func, "__name__", repr(func)),
            "arguments": {"args": args, "kwargs": kwargs},
        }

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Outcome[Any]:
            try:
                return Outcome(value=await func(*args, **kwargs))
            except Exception as exc:
                return Outcome(error=handler.handle_error(exc, _context(args, kwargs)))

        return async_wrapper

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Outcome[Any]:
        try:
            return Outcome(value=func(*args, **kwargs))
        except Exception as exc:
            return Outcome(error=handler.handle_error(exc, _context(args, kwargs)))

    return wrapper
