"""Console and logging helpers shared by the CLI and the server."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

console = Console()
err_console = Console(stderr=True)

_NOISY_LOGGERS = ("httpx", "httpcore")


def setup_rich_logging(log_level: str = "info", *, console: Console | None = None) -> None:
    """Configure logging to use Rich for consistent, pretty output.

    This configures:
    - All Python loggers to use RichHandler
    - Uvicorn's loggers to use the same format

    Args:
        log_level: Logging level (debug, info, warning, error).
        console: Optional Rich console to use (defaults to stderr).

    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    handler = RichHandler(
        console=console or err_console,
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for uvicorn_logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        uvicorn_logger = logging.getLogger(uvicorn_logger_name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.addHandler(handler)
        uvicorn_logger.setLevel(level)
        uvicorn_logger.propagate = False

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def print_error_message(message: str, suggestion: str | None = None) -> None:
    """Print an error in a red panel, with an optional hint below it."""
    body = f"[bold red]{escape(message)}[/bold red]"
    if suggestion:
        body += f"\n\n💡 {escape(suggestion)}"
    err_console.print(Panel(body, title="Error", border_style="red"))
