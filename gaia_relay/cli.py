"""Command-line interface for the Gaia relay."""

from __future__ import annotations

import asyncio
import json

import typer

from gaia_relay import constants
from gaia_relay.client import GaiaClient
from gaia_relay.config import API_KEY_ENV, BASE_URL_ENV, RelaySettings, load_config
from gaia_relay.core.utils import console, print_error_message, setup_rich_logging
from gaia_relay.error_handler import ErrorHandler
from gaia_relay.errors import root_cause

app = typer.Typer(
    name="gaia-relay",
    help="Relay chat completions between the education platform and a Gaia node.",
    add_completion=True,
)

# --- Shared Options ---
BASE_URL = typer.Option(
    None,
    "--base-url",
    help=f"Gaia API base URL (env: {BASE_URL_ENV}, default: {constants.DEFAULT_GAIA_BASE_URL}).",
)
API_KEY = typer.Option(
    None,
    "--api-key",
    help=f"Gaia API key (env: {API_KEY_ENV}).",
)
LOG_LEVEL = typer.Option(
    "WARNING",
    "--log-level",
    help="Set the log level (e.g., DEBUG, INFO, WARNING).",
)
CONFIG_FILE = typer.Option(
    None,
    "--config",
    help="Path to a TOML configuration file.",
)


def set_config_defaults(ctx: typer.Context, config_file: str | None) -> None:
    """Set the default values for the CLI based on the config file."""
    config = load_config(config_file)
    wildcard_config = config.get("defaults", {})
    subcommand = ctx.invoked_subcommand
    command_config = config.get(subcommand, {})
    ctx.default_map = {subcommand: {**wildcard_config, **command_config}}


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_file: str | None = CONFIG_FILE,
) -> None:
    """Gaia relay tools."""
    if ctx.invoked_subcommand is None:
        console.print("[bold red]No command specified.[/bold red]")
        console.print(ctx.get_help())
        raise typer.Exit
    import dotenv  # noqa: PLC0415

    dotenv.load_dotenv()
    set_config_defaults(ctx, config_file)


def _settings(base_url: str | None, api_key: str | None) -> RelaySettings:
    env = RelaySettings.from_env()
    return RelaySettings(
        base_url=base_url or env.base_url,
        api_key=api_key or env.api_key,
    )


@app.command("serve")
def serve(
    host: str = typer.Option(constants.DEFAULT_HOST, help="Host to bind the server to"),
    port: int = typer.Option(constants.DEFAULT_PORT, help="Port to bind the server to"),
    base_url: str | None = BASE_URL,
    api_key: str | None = API_KEY,
    log_level: str = typer.Option("INFO", "--log-level", help="Set the log level."),
) -> None:
    """Start the relay HTTP server."""
    import uvicorn  # noqa: PLC0415

    from gaia_relay.api import create_app  # noqa: PLC0415

    setup_rich_logging(log_level)
    settings = _settings(base_url, api_key)

    console.print(f"[bold green]Starting Gaia relay on {host}:{port}[/bold green]")
    console.print(f"  🤖 Upstream: [blue]{settings.base_url}[/blue]")
    if not settings.api_key:
        console.print(f"  [yellow]⚠️  {API_KEY_ENV} is not set; requests will fail[/yellow]")

    uvicorn.run(create_app(settings), host=host, port=port, log_config=None)


async def _ask(
    client: GaiaClient,
    question: str,
    *,
    stream: bool,
    wallet_address: str | None,
) -> None:
    if not stream:
        answer = await client.ask(question, wallet_address=wallet_address)
        console.print(answer, markup=False, highlight=False)
        return
    async for piece in client.stream_answer(question, wallet_address=wallet_address):
        console.print(piece, end="", markup=False, highlight=False)
    console.print()


@app.command("ask")
def ask(
    question: str = typer.Argument(..., help="Question for the education assistant."),
    stream: bool = typer.Option(False, "--stream", help="Print the answer as it arrives."),  # noqa: FBT003
    wallet: str | None = typer.Option(None, "--wallet", help="Connected wallet address."),
    model: str | None = typer.Option(None, "--model", help="Model name on the Gaia node."),
    temperature: float = typer.Option(constants.DEFAULT_TEMPERATURE, help="Sampling temperature."),
    base_url: str | None = BASE_URL,
    api_key: str | None = API_KEY,
    log_level: str = LOG_LEVEL,
) -> None:
    """Ask the education assistant a single question."""
    setup_rich_logging(log_level)
    client = GaiaClient(_settings(base_url, api_key), model=model, temperature=temperature)
    handler = ErrorHandler()
    try:
        asyncio.run(_ask(client, question, stream=stream, wallet_address=wallet))
    except Exception as exc:
        info = handler.handle_error(root_cause(exc), context={"command": "ask"})
        print_error_message(handler.format_error_for_user(info), info.message)
        raise typer.Exit(1) from exc


@app.command("node-info")
def node_info(
    base_url: str | None = BASE_URL,
    api_key: str | None = API_KEY,
    log_level: str = LOG_LEVEL,
) -> None:
    """Show information about the Gaia node."""
    setup_rich_logging(log_level)
    client = GaiaClient(_settings(base_url, api_key))
    handler = ErrorHandler()
    try:
        info = asyncio.run(client.node_info())
    except Exception as exc:
        error = handler.handle_error(root_cause(exc), context={"command": "node-info"})
        print_error_message(handler.format_error_for_user(error), error.message)
        raise typer.Exit(1) from exc
    console.print_json(json.dumps(info))


if __name__ == "__main__":
    app()
