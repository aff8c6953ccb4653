"""FastAPI application factory for the Gaia relay."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from gaia_relay import __version__, constants
from gaia_relay.config import RelaySettings
from gaia_relay.core.relay import GaiaRelay
from gaia_relay.error_handler import ErrorHandler, ErrorHistory
from gaia_relay.errors import RelayError, root_cause
from gaia_relay.models import ChatCompletionRequest  # noqa: TC001

if TYPE_CHECKING:
    import httpx

LOGGER = logging.getLogger(__name__)


def _error_response(
    handler: ErrorHandler,
    exc: RelayError,
    endpoint: str,
) -> JSONResponse:
    context = {"endpoint": endpoint, "status_code": exc.status_code}
    handler.handle_error(root_cause(exc), context=context)
    return JSONResponse(exc.to_payload(), status_code=exc.status_code)


def create_app(
    settings: RelaySettings | None = None,
    error_history: ErrorHistory | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create the FastAPI app."""
    settings = settings or RelaySettings.from_env()
    if not settings.api_key:
        LOGGER.warning("Gaia API key is not set; chat requests will fail until GAIA_API_KEY is set")

    relay = GaiaRelay(settings, transport=transport)
    handler = ErrorHandler(error_history)

    app = FastAPI(title="Gaia Relay", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.relay = relay
    app.state.error_handler = handler

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = jsonable_encoder(exc.errors())
        handler.handle_error(exc, context={"endpoint": request.url.path, "status_code": 422})
        return JSONResponse({"error": "Invalid request", "details": details}, status_code=422)

    @app.post("/api/gaia")
    async def chat_completions(chat_request: ChatCompletionRequest) -> Any:
        try:
            return await relay.create_chat_completion(chat_request)
        except RelayError as exc:
            return _error_response(handler, exc, "/api/gaia")

    @app.post("/api/gaia/stream")
    async def chat_completions_stream(chat_request: ChatCompletionRequest) -> Any:
        try:
            stream = await relay.open_stream(chat_request)
        except RelayError as exc:
            return _error_response(handler, exc, "/api/gaia/stream")
        return StreamingResponse(
            stream.aiter_bytes(),
            media_type="text/event-stream",
            headers=constants.EVENT_STREAM_HEADERS,
        )

    @app.get("/api/gaia/node-info")
    async def node_info() -> Any:
        try:
            return await relay.get_node_info()
        except RelayError as exc:
            return _error_response(handler, exc, "/api/gaia/node-info")

    @app.get("/api/errors")
    def recent_errors(
        limit: int = Query(constants.DEFAULT_RECENT_ERRORS, ge=0),
    ) -> dict[str, Any]:
        """List recently classified errors, newest first."""
        errors = [info.summary() for info in handler.get_recent_errors(limit)]
        return {"errors": errors, "total": len(handler.history)}

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "base_url": settings.base_url,
            "api_key_configured": settings.api_key is not None,
        }

    return app
