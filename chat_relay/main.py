import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

import httpx
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, PlainTextResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from chat_relay.config import Settings, get_settings
from chat_relay.errors import (
    ClientInputError,
    MethodNotAllowedError,
    RelayError,
    RequestCancelledError,
)
from chat_relay.logging_config import setup_logging
from chat_relay.schemas import ChatRequest, ChatResponse
from chat_relay.services.relay import RelayService

logger = logging.getLogger(__name__)

T = TypeVar("T")

DISCONNECT_POLL_SECONDS = 0.5
CHAT_PATH = "/api/chat"


async def run_until_disconnect(request: Request, work: Awaitable[T]) -> T:
    """Await ``work`` but cancel it as soon as the client goes away."""
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("Client disconnected, aborting upstream call")
                task.cancel()
                raise RequestCancelledError("Request cancelled: client disconnected")
    finally:
        if not task.done():
            task.cancel()


def _decode_chat_request(body: bytes) -> ChatRequest:
    try:
        return ChatRequest.model_validate_json(body)
    except ValidationError as exc:
        detail = "; ".join(error["msg"] for error in exc.errors())
        raise ClientInputError(f"Error decoding request: {detail}") from exc


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the relay application around a fixed configuration."""
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title="Chat Relay",
        description="Relays frontend prompts to an OpenAI-compatible chat API.",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.relay_service = RelayService(settings, transport=transport)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(RelayError)
    async def relay_error_handler(
        request: Request, exc: RelayError
    ) -> PlainTextResponse:
        headers = None
        if isinstance(exc, MethodNotAllowedError):
            headers = {"Allow": "POST"}
        return PlainTextResponse(
            exc.message, status_code=exc.status_code, headers=headers
        )

    @app.exception_handler(StarletteHTTPException)
    async def method_not_allowed_handler(
        request: Request, exc: StarletteHTTPException
    ):
        if exc.status_code == 405 and request.url.path == CHAT_PATH:
            return await relay_error_handler(
                request, MethodNotAllowedError("Only POST method is allowed")
            )
        return await http_exception_handler(request, exc)

    @app.get("/", response_class=HTMLResponse)
    async def serve_index() -> HTMLResponse:
        """Serve the frontend page."""
        try:
            page = settings.index_template.read_text(encoding="utf-8")
        except OSError as exc:
            logger.error("Error reading %s: %s", settings.index_template, exc)
            return PlainTextResponse("Could not find index.html", status_code=500)
        return HTMLResponse(page)

    @app.get("/health")
    async def health_check() -> dict:
        """Simple health-check endpoint."""
        return {
            "status": "ok",
            "upstream_url": settings.upstream_url,
            "api_key_configured": bool(settings.litellm_api_key),
        }

    @app.post(CHAT_PATH, response_model=ChatResponse)
    async def chat_endpoint(request: Request) -> ChatResponse:
        """Forward the prompt upstream and return the model's answer."""
        chat_request = _decode_chat_request(await request.body())
        if not chat_request.prompt:
            raise ClientInputError("Prompt cannot be empty")
        logger.info("Received prompt: %s", chat_request.prompt)

        service: RelayService = request.app.state.relay_service
        reply = await run_until_disconnect(
            request, service.complete(chat_request.prompt)
        )
        logger.info("Model answer: %s", reply)
        return ChatResponse(response=reply)

    return app


app = create_app()


def run() -> None:
    """Start the relay under uvicorn."""
    import uvicorn

    settings = get_settings()
    logger.info("Server started on http://localhost:%d", settings.port)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
