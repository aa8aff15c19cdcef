"""Starlette application factory for the OpenAI-compatible API server."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, StreamingResponse
from starlette.routing import Route

from semoss_openai._ids import now_ts
from semoss_openai._log import get_logger
from semoss_openai.client import SemossOpenAI
from semoss_openai.config import SemossConfig
from semoss_openai.errors import InitializationError, MessageValidationError, UpstreamError
from semoss_openai.middleware import (
    make_auth_dispatch,
    make_body_size_dispatch,
    openai_error_body,
    openai_error_response,
    prefix_predicate,
)
from semoss_openai.models import (
    ChatCompletionChunk,
    ChatCompletionRequest,
    DeltaMessage,
    ModelInfo,
    ModelListResponse,
    StreamChoice,
)
from semoss_openai.streaming import ChatCompletionStream

_logger = get_logger("server")

_MAX_REQUEST_BODY_BYTES = 1_048_576


def _classify_error(exc: Exception) -> tuple[int, str]:
    """Map an adapter exception to ``(status_code, safe_message)``.

    Upstream and unexpected errors are logged and replaced by a generic
    message so raw SEMOSS output never reaches API clients.
    """
    if isinstance(exc, MessageValidationError):
        return 400, str(exc)
    if isinstance(exc, InitializationError):
        _logger.error("%s", exc)
        return 503, "SEMOSS session unavailable"
    if isinstance(exc, UpstreamError):
        _logger.warning("%s", exc)
        return 502, "Upstream SEMOSS request failed"
    _logger.error("Unexpected error: %s", exc, exc_info=exc)
    return 500, "Internal server error"


def _sse(payload: str) -> str:
    return f"data: {payload}\n\n"


def create_app(
    client: SemossOpenAI,
    *,
    api_key: str | None = None,
    cors_origins: list[str] | None = None,
    max_request_body_bytes: int = _MAX_REQUEST_BODY_BYTES,
) -> Starlette:
    """Build and return the Starlette ASGI application."""

    # --- Handlers ---

    async def health(request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok"})

    async def list_models(request: Request) -> JSONResponse:
        created = now_ts()
        resp = ModelListResponse(
            data=[ModelInfo(id=name, created=created) for name in client.model_map],
        )
        return JSONResponse(resp.model_dump(exclude_none=True))

    async def chat_completions(request: Request) -> JSONResponse | StreamingResponse:
        try:
            body = await request.json()
        except Exception:
            return openai_error_response(400, "invalid JSON body")

        try:
            req = ChatCompletionRequest.model_validate(body)
        except ValidationError as e:
            return openai_error_response(400, str(e))

        try:
            result = await client.chat.completions.create(
                messages=req.messages,
                model=req.model,
                stream=req.stream,
            )
        except Exception as e:
            status, message = _classify_error(e)
            return openai_error_response(status, message)

        if isinstance(result, ChatCompletionStream):
            return _stream_response(result)
        return JSONResponse(result.model_dump(exclude_none=True))

    # --- Build app ---

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/v1/models", list_models, methods=["GET"]),
        Route("/v1/chat/completions", chat_completions, methods=["POST"]),
    ]

    middleware: list[Middleware] = []
    if cors_origins:
        middleware.append(
            Middleware(
                CORSMiddleware,  # type: ignore[arg-type]
                allow_origins=cors_origins,
                allow_methods=["*"],
                allow_headers=["*"],
            )
        )

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        yield
        await client.aclose()

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)

    # Order matters: outermost middleware runs first
    # Body size -> Auth
    if api_key:
        app.add_middleware(
            BaseHTTPMiddleware,  # type: ignore[arg-type]
            dispatch=make_auth_dispatch(
                api_key=api_key,
                applies_to=prefix_predicate("/v1/"),
            ),
        )
    app.add_middleware(
        BaseHTTPMiddleware,  # type: ignore[arg-type]
        dispatch=make_body_size_dispatch(max_bytes=max_request_body_bytes),
    )

    return app


def _stream_response(stream: ChatCompletionStream) -> StreamingResponse:
    async def event_generator():
        initial = ChatCompletionChunk(
            id=stream.id,
            created=stream.created,
            model=stream.model,
            choices=[StreamChoice(delta=DeltaMessage(role="assistant"))],
        )
        yield _sse(initial.model_dump_json(exclude_none=True))

        try:
            async for chunk in stream:
                yield _sse(chunk.model_dump_json(exclude_none=True))
        except Exception as e:
            status, message = _classify_error(e)
            yield _sse(json.dumps(openai_error_body(status, message)))
        finally:
            await stream.aclose()

        yield _sse("[DONE]")

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


def run_server(
    config: SemossConfig,
    *,
    host: str = "127.0.0.1",
    port: int = 8000,
    api_key: str | None = None,
    cors_origins: list[str] | None = None,
) -> None:
    """Blocking entry point: starts uvicorn with the OpenAI-compatible app."""
    app = create_app(SemossOpenAI(config), api_key=api_key, cors_origins=cors_origins)
    uvicorn.run(app, host=host, port=port, log_level="info")
