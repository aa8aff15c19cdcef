"""Security middleware factories for the API server.

Each factory returns an ``async def dispatch(request, call_next)`` callable
suitable for ``BaseHTTPMiddleware``.
"""

from __future__ import annotations

import hmac
from collections.abc import Callable, Set

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

# ---------------------------------------------------------------------------
# Path predicates: control which routes a middleware applies to
# ---------------------------------------------------------------------------


def prefix_predicate(prefix: str, *, exclude: Set[str] | None = None) -> Callable[[Request], bool]:
    """Return True when the request path starts with *prefix* (and is not excluded)."""
    _exclude = exclude or frozenset()

    def _applies(request: Request) -> bool:
        path = request.url.path
        return path.startswith(prefix) and path not in _exclude

    return _applies


# ---------------------------------------------------------------------------
# Error formatter
# ---------------------------------------------------------------------------

_STATUS_TO_TYPE = {
    400: "invalid_request_error",
    401: "authentication_error",
    413: "request_too_large",
    502: "upstream_error",
    503: "service_unavailable",
}


def openai_error_body(status_code: int, message: str) -> dict:
    """``{"error": {"message": ..., "type": ..., "code": N}}`` format."""
    error_type = _STATUS_TO_TYPE.get(status_code, "server_error")
    return {"error": {"message": message, "type": error_type, "code": status_code}}


def openai_error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        openai_error_body(status_code, message),
        status_code=status_code,
    )


# ---------------------------------------------------------------------------
# Middleware factories
# ---------------------------------------------------------------------------

ErrorResponseFn = Callable[[int, str], Response]
AppliesFn = Callable[[Request], bool]


def make_auth_dispatch(
    *,
    api_key: str,
    applies_to: AppliesFn,
    error_response: ErrorResponseFn = openai_error_response,
    error_message: str = "invalid API key",
):
    """Bearer token auth with timing-safe comparison."""

    async def dispatch(request: Request, call_next) -> Response:
        if applies_to(request):
            token = ""
            auth_header = request.headers.get("authorization", "")
            if auth_header.startswith("Bearer "):
                token = auth_header[7:]
            if not token or not hmac.compare_digest(token, api_key):
                return error_response(401, error_message)
        return await call_next(request)

    return dispatch


def make_body_size_dispatch(
    *,
    max_bytes: int,
    error_response: ErrorResponseFn = openai_error_response,
    error_message: str = "Request body too large",
):
    """Reject POST/PUT/PATCH requests whose Content-Length exceeds *max_bytes*."""

    async def dispatch(request: Request, call_next) -> Response:
        if request.method in ("POST", "PUT", "PATCH"):
            content_length = request.headers.get("content-length")
            if content_length and content_length.isdigit() and int(content_length) > max_bytes:
                return error_response(413, error_message)
        return await call_next(request)

    return dispatch
