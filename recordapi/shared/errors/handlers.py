"""
Centralized error handlers for FastAPI.

Every failure family is registered here and funnelled through one
ErrorNormalizer, the single place that produces the client-visible
error shape. Controllers and routers never format errors themselves.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from recordapi.domain.records.errors import ApiError, ErrorValue, SchemaValidationError
from recordapi.shared.envelope import error_body
from recordapi.shared.errors.normalizer import ErrorNormalizer
from recordapi.shared.errors.validation import RequestValidationFailure

logger = logging.getLogger(__name__)

HTTP_404 = 404


def _path(request: Request) -> str:
    if request.url.query:
        return f"{request.url.path}?{request.url.query}"
    return request.url.path


def rate_limit_counters(request: Request) -> Optional[dict[str, int]]:
    """Read limit/current/remaining for the limit that was just exceeded."""
    view = getattr(request.state, "view_rate_limit", None)
    limiter = getattr(request.app.state, "limiter", None)
    if view is None or limiter is None:
        return None

    item, identifiers = view
    _reset, remaining = limiter.limiter.get_window_stats(item, *identifiers)
    remaining = max(remaining, 0)
    return {
        "limit": item.amount,
        "current": item.amount - remaining,
        "remaining": remaining,
    }


def register_error_handlers(app: FastAPI, normalizer: ErrorNormalizer) -> None:
    """Register all error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
        normalizer: The single classifier every handler delegates to.
    """

    def respond(value: ErrorValue) -> JSONResponse:
        content: dict[str, Any] = error_body(normalizer.to_envelope(value))
        return JSONResponse(status_code=value.status, content=content)

    def normalized(request: Request, exc: Exception) -> JSONResponse:
        return respond(normalizer.normalize(exc, _path(request), request.method))

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        """Handle failures raised by controllers."""
        return normalized(request, exc)

    @app.exception_handler(SchemaValidationError)
    async def handle_schema_validation(
        request: Request, exc: SchemaValidationError
    ) -> JSONResponse:
        """Handle documents rejected by a collection schema."""
        return normalized(request, exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle path, query and body parameters FastAPI could not parse."""
        return normalized(request, exc)

    @app.exception_handler(RequestValidationFailure)
    async def handle_payload_validation(
        request: Request, exc: RequestValidationFailure
    ) -> JSONResponse:
        """Handle request bodies rejected by their schema."""
        return normalized(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle framework HTTP errors; a 404 here means no route matched."""
        if exc.status_code == HTTP_404:
            return respond(normalizer.route_not_found(_path(request), request.method))
        return normalized(request, exc)

    @app.exception_handler(RateLimitExceeded)
    async def handle_rate_limit(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        """Handle an exceeded rate limit."""
        counters = rate_limit_counters(request) if normalizer.development else None
        return respond(normalizer.rate_limited(counters, _path(request), request.method))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unexpected errors. Redacted in production."""
        return normalized(request, exc)
