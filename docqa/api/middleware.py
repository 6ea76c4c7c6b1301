"""API middleware -- CORS, request logging, and error handling.

Starlette middleware is a stack (last added, first executed).  main.py
adds ErrorHandlingMiddleware first and RequestLoggingMiddleware second, so
the request flow is::

    Client -> RequestLogging -> ErrorHandling -> route handler

and RequestLoggingMiddleware sees the final status code even when
ErrorHandling replaced an exception with a structured JSON error.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from docqa.api.schemas import ErrorResponse
from docqa.utils.errors import (
    AccessDeniedError,
    DocQAError,
    DocumentNotFoundError,
    EmbeddingError,
    ExtractionError,
    IndexSearchError,
    IndexWriteError,
    SynthesisError,
    UnsupportedFormatError,
)
from docqa.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# Most specific first; the first isinstance match wins.
_STATUS_BY_ERROR: tuple[tuple[type[DocQAError], int], ...] = (
    (UnsupportedFormatError, 415),
    (ExtractionError, 422),
    (EmbeddingError, 502),
    (IndexWriteError, 502),
    (IndexSearchError, 502),
    (SynthesisError, 503),
    (DocumentNotFoundError, 404),
    # Reported exactly like a missing document.
    (AccessDeniedError, 404),
)


def status_for_error(exc: DocQAError) -> int:
    """Return the HTTP status code for an application error (500 if unmapped)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def _public_body(exc: DocQAError, status_code: int) -> ErrorResponse:
    if isinstance(exc, AccessDeniedError):
        return ErrorResponse(error=DocumentNotFoundError.__name__, detail="Document not found")
    if status_code == 500:
        return ErrorResponse(error="InternalError", detail="An unexpected error occurred")
    return ErrorResponse(error=type(exc).__name__, detail=exc.message)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware.  Defaults to ``["*"]`` for development."""
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=response.status_code if response else 500,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Convert ``DocQAError`` subclasses into structured JSON errors.

    The full error (provider name included) is logged server-side; the
    client only sees the error type and message.  Access-denied errors are
    reported as not-found so callers cannot probe for other owners'
    document ids.  Non-application exceptions fall through to FastAPI's
    default 500 handler.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except DocQAError as exc:
            status_code = status_for_error(exc)
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                status=status_code,
            )
            body = _public_body(exc, status_code)
            return JSONResponse(status_code=status_code, content=body.model_dump())
