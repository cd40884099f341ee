"""Error envelope and exception handlers for the HTTP service.

Framework-level failures (bad query parameters, unreadable bodies, crashes)
share one envelope::

    {"error": {"type", "message", "status_code", "request_id"?, "details"?},
     "detail": message}

Transcription outcomes are not errors in this sense; the transcribe routes
return their own ``{"success": false, ...}`` bodies.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .exceptions import ConfigurationError
from .service_settings import HTTP_422_UNPROCESSABLE

logger = logging.getLogger(__name__)

ERROR_TYPES: dict[int, str] = {
    400: "bad_request",
    404: "not_found",
    405: "method_not_allowed",
    413: "payload_too_large",
    500: "internal_error",
    502: "bad_gateway",
    503: "service_unavailable",
}

INTERNAL_ERROR_MESSAGE = "An unexpected internal error occurred"


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def create_error_response(
    status_code: int,
    error_type: str,
    message: str,
    request_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """
    Build the JSON error envelope.

    Args:
        status_code: HTTP status code
        error_type: Machine-readable identifier, e.g. ``"payload_too_large"``
        message: Human-readable message, repeated as top-level ``detail``
        request_id: Id assigned by the request logging middleware
        details: Extra structured context
    """
    error: dict[str, Any] = {
        "type": error_type,
        "message": message,
        "status_code": status_code,
    }
    if request_id:
        error["request_id"] = request_id
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error, "detail": message})


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Query parameters that FastAPI could not coerce, e.g. ``word_timestamps=maybe``."""
    request_id = _request_id(request)
    problems = [
        {
            "loc": list(err.get("loc", [])),
            "msg": err.get("msg", "Validation error"),
            "type": err.get("type", "unknown"),
        }
        for err in exc.errors()
    ]
    logger.warning(
        "Rejected request parameters on %s %s [request_id=%s]: %d problem(s)",
        request.method,
        request.url.path,
        request_id,
        len(problems),
        extra={"request_id": request_id, "validation_errors": problems},
    )
    return create_error_response(
        HTTP_422_UNPROCESSABLE,
        "validation_error",
        "Request validation failed",
        request_id,
        {"validation_errors": problems},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Errors raised deliberately by route code (bad JSON, oversized body, ...)."""
    request_id = _request_id(request)
    message = str(exc.detail)
    logger.warning(
        "%s %s answered %d [request_id=%s]: %s",
        request.method,
        request.url.path,
        exc.status_code,
        request_id,
        message,
        extra={"request_id": request_id, "status_code": exc.status_code},
    )
    return create_error_response(
        exc.status_code, ERROR_TYPES.get(exc.status_code, "http_error"), message, request_id
    )


async def configuration_exception_handler(
    request: Request, exc: ConfigurationError
) -> JSONResponse:
    request_id = _request_id(request)
    logger.warning(
        "Configuration problem on %s %s [request_id=%s]: %s",
        request.method,
        request.url.path,
        request_id,
        exc,
        extra={"request_id": request_id},
    )
    return create_error_response(
        status.HTTP_400_BAD_REQUEST, "configuration_error", str(exc), request_id
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything else: log the traceback, answer 500 without exception text."""
    request_id = _request_id(request)
    logger.error(
        "Unhandled %s on %s %s [request_id=%s]",
        type(exc).__name__,
        request.method,
        request.url.path,
        request_id,
        exc_info=exc,
        extra={"request_id": request_id},
    )
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        INTERNAL_ERROR_MESSAGE,
        request_id,
        {"hint": "Check server logs for details"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(ConfigurationError, configuration_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
