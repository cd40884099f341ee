"""Request body checks shared by the transcription endpoints."""

from __future__ import annotations

import json
from typing import Any

from fastapi import HTTPException, Request, status

from .service_settings import HTTP_413_TOO_LARGE


def _too_large(limit_bytes: int) -> HTTPException:
    limit_mb = limit_bytes / (1024 * 1024)
    return HTTPException(
        status_code=HTTP_413_TOO_LARGE,
        detail=f"Request body exceeds maximum size of {limit_mb:g}MB",
    )


def validate_body_size(request: Request, limit_bytes: int) -> None:
    """
    Reject a request early when its declared Content-Length is over the limit.

    Raises:
        HTTPException: 413 if the declared length exceeds ``limit_bytes``,
            400 if the header is not a number.
    """
    declared = request.headers.get("content-length")
    if declared is None:
        return
    try:
        length = int(declared)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid Content-Length header"
        ) from None
    if length > limit_bytes:
        raise _too_large(limit_bytes)


async def read_limited_body(request: Request, limit_bytes: int) -> bytes:
    """
    Read the request body chunk by chunk, giving up as soon as it passes the limit.

    Covers uploads without a Content-Length header (chunked transfer encoding).

    Raises:
        HTTPException: 413 once more than ``limit_bytes`` have arrived.
    """
    chunks: list[bytes] = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit_bytes:
            raise _too_large(limit_bytes)
        chunks.append(chunk)
    return b"".join(chunks)


async def read_json_body(request: Request, limit_bytes: int) -> Any:
    """
    Read and decode a JSON request body, enforcing the size limit.

    Raises:
        HTTPException: 413 when the body is too large, 400 when it is empty
            or not valid JSON.
    """
    validate_body_size(request, limit_bytes)
    body = await read_limited_body(request, limit_bytes)
    if not body:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body is empty")
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid JSON body: {e}"
        ) from e
