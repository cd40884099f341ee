"""Request logging middleware for the HTTP service."""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


async def log_requests(request: Request, call_next):
    """
    Tag every request with an id and log its start and outcome.

    A caller-supplied ``X-Request-ID`` is reused so ids can be followed
    across services; otherwise a fresh UUID is generated. The id is stored
    on ``request.state`` for the exception handlers and echoed back on the
    response.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    request.state.request_id = request_id
    context = {"request_id": request_id, "method": request.method, "path": request.url.path}

    logger.info(
        "-> %s %s [request_id=%s]",
        request.method,
        request.url.path,
        request_id,
        extra={**context, "query_params": dict(request.query_params)},
    )

    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000

    logger.info(
        "<- %s %s %d in %.1f ms [request_id=%s]",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        request_id,
        extra={**context, "status_code": response.status_code, "duration_ms": elapsed_ms},
    )

    response.headers[REQUEST_ID_HEADER] = request_id
    return response
