"""Shared constants for the API service."""

from fastapi import status

SERVICE_NAME = "vcon-wtf"

# Statistics headers set on successful transcription responses
STATS_HEADERS = (
    "X-Dialogs-Processed",
    "X-Dialogs-Skipped",
    "X-Dialogs-Failed",
    "X-Processing-Time-Ms",
    "X-Provider",
    "X-Model",
    "X-Request-ID",
)

# Starlette renamed a couple status constants. Keep runtime compatibility
# without breaking mypy on older/lagging stubs.
HTTP_413_TOO_LARGE: int = getattr(
    status, "HTTP_413_CONTENT_TOO_LARGE", status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
)
HTTP_422_UNPROCESSABLE: int = getattr(
    status, "HTTP_422_UNPROCESSABLE_CONTENT", status.HTTP_422_UNPROCESSABLE_ENTITY
)
