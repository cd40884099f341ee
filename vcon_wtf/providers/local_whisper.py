"""Self-hosted Whisper servers exposing an OpenAI-compatible API.

Covers faster-whisper-server, whisper.cpp's server and similar. These need
no credential, and servers differ in where they mount the transcription
route, so several paths are tried in turn.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar

import httpx

from ..exceptions import ProviderError
from ..models import HealthStatus, TranscribeRequest
from .openai import DEFAULT_CONFIDENCE, OpenAIAsrProvider

logger = logging.getLogger(__name__)

LOCAL_HEALTH_TIMEOUT_S = 5.0


class LocalWhisperAsrProvider(OpenAIAsrProvider):
    """Whisper server reachable at ``settings.base_url``."""

    provider = "local-whisper"
    display_name = "Local Whisper"
    not_configured_message = "Base URL not configured"

    health_paths: ClassVar[tuple[str, ...]] = ("/health", "/v1/health", "/v1/models")
    transcription_paths: ClassVar[tuple[str, ...]] = (
        "/v1/audio/transcriptions",
        "/audio/transcriptions",
        "/transcribe",
    )

    def is_configured(self) -> bool:
        return bool(self.settings.base_url)

    @property
    def base_url(self) -> str:
        return (self.settings.base_url or "").rstrip("/")

    def _auth_headers(self) -> dict[str, str]:
        return {}

    async def _check_health_impl(self) -> HealthStatus:
        async with self._client(timeout=LOCAL_HEALTH_TIMEOUT_S) as client:
            for path in self.health_paths:
                try:
                    response = await client.get(f"{self.base_url}{path}")
                except httpx.HTTPError as e:
                    logger.debug("Health probe %s failed: %s", path, e)
                    continue
                if response.status_code == 200:
                    return HealthStatus(status="ok", provider=self.provider, model=self.model)
        return self._unavailable("No health endpoint responded")

    async def _request_transcription(
        self, client: httpx.AsyncClient, request: TranscribeRequest, model: str
    ) -> dict[str, Any]:
        for path in self.transcription_paths:
            response = await self._post_form(client, f"{self.base_url}{path}", request, model)
            if response.status_code == 404:
                logger.debug(
                    "%s has no route at %s, trying next",
                    self.display_name,
                    path,
                    extra={"provider": self.provider, "endpoint": path},
                )
                continue
            self._raise_for_status(response)
            logger.debug(
                "%s answered at %s",
                self.display_name,
                path,
                extra={"provider": self.provider, "endpoint": path},
            )
            return response.json()

        raise ProviderError(
            self.provider,
            f"{self.display_name} returned 404 for every transcription endpoint",
            status_code=404,
        )

    def segment_confidence(self, segment: dict[str, Any]) -> float:
        if segment.get("avg_logprob") is None:
            return DEFAULT_CONFIDENCE
        return super().segment_confidence(segment)
