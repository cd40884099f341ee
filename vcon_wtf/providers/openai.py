"""OpenAI Whisper API backend.

The ``verbose_json`` transcription format spoken here is also served by Groq
and by self-hosted Whisper servers, whose backends subclass this one.
"""

from __future__ import annotations

import math
from typing import Any

import httpx

from ..audio import filename_for
from ..models import AsrSegment, AsrWord, HealthStatus, TranscribeRequest, TranscribeResult
from .base import HEALTH_TIMEOUT_S, BaseAsrProvider, mean, primary_language

DEFAULT_BASE_URL = "https://api.openai.com/v1"

# Whisper reports no per-word confidence
DEFAULT_CONFIDENCE = 0.95


class OpenAIAsrProvider(BaseAsrProvider):
    """Client for ``POST {base}/audio/transcriptions``."""

    provider = "openai"
    display_name = "OpenAI"
    default_base_url = DEFAULT_BASE_URL

    @property
    def base_url(self) -> str:
        return (self.settings.base_url or self.default_base_url).rstrip("/")

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.settings.api_key}"}

    async def _check_health_impl(self) -> HealthStatus:
        async with self._client(timeout=HEALTH_TIMEOUT_S) as client:
            return await self._probe(client, f"{self.base_url}/models")

    def build_form(
        self, request: TranscribeRequest, model: str
    ) -> tuple[dict[str, Any], dict[str, tuple[str, bytes, str]]]:
        """Multipart fields and file part for one request."""
        data: dict[str, Any] = {
            "model": model,
            "response_format": "verbose_json",
            "timestamp_granularities[]": ["word", "segment"],
        }
        language = primary_language(request.effective_language)
        if language:
            data["language"] = language
        files = {"file": (filename_for(request.mediatype), request.audio, request.mediatype)}
        return data, files

    async def _post_form(
        self, client: httpx.AsyncClient, url: str, request: TranscribeRequest, model: str
    ) -> httpx.Response:
        data, files = self.build_form(request, model)
        return await client.post(url, data=data, files=files)

    async def _request_transcription(
        self, client: httpx.AsyncClient, request: TranscribeRequest, model: str
    ) -> dict[str, Any]:
        response = await self._post_form(
            client, f"{self.base_url}/audio/transcriptions", request, model
        )
        self._raise_for_status(response)
        return response.json()

    def segment_confidence(self, segment: dict[str, Any]) -> float:
        """Probability derived from the segment's average log-probability."""
        return min(math.exp(segment["avg_logprob"]), 1.0)

    def parse_response(
        self, data: dict[str, Any], model: str, processing_time_ms: float
    ) -> TranscribeResult:
        words: list[AsrWord] | None = None
        if data.get("words") is not None:
            words = [
                AsrWord(
                    word=w["word"], start=w["start"], end=w["end"], confidence=DEFAULT_CONFIDENCE
                )
                for w in data["words"]
            ]

        segments: list[AsrSegment] = []
        for seg in data.get("segments") or []:
            start, end = seg["start"], seg["end"]
            segment_words = None
            if words is not None:
                segment_words = [w for w in words if w.start >= start and w.end <= end]
            segments.append(
                AsrSegment(
                    text=seg["text"].strip(),
                    start=start,
                    end=end,
                    confidence=self.segment_confidence(seg),
                    words=segment_words,
                )
            )

        confidence = mean([s.confidence for s in segments])
        return TranscribeResult(
            text=data["text"].strip(),
            language=data.get("language") or "unknown",
            duration=data.get("duration", 0.0),
            confidence=DEFAULT_CONFIDENCE if confidence is None else confidence,
            segments=segments,
            words=words,
            processing_time_ms=processing_time_ms,
            provider=self.provider,
            model=model,
        )
