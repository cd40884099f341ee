"""NVIDIA NIM speech recognition backend (Parakeet / Canary models)."""

from __future__ import annotations

import base64
from typing import Any

import httpx

from ..audio import audio_format_for
from ..models import AsrSegment, AsrWord, HealthStatus, TranscribeRequest, TranscribeResult
from .base import HEALTH_TIMEOUT_S, BaseAsrProvider, mean, unit_interval

DEFAULT_LANGUAGE = "en-US"
SAMPLE_RATE = 16_000


def _speaker(value: Any) -> str | None:
    return None if value is None else str(value)


def _word(raw: dict[str, Any]) -> AsrWord:
    return AsrWord(
        word=raw["word"],
        start=raw["start_time"],
        end=raw["end_time"],
        confidence=unit_interval(raw.get("confidence")),
        speaker=_speaker(raw.get("speaker")),
    )


class NvidiaAsrProvider(BaseAsrProvider):
    """
    Client for a NIM ASR microservice.

    The service is usually deployed locally so an API key is optional; when
    one is set it is sent as a Bearer token.
    """

    provider = "nvidia"
    display_name = "NVIDIA NIM"

    def is_configured(self) -> bool:
        return True

    @property
    def base_url(self) -> str:
        return (self.settings.base_url or "").rstrip("/")

    def _auth_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        return headers

    async def _check_health_impl(self) -> HealthStatus:
        async with self._client(timeout=HEALTH_TIMEOUT_S) as client:
            response = await client.get(f"{self.base_url}/v1/health")
        if response.status_code != 200:
            return self._unavailable(f"HTTP {response.status_code}")

        data = response.json()
        return HealthStatus(
            status="ok" if data.get("status") == "ok" else "degraded",
            provider=self.provider,
            model=data.get("model") or self.model,
            version=data.get("version"),
        )

    def build_payload(self, request: TranscribeRequest, model: str) -> dict[str, Any]:
        """JSON envelope sent to ``/v1/asr/transcribe``."""
        opts = request.options
        options: dict[str, Any] = {
            "language": request.effective_language or DEFAULT_LANGUAGE,
            "punctuation": opts.punctuation,
            "word_timestamps": opts.word_timestamps,
            "speaker_diarization": opts.speaker_diarization,
            "profanity_filter": opts.profanity_filter,
        }
        if opts.word_boosting:
            options["word_boosting"] = list(opts.word_boosting)

        return {
            "audio": base64.b64encode(request.audio).decode("ascii"),
            "config": {
                "format": audio_format_for(request.mediatype),
                "sample_rate": SAMPLE_RATE,
                "channels": 1,
                "model": model,
            },
            "options": options,
        }

    async def _request_transcription(
        self, client: httpx.AsyncClient, request: TranscribeRequest, model: str
    ) -> dict[str, Any]:
        response = await client.post(
            f"{self.base_url}/v1/asr/transcribe",
            json=self.build_payload(request, model),
        )
        self._raise_for_status(response)
        return response.json()

    def parse_response(
        self, data: dict[str, Any], model: str, processing_time_ms: float
    ) -> TranscribeResult:
        segments = [
            AsrSegment(
                text=seg["text"],
                start=seg["start_time"],
                end=seg["end_time"],
                confidence=unit_interval(seg.get("confidence")),
                speaker=_speaker(seg.get("speaker")),
                words=[_word(w) for w in seg["words"]] if seg.get("words") is not None else None,
            )
            for seg in data.get("segments") or []
        ]
        words = [_word(w) for w in data["words"]] if data.get("words") is not None else None

        # A reported confidence of 0 is treated as missing
        reported = unit_interval(data.get("confidence"))
        confidence = reported or mean([s.confidence for s in segments]) or 0.0

        return TranscribeResult(
            text=data.get("text", ""),
            language=data.get("language") or DEFAULT_LANGUAGE,
            duration=data.get("duration", 0.0),
            confidence=confidence,
            segments=segments,
            words=words,
            processing_time_ms=processing_time_ms,
            provider=self.provider,
            model=model,
        )
