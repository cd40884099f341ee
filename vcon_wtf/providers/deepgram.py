"""Deepgram pre-recorded transcription backend (Nova models)."""

from __future__ import annotations

from typing import Any

import httpx

from ..models import AsrSegment, AsrWord, HealthStatus, TranscribeRequest, TranscribeResult
from .base import HEALTH_TIMEOUT_S, BaseAsrProvider, mean, primary_language, unit_interval

DEEPGRAM_BASE_URL = "https://api.deepgram.com"


def _speaker(value: Any) -> str | None:
    return None if value is None else str(value)


def _word(raw: dict[str, Any], with_speaker: bool = True) -> AsrWord:
    return AsrWord(
        word=raw.get("punctuated_word") or raw["word"],
        start=raw["start"],
        end=raw["end"],
        confidence=unit_interval(raw.get("confidence")),
        speaker=_speaker(raw.get("speaker")) if with_speaker else None,
    )


class DeepgramAsrProvider(BaseAsrProvider):
    """Client for ``POST /v1/listen`` with the raw audio as the request body."""

    provider = "deepgram"
    display_name = "Deepgram"

    @property
    def base_url(self) -> str:
        return (self.settings.base_url or DEEPGRAM_BASE_URL).rstrip("/")

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Token {self.settings.api_key}"}

    async def _check_health_impl(self) -> HealthStatus:
        async with self._client(timeout=HEALTH_TIMEOUT_S) as client:
            return await self._probe(client, f"{self.base_url}/v1/projects")

    def build_params(self, request: TranscribeRequest, model: str) -> dict[str, str]:
        opts = request.options
        params = {
            "model": model,
            "smart_format": "true",
            "punctuate": "true" if opts.punctuation else "false",
            "utterances": "true",
            "paragraphs": "true",
        }
        language = primary_language(request.effective_language)
        if language:
            params["language"] = language
        if opts.speaker_diarization:
            params["diarize"] = "true"
        if opts.profanity_filter:
            params["profanity_filter"] = "true"
        return params

    async def _request_transcription(
        self, client: httpx.AsyncClient, request: TranscribeRequest, model: str
    ) -> dict[str, Any]:
        response = await client.post(
            f"{self.base_url}/v1/listen",
            params=self.build_params(request, model),
            content=request.audio,
            headers={"Content-Type": request.mediatype},
        )
        self._raise_for_status(response)
        return response.json()

    def parse_response(
        self, data: dict[str, Any], model: str, processing_time_ms: float
    ) -> TranscribeResult:
        duration = (data.get("metadata") or {}).get("duration", 0.0)
        results = data.get("results") or {}
        channels = results.get("channels") or []
        channel = channels[0] if channels else {}
        alternatives = channel.get("alternatives") or []

        if not alternatives:
            return TranscribeResult(
                text="",
                language="unknown",
                duration=duration,
                confidence=0.0,
                segments=[],
                processing_time_ms=processing_time_ms,
                provider=self.provider,
                model=model,
            )

        alternative = alternatives[0]
        words = [_word(w) for w in alternative.get("words") or []]

        segments: list[AsrSegment] = []
        utterances = results.get("utterances") or []
        paragraphs = (alternative.get("paragraphs") or {}).get("paragraphs") or []
        if utterances:
            segments = [
                AsrSegment(
                    text=utt["transcript"],
                    start=utt["start"],
                    end=utt["end"],
                    confidence=unit_interval(utt.get("confidence")),
                    speaker=_speaker(utt.get("speaker")),
                    words=[_word(w, with_speaker=False) for w in utt.get("words") or []],
                )
                for utt in utterances
            ]
        elif paragraphs:
            for paragraph in paragraphs:
                for sentence in paragraph.get("sentences") or []:
                    start, end = sentence["start"], sentence["end"]
                    members = [w for w in words if w.start >= start and w.end <= end]
                    confidence = mean([w.confidence for w in members])
                    segments.append(
                        AsrSegment(
                            text=sentence["text"],
                            start=start,
                            end=end,
                            confidence=(
                                unit_interval(alternative.get("confidence"))
                                if confidence is None
                                else confidence
                            ),
                            speaker=_speaker(paragraph.get("speaker")),
                            words=members,
                        )
                    )

        return TranscribeResult(
            text=alternative.get("transcript", ""),
            # Only reported when detect_language is enabled
            language=channel.get("detected_language") or "en",
            duration=duration,
            confidence=unit_interval(alternative.get("confidence")),
            segments=segments,
            words=words,
            processing_time_ms=processing_time_ms,
            provider=self.provider,
            model=model,
        )
