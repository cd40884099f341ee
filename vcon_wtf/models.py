"""Provider-neutral data models shared by every ASR backend.

Each backend translates its native response into :class:`TranscribeResult`
so that the enrichment step never has to know which service produced it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

HealthState = Literal["ok", "degraded", "unavailable"]


@dataclass(slots=True)
class TranscribeOptions:
    """Recognition options understood by all backends.

    Backends ignore options they cannot express. ``word_boosting`` is only
    forwarded by the NVIDIA backend.
    """

    language: str | None = None
    punctuation: bool = True
    word_timestamps: bool = True
    speaker_diarization: bool = False
    profanity_filter: bool = False
    word_boosting: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "language": self.language,
            "punctuation": self.punctuation,
            "word_timestamps": self.word_timestamps,
            "speaker_diarization": self.speaker_diarization,
            "profanity_filter": self.profanity_filter,
        }
        if self.word_boosting:
            data["word_boosting"] = list(self.word_boosting)
        return data


@dataclass(slots=True)
class TranscribeRequest:
    """One audio payload to transcribe.

    Attributes:
        audio: Raw audio bytes
        mediatype: Declared MIME type of ``audio``
        language: BCP-47 language tag; falls back to ``options.language``
        model: Per-request model override; the backend default when None
        options: Recognition options
    """

    audio: bytes
    mediatype: str
    language: str | None = None
    model: str | None = None
    options: TranscribeOptions = field(default_factory=TranscribeOptions)

    @property
    def effective_language(self) -> str | None:
        return self.language or self.options.language


@dataclass(slots=True)
class AsrWord:
    """Word-level timing as reported by a backend."""

    word: str
    start: float
    end: float
    confidence: float
    speaker: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "word": self.word,
            "start": self.start,
            "end": self.end,
            "confidence": self.confidence,
        }
        if self.speaker is not None:
            data["speaker"] = self.speaker
        return data


@dataclass(slots=True)
class AsrSegment:
    """Segment-level timing as reported by a backend."""

    text: str
    start: float
    end: float
    confidence: float
    speaker: str | None = None
    words: list[AsrWord] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "text": self.text,
            "start": self.start,
            "end": self.end,
            "confidence": self.confidence,
        }
        if self.speaker is not None:
            data["speaker"] = self.speaker
        if self.words is not None:
            data["words"] = [w.to_dict() for w in self.words]
        return data


@dataclass(slots=True)
class TranscribeResult:
    """
    Provider-neutral transcription result.

    Attributes:
        text: Full transcript text
        language: Language tag reported or assumed by the backend
        duration: Audio duration in seconds
        confidence: Overall confidence in [0, 1]
        segments: Ordered segments
        processing_time_ms: Wall-clock latency of the backend call
        provider: Backend identifier
        words: Ordered top-level words, when the backend reports them
        model: Model that produced the result, when known
    """

    text: str
    language: str
    duration: float
    confidence: float
    segments: list[AsrSegment]
    processing_time_ms: float
    provider: str
    words: list[AsrWord] | None = None
    model: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "text": self.text,
            "language": self.language,
            "duration": self.duration,
            "confidence": self.confidence,
            "segments": [s.to_dict() for s in self.segments],
            "processing_time_ms": self.processing_time_ms,
            "provider": self.provider,
        }
        if self.words is not None:
            data["words"] = [w.to_dict() for w in self.words]
        if self.model is not None:
            data["model"] = self.model
        return data


@dataclass(slots=True)
class HealthStatus:
    """Result of a backend health probe."""

    status: HealthState
    provider: str
    model: str | None = None
    version: str | None = None
    message: str | None = None

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status, "provider": self.provider}
        if self.model is not None:
            data["model"] = self.model
        if self.version is not None:
            data["version"] = self.version
        if self.message is not None:
            data["message"] = self.message
        return data
