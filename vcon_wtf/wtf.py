"""Canonical WTF ("World Transcription Format") record.

These dataclasses mirror ``schema/schemas/wtf.schema.json``. Optional fields
that are None are left out of :meth:`to_dict` output rather than serialized
as null.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

SpeakerId = int | str


@dataclass(slots=True)
class WtfWord:
    id: int
    start: float
    end: float
    text: str
    confidence: float
    is_punctuation: bool = False
    speaker: SpeakerId | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "start": self.start,
            "end": self.end,
            "text": self.text,
            "confidence": self.confidence,
        }
        if self.speaker is not None:
            data["speaker"] = self.speaker
        data["is_punctuation"] = self.is_punctuation
        return data


@dataclass(slots=True)
class WtfSegment:
    """A timed span of speech; ``words`` holds ids from the record's word list."""

    id: int
    start: float
    end: float
    text: str
    confidence: float
    speaker: SpeakerId | None = None
    words: list[int] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "start": self.start,
            "end": self.end,
            "text": self.text,
            "confidence": self.confidence,
        }
        if self.speaker is not None:
            data["speaker"] = self.speaker
        if self.words is not None:
            data["words"] = list(self.words)
        return data


@dataclass(slots=True)
class WtfSpeaker:
    """Per-speaker rollup of segment ids and total speaking time."""

    id: SpeakerId
    label: str
    segments: list[int] = field(default_factory=list)
    total_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "segments": list(self.segments),
            "total_time": self.total_time,
        }


@dataclass(slots=True)
class WtfQuality:
    average_confidence: float
    low_confidence_words: int = 0
    multiple_speakers: bool = False
    processing_warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "average_confidence": self.average_confidence,
            "low_confidence_words": self.low_confidence_words,
            "multiple_speakers": self.multiple_speakers,
            "processing_warnings": list(self.processing_warnings),
        }


@dataclass(slots=True)
class WtfTranscript:
    text: str
    language: str
    duration: float
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "language": self.language,
            "duration": self.duration,
            "confidence": self.confidence,
        }


@dataclass(slots=True)
class WtfMetadata:
    created_at: str
    processed_at: str
    provider: str
    model: str
    processing_time: float | None = None
    audio_duration: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "created_at": self.created_at,
            "processed_at": self.processed_at,
            "provider": self.provider,
            "model": self.model,
        }
        if self.processing_time is not None:
            data["processing_time"] = self.processing_time
        if self.audio_duration is not None:
            data["audio"] = {"duration": self.audio_duration}
        return data


@dataclass(slots=True)
class WtfTranscription:
    """
    Complete transcription record attached to a vCon analysis entry.

    Attributes:
        transcript: Summary of the whole transcription
        segments: Ordered segments, ids are positions
        metadata: Provenance and timing
        words: Flattened words, ids are positions; None when there are none
        speakers: Speaker rollups keyed by ``str(speaker id)``
        quality: Derived quality indicators
    """

    transcript: WtfTranscript
    segments: list[WtfSegment]
    metadata: WtfMetadata
    words: list[WtfWord] | None = None
    speakers: dict[str, WtfSpeaker] | None = None
    quality: WtfQuality | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "transcript": self.transcript.to_dict(),
            "segments": [s.to_dict() for s in self.segments],
            "metadata": self.metadata.to_dict(),
        }
        if self.words is not None:
            data["words"] = [w.to_dict() for w in self.words]
        if self.speakers is not None:
            data["speakers"] = {key: s.to_dict() for key, s in self.speakers.items()}
        if self.quality is not None:
            data["quality"] = self.quality.to_dict()
        return data
