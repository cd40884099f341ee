"""
Turn provider-neutral transcription results into WTF analysis entries.

The enricher reconciles whatever timing granularity a backend produced:

- words come from the top-level word list when present, otherwise they are
  flattened out of the segments (inheriting the segment's speaker)
- each segment references, by id, the words lying entirely inside it
- speakers are rolled up from segment speaker labels
- quality figures are derived from word confidences

Nothing here raises on sparse input; missing optional data simply leaves
the corresponding output field out.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from . import WTF_ANALYSIS_TYPE, WTF_SCHEMA_ID
from .models import AsrWord, TranscribeResult
from .wtf import (
    SpeakerId,
    WtfMetadata,
    WtfQuality,
    WtfSegment,
    WtfSpeaker,
    WtfTranscript,
    WtfTranscription,
    WtfWord,
)

logger = logging.getLogger(__name__)

PUNCTUATION_TOKENS = frozenset({".", ",", "!", "?", ";", ":", "'", '"', "(", ")", "-"})

LOW_CONFIDENCE_THRESHOLD = 0.7
LOW_CONFIDENCE_WARNING_RATIO = 0.1
LOW_CONFIDENCE_WARNING = "High number of low-confidence words"


@dataclass(slots=True)
class EnrichmentInput:
    """One transcribed dialog waiting to be attached to its document."""

    dialog_index: int
    result: TranscribeResult
    model: str | None = None
    audio_duration: float | None = None


def is_punctuation(text: str) -> bool:
    """True only when the whole token is a single punctuation mark."""
    return text in PUNCTUATION_TOKENS


def normalize_speaker(label: str | None) -> SpeakerId | None:
    """Numeric labels become ints (``"1"`` -> ``1``); others stay strings."""
    if label is None or label == "":
        return None
    if label.isascii() and label.isdigit():
        return int(label)
    return label


def utc_timestamp(now: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    moment = (now or datetime.now(UTC)).astimezone(UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _wtf_word(word_id: int, word: AsrWord, speaker: SpeakerId | None) -> WtfWord:
    return WtfWord(
        id=word_id,
        start=word.start,
        end=word.end,
        text=word.word,
        confidence=word.confidence,
        is_punctuation=is_punctuation(word.word),
        speaker=speaker,
    )


def build_words(result: TranscribeResult) -> list[WtfWord]:
    """Flatten the result's words into a single id-ordered list."""
    if result.words is not None:
        return [
            _wtf_word(i, w, normalize_speaker(w.speaker)) for i, w in enumerate(result.words)
        ]

    words: list[WtfWord] = []
    for segment in result.segments:
        speaker = normalize_speaker(segment.speaker)
        for w in segment.words or []:
            words.append(_wtf_word(len(words), w, speaker))
    return words


def build_segments(result: TranscribeResult, words: list[WtfWord]) -> list[WtfSegment]:
    segments = []
    for idx, seg in enumerate(result.segments):
        # Closed interval; words straddling a boundary belong to no segment
        member_ids = [w.id for w in words if w.start >= seg.start and w.end <= seg.end]
        segments.append(
            WtfSegment(
                id=idx,
                start=seg.start,
                end=seg.end,
                text=seg.text,
                confidence=seg.confidence,
                speaker=normalize_speaker(seg.speaker),
                words=member_ids or None,
            )
        )
    return segments


def build_speakers(segments: Iterable[WtfSegment]) -> dict[str, WtfSpeaker]:
    speakers: dict[str, WtfSpeaker] = {}
    for seg in segments:
        if seg.speaker is None:
            continue
        key = str(seg.speaker)
        speaker = speakers.get(key)
        if speaker is None:
            speaker = speakers[key] = WtfSpeaker(id=seg.speaker, label=f"Speaker {key}")
        speaker.segments.append(seg.id)
        speaker.total_time += seg.end - seg.start
    return speakers


def build_quality(
    average_confidence: float, words: list[WtfWord], speakers: Mapping[str, WtfSpeaker]
) -> WtfQuality:
    low = sum(1 for w in words if w.confidence < LOW_CONFIDENCE_THRESHOLD)
    warnings = [LOW_CONFIDENCE_WARNING] if low > len(words) * LOW_CONFIDENCE_WARNING_RATIO else []
    return WtfQuality(
        average_confidence=average_confidence,
        low_confidence_words=low,
        multiple_speakers=len(speakers) > 1,
        processing_warnings=warnings,
    )


def create_wtf_transcription(
    result: TranscribeResult,
    model: str | None = None,
    audio_duration: float | None = None,
    *,
    now: datetime | None = None,
) -> WtfTranscription:
    """
    Build the canonical WTF record for one backend result.

    Args:
        result: Provider-neutral transcription result
        model: Model name to record; defaults to the result's own model,
            then to the provider id
        audio_duration: Duration declared by the source dialog, if any
        now: Enrichment instant (defaults to the current time)

    Returns:
        WtfTranscription whose word and segment ids are their positions.
    """
    timestamp = utc_timestamp(now)
    words = build_words(result)
    segments = build_segments(result, words)
    speakers = build_speakers(segments)

    return WtfTranscription(
        transcript=WtfTranscript(
            text=result.text,
            language=result.language,
            duration=result.duration,
            confidence=result.confidence,
        ),
        segments=segments,
        metadata=WtfMetadata(
            created_at=timestamp,
            processed_at=timestamp,
            provider=result.provider,
            model=model or result.model or result.provider,
            processing_time=result.processing_time_ms / 1000,
            audio_duration=audio_duration,
        ),
        words=words or None,
        speakers=speakers or None,
        quality=build_quality(result.confidence, words, speakers),
    )


def create_wtf_analysis(
    dialog_index: int | list[int],
    record: WtfTranscription,
    provider: str,
    model: str | None = None,
) -> dict[str, Any]:
    """Wrap a WTF record in a vCon analysis entry."""
    return {
        "type": WTF_ANALYSIS_TYPE,
        "dialog": dialog_index,
        "mediatype": "application/json",
        "vendor": provider,
        "product": model or provider,
        "schema": WTF_SCHEMA_ID,
        "body": record.to_dict(),
        "encoding": "json",
    }


def enrich_vcon_with_transcriptions(
    vcon: Mapping[str, Any],
    enrichments: Iterable[EnrichmentInput],
    *,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Return a copy of ``vcon`` with one WTF analysis entry per enrichment.

    Existing analysis entries are kept first; new ones follow in dialog index
    order and ``updated_at`` is set to the enrichment instant.
    """
    new_analyses = []
    for item in sorted(enrichments, key=lambda e: e.dialog_index):
        record = create_wtf_transcription(
            item.result, item.model, item.audio_duration, now=now
        )
        model = item.model or item.result.model
        new_analyses.append(
            create_wtf_analysis(item.dialog_index, record, item.result.provider, model)
        )
        logger.debug(
            "Created WTF analysis for dialog %d",
            item.dialog_index,
            extra={
                "dialog_index": item.dialog_index,
                "provider": item.result.provider,
                "text_length": len(record.transcript.text),
                "segments": len(record.segments),
                "words": len(record.words or []),
            },
        )

    enriched = dict(vcon)
    enriched["analysis"] = [*(vcon.get("analysis") or []), *new_analyses]
    enriched["updated_at"] = utc_timestamp(now)

    logger.info(
        "VCON %s enriched with %d transcription(s)",
        vcon.get("uuid"),
        len(new_analyses),
        extra={
            "uuid": vcon.get("uuid"),
            "new_analyses": len(new_analyses),
            "total_analyses": len(enriched["analysis"]),
        },
    )
    return enriched
