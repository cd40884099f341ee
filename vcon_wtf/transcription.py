"""
Transcription pipeline for vCon documents.

One document goes through: parse/validate -> resolve backend -> select audio
dialogs -> extract audio -> dispatch to the backend -> enrich -> merge.
Each stage can end the pipeline with a :class:`TranscriptionFailure` whose
:class:`FailureReason` tells structural problems, content problems,
configuration problems and backend problems apart.

Within a document, dialogs fail independently: as long as one dialog is
transcribed the document succeeds and the others are counted as failed.
Within a batch, documents fail independently.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .audio_extractor import AudioExtractor
from .enricher import EnrichmentInput, enrich_vcon_with_transcriptions
from .exceptions import ConfigurationError, ProviderError
from .models import HealthStatus, TranscribeOptions, TranscribeRequest, TranscribeResult
from .providers import ProviderRegistry
from .vcon_parser import ParseFailure, parse_vcon

logger = logging.getLogger(__name__)

NO_AUDIO_DIALOGS = "No audio dialogs found in VCON"
EXTRACTION_FAILED = "Failed to extract audio from any dialog"
BACKEND_FAILED = "Transcription failed for all dialogs"


class FailureReason(str, Enum):
    """Why a document could not be transcribed."""

    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    NO_AUDIO = "no_audio"
    EXTRACTION = "extraction"
    BACKEND = "backend"
    INTERNAL = "internal"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    FailureReason.VALIDATION: 400,
    FailureReason.CONFIGURATION: 400,
    FailureReason.NO_AUDIO: 422,
    FailureReason.EXTRACTION: 422,
    FailureReason.BACKEND: 502,
    FailureReason.INTERNAL: 500,
}


@dataclass(slots=True)
class TranscriptionOptions:
    """Per-call selectors; None means "use the process default"."""

    provider: str | None = None
    model: str | None = None
    language: str | None = None
    word_timestamps: bool = True
    speaker_diarization: bool = False
    punctuation: bool = True
    profanity_filter: bool = False
    word_boosting: list[str] | None = None

    def to_transcribe_options(self) -> TranscribeOptions:
        return TranscribeOptions(
            language=self.language,
            punctuation=self.punctuation,
            word_timestamps=self.word_timestamps,
            speaker_diarization=self.speaker_diarization,
            profanity_filter=self.profanity_filter,
            word_boosting=self.word_boosting,
        )


@dataclass(slots=True)
class TranscriptionStats:
    dialogs_processed: int
    dialogs_skipped: int
    dialogs_failed: int
    total_processing_time_ms: float
    provider: str
    model: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "dialogs_processed": self.dialogs_processed,
            "dialogs_skipped": self.dialogs_skipped,
            "dialogs_failed": self.dialogs_failed,
            "total_processing_time_ms": self.total_processing_time_ms,
            "provider": self.provider,
            "model": self.model,
        }

    def to_headers(self) -> dict[str, str]:
        headers = {
            "X-Dialogs-Processed": str(self.dialogs_processed),
            "X-Dialogs-Skipped": str(self.dialogs_skipped),
            "X-Dialogs-Failed": str(self.dialogs_failed),
            "X-Processing-Time-Ms": str(round(self.total_processing_time_ms)),
            "X-Provider": self.provider,
        }
        if self.model:
            headers["X-Model"] = self.model
        return headers


@dataclass
class TranscriptionSuccess:
    vcon: dict[str, Any]
    stats: TranscriptionStats
    success: bool = field(default=True, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"success": True, "vcon": self.vcon}


@dataclass
class TranscriptionFailure:
    reason: FailureReason
    error: str
    details: list[dict[str, str]] | None = None
    success: bool = field(default=False, init=False)

    @property
    def status_code(self) -> int:
        return self.reason.http_status

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": False,
            "error": self.error,
            "reason": self.reason.value,
        }
        if self.details:
            data["details"] = self.details
        return data


TranscriptionResult = TranscriptionSuccess | TranscriptionFailure


@dataclass
class BatchTranscriptionResult:
    """Per-document outcomes, positionally aligned with the input."""

    results: list[TranscriptionResult]
    provider: str

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "summary": {
                "total": len(self.results),
                "succeeded": self.succeeded,
                "failed": self.failed,
                "provider": self.provider,
            },
        }


def _dialog_detail(index: int, message: str) -> dict[str, str]:
    return {"path": f"dialog[{index}]", "message": message}


async def transcribe_vcon(
    raw: Any,
    options: TranscriptionOptions | None = None,
    *,
    registry: ProviderRegistry,
    extractor: AudioExtractor | None = None,
) -> TranscriptionResult:
    """
    Run the full pipeline for one document.

    Args:
        raw: Decoded JSON document as received
        options: Backend and recognition selectors
        registry: Provider registry to resolve the backend from
        extractor: Audio extractor (default: built from the registry's config)

    Returns:
        TranscriptionSuccess with the enriched document and statistics, or a
        TranscriptionFailure describing why nothing could be transcribed.
    """
    options = options or TranscriptionOptions()
    extractor = extractor or AudioExtractor.from_config(registry.config)
    start = time.perf_counter()

    parsed = parse_vcon(raw)
    if isinstance(parsed, ParseFailure):
        return TranscriptionFailure(FailureReason.VALIDATION, parsed.error, parsed.details)
    vcon = parsed.vcon

    try:
        provider = registry.get(options.provider)
    except ConfigurationError as e:
        return TranscriptionFailure(FailureReason.CONFIGURATION, str(e))
    if not provider.is_configured():
        return TranscriptionFailure(
            FailureReason.CONFIGURATION, f"ASR provider '{provider.provider}' is not configured"
        )

    logger.info(
        "Starting VCON transcription: %s (%d audio dialog(s), provider=%s)",
        vcon["uuid"],
        len(parsed.audio_dialogs),
        provider.provider,
        extra={
            "uuid": vcon["uuid"],
            "audio_dialogs": len(parsed.audio_dialogs),
            "provider": provider.provider,
            "model": options.model,
        },
    )

    if not parsed.audio_dialogs:
        return TranscriptionFailure(FailureReason.NO_AUDIO, NO_AUDIO_DIALOGS)

    extraction = await extractor.extract_all(parsed.audio_dialogs)
    failures = [_dialog_detail(e.dialog_index, e.error) for e in extraction.errors]
    if not extraction.extracted:
        return TranscriptionFailure(FailureReason.EXTRACTION, EXTRACTION_FAILED, failures)

    recognition = options.to_transcribe_options()
    requests = [
        TranscribeRequest(
            audio=audio.audio,
            mediatype=audio.mediatype,
            language=options.language,
            model=options.model,
            options=recognition,
        )
        for audio in extraction.extracted
    ]
    outcomes = await provider.transcribe_batch(requests, return_exceptions=True)

    enrichments: list[EnrichmentInput] = []
    for audio, outcome in zip(extraction.extracted, outcomes, strict=True):
        if isinstance(outcome, ProviderError):
            failures.append(_dialog_detail(audio.dialog_index, str(outcome)))
            continue
        assert isinstance(outcome, TranscribeResult)
        enrichments.append(
            EnrichmentInput(
                dialog_index=audio.dialog_index,
                result=outcome,
                model=options.model,
                audio_duration=audio.duration,
            )
        )

    if not enrichments:
        return TranscriptionFailure(
            FailureReason.BACKEND, BACKEND_FAILED, sorted(failures, key=lambda d: d["path"])
        )

    enriched = enrich_vcon_with_transcriptions(vcon, enrichments)

    models = {e.model or e.result.model for e in enrichments}
    stats = TranscriptionStats(
        dialogs_processed=len(enrichments),
        dialogs_skipped=len(vcon["dialog"]) - len(parsed.audio_dialogs),
        dialogs_failed=len(failures),
        total_processing_time_ms=(time.perf_counter() - start) * 1000,
        provider=provider.provider,
        model=models.pop() if len(models) == 1 else None,
    )

    logger.info(
        "VCON transcription completed: %s (%d processed, %d skipped, %d failed, %.0f ms)",
        vcon["uuid"],
        stats.dialogs_processed,
        stats.dialogs_skipped,
        stats.dialogs_failed,
        stats.total_processing_time_ms,
        extra={"uuid": vcon["uuid"], **stats.to_dict()},
    )
    return TranscriptionSuccess(vcon=enriched, stats=stats)


async def _transcribe_isolated(
    raw: Any,
    options: TranscriptionOptions,
    registry: ProviderRegistry,
    extractor: AudioExtractor | None,
) -> TranscriptionResult:
    try:
        return await transcribe_vcon(raw, options, registry=registry, extractor=extractor)
    except Exception:
        # One document must never take its siblings down
        logger.exception("Unexpected error while transcribing a batch document")
        return TranscriptionFailure(FailureReason.INTERNAL, "Internal error during transcription")


async def transcribe_vcon_batch(
    raws: Sequence[Any],
    options: TranscriptionOptions | None = None,
    *,
    registry: ProviderRegistry,
    extractor: AudioExtractor | None = None,
) -> BatchTranscriptionResult:
    """Transcribe several documents concurrently, isolating failures per document."""
    options = options or TranscriptionOptions()
    extractor = extractor or AudioExtractor.from_config(registry.config)
    results = await asyncio.gather(
        *(_transcribe_isolated(raw, options, registry, extractor) for raw in raws)
    )
    batch = BatchTranscriptionResult(
        results=list(results),
        provider=options.provider or registry.default_provider,
    )
    logger.info(
        "Batch transcription completed: %d total, %d succeeded, %d failed",
        len(batch.results),
        batch.succeeded,
        batch.failed,
        extra={"total": len(batch.results), "succeeded": batch.succeeded, "failed": batch.failed},
    )
    return batch


async def check_health(registry: ProviderRegistry) -> HealthStatus:
    """Health of the default backend."""
    return await registry.get().health_check()
