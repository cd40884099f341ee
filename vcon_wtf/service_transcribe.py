"""Transcription routes for the API service."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from .service_dependencies import ConfigDep, ExtractorDep, RegistryDep
from .service_validation import read_json_body
from .transcription import TranscriptionOptions, transcribe_vcon, transcribe_vcon_batch

router = APIRouter()

_VCON_BODY: dict[str, Any] = {
    "requestBody": {
        "required": True,
        "content": {"application/json": {"schema": {"type": "object"}}},
        "description": "vCon document with one or more recording dialogs",
    }
}

_VCON_BATCH_BODY: dict[str, Any] = {
    "requestBody": {
        "required": True,
        "content": {
            "application/json": {"schema": {"type": "array", "items": {"type": "object"}}}
        },
        "description": "Array of vCon documents",
    }
}


def _options(
    provider: str | None,
    model: str | None,
    language: str | None,
    word_timestamps: bool,
    speaker_diarization: bool,
) -> TranscriptionOptions:
    return TranscriptionOptions(
        provider=provider or None,
        model=model or None,
        language=language or None,
        word_timestamps=word_timestamps,
        speaker_diarization=speaker_diarization,
    )


ProviderQuery = Annotated[
    str | None,
    Query(
        description="ASR backend to use (default: ASR_PROVIDER)",
        examples=["nvidia", "openai", "deepgram"],
    ),
]
ModelQuery = Annotated[
    str | None,
    Query(description="Backend model override", examples=["whisper-1", "nova-2"]),
]
LanguageQuery = Annotated[
    str | None,
    Query(description="BCP-47 language tag, e.g. 'en-US'", examples=["en-US"]),
]
WordTimestampsQuery = Annotated[
    bool, Query(description="Request word-level timestamps from the backend")
]
DiarizationQuery = Annotated[
    bool, Query(description="Request speaker diarization from the backend")
]


@router.post(
    "/transcribe",
    summary="Transcribe a vCon",
    description=(
        "Validate a vCon, transcribe every audio dialog with the selected backend "
        "and return the document with one wtf_transcription analysis per dialog."
    ),
    tags=["Transcription"],
    response_model=None,
    openapi_extra=_VCON_BODY,
    responses={
        200: {"description": "Enriched vCon; statistics in X-* headers"},
        400: {"description": "Invalid vCon or backend configuration"},
        413: {"description": "Request body too large"},
        422: {"description": "No audio dialogs or no extractable audio"},
        502: {"description": "Backend failed for every dialog"},
    },
)
async def transcribe_endpoint(
    request: Request,
    config: ConfigDep,
    registry: RegistryDep,
    extractor: ExtractorDep,
    provider: ProviderQuery = None,
    model: ModelQuery = None,
    language: LanguageQuery = None,
    word_timestamps: WordTimestampsQuery = True,
    speaker_diarization: DiarizationQuery = False,
) -> JSONResponse:
    """
    Transcribe all audio dialogs of one vCon.

    Returns:
        The enriched vCon with ``X-Dialogs-*``, ``X-Processing-Time-Ms``,
        ``X-Provider`` and ``X-Model`` headers, or an error body
        ``{error, reason, details?}`` with the status of the failure reason.
    """
    payload = await read_json_body(request, config.max_vcon_size_bytes)
    options = _options(provider, model, language, word_timestamps, speaker_diarization)

    result = await transcribe_vcon(payload, options, registry=registry, extractor=extractor)
    if not result.success:
        return JSONResponse(status_code=result.status_code, content=result.to_dict())
    return JSONResponse(content=result.vcon, headers=result.stats.to_headers())


@router.post(
    "/transcribe/batch",
    summary="Transcribe several vCons",
    description=(
        "Transcribe an array of vCons concurrently. Each document succeeds or "
        "fails independently; the response lists outcomes in input order."
    ),
    tags=["Transcription"],
    response_model=None,
    openapi_extra=_VCON_BATCH_BODY,
    responses={
        200: {"description": "Per-document results and a summary"},
        400: {"description": "Body is not a JSON array"},
        413: {"description": "Request body too large"},
    },
)
async def transcribe_batch_endpoint(
    request: Request,
    config: ConfigDep,
    registry: RegistryDep,
    extractor: ExtractorDep,
    provider: ProviderQuery = None,
    model: ModelQuery = None,
    language: LanguageQuery = None,
    word_timestamps: WordTimestampsQuery = True,
    speaker_diarization: DiarizationQuery = False,
) -> JSONResponse:
    """Transcribe every vCon in a JSON array body."""
    payload = await read_json_body(request, config.max_vcon_size_bytes)
    if not isinstance(payload, list):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body must be a JSON array of vCons",
        )
    options = _options(provider, model, language, word_timestamps, speaker_diarization)

    batch = await transcribe_vcon_batch(payload, options, registry=registry, extractor=extractor)
    return JSONResponse(content=batch.to_dict())
