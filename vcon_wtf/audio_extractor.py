"""Extract raw audio bytes from audio-bearing vCon dialogs.

Inline bodies are decoded according to the dialog ``encoding``; dialogs that
only reference their audio by ``url`` are fetched with httpx. Every failure
is recorded against the dialog index instead of aborting the document.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from .audio import decode_base64url, is_audio_dialog, validate_audio
from .exceptions import AudioExtractionError

if TYPE_CHECKING:
    from .config import ServerConfig
    from .vcon_parser import AudioDialog

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT_S = 60.0


@dataclass(slots=True)
class ExtractedAudio:
    """Audio payload pulled out of one dialog."""

    dialog_index: int
    audio: bytes
    mediatype: str
    duration: float | None = None


@dataclass(slots=True)
class ExtractionFailure:
    dialog_index: int
    error: str


@dataclass
class ExtractionResult:
    """Outcome of extracting audio from a set of dialogs."""

    extracted: list[ExtractedAudio] = field(default_factory=list)
    errors: list[ExtractionFailure] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)


class AudioExtractor:
    """
    Turns audio-bearing dialogs into byte buffers.

    Args:
        max_size_mb: Largest payload accepted per dialog, in megabytes
        timeout_s: Timeout for fetching remote audio URLs
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)
    """

    def __init__(
        self,
        max_size_mb: float = 100,
        timeout_s: float = DEFAULT_FETCH_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.max_size_mb = max_size_mb
        self.timeout_s = timeout_s
        self._transport = transport

    @classmethod
    def from_config(cls, config: ServerConfig) -> AudioExtractor:
        return cls(max_size_mb=config.max_audio_size_mb)

    @property
    def max_size_bytes(self) -> int:
        return int(self.max_size_mb * 1024 * 1024)

    async def fetch_url(self, url: str) -> bytes:
        """Download ``url`` and return its body.

        Raises:
            AudioExtractionError: On transport failure or non-2xx status.
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s, transport=self._transport, follow_redirects=True
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPStatusError as e:
            raise AudioExtractionError(
                f"Failed to fetch audio from {url}: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise AudioExtractionError(f"Failed to fetch audio from {url}: {e}") from e

    async def extract(self, dialog: Mapping[str, Any]) -> tuple[bytes, str] | None:
        """
        Return ``(audio, mediatype)`` for one dialog, or None when the dialog
        carries no usable payload.

        Raises:
            AudioExtractionError: If the body cannot be decoded or the URL fetch fails.
        """
        if not is_audio_dialog(dialog):
            return None

        mediatype = dialog["mediatype"]
        body = dialog.get("body")
        if isinstance(body, str) and body:
            encoding = dialog.get("encoding") or "base64url"
            if encoding == "base64url":
                try:
                    return decode_base64url(body), mediatype
                except ValueError as e:
                    raise AudioExtractionError(f"Invalid base64url body: {e}") from e
            if encoding == "none":
                return body.encode("latin-1", errors="replace"), mediatype

        url = dialog.get("url")
        if url:
            return await self.fetch_url(url), mediatype

        return None

    async def _extract_one(self, entry: AudioDialog) -> ExtractedAudio | ExtractionFailure:
        index = entry.index
        try:
            payload = await self.extract(entry.dialog)
        except AudioExtractionError as e:
            logger.error(
                "Audio extraction failed for dialog %d: %s",
                index,
                e,
                extra={"dialog_index": index},
            )
            return ExtractionFailure(index, str(e))

        if payload is None:
            return ExtractionFailure(index, "Failed to extract audio content")

        audio, mediatype = payload
        if len(audio) > self.max_size_bytes:
            return ExtractionFailure(
                index, f"Audio exceeds maximum size of {self.max_size_mb:g}MB"
            )

        problem = validate_audio(audio, mediatype)
        if problem:
            logger.warning(
                "Dialog %d audio looks suspicious: %s",
                index,
                problem,
                extra={"dialog_index": index, "size": len(audio)},
            )

        logger.debug(
            "Audio extracted from dialog %d (%d bytes, %s)",
            index,
            len(audio),
            mediatype,
            extra={"dialog_index": index, "size": len(audio), "mediatype": mediatype},
        )
        duration = entry.dialog.get("duration")
        return ExtractedAudio(
            dialog_index=index,
            audio=audio,
            mediatype=mediatype,
            duration=float(duration) if duration is not None else None,
        )

    async def extract_all(self, dialogs: Sequence[AudioDialog]) -> ExtractionResult:
        """Extract every dialog concurrently; results keep the input order."""
        result = ExtractionResult()
        candidates = []
        for entry in dialogs:
            if is_audio_dialog(entry.dialog):
                candidates.append(entry)
            else:
                result.skipped.append(entry.index)

        outcomes = await asyncio.gather(*(self._extract_one(entry) for entry in candidates))
        for outcome in outcomes:
            if isinstance(outcome, ExtractedAudio):
                result.extracted.append(outcome)
            else:
                result.errors.append(outcome)

        logger.info(
            "Audio extraction completed: %d extracted, %d failed, %d skipped",
            len(result.extracted),
            len(result.errors),
            len(result.skipped),
            extra={
                "extracted": len(result.extracted),
                "errors": len(result.errors),
                "skipped": len(result.skipped),
            },
        )
        return result
