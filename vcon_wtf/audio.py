"""Audio helpers for vCon dialogs: MIME whitelist, base64url codec, formats."""

from __future__ import annotations

import base64
from collections.abc import Mapping
from typing import Any

SUPPORTED_AUDIO_TYPES: tuple[str, ...] = (
    "audio/wav",
    "audio/wave",
    "audio/x-wav",
    "audio/mp3",
    "audio/mpeg",
    "audio/flac",
    "audio/ogg",
    "audio/webm",
    "audio/x-m4a",
    "audio/mp4",
)

# Smallest payload that can plausibly hold audio
MIN_AUDIO_BYTES = 100

_FILENAMES: dict[str, str] = {
    "audio/wav": "audio.wav",
    "audio/wave": "audio.wav",
    "audio/x-wav": "audio.wav",
    "audio/mp3": "audio.mp3",
    "audio/mpeg": "audio.mp3",
    "audio/mp4": "audio.mp4",
    "audio/x-m4a": "audio.m4a",
    "audio/flac": "audio.flac",
    "audio/ogg": "audio.ogg",
    "audio/webm": "audio.webm",
}

# Typical byte rates used for rough duration estimates
_BYTES_PER_SECOND: dict[str, int] = {
    "audio/wav": 176_400,  # 44.1kHz, 16-bit, stereo
    "audio/wave": 176_400,
    "audio/x-wav": 176_400,
    "audio/mp3": 16_000,  # 128kbps
    "audio/mpeg": 16_000,
    "audio/flac": 88_200,
    "audio/ogg": 16_000,
}


def is_supported_audio_type(mediatype: str | None) -> bool:
    return mediatype in SUPPORTED_AUDIO_TYPES


def is_audio_dialog(dialog: Mapping[str, Any]) -> bool:
    """Return True for recording dialogs whose media type is a known audio type."""
    return dialog.get("type") == "recording" and is_supported_audio_type(dialog.get("mediatype"))


def decode_base64url(data: str) -> bytes:
    """Decode base64url text, tolerating missing padding and standard alphabet."""
    normalized = data.strip().replace("+", "-").replace("/", "_").rstrip("=")
    padded = normalized + "=" * (-len(normalized) % 4)
    return base64.urlsafe_b64decode(padded)


def encode_base64url(data: bytes) -> str:
    """Encode bytes as unpadded base64url text."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def audio_format_for(mediatype: str) -> str:
    """Map a MIME type onto the container names understood by NVIDIA NIM.

    Unknown types fall back to ``"wav"``.
    """
    kind = mediatype.lower()
    if "wav" in kind:
        return "wav"
    if "mp3" in kind or "mpeg" in kind:
        return "mp3"
    if "flac" in kind:
        return "flac"
    if "ogg" in kind or "webm" in kind:
        return "ogg"
    return "wav"


def filename_for(mediatype: str) -> str:
    """File name to use for multipart uploads of ``mediatype``."""
    return _FILENAMES.get(mediatype, "audio.wav")


def estimate_audio_duration(size_bytes: int, mediatype: str) -> float:
    """Very rough duration estimate in seconds from payload size."""
    return size_bytes / _BYTES_PER_SECOND.get(mediatype, 16_000)


def validate_audio(audio: bytes, mediatype: str) -> str | None:
    """Return a problem description, or None when the payload looks usable."""
    if not is_supported_audio_type(mediatype):
        return f"Unsupported audio format: {mediatype}"
    if len(audio) < MIN_AUDIO_BYTES:
        return "Audio content too small, likely corrupted"
    return None
