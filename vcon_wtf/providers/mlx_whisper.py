"""MLX Whisper sidecar for Apple Silicon hosts (OpenAI-compatible API)."""

from __future__ import annotations

from typing import ClassVar

from .local_whisper import LocalWhisperAsrProvider


class MlxWhisperAsrProvider(LocalWhisperAsrProvider):
    provider = "mlx-whisper"
    display_name = "MLX Whisper"

    health_paths: ClassVar[tuple[str, ...]] = ("/health", "/v1/models")
    transcription_paths: ClassVar[tuple[str, ...]] = ("/v1/audio/transcriptions",)
