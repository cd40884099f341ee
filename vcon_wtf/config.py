"""
Configuration for the vcon-wtf service.

Settings are read from environment variables once at startup and then passed
by reference to the components that need them. All invalid values are
collected before raising so an operator sees every problem at once.

Environment variables:
    HOST, PORT, LOG_LEVEL
    ASR_PROVIDER                      default backend id
    NIM_ASR_URL, NIM_API_KEY, NIM_DEFAULT_MODEL, NIM_TIMEOUT_MS
    OPENAI_API_KEY, OPENAI_BASE_URL, OPENAI_MODEL, OPENAI_TIMEOUT_MS
    DEEPGRAM_API_KEY, DEEPGRAM_MODEL, DEEPGRAM_TIMEOUT_MS
    GROQ_API_KEY, GROQ_MODEL, GROQ_TIMEOUT_MS
    LOCAL_WHISPER_URL, LOCAL_WHISPER_MODEL, LOCAL_WHISPER_TIMEOUT_MS
    MLX_WHISPER_URL, MLX_WHISPER_MODEL, MLX_WHISPER_TIMEOUT_MS
    MAX_AUDIO_SIZE_MB, MAX_VCON_SIZE_MB
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

from .exceptions import ConfigurationError, UnknownProviderError

PROVIDER_IDS: tuple[str, ...] = (
    "nvidia",
    "openai",
    "deepgram",
    "groq",
    "local-whisper",
    "mlx-whisper",
)

NIM_MODELS: tuple[str, ...] = (
    "parakeet-ctc-1.1b",
    "parakeet-ctc-0.6b",
    "parakeet-rnnt-1.1b",
    "parakeet-rnnt-0.6b",
    "parakeet-tdt-1.1b",
    "parakeet-tdt-0.6b",
    "canary-1b",
    "canary-0.6b",
)
OPENAI_MODELS: tuple[str, ...] = ("whisper-1",)
DEEPGRAM_MODELS: tuple[str, ...] = ("nova-2", "nova", "enhanced", "base")
GROQ_MODELS: tuple[str, ...] = (
    "whisper-large-v3",
    "whisper-large-v3-turbo",
    "distil-whisper-large-v3-en",
)

LOG_LEVELS: tuple[str, ...] = ("debug", "info", "warning", "warn", "error", "critical")

DEFAULT_TIMEOUT_MS = 300_000
LOCAL_TIMEOUT_MS = 600_000


@dataclass(slots=True)
class ProviderSettings:
    """Endpoint, credential, model and timeout for one ASR backend."""

    model: str
    base_url: str | None = None
    api_key: str | None = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000

    def to_dict(self) -> dict[str, Any]:
        """Serialize without exposing the credential."""
        return {
            "model": self.model,
            "base_url": self.base_url,
            "api_key_set": bool(self.api_key),
            "timeout_ms": self.timeout_ms,
        }


def default_provider_settings() -> dict[str, ProviderSettings]:
    """Return settings for every backend with its built-in defaults."""
    return {
        "nvidia": ProviderSettings(
            model="parakeet-tdt-1.1b",
            base_url="http://localhost:9000",
        ),
        "openai": ProviderSettings(model="whisper-1"),
        "deepgram": ProviderSettings(model="nova-2"),
        "groq": ProviderSettings(model="whisper-large-v3-turbo"),
        "local-whisper": ProviderSettings(
            model="base",
            base_url="http://localhost:9001",
            timeout_ms=LOCAL_TIMEOUT_MS,
        ),
        "mlx-whisper": ProviderSettings(
            model="mlx-community/whisper-turbo",
            base_url="http://localhost:8000",
            timeout_ms=LOCAL_TIMEOUT_MS,
        ),
    }


# Environment prefix and model whitelist per backend
_PROVIDER_ENV: dict[str, tuple[str, str, tuple[str, ...] | None]] = {
    # provider id: (prefix, url variable suffix, allowed models)
    "nvidia": ("NIM", "ASR_URL", NIM_MODELS),
    "openai": ("OPENAI", "BASE_URL", OPENAI_MODELS),
    "deepgram": ("DEEPGRAM", "", DEEPGRAM_MODELS),
    "groq": ("GROQ", "", GROQ_MODELS),
    "local-whisper": ("LOCAL_WHISPER", "URL", None),
    "mlx-whisper": ("MLX_WHISPER", "URL", None),
}


@dataclass
class ServerConfig:
    """
    Process-wide configuration.

    Attributes:
        host: Interface the HTTP server binds to
        port: Port the HTTP server listens on
        log_level: Logging level name
        asr_provider: Backend used when a request does not name one
        providers: Per-backend settings keyed by provider id
        max_audio_size_mb: Largest audio payload accepted per dialog
        max_vcon_size_mb: Largest request body accepted by the service
    """

    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "info"
    asr_provider: str = "nvidia"
    providers: dict[str, ProviderSettings] = field(default_factory=default_provider_settings)
    max_audio_size_mb: float = 100
    max_vcon_size_mb: float = 200

    @property
    def max_audio_size_bytes(self) -> int:
        return int(self.max_audio_size_mb * 1024 * 1024)

    @property
    def max_vcon_size_bytes(self) -> int:
        return int(self.max_vcon_size_mb * 1024 * 1024)

    def provider_settings(self, provider: str) -> ProviderSettings:
        """Return the settings for ``provider``.

        Raises:
            UnknownProviderError: If the provider id is not known.
        """
        try:
            return self.providers[provider]
        except KeyError:
            raise UnknownProviderError(provider) from None

    def validate(self) -> list[str]:
        """Return a list of ``"field: message"`` problems, empty when valid."""
        errors: list[str] = []
        if not 0 < self.port < 65536:
            errors.append("port: must be between 1 and 65535")
        if self.log_level.lower() not in LOG_LEVELS:
            errors.append(f"log_level: must be one of {', '.join(LOG_LEVELS)}")
        if self.asr_provider not in PROVIDER_IDS:
            errors.append(f"asr_provider: must be one of {', '.join(PROVIDER_IDS)}")
        if self.max_audio_size_mb <= 0:
            errors.append("max_audio_size_mb: must be positive")
        if self.max_vcon_size_mb <= 0:
            errors.append("max_vcon_size_mb: must be positive")

        for provider, settings in self.providers.items():
            allowed = _PROVIDER_ENV.get(provider, ("", "", None))[2]
            if allowed is not None and settings.model not in allowed:
                errors.append(f"{provider}.model: must be one of {', '.join(allowed)}")
            if settings.timeout_ms <= 0:
                errors.append(f"{provider}.timeout_ms: must be positive")
            if settings.base_url is not None and not _is_url(settings.base_url):
                errors.append(f"{provider}.base_url: invalid url")
        return errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "log_level": self.log_level,
            "asr_provider": self.asr_provider,
            "providers": {name: s.to_dict() for name, s in self.providers.items()},
            "max_audio_size_mb": self.max_audio_size_mb,
            "max_vcon_size_mb": self.max_vcon_size_mb,
        }

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ServerConfig:
        """
        Load configuration from environment variables.

        Args:
            environ: Mapping to read from (default: ``os.environ``)

        Returns:
            ServerConfig populated from the environment, defaults elsewhere.

        Raises:
            ConfigurationError: If any variable holds an invalid value. The
                message lists every problem, one per line.
        """
        env = os.environ if environ is None else environ
        errors: list[str] = []

        def _get(name: str) -> str | None:
            value = env.get(name)
            if value is None or value.strip() == "":
                return None
            return value.strip()

        def _number(name: str, default: float, kind: type = int) -> Any:
            raw = _get(name)
            if raw is None:
                return default
            try:
                return kind(raw)
            except ValueError:
                errors.append(f"{name}: expected {kind.__name__}, got {raw!r}")
                return default

        providers = default_provider_settings()
        for provider, (prefix, url_suffix, _allowed) in _PROVIDER_ENV.items():
            settings = providers[provider]
            if url_suffix:
                settings.base_url = _get(f"{prefix}_{url_suffix}") or settings.base_url
            settings.api_key = _get(f"{prefix}_API_KEY")
            model_var = "NIM_DEFAULT_MODEL" if provider == "nvidia" else f"{prefix}_MODEL"
            settings.model = _get(model_var) or settings.model
            settings.timeout_ms = _number(f"{prefix}_TIMEOUT_MS", settings.timeout_ms)

        config = cls(
            host=_get("HOST") or "0.0.0.0",
            port=_number("PORT", 3000),
            log_level=(_get("LOG_LEVEL") or "info").lower(),
            asr_provider=_get("ASR_PROVIDER") or "nvidia",
            providers=providers,
            max_audio_size_mb=_number("MAX_AUDIO_SIZE_MB", 100, float),
            max_vcon_size_mb=_number("MAX_VCON_SIZE_MB", 200, float),
        )

        errors.extend(config.validate())
        if errors:
            raise ConfigurationError(
                "Invalid configuration:\n" + "\n".join(f"  {e}" for e in errors)
            )
        return config


def _is_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
