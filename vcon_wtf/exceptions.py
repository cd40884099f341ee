"""Custom exception classes for vcon-wtf."""

from __future__ import annotations


class WtfServerError(Exception):
    """Base error for this library."""


class ConfigurationError(WtfServerError):
    """Raised when configuration is invalid or a provider cannot be used."""


class UnknownProviderError(ConfigurationError):
    """Raised when a provider identifier is not registered."""

    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(f"Unknown ASR provider: {provider}")


class ProviderError(WtfServerError):
    """Raised when an ASR backend call fails.

    Attributes:
        provider: Identifier of the backend that failed
        status_code: HTTP status returned by the backend, if any
    """

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)


class ProviderNotConfiguredError(ProviderError):
    """Raised when a backend is used without the credentials it requires."""

    def __init__(self, provider: str, message: str | None = None) -> None:
        super().__init__(provider, message or f"ASR provider '{provider}' is not configured")


class AudioExtractionError(WtfServerError):
    """Raised when audio bytes cannot be obtained from a dialog."""
