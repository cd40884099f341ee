"""Base class shared by every ASR backend.

A backend supplies three pieces: the request it sends
(``_request_transcription``), the translation of the native response into a
:class:`TranscribeResult` (``parse_response``) and a lightweight probe
(``_check_health_impl``). This class wraps them with timing, logging, the
httpx client and the error contract:

- ``transcribe`` raises :class:`ProviderError` for every failure
- ``health_check`` never raises
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, ClassVar

import httpx

from ..config import ProviderSettings
from ..exceptions import ProviderError, ProviderNotConfiguredError
from ..models import HealthStatus, TranscribeRequest, TranscribeResult

logger = logging.getLogger(__name__)

HEALTH_TIMEOUT_S = 10.0

# Longest slice of an error body carried into exception messages
_ERROR_BODY_LIMIT = 500


def primary_language(tag: str | None) -> str | None:
    """Reduce a BCP-47 tag such as ``en-US`` to its primary subtag."""
    if not tag:
        return None
    return tag.split("-")[0]


def mean(values: Sequence[float]) -> float | None:
    if not values:
        return None
    return sum(values) / len(values)


def unit_interval(value: float | None) -> float:
    """Clamp a reported confidence into [0, 1]; missing values become 0."""
    if value is None:
        return 0.0
    return min(max(float(value), 0.0), 1.0)


class BaseAsrProvider(ABC):
    """
    Abstract ASR backend.

    Args:
        settings: Endpoint, credential, model and timeout for this backend
        transport: Optional httpx transport used for every request
            (tests pass ``httpx.MockTransport``)
    """

    provider: ClassVar[str]
    display_name: ClassVar[str]
    not_configured_message: ClassVar[str] = "API key not configured"

    def __init__(
        self,
        settings: ProviderSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._transport = transport

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"

    @property
    def model(self) -> str:
        return self.settings.model

    @property
    def timeout_s(self) -> float:
        return self.settings.timeout_s

    def is_configured(self) -> bool:
        """Whether the backend has the credentials or endpoint it needs."""
        return bool(self.settings.api_key)

    def _auth_headers(self) -> dict[str, str]:
        return {}

    def _client(self, timeout: float | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout_s if timeout is None else timeout,
            transport=self._transport,
            headers=self._auth_headers(),
        )

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        body = response.text[:_ERROR_BODY_LIMIT]
        raise ProviderError(
            self.provider,
            f"{self.display_name} returned {response.status_code}: {body}",
            status_code=response.status_code,
        )

    def _unavailable(self, message: str) -> HealthStatus:
        return HealthStatus(status="unavailable", provider=self.provider, message=message)

    async def _probe(self, client: httpx.AsyncClient, url: str) -> HealthStatus:
        """GET ``url`` and map 200 to ok, anything else to unavailable."""
        response = await client.get(url)
        if response.status_code == 200:
            return HealthStatus(status="ok", provider=self.provider, model=self.model)
        return self._unavailable(f"HTTP {response.status_code}")

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------

    @abstractmethod
    async def _check_health_impl(self) -> HealthStatus:
        """Probe the backend. May raise; :meth:`health_check` converts errors."""

    @abstractmethod
    async def _request_transcription(
        self, client: httpx.AsyncClient, request: TranscribeRequest, model: str
    ) -> dict[str, Any]:
        """Send one transcription request and return the decoded JSON body."""

    @abstractmethod
    def parse_response(
        self, data: dict[str, Any], model: str, processing_time_ms: float
    ) -> TranscribeResult:
        """Translate the native response into a provider-neutral result."""

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def health_check(self) -> HealthStatus:
        """Check backend availability. Never raises."""
        if not self.is_configured():
            return self._unavailable(self.not_configured_message)
        try:
            return await self._check_health_impl()
        except Exception as e:
            logger.error(
                "%s health check failed: %s",
                self.display_name,
                e,
                extra={"provider": self.provider},
            )
            return self._unavailable(str(e) or type(e).__name__)

    async def transcribe(self, request: TranscribeRequest) -> TranscribeResult:
        """
        Transcribe one audio payload.

        Raises:
            ProviderNotConfiguredError: If credentials are missing.
            ProviderError: On non-2xx responses, transport failures, timeouts
                and responses that cannot be parsed.
        """
        if not self.is_configured():
            raise ProviderNotConfiguredError(self.provider)

        model = request.model or self.model
        start = time.perf_counter()
        logger.info(
            "Starting %s transcription (%d bytes, model=%s)",
            self.display_name,
            len(request.audio),
            model,
            extra={
                "provider": self.provider,
                "model": model,
                "audio_size": len(request.audio),
                "language": request.effective_language,
            },
        )

        try:
            async with self._client() as client:
                data = await self._request_transcription(client, request, model)
            processing_time_ms = (time.perf_counter() - start) * 1000
            result = self.parse_response(data, model, processing_time_ms)
        except ProviderError as e:
            self._log_failure(e)
            raise
        except httpx.TimeoutException as e:
            error = ProviderError(
                self.provider,
                f"{self.display_name} request timed out after {self.settings.timeout_ms} ms",
            )
            self._log_failure(error)
            raise error from e
        except httpx.HTTPError as e:
            error = ProviderError(self.provider, f"{self.display_name} request failed: {e}")
            self._log_failure(error)
            raise error from e
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            error = ProviderError(
                self.provider, f"{self.display_name} returned a malformed response: {e}"
            )
            self._log_failure(error)
            raise error from e

        logger.info(
            "%s transcription completed in %.0f ms (%d chars)",
            self.display_name,
            result.processing_time_ms,
            len(result.text),
            extra={
                "provider": self.provider,
                "duration": result.duration,
                "processing_time_ms": result.processing_time_ms,
                "text_length": len(result.text),
            },
        )
        return result

    async def transcribe_batch(
        self,
        requests: Sequence[TranscribeRequest],
        *,
        return_exceptions: bool = False,
    ) -> list[TranscribeResult | ProviderError]:
        """
        Transcribe several payloads concurrently.

        Results are index-aligned with ``requests``. By default the first
        failure propagates; with ``return_exceptions=True`` a failed slot holds
        its :class:`ProviderError` instead and the other calls are unaffected.
        """
        start = time.perf_counter()
        logger.info(
            "Starting %s batch transcription of %d request(s)",
            self.display_name,
            len(requests),
            extra={"provider": self.provider, "batch_size": len(requests)},
        )

        results = await asyncio.gather(
            *(self.transcribe(req) for req in requests),
            return_exceptions=return_exceptions,
        )
        for item in results:
            # Only backend failures are captured; anything else is a bug
            if isinstance(item, BaseException) and not isinstance(item, ProviderError):
                raise item

        total_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s batch transcription completed in %.0f ms",
            self.display_name,
            total_ms,
            extra={
                "provider": self.provider,
                "batch_size": len(requests),
                "total_time_ms": total_ms,
                "failed": sum(isinstance(r, ProviderError) for r in results),
            },
        )
        return list(results)

    def _log_failure(self, error: ProviderError) -> None:
        logger.error(
            "%s transcription failed: %s",
            self.display_name,
            error,
            extra={"provider": self.provider, "status_code": error.status_code},
        )
