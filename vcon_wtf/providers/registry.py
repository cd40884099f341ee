"""Provider registry: resolves backend identifiers to cached instances.

One registry is built at startup from the process configuration and passed
by reference to whoever needs a backend. Instances are constructed lazily,
once, and are stateless afterwards, so readers never take the lock.
Clearing the cache only affects later lookups; callers that already hold an
instance keep using it.
"""

from __future__ import annotations

import asyncio
import logging
from threading import Lock

import httpx

from ..config import PROVIDER_IDS, ProviderSettings, ServerConfig
from ..exceptions import UnknownProviderError
from ..models import HealthStatus
from .base import BaseAsrProvider
from .deepgram import DeepgramAsrProvider
from .groq import GroqAsrProvider
from .local_whisper import LocalWhisperAsrProvider
from .mlx_whisper import MlxWhisperAsrProvider
from .nvidia import NvidiaAsrProvider
from .openai import OpenAIAsrProvider

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[str, type[BaseAsrProvider]] = {
    "nvidia": NvidiaAsrProvider,
    "openai": OpenAIAsrProvider,
    "deepgram": DeepgramAsrProvider,
    "groq": GroqAsrProvider,
    "local-whisper": LocalWhisperAsrProvider,
    "mlx-whisper": MlxWhisperAsrProvider,
}


def create_provider(
    provider: str,
    settings: ProviderSettings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> BaseAsrProvider:
    """Create a provider instance by identifier.

    Args:
        provider: One of ``PROVIDER_IDS``
        settings: Settings for that backend
        transport: Optional httpx transport shared by the instance

    Raises:
        UnknownProviderError: If ``provider`` is not a known backend.
    """
    try:
        cls = PROVIDER_CLASSES[provider]
    except KeyError:
        raise UnknownProviderError(provider) from None
    return cls(settings, transport=transport)


class ProviderRegistry:
    """
    Lazily-constructed, cached provider instances for one configuration.

    Example:
        >>> registry = ProviderRegistry(ServerConfig())
        >>> registry.get().provider
        'nvidia'
    """

    def __init__(
        self,
        config: ServerConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport
        self._instances: dict[str, BaseAsrProvider] = {}
        self._lock = Lock()

    @property
    def default_provider(self) -> str:
        return self.config.asr_provider

    def create(self, provider: str) -> BaseAsrProvider:
        """Build a fresh, uncached instance."""
        return create_provider(provider, self.config.provider_settings(provider), self._transport)

    def get(self, provider: str | None = None) -> BaseAsrProvider:
        """Return the cached instance for ``provider`` (default backend when None).

        Raises:
            UnknownProviderError: If the identifier is not a known backend.
        """
        name = provider or self.default_provider
        instance = self._instances.get(name)
        if instance is not None:
            return instance

        with self._lock:
            instance = self._instances.get(name)
            if instance is None:
                instance = self.create(name)
                self._instances[name] = instance
                logger.info("Created ASR provider instance: %s", name, extra={"provider": name})
        return instance

    def register(self, instance: BaseAsrProvider) -> None:
        """Install a pre-built instance under its own identifier."""
        with self._lock:
            self._instances[instance.provider] = instance

    def clear(self) -> None:
        """Drop every cached instance."""
        with self._lock:
            self._instances = {}

    def configured_provider_names(self) -> list[str]:
        """Identifiers of every backend whose credentials or endpoint are present."""
        return [name for name in PROVIDER_IDS if self.get(name).is_configured()]

    def available_providers(self) -> list[BaseAsrProvider]:
        return [self.get(name) for name in self.configured_provider_names()]

    async def health_report(self) -> dict[str, HealthStatus]:
        """Probe every configured backend concurrently."""
        providers = self.available_providers()
        statuses = await asyncio.gather(*(p.health_check() for p in providers))
        return {p.provider: status for p, status in zip(providers, statuses, strict=True)}
