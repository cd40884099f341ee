"""ASR backends and the registry that resolves them by identifier."""

from ..config import PROVIDER_IDS
from .base import BaseAsrProvider
from .deepgram import DeepgramAsrProvider
from .groq import GroqAsrProvider
from .local_whisper import LocalWhisperAsrProvider
from .mlx_whisper import MlxWhisperAsrProvider
from .nvidia import NvidiaAsrProvider
from .openai import OpenAIAsrProvider
from .registry import PROVIDER_CLASSES, ProviderRegistry, create_provider

__all__ = [
    "PROVIDER_CLASSES",
    "PROVIDER_IDS",
    "BaseAsrProvider",
    "DeepgramAsrProvider",
    "GroqAsrProvider",
    "LocalWhisperAsrProvider",
    "MlxWhisperAsrProvider",
    "NvidiaAsrProvider",
    "OpenAIAsrProvider",
    "ProviderRegistry",
    "create_provider",
]
