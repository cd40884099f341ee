"""Groq backend: Whisper models behind an OpenAI-compatible API."""

from __future__ import annotations

from .openai import OpenAIAsrProvider

GROQ_BASE_URL = "https://api.groq.com/openai/v1"


class GroqAsrProvider(OpenAIAsrProvider):
    provider = "groq"
    display_name = "Groq"
    default_base_url = GROQ_BASE_URL
