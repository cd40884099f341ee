"""
Pytest configuration and shared fixtures for vcon-wtf tests.

Backends are exercised through ``httpx.MockTransport`` so no test touches
the network. ``nim_transport`` stands in for an NVIDIA NIM service and
records every request it receives.
"""

from __future__ import annotations

import asyncio
import copy
import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from vcon_wtf.audio import encode_base64url
from vcon_wtf.config import ServerConfig
from vcon_wtf.providers import ProviderRegistry

VCON_UUID = "018f4f6e-8d1c-7c3a-9b2e-4a5d6c7e8f90"
CREATED_AT = "2024-05-01T12:00:00Z"

NIM_RESPONSE: dict[str, Any] = {
    "text": "Hello world. How are you?",
    "language": "en-US",
    "duration": 3.5,
    "confidence": 0.92,
    "segments": [
        {
            "text": "Hello world.",
            "start_time": 0.0,
            "end_time": 1.5,
            "confidence": 0.95,
            "speaker": "0",
            "words": [
                {"word": "Hello", "start_time": 0.0, "end_time": 0.5, "confidence": 0.96},
                {"word": "world.", "start_time": 0.6, "end_time": 1.5, "confidence": 0.94},
            ],
        },
        {
            "text": "How are you?",
            "start_time": 2.0,
            "end_time": 3.5,
            "confidence": 0.89,
            "speaker": "1",
            "words": [
                {"word": "How", "start_time": 2.0, "end_time": 2.3, "confidence": 0.9},
                {"word": "are", "start_time": 2.4, "end_time": 2.7, "confidence": 0.88},
                {"word": "you?", "start_time": 2.8, "end_time": 3.5, "confidence": 0.89},
            ],
        },
    ],
}


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    def json_bodies(self, path: str) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.url.path == path]


def _nim_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/v1/health":
        return httpx.Response(200, json={"status": "ok", "version": "1.2.0"})
    if request.url.path == "/v1/asr/transcribe":
        return httpx.Response(200, json=NIM_RESPONSE)
    return httpx.Response(404, text="not found")


@pytest.fixture
def audio_bytes() -> bytes:
    """A WAV-looking payload comfortably above the minimum audio size."""
    return b"RIFF" + b"\x00" * 2044


@pytest.fixture
def make_dialog(audio_bytes: bytes) -> Callable[..., dict[str, Any]]:
    """Factory for inline base64url recording dialogs."""

    def _make(audio: bytes | None = None, mediatype: str = "audio/wav", **extra: Any):
        dialog: dict[str, Any] = {
            "type": "recording",
            "start": CREATED_AT,
            "parties": [0, 1],
            "mediatype": mediatype,
            "body": encode_base64url(audio if audio is not None else audio_bytes),
            "encoding": "base64url",
            "duration": 12.5,
        }
        dialog.update(extra)
        return dialog

    return _make


@pytest.fixture
def make_vcon(make_dialog: Callable[..., dict[str, Any]]) -> Callable[..., dict[str, Any]]:
    """Factory for minimal valid vCon documents (one audio dialog by default)."""

    def _make(dialogs: list[dict[str, Any]] | None = None, **extra: Any) -> dict[str, Any]:
        document: dict[str, Any] = {
            "vcon": "0.0.1",
            "uuid": VCON_UUID,
            "created_at": CREATED_AT,
            "parties": [
                {"tel": "+15551234567", "name": "Alice", "role": "agent"},
                {"tel": "+15557654321", "role": "customer"},
            ],
            "dialog": [make_dialog()] if dialogs is None else dialogs,
        }
        document.update(extra)
        return document

    return _make


@pytest.fixture
def sample_vcon(make_vcon: Callable[..., dict[str, Any]]) -> dict[str, Any]:
    return make_vcon()


@pytest.fixture
def nim_transport() -> RecordingTransport:
    """Fake NVIDIA NIM service answering health and transcription calls."""
    return RecordingTransport(_nim_handler)


@pytest.fixture
def config() -> ServerConfig:
    return ServerConfig()


@pytest.fixture
def registry(config: ServerConfig, nim_transport: RecordingTransport) -> ProviderRegistry:
    return ProviderRegistry(config, transport=nim_transport)


@pytest.fixture
def nim_response() -> dict[str, Any]:
    return copy.deepcopy(NIM_RESPONSE)


@pytest.fixture
def make_transport() -> Callable[[Callable[[httpx.Request], httpx.Response]], RecordingTransport]:
    """Factory wrapping a request handler in a recording MockTransport."""
    return RecordingTransport


def _rendezvous_handler(expected: int, payload: dict[str, Any], timeout: float = 2.0):
    """
    Async handler that holds each request until ``expected`` requests are in flight.

    Requests sent one after another never reach the count, so the first one
    times out and the call fails.
    """
    arrived = 0
    all_in = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal arrived
        arrived += 1
        if arrived >= expected:
            all_in.set()
        await asyncio.wait_for(all_in.wait(), timeout)
        return httpx.Response(200, json=payload)

    return handler


@pytest.fixture
def rendezvous_handler() -> Callable[..., Callable[[httpx.Request], Any]]:
    """Factory for handlers that only answer once every request has arrived."""
    return _rendezvous_handler
