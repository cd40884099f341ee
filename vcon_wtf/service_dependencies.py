"""FastAPI dependencies resolving the objects ``create_app`` stores on app state."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from .audio_extractor import AudioExtractor
from .config import ServerConfig
from .providers import ProviderRegistry


def get_config(request: Request) -> ServerConfig:
    return request.app.state.config


def get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.registry


def get_extractor(request: Request) -> AudioExtractor:
    return request.app.state.extractor


ConfigDep = Annotated[ServerConfig, Depends(get_config)]
RegistryDep = Annotated[ProviderRegistry, Depends(get_registry)]
ExtractorDep = Annotated[AudioExtractor, Depends(get_extractor)]
