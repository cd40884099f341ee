"""
FastAPI service exposing vCon transcription over HTTP.

Example usage:
    # Start the service through the CLI (reads configuration from the environment)
    vcon-wtf serve --port 3000

    # Or directly with uvicorn's factory mode
    uvicorn vcon_wtf.service:create_app --factory --host 0.0.0.0 --port 3000

    # Using the API
    curl -X POST -H "Content-Type: application/json" --data @call.vcon.json \
        "http://localhost:3000/transcribe?provider=deepgram&language=en-US"
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .audio_extractor import AudioExtractor
from .config import ServerConfig
from .providers import ProviderRegistry
from .service_errors import register_exception_handlers
from .service_health import router as health_router
from .service_middleware import log_requests
from .service_settings import STATS_HEADERS
from .service_transcribe import router as transcribe_router

logger = logging.getLogger(__name__)


# =============================================================================
# FastAPI Application Setup
# =============================================================================


def create_app(
    config: ServerConfig | None = None,
    registry: ProviderRegistry | None = None,
    extractor: AudioExtractor | None = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        config: Server configuration (default: read from the environment)
        registry: Provider registry (default: built from ``config``)
        extractor: Audio extractor (default: built from ``config``)

    Raises:
        ConfigurationError: If ``config`` is omitted and the environment is invalid.
    """
    config = config or ServerConfig.from_env()
    registry = registry or ProviderRegistry(config)

    app = FastAPI(
        title="vCon WTF Transcription API",
        description=(
            "Transcribe the audio dialogs of vCon documents with a choice of ASR "
            "backends and attach the results as WTF (World Transcription Format) "
            "analysis entries."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.config = config
    app.state.registry = registry
    app.state.extractor = extractor or AudioExtractor.from_config(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=list(STATS_HEADERS),
    )
    app.middleware("http")(log_requests)
    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(transcribe_router)

    logger.info(
        "API configured: default provider %s, max vCon size %gMB",
        config.asr_provider,
        config.max_vcon_size_mb,
        extra={"provider": config.asr_provider, "max_vcon_size_mb": config.max_vcon_size_mb},
    )
    return app
