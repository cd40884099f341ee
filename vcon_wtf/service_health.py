"""Health check routes for the API service."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from . import __version__
from .enricher import utc_timestamp
from .service_dependencies import RegistryDep
from .service_settings import SERVICE_NAME
from .transcription import check_health

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/health",
    summary="Health check",
    description="Check if the service is running and responsive",
    tags=["System"],
)
async def health_check() -> dict[str, str]:
    """
    Health check endpoint for service monitoring.

    Returns:
        Dictionary with status and timestamp.
    """
    return {"status": "ok", "timestamp": utc_timestamp()}


@router.get(
    "/health/live",
    summary="Liveness probe",
    description="Check if the service is alive and responsive (Kubernetes liveness probe)",
    tags=["System"],
    status_code=200,
)
async def health_liveness() -> JSONResponse:
    """
    Liveness probe for Kubernetes/orchestration systems.

    Performs no backend checks: returns 200 whenever the process is serving.
    """
    return JSONResponse(
        status_code=200,
        content={
            "status": "ok",
            "timestamp": utc_timestamp(),
            "service": SERVICE_NAME,
            "version": __version__,
        },
    )


@router.get(
    "/health/ready",
    summary="Readiness probe",
    description=(
        "Check if the default ASR backend is reachable "
        "(Kubernetes readiness probe, load balancer health check)"
    ),
    tags=["System"],
    responses={
        200: {"description": "Default backend is healthy"},
        503: {"description": "Default backend is degraded or unavailable"},
    },
)
async def health_readiness(registry: RegistryDep) -> JSONResponse:
    """
    Readiness probe for Kubernetes/orchestration systems and load balancers.

    Returns:
        - 200 with status "ok" when the default backend reports ok
        - 503 with status "degraded" otherwise
    """
    health = await check_health(registry)
    healthy = health.is_ok
    if not healthy:
        logger.warning(
            "Readiness check failed: %s is %s (%s)",
            health.provider,
            health.status,
            health.message,
            extra={"provider": health.provider, "health_status": health.status},
        )

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "ok" if healthy else "degraded",
            "timestamp": utc_timestamp(),
            "services": {health.provider: health.to_dict()},
        },
    )


@router.get(
    "/health/providers",
    summary="Backend health listing",
    description="Probe every configured ASR backend concurrently",
    tags=["System"],
)
async def health_providers(registry: RegistryDep) -> dict[str, Any]:
    """
    Health of every configured backend.

    Returns:
        Dictionary with the default backend id, the configured ids and one
        health entry per configured backend.
    """
    report = await registry.health_report()
    return {
        "default_provider": registry.default_provider,
        "configured": list(report),
        "providers": {name: health.to_dict() for name, health in report.items()},
    }
