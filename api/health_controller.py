"""
Health and information endpoints for the Medical Document Explainer
"""
import logging
import time
from dataclasses import asdict
from fastapi import APIRouter, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from config import settings
from utils.health_check import PROCESS_STARTED_AT, HealthStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Import dependencies
from api.dependencies import GatewayAvailabilityDep, HealthCheckerDep


def _timestamp() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


@router.get("/health", summary="Basic health check")
async def health_check():
    """The process is up and serving requests"""
    return {
        "status": "healthy",
        "message": f"{settings.app_name} is running",
        "version": settings.app_version,
        "timestamp": _timestamp()
    }


@router.get(
    "/health/detailed",
    summary="Component health",
    description="AI Gateway credential, current session and PDF extraction; 503 when any is unhealthy"
)
async def detailed_health_check(checker: HealthCheckerDep = None):
    system_health = checker.check_system_health(include_details=True)
    if system_health.status is not HealthStatus.HEALTHY:
        logger.warning(f"Health check: {system_health.message}")

    # Degraded (a document with transform errors) still serves requests
    status_code = (
        status.HTTP_503_SERVICE_UNAVAILABLE
        if system_health.status is HealthStatus.UNHEALTHY
        else status.HTTP_200_OK
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(asdict(system_health)))


@router.get("/health/ready", summary="Readiness check")
async def readiness_check(availability: GatewayAvailabilityDep = None):
    """Ready once the AI Gateway credential is configured"""
    if not availability.available:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "message": availability.reason, "timestamp": _timestamp()}
        )

    return {"status": "ready", "message": "Documents can be processed", "timestamp": _timestamp()}


@router.get("/health/live", summary="Liveness check")
async def liveness_check():
    return {
        "status": "alive",
        "uptime_seconds": int(time.time() - PROCESS_STARTED_AT),
        "timestamp": _timestamp()
    }


@router.get("/info", summary="Application information")
async def application_info():
    """Version and the settings that shape the explainer's output"""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "debug": settings.debug,
        "configuration": {
            "max_file_size_mb": settings.max_file_size_mb,
            "llm_model": settings.llm_model,
            "web_search_enabled": settings.enable_web_search,
            "print_delay_ms": settings.print_delay_ms,
            "log_level": settings.log_level
        },
        "timestamp": _timestamp()
    }
