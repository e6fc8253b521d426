"""Health check endpoints for monitoring application status."""

from datetime import datetime
from datetime import timezone

from fastapi import APIRouter
from fastapi import Request
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

ROUTER_HEALTH = APIRouter(tags=["Health"])

SERVICE_NAME = "Identity Sync Admin API"


@ROUTER_HEALTH.get(
    "/health",
    summary="Health check endpoint",
    description="Basic health check that returns application status and metadata",
    responses={
        status.HTTP_200_OK: {
            "description": "Application is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "timestamp": "2026-01-05T12:00:00.000000Z",
                        "service": SERVICE_NAME,
                        "version": "v1",
                        "enterprise_build": False,
                    }
                }
            },
        }
    },
)
async def health_check(request: Request):
    """
    Basic health check endpoint.

    Lightweight: does not call the directory gateway or the database.
    """
    settings = request.app.state.settings

    response_data = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
        "version": "v1",
        "enterprise_build": settings.enterprise_build,
    }

    logger.debug("Health check requested", status="healthy")

    return JSONResponse(status_code=status.HTTP_200_OK, content=response_data)


@ROUTER_HEALTH.get("/health/live", summary="Liveness probe")
async def liveness_check():
    """Liveness probe: the process is up and serving requests."""
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"status": "alive", "timestamp": datetime.now(timezone.utc).isoformat()},
    )


@ROUTER_HEALTH.get(
    "/health/ready",
    summary="Readiness probe",
    responses={
        status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "A required dependency is not ready"},
    },
)
async def readiness_check(request: Request):
    """
    Readiness probe.

    Checks that settings are present and, when PostgreSQL storage is configured, that
    the database answers. The directory gateway is not required for readiness: its
    failures are reported per operation.
    """
    settings = request.app.state.settings
    checks = {"settings": "ok", "database": "not_configured"}
    error = None

    if not settings.directory_url:
        checks["settings"] = "failed"
        error = "Directory URL is not configured"

    db_pool = getattr(request.app.state, "domain_db_pool", None)
    if db_pool is not None:
        if await db_pool.health_check():
            checks["database"] = "ok"
        else:
            checks["database"] = "failed"
            error = error or "Database is not reachable"

    response_data = {
        "status": "ready" if error is None else "not_ready",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
        "checks": checks,
    }
    if error:
        response_data["error"] = error
        logger.warning("Readiness check failed", checks=checks, error=error)

    return JSONResponse(
        status_code=status.HTTP_200_OK if error is None else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response_data,
    )
