"""Liveness, readiness and service description endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from ..core.config import settings
from ..core.observability import SERVICE_NAME
from ..schemas.health import HealthResponse, HealthStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

API_VERSION = "1.0.0"


@router.get("/health", summary="Health Check")
async def health_check() -> dict:
    """Return service status without touching the database."""
    return {
        "status": HealthStatus.HEALTHY.value,
        "service": SERVICE_NAME,
        "version": API_VERSION,
        "environment": settings.environment,
        "debug": settings.debug,
    }


@router.get("/ready", summary="Readiness Check")
async def readiness_check(request: Request) -> JSONResponse:
    """Report whether the database answers a trivial query."""
    database = getattr(request.app.state, "database", None)
    database_status = "unavailable"
    if database is not None:
        try:
            async with database.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            database_status = "ok"
        except Exception as e:
            logger.warning(f"Readiness check failed: {e}")

    ready = database_status == "ok"
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "not_ready",
            "service": SERVICE_NAME,
            "checks": {"database": database_status},
        },
    )


@router.get("/info", tags=["Info"], summary="Service Information")
async def service_info() -> dict:
    """Describe the service, its features and where to find them."""
    return {
        "service": SERVICE_NAME,
        "version": API_VERSION,
        "environment": settings.environment,
        "features": {
            "admin_session": True,
            "spreadsheet_import": True,
            "spreadsheet_export": True,
            "image_upload": True,
            "problem_details": True,
        },
        "endpoints": {
            "catalog": "/v1/tours",
            "search": "/v1/tours/search",
            "admin": "/v1/admin/tours",
            "metrics": "/metrics",
            "docs": "/docs" if settings.debug else None,
        },
    }


@router.post("/v1/health/ping", response_model=HealthResponse)
async def health_ping() -> JSONResponse:
    """Liveness ping returning status and server time."""
    response_data = HealthResponse(
        status=HealthStatus.HEALTHY,
        service=SERVICE_NAME,
        environment=settings.environment,
        timestamp=datetime.now(timezone.utc),
        version=API_VERSION,
    )

    logger.debug("Health ping", extra={"timestamp": response_data.timestamp.isoformat()})

    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
