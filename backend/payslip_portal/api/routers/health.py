"""Simple health and readiness endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request, status
from redis.exceptions import RedisError

from payslip_portal.core.config import get_settings

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["health"])

SERVICE_NAME = "payslip-portal"


@router.get("/live", summary="Liveness check")
async def live() -> dict[str, str]:
    """Indicates the dashboard process is running."""
    return {"status": "ok", "service": SERVICE_NAME}


@router.get("/ready", summary="Readiness check")
async def ready(request: Request) -> dict[str, Any]:
    """Check the list cache backend and report the configured payroll API.

    The payroll API itself is not checked; an outage there surfaces on the
    individual requests instead.
    """
    settings = get_settings()
    checks: dict[str, Any] = {
        "status": "ok",
        "service": SERVICE_NAME,
        "checks": {
            "payroll_api": {"status": "configured", "url": settings.api_base_url},
        },
    }

    try:
        request.app.state.redis.ping()
        checks["checks"]["redis"] = {
            "status": "healthy",
            "message": "Redis connection successful",
        }
    except RedisError as e:
        logger.error(f"Redis health check failed: {e}", exc_info=True)
        checks["checks"]["redis"] = {
            "status": "unhealthy",
            "message": f"Redis connection failed: {str(e)}",
        }
        checks["status"] = "unhealthy"
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=checks,
        )

    return checks
