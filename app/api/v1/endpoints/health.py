"""
Health check endpoints.

- /health       - status, environment and database reachability
- /health/ready - readiness (database reachable)
"""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from datetime import datetime
from typing import Dict, Any
import time

from app.core.config import settings
from app.core.logging_config import logger


router = APIRouter(prefix="/health", tags=["Health Checks"])


async def check_database(request: Request) -> Dict[str, Any]:
    """Check database connectivity"""
    start = time.time()
    database = getattr(request.app.state, "database", None)
    if database is None:
        return {"status": "unhealthy", "connection": "not_configured"}

    try:
        await database.ping()
        return {
            "status": "healthy",
            "connection": "ok",
            "latency_ms": round((time.time() - start) * 1000, 2),
        }
    except Exception as e:
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return {
            "status": "unhealthy",
            "connection": "failed",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "error": str(e),
        }


@router.get("")
async def health(request: Request):
    """Service status with environment and database reachability"""
    database = await check_database(request)
    return {
        "status": "healthy" if database["status"] == "healthy" else "degraded",
        "environment": settings.ENVIRONMENT,
        "database": database["connection"],
        "service": settings.APP_NAME,
        "version": settings.API_VERSION,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/ready")
async def readiness(request: Request):
    """Readiness check; 503 until the database answers"""
    database = await check_database(request)
    healthy = database["status"] == "healthy"
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if healthy else "not_ready",
            "checks": {"database": database},
            "timestamp": datetime.utcnow().isoformat(),
        },
    )
