"""Health check endpoints for load balancers and monitoring."""

from datetime import datetime, timezone

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from beautydesk.config import settings
from beautydesk.errors import StorageError

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Lightweight health check (no storage or platform check)."""
    return {
        "status": "ok",
        "service": "BeautyDesk Console",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
    }


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness check: durable storage must answer a read."""
    checks = {"service": "ok", "storage": "unknown"}
    overall_healthy = True

    try:
        await request.app.state.storage.ping()
        checks["storage"] = "ok"
    except StorageError as e:
        checks["storage"] = f"error: {e.message[:100]}"
        overall_healthy = False

    return JSONResponse(
        status_code=status.HTTP_200_OK if overall_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "ready" if overall_healthy else "not_ready", "checks": checks},
    )
