"""
Health Check Endpoint

Liveness probe for the load balancer / Lambda URL.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from stripe_sevdesk.config import settings
from stripe_sevdesk.monitoring import sentry_enabled

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if application is running.
    """
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": settings.app_version,
            "environment": settings.environment,
            "error_reporting": sentry_enabled(),
        },
    )
