"""Health check endpoints for monitoring application status."""

import asyncio
from datetime import datetime
from datetime import timezone

from fastapi import APIRouter
from fastapi import Request
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

from nexus_api.events.publisher import QueueEventPublisher

ROUTER_HEALTH = APIRouter(tags=["Health"])


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
                        "service": "Freelance Nexus Project Service",
                        "version": "v1",
                    }
                }
            },
        }
    },
)
async def health_check(request: Request):
    """
    Basic health check endpoint.

    Lightweight: no dependency checks. Used by load balancers and uptime monitors.
    """
    settings = request.app.state.settings

    response_data = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.service_name,
        "version": request.app.version,
        "database_configured": bool(settings.database_url),
        "ai_enabled": request.app.state.ai_service.enabled,
    }

    logger.debug("Health check requested", status="healthy")

    return JSONResponse(status_code=status.HTTP_200_OK, content=response_data)


@ROUTER_HEALTH.get("/health/live", summary="Liveness probe")
async def liveness():
    """The process is up and serving requests."""
    return {"status": "alive", "timestamp": datetime.now(timezone.utc).isoformat()}


@ROUTER_HEALTH.get(
    "/health/ready",
    summary="Readiness probe",
    responses={
        status.HTTP_200_OK: {"description": "Dependencies are reachable"},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "Database is configured but unreachable"},
    },
)
async def readiness(request: Request):
    """
    Readiness probe.

    Checks the database pool when one is configured and reports the pending event count
    and, with a broker configured, the approximate depth of each event queue.
    """
    checks = {}
    ready = True

    db_pool = getattr(request.app.state, "db_pool", None)
    if db_pool is not None:
        db_ok = await db_pool.health_check()
        checks["database"] = "ok" if db_ok else "unavailable"
        ready = ready and db_ok
    else:
        checks["database"] = "not_configured"

    publisher = request.app.state.event_publisher
    checks["pending_events"] = publisher.pending_count
    if isinstance(publisher, QueueEventPublisher):
        checks["queue_depth"] = {
            queue.queue_name: await asyncio.to_thread(queue.get_queue_length) for queue in publisher.queues.values()
        }

    if not ready:
        logger.warning("Readiness check failed", checks=checks)

    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "not_ready",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": request.app.state.settings.service_name,
            "checks": checks,
        },
    )
