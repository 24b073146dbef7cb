"""Health check endpoint."""

import time

from fastapi import APIRouter, Request

from uiforge.models.responses import HealthDependency, HealthResponse

router = APIRouter()

_start_time = time.time()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Service health with Redis status."""
    dependencies = {}

    redis = getattr(request.app.state, "redis", None)
    if redis is None:
        dependencies["redis"] = HealthDependency(status="unhealthy", message="not connected")
    else:
        try:
            start = time.time()
            await redis.ping()
            latency = (time.time() - start) * 1000
            dependencies["redis"] = HealthDependency(status="healthy", latency_ms=round(latency, 2))
        except Exception as e:
            dependencies["redis"] = HealthDependency(status="unhealthy", message=str(e))

    if all(d.status == "healthy" for d in dependencies.values()):
        status = "healthy"
    else:
        # Runs can still execute without Redis, they just cannot be looked up
        status = "degraded"

    return HealthResponse(
        status=status,
        uptime_seconds=round(time.time() - _start_time, 2),
        dependencies=dependencies,
    )
