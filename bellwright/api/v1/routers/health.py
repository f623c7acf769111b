from fastapi import APIRouter

from bellwright.core import health
from bellwright.core.limiter import limiter

router = APIRouter(tags=["health"])


@router.get("/health/live", summary="Process is up")
@limiter.exempt
async def health_live() -> dict:
    return await health.live_payload()


@router.get("/health/ready", summary="Database and Redis reachable; 503 otherwise")
@limiter.exempt
async def health_ready() -> dict:
    return await health.require_ready()


@router.get("/health", summary="Dependency report, always 200")
@limiter.exempt
async def read_health() -> dict:
    return await health.ready_payload()
