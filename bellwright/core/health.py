"""Liveness and readiness probes for the database and Redis."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from bellwright.core.exceptions import ServiceError
from bellwright.core.settings import settings
from bellwright.db.session import engine
from bellwright.utils.redis_client import get_redis_client

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"


class NotReadyError(ServiceError):
    status_code = 503
    code = "not_ready"
    default_message = "Service is not ready"


async def _check_db() -> dict[str, Any]:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Database health check failed: %s", exc)
        return {"status": "error", "error": str(exc)}
    return {"status": "ok"}


async def _check_redis() -> dict[str, Any]:
    try:
        await get_redis_client().ping()
    except (RedisError, OSError) as exc:
        logger.warning("Redis health check failed: %s", exc)
        return {"status": "error", "error": str(exc)}
    return {"status": "ok"}


async def _timed(name: str, probe: Callable[[], Awaitable[dict[str, Any]]]) -> dict[str, Any]:
    started = time.perf_counter()
    try:
        result = await asyncio.wait_for(probe(), timeout=settings.data_call_timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning("%s health check timed out", name)
        result = {"status": "error", "error": "timed out"}
    return {**result, "latency_ms": round((time.perf_counter() - started) * 1000, 1)}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def live_payload() -> dict[str, Any]:
    return {"status": "ok", "version": APP_VERSION, "timestamp": _now()}


async def ready_payload() -> dict[str, Any]:
    names = ("database", "redis")
    results = await asyncio.gather(_timed("database", _check_db), _timed("redis", _check_redis))
    checks = dict(zip(names, results))
    ready = all(check["status"] == "ok" for check in checks.values())
    return {
        "status": "ok" if ready else "degraded",
        "ready": ready,
        "environment": settings.environment,
        "version": APP_VERSION,
        "timestamp": _now(),
        "checks": checks,
    }


async def require_ready() -> dict[str, Any]:
    payload = await ready_payload()
    if not payload["ready"]:
        raise NotReadyError(details=payload)
    return payload
