from functools import lru_cache

from redis.asyncio import Redis

from bellwright.core.settings import settings


@lru_cache(maxsize=1)
def get_redis_client() -> Redis:
    """Shared client for lockouts and token revocation; closed on shutdown."""
    return Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_timeout=settings.data_call_timeout_seconds,
        socket_connect_timeout=settings.data_call_timeout_seconds,
        health_check_interval=30,
    )
