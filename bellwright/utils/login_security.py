"""Redis-backed sign-in lockout and session revocation list.

Redis being unavailable disables the counters, never the credential checks
themselves.
"""

import logging
from datetime import datetime, timezone

from redis.exceptions import RedisError

from bellwright.core.exceptions import ServiceError
from bellwright.core.settings import settings
from bellwright.utils.redis_client import get_redis_client

logger = logging.getLogger(__name__)


class LockedOutError(ServiceError):
    status_code = 429
    code = "locked_out"
    default_message = "Too many sign-in attempts; try again later"


def _ttl(seconds: int) -> int:
    return max(1, seconds)


def _key(identifier: str) -> str:
    return identifier.strip().lower()


async def check_lockout(identifier: str) -> None:
    redis = get_redis_client()
    try:
        locked = await redis.get(f"lock:{_key(identifier)}")
    except RedisError:
        logger.warning("Redis unavailable; skipping lockout check")
        return
    if locked:
        raise LockedOutError()


async def register_login_attempt(identifier: str, success: bool) -> None:
    redis = get_redis_client()
    fail_key = f"fail:{_key(identifier)}"
    lock_key = f"lock:{_key(identifier)}"
    window = _ttl(settings.login_lockout_minutes * 60)
    try:
        if success:
            await redis.delete(fail_key, lock_key)
            return
        attempts = await redis.incr(fail_key)
        await redis.expire(fail_key, window)
        if attempts < settings.login_attempt_limit:
            return
        await redis.setex(lock_key, window, 1)
        await redis.delete(fail_key)
    except RedisError:
        logger.warning("Redis unavailable; sign-in attempt not counted")
        return
    logger.warning("Sign-in locked for %s after %s failures", _key(identifier), attempts)
    raise LockedOutError("Account temporarily locked due to failed attempts")


async def is_token_revoked(jti: str) -> bool:
    redis = get_redis_client()
    try:
        return bool(await redis.get(f"revoked:{jti}"))
    except RedisError:
        return False


async def revoke_token(jti: str, expires_at: datetime) -> None:
    ttl = int((expires_at - datetime.now(timezone.utc)).total_seconds())
    if ttl <= 0:
        return
    redis = get_redis_client()
    try:
        await redis.setex(f"revoked:{jti}", ttl, 1)
    except RedisError:
        logger.warning("Redis unavailable; token %s not added to revocation list", jti)
