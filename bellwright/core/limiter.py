from slowapi import Limiter
from slowapi.util import get_remote_address

from bellwright.core.settings import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
    storage_uri=settings.redis_url,
)


def sign_in_limit() -> str:
    return f"{settings.login_attempt_limit * 2}/minute"


def verification_limit() -> str:
    return f"{settings.verification_max_attempts * 2}/minute"


__all__ = ["limiter", "sign_in_limit", "verification_limit"]
