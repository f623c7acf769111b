import logging

from fastapi import FastAPI

from bellwright.core.settings import settings
from bellwright.db.session import engine
from bellwright.utils.redis_client import get_redis_client

logger = logging.getLogger(__name__)


def register_event_handlers(app: FastAPI) -> None:
    @app.on_event("startup")
    async def on_startup() -> None:
        logger.info("Application startup (%s)", settings.environment)
        if not settings.superadmin_email or not settings.superadmin_password_hash:
            logger.warning("Superadmin credentials not configured; superadmin sign-in disabled")

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        logger.info("Application shutdown")
        await get_redis_client().aclose()
        await engine.dispose()
