from collections.abc import AsyncGenerator
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from bellwright.core.settings import settings

_TRUTHY = {"1", "true", "yes", "on"}


def normalize_database_url(url: str) -> str:
    """Rewrite ``?ssl=true`` (rejected by asyncpg) into ``sslmode=require``."""
    parts = urlsplit(url.strip())
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    if query.get("ssl", "").lower() in _TRUTHY:
        query.pop("ssl")
        query.setdefault("sslmode", "require")
    return urlunsplit(parts._replace(query=urlencode(query)))


engine = create_async_engine(
    normalize_database_url(settings.database_url),
    future=True,
    echo=False,
    pool_pre_ping=True,
    pool_timeout=settings.data_call_timeout_seconds,
)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session
