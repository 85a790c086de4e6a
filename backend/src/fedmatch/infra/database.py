"""Async engine, session factory and FastAPI session dependencies.

Scoring reads go through the request session from ``get_db``; the score
cache opens its own short sessions from ``get_session_factory`` so its
commits never share a transaction with the request.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from fedmatch.app.config import get_settings


class Base(DeclarativeBase):
    """Declarative base shared by the listing, federal and cache tables."""


def _engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        # Cache writers wait on the write lock instead of failing fast
        return {"connect_args": {"check_same_thread": False, "timeout": 30}}
    return {"pool_size": 5, "max_overflow": 10, "pool_pre_ping": True}


settings = get_settings()
_is_sqlite = settings.database_url.startswith("sqlite")

engine = create_async_engine(settings.database_url, echo=False, **_engine_options(settings.database_url))
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """FastAPI dependency: one session per request, closed afterwards."""
    async with async_session() as session:
        yield session


def get_session_factory() -> async_sessionmaker:
    """FastAPI dependency: the factory the score cache opens sessions from."""
    return async_session


async def init_db():
    """Create any missing tables. Schema changes beyond that are out of band."""
    import fedmatch.domain.models  # noqa: F401  (registers tables on Base.metadata)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if _is_sqlite:
        # WAL lets cache writes proceed alongside scoring reads
        async with engine.connect() as conn:
            await conn.execute(text("PRAGMA journal_mode=WAL"))
