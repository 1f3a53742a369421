"""Async engine and session wiring for the publishing service."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from adpublish.db import Base
from adpublish.settings import settings

logger = logging.getLogger(__name__)


def _async_url(url: str) -> str:
    """Convert a sync DB URL to its async driver URL.

    postgresql+psycopg://...  -> unchanged (psycopg3 supports async natively)
    postgresql://...          -> postgresql+psycopg://...
    sqlite+pysqlite://...     -> sqlite+aiosqlite://...
    """
    if url.startswith("sqlite+pysqlite"):
        return url.replace("sqlite+pysqlite", "sqlite+aiosqlite", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def get_async_engine(url: str | None = None):
    effective_url = _async_url(url or settings.DATABASE_URL)
    return create_async_engine(effective_url, pool_pre_ping=True)


async_engine = get_async_engine()
AsyncSessionLocal = async_sessionmaker(
    bind=async_engine, class_=AsyncSession, expire_on_commit=False
)


async def get_async_db():
    async with AsyncSessionLocal() as session:
        yield session


async def create_tables() -> None:
    """Create missing tables directly from the models (local SQLite setups).

    Deployed databases are migrated with alembic instead.
    """
    import adpublish.models  # noqa: F401  registers the tables on Base.metadata

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Ensured publishing tables exist")
