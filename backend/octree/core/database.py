"""
Async SQLAlchemy engine, session factory and table management.
"""

from pathlib import Path
from typing import AsyncGenerator

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from .config import settings


def _async_url(url: str) -> str:
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def _ensure_sqlite_dir(url: str) -> None:
    if not url.startswith("sqlite") or ":///" not in url:
        return
    path = url.split(":///", 1)[1]
    if path and path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)


async_database_url = _async_url(settings.DATABASE_URL)
_ensure_sqlite_dir(async_database_url)

# aiosqlite connections belong to the event loop that opened them, so SQLite is never pooled.
if async_database_url.startswith("sqlite"):
    engine = create_async_engine(async_database_url, echo=False, poolclass=NullPool)
else:
    engine = create_async_engine(async_database_url, echo=False, pool_pre_ping=True, pool_recycle=300)

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request; rolls back on error."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    from octree.models import document, usage  # noqa: F401  (registers the tables)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database ready ({engine.url.get_backend_name()})")


async def drop_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("Database tables dropped")
