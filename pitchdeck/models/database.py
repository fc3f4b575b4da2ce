"""
Async database session factory.

Uses SQLAlchemy 2.0 async engine with asyncpg (Postgres) or aiosqlite (dev).
"""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from pitchdeck.core.config import get_settings
from pitchdeck.models.models import Base


def build_session_factory(database_url: str, echo: bool = False) -> async_sessionmaker[AsyncSession]:
    engine = create_async_engine(database_url, echo=echo, pool_pre_ping=True)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    settings = get_settings()
    return build_session_factory(settings.database_url, echo=(settings.app_env == "development"))


async def create_all(engine: AsyncEngine) -> None:
    """Create the documents table if it does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
