"""
Engine and session factory for the Bookshelf store.

PostgreSQL (asyncpg) in deployment gets a sized, recycled pool; the
SQLite URLs used for local runs and tests keep SQLAlchemy's default pool.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings


def _engine_options(url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.DB_ECHO}
    if url.startswith("postgresql"):
        options.update(
            pool_pre_ping=True,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
        )
    return options


engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

# Objects stay readable after commit; stores refresh explicitly when needed
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
