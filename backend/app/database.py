"""Database engine, session factory, and declarative base.

One session per request:
  - get_db() yields an AsyncSession, commits when the request succeeds and
    rolls back on any exception, so each request is a single transaction.
  - Services only flush(); they never commit on their own.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


def _engine_kwargs(url: str) -> dict:
    # SQLite (local runs, tests) does not take a connection pool size
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 20, "max_overflow": 10, "pool_pre_ping": True}


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug and settings.log_level == "DEBUG",
    **_engine_kwargs(settings.database_url),
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# ── Base class ──────────────────────────────────────────────

class Base(DeclarativeBase):
    """Declarative base for every table."""
    pass


# ── Session dependency ──────────────────────────────────────

async def get_db() -> AsyncSession:
    """Yield a request-scoped session wrapped in one transaction."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
