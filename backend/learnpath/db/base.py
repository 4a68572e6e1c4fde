"""Database base class and session management.

This module provides:
- SQLAlchemy base class for declarative models
- Lazily created async engine and session factory
- Table creation and engine disposal helpers
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from ..core.config import get_settings


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


def utcnow_iso() -> str:
    """Current UTC time as the ISO string stored in timestamp columns."""
    return datetime.now(timezone.utc).isoformat()


_engine = None
_session_maker = None


def get_engine():
    """Get or create the database engine."""
    global _engine

    if _engine is None:
        settings = get_settings()
        engine_kwargs = {"echo": settings.DB_ECHO}
        if not settings.is_sqlite:
            engine_kwargs.update(
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_timeout=settings.DB_POOL_TIMEOUT,
                pool_pre_ping=True,
            )
        _engine = create_async_engine(settings.DATABASE_URL, **engine_kwargs)

    return _engine


def get_session_maker():
    """Get or create the session maker."""
    global _session_maker

    if _session_maker is None:
        _session_maker = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )

    return _session_maker


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Get a database session as an async context manager.

    Each concurrent read in a request opens its own session; an
    AsyncSession must never be shared between concurrent tasks.
    """
    session_maker = get_session_maker()
    async with session_maker() as session:
        yield session


async def init_databases():
    """Create all tables."""
    from . import models  # noqa: F401  (registers the mappers)

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_all():
    """Close all database connections."""
    global _engine, _session_maker

    if _engine is not None:
        await _engine.dispose()
        _engine = None

    _session_maker = None
