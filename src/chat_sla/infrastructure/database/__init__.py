"""
Database Infrastructure
=======================

Process-wide async engine and session factory for the chat store.

PostgreSQL through asyncpg in production; the test suite points the same
code at a throwaway sqlite+aiosqlite file.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from chat_sla.config import settings


class Base(DeclarativeBase):
    """Declarative base shared by the chat, message and settings tables."""


_engine: Optional[AsyncEngine] = None
_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError("init_database() has not been called")
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Session factory handed to repositories and config providers."""
    if _session_maker is None:
        raise RuntimeError("init_database() has not been called")
    return _session_maker


def init_database(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create the engine and session factory.

    Args:
        database_url: Connection URL; settings.database_url when omitted

    Returns:
        AsyncEngine: The new engine
    """
    global _engine, _session_maker

    url = (database_url or settings.database_url).replace("sslmode=", "ssl=")

    engine_kwargs = {"echo": settings.debug, "pool_pre_ping": True}
    # sqlite has no connection pool sizing
    if not url.startswith("sqlite"):
        engine_kwargs.update(pool_size=settings.db_pool_size, max_overflow=settings.db_max_overflow)

    _engine = create_async_engine(url, **engine_kwargs)
    _session_maker = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return _engine


async def close_database() -> None:
    """Dispose of pooled connections and forget the engine."""
    global _engine, _session_maker

    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_maker = None


@asynccontextmanager
async def get_session_context() -> AsyncIterator[AsyncSession]:
    """
    Unit of work: commit when the block exits cleanly, roll back otherwise.

        async with get_session_context() as session:
            session.add(SystemSettingModel(key="sla.pickup_target", value="90", category="sla"))
    """
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """Create the schema directly from the ORM models (development and tests)."""
    from chat_sla.sla.infrastructure import models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
