"""
Database Connection Module

Holds the process-local order store: a SQLAlchemy async engine that by
default points at an in-memory SQLite database. The engine keeps one
shared connection (StaticPool), so every session is taken under a single
asyncio lock; REST handlers, socket handlers and background tasks never
interleave transactions on it.

The engine, session factory and lock are created by ``init_db()`` inside
the running event loop and torn down by ``dispose_db()``.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from smart_pos.core.config import get_settings

logger = logging.getLogger(__name__)

engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker] = None
_store_lock: Optional[asyncio.Lock] = None


# Base class for all our models
class Base(DeclarativeBase):
    pass


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite") and ":memory:" in url:
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {}


async def init_db(database_url: Optional[str] = None) -> None:
    """
    Create the engine and all tables.
    Called once at application startup.
    """
    global engine, async_session_maker, _store_lock

    url = database_url or get_settings().database_url

    engine = create_async_engine(url, echo=False, **_engine_options(url))
    async_session_maker = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Objects remain accessible after commit
    )
    _store_lock = asyncio.Lock()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info(f"Store tables created ({engine.url.drivername})")


async def dispose_db() -> None:
    """Dispose the engine; an in-memory store is discarded with it."""
    global engine, async_session_maker, _store_lock

    if engine is not None:
        await engine.dispose()
    engine = None
    async_session_maker = None
    _store_lock = None


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Exclusive session on the store."""
    if async_session_maker is None or _store_lock is None:
        raise RuntimeError("Store not initialized; call init_db() first")

    async with _store_lock:
        async with async_session_maker() as session:
            yield session


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    Dependency injection for FastAPI routes.
    Yields an exclusive store session and ensures cleanup.
    """
    async with session_scope() as session:
        yield session
