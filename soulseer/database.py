import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (AsyncEngine, AsyncSession,
                                    async_sessionmaker, create_async_engine)
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from soulseer.core.config import settings

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _create_engine(url: str) -> AsyncEngine:
    kwargs = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        # in-memory databases live as long as their single connection
        if url.rstrip("/").endswith("sqlite+aiosqlite:") or ":memory:" in url:
            kwargs["poolclass"] = StaticPool
    # statement logging goes through the "sqlalchemy.engine" logger (SQL_ECHO)
    return create_async_engine(url, **kwargs)


def get_engine() -> AsyncEngine:
    """Return the engine, creating it from DATABASE_URL on first use"""
    global _engine, _session_factory
    if _engine is None:
        _engine = _create_engine(settings.DATABASE_URL)
        _session_factory = async_sessionmaker(
            bind=_engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    get_engine()
    assert _session_factory is not None
    return _session_factory


@asynccontextmanager
async def get_async_session_context():
    """Async DB session context manager for background tasks"""
    async with get_session_factory()() as session:
        yield session


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Async DB session for FastAPI dependency injection"""
    session = get_session_factory()()
    try:
        yield session
    finally:
        try:
            await session.close()
        except Exception as e:
            logger.debug(f"Session close warning (safe to ignore): {e}")


async def init_db(url: Optional[str] = None) -> AsyncEngine:
    """
    Create the engine (optionally for a different URL) and all tables.

    Passing a URL replaces the current engine, which is how tests point the
    application at an in-memory SQLite database.
    """
    global _engine, _session_factory

    # Import models so every table is registered on SQLModel.metadata
    import soulseer.models  # noqa: F401

    if url is not None:
        await close_db()
        _engine = _create_engine(url)
        _session_factory = async_sessionmaker(
            bind=_engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    logger.info("Database tables ready")
    return engine


async def close_db() -> None:
    """Dispose the engine and release connections"""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
