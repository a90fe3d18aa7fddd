"""
Database Connection Management

Async database connection pool with SQLAlchemy 2.0.
Implements session scoping, health checks and graceful shutdown.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncGenerator, Callable, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from adgate.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()

# Zero-argument callable opening one committed-or-rolled-back session
SessionProvider = Callable[[], AsyncContextManager[AsyncSession]]

# Global engine and session factory
_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


async def init_database() -> AsyncEngine:
    """
    Initialize the database connection pool.

    When `POSTGRES_CREATE_SCHEMA` is set, tables are created and the
    default platforms seeded before the engine is handed out.

    Returns:
        AsyncEngine: The initialized database engine
    """
    global _engine, _async_session_factory

    if _engine is not None:
        logger.warning("Database already initialized")
        return _engine

    # asyncpg pools connections itself
    _engine = create_async_engine(
        settings.database.async_url,
        echo=settings.database.echo,
        pool_pre_ping=True,
        poolclass=NullPool,
    )

    _async_session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    try:
        async with _engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info(
            "Database connection established",
            host=settings.database.host,
            database=settings.database.db,
        )
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise

    if settings.database.create_schema:
        from adgate.database.seed import create_schema, seed_platforms

        await create_schema(_engine)
        await seed_platforms(get_db)

    return _engine


async def close_database() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database connection pool closed")


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Open a session from `factory` and commit it on success.

    Any exception rolls the session back and propagates.
    """
    session = factory()
    try:
        yield session
        await session.commit()
    except Exception as e:
        logger.error("Database session error, rolling back", error=str(e), error_type=type(e).__name__)
        await session.rollback()
        raise
    finally:
        await session.close()


def get_db() -> AsyncContextManager[AsyncSession]:
    """
    Get a database session from the pool.

    Example:
        async with get_db() as db:
            result = await db.execute(query)
    """
    if _async_session_factory is None:
        logger.error("Database not initialized when get_db() called")
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return session_scope(_async_session_factory)


def get_session_provider() -> SessionProvider:
    """FastAPI dependency returning the provider used by ingestion and decisions."""
    return get_db


async def check_database_health(provider: Optional[SessionProvider] = None) -> dict:
    """
    Check database health status.

    Returns:
        dict: Health status with latency information
    """
    provider = provider or get_db
    try:
        start = time.perf_counter()
        async with provider() as db:
            await db.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        logger.warning("Database health check failed", error=str(e))
        return {
            "status": "unhealthy",
            "error": str(e),
        }
