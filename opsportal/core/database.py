"""
Database session management with async SQLAlchemy 2.0.

Provides:
- Async engine with connection pooling
- Session factory with proper lifecycle
- Dependency injection for route handlers and long-lived services
"""

import logging
from typing import Any, AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from opsportal.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class DatabaseManager:
    """
    Manages database engine and session lifecycle.

    One engine per application. Request handlers get a session through
    ``get_db``; services that outlive a request (session managers, tenant
    navigation) take the session factory and open short sessions per call.
    """

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    def init(self) -> None:
        """
        Initialize database engine and session factory.

        Called during application startup (lifespan event).
        """
        logger.info("Initializing database connection...")

        engine_kwargs: dict[str, Any] = {"pool_pre_ping": True}
        if settings.is_development:
            engine_kwargs["poolclass"] = NullPool
            engine_kwargs["echo"] = settings.db_echo
        else:
            engine_kwargs["pool_size"] = settings.db_pool_size
            engine_kwargs["max_overflow"] = settings.db_max_overflow

        self._engine = create_async_engine(str(settings.database_url), **engine_kwargs)

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        logger.info("Database connection initialized successfully")

    async def close(self) -> None:
        """Close database connections (lifespan shutdown)."""
        if self._engine:
            logger.info("Closing database connections...")
            await self._engine.dispose()
            logger.info("Database connections closed")

    @property
    def engine(self) -> AsyncEngine:
        """Get the database engine."""
        if not self._engine:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get the session factory."""
        if not self._session_factory:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._session_factory

    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Yield a session that commits on success and rolls back on error.

        Usage in FastAPI:
            @router.get("/tenants")
            async def list_tenants(db: AsyncSession = Depends(db_manager.get_session)):
                ...
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


# Global instance
db_manager = DatabaseManager()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for request-scoped database sessions."""
    async for session in db_manager.get_session():
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency for the session factory (overridden in tests)."""
    return db_manager.session_factory
