"""
BuildMarket Backend: Database Session Management
=================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   A Database object owns the engine and session factory. The application
       factory constructs it and stores it on app.state; request handlers
       reach it through the get_db_session dependency. Nothing here is a
       module-level connection singleton, so tests can hand the app an
       in-memory SQLite database instead.

Connection Pooling Strategy (PostgreSQL):
    pool_size=20, max_overflow=10:  at most 30 connections per process
    pool_pre_ping:                  validate connections before use
    pool_recycle=3600:              recycle hourly to avoid stale connections
"""

import logging
from typing import Any, AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from buildmarket.config import Settings
from buildmarket.exceptions import DatabaseUnavailableError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, which Alembic reads for --autogenerate
    and the test suite uses for create_all().
    """
    pass


class Database:
    """
    Owns the async engine and session factory for one application instance.

    Lifecycle:
        constructed by create_app() → wait_until_ready() during startup
        → sessions per request → dispose() during shutdown
    """

    def __init__(self, url: str, **engine_kwargs: Any):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        # expire_on_commit=False: response models read attributes after commit
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Build a pooled PostgreSQL-style engine from application settings."""
        kwargs: dict = {"echo": settings.log_level == "DEBUG"}
        if not settings.database_url.startswith("sqlite"):
            # SQLite uses a static/singleton pool; sizing arguments don't apply
            kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_pre_ping=settings.db_pool_pre_ping,
                pool_recycle=3600,
            )
        return cls(settings.database_url, **kwargs)

    async def ping(self) -> bool:
        """Run SELECT 1. Returns False instead of raising when unreachable."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Database ping failed: %s", str(e))
            return False

    async def wait_until_ready(
        self,
        max_attempts: int = 5,
        min_wait: int = 1,
        max_wait: int = 10,
    ) -> None:
        """
        Block until the database answers SELECT 1, retrying with backoff.

        Why: In docker-compose the API container often starts before
        PostgreSQL accepts connections.

        Raises:
            DatabaseUnavailableError: every attempt failed.
        """
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type((SQLAlchemyError, OSError)),
                stop=stop_after_attempt(max_attempts),
                wait=wait_exponential_jitter(initial=min_wait, max=max_wait, jitter=1),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=False,
            ):
                with attempt:
                    async with self.engine.connect() as conn:
                        await conn.execute(text("SELECT 1"))
        except RetryError as e:
            last = e.last_attempt.exception() if e.last_attempt else None
            logger.error(
                "Database unreachable after %d attempts: %s", max_attempts, str(last)
            )
            raise DatabaseUnavailableError(
                attempts=max_attempts,
                context={"error_type": type(last).__name__ if last else "unknown"},
            ) from last
        logger.info("Database connection verified")

    async def create_all(self) -> None:
        """Create every table from ORM metadata (tests and local SQLite only)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    On success the transaction is committed; on any exception it is rolled
    back and the exception re-raised for the global handlers.
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_database(request: Request) -> Optional[Database]:
    """Expose the app-owned Database to handlers that need the engine itself."""
    return getattr(request.app.state, "database", None)
