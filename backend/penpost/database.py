"""
Penpost Backend — Database Session Management
===============================================

What:  Async SQLAlchemy engine, session factory, and the per-request session
       dependency.
How:   `Database` wraps one engine (connection pool) and one session factory.
       `create_app()` builds it from Settings and keeps it on `app.state`;
       `get_db_session` hands each request its own session that commits on
       success (before the response goes out) and rolls back on error.

Connection Pooling (non-SQLite URLs):
    pool_size / max_overflow / pool_timeout come from Settings.
    pool_pre_ping validates connections before use.
    pool_recycle=3600 recycles connections every hour.
"""

import logging
from typing import AsyncGenerator

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
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from penpost.config import Settings
from penpost.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class so they share a single metadata
    object (used by `create_all` and by Alembic autogenerate).
    """
    pass


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """
    Build the async engine for the configured store.

    SQLite (tests, local hacking) gets the dialect's default pool; pool sizing
    arguments are only passed to server databases.
    """
    engine_kwargs = {
        "echo": settings.log_level == "DEBUG",
    }
    if not settings.is_sqlite:
        engine_kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=3600,
        )
    return create_async_engine(settings.database_url, **engine_kwargs)


class Database:
    """
    Owns the engine and session factory for one application instance.

    expire_on_commit=False: ORM objects stay readable after commit, which the
    services rely on when building responses.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine = create_engine_from_settings(settings)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def ping(self) -> None:
        """Runs SELECT 1; raises whatever the driver raises."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def create_all(self) -> None:
        """Create any missing tables for the registered models."""
        # Register every model with Base.metadata before create_all
        from penpost import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def connect(self) -> None:
        """
        Wait for the store to accept connections, then prepare the schema.

        Retries with exponential backoff + jitter for `db_connect_attempts`
        attempts; the last error propagates and aborts startup.
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.settings.db_connect_attempts),
            wait=wait_exponential_jitter(initial=0.5, max=8),
            retry=retry_if_exception_type((OSError, ConnectionError, TimeoutError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                await self.ping()

        logger.info("Database reachable")
        if self.settings.db_create_tables:
            await self.create_all()
            logger.info("Database tables ensured")

    async def dispose(self) -> None:
        """Close all pooled connections (application shutdown)."""
        await self.engine.dispose()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Routes declare it with `Depends(get_db_session, scope="function")`, so
    the code after `yield` runs when the handler returns and before the
    response is sent. A failed commit therefore reaches the client as a 500,
    and background tasks only ever run after a successful commit.

    How it works:
        1. Creates a new session from the app's session factory
        2. Yields it to the route handler
        3. On error in the handler: rolls back and re-raises for the global handlers
        4. On success: commits; a failed commit rolls back → DatabaseError
        5. Always: closes the session (returns connection to pool)
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

            try:
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("Commit failed: %s", type(e).__name__, exc_info=True)
                raise DatabaseError(
                    message="Could not save changes. Please try again.",
                    context={"operation": "commit", "error_type": type(e).__name__},
                )
        finally:
            await session.close()
