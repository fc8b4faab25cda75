"""Async database engine and session management.

Provides:
    - _get_engine: The SQLAlchemy async engine (lazy singleton).
    - session_scope: Context manager for one session and one transaction.
    - get_async_session: FastAPI dependency that yields a session per request.
    - wait_for_db: Bounded start-up connectivity check.
    - init_db / close_db: Lifecycle hooks for FastAPI's lifespan.

Usage in FastAPI:
    @router.get("/deals")
    async def list_deals(session: AsyncSession = Depends(get_async_session)):
        ...
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from deal_room.config import get_settings
from deal_room.domain.exceptions import StorageUnavailableError
from deal_room.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterator

    from tenacity import RetryCallState

logger = get_logger(__name__)

# Module-level singletons (initialized in init_db)
_engine = None
_session_factory = None


def _get_engine():
    """Get or create the async engine (lazy singleton)."""
    global _engine
    if _engine is None:
        settings = get_settings()
        engine_kwargs: dict = {"pool_pre_ping": True, "echo": settings.db_echo_sql}
        if not settings.is_sqlite:
            engine_kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_timeout=settings.db_pool_timeout,
            )
        _engine = create_async_engine(settings.database_url, **engine_kwargs)
        logger.info(
            "database.engine_created",
            dialect=_engine.dialect.name,
            pool_size=engine_kwargs.get("pool_size"),
        )
    return _engine


def _get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory (lazy singleton)."""
    global _session_factory
    if _session_factory is None:
        engine = _get_engine()
        _session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """One session, one transaction.

    The session is committed on success or rolled back on error, so an
    entity write and its audit event always land together.
    """
    factory = _get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async database session."""
    async with session_scope() as session:
        yield session


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "database.connect_retry",
        attempt=retry_state.attempt_number,
        error=str(exc),
    )


async def ping_db() -> None:
    """Run a trivial query against the database."""
    async with _get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))


async def wait_for_db() -> None:
    """Block until the database answers, retrying a bounded number of times.

    Raises:
        StorageUnavailableError: If every attempt fails.
    """
    settings = get_settings()
    retrying = AsyncRetrying(
        stop=stop_after_attempt(settings.db_connect_attempts),
        wait=wait_fixed(settings.db_connect_retry_delay_ms / 1000),
        retry=retry_if_exception_type((OSError, DBAPIError)),
        before_sleep=_log_retry,
    )
    try:
        async for attempt in retrying:
            with attempt:
                await ping_db()
    except (RetryError, OSError, DBAPIError) as err:
        logger.error("database.unavailable", attempts=settings.db_connect_attempts)
        raise StorageUnavailableError(
            f"Database unreachable after {settings.db_connect_attempts} attempts"
        ) from err

    logger.info("database.connected")


async def init_db() -> None:
    """Create tables if they don't exist.

    Called during FastAPI's lifespan startup. In production, use Alembic
    migrations instead of create_all.
    """
    from deal_room.infrastructure.database.orm_models import Base

    engine = _get_engine()
    settings = get_settings()

    if settings.is_development or settings.is_sqlite:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("database.tables_created")
    else:
        logger.info("database.skipping_create_all", reason="not in development mode")


async def close_db() -> None:
    """Dispose of the database engine. Called during FastAPI's lifespan shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("database.engine_disposed")
        _engine = None
        _session_factory = None
