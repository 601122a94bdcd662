"""
LittleNest Backend: Database Session Management
=================================================

What:  Async SQLAlchemy engine, session factory, FastAPI dependency and
       post-commit task queue.
How:   Creates an async engine with connection pooling, provides a session
       dependency that commits on success and rolls back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created at module import; sessions are created per-request.

Connection Pooling:
    pool_size=20, max_overflow=10: at most 30 connections per worker
    pool_pre_ping:     validates connections before use
    pool_recycle=3600: recycles connections every hour
"""

import logging
from typing import Any, AsyncGenerator, Awaitable, Callable

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from littlenest.config import settings
from littlenest.exceptions import LittleNestError

logger = logging.getLogger(__name__)

AFTER_COMMIT_KEY = "after_commit"


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=settings.db_pool_pre_ping,
    pool_recycle=3600,
    echo=settings.log_level == "DEBUG",
)

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: response models read attributes after commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, which Alembic reads for migrations.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction, then runs the tasks queued
           with add_after_commit()
        4. On error: rolls back, drops queued tasks and re-raises for the
           global error handler
        5. Always: closes the session (returns connection to pool)

    Example usage in a route:
        @router.get("/api/names/count")
        async def count(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            session.info.pop(AFTER_COMMIT_KEY, None)
            await session.rollback()
            raise
        else:
            await run_after_commit(session)
        finally:
            await session.close()


# ── Post-Commit Tasks ─────────────────────────────────────────────────────
def add_after_commit(
    session: AsyncSession,
    task: Callable[..., Awaitable[Any]],
    *args: Any,
) -> None:
    """Queues `await task(*args)` to run once the session has committed."""
    session.info.setdefault(AFTER_COMMIT_KEY, []).append((task, args))


async def run_after_commit(session: AsyncSession) -> None:
    """
    Runs and clears the queued post-commit tasks in order.

    The transaction is already durable here, so a failing task is logged
    and the remaining tasks still run.
    """
    for task, args in session.info.pop(AFTER_COMMIT_KEY, []):
        try:
            await task(*args)
        except LittleNestError as e:
            logger.error(
                "Post-commit task %s failed (%s): %s",
                getattr(task, "__name__", repr(task)),
                type(e).__name__,
                e.message,
            )


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Closes all pooled connections. Called from the lifespan shutdown."""
    await engine.dispose()
