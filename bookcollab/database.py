"""Async database connection, session management and transaction helper."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from .config import settings

logger = logging.getLogger(__name__)


def _engine_options() -> dict:
    options = {"echo": settings.sql_echo, "pool_pre_ping": True}
    # SQLite (local runs) uses a pool that rejects sizing arguments
    if not settings.database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=15,  # Fail fast - let clients retry rather than hang
            pool_recycle=3600,
        )
    return options


engine = create_async_engine(settings.database_url, **_engine_options())

# Create async session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Declarative base for ORM models."""
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Async dependency injection for FastAPI.

    Auto-commits on success, rollbacks on exception.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Run a block as one atomic unit on the given session.

    Commits when the block exits normally. Any exception rolls back every
    write made inside the block and is re-raised.

    Usage:
        async with transaction(db):
            invite = await store.get_for_update(invite_id)
            invite.status = "declined"
    """
    try:
        yield db
        await db.commit()
    except Exception:
        await db.rollback()
        raise


async def warmup_connection_pool(pool_size: Optional[int] = None) -> None:
    """
    Open pooled connections at startup so the first requests do not pay
    the asyncpg connection setup cost.

    Args:
        pool_size: Number of connections to warm up. Defaults to settings.db_pool_size.
    """
    if settings.database_url.startswith("sqlite"):
        return

    target_size = pool_size or settings.db_pool_size
    logger.info(f"Warming up connection pool with {target_size} connections...")

    async def create_connection(i: int):
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.debug(f"  Connection {i + 1}/{target_size} warmed")
        except Exception as e:
            logger.warning(f"  Connection {i + 1} warmup failed: {e}")

    batch_size = 10
    for batch_start in range(0, target_size, batch_size):
        batch_end = min(batch_start + batch_size, target_size)
        await asyncio.gather(*(create_connection(i) for i in range(batch_start, batch_end)))

    logger.info(f"Connection pool warmup complete ({target_size} connections)")


async def insert_ignoring_conflict(db: AsyncSession, model: type, values: dict) -> bool:
    """
    Insert a row unless one with the same key already exists.

    The statement is a single ``INSERT ... ON CONFLICT DO NOTHING``, so a
    concurrent creator's row is left as it is. Lock the row afterwards to
    decide what to do with it.

    Returns:
        True if this call created the row.
    """
    if db.get_bind().dialect.name == "postgresql":
        stmt = postgresql_insert(model.__table__)
    else:
        stmt = sqlite_insert(model.__table__)
    result = await db.execute(stmt.values(**values).on_conflict_do_nothing())
    return result.rowcount == 1
