"""PostgreSQL access for the engine's stores.

With DATABASE_URL set, ``engine`` and ``async_session_factory`` point at
PostgreSQL through asyncpg and every request or worker task runs over its
own session (see ``services.container.engine_scope``).  Without it both
are None and the container wires the in-memory repositories instead.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from pathway_engine.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Metadata root for db.tables; Alembic autogenerates against it."""


engine: AsyncEngine | None = None
async_session_factory: async_sessionmaker[AsyncSession] | None = None

if SETTINGS.database_url:
    engine = create_async_engine(
        SETTINGS.database_url,
        echo=SETTINGS.is_dev,
        pool_size=5,
        max_overflow=10,
        # Track-wide recomputes hold a connection for the whole batch.
        pool_pre_ping=True,
    )
    # Rollup rows are read back after commit, so keep them loaded.
    async_session_factory = async_sessionmaker(engine, expire_on_commit=False)


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """One unit of work: commit when the block exits cleanly, else roll back."""
    if async_session_factory is None:
        raise RuntimeError("session_scope() needs DATABASE_URL")
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def lifespan_db():
    if engine is None:
        logger.info("DATABASE_URL unset; activity stores are in memory")
        yield
        return

    logger.info("Activity stores on PostgreSQL: %s", engine.url.render_as_string())
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Database pool disposed")
