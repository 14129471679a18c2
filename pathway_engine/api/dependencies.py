from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime

from fastapi import Query

from pathway_engine.models.progress import as_utc, utcnow
from pathway_engine.services.container import Engine, engine_scope


async def get_engine() -> AsyncGenerator[Engine, None]:
    """Request-scoped engine: shared in-memory engine, or one per DB session."""
    async with engine_scope() as engine:
        yield engine


def evaluation_time(
    at: datetime | None = Query(
        default=None,
        description="Evaluation instant (ISO-8601); defaults to now. Naive values are UTC.",
    ),
) -> datetime:
    return utcnow() if at is None else as_utc(at)
