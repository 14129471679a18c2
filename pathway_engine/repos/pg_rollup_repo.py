"""PostgreSQL implementation of RollupRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from pathway_engine.db.tables import CompletionRollupRow
from pathway_engine.models.progress import CompletionRollup


class PgRollupRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, enrollment_id: UUID) -> CompletionRollup | None:
        stmt = select(CompletionRollupRow).where(
            CompletionRollupRow.enrollment_id == enrollment_id
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_rollup(row)

    async def get_many(self, enrollment_ids: list[UUID]) -> list[CompletionRollup]:
        if not enrollment_ids:
            return []
        stmt = select(CompletionRollupRow).where(
            CompletionRollupRow.enrollment_id.in_(enrollment_ids)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_rollup(r) for r in rows]

    async def upsert(self, rollup: CompletionRollup) -> None:
        values = {
            "track_id": rollup.track_id,
            "pathway_completion_percent": rollup.pathway_completion_percent,
            "track_completion_percent": rollup.track_completion_percent,
            "last_computed_at": rollup.last_computed_at,
        }
        stmt = insert(CompletionRollupRow).values(
            enrollment_id=rollup.enrollment_id, **values
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["enrollment_id"],
            set_=values,
        )
        try:
            await self._session.execute(stmt)
            await self._session.commit()
        except Exception:
            # Leave the session usable for the next enrollment in a batch.
            await self._session.rollback()
            raise


def _row_to_rollup(row: CompletionRollupRow) -> CompletionRollup:
    return CompletionRollup(
        enrollment_id=row.enrollment_id,
        track_id=row.track_id,
        pathway_completion_percent=float(row.pathway_completion_percent),
        track_completion_percent=float(row.track_completion_percent),
        last_computed_at=row.last_computed_at,
    )
