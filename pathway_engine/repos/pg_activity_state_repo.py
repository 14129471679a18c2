"""PostgreSQL implementation of ActivityStateRepo.

Each upsert commits on its own: a state write is independent of the
recompute that follows it.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from pathway_engine.db.tables import ActivityStateRow
from pathway_engine.models.progress import ActivityState, utcnow


class PgActivityStateRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, enrollment_id: UUID, activity_id: UUID) -> ActivityState | None:
        stmt = select(ActivityStateRow).where(
            ActivityStateRow.enrollment_id == enrollment_id,
            ActivityStateRow.activity_id == activity_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_state(row)

    async def get_many(
        self, enrollment_id: UUID, activity_ids: list[UUID]
    ) -> dict[UUID, ActivityState]:
        if not activity_ids:
            return {}
        stmt = select(ActivityStateRow).where(
            ActivityStateRow.enrollment_id == enrollment_id,
            ActivityStateRow.activity_id.in_(activity_ids),
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return {r.activity_id: _row_to_state(r) for r in rows}

    async def upsert(self, state: ActivityState) -> None:
        values = {
            "completion_percent": state.completion_percent,
            "completion_status": state.completion_status,
            "completed_at": state.completed_at,
            "evidence_ref": state.evidence_ref,
            "last_computed_at": state.last_computed_at or utcnow(),
        }
        stmt = insert(ActivityStateRow).values(
            enrollment_id=state.enrollment_id,
            activity_id=state.activity_id,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["enrollment_id", "activity_id"],
            set_=values,
        )
        try:
            await self._session.execute(stmt)
            await self._session.commit()
        except Exception:
            # Leave the session usable for the next enrollment in a batch.
            await self._session.rollback()
            raise


def _row_to_state(row: ActivityStateRow) -> ActivityState:
    return ActivityState(
        enrollment_id=row.enrollment_id,
        activity_id=row.activity_id,
        completion_percent=row.completion_percent,
        completion_status=row.completion_status,  # type: ignore[arg-type]
        completed_at=row.completed_at,
        last_computed_at=row.last_computed_at,
        evidence_ref=row.evidence_ref,
    )
