"""PostgreSQL implementation of OverrideRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pathway_engine.db.tables import OverrideRow
from pathway_engine.models.progress import Override


class PgOverrideRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, override: Override) -> None:
        try:
            self._session.add(
                OverrideRow(
                    id=override.id,
                    enrollment_id=override.enrollment_id,
                    activity_id=override.activity_id,
                    override_type=override.override_type,
                    applied_by=override.applied_by,
                    reason=override.reason,
                    created_at=override.created_at,
                )
            )
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise

    async def latest(self, enrollment_id: UUID, activity_id: UUID) -> Override | None:
        stmt = (
            select(OverrideRow)
            .where(
                OverrideRow.enrollment_id == enrollment_id,
                OverrideRow.activity_id == activity_id,
            )
            .order_by(OverrideRow.created_at.desc())
            .limit(1)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return Override(
            id=row.id,
            enrollment_id=row.enrollment_id,
            activity_id=row.activity_id,
            override_type=row.override_type,  # type: ignore[arg-type]
            created_at=row.created_at,
            applied_by=row.applied_by,
            reason=row.reason,
        )
