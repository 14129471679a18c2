"""PostgreSQL implementation of ActivityCatalog."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pathway_engine.db.tables import (
    ActivityRow,
    DripRuleRow,
    PrerequisiteGroupRow,
    PrerequisiteItemRow,
)
from pathway_engine.models.activity import (
    Activity,
    DripRule,
    PrerequisiteGroup,
    PrerequisiteItem,
)


class PgActivityCatalog:
    """Satisfies the ActivityCatalog Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_activity(self, activity_id: UUID) -> Activity | None:
        stmt = select(ActivityRow).where(ActivityRow.id == activity_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_activity(row)

    async def list_active_activities(self, pathway_id: UUID) -> list[Activity]:
        stmt = (
            select(ActivityRow)
            .where(ActivityRow.pathway_id == pathway_id, ActivityRow.status == "active")
            .order_by(ActivityRow.ordering_hint, ActivityRow.title)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_activity(r) for r in rows]

    async def list_pathway_activity_ids(self, pathway_id: UUID) -> list[UUID]:
        stmt = select(ActivityRow.id).where(ActivityRow.pathway_id == pathway_id)
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_prerequisite_groups(
        self, activity_id: UUID
    ) -> list[PrerequisiteGroup]:
        groups_stmt = select(PrerequisiteGroupRow).where(
            PrerequisiteGroupRow.activity_id == activity_id
        )
        group_rows = (await self._session.execute(groups_stmt)).scalars().all()
        if not group_rows:
            return []

        items_stmt = select(PrerequisiteItemRow).where(
            PrerequisiteItemRow.group_id.in_([g.id for g in group_rows])
        )
        items_by_group: dict[UUID, list[PrerequisiteItem]] = {}
        for item in (await self._session.execute(items_stmt)).scalars().all():
            items_by_group.setdefault(item.group_id, []).append(
                PrerequisiteItem(
                    group_id=item.group_id,
                    prerequisite_activity_id=item.prerequisite_activity_id,
                )
            )

        return [
            PrerequisiteGroup(
                id=g.id,
                activity_id=g.activity_id,
                prereq_type=g.prereq_type,  # type: ignore[arg-type]
                n_required=g.n_required,
                items=tuple(items_by_group.get(g.id, [])),
            )
            for g in group_rows
        ]

    async def list_prerequisite_edges(
        self, activity_ids: list[UUID]
    ) -> list[tuple[UUID, UUID]]:
        if not activity_ids:
            return []
        stmt = (
            select(
                PrerequisiteGroupRow.activity_id,
                PrerequisiteItemRow.prerequisite_activity_id,
            )
            .join(
                PrerequisiteItemRow,
                PrerequisiteItemRow.group_id == PrerequisiteGroupRow.id,
            )
            .where(PrerequisiteGroupRow.activity_id.in_(activity_ids))
        )
        return [(a, p) for a, p in (await self._session.execute(stmt)).all()]

    async def list_drip_rules(self, activity_id: UUID) -> list[DripRule]:
        stmt = select(DripRuleRow).where(DripRuleRow.activity_id == activity_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            DripRule(
                id=r.id,
                activity_id=r.activity_id,
                drip_type=r.drip_type,  # type: ignore[arg-type]
                release_at=r.release_at,
                base_activity_id=r.base_activity_id,
                delay_days=r.delay_days or 0,
            )
            for r in rows
        ]


def _row_to_activity(row: ActivityRow) -> Activity:
    return Activity(
        id=row.id,
        pathway_id=row.pathway_id,
        title=row.title,
        activity_type=row.activity_type,  # type: ignore[arg-type]
        weight=row.weight,
        ordering_hint=row.ordering_hint,
        status=row.status,  # type: ignore[arg-type]
        external_ref=row.external_ref,
    )
