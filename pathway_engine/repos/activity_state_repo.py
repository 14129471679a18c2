from __future__ import annotations

from typing import Protocol
from uuid import UUID

from pathway_engine.models.progress import ActivityState


class ActivityStateRepo(Protocol):
    """Keyed store of completion signals, one row per (enrollment, activity)."""

    async def get(self, enrollment_id: UUID, activity_id: UUID) -> ActivityState | None: ...
    async def get_many(
        self, enrollment_id: UUID, activity_ids: list[UUID]
    ) -> dict[UUID, ActivityState]: ...
    async def upsert(self, state: ActivityState) -> None: ...


class InMemoryActivityStateRepo:
    def __init__(self) -> None:
        self._by_key: dict[tuple[UUID, UUID], ActivityState] = {}

    async def get(self, enrollment_id: UUID, activity_id: UUID) -> ActivityState | None:
        return self._by_key.get((enrollment_id, activity_id))

    async def get_many(
        self, enrollment_id: UUID, activity_ids: list[UUID]
    ) -> dict[UUID, ActivityState]:
        found: dict[UUID, ActivityState] = {}
        for activity_id in activity_ids:
            state = self._by_key.get((enrollment_id, activity_id))
            if state is not None:
                found[activity_id] = state
        return found

    async def upsert(self, state: ActivityState) -> None:
        self._by_key[(state.enrollment_id, state.activity_id)] = state
