from __future__ import annotations

from typing import Protocol
from uuid import UUID

from pathway_engine.models.progress import CompletionRollup


class RollupRepo(Protocol):
    async def get(self, enrollment_id: UUID) -> CompletionRollup | None: ...
    async def get_many(self, enrollment_ids: list[UUID]) -> list[CompletionRollup]: ...
    async def upsert(self, rollup: CompletionRollup) -> None: ...


class InMemoryRollupRepo:
    def __init__(self) -> None:
        self._by_enrollment: dict[UUID, CompletionRollup] = {}

    async def get(self, enrollment_id: UUID) -> CompletionRollup | None:
        return self._by_enrollment.get(enrollment_id)

    async def get_many(self, enrollment_ids: list[UUID]) -> list[CompletionRollup]:
        return [
            self._by_enrollment[eid]
            for eid in enrollment_ids
            if eid in self._by_enrollment
        ]

    async def upsert(self, rollup: CompletionRollup) -> None:
        # Keyed by enrollment: never more than one row each.
        self._by_enrollment[rollup.enrollment_id] = rollup
