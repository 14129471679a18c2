from __future__ import annotations

from typing import Protocol
from uuid import UUID

from pathway_engine.models.progress import Override


class OverrideRepo(Protocol):
    """Append-only override log.  Only the latest entry per pair counts."""

    async def add(self, override: Override) -> None: ...
    async def latest(self, enrollment_id: UUID, activity_id: UUID) -> Override | None: ...


class InMemoryOverrideRepo:
    def __init__(self) -> None:
        self._log: list[Override] = []

    async def add(self, override: Override) -> None:
        self._log.append(override)

    async def latest(self, enrollment_id: UUID, activity_id: UUID) -> Override | None:
        matches = [
            o
            for o in self._log
            if o.enrollment_id == enrollment_id and o.activity_id == activity_id
        ]
        if not matches:
            return None
        # Later appends win ties on created_at.
        latest = matches[0]
        for o in matches[1:]:
            if o.created_at >= latest.created_at:
                latest = o
        return latest
