from __future__ import annotations

from typing import Protocol
from uuid import UUID

from pathway_engine.models.enrollment import Enrollment


class EnrollmentRepo(Protocol):
    async def get_by_id(self, enrollment_id: UUID) -> Enrollment | None: ...
    async def list_active_for_track(self, track_id: UUID) -> list[Enrollment]: ...


class InMemoryEnrollmentRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Enrollment] = {}

    def add(self, enrollment: Enrollment) -> None:
        if enrollment.id in self._by_id:
            raise ValueError("enrollment already exists")
        self._by_id[enrollment.id] = enrollment

    async def get_by_id(self, enrollment_id: UUID) -> Enrollment | None:
        return self._by_id.get(enrollment_id)

    async def list_active_for_track(self, track_id: UUID) -> list[Enrollment]:
        return [
            e
            for e in self._by_id.values()
            if e.track_id == track_id and e.status == "active"
        ]
