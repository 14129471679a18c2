from __future__ import annotations

from uuid import UUID


class EnrollmentNotFoundError(LookupError):
    def __init__(self, enrollment_id: UUID) -> None:
        super().__init__(f"enrollment {enrollment_id} not found")
        self.enrollment_id = enrollment_id


class RollupPersistenceError(RuntimeError):
    """The rollup was computed but could not be stored; the cache is stale."""

    def __init__(self, enrollment_id: UUID) -> None:
        super().__init__(f"failed to persist completion rollup for {enrollment_id}")
        self.enrollment_id = enrollment_id


class ActivityNotFoundError(LookupError):
    def __init__(self, activity_id: UUID) -> None:
        super().__init__(f"activity {activity_id} not found")
        self.activity_id = activity_id
