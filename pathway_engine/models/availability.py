from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import UUID

AvailabilityStatus = Literal["completed", "locked", "available"]
LockedReason = Literal["prereq", "drip"]


@dataclass(frozen=True, slots=True)
class PrerequisiteCheck:
    satisfied: bool
    blocking_activity_ids: tuple[UUID, ...] = ()
    # Of the first unmet group, so callers can render "2 of 3 complete".
    prereq_type: str | None = None
    n_required: int | None = None


@dataclass(frozen=True, slots=True)
class DripCheck:
    satisfied: bool
    next_available_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class Availability:
    status: AvailabilityStatus
    locked_reason: LockedReason | None = None
    blocking_activity_ids: tuple[UUID, ...] = ()
    next_available_at: datetime | None = None
    prereq_type: str | None = None
    n_required: int | None = None

    @staticmethod
    def completed() -> Availability:
        return Availability(status="completed")

    @staticmethod
    def available() -> Availability:
        return Availability(status="available")

    @staticmethod
    def locked_by_prereq(check: PrerequisiteCheck) -> Availability:
        return Availability(
            status="locked",
            locked_reason="prereq",
            blocking_activity_ids=check.blocking_activity_ids,
            prereq_type=check.prereq_type,
            n_required=check.n_required,
        )

    @staticmethod
    def locked_by_drip(next_available_at: datetime | None) -> Availability:
        return Availability(
            status="locked",
            locked_reason="drip",
            next_available_at=next_available_at,
        )
