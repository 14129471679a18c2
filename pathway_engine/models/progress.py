from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

CompletionStatus = Literal["not_started", "in_progress", "complete"]
OverrideType = Literal["exempt", "manual_unlock", "grace_unlock"]

COMPLETION_STATUSES: tuple[str, ...] = ("not_started", "in_progress", "complete")
OVERRIDE_TYPES: tuple[str, ...] = ("exempt", "manual_unlock", "grace_unlock")


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(frozen=True, slots=True)
class ActivityState:
    """Last known completion signal for one (enrollment, activity) pair.

    Written only by subsystems that observe real completion (assessment
    submission, coaching attendance, LMS sync).  The engine reads it.
    """

    enrollment_id: UUID
    activity_id: UUID
    completion_percent: int = 0
    completion_status: CompletionStatus = "not_started"
    completed_at: datetime | None = None
    last_computed_at: datetime | None = None
    evidence_ref: str | None = None

    def __post_init__(self) -> None:
        if self.completion_status not in COMPLETION_STATUSES:
            raise ValueError(
                f"completion_status must be one of {COMPLETION_STATUSES} "
                f"(got {self.completion_status!r})"
            )
        if not 0 <= self.completion_percent <= 100:
            raise ValueError(
                f"completion_percent must be 0..100 (got {self.completion_percent})"
            )
        is_complete = self.completion_status == "complete"
        if is_complete and self.completed_at is None:
            raise ValueError("completed_at is required when status is complete")
        if not is_complete and self.completed_at is not None:
            raise ValueError("completed_at is only allowed when status is complete")

    @property
    def is_complete(self) -> bool:
        return self.completion_status == "complete"


@dataclass(frozen=True, slots=True)
class Override:
    """Administrator-applied exception.  Append-only; latest wins."""

    id: UUID
    enrollment_id: UUID
    activity_id: UUID
    override_type: OverrideType
    created_at: datetime
    applied_by: UUID | None = None
    reason: str | None = None

    def __post_init__(self) -> None:
        if self.override_type not in OVERRIDE_TYPES:
            raise ValueError(
                f"override_type must be one of {OVERRIDE_TYPES} "
                f"(got {self.override_type!r})"
            )

    @staticmethod
    def new(
        *,
        enrollment_id: UUID,
        activity_id: UUID,
        override_type: OverrideType,
        applied_by: UUID | None = None,
        reason: str | None = None,
        created_at: datetime | None = None,
    ) -> Override:
        return Override(
            id=uuid4(),
            enrollment_id=enrollment_id,
            activity_id=activity_id,
            override_type=override_type,
            created_at=created_at or utcnow(),
            applied_by=applied_by,
            reason=reason,
        )


@dataclass(frozen=True, slots=True)
class CompletionRollup:
    """Cached weighted completion for one enrollment.

    pathway and track percents are equal while an enrollment has a single
    assigned pathway.
    """

    enrollment_id: UUID
    track_id: UUID | None
    pathway_completion_percent: float
    track_completion_percent: float
    last_computed_at: datetime
