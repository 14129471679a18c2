from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import UUID, uuid4

ActivityType = Literal[
    "external_course",
    "self_assessment",
    "peer_assessment",
    "attendance",
    "observation",
]
ActivityStatus = Literal["active", "removed"]
PrereqType = Literal["all_of", "any_of", "n_of_m"]
DripType = Literal["fixed_date", "after_completion_delay"]


@dataclass(frozen=True, slots=True)
class Activity:
    id: UUID
    pathway_id: UUID
    title: str
    activity_type: ActivityType
    weight: float = 1.0
    ordering_hint: int = 0
    status: ActivityStatus = "active"
    external_ref: str | None = None  # opaque, e.g. '{"course_id": 42}'

    @property
    def effective_weight(self) -> float:
        """Declared weight, or 1.0 when it is missing or not positive."""
        if self.weight is None or self.weight <= 0:
            return 1.0
        return float(self.weight)

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @staticmethod
    def new(
        *,
        pathway_id: UUID,
        title: str,
        activity_type: ActivityType,
        weight: float = 1.0,
        ordering_hint: int = 0,
        external_ref: str | None = None,
    ) -> Activity:
        return Activity(
            id=uuid4(),
            pathway_id=pathway_id,
            title=title,
            activity_type=activity_type,
            weight=weight,
            ordering_hint=ordering_hint,
            external_ref=external_ref,
        )


@dataclass(frozen=True, slots=True)
class PrerequisiteItem:
    group_id: UUID
    prerequisite_activity_id: UUID


@dataclass(frozen=True, slots=True)
class PrerequisiteGroup:
    id: UUID
    activity_id: UUID
    prereq_type: PrereqType = "all_of"
    n_required: int | None = None  # n_of_m only; None means every item
    items: tuple[PrerequisiteItem, ...] = ()

    @property
    def prerequisite_ids(self) -> tuple[UUID, ...]:
        return tuple(item.prerequisite_activity_id for item in self.items)

    @staticmethod
    def new(
        *,
        activity_id: UUID,
        prerequisite_ids: list[UUID] | tuple[UUID, ...],
        prereq_type: PrereqType = "all_of",
        n_required: int | None = None,
    ) -> PrerequisiteGroup:
        group_id = uuid4()
        return PrerequisiteGroup(
            id=group_id,
            activity_id=activity_id,
            prereq_type=prereq_type,
            n_required=n_required,
            items=tuple(
                PrerequisiteItem(group_id=group_id, prerequisite_activity_id=pid)
                for pid in prerequisite_ids
            ),
        )


@dataclass(frozen=True, slots=True)
class DripRule:
    id: UUID
    activity_id: UUID
    drip_type: DripType
    release_at: datetime | None = None  # fixed_date
    base_activity_id: UUID | None = None  # after_completion_delay
    delay_days: int = 0  # after_completion_delay

    @staticmethod
    def fixed_date(*, activity_id: UUID, release_at: datetime) -> DripRule:
        return DripRule(
            id=uuid4(),
            activity_id=activity_id,
            drip_type="fixed_date",
            release_at=release_at,
        )

    @staticmethod
    def after_completion(
        *, activity_id: UUID, base_activity_id: UUID, delay_days: int
    ) -> DripRule:
        return DripRule(
            id=uuid4(),
            activity_id=activity_id,
            drip_type="after_completion_delay",
            base_activity_id=base_activity_id,
            delay_days=delay_days,
        )
