"""Availability read endpoints.

Availability is never stored: every call evaluates state, overrides,
prerequisites and drip rules at the ``at`` instant (default: now).
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from pathway_engine.api.dependencies import evaluation_time, get_engine
from pathway_engine.models.availability import Availability
from pathway_engine.services.container import Engine

router = APIRouter(prefix="/v1/enrollments", tags=["availability"])


class AvailabilityOut(BaseModel):
    activity_id: UUID
    status: str  # completed|locked|available
    locked_reason: str | None = None  # prereq|drip when locked
    blocking_activity_ids: list[UUID] = []
    next_available_at: datetime | None = None
    prereq_type: str | None = None  # all_of|any_of|n_of_m when locked by prereq
    n_required: int | None = None


class PathwayActivityOut(AvailabilityOut):
    title: str
    activity_type: str
    ordering_hint: int


def _availability_fields(activity_id: UUID, availability: Availability) -> dict:
    return {
        "activity_id": activity_id,
        "status": availability.status,
        "locked_reason": availability.locked_reason,
        "blocking_activity_ids": list(availability.blocking_activity_ids),
        "next_available_at": availability.next_available_at,
        "prereq_type": availability.prereq_type,
        "n_required": availability.n_required,
    }


@router.get(
    "/{enrollment_id}/activities/{activity_id}/availability",
    response_model=AvailabilityOut,
)
async def get_activity_availability(
    enrollment_id: UUID,
    activity_id: UUID,
    engine: Annotated[Engine, Depends(get_engine)],
    at: Annotated[datetime, Depends(evaluation_time)],
) -> AvailabilityOut:
    availability = await engine.availability.compute_availability(
        enrollment_id, activity_id, at
    )
    return AvailabilityOut(**_availability_fields(activity_id, availability))


@router.get(
    "/{enrollment_id}/availability",
    response_model=list[PathwayActivityOut],
)
async def list_pathway_availability(
    enrollment_id: UUID,
    engine: Annotated[Engine, Depends(get_engine)],
    at: Annotated[datetime, Depends(evaluation_time)],
) -> list[PathwayActivityOut]:
    pairs = await engine.availability.compute_pathway_availability(enrollment_id, at)
    return [
        PathwayActivityOut(
            **_availability_fields(activity.id, availability),
            title=activity.title,
            activity_type=activity.activity_type,
            ordering_hint=activity.ordering_hint,
        )
        for activity, availability in pairs
    ]
