"""Write endpoints: completion signals and overrides.

Both write first, then emit a recompute request.  With inline delivery
the rollup is fresh when the response returns; with queued delivery the
worker catches up shortly after.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from pathway_engine.api.dependencies import get_engine
from pathway_engine.models.progress import CompletionStatus, OverrideType, as_utc
from pathway_engine.services.container import Engine
from pathway_engine.services.errors import ActivityNotFoundError, EnrollmentNotFoundError

router = APIRouter(prefix="/v1/enrollments", tags=["activity-states"])


class ActivityStateIn(BaseModel):
    completion_percent: int = Field(ge=0, le=100)
    completion_status: CompletionStatus
    completed_at: datetime | None = None
    evidence_ref: str | None = None
    source: str = "api"


class ActivityStateOut(BaseModel):
    enrollment_id: UUID
    activity_id: UUID
    completion_percent: int
    completion_status: str
    completed_at: datetime | None
    evidence_ref: str | None


class OverrideIn(BaseModel):
    override_type: OverrideType
    applied_by: UUID | None = None
    reason: str | None = None


class OverrideOut(BaseModel):
    id: UUID
    enrollment_id: UUID
    activity_id: UUID
    override_type: str
    applied_by: UUID | None
    reason: str | None
    created_at: datetime


async def _require_targets(engine: Engine, enrollment_id: UUID, activity_id: UUID) -> None:
    # Checked before writing so an unknown id leaves no orphaned rows.
    if await engine.repos.enrollments.get_by_id(enrollment_id) is None:
        raise EnrollmentNotFoundError(enrollment_id)
    if await engine.repos.catalog.get_activity(activity_id) is None:
        raise ActivityNotFoundError(activity_id)


@router.put(
    "/{enrollment_id}/activities/{activity_id}/state",
    response_model=ActivityStateOut,
)
async def put_activity_state(
    enrollment_id: UUID,
    activity_id: UUID,
    body: ActivityStateIn,
    engine: Annotated[Engine, Depends(get_engine)],
) -> ActivityStateOut:
    await _require_targets(engine, enrollment_id, activity_id)
    state = await engine.activity_states.record(
        enrollment_id,
        activity_id,
        body.completion_percent,
        body.completion_status,
        as_utc(body.completed_at) if body.completed_at is not None else None,
        evidence_ref=body.evidence_ref,
        source=body.source,
    )
    return ActivityStateOut(
        enrollment_id=state.enrollment_id,
        activity_id=state.activity_id,
        completion_percent=state.completion_percent,
        completion_status=state.completion_status,
        completed_at=state.completed_at,
        evidence_ref=state.evidence_ref,
    )


@router.post(
    "/{enrollment_id}/activities/{activity_id}/overrides",
    response_model=OverrideOut,
    status_code=status.HTTP_201_CREATED,
)
async def post_override(
    enrollment_id: UUID,
    activity_id: UUID,
    body: OverrideIn,
    engine: Annotated[Engine, Depends(get_engine)],
) -> OverrideOut:
    await _require_targets(engine, enrollment_id, activity_id)
    override = await engine.overrides.apply(
        enrollment_id,
        activity_id,
        body.override_type,
        applied_by=body.applied_by,
        reason=body.reason,
    )
    return OverrideOut(
        id=override.id,
        enrollment_id=override.enrollment_id,
        activity_id=override.activity_id,
        override_type=override.override_type,
        applied_by=override.applied_by,
        reason=override.reason,
        created_at=override.created_at,
    )
