"""Completion rollup endpoints.

GET reads the cached rollup (computing it once on a miss); POST forces a
recompute from current state.  Track endpoints aggregate over the
track's active enrollments.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from pathway_engine.api.dependencies import get_engine
from pathway_engine.models.progress import CompletionRollup
from pathway_engine.services.container import Engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["rollups"])


class RollupOut(BaseModel):
    enrollment_id: UUID
    track_id: UUID
    pathway_completion_percent: float
    track_completion_percent: float
    last_computed_at: datetime


class TrackSummaryOut(BaseModel):
    track_id: UUID
    total_enrollments: int
    avg_completion_percent: float


class TrackRecomputeOut(BaseModel):
    track_id: UUID
    updated: int
    errors: int


def _rollup_out(rollup: CompletionRollup) -> RollupOut:
    return RollupOut(
        enrollment_id=rollup.enrollment_id,
        track_id=rollup.track_id,
        pathway_completion_percent=rollup.pathway_completion_percent,
        track_completion_percent=rollup.track_completion_percent,
        last_computed_at=rollup.last_computed_at,
    )


@router.get("/enrollments/{enrollment_id}/rollup", response_model=RollupOut)
async def get_rollup(
    enrollment_id: UUID,
    engine: Annotated[Engine, Depends(get_engine)],
) -> RollupOut:
    return _rollup_out(await engine.aggregator.get_enrollment_completion(enrollment_id))


@router.post("/enrollments/{enrollment_id}/rollup/recompute", response_model=RollupOut)
async def recompute_rollup(
    enrollment_id: UUID,
    engine: Annotated[Engine, Depends(get_engine)],
) -> RollupOut:
    return _rollup_out(await engine.aggregator.compute_rollup(enrollment_id))


@router.get("/tracks/{track_id}/completion-summary", response_model=TrackSummaryOut)
async def get_track_summary(
    track_id: UUID,
    engine: Annotated[Engine, Depends(get_engine)],
) -> TrackSummaryOut:
    summary = await engine.aggregator.track_completion_summary(track_id)
    return TrackSummaryOut(
        track_id=track_id,
        total_enrollments=summary.total_enrollments,
        avg_completion_percent=summary.avg_completion_percent,
    )


@router.post("/tracks/{track_id}/rollups/recompute", response_model=TrackRecomputeOut)
async def recompute_track(
    track_id: UUID,
    engine: Annotated[Engine, Depends(get_engine)],
) -> TrackRecomputeOut:
    summary = await engine.aggregator.recompute_track_rollups(track_id)
    if summary.errors:
        logger.warning(
            "Track recompute finished with %d failed enrollments",
            summary.errors,
            extra={"track_id": str(track_id)},
        )
    return TrackRecomputeOut(
        track_id=track_id, updated=summary.updated, errors=summary.errors
    )
