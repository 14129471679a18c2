"""Write-side helpers: mutate completion state, then request a recompute.

The write and the recompute are separate steps.  If the emit fails the
write stays, and the rollup is stale until the next write for the same
enrollment triggers another recompute.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from uuid import UUID

from pathway_engine.models.progress import (
    ActivityState,
    CompletionStatus,
    Override,
    OverrideType,
    utcnow,
)
from pathway_engine.repos.activity_state_repo import ActivityStateRepo
from pathway_engine.repos.override_repo import OverrideRepo
from pathway_engine.services.recompute_events import (
    RecomputeDispatcher,
    RecomputeRequested,
)

logger = logging.getLogger(__name__)


class ActivityStateService:
    def __init__(
        self,
        states: ActivityStateRepo,
        dispatcher: RecomputeDispatcher,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._states = states
        self._dispatcher = dispatcher
        self._clock = clock

    async def record(
        self,
        enrollment_id: UUID,
        activity_id: UUID,
        percent: int,
        status: CompletionStatus,
        completed_at: datetime | None = None,
        *,
        evidence_ref: str | None = None,
        source: str = "activity_state",
    ) -> ActivityState:
        """Store a completion signal and emit a recompute request.

        Raises ValueError when the signal breaks an ActivityState invariant
        (percent outside 0..100, completed_at without complete, ...).
        """
        state = ActivityState(
            enrollment_id=enrollment_id,
            activity_id=activity_id,
            completion_percent=percent,
            completion_status=status,
            completed_at=completed_at,
            last_computed_at=self._clock(),
            evidence_ref=evidence_ref,
        )
        await self._states.upsert(state)
        logger.info(
            "Activity state recorded status=%s percent=%d source=%s",
            status,
            percent,
            source,
            extra={"enrollment_id": str(enrollment_id), "activity_id": str(activity_id)},
        )
        await self._dispatcher.emit(
            RecomputeRequested(enrollment_id=enrollment_id, source=source)
        )
        return state

    async def mark_complete(
        self,
        enrollment_id: UUID,
        activity_id: UUID,
        *,
        completed_at: datetime | None = None,
        evidence_ref: str | None = None,
        source: str = "activity_state",
    ) -> ActivityState:
        return await self.record(
            enrollment_id,
            activity_id,
            100,
            "complete",
            completed_at or self._clock(),
            evidence_ref=evidence_ref,
            source=source,
        )


class OverrideService:
    def __init__(self, overrides: OverrideRepo, dispatcher: RecomputeDispatcher) -> None:
        self._overrides = overrides
        self._dispatcher = dispatcher

    async def apply(
        self,
        enrollment_id: UUID,
        activity_id: UUID,
        override_type: OverrideType,
        *,
        applied_by: UUID | None = None,
        reason: str | None = None,
    ) -> Override:
        override = Override.new(
            enrollment_id=enrollment_id,
            activity_id=activity_id,
            override_type=override_type,
            applied_by=applied_by,
            reason=reason,
        )
        await self._overrides.add(override)
        logger.info(
            "Override applied type=%s by=%s",
            override_type,
            applied_by,
            extra={"enrollment_id": str(enrollment_id), "activity_id": str(activity_id)},
        )
        await self._dispatcher.emit(
            RecomputeRequested(enrollment_id=enrollment_id, source="override")
        )
        return override
