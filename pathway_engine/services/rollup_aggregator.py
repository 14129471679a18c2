"""Completion rollup: weighted completion percent per enrollment.

For the enrollment's assigned pathway:

    percent = round(Σ(weight × activity_percent) / Σ(weight), 2)

where weight is the activity's effective weight (non-positive -> 1.0) and
activity_percent is the stored ActivityState percent, or the live provider
percent when no state row exists yet.  No pathway or no active activities
gives 0.0.  The result is upserted as the enrollment's single cached
CompletionRollup row.

Exempt overrides are not counted as completion here: they change gating
only.  Callers that need "effective" completion must combine the two.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from pathway_engine.core.metrics import ROLLUP_COMPUTATIONS, ROLLUP_DURATION
from pathway_engine.models.enrollment import Enrollment
from pathway_engine.models.progress import CompletionRollup, utcnow
from pathway_engine.repos.activity_repo import ActivityCatalog
from pathway_engine.repos.activity_state_repo import ActivityStateRepo
from pathway_engine.repos.enrollment_repo import EnrollmentRepo
from pathway_engine.repos.rollup_repo import RollupRepo
from pathway_engine.services.errors import (
    EnrollmentNotFoundError,
    RollupPersistenceError,
)
from pathway_engine.services.progress_providers import ProgressProviderRegistry
from pathway_engine.services.recompute_events import RecomputeRequested

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")


def round_percent(value: float) -> float:
    """Round half-up to 2 decimal places (72.505 -> 72.51, not 72.5)."""
    return float(Decimal(repr(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


@dataclass(frozen=True, slots=True)
class RecomputeSummary:
    updated: int
    errors: int


@dataclass(frozen=True, slots=True)
class TrackCompletionSummary:
    total_enrollments: int
    avg_completion_percent: float


class RollupAggregator:
    def __init__(
        self,
        *,
        catalog: ActivityCatalog,
        enrollments: EnrollmentRepo,
        states: ActivityStateRepo,
        rollups: RollupRepo,
        providers: ProgressProviderRegistry | None = None,
        clock: Callable[[], datetime] = utcnow,
        rollback: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._catalog = catalog
        self._enrollments = enrollments
        self._states = states
        self._rollups = rollups
        self._providers = providers or ProgressProviderRegistry()
        self._clock = clock
        self._rollback = rollback

    async def compute_rollup(self, enrollment_id: UUID) -> CompletionRollup:
        """Recompute and persist the rollup for one enrollment.

        Raises:
            EnrollmentNotFoundError: unknown enrollment id.
            RollupPersistenceError: the upsert failed; the stored rollup
                (if any) no longer reflects current state.
        """
        with ROLLUP_DURATION.time():
            enrollment = await self._enrollments.get_by_id(enrollment_id)
            if enrollment is None:
                ROLLUP_COMPUTATIONS.labels(result="not_found").inc()
                logger.warning("Rollup requested for unknown enrollment=%s", enrollment_id)
                raise EnrollmentNotFoundError(enrollment_id)

            percent = await self._weighted_percent(enrollment)
            rollup = CompletionRollup(
                enrollment_id=enrollment.id,
                track_id=enrollment.track_id,
                pathway_completion_percent=percent,
                track_completion_percent=percent,
                last_computed_at=self._clock(),
            )

            try:
                await self._rollups.upsert(rollup)
            except Exception as exc:
                ROLLUP_COMPUTATIONS.labels(result="persist_error").inc()
                logger.exception(
                    "Failed to persist rollup for enrollment=%s",
                    enrollment_id,
                    extra={"enrollment_id": str(enrollment_id)},
                )
                raise RollupPersistenceError(enrollment_id) from exc

        ROLLUP_COMPUTATIONS.labels(result="ok").inc()
        logger.info(
            "Rollup computed enrollment=%s percent=%.2f",
            enrollment_id,
            percent,
            extra={"enrollment_id": str(enrollment_id), "track_id": str(enrollment.track_id)},
        )
        return rollup

    async def _weighted_percent(self, enrollment: Enrollment) -> float:
        if enrollment.assigned_pathway_id is None:
            return 0.0

        activities = await self._catalog.list_active_activities(
            enrollment.assigned_pathway_id
        )
        if not activities:
            return 0.0

        states = await self._states.get_many(
            enrollment.id, [a.id for a in activities]
        )

        total_weight = 0.0
        weighted_sum = 0.0
        for activity in activities:
            weight = activity.effective_weight
            state = states.get(activity.id)
            if state is not None:
                percent = state.completion_percent
            else:
                percent = await self._providers.live_percent(activity, enrollment.user_id)
            total_weight += weight
            weighted_sum += weight * percent

        return round_percent(weighted_sum / total_weight)

    async def on_recompute_requested(self, event: RecomputeRequested) -> None:
        await self.compute_rollup(event.enrollment_id)

    async def get_enrollment_completion(self, enrollment_id: UUID) -> CompletionRollup:
        """Cached rollup, computed once on a cache miss."""
        cached = await self._rollups.get(enrollment_id)
        if cached is not None:
            return cached
        return await self.compute_rollup(enrollment_id)

    async def recompute_track_rollups(self, track_id: UUID) -> RecomputeSummary:
        updated = 0
        errors = 0
        for enrollment in await self._enrollments.list_active_for_track(track_id):
            try:
                await self.compute_rollup(enrollment.id)
            except (EnrollmentNotFoundError, RollupPersistenceError):
                # Already logged by compute_rollup.
                errors += 1
                await self._recover(enrollment.id)
            except Exception:
                logger.exception(
                    "Rollup failed for enrollment=%s during track recompute",
                    enrollment.id,
                    extra={"enrollment_id": str(enrollment.id), "track_id": str(track_id)},
                )
                errors += 1
                await self._recover(enrollment.id)
            else:
                updated += 1

        logger.info(
            "Track rollups recomputed updated=%d errors=%d",
            updated,
            errors,
            extra={"track_id": str(track_id)},
        )
        return RecomputeSummary(updated=updated, errors=errors)

    async def _recover(self, enrollment_id: UUID) -> None:
        """Reset a shared session after a failed enrollment so the batch goes on."""
        if self._rollback is None:
            return
        try:
            await self._rollback()
        except Exception:
            logger.exception(
                "Rollback failed after enrollment=%s",
                enrollment_id,
                extra={"enrollment_id": str(enrollment_id)},
            )

    async def track_completion_summary(self, track_id: UUID) -> TrackCompletionSummary:
        enrollments = await self._enrollments.list_active_for_track(track_id)
        rollups = await self._rollups.get_many([e.id for e in enrollments])
        if not rollups:
            average = 0.0
        else:
            average = round_percent(
                sum(r.track_completion_percent for r in rollups) / len(rollups)
            )
        return TrackCompletionSummary(
            total_enrollments=len(enrollments),
            avg_completion_percent=average,
        )
