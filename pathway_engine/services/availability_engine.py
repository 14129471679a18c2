"""Per-activity availability decision.

Evaluation order is fixed and first match wins:

  1. ActivityState complete          -> completed
  2. latest override is ``exempt``   -> completed
  3. prerequisites unmet             -> locked (prereq)
  4. drip gate closed, no unlock     -> locked (drip)
  5. otherwise                       -> available

``manual_unlock`` skips step 4 only.  ``grace_unlock`` is recorded but has
no effect on the decision.  Nothing is persisted; the same inputs always
give the same answer.
"""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from pathway_engine.core.metrics import AVAILABILITY_DECISIONS
from pathway_engine.models.activity import Activity
from pathway_engine.models.availability import Availability
from pathway_engine.repos.activity_repo import ActivityCatalog
from pathway_engine.repos.activity_state_repo import ActivityStateRepo
from pathway_engine.repos.enrollment_repo import EnrollmentRepo
from pathway_engine.repos.override_repo import OverrideRepo
from pathway_engine.services.drip_scheduler import DripScheduler
from pathway_engine.services.errors import EnrollmentNotFoundError
from pathway_engine.services.prerequisite_resolver import PrerequisiteResolver

logger = logging.getLogger(__name__)


class AvailabilityEngine:
    def __init__(
        self,
        *,
        catalog: ActivityCatalog,
        enrollments: EnrollmentRepo,
        states: ActivityStateRepo,
        overrides: OverrideRepo,
    ) -> None:
        self._catalog = catalog
        self._enrollments = enrollments
        self._states = states
        self._overrides = overrides
        self._prerequisites = PrerequisiteResolver(catalog, states)
        self._drip = DripScheduler(catalog, states)

    async def compute_availability(
        self, enrollment_id: UUID, activity_id: UUID, now: datetime
    ) -> Availability:
        result = await self._decide(enrollment_id, activity_id, now)
        AVAILABILITY_DECISIONS.labels(
            status=result.status,
            locked_reason=result.locked_reason or "none",
        ).inc()
        return result

    async def _decide(
        self, enrollment_id: UUID, activity_id: UUID, now: datetime
    ) -> Availability:
        state = await self._states.get(enrollment_id, activity_id)
        if state is not None and state.is_complete:
            return Availability.completed()

        override = await self._overrides.latest(enrollment_id, activity_id)
        override_type = override.override_type if override is not None else None
        if override_type == "exempt":
            return Availability.completed()

        prereq = await self._prerequisites.check(enrollment_id, activity_id)
        if not prereq.satisfied:
            return Availability.locked_by_prereq(prereq)

        if override_type == "manual_unlock":
            logger.debug(
                "Drip bypassed by manual_unlock for activity=%s",
                activity_id,
                extra={"enrollment_id": str(enrollment_id), "activity_id": str(activity_id)},
            )
            return Availability.available()

        drip = await self._drip.check(enrollment_id, activity_id, now)
        if not drip.satisfied:
            return Availability.locked_by_drip(drip.next_available_at)

        return Availability.available()

    async def compute_pathway_availability(
        self, enrollment_id: UUID, now: datetime
    ) -> list[tuple[Activity, Availability]]:
        """Availability of every active activity in the assigned pathway."""
        enrollment = await self._enrollments.get_by_id(enrollment_id)
        if enrollment is None:
            raise EnrollmentNotFoundError(enrollment_id)
        if enrollment.assigned_pathway_id is None:
            return []

        activities = await self._catalog.list_active_activities(
            enrollment.assigned_pathway_id
        )
        return [
            (activity, await self.compute_availability(enrollment_id, activity.id, now))
            for activity in activities
        ]
