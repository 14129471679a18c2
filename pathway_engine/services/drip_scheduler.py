"""Time-based release rules (drip) for one (enrollment, activity) pair.

Evaluated lazily: nothing wakes an activity up when its release time
passes, the next availability query simply sees ``now`` past the gate.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from uuid import UUID

from pathway_engine.models.activity import DripRule
from pathway_engine.models.availability import DripCheck
from pathway_engine.models.progress import ActivityState, as_utc
from pathway_engine.repos.activity_repo import ActivityCatalog
from pathway_engine.repos.activity_state_repo import ActivityStateRepo

logger = logging.getLogger(__name__)


def evaluate_rules(
    rules: list[DripRule],
    base_states: dict[UUID, ActivityState],
    now: datetime,
) -> DripCheck:
    """Pure evaluation of ``rules`` at ``now``.

    A rule whose base activity is not complete blocks with an unknown
    release time.  ``next_available_at`` is the latest known release time,
    or None when only unknown-time rules block.
    """
    now = as_utc(now)
    blocked = False
    candidates: list[datetime] = []

    for rule in rules:
        if rule.drip_type == "fixed_date":
            if rule.release_at is None:
                continue
            release_at = as_utc(rule.release_at)
            if now < release_at:
                blocked = True
                candidates.append(release_at)

        elif rule.drip_type == "after_completion_delay":
            if rule.base_activity_id is None:
                continue
            base = base_states.get(rule.base_activity_id)
            if base is None or not base.is_complete or base.completed_at is None:
                blocked = True
                continue
            release_at = as_utc(base.completed_at) + timedelta(days=rule.delay_days)
            if now < release_at:
                blocked = True
                candidates.append(release_at)

    if not blocked:
        return DripCheck(satisfied=True)
    return DripCheck(
        satisfied=False,
        next_available_at=max(candidates) if candidates else None,
    )


class DripScheduler:
    def __init__(self, catalog: ActivityCatalog, states: ActivityStateRepo) -> None:
        self._catalog = catalog
        self._states = states

    async def check(
        self, enrollment_id: UUID, activity_id: UUID, now: datetime
    ) -> DripCheck:
        rules = await self._catalog.list_drip_rules(activity_id)
        if not rules:
            return DripCheck(satisfied=True)

        base_ids = list(
            {r.base_activity_id for r in rules if r.base_activity_id is not None}
        )
        base_states = await self._states.get_many(enrollment_id, base_ids)
        result = evaluate_rules(rules, base_states, now)

        if not result.satisfied:
            logger.debug(
                "Drip gate closed for activity=%s next_available_at=%s",
                activity_id,
                result.next_available_at,
                extra={"enrollment_id": str(enrollment_id), "activity_id": str(activity_id)},
            )
        return result
