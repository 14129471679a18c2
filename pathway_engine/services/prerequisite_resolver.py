"""Prerequisite evaluation for one (enrollment, activity) pair.

An activity may declare several prerequisite groups.  Every group must be
satisfied on its own (AND across groups); inside a group the type decides:

  all_of  every item complete
  any_of  at least one item complete
  n_of_m  at least ``n_required`` items complete (every item when unset)

An item is "met" only when its ActivityState is ``complete``.  Exemptions
do not count as completion here.
"""

from __future__ import annotations

import logging
from uuid import UUID

from pathway_engine.models.activity import PrerequisiteGroup
from pathway_engine.models.availability import PrerequisiteCheck
from pathway_engine.models.progress import ActivityState
from pathway_engine.repos.activity_repo import ActivityCatalog
from pathway_engine.repos.activity_state_repo import ActivityStateRepo

logger = logging.getLogger(__name__)


def required_count(group: PrerequisiteGroup) -> int:
    """How many complete items ``group`` needs."""
    total = len(group.items)
    if group.prereq_type == "any_of":
        return min(1, total)
    if group.prereq_type == "n_of_m" and group.n_required is not None:
        return group.n_required
    # all_of, n_of_m without a count, and any unrecognised stored type
    return total


def effective_prereq_type(group: PrerequisiteGroup) -> str:
    if group.prereq_type in ("any_of", "n_of_m"):
        return group.prereq_type
    return "all_of"


def group_is_satisfied(group: PrerequisiteGroup, met_count: int) -> bool:
    if not group.items:
        return True
    return met_count >= required_count(group)


def evaluate_groups(
    groups: list[PrerequisiteGroup], states: dict[UUID, ActivityState]
) -> PrerequisiteCheck:
    """Pure evaluation of ``groups`` against already loaded ``states``."""
    blockers: list[UUID] = []
    first_unmet: PrerequisiteGroup | None = None

    for group in groups:
        unmet = [
            pid
            for pid in group.prerequisite_ids
            if not (pid in states and states[pid].is_complete)
        ]
        met_count = len(group.items) - len(unmet)
        if group_is_satisfied(group, met_count):
            continue
        if first_unmet is None:
            first_unmet = group
        for pid in unmet:
            if pid not in blockers:
                blockers.append(pid)

    if first_unmet is None:
        return PrerequisiteCheck(satisfied=True)
    return PrerequisiteCheck(
        satisfied=False,
        blocking_activity_ids=tuple(blockers),
        prereq_type=effective_prereq_type(first_unmet),
        n_required=required_count(first_unmet),
    )


class PrerequisiteResolver:
    def __init__(self, catalog: ActivityCatalog, states: ActivityStateRepo) -> None:
        self._catalog = catalog
        self._states = states

    async def check(self, enrollment_id: UUID, activity_id: UUID) -> PrerequisiteCheck:
        groups = await self._catalog.list_prerequisite_groups(activity_id)
        if not groups:
            return PrerequisiteCheck(satisfied=True)

        prereq_ids = list({pid for g in groups for pid in g.prerequisite_ids})
        states = await self._states.get_many(enrollment_id, prereq_ids)
        result = evaluate_groups(groups, states)

        if not result.satisfied:
            logger.debug(
                "Prerequisites unmet for activity=%s blockers=%d",
                activity_id,
                len(result.blocking_activity_ids),
                extra={"enrollment_id": str(enrollment_id), "activity_id": str(activity_id)},
            )
        return result
