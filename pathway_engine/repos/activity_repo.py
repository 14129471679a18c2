from __future__ import annotations

from typing import Protocol
from uuid import UUID

from pathway_engine.models.activity import Activity, DripRule, PrerequisiteGroup


class ActivityCatalog(Protocol):
    """Read side of the activity catalog (the editor lives elsewhere)."""

    async def get_activity(self, activity_id: UUID) -> Activity | None: ...
    async def list_active_activities(self, pathway_id: UUID) -> list[Activity]: ...
    async def list_pathway_activity_ids(self, pathway_id: UUID) -> list[UUID]: ...
    async def list_prerequisite_groups(
        self, activity_id: UUID
    ) -> list[PrerequisiteGroup]: ...
    async def list_prerequisite_edges(
        self, activity_ids: list[UUID]
    ) -> list[tuple[UUID, UUID]]: ...
    async def list_drip_rules(self, activity_id: UUID) -> list[DripRule]: ...


class InMemoryActivityCatalog:
    def __init__(self) -> None:
        self._activities: dict[UUID, Activity] = {}
        self._groups: dict[UUID, list[PrerequisiteGroup]] = {}
        self._drip_rules: dict[UUID, list[DripRule]] = {}

    # --- seeding (stands in for the catalog editor) ---

    def add_activity(self, activity: Activity) -> None:
        if activity.id in self._activities:
            raise ValueError("activity already exists")
        self._activities[activity.id] = activity

    def add_prerequisite_group(self, group: PrerequisiteGroup) -> None:
        self._groups.setdefault(group.activity_id, []).append(group)

    def add_drip_rule(self, rule: DripRule) -> None:
        self._drip_rules.setdefault(rule.activity_id, []).append(rule)

    # --- ActivityCatalog ---

    async def get_activity(self, activity_id: UUID) -> Activity | None:
        return self._activities.get(activity_id)

    async def list_active_activities(self, pathway_id: UUID) -> list[Activity]:
        activities = [
            a
            for a in self._activities.values()
            if a.pathway_id == pathway_id and a.is_active
        ]
        # sorted() is stable, so equal hints keep insertion order
        return sorted(activities, key=lambda a: a.ordering_hint)

    async def list_pathway_activity_ids(self, pathway_id: UUID) -> list[UUID]:
        return [a.id for a in self._activities.values() if a.pathway_id == pathway_id]

    async def list_prerequisite_groups(
        self, activity_id: UUID
    ) -> list[PrerequisiteGroup]:
        return list(self._groups.get(activity_id, []))

    async def list_prerequisite_edges(
        self, activity_ids: list[UUID]
    ) -> list[tuple[UUID, UUID]]:
        wanted = set(activity_ids)
        return [
            (group.activity_id, prereq_id)
            for activity_id, groups in self._groups.items()
            if activity_id in wanted
            for group in groups
            for prereq_id in group.prerequisite_ids
        ]

    async def list_drip_rules(self, activity_id: UUID) -> list[DripRule]:
        return list(self._drip_rules.get(activity_id, []))
