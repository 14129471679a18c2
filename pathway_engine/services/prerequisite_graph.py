"""Cycle check for prerequisite edits.

Before the catalog editor saves prerequisite groups for an activity, it
asks whether the proposed prerequisites would make the pathway's
dependency graph cyclic.  Edges point from an activity to each of its
prerequisites; prerequisites outside the pathway are leaves.
"""

from __future__ import annotations

from uuid import UUID

from pathway_engine.repos.activity_repo import ActivityCatalog

_WHITE, _GRAY, _BLACK = 0, 1, 2


def find_cycle(adjacency: dict[UUID, list[UUID]]) -> list[UUID] | None:
    """Iterative three-colour DFS.

    Returns the cycle as a path whose first and last node are the same,
    or None when the graph is acyclic.  Neighbours missing from
    ``adjacency`` are treated as finished leaves.
    """
    color = {node: _WHITE for node in adjacency}

    for start in adjacency:
        if color[start] != _WHITE:
            continue

        color[start] = _GRAY
        stack: list[UUID] = [start]
        position: dict[UUID, int] = {start: 0}

        while stack:
            node = stack[-1]
            neighbours = adjacency[node]
            if position[node] >= len(neighbours):
                color[node] = _BLACK
                stack.pop()
                continue

            nxt = neighbours[position[node]]
            position[node] += 1

            state = color.get(nxt, _BLACK)
            if state == _GRAY:
                return stack[stack.index(nxt) :] + [nxt]
            if state == _WHITE:
                color[nxt] = _GRAY
                position[nxt] = 0
                stack.append(nxt)

    return None


async def find_prerequisite_cycle(
    catalog: ActivityCatalog,
    pathway_id: UUID,
    activity_id: UUID,
    proposed_prereq_ids: list[UUID],
) -> list[UUID] | None:
    activity_ids = await catalog.list_pathway_activity_ids(pathway_id)
    adjacency: dict[UUID, list[UUID]] = {aid: [] for aid in activity_ids}

    for dependent, prereq in await catalog.list_prerequisite_edges(activity_ids):
        if dependent == activity_id:
            continue  # replaced by the proposal below
        adjacency.setdefault(dependent, []).append(prereq)

    adjacency[activity_id] = list(proposed_prereq_ids)
    for prereq in proposed_prereq_ids:
        adjacency.setdefault(prereq, [])

    return find_cycle(adjacency)
