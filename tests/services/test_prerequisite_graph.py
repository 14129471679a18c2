from __future__ import annotations

import asyncio
from uuid import uuid4

from pathway_engine.services.container import memory_engine
from pathway_engine.services.prerequisite_graph import find_cycle, find_prerequisite_cycle
from tests.conftest import seed_activity, seed_prerequisites


def _check(pathway_id, activity, proposed):
    return asyncio.run(
        find_prerequisite_cycle(
            memory_engine.repos.catalog, pathway_id, activity.id, [p.id for p in proposed]
        )
    )


def test_find_cycle_acyclic() -> None:
    a, b, c = uuid4(), uuid4(), uuid4()

    assert find_cycle({a: [b, c], b: [c], c: []}) is None


def test_find_cycle_reports_path() -> None:
    a, b, c = uuid4(), uuid4(), uuid4()

    assert find_cycle({a: [b], b: [c], c: [a]}) == [a, b, c, a]


def test_find_cycle_self_loop() -> None:
    a = uuid4()

    assert find_cycle({a: [a]}) == [a, a]


def test_find_cycle_ignores_unknown_neighbours() -> None:
    a = uuid4()

    assert find_cycle({a: [uuid4()]}) is None


def test_proposal_closing_a_loop_is_rejected() -> None:
    pathway = uuid4()
    a, b, c = (seed_activity(pathway, t) for t in "ABC")
    seed_prerequisites(b, a)
    seed_prerequisites(c, b)

    cycle = _check(pathway, a, [c])

    assert cycle == [a.id, c.id, b.id, a.id]


def test_proposal_replaces_existing_edges() -> None:
    pathway = uuid4()
    a, b = seed_activity(pathway, "A"), seed_activity(pathway, "B")
    seed_prerequisites(a, b)

    # The proposal replaces A's stored A -> B edge.
    assert _check(pathway, a, []) is None
    assert _check(pathway, b, [a]) == [a.id, b.id, a.id]


def test_prerequisites_outside_pathway_are_leaves() -> None:
    pathway = uuid4()
    a = seed_activity(pathway, "A")
    external = seed_activity(uuid4(), "Elsewhere")

    assert _check(pathway, a, [external]) is None
