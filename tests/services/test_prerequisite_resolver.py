from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from uuid import uuid4

from pathway_engine.models.activity import PrerequisiteGroup, PrerequisiteItem
from pathway_engine.services.container import memory_engine
from pathway_engine.services.prerequisite_resolver import (
    PrerequisiteResolver,
    evaluate_groups,
    group_is_satisfied,
)
from tests.conftest import seed_activity, seed_enrollment, seed_prerequisites, state

T0 = datetime(2025, 5, 1, 9, 0, tzinfo=UTC)


def _resolver() -> PrerequisiteResolver:
    return PrerequisiteResolver(memory_engine.repos.catalog, memory_engine.repos.states)


def _complete(enrollment_id, *activities) -> None:
    for activity in activities:
        asyncio.run(
            memory_engine.repos.states.upsert(state(enrollment_id, activity.id, 100, T0))
        )


# ---- group semantics ----


def test_empty_group_is_satisfied() -> None:
    group = PrerequisiteGroup.new(activity_id=uuid4(), prerequisite_ids=[])
    assert group_is_satisfied(group, 0)


def test_n_of_m_without_n_required_needs_every_item() -> None:
    group = PrerequisiteGroup.new(
        activity_id=uuid4(), prerequisite_ids=[uuid4(), uuid4()], prereq_type="n_of_m"
    )
    assert not group_is_satisfied(group, 1)
    assert group_is_satisfied(group, 2)


def test_unknown_group_type_behaves_like_all_of() -> None:
    group_id = uuid4()
    group = PrerequisiteGroup(
        id=group_id,
        activity_id=uuid4(),
        prereq_type="legacy",  # type: ignore[arg-type]
        items=(
            PrerequisiteItem(group_id=group_id, prerequisite_activity_id=uuid4()),
            PrerequisiteItem(group_id=group_id, prerequisite_activity_id=uuid4()),
        ),
    )
    assert not group_is_satisfied(group, 1)
    assert group_is_satisfied(group, 2)


def test_in_progress_item_is_not_met() -> None:
    eid, a = uuid4(), uuid4()
    group = PrerequisiteGroup.new(activity_id=uuid4(), prerequisite_ids=[a])
    result = evaluate_groups([group], {a: state(eid, a, 90)})
    assert not result.satisfied
    assert result.blocking_activity_ids == (a,)


# ---- resolver against the stores ----


def test_no_groups_is_satisfied() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    c = seed_activity(pathway, "C")

    result = asyncio.run(_resolver().check(enrollment.id, c.id))

    assert result.satisfied
    assert result.blocking_activity_ids == ()


def test_all_of_blocks_until_every_item_complete() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    a, b, c = (seed_activity(pathway, t) for t in "ABC")
    seed_prerequisites(c, a, b)

    result = asyncio.run(_resolver().check(enrollment.id, c.id))
    assert not result.satisfied
    assert result.blocking_activity_ids == (a.id, b.id)

    _complete(enrollment.id, a)
    result = asyncio.run(_resolver().check(enrollment.id, c.id))
    assert not result.satisfied
    assert result.blocking_activity_ids == (b.id,)

    _complete(enrollment.id, b)
    result = asyncio.run(_resolver().check(enrollment.id, c.id))
    assert result.satisfied


def test_any_of_satisfied_by_one_item() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    a, b, c = (seed_activity(pathway, t) for t in "ABC")
    seed_prerequisites(c, a, b, prereq_type="any_of")

    assert not asyncio.run(_resolver().check(enrollment.id, c.id)).satisfied

    _complete(enrollment.id, b)
    assert asyncio.run(_resolver().check(enrollment.id, c.id)).satisfied


def test_n_of_m_counts_met_items() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    a, b, d, c = (seed_activity(pathway, t) for t in "ABDC")
    seed_prerequisites(c, a, b, d, prereq_type="n_of_m", n_required=2)

    _complete(enrollment.id, a)
    result = asyncio.run(_resolver().check(enrollment.id, c.id))
    assert not result.satisfied
    assert set(result.blocking_activity_ids) == {b.id, d.id}
    assert result.prereq_type == "n_of_m"
    assert result.n_required == 2

    _complete(enrollment.id, d)
    assert asyncio.run(_resolver().check(enrollment.id, c.id)).satisfied


def test_every_group_must_hold_and_blockers_are_unioned() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    a, b, d, c = (seed_activity(pathway, t) for t in "ABDC")
    seed_prerequisites(c, a, b, prereq_type="any_of")
    seed_prerequisites(c, b, d)

    _complete(enrollment.id, a)
    result = asyncio.run(_resolver().check(enrollment.id, c.id))

    # any_of group is satisfied by A; all_of group still needs B and D
    assert not result.satisfied
    assert result.blocking_activity_ids == (b.id, d.id)
    assert result.prereq_type == "all_of"
    assert result.n_required == 2


def test_blockers_from_satisfied_groups_are_not_reported() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    a, b, d, c = (seed_activity(pathway, t) for t in "ABDC")
    seed_prerequisites(c, a, b, prereq_type="any_of")
    seed_prerequisites(c, d)

    _complete(enrollment.id, a)
    result = asyncio.run(_resolver().check(enrollment.id, c.id))

    assert result.blocking_activity_ids == (d.id,)


def test_lock_reports_the_first_unmet_group() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    a, b, d, c = (seed_activity(pathway, t) for t in "ABDC")
    seed_prerequisites(c, a, b, prereq_type="any_of")
    seed_prerequisites(c, a, b, d, prereq_type="n_of_m", n_required=2)

    result = asyncio.run(_resolver().check(enrollment.id, c.id))

    assert result.prereq_type == "any_of"
    assert result.n_required == 1


def test_satisfied_check_carries_no_group_detail() -> None:
    eid, a = uuid4(), uuid4()
    group = PrerequisiteGroup.new(activity_id=uuid4(), prerequisite_ids=[a])
    result = evaluate_groups([group], {a: state(eid, a, 100, T0)})
    assert result.satisfied
    assert result.prereq_type is None
    assert result.n_required is None
