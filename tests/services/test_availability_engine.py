from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from pathway_engine.models.activity import DripRule
from pathway_engine.models.availability import Availability
from pathway_engine.models.progress import Override
from pathway_engine.services.container import memory_engine
from pathway_engine.services.errors import EnrollmentNotFoundError
from tests.conftest import (
    seed_activity,
    seed_drip,
    seed_enrollment,
    seed_prerequisites,
    state,
)

RELEASE = datetime(2025, 6, 1, tzinfo=UTC)
T0 = datetime(2025, 5, 10, 14, 30, tzinfo=UTC)


def _availability(enrollment_id, activity_id, now=T0) -> Availability:
    return asyncio.run(
        memory_engine.availability.compute_availability(enrollment_id, activity_id, now)
    )


def _override(enrollment_id, activity_id, override_type, created_at=None) -> None:
    asyncio.run(
        memory_engine.repos.overrides.add(
            Override.new(
                enrollment_id=enrollment_id,
                activity_id=activity_id,
                override_type=override_type,
                created_at=created_at,
            )
        )
    )


def _save(s) -> None:
    asyncio.run(memory_engine.repos.states.upsert(s))


def test_unconstrained_activity_is_available() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    a = seed_activity(pathway, "A")

    assert _availability(enrollment.id, a.id) == Availability.available()


def test_complete_state_is_completed() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    a, c = seed_activity(pathway, "A"), seed_activity(pathway, "C")
    seed_prerequisites(c, a)
    _save(state(enrollment.id, c.id, 100, T0))

    # Completion wins even though prerequisites were never met.
    assert _availability(enrollment.id, c.id).status == "completed"


def test_all_of_locks_until_both_complete() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    a, b, c = (seed_activity(pathway, t) for t in "ABC")
    seed_prerequisites(c, a, b)

    locked = _availability(enrollment.id, c.id)
    assert locked.status == "locked"
    assert locked.locked_reason == "prereq"
    assert locked.blocking_activity_ids == (a.id, b.id)

    _save(state(enrollment.id, a.id, 100, T0))
    assert _availability(enrollment.id, c.id).blocking_activity_ids == (b.id,)

    _save(state(enrollment.id, b.id, 100, T0))
    assert _availability(enrollment.id, c.id).status == "available"


def test_fixed_date_boundary() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    d = seed_activity(pathway, "D")
    seed_drip(DripRule.fixed_date(activity_id=d.id, release_at=RELEASE))

    before = _availability(enrollment.id, d.id, datetime(2025, 5, 31, 23, 59, 59, tzinfo=UTC))
    assert before == Availability.locked_by_drip(RELEASE)

    assert _availability(enrollment.id, d.id, RELEASE).status == "available"


def test_prerequisites_are_checked_before_drip() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    a, d = seed_activity(pathway, "A"), seed_activity(pathway, "D")
    seed_prerequisites(d, a)
    seed_drip(DripRule.fixed_date(activity_id=d.id, release_at=RELEASE))

    result = _availability(enrollment.id, d.id)

    assert result.locked_reason == "prereq"
    assert result.next_available_at is None


@pytest.mark.parametrize("gated_by", ["prereq", "drip", "none"])
def test_exempt_reports_completed_regardless_of_gates(gated_by: str) -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    a, x = seed_activity(pathway, "A"), seed_activity(pathway, "X")
    if gated_by == "prereq":
        seed_prerequisites(x, a)
    elif gated_by == "drip":
        seed_drip(DripRule.fixed_date(activity_id=x.id, release_at=RELEASE))
    _save(state(enrollment.id, x.id, 10))
    _override(enrollment.id, x.id, "exempt")

    assert _availability(enrollment.id, x.id) == Availability.completed()


def test_manual_unlock_bypasses_drip() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    d = seed_activity(pathway, "D")
    seed_drip(DripRule.fixed_date(activity_id=d.id, release_at=RELEASE))
    _override(enrollment.id, d.id, "manual_unlock")

    assert _availability(enrollment.id, d.id).status == "available"


def test_manual_unlock_does_not_bypass_prerequisites() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    a, d = seed_activity(pathway, "A"), seed_activity(pathway, "D")
    seed_prerequisites(d, a)
    seed_drip(DripRule.fixed_date(activity_id=d.id, release_at=RELEASE))
    _override(enrollment.id, d.id, "manual_unlock")

    result = _availability(enrollment.id, d.id)

    assert result.status == "locked"
    assert result.locked_reason == "prereq"
    assert result.blocking_activity_ids == (a.id,)


def test_grace_unlock_has_no_effect() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    a, d = seed_activity(pathway, "A"), seed_activity(pathway, "D")
    seed_prerequisites(d, a)
    _override(enrollment.id, d.id, "grace_unlock")

    assert _availability(enrollment.id, d.id).locked_reason == "prereq"


def test_latest_override_wins() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    d = seed_activity(pathway, "D")
    seed_drip(DripRule.fixed_date(activity_id=d.id, release_at=RELEASE))
    _override(enrollment.id, d.id, "exempt", created_at=T0 - timedelta(days=2))
    _override(enrollment.id, d.id, "manual_unlock", created_at=T0 - timedelta(days=1))

    assert _availability(enrollment.id, d.id).status == "available"


def test_exempt_does_not_satisfy_dependents() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    a, c = seed_activity(pathway, "A"), seed_activity(pathway, "C")
    seed_prerequisites(c, a)
    _override(enrollment.id, a.id, "exempt")

    assert _availability(enrollment.id, a.id).status == "completed"
    assert _availability(enrollment.id, c.id).locked_reason == "prereq"


def test_same_inputs_give_same_decision() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    d = seed_activity(pathway, "D")
    seed_drip(DripRule.fixed_date(activity_id=d.id, release_at=RELEASE))

    assert _availability(enrollment.id, d.id) == _availability(enrollment.id, d.id)


# ---- pathway listing ----


def test_pathway_availability_in_ordering_hint_order() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    b = seed_activity(pathway, "B", ordering_hint=2)
    a = seed_activity(pathway, "A", ordering_hint=1)
    seed_prerequisites(b, a)

    pairs = asyncio.run(
        memory_engine.availability.compute_pathway_availability(enrollment.id, T0)
    )

    assert [activity.title for activity, _ in pairs] == ["A", "B"]
    assert [result.status for _, result in pairs] == ["available", "locked"]


def test_pathway_availability_empty_without_pathway() -> None:
    enrollment = seed_enrollment(None)

    pairs = asyncio.run(
        memory_engine.availability.compute_pathway_availability(enrollment.id, T0)
    )

    assert pairs == []


def test_pathway_availability_unknown_enrollment() -> None:
    with pytest.raises(EnrollmentNotFoundError):
        asyncio.run(memory_engine.availability.compute_pathway_availability(uuid4(), T0))
