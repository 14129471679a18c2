from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from pathway_engine.models.activity import DripRule
from pathway_engine.services.container import memory_engine
from pathway_engine.services.drip_scheduler import DripScheduler, evaluate_rules
from tests.conftest import seed_activity, seed_drip, seed_enrollment, state

RELEASE = datetime(2025, 6, 1, tzinfo=UTC)
T0 = datetime(2025, 5, 10, 14, 30, tzinfo=UTC)


def _scheduler() -> DripScheduler:
    return DripScheduler(memory_engine.repos.catalog, memory_engine.repos.states)


def test_no_rules_is_satisfied() -> None:
    assert evaluate_rules([], {}, T0).satisfied


def test_fixed_date_locked_one_second_before_release() -> None:
    rule = DripRule.fixed_date(activity_id=uuid4(), release_at=RELEASE)

    result = evaluate_rules([rule], {}, RELEASE - timedelta(seconds=1))

    assert not result.satisfied
    assert result.next_available_at == RELEASE


def test_fixed_date_open_at_release_instant() -> None:
    rule = DripRule.fixed_date(activity_id=uuid4(), release_at=RELEASE)

    assert evaluate_rules([rule], {}, RELEASE).satisfied
    assert evaluate_rules([rule], {}, RELEASE + timedelta(days=30)).satisfied


def test_naive_times_are_treated_as_utc() -> None:
    rule = DripRule.fixed_date(activity_id=uuid4(), release_at=datetime(2025, 6, 1))

    result = evaluate_rules([rule], {}, datetime(2025, 5, 31, 23, 59, 59))

    assert not result.satisfied
    assert result.next_available_at == RELEASE


def test_after_completion_delay_with_incomplete_base_has_unknown_time() -> None:
    eid, base = uuid4(), uuid4()
    rule = DripRule.after_completion(activity_id=uuid4(), base_activity_id=base, delay_days=3)

    result = evaluate_rules([rule], {base: state(eid, base, 40)}, T0)

    assert not result.satisfied
    assert result.next_available_at is None


def test_after_completion_delay_counts_from_base_completion() -> None:
    eid, base = uuid4(), uuid4()
    rule = DripRule.after_completion(activity_id=uuid4(), base_activity_id=base, delay_days=3)
    states = {base: state(eid, base, 100, T0)}

    locked = evaluate_rules([rule], states, T0 + timedelta(days=3) - timedelta(seconds=1))
    assert not locked.satisfied
    assert locked.next_available_at == T0 + timedelta(days=3)

    assert evaluate_rules([rule], states, T0 + timedelta(days=3)).satisfied


def test_next_available_at_is_latest_known_candidate() -> None:
    eid, base = uuid4(), uuid4()
    activity_id = uuid4()
    rules = [
        DripRule.fixed_date(activity_id=activity_id, release_at=RELEASE),
        DripRule.after_completion(
            activity_id=activity_id, base_activity_id=base, delay_days=40
        ),
    ]

    result = evaluate_rules(rules, {base: state(eid, base, 100, T0)}, T0)

    assert result.next_available_at == T0 + timedelta(days=40)


def test_unknown_rule_does_not_hide_known_candidate() -> None:
    eid, base = uuid4(), uuid4()
    activity_id = uuid4()
    rules = [
        DripRule.fixed_date(activity_id=activity_id, release_at=RELEASE),
        DripRule.after_completion(activity_id=activity_id, base_activity_id=base, delay_days=1),
    ]

    result = evaluate_rules(rules, {}, T0)

    assert not result.satisfied
    assert result.next_available_at == RELEASE


def test_malformed_rules_are_unconstrained() -> None:
    activity_id = uuid4()
    rules = [
        DripRule(id=uuid4(), activity_id=activity_id, drip_type="fixed_date"),
        DripRule(id=uuid4(), activity_id=activity_id, drip_type="after_completion_delay"),
    ]

    assert evaluate_rules(rules, {}, T0).satisfied


def test_scheduler_reads_base_state_from_store() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    a = seed_activity(pathway, "A")
    e = seed_activity(pathway, "E")
    seed_drip(DripRule.after_completion(activity_id=e.id, base_activity_id=a.id, delay_days=3))

    before = asyncio.run(_scheduler().check(enrollment.id, e.id, T0))
    assert not before.satisfied
    assert before.next_available_at is None

    asyncio.run(memory_engine.repos.states.upsert(state(enrollment.id, a.id, 100, T0)))

    after = asyncio.run(_scheduler().check(enrollment.id, e.id, T0 + timedelta(days=1)))
    assert not after.satisfied
    assert after.next_available_at == T0 + timedelta(days=3)
