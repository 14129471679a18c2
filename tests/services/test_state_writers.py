from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from uuid import uuid4

import pytest

from pathway_engine.services.container import memory_engine
from pathway_engine.services.recompute_events import RecomputeRequested
from pathway_engine.services.state_writers import ActivityStateService, OverrideService
from tests.conftest import seed_activity, seed_enrollment

T0 = datetime(2025, 5, 10, 14, 30, tzinfo=UTC)


class _RecordingDispatcher:
    def __init__(self) -> None:
        self.events: list[RecomputeRequested] = []

    async def emit(self, event: RecomputeRequested) -> None:
        self.events.append(event)


class _BrokenDispatcher:
    async def emit(self, event: RecomputeRequested) -> None:
        raise ConnectionError("queue down")


def test_record_writes_state_then_emits() -> None:
    dispatcher = _RecordingDispatcher()
    service = ActivityStateService(memory_engine.repos.states, dispatcher, clock=lambda: T0)
    eid, aid = uuid4(), uuid4()

    saved = asyncio.run(
        service.record(eid, aid, 40, "in_progress", evidence_ref="lms:42", source="lms_sync")
    )

    assert saved.last_computed_at == T0
    assert asyncio.run(memory_engine.repos.states.get(eid, aid)) == saved
    assert dispatcher.events == [RecomputeRequested(enrollment_id=eid, source="lms_sync")]


def test_mark_complete_defaults_completed_at_to_now() -> None:
    dispatcher = _RecordingDispatcher()
    service = ActivityStateService(memory_engine.repos.states, dispatcher, clock=lambda: T0)

    saved = asyncio.run(service.mark_complete(uuid4(), uuid4()))

    assert saved.completion_percent == 100
    assert saved.completion_status == "complete"
    assert saved.completed_at == T0


@pytest.mark.parametrize(
    ("percent", "status", "completed_at"),
    [
        (101, "in_progress", None),
        (-1, "not_started", None),
        (100, "complete", None),
        (50, "in_progress", T0),
        (50, "finished", None),
    ],
)
def test_record_rejects_invalid_signal(percent, status, completed_at) -> None:
    dispatcher = _RecordingDispatcher()
    service = ActivityStateService(memory_engine.repos.states, dispatcher)

    with pytest.raises(ValueError):
        asyncio.run(service.record(uuid4(), uuid4(), percent, status, completed_at))

    assert dispatcher.events == []
    assert memory_engine.repos.states._by_key == {}  # type: ignore[attr-defined]


def test_write_survives_failed_emit() -> None:
    service = ActivityStateService(memory_engine.repos.states, _BrokenDispatcher())
    eid, aid = uuid4(), uuid4()

    with pytest.raises(ConnectionError):
        asyncio.run(service.record(eid, aid, 10, "in_progress"))

    # The rollup is stale but the signal itself was stored.
    assert asyncio.run(memory_engine.repos.states.get(eid, aid)) is not None


def test_shared_engine_write_refreshes_rollup() -> None:
    pathway = uuid4()
    enrollment = seed_enrollment(pathway)
    a = seed_activity(pathway, "A")
    seed_activity(pathway, "B")

    asyncio.run(memory_engine.activity_states.mark_complete(enrollment.id, a.id))

    rollup = asyncio.run(memory_engine.repos.rollups.get(enrollment.id))
    assert rollup is not None
    assert rollup.pathway_completion_percent == 50.0


def test_override_apply_appends_and_emits() -> None:
    dispatcher = _RecordingDispatcher()
    service = OverrideService(memory_engine.repos.overrides, dispatcher)
    eid, aid, admin = uuid4(), uuid4(), uuid4()

    override = asyncio.run(
        service.apply(eid, aid, "exempt", applied_by=admin, reason="prior learning")
    )

    latest = asyncio.run(memory_engine.repos.overrides.latest(eid, aid))
    assert latest == override
    assert override.applied_by == admin
    assert dispatcher.events == [RecomputeRequested(enrollment_id=eid, source="override")]


def test_override_apply_rejects_unknown_type() -> None:
    dispatcher = _RecordingDispatcher()
    service = OverrideService(memory_engine.repos.overrides, dispatcher)

    with pytest.raises(ValueError, match="override_type"):
        asyncio.run(service.apply(uuid4(), uuid4(), "skip"))  # type: ignore[arg-type]

    assert dispatcher.events == []
