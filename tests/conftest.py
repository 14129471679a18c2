from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from pathway_engine.main import app
from pathway_engine.models.activity import Activity, ActivityType, DripRule, PrerequisiteGroup
from pathway_engine.models.enrollment import Enrollment
from pathway_engine.models.progress import ActivityState
from pathway_engine.services.container import memory_engine
from pathway_engine.services.task_queue import task_queue

# Ensure repo root is on sys.path so `import pathway_engine` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_memory_engine() -> None:
    """Clear every in-memory store behind the shared engine between tests."""
    repos = memory_engine.repos
    repos.catalog._activities.clear()  # type: ignore[attr-defined]
    repos.catalog._groups.clear()  # type: ignore[attr-defined]
    repos.catalog._drip_rules.clear()  # type: ignore[attr-defined]
    repos.enrollments._by_id.clear()  # type: ignore[attr-defined]
    repos.states._by_key.clear()  # type: ignore[attr-defined]
    repos.overrides._log.clear()  # type: ignore[attr-defined]
    repos.rollups._by_enrollment.clear()  # type: ignore[attr-defined]


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    """Clear task queues between tests."""
    if hasattr(task_queue, "_queues"):
        task_queue._queues.clear()  # type: ignore[union-attr]
        task_queue._processing.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


# ---------------------------------------------------------------------------
# Seed helpers (write straight into the shared in-memory stores)
# ---------------------------------------------------------------------------


def seed_enrollment(
    pathway_id: UUID | None = None,
    *,
    track_id: UUID | None = None,
    status: str = "active",
) -> Enrollment:
    enrollment = Enrollment(
        id=uuid4(),
        user_id=uuid4(),
        track_id=track_id or uuid4(),
        assigned_pathway_id=pathway_id,
        status=status,
    )
    memory_engine.repos.enrollments.add(enrollment)  # type: ignore[attr-defined]
    return enrollment


def seed_activity(
    pathway_id: UUID,
    title: str = "Activity",
    *,
    weight: float = 1.0,
    ordering_hint: int = 0,
    activity_type: ActivityType = "self_assessment",
    external_ref: str | None = None,
) -> Activity:
    activity = Activity.new(
        pathway_id=pathway_id,
        title=title,
        activity_type=activity_type,
        weight=weight,
        ordering_hint=ordering_hint,
        external_ref=external_ref,
    )
    memory_engine.repos.catalog.add_activity(activity)  # type: ignore[attr-defined]
    return activity


def seed_prerequisites(
    activity: Activity, *prereqs: Activity, prereq_type: str = "all_of", n_required=None
) -> PrerequisiteGroup:
    group = PrerequisiteGroup.new(
        activity_id=activity.id,
        prerequisite_ids=[p.id for p in prereqs],
        prereq_type=prereq_type,  # type: ignore[arg-type]
        n_required=n_required,
    )
    memory_engine.repos.catalog.add_prerequisite_group(group)  # type: ignore[attr-defined]
    return group


def seed_drip(rule: DripRule) -> DripRule:
    memory_engine.repos.catalog.add_drip_rule(rule)  # type: ignore[attr-defined]
    return rule


def state(
    enrollment_id: UUID,
    activity_id: UUID,
    percent: int = 100,
    completed_at: datetime | None = None,
) -> ActivityState:
    """Build a state row: complete when ``completed_at`` is given, else in progress."""
    if completed_at is not None:
        return ActivityState(
            enrollment_id=enrollment_id,
            activity_id=activity_id,
            completion_percent=percent,
            completion_status="complete",
            completed_at=completed_at,
        )
    return ActivityState(
        enrollment_id=enrollment_id,
        activity_id=activity_id,
        completion_percent=percent,
        completion_status="in_progress" if percent else "not_started",
    )
