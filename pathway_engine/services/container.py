"""Wiring: assemble the engine services over one set of repositories."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from pathway_engine.core.config import SETTINGS, RecomputeDelivery
from pathway_engine.db.engine import async_session_factory, session_scope
from pathway_engine.models.progress import utcnow
from pathway_engine.repos.activity_repo import ActivityCatalog, InMemoryActivityCatalog
from pathway_engine.repos.activity_state_repo import (
    ActivityStateRepo,
    InMemoryActivityStateRepo,
)
from pathway_engine.repos.enrollment_repo import EnrollmentRepo, InMemoryEnrollmentRepo
from pathway_engine.repos.override_repo import InMemoryOverrideRepo, OverrideRepo
from pathway_engine.repos.pg_activity_repo import PgActivityCatalog
from pathway_engine.repos.pg_activity_state_repo import PgActivityStateRepo
from pathway_engine.repos.pg_enrollment_repo import PgEnrollmentRepo
from pathway_engine.repos.pg_override_repo import PgOverrideRepo
from pathway_engine.repos.pg_rollup_repo import PgRollupRepo
from pathway_engine.repos.rollup_repo import InMemoryRollupRepo, RollupRepo
from pathway_engine.services.availability_engine import AvailabilityEngine
from pathway_engine.services.progress_providers import (
    ProgressProviderRegistry,
    build_provider_registry,
)
from pathway_engine.services.recompute_events import (
    InlineRecomputeDispatcher,
    QueuedRecomputeDispatcher,
    RecomputeDispatcher,
)
from pathway_engine.services.rollup_aggregator import RollupAggregator
from pathway_engine.services.state_writers import ActivityStateService, OverrideService
from pathway_engine.services.task_queue import task_queue


@dataclass(frozen=True, slots=True)
class Repositories:
    catalog: ActivityCatalog
    enrollments: EnrollmentRepo
    states: ActivityStateRepo
    overrides: OverrideRepo
    rollups: RollupRepo
    # Resets the shared session after a failed unit inside a batch.
    rollback: Callable[[], Awaitable[None]] | None = None


def in_memory_repositories() -> Repositories:
    return Repositories(
        catalog=InMemoryActivityCatalog(),
        enrollments=InMemoryEnrollmentRepo(),
        states=InMemoryActivityStateRepo(),
        overrides=InMemoryOverrideRepo(),
        rollups=InMemoryRollupRepo(),
    )


def pg_repositories(session: AsyncSession) -> Repositories:
    return Repositories(
        catalog=PgActivityCatalog(session),
        enrollments=PgEnrollmentRepo(session),
        states=PgActivityStateRepo(session),
        overrides=PgOverrideRepo(session),
        rollups=PgRollupRepo(session),
        rollback=session.rollback,
    )


@dataclass(frozen=True, slots=True)
class Engine:
    repos: Repositories
    availability: AvailabilityEngine
    aggregator: RollupAggregator
    activity_states: ActivityStateService
    overrides: OverrideService
    dispatcher: RecomputeDispatcher


def build_engine(
    repos: Repositories,
    *,
    providers: ProgressProviderRegistry | None = None,
    delivery: RecomputeDelivery = "inline",
    clock: Callable[[], datetime] = utcnow,
) -> Engine:
    aggregator = RollupAggregator(
        catalog=repos.catalog,
        enrollments=repos.enrollments,
        states=repos.states,
        rollups=repos.rollups,
        providers=providers,
        clock=clock,
        rollback=repos.rollback,
    )

    dispatcher: RecomputeDispatcher
    if delivery == "queue":
        dispatcher = QueuedRecomputeDispatcher(task_queue)
    else:
        inline = InlineRecomputeDispatcher()
        inline.subscribe(aggregator.on_recompute_requested)
        dispatcher = inline

    return Engine(
        repos=repos,
        availability=AvailabilityEngine(
            catalog=repos.catalog,
            enrollments=repos.enrollments,
            states=repos.states,
            overrides=repos.overrides,
        ),
        aggregator=aggregator,
        activity_states=ActivityStateService(repos.states, dispatcher, clock=clock),
        overrides=OverrideService(repos.overrides, dispatcher),
        dispatcher=dispatcher,
    )


# ---------------------------------------------------------------------------
# Process-wide wiring
# ---------------------------------------------------------------------------
# Without DATABASE_URL every caller shares one in-memory engine.  With it,
# each unit of work (HTTP request, worker task) gets an engine over its own
# session.

providers = build_provider_registry(
    SETTINGS.lms_progress_url, SETTINGS.progress_provider_timeout_seconds
)

memory_engine = build_engine(
    in_memory_repositories(),
    providers=providers,
    delivery=SETTINGS.recompute_delivery,
)


@asynccontextmanager
async def engine_scope() -> AsyncGenerator[Engine, None]:
    if async_session_factory is None:
        yield memory_engine
        return

    async with session_scope() as session:
        yield build_engine(
            pg_repositories(session),
            providers=providers,
            delivery=SETTINGS.recompute_delivery,
        )
