"""Typed "recompute requested" signal.

Any subsystem that changes completion state for an enrollment emits a
``RecomputeRequested`` afterwards.  Two deliveries exist:

  InlineRecomputeDispatcher  awaits every subscribed handler in-process
                             before ``emit`` returns (the default).
  QueuedRecomputeDispatcher  pushes the event onto the recompute task
                             queue; the worker consumes it.

Either way the consumer is idempotent: recomputing reads only current
stored state, so duplicate or late deliveries converge.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from pathway_engine.core.metrics import RECOMPUTE_REQUESTS
from pathway_engine.services.task_queue import TaskQueue

logger = logging.getLogger(__name__)

RECOMPUTE_QUEUE = "rollup_recompute"


@dataclass(frozen=True, slots=True)
class RecomputeRequested:
    enrollment_id: UUID
    source: str = "unknown"  # activity_state|override|lms_sync|assessment|coaching|...

    def to_payload(self) -> dict:
        return {"enrollment_id": str(self.enrollment_id), "source": self.source}

    @staticmethod
    def from_payload(payload: dict) -> RecomputeRequested:
        return RecomputeRequested(
            enrollment_id=UUID(payload["enrollment_id"]),
            source=payload.get("source", "unknown"),
        )


RecomputeHandler = Callable[[RecomputeRequested], Awaitable[None]]


class RecomputeDispatcher(Protocol):
    async def emit(self, event: RecomputeRequested) -> None: ...


class InlineRecomputeDispatcher:
    def __init__(self) -> None:
        self._handlers: list[RecomputeHandler] = []

    def subscribe(self, handler: RecomputeHandler) -> None:
        self._handlers.append(handler)

    async def emit(self, event: RecomputeRequested) -> None:
        RECOMPUTE_REQUESTS.labels(delivery="inline").inc()
        logger.debug(
            "Recompute requested by %s",
            event.source,
            extra={"enrollment_id": str(event.enrollment_id)},
        )
        # Handler errors reach the emitter: it must know the rollup is stale.
        for handler in self._handlers:
            await handler(event)


class QueuedRecomputeDispatcher:
    def __init__(self, queue: TaskQueue, queue_name: str = RECOMPUTE_QUEUE) -> None:
        self._queue = queue
        self._queue_name = queue_name

    async def emit(self, event: RecomputeRequested) -> None:
        task = await self._queue.enqueue(self._queue_name, event.to_payload())
        RECOMPUTE_REQUESTS.labels(delivery="queue").inc()
        logger.debug(
            "Recompute queued task=%s by %s",
            task.id,
            event.source,
            extra={"enrollment_id": str(event.enrollment_id)},
        )
