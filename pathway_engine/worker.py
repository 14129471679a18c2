"""Background worker for queued recompute delivery.

RUN:  python -m pathway_engine.worker

Used when RECOMPUTE_DELIVERY=queue.  State writers enqueue a
``RecomputeRequested`` payload and return; this process dequeues it and
runs the aggregator's recompute against current stored state.  Same
image as the API, different command:

  api:    uvicorn pathway_engine.main:app --host 0.0.0.0 --port 8000
  worker: python -m pathway_engine.worker

A task is acked only after its handler returns.  Tasks left unacked by a
worker that died are requeued when the next worker starts.  A task whose
recompute fails with a persistence error is re-enqueued up to
MAX_ATTEMPTS times.  Recompute is idempotent, so a retry or a redelivery
that races a newer task for the same enrollment still converges.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from pathway_engine.core.config import SETTINGS
from pathway_engine.core.logging import setup_logging
from pathway_engine.core.metrics import QUEUE_DEPTH
from pathway_engine.services.container import engine_scope
from pathway_engine.services.errors import EnrollmentNotFoundError, RollupPersistenceError
from pathway_engine.services.recompute_events import RECOMPUTE_QUEUE, RecomputeRequested
from pathway_engine.services.task_queue import Task, task_queue

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("pathway_engine.worker")

MAX_ATTEMPTS = 3


# ---------------------------------------------------------------------------
# Handler registry
# ---------------------------------------------------------------------------

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


@register_handler(RECOMPUTE_QUEUE)
async def handle_recompute(payload: dict) -> None:
    event = RecomputeRequested.from_payload(payload)
    async with engine_scope() as engine:
        try:
            await engine.aggregator.on_recompute_requested(event)
        except EnrollmentNotFoundError:
            # Nothing to retry: the enrollment is gone.
            logger.warning(
                "Dropping recompute for unknown enrollment=%s (source=%s)",
                event.enrollment_id,
                event.source,
            )


# ---------------------------------------------------------------------------
# Worker loop
# ---------------------------------------------------------------------------


async def _retry(task: Task) -> None:
    attempt = int(task.payload.get("attempt", 1))
    if attempt >= MAX_ATTEMPTS:
        logger.error(
            "Task %s on [%s] gave up after %d attempts", task.id, task.queue, attempt
        )
        return
    await task_queue.enqueue(task.queue, {**task.payload, "attempt": attempt + 1})
    logger.warning(
        "Task %s on [%s] re-enqueued (attempt %d)", task.id, task.queue, attempt + 1
    )


async def process_one(queue_name: str, timeout: int = 1) -> bool:
    """Dequeue and handle a single task.  Returns False when the queue was empty."""
    task = await task_queue.dequeue(queue_name, timeout=timeout)
    QUEUE_DEPTH.labels(queue_name=queue_name).set(
        await task_queue.queue_length(queue_name)
    )
    if task is None:
        return False

    handler = HANDLERS[queue_name]
    try:
        await handler(task.payload)
        logger.info("Task %s on [%s] completed", task.id, queue_name)
    except RollupPersistenceError:
        logger.exception("Task %s on [%s] failed to persist", task.id, queue_name)
        await _retry(task)
    except Exception:
        # Malformed payloads and unexpected bugs: log and move on.
        logger.exception("Task %s on [%s] failed", task.id, queue_name)
    # Not reached if the process dies mid-task; requeue_stale recovers it.
    await task_queue.ack(task)
    return True


async def run_worker() -> None:
    """Poll all registered queues round-robin and dispatch tasks."""
    queues = list(HANDLERS.keys())
    if not SETTINGS.queues_recompute:
        logger.warning(
            "RECOMPUTE_DELIVERY=%s: the API recomputes inline and enqueues nothing",
            SETTINGS.recompute_delivery,
        )
    for queue_name in queues:
        recovered = await task_queue.requeue_stale(queue_name)
        if recovered:
            logger.warning(
                "Requeued %d unfinished task(s) on [%s]", recovered, queue_name
            )
    logger.info("Worker started, listening on queues: %s", queues)

    while True:
        for queue_name in queues:
            await process_one(queue_name, timeout=1)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
