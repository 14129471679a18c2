"""Recompute task queue with at-least-once delivery.

Used when RECOMPUTE_DELIVERY=queue.  State writers push a recompute task
and return; ``python -m pathway_engine.worker`` consumes it.

A dequeued task is not deleted.  It moves atomically onto the queue's
processing list (``tasks:<queue>:processing``) and stays there until the
worker acks it.  A worker that dies mid-task leaves the entry behind, and
``requeue_stale`` puts it back on the queue when a worker starts.  A task
can therefore run twice; recompute reads only current stored state, so a
duplicate converges on the same rollup.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from pathway_engine.db.redis import redis_pool


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    queue: str
    payload: dict
    # Exact serialized form as stored in Redis; LREM matches on it.
    raw: str | None = field(default=None, compare=False, repr=False)


@runtime_checkable
class TaskQueue(Protocol):
    async def enqueue(self, queue: str, payload: dict) -> Task: ...
    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None: ...
    async def ack(self, task: Task) -> None: ...
    async def requeue_stale(self, queue: str) -> int: ...
    async def queue_length(self, queue: str) -> int: ...


class InMemoryTaskQueue:
    """Single-process stand-in for RedisTaskQueue (tests, local runs)."""

    def __init__(self) -> None:
        self._queues: dict[str, list[Task]] = {}
        self._processing: dict[str, list[Task]] = {}

    async def enqueue(self, queue: str, payload: dict) -> Task:
        task = Task(id=str(uuid.uuid4()), queue=queue, payload=payload)
        self._queues.setdefault(queue, []).append(task)
        return task

    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None:
        pending = self._queues.get(queue)
        if not pending:
            return None
        task = pending.pop(0)
        self._processing.setdefault(queue, []).append(task)
        return task

    async def ack(self, task: Task) -> None:
        in_flight = self._processing.get(task.queue, [])
        for i, held in enumerate(in_flight):
            if held.id == task.id:
                del in_flight[i]
                return

    async def requeue_stale(self, queue: str) -> int:
        stale = self._processing.pop(queue, [])
        # Oldest first, ahead of anything queued since.
        self._queues[queue] = stale + self._queues.get(queue, [])
        return len(stale)

    async def queue_length(self, queue: str) -> int:
        return len(self._queues.get(queue, []))


class RedisTaskQueue:
    """LPUSH in, BLMOVE tail -> processing head, LREM on ack."""

    _PREFIX = "tasks:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    def _key(self, queue: str) -> str:
        return f"{self._PREFIX}{queue}"

    def _processing_key(self, queue: str) -> str:
        return f"{self._PREFIX}{queue}:processing"

    async def enqueue(self, queue: str, payload: dict) -> Task:
        task = Task(id=str(uuid.uuid4()), queue=queue, payload=payload)
        raw = json.dumps({"id": task.id, "queue": task.queue, "payload": task.payload})
        await self._redis.lpush(self._key(queue), raw)
        return task

    async def dequeue(self, queue: str, timeout: int = 5) -> Task | None:
        raw = await self._redis.blmove(
            self._key(queue),
            self._processing_key(queue),
            timeout,
            src="RIGHT",
            dest="LEFT",
        )
        if raw is None:
            return None
        data = json.loads(raw)
        return Task(id=data["id"], queue=data["queue"], payload=data["payload"], raw=raw)

    async def ack(self, task: Task) -> None:
        if task.raw is None:
            raise ValueError(f"task {task.id} was not dequeued from Redis")
        await self._redis.lrem(self._processing_key(task.queue), 1, task.raw)

    async def requeue_stale(self, queue: str) -> int:
        """Move every processing entry back onto the queue's consuming end.

        Run at worker start.  With several workers this also requeues
        entries another live worker still holds; they then run twice.
        """
        moved = 0
        while await self._redis.lmove(
            self._processing_key(queue), self._key(queue), src="LEFT", dest="RIGHT"
        ):
            moved += 1
        return moved

    async def queue_length(self, queue: str) -> int:
        return await self._redis.llen(self._key(queue))


if redis_pool is not None:
    task_queue: TaskQueue = RedisTaskQueue(redis_pool)
else:
    task_queue = InMemoryTaskQueue()
