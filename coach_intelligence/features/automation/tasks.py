"""
Tracked background tasks.

Work handed off after a request (embedding backfills after a pipeline run)
goes through this queue instead of an unawaited call: every task gets a
TaskRecord whose status and error can be looked up later.
"""

import asyncio
import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel

from coach_intelligence.shared.correlation import CorrelationContext

logger = logging.getLogger("Coach.Automation.Tasks")


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TaskRecord:
    id: str
    name: str
    status: TaskStatus = TaskStatus.PENDING
    created_at: datetime = field(default_factory=_now)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    result: Any = None
    error: Optional[str] = None


class BackgroundTaskQueue:
    """
    Runs coroutine factories as asyncio tasks and keeps their records.

    Args:
        max_history: Finished records kept for status lookups
    """

    def __init__(self, max_history: int = 200):
        self.max_history = max_history
        self._records: "OrderedDict[str, TaskRecord]" = OrderedDict()
        self._tasks: Dict[str, asyncio.Task] = {}

    def enqueue(self, name: str, factory: Callable[[], Awaitable[Any]]) -> TaskRecord:
        """Schedule `factory()` on the running loop and return its record."""
        record = TaskRecord(id=str(uuid.uuid4()), name=name)
        self._records[record.id] = record
        self._prune()

        task = asyncio.create_task(self._run(record, factory), name=f"{name}-{record.id[:8]}")
        self._tasks[record.id] = task
        task.add_done_callback(lambda _: self._tasks.pop(record.id, None))

        logger.info(f"Enqueued background task {name} ({record.id})")
        return record

    async def _run(self, record: TaskRecord, factory: Callable[[], Awaitable[Any]]) -> None:
        record.status = TaskStatus.RUNNING
        record.started_at = _now()
        with CorrelationContext(f"task-{record.id[:8]}"):
            try:
                result = await factory()
                record.result = result.model_dump(mode="json") if isinstance(result, BaseModel) else result
                record.status = TaskStatus.COMPLETED
                logger.info(f"Background task {record.name} completed")
            except Exception as e:
                record.status = TaskStatus.FAILED
                record.error = str(e)
                logger.error(f"Background task {record.name} failed: {e}")
            finally:
                record.finished_at = _now()

    def get(self, task_id: str) -> Optional[TaskRecord]:
        return self._records.get(task_id)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for outstanding tasks; cancel whatever is left after `timeout`."""
        tasks = list(self._tasks.values())
        if not tasks:
            return
        done, not_done = await asyncio.wait(tasks, timeout=timeout)
        for task in not_done:
            task.cancel()
        if not_done:
            logger.warning(f"Cancelled {len(not_done)} background tasks on shutdown")

    def _prune(self) -> None:
        while len(self._records) > self.max_history:
            oldest_id = next(iter(self._records))
            if oldest_id in self._tasks:
                break
            self._records.popitem(last=False)


async def embedding_backfill(runner) -> Dict[str, Any]:
    """Start an embedding job for missing entries and run it to completion."""
    job = await runner.start()
    if job is None:
        return {"job_id": None, "message": "No missing embeddings"}
    progress = await runner.run_to_completion(job.id)
    return progress.model_dump(mode="json")


# Process-wide queue
task_queue = BackgroundTaskQueue()
