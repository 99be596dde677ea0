"""
Automation Scheduler for the knowledge-refresh pipeline.

Decides whether the pipeline is due, runs it, records each run in
automated_pipeline_runs and keeps the pipeline's config row up to date:

- success: next run one interval later, failure counter reset, and an
  embedding backfill queued when new entries were written
- failure: failure counter incremented and the next run pushed out with
  exponential backoff (capped at the interval); once the counter reaches
  max_failures the circuit breaker stops scheduled runs
"""

import logging
import math
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from coach_intelligence.core.config import settings
from coach_intelligence.shared.constants import PIPELINE_RUN_TYPE
from coach_intelligence.shared.errors import ConfigurationError, PipelineExecutionError
from coach_intelligence.features.automation.models import (
    PipelineConfig,
    PipelineConfigUpdate,
    PipelineStatus,
    RunOutcome,
    ScheduleCheck,
)
from coach_intelligence.features.automation.tasks import BackgroundTaskQueue, embedding_backfill, task_queue

logger = logging.getLogger("Coach.Automation.Scheduler")

DISABLED_MESSAGE = "Pipeline is disabled or not configured"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def should_run(config: PipelineConfig, now: datetime) -> Tuple[bool, str]:
    """
    Whether the pipeline is due at `now`, with the reason.

    A due pipeline is still held back once failure_count reaches max_failures.
    """
    interval = timedelta(minutes=config.interval_minutes)

    if config.last_run_at is None:
        due, reason = True, "First run"
    elif config.next_run_at is None:
        due, reason = True, "No next run time set"
    elif now >= config.next_run_at:
        due, reason = True, "Scheduled time reached"
    elif now - config.last_run_at >= interval:
        due, reason = True, "Interval exceeded"
    else:
        minutes = math.ceil((config.next_run_at - now).total_seconds() / 60)
        due, reason = False, f"Next run in {minutes} minutes"

    if due and config.failure_count >= config.max_failures:
        return False, f"Too many failures ({config.failure_count}/{config.max_failures})"
    return due, reason


def retry_delay(failure_count: int, interval_minutes: int, base_minutes: int) -> timedelta:
    """Backoff after the n-th consecutive failure: base * 2^(n-1), at most one interval."""
    exponent = max(failure_count - 1, 0)
    return timedelta(minutes=min(interval_minutes, base_minutes * 2 ** exponent))


class PipelineScheduler:
    """
    Runs and schedules one named knowledge pipeline.

    Usage:
        scheduler = await get_pipeline_scheduler()
        check = await scheduler.check_scheduled_runs()
    """

    def __init__(
        self,
        pipelines,
        pipeline_client,
        task_queue: BackgroundTaskQueue,
        backfill: Optional[Callable[[], Awaitable[Any]]] = None,
        pipeline_name: str = settings.KNOWLEDGE_PIPELINE_NAME,
        retry_base_minutes: int = settings.PIPELINE_RETRY_BASE_MINUTES,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            pipelines: PipelineRepository
            pipeline_client: Object with `async invoke(batch_size, areas) -> PipelineSummary`
            task_queue: Queue for follow-up work
            backfill: Factory for the embedding backfill queued after a productive run
            pipeline_name: Config row to drive
            retry_base_minutes: First backoff step after a failure
            clock: Source of "now" (UTC)
        """
        self.pipelines = pipelines
        self.pipeline_client = pipeline_client
        self.task_queue = task_queue
        self.backfill = backfill
        self.pipeline_name = pipeline_name
        self.retry_base_minutes = retry_base_minutes
        self.clock = clock

    async def _load_config(self) -> Optional[PipelineConfig]:
        row = await self.pipelines.get_config(self.pipeline_name)
        return PipelineConfig(**row) if row else None

    async def run_pipeline(self, force: bool = False) -> RunOutcome:
        """
        Run the pipeline once.

        Args:
            force: Run even when the config row is disabled (manual operator run)

        Returns:
            RunOutcome; success=False (not an exception) when the pipeline
            is disabled (and not forced) or has no config row

        Raises:
            PipelineExecutionError: the pipeline invocation failed (the run
                and the failure counter are recorded first)
        """
        config = await self._load_config()
        if config is None or not (config.is_enabled or force):
            logger.warning(f"Pipeline {self.pipeline_name}: {DISABLED_MESSAGE}")
            return RunOutcome(success=False, message=DISABLED_MESSAGE)

        started = time.monotonic()
        run = await self.pipelines.create_run({
            "pipeline_type": PIPELINE_RUN_TYPE,
            "status": "pending",
            "started_at": self.clock().isoformat(),
            "metadata": {"pipeline_name": self.pipeline_name},
        })
        run_id = str(run["id"])
        await self.pipelines.update_run(run_id, {"status": "running"})

        try:
            summary = await self.pipeline_client.invoke(
                batch_size=config.max_entries_per_run,
                areas=config.config_data.get("areas"),
            )
        except Exception as e:
            await self._record_failure(config, run_id, started, e)
            raise PipelineExecutionError(str(e), run_id=run_id) from e

        finished = self.clock()
        execution_time_ms = int((time.monotonic() - started) * 1000)
        next_run_at = finished + timedelta(minutes=config.interval_minutes)

        await self.pipelines.update_run(run_id, {
            "status": "completed",
            "completed_at": finished.isoformat(),
            "execution_time_ms": execution_time_ms,
            "entries_processed": summary.total_processed,
            "entries_successful": summary.successful,
            "entries_failed": summary.failed,
            "metadata": {
                "pipeline_name": self.pipeline_name,
                "processed_areas": summary.processed_areas,
            },
        })
        await self.pipelines.update_config(self.pipeline_name, {
            "last_run_at": finished.isoformat(),
            "next_run_at": next_run_at.isoformat(),
            "failure_count": 0,
        })

        task_id = None
        if summary.successful > 0 and self.backfill is not None:
            task_id = self.task_queue.enqueue("embedding_backfill", self.backfill).id

        logger.info(
            f"Pipeline {self.pipeline_name} run {run_id} completed: "
            f"{summary.successful}/{summary.total_processed} successful, next run {next_run_at.isoformat()}"
        )
        return RunOutcome(
            success=True,
            run_id=run_id,
            execution_time_ms=execution_time_ms,
            entries_processed=summary.total_processed,
            entries_successful=summary.successful,
            entries_failed=summary.failed,
            next_run_at=next_run_at,
            embedding_task_id=task_id,
        )

    async def _record_failure(
        self,
        config: PipelineConfig,
        run_id: str,
        started: float,
        error: Exception,
    ) -> None:
        failures = config.failure_count + 1
        now = self.clock()
        next_run_at = now + retry_delay(failures, config.interval_minutes, self.retry_base_minutes)
        logger.error(
            f"Pipeline {self.pipeline_name} run {run_id} failed ({failures}/{config.max_failures}): {error}"
        )
        try:
            await self.pipelines.update_run(run_id, {
                "status": "failed",
                "completed_at": now.isoformat(),
                "execution_time_ms": int((time.monotonic() - started) * 1000),
                "error_message": str(error),
            })
            await self.pipelines.update_config(self.pipeline_name, {
                "failure_count": failures,
                "last_run_at": now.isoformat(),
                "next_run_at": next_run_at.isoformat(),
            })
        except Exception as e:
            logger.error(f"Failed to record pipeline failure for run {run_id}: {e}")

    async def check_scheduled_runs(self) -> ScheduleCheck:
        """Run the pipeline if it is due; otherwise report why not."""
        config = await self._load_config()
        if config is None or not config.is_enabled:
            return ScheduleCheck(success=False, should_run=False, reason=DISABLED_MESSAGE)

        due, reason = should_run(config, self.clock())
        logger.info(f"Pipeline {self.pipeline_name} schedule check: {reason}")

        if not due:
            return ScheduleCheck(
                success=True,
                should_run=False,
                reason=reason,
                last_run_at=config.last_run_at,
                next_run_at=config.next_run_at,
                failure_count=config.failure_count,
            )

        outcome = await self.run_pipeline()
        return ScheduleCheck(
            success=outcome.success,
            should_run=True,
            reason=reason,
            run=outcome,
            last_run_at=config.last_run_at,
            next_run_at=outcome.next_run_at,
            failure_count=0 if outcome.success else config.failure_count,
        )

    async def update_config(self, update: PipelineConfigUpdate) -> PipelineConfig:
        """
        Raises:
            ConfigurationError: no config row exists for this pipeline
        """
        changes: Dict[str, Any] = update.model_dump(exclude_none=True, mode="json")
        if not changes:
            config = await self._load_config()
        else:
            row = await self.pipelines.update_config(self.pipeline_name, changes)
            config = PipelineConfig(**row) if row else None

        if config is None:
            raise ConfigurationError(f"No automation config for pipeline {self.pipeline_name}")
        logger.info(f"Pipeline {self.pipeline_name} config updated: {sorted(changes)}")
        return config

    async def get_status(self) -> PipelineStatus:
        """Config plus the 10 most recent runs."""
        config = await self._load_config()
        runs = await self.pipelines.recent_runs(PIPELINE_RUN_TYPE, limit=10)
        return PipelineStatus(
            config=config,
            recent_runs=runs,
            is_enabled=bool(config and config.is_enabled),
            last_run_at=config.last_run_at if config else None,
            next_run_at=config.next_run_at if config else None,
            failure_count=config.failure_count if config else 0,
        )


# Singleton instance
_scheduler: Optional[PipelineScheduler] = None


async def get_pipeline_scheduler() -> PipelineScheduler:
    """Get the singleton scheduler wired to Supabase, the pipeline and the task queue."""
    global _scheduler
    if _scheduler is None:
        from coach_intelligence.features.database import get_database_client
        from coach_intelligence.features.knowledge import get_knowledge_service
        from coach_intelligence.services.knowledge_pipeline import KnowledgePipelineClient

        db = await get_database_client()
        knowledge = await get_knowledge_service()
        _scheduler = PipelineScheduler(
            pipelines=db.pipelines,
            pipeline_client=KnowledgePipelineClient(),
            task_queue=task_queue,
            backfill=lambda: embedding_backfill(knowledge.jobs),
        )
    return _scheduler
