"""
Knowledge pipeline automation endpoints.

POST /pipeline takes a tagged action:
- run_pipeline: run now, regardless of schedule
- check_schedule: run only if due (called by an external cron)
- update_config: change interval, limits, enablement
- get_status: config plus recent runs
"""

import logging

from fastapi import APIRouter, Body, Depends

from coach_intelligence.api.dependencies import get_scheduler, get_task_queue
from coach_intelligence.api.models import (
    CheckScheduleRequest,
    GetStatusRequest,
    PipelineAction,
    RunPipelineRequest,
    TaskInfo,
    UpdateConfigRequest,
)
from coach_intelligence.features.automation import BackgroundTaskQueue, PipelineScheduler
from coach_intelligence.features.automation.models import PipelineConfig, PipelineStatus, RunOutcome, ScheduleCheck
from coach_intelligence.shared.errors import ConfigurationError, ErrorCode, PipelineExecutionError
from coach_intelligence.shared.result import Ok, err

logger = logging.getLogger("Coach.API.Pipeline")
router = APIRouter(prefix="/pipeline", tags=["pipeline"])


@router.post("")
async def pipeline_action(
    request: PipelineAction = Body(...),
    scheduler: PipelineScheduler = Depends(get_scheduler),
):
    """
    Dispatch one pipeline action.

    A failed pipeline run is reported as an Err carrying the recorded run id;
    the failure counter and backoff are already persisted at that point.
    A disabled or missing config is an Err with CONFIGURATION_ERROR.
    """
    if isinstance(request, RunPipelineRequest):
        try:
            outcome = await scheduler.run_pipeline(force=request.force)
        except PipelineExecutionError as e:
            return err(str(e), ErrorCode.PIPELINE_ERROR, run_id=e.run_id)
        if not outcome.success:
            return err(outcome.message or "Pipeline did not run", ErrorCode.PIPELINE_ERROR)
        return Ok[RunOutcome](data=outcome)

    if isinstance(request, CheckScheduleRequest):
        try:
            check = await scheduler.check_scheduled_runs()
        except PipelineExecutionError as e:
            return err(str(e), ErrorCode.PIPELINE_ERROR, run_id=e.run_id)
        if not check.success:
            return err(check.reason, ErrorCode.CONFIGURATION_ERROR)
        return Ok[ScheduleCheck](data=check)

    if isinstance(request, UpdateConfigRequest):
        try:
            config = await scheduler.update_config(request.config_update)
        except ConfigurationError as e:
            return err(str(e), ErrorCode.CONFIGURATION_ERROR)
        return Ok[PipelineConfig](data=config)

    if isinstance(request, GetStatusRequest):
        status = await scheduler.get_status()
        return Ok[PipelineStatus](data=status)


@router.get("/tasks/{task_id}")
async def get_task(
    task_id: str,
    queue: BackgroundTaskQueue = Depends(get_task_queue),
):
    """Status of a background task (e.g. the embedding backfill queued after a run)."""
    record = queue.get(task_id)
    if record is None:
        logger.info(f"Task lookup for unknown id {task_id}")
        return err(f"Task not found: {task_id}", ErrorCode.NOT_FOUND, task_id=task_id)
    return Ok[TaskInfo](data=TaskInfo(
        id=record.id,
        name=record.name,
        status=record.status.value,
        created_at=record.created_at,
        started_at=record.started_at,
        finished_at=record.finished_at,
        result=record.result,
        error=record.error,
    ))
