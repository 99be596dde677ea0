"""
Automation - scheduling of the knowledge-refresh pipeline and tracked
background tasks.
"""

from coach_intelligence.features.automation.scheduler import (
    PipelineScheduler,
    get_pipeline_scheduler,
    retry_delay,
    should_run,
)
from coach_intelligence.features.automation.tasks import (
    BackgroundTaskQueue,
    TaskRecord,
    TaskStatus,
    task_queue,
)

__all__ = [
    "BackgroundTaskQueue",
    "PipelineScheduler",
    "TaskRecord",
    "TaskStatus",
    "get_pipeline_scheduler",
    "retry_delay",
    "should_run",
    "task_queue",
]
