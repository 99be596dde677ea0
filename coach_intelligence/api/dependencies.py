"""Request-scoped accessors for the service singletons (overridable in tests)."""

from coach_intelligence.features.automation import (
    BackgroundTaskQueue,
    PipelineScheduler,
    get_pipeline_scheduler,
    task_queue,
)
from coach_intelligence.features.context import AIContextOrchestrator, get_context_orchestrator
from coach_intelligence.features.knowledge import KnowledgeService, get_knowledge_service


async def get_knowledge() -> KnowledgeService:
    """Provide the knowledge service for request handlers."""
    return await get_knowledge_service()


async def get_orchestrator() -> AIContextOrchestrator:
    """Provide the context orchestrator for request handlers."""
    return await get_context_orchestrator()


async def get_scheduler() -> PipelineScheduler:
    """Provide the knowledge pipeline scheduler for request handlers."""
    return await get_pipeline_scheduler()


def get_task_queue() -> BackgroundTaskQueue:
    return task_queue
