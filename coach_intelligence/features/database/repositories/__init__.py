"""Database Repositories - Organized data access."""

from coach_intelligence.features.database.repositories.coaching import CoachingRepository
from coach_intelligence.features.database.repositories.jobs import JobsRepository
from coach_intelligence.features.database.repositories.knowledge import KnowledgeRepository
from coach_intelligence.features.database.repositories.pipelines import PipelineRepository
from coach_intelligence.features.database.repositories.traces import TraceRepository

__all__ = [
    "CoachingRepository",
    "JobsRepository",
    "KnowledgeRepository",
    "PipelineRepository",
    "TraceRepository",
]
