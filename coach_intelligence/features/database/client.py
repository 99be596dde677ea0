"""
Database Client - Unified Access to All Data Repositories

Provides organized access to data through domain-specific repositories.
This is a thin wrapper that delegates to focused repository classes.
"""

import logging
from typing import Optional

from coach_intelligence.core.database import get_supabase
from coach_intelligence.features.database.repositories.coaching import CoachingRepository
from coach_intelligence.features.database.repositories.jobs import JobsRepository
from coach_intelligence.features.database.repositories.knowledge import KnowledgeRepository
from coach_intelligence.features.database.repositories.pipelines import PipelineRepository
from coach_intelligence.features.database.repositories.traces import TraceRepository

logger = logging.getLogger("Coach.Database")


class DatabaseClient:
    """
    Unified database client providing access to all repositories.

    Usage:
        db = await get_database_client()
        job = await db.jobs.get(job_id)
        hits = await db.knowledge.semantic_search(embedding, None, 0.6, 5)
    """

    _instance: Optional["DatabaseClient"] = None

    def __init__(self, client):
        """Initialize with an async Supabase client and build the repositories."""
        self._client = client

        self.knowledge = KnowledgeRepository(self._client)
        self.jobs = JobsRepository(self._client)
        self.pipelines = PipelineRepository(self._client)
        self.coaching = CoachingRepository(self._client)
        self.traces = TraceRepository(self._client)

        logger.info("Database client initialized with all repositories")

    @property
    def client(self):
        """Direct access to Supabase client for advanced queries."""
        return self._client


async def get_database_client() -> DatabaseClient:
    """Get the singleton database client."""
    if DatabaseClient._instance is None:
        DatabaseClient._instance = DatabaseClient(await get_supabase())
    return DatabaseClient._instance
