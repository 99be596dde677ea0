"""
Jobs Repository - embedding_generation_jobs persistence.

Each job row is updated in place, one batch at a time, keyed by id.
"""

import logging
from typing import Any, Dict, List, Optional

from coach_intelligence.shared.constants import EMBEDDING_JOBS_TABLE
from coach_intelligence.features.knowledge.models import EmbeddingJob, JobStatus

logger = logging.getLogger("Coach.Database.Jobs")


class JobsRepository:
    """Repository for embedding backfill jobs."""

    def __init__(self, client):
        """Initialize with an async Supabase client."""
        self.client = client

    async def create(
        self,
        missing_ids: List[str],
        batch_size: int,
        started_at: str,
    ) -> EmbeddingJob:
        """Insert a pending job holding the snapshot of ids to embed."""
        result = await self.client.table(EMBEDDING_JOBS_TABLE).insert({
            "total_entries": len(missing_ids),
            "batch_size": batch_size,
            "current_batch": 0,
            "processed_entries": 0,
            "failed_entries": 0,
            "status": JobStatus.PENDING.value,
            "started_at": started_at,
            "metadata": {"missing_knowledge_ids": missing_ids},
        }).execute()
        job = EmbeddingJob.from_row(result.data[0])
        logger.info(f"Created embedding job {job.id} for {len(missing_ids)} entries")
        return job

    async def get(self, job_id: str) -> Optional[EmbeddingJob]:
        result = await self.client.table(EMBEDDING_JOBS_TABLE).select("*").eq(
            "id", job_id
        ).limit(1).execute()
        if not result.data:
            return None
        return EmbeddingJob.from_row(result.data[0])

    async def update(self, job_id: str, updates: Dict[str, Any]) -> None:
        await self.client.table(EMBEDDING_JOBS_TABLE).update(updates).eq(
            "id", job_id
        ).execute()
