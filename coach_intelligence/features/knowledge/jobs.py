"""
Resumable embedding backfill jobs.

A job snapshots the ids of every knowledge entry without embeddings when it
is started, then embeds that snapshot one batch per `process_batch` call.
Progress lives in embedding_generation_jobs, so any worker can pick up the
next batch and re-invoking a finished job is harmless.

Lifecycle: pending -> running -> completed. Per-chunk failures are counted
in `failed_entries`; they never fail the job as a whole.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from coach_intelligence.core.config import settings
from coach_intelligence.core.tracing import get_tracer, traced_span
from coach_intelligence.shared.errors import EmbeddingError, JobNotFoundError
from coach_intelligence.features.knowledge.chunker import build_embedding_text, split_into_chunks
from coach_intelligence.features.knowledge.embeddings import EmbeddingGenerator
from coach_intelligence.features.knowledge.models import (
    BatchResult,
    EmbeddingJob,
    JobProgress,
    JobStatus,
)

logger = logging.getLogger("Coach.Knowledge.Jobs")
tracer = get_tracer(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class EmbeddingJobRunner:
    """
    Runs embedding backfill jobs against the knowledge and jobs repositories.

    Usage:
        runner = EmbeddingJobRunner(db.knowledge, db.jobs, get_embedding_generator())
        job = await runner.start(batch_size=50)
        while job and not (await runner.process_batch(job.id)).completed:
            ...
    """

    def __init__(
        self,
        knowledge,
        jobs,
        generator: EmbeddingGenerator,
        rate_limit_delay_ms: int = settings.EMBEDDING_RATE_LIMIT_DELAY_MS,
        max_chunk_length: int = settings.MAX_CHUNK_LENGTH,
    ):
        """
        Args:
            knowledge: KnowledgeRepository (entries, embedding upserts)
            jobs: JobsRepository (job rows)
            generator: Embedding generator used for every chunk
            rate_limit_delay_ms: Pause between consecutive embedding calls
            max_chunk_length: Chunk size passed to the chunker
        """
        self.knowledge = knowledge
        self.jobs = jobs
        self.generator = generator
        self.rate_limit_delay = rate_limit_delay_ms / 1000
        self.max_chunk_length = max_chunk_length

    async def start(self, batch_size: int = settings.DEFAULT_BATCH_SIZE) -> Optional[EmbeddingJob]:
        """
        Create a job for every entry that has no embedding yet.

        Returns:
            The pending job, or None when nothing is missing.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        entry_ids = await self.knowledge.list_entry_ids()
        embedded = await self.knowledge.list_embedded_ids()
        missing = [entry_id for entry_id in entry_ids if entry_id not in embedded]

        logger.info(
            f"Embedding coverage: {len(entry_ids)} entries, "
            f"{len(entry_ids) - len(missing)} embedded, {len(missing)} missing"
        )

        if not missing:
            return None

        return await self.jobs.create(missing, batch_size, started_at=_now_iso())

    async def _get_job(self, job_id: str) -> EmbeddingJob:
        job = await self.jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def process_batch(self, job_id: str) -> BatchResult:
        """
        Embed the next batch of the job's snapshot and advance its cursor.

        Raises:
            JobNotFoundError: unknown job id
        """
        job = await self._get_job(job_id)

        if job.status == JobStatus.COMPLETED:
            return BatchResult(
                job_id=job.id,
                batch_number=job.current_batch,
                total_processed=job.processed_entries,
                total_failed=job.failed_entries,
                completed=True,
                message="Job already completed",
            )

        batch_ids = job.window()
        if not batch_ids:
            await self.jobs.update(job.id, {
                "status": JobStatus.COMPLETED.value,
                "completed_at": _now_iso(),
            })
            logger.info(f"Job {job.id} has no entries left, marked completed")
            return BatchResult(
                job_id=job.id,
                batch_number=job.current_batch,
                total_processed=job.processed_entries,
                total_failed=job.failed_entries,
                completed=True,
                message="Job completed - no more batches to process",
            )

        await self.jobs.update(job.id, {"status": JobStatus.RUNNING.value})

        with traced_span(tracer, "embeddings.process_batch", job_id=job.id, batch=job.current_batch):
            processed, failed = await self._embed_entries(batch_ids)

        new_cursor = job.current_batch + 1
        total_processed = job.processed_entries + processed
        total_failed = job.failed_entries + failed
        completed = new_cursor * job.batch_size >= job.total_entries
        now = _now_iso()

        await self.jobs.update(job.id, {
            "processed_entries": total_processed,
            "failed_entries": total_failed,
            "current_batch": new_cursor,
            "status": (JobStatus.COMPLETED if completed else JobStatus.RUNNING).value,
            "completed_at": now if completed else None,
            "last_batch_at": now,
        })

        logger.info(
            f"Job {job.id} batch {job.current_batch}: {processed} processed, {failed} failed"
            f"{' (job completed)' if completed else ''}"
        )

        return BatchResult(
            job_id=job.id,
            batch_number=job.current_batch,
            entries_in_batch=len(batch_ids),
            processed=processed,
            failed=failed,
            total_processed=total_processed,
            total_failed=total_failed,
            completed=completed,
        )

    async def _embed_entries(self, batch_ids) -> tuple:
        """Embed and upsert every chunk of the given entries; returns (processed, failed)."""
        entries = await self.knowledge.get_entries(batch_ids)

        processed = 0
        failed = 0

        found = {entry.id for entry in entries}
        for missing_id in batch_ids:
            if missing_id not in found:
                # Deleted after the snapshot was taken
                logger.warning(f"Knowledge entry {missing_id} no longer exists")
                failed += 1

        first_call = True
        for entry in entries:
            chunks = split_into_chunks(build_embedding_text(entry), self.max_chunk_length)
            for index, chunk in enumerate(chunks):
                if not first_call and self.rate_limit_delay > 0:
                    await asyncio.sleep(self.rate_limit_delay)
                first_call = False

                try:
                    vector = await self.generator.embed(chunk)
                    await self.knowledge.upsert_chunk(
                        knowledge_id=entry.id,
                        chunk_index=index,
                        embedding=vector.tolist(),
                        content_chunk=chunk,
                        text_content=chunk,
                        metadata={"coach_id": entry.coach_id, "chunk_count": len(chunks)},
                    )
                    processed += 1
                except EmbeddingError as e:
                    logger.error(f"Embedding failed for {entry.id} chunk {index}: {e}")
                    failed += 1
                except Exception as e:
                    logger.error(f"Failed to store embedding for {entry.id} chunk {index}: {e}")
                    failed += 1

        return processed, failed

    async def get_status(self, job_id: str) -> JobProgress:
        """
        Raises:
            JobNotFoundError: unknown job id
        """
        return JobProgress.from_job(await self._get_job(job_id))

    async def run_to_completion(self, job_id: str) -> JobProgress:
        """Process batches until the job completes."""
        while True:
            result = await self.process_batch(job_id)
            if result.completed:
                return await self.get_status(job_id)
