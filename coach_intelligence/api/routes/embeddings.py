"""
Embedding backfill endpoints.

One POST endpoint carries the three job actions as a tagged request
(`action`: start | process_batch | status); callers drive the batches,
one request per batch.
"""

import logging
import math

from fastapi import APIRouter, Body, Depends

from coach_intelligence.api.dependencies import get_knowledge
from coach_intelligence.api.models import (
    EmbeddingJobAction,
    JobStarted,
    JobStatusRequest,
    ProcessBatchRequest,
    StartJobRequest,
)
from coach_intelligence.features.knowledge import KnowledgeService
from coach_intelligence.features.knowledge.models import BatchResult, JobProgress
from coach_intelligence.shared.result import Ok

logger = logging.getLogger("Coach.API.Embeddings")
router = APIRouter(prefix="/embeddings", tags=["embeddings"])


@router.post("/jobs")
async def embedding_job_action(
    request: EmbeddingJobAction = Body(...),
    knowledge: KnowledgeService = Depends(get_knowledge),
):
    """
    Start a backfill job, process its next batch, or report its progress.

    Unknown job ids surface as 404 through the JobNotFoundError handler.
    """
    runner = knowledge.jobs

    if isinstance(request, StartJobRequest):
        job = await runner.start(batch_size=request.batch_size)
        logger.info(f"Embedding job start requested (batch_size={request.batch_size}): {job.id if job else 'nothing missing'}")
        if job is None:
            return Ok[JobStarted](data=JobStarted(message="No missing embeddings found"))
        return Ok[JobStarted](data=JobStarted(
            job_id=job.id,
            total_entries=job.total_entries,
            batch_size=job.batch_size,
            total_batches=math.ceil(job.total_entries / job.batch_size),
            message=f"Embedding job created for {job.total_entries} entries",
        ))

    if isinstance(request, ProcessBatchRequest):
        result = await runner.process_batch(request.job_id)
        return Ok[BatchResult](data=result)

    if isinstance(request, JobStatusRequest):
        progress = await runner.get_status(request.job_id)
        return Ok[JobProgress](data=progress)


@router.get("/jobs/{job_id}", response_model=Ok[JobProgress])
async def get_job_status(
    job_id: str,
    knowledge: KnowledgeService = Depends(get_knowledge),
):
    """Progress of one embedding job."""
    progress = await knowledge.jobs.get_status(job_id)
    return Ok[JobProgress](data=progress)
