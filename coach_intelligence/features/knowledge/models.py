"""
Data models for the knowledge base, embedding jobs and search results.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class KnowledgeEntry(BaseModel):
    """A row of coach_knowledge_base."""
    id: str
    title: str = ""
    content: str = ""
    coach_id: Optional[str] = None
    expertise_area: Optional[str] = None
    priority_level: Optional[int] = None
    tags: List[str] = Field(default_factory=list)
    source_url: Optional[str] = None
    knowledge_type: Optional[str] = None


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"


class EmbeddingJob(BaseModel):
    """
    A resumable embedding backfill.

    `missing_knowledge_ids` is the snapshot taken at start and never changes;
    `current_batch` is the cursor into it.
    """
    id: str
    total_entries: int
    batch_size: int
    current_batch: int = 0
    processed_entries: int = 0
    failed_entries: int = 0
    status: JobStatus = JobStatus.PENDING
    missing_knowledge_ids: List[str] = Field(default_factory=list)
    started_at: Optional[datetime] = None
    last_batch_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "EmbeddingJob":
        """Build from an embedding_generation_jobs row (snapshot lives in metadata)."""
        metadata = row.get("metadata") or {}
        return cls(
            id=str(row["id"]),
            total_entries=row.get("total_entries") or 0,
            batch_size=row.get("batch_size") or 1,
            current_batch=row.get("current_batch") or 0,
            processed_entries=row.get("processed_entries") or 0,
            failed_entries=row.get("failed_entries") or 0,
            status=row.get("status") or JobStatus.PENDING,
            missing_knowledge_ids=[str(i) for i in metadata.get("missing_knowledge_ids", [])],
            started_at=row.get("started_at"),
            last_batch_at=row.get("last_batch_at"),
            completed_at=row.get("completed_at"),
            error_message=row.get("error_message"),
        )

    def window(self) -> List[str]:
        """Snapshot ids covered by the current cursor."""
        start = self.current_batch * self.batch_size
        end = min(self.total_entries, start + self.batch_size)
        return self.missing_knowledge_ids[start:end]


class BatchResult(BaseModel):
    job_id: str
    batch_number: int
    entries_in_batch: int = 0
    processed: int = 0
    failed: int = 0
    total_processed: int
    total_failed: int
    completed: bool
    message: Optional[str] = None


class JobProgress(BaseModel):
    job_id: str
    status: JobStatus
    total: int
    processed: int
    failed: int
    current_batch: int
    batch_size: int
    percentage: int
    started_at: Optional[datetime] = None
    last_batch_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_job(cls, job: EmbeddingJob) -> "JobProgress":
        # Counters are per chunk, so multi-chunk entries can push this past 100
        if job.total_entries:
            percentage = min(100, round(job.processed_entries / job.total_entries * 100))
        else:
            percentage = 100
        return cls(
            job_id=job.id,
            status=job.status,
            total=job.total_entries,
            processed=job.processed_entries,
            failed=job.failed_entries,
            current_batch=job.current_batch,
            batch_size=job.batch_size,
            percentage=percentage,
            started_at=job.started_at,
            last_batch_at=job.last_batch_at,
            completed_at=job.completed_at,
        )


class SearchMethod(str, Enum):
    SEMANTIC = "semantic"
    HYBRID = "hybrid"
    KEYWORD = "keyword"


class SearchResult(BaseModel):
    """A single hit from the vector, hybrid or keyword search."""
    knowledge_id: str
    content_chunk: str = ""
    similarity: Optional[float] = None
    combined_score: Optional[float] = None
    title: Optional[str] = None
    coach_id: Optional[str] = None
    expertise_area: Optional[str] = None
    chunk_index: Optional[int] = None


class ContextChunk(BaseModel):
    """A search hit admitted into the context budget."""
    content: str
    title: Optional[str] = None
    expertise_area: Optional[str] = None
    relevance_score: float = 0.0
    source_id: str
    final_relevance: Optional[float] = None

    @property
    def score(self) -> float:
        return self.final_relevance if self.final_relevance is not None else self.relevance_score


class RagQuery(BaseModel):
    query: str = Field(..., min_length=1)
    coach_id: str
    user_id: Optional[str] = None
    search_method: SearchMethod = SearchMethod.HYBRID
    max_results: int = Field(5, ge=1, le=50)
    context_window: int = Field(2000, ge=100, le=32000)


class RagResponse(BaseModel):
    context: List[ContextChunk]
    search_method: SearchMethod
    results_count: int
    response_time_ms: int
    relevance_score: float
    embedding_tokens: int
    context_length: int
    trace_id: str
