"""
Shared test fixtures: in-memory repositories and a deterministic embedder.

The fakes implement the same async methods as the Supabase repositories
so services can be exercised end to end without a database.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import numpy as np
import pytest

from coach_intelligence.features.knowledge.models import EmbeddingJob, KnowledgeEntry
from coach_intelligence.shared.errors import EmbeddingError

DIMENSIONS = 8


class FakeEmbedder:
    """Returns a constant vector; fails for texts containing a marker."""

    def __init__(self, fail_marker: Optional[str] = None, dimensions: int = DIMENSIONS):
        self.fail_marker = fail_marker
        self.dimensions = dimensions
        self.model = "fake-embedding"
        self.calls: List[str] = []

    async def embed(self, text: str) -> np.ndarray:
        self.calls.append(text)
        if self.fail_marker and self.fail_marker in text:
            raise EmbeddingError(429, "rate limited")
        return np.ones(self.dimensions, dtype=np.float32)

    async def embed_with_usage(self, text: str):
        return await self.embed(text), 3


class FakeKnowledgeRepository:
    def __init__(self, entries: Optional[List[KnowledgeEntry]] = None):
        self.entries: Dict[str, KnowledgeEntry] = {e.id: e for e in entries or []}
        self.chunks: Dict[tuple, Dict[str, Any]] = {}
        self.upserts: List[tuple] = []
        self.search_rows: List[Dict[str, Any]] = []
        self.keyword_rows: List[Dict[str, Any]] = []
        self.search_calls: List[Dict[str, Any]] = []

    async def list_entry_ids(self) -> List[str]:
        return list(self.entries)

    async def list_embedded_ids(self):
        return {knowledge_id for knowledge_id, _ in self.chunks}

    async def get_entries(self, ids: List[str]) -> List[KnowledgeEntry]:
        return [self.entries[i] for i in ids if i in self.entries]

    async def upsert_chunk(self, knowledge_id, chunk_index, embedding, content_chunk, text_content, metadata=None):
        self.upserts.append((knowledge_id, chunk_index))
        self.chunks[(knowledge_id, chunk_index)] = {
            "embedding": embedding,
            "content_chunk": content_chunk,
            "metadata": metadata,
        }

    async def semantic_search(self, query_embedding, coach_filter, similarity_threshold, match_count):
        self.search_calls.append({"method": "semantic", "coach_filter": coach_filter, "match_count": match_count})
        return list(self.search_rows)

    async def hybrid_search(self, query_text, query_embedding, coach_filter, semantic_weight, text_weight, match_count):
        self.search_calls.append({"method": "hybrid", "coach_filter": coach_filter, "match_count": match_count})
        return list(self.search_rows)

    async def keyword_search(self, query, coach_filter, limit):
        self.search_calls.append({"method": "keyword", "coach_filter": coach_filter, "match_count": limit})
        return list(self.keyword_rows)


class FakeJobsRepository:
    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}

    async def create(self, missing_ids, batch_size, started_at) -> EmbeddingJob:
        job_id = str(uuid.uuid4())
        self.rows[job_id] = {
            "id": job_id,
            "total_entries": len(missing_ids),
            "batch_size": batch_size,
            "current_batch": 0,
            "processed_entries": 0,
            "failed_entries": 0,
            "status": "pending",
            "started_at": started_at,
            "metadata": {"missing_knowledge_ids": list(missing_ids)},
        }
        return EmbeddingJob.from_row(self.rows[job_id])

    async def get(self, job_id: str) -> Optional[EmbeddingJob]:
        row = self.rows.get(job_id)
        return EmbeddingJob.from_row(row) if row else None

    async def update(self, job_id: str, updates: Dict[str, Any]) -> None:
        self.rows[job_id].update(updates)


class FakePipelineRepository:
    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config
        self.runs: Dict[str, Dict[str, Any]] = {}
        self.config_updates: List[Dict[str, Any]] = []

    async def get_config(self, pipeline_name):
        if self.config and self.config["pipeline_name"] == pipeline_name:
            return dict(self.config)
        return None

    async def update_config(self, pipeline_name, updates):
        if not self.config or self.config["pipeline_name"] != pipeline_name:
            return None
        self.config_updates.append(dict(updates))
        self.config.update(updates)
        return dict(self.config)

    async def create_run(self, record):
        run_id = str(len(self.runs) + 1)
        self.runs[run_id] = {"id": run_id, **record}
        return self.runs[run_id]

    async def update_run(self, run_id, updates):
        self.runs[run_id].update(updates)

    async def recent_runs(self, pipeline_type, limit=10):
        runs = [r for r in self.runs.values() if r["pipeline_type"] == pipeline_type]
        return sorted(runs, key=lambda r: r["started_at"], reverse=True)[:limit]


class FakeCoachingRepository:
    def __init__(self):
        self.personas: Dict[str, Dict[str, Any]] = {}
        self.memory: Dict[tuple, Dict[str, Any]] = {}
        self.daily: Dict[tuple, Dict[str, Any]] = {}
        self.goals: Dict[str, int] = {}
        self.summaries: Dict[str, Dict[str, Any]] = {}
        self.messages: Dict[tuple, List[Dict[str, Any]]] = {}

    async def get_persona(self, coach_id):
        return self.personas.get(coach_id)

    async def get_memory(self, user_id, coach_id):
        return self.memory.get((user_id, coach_id))

    async def get_daily_summary(self, user_id, date):
        return self.daily.get((user_id, date))

    async def get_calorie_goal(self, user_id):
        return self.goals.get(user_id)

    async def get_latest_conversation_summary(self, user_id):
        return self.summaries.get(user_id)

    async def get_recent_messages(self, user_id, coach_id, limit=20):
        return self.messages.get((user_id, coach_id), [])[-limit:]


class FakeTraceRepository:
    def __init__(self):
        self.events: List[tuple] = []
        self.metrics: List[Dict[str, Any]] = []

    async def record(self, trace_id, stage, data):
        self.events.append((trace_id, stage, data))

    async def record_rag_metrics(self, metrics):
        self.metrics.append(metrics)


class FakeDatabase:
    def __init__(self, knowledge=None):
        self.knowledge = knowledge or FakeKnowledgeRepository()
        self.jobs = FakeJobsRepository()
        self.pipelines = FakePipelineRepository()
        self.coaching = FakeCoachingRepository()
        self.traces = FakeTraceRepository()


def make_entry(entry_id: str, content: str = "Protein supports muscle repair.", coach_id: str = "sascha", **kwargs) -> KnowledgeEntry:
    return KnowledgeEntry(
        id=entry_id,
        title=kwargs.pop("title", f"Entry {entry_id}"),
        content=content,
        coach_id=coach_id,
        expertise_area=kwargs.pop("expertise_area", "nutrition"),
        **kwargs,
    )


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def fixed_now():
    return datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
