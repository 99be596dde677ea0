"""
Knowledge Service - Main interface for RAG capabilities.

This is the primary class the API and the context orchestrator use.
It wires the embedding generator, hybrid search, ranking, embedding
jobs and telemetry behind one object.
"""

import logging
import time
from typing import List, Optional, Tuple

import numpy as np

from coach_intelligence.core.config import settings
from coach_intelligence.core.logging_utils import preview
from coach_intelligence.services.telemetry import TelemetrySink, new_trace_id
from coach_intelligence.features.knowledge.chunker import estimate_tokens
from coach_intelligence.features.knowledge.embeddings import (
    EmbeddingGenerator,
    get_embedding_generator,
)
from coach_intelligence.features.knowledge.jobs import EmbeddingJobRunner
from coach_intelligence.features.knowledge.models import (
    ContextChunk,
    RagQuery,
    RagResponse,
    SearchMethod,
)
from coach_intelligence.features.knowledge.ranking import (
    average_relevance,
    build_context,
    rank_by_relevance,
    search_terms,
)
from coach_intelligence.features.knowledge.search import (
    HybridSearchEngine,
    partition_filter_for,
)

logger = logging.getLogger("Coach.Knowledge.Service")

# Singleton instance
_knowledge_service = None


class KnowledgeService:
    """
    Unified knowledge service for RAG operations.

    Usage:
        knowledge = await get_knowledge_service()

        # Ranked context for a coach
        response = await knowledge.query(RagQuery(query="protein timing", coach_id="sascha"))

        # Backfill embeddings
        job = await knowledge.jobs.start(batch_size=50)
    """

    def __init__(
        self,
        db,
        generator: Optional[EmbeddingGenerator] = None,
        telemetry: Optional[TelemetrySink] = None,
    ):
        """
        Args:
            db: DatabaseClient (or any object exposing knowledge/jobs/traces repositories)
            generator: Embedding generator; defaults to the shared OpenAI-backed one
            telemetry: Trace sink; defaults to one writing to db.traces
        """
        self.db = db
        self._generator = generator
        self.telemetry = telemetry or TelemetrySink(db.traces, persist=settings.DEBUG_PERSIST_TRACES)
        self.search_engine = HybridSearchEngine(db.knowledge)
        self._jobs: Optional[EmbeddingJobRunner] = None

    @property
    def generator(self) -> EmbeddingGenerator:
        """Lazy-load the embedding generator (needs OPENAI_API_KEY)."""
        if self._generator is None:
            self._generator = get_embedding_generator()
        return self._generator

    @property
    def jobs(self) -> EmbeddingJobRunner:
        if self._jobs is None:
            self._jobs = EmbeddingJobRunner(self.db.knowledge, self.db.jobs, self.generator)
        return self._jobs

    async def embed(self, text: str) -> Tuple[np.ndarray, int]:
        """Embed a single text; returns the vector and the prompt tokens billed."""
        return await self.generator.embed_with_usage(text)

    async def retrieve(
        self,
        query: str,
        coach_id: str,
        method: SearchMethod = SearchMethod.HYBRID,
        max_results: int = 5,
        context_window: int = 2000,
    ) -> List[ContextChunk]:
        """Ranked context chunks for a coach, without telemetry."""
        response = await self.query(
            RagQuery(
                query=query,
                coach_id=coach_id,
                search_method=method,
                max_results=max_results,
                context_window=context_window,
            ),
            record_telemetry=False,
        )
        return response.context

    async def query(self, request: RagQuery, record_telemetry: bool = True) -> RagResponse:
        """
        Embed the query, search the caller's partition, build and rank context.

        Raises:
            EmbeddingError: the query could not be embedded
            SearchContractError: invalid search arguments
        """
        started = time.monotonic()
        trace_id = new_trace_id("rag")

        embedding = None
        embedding_tokens = 0
        if request.search_method != SearchMethod.KEYWORD:
            embedding = await self.generator.embed(request.query)
            embedding_tokens = estimate_tokens(request.query)

        results = await self.search_engine.search(
            query=request.query,
            query_embedding=embedding,
            partition_filter=partition_filter_for(request.coach_id),
            method=request.search_method,
            max_results=request.max_results,
        )

        context = build_context(results, request.context_window)
        relevance = average_relevance(results)
        ranked = rank_by_relevance(context, request.query)

        response_time_ms = int((time.monotonic() - started) * 1000)
        context_length = sum(len(chunk.content) for chunk in ranked)

        if record_telemetry:
            await self.telemetry.rag_query_completed(trace_id, {
                "query_text": request.query[:100],
                "search_method": request.search_method.value,
                "response_time_ms": response_time_ms,
                "relevance_score": relevance,
                "embedding_tokens": embedding_tokens,
                "results_count": len(ranked),
                "context_length": context_length,
                "coach_id": request.coach_id,
                "user_id": request.user_id,
                "search_terms": search_terms(request.query),
            })

        logger.info(
            f"RAG query '{preview(request.query, 60)}' for {request.coach_id}: "
            f"{len(ranked)} chunks, relevance {relevance}, {response_time_ms}ms"
        )

        return RagResponse(
            context=ranked,
            search_method=request.search_method,
            results_count=len(ranked),
            response_time_ms=response_time_ms,
            relevance_score=relevance,
            embedding_tokens=embedding_tokens,
            context_length=context_length,
            trace_id=trace_id,
        )


async def get_knowledge_service() -> KnowledgeService:
    """Get the singleton knowledge service."""
    global _knowledge_service
    if _knowledge_service is None:
        from coach_intelligence.features.database import get_database_client
        _knowledge_service = KnowledgeService(await get_database_client())
    return _knowledge_service
