"""
Knowledge System - RAG over the coach knowledge base.

This module provides:
1. Chunking: sentence-respecting splits sized for the embedding model
2. Embedding: OpenAI embeddings plus resumable backfill jobs
3. Retrieval: semantic, hybrid and keyword search scoped per coach
4. Context Building: budgeted, relevance-ranked context chunks
"""

from coach_intelligence.features.knowledge.service import (
    KnowledgeService,
    get_knowledge_service,
)
from coach_intelligence.features.knowledge.chunker import (
    build_embedding_text,
    estimate_tokens,
    split_into_chunks,
)
from coach_intelligence.features.knowledge.embeddings import (
    EmbeddingGenerator,
    get_embedding_generator,
)
from coach_intelligence.features.knowledge.jobs import EmbeddingJobRunner
from coach_intelligence.features.knowledge.search import (
    HybridSearchEngine,
    partition_filter_for,
)
from coach_intelligence.features.knowledge.ranking import (
    average_relevance,
    build_context,
    rank_by_relevance,
    search_terms,
)

__all__ = [
    # Main service
    "KnowledgeService",
    "get_knowledge_service",
    # Chunking
    "build_embedding_text",
    "estimate_tokens",
    "split_into_chunks",
    # Embedding
    "EmbeddingGenerator",
    "get_embedding_generator",
    "EmbeddingJobRunner",
    # Retrieval
    "HybridSearchEngine",
    "partition_filter_for",
    # Ranking
    "average_relevance",
    "build_context",
    "rank_by_relevance",
    "search_terms",
]
