"""
Hybrid search over the coach knowledge base.

Three methods:
- semantic: vector similarity via the search_knowledge_semantic RPC
- hybrid:   weighted vector + full-text score via search_knowledge_hybrid
- keyword:  plain full-text match on entry content, flat 0.5 similarity

Access scoping: the cross-partition coach searches every partition; every
other coach only ever sees its own entries.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from coach_intelligence.core.config import settings
from coach_intelligence.core.logging_utils import preview
from coach_intelligence.core.tracing import get_tracer, traced_span
from coach_intelligence.shared.constants import (
    KEYWORD_CONTENT_PREVIEW_CHARS,
    KEYWORD_MATCH_SIMILARITY,
)
from coach_intelligence.shared.errors import SearchContractError
from coach_intelligence.features.knowledge.models import SearchMethod, SearchResult

logger = logging.getLogger("Coach.Knowledge.Search")
tracer = get_tracer(__name__)

Embedding = Union[np.ndarray, Sequence[float]]


def partition_filter_for(
    coach_id: str,
    cross_partition_id: str = settings.CROSS_PARTITION_COACH_ID,
) -> Optional[str]:
    """None (all partitions) for the cross-partition coach, else the coach itself."""
    return None if coach_id == cross_partition_id else coach_id


def _to_result(row: Dict[str, Any]) -> SearchResult:
    return SearchResult(
        knowledge_id=str(row.get("knowledge_id") or row.get("id")),
        content_chunk=row.get("content_chunk") or "",
        similarity=row.get("similarity"),
        combined_score=row.get("combined_score"),
        title=row.get("title"),
        coach_id=row.get("coach_id"),
        expertise_area=row.get("expertise_area"),
        chunk_index=row.get("chunk_index"),
    )


class HybridSearchEngine:
    """
    Runs knowledge searches through the KnowledgeRepository.

    Usage:
        engine = HybridSearchEngine(db.knowledge)
        hits = await engine.search(query, embedding, partition_filter_for("sascha"),
                                   SearchMethod.HYBRID, max_results=5)
    """

    def __init__(
        self,
        knowledge,
        similarity_threshold: float = settings.SIMILARITY_THRESHOLD,
        semantic_weight: float = settings.SEMANTIC_WEIGHT,
        text_weight: float = settings.TEXT_WEIGHT,
    ):
        self.knowledge = knowledge
        self.similarity_threshold = similarity_threshold
        self.semantic_weight = semantic_weight
        self.text_weight = text_weight

    async def search(
        self,
        query: str,
        query_embedding: Optional[Embedding],
        partition_filter: Optional[str],
        method: SearchMethod = SearchMethod.HYBRID,
        max_results: int = 5,
    ) -> List[SearchResult]:
        """
        Search the knowledge base.

        Args:
            query: Natural language query
            query_embedding: Query vector; required for semantic and hybrid
            partition_filter: Coach id to restrict to, or None for all partitions
            method: semantic, hybrid or keyword
            max_results: Maximum hits to return

        Returns:
            Hits ranked by the backend, never from a foreign partition

        Raises:
            SearchContractError: missing embedding for semantic/hybrid, or
                a non-positive max_results
        """
        method = SearchMethod(method)
        if max_results < 1:
            raise SearchContractError("max_results must be at least 1")
        if method != SearchMethod.KEYWORD and query_embedding is None:
            raise SearchContractError(f"{method.value} search requires a query embedding")

        with traced_span(
            tracer,
            "knowledge.search",
            **{"search.method": method.value, "search.partition": partition_filter or "*"},
        ) as span:
            if method == SearchMethod.SEMANTIC:
                rows = await self.knowledge.semantic_search(
                    query_embedding=self._as_list(query_embedding),
                    coach_filter=partition_filter,
                    similarity_threshold=self.similarity_threshold,
                    match_count=max_results,
                )
                results = [_to_result(row) for row in rows]
            elif method == SearchMethod.HYBRID:
                rows = await self.knowledge.hybrid_search(
                    query_text=query,
                    query_embedding=self._as_list(query_embedding),
                    coach_filter=partition_filter,
                    semantic_weight=self.semantic_weight,
                    text_weight=self.text_weight,
                    match_count=max_results,
                )
                results = [_to_result(row) for row in rows]
            else:
                rows = await self.knowledge.keyword_search(query, partition_filter, max_results)
                results = [
                    SearchResult(
                        knowledge_id=str(row["id"]),
                        content_chunk=(row.get("content") or "")[:KEYWORD_CONTENT_PREVIEW_CHARS],
                        similarity=KEYWORD_MATCH_SIMILARITY,
                        title=row.get("title"),
                        coach_id=row.get("coach_id"),
                        expertise_area=row.get("expertise_area"),
                    )
                    for row in rows
                ]

            results = self._enforce_partition(results, partition_filter)[:max_results]
            span.set_attribute("search.results", len(results))

        logger.info(
            f"{method.value} search for '{preview(query, 60)}' "
            f"(partition={partition_filter or 'all'}) returned {len(results)} results"
        )
        return results

    @staticmethod
    def _as_list(embedding: Embedding) -> List[float]:
        if isinstance(embedding, np.ndarray):
            return embedding.astype(float).tolist()
        return [float(v) for v in embedding]

    @staticmethod
    def _enforce_partition(
        results: List[SearchResult],
        partition_filter: Optional[str],
    ) -> List[SearchResult]:
        """Drop hits from other partitions, whatever the backend returned."""
        if partition_filter is None:
            return results
        scoped = [r for r in results if r.coach_id == partition_filter]
        if len(scoped) != len(results):
            logger.warning(
                f"Dropped {len(results) - len(scoped)} results outside partition {partition_filter}"
            )
        return scoped
