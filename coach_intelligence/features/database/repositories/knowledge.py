"""
Knowledge Repository - knowledge base entries, chunk embeddings and
the vector search RPCs.
"""

import logging
from typing import Any, Dict, List, Optional, Set

from coach_intelligence.shared.constants import (
    EMBEDDINGS_TABLE,
    HYBRID_SEARCH_RPC,
    KNOWLEDGE_TABLE,
    SEMANTIC_SEARCH_RPC,
)
from coach_intelligence.features.knowledge.models import KnowledgeEntry

logger = logging.getLogger("Coach.Database.Knowledge")

# PostgREST caps unpaged selects at 1000 rows
PAGE_SIZE = 1000


class KnowledgeRepository:
    """Repository for coach_knowledge_base and knowledge_base_embeddings."""

    def __init__(self, client):
        """Initialize with an async Supabase client."""
        self.client = client

    async def _select_column(self, table: str, column: str) -> List[Any]:
        values: List[Any] = []
        start = 0
        while True:
            result = await (
                self.client.table(table)
                .select(column)
                .order(column)
                .range(start, start + PAGE_SIZE - 1)
                .execute()
            )
            rows = result.data or []
            values.extend(row[column] for row in rows)
            if len(rows) < PAGE_SIZE:
                return values
            start += PAGE_SIZE

    async def list_entry_ids(self) -> List[str]:
        """All knowledge entry ids, ordered by id."""
        return [str(v) for v in await self._select_column(KNOWLEDGE_TABLE, "id")]

    async def list_embedded_ids(self) -> Set[str]:
        """Ids of entries that have at least one embedded chunk."""
        return {str(v) for v in await self._select_column(EMBEDDINGS_TABLE, "knowledge_id")}

    async def get_entries(self, ids: List[str]) -> List[KnowledgeEntry]:
        """
        Fetch entries by id.

        Returns:
            Entries in the order of `ids`; ids that no longer exist are skipped.
        """
        if not ids:
            return []
        result = await self.client.table(KNOWLEDGE_TABLE).select(
            "id, title, content, coach_id, expertise_area, priority_level, tags, source_url, knowledge_type"
        ).in_("id", ids).execute()

        by_id = {str(row["id"]): KnowledgeEntry(**{**row, "id": str(row["id"]), "tags": row.get("tags") or []})
                 for row in result.data or []}
        return [by_id[i] for i in ids if i in by_id]

    async def upsert_chunk(
        self,
        knowledge_id: str,
        chunk_index: int,
        embedding: List[float],
        content_chunk: str,
        text_content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Write one chunk vector, replacing any previous vector for (entry, index)."""
        await self.client.table(EMBEDDINGS_TABLE).upsert(
            {
                "knowledge_id": knowledge_id,
                "chunk_index": chunk_index,
                "embedding": embedding,
                "content_chunk": content_chunk,
                "text_content": text_content,
                "metadata": metadata or {},
            },
            on_conflict="knowledge_id,chunk_index",
        ).execute()

    async def semantic_search(
        self,
        query_embedding: List[float],
        coach_filter: Optional[str],
        similarity_threshold: float,
        match_count: int,
    ) -> List[Dict[str, Any]]:
        result = await self.client.rpc(SEMANTIC_SEARCH_RPC, {
            "query_embedding": query_embedding,
            "coach_filter": coach_filter,
            "similarity_threshold": similarity_threshold,
            "match_count": match_count,
        }).execute()
        return result.data or []

    async def hybrid_search(
        self,
        query_text: str,
        query_embedding: List[float],
        coach_filter: Optional[str],
        semantic_weight: float,
        text_weight: float,
        match_count: int,
    ) -> List[Dict[str, Any]]:
        result = await self.client.rpc(HYBRID_SEARCH_RPC, {
            "query_text": query_text,
            "query_embedding": query_embedding,
            "coach_filter": coach_filter,
            "semantic_weight": semantic_weight,
            "text_weight": text_weight,
            "match_count": match_count,
        }).execute()
        return result.data or []

    async def keyword_search(
        self,
        query: str,
        coach_filter: Optional[str],
        limit: int,
    ) -> List[Dict[str, Any]]:
        """Full-text match on entry content (web-search syntax)."""
        builder = self.client.table(KNOWLEDGE_TABLE).select(
            "id, title, content, coach_id, expertise_area"
        ).wfts("content", query)
        if coach_filter:
            builder = builder.eq("coach_id", coach_filter)
        result = await builder.limit(limit).execute()
        return result.data or []
