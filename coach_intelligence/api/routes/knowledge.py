"""
Knowledge/RAG API endpoints.

These endpoints expose the coach knowledge base for:
1. The chat backend, to fetch ranked context for a coach
2. Tooling that needs a raw embedding (e.g. for ad-hoc similarity checks)
"""

import logging

from fastapi import APIRouter, Depends

from coach_intelligence.api.dependencies import get_knowledge
from coach_intelligence.api.models import EmbedRequest, EmbedResponse
from coach_intelligence.features.knowledge import KnowledgeService
from coach_intelligence.features.knowledge.models import RagQuery, RagResponse
from coach_intelligence.shared.result import Ok

logger = logging.getLogger("Coach.API.Knowledge")
router = APIRouter(prefix="/knowledge", tags=["knowledge"])


@router.post("/search", response_model=Ok[RagResponse])
async def search_knowledge(
    request: RagQuery,
    knowledge: KnowledgeService = Depends(get_knowledge),
):
    """
    Ranked knowledge context for one coach.

    Results are limited to the coach's own entries plus the shared
    cross-partition coach; chunks are admitted until context_window
    characters are used and then ordered by query relevance.
    """
    response = await knowledge.query(request)
    logger.info(f"Knowledge search for coach {request.coach_id}: {response.results_count} results in {response.response_time_ms}ms")
    return Ok[RagResponse](data=response)


@router.post("/embed", response_model=Ok[EmbedResponse])
async def embed_text(
    request: EmbedRequest,
    knowledge: KnowledgeService = Depends(get_knowledge),
):
    """Embedding vector for a single text."""
    vector, tokens = await knowledge.embed(request.text)
    return Ok[EmbedResponse](data=EmbedResponse(
        embedding=[float(v) for v in vector],
        dimensions=len(vector),
        model=knowledge.generator.model,
        tokens=tokens,
    ))
