"""
Context building and relevance re-ranking for search hits.
"""

import logging
from typing import Iterable, List

from coach_intelligence.shared.constants import DOMAIN_KEYWORDS
from coach_intelligence.features.knowledge.models import ContextChunk, SearchResult

logger = logging.getLogger("Coach.Knowledge.Ranking")

CONTENT_MATCH_BOOST = 0.1
TITLE_MATCH_BOOST = 0.2
DOMAIN_MATCH_BOOST = 0.05
MIN_KEYWORD_LENGTH = 3
MAX_SEARCH_TERMS = 5


def build_context(results: Iterable[SearchResult], max_context_length: int) -> List[ContextChunk]:
    """
    Admit hits in order while their combined content length fits.

    Stops at the first hit that would overflow `max_context_length`;
    later, smaller hits are not considered.
    """
    chunks: List[ContextChunk] = []
    total_length = 0

    for result in results:
        content = result.content_chunk or ""
        if total_length + len(content) > max_context_length:
            break

        chunks.append(ContextChunk(
            content=content,
            title=result.title,
            expertise_area=result.expertise_area,
            relevance_score=result.similarity or result.combined_score or 0.0,
            source_id=result.knowledge_id,
        ))
        total_length += len(content)

    return chunks


def query_keywords(query: str) -> List[str]:
    """Lower-cased query terms of three or more characters."""
    return [word for word in query.lower().split() if len(word) >= MIN_KEYWORD_LENGTH]


def rank_by_relevance(chunks: Iterable[ContextChunk], query: str) -> List[ContextChunk]:
    """
    Re-score chunks and sort them by descending `final_relevance`.

    Each query keyword adds 0.1 when found in the content and 0.2 when found
    in the title; an expertise area naming a core coaching domain adds 0.05.
    Ties keep their incoming order and no chunk is dropped.
    """
    keywords = query_keywords(query)
    rescored: List[ContextChunk] = []

    for chunk in chunks:
        score = chunk.relevance_score
        content = chunk.content.lower()
        title = (chunk.title or "").lower()

        for keyword in keywords:
            if keyword in content:
                score += CONTENT_MATCH_BOOST
            if keyword in title:
                score += TITLE_MATCH_BOOST

        expertise = (chunk.expertise_area or "").lower()
        if expertise and any(domain in expertise for domain in DOMAIN_KEYWORDS):
            score += DOMAIN_MATCH_BOOST

        rescored.append(chunk.model_copy(update={"final_relevance": score}))

    return sorted(rescored, key=lambda c: c.final_relevance, reverse=True)


def search_terms(query: str) -> List[str]:
    """The first few query keywords, as recorded with each RAG trace."""
    return query_keywords(query)[:MAX_SEARCH_TERMS]


def average_relevance(results: List[SearchResult]) -> float:
    """
    Mean search score over every hit, rounded to two decimals (0 for none).

    Uses the raw similarity (or combined score) of all hits returned by
    the search, not only those admitted into the context.
    """
    if not results:
        return 0.0
    scores = [r.similarity or r.combined_score or 0.0 for r in results]
    return round(sum(scores) / len(scores), 2)
