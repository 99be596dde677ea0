"""
Sentence-respecting chunking for knowledge base entries.

The goal of chunking is to:
1. Keep every chunk within the embedding model's input limit
2. Preserve sentence boundaries (don't cut mid-sentence unless unavoidable)
3. Keep chunk order identical to source order, so chunk_index is stable
"""

import logging
import math
import re
from typing import List

from coach_intelligence.core.config import settings
from coach_intelligence.shared.constants import CHARS_PER_TOKEN
from coach_intelligence.features.knowledge.models import KnowledgeEntry

logger = logging.getLogger("Coach.Knowledge.Chunker")

_SENTENCE_BOUNDARY = re.compile(r"[.!?]+")

# ". " between sentences plus the closing "."
_JOINER = ". "
_TERMINATOR = "."


def estimate_tokens(text: str) -> int:
    """Approximate token count: ceil(chars / 4)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def split_into_chunks(text: str, max_length: int = settings.MAX_CHUNK_LENGTH) -> List[str]:
    """
    Split text into chunks of at most `max_length` characters.

    Sentences (split on runs of . ! ?) are packed greedily, joined with
    ". " and each chunk is closed with ".". A sentence that cannot fit even
    on its own is hard-truncated to `max_length` and emitted alone.

    Args:
        text: Text to split
        max_length: Maximum chunk length in characters

    Returns:
        Ordered chunks; never empty. Text with no sentences yields
        [text[:max_length]].
    """
    if max_length < 1:
        raise ValueError("max_length must be positive")

    chunks: List[str] = []
    current = ""

    sentences = [s.strip() for s in _SENTENCE_BOUNDARY.split(text)]
    for sentence in sentences:
        if not sentence:
            continue

        joiner = _JOINER if current else ""
        if len(current) + len(joiner) + len(sentence) + len(_TERMINATOR) <= max_length:
            current += joiner + sentence
            continue

        if current:
            chunks.append(current + _TERMINATOR)
            current = ""

        if len(sentence) + len(_TERMINATOR) <= max_length:
            current = sentence
        else:
            chunks.append(sentence[:max_length])

    if current:
        chunks.append(current + _TERMINATOR)

    if not chunks:
        return [text[:max_length]]
    return chunks


def build_embedding_text(entry: KnowledgeEntry) -> str:
    """Text that gets embedded for an entry: title, content, then its tags."""
    return (
        f"{entry.title}\n\n{entry.content}\n\n"
        f"Expertise: {entry.expertise_area or ''}\n"
        f"Coach: {entry.coach_id or ''}"
    )
