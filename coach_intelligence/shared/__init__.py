# Shared constants and utilities
from .constants import (
    CHARS_PER_TOKEN,
    DOMAIN_KEYWORDS,
    KEYWORD_MATCH_SIMILARITY,
)

__all__ = [
    "CHARS_PER_TOKEN",
    "DOMAIN_KEYWORDS",
    "KEYWORD_MATCH_SIMILARITY",
]
