"""
Logging utilities for coach data and AI provider usage.

Includes:
- Redaction of secrets and user text before it reaches the logs
- Structured cost lines for embedding and LLM calls
"""
import json
import logging
import re
from typing import Any, Optional


# Keys whose values never get logged verbatim
SENSITIVE_KEYS = [
    "api_key", "token", "password", "secret", "auth",
    "email", "phone", "authorization", "bearer",
    "message_content", "memory_data",
]


def sanitize_for_logging(data: Any, max_len: int = 100) -> Any:
    """
    Sanitize data for safe logging - redacts secrets and user content.

    Args:
        data: The data to sanitize (dict, list, str or scalar)
        max_len: Maximum length for string values before truncation

    Returns:
        Sanitized version of the data safe for logging
    """
    if data is None:
        return "None"

    if isinstance(data, dict):
        sanitized = {}
        for k, v in data.items():
            if any(sensitive in str(k).lower() for sensitive in SENSITIVE_KEYS):
                sanitized[k] = "***REDACTED***"
            else:
                sanitized[k] = sanitize_for_logging(v, max_len)
        return sanitized

    if isinstance(data, list):
        return [sanitize_for_logging(item, max_len) for item in data]

    if isinstance(data, str):
        # Single-line output
        cleaned = re.sub(r'[\x00-\x1F\x7F]', '', data)
        if len(cleaned) > max_len:
            return cleaned[:max_len] + "..."
        return cleaned

    if isinstance(data, (int, float, bool)):
        return data

    return sanitize_for_logging(str(data), max_len)


def preview(text: Optional[str], max_len: int = 100) -> str:
    """Short single-line preview of user text (queries, chunks)."""
    if not text:
        return ""
    return sanitize_for_logging(text, max_len)


# =============================================================================
# STRUCTURED COST LOGGING
# =============================================================================

_cost_logger = logging.getLogger("Coach.Cost")

# USD per 1M input tokens
EMBEDDING_PRICES = {
    "text-embedding-3-small": 0.02,
    "text-embedding-3-large": 0.13,
    "text-embedding-ada-002": 0.10,
}


def log_embedding_cost(
    model: str,
    input_tokens: int,
    duration_ms: Optional[int] = None,
    endpoint: str = "unknown",
) -> None:
    """
    Log a structured cost event for an embedding API call.

    Produces a single `EMBEDDING_COST {...}` line for log-based dashboards.
    """
    price = EMBEDDING_PRICES.get(model, 0.0)
    event = {
        "event": "embedding_cost",
        "model": model,
        "input_tokens": input_tokens,
        "cost_usd": round(input_tokens * price / 1_000_000, 8),
        "endpoint": endpoint,
    }
    if duration_ms is not None:
        event["duration_ms"] = duration_ms

    _cost_logger.info("EMBEDDING_COST %s", json.dumps(event))


def log_llm_cost(
    model: str,
    input_tokens: int,
    output_tokens: int,
    duration_ms: Optional[int] = None,
    endpoint: str = "unknown",
    user_id: Optional[str] = None,
) -> None:
    """
    Log a structured cost event for an LLM call (conversation summaries).

    Args:
        model: Model identifier (e.g., 'claude-haiku-4-5-20251001')
        input_tokens: Number of input tokens
        output_tokens: Number of output tokens
        duration_ms: Request duration in milliseconds
        endpoint: Component that triggered this call
        user_id: Optional user the call was made for
    """
    event = {
        "event": "llm_cost",
        "model": model,
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": input_tokens + output_tokens,
        "endpoint": endpoint,
    }
    if duration_ms is not None:
        event["duration_ms"] = duration_ms
    if user_id:
        event["user_id"] = user_id

    _cost_logger.info("LLM_COST %s", json.dumps(event))
