"""
Telemetry sink for RAG queries and context assembly.

Writes append-only trace events to coach_traces (and per-query metrics to
rag_performance_metrics). A failed telemetry write is logged and dropped;
it never fails the request that produced it.
"""

import logging
import uuid
from typing import Any, Dict, Optional

from coach_intelligence.core.logging_utils import sanitize_for_logging
from coach_intelligence.core.tracing import get_current_trace_id

logger = logging.getLogger("Coach.Telemetry")


def new_trace_id(prefix: str) -> str:
    """Trace id such as `rag-3f2a9c1d0b7e` or `ctx-...`."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class TelemetrySink:
    """
    Fire-and-log writer in front of a TraceRepository.

    Args:
        traces: TraceRepository, or None to only log events locally
        persist: When False, events are logged but not written
    """

    def __init__(self, traces=None, persist: bool = True):
        self.traces = traces
        self.persist = persist and traces is not None

    async def emit(self, trace_id: str, stage: str, data: Optional[Dict[str, Any]] = None) -> None:
        data = dict(data or {})
        otel_trace_id = get_current_trace_id()
        if otel_trace_id:
            data.setdefault("otel_trace_id", otel_trace_id)
        logger.debug(f"[{trace_id}] {stage}: {sanitize_for_logging(data)}")
        if not self.persist:
            return
        try:
            await self.traces.record(trace_id, stage, data)
        except Exception as e:
            logger.warning(f"Failed to record trace {trace_id}/{stage}: {e}")

    async def rag_query_completed(self, trace_id: str, data: Dict[str, Any]) -> None:
        """Record the query trace plus a performance metrics row."""
        await self.emit(trace_id, "rag_query_completed", data)
        if not self.persist:
            return
        try:
            await self.traces.record_rag_metrics({
                "trace_id": trace_id,
                "coach_id": data.get("coach_id"),
                "search_method": data.get("search_method"),
                "response_time_ms": data.get("response_time_ms"),
                "relevance_score": data.get("relevance_score"),
                "results_count": data.get("results_count"),
                "embedding_tokens": data.get("embedding_tokens"),
            })
        except Exception as e:
            logger.warning(f"Failed to record RAG metrics for {trace_id}: {e}")
