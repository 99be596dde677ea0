"""
Trace Repository - append-only telemetry sink.

Rows are written by the orchestrator and the RAG query path and are
never read back by the service.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from coach_intelligence.shared.constants import RAG_METRICS_TABLE, TRACES_TABLE

logger = logging.getLogger("Coach.Database.Traces")


class TraceRepository:
    """Repository for coach_traces and rag_performance_metrics."""

    def __init__(self, client):
        """Initialize with an async Supabase client."""
        self.client = client

    async def record(self, trace_id: str, stage: str, data: Dict[str, Any]) -> None:
        await self.client.table(TRACES_TABLE).insert({
            "trace_id": trace_id,
            "ts": datetime.now(timezone.utc).isoformat(),
            "stage": stage,
            "data": data,
        }).execute()

    async def record_rag_metrics(self, metrics: Dict[str, Any]) -> None:
        await self.client.table(RAG_METRICS_TABLE).insert(metrics).execute()
