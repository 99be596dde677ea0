"""
Pipeline Repository - automation config and run history.

Handles:
- Reading/updating the singleton config row per pipeline name
- Creating and finishing automated_pipeline_runs records
"""

import logging
from typing import Any, Dict, List, Optional

from coach_intelligence.shared.constants import (
    PIPELINE_CONFIG_TABLE,
    PIPELINE_RUNS_TABLE,
)

logger = logging.getLogger("Coach.Database.Pipelines")


class PipelineRepository:
    """Repository for pipeline_automation_config and automated_pipeline_runs."""

    def __init__(self, client):
        """Initialize with an async Supabase client."""
        self.client = client

    async def get_config(self, pipeline_name: str) -> Optional[Dict[str, Any]]:
        result = await self.client.table(PIPELINE_CONFIG_TABLE).select("*").eq(
            "pipeline_name", pipeline_name
        ).limit(1).execute()
        return result.data[0] if result.data else None

    async def update_config(self, pipeline_name: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        result = await self.client.table(PIPELINE_CONFIG_TABLE).update(updates).eq(
            "pipeline_name", pipeline_name
        ).execute()
        return result.data[0] if result.data else None

    async def create_run(self, record: Dict[str, Any]) -> Dict[str, Any]:
        result = await self.client.table(PIPELINE_RUNS_TABLE).insert(record).execute()
        return result.data[0]

    async def update_run(self, run_id: str, updates: Dict[str, Any]) -> None:
        await self.client.table(PIPELINE_RUNS_TABLE).update(updates).eq(
            "id", run_id
        ).execute()

    async def recent_runs(self, pipeline_type: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Most recent runs first."""
        result = await self.client.table(PIPELINE_RUNS_TABLE).select("*").eq(
            "pipeline_type", pipeline_type
        ).order("started_at", desc=True).limit(limit).execute()
        return result.data or []
