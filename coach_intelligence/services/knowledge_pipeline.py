"""
Knowledge Pipeline Trigger.

Invokes the external knowledge-ingestion pipeline (a Supabase edge
function) that researches and writes new coach_knowledge_base entries.
"""

import logging
from typing import List, Optional

import httpx

from coach_intelligence.core.config import settings
from coach_intelligence.shared.correlation import propagate_correlation_headers
from coach_intelligence.shared.errors import ConfigurationError, PipelineExecutionError
from coach_intelligence.services.http_client import HTTPClientManager, http_client_manager
from coach_intelligence.features.automation.models import PipelineSummary

logger = logging.getLogger("Coach.Intelligence.KnowledgePipeline")


class KnowledgePipelineClient:
    """HTTP client for the knowledge pipeline function."""

    def __init__(
        self,
        url: Optional[str] = settings.KNOWLEDGE_PIPELINE_URL,
        api_key: Optional[str] = settings.SUPABASE_KEY,
        http: HTTPClientManager = http_client_manager,
    ):
        self.url = url
        self.api_key = api_key
        self.http = http

    async def invoke(self, batch_size: int, areas: Optional[List[str]] = None) -> PipelineSummary:
        """
        Run one pipeline batch.

        Args:
            batch_size: Maximum entries the pipeline should produce
            areas: Optional expertise areas to restrict the run to

        Returns:
            The pipeline's summary counts

        Raises:
            ConfigurationError: no pipeline URL configured
            PipelineExecutionError: network failure or non-2xx response
        """
        if not self.url:
            raise ConfigurationError("KNOWLEDGE_PIPELINE_URL not configured")

        body = {"area": "BATCH", "batchSize": batch_size}
        if areas:
            body["areas"] = areas

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        client = await self.http.get_client()
        try:
            logger.info(f"Invoking knowledge pipeline: {self.url} (batch_size={batch_size})")
            response = await client.post(
                self.url,
                json=body,
                headers=propagate_correlation_headers(headers),
            )
        except httpx.TimeoutException as e:
            raise PipelineExecutionError(f"Knowledge pipeline timed out: {e}") from e
        except httpx.HTTPError as e:
            raise PipelineExecutionError(f"Knowledge pipeline unreachable: {e}") from e

        if response.status_code >= 400:
            raise PipelineExecutionError(
                f"Pipeline execution failed: {response.status_code} - {response.text[:500]}"
            )

        data = response.json() or {}
        summary = PipelineSummary(**(data.get("summary") or {}))
        logger.info(
            f"Knowledge pipeline finished: {summary.successful} successful, {summary.failed} failed"
        )
        return summary
