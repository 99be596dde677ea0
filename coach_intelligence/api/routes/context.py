"""
Context assembly endpoint.

Returns the per-turn bundle together with the rendered system prompt so
the chat backend can call the model directly.
"""

import logging

from fastapi import APIRouter, Depends

from coach_intelligence.api.dependencies import get_orchestrator
from coach_intelligence.api.models import ContextBuildResponse
from coach_intelligence.features.context import (
    AIContextOrchestrator,
    ContextRequest,
    render_system_prompt,
)
from coach_intelligence.shared.result import Ok

logger = logging.getLogger("Coach.API.Context")
router = APIRouter(prefix="/context", tags=["context"])


@router.post("/build", response_model=Ok[ContextBuildResponse])
async def build_context(
    request: ContextRequest,
    orchestrator: AIContextOrchestrator = Depends(get_orchestrator),
):
    bundle = await orchestrator.build(request)
    logger.info(
        f"Context {bundle.trace_id} for {request.user_id}/{request.coach_id}: "
        f"{bundle.tokens_in}/{bundle.token_cap} tokens in {bundle.duration_ms}ms"
    )
    return Ok[ContextBuildResponse](data=ContextBuildResponse(
        bundle=bundle.model_dump(mode="json"),
        system_prompt=render_system_prompt(bundle),
    ))
