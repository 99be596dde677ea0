"""
Context Assembly - builds the per-turn context bundle for the coach model.
"""

from coach_intelligence.features.context.models import (
    ContextBundle,
    ContextRequest,
    DebugConfig,
    LoaderStatus,
)
from coach_intelligence.features.context.orchestrator import (
    AIContextOrchestrator,
    get_context_orchestrator,
    hard_trim,
)
from coach_intelligence.features.context.personas import FALLBACK_PERSONA
from coach_intelligence.features.context.prompt import render_system_prompt

__all__ = [
    "AIContextOrchestrator",
    "ContextBundle",
    "ContextRequest",
    "DebugConfig",
    "FALLBACK_PERSONA",
    "LoaderStatus",
    "get_context_orchestrator",
    "hard_trim",
    "render_system_prompt",
]
