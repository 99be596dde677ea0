"""
Individual context sources for the orchestrator.

Each loader returns its value or None when there is nothing to load, and
raises on failure; fallbacks are applied by the orchestrator.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from coach_intelligence.features.context.models import (
    ContextRequest,
    DailySnapshot,
    MemorySnapshot,
    Persona,
)
from coach_intelligence.features.context.personas import (
    FALLBACK_PERSONA,
    builtin_persona,
    persona_from_row,
)
from coach_intelligence.features.context.summarizer import ConversationSummarizer
from coach_intelligence.features.knowledge.models import ContextChunk, SearchMethod

logger = logging.getLogger("Coach.Context.Loaders")

RECENT_MESSAGES = 20


class ContextLoaders:
    """
    Loaders for persona, memory, conversation summary, daily metrics and RAG.

    Args:
        coaching: CoachingRepository
        knowledge: KnowledgeService (only `retrieve` is used)
        summarizer: Summarizer for users without a stored conversation summary
        rag_max_results: Search hits requested per turn
        rag_context_window: Character budget for retrieved context
    """

    def __init__(
        self,
        coaching,
        knowledge,
        summarizer: Optional[ConversationSummarizer] = None,
        rag_max_results: int = 8,
        rag_context_window: int = 4000,
    ):
        self.coaching = coaching
        self.knowledge = knowledge
        self.summarizer = summarizer or ConversationSummarizer()
        self.rag_max_results = rag_max_results
        self.rag_context_window = rag_context_window

    async def persona(self, request: ContextRequest) -> Persona:
        row = await self.coaching.get_persona(request.coach_id)
        if row:
            return persona_from_row(row)
        return builtin_persona(request.coach_id) or FALLBACK_PERSONA

    async def memory(self, request: ContextRequest) -> Optional[MemorySnapshot]:
        row = await self.coaching.get_memory(request.user_id, request.coach_id)
        if not row:
            return None

        content = row.get("memory_content") or {}
        return MemorySnapshot(
            relationship_stage=row.get("relationship_stage"),
            trust_level=row.get("trust_level"),
            last_context=row.get("last_context"),
            preferences=content.get("preferences") or {},
            achievements=content.get("achievements") or [],
            challenges=content.get("challenges") or [],
        )

    async def conversation_summary(self, request: ContextRequest) -> Optional[str]:
        stored = await self.coaching.get_latest_conversation_summary(request.user_id)
        if stored and stored.get("summary_content"):
            return stored["summary_content"]

        messages = await self.coaching.get_recent_messages(
            request.user_id, request.coach_id, limit=RECENT_MESSAGES
        )
        return await self.summarizer.summarize(messages, user_id=request.user_id)

    async def daily(self, request: ContextRequest) -> Optional[DailySnapshot]:
        day = (request.day or datetime.now(timezone.utc).date()).isoformat()
        row = await self.coaching.get_daily_summary(request.user_id, day)
        if not row:
            return None

        goal = await self.coaching.get_calorie_goal(request.user_id)
        calories = row.get("total_calories")
        kcal_left = goal - calories if goal and calories is not None else None

        return DailySnapshot(
            date=day,
            calories=calories,
            calorie_goal=goal,
            kcal_left=kcal_left,
            protein=row.get("total_protein"),
            sleep_score=row.get("sleep_score"),
            hydration_score=row.get("hydration_score"),
            workout_volume=row.get("workout_volume"),
            summary=row.get("summary_md"),
        )

    async def rag(self, request: ContextRequest) -> Optional[List[ContextChunk]]:
        if not request.message or not request.message.strip():
            return None

        chunks = await self.knowledge.retrieve(
            query=request.message,
            coach_id=request.coach_id,
            method=SearchMethod.HYBRID,
            max_results=self.rag_max_results,
            context_window=self.rag_context_window,
        )
        return chunks or None
