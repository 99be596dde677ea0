"""
Coaching Repository - read-only access to the signals folded into a
context bundle: personas, coach memory, daily summaries and conversations.
"""

import logging
from typing import Any, Dict, List, Optional

from coach_intelligence.shared.constants import (
    COACH_MEMORY_TABLE,
    COACH_PERSONAS_TABLE,
    CONVERSATION_SUMMARIES_TABLE,
    CONVERSATIONS_TABLE,
    DAILY_GOALS_TABLE,
    DAILY_SUMMARIES_TABLE,
)

logger = logging.getLogger("Coach.Database.Coaching")


def _first(result) -> Optional[Dict[str, Any]]:
    return result.data[0] if result.data else None


class CoachingRepository:
    """Repository for the per-user coaching signals."""

    def __init__(self, client):
        """Initialize with an async Supabase client."""
        self.client = client

    async def get_persona(self, coach_id: str) -> Optional[Dict[str, Any]]:
        result = await self.client.table(COACH_PERSONAS_TABLE).select(
            "id, name, title, bio_short, voice, style_rules, catchphrase, sign_off, emojis"
        ).eq("id", coach_id).limit(1).execute()
        return _first(result)

    async def get_memory(self, user_id: str, coach_id: str) -> Optional[Dict[str, Any]]:
        result = await self.client.table(COACH_MEMORY_TABLE).select(
            "memory_content, relationship_stage, trust_level, last_context"
        ).eq("user_id", user_id).eq("coach_id", coach_id).limit(1).execute()
        return _first(result)

    async def get_daily_summary(self, user_id: str, date: str) -> Optional[Dict[str, Any]]:
        result = await self.client.table(DAILY_SUMMARIES_TABLE).select(
            "date, total_calories, total_protein, total_carbs, total_fats, "
            "sleep_score, hydration_score, workout_volume, summary_md"
        ).eq("user_id", user_id).eq("date", date).limit(1).execute()
        return _first(result)

    async def get_calorie_goal(self, user_id: str) -> Optional[int]:
        result = await self.client.table(DAILY_GOALS_TABLE).select("calorie_goal").eq(
            "user_id", user_id
        ).limit(1).execute()
        row = _first(result)
        return row.get("calorie_goal") if row else None

    async def get_latest_conversation_summary(self, user_id: str) -> Optional[Dict[str, Any]]:
        result = await self.client.table(CONVERSATION_SUMMARIES_TABLE).select(
            "summary_content, key_topics, message_count, emotional_tone, "
            "progress_notes, summary_period_start, summary_period_end"
        ).eq("user_id", user_id).order("summary_period_end", desc=True).limit(1).execute()
        return _first(result)

    async def get_recent_messages(
        self,
        user_id: str,
        coach_id: str,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        """
        Latest conversation messages with this coach.

        Returns:
            Messages oldest-first, as {message_role, message_content, created_at}
        """
        result = await self.client.table(CONVERSATIONS_TABLE).select(
            "message_role, message_content, created_at"
        ).eq("user_id", user_id).eq("coach_personality", coach_id).order(
            "created_at", desc=True
        ).limit(limit).execute()
        return list(reversed(result.data or []))
