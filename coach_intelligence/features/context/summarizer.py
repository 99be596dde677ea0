"""
Conversation summaries for users without a stored summary.

Uses Haiku (cheap/fast) to condense the latest messages with a coach.
Without an Anthropic key, or when the call fails, a plain digest of the
last messages is used instead.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from anthropic import AsyncAnthropic

from coach_intelligence.core.config import settings
from coach_intelligence.core.logging_utils import log_llm_cost

logger = logging.getLogger("Coach.Context.Summarizer")

DIGEST_MESSAGES = 8
DIGEST_LINE_CHARS = 200


def digest(messages: List[Dict[str, Any]]) -> str:
    """Last few messages as `User: ...` / `Coach: ...` lines."""
    lines = []
    for message in messages[-DIGEST_MESSAGES:]:
        role = "User" if message.get("message_role") == "user" else "Coach"
        text = " ".join((message.get("message_content") or "").split())
        if len(text) > DIGEST_LINE_CHARS:
            text = text[:DIGEST_LINE_CHARS] + "..."
        if text:
            lines.append(f"{role}: {text}")
    return "\n".join(lines)


class ConversationSummarizer:
    """Summarizes recent coach conversations."""

    def __init__(
        self,
        client: Optional[AsyncAnthropic] = None,
        model: str = settings.SUMMARY_MODEL,
    ):
        if client is None and settings.ANTHROPIC_API_KEY:
            client = AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)
        self.client = client
        self.model = model

    async def summarize(self, messages: List[Dict[str, Any]], user_id: Optional[str] = None) -> Optional[str]:
        if not messages:
            return None
        if self.client is None:
            return digest(messages)

        transcript = "\n".join(
            f"{m.get('message_role', 'user')}: {m.get('message_content', '')}" for m in messages
        )
        prompt = (
            "Summarize this coaching conversation for the coach's next reply. "
            "Keep goals, problems raised, advice already given and the user's mood. "
            "Max 120 words, no preamble.\n\n"
            f"{transcript[:12000]}"
        )

        started = time.monotonic()
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=400,
                temperature=0.2,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            logger.warning("Conversation summary failed, using digest: %s", e)
            return digest(messages)

        usage = getattr(response, "usage", None)
        if usage is not None:
            log_llm_cost(
                model=self.model,
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
                duration_ms=int((time.monotonic() - started) * 1000),
                endpoint="context.conversation_summary",
                user_id=user_id,
            )

        text = response.content[0].text.strip() if response.content else ""
        return text or digest(messages)
