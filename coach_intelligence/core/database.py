"""
Supabase connection for the coach intelligence service.

Every repository shares one async client so vector RPCs, job updates and
telemetry inserts are awaited on the event loop instead of blocking it.
"""

import logging
from typing import Optional

from supabase import AsyncClient, acreate_client

from coach_intelligence.core.config import settings

logger = logging.getLogger("Coach.Database.Connection")

_supabase: Optional[AsyncClient] = None


async def get_supabase() -> AsyncClient:
    """Return the shared async Supabase client, creating it on first use."""
    global _supabase
    if _supabase is None:
        if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
            raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be configured")
        _supabase = await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
        logger.info("Supabase async client created")
    return _supabase


def reset_supabase() -> None:
    """Drop the cached client (used on shutdown)."""
    global _supabase
    _supabase = None
