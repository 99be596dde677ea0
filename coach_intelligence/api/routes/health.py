from fastapi import APIRouter

from coach_intelligence.core.config import settings
from coach_intelligence.features.automation import task_queue

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """Liveness plus which integrations are configured."""
    return {
        "status": "healthy",
        "supabase_configured": bool(settings.SUPABASE_URL and settings.SUPABASE_KEY),
        "openai_configured": bool(settings.OPENAI_API_KEY),
        "anthropic_configured": bool(settings.ANTHROPIC_API_KEY),
        "knowledge_pipeline_configured": bool(settings.KNOWLEDGE_PIPELINE_URL),
        "embedding_model": settings.EMBEDDING_MODEL,
        "background_tasks_pending": task_queue.pending,
    }
