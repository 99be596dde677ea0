"""
Database Feature Module - Organized Data Access Layer

Provides async access to the Supabase tables behind the RAG pipeline.

Usage:
    from coach_intelligence.features.database import get_database_client

    db = await get_database_client()
    job = await db.jobs.get(job_id)
    config = await db.pipelines.get_config("perplexity_knowledge_pipeline")
"""

from coach_intelligence.features.database.client import DatabaseClient, get_database_client

__all__ = [
    "DatabaseClient",
    "get_database_client",
]
