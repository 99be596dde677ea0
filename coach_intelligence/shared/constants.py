"""
Shared constants for the coach intelligence service.

Table names, RPC names and domain vocabularies live here so repositories,
the ranker and the tests agree on them.
"""

# Knowledge base
KNOWLEDGE_TABLE = "coach_knowledge_base"
EMBEDDINGS_TABLE = "knowledge_base_embeddings"
EMBEDDING_JOBS_TABLE = "embedding_generation_jobs"

# Vector search RPCs
SEMANTIC_SEARCH_RPC = "search_knowledge_semantic"
HYBRID_SEARCH_RPC = "search_knowledge_hybrid"

# Automation
PIPELINE_CONFIG_TABLE = "pipeline_automation_config"
PIPELINE_RUNS_TABLE = "automated_pipeline_runs"
PIPELINE_RUN_TYPE = "perplexity_knowledge"

# Coaching signals
COACH_PERSONAS_TABLE = "coach_personas"
COACH_MEMORY_TABLE = "coach_memory"
DAILY_SUMMARIES_TABLE = "daily_summaries"
DAILY_GOALS_TABLE = "daily_goals"
CONVERSATION_SUMMARIES_TABLE = "conversation_summaries"
CONVERSATIONS_TABLE = "coach_conversations"

# Telemetry sink
TRACES_TABLE = "coach_traces"
RAG_METRICS_TABLE = "rag_performance_metrics"

# Keyword search hits carry no distance metric
KEYWORD_MATCH_SIMILARITY = 0.5
KEYWORD_CONTENT_PREVIEW_CHARS = 500

# Expertise areas that earn a small ranking boost (German and English tags)
DOMAIN_KEYWORDS = (
    "training",
    "nutrition",
    "ernährung",
    "muskelaufbau",
    "kraft",
    "ausdauer",
)

# Approximate characters per token
CHARS_PER_TOKEN = 4
