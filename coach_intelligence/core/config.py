import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


_SUPABASE_URL = os.getenv('SUPABASE_URL')
_SUPABASE_KEY = os.getenv('SUPABASE_KEY') or os.getenv('SUPABASE_SERVICE_ROLE_KEY')

_OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
_ANTHROPIC_API_KEY = os.getenv('ANTHROPIC_API_KEY') or os.getenv('CLAUDE_API_KEY')

_EMBEDDING_MODEL = os.getenv('EMBEDDING_MODEL', 'text-embedding-3-small')
_EMBEDDING_DIMENSIONS = int(os.getenv('EMBEDDING_DIMENSIONS', '1536'))
_EMBEDDING_MAX_RETRIES = int(os.getenv('EMBEDDING_MAX_RETRIES', '2'))
_EMBEDDING_RATE_LIMIT_DELAY_MS = int(os.getenv('EMBEDDING_RATE_LIMIT_DELAY_MS', '100'))
_MAX_CHUNK_LENGTH = int(os.getenv('MAX_CHUNK_LENGTH', '8000'))
_DEFAULT_BATCH_SIZE = int(os.getenv('DEFAULT_BATCH_SIZE', '50'))

_SIMILARITY_THRESHOLD = float(os.getenv('SIMILARITY_THRESHOLD', '0.6'))
_SEMANTIC_WEIGHT = float(os.getenv('SEMANTIC_WEIGHT', '0.7'))
_TEXT_WEIGHT = float(os.getenv('TEXT_WEIGHT', '0.3'))
_CROSS_PARTITION_COACH_ID = os.getenv('CROSS_PARTITION_COACH_ID', 'lucy')

_CONTEXT_TOKEN_CAP = int(os.getenv('CONTEXT_TOKEN_CAP', '8000'))
_CONTEXT_LOADER_TIMEOUT_S = float(os.getenv('CONTEXT_LOADER_TIMEOUT_S', '4'))
_MAX_RAG_CHUNKS = int(os.getenv('MAX_RAG_CHUNKS', '6'))
_LITE_CONTEXT_DISABLES_RAG = _env_bool('LITE_CONTEXT_DISABLES_RAG')

_SUMMARY_MODEL = os.getenv('SUMMARY_MODEL', 'claude-haiku-4-5-20251001')

_KNOWLEDGE_PIPELINE_NAME = os.getenv('KNOWLEDGE_PIPELINE_NAME', 'perplexity_knowledge_pipeline')
_KNOWLEDGE_PIPELINE_URL = os.getenv('KNOWLEDGE_PIPELINE_URL') or (
    f"{_SUPABASE_URL.rstrip('/')}/functions/v1/perplexity-knowledge-pipeline"
    if _SUPABASE_URL else None
)
_PIPELINE_RETRY_BASE_MINUTES = int(os.getenv('PIPELINE_RETRY_BASE_MINUTES', '5'))

_DEBUG_CONTEXT = _env_bool('DEBUG_CONTEXT')
_DEBUG_PERSIST_TRACES = _env_bool('DEBUG_PERSIST_TRACES', 'true')


class Config:
    """Central configuration for the coach intelligence service."""

    SUPABASE_URL = _SUPABASE_URL
    SUPABASE_KEY = _SUPABASE_KEY

    OPENAI_API_KEY = _OPENAI_API_KEY
    ANTHROPIC_API_KEY = _ANTHROPIC_API_KEY

    EMBEDDING_MODEL = _EMBEDDING_MODEL
    EMBEDDING_DIMENSIONS = _EMBEDDING_DIMENSIONS
    EMBEDDING_MAX_RETRIES = _EMBEDDING_MAX_RETRIES
    EMBEDDING_RATE_LIMIT_DELAY_MS = _EMBEDDING_RATE_LIMIT_DELAY_MS
    MAX_CHUNK_LENGTH = _MAX_CHUNK_LENGTH
    DEFAULT_BATCH_SIZE = _DEFAULT_BATCH_SIZE

    SIMILARITY_THRESHOLD = _SIMILARITY_THRESHOLD
    SEMANTIC_WEIGHT = _SEMANTIC_WEIGHT
    TEXT_WEIGHT = _TEXT_WEIGHT
    CROSS_PARTITION_COACH_ID = _CROSS_PARTITION_COACH_ID

    CONTEXT_TOKEN_CAP = _CONTEXT_TOKEN_CAP
    CONTEXT_LOADER_TIMEOUT_S = _CONTEXT_LOADER_TIMEOUT_S
    MAX_RAG_CHUNKS = _MAX_RAG_CHUNKS
    LITE_CONTEXT_DISABLES_RAG = _LITE_CONTEXT_DISABLES_RAG

    SUMMARY_MODEL = _SUMMARY_MODEL

    KNOWLEDGE_PIPELINE_NAME = _KNOWLEDGE_PIPELINE_NAME
    KNOWLEDGE_PIPELINE_URL = _KNOWLEDGE_PIPELINE_URL
    PIPELINE_RETRY_BASE_MINUTES = _PIPELINE_RETRY_BASE_MINUTES

    DEBUG_CONTEXT = _DEBUG_CONTEXT
    DEBUG_PERSIST_TRACES = _DEBUG_PERSIST_TRACES


settings = Config()
