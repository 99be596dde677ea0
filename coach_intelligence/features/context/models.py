"""
Models for per-turn context assembly.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from coach_intelligence.core.config import settings
from coach_intelligence.features.knowledge.models import ContextChunk


@dataclass(frozen=True)
class DebugConfig:
    """
    Diagnostics switches handed to the orchestrator at construction.

    verbose_loaders: log each loader's outcome at INFO instead of DEBUG
    persist_traces: write context telemetry to coach_traces
    """
    verbose_loaders: bool = False
    persist_traces: bool = True

    @classmethod
    def from_settings(cls) -> "DebugConfig":
        return cls(
            verbose_loaders=settings.DEBUG_CONTEXT,
            persist_traces=settings.DEBUG_PERSIST_TRACES,
        )


class ContextRequest(BaseModel):
    """Input for one context build (one user turn)."""
    user_id: str
    coach_id: str
    message: Optional[str] = Field(None, description="Current user message, used as the RAG query")
    disable_memory: bool = False
    disable_daily: bool = False
    disable_rag: bool = False
    lite: bool = Field(False, description="Skip memory, conversation summary and daily metrics")
    token_cap: int = Field(settings.CONTEXT_TOKEN_CAP, ge=1)
    day: Optional[date] = Field(None, description="Day for daily metrics (defaults to today, UTC)")


class Persona(BaseModel):
    id: Optional[str] = None
    name: str
    title: Optional[str] = None
    bio: Optional[str] = None
    style: List[str] = Field(default_factory=list)
    voice: Optional[str] = None
    catchphrase: Optional[str] = None
    sign_off: Optional[str] = None
    specializations: List[str] = Field(default_factory=list)


class MemorySnapshot(BaseModel):
    relationship_stage: Optional[str] = None
    trust_level: Optional[int] = None
    last_context: Optional[str] = None
    preferences: Dict[str, Any] = Field(default_factory=dict)
    achievements: List[Any] = Field(default_factory=list)
    challenges: List[Any] = Field(default_factory=list)


class DailySnapshot(BaseModel):
    date: str
    calories: Optional[float] = None
    calorie_goal: Optional[int] = None
    kcal_left: Optional[float] = None
    protein: Optional[float] = None
    sleep_score: Optional[float] = None
    hydration_score: Optional[float] = None
    workout_volume: Optional[float] = None
    summary: Optional[str] = None


class LoaderStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    SKIPPED = "skipped"
    FAILED = "failed"
    TIMEOUT = "timeout"


class ContextBundle(BaseModel):
    """Everything handed to the downstream generation call for one turn."""
    persona: Persona
    memory: Optional[MemorySnapshot] = None
    daily: Optional[DailySnapshot] = None
    rag_chunks: Optional[List[ContextChunk]] = None
    conversation_summary: Optional[str] = None
    tokens_in: int = 0
    token_cap: int = settings.CONTEXT_TOKEN_CAP
    loader_status: Dict[str, LoaderStatus] = Field(default_factory=dict)
    trace_id: str
    duration_ms: int = 0
