"""
AI Context Orchestrator - per-turn context assembly.

Loads persona, memory, conversation summary, daily metrics and retrieved
knowledge concurrently, each under its own timeout. A loader that fails,
times out or is switched off is replaced by its default (fallback persona,
None for everything else), so `build()` always returns a bundle.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from coach_intelligence.core.config import settings
from coach_intelligence.core.tracing import get_tracer, traced_span
from coach_intelligence.shared.constants import CHARS_PER_TOKEN
from coach_intelligence.services.telemetry import TelemetrySink, new_trace_id
from coach_intelligence.features.knowledge.chunker import estimate_tokens
from coach_intelligence.features.context.loaders import ContextLoaders
from coach_intelligence.features.context.models import (
    ContextBundle,
    ContextRequest,
    DebugConfig,
    LoaderStatus,
)
from coach_intelligence.features.context.personas import FALLBACK_PERSONA

logger = logging.getLogger("Coach.Context.Orchestrator")
tracer = get_tracer(__name__)

LOADER_NAMES = ("persona", "memory", "conversation_summary", "daily", "rag")


def hard_trim(text: str, token_cap: int) -> str:
    """Cut text to at most token_cap * 4 characters."""
    return text[:token_cap * CHARS_PER_TOKEN]


class AIContextOrchestrator:
    """
    Builds a ContextBundle for one user turn.

    Usage:
        orchestrator = await get_context_orchestrator()
        bundle = await orchestrator.build(ContextRequest(user_id=uid, coach_id="lucy", message=text))
    """

    def __init__(
        self,
        loaders: ContextLoaders,
        telemetry: Optional[TelemetrySink] = None,
        debug: Optional[DebugConfig] = None,
        loader_timeout_s: float = settings.CONTEXT_LOADER_TIMEOUT_S,
        max_rag_chunks: int = settings.MAX_RAG_CHUNKS,
        lite_disables_rag: bool = settings.LITE_CONTEXT_DISABLES_RAG,
    ):
        """
        Args:
            loaders: Source loaders
            telemetry: Trace sink for build start/complete events
            debug: Diagnostics switches (explicit, never read from globals)
            loader_timeout_s: Upper bound for each loader
            max_rag_chunks: Maximum knowledge chunks kept in a bundle
            lite_disables_rag: Whether lite mode also switches off retrieval
        """
        if loader_timeout_s <= 0:
            raise ValueError("loader_timeout_s must be positive")

        self.loaders = loaders
        self.debug = debug or DebugConfig()
        self.telemetry = telemetry or TelemetrySink(None, persist=False)
        self.loader_timeout_s = loader_timeout_s
        self.max_rag_chunks = max_rag_chunks
        self.lite_disables_rag = lite_disables_rag

    def skipped_loaders(self, request: ContextRequest) -> Dict[str, bool]:
        """Which loaders the request switches off."""
        return {
            "persona": False,
            "memory": request.disable_memory or request.lite,
            "conversation_summary": request.lite,
            "daily": request.disable_daily or request.lite,
            "rag": request.disable_rag or (request.lite and self.lite_disables_rag),
        }

    async def build(self, request: ContextRequest) -> ContextBundle:
        """Assemble the bundle. Never raises."""
        started = time.monotonic()
        trace_id = new_trace_id("ctx")
        try:
            return await self._build(request, trace_id, started)
        except Exception as e:
            logger.error(f"[{trace_id}] Context build failed, returning fallback bundle: {e}")
            return ContextBundle(
                persona=FALLBACK_PERSONA,
                token_cap=request.token_cap,
                loader_status={name: LoaderStatus.FAILED for name in LOADER_NAMES},
                trace_id=trace_id,
                duration_ms=int((time.monotonic() - started) * 1000),
            )

    async def _build(self, request: ContextRequest, trace_id: str, started: float) -> ContextBundle:
        with traced_span(
            tracer,
            "context.build",
            **{"context.coach_id": request.coach_id, "context.lite": request.lite},
        ):
            await self.telemetry.emit(trace_id, "context_build_start", {
                "user_id": request.user_id,
                "coach_id": request.coach_id,
                "lite": request.lite,
                "token_cap": request.token_cap,
            })

            values, status = await self._load_all(request, trace_id)

            tokens_in = 0
            summary = values["conversation_summary"]
            if summary:
                summary = hard_trim(summary, request.token_cap)
                tokens_in += estimate_tokens(summary)

            rag_chunks = values["rag"]
            if rag_chunks:
                rag_chunks = rag_chunks[:self.max_rag_chunks]

            bundle = ContextBundle(
                persona=values["persona"] or FALLBACK_PERSONA,
                memory=values["memory"],
                daily=values["daily"],
                rag_chunks=rag_chunks or None,
                conversation_summary=summary or None,
                tokens_in=tokens_in,
                token_cap=request.token_cap,
                loader_status=status,
                trace_id=trace_id,
                duration_ms=int((time.monotonic() - started) * 1000),
            )

        await self.telemetry.emit(trace_id, "context_build_complete", {
            "duration_ms": bundle.duration_ms,
            "tokens_in": bundle.tokens_in,
            "rag_chunks": len(bundle.rag_chunks or []),
            "loader_status": {k: v.value for k, v in status.items()},
        })
        return bundle

    async def _load_all(self, request: ContextRequest, trace_id: str):
        loaders: Dict[str, Callable[[ContextRequest], Awaitable[Any]]] = {
            "persona": self.loaders.persona,
            "memory": self.loaders.memory,
            "conversation_summary": self.loaders.conversation_summary,
            "daily": self.loaders.daily,
            "rag": self.loaders.rag,
        }
        skipped = self.skipped_loaders(request)
        active: List[str] = [name for name in LOADER_NAMES if not skipped[name]]

        outcomes = await asyncio.gather(
            *(self._run_loader(loaders[name], request) for name in active),
            return_exceptions=True,
        )

        values: Dict[str, Any] = {name: None for name in LOADER_NAMES}
        status: Dict[str, LoaderStatus] = {
            name: LoaderStatus.SKIPPED for name in LOADER_NAMES if skipped[name]
        }

        for name, outcome in zip(active, outcomes):
            if isinstance(outcome, asyncio.TimeoutError):
                status[name] = LoaderStatus.TIMEOUT
                logger.warning(f"[{trace_id}] Loader {name} timed out after {self.loader_timeout_s}s")
            elif isinstance(outcome, BaseException):
                status[name] = LoaderStatus.FAILED
                logger.warning(f"[{trace_id}] Loader {name} failed: {outcome!r}")
            else:
                values[name] = outcome
                status[name] = LoaderStatus.OK if outcome is not None else LoaderStatus.EMPTY
                log = logger.info if self.debug.verbose_loaders else logger.debug
                log(f"[{trace_id}] Loader {name}: {status[name].value}")

        return values, status

    async def _run_loader(self, loader, request: ContextRequest):
        return await asyncio.wait_for(loader(request), timeout=self.loader_timeout_s)


# Singleton instance
_orchestrator: Optional[AIContextOrchestrator] = None


async def get_context_orchestrator() -> AIContextOrchestrator:
    """Get the singleton orchestrator wired to Supabase and the knowledge service."""
    global _orchestrator
    if _orchestrator is None:
        from coach_intelligence.features.database import get_database_client
        from coach_intelligence.features.knowledge import get_knowledge_service

        db = await get_database_client()
        debug = DebugConfig.from_settings()
        _orchestrator = AIContextOrchestrator(
            loaders=ContextLoaders(db.coaching, await get_knowledge_service()),
            telemetry=TelemetrySink(db.traces, persist=debug.persist_traces),
            debug=debug,
        )
    return _orchestrator
