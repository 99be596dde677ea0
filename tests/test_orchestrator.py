import asyncio

import pytest

from conftest import FakeTraceRepository
from coach_intelligence.features.context import (
    AIContextOrchestrator,
    ContextRequest,
    FALLBACK_PERSONA,
    LoaderStatus,
    hard_trim,
)
from coach_intelligence.features.context.models import DailySnapshot, MemorySnapshot, Persona
from coach_intelligence.features.knowledge.models import ContextChunk
from coach_intelligence.services.telemetry import TelemetrySink


class StubLoaders:
    """Loader set whose results (or exceptions) are given per name."""

    def __init__(self, **overrides):
        self.values = {
            "persona": Persona(id="sascha", name="Sascha Weber"),
            "memory": MemorySnapshot(relationship_stage="building"),
            "conversation_summary": "User asked about squats.",
            "daily": DailySnapshot(date="2026-03-02", calories=1800),
            "rag": [ContextChunk(content="Squat deep.", relevance_score=0.8, source_id="k1")],
        }
        self.values.update(overrides)
        self.calls = []

    async def _load(self, name):
        self.calls.append(name)
        value = self.values[name]
        if isinstance(value, BaseException):
            raise value
        if callable(value):
            return await value()
        return value

    async def persona(self, request):
        return await self._load("persona")

    async def memory(self, request):
        return await self._load("memory")

    async def conversation_summary(self, request):
        return await self._load("conversation_summary")

    async def daily(self, request):
        return await self._load("daily")

    async def rag(self, request):
        return await self._load("rag")


def _request(**kwargs) -> ContextRequest:
    return ContextRequest(user_id="u1", coach_id="sascha", message="How deep should I squat?", **kwargs)


class TestBuild:
    @pytest.mark.asyncio
    async def test_all_loaders_ok(self):
        orchestrator = AIContextOrchestrator(StubLoaders(), loader_timeout_s=1)

        bundle = await orchestrator.build(_request())

        assert bundle.persona.name == "Sascha Weber"
        assert bundle.memory.relationship_stage == "building"
        assert bundle.daily.calories == 1800
        assert bundle.rag_chunks[0].source_id == "k1"
        assert all(status == LoaderStatus.OK for status in bundle.loader_status.values())
        assert bundle.trace_id.startswith("ctx-")

    @pytest.mark.asyncio
    async def test_every_loader_failing_yields_fallback_bundle(self):
        loaders = StubLoaders(**{
            name: RuntimeError("db down")
            for name in ("persona", "memory", "conversation_summary", "daily", "rag")
        })
        orchestrator = AIContextOrchestrator(loaders, loader_timeout_s=1)

        bundle = await orchestrator.build(_request())

        assert bundle.persona == FALLBACK_PERSONA
        assert bundle.memory is None
        assert bundle.daily is None
        assert bundle.rag_chunks is None
        assert bundle.conversation_summary is None
        assert set(bundle.loader_status.values()) == {LoaderStatus.FAILED}

    @pytest.mark.asyncio
    async def test_unexpected_error_still_returns_bundle(self):
        orchestrator = AIContextOrchestrator(loaders=None, loader_timeout_s=1)

        bundle = await orchestrator.build(_request())

        assert bundle.persona == FALLBACK_PERSONA
        assert len(bundle.loader_status) == 5

    @pytest.mark.asyncio
    async def test_slow_loader_times_out(self):
        async def slow():
            await asyncio.sleep(1)
            return MemorySnapshot()

        orchestrator = AIContextOrchestrator(StubLoaders(memory=slow), loader_timeout_s=0.05)

        bundle = await orchestrator.build(_request())

        assert bundle.loader_status["memory"] == LoaderStatus.TIMEOUT
        assert bundle.memory is None
        assert bundle.loader_status["persona"] == LoaderStatus.OK

    @pytest.mark.asyncio
    async def test_empty_loader_result(self):
        orchestrator = AIContextOrchestrator(StubLoaders(memory=None), loader_timeout_s=1)

        bundle = await orchestrator.build(_request())

        assert bundle.loader_status["memory"] == LoaderStatus.EMPTY


class TestBudget:
    @pytest.mark.asyncio
    async def test_summary_trimmed_to_token_cap(self):
        orchestrator = AIContextOrchestrator(StubLoaders(conversation_summary="x" * 1000), loader_timeout_s=1)

        bundle = await orchestrator.build(_request(token_cap=10))

        assert len(bundle.conversation_summary) == 40
        assert bundle.tokens_in == 10
        assert bundle.token_cap == 10

    @pytest.mark.asyncio
    async def test_short_summary_untouched(self):
        orchestrator = AIContextOrchestrator(StubLoaders(conversation_summary="abcdef"), loader_timeout_s=1)

        bundle = await orchestrator.build(_request(token_cap=10))

        assert bundle.conversation_summary == "abcdef"
        assert bundle.tokens_in == 2

    @pytest.mark.asyncio
    async def test_rag_chunks_capped(self):
        chunks = [ContextChunk(content=f"c{i}", source_id=str(i)) for i in range(10)]
        orchestrator = AIContextOrchestrator(StubLoaders(rag=chunks), loader_timeout_s=1, max_rag_chunks=6)

        bundle = await orchestrator.build(_request())

        assert [c.source_id for c in bundle.rag_chunks] == ["0", "1", "2", "3", "4", "5"]

    def test_hard_trim(self):
        assert hard_trim("a" * 50, 3) == "a" * 12
        assert hard_trim("abc", 3) == "abc"


class TestSwitches:
    @pytest.mark.asyncio
    async def test_lite_skips_memory_summary_and_daily(self):
        loaders = StubLoaders()
        orchestrator = AIContextOrchestrator(loaders, loader_timeout_s=1)

        bundle = await orchestrator.build(_request(lite=True))

        for name in ("memory", "conversation_summary", "daily"):
            assert bundle.loader_status[name] == LoaderStatus.SKIPPED
        assert bundle.loader_status["rag"] == LoaderStatus.OK
        assert sorted(loaders.calls) == ["persona", "rag"]

    @pytest.mark.asyncio
    async def test_lite_can_also_skip_rag(self):
        orchestrator = AIContextOrchestrator(StubLoaders(), loader_timeout_s=1, lite_disables_rag=True)

        bundle = await orchestrator.build(_request(lite=True))

        assert bundle.loader_status["rag"] == LoaderStatus.SKIPPED
        assert bundle.rag_chunks is None

    @pytest.mark.asyncio
    async def test_individual_disables(self):
        orchestrator = AIContextOrchestrator(StubLoaders(), loader_timeout_s=1)

        bundle = await orchestrator.build(_request(disable_memory=True, disable_daily=True, disable_rag=True))

        assert bundle.loader_status["memory"] == LoaderStatus.SKIPPED
        assert bundle.loader_status["daily"] == LoaderStatus.SKIPPED
        assert bundle.loader_status["rag"] == LoaderStatus.SKIPPED
        assert bundle.loader_status["conversation_summary"] == LoaderStatus.OK

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError):
            AIContextOrchestrator(StubLoaders(), loader_timeout_s=0)


class TestTelemetry:
    @pytest.mark.asyncio
    async def test_emits_start_and_complete(self):
        traces = FakeTraceRepository()
        orchestrator = AIContextOrchestrator(
            StubLoaders(),
            telemetry=TelemetrySink(traces, persist=True),
            loader_timeout_s=1,
        )

        bundle = await orchestrator.build(_request())

        assert [stage for _, stage, _ in traces.events] == ["context_build_start", "context_build_complete"]
        assert all(trace_id == bundle.trace_id for trace_id, _, _ in traces.events)

    @pytest.mark.asyncio
    async def test_failing_sink_does_not_fail_build(self):
        class BrokenTraces(FakeTraceRepository):
            async def record(self, trace_id, stage, data):
                raise RuntimeError("insert failed")

        orchestrator = AIContextOrchestrator(
            StubLoaders(),
            telemetry=TelemetrySink(BrokenTraces(), persist=True),
            loader_timeout_s=1,
        )

        bundle = await orchestrator.build(_request())

        assert bundle.persona.name == "Sascha Weber"
