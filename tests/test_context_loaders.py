from datetime import date
from unittest.mock import AsyncMock

import pytest

from conftest import FakeCoachingRepository
from coach_intelligence.features.context import ContextRequest, FALLBACK_PERSONA
from coach_intelligence.features.context.loaders import ContextLoaders
from coach_intelligence.features.context.models import ContextBundle, Persona
from coach_intelligence.features.context.prompt import render_system_prompt
from coach_intelligence.features.context.summarizer import ConversationSummarizer, digest
from coach_intelligence.features.knowledge.models import ContextChunk, SearchMethod


@pytest.fixture
def coaching():
    return FakeCoachingRepository()


@pytest.fixture
def knowledge():
    service = AsyncMock()
    service.retrieve = AsyncMock(return_value=[])
    return service


@pytest.fixture
def loaders(coaching, knowledge):
    summarizer = ConversationSummarizer(client=None)
    summarizer.client = None
    return ContextLoaders(coaching, knowledge, summarizer=summarizer)


def _request(**kwargs) -> ContextRequest:
    values = {"user_id": "u1", "coach_id": "sascha", "message": "Best rep range?"}
    values.update(kwargs)
    return ContextRequest(**values)


class TestPersonaLoader:
    @pytest.mark.asyncio
    async def test_database_row_wins(self, loaders, coaching):
        coaching.personas["sascha"] = {
            "id": "sascha",
            "name": "Sascha",
            "title": "Coach",
            "bio_short": "Athlete.",
            "style_rules": "concise",
        }

        persona = await loaders.persona(_request())

        assert persona.name == "Sascha"
        assert persona.style == ["concise"]
        assert "strength" in persona.specializations

    @pytest.mark.asyncio
    async def test_builtin_catalogue(self, loaders):
        persona = await loaders.persona(_request(coach_id="markus-ruehl"))

        assert persona.id == "markus"

    @pytest.mark.asyncio
    async def test_unknown_coach_gets_fallback(self, loaders):
        assert await loaders.persona(_request(coach_id="nobody")) == FALLBACK_PERSONA


class TestDailyLoader:
    @pytest.mark.asyncio
    async def test_kcal_left_from_goal(self, loaders, coaching):
        coaching.daily[("u1", "2026-03-02")] = {"total_calories": 1500, "total_protein": 120, "summary_md": "Leg day"}
        coaching.goals["u1"] = 2200

        daily = await loaders.daily(_request(day=date(2026, 3, 2)))

        assert daily.kcal_left == 700
        assert daily.protein == 120
        assert daily.summary == "Leg day"

    @pytest.mark.asyncio
    async def test_no_row(self, loaders):
        assert await loaders.daily(_request(day=date(2026, 3, 2))) is None

    @pytest.mark.asyncio
    async def test_no_goal(self, loaders, coaching):
        coaching.daily[("u1", "2026-03-02")] = {"total_calories": 1500}

        daily = await loaders.daily(_request(day=date(2026, 3, 2)))

        assert daily.kcal_left is None


class TestMemoryAndSummary:
    @pytest.mark.asyncio
    async def test_memory_snapshot(self, loaders, coaching):
        coaching.memory[("u1", "sascha")] = {
            "relationship_stage": "established",
            "trust_level": 7,
            "memory_content": {"preferences": {"units": "kg"}, "achievements": ["first pull-up"]},
        }

        memory = await loaders.memory(_request())

        assert memory.trust_level == 7
        assert memory.preferences == {"units": "kg"}
        assert memory.challenges == []

    @pytest.mark.asyncio
    async def test_stored_summary_preferred(self, loaders, coaching):
        coaching.summaries["u1"] = {"summary_content": "Working on bench press."}

        assert await loaders.conversation_summary(_request()) == "Working on bench press."

    @pytest.mark.asyncio
    async def test_digest_of_recent_messages(self, loaders, coaching):
        coaching.messages[("u1", "sascha")] = [
            {"message_role": "user", "message_content": "My knees hurt."},
            {"message_role": "assistant", "message_content": "Let's check your squat depth."},
        ]

        summary = await loaders.conversation_summary(_request())

        assert summary == "User: My knees hurt.\nCoach: Let's check your squat depth."

    @pytest.mark.asyncio
    async def test_no_history(self, loaders):
        assert await loaders.conversation_summary(_request()) is None

    def test_digest_keeps_last_messages(self):
        messages = [{"message_role": "user", "message_content": f"m{i}"} for i in range(12)]

        lines = digest(messages).splitlines()

        assert len(lines) == 8
        assert lines[-1] == "User: m11"


class TestRagLoader:
    @pytest.mark.asyncio
    async def test_no_message_no_search(self, loaders, knowledge):
        assert await loaders.rag(_request(message="  ")) is None
        knowledge.retrieve.assert_not_called()

    @pytest.mark.asyncio
    async def test_hybrid_retrieval_for_coach(self, loaders, knowledge):
        chunk = ContextChunk(content="8-12 reps for hypertrophy.", source_id="k1")
        knowledge.retrieve.return_value = [chunk]

        chunks = await loaders.rag(_request())

        assert chunks == [chunk]
        kwargs = knowledge.retrieve.call_args.kwargs
        assert kwargs["coach_id"] == "sascha"
        assert kwargs["method"] == SearchMethod.HYBRID

    @pytest.mark.asyncio
    async def test_empty_result_is_none(self, loaders):
        assert await loaders.rag(_request()) is None


def test_prompt_renders_available_sections():
    bundle = ContextBundle(
        persona=Persona(name="Sascha Weber", title="Performance Coach", style=["precise"]),
        conversation_summary="Asked about rep ranges.",
        rag_chunks=[ContextChunk(content="8-12 reps.", title="Hypertrophy", source_id="k1")],
        trace_id="ctx-test",
    )

    prompt = render_system_prompt(bundle)

    assert prompt.startswith("You are Sascha Weber, Performance Coach.")
    assert "Asked about rep ranges." in prompt
    assert "8-12 reps." in prompt
    assert "## Today" not in prompt
