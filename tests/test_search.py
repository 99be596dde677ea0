import numpy as np
import pytest

from conftest import FakeDatabase, FakeEmbedder, FakeKnowledgeRepository
from coach_intelligence.features.knowledge.models import RagQuery, SearchMethod
from coach_intelligence.features.knowledge.service import KnowledgeService
from coach_intelligence.services.telemetry import TelemetrySink
from coach_intelligence.features.knowledge.search import HybridSearchEngine, partition_filter_for
from coach_intelligence.shared.errors import SearchContractError

EMBEDDING = np.ones(8, dtype=np.float32)


def _row(knowledge_id: str, coach_id: str, similarity: float = 0.8):
    return {
        "knowledge_id": knowledge_id,
        "content_chunk": f"chunk {knowledge_id}",
        "similarity": similarity,
        "title": f"Title {knowledge_id}",
        "coach_id": coach_id,
        "expertise_area": "training",
        "chunk_index": 0,
    }


@pytest.fixture
def repo():
    return FakeKnowledgeRepository()


@pytest.fixture
def engine(repo):
    return HybridSearchEngine(repo, similarity_threshold=0.6, semantic_weight=0.7, text_weight=0.3)


class TestPartitionFilter:
    def test_cross_partition_coach_sees_everything(self):
        assert partition_filter_for("lucy", cross_partition_id="lucy") is None

    def test_other_coaches_scoped_to_themselves(self):
        assert partition_filter_for("sascha", cross_partition_id="lucy") == "sascha"


class TestSearchContract:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", [SearchMethod.SEMANTIC, SearchMethod.HYBRID])
    async def test_vector_methods_require_embedding(self, engine, method):
        with pytest.raises(SearchContractError):
            await engine.search("squats", None, "sascha", method=method)

    @pytest.mark.asyncio
    async def test_keyword_needs_no_embedding(self, engine, repo):
        repo.keyword_rows = [{"id": "k1", "content": "Squat deep.", "title": "Squats", "coach_id": "sascha"}]

        results = await engine.search("squat", None, "sascha", method=SearchMethod.KEYWORD)

        assert len(results) == 1

    @pytest.mark.asyncio
    async def test_rejects_non_positive_max_results(self, engine):
        with pytest.raises(SearchContractError):
            await engine.search("squats", EMBEDDING, "sascha", max_results=0)


class TestSearchResults:
    @pytest.mark.asyncio
    async def test_drops_results_from_other_partitions(self, engine, repo):
        repo.search_rows = [_row("a", "sascha"), _row("b", "kai"), _row("c", "sascha")]

        results = await engine.search("squats", EMBEDDING, "sascha", method=SearchMethod.HYBRID)

        assert [r.knowledge_id for r in results] == ["a", "c"]
        assert repo.search_calls[0]["coach_filter"] == "sascha"

    @pytest.mark.asyncio
    async def test_unscoped_search_keeps_all_partitions(self, engine, repo):
        repo.search_rows = [_row("a", "sascha"), _row("b", "kai")]

        results = await engine.search("sleep", EMBEDDING, None, method=SearchMethod.SEMANTIC)

        assert [r.coach_id for r in results] == ["sascha", "kai"]
        assert repo.search_calls[0] == {"method": "semantic", "coach_filter": None, "match_count": 5}

    @pytest.mark.asyncio
    async def test_truncates_to_max_results(self, engine, repo):
        repo.search_rows = [_row(str(i), "sascha") for i in range(10)]

        results = await engine.search("squats", EMBEDDING, "sascha", max_results=3)

        assert len(results) == 3

    @pytest.mark.asyncio
    async def test_keyword_hits_get_flat_similarity_and_preview(self, engine, repo):
        repo.keyword_rows = [{
            "id": "k1",
            "content": "z" * 900,
            "title": "Long entry",
            "coach_id": "sascha",
            "expertise_area": "training",
        }]

        results = await engine.search("z", None, "sascha", method=SearchMethod.KEYWORD)

        assert results[0].similarity == 0.5
        assert len(results[0].content_chunk) == 500
        assert results[0].knowledge_id == "k1"

    @pytest.mark.asyncio
    async def test_empty_backend_result(self, engine):
        assert await engine.search("anything", [0.1] * 8, "sascha") == []


class TestKnowledgeQuery:
    @pytest.mark.asyncio
    async def test_relevance_covers_hits_outside_the_context_window(self):
        db = FakeDatabase()
        db.knowledge.search_rows = [
            _row("a", "kai", similarity=0.9),
            {**_row("b", "kai", similarity=0.7), "content_chunk": "x" * 500},
        ]
        service = KnowledgeService(db, generator=FakeEmbedder(), telemetry=TelemetrySink(db.traces))

        response = await service.query(RagQuery(
            query="How do I improve my deep sleep quality tonight",
            coach_id="kai",
            context_window=100,
        ))

        assert [c.source_id for c in response.context] == ["a"]
        assert response.relevance_score == pytest.approx(0.8)

        trace_id, stage, data = db.traces.events[0]
        assert stage == "rag_query_completed"
        assert data["relevance_score"] == pytest.approx(0.8)
        assert data["search_terms"] == ["how", "improve", "deep", "sleep", "quality"]
        assert db.traces.metrics[0]["trace_id"] == trace_id
