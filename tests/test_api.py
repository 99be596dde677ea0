from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from conftest import FakeDatabase, FakeEmbedder, make_entry
from main import app
from coach_intelligence.api.dependencies import (
    get_knowledge,
    get_orchestrator,
    get_scheduler,
    get_task_queue,
)
from coach_intelligence.features.automation import BackgroundTaskQueue
from coach_intelligence.features.automation.models import PipelineStatus, RunOutcome, ScheduleCheck
from coach_intelligence.features.context.models import ContextBundle, LoaderStatus, Persona
from coach_intelligence.features.knowledge import KnowledgeService
from coach_intelligence.shared.errors import (
    CoachServiceError,
    ConfigurationError,
    EmbeddingError,
    PipelineExecutionError,
    SearchContractError,
)


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def knowledge_service():
    db = FakeDatabase()
    db.knowledge.entries = {e.id: e for e in [make_entry("a"), make_entry("b")]}
    return KnowledgeService(db, generator=FakeEmbedder())


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestEmbeddingJobs:
    def test_start_and_process(self, client, knowledge_service):
        app.dependency_overrides[get_knowledge] = lambda: knowledge_service

        started = client.post("/api/v1/embeddings/jobs", json={"action": "start", "batch_size": 2})
        assert started.status_code == 200
        body = started.json()
        assert body["success"] is True
        assert body["data"]["total_entries"] == 2
        assert body["data"]["total_batches"] == 1
        job_id = body["data"]["job_id"]

        batch = client.post("/api/v1/embeddings/jobs", json={"action": "process_batch", "job_id": job_id})
        assert batch.json()["data"]["completed"] is True
        assert batch.json()["data"]["processed"] == 2

        status = client.get(f"/api/v1/embeddings/jobs/{job_id}")
        assert status.json()["data"]["percentage"] == 100

    def test_nothing_missing(self, client, knowledge_service):
        knowledge_service.db.knowledge.entries = {}
        app.dependency_overrides[get_knowledge] = lambda: knowledge_service

        response = client.post("/api/v1/embeddings/jobs", json={"action": "start"})

        assert response.json()["data"]["job_id"] is None

    def test_unknown_job_is_404(self, client, knowledge_service):
        app.dependency_overrides[get_knowledge] = lambda: knowledge_service

        response = client.post("/api/v1/embeddings/jobs", json={"action": "status", "job_id": "missing"})

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Job not found: missing"
        assert body["code"] == "NOT_FOUND"
        assert body["details"]["resource_id"] == "missing"
        assert body["details"]["correlation_id"] == response.headers["X-Correlation-ID"]

    def test_unknown_action_rejected(self, client, knowledge_service):
        app.dependency_overrides[get_knowledge] = lambda: knowledge_service

        response = client.post("/api/v1/embeddings/jobs", json={"action": "delete", "job_id": "x"})

        assert response.status_code == 422


class TestKnowledgeSearch:
    def test_search_returns_ranked_context(self, client, knowledge_service):
        knowledge_service.db.knowledge.search_rows = [
            {"knowledge_id": "a", "content_chunk": "Protein after training.", "similarity": 0.8,
             "title": "Protein", "coach_id": "sascha", "expertise_area": "nutrition"},
            {"knowledge_id": "x", "content_chunk": "Foreign chunk.", "similarity": 0.9,
             "title": "Other", "coach_id": "kai", "expertise_area": "sleep"},
        ]
        app.dependency_overrides[get_knowledge] = lambda: knowledge_service

        response = client.post("/api/v1/knowledge/search", json={"query": "protein", "coach_id": "sascha"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["results_count"] == 1
        assert data["context"][0]["source_id"] == "a"
        assert data["search_method"] == "hybrid"
        assert data["trace_id"].startswith("rag-")

    def test_contract_violation_is_400(self, client):
        service = MagicMock()
        service.query = AsyncMock(side_effect=SearchContractError("semantic search requires a query embedding"))
        app.dependency_overrides[get_knowledge] = lambda: service

        response = client.post("/api/v1/knowledge/search", json={"query": "sleep", "coach_id": "kai"})

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "query embedding" in response.json()["error"]

    def test_embedding_failure_is_502(self, client):
        service = MagicMock()
        service.query = AsyncMock(side_effect=EmbeddingError(500, "upstream"))
        app.dependency_overrides[get_knowledge] = lambda: service

        response = client.post("/api/v1/knowledge/search", json={"query": "sleep", "coach_id": "kai"})

        assert response.status_code == 502
        assert response.json()["success"] is False
        assert response.json()["code"] == "EXTERNAL_SERVICE_ERROR"
        assert response.json()["details"]["service"] == "openai"

    def test_empty_query_rejected(self, client, knowledge_service):
        app.dependency_overrides[get_knowledge] = lambda: knowledge_service

        response = client.post("/api/v1/knowledge/search", json={"query": "", "coach_id": "kai"})

        assert response.status_code == 422

    def test_embed(self, client, knowledge_service):
        app.dependency_overrides[get_knowledge] = lambda: knowledge_service

        response = client.post("/api/v1/knowledge/embed", json={"text": "Squats"})

        data = response.json()["data"]
        assert data["dimensions"] == 8
        assert data["model"] == "fake-embedding"
        assert data["tokens"] == 3


def test_context_build(client):
    bundle = ContextBundle(
        persona=Persona(name="Dr. Kai Nakamura"),
        loader_status={"persona": LoaderStatus.OK, "memory": LoaderStatus.SKIPPED},
        trace_id="ctx-abc",
    )
    orchestrator = MagicMock()
    orchestrator.build = AsyncMock(return_value=bundle)
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator

    response = client.post("/api/v1/context/build", json={"user_id": "u1", "coach_id": "kai", "lite": True})

    data = response.json()["data"]
    assert data["bundle"]["trace_id"] == "ctx-abc"
    assert data["bundle"]["loader_status"]["memory"] == "skipped"
    assert data["system_prompt"].startswith("You are Dr. Kai Nakamura.")
    assert orchestrator.build.call_args.args[0].lite is True


class TestPipeline:
    def test_run_pipeline(self, client):
        scheduler = MagicMock()
        scheduler.run_pipeline = AsyncMock(return_value=RunOutcome(success=True, run_id="r1", entries_successful=2))
        app.dependency_overrides[get_scheduler] = lambda: scheduler

        response = client.post("/api/v1/pipeline", json={"action": "run_pipeline"})

        assert response.json()["success"] is True
        assert response.json()["data"]["run_id"] == "r1"

    def test_failed_run_is_err_with_run_id(self, client):
        scheduler = MagicMock()
        scheduler.run_pipeline = AsyncMock(side_effect=PipelineExecutionError("Pipeline execution failed: 500", run_id="r2"))
        app.dependency_overrides[get_scheduler] = lambda: scheduler

        response = client.post("/api/v1/pipeline", json={"action": "run_pipeline"})

        body = response.json()
        assert body["success"] is False
        assert body["code"] == "PIPELINE_ERROR"
        assert body["details"] == {"run_id": "r2"}

    def test_disabled_pipeline_is_err(self, client):
        scheduler = MagicMock()
        scheduler.run_pipeline = AsyncMock(return_value=RunOutcome(success=False, message="Pipeline is disabled or not configured"))
        app.dependency_overrides[get_scheduler] = lambda: scheduler

        response = client.post("/api/v1/pipeline", json={"action": "run_pipeline"})

        assert response.json() == {
            "success": False,
            "error": "Pipeline is disabled or not configured",
            "code": "PIPELINE_ERROR",
            "details": None,
        }

    def test_update_config_validated(self, client):
        scheduler = MagicMock()
        app.dependency_overrides[get_scheduler] = lambda: scheduler

        response = client.post(
            "/api/v1/pipeline",
            json={"action": "update_config", "config_update": {"interval_minutes": 0}},
        )

        assert response.status_code == 422

    def test_check_schedule_without_config_is_err(self, client):
        scheduler = MagicMock()
        scheduler.check_scheduled_runs = AsyncMock(return_value=ScheduleCheck(
            success=False, should_run=False, reason="Pipeline is disabled or not configured",
        ))
        app.dependency_overrides[get_scheduler] = lambda: scheduler

        response = client.post("/api/v1/pipeline", json={"action": "check_schedule"})

        assert response.status_code == 200
        assert response.json() == {
            "success": False,
            "error": "Pipeline is disabled or not configured",
            "code": "CONFIGURATION_ERROR",
            "details": None,
        }

    def test_update_config_without_config_row_is_err(self, client):
        scheduler = MagicMock()
        scheduler.update_config = AsyncMock(side_effect=ConfigurationError(
            "No automation config for pipeline perplexity_knowledge_pipeline"
        ))
        app.dependency_overrides[get_scheduler] = lambda: scheduler

        response = client.post(
            "/api/v1/pipeline",
            json={"action": "update_config", "config_update": {"interval_minutes": 30}},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "CONFIGURATION_ERROR"
        assert "No automation config" in body["error"]

    def test_get_status(self, client):
        scheduler = MagicMock()
        scheduler.get_status = AsyncMock(return_value=PipelineStatus(is_enabled=True, failure_count=1))
        app.dependency_overrides[get_scheduler] = lambda: scheduler

        response = client.post("/api/v1/pipeline", json={"action": "get_status"})

        assert response.json()["data"]["failure_count"] == 1

    def test_unknown_task(self, client):
        app.dependency_overrides[get_task_queue] = lambda: BackgroundTaskQueue()

        response = client.get("/api/v1/pipeline/tasks/nope")

        assert response.json()["success"] is False
        assert response.json()["code"] == "NOT_FOUND"


def test_unexpected_service_error_is_500_err(client):
    orchestrator = MagicMock()
    orchestrator.build = AsyncMock(side_effect=CoachServiceError("loader registry broken"))
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator

    response = client.post("/api/v1/context/build", json={"user_id": "u1", "coach_id": "kai"})

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "loader registry broken"
    assert body["code"] == "INTERNAL_ERROR"
    assert "correlation_id" in body["details"]
