import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from coach_intelligence.api.endpoints import router
from coach_intelligence.api.routes import health
from coach_intelligence.core.database import reset_supabase
from coach_intelligence.core.tracing import instrument_app, instrument_httpx, setup_tracing, shutdown_tracing
from coach_intelligence.features.automation import task_queue
from coach_intelligence.services.http_client import http_client_manager
from coach_intelligence.shared.correlation import CorrelationMiddleware
from coach_intelligence.shared.errors import (
    CoachServiceError,
    EmbeddingError,
    JobNotFoundError,
    SearchContractError,
    error_response,
    external_service_error,
    get_correlation_id,
    not_found_error,
    validation_error,
)
from coach_intelligence.shared.logging_config import setup_logging

logger = logging.getLogger("Coach.Main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging("coach-intelligence-service")
    setup_tracing("coach-intelligence-service")
    instrument_httpx()
    await http_client_manager.startup()
    logger.info("Coach Intelligence Service started")
    yield
    await task_queue.drain(timeout=30)
    await http_client_manager.shutdown()
    reset_supabase()
    shutdown_tracing()
    logger.info("Coach Intelligence Service stopped")


app = FastAPI(
    title="Coach Intelligence Service",
    description="Context assembly, knowledge retrieval and embedding jobs for the coaching app",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(CorrelationMiddleware)
instrument_app(app)


@app.exception_handler(SearchContractError)
async def search_contract_handler(request: Request, exc: SearchContractError):
    return validation_error(str(exc), correlation_id=get_correlation_id(request))


@app.exception_handler(JobNotFoundError)
async def job_not_found_handler(request: Request, exc: JobNotFoundError):
    return not_found_error(
        str(exc),
        resource_type="embedding_job",
        resource_id=exc.job_id,
        correlation_id=get_correlation_id(request),
    )


@app.exception_handler(EmbeddingError)
async def embedding_error_handler(request: Request, exc: EmbeddingError):
    logger.error(f"Embedding provider error: {exc}")
    return external_service_error("openai", str(exc), correlation_id=get_correlation_id(request))


@app.exception_handler(CoachServiceError)
async def coach_service_error_handler(request: Request, exc: CoachServiceError):
    logger.error(f"Unhandled service error ({exc.code.value}): {exc}")
    return error_response(
        code=exc.code,
        message=str(exc),
        status_code=500,
        correlation_id=get_correlation_id(request),
    )


app.include_router(router, prefix="/api/v1")
app.include_router(health.router)


@app.get("/")
async def root():
    return {"message": "Coach Intelligence Service Running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
