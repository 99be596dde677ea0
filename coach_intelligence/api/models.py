from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from coach_intelligence.core.config import settings
from coach_intelligence.features.automation.models import PipelineConfigUpdate

# =========================================================================
# EMBEDDING JOB ACTIONS
# =========================================================================

class StartJobRequest(BaseModel):
    action: Literal["start"] = "start"
    batch_size: int = Field(settings.DEFAULT_BATCH_SIZE, ge=1, le=1000)

class ProcessBatchRequest(BaseModel):
    action: Literal["process_batch"] = "process_batch"
    job_id: str

class JobStatusRequest(BaseModel):
    action: Literal["status"] = "status"
    job_id: str

EmbeddingJobAction = Annotated[
    Union[StartJobRequest, ProcessBatchRequest, JobStatusRequest],
    Field(discriminator="action"),
]

class JobStarted(BaseModel):
    job_id: Optional[str] = None
    total_entries: int = 0
    batch_size: int = 0
    total_batches: int = 0
    message: str

# =========================================================================
# KNOWLEDGE MODELS
# =========================================================================

class EmbedRequest(BaseModel):
    text: str = Field(..., min_length=1)

class EmbedResponse(BaseModel):
    embedding: List[float]
    dimensions: int
    model: str
    tokens: Optional[int] = None

# =========================================================================
# CONTEXT MODELS
# =========================================================================

class ContextBuildResponse(BaseModel):
    bundle: Dict[str, Any]
    system_prompt: str

# =========================================================================
# PIPELINE ACTIONS
# =========================================================================

class RunPipelineRequest(BaseModel):
    action: Literal["run_pipeline"] = "run_pipeline"
    force: bool = False

class CheckScheduleRequest(BaseModel):
    action: Literal["check_schedule"] = "check_schedule"

class UpdateConfigRequest(BaseModel):
    action: Literal["update_config"] = "update_config"
    config_update: PipelineConfigUpdate

class GetStatusRequest(BaseModel):
    action: Literal["get_status"] = "get_status"

PipelineAction = Annotated[
    Union[RunPipelineRequest, CheckScheduleRequest, UpdateConfigRequest, GetStatusRequest],
    Field(discriminator="action"),
]

class TaskInfo(BaseModel):
    id: str
    name: str
    status: str
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    result: Any = None
    error: Optional[str] = None
