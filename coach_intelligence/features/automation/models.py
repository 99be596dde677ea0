"""
Models for the knowledge-refresh pipeline automation.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class PipelineConfig(BaseModel):
    """The pipeline_automation_config row for one pipeline."""
    pipeline_name: str
    is_enabled: bool = False
    interval_minutes: int = 60
    max_entries_per_run: int = 10
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    failure_count: int = 0
    max_failures: int = 3
    config_data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("last_run_at", "next_run_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("config_data", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return value or {}


class PipelineConfigUpdate(BaseModel):
    """Fields an operator may change; unset fields are left alone."""
    is_enabled: Optional[bool] = None
    interval_minutes: Optional[int] = Field(None, ge=1)
    max_entries_per_run: Optional[int] = Field(None, ge=1)
    max_failures: Optional[int] = Field(None, ge=1)
    failure_count: Optional[int] = Field(None, ge=0)
    next_run_at: Optional[datetime] = None
    config_data: Optional[Dict[str, Any]] = None


class PipelineSummary(BaseModel):
    """Summary block returned by the knowledge pipeline."""
    total_processed: int = 0
    successful: int = 0
    failed: int = 0
    processed_areas: List[str] = Field(default_factory=list)


class RunOutcome(BaseModel):
    success: bool
    message: Optional[str] = None
    run_id: Optional[str] = None
    execution_time_ms: Optional[int] = None
    entries_processed: int = 0
    entries_successful: int = 0
    entries_failed: int = 0
    next_run_at: Optional[datetime] = None
    embedding_task_id: Optional[str] = None


class ScheduleCheck(BaseModel):
    success: bool
    should_run: bool
    reason: str
    run: Optional[RunOutcome] = None
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    failure_count: int = 0


class PipelineStatus(BaseModel):
    config: Optional[PipelineConfig] = None
    recent_runs: List[Dict[str, Any]] = Field(default_factory=list)
    is_enabled: bool = False
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    failure_count: int = 0
