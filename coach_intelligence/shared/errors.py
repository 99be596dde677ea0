"""
Error types and standardized error responses for the coach service.

Domain exceptions are raised by the knowledge, context and automation
features; the helpers below turn them into the JSON envelope returned by
every endpoint, tagged with the request's correlation ID.

Usage:
    from coach_intelligence.shared.errors import (
        ErrorCode, SearchContractError, validation_error,
    )

    try:
        results = await engine.search(...)
    except SearchContractError as exc:
        return validation_error(str(exc), correlation_id=get_correlation_id(request))
"""

from enum import Enum
from typing import Any, Optional
from fastapi import Request
from fastapi.responses import JSONResponse


class ErrorCode(str, Enum):
    """Error codes shared by all endpoints."""

    # Client errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONTRACT_VIOLATION = "CONTRACT_VIOLATION"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"

    # Domain-specific errors
    EMBEDDING_ERROR = "EMBEDDING_ERROR"
    PIPELINE_ERROR = "PIPELINE_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


# =============================================================================
# DOMAIN EXCEPTIONS
# =============================================================================

class CoachServiceError(Exception):
    """Base class for errors raised by the coach intelligence features."""

    code = ErrorCode.INTERNAL_ERROR


class EmbeddingError(CoachServiceError):
    """The embedding provider rejected or failed a single call."""

    code = ErrorCode.EMBEDDING_ERROR

    def __init__(self, status: Optional[int], body: str):
        self.status = status
        self.body = body
        super().__init__(f"Embedding request failed (status={status}): {body}")


class SearchContractError(CoachServiceError, ValueError):
    """A search was requested without the inputs its method requires."""

    code = ErrorCode.CONTRACT_VIOLATION


class JobNotFoundError(CoachServiceError, LookupError):
    """No embedding job exists for the given id."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class ConfigurationError(CoachServiceError):
    """A required setting (API key, pipeline URL) is missing."""

    code = ErrorCode.CONFIGURATION_ERROR


class PipelineExecutionError(CoachServiceError):
    """The knowledge pipeline invocation failed; the run was recorded as failed."""

    code = ErrorCode.PIPELINE_ERROR

    def __init__(self, message: str, run_id: Optional[str] = None):
        self.run_id = run_id
        super().__init__(message)


# =============================================================================
# RESPONSE ENVELOPES
# =============================================================================

def get_correlation_id(request: Optional[Request] = None) -> Optional[str]:
    """Extract the correlation ID stored on the request by the middleware."""
    if request is None:
        return None
    return getattr(request.state, "correlation_id", None)


def error_response(
    code: ErrorCode,
    message: str,
    status_code: int,
    details: Optional[dict[str, Any]] = None,
    correlation_id: Optional[str] = None,
) -> JSONResponse:
    """
    Create a standardized JSON error response.

    Args:
        code: Error code from ErrorCode enum
        message: Human-readable error message
        status_code: HTTP status code
        details: Optional additional error details
        correlation_id: Request correlation ID for tracing

    Returns:
        JSONResponse whose body is an Err result (success=false)
    """
    from coach_intelligence.shared.result import err

    extra = dict(details or {})
    if correlation_id:
        extra["correlation_id"] = correlation_id
    return JSONResponse(
        status_code=status_code,
        content=err(message, code, **extra).model_dump(),
    )


def validation_error(
    message: str,
    details: Optional[dict[str, Any]] = None,
    correlation_id: Optional[str] = None,
) -> JSONResponse:
    """400 for malformed input and caller contract violations."""
    return error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message=message,
        status_code=400,
        details=details,
        correlation_id=correlation_id,
    )


def not_found_error(
    message: str,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    correlation_id: Optional[str] = None,
) -> JSONResponse:
    """
    Create a 404 not found error response.

    Args:
        message: Description of what was not found
        resource_type: Type of resource (e.g., "embedding_job", "task")
        resource_id: ID of the missing resource
        correlation_id: Request correlation ID
    """
    details = {}
    if resource_type:
        details["resource_type"] = resource_type
    if resource_id:
        details["resource_id"] = resource_id

    return error_response(
        code=ErrorCode.NOT_FOUND,
        message=message,
        status_code=404,
        details=details if details else None,
        correlation_id=correlation_id,
    )


def external_service_error(
    service_name: str,
    message: str,
    correlation_id: Optional[str] = None,
) -> JSONResponse:
    """502 when the embedding provider or knowledge pipeline fails."""
    return error_response(
        code=ErrorCode.EXTERNAL_SERVICE_ERROR,
        message=message,
        status_code=502,
        details={"service": service_name},
        correlation_id=correlation_id,
    )
