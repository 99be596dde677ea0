"""
OpenTelemetry tracing for the coach intelligence service.

Spans cover the three hot paths of the RAG pipeline: hybrid search,
context assembly and embedding batches. Tracing is off unless
OTEL_ENABLED=true; with it off, every tracer is a no-op.

Usage:
    from coach_intelligence.core.tracing import get_tracer

    tracer = get_tracer(__name__)
    with tracer.start_as_current_span("knowledge.search") as span:
        span.set_attribute("search.method", "hybrid")

Environment Variables:
    OTEL_ENABLED: Set to "true" to enable tracing (default: false)
    OTEL_SERVICE_NAME: Override service name (default: coach-intelligence-service)
"""

import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.trace import Span, Tracer
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

logger = logging.getLogger("Coach.Tracing")

DEFAULT_SERVICE_NAME = "coach-intelligence-service"

_tracer_provider: Optional[TracerProvider] = None
_is_initialized = False


def is_tracing_enabled() -> bool:
    """True when OTEL_ENABLED is "true" (case-insensitive)."""
    return os.getenv("OTEL_ENABLED", "false").lower() == "true"


def setup_tracing(service_name: Optional[str] = None) -> Optional[TracerProvider]:
    """
    Install a TracerProvider exporting spans to the console.

    Returns:
        The configured TracerProvider, or None if tracing is disabled.
    """
    global _tracer_provider, _is_initialized

    if _is_initialized:
        return _tracer_provider

    if not is_tracing_enabled():
        logger.info("OpenTelemetry tracing is disabled (set OTEL_ENABLED=true to enable)")
        _is_initialized = True
        return None

    effective_service_name = (
        service_name
        or os.getenv("OTEL_SERVICE_NAME")
        or DEFAULT_SERVICE_NAME
    )

    _tracer_provider = TracerProvider(
        resource=Resource.create({SERVICE_NAME: effective_service_name})
    )
    _tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(_tracer_provider)

    _is_initialized = True
    logger.info(f"OpenTelemetry tracing initialized for service: {effective_service_name}")
    return _tracer_provider


def get_tracer(name: str) -> Tracer:
    """Get a tracer; a no-op tracer when tracing is disabled."""
    return trace.get_tracer(name)


@contextmanager
def traced_span(tracer: Tracer, name: str, **attributes: Any) -> Iterator[Span]:
    """
    Start a span and attach scalar attributes, skipping None values.

    Example:
        with traced_span(tracer, "context.build", user_id=user_id) as span:
            ...
    """
    with tracer.start_as_current_span(name) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, value)
        yield span


def instrument_app(app) -> None:
    """Instrument a FastAPI application for incoming request spans."""
    if not is_tracing_enabled():
        logger.debug("Tracing disabled, skipping FastAPI instrumentation")
        return

    FastAPIInstrumentor.instrument_app(app)
    logger.info("FastAPI instrumentation enabled")


def instrument_httpx() -> None:
    """Instrument httpx so pipeline invocations carry trace context."""
    if not is_tracing_enabled():
        logger.debug("Tracing disabled, skipping httpx instrumentation")
        return

    HTTPXClientInstrumentor().instrument()
    logger.info("httpx instrumentation enabled")


def shutdown_tracing() -> None:
    """Flush remaining spans and reset the provider."""
    global _tracer_provider, _is_initialized

    if _tracer_provider is not None:
        _tracer_provider.shutdown()
        logger.info("OpenTelemetry tracing shut down")

    _tracer_provider = None
    _is_initialized = False



def get_current_trace_id() -> Optional[str]:
    """
    Get the active OpenTelemetry trace id as hex.

    Returns:
        The trace id, or None if there is no valid active span.
    """
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return format(span_context.trace_id, "032x")
