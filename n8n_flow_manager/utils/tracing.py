from __future__ import annotations

import os
from contextlib import asynccontextmanager

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor


def configure_tracing(endpoint: str | None = None) -> None:
    """Install an OTLP span exporter when an endpoint is configured."""
    endpoint = endpoint or os.getenv("FLOW_MANAGER_OTEL_TRACE_URL")
    if not endpoint:
        return
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

    resource = Resource.create({"service.name": "n8n-flow-manager"})
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, timeout=5)))
    trace.set_tracer_provider(provider)


configure_tracing()
tracer = trace.get_tracer(__name__)


@asynccontextmanager
async def async_span(name: str, tracer_obj=tracer, **attrs):
    """Async context manager wrapping ``tracer.start_as_current_span``."""
    cm = tracer_obj.start_as_current_span(name, **attrs)
    if hasattr(cm, "__aenter__"):
        async with cm:
            yield
    else:
        with cm:
            yield
