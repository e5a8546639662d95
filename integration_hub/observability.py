"""
Integration Hub OpenTelemetry setup.

- Traces for outbound calls and sync runs (one span each)
- OTLP export when an endpoint is configured
"""
from __future__ import annotations
from typing import Optional
import os

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

TRACER_NAME = "integration_hub"


def setup_tracing(
    service_name: str = "integration-hub",
    endpoint: Optional[str] = None,
) -> TracerProvider:
    """Install an SDK tracer provider, exporting over OTLP if configured."""
    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)

    otlp_endpoint = endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if otlp_endpoint:
        # Needs the "otlp" extra
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))

    trace.set_tracer_provider(provider)
    return provider


def get_tracer() -> trace.Tracer:
    return trace.get_tracer(TRACER_NAME)
