from __future__ import annotations

import os

_ENABLED_FLAGS = {"1", "true", "yes", "on"}


def tracing_enabled() -> bool:
    if os.getenv("ARTDEX_OTEL_ENABLED", "").strip().lower() in _ENABLED_FLAGS:
        return True
    return bool(os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"))


def configure_tracing(*, default_service_name: str = "artdex-api") -> bool:
    """Install an SDK tracer provider; spans are created by middleware and observe_operation."""
    if not tracing_enabled():
        return False

    from opentelemetry import trace
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
    from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

    provider = TracerProvider(
        resource=Resource.create(
            {"service.name": os.getenv("OTEL_SERVICE_NAME", default_service_name)}
        ),
        sampler=ParentBased(TraceIdRatioBased(float(os.getenv("OTEL_TRACES_SAMPLER_ARG", "1.0")))),
    )
    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    exporter = OTLPSpanExporter(endpoint=endpoint) if endpoint else ConsoleSpanExporter()
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    return True
