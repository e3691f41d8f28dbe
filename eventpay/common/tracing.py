"""OpenTelemetry wiring for the webhook app.

Request spans come from FastAPI auto-instrumentation; the store adds a child
span around the registration insert through `tracer`. Until `setup_tracing`
registers a provider, `tracer` is a no-op proxy, so tests need no collector.
"""

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

from eventpay.common.config import Settings


tracer = trace.get_tracer("eventpay.webhook")


def setup_tracing(settings: Settings) -> TracerProvider | None:
    """Register an OTLP-exporting provider unless tracing is switched off."""

    if not settings.tracing_enabled:
        return None
    provider = TracerProvider(resource=Resource.create({"service.name": settings.service_name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint)))
    trace.set_tracer_provider(provider)
    return provider


def instrument_app(app: FastAPI, settings: Settings) -> None:
    if settings.tracing_enabled:
        FastAPIInstrumentor.instrument_app(app, excluded_urls="health,metrics")
