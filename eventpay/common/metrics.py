"""Prometheus metric definitions for the webhook service."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


webhook_requests_total = Counter(
    "webhook_requests_total",
    "Webhook deliveries by pipeline outcome",
    ["service", "outcome"],
)
webhook_processing_seconds = Histogram(
    "webhook_processing_seconds",
    "Time spent in the webhook pipeline",
    ["service"],
)
registrations_created_total = Counter(
    "registrations_created_total",
    "Registration rows inserted",
    ["service"],
)
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
