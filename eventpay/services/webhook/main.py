"""HTTP surface for the payment webhook.

`/api/payment-webhook` accepts every method so the pipeline's method gate
decides the response; the pipeline runs in Starlette's threadpool because the
store call blocks.
"""

from functools import lru_cache
from time import perf_counter
from uuid import uuid4

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import ArgumentError
from starlette.concurrency import run_in_threadpool

from eventpay.common.config import Settings, get_settings
from eventpay.common.logging import configure_logging, logger, trace_id_ctx
from eventpay.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from eventpay.common.startup import log_startup_config
from eventpay.common.tracing import instrument_app, setup_tracing
from eventpay.services.webhook.service import WebhookService
from eventpay.services.webhook.store import RegistrationStore, SqlRegistrationStore

WEBHOOK_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@lru_cache
def _store_for(store_url: str, store_service_key: str, pool_size: int) -> SqlRegistrationStore:
    return SqlRegistrationStore.from_url(store_url, store_service_key, pool_size=pool_size)


def get_store(settings: Settings = Depends(get_settings)) -> RegistrationStore | None:
    """Shared store per credential pair; `None` until the store is configured."""

    if settings.missing_store_settings():
        return None
    try:
        return _store_for(settings.store_url, settings.store_service_key, settings.store_pool_size)
    except ArgumentError as exc:
        logger.error("invalid_store_url error=%s", exc)
        return None


def get_webhook_service(
    settings: Settings = Depends(get_settings),
    store: RegistrationStore | None = Depends(get_store),
) -> WebhookService:
    return WebhookService(settings, store)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI app with logging, tracing and metrics wired in."""

    settings = settings or get_settings()
    configure_logging(settings)
    setup_tracing(settings)
    log_startup_config(settings)

    app = FastAPI(title="EventPay Payment Webhook")
    instrument_app(app, settings)

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Record request count and latency for every HTTP call."""

        start = perf_counter()
        route = "<unmatched>"
        method = request.method
        status_code = 500
        trace_id_ctx.set(request.headers.get("x-request-id") or str(uuid4()))
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=settings.service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=settings.service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()

    @app.api_route("/api/payment-webhook", methods=WEBHOOK_METHODS)
    async def payment_webhook(request: Request, service: WebhookService = Depends(get_webhook_service)):
        """Ingest one payment provider notification."""

        body = await request.body()
        result = await run_in_threadpool(service.handle, request.method, body)
        if result.body is None:
            return Response(status_code=result.status_code, headers=result.headers)
        return JSONResponse(status_code=result.status_code, content=result.body, headers=result.headers)

    @app.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    @app.get("/health")
    def health():
        """Liveness check for the container orchestrator."""

        return {"ok": True}

    return app


app = create_app()
