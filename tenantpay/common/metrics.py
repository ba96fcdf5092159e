"""Prometheus metric definitions and HTTP instrumentation shared across services."""

from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request
from prometheus_client import Counter, Gauge, Histogram, generate_latest
from starlette.responses import Response

from tenantpay.common.config import settings
from tenantpay.common.logging import trace_id_ctx


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
payments_created_total = Counter("payments_created_total", "Total payments created", ["service"])
payment_status_updates_total = Counter(
    "payment_status_updates_total",
    "Payment status overwrites by target status",
    ["service", "status"],
)
processing_requests_opened_total = Counter(
    "processing_requests_opened_total",
    "Total processing requests opened",
    ["service"],
)
processing_runs_total = Counter(
    "processing_runs_total",
    "Finished processing runs by outcome",
    ["service", "outcome"],
)
processing_duration_seconds = Histogram(
    "processing_duration_seconds",
    "Duration of the processing work step",
    ["service"],
)
background_tasks_in_flight = Gauge(
    "background_tasks_in_flight",
    "Fire-and-forget tasks scheduled but not finished",
    ["service"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")


def install_http_middleware(app: FastAPI) -> None:
    """Bind a trace id to each request and record count/latency per route."""

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        start = perf_counter()
        route = request.url.path
        method = request.method
        status_code = 500
        trace_id = request.headers.get("x-trace-id") or str(uuid4())
        token = trace_id_ctx.set(trace_id)
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["x-trace-id"] = trace_id
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            return response
        finally:
            trace_id_ctx.reset(token)
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
