"""Prometheus metrics middleware."""
import time

from fastapi import FastAPI, Request
from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

# Metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
)

live_subscriptions = Gauge(
    "live_subscriptions",
    "Open live collection subscriptions",
    ["collection"],
)

tracker_requests_total = Counter(
    "tracker_requests_total",
    "Calls made to the remote issue tracker",
    ["operation", "outcome"],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record request counts and durations per route template."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        http_request_duration_seconds.labels(request.method, endpoint).observe(
            time.perf_counter() - start
        )
        http_requests_total.labels(request.method, endpoint, str(response.status_code)).inc()
        return response


def setup_metrics(app: FastAPI) -> None:
    """Setup Prometheus metrics endpoint."""

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
