"""Prometheus metrics for the API and the report pipeline."""

import re
import time

from prometheus_client import Counter, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# --- Metrics ---

APP_INFO = Info("app", "Brand visibility reporting service info")
APP_INFO.info({"version": "1.0.0", "name": "brand_visibility"})

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
)

REPORT_RUNS = Counter(
    "daily_report_runs_total",
    "Daily report generation runs by outcome",
    ["status"],  # completed | running | failed | skipped
)

PROVIDER_CALLS = Counter(
    "provider_calls_total",
    "Provider calls made by provider passes",
    ["provider", "outcome"],  # outcome: ok | no_result | error
)

PROVIDER_CALL_DURATION = Histogram(
    "provider_call_duration_seconds",
    "Provider call latency in seconds",
    ["provider"],
    buckets=[0.5, 1, 2.5, 5, 10, 20, 40, 90, 180],
)

URL_EXTRACTIONS = Counter(
    "url_extractions_total",
    "Citation URL content extractions",
    ["outcome"],  # extracted | failed
)


# --- Middleware ---

_UUID_RE = re.compile(r"/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE)


def _normalize_path(path: str) -> str:
    """Replace UUID path segments with {id} to avoid high cardinality."""
    return _UUID_RE.sub("/{id}", path)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collect HTTP request metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        path = _normalize_path(request.url.path)

        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        REQUEST_COUNT.labels(method=method, path=path, status=response.status_code).inc()
        REQUEST_DURATION.labels(method=method, path=path).observe(duration)

        return response


def metrics_response() -> Response:
    """Generate Prometheus /metrics response."""
    return Response(
        content=generate_latest(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
