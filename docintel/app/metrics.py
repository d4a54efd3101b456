from __future__ import annotations

import time

from fastapi import Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.responses import Response

from docintel.app.settings import settings

NO_OUTCOME = "none"

REQUEST_COUNT = Counter(
    "docintel_http_requests_total",
    "HTTP requests by route, status and retrieval outcome",
    ["method", "path", "status", "outcome"],
)
REQUEST_LATENCY = Histogram(
    "docintel_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)
RETRIEVAL_LATENCY = Histogram(
    "docintel_retrieval_duration_seconds",
    "Time spent building the index and ranking chunks for one query",
    ["outcome"],
)
RETRIEVAL_SOURCES = Histogram(
    "docintel_retrieval_sources",
    "Number of sources returned per successful query",
    buckets=(0, 1, 2, 3, 5, 10, 20, 50),
)


def record_retrieval(request: Request, outcome: str, duration: float, sources: int = 0) -> None:
    """Tag the request with its retrieval outcome and observe retrieval timings."""
    request.state.retrieval_outcome = outcome
    if not settings.metrics_enabled:
        return
    RETRIEVAL_LATENCY.labels(outcome).observe(duration)
    if outcome == "ok":
        RETRIEVAL_SOURCES.observe(sources)


async def metrics_middleware(request: Request, call_next):
    if not settings.metrics_enabled or request.url.path == "/metrics":
        return await call_next(request)
    path = request.url.path
    started = time.monotonic()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        return response
    finally:
        outcome = getattr(request.state, "retrieval_outcome", NO_OUTCOME)
        REQUEST_COUNT.labels(request.method, path, str(status), outcome).inc()
        REQUEST_LATENCY.labels(request.method, path).observe(time.monotonic() - started)


def metrics_response() -> Response:
    if not settings.metrics_enabled:
        return Response(status_code=404)
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
