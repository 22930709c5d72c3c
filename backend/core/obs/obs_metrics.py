from __future__ import annotations
import os
from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY,  # Use default registry
)

PROM_ENABLED = os.getenv("PROMETHEUS_ENABLED", "true").lower() == "true"

REQ_COUNTER = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "method", "path", "status"],
)
REQ_LATENCY = Histogram(
    "http_request_latency_seconds",
    "HTTP request latency (s)",
    ["service", "method", "path", "status"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
)

# Chat gateway
CHAT_OUTCOMES = Counter(
    "ai_chat_messages_total",
    "Chat messages by outcome (reply, action, chain, error)",
    ["outcome"],
)
PROVIDER_LATENCY = Histogram(
    "ai_chat_provider_latency_seconds",
    "Completion API round trip (s)",
    ["provider", "status"],
    buckets=(0.25, 0.5, 1, 2, 5, 10, 20, 30, 60),
)


def metrics_app():
    from starlette.responses import Response, PlainTextResponse
    from starlette.applications import Starlette
    from starlette.routing import Route

    async def metrics(_):
        if not PROM_ENABLED:
            return PlainTextResponse("Prometheus disabled", status_code=404)
        data = generate_latest(REGISTRY)
        return Response(data, media_type=CONTENT_TYPE_LATEST)

    return Starlette(routes=[Route("/", metrics)])
