from __future__ import annotations
import re
import time
import uuid
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from .obs_logging import logger
from .obs_metrics import REQ_COUNTER, REQ_LATENCY

HEADER_REQ_ID = "X-Request-Id"
HTTP_STATUS_INTERNAL_ERROR = "500"

# UUID pattern for validating request IDs
UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


def validate_request_id(req_id: str) -> bool:
    """Only UUIDs are echoed back; anything else is replaced."""
    if not req_id or len(req_id) > 100:
        return False
    return UUID_PATTERN.match(req_id) is not None


def _route_of(request: Request) -> str:
    # Templated path keeps session ids out of metric labels
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Adds a request ID, records latency metrics, and emits one log line per request.
    """

    def __init__(self, app, service_name: str = "gateway"):
        super().__init__(app)
        self.service_name = service_name

    def _observe(self, request: Request, status: str, dur: float) -> None:
        labels = dict(
            service=self.service_name,
            method=request.method,
            path=_route_of(request),
            status=status,
        )
        REQ_COUNTER.labels(**labels).inc()
        REQ_LATENCY.labels(**labels).observe(dur)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        incoming_req_id = request.headers.get(HEADER_REQ_ID)
        if incoming_req_id and validate_request_id(incoming_req_id):
            req_id = incoming_req_id
        else:
            req_id = str(uuid.uuid4())
            if incoming_req_id:
                logger.warning(
                    f"Invalid request ID received, generated new one: {req_id}"
                )

        start = time.time()
        request.state.request_id = req_id

        try:
            response = await call_next(request)
        except Exception:
            self._observe(request, HTTP_STATUS_INTERNAL_ERROR, time.time() - start)
            logger.error(
                "request failed",
                extra={
                    "request_id": req_id,
                    "route": _route_of(request),
                    "status": int(HTTP_STATUS_INTERNAL_ERROR),
                },
            )
            raise

        dur = time.time() - start
        status = str(response.status_code)
        try:
            self._observe(request, status, dur)
        except ValueError:
            logger.warning(
                "Failed to record metrics", exc_info=True, extra={"request_id": req_id}
            )

        logger.info(
            "request",
            extra={
                "request_id": req_id,
                "route": _route_of(request),
                "status": int(status),
                "user_id": getattr(request.state, "user_id", None),
            },
        )

        response.headers[HEADER_REQ_ID] = req_id
        response.headers["Server-Timing"] = f"app_obs;dur={dur * 1000:.2f}"
        return response
