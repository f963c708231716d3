"""HTTP middleware: request correlation and latency.

Every request gets a correlation id (echoed as ``X-Request-ID``) and is
timed into ``dispatchlog_http_request_duration_seconds``. The route template
(``/api/v1/tasks/{task_id}/actions``) is used as the label, never the raw path,
so task ids do not create new series.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_config import get_logger
from .metrics import http_request_duration_seconds
from .request_id import resolve_request_id, set_request_id

logger = get_logger(__name__)

UNMATCHED_ROUTE = "unmatched"


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", UNMATCHED_ROUTE)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assign a request id and record request latency."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request.headers.get("X-Request-ID"))
        set_request_id(request_id)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={"error_type": type(e).__name__},
                exc_info=True,
            )
            raise

        elapsed = time.perf_counter() - start
        http_request_duration_seconds.labels(
            method=request.method,
            route=_route_template(request),
            status=str(response.status_code),
        ).observe(elapsed)

        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={"status_code": response.status_code, "duration_ms": round(elapsed * 1000, 2)},
        )

        response.headers["X-Request-ID"] = request_id
        return response
