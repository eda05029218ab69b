"""
FastAPI middleware for request tracing and logging.

Every request gets a request id (taken from X-Request-ID when the caller
sends one) that is bound into the structlog context along with the view
the route belongs to, so engine logs emitted while serving the request can
be correlated with it.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from core.logging import bind_context, clear_context, get_logger


logger = get_logger(__name__)

# Probes are polled constantly; keep them out of INFO logs
_QUIET_PATHS = frozenset({"/health", "/ready", "/live"})


def _view_for_path(path: str) -> str:
    if path.startswith("/api/admin"):
        return "admin"
    if path.startswith("/api/catalog"):
        return "public"
    return "system"


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """
    Adds request tracing and logging.

    - Binds request_id, method, path and view for all logs of the request
    - Logs completion with status and duration
    - Echoes X-Request-ID on the response

    Usage:
        app.add_middleware(RequestTracingMiddleware)
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        path = request.url.path

        bind_context(
            request_id=request_id,
            method=request.method,
            path=path,
            view=_view_for_path(path),
        )
        log = logger.debug if path in _QUIET_PATHS else logger.info
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise
        else:
            log(
                "Request completed",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_context()
