"""Access log: one structured line per request."""

import logging
import time
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from patissio.security.rate_limiter import get_client_ip

logger = structlog.get_logger("patissio.api.requests")

# Load balancer probes
QUIET_PATHS = frozenset({"/health", "/health/db"})


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, route, status and duration once the response is ready.

    ``route`` is the matched path template (``/public/{slug}/workshops``), which
    groups requests across tenants; ``path`` is the concrete URL. User and
    tenant fields come from the request context processor.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        if request.url.path in QUIET_PATHS:
            return response

        route = request.scope.get("route")
        logger.log(
            _level_for(response.status_code),
            "http_request",
            method=request.method,
            route=getattr(route, "path", None),
            path=request.url.path,
            query=request.url.query or None,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
            client_ip=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
        return response
