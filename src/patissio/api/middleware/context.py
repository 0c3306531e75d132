"""Opens a RequestContext around every request and echoes its ids back."""

from typing import Callable
from uuid import UUID

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from uuid_utils.compat import uuid7

from patissio.core.context import create_context, request_context
from patissio.security.rate_limiter import get_client_ip

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_ID_HEADER = "X-Correlation-ID"


def _upstream_correlation_id(request: Request) -> UUID | None:
    """A caller-supplied correlation id, or None when absent or not a UUID."""
    raw = request.headers.get(CORRELATION_ID_HEADER, "").strip()
    try:
        return UUID(raw) if raw else None
    except ValueError:
        return None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Give each request a UUIDv7 id and an active RequestContext.

    ``request.state.request_id`` holds the id for error bodies. Both ids
    are returned as response headers on success and on handled errors.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.request_id = uuid7()
        ctx = create_context(
            request_id=request.state.request_id,
            correlation_id=_upstream_correlation_id(request),
            client_ip=get_client_ip(request),
        )

        with request_context(ctx):
            response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = str(ctx.request_id)
        response.headers[CORRELATION_ID_HEADER] = str(ctx.correlation_id)
        return response
