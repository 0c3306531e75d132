"""Turns domain exceptions into APIError JSON responses."""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, NamedTuple

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from patissio.api.schemas.errors import APIError, ErrorCode
from patissio.core.exceptions import (
    AccountSuspendedError,
    AuthenticationError,
    CapacityExceededError,
    ConflictError,
    ContextNotSetError,
    ForbiddenError,
    InvalidRequestError,
    PlanRequiredError,
    ProviderNotConfiguredError,
    ResourceNotFoundError,
    SupportAccessDeniedError,
    TenantNotFoundError,
    UpstreamServiceError,
)
from patissio.security.rate_limiter import RateLimitExceeded

logger = structlog.get_logger()


class ErrorMapping(NamedTuple):
    status_code: int
    error_code: ErrorCode
    details: Callable[[Any], dict[str, Any] | None]


def _none(exc: Exception) -> None:
    return None


# First isinstance match wins, so subclasses sit above their bases
ERROR_MAPPINGS: dict[type[Exception], ErrorMapping] = {
    InvalidRequestError: ErrorMapping(
        400, ErrorCode.INVALID_REQUEST, lambda e: {"field": e.field} if e.field else None
    ),
    AuthenticationError: ErrorMapping(401, ErrorCode.UNAUTHORIZED, _none),
    AccountSuspendedError: ErrorMapping(403, ErrorCode.ACCOUNT_SUSPENDED, _none),
    ForbiddenError: ErrorMapping(403, ErrorCode.FORBIDDEN, _none),
    PlanRequiredError: ErrorMapping(
        403,
        ErrorCode.PLAN_REQUIRED,
        lambda e: {"required_plan": e.required_plan, "current_plan": e.current_plan},
    ),
    SupportAccessDeniedError: ErrorMapping(
        403, ErrorCode.SUPPORT_ACCESS_DENIED, lambda e: {"slug": e.slug, "reason": e.reason}
    ),
    TenantNotFoundError: ErrorMapping(
        404, ErrorCode.TENANT_NOT_FOUND, lambda e: {"lookup": e.lookup}
    ),
    ResourceNotFoundError: ErrorMapping(
        404,
        ErrorCode.NOT_FOUND,
        lambda e: {"resource": e.resource, "identifier": str(e.identifier)},
    ),
    ConflictError: ErrorMapping(
        409, ErrorCode.CONFLICT, lambda e: {"field": e.field, "value": e.value}
    ),
    CapacityExceededError: ErrorMapping(
        409,
        ErrorCode.CAPACITY_EXCEEDED,
        lambda e: {"capacity": e.capacity, "booked": e.booked, "requested": e.requested},
    ),
    RateLimitExceeded: ErrorMapping(
        429,
        ErrorCode.RATE_LIMITED,
        lambda e: {"retry_after": e.retry_after, "bucket": e.bucket},
    ),
    UpstreamServiceError: ErrorMapping(
        502,
        ErrorCode.PROVIDER_ERROR,
        lambda e: {"provider": e.provider, "status_code": e.status_code},
    ),
    ProviderNotConfiguredError: ErrorMapping(
        503, ErrorCode.SERVICE_UNAVAILABLE, lambda e: {"provider": e.provider}
    ),
}


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catch anything raised below it and answer with an APIError body.

    Mapped exceptions keep their own message. Anything else becomes a 500
    with a generic message, logged with its traceback.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return self._render(request, exc)

    def _render(self, request: Request, exc: Exception) -> JSONResponse:
        request_id = str(getattr(request.state, "request_id", "unknown"))
        status_code, error_code, message, details = self._describe(request, exc)

        if status_code >= 500:
            logger.error(
                "request_failed",
                path=request.url.path,
                status_code=status_code,
                error_type=type(exc).__name__,
                error=str(exc),
                exc_info=status_code == 500,
            )

        headers = {"X-Request-ID": request_id}
        if isinstance(exc, RateLimitExceeded):
            headers.update(exc.headers())

        body = APIError(
            error_code=error_code,
            message=message,
            details=details,
            request_id=request_id,
            timestamp=datetime.now(UTC),
        )
        return JSONResponse(
            status_code=status_code, content=body.model_dump(mode="json"), headers=headers
        )

    def _describe(
        self, request: Request, exc: Exception
    ) -> tuple[int, str, str, dict[str, Any] | None]:
        """Return (status_code, error_code, message, details) for an exception."""
        for exc_type, mapping in ERROR_MAPPINGS.items():
            if isinstance(exc, exc_type):
                return (
                    mapping.status_code,
                    mapping.error_code.value,
                    exc.args[0] if exc.args else str(exc),
                    mapping.details(exc),
                )

        if isinstance(exc, ContextNotSetError):
            message = "Internal server error: context not initialized"
        else:
            message = "Internal server error"
        debug = getattr(getattr(request.app.state, "settings", None), "DEBUG", False)
        return (
            500,
            ErrorCode.INTERNAL_ERROR.value,
            message,
            {"type": type(exc).__name__} if debug else None,
        )
