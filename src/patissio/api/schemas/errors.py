"""The single error body every failing endpoint returns."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Values of ``APIError.error_code``, grouped by HTTP status."""

    # 400
    INVALID_REQUEST = "invalid_request"
    VALIDATION_ERROR = "validation_error"
    # 401 / 403
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    ACCOUNT_SUSPENDED = "account_suspended"
    PLAN_REQUIRED = "plan_required"
    SUPPORT_ACCESS_DENIED = "support_access_denied"
    # 404
    NOT_FOUND = "not_found"
    TENANT_NOT_FOUND = "tenant_not_found"
    # 409
    CONFLICT = "conflict"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    # 429
    RATE_LIMITED = "rate_limited"
    # 5xx
    INTERNAL_ERROR = "internal_error"
    PROVIDER_ERROR = "provider_error"
    SERVICE_UNAVAILABLE = "service_unavailable"


class APIError(BaseModel):
    """Error body shared by the storefront, back office and admin APIs.

    ``details`` depends on the code: ``field`` for invalid_request,
    ``required_plan`` and ``current_plan`` for plan_required, ``reason``
    for support_access_denied.
    """

    error_code: str = Field(..., description="Stable, machine-readable code")
    message: str = Field(..., description="Readable explanation, safe to show")
    details: dict[str, Any] | None = Field(None, description="Code-specific fields")
    request_id: str = Field(..., description="Same value as the X-Request-ID header")
    timestamp: datetime

    model_config = {"json_schema_extra": {"example": {
        "error_code": "plan_required",
        "message": "This feature requires the pro plan",
        "details": {"required_plan": "pro", "current_plan": "starter"},
        "request_id": "0192a4c1-7e55-7b3a-9f10-3c2d8e6b5a41",
        "timestamp": "2026-03-02T08:30:00Z",
    }}}
