"""Core services and utilities for Patissio."""

from .context import (
    RequestContext,
    create_context,
    get_current_context,
    get_current_context_or_none,
    request_context,
)
from .exceptions import (
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

__all__ = [
    # Context
    "RequestContext",
    "create_context",
    "get_current_context",
    "get_current_context_or_none",
    "request_context",
    # Exceptions
    "AccountSuspendedError",
    "AuthenticationError",
    "CapacityExceededError",
    "ConflictError",
    "ContextNotSetError",
    "ForbiddenError",
    "InvalidRequestError",
    "PlanRequiredError",
    "ProviderNotConfiguredError",
    "ResourceNotFoundError",
    "SupportAccessDeniedError",
    "TenantNotFoundError",
    "UpstreamServiceError",
]
