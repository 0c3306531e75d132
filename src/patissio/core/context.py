"""Who is acting, on which shop, for the request being served.

The context lives in a ContextVar, so each asyncio task sees its own. The
middleware opens it with request ids only; the authentication and tenant
scope dependencies fill in the rest as they resolve.

Usage:
    ctx = create_context(client_ip="203.0.113.7")
    with request_context(ctx):
        get_current_context().bind_user(user.id, user.role)
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field
from uuid_utils.compat import uuid7

from patissio.core.exceptions import ContextNotSetError


class RequestContext(BaseModel):
    """Mutable per-request record read by logging and services.

    Attributes:
        request_id: Generated for every request, echoed as X-Request-ID
        correlation_id: Taken from an upstream X-Correlation-ID when valid
        user_id: Authenticated user, once the bearer token resolved
        tenant_id: Shop the request acts on, once the tenant scope resolved
        support_mode: True when a superadmin acts through X-Support-Slug
    """

    request_id: UUID = Field(default_factory=uuid7)
    correlation_id: UUID = Field(default_factory=uuid7)
    client_ip: str | None = None

    user_id: UUID | None = None
    user_role: str | None = None

    tenant_id: UUID | None = None
    tenant_slug: str | None = None
    support_mode: bool = False

    def bind_user(self, user_id: UUID, role: str) -> None:
        self.user_id = user_id
        self.user_role = role

    def bind_tenant(self, tenant_id: UUID, slug: str, *, support_mode: bool = False) -> None:
        self.tenant_id = tenant_id
        self.tenant_slug = slug
        self.support_mode = support_mode

    def to_log_dict(self) -> dict[str, Any]:
        """Fields merged into every log entry; unset ones are left out."""
        fields: dict[str, Any] = {
            "request_id": str(self.request_id),
            "correlation_id": str(self.correlation_id),
        }
        if self.user_id is not None:
            fields["user_id"] = str(self.user_id)
        if self.tenant_slug is not None:
            fields["tenant"] = self.tenant_slug
        if self.support_mode:
            fields["support_mode"] = True
        return fields


_current: ContextVar[RequestContext | None] = ContextVar("patissio_request", default=None)


def get_current_context() -> RequestContext:
    """Raises ContextNotSetError outside of ``request_context()``."""
    ctx = _current.get()
    if ctx is None:
        raise ContextNotSetError("No request context is active")
    return ctx


def get_current_context_or_none() -> RequestContext | None:
    return _current.get()


@contextmanager
def request_context(ctx: RequestContext) -> Iterator[RequestContext]:
    """Make ``ctx`` current for the block, restoring the previous one after."""
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)


def create_context(
    *,
    request_id: UUID | None = None,
    correlation_id: UUID | None = None,
    client_ip: str | None = None,
) -> RequestContext:
    """Build a context, generating UUIDv7 ids for whatever is not given."""
    return RequestContext(
        request_id=request_id or uuid7(),
        correlation_id=correlation_id or uuid7(),
        client_ip=client_ip,
    )
