"""FastAPI dependencies for API endpoints.

Authentication, the active tenant scope, plan guards, rate limit buckets
and the external provider clients are all resolved here, once per request.
"""

import re
from collections.abc import Callable, Coroutine
from typing import Annotated, Any

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.config.settings import Settings, get_settings as get_global_settings
from patissio.core.context import get_current_context_or_none
from patissio.core.exceptions import AuthenticationError, ForbiddenError
from patissio.core.plans import ensure_plan
from patissio.core.support import (
    SUPPORT_HEADER,
    TenantScope,
    check_support_access,
    ensure_support_route,
)
from patissio.core.tenancy import TenantResolver
from patissio.db.config import get_db
from patissio.db.models import AccessToken, User, UserRole
from patissio.db.repositories import ProfileRepository
from patissio.security.rate_limiter import RateLimiter, get_client_ip
from patissio.services.auth import AuthService
from patissio.services.domains import DomainService
from patissio.services.email import EmailService
from patissio.services.instagram import InstagramService
from patissio.services.payments import StripeService

__all__ = [
    "get_db",
    "get_settings",
    "get_email_service",
    "get_stripe_service",
    "get_domain_service",
    "get_instagram_service",
    "get_current_user",
    "get_access_token",
    "require_superadmin",
    "get_tenant_scope",
    "restrict_support_mode",
    "require_plan",
    "throttle",
    "get_request_id",
]

_BEARER = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


# =============================================================================
# Settings and providers
# =============================================================================


def get_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else get_global_settings()


def get_email_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> EmailService:
    return EmailService(frontend_url=settings.FRONTEND_URL)


def get_stripe_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StripeService:
    return StripeService(settings)


def get_domain_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> DomainService:
    return DomainService(settings)


def get_instagram_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> InstagramService:
    return InstagramService(settings.INSTAGRAM_GRAPH_URL)


def get_request_id(request: Request) -> str:
    """Get the request ID set by RequestContextMiddleware."""
    return str(getattr(request.state, "request_id", "unknown"))


# =============================================================================
# Rate limiting
# =============================================================================


def throttle(bucket: str) -> Callable[[Request], Coroutine[Any, Any, None]]:
    """Build a dependency that counts the request against a rate limit bucket.

    Args:
        bucket: Bucket name from ``patissio.security.config.THROTTLE_BUCKETS``

    Example:
        @router.post("/login", dependencies=[Depends(throttle("authStrict"))])
    """

    async def _throttle(request: Request) -> None:
        limiter: RateLimiter | None = getattr(request.app.state, "rate_limiter", None)
        if limiter is None:
            return
        await limiter.check_or_raise(bucket, get_client_ip(request))

    return _throttle


# =============================================================================
# Authentication
# =============================================================================


async def get_current_user(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    """Resolve the bearer token to its user.

    The token row is kept on ``request.state`` so logout can revoke it.

    Raises:
        AuthenticationError: If the header is missing, malformed or unknown
        AccountSuspendedError: If the user is suspended
    """
    header = request.headers.get("Authorization")
    if not header:
        raise AuthenticationError("Missing Authorization header")
    match = _BEARER.match(header)
    if not match:
        raise AuthenticationError("Invalid Authorization header format")

    user, token = await AuthService(db, settings).authenticate(match.group(1).strip())
    request.state.access_token = token

    ctx = get_current_context_or_none()
    if ctx is not None:
        ctx.bind_user(user.id, user.role)
    return user


async def get_access_token(
    request: Request,
    user: Annotated[User, Depends(get_current_user)],
) -> AccessToken:
    """The token the current request authenticated with."""
    return request.state.access_token


async def require_superadmin(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Raises ForbiddenError unless the user is a superadmin."""
    if not user.is_superadmin:
        raise ForbiddenError("Superadmin access required")
    return user


# =============================================================================
# Tenant scope
# =============================================================================


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


async def restrict_support_mode(request: Request) -> None:
    """Application-wide guard on requests carrying ``X-Support-Slug``.

    Routes outside the support allow-list refuse the header whatever the
    caller's role, including routes that never resolve a tenant scope.
    The superadmin role and the tenant opt-in are checked by
    ``get_tenant_scope`` on the allowed routes.

    Raises:
        SupportAccessDeniedError: If the route is outside the allow-list
    """
    support_slug = request.headers.get(SUPPORT_HEADER)
    if support_slug:
        ensure_support_route(support_slug, request.method, _route_template(request))


async def get_tenant_scope(
    request: Request,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TenantScope:
    """Compute the tenant the request acts on.

    With ``X-Support-Slug`` a superadmin acts on the named tenant, limited
    to the support allow-list. Otherwise the user must own a profile. The
    profile is loaded fresh so plan changes apply on the next request.

    Raises:
        ForbiddenError: If a non-superadmin sends the support header, or
            a user without a profile calls a back-office route
        TenantNotFoundError: If the support slug does not resolve
        SupportAccessDeniedError: If the tenant or route refuses support access
    """
    support_slug = request.headers.get(SUPPORT_HEADER)
    profiles = ProfileRepository(db)

    if support_slug:
        if not user.is_superadmin:
            raise ForbiddenError("Support mode is reserved to superadmins")
        profile = await TenantResolver(profiles, settings.PLATFORM_DOMAIN).by_slug(support_slug)
        check_support_access(profile, request.method, _route_template(request))
        scope = TenantScope.for_support(profile, user)
    else:
        if user.role != UserRole.PATISSIER.value:
            raise ForbiddenError("Patissier account required")
        profile = await profiles.get_by_user(user.id)
        if profile is None:
            raise ForbiddenError("No patissier profile for this account")
        scope = TenantScope.for_owner(profile, user)

    ctx = get_current_context_or_none()
    if ctx is not None:
        ctx.bind_tenant(scope.tenant_id, scope.slug, support_mode=scope.support_mode)
    return scope


def require_plan(required_plan: str) -> Callable[..., Coroutine[Any, Any, TenantScope]]:
    """Build a dependency that enforces a minimum plan on the active tenant.

    Example:
        router = APIRouter(dependencies=[Depends(require_plan("pro"))])

    Raises:
        PlanRequiredError: If the tenant's plan ranks below ``required_plan``
    """

    async def _require_plan(
        scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    ) -> TenantScope:
        ensure_plan(scope.profile.plan, required_plan)
        return scope

    return _require_plan
