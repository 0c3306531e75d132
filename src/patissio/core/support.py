"""Active tenant scope and support-mode access rules.

A superadmin may act on a tenant's behalf by sending ``X-Support-Slug``.
Such requests are limited to the site-editing routes in
``SUPPORT_ALLOWED_ROUTES`` and only for tenants that opted in. The route
check applies to every request carrying the header, whatever the route.
"""

from dataclasses import dataclass
from uuid import UUID

from patissio.core.exceptions import SupportAccessDeniedError
from patissio.db.models import PatissierProfile, User

SUPPORT_HEADER = "X-Support-Slug"

# (method, route template) pairs a support session may call
SUPPORT_ALLOWED_ROUTES: frozenset[tuple[str, str]] = frozenset(
    {
        ("GET", "/patissier/profile"),
        ("PATCH", "/patissier/profile"),
        ("PUT", "/patissier/site-design"),
        ("PUT", "/patissier/site"),
        ("PUT", "/patissier/images/{slot}"),
        ("DELETE", "/patissier/images/{slot}"),
    }
)


def is_support_route_allowed(method: str, route_path: str) -> bool:
    """Whether a (method, route template) pair is open to support sessions."""
    return (method.upper(), route_path) in SUPPORT_ALLOWED_ROUTES


def ensure_support_route(slug: str, method: str, route_path: str) -> None:
    """Raises SupportAccessDeniedError when the route is outside the allow-list."""
    if not is_support_route_allowed(method, route_path):
        raise SupportAccessDeniedError(
            slug,
            reason="route_not_allowed",
            message=f"{method.upper()} {route_path} is not available in support mode",
        )


def check_support_access(profile: PatissierProfile, method: str, route_path: str) -> None:
    """Validate a support-mode request against the target tenant.

    Raises:
        SupportAccessDeniedError: If the tenant did not opt in or the route
            is outside the allow-list
    """
    if not profile.allow_support_access:
        raise SupportAccessDeniedError(
            profile.slug,
            reason="not_allowed_by_tenant",
            message="This patissier has not enabled support access",
        )
    ensure_support_route(profile.slug, method, route_path)


@dataclass(frozen=True)
class TenantScope:
    """The tenant a request acts on, computed once per request.

    Attributes:
        profile: The active tenant, freshly loaded for this request
        user: The authenticated user
        support_mode: True when a superadmin acts through ``X-Support-Slug``
    """

    profile: PatissierProfile
    user: User
    support_mode: bool = False

    @property
    def tenant_id(self) -> UUID:
        return self.profile.id

    @property
    def slug(self) -> str:
        return self.profile.slug

    @classmethod
    def for_owner(cls, profile: PatissierProfile, user: User) -> "TenantScope":
        return cls(profile=profile, user=user)

    @classmethod
    def for_support(cls, profile: PatissierProfile, user: User) -> "TenantScope":
        return cls(profile=profile, user=user, support_mode=True)
