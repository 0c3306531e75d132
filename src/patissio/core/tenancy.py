"""Tenant slugs and tenant resolution.

A tenant (patissier profile) is addressed in three ways:

- a platform subdomain ``{slug}.{PLATFORM_DOMAIN}``,
- a verified custom domain stored on the profile,
- the first path segment on the apex domain.

Platform routes such as ``/login`` are excluded from slug interpretation by
``RESERVED_SLUGS``.
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import Literal

import structlog

from patissio.core.exceptions import TenantNotFoundError
from patissio.db.models import PatissierProfile
from patissio.db.repositories.users import ProfileRepository

logger = structlog.get_logger()

RESERVED_SLUGS: frozenset[str] = frozenset(
    {
        "dashboard",
        "login",
        "register",
        "forgot-password",
        "reset-password",
        "settings",
        "billing",
        "creations",
        "categories",
        "products",
        "orders",
        "workshops",
        "tracking",
        "site",
        "instagram",
        "privacy",
        "data-deletion",
        "api",
        "_next",
        "favicon.ico",
    }
)

SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$")
SLUG_MIN_LENGTH = 3

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

SlugUnavailableReason = Literal["too_short", "invalid", "reserved", "taken"]


def slugify(value: str) -> str:
    """Turn a name into a URL-safe slug.

    Accents are stripped, the text is lower-cased, runs of other characters
    collapse to a single hyphen and leading/trailing hyphens are trimmed.

    Example:
        >>> slugify("Pâtisserie Éloïse")
        'patisserie-eloise'
    """
    decomposed = unicodedata.normalize("NFD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_ALNUM.sub("-", stripped.lower()).strip("-")


def slug_problem(slug: str) -> SlugUnavailableReason | None:
    """Check a tenant slug's shape, ignoring whether it is taken.

    Returns:
        The reason the slug cannot be used, or None if it is well-formed
    """
    if len(slug) < SLUG_MIN_LENGTH:
        return "too_short"
    if not SLUG_PATTERN.match(slug):
        return "invalid"
    if slug in RESERVED_SLUGS:
        return "reserved"
    return None


def split_host(host: str) -> str:
    """Lower-case a Host header value and drop its port."""
    return host.strip().lower().split(":")[0].rstrip(".")


@dataclass(frozen=True)
class HostClassification:
    """How a hostname relates to the platform.

    Attributes:
        kind: ``apex``, ``subdomain``, ``custom_domain`` or ``local``
        hostname: Normalized hostname
        slug: Tenant slug for platform subdomains
    """

    kind: Literal["apex", "subdomain", "custom_domain", "local"]
    hostname: str
    slug: str | None = None


def classify_host(host: str, platform_domain: str) -> HostClassification:
    """Classify a Host header against the platform domain."""
    hostname = split_host(host)
    platform_domain = platform_domain.lower()

    if hostname in ("localhost", "127.0.0.1", ""):
        return HostClassification("local", hostname)
    if hostname.endswith(".localhost"):
        label = hostname.removesuffix(".localhost").split(".")[-1]
        if label and label != "www":
            return HostClassification("subdomain", hostname, slug=label)
        return HostClassification("local", hostname)
    if hostname in (platform_domain, f"www.{platform_domain}"):
        return HostClassification("apex", hostname)
    if hostname.endswith(f".{platform_domain}"):
        label = hostname.removesuffix(f".{platform_domain}").split(".")[-1]
        return HostClassification("subdomain", hostname, slug=label)
    return HostClassification("custom_domain", hostname)


class TenantResolver:
    """Resolve inbound hosts, domains and path segments to tenants.

    Example:
        resolver = TenantResolver(ProfileRepository(db), settings.PLATFORM_DOMAIN)
        profile = await resolver.resolve(host="maboulangerie.patissio.com", path="/")
    """

    def __init__(self, profiles: ProfileRepository, platform_domain: str):
        self.profiles = profiles
        self.platform_domain = platform_domain

    async def by_slug(self, slug: str) -> PatissierProfile:
        """Resolve a slug.

        Raises:
            TenantNotFoundError: If no tenant holds the slug
        """
        slug = slug.strip().lower()
        if not slug or slug in RESERVED_SLUGS:
            raise TenantNotFoundError(slug)
        profile = await self.profiles.get_by_slug(slug)
        if profile is None:
            raise TenantNotFoundError(slug)
        return profile

    async def by_domain(self, domain: str) -> PatissierProfile:
        """Resolve a custom domain. Unverified domains do not resolve.

        Raises:
            TenantNotFoundError: If no tenant holds a verified matching domain
        """
        hostname = split_host(domain)
        profile = await self.profiles.get_by_domain(hostname)
        if profile is None or not profile.custom_domain_verified:
            logger.debug("custom_domain_unresolved", domain=hostname, found=profile is not None)
            raise TenantNotFoundError(hostname)
        return profile

    async def resolve(self, host: str, path: str = "/") -> PatissierProfile:
        """Resolve a request's host and path to a tenant.

        Args:
            host: The Host header (port allowed)
            path: The request path, used on the apex or local hosts

        Raises:
            TenantNotFoundError: If nothing resolves
        """
        classification = classify_host(host, self.platform_domain)
        if classification.kind == "subdomain" and classification.slug:
            return await self.by_slug(classification.slug)
        if classification.kind == "custom_domain":
            return await self.by_domain(classification.hostname)

        first_segment = next((part for part in path.split("/") if part), "")
        if not first_segment:
            raise TenantNotFoundError(classification.hostname or "/")
        return await self.by_slug(first_segment)

    async def check_slug(self, slug: str) -> tuple[bool, SlugUnavailableReason | None]:
        """Report whether a slug can be registered.

        Returns:
            (available, reason) where reason is None when available
        """
        slug = slug.strip().lower()
        problem = slug_problem(slug)
        if problem is not None:
            return False, problem
        if await self.profiles.slug_taken(slug):
            return False, "taken"
        return True, None
