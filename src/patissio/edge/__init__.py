"""Edge routing for the storefront web tier."""

from .router import (
    CUSTOM_DOMAIN_AUTH_PATHS,
    DEFAULT_LOCALE,
    LOCALES,
    RESERVED_PATHS,
    RouteDecision,
    negotiate_locale,
    route_request,
    strip_locale,
)

__all__ = [
    "CUSTOM_DOMAIN_AUTH_PATHS",
    "DEFAULT_LOCALE",
    "LOCALES",
    "RESERVED_PATHS",
    "RouteDecision",
    "negotiate_locale",
    "route_request",
    "strip_locale",
]
