"""Host and path routing for the storefront web tier.

``route_request`` decides, for one inbound request, whether the web tier
should serve it as-is or rewrite it to a tenant-scoped route tree. It is
a pure function of the request's host, path, query
string, cookies and headers.

Route trees:
    /{locale}/site/{slug}/...             platform subdomain or apex slug path
    /{locale}/site/_custom-domain/...     custom domain (host kept in ?domain=)
    /{locale}/{rest}                      back office, unwrapped from /dashboard
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal
from urllib.parse import parse_qsl, urlencode

from patissio.core.tenancy import RESERVED_SLUGS, SLUG_PATTERN, split_host

LOCALES: tuple[str, ...] = ("fr", "en")
DEFAULT_LOCALE = "fr"
LOCALE_COOKIE = "NEXT_LOCALE"

RESERVED_PATHS = RESERVED_SLUGS

# Pages served directly on tenant hosts instead of the public site
CUSTOM_DOMAIN_AUTH_PATHS: frozenset[str] = frozenset(
    {
        "login",
        "register",
        "forgot-password",
        "reset-password",
        "privacy",
        "data-deletion",
    }
)

PASSTHROUGH_PREFIXES: tuple[str, ...] = ("/_next", "/api", "/favicon")
INSTAGRAM_CALLBACK_PATH = "/instagram/callback"
INSTAGRAM_CALLBACK_TARGET = "/api/instagram/callback"

_FILE_EXTENSION = re.compile(r"/[^/]*\.[A-Za-z0-9]+$")
_LOCAL_HOSTS = ("localhost", "127.0.0.1")


@dataclass(frozen=True)
class RouteDecision:
    """What the web tier should do with a request.

    Attributes:
        action: ``next`` to serve as-is, ``rewrite`` to serve ``target``
            internally
        target: Path plus query string for rewrites
    """

    action: Literal["next", "rewrite"]
    target: str | None = None

    @classmethod
    def next(cls) -> "RouteDecision":
        return cls("next")

    @classmethod
    def rewrite(cls, path: str, query: str = "") -> "RouteDecision":
        return cls("rewrite", f"{path}?{query}" if query else path)


def _segments(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def strip_locale(path: str) -> tuple[str | None, str]:
    """Split a leading locale segment off a path.

    Returns:
        (locale or None, remaining path starting with "/")
    """
    segments = _segments(path)
    if segments and segments[0] in LOCALES:
        return segments[0], "/" + "/".join(segments[1:])
    return None, path or "/"


def negotiate_locale(
    path: str,
    cookies: Mapping[str, str] | None = None,
    headers: Mapping[str, str] | None = None,
) -> str:
    """Pick the locale: path prefix, then cookie, then Accept-Language."""
    path_locale, _ = strip_locale(path)
    if path_locale:
        return path_locale

    cookie_locale = (cookies or {}).get(LOCALE_COOKIE)
    if cookie_locale in LOCALES:
        return cookie_locale

    accept = _header(headers, "accept-language")
    if accept:
        candidates: list[tuple[float, int, str]] = []
        for position, entry in enumerate(accept.split(",")):
            lang, _, params = entry.strip().partition(";")
            quality = 1.0
            params = params.strip()
            if params.startswith("q="):
                try:
                    quality = float(params[2:])
                except ValueError:
                    quality = 0.0
            primary = lang.strip().lower().split("-")[0]
            if primary in LOCALES and quality > 0:
                candidates.append((-quality, position, primary))
        if candidates:
            return min(candidates)[2]

    return DEFAULT_LOCALE


def _header(headers: Mapping[str, str] | None, name: str) -> str | None:
    if not headers:
        return None
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def _is_passthrough(path: str) -> bool:
    return path.startswith(PASSTHROUGH_PREFIXES) or bool(_FILE_EXTENSION.search(path))


def _locale_passthrough(path: str, locale: str, query: str) -> RouteDecision:
    """Serve a platform page under its locale prefix."""
    path_locale, _ = strip_locale(path)
    if path_locale:
        return RouteDecision.next()
    return RouteDecision.rewrite(f"/{locale}{path if path != '/' else ''}", query)


def _dashboard_target(clean_path: str, locale: str) -> str:
    rest = "/".join(_segments(clean_path)[1:])
    return f"/{locale}/{rest}" if rest else f"/{locale}/dashboard"


def _tenant_site(
    path: str, locale: str, query: str, site_root: str, extra_query: dict[str, str] | None = None
) -> RouteDecision:
    """Route a request on a tenant host (subdomain or custom domain)."""
    _, clean_path = strip_locale(path)
    segments = _segments(clean_path)
    first = segments[0] if segments else None

    if first in CUSTOM_DOMAIN_AUTH_PATHS:
        return _locale_passthrough(path, locale, query)

    suffix = "" if clean_path == "/" else clean_path
    if extra_query:
        params = dict(parse_qsl(query, keep_blank_values=True))
        params.update(extra_query)
        query = urlencode(params)
    return RouteDecision.rewrite(f"/{locale}/site/{site_root}{suffix}", query)


def route_request(
    host: str,
    path: str,
    search: str = "",
    cookies: Mapping[str, str] | None = None,
    headers: Mapping[str, str] | None = None,
    main_domain: str = "patissio.com",
) -> RouteDecision:
    """Decide how the web tier serves a request.

    Args:
        host: The Host header, port allowed
        path: URL path
        search: Query string, with or without the leading "?"
        cookies: Request cookies
        headers: Request headers (Accept-Language)
        main_domain: Platform apex domain

    Returns:
        The routing decision
    """
    path = path or "/"
    query = search.lstrip("?")
    hostname = split_host(host)
    main_domain = main_domain.lower()

    if _is_passthrough(path):
        return RouteDecision.next()

    _, clean_path = strip_locale(path)
    if clean_path == INSTAGRAM_CALLBACK_PATH:
        return RouteDecision.rewrite(INSTAGRAM_CALLBACK_TARGET, query)

    locale = negotiate_locale(path, cookies, headers)

    # The back office works on every host through /dashboard
    segments = _segments(clean_path)
    if segments and segments[0] == "dashboard":
        return RouteDecision.rewrite(_dashboard_target(clean_path, locale), query)

    is_local = hostname in _LOCAL_HOSTS or hostname.endswith(".localhost")

    # Development subdomains: {slug}.localhost
    if hostname.endswith(".localhost"):
        slug = hostname.removesuffix(".localhost")
        if slug and slug != "www":
            return _tenant_site(path, locale, query, slug)

    # Custom domains: anything outside the platform and localhost
    if not is_local and hostname != main_domain and not hostname.endswith(f".{main_domain}"):
        return _tenant_site(
            path, locale, query, "_custom-domain", extra_query={"domain": hostname}
        )

    # Platform subdomains: {slug}.{main_domain}
    labels = hostname.split(".")
    if not is_local and len(labels) > 2 and labels[0] != "www":
        return _tenant_site(path, locale, query, labels[0])

    # Apex: /{slug}/... unless the segment is a platform route
    first = segments[0] if segments else None
    if first and first not in RESERVED_PATHS and SLUG_PATTERN.match(first):
        rest = "/".join(segments[1:])
        target = f"/{locale}/site/{first}" + (f"/{rest}" if rest else "")
        return RouteDecision.rewrite(target, query)

    return _locale_passthrough(path, locale, query)
