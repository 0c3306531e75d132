"""Tests for storefront host and path routing."""

import pytest

from patissio.edge.router import negotiate_locale, route_request, strip_locale


class TestLocale:
    """Tests for locale negotiation."""

    def test_strip_locale(self) -> None:
        assert strip_locale("/en/workshops") == ("en", "/workshops")
        assert strip_locale("/workshops") == (None, "/workshops")

    def test_path_wins(self) -> None:
        """A locale in the path beats cookie and header."""
        assert negotiate_locale("/en/x", {"NEXT_LOCALE": "fr"}, {"Accept-Language": "fr"}) == "en"

    def test_cookie_then_header(self) -> None:
        """The cookie is used before Accept-Language."""
        assert negotiate_locale("/x", {"NEXT_LOCALE": "en"}, {"Accept-Language": "fr"}) == "en"
        assert negotiate_locale("/x", {}, {"Accept-Language": "de, en;q=0.8, fr;q=0.5"}) == "en"

    def test_default(self) -> None:
        """Unsupported languages fall back to French."""
        assert negotiate_locale("/x", {}, {"Accept-Language": "de"}) == "fr"


class TestRouteRequest:
    """Tests for route_request."""

    def test_static_assets_pass_through(self) -> None:
        """Framework assets, API calls and files are served as-is."""
        for path in ("/_next/static/app.js", "/api/health", "/logo.png"):
            assert route_request("maboulangerie.patissio.com", path).action == "next"

    def test_www_behaves_like_apex(self) -> None:
        """www is not a tenant; its slug paths and platform pages work as on the apex."""
        slug_path = route_request("www.patissio.com", "/maboulangerie/workshops", "?ref=x")
        assert slug_path.action == "rewrite"
        assert slug_path.target == "/fr/site/maboulangerie/workshops?ref=x"
        assert route_request("www.patissio.com", "/login").target == "/fr/login"

    def test_subdomain_rewrites_to_site(self) -> None:
        """A platform subdomain serves the tenant's site tree."""
        decision = route_request("maboulangerie.patissio.com", "/workshops")
        assert decision.action == "rewrite"
        assert decision.target == "/fr/site/maboulangerie/workshops"

    def test_subdomain_root_with_locale(self) -> None:
        decision = route_request("maboulangerie.patissio.com", "/en")
        assert decision.target == "/en/site/maboulangerie"

    def test_custom_domain_keeps_host_in_query(self) -> None:
        """Custom domains rewrite to the shared tree with the domain in the query."""
        decision = route_request("chez-lea.fr", "/creations", "?page=2")
        assert decision.action == "rewrite"
        assert decision.target == "/fr/site/_custom-domain/creations?page=2&domain=chez-lea.fr"

    def test_auth_pages_on_tenant_hosts(self) -> None:
        """Login on a tenant host is the platform login page."""
        decision = route_request("chez-lea.fr", "/login")
        assert decision.target == "/fr/login"

    def test_dashboard_unwrapped(self) -> None:
        """The back office is reachable from any host through /dashboard."""
        assert route_request("chez-lea.fr", "/dashboard/orders").target == "/fr/orders"
        assert route_request("patissio.com", "/dashboard").target == "/fr/dashboard"

    def test_apex_slug_path(self) -> None:
        """On the apex, a slug path serves that tenant."""
        decision = route_request("patissio.com", "/maboulangerie/workshops")
        assert decision.target == "/fr/site/maboulangerie/workshops"

    @pytest.mark.parametrize("path", ["/login", "/register", "/settings"])
    def test_apex_reserved_paths(self, path: str) -> None:
        """Platform routes are not read as slugs."""
        assert route_request("patissio.com", path).target == f"/fr{path}"

    def test_localhost_subdomain(self) -> None:
        decision = route_request("maboulangerie.localhost:3000", "/")
        assert decision.target == "/fr/site/maboulangerie"

    def test_instagram_callback(self) -> None:
        """The Instagram OAuth callback is forwarded to the API route."""
        decision = route_request("patissio.com", "/instagram/callback", "?code=abc")
        assert decision.target == "/api/instagram/callback?code=abc"
