"""Tests for plan tiers and support-mode access rules."""

from types import SimpleNamespace

import pytest

from patissio.core.exceptions import PlanRequiredError, SupportAccessDeniedError
from patissio.core.plans import PLANS, ensure_plan, plan_level, plan_satisfies
from patissio.core.support import (
    SUPPORT_ALLOWED_ROUTES,
    TenantScope,
    check_support_access,
    ensure_support_route,
    is_support_route_allowed,
)


class TestPlans:
    """Tests for plan ordering."""

    def test_levels_are_ordered(self) -> None:
        """starter < pro < premium."""
        assert plan_level("starter") < plan_level("pro") < plan_level("premium")

    def test_unknown_plan_ranks_lowest(self) -> None:
        """Unknown or missing plans satisfy nothing."""
        assert plan_level("gold") == 0
        assert plan_level(None) == 0
        assert not plan_satisfies(None, "starter")

    @pytest.mark.parametrize(
        ("current", "required", "allowed"),
        [
            ("starter", "starter", True),
            ("starter", "pro", False),
            ("pro", "pro", True),
            ("premium", "pro", True),
            ("pro", "premium", False),
        ],
    )
    def test_plan_satisfies(self, current: str, required: str, allowed: bool) -> None:
        """A higher plan satisfies every lower requirement."""
        assert plan_satisfies(current, required) is allowed

    def test_ensure_plan_raises(self) -> None:
        """ensure_plan reports both plans on failure."""
        with pytest.raises(PlanRequiredError) as exc_info:
            ensure_plan("starter", "premium")

        assert exc_info.value.required_plan == "premium"
        assert exc_info.value.current_plan == "starter"

    def test_catalogue_prices_in_cents(self) -> None:
        """Paid plans carry prices; starter is free."""
        assert PLANS["starter"]["monthly_price"] == 0
        assert PLANS["pro"]["monthly_price"] > 0
        assert "custom_domain" in PLANS["premium"]["features"]
        assert "custom_domain" not in PLANS["pro"]["features"]


class TestSupportAccess:
    """Tests for the support-mode allow-list."""

    def test_site_editing_routes_allowed(self) -> None:
        """Profile and site design edits are open to support."""
        assert is_support_route_allowed("GET", "/patissier/profile")
        assert is_support_route_allowed("patch", "/patissier/profile")
        assert is_support_route_allowed("PUT", "/patissier/images/{slot}")

    def test_other_routes_denied(self) -> None:
        """Orders, billing and integrations stay closed."""
        assert not is_support_route_allowed("GET", "/patissier/orders")
        assert not is_support_route_allowed("POST", "/patissier/workshops")
        assert not is_support_route_allowed("DELETE", "/patissier/profile")

    def test_allow_list_uses_route_templates(self) -> None:
        """Entries are templates, not concrete paths."""
        assert all(path.startswith("/patissier/") for _, path in SUPPORT_ALLOWED_ROUTES)
        assert not is_support_route_allowed("PUT", "/patissier/images/logo")

    def test_tenant_must_opt_in(self) -> None:
        """A tenant without allow_support_access refuses support sessions."""
        profile = SimpleNamespace(slug="maboulangerie", allow_support_access=False)

        with pytest.raises(SupportAccessDeniedError) as exc_info:
            check_support_access(profile, "GET", "/patissier/profile")

        assert exc_info.value.reason == "not_allowed_by_tenant"

    def test_route_outside_allow_list(self) -> None:
        """Opted-in tenants still only expose the allow-list."""
        profile = SimpleNamespace(slug="maboulangerie", allow_support_access=True)

        with pytest.raises(SupportAccessDeniedError) as exc_info:
            check_support_access(profile, "GET", "/patissier/orders")

        assert exc_info.value.reason == "route_not_allowed"

    def test_route_check_without_tenant(self) -> None:
        """The route check alone needs only the requested slug."""
        with pytest.raises(SupportAccessDeniedError) as exc_info:
            ensure_support_route("maboulangerie", "GET", "/billing/current")

        assert exc_info.value.slug == "maboulangerie"
        assert exc_info.value.reason == "route_not_allowed"
        ensure_support_route("maboulangerie", "PUT", "/patissier/site")

    def test_scope_modes(self) -> None:
        """Owner and support scopes expose the same tenant."""
        profile = SimpleNamespace(id="tenant", slug="maboulangerie")
        user = SimpleNamespace(id="user")

        owner = TenantScope.for_owner(profile, user)
        support = TenantScope.for_support(profile, user)

        assert not owner.support_mode
        assert support.support_mode
        assert support.tenant_id == owner.tenant_id == "tenant"
        assert support.slug == "maboulangerie"
