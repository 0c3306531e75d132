"""Integration tests for the patissier back office."""

import datetime as dt

import httpx
import pytest
from httpx import AsyncClient
from pydantic import SecretStr

from patissio.api.dependencies import get_domain_service
from patissio.db.models import UserRole
from patissio.services.domains import DomainService
from tests.conftest import auth


def _workshop_body(**overrides) -> dict:
    body = {
        "title": "Atelier Éclairs",
        "price": "85.00",
        "capacity": 6,
        "date": (dt.date.today() + dt.timedelta(days=10)).isoformat(),
        "start_time": "10:00:00",
        "status": "published",
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
class TestProfile:
    """Tests for the shop profile and storefront design."""

    async def test_get_profile(self, test_client: AsyncClient, make_patissier) -> None:
        _, token = await make_patissier("maboulangerie")

        response = await test_client.get("/patissier/profile", headers=auth(token))

        assert response.status_code == 200
        assert response.json()["slug"] == "maboulangerie"
        assert response.json()["allow_support_access"] is False

    async def test_patch_profile(self, test_client: AsyncClient, make_patissier) -> None:
        """Only the sent fields change."""
        _, token = await make_patissier("maboulangerie")

        response = await test_client.patch(
            "/patissier/profile",
            headers=auth(token),
            json={"description": "Viennoiseries au levain", "default_deposit_percent": 50},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["description"] == "Viennoiseries au levain"
        assert data["default_deposit_percent"] == 50
        assert data["business_name"] == "Maboulangerie"

    async def test_site_design_color_validated(
        self, test_client: AsyncClient, make_patissier
    ) -> None:
        _, token = await make_patissier("maboulangerie")

        ok = await test_client.put(
            "/patissier/site-design", headers=auth(token), json={"primary_color": "#AA5500"}
        )
        bad = await test_client.put(
            "/patissier/site-design", headers=auth(token), json={"primary_color": "red"}
        )

        assert ok.status_code == 200
        assert ok.json()["primary_color"] == "#AA5500"
        assert bad.status_code == 400

    async def test_image_slots(self, test_client: AsyncClient, make_patissier) -> None:
        """Fixed slots fill their column and page slots fill page_hero_images."""
        _, token = await make_patissier("maboulangerie")

        logo = await test_client.put(
            "/patissier/images/logo", headers=auth(token), json={"url": "https://cdn/logo.png"}
        )
        page = await test_client.put(
            "/patissier/images/page-workshops",
            headers=auth(token),
            json={"url": "https://cdn/ateliers.jpg"},
        )
        cleared = await test_client.delete("/patissier/images/logo", headers=auth(token))
        unknown = await test_client.put(
            "/patissier/images/banner", headers=auth(token), json={"url": "https://cdn/x.png"}
        )

        assert logo.json()["logo_url"] == "https://cdn/logo.png"
        assert page.json()["page_hero_images"] == {"workshops": "https://cdn/ateliers.jpg"}
        assert cleared.json()["logo_url"] is None
        assert unknown.status_code == 400

    async def test_client_account_has_no_back_office(
        self, test_client: AsyncClient, make_user
    ) -> None:
        _, token = await make_user("alice@example.com", UserRole.CLIENT)

        response = await test_client.get("/patissier/profile", headers=auth(token))

        assert response.status_code == 403

    async def test_stats(self, test_client: AsyncClient, make_patissier, make_workshop) -> None:
        profile, token = await make_patissier("maboulangerie", plan="pro")
        await make_workshop(profile)

        response = await test_client.get("/patissier/stats", headers=auth(token))

        assert response.status_code == 200
        assert response.json()["workshops_total"] == 1
        assert response.json()["workshops_published"] == 1


@pytest.mark.asyncio
class TestSupportMode:
    """Tests for superadmins acting through X-Support-Slug."""

    async def test_allowed_route(self, test_client: AsyncClient, make_patissier, make_user):
        """An opted-in tenant's profile can be edited by support."""
        await make_patissier("maboulangerie", allow_support_access=True)
        _, admin_token = await make_user("admin@example.com", UserRole.SUPERADMIN)
        headers = auth(admin_token, **{"X-Support-Slug": "maboulangerie"})

        read = await test_client.get("/patissier/profile", headers=headers)
        write = await test_client.put(
            "/patissier/images/hero", headers=headers, json={"url": "https://cdn/hero.jpg"}
        )

        assert read.status_code == 200
        assert read.json()["slug"] == "maboulangerie"
        assert write.status_code == 200
        assert write.json()["hero_image_url"] == "https://cdn/hero.jpg"

    async def test_route_outside_allow_list(
        self, test_client: AsyncClient, make_patissier, make_user
    ) -> None:
        await make_patissier("maboulangerie", plan="pro", allow_support_access=True)
        _, admin_token = await make_user("admin@example.com", UserRole.SUPERADMIN)

        response = await test_client.get(
            "/patissier/orders",
            headers=auth(admin_token, **{"X-Support-Slug": "maboulangerie"}),
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "support_access_denied"
        assert response.json()["details"]["reason"] == "route_not_allowed"

    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("GET", "/billing/current"),
            ("POST", "/billing/portal"),
            ("GET", "/notifications"),
            ("GET", "/auth/me"),
        ],
    )
    async def test_header_refused_outside_back_office(
        self, test_client: AsyncClient, make_patissier, make_user, method: str, path: str
    ) -> None:
        """Routes without a tenant scope still refuse the support header."""
        await make_patissier("maboulangerie", plan="pro", allow_support_access=True)
        _, admin_token = await make_user("admin@example.com", UserRole.SUPERADMIN)

        response = await test_client.request(
            method, path, headers=auth(admin_token, **{"X-Support-Slug": "maboulangerie"})
        )
        without_header = await test_client.get("/notifications", headers=auth(admin_token))

        assert response.status_code == 403
        assert response.json()["error_code"] == "support_access_denied"
        assert response.json()["details"]["reason"] == "route_not_allowed"
        assert without_header.status_code == 200

    async def test_tenant_not_opted_in(
        self, test_client: AsyncClient, make_patissier, make_user
    ) -> None:
        await make_patissier("maboulangerie")
        _, admin_token = await make_user("admin@example.com", UserRole.SUPERADMIN)

        response = await test_client.get(
            "/patissier/profile",
            headers=auth(admin_token, **{"X-Support-Slug": "maboulangerie"}),
        )

        assert response.status_code == 403
        assert response.json()["details"]["reason"] == "not_allowed_by_tenant"

    async def test_support_cannot_change_opt_in(
        self, test_client: AsyncClient, make_patissier, make_user
    ) -> None:
        await make_patissier("maboulangerie", allow_support_access=True)
        _, admin_token = await make_user("admin@example.com", UserRole.SUPERADMIN)

        response = await test_client.patch(
            "/patissier/profile",
            headers=auth(admin_token, **{"X-Support-Slug": "maboulangerie"}),
            json={"allow_support_access": False},
        )

        assert response.status_code == 403

    async def test_non_superadmin_header(
        self, test_client: AsyncClient, make_patissier
    ) -> None:
        """A patissier cannot impersonate another shop."""
        await make_patissier("maboulangerie", allow_support_access=True)
        _, other_token = await make_patissier("chez-lea")

        response = await test_client.get(
            "/patissier/profile",
            headers=auth(other_token, **{"X-Support-Slug": "maboulangerie"}),
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "forbidden"

    async def test_unknown_slug(self, test_client: AsyncClient, make_user) -> None:
        _, admin_token = await make_user("admin@example.com", UserRole.SUPERADMIN)

        response = await test_client.get(
            "/patissier/profile",
            headers=auth(admin_token, **{"X-Support-Slug": "nobody-here"}),
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "tenant_not_found"


@pytest.mark.asyncio
class TestCatalogue:
    """Tests for categories and creations."""

    async def test_category_lifecycle(self, test_client: AsyncClient, make_patissier) -> None:
        """Slugs derive from names, conflicts are refused and reorder sorts."""
        _, token = await make_patissier("maboulangerie")
        headers = auth(token)

        gateaux = await test_client.post(
            "/patissier/categories", headers=headers, json={"name": "Gâteaux"}
        )
        tartes = await test_client.post(
            "/patissier/categories", headers=headers, json={"name": "Tartes"}
        )
        duplicate = await test_client.post(
            "/patissier/categories", headers=headers, json={"name": "GATEAUX"}
        )

        assert gateaux.status_code == 201
        assert gateaux.json()["slug"] == "gateaux"
        assert gateaux.json()["sort_order"] == 0
        assert tartes.json()["sort_order"] == 1
        assert duplicate.status_code == 409

        reordered = await test_client.put(
            "/patissier/categories/reorder",
            headers=headers,
            json={
                "items": [
                    {"id": gateaux.json()["id"], "sort_order": 5},
                    {"id": tartes.json()["id"], "sort_order": 0},
                    {"id": "0191d8a8-1c2b-7def-8a00-000000000000", "sort_order": 1},
                ]
            },
        )
        assert reordered.status_code == 200
        assert [c["name"] for c in reordered.json()] == ["Tartes", "Gâteaux"]

    async def test_creation_in_other_tenant_category(
        self, test_client: AsyncClient, make_patissier
    ) -> None:
        """A creation cannot point at another shop's category."""
        _, owner_token = await make_patissier("maboulangerie")
        _, other_token = await make_patissier("chez-lea")
        category = await test_client.post(
            "/patissier/categories", headers=auth(other_token), json={"name": "Tartes"}
        )

        response = await test_client.post(
            "/patissier/creations",
            headers=auth(owner_token),
            json={"title": "Tarte citron", "category_id": category.json()["id"]},
        )

        assert response.status_code == 404

    async def test_creations_are_tenant_scoped(
        self, test_client: AsyncClient, make_patissier
    ) -> None:
        _, owner_token = await make_patissier("maboulangerie")
        _, other_token = await make_patissier("chez-lea")
        created = await test_client.post(
            "/patissier/creations",
            headers=auth(owner_token),
            json={"title": "Tarte citron meringuée", "tags": ["tarte"]},
        )
        creation_id = created.json()["id"]

        assert created.status_code == 201
        assert created.json()["slug"] == "tarte-citron-meringuee"

        other_view = await test_client.get(
            f"/patissier/creations/{creation_id}", headers=auth(other_token)
        )
        other_delete = await test_client.delete(
            f"/patissier/creations/{creation_id}", headers=auth(other_token)
        )
        assert other_view.status_code == 404
        assert other_delete.status_code == 404

        listing = await test_client.get("/patissier/creations", headers=auth(owner_token))
        assert [c["id"] for c in listing.json()] == [creation_id]


@pytest.mark.asyncio
class TestPlanGuards:
    """Tests for plan-gated back-office routes."""

    async def test_starter_cannot_manage_products(
        self, test_client: AsyncClient, make_patissier
    ) -> None:
        _, token = await make_patissier("maboulangerie")

        response = await test_client.get("/patissier/products", headers=auth(token))

        assert response.status_code == 403
        data = response.json()
        assert data["error_code"] == "plan_required"
        assert data["details"] == {"required_plan": "pro", "current_plan": "starter"}

    async def test_pro_manages_products(self, test_client: AsyncClient, make_patissier) -> None:
        _, token = await make_patissier("maboulangerie", plan="pro")

        created = await test_client.post(
            "/patissier/products",
            headers=auth(token),
            json={
                "name": "Paris-Brest",
                "price": "6.50",
                "allergens": ["gluten", "fruits à coque"],
            },
        )
        listing = await test_client.get("/patissier/products", headers=auth(token))

        assert created.status_code == 201
        assert created.json()["price"] == "6.50"
        assert [p["name"] for p in listing.json()] == ["Paris-Brest"]

    async def test_pro_cannot_use_custom_domain(
        self, test_client: AsyncClient, make_patissier
    ) -> None:
        _, token = await make_patissier("maboulangerie", plan="pro")

        response = await test_client.get("/patissier/domain", headers=auth(token))

        assert response.status_code == 403
        assert response.json()["details"]["required_plan"] == "premium"


@pytest.mark.asyncio
class TestWorkshops:
    """Tests for workshops and their bookings."""

    async def test_create_workshop(self, test_client: AsyncClient, make_patissier) -> None:
        """Deposit percent defaults to the shop's default and slugs stay unique."""
        _, token = await make_patissier("maboulangerie", plan="pro", default_deposit_percent=40)

        first = await test_client.post(
            "/patissier/workshops", headers=auth(token), json=_workshop_body()
        )
        second = await test_client.post(
            "/patissier/workshops", headers=auth(token), json=_workshop_body()
        )

        assert first.status_code == 201
        assert first.json()["deposit_percent"] == 40
        assert first.json()["slug"] == "atelier-eclairs"
        assert first.json()["spots_left"] == 6
        assert second.json()["slug"] != first.json()["slug"]

    async def test_capacity_must_be_positive(
        self, test_client: AsyncClient, make_patissier
    ) -> None:
        _, token = await make_patissier("maboulangerie", plan="pro")

        response = await test_client.post(
            "/patissier/workshops", headers=auth(token), json=_workshop_body(capacity=0)
        )

        assert response.status_code == 400

    async def test_patissier_booking_and_spots_left(
        self, test_client: AsyncClient, make_patissier, make_workshop, mail
    ) -> None:
        """Back-office bookings count against capacity and email the client."""
        profile, token = await make_patissier("maboulangerie", plan="pro")
        workshop = await make_workshop(profile, capacity=4, status="draft")

        booking = await test_client.post(
            f"/patissier/workshops/{workshop.id}/bookings",
            headers=auth(token),
            json={
                "client_name": "Alice",
                "client_email": "alice@example.com",
                "nb_participants": 3,
            },
        )
        over = await test_client.post(
            f"/patissier/workshops/{workshop.id}/bookings",
            headers=auth(token),
            json={"client_name": "Bob", "client_email": "bob@example.com", "nb_participants": 2},
        )
        detail = await test_client.get(f"/patissier/workshops/{workshop.id}", headers=auth(token))

        assert booking.status_code == 201
        assert booking.json()["booking"]["status"] == "confirmed"
        assert booking.json()["checkout_url"] is None
        assert over.status_code == 409
        assert over.json()["error_code"] == "capacity_exceeded"
        assert detail.json()["spots_left"] == 1
        assert [m.template for m in mail.to("alice@example.com")] == ["booking_confirmation"]

    async def test_cancel_workshop_cancels_bookings(
        self, test_client: AsyncClient, make_patissier, make_workshop, mail
    ) -> None:
        profile, token = await make_patissier("maboulangerie", plan="pro")
        workshop = await make_workshop(profile)
        await test_client.post(
            f"/patissier/workshops/{workshop.id}/bookings",
            headers=auth(token),
            json={
                "client_name": "Alice",
                "client_email": "alice@example.com",
                "nb_participants": 1,
            },
        )

        response = await test_client.put(
            f"/patissier/workshops/{workshop.id}/status",
            headers=auth(token),
            json={"status": "cancelled", "reason": "Four en panne"},
        )
        bookings = await test_client.get(
            f"/patissier/workshops/{workshop.id}/bookings", headers=auth(token)
        )

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert bookings.json()[0]["status"] == "cancelled"
        assert bookings.json()[0]["cancellation_reason"] == "Four en panne"
        assert "workshop_cancelled" in [m.template for m in mail.to("alice@example.com")]

    async def test_reopening_booking_checks_capacity(
        self, test_client: AsyncClient, make_patissier, make_workshop
    ) -> None:
        """A cancelled booking only comes back while its seats are still free."""
        profile, token = await make_patissier("maboulangerie", plan="pro")
        workshop = await make_workshop(profile, capacity=2)
        bookings_url = f"/patissier/workshops/{workshop.id}/bookings"

        first = await test_client.post(
            bookings_url,
            headers=auth(token),
            json={
                "client_name": "Alice",
                "client_email": "alice@example.com",
                "nb_participants": 2,
            },
        )
        first_id = first.json()["booking"]["id"]
        await test_client.put(
            f"{bookings_url}/{first_id}/status", headers=auth(token), json={"status": "cancelled"}
        )
        reopened = await test_client.put(
            f"{bookings_url}/{first_id}/status", headers=auth(token), json={"status": "confirmed"}
        )
        assert reopened.status_code == 200
        assert reopened.json()["status"] == "confirmed"
        assert reopened.json()["cancelled_at"] is None

        await test_client.put(
            f"{bookings_url}/{first_id}/status", headers=auth(token), json={"status": "cancelled"}
        )
        await test_client.post(
            bookings_url,
            headers=auth(token),
            json={"client_name": "Bob", "client_email": "bob@example.com", "nb_participants": 2},
        )
        refused = await test_client.put(
            f"{bookings_url}/{first_id}/status", headers=auth(token), json={"status": "confirmed"}
        )
        detail = await test_client.get(f"/patissier/workshops/{workshop.id}", headers=auth(token))

        assert refused.status_code == 409
        assert refused.json()["error_code"] == "capacity_exceeded"
        assert detail.json()["spots_left"] == 0


@pytest.mark.asyncio
class TestOrdersBackOffice:
    """Tests for patissier order handling."""

    async def _place_custom_order(self, client: AsyncClient) -> dict:
        response = await client.post(
            "/client/orders",
            json={
                "slug": "maboulangerie",
                "type": "custom",
                "client_name": "Alice",
                "client_email": "alice@example.com",
                "custom_type": "Pièce montée",
                "custom_nb_personnes": 40,
            },
        )
        assert response.status_code == 201
        return response.json()

    async def test_status_update_emails_client(
        self, test_client: AsyncClient, make_patissier, mail
    ) -> None:
        _, token = await make_patissier("maboulangerie", plan="pro")
        order = await self._place_custom_order(test_client)

        response = await test_client.put(
            f"/patissier/orders/{order['id']}/status",
            headers=auth(token),
            json={"status": "confirmed", "confirmed_date": "2030-06-01"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"
        assert response.json()["confirmed_date"] == "2030-06-01"
        assert "order_status_update" in [m.template for m in mail.to("alice@example.com")]

    async def test_quote_without_connect_warns(
        self, test_client: AsyncClient, make_patissier, fake_stripe
    ) -> None:
        """Shops without Stripe Connect send the quote without a payment link."""
        _, token = await make_patissier("maboulangerie", plan="pro")
        order = await self._place_custom_order(test_client)

        response = await test_client.put(
            f"/patissier/orders/{order['id']}/quote",
            headers=auth(token),
            json={"quoted_price": "320.00"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["order"]["quoted_price"] == "320.00"
        assert data["checkout_url"] is None
        assert len(data["warnings"]) == 1
        assert fake_stripe.called("create_payment_checkout") == []

    async def test_quote_with_connect(
        self, test_client: AsyncClient, make_patissier, fake_stripe
    ) -> None:
        """The deposit checkout pays the connected account."""
        _, token = await make_patissier(
            "maboulangerie",
            plan="pro",
            stripe_account_id="acct_shop",
            stripe_onboarding_complete=True,
        )
        order = await self._place_custom_order(test_client)

        response = await test_client.put(
            f"/patissier/orders/{order['id']}/quote",
            headers=auth(token),
            json={"quoted_price": "300.00", "deposit_percent": 30},
        )

        assert response.json()["checkout_url"] == "https://checkout.stripe.test/cs_test_123"
        (params,) = fake_stripe.called("create_payment_checkout")
        assert params["connected_account_id"] == "acct_shop"
        assert str(params["amount"]) == "90.00"
        assert params["metadata"]["order_number"] == order["order_number"]

    async def test_quote_checkout_failure_is_a_warning(
        self, test_client: AsyncClient, make_patissier, fake_stripe
    ) -> None:
        _, token = await make_patissier(
            "maboulangerie",
            plan="pro",
            stripe_account_id="acct_shop",
            stripe_onboarding_complete=True,
        )
        order = await self._place_custom_order(test_client)
        fake_stripe.fail_checkout = True

        response = await test_client.put(
            f"/patissier/orders/{order['id']}/quote",
            headers=auth(token),
            json={"quoted_price": "300.00"},
        )

        assert response.status_code == 200
        assert response.json()["checkout_url"] is None
        assert response.json()["warnings"]

    async def test_message_thread(self, test_client: AsyncClient, make_patissier, mail) -> None:
        _, token = await make_patissier("maboulangerie", plan="pro")
        order = await self._place_custom_order(test_client)

        sent = await test_client.post(
            f"/patissier/orders/{order['id']}/messages",
            headers=auth(token),
            json={"message": "Quelle saveur pour le biscuit ?"},
        )
        thread = await test_client.get(
            f"/patissier/orders/{order['id']}/messages", headers=auth(token)
        )

        assert sent.status_code == 201
        assert sent.json()["sender_type"] == "patissier"
        assert [m["message"] for m in thread.json()] == ["Quelle saveur pour le biscuit ?"]

    async def test_list_filters(self, test_client: AsyncClient, make_patissier) -> None:
        _, token = await make_patissier("maboulangerie", plan="pro")
        await self._place_custom_order(test_client)

        custom = await test_client.get(
            "/patissier/orders", headers=auth(token), params={"type": "custom"}
        )
        catalogue = await test_client.get(
            "/patissier/orders", headers=auth(token), params={"type": "catalogue"}
        )

        assert custom.json()["total"] == 1
        assert catalogue.json()["total"] == 0


@pytest.mark.asyncio
class TestDomainAndIntegrations:
    """Tests for custom domains, Stripe Connect and Instagram linking."""

    @pytest.fixture
    def vercel_requests(self, test_app, test_settings) -> list[httpx.Request]:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.method == "GET":
                return httpx.Response(200, json={"verified": True, "misconfigured": False})
            return httpx.Response(200, json={})

        settings = test_settings.model_copy(
            update={"VERCEL_API_TOKEN": SecretStr("vercel-token"), "VERCEL_PROJECT_ID": "prj_1"}
        )
        client = httpx.AsyncClient(
            base_url="https://api.vercel.test", transport=httpx.MockTransport(handler)
        )
        test_app.dependency_overrides[get_domain_service] = lambda: DomainService(settings, client)
        return requests

    async def test_domain_set_and_verify(
        self, test_client: AsyncClient, make_patissier, vercel_requests
    ) -> None:
        _, token = await make_patissier("maboulangerie", plan="premium")

        attached = await test_client.put(
            "/patissier/domain", headers=auth(token), json={"domain": "WWW.Chez-Lea.fr"}
        )
        verified = await test_client.get("/patissier/domain/verify", headers=auth(token))
        current = await test_client.get("/patissier/domain", headers=auth(token))

        assert attached.status_code == 200
        assert attached.json() == {
            "domain": "chez-lea.fr",
            "verified": False,
            "cname_target": "cname.vercel-dns.com",
        }
        assert verified.json()["status"] == "verified"
        assert current.json()["verified"] is True
        assert [r.method for r in vercel_requests] == ["POST", "GET"]

    async def test_platform_domain_refused(
        self, test_client: AsyncClient, make_patissier, vercel_requests
    ) -> None:
        _, token = await make_patissier("maboulangerie", plan="premium")

        response = await test_client.put(
            "/patissier/domain", headers=auth(token), json={"domain": "shop.patissio.com"}
        )

        assert response.status_code == 400
        assert vercel_requests == []

    async def test_domain_taken_by_other_shop(
        self, test_client: AsyncClient, make_patissier, vercel_requests
    ) -> None:
        await make_patissier("chez-lea", plan="premium", custom_domain="chez-lea.fr")
        _, token = await make_patissier("maboulangerie", plan="premium")

        response = await test_client.put(
            "/patissier/domain", headers=auth(token), json={"domain": "chez-lea.fr"}
        )

        assert response.status_code == 409

    async def test_stripe_connect(
        self, test_client: AsyncClient, make_patissier, fake_stripe
    ) -> None:
        """Connecting creates the account once and reports onboarding state."""
        _, token = await make_patissier("maboulangerie", plan="pro")

        connected = await test_client.post(
            "/patissier/integrations/stripe/connect", headers=auth(token)
        )
        profile = await test_client.get("/patissier/profile", headers=auth(token))

        assert connected.status_code == 200
        assert connected.json()["account_id"] == "acct_test"
        assert profile.json()["stripe_account_id"] == "acct_test"
        assert len(fake_stripe.called("create_connect_account")) == 1

    async def test_instagram_token(self, test_client: AsyncClient, make_patissier) -> None:
        _, token = await make_patissier("maboulangerie")

        before = await test_client.get("/patissier/integrations/instagram", headers=auth(token))
        linked = await test_client.put(
            "/patissier/integrations/instagram",
            headers=auth(token),
            json={"access_token": "  IGQVJ-long-lived-token  "},
        )
        unlinked = await test_client.delete(
            "/patissier/integrations/instagram", headers=auth(token)
        )

        assert before.json() == {"connected": False}
        assert linked.json() == {"connected": True}
        assert unlinked.json() == {"connected": False}
