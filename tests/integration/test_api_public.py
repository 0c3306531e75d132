"""Integration tests for the public storefront API."""

import datetime as dt

import httpx
import pytest
from httpx import AsyncClient

from patissio.api.dependencies import get_instagram_service
from patissio.services.instagram import InstagramService
from tests.conftest import auth


@pytest.mark.asyncio
class TestTenantLookup:
    """Tests for slug checks and shop resolution."""

    @pytest.mark.parametrize(
        "slug,reason",
        [
            ("ab", "too_short"),
            ("Ma_Boutique", "invalid"),
            ("dashboard", "reserved"),
            ("maboulangerie", "taken"),
        ],
    )
    async def test_check_slug_unavailable(
        self, test_client: AsyncClient, make_patissier, slug: str, reason: str
    ) -> None:
        await make_patissier("maboulangerie")

        response = await test_client.get(f"/public/check-slug/{slug}")

        assert response.json() == {"available": False, "reason": reason}

    async def test_check_slug_available(self, test_client: AsyncClient) -> None:
        response = await test_client.get("/public/check-slug/chez-lea")

        assert response.json() == {"available": True, "reason": None}

    async def test_profile_hides_back_office_fields(
        self, test_client: AsyncClient, make_patissier
    ) -> None:
        await make_patissier("maboulangerie", instagram_access_token="IGQVJ-secret-token")

        response = await test_client.get("/public/maboulangerie")

        assert response.status_code == 200
        data = response.json()
        assert data["business_name"] == "Maboulangerie"
        for private in ("user_id", "stripe_account_id", "allow_support_access", "custom_domain"):
            assert private not in data
        assert "IGQVJ-secret-token" not in response.text

    async def test_unknown_slug(self, test_client: AsyncClient) -> None:
        response = await test_client.get("/public/nobody-here")

        assert response.status_code == 404
        assert response.json()["error_code"] == "tenant_not_found"

    async def test_verified_custom_domain(self, test_client: AsyncClient, make_patissier) -> None:
        await make_patissier(
            "maboulangerie",
            plan="premium",
            custom_domain="maboulangerie.fr",
            custom_domain_verified=True,
        )
        await make_patissier("chez-lea", plan="premium", custom_domain="chez-lea.fr")

        verified = await test_client.get("/public/domain/maboulangerie.fr")
        unverified = await test_client.get("/public/domain/chez-lea.fr")

        assert verified.json()["slug"] == "maboulangerie"
        assert unverified.status_code == 404


@pytest.mark.asyncio
class TestStorefrontCatalogue:
    """Tests for public categories, creations and products."""

    async def test_creations_filters(self, test_client: AsyncClient, make_patissier) -> None:
        _, token = await make_patissier("maboulangerie")
        headers = auth(token)
        category = await test_client.post(
            "/patissier/categories", headers=headers, json={"name": "Tartes"}
        )
        category_id = category.json()["id"]
        for body in (
            {"title": "Tarte citron", "category_id": category_id, "is_featured": True},
            {"title": "Tarte fraise", "category_id": category_id},
            {"title": "Fraisier"},
            {"title": "Brouillon", "is_visible": False},
        ):
            await test_client.post("/patissier/creations", headers=headers, json=body)

        visible = await test_client.get("/public/maboulangerie/creations")
        in_category = await test_client.get(
            "/public/maboulangerie/creations", params={"category_id": category_id}
        )
        featured = await test_client.get(
            "/public/maboulangerie/creations", params={"featured": "true"}
        )
        limited = await test_client.get("/public/maboulangerie/creations", params={"limit": 2})
        categories = await test_client.get("/public/maboulangerie/categories")

        assert sorted(c["title"] for c in visible.json()) == [
            "Fraisier",
            "Tarte citron",
            "Tarte fraise",
        ]
        assert len(in_category.json()) == 2
        assert [c["title"] for c in featured.json()] == ["Tarte citron"]
        assert len(limited.json()) == 2
        assert [c["slug"] for c in categories.json()] == ["tartes"]

    async def test_creation_detail(self, test_client: AsyncClient, make_patissier) -> None:
        _, token = await make_patissier("maboulangerie")
        await test_client.post(
            "/patissier/creations", headers=auth(token), json={"title": "Fraisier"}
        )
        await test_client.post(
            "/patissier/creations",
            headers=auth(token),
            json={"title": "Brouillon", "is_visible": False},
        )

        shown = await test_client.get("/public/maboulangerie/creations/fraisier")
        hidden = await test_client.get("/public/maboulangerie/creations/brouillon")

        assert shown.json()["title"] == "Fraisier"
        assert hidden.status_code == 404

    async def test_products_need_pro_plan(
        self, test_client: AsyncClient, make_patissier, make_product
    ) -> None:
        starter, _ = await make_patissier("maboulangerie")
        pro, _ = await make_patissier("chez-lea", plan="pro")
        await make_product(starter)
        await make_product(pro)
        await make_product(pro, name="Éclair", is_available=False)

        starter_products = await test_client.get("/public/maboulangerie/products")
        pro_products = await test_client.get("/public/chez-lea/products")

        assert starter_products.json() == []
        assert [p["name"] for p in pro_products.json()] == ["Paris-Brest"]


@pytest.mark.asyncio
class TestStorefrontWorkshops:
    """Tests for public workshop listings."""

    async def test_upcoming_first_then_past(
        self, test_client: AsyncClient, make_patissier, make_workshop
    ) -> None:
        profile, _ = await make_patissier("maboulangerie", plan="pro")
        today = dt.date.today()
        await make_workshop(profile, slug="passe", date=today - dt.timedelta(days=3))
        await make_workshop(profile, slug="lointain", date=today + dt.timedelta(days=30))
        await make_workshop(profile, slug="proche", date=today + dt.timedelta(days=2))
        await make_workshop(profile, slug="brouillon", status="draft")
        await make_workshop(profile, slug="cache", is_visible=False)

        response = await test_client.get("/public/maboulangerie/workshops")

        assert [w["slug"] for w in response.json()] == ["proche", "lointain", "passe"]
        assert response.json()[0]["spots_left"] == 4

    async def test_workshop_detail_hides_drafts(
        self, test_client: AsyncClient, make_patissier, make_workshop
    ) -> None:
        profile, _ = await make_patissier("maboulangerie", plan="pro")
        await make_workshop(profile)
        await make_workshop(profile, slug="brouillon", status="draft")

        shown = await test_client.get("/public/maboulangerie/workshops/atelier-macarons")
        draft = await test_client.get("/public/maboulangerie/workshops/brouillon")

        assert shown.status_code == 200
        assert shown.json()["title"] == "Atelier macarons"
        assert draft.status_code == 404


@pytest.mark.asyncio
class TestInstagramFeed:
    """Tests for the storefront Instagram feed."""

    @pytest.fixture
    def graph_requests(self, test_app) -> list[httpx.Request]:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            media = [
                {
                    "id": str(i),
                    "media_type": "IMAGE",
                    "media_url": f"https://cdn.instagram.test/{i}.jpg",
                    "permalink": f"https://instagram.test/p/{i}",
                    "caption": "Fournée du jour",
                }
                for i in range(12)
            ]
            return httpx.Response(200, json={"data": media})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        test_app.dependency_overrides[get_instagram_service] = lambda: InstagramService(
            "https://graph.instagram.test", client
        )
        return requests

    async def test_feed(self, test_client: AsyncClient, make_patissier, graph_requests) -> None:
        await make_patissier("maboulangerie", instagram_access_token="IGQVJ-token-value")

        response = await test_client.get("/public/maboulangerie/instagram-feed")

        assert response.status_code == 200
        assert len(response.json()["posts"]) == 9
        assert response.json()["error"] is None
        assert graph_requests[0].url.params["limit"] == "12"

    async def test_feed_without_token(
        self, test_client: AsyncClient, make_patissier, graph_requests
    ) -> None:
        await make_patissier("maboulangerie")

        response = await test_client.get("/public/maboulangerie/instagram-feed")

        assert response.json() == {"posts": [], "error": None}
        assert graph_requests == []
