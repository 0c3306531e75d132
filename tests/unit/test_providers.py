"""Tests for the Instagram, Vercel and email provider clients."""

import json
from types import SimpleNamespace

import httpx
import pytest
from pydantic import SecretStr

from patissio.config.settings import Settings
from patissio.core.exceptions import ProviderNotConfiguredError, UpstreamServiceError
from patissio.services.domains import DomainConfig, DomainService, normalize_domain
from patissio.services.email import EmailMessage, EmailService
from patissio.services.instagram import FETCH_LIMIT, MAX_POSTS, InstagramService


def _media(count: int, media_type: str = "IMAGE") -> list[dict]:
    return [
        {
            "id": str(i),
            "media_type": media_type,
            "media_url": f"https://cdn.example.com/{i}.jpg",
            "permalink": f"https://instagram.com/p/{i}",
            "caption": "x" * 150,
        }
        for i in range(count)
    ]


@pytest.mark.asyncio
class TestInstagramService:
    """Tests for the Instagram feed reader."""

    async def test_no_token_gives_empty_feed(self) -> None:
        """Tenants without a token get an empty feed and no HTTP call."""
        feed = await InstagramService("https://graph.test").fetch_feed(None)

        assert feed.posts == []
        assert feed.error is None

    async def test_fetches_and_trims(self) -> None:
        """The feed asks for twelve posts and shows at most nine images."""
        seen: dict[str, str] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.url.params)
            return httpx.Response(200, json={"data": _media(2, "VIDEO") + _media(12)})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            feed = await InstagramService("https://graph.test", client).fetch_feed("tok")

        assert seen["limit"] == str(FETCH_LIMIT)
        assert seen["access_token"] == "tok"
        assert len(feed.posts) == MAX_POSTS
        assert all(post["media_type"] == "IMAGE" for post in feed.posts)
        assert len(feed.posts[0]["caption"]) == 100
        assert feed.posts[0]["thumbnail_url"] == feed.posts[0]["media_url"]

    async def test_expired_token(self) -> None:
        """Graph error code 190 is reported as token_expired."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": {"code": 190, "message": "expired"}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            feed = await InstagramService("https://graph.test", client).fetch_feed("tok")

        assert feed.posts == []
        assert feed.error == "token_expired"

    async def test_network_error_gives_empty_feed(self) -> None:
        """Transport failures never propagate."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            feed = await InstagramService("https://graph.test", client).fetch_feed("tok")

        assert feed.posts == []
        assert feed.error is None

    @pytest.mark.parametrize(
        "data",
        [
            {"id": "1", "media_type": "IMAGE"},
            "not a list",
            ["junk", 42, {"id": "2", "media_type": "IMAGE", "caption": 7}],
        ],
    )
    async def test_malformed_media_gives_usable_feed(self, data) -> None:
        """Unexpected shapes in the media listing are skipped, never raised."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": data})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            feed = await InstagramService("https://graph.test", client).fetch_feed("tok")

        assert feed.error is None
        assert [post["id"] for post in feed.posts] == (["2"] if isinstance(data, list) else [])
        assert all(post["caption"] == "" for post in feed.posts)


@pytest.fixture
def vercel_settings() -> Settings:
    return Settings(
        VERCEL_API_TOKEN=SecretStr("vercel-token"),
        VERCEL_PROJECT_ID="prj_123",
        VERCEL_TEAM_ID="team_1",
    )


@pytest.mark.asyncio
class TestDomainService:
    """Tests for the Vercel domains client."""

    async def test_not_configured(self) -> None:
        """Adding a domain without credentials is refused."""
        async with DomainService(Settings(VERCEL_API_TOKEN=None)) as domains:
            with pytest.raises(ProviderNotConfiguredError):
                await domains.add_domain("chez-lea.fr")

    async def test_add_domain(self, vercel_settings: Settings) -> None:
        """The domain is posted to the project with the team and bearer token."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"name": "chez-lea.fr"})

        client = httpx.AsyncClient(
            base_url="https://api.vercel.test", transport=httpx.MockTransport(handler)
        )
        async with DomainService(vercel_settings, client) as domains:
            await domains.add_domain("chez-lea.fr")
        await client.aclose()

        (request,) = requests
        assert request.method == "POST"
        assert request.url.path == "/v10/projects/prj_123/domains"
        assert request.url.params["teamId"] == "team_1"
        assert request.headers["Authorization"] == "Bearer vercel-token"
        assert json.loads(request.content) == {"name": "chez-lea.fr"}

    async def test_add_domain_already_attached(self, vercel_settings: Settings) -> None:
        """A domain already on the project counts as added."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(409, json={"error": {"code": "domain_already_in_use"}})

        client = httpx.AsyncClient(
            base_url="https://api.vercel.test", transport=httpx.MockTransport(handler)
        )
        async with DomainService(vercel_settings, client) as domains:
            await domains.add_domain("chez-lea.fr")
        await client.aclose()

    async def test_add_domain_rejected(self, vercel_settings: Settings) -> None:
        """Other provider errors surface with the provider's message."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400, json={"error": {"code": "invalid_domain", "message": "Bad domain"}}
            )

        client = httpx.AsyncClient(
            base_url="https://api.vercel.test", transport=httpx.MockTransport(handler)
        )
        async with DomainService(vercel_settings, client) as domains:
            with pytest.raises(UpstreamServiceError, match="Bad domain"):
                await domains.add_domain("chez-lea.fr")
        await client.aclose()

    async def test_domain_config(self, vercel_settings: Settings) -> None:
        """Verification and DNS state map to a status."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"verified": True, "misconfigured": False})

        client = httpx.AsyncClient(
            base_url="https://api.vercel.test", transport=httpx.MockTransport(handler)
        )
        async with DomainService(vercel_settings, client) as domains:
            config = await domains.get_domain_config("chez-lea.fr")
        await client.aclose()

        assert config.status == "verified"

    def test_status_values(self) -> None:
        """Unconfigured DNS wins over pending verification."""
        assert DomainConfig(verified=False, configured=False).status == "misconfigured"
        assert DomainConfig(verified=False, configured=True).status == "pending"

    def test_normalize_domain(self) -> None:
        assert normalize_domain("  WWW.Chez-Lea.FR ") == "chez-lea.fr"


class FailingTransport:
    async def send(self, message: EmailMessage) -> None:
        raise ConnectionError("smtp down")


@pytest.mark.asyncio
class TestEmailService:
    """Tests for transactional email composition."""

    async def test_order_confirmation(self, mail) -> None:
        """The client gets the order number and a tracking link."""
        service = EmailService(transport=mail, frontend_url="https://patissio.com/")
        order = SimpleNamespace(
            type="catalogue",
            client_name="Alice",
            client_email="alice@example.com",
            order_number="CMD-20260101-0001",
            total=None,
        )
        profile = SimpleNamespace(slug="maboulangerie", business_name="Ma Boulangerie")

        assert await service.send_order_confirmation(order, profile) is True

        (message,) = mail.to("alice@example.com")
        assert message.template == "order_confirmation"
        assert "CMD-20260101-0001" in message.subject
        assert (
            "https://patissio.com/site/maboulangerie/tracking/CMD-20260101-0001" in message.body
        )

    async def test_delivery_failure_is_not_raised(self) -> None:
        """A failing transport is logged and reported as not delivered."""
        service = EmailService(transport=FailingTransport())
        order = SimpleNamespace(
            type="custom",
            client_name="Alice",
            client_email="alice@example.com",
            order_number="CMD-20260101-0002",
            total=None,
        )
        profile = SimpleNamespace(slug="maboulangerie", business_name="Ma Boulangerie")

        assert await service.send_order_confirmation(order, profile) is False
