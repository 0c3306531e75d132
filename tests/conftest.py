"""Pytest fixtures for Patissio tests."""

import datetime as dt
from collections.abc import AsyncGenerator, Awaitable, Callable
from decimal import Decimal
from typing import Any
from uuid import UUID

import pytest
import pytest_asyncio
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from patissio.config.settings import Settings
from patissio.core.exceptions import UpstreamServiceError
from patissio.db.models import (
    AccessToken,
    Base,
    PatissierProfile,
    PlanTier,
    Product,
    User,
    UserRole,
    Workshop,
    WorkshopStatus,
)
from patissio.security.passwords import hash_password
from patissio.security.tokens import generate_token, hash_token
from patissio.services.email import EmailMessage, EmailService
from patissio.services.payments import (
    CheckoutSession,
    ConnectAccountStatus,
    StripeService,
    SubscriptionSnapshot,
)


# =============================================================================
# Structlog Configuration Fixture
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_structlog_after_test():
    """Reset structlog configuration after each test."""
    yield
    structlog.reset_defaults()


# =============================================================================
# Provider fakes
# =============================================================================


class RecordingTransport:
    """Mail transport that keeps every message in memory."""

    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []

    async def send(self, message: EmailMessage) -> None:
        self.sent.append(message)

    def to(self, address: str) -> list[EmailMessage]:
        return [m for m in self.sent if m.to == address]


class FakeStripe(StripeService):
    """StripeService with the network calls replaced by canned answers.

    Webhook signature checking is inherited unchanged.
    """

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.fail_checkout = False
        self.subscription_price_id = "price_pro_monthly"
        self.account_status = ConnectAccountStatus(
            account_id="acct_test",
            charges_enabled=True,
            details_submitted=True,
            transfers_active=True,
        )

    async def create_payment_checkout(self, **params: Any) -> CheckoutSession:
        self.calls.append(("create_payment_checkout", params))
        if self.fail_checkout:
            raise UpstreamServiceError("stripe", "Card processing unavailable")
        return CheckoutSession(id="cs_test_123", url="https://checkout.stripe.test/cs_test_123")

    async def create_subscription_checkout(self, **params: Any) -> CheckoutSession:
        self.calls.append(("create_subscription_checkout", params))
        return CheckoutSession(id="cs_sub_123", url="https://checkout.stripe.test/cs_sub_123")

    async def create_connect_account(self, profile_id: UUID, email: str) -> str:
        self.calls.append(("create_connect_account", {"profile_id": profile_id, "email": email}))
        return self.account_status.account_id

    async def create_onboarding_link(
        self, account_id: str, refresh_url: str, return_url: str
    ) -> str:
        self.calls.append(("create_onboarding_link", {"account_id": account_id}))
        return f"https://connect.stripe.test/onboard/{account_id}"

    async def get_connect_account(self, account_id: str) -> ConnectAccountStatus:
        self.calls.append(("get_connect_account", {"account_id": account_id}))
        return self.account_status

    async def request_transfers_capability(self, account_id: str) -> None:
        self.calls.append(("request_transfers_capability", {"account_id": account_id}))

    async def create_login_link(self, account_id: str) -> str:
        self.calls.append(("create_login_link", {"account_id": account_id}))
        return f"https://connect.stripe.test/login/{account_id}"

    async def create_billing_portal_session(self, customer_id: str, return_url: str) -> str:
        self.calls.append(("create_billing_portal_session", {"customer_id": customer_id}))
        return f"https://billing.stripe.test/{customer_id}"

    async def list_invoices(self, customer_id: str, limit: int = 10) -> list[dict[str, Any]]:
        self.calls.append(("list_invoices", {"customer_id": customer_id}))
        return []

    def _snapshot(
        self, subscription_id: str, cancel_at_period_end: bool = False
    ) -> SubscriptionSnapshot:
        return SubscriptionSnapshot(
            subscription_id=subscription_id,
            status="active",
            price_id=self.subscription_price_id,
            customer_id="cus_test",
            current_period_start=None,
            current_period_end=None,
            cancel_at_period_end=cancel_at_period_end,
        )

    async def get_subscription(self, subscription_id: str) -> SubscriptionSnapshot:
        self.calls.append(("get_subscription", {"subscription_id": subscription_id}))
        return self._snapshot(subscription_id)

    async def set_cancel_at_period_end(
        self, subscription_id: str, cancel: bool
    ) -> SubscriptionSnapshot:
        self.calls.append(("set_cancel_at_period_end", {"cancel": cancel}))
        return self._snapshot(subscription_id, cancel)

    async def update_subscription_plan(
        self, subscription_id: str, new_price_id: str
    ) -> SubscriptionSnapshot:
        self.calls.append(("update_subscription_plan", {"price_id": new_price_id}))
        return self._snapshot(subscription_id)

    def called(self, operation: str) -> list[dict[str, Any]]:
        return [params for name, params in self.calls if name == operation]


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Settings for tests: in-memory database, no rate limits."""
    return Settings(
        ENVIRONMENT="test",
        DEBUG=True,
        log_level="DEBUG",
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        PLATFORM_DOMAIN="patissio.com",
        FRONTEND_URL="https://patissio.com",
        RATE_LIMIT_ENABLED=False,
        STRIPE_SECRET_KEY=SecretStr("sk_test_dummy"),
        STRIPE_WEBHOOK_SECRET=SecretStr("whsec_test_secret"),
        STRIPE_PRICE_PRO_MONTHLY="price_pro_monthly",
        STRIPE_PRICE_PRO_YEARLY="price_pro_yearly",
        STRIPE_PRICE_PREMIUM_MONTHLY="price_premium_monthly",
        STRIPE_PRICE_PREMIUM_YEARLY="price_premium_yearly",
    )


# =============================================================================
# Database fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_engine():
    """In-memory SQLite engine with all tables, shared by every session of a test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """A session for arranging and inspecting data outside of requests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# API test fixtures
# =============================================================================


@pytest.fixture
def mail() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def fake_stripe(test_settings: Settings) -> FakeStripe:
    return FakeStripe(test_settings)


@pytest.fixture
def test_app(
    test_settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    mail: RecordingTransport,
    fake_stripe: FakeStripe,
) -> FastAPI:
    """FastAPI application wired to the test database and provider fakes."""
    from patissio.api.app import create_app
    from patissio.api.dependencies import get_db, get_email_service, get_stripe_service

    app = create_app(settings=test_settings)

    async def _get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
            finally:
                await session.rollback()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_email_service] = lambda: EmailService(
        transport=mail, frontend_url=test_settings.FRONTEND_URL
    )
    app.dependency_overrides[get_stripe_service] = lambda: fake_stripe
    return app


@pytest_asyncio.fixture
async def test_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client calling the test application in-process."""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as client:
        yield client


# =============================================================================
# Data factories
# =============================================================================


def auth(token: str, **headers: str) -> dict[str, str]:
    """Authorization header for a bearer token, plus extra headers."""
    return {"Authorization": f"Bearer {token}", **headers}


async def _create_user(
    session: AsyncSession, email: str, role: UserRole, password: str = "s3cret-password"
) -> tuple[User, str]:
    user = User(email=email, password_hash=hash_password(password), role=role.value)
    session.add(user)
    await session.flush()
    raw_token = generate_token()
    session.add(AccessToken(user_id=user.id, token_hash=hash_token(raw_token)))
    return user, raw_token


@pytest.fixture
def make_patissier(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[tuple[PatissierProfile, str]]]:
    """Factory creating a patissier with a profile and a bearer token.

    Example:
        profile, token = await make_patissier("maboulangerie", plan="pro")
    """

    async def _make(
        slug: str, plan: str = PlanTier.STARTER.value, **profile_fields: Any
    ) -> tuple[PatissierProfile, str]:
        async with session_factory() as session:
            user, raw_token = await _create_user(session, f"{slug}@example.com", UserRole.PATISSIER)
            profile = PatissierProfile(
                user_id=user.id,
                slug=slug,
                business_name=slug.replace("-", " ").title(),
                plan=plan,
                **profile_fields,
            )
            session.add(profile)
            await session.commit()
            return profile, raw_token

    return _make


@pytest.fixture
def make_user(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[tuple[User, str]]]:
    """Factory creating a user without a profile (client or superadmin)."""

    async def _make(email: str, role: UserRole = UserRole.CLIENT) -> tuple[User, str]:
        async with session_factory() as session:
            user, raw_token = await _create_user(session, email, role)
            await session.commit()
            return user, raw_token

    return _make


@pytest.fixture
def make_workshop(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[Workshop]]:
    """Factory creating a workshop for a profile, published by default."""

    async def _make(profile: PatissierProfile, **fields: Any) -> Workshop:
        values: dict[str, Any] = {
            "title": "Atelier macarons",
            "slug": "atelier-macarons",
            "price": Decimal("100.00"),
            "deposit_percent": 30,
            "capacity": 4,
            "date": dt.date.today() + dt.timedelta(days=14),
            "start_time": dt.time(14, 0),
            "status": WorkshopStatus.PUBLISHED.value,
        }
        values.update(fields)
        async with session_factory() as session:
            workshop = Workshop(patissier_id=profile.id, **values)
            session.add(workshop)
            await session.commit()
            return workshop

    return _make


@pytest.fixture
def make_product(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[Product]]:
    """Factory creating a product for a profile."""

    async def _make(profile: PatissierProfile, **fields: Any) -> Product:
        values: dict[str, Any] = {"name": "Paris-Brest", "price": Decimal("6.50")}
        values.update(fields)
        async with session_factory() as session:
            product = Product(patissier_id=profile.id, **values)
            session.add(product)
            await session.commit()
            return product

    return _make
