"""Stripe integration: platform subscriptions, Connect accounts and checkouts.

The Stripe SDK is synchronous; calls run in a worker thread so they do not
block the event loop. SDK errors surface as ``UpstreamServiceError``.
"""

import asyncio
import json
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

import stripe
import structlog

from patissio.config.settings import Settings
from patissio.core.exceptions import ProviderNotConfiguredError, UpstreamServiceError
from patissio.core.logging import log_external_call

logger = structlog.get_logger()

WEBHOOK_TOLERANCE_SECONDS = 300
CURRENCY = "eur"


@dataclass(frozen=True)
class CheckoutSession:
    """A hosted checkout page."""

    id: str
    url: str


@dataclass(frozen=True)
class ConnectAccountStatus:
    """Onboarding state of a connected account."""

    account_id: str
    charges_enabled: bool
    details_submitted: bool
    transfers_active: bool

    @property
    def onboarding_complete(self) -> bool:
        return self.charges_enabled and self.details_submitted and self.transfers_active

    @classmethod
    def from_stripe(cls, account: Any) -> "ConnectAccountStatus":
        capabilities = account.get("capabilities") or {}
        return cls(
            account_id=account["id"],
            charges_enabled=bool(account.get("charges_enabled")),
            details_submitted=bool(account.get("details_submitted")),
            transfers_active=capabilities.get("transfers") == "active",
        )


@dataclass(frozen=True)
class SubscriptionSnapshot:
    """The subscription fields mirrored locally."""

    subscription_id: str
    status: str
    price_id: str | None
    customer_id: str | None
    current_period_start: datetime | None
    current_period_end: datetime | None
    cancel_at_period_end: bool
    item_id: str | None = None

    @classmethod
    def from_stripe(cls, subscription: Any) -> "SubscriptionSnapshot":
        """Build from a Stripe subscription object or its webhook JSON."""
        items = (subscription.get("items") or {}).get("data") or []
        first_item = items[0] if items else {}
        price = first_item.get("price") or {}
        # Newer API versions carry the billing period on the item
        period_start = subscription.get("current_period_start") or first_item.get(
            "current_period_start"
        )
        period_end = subscription.get("current_period_end") or first_item.get(
            "current_period_end"
        )
        return cls(
            subscription_id=subscription["id"],
            status=subscription.get("status") or "active",
            price_id=price.get("id"),
            customer_id=subscription.get("customer"),
            current_period_start=from_timestamp(period_start),
            current_period_end=from_timestamp(period_end),
            cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
            item_id=first_item.get("id"),
        )


def from_timestamp(value: int | None) -> datetime | None:
    return datetime.fromtimestamp(value, tz=UTC) if value else None


def to_cents(amount: Decimal) -> int:
    """Convert a currency amount to integer cents."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripeService:
    """Thin async wrapper around the Stripe SDK.

    Example:
        service = StripeService(settings)
        session = await service.create_payment_checkout(...)
    """

    def __init__(self, settings: Settings):
        self._settings = settings

    @property
    def is_configured(self) -> bool:
        return self._settings.stripe_configured

    @property
    def platform_fee_percent(self) -> int:
        return self._settings.PLATFORM_FEE_PERCENT

    def platform_fee_cents(self, amount_cents: int) -> int:
        """Platform share of a Connect payment, in cents."""
        fee = Decimal(amount_cents) * Decimal(self.platform_fee_percent) / Decimal(100)
        return int(fee.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def _api_key(self) -> str:
        key = self._settings.STRIPE_SECRET_KEY
        if key is None:
            raise ProviderNotConfiguredError("stripe")
        return key.get_secret_value()

    async def _call(self, operation: str, fn: Callable[..., Any], *args: Any, **params: Any) -> Any:
        api_key = self._api_key()
        start = time.perf_counter()
        try:
            result = await asyncio.to_thread(fn, *args, api_key=api_key, **params)
        except stripe.StripeError as exc:
            log_external_call(
                logger,
                "stripe",
                operation,
                (time.perf_counter() - start) * 1000,
                success=False,
                error=str(exc),
                error_code=getattr(exc, "code", None),
            )
            raise UpstreamServiceError(
                "stripe",
                getattr(exc, "user_message", None) or "Payment provider request failed",
                status_code=getattr(exc, "http_status", None),
            ) from exc
        log_external_call(
            logger, "stripe", operation, (time.perf_counter() - start) * 1000, success=True
        )
        return result

    # =========================================================================
    # Platform subscriptions
    # =========================================================================

    async def create_subscription_checkout(
        self,
        *,
        customer_id: str | None,
        customer_email: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        user_id: UUID,
    ) -> CheckoutSession:
        params: dict[str, Any] = {
            "mode": "subscription",
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "allow_promotion_codes": True,
            "subscription_data": {"metadata": {"user_id": str(user_id)}},
            "metadata": {"user_id": str(user_id)},
        }
        if customer_id:
            params["customer"] = customer_id
        else:
            params["customer_email"] = customer_email
        session = await self._call(
            "create_subscription_checkout", stripe.checkout.Session.create, **params
        )
        return CheckoutSession(id=session["id"], url=session["url"])

    async def get_subscription(self, subscription_id: str) -> SubscriptionSnapshot:
        subscription = await self._call(
            "get_subscription", stripe.Subscription.retrieve, subscription_id
        )
        return SubscriptionSnapshot.from_stripe(subscription)

    async def set_cancel_at_period_end(
        self, subscription_id: str, cancel: bool
    ) -> SubscriptionSnapshot:
        """Schedule (or unschedule) cancellation at the end of the period."""
        subscription = await self._call(
            "cancel_subscription" if cancel else "resume_subscription",
            stripe.Subscription.modify,
            subscription_id,
            cancel_at_period_end=cancel,
        )
        return SubscriptionSnapshot.from_stripe(subscription)

    async def update_subscription_plan(
        self, subscription_id: str, new_price_id: str
    ) -> SubscriptionSnapshot:
        """Swap the subscription's price, prorating the difference.

        Raises:
            UpstreamServiceError: If the subscription has no item to update
        """
        current = await self.get_subscription(subscription_id)
        if current.item_id is None:
            raise UpstreamServiceError("stripe", "No subscription item found")
        subscription = await self._call(
            "update_subscription_plan",
            stripe.Subscription.modify,
            subscription_id,
            items=[{"id": current.item_id, "price": new_price_id}],
            proration_behavior="create_prorations",
        )
        return SubscriptionSnapshot.from_stripe(subscription)

    async def create_billing_portal_session(self, customer_id: str, return_url: str) -> str:
        session = await self._call(
            "create_billing_portal_session",
            stripe.billing_portal.Session.create,
            customer=customer_id,
            return_url=return_url,
        )
        return session["url"]

    async def list_invoices(self, customer_id: str, limit: int = 10) -> list[dict[str, Any]]:
        invoices = await self._call(
            "list_invoices", stripe.Invoice.list, customer=customer_id, limit=limit
        )
        return [
            {
                "id": invoice["id"],
                "number": invoice.get("number"),
                "status": invoice.get("status"),
                "amount_paid": invoice.get("amount_paid"),
                "currency": invoice.get("currency"),
                "created": from_timestamp(invoice.get("created")),
                "hosted_invoice_url": invoice.get("hosted_invoice_url"),
                "invoice_pdf": invoice.get("invoice_pdf"),
            }
            for invoice in invoices["data"]
        ]

    # =========================================================================
    # Stripe Connect
    # =========================================================================

    async def create_connect_account(self, profile_id: UUID, email: str) -> str:
        account = await self._call(
            "create_connect_account",
            stripe.Account.create,
            type="express",
            country="FR",
            email=email,
            capabilities={
                "card_payments": {"requested": True},
                "transfers": {"requested": True},
            },
            business_type="individual",
            metadata={"patissier_id": str(profile_id)},
        )
        return account["id"]

    async def create_onboarding_link(
        self, account_id: str, refresh_url: str, return_url: str
    ) -> str:
        link = await self._call(
            "create_onboarding_link",
            stripe.AccountLink.create,
            account=account_id,
            refresh_url=refresh_url,
            return_url=return_url,
            type="account_onboarding",
        )
        return link["url"]

    async def get_connect_account(self, account_id: str) -> ConnectAccountStatus:
        account = await self._call("get_connect_account", stripe.Account.retrieve, account_id)
        return ConnectAccountStatus.from_stripe(account)

    async def request_transfers_capability(self, account_id: str) -> None:
        await self._call(
            "request_transfers_capability",
            stripe.Account.modify,
            account_id,
            capabilities={"transfers": {"requested": True}},
        )

    async def create_login_link(self, account_id: str) -> str:
        link = await self._call("create_login_link", stripe.Account.create_login_link, account_id)
        return link["url"]

    async def create_payment_checkout(
        self,
        *,
        amount: Decimal,
        product_name: str,
        metadata: dict[str, str],
        customer_email: str,
        connected_account_id: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        """One-off checkout paid out to a connected account, minus the platform fee."""
        amount_cents = to_cents(amount)
        session = await self._call(
            "create_payment_checkout",
            stripe.checkout.Session.create,
            mode="payment",
            customer_email=customer_email,
            line_items=[
                {
                    "price_data": {
                        "currency": CURRENCY,
                        "product_data": {"name": product_name},
                        "unit_amount": amount_cents,
                    },
                    "quantity": 1,
                }
            ],
            payment_intent_data={
                "application_fee_amount": self.platform_fee_cents(amount_cents),
                "transfer_data": {"destination": connected_account_id},
                "metadata": metadata,
            },
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
        )
        return CheckoutSession(id=session["id"], url=session["url"])

    # =========================================================================
    # Webhooks
    # =========================================================================

    def construct_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Verify a webhook signature and decode the event.

        Raises:
            ProviderNotConfiguredError: If no webhook secret is set
            stripe.SignatureVerificationError: If the signature does not match
            ValueError: If the payload is not valid JSON
        """
        secret = self._settings.STRIPE_WEBHOOK_SECRET
        if secret is None:
            raise ProviderNotConfiguredError("stripe")
        text = payload.decode("utf-8")
        stripe.WebhookSignature.verify_header(
            text, signature, secret.get_secret_value(), WEBHOOK_TOLERANCE_SECONDS
        )
        return json.loads(text)
