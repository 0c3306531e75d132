"""Integration tests for the Stripe webhook endpoint."""

import hashlib
import hmac
import json
import time
from typing import Any

import pytest
from httpx import AsyncClient, Response

from tests.conftest import auth

WEBHOOK_SECRET = "whsec_test_secret"


def _signature(payload: str, secret: str = WEBHOOK_SECRET) -> str:
    timestamp = int(time.time())
    digest = hmac.new(
        secret.encode("utf-8"), f"{timestamp}.{payload}".encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={digest}"


async def _deliver(
    client: AsyncClient, event_type: str, obj: dict[str, Any], secret: str = WEBHOOK_SECRET
) -> Response:
    payload = json.dumps({"id": "evt_test", "type": event_type, "data": {"object": obj}})
    return await client.post(
        "/webhooks/stripe",
        content=payload,
        headers={
            "Stripe-Signature": _signature(payload, secret),
            "Content-Type": "application/json",
        },
    )


@pytest.mark.asyncio
class TestSignature:
    """Tests for webhook signature checking."""

    async def test_missing_signature(self, test_client: AsyncClient) -> None:
        response = await test_client.post("/webhooks/stripe", content="{}")

        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_request"

    async def test_wrong_secret(self, test_client: AsyncClient) -> None:
        response = await _deliver(test_client, "invoice.paid", {}, secret="whsec_other")

        assert response.status_code == 400

    async def test_unhandled_event_is_acknowledged(self, test_client: AsyncClient) -> None:
        response = await _deliver(test_client, "customer.created", {"id": "cus_1"})

        assert response.status_code == 200
        assert response.json() == {"received": True}

    async def test_processing_error_is_acknowledged(self, test_client: AsyncClient) -> None:
        """A malformed reference fails inside the handler and is still acked."""
        response = await _deliver(
            test_client,
            "checkout.session.completed",
            {"id": "cs_1", "mode": "payment", "metadata": {"booking_id": "not-a-uuid"}},
        )

        assert response.status_code == 200
        assert response.json() == {"received": True}


@pytest.mark.asyncio
class TestCheckoutCompleted:
    """Tests for checkout.session.completed."""

    async def test_booking_deposit_paid(
        self, test_client: AsyncClient, make_patissier, make_workshop, mail
    ) -> None:
        profile, token = await make_patissier(
            "maboulangerie",
            plan="pro",
            stripe_account_id="acct_shop",
            stripe_onboarding_complete=True,
        )
        workshop = await make_workshop(profile)
        placed = await test_client.post(
            f"/client/workshops/{workshop.id}/book",
            json={
                "client_name": "Alice",
                "client_email": "alice@example.com",
                "nb_participants": 1,
            },
        )
        booking_id = placed.json()["booking"]["id"]

        response = await _deliver(
            test_client,
            "checkout.session.completed",
            {
                "id": "cs_test_123",
                "mode": "payment",
                "payment_intent": "pi_123",
                "metadata": {"booking_id": booking_id, "workshop_id": str(workshop.id)},
            },
        )
        bookings = await test_client.get(
            f"/patissier/workshops/{workshop.id}/bookings", headers=auth(token)
        )

        assert response.json() == {"received": True}
        (booking,) = bookings.json()
        assert booking["status"] == "confirmed"
        assert booking["deposit_payment_status"] == "paid"
        assert booking["deposit_paid_at"] is not None
        assert "payment_confirmation" in [m.template for m in mail.to("alice@example.com")]

    async def test_deposit_paid_after_cancellation(
        self, test_client: AsyncClient, make_patissier, make_workshop, mail
    ) -> None:
        """A late payment does not bring back seats that were sold again."""
        profile, token = await make_patissier(
            "maboulangerie",
            plan="pro",
            stripe_account_id="acct_shop",
            stripe_onboarding_complete=True,
        )
        workshop = await make_workshop(profile, capacity=2)
        book_url = f"/client/workshops/{workshop.id}/book"
        placed = await test_client.post(
            book_url,
            json={
                "client_name": "Alice",
                "client_email": "alice@example.com",
                "nb_participants": 2,
            },
        )
        booking_id = placed.json()["booking"]["id"]
        await test_client.put(
            f"/client/bookings/{booking_id}/cancel", json={"email": "alice@example.com"}
        )
        taken = await test_client.post(
            book_url,
            json={"client_name": "Bob", "client_email": "bob@example.com", "nb_participants": 2},
        )
        assert taken.status_code == 201

        response = await _deliver(
            test_client,
            "checkout.session.completed",
            {
                "id": "cs_test_123",
                "mode": "payment",
                "payment_intent": "pi_late",
                "metadata": {"booking_id": booking_id, "workshop_id": str(workshop.id)},
            },
        )
        bookings = await test_client.get(
            f"/patissier/workshops/{workshop.id}/bookings", headers=auth(token)
        )

        assert response.json() == {"received": True}
        by_id = {b["id"]: b for b in bookings.json()}
        assert by_id[booking_id]["status"] == "cancelled"
        assert by_id[booking_id]["deposit_payment_status"] == "paid"
        active = [b for b in by_id.values() if b["status"] != "cancelled"]
        assert sum(b["nb_participants"] for b in active) == 2
        assert "payment_confirmation" not in [m.template for m in mail.to("alice@example.com")]

    async def test_order_paid(self, test_client: AsyncClient, make_patissier, mail) -> None:
        """A paid pending order becomes confirmed."""
        await make_patissier("maboulangerie", plan="pro")
        placed = await test_client.post(
            "/client/orders",
            json={
                "slug": "maboulangerie",
                "type": "custom",
                "client_name": "Alice",
                "client_email": "alice@example.com",
                "custom_type": "Wedding cake",
            },
        )
        order = placed.json()

        await _deliver(
            test_client,
            "checkout.session.completed",
            {
                "id": "cs_test_123",
                "mode": "payment",
                "metadata": {"order_id": order["id"], "order_number": order["order_number"]},
            },
        )
        tracked = await test_client.get(
            f"/client/orders/{order['order_number']}", params={"email": "alice@example.com"}
        )

        assert tracked.json()["payment_status"] == "paid"
        assert tracked.json()["status"] == "confirmed"
        assert "order_payment_notification" in [
            m.template for m in mail.to("maboulangerie@example.com")
        ]

    async def test_subscription_lifecycle(
        self, test_client: AsyncClient, make_patissier, fake_stripe
    ) -> None:
        """Checkout activates the plan, updates sync it and deletion downgrades."""
        profile, token = await make_patissier("maboulangerie")
        me = await test_client.get("/auth/me", headers=auth(token))
        user_id = me.json()["user"]["id"]

        await _deliver(
            test_client,
            "checkout.session.completed",
            {
                "id": "cs_sub_123",
                "mode": "subscription",
                "subscription": "sub_123",
                "customer": "cus_test",
                "metadata": {"user_id": user_id},
            },
        )
        current = await test_client.get("/billing/current", headers=auth(token))
        assert current.json()["plan"] == "pro"
        assert current.json()["subscription"]["status"] == "active"
        assert current.json()["subscription"]["billing_interval"] == "monthly"
        assert fake_stripe.called("get_subscription") == [{"subscription_id": "sub_123"}]

        await _deliver(
            test_client,
            "customer.subscription.updated",
            {
                "id": "sub_123",
                "status": "active",
                "customer": "cus_test",
                "items": {"data": [{"id": "si_1", "price": {"id": "price_premium_yearly"}}]},
            },
        )
        upgraded = await test_client.get("/billing/current", headers=auth(token))
        assert upgraded.json()["plan"] == "premium"
        assert upgraded.json()["subscription"]["billing_interval"] == "yearly"

        await _deliver(test_client, "customer.subscription.deleted", {"id": "sub_123"})
        downgraded = await test_client.get("/billing/current", headers=auth(token))
        assert downgraded.json()["plan"] == "starter"
        assert downgraded.json()["subscription"]["status"] == "canceled"


@pytest.mark.asyncio
class TestConnectAccountUpdated:
    """Tests for account.updated."""

    async def test_onboarding_completes(self, test_client: AsyncClient, make_patissier) -> None:
        _, token = await make_patissier("maboulangerie", stripe_account_id="acct_shop")

        await _deliver(
            test_client,
            "account.updated",
            {
                "id": "acct_shop",
                "charges_enabled": True,
                "details_submitted": True,
                "capabilities": {"transfers": "active"},
            },
        )
        profile = await test_client.get("/patissier/profile", headers=auth(token))

        assert profile.json()["stripe_onboarding_complete"] is True
        assert profile.json()["can_accept_online_payment"] is True
