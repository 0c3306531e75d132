"""Tests for order numbering."""

import re

import pytest

from patissio.core.exceptions import ConflictError
from patissio.db.models import OrderType
from patissio.services import orders as orders_module
from patissio.services.email import EmailService
from patissio.services.orders import OrderDraft, OrderService, generate_order_number


def _draft(email: str) -> OrderDraft:
    return OrderDraft(
        type=OrderType.CUSTOM,
        client_name="Alice",
        client_email=email,
        custom_type="Pièce montée",
    )


@pytest.fixture
def order_service_for(db_session, test_settings, fake_stripe, mail):
    def _build(profile) -> OrderService:
        email = EmailService(transport=mail, frontend_url=test_settings.FRONTEND_URL)
        return OrderService(db_session, profile, test_settings, fake_stripe, email)

    return _build


def test_order_number_format() -> None:
    assert re.fullmatch(r"PAT-\d{8}-\d{3}", generate_order_number())


@pytest.mark.asyncio
class TestOrderNumbers:
    """Numbers are unique across tenants and collisions are retried."""

    async def test_number_stored_after_check_is_retried(
        self, make_patissier, order_service_for, monkeypatch
    ) -> None:
        """Another request storing the same number first leads to a new number."""
        profile, _ = await make_patissier("maboulangerie", plan="pro")
        service = order_service_for(profile)
        numbers = iter(["PAT-20300101-001", "PAT-20300101-001", "PAT-20300101-002"])
        monkeypatch.setattr(orders_module, "generate_order_number", lambda: next(numbers))

        first_number = (await service.place(_draft("alice@example.com"))).order_number

        real_check = OrderService._number_taken
        checks: list[str] = []

        async def check_before_other_commit(self, number: str) -> bool:
            checks.append(number)
            # The first check runs before the other order was committed
            if len(checks) == 1:
                return False
            return await real_check(self, number)

        monkeypatch.setattr(OrderService, "_number_taken", check_before_other_commit)
        second = await service.place(_draft("bob@example.com"))

        assert first_number == "PAT-20300101-001"
        assert second.order_number == "PAT-20300101-002"
        assert second.client_email == "bob@example.com"

    async def test_gives_up_when_every_number_is_taken(
        self, make_patissier, order_service_for, monkeypatch
    ) -> None:
        profile, _ = await make_patissier("maboulangerie", plan="pro")
        service = order_service_for(profile)
        monkeypatch.setattr(orders_module, "generate_order_number", lambda: "PAT-20300101-007")
        await service.place(_draft("alice@example.com"))

        with pytest.raises(ConflictError) as exc_info:
            await service.place(_draft("bob@example.com"))

        assert exc_info.value.field == "order_number"
