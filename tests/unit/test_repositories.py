"""Unit tests for the repository layer."""

from decimal import Decimal

import pytest

from patissio.core.exceptions import ResourceNotFoundError
from patissio.db.models import Product, User
from patissio.db.repositories import ProductRepository, UserRepository, WorkshopRepository


@pytest.mark.asyncio
class TestTenantRepository:
    """Rows of other tenants are invisible."""

    async def test_reads_are_scoped(self, db_session, make_patissier, make_product) -> None:
        lea, _ = await make_patissier("chez-lea")
        marc, _ = await make_patissier("chez-marc")
        theirs = await make_product(marc, name="Tarte Tatin")
        await make_product(lea)

        repo = ProductRepository(db_session, lea.id)

        assert await repo.get(theirs.id) is None
        assert await repo.count() == 1
        assert [p.name for p in await repo.list()] == ["Paris-Brest"]
        with pytest.raises(ResourceNotFoundError):
            await repo.get_or_raise(theirs.id)

    async def test_create_forces_owner(self, db_session, make_patissier) -> None:
        lea, _ = await make_patissier("chez-lea")
        marc, _ = await make_patissier("chez-marc")

        product = await ProductRepository(db_session, lea.id).create(
            Product(patissier_id=marc.id, name="Éclair", price=Decimal("4.00"))
        )

        assert product.patissier_id == lea.id

    async def test_update_refuses_foreign_rows(
        self, db_session, make_patissier, make_product
    ) -> None:
        lea, _ = await make_patissier("chez-lea")
        marc, _ = await make_patissier("chez-marc")
        theirs = await make_product(marc)

        with pytest.raises(ResourceNotFoundError):
            await ProductRepository(db_session, lea.id).update(theirs, {"name": "Volé"})

    async def test_update_skips_immutable_fields(
        self, db_session, make_patissier, make_product
    ) -> None:
        lea, _ = await make_patissier("chez-lea")
        marc, _ = await make_patissier("chez-marc")
        product = await make_product(lea)
        repo = ProductRepository(db_session, lea.id)
        product = await repo.get_or_raise(product.id)

        updated = await repo.update(
            product, {"patissier_id": marc.id, "name": "Saint-Honoré", "unknown": 1}
        )

        assert updated.patissier_id == lea.id
        assert updated.name == "Saint-Honoré"

    async def test_unique_slug(self, db_session, make_patissier, make_workshop) -> None:
        lea, _ = await make_patissier("chez-lea")
        marc, _ = await make_patissier("chez-marc")
        await make_workshop(lea)
        await make_workshop(marc)

        assert await WorkshopRepository(db_session, lea.id).unique_slug(
            "atelier-macarons"
        ) == "atelier-macarons-1"


@pytest.mark.asyncio
class TestBaseRepository:
    async def test_find_and_count(self, db_session, make_user) -> None:
        await make_user("ana@example.com")
        await make_user("bea@example.com")
        repo = UserRepository(db_session)

        assert await repo.count() == 2
        found = await repo.find_one(User.email == "bea@example.com")
        assert found is not None
        assert await repo.get(found.id) is found
