"""Tenant-scoped repositories.

Every statement built by ``TenantRepository`` carries a
``patissier_id == tenant_id`` filter. There is no method that
reads or writes outside the tenant it was constructed with.

Usage:
    repo = WorkshopRepository(db, scope.tenant_id)
    workshop = await repo.get_or_raise(workshop_id)
"""

from typing import Any, ClassVar, TypeVar
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from patissio.core.exceptions import ResourceNotFoundError
from patissio.db.models import (
    BookingStatus,
    Category,
    Creation,
    Order,
    OrderMessage,
    Product,
    Workshop,
    WorkshopBooking,
)
from patissio.db.models.base import Base
from patissio.db.repositories.base import BaseRepository

TenantModel = TypeVar("TenantModel", bound=Base)


class TenantRepository(BaseRepository[TenantModel, UUID]):
    """Repository bound to one patissier profile.

    A row of another tenant behaves as if it did not exist: reads miss it
    and writes raise ResourceNotFoundError.
    """

    immutable_fields: ClassVar[frozenset[str]] = frozenset({"id", "created_at", "patissier_id"})

    def __init__(self, db: AsyncSession, tenant_id: UUID):
        super().__init__(db)
        self.tenant_id = tenant_id

    def select(self, *criteria: Any) -> Select:
        return super().select(self.model.patissier_id == self.tenant_id, *criteria)

    async def create(self, obj: TenantModel, *, commit: bool = True) -> TenantModel:
        """Insert ``obj`` as a row of this tenant, whatever it was assigned before."""
        obj.patissier_id = self.tenant_id
        return await super().create(obj, commit=commit)

    async def unique_slug(self, base: str, *, exclude_id: UUID | None = None) -> str:
        """Return ``base`` or the first free ``base-N`` within this tenant.

        Args:
            base: Slugified title
            exclude_id: Record to ignore (when renaming an existing record)
        """
        candidate = base
        suffix = 0
        while True:
            criteria = [self.model.slug == candidate]
            if exclude_id is not None:
                criteria.append(self.model.id != exclude_id)
            if await self.count(*criteria) == 0:
                return candidate
            suffix += 1
            candidate = f"{base}-{suffix}"

    def _check_owned(self, obj: TenantModel) -> None:
        if obj.patissier_id != self.tenant_id:
            raise ResourceNotFoundError(self.resource_name, str(obj.id))


class CategoryRepository(TenantRepository[Category]):
    resource_name = "category"


class CreationRepository(TenantRepository[Creation]):
    resource_name = "creation"


class ProductRepository(TenantRepository[Product]):
    resource_name = "product"


class WorkshopRepository(TenantRepository[Workshop]):
    resource_name = "workshop"

    def lock_statement(self, pk: UUID) -> Select:
        """SELECT ... FOR UPDATE on one workshop of this tenant."""
        return (
            self.select(Workshop.id == pk)
            .with_for_update()
            .execution_options(populate_existing=True)
        )

    async def lock(self, pk: UUID) -> Workshop:
        """Load a workshop with a row lock held until the transaction ends.

        SQLite ignores FOR UPDATE, so there the database write lock is taken
        instead before anything is read.

        Raises:
            ResourceNotFoundError: If the workshop is not in this tenant
        """
        if self.db.get_bind().dialect.name == "sqlite":
            await self._begin_immediate()
        result = await self.db.execute(self.lock_statement(pk))
        workshop = result.scalar_one_or_none()
        if workshop is None:
            raise ResourceNotFoundError(self.resource_name, str(pk))
        return workshop

    async def _begin_immediate(self) -> None:
        """Open a ``BEGIN IMMEDIATE`` transaction on the session's connection.

        A second writer then waits in the driver's busy timeout until this
        transaction ends, and its own reads see what was committed. A driver
        transaction that is already open holds the write lock since its
        first write, so it is left alone.
        """
        conn = await self.db.connection()
        raw = await conn.get_raw_connection()
        if not raw.driver_connection.in_transaction:
            await conn.exec_driver_sql("BEGIN IMMEDIATE")


class BookingRepository(TenantRepository[WorkshopBooking]):
    resource_name = "booking"

    async def for_workshop(
        self, workshop_id: UUID, *criteria: Any, active_only: bool = False
    ) -> list[WorkshopBooking]:
        """List a workshop's bookings, newest first."""
        if active_only:
            criteria = (*criteria, WorkshopBooking.status != BookingStatus.CANCELLED.value)
        return await self.list(
            WorkshopBooking.workshop_id == workshop_id,
            *criteria,
            order_by=WorkshopBooking.created_at.desc(),
        )


class OrderRepository(TenantRepository[Order]):
    resource_name = "order"

    async def get_detailed(self, *criteria: Any) -> Order | None:
        """Load one order with its items and messages."""
        stmt = self.select(*criteria).options(
            selectinload(Order.items), selectinload(Order.messages)
        )
        result = await self.db.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def get_detailed_or_raise(self, pk: UUID) -> Order:
        order = await self.get_detailed(Order.id == pk)
        if order is None:
            raise ResourceNotFoundError(self.resource_name, str(pk))
        return order

    async def get_by_number(self, order_number: str) -> Order | None:
        return await self.find_one(Order.order_number == order_number)

    async def messages(self, order: Order) -> list[OrderMessage]:
        """The order's conversation, oldest first."""
        self._check_owned(order)
        result = await self.db.execute(
            select(OrderMessage)
            .where(OrderMessage.order_id == order.id)
            .order_by(OrderMessage.created_at.asc(), OrderMessage.id.asc())
        )
        return list(result.scalars().all())

    async def add_message(
        self, order: Order, sender_type: str, message: str, sender_id: UUID | None = None
    ) -> OrderMessage:
        self._check_owned(order)
        order_message = OrderMessage(
            order_id=order.id, sender_type=sender_type, sender_id=sender_id, message=message
        )
        self.db.add(order_message)
        await self.db.commit()
        await self.db.refresh(order_message)
        return order_message


async def find_owner(db: AsyncSession, model: type[Base], *criteria: Any) -> UUID | None:
    """Return the tenant owning a record, for public entry points.

    Public routes address bookings by id and orders by order number, before
    any tenant is known. Only the ``patissier_id`` is read; the caller then
    loads the record through a repository built for that tenant.

    Example:
        tenant_id = await find_owner(db, Order, Order.order_number == number)
    """
    result = await db.execute(select(model.patissier_id).where(*criteria).limit(1))
    return result.scalar_one_or_none()
