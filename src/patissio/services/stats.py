"""Dashboard figures for one tenant."""

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.db.models import (
    BookingStatus,
    Order,
    OrderPaymentStatus,
    OrderStatus,
    PatissierProfile,
    Workshop,
    WorkshopBooking,
    WorkshopStatus,
)
from patissio.db.repositories import BookingRepository, OrderRepository, WorkshopRepository


@dataclass
class TenantStats:
    """Order, revenue, workshop and booking figures."""

    orders_total: int = 0
    orders_by_status: dict[str, int] = field(default_factory=dict)
    revenue_total: Decimal = Decimal("0")
    workshops_total: int = 0
    workshops_published: int = 0
    bookings_total: int = 0
    bookings_confirmed: int = 0


async def tenant_stats(db: AsyncSession, profile: PatissierProfile) -> TenantStats:
    """Compute the back-office dashboard figures of one tenant."""
    orders = OrderRepository(db, profile.id)
    workshops = WorkshopRepository(db, profile.id)
    bookings = BookingRepository(db, profile.id)

    by_status = await db.execute(
        select(Order.status, func.count())
        .where(Order.patissier_id == profile.id)
        .group_by(Order.status)
    )
    counts = {status.value: 0 for status in OrderStatus}
    counts.update({status: count for status, count in by_status.all()})

    revenue = await db.execute(
        select(func.coalesce(func.sum(Order.total), 0)).where(
            Order.patissier_id == profile.id,
            Order.payment_status == OrderPaymentStatus.PAID.value,
        )
    )

    return TenantStats(
        orders_total=await orders.count(),
        orders_by_status=counts,
        revenue_total=Decimal(str(revenue.scalar() or 0)),
        workshops_total=await workshops.count(),
        workshops_published=await workshops.count(
            Workshop.status == WorkshopStatus.PUBLISHED.value
        ),
        bookings_total=await bookings.count(),
        bookings_confirmed=await bookings.count(
            WorkshopBooking.status == BookingStatus.CONFIRMED.value
        ),
    )
