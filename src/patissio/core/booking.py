"""Workshop booking capacity and deposit accounting.

The capacity check and the booking insert run in one transaction, after
the workshop has been locked: ``SELECT ... FOR UPDATE`` on PostgreSQL, the
database write lock (``BEGIN IMMEDIATE``) on SQLite. Two concurrent
bookings for the same workshop therefore see each other's seats.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.core.exceptions import CapacityExceededError, InvalidRequestError
from patissio.db.models import (
    BookingStatus,
    PatissierProfile,
    PaymentState,
    Workshop,
    WorkshopBooking,
    WorkshopStatus,
)
from patissio.db.repositories.tenant import BookingRepository, WorkshopRepository

logger = structlog.get_logger()

_WHOLE_UNIT = Decimal("1")
_CENT = Decimal("0.01")


@dataclass(frozen=True)
class BookingAmounts:
    """Price split of a booking.

    Attributes:
        total_price: Workshop price times participants
        deposit_amount: Part collected online, rounded to a whole unit
        remaining_amount: Part paid on the day
    """

    total_price: Decimal
    deposit_amount: Decimal
    remaining_amount: Decimal


@dataclass(frozen=True)
class BookingRequest:
    """Client details for a new booking."""

    client_name: str
    client_email: str
    nb_participants: int
    client_phone: str | None = None
    message: str | None = None


def compute_booking_amounts(
    price: Decimal, deposit_percent: int, nb_participants: int
) -> BookingAmounts:
    """Split a booking's price into deposit and remaining amounts.

    The deposit is rounded half-up to a whole currency unit.

    Example:
        A 100 EUR workshop with a 30% deposit booked for 2 people gives a
        total of 200, a deposit of 60 and 140 remaining.
    """
    total = (Decimal(price) * nb_participants).quantize(_CENT)
    deposit = (total * Decimal(deposit_percent) / Decimal(100)).quantize(
        _WHOLE_UNIT, rounding=ROUND_HALF_UP
    )
    return BookingAmounts(
        total_price=total,
        deposit_amount=deposit,
        remaining_amount=(total - deposit).quantize(_CENT),
    )


def initial_booking_status(deposit: Decimal, can_accept_online_payment: bool) -> BookingStatus:
    """Bookings wait for payment only when a deposit can actually be collected."""
    if deposit > 0 and can_accept_online_payment:
        return BookingStatus.PENDING_PAYMENT
    return BookingStatus.CONFIRMED


def ensure_capacity(workshop: Workshop, booked: int, requested: int) -> None:
    """Raise if ``requested`` more seats do not fit.

    Raises:
        CapacityExceededError: If booked + requested exceeds capacity
    """
    if booked + requested > workshop.capacity:
        raise CapacityExceededError(
            workshop_id=workshop.id,
            capacity=workshop.capacity,
            booked=booked,
            requested=requested,
        )


async def booked_seats(db: AsyncSession, workshop_id: UUID) -> int:
    """Sum participants over a workshop's non-cancelled bookings."""
    stmt = select(func.coalesce(func.sum(WorkshopBooking.nb_participants), 0)).where(
        WorkshopBooking.workshop_id == workshop_id,
        WorkshopBooking.status != BookingStatus.CANCELLED.value,
    )
    return int((await db.execute(stmt)).scalar() or 0)


class BookingService:
    """Create bookings for one tenant's workshops without over-booking.

    Example:
        service = BookingService(db, profile)
        booking = await service.book(workshop_id, request, require_published=True)
    """

    def __init__(self, db: AsyncSession, profile: PatissierProfile):
        self.db = db
        self.profile = profile
        self.workshops = WorkshopRepository(db, profile.id)
        self.bookings = BookingRepository(db, profile.id)

    async def book(
        self,
        workshop_id: UUID,
        request: BookingRequest,
        *,
        require_published: bool = True,
    ) -> WorkshopBooking:
        """Reserve seats on a workshop.

        Args:
            workshop_id: Workshop to book, within this tenant
            request: Client details and participant count
            require_published: Reject workshops that are not published
                (client bookings); patissier-created bookings skip this

        Returns:
            The committed booking

        Raises:
            ResourceNotFoundError: If the workshop is not in this tenant
            InvalidRequestError: If the workshop is not open for booking
            CapacityExceededError: If the seats do not fit
        """
        if request.nb_participants < 1:
            raise InvalidRequestError("At least one participant is required", "nb_participants")

        try:
            workshop = await self.workshops.lock(workshop_id)

            if require_published and workshop.status != WorkshopStatus.PUBLISHED.value:
                raise InvalidRequestError("Workshop is not available for booking", "workshop_id")
            if workshop.status == WorkshopStatus.CANCELLED.value:
                raise InvalidRequestError("Workshop is cancelled", "workshop_id")

            booked = await booked_seats(self.db, workshop.id)
            ensure_capacity(workshop, booked, request.nb_participants)

            amounts = compute_booking_amounts(
                workshop.price, workshop.deposit_percent, request.nb_participants
            )
            status = initial_booking_status(
                amounts.deposit_amount, self.profile.can_accept_online_payment
            )
            booking = WorkshopBooking(
                workshop_id=workshop.id,
                client_name=request.client_name,
                client_email=request.client_email.strip().lower(),
                client_phone=request.client_phone or None,
                nb_participants=request.nb_participants,
                message=request.message or None,
                total_price=amounts.total_price,
                deposit_amount=amounts.deposit_amount,
                remaining_amount=amounts.remaining_amount,
                status=status.value,
                deposit_payment_status=(
                    PaymentState.PENDING.value
                    if amounts.deposit_amount > 0
                    else PaymentState.NOT_REQUIRED.value
                ),
                remaining_payment_status=(
                    PaymentState.PENDING.value
                    if amounts.remaining_amount > 0
                    else PaymentState.NOT_REQUIRED.value
                ),
            )
            await self.bookings.create(booking, commit=False)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(booking)
        logger.info(
            "booking_created",
            booking_id=str(booking.id),
            workshop_id=str(workshop_id),
            nb_participants=booking.nb_participants,
            seats_left=workshop.capacity - booked - booking.nb_participants,
            status=booking.status,
        )
        return booking
