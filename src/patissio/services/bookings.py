"""Workshop booking workflows: placing, cancelling and workshop cancellation.

Seat accounting lives in ``patissio.core.booking``. This module adds the
side effects around it: deposit checkout, emails and notifications.
"""

from dataclasses import dataclass
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.config.settings import Settings
from patissio.core.booking import BookingRequest, BookingService, booked_seats, ensure_capacity
from patissio.core.exceptions import (
    ForbiddenError,
    InvalidRequestError,
    ProviderNotConfiguredError,
    ResourceNotFoundError,
    UpstreamServiceError,
)
from patissio.db.models import (
    BookingStatus,
    NotificationType,
    PatissierProfile,
    Workshop,
    WorkshopBooking,
    WorkshopStatus,
)
from patissio.db.repositories import (
    BookingRepository,
    ProfileRepository,
    UserRepository,
    WorkshopRepository,
    find_owner,
)
from patissio.services.email import EmailService
from patissio.services.notifications import NotificationService
from patissio.services.payments import StripeService
from patissio.utils.time import utcnow

logger = structlog.get_logger()


@dataclass
class PlacedBooking:
    """A new booking and, when a deposit is due online, its checkout URL."""

    booking: WorkshopBooking
    workshop: Workshop
    checkout_url: str | None = None


class BookingWorkflow:
    """Booking operations for one tenant.

    Example:
        workflow = BookingWorkflow(db, profile, settings, stripe, email)
        placed = await workflow.place(workshop_id, request)
    """

    def __init__(
        self,
        db: AsyncSession,
        profile: PatissierProfile,
        settings: Settings,
        stripe: StripeService,
        email: EmailService,
    ):
        self.db = db
        self.profile = profile
        self.settings = settings
        self.stripe = stripe
        self.email = email
        self.workshops = WorkshopRepository(db, profile.id)
        self.bookings = BookingRepository(db, profile.id)
        self.notifications = NotificationService(db)

    @classmethod
    async def for_booking(
        cls,
        db: AsyncSession,
        booking_id: UUID,
        settings: Settings,
        stripe: StripeService,
        email: EmailService,
    ) -> "BookingWorkflow":
        """Build the workflow for the tenant owning a booking.

        Raises:
            ResourceNotFoundError: If no booking has this id
        """
        tenant_id = await find_owner(db, WorkshopBooking, WorkshopBooking.id == booking_id)
        profile = await ProfileRepository(db).get(tenant_id) if tenant_id else None
        if profile is None:
            raise ResourceNotFoundError("booking", str(booking_id))
        return cls(db, profile, settings, stripe, email)

    @classmethod
    async def for_workshop(
        cls,
        db: AsyncSession,
        workshop_id: UUID,
        settings: Settings,
        stripe: StripeService,
        email: EmailService,
    ) -> "BookingWorkflow":
        """Build the workflow for the tenant owning a workshop.

        Raises:
            ResourceNotFoundError: If no workshop has this id
        """
        tenant_id = await find_owner(db, Workshop, Workshop.id == workshop_id)
        profile = await ProfileRepository(db).get(tenant_id) if tenant_id else None
        if profile is None:
            raise ResourceNotFoundError("workshop", str(workshop_id))
        return cls(db, profile, settings, stripe, email)

    # =========================================================================
    # Placing bookings
    # =========================================================================

    async def place(
        self,
        workshop_id: UUID,
        request: BookingRequest,
        *,
        by_client: bool = True,
    ) -> PlacedBooking:
        """Book seats, start the deposit checkout and notify both sides.

        Args:
            workshop_id: Workshop within this tenant
            request: Client details and participant count
            by_client: Client bookings need a published workshop and notify
                the patissier; patissier-created bookings skip both

        Raises:
            ResourceNotFoundError: If the workshop is not in this tenant
            InvalidRequestError: If the workshop is not open for booking
            CapacityExceededError: If the seats do not fit
        """
        booking = await BookingService(self.db, self.profile).book(
            workshop_id, request, require_published=by_client
        )
        workshop = await self.workshops.get_or_raise(booking.workshop_id)

        checkout_url = None
        if booking.status == BookingStatus.PENDING_PAYMENT.value:
            checkout_url = await self._start_deposit_checkout(booking, workshop)

        await self.email.send_booking_confirmation(booking, workshop, self.profile)
        if by_client:
            await self._notify_owner_of_booking(booking, workshop)

        return PlacedBooking(booking=booking, workshop=workshop, checkout_url=checkout_url)

    async def _start_deposit_checkout(
        self, booking: WorkshopBooking, workshop: Workshop
    ) -> str | None:
        """Create the deposit checkout. Failures leave the booking pending, without a URL."""
        page = f"{self.settings.FRONTEND_URL}/site/{self.profile.slug}/workshops/{workshop.slug}"
        try:
            session = await self.stripe.create_payment_checkout(
                amount=booking.deposit_amount,
                product_name=f"Acompte atelier : {workshop.title}",
                metadata={"booking_id": str(booking.id), "workshop_id": str(workshop.id)},
                customer_email=booking.client_email,
                connected_account_id=self.profile.stripe_account_id,
                success_url=f"{page}?payment=success",
                cancel_url=f"{page}?payment=cancelled",
            )
        except (UpstreamServiceError, ProviderNotConfiguredError) as exc:
            logger.error(
                "booking_checkout_failed",
                booking_id=str(booking.id),
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return None

        await self.bookings.update(booking, {"stripe_checkout_session_id": session.id})
        return session.url

    async def _notify_owner_of_booking(self, booking: WorkshopBooking, workshop: Workshop) -> None:
        owner = await UserRepository(self.db).get(self.profile.user_id)
        if owner is None:
            return
        await self.email.send_new_booking_notification(owner.email, booking, workshop, self.profile)
        await self.notifications.create(
            owner.id,
            NotificationType.NEW_BOOKING,
            f"Nouvelle réservation : {workshop.title}",
            f"{booking.client_name} a réservé {booking.nb_participants} place(s)",
            data={"booking_id": str(booking.id), "workshop_id": str(workshop.id)},
            action_url=f"/workshops/{workshop.id}",
        )

    # =========================================================================
    # Reading and cancelling
    # =========================================================================

    async def get_with_workshop(self, booking_id: UUID) -> tuple[WorkshopBooking, Workshop]:
        booking = await self.bookings.get_or_raise(booking_id)
        workshop = await self.workshops.get_or_raise(booking.workshop_id)
        return booking, workshop

    async def cancel_by_client(
        self, booking_id: UUID, client_email: str, reason: str | None = None
    ) -> WorkshopBooking:
        """Cancel a booking on the client's behalf.

        Raises:
            ResourceNotFoundError: If the booking is not in this tenant
            ForbiddenError: If the email does not match the booking
            InvalidRequestError: If the booking is already cancelled
        """
        booking, workshop = await self.get_with_workshop(booking_id)
        if booking.client_email.lower() != client_email.strip().lower():
            raise ForbiddenError("Email does not match this booking")
        if booking.status == BookingStatus.CANCELLED.value:
            raise InvalidRequestError("Booking is already cancelled", "status")

        booking = await self.bookings.update(
            booking,
            {
                "status": BookingStatus.CANCELLED.value,
                "cancellation_reason": reason or None,
                "cancelled_at": utcnow(),
            },
        )
        logger.info("booking_cancelled", booking_id=str(booking.id), by="client")

        owner = await UserRepository(self.db).get(self.profile.user_id)
        if owner is not None:
            await self.email.send_booking_cancellation_notification(
                owner.email, booking, workshop, self.profile
            )
            await self.notifications.create(
                owner.id,
                NotificationType.BOOKING_CANCELLED,
                f"Réservation annulée : {workshop.title}",
                f"{booking.client_name} a annulé {booking.nb_participants} place(s)",
                data={"booking_id": str(booking.id), "workshop_id": str(workshop.id)},
                action_url=f"/workshops/{workshop.id}",
            )
        return booking

    async def set_booking_status(
        self,
        workshop_id: UUID,
        booking_id: UUID,
        status: BookingStatus,
        cancellation_reason: str | None = None,
    ) -> WorkshopBooking:
        """Patissier-side status change of one booking.

        A cancelled booking moved back to an active status takes its seats
        again, so it goes through the same capacity check as a new booking.

        Raises:
            ResourceNotFoundError: If the booking is not on this workshop
            InvalidRequestError: If a cancelled workshop's booking is reopened
            CapacityExceededError: If the reopened seats no longer fit
        """
        workshop = await self.workshops.get_or_raise(workshop_id)
        booking = await self.bookings.find_one(
            WorkshopBooking.id == booking_id, WorkshopBooking.workshop_id == workshop.id
        )
        if booking is None:
            raise ResourceNotFoundError("booking", str(booking_id))

        if booking.status == BookingStatus.CANCELLED.value and status != BookingStatus.CANCELLED:
            return await self._reopen(workshop.id, booking, status)

        updates: dict = {"status": status.value}
        if status == BookingStatus.CANCELLED:
            updates["cancelled_at"] = booking.cancelled_at or utcnow()
            if cancellation_reason:
                updates["cancellation_reason"] = cancellation_reason
        return await self.bookings.update(booking, updates)

    async def _reopen(
        self, workshop_id: UUID, booking: WorkshopBooking, status: BookingStatus
    ) -> WorkshopBooking:
        try:
            workshop = await self.workshops.lock(workshop_id)
            if workshop.status == WorkshopStatus.CANCELLED.value:
                raise InvalidRequestError("Workshop is cancelled", "status")
            booked = await booked_seats(self.db, workshop.id)
            ensure_capacity(workshop, booked, booking.nb_participants)
            await self.bookings.update(
                booking,
                {"status": status.value, "cancelled_at": None, "cancellation_reason": None},
                commit=False,
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(booking)
        logger.info(
            "booking_reopened",
            booking_id=str(booking.id),
            status=booking.status,
            seats_left=workshop.capacity - booked - booking.nb_participants,
        )
        return booking

    async def set_workshop_status(
        self, workshop_id: UUID, status: WorkshopStatus, reason: str | None = None
    ) -> Workshop:
        """Change a workshop's status.

        Cancelling a workshop cancels its active bookings and emails each client.
        """
        workshop = await self.workshops.get_or_raise(workshop_id)
        if status != WorkshopStatus.CANCELLED:
            return await self.workshops.update(workshop, {"status": status.value})

        active = await self.bookings.for_workshop(workshop.id, active_only=True)
        now = utcnow()
        try:
            await self.workshops.update(workshop, {"status": status.value}, commit=False)
            for booking in active:
                await self.bookings.update(
                    booking,
                    {
                        "status": BookingStatus.CANCELLED.value,
                        "cancelled_at": now,
                        "cancellation_reason": reason or "Atelier annulé",
                    },
                    commit=False,
                )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "workshop_cancelled", workshop_id=str(workshop.id), bookings_cancelled=len(active)
        )
        for booking in active:
            await self.email.send_workshop_cancelled(booking, workshop, self.profile, reason)
        return workshop
