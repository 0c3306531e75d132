"""Workshop and booking models."""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import (
    Base,
    Money,
    PortableJSON,
    PortableUUID,
    TenantOwnedMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)


class WorkshopStatus(str, Enum):
    """Lifecycle of a workshop."""

    DRAFT = "draft"
    PUBLISHED = "published"
    FULL = "full"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class WorkshopLevel(str, Enum):
    """Skill level a workshop targets."""

    DEBUTANT = "debutant"
    INTERMEDIAIRE = "intermediaire"
    AVANCE = "avance"
    TOUS_NIVEAUX = "tous_niveaux"


class BookingStatus(str, Enum):
    """Lifecycle of a workshop booking."""

    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentState(str, Enum):
    """Payment state of a deposit or remaining balance."""

    PENDING = "pending"
    PAID = "paid"
    NOT_REQUIRED = "not_required"


class Workshop(UUIDPrimaryKeyMixin, TenantOwnedMixin, TimestampMixin, Base):
    """A dated, seated pastry class run by a shop."""

    __tablename__ = "workshops"
    __table_args__ = (
        UniqueConstraint("patissier_id", "slug", name="uq_workshop_slug"),
        CheckConstraint("capacity > 0", name="ck_workshop_capacity_positive"),
        CheckConstraint(
            "deposit_percent >= 0 AND deposit_percent <= 100", name="ck_workshop_deposit_percent"
        ),
    )

    category_id: Mapped[UUID | None] = mapped_column(
        PortableUUID(), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(220), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    images: Mapped[list[dict[str, Any]]] = mapped_column(
        PortableJSON(), nullable=False, default=list
    )
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    deposit_percent: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=120)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=WorkshopStatus.DRAFT.value, index=True
    )
    what_included: Mapped[str | None] = mapped_column(Text, nullable=True)
    level: Mapped[str] = mapped_column(
        String(20), nullable=False, default=WorkshopLevel.TOUS_NIVEAUX.value
    )
    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    bookings: Mapped[list["WorkshopBooking"]] = relationship(
        back_populates="workshop", lazy="raise", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Workshop(id={self.id}, slug={self.slug}, status={self.status})>"


class WorkshopBooking(UUIDPrimaryKeyMixin, TenantOwnedMixin, TimestampMixin, Base):
    """Seats reserved on a workshop by a client.

    ``patissier_id`` mirrors the workshop's tenant so bookings can be
    listed through the tenant repository without a join.
    """

    __tablename__ = "workshop_bookings"
    __table_args__ = (
        CheckConstraint("nb_participants > 0", name="ck_booking_participants_positive"),
    )

    workshop_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("workshops.id", ondelete="CASCADE"), nullable=False, index=True
    )
    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    client_email: Mapped[str] = mapped_column(String(254), nullable=False, index=True)
    client_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    nb_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Amounts
    total_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    deposit_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    remaining_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BookingStatus.PENDING_PAYMENT.value, index=True
    )

    # Payment tracking
    stripe_checkout_session_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    stripe_payment_intent_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    deposit_payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentState.PENDING.value
    )
    deposit_paid_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    remaining_payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentState.PENDING.value
    )

    # Cancellation
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    workshop: Mapped[Workshop] = relationship(back_populates="bookings", lazy="raise")

    def __repr__(self) -> str:
        return (
            f"<WorkshopBooking(id={self.id}, workshop_id={self.workshop_id}, "
            f"status={self.status})>"
        )
