"""Order models: catalogue and custom orders with their items and messages."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, Money, PortableUUID, TenantOwnedMixin, TimestampMixin, UUIDPrimaryKeyMixin


class OrderType(str, Enum):
    """Kind of order."""

    CATALOGUE = "catalogue"
    CUSTOM = "custom"


class OrderStatus(str, Enum):
    """Fulfilment progression of an order."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    READY = "ready"
    DELIVERED = "delivered"
    PICKED_UP = "picked_up"
    CANCELLED = "cancelled"


class OrderPaymentStatus(str, Enum):
    """Payment state of an order."""

    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class DeliveryMethod(str, Enum):
    """How the order reaches the client."""

    PICKUP = "pickup"
    DELIVERY = "delivery"


class MessageSender(str, Enum):
    """Author side of an order message."""

    PATISSIER = "patissier"
    CLIENT = "client"


class Order(UUIDPrimaryKeyMixin, TenantOwnedMixin, TimestampMixin, Base):
    """An order placed by a client with one shop.

    Clients are identified by email and need not have an account.
    """

    __tablename__ = "orders"

    order_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)

    # Client
    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    client_email: Mapped[str] = mapped_column(String(254), nullable=False, index=True)
    client_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)

    # Delivery
    delivery_method: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DeliveryMethod.PICKUP.value
    )
    requested_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    confirmed_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    delivery_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    delivery_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Amounts
    subtotal: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    total: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    quoted_price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    response_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Custom order brief
    custom_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    custom_nb_personnes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    custom_date_souhaitee: Mapped[date | None] = mapped_column(Date, nullable=True)
    custom_theme: Mapped[str | None] = mapped_column(String(200), nullable=True)
    custom_allergies: Mapped[str | None] = mapped_column(Text, nullable=True)
    custom_photo_inspiration_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    custom_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Status
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderStatus.PENDING.value, index=True
    )
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderPaymentStatus.PENDING.value
    )
    stripe_payment_intent_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", lazy="raise", cascade="all, delete-orphan"
    )
    messages: Mapped[list["OrderMessage"]] = relationship(
        back_populates="order",
        lazy="raise",
        cascade="all, delete-orphan",
        order_by="OrderMessage.created_at",
    )

    def __repr__(self) -> str:
        return f"<Order(number={self.order_number}, status={self.status})>"


class OrderItem(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A catalogue line of an order, priced at order time."""

    __tablename__ = "order_items"

    order_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[UUID | None] = mapped_column(
        PortableUUID(), ForeignKey("products.id", ondelete="SET NULL"), nullable=True
    )
    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    special_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)

    order: Mapped[Order] = relationship(back_populates="items", lazy="raise")


class OrderMessage(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A message in the conversation between client and shop about an order."""

    __tablename__ = "order_messages"

    order_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_type: Mapped[str] = mapped_column(String(20), nullable=False)
    sender_id: Mapped[UUID | None] = mapped_column(PortableUUID(), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    order: Mapped[Order] = relationship(back_populates="messages", lazy="raise")
