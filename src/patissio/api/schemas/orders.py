"""API schemas for orders, quotes and order messages."""

import datetime as dt
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from patissio.db.models import DeliveryMethod, OrderStatus, OrderType

# =============================================================================
# Request Schemas
# =============================================================================


class OrderItemInput(BaseModel):
    product_id: UUID
    quantity: int = Field(..., ge=1, le=1000)
    special_instructions: str | None = Field(default=None, max_length=1000)


class OrderCreateRequest(BaseModel):
    """A client's order with one shop.

    Catalogue orders list ``items``; custom orders describe the cake with the
    ``custom_*`` fields and are priced later by a quote.
    """

    slug: str = Field(..., min_length=1, max_length=100, description="Shop slug")
    type: OrderType
    client_name: str = Field(..., min_length=1, max_length=200)
    client_email: EmailStr
    client_phone: str | None = Field(default=None, max_length=30)
    delivery_method: DeliveryMethod = DeliveryMethod.PICKUP
    requested_date: dt.date | None = None
    delivery_address: str | None = None
    delivery_notes: str | None = None
    items: list[OrderItemInput] = Field(default_factory=list)
    custom_type: str | None = Field(default=None, max_length=100)
    custom_nb_personnes: int | None = Field(default=None, ge=1)
    custom_date_souhaitee: dt.date | None = None
    custom_theme: str | None = Field(default=None, max_length=200)
    custom_allergies: str | None = None
    custom_photo_inspiration_url: str | None = Field(default=None, max_length=500)
    custom_message: str | None = None

    model_config = {"json_schema_extra": {"example": {
        "slug": "patisserie-eloise",
        "type": "catalogue",
        "client_name": "Camille Durand",
        "client_email": "camille@example.com",
        "items": [{"product_id": "019478f2-1234-7000-8000-abcdef123456", "quantity": 2}],
    }}}


class OrderStatusRequest(BaseModel):
    status: OrderStatus
    confirmed_date: dt.date | None = None
    cancellation_reason: str | None = Field(default=None, max_length=1000)


class OrderQuoteRequest(BaseModel):
    """Price for a custom order and the share to collect online."""

    quoted_price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    response_message: str | None = Field(default=None, max_length=5000)
    deposit_percent: int = Field(default=100, ge=0, le=100)
    confirmed_date: dt.date | None = None


class OrderMessageRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000)


class ClientOrderMessageRequest(OrderMessageRequest):
    """A client message, authenticated by the order email."""

    email: EmailStr


# =============================================================================
# Response Schemas
# =============================================================================


class OrderItemResponse(BaseModel):
    id: UUID
    product_id: UUID | None = None
    product_name: str
    unit_price: Decimal
    quantity: int
    total: Decimal
    special_instructions: str | None = None

    model_config = {"from_attributes": True}


class OrderMessageResponse(BaseModel):
    id: UUID
    sender_type: str
    sender_id: UUID | None = None
    message: str
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class OrderSummaryResponse(BaseModel):
    """Order fields shown in listings."""

    id: UUID
    order_number: str
    type: str
    client_name: str
    client_email: str
    client_phone: str | None = None
    delivery_method: str
    requested_date: dt.date | None = None
    confirmed_date: dt.date | None = None
    subtotal: Decimal | None = None
    total: Decimal | None = None
    quoted_price: Decimal | None = None
    status: str
    payment_status: str
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class OrderResponse(OrderSummaryResponse):
    """An order with its brief, items and conversation."""

    delivery_address: str | None = None
    delivery_notes: str | None = None
    response_message: str | None = None
    custom_type: str | None = None
    custom_nb_personnes: int | None = None
    custom_date_souhaitee: dt.date | None = None
    custom_theme: str | None = None
    custom_allergies: str | None = None
    custom_photo_inspiration_url: str | None = None
    custom_message: str | None = None
    paid_at: dt.datetime | None = None
    confirmed_at: dt.datetime | None = None
    completed_at: dt.datetime | None = None
    cancelled_at: dt.datetime | None = None
    cancellation_reason: str | None = None
    items: list[OrderItemResponse] = Field(default_factory=list)
    messages: list[OrderMessageResponse] = Field(default_factory=list)


class OrderListResponse(BaseModel):
    items: list[OrderSummaryResponse]
    total: int
    page: int
    limit: int


class QuoteResponse(BaseModel):
    """A quoted order, its payment link and anything that went wrong creating it."""

    order: OrderResponse
    checkout_url: str | None = None
    warnings: list[str] = Field(default_factory=list)
