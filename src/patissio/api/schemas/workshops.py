"""API schemas for workshops and their bookings."""

import datetime as dt
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from patissio.db.models import BookingStatus, WorkshopLevel, WorkshopStatus

# =============================================================================
# Workshops
# =============================================================================


class WorkshopCreateRequest(BaseModel):
    """Request body for a new workshop.

    ``deposit_percent`` defaults to the shop's default deposit percent.
    """

    title: str = Field(..., min_length=1, max_length=200)
    category_id: UUID | None = None
    description: str | None = None
    images: list[dict[str, Any]] = Field(default_factory=list)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    deposit_percent: int | None = Field(default=None, ge=0, le=100)
    capacity: int = Field(..., ge=1)
    duration_minutes: int = Field(default=120, ge=1)
    location: str | None = Field(default=None, max_length=255)
    date: dt.date
    start_time: dt.time
    status: WorkshopStatus = WorkshopStatus.DRAFT
    what_included: str | None = None
    level: WorkshopLevel = WorkshopLevel.TOUS_NIVEAUX
    is_visible: bool = True

    model_config = {"json_schema_extra": {"example": {
        "title": "Atelier macarons",
        "price": "65.00",
        "deposit_percent": 30,
        "capacity": 8,
        "date": "2026-11-14",
        "start_time": "14:00:00",
        "level": "debutant",
    }}}


class WorkshopUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    category_id: UUID | None = None
    description: str | None = None
    images: list[dict[str, Any]] | None = None
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    deposit_percent: int | None = Field(default=None, ge=0, le=100)
    capacity: int | None = Field(default=None, ge=1)
    duration_minutes: int | None = Field(default=None, ge=1)
    location: str | None = Field(default=None, max_length=255)
    date: dt.date | None = None
    start_time: dt.time | None = None
    what_included: str | None = None
    level: WorkshopLevel | None = None
    is_visible: bool | None = None


class WorkshopStatusRequest(BaseModel):
    """New workshop status. Cancelling also cancels its active bookings."""

    status: WorkshopStatus
    reason: str | None = Field(default=None, max_length=1000)


class WorkshopResponse(BaseModel):
    id: UUID
    category_id: UUID | None = None
    title: str
    slug: str
    description: str | None = None
    images: list[dict[str, Any]] = Field(default_factory=list)
    price: Decimal
    deposit_percent: int
    capacity: int
    duration_minutes: int
    location: str | None = None
    date: dt.date
    start_time: dt.time
    status: str
    what_included: str | None = None
    level: str
    is_visible: bool
    spots_left: int | None = Field(default=None, description="Seats not yet booked")
    created_at: dt.datetime

    model_config = {"from_attributes": True}


# =============================================================================
# Bookings
# =============================================================================


class BookingCreateRequest(BaseModel):
    """Client details and seat count for a booking."""

    client_name: str = Field(..., min_length=1, max_length=200)
    client_email: EmailStr
    client_phone: str | None = Field(default=None, max_length=30)
    nb_participants: int = Field(..., ge=1)
    message: str | None = Field(default=None, max_length=2000)

    model_config = {"json_schema_extra": {"example": {
        "client_name": "Camille Durand",
        "client_email": "camille@example.com",
        "nb_participants": 2,
    }}}


class BookingStatusRequest(BaseModel):
    status: BookingStatus
    cancellation_reason: str | None = Field(default=None, max_length=1000)


class BookingCancelRequest(BaseModel):
    """Client cancellation, authenticated by the booking email."""

    email: EmailStr
    reason: str | None = Field(default=None, max_length=1000)


class BookingResponse(BaseModel):
    id: UUID
    workshop_id: UUID
    client_name: str
    client_email: str
    client_phone: str | None = None
    nb_participants: int
    message: str | None = None
    total_price: Decimal
    deposit_amount: Decimal
    remaining_amount: Decimal
    status: str
    deposit_payment_status: str
    deposit_paid_at: dt.datetime | None = None
    remaining_payment_status: str
    cancellation_reason: str | None = None
    cancelled_at: dt.datetime | None = None
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class WorkshopSummary(BaseModel):
    """Workshop details shown alongside a client's booking."""

    id: UUID
    title: str
    slug: str
    date: dt.date
    start_time: dt.time
    duration_minutes: int
    location: str | None = None
    status: str

    model_config = {"from_attributes": True}


class BookingPlacedResponse(BaseModel):
    """A new booking and, when a deposit is due online, where to pay it."""

    booking: BookingResponse
    checkout_url: str | None = None


class ClientBookingResponse(BaseModel):
    booking: BookingResponse
    workshop: WorkshopSummary
