"""Client endpoints: ordering, order threads and workshop bookings.

Clients have no account. Orders are reached by order number and bookings by
id, and both require the email they were placed with.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import EmailStr
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.api.dependencies import (
    get_db,
    get_email_service,
    get_settings,
    get_stripe_service,
    throttle,
)
from patissio.api.schemas.orders import (
    ClientOrderMessageRequest,
    OrderCreateRequest,
    OrderMessageResponse,
    OrderResponse,
)
from patissio.api.schemas.workshops import (
    BookingCancelRequest,
    BookingCreateRequest,
    BookingPlacedResponse,
    BookingResponse,
    ClientBookingResponse,
    WorkshopSummary,
)
from patissio.config.settings import Settings
from patissio.core.booking import BookingRequest
from patissio.core.exceptions import ResourceNotFoundError
from patissio.core.tenancy import TenantResolver
from patissio.db.repositories import ProfileRepository
from patissio.services.bookings import BookingWorkflow
from patissio.services.email import EmailService
from patissio.services.orders import OrderDraft, OrderLine, OrderService
from patissio.services.payments import StripeService

router = APIRouter(prefix="/client", tags=["client"])

_reads = [Depends(throttle("api"))]
_writes = [Depends(throttle("publicSubmit"))]


# =============================================================================
# Orders
# =============================================================================


@router.post(
    "/orders",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=_writes,
    summary="Place an order",
    description=(
        "Places a catalogue or custom order with the shop named by `slug`. "
        "Catalogue prices come from the shop's products; the shop must take "
        "online orders."
    ),
)
async def place_order(
    body: OrderCreateRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    stripe: Annotated[StripeService, Depends(get_stripe_service)],
    email: Annotated[EmailService, Depends(get_email_service)],
) -> OrderResponse:
    profile = await TenantResolver(ProfileRepository(db), settings.PLATFORM_DOMAIN).by_slug(
        body.slug
    )
    draft = OrderDraft(
        **body.model_dump(exclude={"slug", "items"}),
        items=[OrderLine(**item.model_dump()) for item in body.items],
    )
    order = await OrderService(db, profile, settings, stripe, email).place(draft)
    return OrderResponse.model_validate(order)


async def get_client_order_service(
    order_number: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    stripe: Annotated[StripeService, Depends(get_stripe_service)],
    email: Annotated[EmailService, Depends(get_email_service)],
) -> OrderService:
    return await OrderService.for_order_number(db, order_number, settings, stripe, email)


@router.get(
    "/orders/{order_number}",
    response_model=OrderResponse,
    dependencies=_reads,
    summary="Track an order",
    description="Returns the order when `email` matches the one it was placed with.",
)
async def get_order(
    order_number: str,
    email: Annotated[EmailStr, Query()],
    service: Annotated[OrderService, Depends(get_client_order_service)],
) -> OrderResponse:
    return OrderResponse.model_validate(await service.get_for_client(order_number, email))


@router.get(
    "/orders/{order_number}/messages",
    response_model=list[OrderMessageResponse],
    dependencies=_reads,
    summary="Order thread",
)
async def get_order_messages(
    order_number: str,
    email: Annotated[EmailStr, Query()],
    service: Annotated[OrderService, Depends(get_client_order_service)],
) -> list[OrderMessageResponse]:
    messages = await service.client_messages(order_number, email)
    return [OrderMessageResponse.model_validate(m) for m in messages]


@router.post(
    "/orders/{order_number}/messages",
    response_model=OrderMessageResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=_writes,
    summary="Message the shop",
)
async def send_order_message(
    order_number: str,
    body: ClientOrderMessageRequest,
    service: Annotated[OrderService, Depends(get_client_order_service)],
) -> OrderMessageResponse:
    message = await service.send_client_message(order_number, body.email, body.message)
    return OrderMessageResponse.model_validate(message)


# =============================================================================
# Bookings
# =============================================================================


@router.post(
    "/workshops/{workshop_id}/book",
    response_model=BookingPlacedResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=_writes,
    summary="Book a workshop",
    description=(
        "Books seats on a published workshop. Returns 409 when the seats do "
        "not fit. When a deposit is due online, `checkout_url` points to Stripe."
    ),
)
async def book_workshop(
    workshop_id: UUID,
    body: BookingCreateRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    stripe: Annotated[StripeService, Depends(get_stripe_service)],
    email: Annotated[EmailService, Depends(get_email_service)],
) -> BookingPlacedResponse:
    workflow = await BookingWorkflow.for_workshop(db, workshop_id, settings, stripe, email)
    placed = await workflow.place(workshop_id, BookingRequest(**body.model_dump()))
    return BookingPlacedResponse(
        booking=BookingResponse.model_validate(placed.booking),
        checkout_url=placed.checkout_url,
    )


async def get_booking_workflow(
    booking_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    stripe: Annotated[StripeService, Depends(get_stripe_service)],
    email: Annotated[EmailService, Depends(get_email_service)],
) -> BookingWorkflow:
    return await BookingWorkflow.for_booking(db, booking_id, settings, stripe, email)


@router.get(
    "/bookings/{booking_id}",
    response_model=ClientBookingResponse,
    dependencies=_reads,
    summary="Show a booking",
    description="Returns the booking and its workshop when `email` matches.",
)
async def get_booking(
    booking_id: UUID,
    email: Annotated[EmailStr, Query()],
    workflow: Annotated[BookingWorkflow, Depends(get_booking_workflow)],
) -> ClientBookingResponse:
    booking, workshop = await workflow.get_with_workshop(booking_id)
    if booking.client_email.lower() != email.strip().lower():
        raise ResourceNotFoundError("booking", str(booking_id))
    return ClientBookingResponse(
        booking=BookingResponse.model_validate(booking),
        workshop=WorkshopSummary.model_validate(workshop),
    )


@router.put(
    "/bookings/{booking_id}/cancel",
    response_model=BookingResponse,
    dependencies=_writes,
    summary="Cancel a booking",
    description=(
        "Cancels the booking. The email must match (403) and the booking must "
        "not be cancelled already (400)."
    ),
)
async def cancel_booking(
    booking_id: UUID,
    body: BookingCancelRequest,
    workflow: Annotated[BookingWorkflow, Depends(get_booking_workflow)],
) -> BookingResponse:
    booking = await workflow.cancel_by_client(booking_id, body.email, body.reason)
    return BookingResponse.model_validate(booking)
