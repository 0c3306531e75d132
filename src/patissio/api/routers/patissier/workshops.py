"""Workshops of the active shop and their bookings. Requires the pro plan."""

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.api.dependencies import (
    get_db,
    get_email_service,
    get_settings,
    get_stripe_service,
    get_tenant_scope,
    require_plan,
)
from patissio.api.routers.patissier.catalog import ensure_category
from patissio.api.schemas.workshops import (
    BookingCreateRequest,
    BookingPlacedResponse,
    BookingResponse,
    BookingStatusRequest,
    WorkshopCreateRequest,
    WorkshopResponse,
    WorkshopStatusRequest,
    WorkshopUpdateRequest,
)
from patissio.config.settings import Settings
from patissio.core.booking import BookingRequest
from patissio.core.support import TenantScope
from patissio.core.tenancy import slugify
from patissio.db.models import BookingStatus, PlanTier, Workshop, WorkshopBooking, WorkshopStatus
from patissio.db.repositories import BookingRepository, WorkshopRepository
from patissio.services.bookings import BookingWorkflow
from patissio.services.email import EmailService
from patissio.services.payments import StripeService

router = APIRouter(
    prefix="/workshops",
    tags=["patissier-workshops"],
    dependencies=[Depends(require_plan(PlanTier.PRO.value))],
)
logger = structlog.get_logger()


async def seats_taken(db: AsyncSession, workshop_ids: list[UUID]) -> dict[UUID, int]:
    """Booked seats per workshop, ignoring cancelled bookings."""
    if not workshop_ids:
        return {}
    result = await db.execute(
        select(WorkshopBooking.workshop_id, func.sum(WorkshopBooking.nb_participants))
        .where(
            WorkshopBooking.workshop_id.in_(workshop_ids),
            WorkshopBooking.status != BookingStatus.CANCELLED.value,
        )
        .group_by(WorkshopBooking.workshop_id)
    )
    return {workshop_id: int(seats or 0) for workshop_id, seats in result.all()}


async def workshop_responses(db: AsyncSession, workshops: list[Workshop]) -> list[WorkshopResponse]:
    """Serialize workshops with their remaining seats."""
    taken = await seats_taken(db, [w.id for w in workshops])
    return [
        WorkshopResponse.model_validate(w).model_copy(
            update={"spots_left": max(w.capacity - taken.get(w.id, 0), 0)}
        )
        for w in workshops
    ]


def _workflow(
    db: AsyncSession,
    scope: TenantScope,
    settings: Settings,
    stripe: StripeService,
    email: EmailService,
) -> BookingWorkflow:
    return BookingWorkflow(db, scope.profile, settings, stripe, email)


# =============================================================================
# Workshops
# =============================================================================


@router.get(
    "",
    response_model=list[WorkshopResponse],
    summary="List workshops",
    description="Returns the shop's workshops by date, with remaining seats.",
)
async def list_workshops(
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
    workshop_status: Annotated[WorkshopStatus | None, Query(alias="status")] = None,
) -> list[WorkshopResponse]:
    criteria = [Workshop.status == workshop_status.value] if workshop_status is not None else []
    workshops = await WorkshopRepository(db, scope.tenant_id).list(
        *criteria, order_by=(Workshop.date.desc(), Workshop.start_time.desc())
    )
    return await workshop_responses(db, workshops)


@router.post(
    "",
    response_model=WorkshopResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a workshop",
    description=(
        "Creates a workshop with a unique slug. The deposit percent defaults "
        "to the shop's default deposit percent."
    ),
)
async def create_workshop(
    body: WorkshopCreateRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkshopResponse:
    await ensure_category(db, scope, body.category_id)
    workshops = WorkshopRepository(db, scope.tenant_id)

    data = body.model_dump()
    data["status"] = body.status.value
    data["level"] = body.level.value
    if body.deposit_percent is None:
        data["deposit_percent"] = scope.profile.default_deposit_percent
    data["slug"] = await workshops.unique_slug(slugify(body.title) or "atelier")

    workshop = await workshops.create(Workshop(**data))
    logger.info("workshop_created", workshop_id=str(workshop.id), slug=workshop.slug)
    return (await workshop_responses(db, [workshop]))[0]


@router.get(
    "/{workshop_id}",
    response_model=WorkshopResponse,
    summary="Get a workshop",
)
async def get_workshop(
    workshop_id: UUID,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkshopResponse:
    workshop = await WorkshopRepository(db, scope.tenant_id).get_or_raise(workshop_id)
    return (await workshop_responses(db, [workshop]))[0]


@router.put(
    "/{workshop_id}",
    response_model=WorkshopResponse,
    summary="Update a workshop",
    description="Partial update. A new title gives the workshop a new unique slug.",
)
async def update_workshop(
    workshop_id: UUID,
    body: WorkshopUpdateRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkshopResponse:
    workshops = WorkshopRepository(db, scope.tenant_id)
    workshop = await workshops.get_or_raise(workshop_id)

    updates = body.model_dump(exclude_unset=True)
    if "category_id" in updates:
        await ensure_category(db, scope, updates["category_id"])
    if updates.get("level") is not None:
        updates["level"] = body.level.value
    if updates.get("title") and updates["title"] != workshop.title:
        updates["slug"] = await workshops.unique_slug(
            slugify(updates["title"]) or "atelier", exclude_id=workshop.id
        )

    workshop = await workshops.update(workshop, updates)
    return (await workshop_responses(db, [workshop]))[0]


@router.delete(
    "/{workshop_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a workshop",
)
async def delete_workshop(
    workshop_id: UUID,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    workshops = WorkshopRepository(db, scope.tenant_id)
    await workshops.delete(await workshops.get_or_raise(workshop_id))
    logger.info("workshop_deleted", workshop_id=str(workshop_id))


@router.put(
    "/{workshop_id}/status",
    response_model=WorkshopResponse,
    summary="Change workshop status",
    description="Cancelling a workshop cancels its active bookings and emails each client.",
)
async def set_workshop_status(
    workshop_id: UUID,
    body: WorkshopStatusRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    stripe: Annotated[StripeService, Depends(get_stripe_service)],
    email: Annotated[EmailService, Depends(get_email_service)],
) -> WorkshopResponse:
    workflow = _workflow(db, scope, settings, stripe, email)
    workshop = await workflow.set_workshop_status(workshop_id, body.status, body.reason)
    return (await workshop_responses(db, [workshop]))[0]


# =============================================================================
# Bookings
# =============================================================================


@router.get(
    "/{workshop_id}/bookings",
    response_model=list[BookingResponse],
    summary="List a workshop's bookings",
)
async def list_bookings(
    workshop_id: UUID,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[BookingResponse]:
    workshop = await WorkshopRepository(db, scope.tenant_id).get_or_raise(workshop_id)
    bookings = await BookingRepository(db, scope.tenant_id).for_workshop(workshop.id)
    return [BookingResponse.model_validate(b) for b in bookings]


@router.post(
    "/{workshop_id}/bookings",
    response_model=BookingPlacedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a booking",
    description=(
        "Books seats on the client's behalf. Capacity is enforced; the workshop "
        "does not need to be published."
    ),
)
async def create_booking(
    workshop_id: UUID,
    body: BookingCreateRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    stripe: Annotated[StripeService, Depends(get_stripe_service)],
    email: Annotated[EmailService, Depends(get_email_service)],
) -> BookingPlacedResponse:
    placed = await _workflow(db, scope, settings, stripe, email).place(
        workshop_id, BookingRequest(**body.model_dump()), by_client=False
    )
    return BookingPlacedResponse(
        booking=BookingResponse.model_validate(placed.booking),
        checkout_url=placed.checkout_url,
    )


@router.put(
    "/{workshop_id}/bookings/{booking_id}/status",
    response_model=BookingResponse,
    summary="Change a booking's status",
)
async def set_booking_status(
    workshop_id: UUID,
    booking_id: UUID,
    body: BookingStatusRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    stripe: Annotated[StripeService, Depends(get_stripe_service)],
    email: Annotated[EmailService, Depends(get_email_service)],
) -> BookingResponse:
    booking = await _workflow(db, scope, settings, stripe, email).set_booking_status(
        workshop_id, booking_id, body.status, body.cancellation_reason
    )
    return BookingResponse.model_validate(booking)
