"""Orders received by the active shop. Requires the pro plan."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.api.dependencies import (
    get_db,
    get_email_service,
    get_settings,
    get_stripe_service,
    get_tenant_scope,
    require_plan,
)
from patissio.api.schemas.orders import (
    OrderListResponse,
    OrderMessageRequest,
    OrderMessageResponse,
    OrderQuoteRequest,
    OrderResponse,
    OrderStatusRequest,
    OrderSummaryResponse,
    QuoteResponse,
)
from patissio.config.settings import Settings
from patissio.core.support import TenantScope
from patissio.db.models import OrderStatus, OrderType, PlanTier
from patissio.services.email import EmailService
from patissio.services.orders import OrderService
from patissio.services.payments import StripeService

router = APIRouter(
    prefix="/orders",
    tags=["patissier-orders"],
    dependencies=[Depends(require_plan(PlanTier.PRO.value))],
)


def get_order_service(
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    stripe: Annotated[StripeService, Depends(get_stripe_service)],
    email: Annotated[EmailService, Depends(get_email_service)],
) -> OrderService:
    return OrderService(db, scope.profile, settings, stripe, email)


@router.get(
    "",
    response_model=OrderListResponse,
    summary="List orders",
    description="Pages through the shop's orders, newest first, with status and type filters.",
)
async def list_orders(
    service: Annotated[OrderService, Depends(get_order_service)],
    order_status: Annotated[OrderStatus | None, Query(alias="status")] = None,
    order_type: Annotated[OrderType | None, Query(alias="type")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> OrderListResponse:
    orders, total = await service.list_orders(
        status=order_status, order_type=order_type, page=page, limit=limit
    )
    return OrderListResponse(
        items=[OrderSummaryResponse.model_validate(o) for o in orders],
        total=total,
        page=page,
        limit=limit,
    )


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get an order",
    description="Returns an order with its items and messages.",
)
async def get_order(
    order_id: UUID,
    service: Annotated[OrderService, Depends(get_order_service)],
) -> OrderResponse:
    return OrderResponse.model_validate(await service.get(order_id))


@router.put(
    "/{order_id}/status",
    response_model=OrderResponse,
    summary="Change order status",
    description=(
        "Moves the order along its fulfilment states, stamping the confirmed, "
        "completed and cancelled times, and emails the client."
    ),
)
async def update_order_status(
    order_id: UUID,
    body: OrderStatusRequest,
    service: Annotated[OrderService, Depends(get_order_service)],
) -> OrderResponse:
    order = await service.update_status(
        order_id,
        body.status,
        confirmed_date=body.confirmed_date,
        cancellation_reason=body.cancellation_reason,
    )
    return OrderResponse.model_validate(order)


@router.put(
    "/{order_id}/quote",
    response_model=QuoteResponse,
    summary="Quote a custom order",
    description=(
        "Sets the price of a custom order and, when the shop accepts online "
        "payment, creates a deposit checkout. Checkout problems are returned "
        "as warnings; the quote is still saved and emailed."
    ),
)
async def quote_order(
    order_id: UUID,
    body: OrderQuoteRequest,
    service: Annotated[OrderService, Depends(get_order_service)],
) -> QuoteResponse:
    result = await service.quote(
        order_id,
        body.quoted_price,
        response_message=body.response_message,
        deposit_percent=body.deposit_percent,
        confirmed_date=body.confirmed_date,
    )
    return QuoteResponse(
        order=OrderResponse.model_validate(result.order),
        checkout_url=result.checkout_url,
        warnings=result.warnings,
    )


@router.get(
    "/{order_id}/messages",
    response_model=list[OrderMessageResponse],
    summary="Order conversation",
)
async def list_order_messages(
    order_id: UUID,
    service: Annotated[OrderService, Depends(get_order_service)],
) -> list[OrderMessageResponse]:
    return [OrderMessageResponse.model_validate(m) for m in await service.messages(order_id)]


@router.post(
    "/{order_id}/messages",
    response_model=OrderMessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Message the client",
    description="Adds a message to the conversation and emails it to the client.",
)
async def send_order_message(
    order_id: UUID,
    body: OrderMessageRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    service: Annotated[OrderService, Depends(get_order_service)],
) -> OrderMessageResponse:
    message = await service.send_patissier_message(order_id, scope.user, body.message)
    return OrderMessageResponse.model_validate(message)
