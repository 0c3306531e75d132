"""Platform subscription endpoints for the authenticated user."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.api.dependencies import (
    get_current_user,
    get_db,
    get_settings,
    get_stripe_service,
    throttle,
)
from patissio.api.schemas.billing import (
    CurrentPlanResponse,
    InvoiceResponse,
    PlanResponse,
    SubscribeRequest,
    SubscribeResponse,
    SubscriptionResponse,
)
from patissio.api.schemas.profile import UrlResponse
from patissio.config.settings import Settings
from patissio.db.models import PlanTier, User
from patissio.db.repositories import ProfileRepository
from patissio.services.billing import BillingService, list_plans
from patissio.services.payments import StripeService

router = APIRouter(
    prefix="/billing",
    tags=["billing"],
    dependencies=[Depends(throttle("api"))],
)


def get_billing_service(
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    stripe: Annotated[StripeService, Depends(get_stripe_service)],
) -> BillingService:
    return BillingService(db, user, settings, stripe)


@router.get(
    "/plans",
    response_model=list[PlanResponse],
    summary="List plans",
    description="Returns the plan catalogue with prices in euro cents and features.",
)
async def plans() -> list[PlanResponse]:
    return [PlanResponse(**plan) for plan in list_plans()]


@router.get(
    "/current",
    response_model=CurrentPlanResponse,
    summary="Current plan",
    description="Returns the plan of the user's shop and its latest subscription, if any.",
)
async def current_plan(
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[BillingService, Depends(get_billing_service)],
) -> CurrentPlanResponse:
    profile = await ProfileRepository(db).get_by_user(user.id)
    subscription = await service.current()
    return CurrentPlanResponse(
        plan=profile.plan if profile is not None else PlanTier.STARTER.value,
        subscription=SubscriptionResponse.model_validate(subscription) if subscription else None,
    )


@router.post(
    "/subscribe",
    response_model=SubscribeResponse,
    summary="Subscribe or change plan",
    description=(
        "Upgrades an active subscription in place. Without one, returns a "
        "Stripe Checkout URL to start the subscription."
    ),
)
async def subscribe(
    body: SubscribeRequest,
    service: Annotated[BillingService, Depends(get_billing_service)],
) -> SubscribeResponse:
    result = await service.subscribe(body.plan, body.interval)
    return SubscribeResponse(url=result.url, upgraded=result.upgraded)


@router.post(
    "/cancel",
    response_model=SubscriptionResponse,
    summary="Cancel at period end",
)
async def cancel(
    service: Annotated[BillingService, Depends(get_billing_service)],
) -> SubscriptionResponse:
    return SubscriptionResponse.model_validate(await service.cancel())


@router.post(
    "/resume",
    response_model=SubscriptionResponse,
    summary="Resume a cancelled subscription",
)
async def resume(
    service: Annotated[BillingService, Depends(get_billing_service)],
) -> SubscriptionResponse:
    return SubscriptionResponse.model_validate(await service.resume())


@router.get(
    "/invoices",
    response_model=list[InvoiceResponse],
    summary="List invoices",
)
async def invoices(
    service: Annotated[BillingService, Depends(get_billing_service)],
) -> list[InvoiceResponse]:
    return [InvoiceResponse(**invoice) for invoice in await service.invoices()]


@router.post(
    "/portal",
    response_model=UrlResponse,
    summary="Billing portal link",
)
async def portal(
    service: Annotated[BillingService, Depends(get_billing_service)],
) -> UrlResponse:
    return UrlResponse(url=await service.portal_url())
