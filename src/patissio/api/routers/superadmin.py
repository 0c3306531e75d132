"""Platform administration endpoints. Superadmins only."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.api.dependencies import get_db, require_superadmin, throttle
from patissio.api.schemas.profile import ProfileResponse
from patissio.api.schemas.superadmin import (
    AdminUserDetailResponse,
    AdminUserResponse,
    OrderPage,
    PatissierPage,
    PlatformStatsResponse,
    SubscriptionPage,
    SuspendRequest,
    UserPage,
    WorkshopPage,
)
from patissio.db.models import PlanTier, SubscriptionStatus, UserRole
from patissio.services.admin import AdminService

router = APIRouter(
    prefix="/superadmin",
    tags=["superadmin"],
    dependencies=[Depends(throttle("api")), Depends(require_superadmin)],
)


def get_admin_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AdminService:
    return AdminService(db)


@router.get(
    "/stats/dashboard",
    response_model=PlatformStatsResponse,
    summary="Platform dashboard",
    description="User, shop, order and workshop counts, plan distribution and paid revenue.",
)
async def dashboard(
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> PlatformStatsResponse:
    return PlatformStatsResponse.model_validate(await service.dashboard())


# =============================================================================
# Users
# =============================================================================


@router.get(
    "/users",
    response_model=UserPage,
    summary="List users",
    description="Newest first. `search` matches email or full name.",
)
async def list_users(
    service: Annotated[AdminService, Depends(get_admin_service)],
    role: UserRole | None = None,
    search: Annotated[str | None, Query(max_length=200)] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> UserPage:
    return UserPage.model_validate(
        await service.list_users(role=role, search=search, page=page, limit=limit)
    )


@router.get(
    "/users/{user_id}",
    response_model=AdminUserDetailResponse,
    summary="Get a user",
)
async def get_user(
    user_id: UUID,
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> AdminUserDetailResponse:
    user, profile = await service.get_user(user_id)
    return AdminUserDetailResponse(
        user=AdminUserResponse.model_validate(user),
        profile=ProfileResponse.model_validate(profile) if profile is not None else None,
    )


@router.post(
    "/users/{user_id}/suspend",
    response_model=AdminUserResponse,
    summary="Suspend a user",
    description="Blocks the account and revokes its tokens. Superadmins cannot be suspended.",
)
async def suspend_user(
    user_id: UUID,
    service: Annotated[AdminService, Depends(get_admin_service)],
    body: SuspendRequest | None = None,
) -> AdminUserResponse:
    user = await service.suspend(user_id, body.reason if body is not None else None)
    return AdminUserResponse.model_validate(user)


@router.post(
    "/users/{user_id}/unsuspend",
    response_model=AdminUserResponse,
    summary="Lift a suspension",
)
async def unsuspend_user(
    user_id: UUID,
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> AdminUserResponse:
    return AdminUserResponse.model_validate(await service.unsuspend(user_id))


# =============================================================================
# Cross-tenant listings
# =============================================================================


@router.get(
    "/patissiers",
    response_model=PatissierPage,
    summary="List shops",
)
async def list_patissiers(
    service: Annotated[AdminService, Depends(get_admin_service)],
    plan: PlanTier | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> PatissierPage:
    return PatissierPage.model_validate(
        await service.list_patissiers(plan=plan, page=page, limit=limit)
    )


@router.get(
    "/orders",
    response_model=OrderPage,
    summary="List orders across shops",
)
async def list_orders(
    service: Annotated[AdminService, Depends(get_admin_service)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> OrderPage:
    return OrderPage.model_validate(await service.list_orders(page=page, limit=limit))


@router.get(
    "/workshops",
    response_model=WorkshopPage,
    summary="List workshops across shops",
)
async def list_workshops(
    service: Annotated[AdminService, Depends(get_admin_service)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> WorkshopPage:
    return WorkshopPage.model_validate(await service.list_workshops(page=page, limit=limit))


@router.get(
    "/subscriptions",
    response_model=SubscriptionPage,
    summary="List subscriptions",
)
async def list_subscriptions(
    service: Annotated[AdminService, Depends(get_admin_service)],
    subscription_status: Annotated[SubscriptionStatus | None, Query(alias="status")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> SubscriptionPage:
    return SubscriptionPage.model_validate(
        await service.list_subscriptions(status=subscription_status, page=page, limit=limit)
    )
