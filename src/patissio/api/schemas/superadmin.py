"""API schemas for platform administration."""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from patissio.api.schemas.auth import UserResponse
from patissio.api.schemas.billing import SubscriptionResponse
from patissio.api.schemas.orders import OrderSummaryResponse
from patissio.api.schemas.profile import ProfileResponse
from patissio.api.schemas.workshops import WorkshopResponse


class PlatformStatsResponse(BaseModel):
    users: int
    patissiers: int
    orders: int
    workshops: int
    active_subscriptions: int
    plans: dict[str, int]
    revenue_total: Decimal

    model_config = {"from_attributes": True}


class AdminUserResponse(UserResponse):
    suspended_reason: str | None = None


class AdminUserDetailResponse(BaseModel):
    user: AdminUserResponse
    profile: ProfileResponse | None = None


class SuspendRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class AdminOrderResponse(OrderSummaryResponse):
    patissier_id: UUID


class AdminWorkshopResponse(WorkshopResponse):
    patissier_id: UUID


class AdminSubscriptionResponse(SubscriptionResponse):
    user_id: UUID
    stripe_customer_id: str | None = None
    stripe_subscription_id: str | None = None


class UserPage(BaseModel):
    items: list[AdminUserResponse]
    total: int
    page: int
    limit: int

    model_config = {"from_attributes": True}


class PatissierPage(BaseModel):
    items: list[ProfileResponse]
    total: int
    page: int
    limit: int

    model_config = {"from_attributes": True}


class OrderPage(BaseModel):
    items: list[AdminOrderResponse]
    total: int
    page: int
    limit: int

    model_config = {"from_attributes": True}


class WorkshopPage(BaseModel):
    items: list[AdminWorkshopResponse]
    total: int
    page: int
    limit: int

    model_config = {"from_attributes": True}


class SubscriptionPage(BaseModel):
    items: list[AdminSubscriptionResponse]
    total: int
    page: int
    limit: int

    model_config = {"from_attributes": True}
