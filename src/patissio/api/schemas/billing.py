"""API schemas for platform subscription billing."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


class PlanResponse(BaseModel):
    """A plan of the public catalogue. Prices are in euro cents."""

    id: str
    name: str
    monthly_price: int
    yearly_price: int
    features: list[str]


class SubscriptionResponse(BaseModel):
    id: UUID
    plan: str
    billing_interval: str
    status: str
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    cancel_at_period_end: bool
    canceled_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CurrentPlanResponse(BaseModel):
    """The shop's plan and the subscription backing it, if any."""

    plan: str
    subscription: SubscriptionResponse | None = None


class SubscribeRequest(BaseModel):
    plan: Literal["pro", "premium"]
    interval: Literal["monthly", "yearly"] = "monthly"


class SubscribeResponse(BaseModel):
    """Either a checkout URL to visit, or ``upgraded`` when the plan changed in place."""

    url: str | None = None
    upgraded: bool = False


class InvoiceResponse(BaseModel):
    id: str
    number: str | None = None
    status: str | None = None
    amount_paid: int | None = Field(default=None, description="Amount in cents")
    currency: str | None = None
    created: datetime | None = None
    hosted_invoice_url: str | None = None
    invoice_pdf: str | None = None


class WebhookAck(BaseModel):
    received: bool = True
