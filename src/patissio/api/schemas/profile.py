"""API schemas for the patissier profile, site design and integrations."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

_COLOR = r"^#[0-9A-Fa-f]{6}$"

# =============================================================================
# Response Schemas
# =============================================================================


class PublicProfileResponse(BaseModel):
    """Storefront view of a shop: branding and contact details only."""

    id: UUID
    slug: str
    business_name: str
    description: str | None = None
    phone: str | None = None
    address_street: str | None = None
    address_city: str | None = None
    address_zip: str | None = None
    address_country: str | None = None
    social_links: dict[str, Any] = Field(default_factory=dict)
    operating_hours: dict[str, Any] | None = None
    logo_url: str | None = None
    primary_color: str
    secondary_color: str
    font_family: str
    hero_image_url: str | None = None
    story_image_url: str | None = None
    page_hero_images: dict[str, str] = Field(default_factory=dict)
    site_config: dict[str, Any] | None = None
    plan: str
    orders_enabled: bool
    workshops_enabled: bool
    accepts_custom_orders: bool
    can_accept_online_payment: bool = False

    model_config = {"from_attributes": True}


class ProfileResponse(PublicProfileResponse):
    """Back-office view of the shop, as seen by its owner."""

    user_id: UUID
    custom_domain: str | None = None
    custom_domain_verified: bool = False
    stripe_account_id: str | None = None
    stripe_onboarding_complete: bool = False
    default_deposit_percent: int
    allow_support_access: bool
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Request Schemas
# =============================================================================


class ProfileUpdateRequest(BaseModel):
    """Partial update of the shop's details. Omitted fields are left unchanged."""

    business_name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    phone: str | None = Field(default=None, max_length=30)
    address_street: str | None = Field(default=None, max_length=255)
    address_city: str | None = Field(default=None, max_length=100)
    address_zip: str | None = Field(default=None, max_length=20)
    address_country: str | None = Field(default=None, min_length=2, max_length=2)
    social_links: dict[str, Any] | None = None
    operating_hours: dict[str, Any] | None = None
    accepts_custom_orders: bool | None = None
    default_deposit_percent: int | None = Field(default=None, ge=0, le=100)
    allow_support_access: bool | None = None


class SiteDesignRequest(BaseModel):
    """Storefront colors, font and header images."""

    primary_color: str | None = Field(default=None, pattern=_COLOR)
    secondary_color: str | None = Field(default=None, pattern=_COLOR)
    font_family: str | None = Field(default=None, min_length=1, max_length=100)
    logo_url: str | None = Field(default=None, max_length=500)
    hero_image_url: str | None = Field(default=None, max_length=500)


class SiteSettingsRequest(SiteDesignRequest):
    """Storefront layout and the order and workshop switches."""

    site_config: dict[str, Any] | None = None
    story_image_url: str | None = Field(default=None, max_length=500)
    orders_enabled: bool | None = None
    workshops_enabled: bool | None = None


class ImageRequest(BaseModel):
    """URL of an already uploaded image."""

    url: str = Field(..., min_length=1, max_length=500)


# =============================================================================
# Custom domain
# =============================================================================


class DomainRequest(BaseModel):
    """Custom domain to attach to the storefront."""

    domain: str = Field(..., min_length=3, max_length=253)

    model_config = {"json_schema_extra": {"example": {"domain": "www.maboulangerie.fr"}}}


class DomainResponse(BaseModel):
    """The shop's custom domain and the DNS record to create."""

    domain: str | None = None
    verified: bool = False
    cname_target: str | None = None


class DomainVerifyResponse(BaseModel):
    """Result of checking a custom domain with the hosting provider."""

    domain: str
    status: str = Field(..., description="verified, misconfigured or pending")
    verified: bool
    verification: list[dict[str, Any]] | None = None


# =============================================================================
# Integrations
# =============================================================================


class StripeConnectResponse(BaseModel):
    """Stripe Connect onboarding state."""

    account_id: str
    onboarding_complete: bool
    onboarding_url: str | None = None
    charges_enabled: bool = False
    transfers_active: bool = False


class UrlResponse(BaseModel):
    """A link to open in the browser."""

    url: str


class InstagramTokenRequest(BaseModel):
    """Long-lived Instagram access token obtained by the web app."""

    access_token: str = Field(..., min_length=10, max_length=1000)


class InstagramStatusResponse(BaseModel):
    """Whether the shop has an Instagram account linked."""

    connected: bool


# =============================================================================
# Stats
# =============================================================================


class TenantStatsResponse(BaseModel):
    """Back-office dashboard figures."""

    orders_total: int
    orders_by_status: dict[str, int]
    revenue_total: Decimal
    workshops_total: int
    workshops_published: int
    bookings_total: int
    bookings_confirmed: int

    model_config = {"from_attributes": True}
