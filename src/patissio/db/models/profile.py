"""Patissier profile: the tenant record."""

from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, PortableJSON, PortableUUID, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from .user import User


class PlanTier(str, Enum):
    """Subscription tiers, from lowest to highest."""

    STARTER = "starter"
    PRO = "pro"
    PREMIUM = "premium"


class PatissierProfile(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A pastry shop (tenant).

    Owns a unique slug, an optional custom domain, the subscription tier and
    the storefront branding. Every tenant-owned row references this table.
    """

    __tablename__ = "patissier_profiles"

    user_id: Mapped[UUID] = mapped_column(
        PortableUUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    business_name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)

    # Address
    address_street: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    address_zip: Mapped[str | None] = mapped_column(String(20), nullable=True)
    address_country: Mapped[str | None] = mapped_column(String(2), nullable=True, default="FR")
    social_links: Mapped[dict[str, Any]] = mapped_column(
        PortableJSON(), nullable=False, default=dict
    )
    operating_hours: Mapped[dict[str, Any] | None] = mapped_column(PortableJSON(), nullable=True)

    # Site design
    logo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    primary_color: Mapped[str] = mapped_column(String(7), nullable=False, default="#D4A574")
    secondary_color: Mapped[str] = mapped_column(String(7), nullable=False, default="#2C1810")
    font_family: Mapped[str] = mapped_column(
        String(100), nullable=False, default="Playfair Display"
    )
    hero_image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    story_image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    page_hero_images: Mapped[dict[str, str]] = mapped_column(
        PortableJSON(), nullable=False, default=dict
    )
    site_config: Mapped[dict[str, Any] | None] = mapped_column(PortableJSON(), nullable=True)

    # Custom domain
    custom_domain: Mapped[str | None] = mapped_column(String(253), nullable=True, unique=True)
    custom_domain_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Payments
    stripe_account_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    stripe_onboarding_complete: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    # Plan and feature flags
    plan: Mapped[str] = mapped_column(String(20), nullable=False, default=PlanTier.STARTER.value)
    orders_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    workshops_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    accepts_custom_orders: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    default_deposit_percent: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    allow_support_access: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Integrations
    instagram_access_token: Mapped[str | None] = mapped_column(Text, nullable=True)

    user: Mapped["User"] = relationship(back_populates="profile", lazy="raise")

    @property
    def can_accept_online_payment(self) -> bool:
        """Whether deposits can be collected through Stripe Connect."""
        return bool(self.stripe_account_id) and self.stripe_onboarding_complete

    def __repr__(self) -> str:
        return f"<PatissierProfile(id={self.id}, slug={self.slug}, plan={self.plan})>"
