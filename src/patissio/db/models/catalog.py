"""Catalogue models: categories, creations (showcase) and products (orderable)."""

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import (
    Base,
    Money,
    PortableJSON,
    PortableUUID,
    TenantOwnedMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)


class Category(UUIDPrimaryKeyMixin, TenantOwnedMixin, TimestampMixin, Base):
    """Grouping for creations, products and workshops."""

    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("patissier_id", "slug", name="uq_category_slug"),)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Creation(UUIDPrimaryKeyMixin, TenantOwnedMixin, TimestampMixin, Base):
    """A showcase piece displayed on the storefront."""

    __tablename__ = "creations"
    __table_args__ = (UniqueConstraint("patissier_id", "slug", name="uq_creation_slug"),)

    category_id: Mapped[UUID | None] = mapped_column(
        PortableUUID(), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(220), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    images: Mapped[list[dict[str, Any]]] = mapped_column(
        PortableJSON(), nullable=False, default=list
    )
    price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tags: Mapped[list[str]] = mapped_column(PortableJSON(), nullable=False, default=list)


class Product(UUIDPrimaryKeyMixin, TenantOwnedMixin, TimestampMixin, Base):
    """An item clients can order from the catalogue."""

    __tablename__ = "products"

    category_id: Mapped[UUID | None] = mapped_column(
        PortableUUID(), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    images: Mapped[list[dict[str, Any]]] = mapped_column(
        PortableJSON(), nullable=False, default=list
    )
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    unit: Mapped[str] = mapped_column(String(30), nullable=False, default="piece")
    min_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    preparation_days: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    allergens: Mapped[list[str]] = mapped_column(PortableJSON(), nullable=False, default=list)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
