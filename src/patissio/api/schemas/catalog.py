"""API schemas for categories, creations and products."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

# =============================================================================
# Categories
# =============================================================================


class CategoryCreateRequest(BaseModel):
    """Request body for a new category. The slug defaults to the slugified name."""

    name: str = Field(..., min_length=1, max_length=100)
    slug: str | None = Field(default=None, max_length=120)
    description: str | None = None
    sort_order: int | None = Field(default=None, ge=0)


class CategoryUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    slug: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None
    sort_order: int | None = Field(default=None, ge=0)


class CategoryOrderItem(BaseModel):
    id: UUID
    sort_order: int = Field(..., ge=0)


class CategoryReorderRequest(BaseModel):
    """New positions for some or all categories."""

    items: list[CategoryOrderItem] = Field(..., min_length=1)


class CategoryResponse(BaseModel):
    id: UUID
    name: str
    slug: str
    description: str | None = None
    sort_order: int
    created_at: datetime

    model_config = {"from_attributes": True}


# =============================================================================
# Creations
# =============================================================================


class CreationCreateRequest(BaseModel):
    """Request body for a showcase creation."""

    title: str = Field(..., min_length=1, max_length=200)
    category_id: UUID | None = None
    description: str | None = None
    images: list[dict[str, Any]] = Field(default_factory=list)
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    is_visible: bool = True
    is_featured: bool = False
    tags: list[str] = Field(default_factory=list)


class CreationUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    category_id: UUID | None = None
    description: str | None = None
    images: list[dict[str, Any]] | None = None
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    is_visible: bool | None = None
    is_featured: bool | None = None
    tags: list[str] | None = None


class CreationResponse(BaseModel):
    id: UUID
    category_id: UUID | None = None
    title: str
    slug: str
    description: str | None = None
    images: list[dict[str, Any]] = Field(default_factory=list)
    price: Decimal | None = None
    is_visible: bool
    is_featured: bool
    tags: list[str] = Field(default_factory=list)
    created_at: datetime

    model_config = {"from_attributes": True}


# =============================================================================
# Products
# =============================================================================


class ProductCreateRequest(BaseModel):
    """Request body for an orderable product."""

    name: str = Field(..., min_length=1, max_length=200)
    category_id: UUID | None = None
    description: str | None = None
    images: list[dict[str, Any]] = Field(default_factory=list)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    unit: str = Field(default="piece", max_length=30)
    min_quantity: int = Field(default=1, ge=1)
    max_quantity: int | None = Field(default=None, ge=1)
    preparation_days: int = Field(default=1, ge=0)
    allergens: list[str] = Field(default_factory=list)
    is_available: bool = True
    is_visible: bool = True
    sort_order: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_quantities(self) -> "ProductCreateRequest":
        if self.max_quantity is not None and self.max_quantity < self.min_quantity:
            raise ValueError("max_quantity must be greater than or equal to min_quantity")
        return self


class ProductUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    category_id: UUID | None = None
    description: str | None = None
    images: list[dict[str, Any]] | None = None
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    unit: str | None = Field(default=None, max_length=30)
    min_quantity: int | None = Field(default=None, ge=1)
    max_quantity: int | None = Field(default=None, ge=1)
    preparation_days: int | None = Field(default=None, ge=0)
    allergens: list[str] | None = None
    is_available: bool | None = None
    is_visible: bool | None = None
    sort_order: int | None = Field(default=None, ge=0)


class ProductResponse(BaseModel):
    id: UUID
    category_id: UUID | None = None
    name: str
    description: str | None = None
    images: list[dict[str, Any]] = Field(default_factory=list)
    price: Decimal
    unit: str
    min_quantity: int
    max_quantity: int | None = None
    preparation_days: int
    allergens: list[str] = Field(default_factory=list)
    is_available: bool
    is_visible: bool
    sort_order: int
    created_at: datetime

    model_config = {"from_attributes": True}
