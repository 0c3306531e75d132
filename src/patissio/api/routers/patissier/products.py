"""Orderable products of the active shop. Requires the pro plan."""

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.api.dependencies import get_db, get_tenant_scope, require_plan
from patissio.api.routers.patissier.catalog import ensure_category
from patissio.api.schemas.catalog import (
    ProductCreateRequest,
    ProductResponse,
    ProductUpdateRequest,
)
from patissio.core.exceptions import InvalidRequestError
from patissio.core.support import TenantScope
from patissio.db.models import PlanTier, Product
from patissio.db.repositories import ProductRepository

router = APIRouter(
    prefix="/products",
    tags=["patissier-products"],
    dependencies=[Depends(require_plan(PlanTier.PRO.value))],
)
logger = structlog.get_logger()


@router.get(
    "",
    response_model=list[ProductResponse],
    summary="List products",
    description="Returns the shop's products in display order.",
)
async def list_products(
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
    category_id: Annotated[UUID | None, Query()] = None,
) -> list[ProductResponse]:
    criteria = [Product.category_id == category_id] if category_id is not None else []
    products = await ProductRepository(db, scope.tenant_id).list(
        *criteria, order_by=(Product.sort_order.asc(), Product.name.asc())
    )
    return [ProductResponse.model_validate(p) for p in products]


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a product",
)
async def create_product(
    body: ProductCreateRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProductResponse:
    await ensure_category(db, scope, body.category_id)
    product = await ProductRepository(db, scope.tenant_id).create(Product(**body.model_dump()))
    logger.info("product_created", product_id=str(product.id))
    return ProductResponse.model_validate(product)


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Get a product",
)
async def get_product(
    product_id: UUID,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProductResponse:
    product = await ProductRepository(db, scope.tenant_id).get_or_raise(product_id)
    return ProductResponse.model_validate(product)


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Update a product",
    description="Partial update. The quantity bounds must stay consistent.",
)
async def update_product(
    product_id: UUID,
    body: ProductUpdateRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProductResponse:
    products = ProductRepository(db, scope.tenant_id)
    product = await products.get_or_raise(product_id)
    updates = body.model_dump(exclude_unset=True)
    if "category_id" in updates:
        await ensure_category(db, scope, updates["category_id"])

    min_quantity = updates.get("min_quantity") or product.min_quantity
    max_quantity = updates.get("max_quantity", product.max_quantity)
    if max_quantity is not None and max_quantity < min_quantity:
        raise InvalidRequestError(
            "max_quantity must be greater than or equal to min_quantity", "max_quantity"
        )

    product = await products.update(product, updates)
    return ProductResponse.model_validate(product)


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a product",
)
async def delete_product(
    product_id: UUID,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    products = ProductRepository(db, scope.tenant_id)
    await products.delete(await products.get_or_raise(product_id))
