"""Categories and showcase creations of the active shop."""

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.api.dependencies import get_db, get_tenant_scope
from patissio.api.schemas.catalog import (
    CategoryCreateRequest,
    CategoryReorderRequest,
    CategoryResponse,
    CategoryUpdateRequest,
    CreationCreateRequest,
    CreationResponse,
    CreationUpdateRequest,
)
from patissio.core.exceptions import ConflictError, InvalidRequestError
from patissio.core.support import TenantScope
from patissio.core.tenancy import slugify
from patissio.db.models import Category, Creation
from patissio.db.repositories import CategoryRepository, CreationRepository

router = APIRouter(tags=["patissier-catalogue"])
logger = structlog.get_logger()


async def ensure_category(db: AsyncSession, scope: TenantScope, category_id: UUID | None) -> None:
    """Raises ResourceNotFoundError unless the category belongs to the shop."""
    if category_id is not None:
        await CategoryRepository(db, scope.tenant_id).get_or_raise(category_id)


# =============================================================================
# Categories
# =============================================================================


async def _category_slug(
    categories: CategoryRepository, slug: str, exclude_id: UUID | None = None
) -> str:
    if not slug:
        raise InvalidRequestError("Category slug cannot be empty", "slug")
    criteria = [Category.slug == slug]
    if exclude_id is not None:
        criteria.append(Category.id != exclude_id)
    if await categories.count(*criteria):
        raise ConflictError("A category with this slug already exists", "slug", slug)
    return slug


@router.get(
    "/categories",
    response_model=list[CategoryResponse],
    summary="List categories",
    description="Returns the shop's categories in display order.",
)
async def list_categories(
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[CategoryResponse]:
    categories = await CategoryRepository(db, scope.tenant_id).list(
        order_by=(Category.sort_order.asc(), Category.name.asc())
    )
    return [CategoryResponse.model_validate(c) for c in categories]


@router.post(
    "/categories",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a category",
    description="Creates a category at the end of the list. The slug defaults to the name.",
)
async def create_category(
    body: CategoryCreateRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CategoryResponse:
    categories = CategoryRepository(db, scope.tenant_id)
    slug = await _category_slug(categories, slugify(body.slug or body.name))
    sort_order = body.sort_order
    if sort_order is None:
        sort_order = await categories.count()

    category = await categories.create(
        Category(name=body.name, slug=slug, description=body.description, sort_order=sort_order)
    )
    logger.info("category_created", category_id=str(category.id))
    return CategoryResponse.model_validate(category)


@router.put(
    "/categories/reorder",
    response_model=list[CategoryResponse],
    summary="Reorder categories",
    description="Sets the position of each listed category. Unknown ids are ignored.",
)
async def reorder_categories(
    body: CategoryReorderRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[CategoryResponse]:
    categories = CategoryRepository(db, scope.tenant_id)
    for item in body.items:
        category = await categories.get(item.id)
        if category is not None:
            await categories.update(category, {"sort_order": item.sort_order}, commit=False)
    await db.commit()

    ordered = await categories.list(order_by=(Category.sort_order.asc(), Category.name.asc()))
    return [CategoryResponse.model_validate(c) for c in ordered]


@router.put(
    "/categories/{category_id}",
    response_model=CategoryResponse,
    summary="Update a category",
)
async def update_category(
    category_id: UUID,
    body: CategoryUpdateRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CategoryResponse:
    categories = CategoryRepository(db, scope.tenant_id)
    category = await categories.get_or_raise(category_id)
    updates = body.model_dump(exclude_unset=True)
    if updates.get("slug"):
        updates["slug"] = await _category_slug(
            categories, slugify(updates["slug"]), exclude_id=category.id
        )
    category = await categories.update(category, updates)
    return CategoryResponse.model_validate(category)


@router.delete(
    "/categories/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a category",
    description="Deletes a category. Its creations, products and workshops become uncategorised.",
)
async def delete_category(
    category_id: UUID,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    categories = CategoryRepository(db, scope.tenant_id)
    await categories.delete(await categories.get_or_raise(category_id))
    logger.info("category_deleted", category_id=str(category_id))


# =============================================================================
# Creations
# =============================================================================


@router.get(
    "/creations",
    response_model=list[CreationResponse],
    summary="List creations",
    description="Returns the shop's creations, newest first, optionally for one category.",
)
async def list_creations(
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
    category_id: Annotated[UUID | None, Query()] = None,
) -> list[CreationResponse]:
    criteria = [Creation.category_id == category_id] if category_id is not None else []
    creations = await CreationRepository(db, scope.tenant_id).list(
        *criteria, order_by=Creation.created_at.desc()
    )
    return [CreationResponse.model_validate(c) for c in creations]


@router.post(
    "/creations",
    response_model=CreationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a creation",
    description="Adds a showcase creation. Its slug is unique within the shop.",
)
async def create_creation(
    body: CreationCreateRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CreationResponse:
    await ensure_category(db, scope, body.category_id)
    creations = CreationRepository(db, scope.tenant_id)
    data = body.model_dump()
    data["slug"] = await creations.unique_slug(slugify(body.title) or "creation")
    creation = await creations.create(Creation(**data))
    logger.info("creation_created", creation_id=str(creation.id), slug=creation.slug)
    return CreationResponse.model_validate(creation)


@router.get(
    "/creations/{creation_id}",
    response_model=CreationResponse,
    summary="Get a creation",
)
async def get_creation(
    creation_id: UUID,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CreationResponse:
    creation = await CreationRepository(db, scope.tenant_id).get_or_raise(creation_id)
    return CreationResponse.model_validate(creation)


@router.put(
    "/creations/{creation_id}",
    response_model=CreationResponse,
    summary="Update a creation",
    description="Partial update. A new title gives the creation a new unique slug.",
)
async def update_creation(
    creation_id: UUID,
    body: CreationUpdateRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CreationResponse:
    creations = CreationRepository(db, scope.tenant_id)
    creation = await creations.get_or_raise(creation_id)
    updates = body.model_dump(exclude_unset=True)
    if "category_id" in updates:
        await ensure_category(db, scope, updates["category_id"])
    if updates.get("title") and updates["title"] != creation.title:
        updates["slug"] = await creations.unique_slug(
            slugify(updates["title"]) or "creation", exclude_id=creation.id
        )
    creation = await creations.update(creation, updates)
    return CreationResponse.model_validate(creation)


@router.delete(
    "/creations/{creation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a creation",
)
async def delete_creation(
    creation_id: UUID,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    creations = CreationRepository(db, scope.tenant_id)
    await creations.delete(await creations.get_or_raise(creation_id))
