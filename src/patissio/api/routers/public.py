"""Public storefront endpoints. No authentication; tenants are found by slug or domain."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import case
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.api.dependencies import get_db, get_instagram_service, get_settings, throttle
from patissio.api.routers.patissier.workshops import workshop_responses
from patissio.api.schemas.catalog import CategoryResponse, CreationResponse, ProductResponse
from patissio.api.schemas.profile import PublicProfileResponse
from patissio.api.schemas.public import InstagramFeedResponse, SlugCheckResponse
from patissio.api.schemas.workshops import WorkshopResponse
from patissio.config.settings import Settings
from patissio.core.exceptions import ResourceNotFoundError
from patissio.core.plans import plan_satisfies
from patissio.core.tenancy import TenantResolver
from patissio.db.models import (
    Category,
    Creation,
    PatissierProfile,
    PlanTier,
    Product,
    Workshop,
    WorkshopStatus,
)
from patissio.db.repositories import (
    CategoryRepository,
    CreationRepository,
    ProductRepository,
    ProfileRepository,
    WorkshopRepository,
)
from patissio.services.instagram import InstagramService
from patissio.utils.time import utcnow

router = APIRouter(
    prefix="/public",
    tags=["public"],
    dependencies=[Depends(throttle("global"))],
)


def get_resolver(
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TenantResolver:
    return TenantResolver(ProfileRepository(db), settings.PLATFORM_DOMAIN)


async def get_tenant(
    slug: str,
    resolver: Annotated[TenantResolver, Depends(get_resolver)],
) -> PatissierProfile:
    """The tenant named by the ``slug`` path parameter."""
    return await resolver.by_slug(slug)


# =============================================================================
# Tenant lookup
# =============================================================================


@router.get(
    "/check-slug/{slug}",
    response_model=SlugCheckResponse,
    summary="Check slug availability",
    description="Reports whether a slug can be registered and, if not, why.",
)
async def check_slug(
    slug: str,
    resolver: Annotated[TenantResolver, Depends(get_resolver)],
) -> SlugCheckResponse:
    available, reason = await resolver.check_slug(slug)
    return SlugCheckResponse(available=available, reason=reason)


@router.get(
    "/domain/{domain}",
    response_model=PublicProfileResponse,
    summary="Shop by custom domain",
    description="Resolves a verified custom domain to its shop. Unverified domains are not found.",
)
async def profile_by_domain(
    domain: str,
    resolver: Annotated[TenantResolver, Depends(get_resolver)],
) -> PublicProfileResponse:
    return PublicProfileResponse.model_validate(await resolver.by_domain(domain))


@router.get(
    "/{slug}",
    response_model=PublicProfileResponse,
    summary="Shop profile",
)
async def profile(
    tenant: Annotated[PatissierProfile, Depends(get_tenant)],
) -> PublicProfileResponse:
    return PublicProfileResponse.model_validate(tenant)


# =============================================================================
# Catalogue
# =============================================================================


@router.get(
    "/{slug}/categories",
    response_model=list[CategoryResponse],
    summary="Shop categories",
)
async def categories(
    tenant: Annotated[PatissierProfile, Depends(get_tenant)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[CategoryResponse]:
    rows = await CategoryRepository(db, tenant.id).list(
        order_by=(Category.sort_order.asc(), Category.name.asc())
    )
    return [CategoryResponse.model_validate(c) for c in rows]


@router.get(
    "/{slug}/creations",
    response_model=list[CreationResponse],
    summary="Shop creations",
    description="Visible creations only, optionally limited to a category or to featured ones.",
)
async def creations(
    tenant: Annotated[PatissierProfile, Depends(get_tenant)],
    db: Annotated[AsyncSession, Depends(get_db)],
    category_id: UUID | None = None,
    featured: bool = False,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> list[CreationResponse]:
    criteria = [Creation.is_visible.is_(True)]
    if category_id is not None:
        criteria.append(Creation.category_id == category_id)
    if featured:
        criteria.append(Creation.is_featured.is_(True))
    rows = await CreationRepository(db, tenant.id).list(
        *criteria, order_by=Creation.created_at.desc(), limit=limit
    )
    return [CreationResponse.model_validate(c) for c in rows]


@router.get(
    "/{slug}/creations/{creation_slug}",
    response_model=CreationResponse,
    summary="One creation",
)
async def creation_detail(
    creation_slug: str,
    tenant: Annotated[PatissierProfile, Depends(get_tenant)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CreationResponse:
    creation = await CreationRepository(db, tenant.id).find_one(
        Creation.slug == creation_slug, Creation.is_visible.is_(True)
    )
    if creation is None:
        raise ResourceNotFoundError("creation", creation_slug)
    return CreationResponse.model_validate(creation)


@router.get(
    "/{slug}/products",
    response_model=list[ProductResponse],
    summary="Shop products",
    description="Available and visible products. Empty for shops below the pro plan.",
)
async def products(
    tenant: Annotated[PatissierProfile, Depends(get_tenant)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[ProductResponse]:
    if not plan_satisfies(tenant.plan, PlanTier.PRO.value):
        return []
    rows = await ProductRepository(db, tenant.id).list(
        Product.is_visible.is_(True),
        Product.is_available.is_(True),
        order_by=(Product.sort_order.asc(), Product.name.asc()),
    )
    return [ProductResponse.model_validate(p) for p in rows]


# =============================================================================
# Workshops
# =============================================================================


@router.get(
    "/{slug}/workshops",
    response_model=list[WorkshopResponse],
    summary="Shop workshops",
    description="Published, visible workshops with remaining seats. Upcoming sessions come first.",
)
async def workshops(
    tenant: Annotated[PatissierProfile, Depends(get_tenant)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[WorkshopResponse]:
    today = utcnow().date()
    rows = await WorkshopRepository(db, tenant.id).list(
        Workshop.status == WorkshopStatus.PUBLISHED.value,
        Workshop.is_visible.is_(True),
        order_by=(
            case((Workshop.date < today, 1), else_=0),
            Workshop.date.asc(),
            Workshop.start_time.asc(),
        ),
    )
    return await workshop_responses(db, rows)


@router.get(
    "/{slug}/workshops/{workshop_slug}",
    response_model=WorkshopResponse,
    summary="One workshop",
)
async def workshop_detail(
    workshop_slug: str,
    tenant: Annotated[PatissierProfile, Depends(get_tenant)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkshopResponse:
    workshop = await WorkshopRepository(db, tenant.id).find_one(
        Workshop.slug == workshop_slug,
        Workshop.is_visible.is_(True),
        Workshop.status != WorkshopStatus.DRAFT.value,
    )
    if workshop is None:
        raise ResourceNotFoundError("workshop", workshop_slug)
    (response,) = await workshop_responses(db, [workshop])
    return response


# =============================================================================
# Instagram
# =============================================================================


@router.get(
    "/{slug}/instagram-feed",
    response_model=InstagramFeedResponse,
    summary="Instagram feed",
    description=(
        "Recent image posts of the shop's linked Instagram account. Upstream "
        "failures give an empty list; an expired token is reported in `error`."
    ),
)
async def instagram_feed(
    tenant: Annotated[PatissierProfile, Depends(get_tenant)],
    instagram: Annotated[InstagramService, Depends(get_instagram_service)],
) -> InstagramFeedResponse:
    feed = await instagram.fetch_feed(tenant.instagram_access_token)
    return InstagramFeedResponse(posts=feed.posts, error=feed.error)
