"""Shop profile, storefront design and image slots."""

import re
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.api.dependencies import get_db, get_tenant_scope
from patissio.api.schemas.profile import (
    ImageRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    SiteDesignRequest,
    SiteSettingsRequest,
    TenantStatsResponse,
)
from patissio.core.exceptions import ForbiddenError, InvalidRequestError
from patissio.core.support import TenantScope
from patissio.db.models import PatissierProfile
from patissio.db.repositories import ProfileRepository
from patissio.services.stats import tenant_stats

router = APIRouter(tags=["patissier"])
logger = structlog.get_logger()

# Fixed image slots and the profile column each one fills
IMAGE_SLOTS: dict[str, str] = {
    "logo": "logo_url",
    "hero": "hero_image_url",
    "story": "story_image_url",
}
PAGE_SLOT_PREFIX = "page-"
_PAGE_NAME = re.compile(r"^[a-z0-9][a-z0-9-]{0,39}$")


def image_slot_updates(profile: PatissierProfile, slot: str, url: str | None) -> dict[str, Any]:
    """Profile updates that set (or clear, with ``url=None``) one image slot.

    ``logo``, ``hero`` and ``story`` map to their own columns. ``page-{name}``
    sets the hero image of one storefront page.

    Raises:
        InvalidRequestError: If the slot name is unknown
    """
    if slot in IMAGE_SLOTS:
        return {IMAGE_SLOTS[slot]: url}
    if slot.startswith(PAGE_SLOT_PREFIX):
        page = slot[len(PAGE_SLOT_PREFIX):]
        if _PAGE_NAME.match(page):
            images = dict(profile.page_hero_images or {})
            if url is None:
                images.pop(page, None)
            else:
                images[page] = url
            return {"page_hero_images": images}
    raise InvalidRequestError(f"Unknown image slot: {slot}", "slot")


async def _save(db: AsyncSession, scope: TenantScope, updates: dict[str, Any]) -> ProfileResponse:
    profile = await ProfileRepository(db).update(scope.profile, updates)
    logger.info(
        "profile_updated",
        fields=sorted(updates),
        support_mode=scope.support_mode,
    )
    return ProfileResponse.model_validate(profile)


@router.get(
    "/profile",
    response_model=ProfileResponse,
    summary="Shop profile",
    description="Returns the active shop's profile. Available in support mode.",
)
async def get_profile(
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
) -> ProfileResponse:
    return ProfileResponse.model_validate(scope.profile)


@router.patch(
    "/profile",
    response_model=ProfileResponse,
    summary="Update shop profile",
    description="Partial update of the shop's details. Available in support mode.",
)
async def update_profile(
    body: ProfileUpdateRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileResponse:
    updates = body.model_dump(exclude_unset=True)
    if scope.support_mode and "allow_support_access" in updates:
        raise ForbiddenError("Support access can only be changed by the shop owner")
    return await _save(db, scope, updates)


@router.put(
    "/site-design",
    response_model=ProfileResponse,
    summary="Update storefront design",
    description="Sets colors, font, logo and hero image. Available in support mode.",
)
async def update_site_design(
    body: SiteDesignRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileResponse:
    return await _save(db, scope, body.model_dump(exclude_unset=True))


@router.put(
    "/site",
    response_model=ProfileResponse,
    summary="Update storefront settings",
    description=(
        "Sets the site layout, story image and the order and workshop switches. "
        "Available in support mode."
    ),
)
async def update_site(
    body: SiteSettingsRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileResponse:
    return await _save(db, scope, body.model_dump(exclude_unset=True))


@router.put(
    "/images/{slot}",
    response_model=ProfileResponse,
    summary="Set an image",
    description="Stores an image URL in a slot: logo, hero, story or page-{name}.",
)
async def set_image(
    slot: str,
    body: ImageRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileResponse:
    return await _save(db, scope, image_slot_updates(scope.profile, slot, body.url))


@router.delete(
    "/images/{slot}",
    response_model=ProfileResponse,
    summary="Clear an image",
    description="Clears an image slot: logo, hero, story or page-{name}.",
)
async def clear_image(
    slot: str,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileResponse:
    return await _save(db, scope, image_slot_updates(scope.profile, slot, None))


@router.get(
    "/stats",
    response_model=TenantStatsResponse,
    summary="Dashboard figures",
    description="Order counts by status, paid revenue, workshop and booking counts.",
)
async def get_stats(
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TenantStatsResponse:
    return TenantStatsResponse.model_validate(await tenant_stats(db, scope.profile))
