"""Custom domain of the active shop. Requires the premium plan."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.api.dependencies import (
    get_db,
    get_domain_service,
    get_settings,
    get_tenant_scope,
    require_plan,
)
from patissio.api.schemas.profile import DomainRequest, DomainResponse, DomainVerifyResponse
from patissio.config.settings import Settings
from patissio.core.exceptions import ConflictError, InvalidRequestError
from patissio.core.support import TenantScope
from patissio.db.models import PatissierProfile, PlanTier
from patissio.db.repositories import ProfileRepository
from patissio.services.domains import VERCEL_CNAME_TARGET, DomainService, normalize_domain

router = APIRouter(
    prefix="/domain",
    tags=["patissier-domain"],
    dependencies=[Depends(require_plan(PlanTier.PREMIUM.value))],
)
logger = structlog.get_logger()


def validate_custom_domain(raw: str, platform_domain: str) -> str:
    """Normalize a custom domain and reject what cannot be attached.

    Raises:
        InvalidRequestError: If the value carries a protocol, path or
            whitespace, or names the platform's own domain
    """
    domain = normalize_domain(raw)
    if "://" in domain or "/" in domain or any(ch.isspace() for ch in domain) or "." not in domain:
        raise InvalidRequestError(
            "Invalid domain format. Provide just the domain (e.g. mon-site.com)", "domain"
        )
    platform = platform_domain.lower()
    if domain == platform or domain.endswith(f".{platform}"):
        raise InvalidRequestError(
            f"A {platform} domain cannot be used as a custom domain", "domain"
        )
    return domain


def _domain_response(profile: PatissierProfile) -> DomainResponse:
    return DomainResponse(
        domain=profile.custom_domain,
        verified=profile.custom_domain_verified,
        cname_target=VERCEL_CNAME_TARGET if profile.custom_domain else None,
    )


@router.get(
    "",
    response_model=DomainResponse,
    summary="Current custom domain",
)
async def get_domain(
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
) -> DomainResponse:
    return _domain_response(scope.profile)


@router.put(
    "",
    response_model=DomainResponse,
    summary="Attach a custom domain",
    description=(
        "Registers the domain with the hosting provider and stores it unverified. "
        "Point a CNAME at `cname_target`, then call the verify endpoint."
    ),
)
async def set_domain(
    body: DomainRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    domains: Annotated[DomainService, Depends(get_domain_service)],
) -> DomainResponse:
    domain = validate_custom_domain(body.domain, settings.PLATFORM_DOMAIN)

    profiles = ProfileRepository(db)
    holder = await profiles.get_by_domain(domain)
    if holder is not None and holder.id != scope.tenant_id:
        raise ConflictError("This domain is already used by another shop", "domain", domain)

    async with domains:
        await domains.add_domain(domain)

    profile = await profiles.update(
        scope.profile, {"custom_domain": domain, "custom_domain_verified": False}
    )
    logger.info("custom_domain_set", domain=domain)
    return _domain_response(profile)


@router.delete(
    "",
    response_model=DomainResponse,
    summary="Detach the custom domain",
    description="Removes the domain from the hosting provider and clears it from the shop.",
)
async def remove_domain(
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
    domains: Annotated[DomainService, Depends(get_domain_service)],
) -> DomainResponse:
    profile = scope.profile
    if not profile.custom_domain:
        return _domain_response(profile)

    domain = profile.custom_domain
    async with domains:
        await domains.remove_domain(domain)
    profile = await ProfileRepository(db).update(
        profile, {"custom_domain": None, "custom_domain_verified": False}
    )
    logger.info("custom_domain_removed", domain=domain)
    return _domain_response(profile)


@router.get(
    "/verify",
    response_model=DomainVerifyResponse,
    summary="Verify the custom domain",
    description=(
        "Asks the hosting provider for the domain's state and stores whether "
        "it is verified."
    ),
)
async def verify_domain(
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
    domains: Annotated[DomainService, Depends(get_domain_service)],
) -> DomainVerifyResponse:
    profile = scope.profile
    if not profile.custom_domain:
        raise InvalidRequestError("No custom domain configured", "domain")

    async with domains:
        config = await domains.get_domain_config(profile.custom_domain)

    verified = config.status == "verified"
    if verified != profile.custom_domain_verified:
        profile = await ProfileRepository(db).update(profile, {"custom_domain_verified": verified})
    logger.info("custom_domain_checked", domain=profile.custom_domain, status=config.status)
    return DomainVerifyResponse(
        domain=profile.custom_domain,
        status=config.status,
        verified=verified,
        verification=config.verification,
    )
