"""Stripe Connect onboarding and the Instagram link of the active shop."""

from dataclasses import asdict
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.api.dependencies import get_db, get_settings, get_stripe_service, get_tenant_scope
from patissio.api.schemas.profile import (
    InstagramStatusResponse,
    InstagramTokenRequest,
    StripeConnectResponse,
    UrlResponse,
)
from patissio.config.settings import Settings
from patissio.core.support import TenantScope
from patissio.db.repositories import ProfileRepository
from patissio.services.billing import ConnectService
from patissio.services.payments import StripeService

router = APIRouter(prefix="/integrations", tags=["patissier-integrations"])
logger = structlog.get_logger()


def get_connect_service(
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    stripe: Annotated[StripeService, Depends(get_stripe_service)],
) -> ConnectService:
    return ConnectService(db, scope.profile, settings, stripe)


# =============================================================================
# Stripe Connect
# =============================================================================


@router.post(
    "/stripe/connect",
    response_model=StripeConnectResponse,
    summary="Start Stripe Connect onboarding",
    description="Creates the connected account if needed and returns an onboarding link.",
)
async def stripe_connect(
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    service: Annotated[ConnectService, Depends(get_connect_service)],
) -> StripeConnectResponse:
    state = await service.connect(scope.user.email)
    return StripeConnectResponse(**asdict(state))


@router.get(
    "/stripe/callback",
    response_model=StripeConnectResponse,
    summary="Refresh Stripe Connect status",
    description=(
        "Re-reads the connected account after onboarding. Onboarding is complete "
        "once charges are enabled, details are submitted and transfers are active."
    ),
)
async def stripe_callback(
    service: Annotated[ConnectService, Depends(get_connect_service)],
) -> StripeConnectResponse:
    return StripeConnectResponse(**asdict(await service.refresh()))


@router.get(
    "/stripe/dashboard",
    response_model=UrlResponse,
    summary="Stripe dashboard link",
)
async def stripe_dashboard(
    service: Annotated[ConnectService, Depends(get_connect_service)],
) -> UrlResponse:
    return UrlResponse(url=await service.dashboard_url())


# =============================================================================
# Instagram
# =============================================================================


@router.get(
    "/instagram",
    response_model=InstagramStatusResponse,
    summary="Instagram link status",
)
async def instagram_status(
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
) -> InstagramStatusResponse:
    return InstagramStatusResponse(connected=bool(scope.profile.instagram_access_token))


@router.put(
    "/instagram",
    response_model=InstagramStatusResponse,
    summary="Link Instagram",
    description="Stores a long-lived Instagram token obtained by the web app.",
)
async def instagram_link(
    body: InstagramTokenRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> InstagramStatusResponse:
    await ProfileRepository(db).update(
        scope.profile, {"instagram_access_token": body.access_token.strip()}
    )
    logger.info("instagram_linked")
    return InstagramStatusResponse(connected=True)


@router.delete(
    "/instagram",
    response_model=InstagramStatusResponse,
    summary="Unlink Instagram",
)
async def instagram_unlink(
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> InstagramStatusResponse:
    await ProfileRepository(db).update(scope.profile, {"instagram_access_token": None})
    logger.info("instagram_unlinked")
    return InstagramStatusResponse(connected=False)
