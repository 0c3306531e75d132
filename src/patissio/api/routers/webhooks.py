"""Inbound provider webhooks."""

from typing import Annotated

import stripe
import structlog
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.api.dependencies import (
    get_db,
    get_email_service,
    get_settings,
    get_stripe_service,
    throttle,
)
from patissio.api.schemas.billing import WebhookAck
from patissio.config.settings import Settings
from patissio.core.exceptions import InvalidRequestError
from patissio.core.logging import LogContext
from patissio.services.billing import StripeWebhookHandler
from patissio.services.email import EmailService
from patissio.services.payments import StripeService

router = APIRouter(
    prefix="/webhooks",
    tags=["webhooks"],
    dependencies=[Depends(throttle("webhooks"))],
)
logger = structlog.get_logger()


@router.post(
    "/stripe",
    response_model=WebhookAck,
    summary="Stripe webhook",
    description=(
        "Verifies the `Stripe-Signature` header and applies the event. "
        "Processing errors are logged and still acknowledged so Stripe does not "
        "retry an event that cannot succeed."
    ),
)
async def stripe_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    stripe_service: Annotated[StripeService, Depends(get_stripe_service)],
    email: Annotated[EmailService, Depends(get_email_service)],
    stripe_signature: Annotated[str | None, Header()] = None,
) -> WebhookAck:
    if not stripe_signature:
        raise InvalidRequestError("Missing Stripe-Signature header", "stripe-signature")

    payload = await request.body()
    try:
        event = stripe_service.construct_event(payload, stripe_signature)
    except (stripe.SignatureVerificationError, ValueError) as exc:
        logger.warning("stripe_webhook_rejected", error=str(exc))
        raise InvalidRequestError("Invalid webhook signature", "stripe-signature") from exc

    handler = StripeWebhookHandler(db, settings, stripe_service, email)
    with LogContext(event_type=event.get("type"), event_id=event.get("id")):
        try:
            await handler.handle(event)
        except Exception as exc:
            await db.rollback()
            logger.exception("stripe_webhook_failed", error_type=type(exc).__name__)
    return WebhookAck()
