"""Platform subscription billing, Stripe Connect onboarding and Stripe webhooks."""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.config.settings import Settings
from patissio.core.exceptions import InvalidRequestError, ResourceNotFoundError
from patissio.core.plans import PLANS
from patissio.db.models import (
    BillingInterval,
    BookingStatus,
    NotificationType,
    Order,
    OrderPaymentStatus,
    OrderStatus,
    PatissierProfile,
    PaymentState,
    PlanTier,
    Subscription,
    SubscriptionStatus,
    User,
    Workshop,
    WorkshopBooking,
    WorkshopStatus,
)
from patissio.db.repositories import (
    BookingRepository,
    OrderRepository,
    ProfileRepository,
    SubscriptionRepository,
    UserRepository,
    WorkshopRepository,
    find_owner,
)
from patissio.services.email import EmailService
from patissio.services.notifications import NotificationService
from patissio.services.payments import (
    ConnectAccountStatus,
    StripeService,
    SubscriptionSnapshot,
    from_timestamp,
)
from patissio.utils.time import utcnow

logger = structlog.get_logger()

PAID_PLANS = (PlanTier.PRO.value, PlanTier.PREMIUM.value)


def list_plans() -> list[dict[str, Any]]:
    """The public plan catalogue, lowest tier first."""
    return [{"id": plan_id, **plan} for plan_id, plan in PLANS.items()]


@dataclass
class SubscribeResult:
    """Outcome of a subscribe request: a checkout to visit, or an in-place upgrade."""

    url: str | None = None
    upgraded: bool = False


# =============================================================================
# Subscriptions
# =============================================================================


class BillingService:
    """Manage one user's platform subscription."""

    def __init__(self, db: AsyncSession, user: User, settings: Settings, stripe: StripeService):
        self.db = db
        self.user = user
        self.settings = settings
        self.stripe = stripe
        self.subscriptions = SubscriptionRepository(db)

    async def current(self) -> Subscription | None:
        return await self.subscriptions.get_latest(self.user.id)

    async def _find(self, *criteria: Any) -> Subscription | None:
        result = await self.db.execute(
            select(Subscription)
            .where(Subscription.user_id == self.user.id, *criteria)
            .order_by(Subscription.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _customer_id(self) -> str | None:
        subscription = await self._find(Subscription.stripe_customer_id.is_not(None))
        return subscription.stripe_customer_id if subscription else None

    async def subscribe(self, plan: str, interval: str) -> SubscribeResult:
        """Start a subscription checkout, or switch the price of an active subscription.

        Raises:
            InvalidRequestError: If the plan or interval is unknown or has no price
        """
        if plan not in PAID_PLANS:
            raise InvalidRequestError("Invalid plan. Use pro or premium.", "plan")
        if interval not in (BillingInterval.MONTHLY.value, BillingInterval.YEARLY.value):
            raise InvalidRequestError("Invalid billing interval", "interval")
        price_id = self.settings.get_price_id(plan, interval)
        if not price_id:
            raise InvalidRequestError("Price not configured for this plan", "plan")

        active = await self._find(Subscription.status == SubscriptionStatus.ACTIVE.value)
        if active is not None and active.stripe_subscription_id:
            await self.stripe.update_subscription_plan(active.stripe_subscription_id, price_id)
            logger.info(
                "subscription_plan_change_requested",
                user_id=str(self.user.id),
                plan=plan,
                interval=interval,
            )
            return SubscribeResult(upgraded=True)

        frontend = self.settings.FRONTEND_URL
        session = await self.stripe.create_subscription_checkout(
            customer_id=active.stripe_customer_id if active else await self._customer_id(),
            customer_email=self.user.email,
            price_id=price_id,
            success_url=f"{frontend}/billing?success=true",
            cancel_url=f"{frontend}/billing?cancelled=true",
            user_id=self.user.id,
        )
        logger.info("subscription_checkout_created", user_id=str(self.user.id), plan=plan)
        return SubscribeResult(url=session.url)

    async def cancel(self) -> Subscription:
        """Cancel the active subscription at the end of its period.

        Raises:
            ResourceNotFoundError: If there is no active subscription
            InvalidRequestError: If the subscription is not billed through Stripe
        """
        subscription = await self._find(Subscription.status == SubscriptionStatus.ACTIVE.value)
        if subscription is None:
            raise ResourceNotFoundError("subscription", "active")
        return await self._set_cancel_at_period_end(subscription, True)

    async def resume(self) -> Subscription:
        """Undo a pending cancellation.

        Raises:
            ResourceNotFoundError: If no subscription is pending cancellation
            InvalidRequestError: If the subscription is not billed through Stripe
        """
        subscription = await self._find(Subscription.cancel_at_period_end.is_(True))
        if subscription is None:
            raise ResourceNotFoundError("subscription", "pending_cancellation")
        return await self._set_cancel_at_period_end(subscription, False)

    async def _set_cancel_at_period_end(
        self, subscription: Subscription, cancel: bool
    ) -> Subscription:
        if not subscription.stripe_subscription_id:
            raise InvalidRequestError("No Stripe subscription on record", "subscription")
        await self.stripe.set_cancel_at_period_end(subscription.stripe_subscription_id, cancel)
        subscription = await self.subscriptions.update(
            subscription, {"cancel_at_period_end": cancel}
        )
        logger.info(
            "subscription_cancel_at_period_end_set",
            user_id=str(self.user.id),
            cancel_at_period_end=cancel,
        )
        return subscription

    async def invoices(self) -> list[dict[str, Any]]:
        customer_id = await self._customer_id()
        if customer_id is None:
            return []
        return await self.stripe.list_invoices(customer_id)

    async def portal_url(self) -> str:
        """Billing portal link for the user's Stripe customer.

        Raises:
            InvalidRequestError: If the user has never been a Stripe customer
        """
        customer_id = await self._customer_id()
        if customer_id is None:
            raise InvalidRequestError("No Stripe customer found")
        return await self.stripe.create_billing_portal_session(
            customer_id, f"{self.settings.FRONTEND_URL}/billing"
        )


# =============================================================================
# Stripe Connect
# =============================================================================


@dataclass
class ConnectState:
    """Connect onboarding state reported to the patissier."""

    account_id: str
    onboarding_complete: bool
    onboarding_url: str | None = None
    charges_enabled: bool = False
    transfers_active: bool = False


class ConnectService:
    """Onboard a patissier onto Stripe Connect so clients can pay them online."""

    def __init__(
        self, db: AsyncSession, profile: PatissierProfile, settings: Settings, stripe: StripeService
    ):
        self.db = db
        self.profile = profile
        self.settings = settings
        self.stripe = stripe
        self.profiles = ProfileRepository(db)

    async def connect(self, owner_email: str) -> ConnectState:
        """Create the connected account if missing and return an onboarding link."""
        account_id = self.profile.stripe_account_id
        if account_id:
            status = await self.stripe.get_connect_account(account_id)
            if status.onboarding_complete:
                await self._mark_complete()
                return self._state(status)
        else:
            account_id = await self.stripe.create_connect_account(self.profile.id, owner_email)
            self.profile = await self.profiles.update(
                self.profile, {"stripe_account_id": account_id}
            )
            logger.info(
                "connect_account_created", tenant_id=str(self.profile.id), account_id=account_id
            )

        settings_page = f"{self.settings.FRONTEND_URL}/settings"
        url = await self.stripe.create_onboarding_link(
            account_id,
            refresh_url=f"{settings_page}?stripe=refresh",
            return_url=f"{settings_page}?stripe=callback",
        )
        return ConnectState(account_id=account_id, onboarding_complete=False, onboarding_url=url)

    async def refresh(self) -> ConnectState:
        """Re-read onboarding status after the patissier returns from Stripe.

        Raises:
            InvalidRequestError: If onboarding was never started
        """
        if not self.profile.stripe_account_id:
            raise InvalidRequestError(
                "No Stripe account found. Please start the onboarding process first."
            )
        status = await self.stripe.get_connect_account(self.profile.stripe_account_id)
        if status.details_submitted and not status.transfers_active:
            await self.stripe.request_transfers_capability(status.account_id)
        if status.onboarding_complete:
            await self._mark_complete()
        return self._state(status)

    async def dashboard_url(self) -> str:
        """Express dashboard login link.

        Raises:
            InvalidRequestError: If onboarding is not complete
        """
        if not self.profile.can_accept_online_payment:
            raise InvalidRequestError("Stripe onboarding is not complete")
        return await self.stripe.create_login_link(self.profile.stripe_account_id)

    async def _mark_complete(self) -> None:
        if not self.profile.stripe_onboarding_complete:
            self.profile = await self.profiles.update(
                self.profile, {"stripe_onboarding_complete": True}
            )
            logger.info("connect_onboarding_complete", tenant_id=str(self.profile.id))

    def _state(self, status: ConnectAccountStatus) -> ConnectState:
        return ConnectState(
            account_id=status.account_id,
            onboarding_complete=status.onboarding_complete,
            charges_enabled=status.charges_enabled,
            transfers_active=status.transfers_active,
        )


# =============================================================================
# Webhooks
# =============================================================================


class StripeWebhookHandler:
    """Apply verified Stripe events to local records.

    Handlers are idempotent since Stripe retries deliveries. Events for
    unknown records are logged and ignored.

    Example:
        handler = StripeWebhookHandler(db, settings, stripe, email)
        await handler.handle(event)
    """

    def __init__(
        self, db: AsyncSession, settings: Settings, stripe: StripeService, email: EmailService
    ):
        self.db = db
        self.settings = settings
        self.stripe = stripe
        self.email = email
        self.subscriptions = SubscriptionRepository(db)
        self.profiles = ProfileRepository(db)
        self.users = UserRepository(db)

    async def handle(self, event: dict[str, Any]) -> bool:
        """Dispatch one event.

        Returns:
            Whether the event type is handled
        """
        handlers = {
            "checkout.session.completed": self._checkout_completed,
            "customer.subscription.updated": self._subscription_updated,
            "customer.subscription.deleted": self._subscription_deleted,
            "invoice.paid": self._invoice_paid,
            "invoice.payment_failed": self._invoice_payment_failed,
            "account.updated": self._account_updated,
        }
        event_type = event.get("type", "")
        handler = handlers.get(event_type)
        if handler is None:
            logger.debug("stripe_event_ignored", event_type=event_type)
            return False
        logger.info("stripe_event_received", event_type=event_type, event_id=event.get("id"))
        await handler(event["data"]["object"])
        return True

    # -------------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------------

    async def _checkout_completed(self, session: dict[str, Any]) -> None:
        mode = session.get("mode")
        metadata = session.get("metadata") or {}
        if mode == "subscription":
            await self._activate_subscription(session, metadata)
        elif mode == "payment":
            if metadata.get("booking_id"):
                await self._booking_paid(session, UUID(metadata["booking_id"]))
            elif metadata.get("order_id"):
                await self._order_paid(session, UUID(metadata["order_id"]))
            else:
                logger.warning("stripe_payment_without_reference", session_id=session.get("id"))

    async def _activate_subscription(self, session: dict[str, Any], metadata: dict) -> None:
        user_id = metadata.get("user_id")
        if not user_id or not session.get("subscription"):
            logger.warning(
                "stripe_subscription_checkout_without_user", session_id=session.get("id")
            )
            return
        user_id = UUID(user_id)

        snapshot = await self.stripe.get_subscription(session["subscription"])
        plan_info = self.settings.get_plan_for_price(snapshot.price_id or "")
        if plan_info is None:
            logger.error("stripe_unknown_price", price_id=snapshot.price_id)
            return
        plan, interval = plan_info

        values = {
            "plan": plan,
            "billing_interval": interval,
            "stripe_customer_id": session.get("customer") or snapshot.customer_id,
            "stripe_subscription_id": snapshot.subscription_id,
            "status": SubscriptionStatus.ACTIVE.value,
            "current_period_start": snapshot.current_period_start,
            "current_period_end": snapshot.current_period_end,
            "cancel_at_period_end": False,
            "canceled_at": None,
        }
        existing = await self.subscriptions.get_latest(user_id)
        if existing is not None:
            await self.subscriptions.update(existing, values, commit=False)
        else:
            await self.subscriptions.create(Subscription(user_id=user_id, **values), commit=False)
        await self._set_profile_plan(user_id, plan)
        await self.db.commit()
        logger.info("subscription_activated", user_id=str(user_id), plan=plan, interval=interval)

    async def _booking_paid(self, session: dict[str, Any], booking_id: UUID) -> None:
        tenant_id = await find_owner(self.db, WorkshopBooking, WorkshopBooking.id == booking_id)
        profile = await self.profiles.get(tenant_id) if tenant_id else None
        if profile is None:
            logger.warning("stripe_booking_not_found", booking_id=str(booking_id))
            return

        bookings = BookingRepository(self.db, profile.id)
        booking = await bookings.get_or_raise(booking_id)
        if booking.status == BookingStatus.CONFIRMED.value:
            logger.info("stripe_booking_already_confirmed", booking_id=str(booking_id))
            return

        workshop: Workshop = await WorkshopRepository(self.db, profile.id).get_or_raise(
            booking.workshop_id
        )
        payment = {
            "deposit_payment_status": PaymentState.PAID.value,
            "deposit_paid_at": utcnow(),
            "stripe_checkout_session_id": session.get("id"),
            "stripe_payment_intent_id": session.get("payment_intent"),
        }

        # Released seats may have been sold again; the deposit is refunded by hand
        if (
            booking.status == BookingStatus.CANCELLED.value
            or workshop.status == WorkshopStatus.CANCELLED.value
        ):
            await bookings.update(booking, payment)
            logger.warning(
                "stripe_booking_paid_after_cancel",
                booking_id=str(booking.id),
                workshop_status=workshop.status,
                payment_intent=session.get("payment_intent"),
            )
            return

        booking = await bookings.update(
            booking, {"status": BookingStatus.CONFIRMED.value, **payment}
        )
        logger.info("booking_deposit_paid", booking_id=str(booking.id))

        await self.email.send_payment_confirmation(booking, workshop, profile)
        owner = await self.users.get(profile.user_id)
        if owner is not None:
            await NotificationService(self.db).create(
                owner.id,
                NotificationType.PAYMENT_RECEIVED,
                f"Acompte reçu : {workshop.title}",
                f"{booking.client_name} a réglé son acompte",
                data={"booking_id": str(booking.id), "workshop_id": str(workshop.id)},
                action_url=f"/workshops/{workshop.id}",
            )

    async def _order_paid(self, session: dict[str, Any], order_id: UUID) -> None:
        tenant_id = await find_owner(self.db, Order, Order.id == order_id)
        profile = await self.profiles.get(tenant_id) if tenant_id else None
        if profile is None:
            logger.warning("stripe_order_not_found", order_id=str(order_id))
            return

        orders = OrderRepository(self.db, profile.id)
        order = await orders.get_or_raise(order_id)
        if order.payment_status == OrderPaymentStatus.PAID.value:
            logger.info("stripe_order_already_paid", order_id=str(order_id))
            return

        now = utcnow()
        updates: dict[str, Any] = {
            "payment_status": OrderPaymentStatus.PAID.value,
            "paid_at": now,
            "stripe_payment_intent_id": session.get("payment_intent"),
        }
        if order.status == OrderStatus.PENDING.value:
            updates["status"] = OrderStatus.CONFIRMED.value
            updates["confirmed_at"] = now
        order = await orders.update(order, updates)
        logger.info("order_paid", order_id=str(order.id), status=order.status)

        await self.email.send_order_payment_confirmation(order, profile)
        owner = await self.users.get(profile.user_id)
        if owner is not None:
            await self.email.send_order_payment_notification(owner.email, order, profile)
            await NotificationService(self.db).create(
                owner.id,
                NotificationType.PAYMENT_RECEIVED,
                f"Paiement reçu : commande {order.order_number}",
                f"{order.client_name} a réglé sa commande",
                data={"order_id": str(order.id), "order_number": order.order_number},
                action_url=f"/orders/{order.id}",
            )

    # -------------------------------------------------------------------------
    # Subscriptions and invoices
    # -------------------------------------------------------------------------

    async def _subscription_updated(self, data: dict[str, Any]) -> None:
        subscription = await self.subscriptions.get_by_stripe_id(data["id"])
        if subscription is None:
            return
        snapshot = SubscriptionSnapshot.from_stripe(data)

        updates: dict[str, Any] = {"cancel_at_period_end": snapshot.cancel_at_period_end}
        if snapshot.status in (SubscriptionStatus.ACTIVE.value, SubscriptionStatus.PAST_DUE.value):
            updates["status"] = snapshot.status
        if snapshot.current_period_start is not None:
            updates["current_period_start"] = snapshot.current_period_start
        if snapshot.current_period_end is not None:
            updates["current_period_end"] = snapshot.current_period_end

        plan_info = self.settings.get_plan_for_price(snapshot.price_id or "")
        if plan_info is not None and plan_info[0] != subscription.plan:
            updates["plan"], updates["billing_interval"] = plan_info
            await self._set_profile_plan(subscription.user_id, plan_info[0])

        await self.subscriptions.update(subscription, updates)
        logger.info(
            "subscription_updated",
            subscription_id=data["id"],
            status=subscription.status,
            plan=subscription.plan,
        )

    async def _subscription_deleted(self, data: dict[str, Any]) -> None:
        subscription = await self.subscriptions.get_by_stripe_id(data["id"])
        if subscription is None:
            return
        await self.subscriptions.update(
            subscription,
            {"status": SubscriptionStatus.CANCELED.value, "canceled_at": utcnow()},
            commit=False,
        )
        await self._set_profile_plan(subscription.user_id, PlanTier.STARTER.value)
        await self.db.commit()
        logger.info(
            "subscription_deleted", subscription_id=data["id"], user_id=str(subscription.user_id)
        )

    async def _invoice_paid(self, invoice: dict[str, Any]) -> None:
        subscription = await self._invoice_subscription(invoice)
        if subscription is None:
            return
        lines = (invoice.get("lines") or {}).get("data") or []
        period = lines[0].get("period") if lines else None
        if not period:
            return
        await self.subscriptions.update(
            subscription,
            {
                "status": SubscriptionStatus.ACTIVE.value,
                "current_period_start": from_timestamp(period.get("start")),
                "current_period_end": from_timestamp(period.get("end")),
            },
        )
        logger.info(
            "subscription_invoice_paid", subscription_id=subscription.stripe_subscription_id
        )

    async def _invoice_payment_failed(self, invoice: dict[str, Any]) -> None:
        subscription = await self._invoice_subscription(invoice)
        if subscription is None:
            return
        await self.subscriptions.update(subscription, {"status": SubscriptionStatus.PAST_DUE.value})
        logger.warning(
            "subscription_payment_failed", subscription_id=subscription.stripe_subscription_id
        )

    async def _invoice_subscription(self, invoice: dict[str, Any]) -> Subscription | None:
        subscription_id = invoice.get("subscription")
        if not subscription_id:
            # Newer API versions nest it under parent.subscription_details
            details = (invoice.get("parent") or {}).get("subscription_details") or {}
            subscription_id = details.get("subscription")
        if not subscription_id:
            return None
        return await self.subscriptions.get_by_stripe_id(subscription_id)

    # -------------------------------------------------------------------------
    # Connect
    # -------------------------------------------------------------------------

    async def _account_updated(self, account: dict[str, Any]) -> None:
        profile = await self.profiles.get_by_stripe_account(account["id"])
        if profile is None:
            return
        status = ConnectAccountStatus.from_stripe(account)
        if status.onboarding_complete and not profile.stripe_onboarding_complete:
            await self.profiles.update(profile, {"stripe_onboarding_complete": True})
            logger.info("connect_onboarding_complete", tenant_id=str(profile.id))

    async def _set_profile_plan(self, user_id: UUID, plan: str) -> None:
        profile = await self.profiles.get_by_user(user_id)
        if profile is not None:
            await self.profiles.update(profile, {"plan": plan}, commit=False)
            logger.info("tenant_plan_changed", tenant_id=str(profile.id), plan=plan)
