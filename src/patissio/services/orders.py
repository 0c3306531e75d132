"""Order workflows: client checkout, fulfilment status, quotes and messages."""

import random
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.config.settings import Settings
from patissio.core.exceptions import (
    ConflictError,
    InvalidRequestError,
    ProviderNotConfiguredError,
    ResourceNotFoundError,
    UpstreamServiceError,
)
from patissio.core.plans import plan_satisfies
from patissio.db.models import (
    DeliveryMethod,
    MessageSender,
    NotificationType,
    Order,
    OrderItem,
    OrderMessage,
    OrderPaymentStatus,
    OrderStatus,
    OrderType,
    PatissierProfile,
    PlanTier,
    User,
)
from patissio.db.repositories import (
    OrderRepository,
    ProductRepository,
    ProfileRepository,
    UserRepository,
    find_owner,
)
from patissio.services.email import EmailService
from patissio.services.notifications import NotificationService
from patissio.services.payments import StripeService
from patissio.utils.time import utcnow

logger = structlog.get_logger()

ORDER_NUMBER_ATTEMPTS = 10
_CENT = Decimal("0.01")


def generate_order_number(today: date | None = None) -> str:
    """Build a ``PAT-YYYYMMDD-NNN`` order number."""
    today = today or utcnow().date()
    return f"PAT-{today:%Y%m%d}-{random.randint(0, 999):03d}"


@dataclass
class OrderLine:
    """One catalogue line requested by the client."""

    product_id: UUID
    quantity: int
    special_instructions: str | None = None


@dataclass
class OrderDraft:
    """A client's order before it is priced and numbered."""

    type: OrderType
    client_name: str
    client_email: str
    client_phone: str | None = None
    delivery_method: DeliveryMethod = DeliveryMethod.PICKUP
    requested_date: date | None = None
    delivery_address: str | None = None
    delivery_notes: str | None = None
    items: list[OrderLine] = field(default_factory=list)
    custom_type: str | None = None
    custom_nb_personnes: int | None = None
    custom_date_souhaitee: date | None = None
    custom_theme: str | None = None
    custom_allergies: str | None = None
    custom_photo_inspiration_url: str | None = None
    custom_message: str | None = None


@dataclass
class QuoteResult:
    """A quoted order, its payment link if one was created, and any warnings."""

    order: Order
    checkout_url: str | None = None
    warnings: list[str] = field(default_factory=list)


class OrderService:
    """Order operations for one tenant."""

    def __init__(
        self,
        db: AsyncSession,
        profile: PatissierProfile,
        settings: Settings,
        stripe: StripeService,
        email: EmailService,
    ):
        self.db = db
        self.profile = profile
        self.settings = settings
        self.stripe = stripe
        self.email = email
        self.orders = OrderRepository(db, profile.id)
        self.products = ProductRepository(db, profile.id)
        self.notifications = NotificationService(db)

    @classmethod
    async def for_order_number(
        cls,
        db: AsyncSession,
        order_number: str,
        settings: Settings,
        stripe: StripeService,
        email: EmailService,
    ) -> "OrderService":
        """Build the service for the tenant owning an order number.

        Raises:
            ResourceNotFoundError: If no order has this number
        """
        tenant_id = await find_owner(db, Order, Order.order_number == order_number)
        profile = await ProfileRepository(db).get(tenant_id) if tenant_id else None
        if profile is None:
            raise ResourceNotFoundError("order", order_number)
        return cls(db, profile, settings, stripe, email)

    async def _owner(self) -> User | None:
        return await UserRepository(self.db).get(self.profile.user_id)

    # =========================================================================
    # Client checkout
    # =========================================================================

    async def place(self, draft: OrderDraft) -> Order:
        """Price, number and store a client order, then notify both sides.

        Raises:
            InvalidRequestError: If the shop does not take this kind of order
                or the lines are invalid
            ResourceNotFoundError: If a product is not in this shop
        """
        if not self.profile.orders_enabled or not plan_satisfies(
            self.profile.plan, PlanTier.PRO.value
        ):
            raise InvalidRequestError("This shop does not accept online orders")

        is_custom = draft.type == OrderType.CUSTOM
        if is_custom and not self.profile.accepts_custom_orders:
            raise InvalidRequestError("This shop does not accept custom orders", "type")

        items: list[OrderItem] = []
        subtotal: Decimal | None = None
        if not is_custom:
            items, subtotal = await self._price_lines(draft.items)

        order = Order(
            type=draft.type.value,
            client_name=draft.client_name,
            client_email=draft.client_email.strip().lower(),
            client_phone=draft.client_phone or None,
            delivery_method=draft.delivery_method.value,
            requested_date=draft.requested_date,
            delivery_address=draft.delivery_address or None,
            delivery_notes=draft.delivery_notes or None,
            subtotal=subtotal,
            total=subtotal,
            status=OrderStatus.PENDING.value,
            payment_status=OrderPaymentStatus.PENDING.value,
        )
        if is_custom:
            order.custom_type = draft.custom_type
            order.custom_nb_personnes = draft.custom_nb_personnes
            order.custom_date_souhaitee = draft.custom_date_souhaitee
            order.custom_theme = draft.custom_theme
            order.custom_allergies = draft.custom_allergies
            order.custom_photo_inspiration_url = draft.custom_photo_inspiration_url
            order.custom_message = draft.custom_message

        await self._insert_numbered(order, items)
        logger.info(
            "order_created",
            order_id=str(order.id),
            order_number=order.order_number,
            type=order.type,
            items=len(items),
        )

        order = await self.orders.get_detailed_or_raise(order.id)
        await self.email.send_order_confirmation(order, self.profile)
        owner = await self._owner()
        if owner is not None:
            await self.email.send_new_order_notification(owner.email, order, self.profile)
            await self.notifications.create(
                owner.id,
                NotificationType.NEW_ORDER,
                f"Nouvelle commande {order.order_number}",
                f"{order.client_name} a passé une commande",
                data={"order_id": str(order.id), "order_number": order.order_number},
                action_url=f"/orders/{order.id}",
            )
        return order

    async def _price_lines(self, lines: list[OrderLine]) -> tuple[list[OrderItem], Decimal]:
        if not lines:
            raise InvalidRequestError("A catalogue order needs at least one item", "items")

        items: list[OrderItem] = []
        subtotal = Decimal("0")
        for line in lines:
            product = await self.products.get(line.product_id)
            if product is None:
                raise ResourceNotFoundError("product", str(line.product_id))
            if not product.is_available or not product.is_visible:
                raise InvalidRequestError(f"{product.name} is not available", "items")
            if line.quantity < product.min_quantity or (
                product.max_quantity is not None and line.quantity > product.max_quantity
            ):
                raise InvalidRequestError(
                    f"Invalid quantity for {product.name}", "items"
                )
            line_total = (Decimal(product.price) * line.quantity).quantize(_CENT)
            subtotal += line_total
            items.append(
                OrderItem(
                    product_id=product.id,
                    product_name=product.name,
                    unit_price=product.price,
                    quantity=line.quantity,
                    total=line_total,
                    special_instructions=line.special_instructions or None,
                )
            )
        return items, subtotal.quantize(_CENT)

    async def _number_taken(self, number: str) -> bool:
        return await find_owner(self.db, Order, Order.order_number == number) is not None

    async def _insert_numbered(self, order: Order, items: list[OrderItem]) -> None:
        """Insert an order under a fresh order number.

        A number another request stored between the check and the insert
        is retried with a new one.

        Raises:
            ConflictError: If no free number was found in ORDER_NUMBER_ATTEMPTS tries
        """
        order.items = list(items)
        for _ in range(ORDER_NUMBER_ATTEMPTS):
            candidate = generate_order_number()
            if await self._number_taken(candidate):
                continue
            order.order_number = candidate
            try:
                await self.orders.create(order, commit=False)
                await self.db.commit()
                return
            except IntegrityError:
                await self.db.rollback()
                if not await self._number_taken(candidate):
                    raise
                logger.warning("order_number_collision", order_number=candidate)
                # The rollback expired the tenant profile read earlier
                if self.profile in self.db:
                    await self.db.refresh(self.profile)
        raise ConflictError("Could not allocate an order number", "order_number", candidate)

    # =========================================================================
    # Back office
    # =========================================================================

    async def list_orders(
        self,
        *,
        status: OrderStatus | None = None,
        order_type: OrderType | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Order], int]:
        """Page through this tenant's orders, newest first."""
        criteria = []
        if status is not None:
            criteria.append(Order.status == status.value)
        if order_type is not None:
            criteria.append(Order.type == order_type.value)
        items = await self.orders.list(
            *criteria,
            order_by=Order.created_at.desc(),
            limit=limit,
            offset=(page - 1) * limit,
        )
        return items, await self.orders.count(*criteria)

    async def get(self, order_id: UUID) -> Order:
        return await self.orders.get_detailed_or_raise(order_id)

    async def update_status(
        self,
        order_id: UUID,
        status: OrderStatus,
        *,
        confirmed_date: date | None = None,
        cancellation_reason: str | None = None,
    ) -> Order:
        """Move an order along its fulfilment states and email the client."""
        order = await self.orders.get_or_raise(order_id)
        now = utcnow()
        updates: dict = {"status": status.value}
        if status == OrderStatus.CONFIRMED:
            updates["confirmed_at"] = now
            if confirmed_date is not None:
                updates["confirmed_date"] = confirmed_date
        elif status in (OrderStatus.DELIVERED, OrderStatus.PICKED_UP):
            updates["completed_at"] = now
        elif status == OrderStatus.CANCELLED:
            updates["cancelled_at"] = now
            if cancellation_reason:
                updates["cancellation_reason"] = cancellation_reason

        previous = order.status
        order = await self.orders.update(order, updates)
        logger.info(
            "order_status_changed",
            order_id=str(order.id),
            from_status=previous,
            to_status=order.status,
        )
        if previous != order.status:
            await self.email.send_order_status_update(order, self.profile)
        return await self.orders.get_detailed_or_raise(order.id)

    async def quote(
        self,
        order_id: UUID,
        quoted_price: Decimal,
        *,
        response_message: str | None = None,
        deposit_percent: int = 100,
        confirmed_date: date | None = None,
    ) -> QuoteResult:
        """Price a custom order, offer a payment link and email the client.

        Raises:
            InvalidRequestError: If the order is not a custom order
        """
        order = await self.orders.get_or_raise(order_id)
        if order.type != OrderType.CUSTOM.value:
            raise InvalidRequestError("Quotes can only be set on custom orders", "type")

        updates: dict = {"quoted_price": quoted_price, "total": quoted_price}
        if response_message:
            updates["response_message"] = response_message
        if confirmed_date is not None:
            updates["confirmed_date"] = confirmed_date
        order = await self.orders.update(order, updates)

        deposit = (Decimal(quoted_price) * Decimal(deposit_percent) / Decimal(100)).quantize(
            _CENT, rounding=ROUND_HALF_UP
        )
        result = QuoteResult(order=order)
        if not self.profile.can_accept_online_payment:
            result.warnings.append(
                "Stripe Connect non configuré : le devis a été envoyé sans lien de paiement"
            )
        elif deposit > 0:
            page = f"{self.settings.FRONTEND_URL}/{self.profile.slug}/commandes"
            query = f"order={order.order_number}"
            try:
                session = await self.stripe.create_payment_checkout(
                    amount=deposit,
                    product_name=f"Acompte commande #{order.order_number}",
                    metadata={"order_id": str(order.id), "order_number": order.order_number},
                    customer_email=order.client_email,
                    connected_account_id=self.profile.stripe_account_id,
                    success_url=f"{page}?payment=success&{query}",
                    cancel_url=f"{page}?payment=cancelled&{query}",
                )
                result.checkout_url = session.url
            except (UpstreamServiceError, ProviderNotConfiguredError) as exc:
                logger.error("order_quote_checkout_failed", order_id=str(order.id), error=str(exc))
                result.warnings.append(
                    "La génération du lien de paiement Stripe a échoué : "
                    "le devis a été envoyé sans lien de paiement"
                )

        await self.email.send_quote(order, self.profile, result.checkout_url)
        logger.info(
            "order_quoted",
            order_id=str(order.id),
            quoted_price=str(quoted_price),
            checkout=result.checkout_url is not None,
        )
        result.order = await self.orders.get_detailed_or_raise(order.id)
        return result

    # =========================================================================
    # Messages
    # =========================================================================

    async def messages(self, order_id: UUID) -> list[OrderMessage]:
        order = await self.orders.get_or_raise(order_id)
        return await self.orders.messages(order)

    async def send_patissier_message(
        self, order_id: UUID, sender: User, message: str
    ) -> OrderMessage:
        """Post a message from the shop and email the client."""
        order = await self.orders.get_or_raise(order_id)
        order_message = await self.orders.add_message(
            order, MessageSender.PATISSIER.value, message, sender_id=sender.id
        )
        await self.email.send_order_message_notification(
            order.client_email, self.profile.business_name, order, message
        )
        return order_message

    # =========================================================================
    # Client access by order number
    # =========================================================================

    async def get_for_client(self, order_number: str, client_email: str) -> Order:
        """Load an order for the client who placed it.

        Raises:
            ResourceNotFoundError: If the number is unknown or the email does not match
        """
        order = await self.orders.get_detailed(Order.order_number == order_number)
        if order is None or order.client_email.lower() != client_email.strip().lower():
            raise ResourceNotFoundError("order", order_number)
        return order

    async def client_messages(self, order_number: str, client_email: str) -> list[OrderMessage]:
        order = await self.get_for_client(order_number, client_email)
        return list(order.messages)

    async def send_client_message(
        self, order_number: str, client_email: str, message: str
    ) -> OrderMessage:
        """Post a message from the client and alert the shop."""
        order = await self.get_for_client(order_number, client_email)
        order_message = await self.orders.add_message(order, MessageSender.CLIENT.value, message)
        owner = await self._owner()
        if owner is not None:
            await self.email.send_order_message_notification(
                owner.email, order.client_name, order, message
            )
            await self.notifications.create(
                owner.id,
                NotificationType.ORDER_MESSAGE,
                f"Nouveau message : commande {order.order_number}",
                message[:200],
                data={"order_id": str(order.id), "order_number": order.order_number},
                action_url=f"/orders/{order.id}",
            )
        return order_message
