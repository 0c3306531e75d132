"""Transactional email.

Messages are composed as plain subject and body and handed to a mail
transport. The default transport writes them to the structured log.
Delivery failures are logged and never fail the calling request.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

import structlog

from patissio.db.models import Order, PatissierProfile, Workshop, WorkshopBooking

logger = structlog.get_logger()


@dataclass(frozen=True)
class EmailMessage:
    """A rendered email."""

    to: str
    subject: str
    body: str
    template: str


class MailTransport(Protocol):
    """Delivers rendered emails."""

    async def send(self, message: EmailMessage) -> None: ...


class LoggingMailTransport:
    """Transport that records each email in the log instead of sending it."""

    async def send(self, message: EmailMessage) -> None:
        logger.info(
            "email_sent",
            to=message.to,
            subject=message.subject,
            template=message.template,
            body=message.body,
        )


def _money(amount: Decimal | None) -> str:
    if amount is None:
        return "-"
    return f"{Decimal(amount):.2f} EUR"


ORDER_STATUS_LABELS: dict[str, str] = {
    "pending": "en attente",
    "confirmed": "confirmée",
    "in_progress": "en préparation",
    "ready": "prête",
    "delivered": "livrée",
    "picked_up": "retirée",
    "cancelled": "annulée",
}


class EmailService:
    """Compose and send the platform's transactional emails."""

    def __init__(self, transport: MailTransport | None = None, frontend_url: str = ""):
        self.transport = transport or LoggingMailTransport()
        self.frontend_url = frontend_url.rstrip("/")

    async def _deliver(self, message: EmailMessage) -> bool:
        try:
            await self.transport.send(message)
        except Exception as exc:
            logger.error(
                "email_delivery_failed",
                to=message.to,
                template=message.template,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return False
        return True

    # =========================================================================
    # Workshops
    # =========================================================================

    async def send_booking_confirmation(
        self, booking: WorkshopBooking, workshop: Workshop, profile: PatissierProfile
    ) -> bool:
        body = (
            f"Bonjour {booking.client_name},\n\n"
            f"Votre réservation pour l'atelier « {workshop.title} » chez "
            f"{profile.business_name} est enregistrée.\n"
            f"Date : {workshop.date.isoformat()} à {workshop.start_time.strftime('%H:%M')}\n"
            f"Participants : {booking.nb_participants}\n"
            f"Total : {_money(booking.total_price)}\n"
            f"Acompte : {_money(booking.deposit_amount)}\n"
        )
        return await self._deliver(
            EmailMessage(
                to=booking.client_email,
                subject=f"Réservation confirmée : {workshop.title}",
                body=body,
                template="booking_confirmation",
            )
        )

    async def send_new_booking_notification(
        self,
        patissier_email: str,
        booking: WorkshopBooking,
        workshop: Workshop,
        profile: PatissierProfile,
    ) -> bool:
        body = (
            f"Bonjour {profile.business_name},\n\n"
            f"{booking.client_name} ({booking.client_email}) a réservé "
            f"{booking.nb_participants} place(s) pour « {workshop.title} » le "
            f"{workshop.date.isoformat()}.\n"
            f"Acompte : {_money(booking.deposit_amount)}\n"
        )
        return await self._deliver(
            EmailMessage(
                to=patissier_email,
                subject=f"Nouvelle réservation : {workshop.title}",
                body=body,
                template="new_booking_notification",
            )
        )

    async def send_booking_cancellation_notification(
        self,
        patissier_email: str,
        booking: WorkshopBooking,
        workshop: Workshop,
        profile: PatissierProfile,
    ) -> bool:
        body = (
            f"Bonjour {profile.business_name},\n\n"
            f"{booking.client_name} a annulé sa réservation de "
            f"{booking.nb_participants} place(s) pour « {workshop.title} » le "
            f"{workshop.date.isoformat()}.\n"
        )
        if booking.cancellation_reason:
            body += f"Motif : {booking.cancellation_reason}\n"
        return await self._deliver(
            EmailMessage(
                to=patissier_email,
                subject=f"Réservation annulée : {workshop.title}",
                body=body,
                template="booking_cancellation",
            )
        )

    async def send_workshop_cancelled(
        self,
        booking: WorkshopBooking,
        workshop: Workshop,
        profile: PatissierProfile,
        reason: str | None = None,
    ) -> bool:
        body = (
            f"Bonjour {booking.client_name},\n\n"
            f"L'atelier « {workshop.title} » prévu le {workshop.date.isoformat()} chez "
            f"{profile.business_name} est annulé. Votre réservation est annulée.\n"
        )
        body += f"\n{reason or 'Le pâtissier a annulé cet atelier.'}\n"
        return await self._deliver(
            EmailMessage(
                to=booking.client_email,
                subject=f"Atelier annulé : {workshop.title}",
                body=body,
                template="workshop_cancelled",
            )
        )

    async def send_payment_confirmation(
        self, booking: WorkshopBooking, workshop: Workshop, profile: PatissierProfile
    ) -> bool:
        body = (
            f"Bonjour {booking.client_name},\n\n"
            f"Nous avons bien reçu votre acompte de {_money(booking.deposit_amount)} pour "
            f"« {workshop.title} » chez {profile.business_name}.\n"
            f"Reste à régler sur place : {_money(booking.remaining_amount)}\n"
        )
        if workshop.location:
            body += f"Lieu : {workshop.location}\n"
        return await self._deliver(
            EmailMessage(
                to=booking.client_email,
                subject=f"Paiement reçu : {workshop.title}",
                body=body,
                template="payment_confirmation",
            )
        )

    # =========================================================================
    # Orders
    # =========================================================================

    def _order_url(self, profile: PatissierProfile, order: Order) -> str:
        return f"{self.frontend_url}/site/{profile.slug}/tracking/{order.order_number}"

    async def send_order_confirmation(self, order: Order, profile: PatissierProfile) -> bool:
        kind = "commande" if order.type == "catalogue" else "demande de devis"
        body = (
            f"Bonjour {order.client_name},\n\n"
            f"Votre {kind} n° {order.order_number} a bien été transmise à "
            f"{profile.business_name}.\n"
            f"Total : {_money(order.total)}\n"
            f"Suivi : {self._order_url(profile, order)}\n"
        )
        return await self._deliver(
            EmailMessage(
                to=order.client_email,
                subject=f"Commande {order.order_number} reçue",
                body=body,
                template="order_confirmation",
            )
        )

    async def send_new_order_notification(
        self, patissier_email: str, order: Order, profile: PatissierProfile
    ) -> bool:
        body = (
            f"Bonjour {profile.business_name},\n\n"
            f"Nouvelle commande n° {order.order_number} de {order.client_name} "
            f"({order.client_email}).\n"
            f"Type : {order.type}\n"
            f"Total : {_money(order.total)}\n"
        )
        return await self._deliver(
            EmailMessage(
                to=patissier_email,
                subject=f"Nouvelle commande {order.order_number}",
                body=body,
                template="new_order_notification",
            )
        )

    async def send_order_status_update(self, order: Order, profile: PatissierProfile) -> bool:
        label = ORDER_STATUS_LABELS.get(order.status, order.status)
        body = (
            f"Bonjour {order.client_name},\n\n"
            f"Votre commande n° {order.order_number} chez {profile.business_name} est "
            f"désormais {label}.\n"
        )
        if order.cancellation_reason:
            body += f"Motif : {order.cancellation_reason}\n"
        body += f"Suivi : {self._order_url(profile, order)}\n"
        return await self._deliver(
            EmailMessage(
                to=order.client_email,
                subject=f"Commande {order.order_number} : {label}",
                body=body,
                template="order_status_update",
            )
        )

    async def send_quote(
        self, order: Order, profile: PatissierProfile, checkout_url: str | None = None
    ) -> bool:
        body = (
            f"Bonjour {order.client_name},\n\n"
            f"{profile.business_name} vous propose un devis de {_money(order.quoted_price)} "
            f"pour votre demande n° {order.order_number}.\n"
        )
        if order.response_message:
            body += f"\n{order.response_message}\n"
        if checkout_url:
            body += f"\nRégler en ligne : {checkout_url}\n"
        return await self._deliver(
            EmailMessage(
                to=order.client_email,
                subject=f"Votre devis pour la commande {order.order_number}",
                body=body,
                template="order_quote",
            )
        )

    async def send_order_message_notification(
        self, recipient_email: str, sender_name: str, order: Order, message: str
    ) -> bool:
        body = (
            f"{sender_name} a écrit à propos de la commande n° {order.order_number} :\n\n"
            f"{message[:200]}\n"
        )
        return await self._deliver(
            EmailMessage(
                to=recipient_email,
                subject=f"Nouveau message : commande {order.order_number}",
                body=body,
                template="order_message_notification",
            )
        )

    async def send_order_payment_confirmation(
        self, order: Order, profile: PatissierProfile
    ) -> bool:
        body = (
            f"Bonjour {order.client_name},\n\n"
            f"Nous avons bien reçu votre paiement pour la commande n° {order.order_number} "
            f"chez {profile.business_name}.\n"
            f"Suivi : {self._order_url(profile, order)}\n"
        )
        return await self._deliver(
            EmailMessage(
                to=order.client_email,
                subject=f"Paiement reçu : commande {order.order_number}",
                body=body,
                template="order_payment_confirmation",
            )
        )

    async def send_order_payment_notification(
        self, patissier_email: str, order: Order, profile: PatissierProfile
    ) -> bool:
        body = (
            f"Bonjour {profile.business_name},\n\n"
            f"{order.client_name} a réglé la commande n° {order.order_number} "
            f"({_money(order.total)}).\n"
        )
        return await self._deliver(
            EmailMessage(
                to=patissier_email,
                subject=f"Paiement reçu : commande {order.order_number}",
                body=body,
                template="order_payment_notification",
            )
        )
