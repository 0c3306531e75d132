"""Database models for Patissio."""

from .base import Base, Money, TenantOwnedMixin, TimestampMixin, UUIDPrimaryKeyMixin
from .billing import BillingInterval, Subscription, SubscriptionStatus
from .catalog import Category, Creation, Product
from .notification import Notification, NotificationType
from .order import (
    DeliveryMethod,
    MessageSender,
    Order,
    OrderItem,
    OrderMessage,
    OrderPaymentStatus,
    OrderStatus,
    OrderType,
)
from .profile import PatissierProfile, PlanTier
from .user import AccessToken, User, UserRole
from .workshop import (
    BookingStatus,
    PaymentState,
    Workshop,
    WorkshopBooking,
    WorkshopLevel,
    WorkshopStatus,
)

__all__ = [
    "Base",
    "Money",
    "TenantOwnedMixin",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    # Users
    "AccessToken",
    "User",
    "UserRole",
    # Tenants
    "PatissierProfile",
    "PlanTier",
    # Catalogue
    "Category",
    "Creation",
    "Product",
    # Workshops
    "BookingStatus",
    "PaymentState",
    "Workshop",
    "WorkshopBooking",
    "WorkshopLevel",
    "WorkshopStatus",
    # Orders
    "DeliveryMethod",
    "MessageSender",
    "Order",
    "OrderItem",
    "OrderMessage",
    "OrderPaymentStatus",
    "OrderStatus",
    "OrderType",
    # Billing
    "BillingInterval",
    "Subscription",
    "SubscriptionStatus",
    # Notifications
    "Notification",
    "NotificationType",
]
