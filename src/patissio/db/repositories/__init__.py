"""Database repositories for clean data access."""

from .base import BaseRepository
from .tenant import (
    BookingRepository,
    CategoryRepository,
    CreationRepository,
    OrderRepository,
    ProductRepository,
    TenantRepository,
    WorkshopRepository,
    find_owner,
)
from .users import (
    AccessTokenRepository,
    NotificationRepository,
    ProfileRepository,
    SubscriptionRepository,
    UserRepository,
)

__all__ = [
    "AccessTokenRepository",
    "BaseRepository",
    "BookingRepository",
    "CategoryRepository",
    "CreationRepository",
    "NotificationRepository",
    "OrderRepository",
    "ProductRepository",
    "ProfileRepository",
    "SubscriptionRepository",
    "TenantRepository",
    "UserRepository",
    "WorkshopRepository",
    "find_owner",
]
