"""API routers."""

from .auth import router as auth_router
from .billing import router as billing_router
from .client import router as client_router
from .health import router as health_router
from .notifications import router as notifications_router
from .patissier import router as patissier_router
from .public import router as public_router
from .superadmin import router as superadmin_router
from .webhooks import router as webhooks_router

__all__ = [
    "auth_router",
    "billing_router",
    "client_router",
    "health_router",
    "notifications_router",
    "patissier_router",
    "public_router",
    "superadmin_router",
    "webhooks_router",
]
