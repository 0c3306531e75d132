"""Back-office routers for the active shop, mounted under ``/patissier``."""

from fastapi import APIRouter, Depends

from patissio.api.dependencies import throttle

from .catalog import router as catalog_router
from .domain import router as domain_router
from .integrations import router as integrations_router
from .orders import router as orders_router
from .products import router as products_router
from .profile import router as profile_router
from .workshops import router as workshops_router

router = APIRouter(prefix="/patissier", dependencies=[Depends(throttle("api"))])

router.include_router(profile_router)
router.include_router(catalog_router)
router.include_router(products_router)
router.include_router(workshops_router)
router.include_router(orders_router)
router.include_router(domain_router)
router.include_router(integrations_router)

__all__ = ["router"]
