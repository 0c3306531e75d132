"""Platform administration: dashboard figures, user moderation and cross-tenant listings."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.core.exceptions import ForbiddenError, InvalidRequestError, ResourceNotFoundError
from patissio.db.models import (
    Order,
    OrderPaymentStatus,
    PatissierProfile,
    PlanTier,
    Subscription,
    SubscriptionStatus,
    User,
    UserRole,
    Workshop,
)
from patissio.db.repositories import AccessTokenRepository, ProfileRepository, UserRepository
from patissio.utils.time import utcnow

logger = structlog.get_logger()


@dataclass
class PlatformStats:
    """Platform-wide counts for the superadmin dashboard."""

    users: int = 0
    patissiers: int = 0
    orders: int = 0
    workshops: int = 0
    active_subscriptions: int = 0
    plans: dict[str, int] = field(default_factory=dict)
    revenue_total: Decimal = Decimal("0")


@dataclass
class Page:
    """One page of a listing and the total row count."""

    items: list[Any]
    total: int
    page: int
    limit: int


class AdminService:
    """Operations reserved to platform staff."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserRepository(db)
        self.profiles = ProfileRepository(db)

    async def _count(self, model: type, *criteria: Any) -> int:
        result = await self.db.execute(select(func.count()).select_from(model).where(*criteria))
        return result.scalar() or 0

    async def _page(self, model: type, *criteria: Any, page: int, limit: int) -> Page:
        result = await self.db.execute(
            select(model)
            .where(*criteria)
            .order_by(model.created_at.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        return Page(
            items=list(result.scalars().all()),
            total=await self._count(model, *criteria),
            page=page,
            limit=limit,
        )

    async def dashboard(self) -> PlatformStats:
        plan_rows = await self.db.execute(
            select(PatissierProfile.plan, func.count()).group_by(PatissierProfile.plan)
        )
        plans = {tier.value: 0 for tier in PlanTier}
        plans.update({plan: count for plan, count in plan_rows.all()})

        revenue = await self.db.execute(
            select(func.coalesce(func.sum(Order.total), 0)).where(
                Order.payment_status == OrderPaymentStatus.PAID.value
            )
        )
        return PlatformStats(
            users=await self._count(User),
            patissiers=await self._count(PatissierProfile),
            orders=await self._count(Order),
            workshops=await self._count(Workshop),
            active_subscriptions=await self._count(
                Subscription, Subscription.status == SubscriptionStatus.ACTIVE.value
            ),
            plans=plans,
            revenue_total=Decimal(str(revenue.scalar() or 0)),
        )

    # =========================================================================
    # Users
    # =========================================================================

    async def list_users(
        self,
        *,
        role: UserRole | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page:
        criteria = []
        if role is not None:
            criteria.append(User.role == role.value)
        if search:
            pattern = f"%{search.strip().lower()}%"
            criteria.append(
                or_(func.lower(User.email).like(pattern), func.lower(User.full_name).like(pattern))
            )
        return await self._page(User, *criteria, page=page, limit=limit)

    async def get_user(self, user_id: UUID) -> tuple[User, PatissierProfile | None]:
        user = await self.users.get_or_raise(user_id)
        profile = None
        if user.role == UserRole.PATISSIER.value:
            profile = await self.profiles.get_by_user(user.id)
        return user, profile

    async def suspend(self, user_id: UUID, reason: str | None = None) -> User:
        """Suspend an account and revoke its tokens.

        Raises:
            ResourceNotFoundError: If the user does not exist
            ForbiddenError: If the user is a superadmin
            InvalidRequestError: If the user is already suspended
        """
        user = await self.users.get_or_raise(user_id)
        if user.is_superadmin:
            raise ForbiddenError("Superadmin accounts cannot be suspended")
        if user.is_suspended:
            raise InvalidRequestError("User is already suspended")

        await self.users.update(
            user, {"suspended_at": utcnow(), "suspended_reason": reason or None}, commit=False
        )
        await AccessTokenRepository(self.db).revoke_all(user.id, commit=False)
        await self.db.commit()
        await self.db.refresh(user)
        logger.warning("user_suspended", user_id=str(user.id), reason=reason)
        return user

    async def unsuspend(self, user_id: UUID) -> User:
        """Lift a suspension.

        Raises:
            ResourceNotFoundError: If the user does not exist
            InvalidRequestError: If the user is not suspended
        """
        user = await self.users.get_or_raise(user_id)
        if not user.is_suspended:
            raise InvalidRequestError("User is not suspended")
        user = await self.users.update(user, {"suspended_at": None, "suspended_reason": None})
        logger.info("user_unsuspended", user_id=str(user.id))
        return user

    # =========================================================================
    # Cross-tenant listings
    # =========================================================================

    async def list_patissiers(
        self, *, plan: PlanTier | None = None, page: int = 1, limit: int = 20
    ) -> Page:
        criteria = [PatissierProfile.plan == plan.value] if plan is not None else []
        return await self._page(PatissierProfile, *criteria, page=page, limit=limit)

    async def list_orders(self, *, page: int = 1, limit: int = 20) -> Page:
        return await self._page(Order, page=page, limit=limit)

    async def list_workshops(self, *, page: int = 1, limit: int = 20) -> Page:
        return await self._page(Workshop, page=page, limit=limit)

    async def list_subscriptions(
        self, *, status: SubscriptionStatus | None = None, page: int = 1, limit: int = 20
    ) -> Page:
        criteria = [Subscription.status == status.value] if status is not None else []
        return await self._page(Subscription, *criteria, page=page, limit=limit)
