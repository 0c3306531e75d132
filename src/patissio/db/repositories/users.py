"""Repositories for accounts, tenants, subscriptions and notifications."""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select, update

from patissio.db.models import (
    AccessToken,
    Notification,
    PatissierProfile,
    Subscription,
    SubscriptionStatus,
    User,
)
from patissio.db.repositories.base import BaseRepository


class UserRepository(BaseRepository[User, UUID]):
    resource_name = "user"

    async def get_by_email(self, email: str) -> User | None:
        """Look up a user by email, case-insensitively."""
        result = await self.db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()


class AccessTokenRepository(BaseRepository[AccessToken, UUID]):
    resource_name = "token"

    async def get_by_hash(self, token_hash: str) -> AccessToken | None:
        result = await self.db.execute(
            select(AccessToken).where(AccessToken.token_hash == token_hash)
        )
        return result.scalar_one_or_none()

    async def revoke_all(self, user_id: UUID, *, commit: bool = True) -> None:
        """Delete every token issued to a user."""
        await self.db.execute(AccessToken.__table__.delete().where(AccessToken.user_id == user_id))
        if commit:
            await self.db.commit()


class ProfileRepository(BaseRepository[PatissierProfile, UUID]):
    resource_name = "profile"

    async def get_by_slug(self, slug: str) -> PatissierProfile | None:
        result = await self.db.execute(
            select(PatissierProfile).where(PatissierProfile.slug == slug.lower())
        )
        return result.scalar_one_or_none()

    async def get_by_user(self, user_id: UUID) -> PatissierProfile | None:
        result = await self.db.execute(
            select(PatissierProfile).where(PatissierProfile.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_domain(self, domain: str) -> PatissierProfile | None:
        """Look up a tenant by custom domain, verified or not."""
        result = await self.db.execute(
            select(PatissierProfile).where(PatissierProfile.custom_domain == domain.lower())
        )
        return result.scalar_one_or_none()

    async def get_by_stripe_account(self, account_id: str) -> PatissierProfile | None:
        result = await self.db.execute(
            select(PatissierProfile).where(PatissierProfile.stripe_account_id == account_id)
        )
        return result.scalar_one_or_none()

    async def slug_taken(self, slug: str) -> bool:
        stmt = select(func.count()).select_from(PatissierProfile).where(
            PatissierProfile.slug == slug
        )
        return ((await self.db.execute(stmt)).scalar() or 0) > 0


class SubscriptionRepository(BaseRepository[Subscription, UUID]):
    resource_name = "subscription"

    async def get_current(self, user_id: UUID) -> Subscription | None:
        """Get the user's live subscription (active, trialing or past due)."""
        stmt = (
            select(Subscription)
            .where(
                Subscription.user_id == user_id,
                Subscription.status.in_(
                    [
                        SubscriptionStatus.ACTIVE.value,
                        SubscriptionStatus.TRIALING.value,
                        SubscriptionStatus.PAST_DUE.value,
                    ]
                ),
            )
            .order_by(Subscription.created_at.desc())
            .limit(1)
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_latest(self, user_id: UUID) -> Subscription | None:
        """Get the user's most recent subscription in any status."""
        stmt = (
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .order_by(Subscription.created_at.desc())
            .limit(1)
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_by_stripe_id(self, stripe_subscription_id: str) -> Subscription | None:
        stmt = select(Subscription).where(
            Subscription.stripe_subscription_id == stripe_subscription_id
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()


class NotificationRepository(BaseRepository[Notification, UUID]):
    resource_name = "notification"

    async def get_for_user(self, user_id: UUID, notification_id: UUID) -> Notification | None:
        stmt = select(Notification).where(
            Notification.id == notification_id, Notification.user_id == user_id
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def mark_all_read(self, user_id: UUID) -> int:
        """Mark every unread notification of a user read.

        Returns:
            Number of notifications updated
        """
        result = await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read_at.is_(None))
            .values(read_at=datetime.now(UTC))
        )
        await self.db.commit()
        return result.rowcount or 0
