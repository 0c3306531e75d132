"""In-app notifications."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.db.models import Notification, NotificationType
from patissio.db.repositories.users import NotificationRepository

logger = structlog.get_logger()


class NotificationService:
    """Create and read a user's in-app notifications."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = NotificationRepository(db)

    async def create(
        self,
        user_id: UUID,
        type: NotificationType | str,
        title: str,
        message: str | None = None,
        data: dict[str, Any] | None = None,
        action_url: str | None = None,
    ) -> Notification:
        """Create a notification for a user.

        Args:
            user_id: The user to notify
            type: Notification type
            title: Short title
            message: Optional longer message
            data: Optional JSON metadata (ids of the related records)
            action_url: Optional link opened from the notification
        """
        notification = Notification(
            user_id=user_id,
            type=type.value if isinstance(type, NotificationType) else type,
            title=title,
            message=message,
            data=data or {},
            action_url=action_url,
        )
        await self.repo.create(notification)
        logger.info(
            "notification_created",
            notification_id=str(notification.id),
            user_id=str(user_id),
            type=notification.type,
        )
        return notification

    async def list_for_user(
        self, user_id: UUID, *, page: int = 1, limit: int = 20
    ) -> tuple[list[Notification], int]:
        """Page through a user's notifications, newest first.

        Returns:
            (notifications, total count)
        """
        items = await self.repo.list(
            Notification.user_id == user_id,
            limit=limit,
            offset=(page - 1) * limit,
            order_by=Notification.created_at.desc(),
        )
        total = await self.repo.count(Notification.user_id == user_id)
        return items, total

    async def unread_count(self, user_id: UUID) -> int:
        return await self.repo.count(
            Notification.user_id == user_id, Notification.read_at.is_(None)
        )

    async def mark_read(self, user_id: UUID, notification_id: UUID) -> Notification | None:
        """Mark one of the user's notifications read.

        Returns:
            The notification, or None if the user has no such notification
        """
        notification = await self.repo.get_for_user(user_id, notification_id)
        if notification is None:
            return None
        if notification.read_at is None:
            await self.repo.update(notification, {"read_at": datetime.now(UTC)})
        return notification

    async def mark_all_read(self, user_id: UUID) -> int:
        return await self.repo.mark_all_read(user_id)
