"""In-app notifications of the authenticated user."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from patissio.api.dependencies import get_current_user, get_db, throttle
from patissio.api.schemas.notifications import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from patissio.core.exceptions import ResourceNotFoundError
from patissio.db.models import User
from patissio.services.notifications import NotificationService

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
    dependencies=[Depends(throttle("api"))],
)


def get_notification_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> NotificationService:
    return NotificationService(db)


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List notifications",
    description="Newest first, with the unread total.",
)
async def list_notifications(
    user: Annotated[User, Depends(get_current_user)],
    service: Annotated[NotificationService, Depends(get_notification_service)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> NotificationListResponse:
    items, total = await service.list_for_user(user.id, page=page, limit=limit)
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in items],
        total=total,
        unread=await service.unread_count(user.id),
        page=page,
        limit=limit,
    )


@router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    summary="Count unread notifications",
)
async def unread_count(
    user: Annotated[User, Depends(get_current_user)],
    service: Annotated[NotificationService, Depends(get_notification_service)],
) -> UnreadCountResponse:
    return UnreadCountResponse(count=await service.unread_count(user.id))


@router.put(
    "/read-all",
    response_model=MarkAllReadResponse,
    summary="Mark all notifications read",
)
async def mark_all_read(
    user: Annotated[User, Depends(get_current_user)],
    service: Annotated[NotificationService, Depends(get_notification_service)],
) -> MarkAllReadResponse:
    return MarkAllReadResponse(updated=await service.mark_all_read(user.id))


@router.put(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark one notification read",
)
async def mark_read(
    notification_id: UUID,
    user: Annotated[User, Depends(get_current_user)],
    service: Annotated[NotificationService, Depends(get_notification_service)],
) -> NotificationResponse:
    notification = await service.mark_read(user.id, notification_id)
    if notification is None:
        raise ResourceNotFoundError("notification", str(notification_id))
    return NotificationResponse.model_validate(notification)
