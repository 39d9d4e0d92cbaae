"""
In-app notification endpoints.
"""

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.notification import NotificationPriority, NotificationType
from ..models.user import User
from ..schemas.common import MessageResponse, PaginationInfo
from ..schemas.notification import (
    DeletedCountResponse,
    MarkedCountResponse,
    NotificationListResponse,
    NotificationResponse,
    NotificationTypesResponse,
    UnreadCountResponse,
)
from ..services.notification_service import NotificationService
from ..utils.dependencies import get_current_user

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    notification_type: Optional[NotificationType] = Query(None, alias="type"),
    is_read: Optional[bool] = Query(None),
    priority: Optional[NotificationPriority] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """List the caller's notifications, newest first, with the unread total."""
    notifications, total, unread = await NotificationService(db).list_notifications(
        current_user.id, page, limit, notification_type, is_read, priority
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        pagination=PaginationInfo.build(total, page, limit),
        unread_count=unread,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    count = await NotificationService(db).get_unread_count(current_user.id)
    return UnreadCountResponse(unread_count=count)


@router.get("/types", response_model=NotificationTypesResponse)
async def get_notification_types(current_user: User = Depends(get_current_user)) -> Any:
    return NotificationTypesResponse(types=[member.value for member in NotificationType])


@router.put("/read-all", response_model=MarkedCountResponse)
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    marked = await NotificationService(db).mark_all_as_read(current_user.id)
    return MarkedCountResponse(marked_count=marked)


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    notification = await NotificationService(db).mark_as_read(notification_id, current_user.id)
    return NotificationResponse.model_validate(notification)


@router.delete("", response_model=DeletedCountResponse)
async def delete_read_notifications(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Delete all of the caller's read notifications."""
    deleted = await NotificationService(db).delete_read_notifications(current_user.id)
    return DeletedCountResponse(deleted_count=deleted)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    await NotificationService(db).delete_notification(notification_id, current_user.id)
    return MessageResponse(message="Notification deleted successfully")
