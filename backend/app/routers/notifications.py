"""The current user's in-app notifications.

Endpoints:
    GET  /api/notifications/                  List (newest first, ?unreadOnly=true)
    GET  /api/notifications/unread-count      Number of unread notifications
    PUT  /api/notifications/{id}/read         Mark one read
    PUT  /api/notifications/read-all          Mark all read
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import get_current_user
from app.database import get_db
from app.models.user import User
from app.schemas.common import ApiResponse, Page, PageParams, page_params
from app.schemas.notification import MarkAllReadOut, NotificationOut, UnreadCountOut
from app.services import notifications as service

router = APIRouter()


@router.get("/", response_model=ApiResponse[Page[NotificationOut]])
async def list_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    paging: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    items, total = await service.list_for_user(
        db, user.id, unread_only=unread_only, offset=paging.offset, limit=paging.limit
    )
    return ApiResponse(
        message="Notifications retrieved successfully",
        data=Page.build(
            [NotificationOut.model_validate(n) for n in items],
            total,
            paging.page,
            paging.limit,
        ),
    )


@router.get("/unread-count", response_model=ApiResponse[UnreadCountOut])
async def get_unread_count(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    count = await service.unread_count(db, user.id)
    return ApiResponse(
        message="Unread count retrieved successfully",
        data=UnreadCountOut(unread_count=count),
    )


@router.put("/read-all", response_model=ApiResponse[MarkAllReadOut])
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    updated = await service.mark_all_read(db, user.id)
    return ApiResponse(
        message="All notifications marked as read",
        data=MarkAllReadOut(updated=updated),
    )


@router.put("/{notification_id}/read", response_model=ApiResponse[NotificationOut])
async def mark_read(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    notification = await service.mark_read(db, user.id, notification_id)
    return ApiResponse(
        message="Notification marked as read",
        data=NotificationOut.model_validate(notification),
    )
