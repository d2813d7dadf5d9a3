"""In-app notifications.

Usage:
    notify(
        db, filing.client.user_id,
        title="Filing status updated",
        body="Your 2024-2025 filing moved to under_review",
        category=NotificationCategory.FILING,
    )

The row is added to the current session and committed with the
enclosing transaction. No extra flush is performed.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.middleware.exceptions import ResourceNotFoundError
from app.models.notification import Notification, NotificationCategory, NotificationType


def notify(
    db: AsyncSession,
    user_id: str,
    *,
    title: str,
    body: str,
    type: NotificationType = NotificationType.INFO,
    category: NotificationCategory = NotificationCategory.SYSTEM,
    action_url: str | None = None,
) -> Notification:
    """Append a notification for `user_id` to the current DB session."""
    entry = Notification(
        user_id=user_id,
        title=title,
        body=body,
        type=type,
        category=category,
        action_url=action_url,
        is_read=False,
        created_at=datetime.utcnow(),
    )
    db.add(entry)
    return entry


async def list_for_user(
    db: AsyncSession,
    user_id: str,
    *,
    unread_only: bool = False,
    offset: int = 0,
    limit: int = 10,
) -> tuple[list[Notification], int]:
    filters = [Notification.user_id == user_id]
    if unread_only:
        filters.append(Notification.is_read.is_(False))

    total = (
        await db.execute(select(func.count()).select_from(Notification).where(*filters))
    ).scalar() or 0
    result = await db.execute(
        select(Notification)
        .where(*filters)
        .order_by(Notification.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def unread_count(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
    )
    return result.scalar() or 0


async def mark_read(db: AsyncSession, user_id: str, notification_id: str) -> Notification:
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise ResourceNotFoundError("Notification")
    notification.is_read = True
    await db.flush()
    return notification


async def mark_all_read(db: AsyncSession, user_id: str) -> int:
    """Mark every unread notification read; returns how many changed."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0
