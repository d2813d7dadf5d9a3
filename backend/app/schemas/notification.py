from datetime import datetime

from app.models.notification import NotificationCategory, NotificationType
from app.schemas.common import CamelModel


class NotificationOut(CamelModel):
    id: str
    title: str
    body: str
    type: NotificationType
    category: NotificationCategory
    is_read: bool
    action_url: str | None = None
    created_at: datetime


class UnreadCountOut(CamelModel):
    unread_count: int


class MarkAllReadOut(CamelModel):
    updated: int
