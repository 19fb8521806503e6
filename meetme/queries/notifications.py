"""In-app notification queries using SQLAlchemy Core."""

from typing import Any

from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from ..enums import NotificationType
from ..tables import notifications


class NotificationNotFound(Exception):
    """Raised when a notification does not exist or belongs to another user."""


async def create_notification(
    conn: AsyncConnection,
    user_id: int,
    notification_type: NotificationType,
    title: str,
    message: str,
    related_meeting_id: int | None = None,
) -> dict[str, Any]:
    """Insert a notification and return the created record."""
    result = await conn.execute(
        insert(notifications)
        .values(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            related_meeting_id=related_meeting_id,
        )
        .returning(notifications)
    )
    return dict(result.mappings().first())


async def list_notifications(
    conn: AsyncConnection,
    user_id: int,
    unread_only: bool = False,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """Get a user's notifications, newest first."""
    query = select(notifications).where(notifications.c.user_id == user_id)
    if unread_only:
        query = query.where(notifications.c.is_read.is_(False))
    result = await conn.execute(
        query.order_by(notifications.c.created_at.desc()).limit(limit)
    )
    return [dict(row) for row in result.mappings()]


async def count_unread(
    conn: AsyncConnection,
    user_id: int,
) -> int:
    """Count a user's unread notifications."""
    result = await conn.execute(
        select(func.count())
        .select_from(notifications)
        .where(notifications.c.user_id == user_id)
        .where(notifications.c.is_read.is_(False))
    )
    return result.scalar_one()


async def mark_as_read(
    conn: AsyncConnection,
    notification_id: int,
    user_id: int,
) -> dict[str, Any]:
    """
    Mark one notification as read.

    Raises:
        NotificationNotFound: if it doesn't exist or isn't owned by user_id
    """
    result = await conn.execute(
        update(notifications)
        .where(notifications.c.notification_id == notification_id)
        .where(notifications.c.user_id == user_id)
        .values(is_read=True)
        .returning(notifications)
    )
    row = result.mappings().first()
    if not row:
        raise NotificationNotFound(f"Notification {notification_id} not found")
    return dict(row)


async def mark_all_as_read(
    conn: AsyncConnection,
    user_id: int,
) -> int:
    """Mark every unread notification of a user as read. Returns count updated."""
    result = await conn.execute(
        update(notifications)
        .where(notifications.c.user_id == user_id)
        .where(notifications.c.is_read.is_(False))
        .values(is_read=True)
    )
    return result.rowcount
