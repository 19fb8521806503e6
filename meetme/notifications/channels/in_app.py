"""In-app notification channel (rows in the notifications table)."""

from meetme.database import get_transaction
from meetme.enums import NotificationType
from meetme.queries.notifications import create_notification


async def create_in_app_notification(
    user_id: int,
    notification_type: NotificationType,
    title: str,
    message: str,
    related_meeting_id: int | None = None,
) -> dict:
    """
    Write a notification to the user's inbox.

    Does not look at preferences; callers decide whether in-app is enabled.
    """
    async with get_transaction() as conn:
        return await create_notification(
            conn,
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            related_meeting_id=related_meeting_id,
        )
