"""Query layer for database operations using SQLAlchemy Core."""

from .meetings import get_meeting_with_participants, get_meetings_with_participants
from .notifications import (
    NotificationNotFound,
    count_unread,
    create_notification,
    list_notifications,
    mark_all_as_read,
    mark_as_read,
)
from .preferences import (
    DEFAULT_PREFERENCES,
    get_or_create_preferences,
    get_preferences,
    update_preferences,
)
from .push_subscriptions import (
    delete_push_subscription,
    delete_push_subscriptions_by_endpoints,
    get_push_subscriptions_for_user,
    upsert_push_subscription,
)
from .refresh_tokens import cleanup_expired_tokens
from .reminders import (
    claim_reminder,
    delete_reminders_for_meeting,
    get_due_reminders,
    get_reminders_for_meeting,
    get_reminders_needing_retry,
    mark_reminder_sent,
    regenerate_reminders,
)
from .users import get_user_by_id

__all__ = [
    # Meetings
    "get_meeting_with_participants",
    "get_meetings_with_participants",
    # Reminders
    "get_due_reminders",
    "claim_reminder",
    "mark_reminder_sent",
    "regenerate_reminders",
    "delete_reminders_for_meeting",
    "get_reminders_for_meeting",
    "get_reminders_needing_retry",
    # Preferences
    "DEFAULT_PREFERENCES",
    "get_preferences",
    "get_or_create_preferences",
    "update_preferences",
    # Notifications
    "NotificationNotFound",
    "create_notification",
    "list_notifications",
    "count_unread",
    "mark_as_read",
    "mark_all_as_read",
    # Push subscriptions
    "upsert_push_subscription",
    "delete_push_subscription",
    "delete_push_subscriptions_by_endpoints",
    "get_push_subscriptions_for_user",
    # Refresh tokens
    "cleanup_expired_tokens",
    # Users
    "get_user_by_id",
]
