"""Notification preference queries using SQLAlchemy Core."""

from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncConnection

from ..tables import notification_preferences


# Users without a preference row get every channel (new users should not
# silently miss reminders)
DEFAULT_PREFERENCES = {
    "email_enabled": True,
    "push_enabled": True,
    "in_app_enabled": True,
}


async def get_preferences(
    conn: AsyncConnection,
    user_id: int,
) -> dict[str, Any]:
    """
    Get a user's channel toggles.

    Returns a dict with email_enabled, push_enabled and in_app_enabled;
    all True when the user has no preference row.
    """
    result = await conn.execute(
        select(
            notification_preferences.c.email_enabled,
            notification_preferences.c.push_enabled,
            notification_preferences.c.in_app_enabled,
        ).where(notification_preferences.c.user_id == user_id)
    )
    row = result.mappings().first()
    if not row:
        return {"user_id": user_id, **DEFAULT_PREFERENCES}
    return {"user_id": user_id, **dict(row)}


async def get_or_create_preferences(
    conn: AsyncConnection,
    user_id: int,
) -> dict[str, Any]:
    """Get a user's preference row, creating it with defaults if missing."""
    await conn.execute(
        insert(notification_preferences)
        .values(user_id=user_id, **DEFAULT_PREFERENCES)
        .on_conflict_do_nothing(index_elements=["user_id"])
    )
    result = await conn.execute(
        select(notification_preferences).where(
            notification_preferences.c.user_id == user_id
        )
    )
    return dict(result.mappings().first())


async def update_preferences(
    conn: AsyncConnection,
    user_id: int,
    email_enabled: bool | None = None,
    push_enabled: bool | None = None,
    in_app_enabled: bool | None = None,
) -> dict[str, Any]:
    """
    Update a user's channel toggles. Only non-None arguments are changed.

    Returns:
        The updated preference row
    """
    current = await get_or_create_preferences(conn, user_id)

    changes = {
        key: value
        for key, value in (
            ("email_enabled", email_enabled),
            ("push_enabled", push_enabled),
            ("in_app_enabled", in_app_enabled),
        )
        if value is not None
    }
    if not changes:
        return current

    result = await conn.execute(
        update(notification_preferences)
        .where(notification_preferences.c.user_id == user_id)
        .values(**changes, updated_at=func.now())
        .returning(notification_preferences)
    )
    return dict(result.mappings().first())
