"""Database queries for meetings and their participants."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncConnection

from ..tables import meeting_participants, meetings, users


async def get_meetings_with_participants(
    conn: AsyncConnection,
    meeting_ids: list[int] | set[int],
) -> dict[int, dict]:
    """
    Load meetings with their owner and participants, keyed by meeting_id.

    Each meeting dict carries:
        owner: {"user_id", "name", "email", "timezone"}
        participants: list of participant dicts, each with "user" set to the
            linked account ({"user_id", "name", "email", "timezone"}) or None
    """
    if not meeting_ids:
        return {}

    owner = users.alias("owner")
    result = await conn.execute(
        select(
            meetings,
            owner.c.name.label("owner_name"),
            owner.c.email.label("owner_email"),
            owner.c.timezone.label("owner_timezone"),
        )
        .select_from(
            meetings.join(owner, meetings.c.created_by_user_id == owner.c.user_id)
        )
        .where(meetings.c.meeting_id.in_(list(meeting_ids)))
    )

    loaded: dict[int, dict] = {}
    for row in result.mappings():
        meeting = {col.name: row[col.name] for col in meetings.columns}
        meeting["owner"] = {
            "user_id": row["created_by_user_id"],
            "name": row["owner_name"],
            "email": row["owner_email"],
            "timezone": row["owner_timezone"],
        }
        meeting["participants"] = []
        loaded[meeting["meeting_id"]] = meeting

    if not loaded:
        return {}

    participants_result = await conn.execute(
        select(
            meeting_participants.c.participant_id,
            meeting_participants.c.meeting_id,
            meeting_participants.c.email,
            meeting_participants.c.status,
            meeting_participants.c.user_id,
            users.c.name.label("user_name"),
            users.c.email.label("user_email"),
            users.c.timezone.label("user_timezone"),
        )
        .select_from(
            meeting_participants.outerjoin(
                users, meeting_participants.c.user_id == users.c.user_id
            )
        )
        .where(meeting_participants.c.meeting_id.in_(list(loaded)))
        .order_by(meeting_participants.c.participant_id)
    )

    for row in participants_result.mappings():
        user = None
        if row["user_id"] is not None and row["user_email"] is not None:
            user = {
                "user_id": row["user_id"],
                "name": row["user_name"],
                "email": row["user_email"],
                "timezone": row["user_timezone"],
            }
        loaded[row["meeting_id"]]["participants"].append(
            {
                "participant_id": row["participant_id"],
                "meeting_id": row["meeting_id"],
                "email": row["email"],
                "status": row["status"],
                "user_id": row["user_id"],
                "user": user,
            }
        )

    return loaded


async def get_meeting_with_participants(
    conn: AsyncConnection,
    meeting_id: int,
) -> dict | None:
    """Get a single meeting with owner and participants, or None."""
    loaded = await get_meetings_with_participants(conn, [meeting_id])
    return loaded.get(meeting_id)
