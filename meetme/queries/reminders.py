"""Database queries for meeting reminders."""

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import Text, delete, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from ..config import (
    REMINDER_BATCH_SIZE,
    REMINDER_CLAIM_STALE_SECONDS,
    REMINDER_LOOKAHEAD_SECONDS,
)
from ..tables import meeting_reminders, meetings
from .meetings import get_meetings_with_participants


def _unclaimed(now: datetime, stale_after: timedelta):
    """Nobody holds the reminder, or the holder's claim went stale."""
    return or_(
        meeting_reminders.c.dispatching_at.is_(None),
        meeting_reminders.c.dispatching_at < now - stale_after,
    )


def build_due_reminders_query(
    now: datetime,
    batch_size: int = REMINDER_BATCH_SIZE,
    lookahead: timedelta = timedelta(seconds=REMINDER_LOOKAHEAD_SECONDS),
    stale_after: timedelta = timedelta(seconds=REMINDER_CLAIM_STALE_SECONDS),
):
    """
    Build the selection query for reminders due within the next tick.

    Due means: fires before now + lookahead, not sent yet, not held by a
    fresh claim, meeting not cancelled and not started. A reminder for a
    meeting that already started is never selected, even if it is still
    pending.
    """
    return (
        select(meeting_reminders)
        .select_from(
            meeting_reminders.join(
                meetings, meeting_reminders.c.meeting_id == meetings.c.meeting_id
            )
        )
        .where(meeting_reminders.c.scheduled_for <= now + lookahead)
        .where(meeting_reminders.c.sent_at.is_(None))
        .where(_unclaimed(now, stale_after))
        .where(meetings.c.is_cancelled.is_(False))
        .where(meetings.c.start_time > now)
        .order_by(meeting_reminders.c.scheduled_for, meeting_reminders.c.reminder_id)
        .limit(batch_size)
    )


async def get_due_reminders(
    conn: AsyncConnection,
    now: datetime,
    batch_size: int = REMINDER_BATCH_SIZE,
) -> list[dict[str, Any]]:
    """
    Get a batch of due reminders with their meeting eagerly loaded.

    Each reminder dict has a "meeting" key holding the meeting, its owner
    and its participants (see get_meetings_with_participants).
    """
    result = await conn.execute(build_due_reminders_query(now, batch_size))
    reminders = [dict(row) for row in result.mappings()]
    if not reminders:
        return []

    loaded = await get_meetings_with_participants(
        conn, {r["meeting_id"] for r in reminders}
    )

    due = []
    for reminder in reminders:
        meeting = loaded.get(reminder["meeting_id"])
        if meeting is None:
            # Meeting deleted between the two queries
            continue
        reminder["meeting"] = meeting
        due.append(reminder)
    return due


async def claim_reminder(
    conn: AsyncConnection,
    reminder_id: int,
    now: datetime,
    stale_after: timedelta = timedelta(seconds=REMINDER_CLAIM_STALE_SECONDS),
) -> bool:
    """
    Atomically claim a pending reminder for dispatch.

    Sets dispatching_at only if the reminder is still unsent and nobody else
    holds a fresh claim. Returns True if this caller now owns the reminder.
    """
    result = await conn.execute(
        update(meeting_reminders)
        .where(meeting_reminders.c.reminder_id == reminder_id)
        .where(meeting_reminders.c.sent_at.is_(None))
        .where(_unclaimed(now, stale_after))
        .values(dispatching_at=now)
        .returning(meeting_reminders.c.reminder_id)
    )
    return result.first() is not None


async def release_reminder_claim(
    conn: AsyncConnection,
    reminder_id: int,
) -> None:
    """Drop the claim on an unsent reminder so the next tick can retry it."""
    await conn.execute(
        update(meeting_reminders)
        .where(meeting_reminders.c.reminder_id == reminder_id)
        .where(meeting_reminders.c.sent_at.is_(None))
        .values(dispatching_at=None)
    )


async def mark_reminder_sent(
    conn: AsyncConnection,
    reminder_id: int,
    sent_at: datetime,
    channel_outcomes: dict[str, dict[str, str]],
) -> None:
    """
    Mark a reminder as sent and release its claim.

    The three channel flags record that every channel was attempted, not
    that delivery succeeded; per-recipient results go to channel_outcomes.
    """
    await conn.execute(
        update(meeting_reminders)
        .where(meeting_reminders.c.reminder_id == reminder_id)
        .values(
            sent_at=sent_at,
            email_sent=True,
            push_sent=True,
            in_app_created=True,
            channel_outcomes=channel_outcomes,
            dispatching_at=None,
        )
    )


async def regenerate_reminders(
    conn: AsyncConnection,
    meeting_id: int,
    start_time: datetime,
    lead_times: list[int],
) -> list[dict[str, Any]]:
    """
    Replace all reminders of a meeting with one per lead time.

    Delete-then-insert, so calling it twice with the same arguments leaves
    the same rows. Duplicate lead times collapse into one reminder.

    Returns:
        The created reminder rows
    """
    await conn.execute(
        delete(meeting_reminders).where(meeting_reminders.c.meeting_id == meeting_id)
    )

    distinct_leads = sorted(set(lead_times), reverse=True)
    if not distinct_leads:
        return []

    result = await conn.execute(
        insert(meeting_reminders)
        .values(
            [
                {
                    "meeting_id": meeting_id,
                    "minutes_before": minutes,
                    "scheduled_for": start_time - timedelta(minutes=minutes),
                }
                for minutes in distinct_leads
            ]
        )
        .returning(meeting_reminders)
    )
    return [dict(row) for row in result.mappings()]


async def delete_reminders_for_meeting(
    conn: AsyncConnection,
    meeting_id: int,
) -> int:
    """Delete every reminder of a meeting. Returns count deleted."""
    result = await conn.execute(
        delete(meeting_reminders).where(meeting_reminders.c.meeting_id == meeting_id)
    )
    return result.rowcount


async def get_reminders_for_meeting(
    conn: AsyncConnection,
    meeting_id: int,
) -> list[dict[str, Any]]:
    """Get all reminders for a meeting, earliest firing first."""
    result = await conn.execute(
        select(meeting_reminders)
        .where(meeting_reminders.c.meeting_id == meeting_id)
        .order_by(meeting_reminders.c.scheduled_for)
    )
    return [dict(row) for row in result.mappings()]


async def get_reminders_needing_retry(
    conn: AsyncConnection,
    limit: int = REMINDER_BATCH_SIZE,
) -> list[dict[str, Any]]:
    """Get sent reminders where at least one channel attempt failed."""
    result = await conn.execute(
        select(meeting_reminders)
        .where(meeting_reminders.c.sent_at.isnot(None))
        .where(meeting_reminders.c.channel_outcomes.cast(Text).contains('"failed"'))
        .order_by(meeting_reminders.c.sent_at.desc())
        .limit(limit)
    )
    return [dict(row) for row in result.mappings()]
