"""
Reminder dispatcher - fans due reminders out to in-app, email and push.

One tick:
    1. Select a batch of due reminders (meeting, participants and users
       eagerly loaded).
    2. For each reminder: claim it, notify every participant that has an
       account via the channels their preferences allow, then mark it sent.

Failure isolation:
    - Selection failure aborts the tick (nothing has been written yet).
    - A failing or hanging channel call only affects that channel for that
      recipient; it's logged and recorded as "failed".
    - An unexpected error while processing one reminder is logged, its claim
      is released so the next tick retries it, and the next reminder is
      still processed.

The reminder is marked sent (all three flags true) once every participant
has been attempted, whatever the individual channel results were.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable

import sentry_sdk

from meetme.config import get_channel_timeout_seconds
from meetme.database import get_connection, get_transaction
from meetme.enums import ChannelOutcome, DeliveryChannel, NotificationType
from meetme.notifications.channels.email import (
    send_meeting_email,
    send_meeting_reminder_email,
)
from meetme.notifications.channels.in_app import create_in_app_notification
from meetme.notifications.channels.push import send_push_to_user
from meetme.notifications.context import MeetingDetails, build_meeting_context
from meetme.notifications.templates import get_message, has_field
from meetme.queries.preferences import get_preferences
from meetme.queries.reminders import (
    claim_reminder,
    get_due_reminders,
    mark_reminder_sent,
    release_reminder_claim,
)

logger = logging.getLogger(__name__)


async def run_channel(
    channel: DeliveryChannel,
    recipient: str,
    call: Awaitable,
    timeout: float | None = None,
) -> ChannelOutcome:
    """
    Await one channel call with a timeout, converting errors into an outcome.

    Never raises: exceptions and timeouts are logged with the recipient and
    reported as ChannelOutcome.failed.
    """
    limit = timeout if timeout is not None else get_channel_timeout_seconds()
    try:
        await asyncio.wait_for(call, timeout=limit)
        return ChannelOutcome.sent
    except asyncio.TimeoutError:
        logger.error(f"Timed out sending {channel.value} notification to {recipient} after {limit}s")
        return ChannelOutcome.failed
    except Exception as e:
        logger.error(f"Failed to send {channel.value} notification to {recipient}: {e}")
        return ChannelOutcome.failed


async def notify_participant(
    reminder: dict,
    details: MeetingDetails,
    user: dict,
) -> dict[str, str]:
    """
    Deliver one reminder to one user across their enabled channels.

    Returns:
        Outcome per channel, e.g. {"in_app": "sent", "email": "failed", "push": "skipped"}
    """
    minutes_before = reminder["minutes_before"]
    user_id = user["user_id"]

    async with get_connection() as conn:
        preferences = await get_preferences(conn, user_id)

    context = build_meeting_context(
        details, recipient_name=user.get("name"), minutes_before=minutes_before
    )
    outcomes: dict[str, str] = {}

    if preferences["in_app_enabled"]:
        outcome = await run_channel(
            DeliveryChannel.in_app,
            f"user {user_id}",
            create_in_app_notification(
                user_id=user_id,
                notification_type=NotificationType.meeting_reminder,
                title=get_message("meeting_reminder", "in_app_title", context),
                message=get_message("meeting_reminder", "in_app_message", context),
                related_meeting_id=details.meeting_id,
            ),
        )
        outcomes[DeliveryChannel.in_app.value] = outcome.value
    else:
        outcomes[DeliveryChannel.in_app.value] = ChannelOutcome.skipped.value

    if preferences["email_enabled"]:
        outcome = await run_channel(
            DeliveryChannel.email,
            user["email"],
            asyncio.to_thread(
                send_meeting_reminder_email,
                user["email"],
                details,
                minutes_before,
                user.get("name"),
            ),
        )
        outcomes[DeliveryChannel.email.value] = outcome.value
    else:
        outcomes[DeliveryChannel.email.value] = ChannelOutcome.skipped.value

    if preferences["push_enabled"]:
        outcome = await run_channel(
            DeliveryChannel.push,
            f"user {user_id}",
            send_push_to_user(
                user_id,
                title=get_message("meeting_reminder", "push_title", context),
                body=get_message("meeting_reminder", "push_body", context),
                data={"meetingId": details.meeting_id},
            ),
        )
        outcomes[DeliveryChannel.push.value] = outcome.value
    else:
        outcomes[DeliveryChannel.push.value] = ChannelOutcome.skipped.value

    return outcomes


async def send_meeting_notification(
    user: dict,
    message_type: str,
    notification_type: NotificationType,
    context: dict,
    meeting_id: int,
) -> dict[str, str]:
    """
    Send a non-reminder meeting message (invitation, update, ...) to a user.

    Channels the message type has no copy for in messages.yaml are skipped,
    as are channels the user disabled.
    """
    user_id = user["user_id"]
    async with get_connection() as conn:
        preferences = await get_preferences(conn, user_id)

    outcomes: dict[str, str] = {}

    if preferences["in_app_enabled"] and has_field(message_type, "in_app_title"):
        outcome = await run_channel(
            DeliveryChannel.in_app,
            f"user {user_id}",
            create_in_app_notification(
                user_id=user_id,
                notification_type=notification_type,
                title=get_message(message_type, "in_app_title", context),
                message=get_message(message_type, "in_app_message", context),
                related_meeting_id=meeting_id,
            ),
        )
        outcomes[DeliveryChannel.in_app.value] = outcome.value
    else:
        outcomes[DeliveryChannel.in_app.value] = ChannelOutcome.skipped.value

    if preferences["email_enabled"] and has_field(message_type, "email_subject"):
        outcome = await run_channel(
            DeliveryChannel.email,
            user["email"],
            asyncio.to_thread(send_meeting_email, user["email"], message_type, context),
        )
        outcomes[DeliveryChannel.email.value] = outcome.value
    else:
        outcomes[DeliveryChannel.email.value] = ChannelOutcome.skipped.value

    if preferences["push_enabled"] and has_field(message_type, "push_title"):
        outcome = await run_channel(
            DeliveryChannel.push,
            f"user {user_id}",
            send_push_to_user(
                user_id,
                title=get_message(message_type, "push_title", context),
                body=get_message(message_type, "push_body", context),
                data={"meetingId": meeting_id},
            ),
        )
        outcomes[DeliveryChannel.push.value] = outcome.value
    else:
        outcomes[DeliveryChannel.push.value] = ChannelOutcome.skipped.value

    return outcomes


async def dispatch_reminder(reminder: dict, now: datetime) -> bool:
    """
    Claim, deliver and complete a single reminder.

    Participants without an account are skipped: they can't receive in-app
    or push notifications and this job doesn't email bare invitees.

    Returns:
        True if this call dispatched the reminder, False if another worker
        already holds it
    """
    reminder_id = reminder["reminder_id"]

    async with get_transaction() as conn:
        claimed = await claim_reminder(conn, reminder_id, now)
    if not claimed:
        logger.info(f"Reminder {reminder_id} already claimed, skipping")
        return False

    try:
        meeting = reminder["meeting"]
        details = MeetingDetails.from_meeting(meeting)

        channel_outcomes: dict[str, dict[str, str]] = {}
        for participant in meeting["participants"]:
            user = participant.get("user")
            if not participant.get("user_id") or not user:
                continue
            channel_outcomes[str(user["user_id"])] = await notify_participant(
                reminder, details, user
            )

        async with get_transaction() as conn:
            await mark_reminder_sent(conn, reminder_id, now, channel_outcomes)
    except Exception:
        # Leave it pending for the next tick instead of waiting out the claim
        async with get_transaction() as conn:
            await release_reminder_claim(conn, reminder_id)
        raise

    return True


async def process_due_reminders(now: datetime | None = None) -> dict:
    """
    Run one dispatch tick.

    Args:
        now: Current time (defaults to the wall clock; injectable for tests)

    Returns:
        Dict with counts: {"selected", "processed", "skipped", "failed"}.
        If selection fails the dict also carries "error".
    """
    now = now or datetime.now(timezone.utc)
    summary = {"selected": 0, "processed": 0, "skipped": 0, "failed": 0}

    try:
        async with get_connection() as conn:
            reminders = await get_due_reminders(conn, now)
    except Exception as e:
        logger.error(f"Failed to select due reminders, skipping this tick: {e}")
        sentry_sdk.capture_exception(e)
        return {**summary, "error": str(e)}

    summary["selected"] = len(reminders)

    for reminder in reminders:
        try:
            if await dispatch_reminder(reminder, now):
                summary["processed"] += 1
            else:
                summary["skipped"] += 1
        except Exception as e:
            logger.error(f"Failed to process reminder {reminder['reminder_id']}: {e}")
            sentry_sdk.capture_exception(e)
            summary["failed"] += 1

    if reminders:
        logger.info(
            f"Processed {summary['processed']} of {len(reminders)} due reminders "
            f"({summary['skipped']} skipped, {summary['failed']} failed)"
        )

    return summary
