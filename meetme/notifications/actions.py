"""
High-level notification actions.

These functions are called by meeting business logic (create, edit, cancel,
respond) to keep reminders in sync and to notify the people involved.
"""

import logging
from datetime import datetime

from meetme.database import get_connection, get_transaction
from meetme.enums import NotificationType, ParticipantStatus
from meetme.notifications.context import MeetingDetails, build_meeting_context
from meetme.notifications.dispatcher import send_meeting_notification
from meetme.queries.meetings import get_meeting_with_participants
from meetme.queries.reminders import delete_reminders_for_meeting, regenerate_reminders
from meetme.queries.users import get_user_by_id

logger = logging.getLogger(__name__)

RESPONSE_TEXT = {
    ParticipantStatus.accepted: "accepted",
    ParticipantStatus.declined: "declined",
    ParticipantStatus.tentative: "tentatively accepted",
    ParticipantStatus.invited: "was invited to",
}


async def regenerate_meeting_reminders(
    meeting_id: int,
    start_time: datetime,
    lead_times: list[int],
) -> list[dict]:
    """
    Rebuild a meeting's reminders after it was created or edited.

    Runs in one transaction, so readers see either the old set or the new one.

    Args:
        meeting_id: Meeting whose reminders to replace
        start_time: Meeting start (aware UTC)
        lead_times: Minutes before start; duplicates collapse into one

    Returns:
        The created reminder rows
    """
    async with get_transaction() as conn:
        reminders = await regenerate_reminders(conn, meeting_id, start_time, lead_times)
    logger.info(f"Regenerated {len(reminders)} reminders for meeting {meeting_id}")
    return reminders


async def clear_meeting_reminders(meeting_id: int) -> int:
    """Delete all reminders of a meeting (cancellation). Returns count deleted."""
    async with get_transaction() as conn:
        count = await delete_reminders_for_meeting(conn, meeting_id)
    if count:
        logger.info(f"Cleared {count} reminders for meeting {meeting_id}")
    return count


async def _load_meeting(meeting_id: int) -> dict | None:
    async with get_connection() as conn:
        meeting = await get_meeting_with_participants(conn, meeting_id)
    if meeting is None:
        logger.warning(f"Meeting {meeting_id} not found, no notifications sent")
    return meeting


async def _notify_participants(
    meeting: dict,
    message_type: str,
    notification_type: NotificationType,
    actor_user_id: int,
    actor_name: str | None,
    only_user_ids: set[int] | None = None,
) -> dict[int, dict[str, str]]:
    """Notify every linked participant except the actor. Returns outcomes per user."""
    details = MeetingDetails.from_meeting(meeting)
    results: dict[int, dict[str, str]] = {}

    for participant in meeting["participants"]:
        user = participant.get("user")
        if not user or user["user_id"] == actor_user_id:
            continue
        if only_user_ids is not None and user["user_id"] not in only_user_ids:
            continue

        context = build_meeting_context(
            details, recipient_name=user.get("name"), actor_name=actor_name
        )
        results[user["user_id"]] = await send_meeting_notification(
            user,
            message_type=message_type,
            notification_type=notification_type,
            context=context,
            meeting_id=meeting["meeting_id"],
        )

    return results


async def notify_meeting_invitation(
    meeting_id: int,
    inviter_user_id: int,
    invitee_user_ids: list[int] | None = None,
) -> dict[int, dict[str, str]]:
    """
    Send invitations for a meeting.

    Args:
        meeting_id: The meeting
        inviter_user_id: Who invited (never notified)
        invitee_user_ids: Restrict to these users, e.g. participants added by
            an edit. None means every linked participant.

    Returns:
        Channel outcomes keyed by user_id
    """
    meeting = await _load_meeting(meeting_id)
    if meeting is None:
        return {}

    async with get_connection() as conn:
        inviter = await get_user_by_id(conn, inviter_user_id)

    return await _notify_participants(
        meeting,
        message_type="meeting_invitation",
        notification_type=NotificationType.meeting_invitation,
        actor_user_id=inviter_user_id,
        actor_name=inviter["name"] if inviter else None,
        only_user_ids=set(invitee_user_ids) if invitee_user_ids is not None else None,
    )


async def notify_meeting_updated(
    meeting_id: int,
    editor_user_id: int,
) -> dict[int, dict[str, str]]:
    """Tell participants (other than the editor) that a meeting changed."""
    meeting = await _load_meeting(meeting_id)
    if meeting is None:
        return {}

    return await _notify_participants(
        meeting,
        message_type="meeting_updated",
        notification_type=NotificationType.meeting_updated,
        actor_user_id=editor_user_id,
        actor_name=None,
    )


async def notify_meeting_cancelled(
    meeting_id: int,
    canceller_user_id: int,
) -> dict[int, dict[str, str]]:
    """
    Tell participants a meeting was cancelled.

    The message names the organizer as the canceller. Reminders are not
    touched here; call clear_meeting_reminders as part of the cancellation.
    """
    meeting = await _load_meeting(meeting_id)
    if meeting is None:
        return {}

    return await _notify_participants(
        meeting,
        message_type="meeting_cancelled",
        notification_type=NotificationType.meeting_cancelled,
        actor_user_id=canceller_user_id,
        actor_name=meeting["owner"]["name"],
    )


async def notify_participant_responded(
    meeting_id: int,
    responder_user_id: int,
    status: ParticipantStatus,
) -> dict[str, str] | None:
    """
    Tell the organizer that a participant answered an invitation.

    In-app only. Nothing is sent when the organizer responds to their own
    meeting.

    Returns:
        The organizer's channel outcomes, or None if nobody was notified
    """
    meeting = await _load_meeting(meeting_id)
    if meeting is None:
        return None

    owner = meeting["owner"]
    if owner["user_id"] == responder_user_id:
        return None

    async with get_connection() as conn:
        responder = await get_user_by_id(conn, responder_user_id)
    if responder is None:
        logger.warning(f"Responder {responder_user_id} not found, organizer not notified")
        return None

    context = build_meeting_context(
        MeetingDetails.from_meeting(meeting),
        recipient_name=owner["name"],
        actor_name=responder["name"],
    )
    context["response_text"] = RESPONSE_TEXT[ParticipantStatus(status)]

    return await send_meeting_notification(
        owner,
        message_type="participant_responded",
        notification_type=NotificationType.participant_responded,
        context=context,
        meeting_id=meeting_id,
    )
