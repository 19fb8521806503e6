"""
Notification system for meeting reminders and meeting updates.

Public API:
    process_due_reminders(now) - Run one reminder dispatch tick
    ReminderScheduler - Interval timer driving dispatch and token cleanup

High-level actions:
    regenerate_meeting_reminders(...) - Rebuild reminders after create/edit
    clear_meeting_reminders(meeting_id) - Drop reminders on cancellation
    notify_meeting_invitation(...) - Invite participants
    notify_meeting_updated(...) - Tell participants a meeting changed
    notify_meeting_cancelled(...) - Tell participants a meeting was cancelled
    notify_participant_responded(...) - Tell the organizer about a response
"""

from .dispatcher import process_due_reminders, send_meeting_notification
from .scheduler import ReminderScheduler
from .actions import (
    regenerate_meeting_reminders,
    clear_meeting_reminders,
    notify_meeting_invitation,
    notify_meeting_updated,
    notify_meeting_cancelled,
    notify_participant_responded,
)

__all__ = [
    # Low-level
    "process_due_reminders",
    "send_meeting_notification",
    "ReminderScheduler",
    # High-level actions
    "regenerate_meeting_reminders",
    "clear_meeting_reminders",
    "notify_meeting_invitation",
    "notify_meeting_updated",
    "notify_meeting_cancelled",
    "notify_participant_responded",
]
