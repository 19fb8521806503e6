"""
Context building for meeting notifications.

Turns a loaded meeting (see meetme.queries.meetings) into the structured
payload handed to channel senders and the template variables used by
messages.yaml. Reminder jobs only store ids; everything here is built from
fresh rows at dispatch time.
"""

from dataclasses import dataclass, field
from datetime import datetime

from meetme.notifications.urls import build_meeting_url, build_settings_url
from meetme.timezone import format_lead_time, format_meeting_end, format_meeting_start

# Attendee lists in emails are truncated after this many addresses
MAX_LISTED_ATTENDEES = 5


@dataclass
class MeetingDetails:
    """Everything a channel needs to describe a meeting."""

    meeting_id: int
    title: str
    start_time: datetime
    end_time: datetime
    timezone: str
    organizer_name: str
    description: str | None = None
    video_link: str | None = None
    participant_emails: list[str] = field(default_factory=list)

    @classmethod
    def from_meeting(cls, meeting: dict) -> "MeetingDetails":
        owner = meeting.get("owner") or {}
        return cls(
            meeting_id=meeting["meeting_id"],
            title=meeting["title"],
            start_time=meeting["start_time"],
            end_time=meeting["end_time"],
            timezone=meeting.get("timezone") or "UTC",
            organizer_name=owner.get("name") or "",
            description=meeting.get("description"),
            video_link=meeting.get("video_link"),
            participant_emails=[p["email"] for p in meeting.get("participants", [])],
        )


def format_attendees(emails: list[str]) -> str:
    """Comma-separated attendee list, e.g. "a@x.com, b@x.com and 3 more"."""
    listed = ", ".join(emails[:MAX_LISTED_ATTENDEES])
    remaining = len(emails) - MAX_LISTED_ATTENDEES
    if remaining > 0:
        return f"{listed} and {remaining} more"
    return listed


def build_meeting_context(
    details: MeetingDetails,
    recipient_name: str | None = None,
    minutes_before: int | None = None,
    actor_name: str | None = None,
) -> dict:
    """
    Build template variables for a meeting notification.

    Args:
        details: Meeting payload
        recipient_name: Name used in the greeting
        minutes_before: Reminder lead time (reminders only)
        actor_name: Who triggered the notification (invitations, cancellations)

    Returns:
        Dict of template variables for messages.yaml
    """
    context = {
        "name": recipient_name or "there",
        "meeting_id": details.meeting_id,
        "meeting_title": details.title,
        "meeting_description": details.description or "",
        "meeting_start": format_meeting_start(details.start_time, details.timezone),
        "meeting_end": format_meeting_end(details.end_time, details.timezone),
        "meeting_timezone": details.timezone,
        "organizer_name": details.organizer_name,
        "attendees": format_attendees(details.participant_emails),
        "video_line": (
            f"[Join meeting]({details.video_link})" if details.video_link else ""
        ),
        "meeting_url": build_meeting_url(details.meeting_id),
        "settings_url": build_settings_url(),
        "actor_name": actor_name or details.organizer_name,
    }
    if minutes_before is not None:
        context["lead_time"] = format_lead_time(minutes_before)
    return context
