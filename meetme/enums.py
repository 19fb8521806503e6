"""SQLAlchemy enum definitions for the database schema."""

import enum

from sqlalchemy import Enum as SQLEnum


# =====================================================
# Python Enum Classes
# =====================================================


class ParticipantStatus(str, enum.Enum):
    invited = "invited"
    accepted = "accepted"
    declined = "declined"
    tentative = "tentative"


class NotificationType(str, enum.Enum):
    meeting_created = "meeting_created"
    meeting_updated = "meeting_updated"
    meeting_cancelled = "meeting_cancelled"
    meeting_invitation = "meeting_invitation"
    meeting_reminder = "meeting_reminder"
    participant_responded = "participant_responded"


class DeliveryChannel(str, enum.Enum):
    in_app = "in_app"
    email = "email"
    push = "push"


class ChannelOutcome(str, enum.Enum):
    """Result of one channel attempt for one recipient (stored as JSON)."""

    sent = "sent"
    failed = "failed"
    skipped = "skipped"


# =====================================================
# SQLAlchemy Enum Types
# These reference PostgreSQL types created by the initial migration
# =====================================================

participant_status_enum = SQLEnum(
    ParticipantStatus, name="participant_status", create_type=False, native_enum=True
)
notification_type_enum = SQLEnum(
    NotificationType, name="notification_type", create_type=False, native_enum=True
)
