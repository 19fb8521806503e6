"""SQLAlchemy Core table definitions for the database schema."""

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, TIMESTAMP

from .enums import notification_type_enum, participant_status_enum

# Naming convention for constraints (helps Alembic generate better names)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=convention)


# =====================================================
# 1. USERS
# =====================================================
# Owned by the auth component; read here for names, emails and timezones
users = Table(
    "users",
    metadata,
    Column("user_id", Integer, primary_key=True, autoincrement=True),
    Column("email", Text, nullable=False, unique=True),
    Column("name", Text, nullable=False),
    Column("timezone", Text, nullable=False, server_default="UTC"),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Index("idx_users_email", "email"),
)


# =====================================================
# 2. MEETINGS
# =====================================================
meetings = Table(
    "meetings",
    metadata,
    Column("meeting_id", Integer, primary_key=True, autoincrement=True),
    Column("title", Text, nullable=False),
    Column("description", Text),
    Column("start_time", TIMESTAMP(timezone=True), nullable=False),
    Column("end_time", TIMESTAMP(timezone=True), nullable=False),
    Column("timezone", Text, nullable=False, server_default="UTC"),
    Column("video_link", Text),
    Column("is_cancelled", Boolean, nullable=False, server_default="false"),
    Column(
        "reminder_minutes_before",
        ARRAY(Integer),
        nullable=False,
        server_default=text("ARRAY[15]"),
    ),
    Column(
        "created_by_user_id",
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Index("idx_meetings_created_by_user_id", "created_by_user_id"),
    Index("idx_meetings_start_time", "start_time"),
    Index("idx_meetings_is_cancelled", "is_cancelled"),
)


# =====================================================
# 3. MEETING_PARTICIPANTS
# =====================================================
# email is the identity when the invitee has no account (user_id NULL)
meeting_participants = Table(
    "meeting_participants",
    metadata,
    Column("participant_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "meeting_id",
        Integer,
        ForeignKey("meetings.meeting_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "user_id",
        Integer,
        ForeignKey("users.user_id", ondelete="SET NULL"),
    ),
    Column("email", Text, nullable=False),
    Column("status", participant_status_enum, nullable=False, server_default="invited"),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Index("idx_meeting_participants_meeting_id", "meeting_id"),
    Index("idx_meeting_participants_user_id", "user_id"),
    UniqueConstraint(
        "meeting_id", "email", name="uq_meeting_participants_meeting_id_email"
    ),
)


# =====================================================
# 4. MEETING_REMINDERS
# =====================================================
meeting_reminders = Table(
    "meeting_reminders",
    metadata,
    Column("reminder_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "meeting_id",
        Integer,
        ForeignKey("meetings.meeting_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("minutes_before", Integer, nullable=False),
    Column("scheduled_for", TIMESTAMP(timezone=True), nullable=False),
    Column("sent_at", TIMESTAMP(timezone=True)),  # NULL = pending
    Column("email_sent", Boolean, nullable=False, server_default="false"),
    Column("push_sent", Boolean, nullable=False, server_default="false"),
    Column("in_app_created", Boolean, nullable=False, server_default="false"),
    # Claim marker, set by a conditional update before dispatch starts
    Column("dispatching_at", TIMESTAMP(timezone=True)),
    # {"<user_id>": {"in_app": "sent", "email": "failed", "push": "skipped"}}
    Column("channel_outcomes", JSONB, server_default="{}", nullable=False),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Index("idx_meeting_reminders_scheduled_for", "scheduled_for"),
    Index("idx_meeting_reminders_meeting_id", "meeting_id"),
    UniqueConstraint(
        "meeting_id",
        "minutes_before",
        name="uq_meeting_reminders_meeting_id_minutes_before",
    ),
)


# =====================================================
# 5. NOTIFICATION_PREFERENCES
# =====================================================
# No row for a user means every channel is enabled
notification_preferences = Table(
    "notification_preferences",
    metadata,
    Column("preference_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "user_id",
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("email_enabled", Boolean, nullable=False, server_default="true"),
    Column("push_enabled", Boolean, nullable=False, server_default="true"),
    Column("in_app_enabled", Boolean, nullable=False, server_default="true"),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
)


# =====================================================
# 6. NOTIFICATIONS (in-app inbox)
# =====================================================
notifications = Table(
    "notifications",
    metadata,
    Column("notification_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "user_id",
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("type", notification_type_enum, nullable=False),
    Column("title", Text, nullable=False),
    Column("message", Text, nullable=False),
    Column("is_read", Boolean, nullable=False, server_default="false"),
    Column(
        "related_meeting_id",
        Integer,
        ForeignKey("meetings.meeting_id", ondelete="SET NULL"),
    ),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Index("idx_notifications_user_id", "user_id"),
    Index("idx_notifications_is_read", "is_read"),
    Index("idx_notifications_created_at", "created_at"),
)


# =====================================================
# 7. PUSH_SUBSCRIPTIONS
# =====================================================
push_subscriptions = Table(
    "push_subscriptions",
    metadata,
    Column("subscription_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "user_id",
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("endpoint", Text, nullable=False, unique=True),
    Column("p256dh", Text, nullable=False),
    Column("auth", Text, nullable=False),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Index("idx_push_subscriptions_user_id", "user_id"),
)


# =====================================================
# 8. REFRESH_TOKENS
# =====================================================
refresh_tokens = Table(
    "refresh_tokens",
    metadata,
    Column("token_id", Integer, primary_key=True, autoincrement=True),
    Column("token_hash", Text, nullable=False, unique=True),
    Column(
        "user_id",
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("family_id", Text, nullable=False),  # UUID grouping a rotation chain
    Column("expires_at", TIMESTAMP(timezone=True), nullable=False),
    Column("revoked_at", TIMESTAMP(timezone=True)),  # NULL = active
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Index("idx_refresh_tokens_user_id", "user_id"),
    Index("idx_refresh_tokens_expires_at", "expires_at"),
)
