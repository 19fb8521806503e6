"""
MeetMe backend core - meeting reminders and notifications.

The reminder dispatch subsystem lives in meetme.notifications; persistence
helpers live in meetme.queries.
"""

# Database (SQLAlchemy)
from .database import get_connection, get_transaction, get_engine, close_engine

# Timezone utilities
from .timezone import format_meeting_start, format_lead_time

__all__ = [
    # Database (SQLAlchemy)
    'get_connection', 'get_transaction', 'get_engine', 'close_engine',
    # Timezone
    'format_meeting_start', 'format_lead_time',
]
