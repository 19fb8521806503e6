"""
Timezone and duration formatting for reminder messages.
"""

from datetime import datetime

import pytz


def _to_local(utc_dt: datetime, tz_name: str) -> datetime:
    """Convert a UTC datetime into tz_name, falling back to UTC for unknown zones."""
    # Ensure datetime is timezone-aware (treat naive as UTC)
    if utc_dt.tzinfo is None:
        utc_dt = pytz.UTC.localize(utc_dt)

    try:
        tz = pytz.timezone(tz_name)
        return utc_dt.astimezone(tz)
    except pytz.UnknownTimeZoneError:
        return utc_dt.astimezone(pytz.UTC)


def _format_clock(local_dt: datetime) -> str:
    return local_dt.strftime("%I:%M %p").lstrip("0")  # "3:00 PM" not "03:00 PM"


def format_meeting_start(utc_dt: datetime, tz_name: str) -> str:
    """
    Format a meeting start time in the meeting's timezone.

    Args:
        utc_dt: Start time (naive datetimes treated as UTC)
        tz_name: Timezone string (e.g., "America/New_York")

    Returns:
        Formatted string like "Wednesday, January 10, 2024 3:00 PM"
    """
    local_dt = _to_local(utc_dt, tz_name)
    date_str = local_dt.strftime("%A, %B %d, %Y").replace(" 0", " ")
    return f"{date_str} {_format_clock(local_dt)}"


def format_meeting_end(utc_dt: datetime, tz_name: str) -> str:
    """Format a meeting end time as just the clock time, e.g. "4:30 PM"."""
    return _format_clock(_to_local(utc_dt, tz_name))


def format_lead_time(minutes_before: int) -> str:
    """
    Human-readable reminder lead time.

    Whole hours only once the lead reaches an hour: 15 -> "15 minutes",
    60 -> "1 hour(s)", 90 -> "1 hour(s)", 1440 -> "24 hour(s)".
    """
    if minutes_before >= 60:
        return f"{minutes_before // 60} hour(s)"
    return f"{minutes_before} minutes"
