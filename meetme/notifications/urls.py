"""URL builder utilities for notification templates."""

from meetme.config import get_frontend_url


def build_meeting_url(meeting_id: int) -> str:
    """Build URL to a meeting's detail page."""
    base = get_frontend_url()
    return f"{base}/meetings/{meeting_id}"


def build_settings_url() -> str:
    """Build URL to the notification settings page."""
    base = get_frontend_url()
    return f"{base}/settings"
