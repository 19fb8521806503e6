"""
Centralized configuration for the MeetMe backend.

All settings come from environment variables (loaded from .env / .env.local
by the entry points). Functions rather than module constants so tests can
patch os.environ.
"""

import os


def is_dev_mode() -> bool:
    """Check if running in development mode (--dev flag or DEV_MODE env)."""
    return os.getenv("DEV_MODE", "").lower() in ("true", "1", "yes")


def is_production() -> bool:
    """Check if running in the production environment."""
    return os.getenv("ENVIRONMENT", "").lower() == "production"


def get_api_port() -> int:
    """Get API server port from env or default."""
    return int(os.getenv("API_PORT", "4000"))


def get_frontend_url() -> str:
    """Get frontend URL used in links inside notifications."""
    return os.environ.get("FRONTEND_URL", "http://localhost:3000").rstrip("/")


def is_scheduler_disabled() -> bool:
    """Check if the background scheduler is disabled (--no-scheduler)."""
    return os.getenv("DISABLE_SCHEDULER", "").lower() in ("true", "1", "yes")


# =====================================================
# Reminder dispatch tuning
# =====================================================

REMINDER_BATCH_SIZE = 100
REMINDER_LOOKAHEAD_SECONDS = 60
# A claim older than this is treated as abandoned (e.g. the process died mid-tick)
REMINDER_CLAIM_STALE_SECONDS = 600


def get_reminder_interval_seconds() -> int:
    """Seconds between reminder dispatch ticks."""
    return int(os.getenv("REMINDER_INTERVAL_SECONDS", "60"))


def get_token_cleanup_interval_seconds() -> int:
    """Seconds between expired refresh token cleanups."""
    return int(os.getenv("TOKEN_CLEANUP_INTERVAL_SECONDS", "3600"))


def get_channel_timeout_seconds() -> float:
    """Upper bound for a single email/push channel call."""
    return float(os.getenv("CHANNEL_TIMEOUT_SECONDS", "10"))


# =====================================================
# Channel credentials
# =====================================================


def get_sendgrid_api_key() -> str | None:
    return os.environ.get("SENDGRID_API_KEY") or None


def get_from_email() -> str:
    return os.environ.get("FROM_EMAIL", "noreply@meetme.app")


def get_from_name() -> str:
    return os.environ.get("FROM_NAME", "MeetMe")


def get_vapid_settings() -> dict[str, str] | None:
    """
    Get VAPID keys for web push.

    Returns None when either key is missing (push is then a logged no-op).
    """
    public_key = os.environ.get("VAPID_PUBLIC_KEY", "")
    private_key = os.environ.get("VAPID_PRIVATE_KEY", "")
    if not public_key or not private_key:
        return None
    return {
        "public_key": public_key,
        "private_key": private_key,
        "subject": os.environ.get("VAPID_SUBJECT", "mailto:admin@meetme.app"),
    }


# Required environment variables
# Format: (name, description, required_in_dev)
REQUIRED_ENV_VARS = [
    ("DATABASE_URL", "PostgreSQL connection string", True),
    ("SENDGRID_API_KEY", "SendGrid API key for reminder emails", False),
    ("VAPID_PUBLIC_KEY", "VAPID public key for web push", False),
    ("VAPID_PRIVATE_KEY", "VAPID private key for web push", False),
]


def check_required_env_vars() -> tuple[bool, list[str]]:
    """
    Check that required environment variables are set.

    Returns:
        (all_ok, warnings): Tuple of success flag and list of warning messages
    """
    warnings = []
    errors = []
    in_dev = is_dev_mode()

    for name, description, required_in_dev in REQUIRED_ENV_VARS:
        value = os.environ.get(name)

        if not value:
            if is_production() and required_in_dev:
                errors.append(f"  ✗ {name}: Not set ({description})")
            elif required_in_dev or not in_dev:
                warnings.append(f"  ⚠ {name}: Not set ({description})")

    if errors:
        return False, errors + warnings

    return True, warnings
