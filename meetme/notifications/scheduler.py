"""
APScheduler-based timer for the reminder dispatch job.

Two interval jobs share one AsyncIOScheduler:
    reminder_dispatch - every 60s, runs one dispatch tick
    token_cleanup     - every hour, deletes expired refresh tokens

Nothing is persisted: starting the scheduler arms both jobs relative to the
current wall clock, and a restart simply re-arms them. Reminder state itself
lives in the meeting_reminders table, so a missed tick is picked up by the
next one.
"""

import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

import pytz
import sentry_sdk
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from meetme.config import (
    get_reminder_interval_seconds,
    get_token_cleanup_interval_seconds,
)
from meetme.database import get_transaction
from meetme.notifications.dispatcher import process_due_reminders
from meetme.queries.refresh_tokens import cleanup_expired_tokens

logger = logging.getLogger(__name__)

REMINDER_JOB_ID = "reminder_dispatch"
TOKEN_CLEANUP_JOB_ID = "token_cleanup"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


async def delete_expired_tokens(now: datetime) -> int:
    """Delete refresh tokens whose expiry has passed. Returns count deleted."""
    async with get_transaction() as conn:
        return await cleanup_expired_tokens(conn, now)


class ReminderScheduler:
    """
    Owns the process's background timers.

    Dependencies are injected so tests can drive ticks with a fake clock
    and stub jobs without touching the database.

    Args:
        clock: Returns the current aware datetime
        dispatch: Coroutine function running one reminder tick for a given time
        cleanup: Coroutine function deleting expired tokens for a given time
        reminder_interval: Seconds between dispatch ticks
        cleanup_interval: Seconds between token cleanups
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        dispatch: Callable[[datetime], Awaitable[dict]] = process_due_reminders,
        cleanup: Callable[[datetime], Awaitable[int]] = delete_expired_tokens,
        reminder_interval: int | None = None,
        cleanup_interval: int | None = None,
    ):
        self.clock = clock
        self.dispatch = dispatch
        self.cleanup = cleanup
        self.reminder_interval = reminder_interval or get_reminder_interval_seconds()
        self.cleanup_interval = cleanup_interval or get_token_cleanup_interval_seconds()
        self._scheduler: AsyncIOScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """
        Arm both interval jobs. Must be called from inside a running event loop
        (e.g. the FastAPI lifespan).
        """
        if self.running:
            return

        self._scheduler = AsyncIOScheduler(
            job_defaults={
                "coalesce": True,  # Combine missed runs into one
                "max_instances": 1,  # Never overlap a tick with itself
                "misfire_grace_time": 30,
            },
            timezone=pytz.utc,
        )
        self._scheduler.add_job(
            self.run_reminder_tick,
            trigger="interval",
            seconds=self.reminder_interval,
            id=REMINDER_JOB_ID,
            replace_existing=True,
        )
        self._scheduler.add_job(
            self.run_token_cleanup,
            trigger="interval",
            seconds=self.cleanup_interval,
            id=TOKEN_CLEANUP_JOB_ID,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(
            f"Reminder scheduler started (dispatch every {self.reminder_interval}s, "
            f"token cleanup every {self.cleanup_interval}s)"
        )

    def shutdown(self, wait: bool = True) -> None:
        """Stop both jobs. Safe to call when not started."""
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
        self._scheduler = None
        logger.info("Reminder scheduler stopped")

    def get_job_ids(self) -> list[str]:
        if self._scheduler is None:
            return []
        return [job.id for job in self._scheduler.get_jobs()]

    async def run_reminder_tick(self) -> dict | None:
        """Job body for reminder_dispatch. Errors are logged, never raised."""
        try:
            return await self.dispatch(self.clock())
        except Exception as e:
            logger.error(f"Reminder job error: {e}")
            sentry_sdk.capture_exception(e)
            return None

    async def run_token_cleanup(self) -> int | None:
        """Job body for token_cleanup. Errors are logged, never raised."""
        try:
            count = await self.cleanup(self.clock())
        except Exception as e:
            logger.error(f"Token cleanup error: {e}")
            sentry_sdk.capture_exception(e)
            return None

        if count > 0:
            logger.info(f"Cleaned up {count} expired refresh tokens")
        return count

