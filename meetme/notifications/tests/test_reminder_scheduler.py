"""Tests for the reminder scheduler."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

FIXED_NOW = datetime(2024, 1, 10, 14, 45, tzinfo=timezone.utc)


def fixed_clock():
    return FIXED_NOW


class TestReminderTick:
    @pytest.mark.asyncio
    async def test_tick_passes_injected_clock_to_dispatch(self):
        from meetme.notifications.scheduler import ReminderScheduler

        dispatch = AsyncMock(return_value={"selected": 0})
        scheduler = ReminderScheduler(
            clock=fixed_clock, dispatch=dispatch, cleanup=AsyncMock(return_value=0)
        )

        result = await scheduler.run_reminder_tick()

        dispatch.assert_awaited_once_with(FIXED_NOW)
        assert result == {"selected": 0}

    @pytest.mark.asyncio
    async def test_tick_error_is_logged_not_raised(self, caplog):
        from meetme.notifications.scheduler import ReminderScheduler

        scheduler = ReminderScheduler(
            clock=fixed_clock,
            dispatch=AsyncMock(side_effect=RuntimeError("boom")),
            cleanup=AsyncMock(return_value=0),
        )

        with patch("meetme.notifications.scheduler.sentry_sdk") as sentry:
            result = await scheduler.run_reminder_tick()

        assert result is None
        sentry.capture_exception.assert_called_once()
        assert "Reminder job error: boom" in caplog.text


class TestTokenCleanup:
    @pytest.mark.asyncio
    async def test_logs_count_when_tokens_deleted(self, caplog):
        import logging

        from meetme.notifications.scheduler import ReminderScheduler

        cleanup = AsyncMock(return_value=3)
        scheduler = ReminderScheduler(
            clock=fixed_clock, dispatch=AsyncMock(), cleanup=cleanup
        )

        with caplog.at_level(logging.INFO):
            count = await scheduler.run_token_cleanup()

        cleanup.assert_awaited_once_with(FIXED_NOW)
        assert count == 3
        assert "Cleaned up 3 expired refresh tokens" in caplog.text

    @pytest.mark.asyncio
    async def test_silent_when_nothing_deleted(self, caplog):
        import logging

        from meetme.notifications.scheduler import ReminderScheduler

        scheduler = ReminderScheduler(
            clock=fixed_clock, dispatch=AsyncMock(), cleanup=AsyncMock(return_value=0)
        )

        with caplog.at_level(logging.INFO):
            count = await scheduler.run_token_cleanup()

        assert count == 0
        assert "Cleaned up" not in caplog.text

    @pytest.mark.asyncio
    async def test_cleanup_error_is_logged_not_raised(self, caplog):
        from meetme.notifications.scheduler import ReminderScheduler

        scheduler = ReminderScheduler(
            clock=fixed_clock,
            dispatch=AsyncMock(),
            cleanup=AsyncMock(side_effect=RuntimeError("db gone")),
        )

        with patch("meetme.notifications.scheduler.sentry_sdk"):
            count = await scheduler.run_token_cleanup()

        assert count is None
        assert "Token cleanup error: db gone" in caplog.text

    @pytest.mark.asyncio
    async def test_default_cleanup_deletes_in_transaction(self):
        from meetme.notifications.scheduler import delete_expired_tokens

        mock_conn = AsyncMock()
        with (
            patch("meetme.notifications.scheduler.get_transaction") as mock_txn,
            patch(
                "meetme.notifications.scheduler.cleanup_expired_tokens",
                new_callable=AsyncMock,
                return_value=2,
            ) as mock_cleanup,
        ):
            mock_txn.return_value.__aenter__.return_value = mock_conn
            count = await delete_expired_tokens(FIXED_NOW)

        assert count == 2
        mock_cleanup.assert_awaited_once_with(mock_conn, FIXED_NOW)


class TestSchedulerLifecycle:
    @pytest.mark.asyncio
    async def test_start_registers_both_jobs(self):
        from meetme.notifications.scheduler import (
            REMINDER_JOB_ID,
            TOKEN_CLEANUP_JOB_ID,
            ReminderScheduler,
        )

        scheduler = ReminderScheduler(
            clock=fixed_clock,
            dispatch=AsyncMock(),
            cleanup=AsyncMock(return_value=0),
            reminder_interval=60,
            cleanup_interval=3600,
        )
        scheduler.start()
        try:
            assert scheduler.running
            assert sorted(scheduler.get_job_ids()) == sorted(
                [REMINDER_JOB_ID, TOKEN_CLEANUP_JOB_ID]
            )
        finally:
            scheduler.shutdown(wait=False)

        assert not scheduler.running
        assert scheduler.get_job_ids() == []

    @pytest.mark.asyncio
    async def test_jobs_never_overlap(self):
        from meetme.notifications.scheduler import REMINDER_JOB_ID, ReminderScheduler

        scheduler = ReminderScheduler(
            clock=fixed_clock,
            dispatch=AsyncMock(),
            cleanup=AsyncMock(return_value=0),
            reminder_interval=60,
        )
        scheduler.start()
        try:
            job = scheduler._scheduler.get_job(REMINDER_JOB_ID)
            assert job.max_instances == 1
            assert job.coalesce is True
            assert job.trigger.interval.total_seconds() == 60
        finally:
            scheduler.shutdown(wait=False)

    def test_shutdown_before_start_is_noop(self):
        from meetme.notifications.scheduler import ReminderScheduler

        scheduler = ReminderScheduler(dispatch=AsyncMock(), cleanup=AsyncMock())
        scheduler.shutdown()

        assert not scheduler.running

    def test_intervals_come_from_environment(self):
        from meetme.notifications.scheduler import ReminderScheduler

        with patch.dict(
            "os.environ",
            {"REMINDER_INTERVAL_SECONDS": "30", "TOKEN_CLEANUP_INTERVAL_SECONDS": "120"},
        ):
            scheduler = ReminderScheduler(dispatch=AsyncMock(), cleanup=AsyncMock())

        assert scheduler.reminder_interval == 30
        assert scheduler.cleanup_interval == 120
