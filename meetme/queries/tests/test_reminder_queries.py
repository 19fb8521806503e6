"""Tests for reminder selection, claiming and regeneration.

Query shape is checked by compiling against the PostgreSQL dialect; behavior
uses a real database with the rollback fixture (skipped without DATABASE_URL).
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import insert, select, update
from sqlalchemy.dialects import postgresql

from meetme.tables import (
    meeting_participants,
    meeting_reminders,
    meetings,
    refresh_tokens,
    users,
)
from meetme.queries.refresh_tokens import cleanup_expired_tokens
from meetme.queries.reminders import (
    build_due_reminders_query,
    claim_reminder,
    delete_reminders_for_meeting,
    get_due_reminders,
    get_reminders_for_meeting,
    get_reminders_needing_retry,
    mark_reminder_sent,
    regenerate_reminders,
    release_reminder_claim,
)

NOW = datetime(2031, 6, 2, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# Test Fixtures - Helpers for creating test data
# ============================================================================


async def create_test_user(conn, email: str, name: str = "Test User") -> dict:
    result = await conn.execute(
        insert(users).values(email=email, name=name).returning(users)
    )
    return dict(result.mappings().first())


async def create_test_meeting(
    conn,
    owner_id: int,
    start_time: datetime,
    title: str = "Test Meeting",
    is_cancelled: bool = False,
) -> dict:
    result = await conn.execute(
        insert(meetings)
        .values(
            title=title,
            start_time=start_time,
            end_time=start_time + timedelta(hours=1),
            created_by_user_id=owner_id,
            is_cancelled=is_cancelled,
        )
        .returning(meetings)
    )
    return dict(result.mappings().first())


async def add_participant(conn, meeting_id: int, email: str, user_id: int | None = None):
    await conn.execute(
        insert(meeting_participants).values(
            meeting_id=meeting_id, email=email, user_id=user_id
        )
    )


async def due_ids(conn, now=NOW) -> set[int]:
    reminders = await get_due_reminders(conn, now, batch_size=10_000)
    return {r["reminder_id"] for r in reminders}


# ============================================================================
# Query shape
# ============================================================================


class TestDueReminderQueryShape:
    def test_filters_and_ordering(self):
        sql = str(
            build_due_reminders_query(NOW, batch_size=25).compile(
                dialect=postgresql.dialect()
            )
        )

        assert "meeting_reminders.sent_at IS NULL" in sql
        assert "meetings.is_cancelled IS false" in sql
        assert "meetings.start_time >" in sql
        assert "meeting_reminders.scheduled_for <=" in sql
        assert "ORDER BY meeting_reminders.scheduled_for, meeting_reminders.reminder_id" in sql
        assert "LIMIT" in sql

    def test_fresh_claims_are_excluded(self):
        sql = str(
            build_due_reminders_query(NOW).compile(dialect=postgresql.dialect())
        )

        assert "meeting_reminders.dispatching_at IS NULL OR meeting_reminders.dispatching_at <" in sql

    def test_lookahead_is_added_to_now(self):
        compiled = build_due_reminders_query(
            NOW, lookahead=timedelta(seconds=60)
        ).compile(dialect=postgresql.dialect())

        assert NOW + timedelta(seconds=60) in compiled.params.values()
        assert NOW in compiled.params.values()


# ============================================================================
# Selection
# ============================================================================


class TestGetDueReminders:
    @pytest.mark.asyncio
    async def test_selects_pending_reminder_within_lookahead(self, db_conn):
        owner = await create_test_user(db_conn, "owner-due@example.com", "Owner")
        meeting = await create_test_meeting(db_conn, owner["user_id"], NOW + timedelta(minutes=15))
        created = await regenerate_reminders(
            db_conn, meeting["meeting_id"], meeting["start_time"], [15]
        )

        assert created[0]["reminder_id"] in await due_ids(db_conn)

    @pytest.mark.asyncio
    async def test_excludes_future_sent_cancelled_and_started(self, db_conn):
        owner = await create_test_user(db_conn, "owner-excl@example.com", "Owner")

        future = await create_test_meeting(db_conn, owner["user_id"], NOW + timedelta(hours=3))
        future_rows = await regenerate_reminders(
            db_conn, future["meeting_id"], future["start_time"], [15]
        )

        cancelled = await create_test_meeting(
            db_conn, owner["user_id"], NOW + timedelta(minutes=10), is_cancelled=True
        )
        cancelled_rows = await regenerate_reminders(
            db_conn, cancelled["meeting_id"], cancelled["start_time"], [15]
        )

        started = await create_test_meeting(db_conn, owner["user_id"], NOW - timedelta(minutes=5))
        started_rows = await regenerate_reminders(
            db_conn, started["meeting_id"], started["start_time"], [15]
        )

        sent = await create_test_meeting(db_conn, owner["user_id"], NOW + timedelta(minutes=15))
        sent_rows = await regenerate_reminders(
            db_conn, sent["meeting_id"], sent["start_time"], [15]
        )
        await mark_reminder_sent(db_conn, sent_rows[0]["reminder_id"], NOW, {})

        selected = await due_ids(db_conn)
        for rows in (future_rows, cancelled_rows, started_rows, sent_rows):
            assert rows[0]["reminder_id"] not in selected

    @pytest.mark.asyncio
    async def test_overdue_reminder_for_upcoming_meeting_is_selected(self, db_conn):
        """A reminder whose time already passed still fires while the meeting hasn't started."""
        owner = await create_test_user(db_conn, "owner-late@example.com", "Owner")
        meeting = await create_test_meeting(db_conn, owner["user_id"], NOW + timedelta(minutes=5))
        rows = await regenerate_reminders(
            db_conn, meeting["meeting_id"], meeting["start_time"], [60]
        )

        assert rows[0]["reminder_id"] in await due_ids(db_conn)

    @pytest.mark.asyncio
    async def test_attaches_meeting_participants_and_users(self, db_conn):
        owner = await create_test_user(db_conn, "owner-load@example.com", "Olivia")
        alice = await create_test_user(db_conn, "alice-load@example.com", "Alice")
        meeting = await create_test_meeting(db_conn, owner["user_id"], NOW + timedelta(minutes=15))
        await add_participant(db_conn, meeting["meeting_id"], alice["email"], alice["user_id"])
        await add_participant(db_conn, meeting["meeting_id"], "guest-load@example.com")
        rows = await regenerate_reminders(
            db_conn, meeting["meeting_id"], meeting["start_time"], [15]
        )

        reminders = await get_due_reminders(db_conn, NOW, batch_size=10_000)
        reminder = next(r for r in reminders if r["reminder_id"] == rows[0]["reminder_id"])

        loaded = reminder["meeting"]
        assert loaded["owner"]["name"] == "Olivia"
        by_email = {p["email"]: p for p in loaded["participants"]}
        assert by_email["alice-load@example.com"]["user"]["name"] == "Alice"
        assert by_email["guest-load@example.com"]["user"] is None


# ============================================================================
# Regeneration
# ============================================================================


class TestRegenerateReminders:
    @pytest.mark.asyncio
    async def test_one_reminder_per_distinct_lead(self, db_conn):
        owner = await create_test_user(db_conn, "owner-regen@example.com", "Owner")
        start = NOW + timedelta(days=1)
        meeting = await create_test_meeting(db_conn, owner["user_id"], start)

        await regenerate_reminders(db_conn, meeting["meeting_id"], start, [15, 60, 15])
        reminders = await get_reminders_for_meeting(db_conn, meeting["meeting_id"])

        assert sorted(r["minutes_before"] for r in reminders) == [15, 60]
        for reminder in reminders:
            assert reminder["scheduled_for"] == start - timedelta(
                minutes=reminder["minutes_before"]
            )
            assert reminder["sent_at"] is None

    @pytest.mark.asyncio
    async def test_regenerate_is_idempotent_and_replaces(self, db_conn):
        owner = await create_test_user(db_conn, "owner-idem@example.com", "Owner")
        start = NOW + timedelta(days=1)
        meeting = await create_test_meeting(db_conn, owner["user_id"], start)

        await regenerate_reminders(db_conn, meeting["meeting_id"], start, [15])
        await regenerate_reminders(db_conn, meeting["meeting_id"], start, [15])
        assert len(await get_reminders_for_meeting(db_conn, meeting["meeting_id"])) == 1

        new_start = start + timedelta(hours=2)
        await regenerate_reminders(db_conn, meeting["meeting_id"], new_start, [30])
        reminders = await get_reminders_for_meeting(db_conn, meeting["meeting_id"])

        assert [(r["minutes_before"], r["scheduled_for"]) for r in reminders] == [
            (30, new_start - timedelta(minutes=30))
        ]

    @pytest.mark.asyncio
    async def test_clearing_removes_every_reminder(self, db_conn):
        owner = await create_test_user(db_conn, "owner-clear@example.com", "Owner")
        meeting = await create_test_meeting(db_conn, owner["user_id"], NOW + timedelta(days=1))
        await regenerate_reminders(
            db_conn, meeting["meeting_id"], meeting["start_time"], [15, 60]
        )

        deleted = await delete_reminders_for_meeting(db_conn, meeting["meeting_id"])

        assert deleted == 2
        assert await get_reminders_for_meeting(db_conn, meeting["meeting_id"]) == []


# ============================================================================
# Claiming and completion
# ============================================================================


class TestClaimAndComplete:
    @pytest.mark.asyncio
    async def test_second_claim_fails(self, db_conn):
        owner = await create_test_user(db_conn, "owner-claim@example.com", "Owner")
        meeting = await create_test_meeting(db_conn, owner["user_id"], NOW + timedelta(minutes=15))
        rows = await regenerate_reminders(
            db_conn, meeting["meeting_id"], meeting["start_time"], [15]
        )
        reminder_id = rows[0]["reminder_id"]

        assert await claim_reminder(db_conn, reminder_id, NOW) is True
        assert await claim_reminder(db_conn, reminder_id, NOW + timedelta(seconds=30)) is False

    @pytest.mark.asyncio
    async def test_stale_claim_can_be_taken_over(self, db_conn):
        owner = await create_test_user(db_conn, "owner-stale@example.com", "Owner")
        meeting = await create_test_meeting(db_conn, owner["user_id"], NOW + timedelta(hours=1))
        rows = await regenerate_reminders(
            db_conn, meeting["meeting_id"], meeting["start_time"], [15]
        )
        reminder_id = rows[0]["reminder_id"]

        assert await claim_reminder(db_conn, reminder_id, NOW) is True
        later = NOW + timedelta(minutes=11)
        assert await claim_reminder(db_conn, reminder_id, later) is True

    @pytest.mark.asyncio
    async def test_claimed_reminder_is_not_selected_until_stale(self, db_conn):
        owner = await create_test_user(db_conn, "owner-held@example.com", "Owner")
        meeting = await create_test_meeting(db_conn, owner["user_id"], NOW + timedelta(hours=1))
        rows = await regenerate_reminders(
            db_conn, meeting["meeting_id"], meeting["start_time"], [60]
        )
        reminder_id = rows[0]["reminder_id"]

        await claim_reminder(db_conn, reminder_id, NOW)

        assert reminder_id not in await due_ids(db_conn, NOW + timedelta(minutes=1))
        assert reminder_id in await due_ids(db_conn, NOW + timedelta(minutes=11))

    @pytest.mark.asyncio
    async def test_released_claim_is_due_again_on_the_next_tick(self, db_conn):
        """A 5-minute reminder whose dispatch failed must not wait out the stale window."""
        owner = await create_test_user(db_conn, "owner-release@example.com", "Owner")
        meeting = await create_test_meeting(db_conn, owner["user_id"], NOW + timedelta(minutes=5))
        rows = await regenerate_reminders(
            db_conn, meeting["meeting_id"], meeting["start_time"], [5]
        )
        reminder_id = rows[0]["reminder_id"]

        assert await claim_reminder(db_conn, reminder_id, NOW) is True
        await release_reminder_claim(db_conn, reminder_id)

        next_tick = NOW + timedelta(minutes=1)
        assert reminder_id in await due_ids(db_conn, next_tick)
        assert await claim_reminder(db_conn, reminder_id, next_tick) is True

    @pytest.mark.asyncio
    async def test_release_does_not_touch_sent_reminder(self, db_conn):
        owner = await create_test_user(db_conn, "owner-release-sent@example.com", "Owner")
        meeting = await create_test_meeting(db_conn, owner["user_id"], NOW + timedelta(minutes=15))
        rows = await regenerate_reminders(
            db_conn, meeting["meeting_id"], meeting["start_time"], [15]
        )
        reminder_id = rows[0]["reminder_id"]
        await mark_reminder_sent(db_conn, reminder_id, NOW, {})

        await release_reminder_claim(db_conn, reminder_id)

        result = await db_conn.execute(
            select(meeting_reminders.c.sent_at).where(
                meeting_reminders.c.reminder_id == reminder_id
            )
        )
        assert result.scalar_one() == NOW

    @pytest.mark.asyncio
    async def test_mark_sent_sets_flags_and_outcomes(self, db_conn):
        owner = await create_test_user(db_conn, "owner-mark@example.com", "Owner")
        meeting = await create_test_meeting(db_conn, owner["user_id"], NOW + timedelta(minutes=15))
        rows = await regenerate_reminders(
            db_conn, meeting["meeting_id"], meeting["start_time"], [15]
        )
        reminder_id = rows[0]["reminder_id"]
        outcomes = {"7": {"in_app": "sent", "email": "failed", "push": "skipped"}}

        await claim_reminder(db_conn, reminder_id, NOW)
        await mark_reminder_sent(db_conn, reminder_id, NOW, outcomes)

        result = await db_conn.execute(
            select(meeting_reminders).where(meeting_reminders.c.reminder_id == reminder_id)
        )
        row = result.mappings().first()
        assert row["sent_at"] == NOW
        assert row["email_sent"] and row["push_sent"] and row["in_app_created"]
        assert row["dispatching_at"] is None
        assert row["channel_outcomes"] == outcomes

        assert reminder_id not in await due_ids(db_conn)
        assert await claim_reminder(db_conn, reminder_id, NOW) is False

        retry_ids = {r["reminder_id"] for r in await get_reminders_needing_retry(db_conn, 10_000)}
        assert reminder_id in retry_ids

    @pytest.mark.asyncio
    async def test_clean_reminder_not_listed_for_retry(self, db_conn):
        owner = await create_test_user(db_conn, "owner-ok@example.com", "Owner")
        meeting = await create_test_meeting(db_conn, owner["user_id"], NOW + timedelta(minutes=15))
        rows = await regenerate_reminders(
            db_conn, meeting["meeting_id"], meeting["start_time"], [15]
        )
        reminder_id = rows[0]["reminder_id"]

        await mark_reminder_sent(
            db_conn, reminder_id, NOW, {"7": {"in_app": "sent", "email": "sent", "push": "sent"}}
        )

        retry_ids = {r["reminder_id"] for r in await get_reminders_needing_retry(db_conn, 10_000)}
        assert reminder_id not in retry_ids


class TestRefreshTokenCleanup:
    @pytest.mark.asyncio
    async def test_only_expired_tokens_deleted(self, db_conn):
        user = await create_test_user(db_conn, "tokens@example.com", "Tok")
        await db_conn.execute(
            insert(refresh_tokens).values(
                [
                    {
                        "token_hash": "expired-hash",
                        "user_id": user["user_id"],
                        "family_id": "fam",
                        "expires_at": NOW - timedelta(days=1),
                    },
                    {
                        "token_hash": "live-hash",
                        "user_id": user["user_id"],
                        "family_id": "fam",
                        "expires_at": NOW + timedelta(days=1),
                    },
                ]
            )
        )

        deleted = await cleanup_expired_tokens(db_conn, NOW)

        assert deleted >= 1
        result = await db_conn.execute(
            select(refresh_tokens.c.token_hash).where(
                refresh_tokens.c.user_id == user["user_id"]
            )
        )
        assert [row.token_hash for row in result] == ["live-hash"]


class TestDispatchScenarios:
    @pytest.mark.asyncio
    async def test_only_the_reminder_whose_time_arrived_is_due(self, db_conn):
        """Meeting in 16 minutes with leads [15, 5]: the 15-minute reminder fires, 5 waits."""
        owner = await create_test_user(db_conn, "owner-scenario@example.com", "Owner")
        meeting = await create_test_meeting(db_conn, owner["user_id"], NOW + timedelta(minutes=16))
        rows = await regenerate_reminders(
            db_conn, meeting["meeting_id"], meeting["start_time"], [15, 5]
        )
        by_lead = {r["minutes_before"]: r["reminder_id"] for r in rows}

        selected = await due_ids(db_conn)

        assert by_lead[15] in selected
        assert by_lead[5] not in selected

    @pytest.mark.asyncio
    async def test_cancelling_meeting_hides_its_reminders(self, db_conn):
        owner = await create_test_user(db_conn, "owner-cancel@example.com", "Owner")
        meeting = await create_test_meeting(db_conn, owner["user_id"], NOW + timedelta(minutes=10))
        rows = await regenerate_reminders(
            db_conn, meeting["meeting_id"], meeting["start_time"], [15]
        )
        assert rows[0]["reminder_id"] in await due_ids(db_conn)

        await db_conn.execute(
            update(meetings)
            .where(meetings.c.meeting_id == meeting["meeting_id"])
            .values(is_cancelled=True)
        )

        assert rows[0]["reminder_id"] not in await due_ids(db_conn)
