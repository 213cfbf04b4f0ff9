"""Tests for dayboard.core.daily_log — lazily created per-day logs."""

from datetime import date

import pytest

from dayboard.core import daily_log
from dayboard.data.models import DAILY_LOGS, MEALS, Meal, RecurrencePattern

TODAY = date(2024, 1, 10)


class TestLogDailyActivity:
    @pytest.mark.asyncio
    async def test_first_event_creates_log(self, store):
        log = await daily_log.log_wake_up_time(
            store, "u1", now="2024-01-10T06:30:00.000Z", today=TODAY,
        )
        assert log.id is not None
        assert log.date == "2024-01-10"
        assert log.wake_up_time == "2024-01-10T06:30:00.000Z"
        assert log.sleep_time is None
        assert log.total_work_time == 0

    @pytest.mark.asyncio
    async def test_later_events_update_same_log(self, store):
        first = await daily_log.log_wake_up_time(
            store, "u1", now="2024-01-10T06:30:00.000Z", today=TODAY,
        )
        await daily_log.log_work_start_time(store, "u1", now="2024-01-10T09:00:00.000Z", today=TODAY)
        last = await daily_log.log_work_end_time(
            store, "u1", now="2024-01-10T17:00:00.000Z", today=TODAY,
        )

        assert last.id == first.id
        assert last.wake_up_time == "2024-01-10T06:30:00.000Z"
        assert last.work_start_time == "2024-01-10T09:00:00.000Z"
        assert last.work_end_time == "2024-01-10T17:00:00.000Z"
        assert len(await store.query(DAILY_LOGS)) == 1

    @pytest.mark.asyncio
    async def test_logging_twice_overwrites_field(self, store):
        await daily_log.log_sleep_time(store, "u1", now="2024-01-10T22:00:00.000Z", today=TODAY)
        log = await daily_log.log_sleep_time(
            store, "u1", now="2024-01-10T23:15:00.000Z", today=TODAY,
        )
        assert log.sleep_time == "2024-01-10T23:15:00.000Z"

    @pytest.mark.asyncio
    async def test_one_log_per_day(self, store):
        await daily_log.log_wake_up_time(store, "u1", today=TODAY)
        await daily_log.log_wake_up_time(store, "u1", today=date(2024, 1, 11))
        assert len(await store.query(DAILY_LOGS)) == 2

    @pytest.mark.asyncio
    async def test_users_do_not_share_logs(self, store):
        await daily_log.log_wake_up_time(store, "u1", today=TODAY)
        await daily_log.log_wake_up_time(store, "u2", today=TODAY)
        assert len(await store.query(DAILY_LOGS, [("date", "==", "2024-01-10")])) == 2

    @pytest.mark.asyncio
    async def test_arbitrary_fields(self, store):
        log = await daily_log.log_daily_activity(
            store, "u1", {"notes": "Good focus day", "totalBreakTime": 45}, today=TODAY,
        )
        assert log.notes == "Good focus day"
        assert log.total_break_time == 45


class TestGetDailyLog:
    @pytest.mark.asyncio
    async def test_missing_returns_none(self, store):
        assert await daily_log.get_daily_log(store, "u1", "2024-01-10") is None

    @pytest.mark.asyncio
    async def test_fetch_by_date(self, store):
        await daily_log.log_wake_up_time(store, "u1", today=TODAY)
        log = await daily_log.get_daily_log(store, "u1", "2024-01-10")
        assert log is not None
        assert log.user_id == "u1"


class TestHandleWakeUp:
    @pytest.mark.asyncio
    async def test_logs_and_processes_recurring(self, store):
        await store.add(MEALS, Meal(
            user_id="u1", title="Oats", time="2024-01-03T08:00:00.000Z", date="2024-01-03",
            is_recurring=True, recurrence_pattern=RecurrencePattern(frequency="daily"),
        ).to_doc())

        log, summary = await daily_log.handle_wake_up(
            store, "u1", now="2024-01-10T06:30:00.000Z", today=TODAY,
        )

        assert log.wake_up_time == "2024-01-10T06:30:00.000Z"
        assert [c.kind for c in summary.created] == ["meal"]
        assert summary.date == "2024-01-10"
