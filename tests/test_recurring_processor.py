"""Tests for dayboard.core.recurring_processor."""

from datetime import date
from unittest.mock import AsyncMock, patch

import pytest

from dayboard.core.recurring_processor import ProcessingSummary, process_recurring_tasks
from dayboard.data.models import (
    MEALS,
    SCHEDULES,
    SLEEP,
    TASKS,
    WATER_INTAKE,
    Meal,
    RecurrencePattern,
    ScheduleItem,
    Sleep,
    Task,
    WaterIntake,
)
from dayboard.ports.store_port import StoreError

TODAY = date(2024, 1, 10)
NOW = "2024-01-10T06:00:00.000Z"
DAILY = RecurrencePattern(frequency="daily")
WEEKLY = RecurrencePattern(frequency="weekly")


async def _seed(store, user_id="u1"):
    """One recurring template of every kind, all daily and anchored a week ago."""
    await store.add(TASKS, Task(
        user_id=user_id, title="Stretch", deadline="2024-01-03T07:00:00.000Z",
        is_recurring=True, is_active=True, recurrence_pattern=DAILY,
    ).to_doc())
    await store.add(MEALS, Meal(
        user_id=user_id, title="Oats", time="2024-01-03T08:00:00.000Z", date="2024-01-03",
        is_recurring=True, recurrence_pattern=DAILY,
    ).to_doc())
    await store.add(SLEEP, Sleep(
        user_id=user_id, bed_time="2024-01-03T22:00:00.000Z",
        wake_time="2024-01-04T06:00:00.000Z", date="2024-01-03",
        is_recurring=True, recurrence_pattern=DAILY,
    ).to_doc())
    await store.add(WATER_INTAKE, WaterIntake(
        user_id=user_id, amount=250, time="2024-01-03T10:00:00.000Z", date="2024-01-03",
        is_recurring=True, recurrence_pattern=DAILY,
    ).to_doc())
    await store.add(SCHEDULES, ScheduleItem(
        user_id=user_id, title="Standup", start_time="2024-01-03T09:00:00.000Z",
        end_time="2024-01-03T09:15:00.000Z", date="2024-01-03",
        is_recurring=True, recurrence_pattern=DAILY,
    ).to_doc())


async def _run(store, user_id="u1", today=TODAY, **kwargs):
    kwargs.setdefault("enforce_interval", False)
    kwargs.setdefault("idempotent", False)
    return await process_recurring_tasks(store, user_id, today, now=NOW, **kwargs)


class TestProcessRecurringTasks:
    @pytest.mark.asyncio
    async def test_materializes_every_kind_in_order(self, store):
        await _seed(store)
        summary = await _run(store)

        assert [c.kind for c in summary.created] == [
            "task", "meal", "sleep", "water", "schedule",
        ]
        assert summary.count_by_kind == {
            "task": 1, "meal": 1, "sleep": 1, "water": 1, "schedule": 1,
        }
        # 1 template + 1 instance + 4 companions
        assert len(await store.query(TASKS)) == 6

    @pytest.mark.asyncio
    async def test_second_run_creates_nothing(self, store):
        await _seed(store)
        await _run(store)
        before = {c: len(await store.query(c)) for c in (TASKS, MEALS, SLEEP, WATER_INTAKE, SCHEDULES)}

        summary = await _run(store)

        assert summary.created == []
        after = {c: len(await store.query(c)) for c in before}
        assert after == before

    @pytest.mark.asyncio
    async def test_second_run_idempotent_mode(self, store):
        await _seed(store)
        await _run(store, idempotent=True)
        summary = await _run(store, idempotent=True)
        assert summary.created == []
        assert len(await store.query(MEALS)) == 2

    @pytest.mark.asyncio
    async def test_next_day_creates_again(self, store):
        await _seed(store)
        await _run(store)
        summary = await _run(store, today=date(2024, 1, 11))
        assert len(summary.created) == 5

    @pytest.mark.asyncio
    async def test_only_own_templates(self, store):
        await _seed(store, user_id="someone-else")
        summary = await _run(store)
        assert summary.created == []

    @pytest.mark.asyncio
    async def test_inactive_task_template_skipped(self, store):
        await store.add(TASKS, Task(
            user_id="u1", title="Paused", deadline="2024-01-03T07:00:00.000Z",
            is_recurring=True, is_active=False, recurrence_pattern=DAILY,
        ).to_doc())
        summary = await _run(store)
        assert summary.created == []

    @pytest.mark.asyncio
    async def test_non_task_type_template_skipped(self, store):
        await store.add(TASKS, Task(
            user_id="u1", title="Lunch", type="meal", deadline="2024-01-03T12:00:00.000Z",
            is_recurring=True, is_active=True, recurrence_pattern=DAILY,
        ).to_doc())
        summary = await _run(store)
        assert summary.created == []

    @pytest.mark.asyncio
    async def test_weekly_template_off_day(self, store):
        await store.add(MEALS, Meal(
            user_id="u1", title="Pizza", time="2024-01-05T19:00:00.000Z", date="2024-01-05",
            is_recurring=True, recurrence_pattern=WEEKLY,
        ).to_doc())
        summary = await _run(store)
        assert summary.created == []
        summary = await _run(store, today=date(2024, 1, 12))
        assert [c.title for c in summary.created] == ["Meal: Pizza"]

    @pytest.mark.asyncio
    async def test_store_error_aborts_run(self):
        store = AsyncMock()
        store.query.side_effect = StoreError("unavailable")
        with pytest.raises(StoreError):
            await _run(store)
        assert store.query.await_count == 1

    @pytest.mark.asyncio
    async def test_flags_default_from_settings(self, store):
        await store.add(MEALS, Meal(
            user_id="u1", title="Oats", time="2024-01-03T08:00:00.000Z", date="2024-01-03",
            is_recurring=True, recurrence_pattern=RecurrencePattern(frequency="weekly", interval=2),
        ).to_doc())
        with patch("dayboard.config.settings.ENFORCE_RECURRENCE_INTERVAL", True):
            summary = await process_recurring_tasks(store, "u1", TODAY, now=NOW)
        assert summary.created == []


class TestProcessingSummary:
    def test_describe_empty(self):
        assert ProcessingSummary("u1", "2024-01-10").describe() == (
            "Nothing new to create for today."
        )

    @pytest.mark.asyncio
    async def test_describe_counts(self, store):
        await _seed(store)
        summary = await _run(store)
        assert summary.describe() == (
            "Created 5 item(s) for 2024-01-10: 1 task, 1 meal, 1 sleep, 1 water, 1 schedule"
        )
