"""Tests for dayboard.core.task_service — task CRUD, board and lifestyle items."""

from datetime import date

import pytest

from dayboard.core import task_service
from dayboard.core.clock import parse_iso
from dayboard.data.models import (
    MEALS,
    SLEEP,
    TASKS,
    Meal,
    MealSchedule,
    RecurrencePattern,
    ScheduleItem,
    Sleep,
    Task,
    WaterIntake,
)
from dayboard.ports.store_port import DocumentNotFoundError

NOW = "2024-01-10T06:00:00.000Z"
NOW_DT = parse_iso("2024-01-10T06:00:00.000Z")


def _task(**kwargs):
    base = dict(user_id="u1", title="Write report", deadline="2024-01-10T17:00:00.000Z")
    base.update(kwargs)
    return Task(**base)


class TestTaskCrud:
    @pytest.mark.asyncio
    async def test_create_stamps_created_at(self, store):
        task = await task_service.create_task(store, _task(), now=NOW)
        assert task.id is not None
        assert task.created_at == NOW
        assert (await store.get(TASKS, task.id))["createdAt"] == NOW

    @pytest.mark.asyncio
    async def test_get_task(self, store):
        created = await task_service.create_task(store, _task())
        fetched = await task_service.get_task(store, created.id)
        assert fetched.title == "Write report"
        assert await task_service.get_task(store, "missing") is None

    @pytest.mark.asyncio
    async def test_complete_stamps_completed_at(self, store):
        created = await task_service.create_task(store, _task(), now=NOW)
        task = await task_service.update_task(
            store, created.id, {"status": "completed"}, now="2024-01-10T15:00:00.000Z",
        )
        assert task.status == "completed"
        assert task.completed_at == "2024-01-10T15:00:00.000Z"
        assert task.updated_at == "2024-01-10T15:00:00.000Z"

    @pytest.mark.asyncio
    async def test_explicit_completed_at_kept(self, store):
        created = await task_service.create_task(store, _task())
        task = await task_service.update_task(
            store, created.id,
            {"status": "completed", "completedAt": "2024-01-10T09:00:00.000Z"},
        )
        assert task.completed_at == "2024-01-10T09:00:00.000Z"

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, store):
        with pytest.raises(DocumentNotFoundError):
            await task_service.update_task(store, "missing", {"title": "x"})

    @pytest.mark.asyncio
    async def test_delete(self, store):
        created = await task_service.create_task(store, _task())
        assert await task_service.delete_task(store, created.id) is True
        assert await task_service.get_task(store, created.id) is None

    @pytest.mark.asyncio
    async def test_set_recurring_active(self, store):
        created = await task_service.create_task(store, _task(
            is_recurring=True, is_active=True,
            recurrence_pattern=RecurrencePattern(frequency="daily"),
        ))
        task = await task_service.set_recurring_active(store, created.id, False)
        assert task.is_active is False


class TestBoard:
    @pytest.mark.asyncio
    async def test_grouped_by_status_and_sorted_by_deadline(self, store):
        await task_service.create_task(store, _task(title="late", deadline="2024-01-10T18:00:00.000Z"))
        await task_service.create_task(store, _task(title="early", deadline="2024-01-10T08:00:00.000Z"))
        await task_service.create_task(store, _task(title="doing", status="in-progress"))
        await task_service.create_task(store, _task(title="done", status="completed"))

        board = await task_service.get_board(store, "u1", now=NOW_DT)

        assert list(board) == ["todo", "in-progress", "completed"]
        assert [t.title for t in board["todo"]] == ["early", "late"]
        assert [t.title for t in board["in-progress"]] == ["doing"]
        assert [t.title for t in board["completed"]] == ["done"]

    @pytest.mark.asyncio
    async def test_future_recurring_template_hidden(self, store):
        await task_service.create_task(store, _task(
            title="future", deadline="2024-01-12T08:00:00.000Z", is_recurring=True, is_active=True,
        ))
        await task_service.create_task(store, _task(
            title="current", deadline="2024-01-10T20:00:00.000Z", is_recurring=True, is_active=True,
        ))
        board = await task_service.get_board(store, "u1", now=NOW_DT)
        assert [t.title for t in board["todo"]] == ["current"]

    @pytest.mark.asyncio
    async def test_status_filter(self, store):
        await task_service.create_task(store, _task(title="a"))
        await task_service.create_task(store, _task(title="b", status="completed"))
        tasks = await task_service.get_tasks_by_status(store, "u1", "completed", now=NOW_DT)
        assert [t.title for t in tasks] == ["b"]

    @pytest.mark.asyncio
    async def test_empty_board_has_all_columns(self, store):
        board = await task_service.get_board(store, "u1", now=NOW_DT)
        assert board == {"todo": [], "in-progress": [], "completed": []}

    @pytest.mark.asyncio
    async def test_upcoming_tasks(self, store):
        await task_service.create_task(store, _task(title="soon", deadline="2024-01-10T20:00:00.000Z"))
        await task_service.create_task(store, _task(title="later", deadline="2024-01-12T20:00:00.000Z"))
        await task_service.create_task(store, _task(title="past", deadline="2024-01-09T20:00:00.000Z"))
        await task_service.create_task(store, _task(
            title="finished", deadline="2024-01-10T20:00:00.000Z", status="completed",
        ))
        upcoming = await task_service.get_upcoming_tasks(store, "u1", now=NOW_DT)
        assert [t.title for t in upcoming] == ["soon"]


class TestLifestyleItems:
    @pytest.mark.asyncio
    async def test_one_off_meal_gets_companion(self, store):
        meal = Meal(user_id="u1", title="Salad", time="2024-01-10T12:30:00.000Z", date="2024-01-10")
        created = await task_service.create_meal(store, meal, now=NOW, today=date(2024, 1, 10))

        assert (await store.get(MEALS, created.id))["title"] == "Salad"
        tasks = await store.query(TASKS)
        assert len(tasks) == 1
        assert tasks[0]["title"] == "Meal: Salad"
        assert tasks[0]["deadline"] == "2024-01-10T12:30:00.000Z"
        assert tasks[0]["type"] == "meal"

    @pytest.mark.asyncio
    async def test_recurring_meal_without_schedule_has_no_companion(self, store):
        meal = Meal(
            user_id="u1", title="Oats", time="2024-01-10T08:00:00.000Z", date="2024-01-10",
            is_recurring=True, recurrence_pattern=RecurrencePattern(frequency="daily"),
        )
        await task_service.create_meal(store, meal, now=NOW, today=date(2024, 1, 10))
        assert await store.query(TASKS) == []

    @pytest.mark.asyncio
    async def test_scheduled_meal_companion_when_enabled_today(self, store):
        meal = Meal(
            user_id="u1", title="Oats", time="2024-01-10T08:00:00.000Z", date="2024-01-10",
            is_recurring=True,
            day_schedule=[MealSchedule(day_of_week="wednesday", enabled=True)],
        )
        await task_service.create_meal(store, meal, now=NOW, today=date(2024, 1, 10))
        assert len(await store.query(TASKS)) == 1

    @pytest.mark.asyncio
    async def test_sleep_companion_only_when_one_off(self, store):
        one_off = Sleep(
            user_id="u1", bed_time="2024-01-10T23:00:00.000Z",
            wake_time="2024-01-11T07:00:00.000Z", date="2024-01-10",
        )
        recurring = one_off.model_copy(update={"is_recurring": True})
        await task_service.create_sleep(store, one_off, now=NOW)
        await task_service.create_sleep(store, recurring, now=NOW)

        assert len(await store.query(SLEEP)) == 2
        tasks = await store.query(TASKS)
        assert [t["title"] for t in tasks] == ["Bedtime"]
        assert tasks[0]["priority"] == "high"

    @pytest.mark.asyncio
    async def test_water_and_schedule(self, store):
        await task_service.create_water_intake(store, WaterIntake(
            user_id="u1", amount=300, time="2024-01-10T10:00:00.000Z", date="2024-01-10",
        ), now=NOW)
        await task_service.create_schedule(store, ScheduleItem(
            user_id="u1", title="Dentist", start_time="2024-01-10T14:00:00.000Z",
            end_time="2024-01-10T15:00:00.000Z", date="2024-01-10", location="Main St",
        ), now=NOW)

        titles = sorted(t["title"] for t in await store.query(TASKS))
        assert titles == ["Dentist", "Drink Water (300ml)"]
