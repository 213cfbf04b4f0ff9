"""
Dayboard — Task & Lifestyle Service.

Thin CRUD over the document store for tasks (the kanban board) and for
one-off lifestyle items (meals, sleep, water, schedule). Creating a
lifestyle item that is not recurring also puts a companion task on the
board, dated on the item's own date; recurring ones get theirs from the
recurring-item processor instead.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from dayboard.core.clock import local_today, parse_iso, to_iso, utc_now
from dayboard.core.materializer import SPECS_BY_KIND
from dayboard.core.recurrence import meal_due_today
from dayboard.data.models import (
    TASKS,
    Document,
    Meal,
    ScheduleItem,
    Sleep,
    Task,
    TaskStatus,
    WaterIntake,
)
from dayboard.ports.store_port import DocumentNotFoundError, DocumentStore

logger = logging.getLogger(__name__)

BOARD_COLUMNS: tuple[TaskStatus, ...] = ("todo", "in-progress", "completed")


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


async def create_task(store: DocumentStore, task: Task, now: str | None = None) -> Task:
    """Insert a task, stamping createdAt."""
    task = task.model_copy(update={"created_at": now or to_iso(utc_now())})
    task.id = await store.add(TASKS, task.to_doc())
    logger.info("Task created: %s '%s' for user %s", task.id, task.title, task.user_id)
    return task


async def get_task(store: DocumentStore, task_id: str) -> Task | None:
    doc = await store.get(TASKS, task_id)
    if doc is None:
        return None
    return Task.model_validate(doc)


async def update_task(
    store: DocumentStore, task_id: str, changes: dict, now: str | None = None,
) -> Task:
    """Apply camelCase `changes` to a task.

    Moving a task to "completed" stamps completedAt unless one is given.
    Raises DocumentNotFoundError for unknown ids.
    """
    now = now or to_iso(utc_now())
    changes = {**changes, "updatedAt": now}
    if changes.get("status") == "completed" and not changes.get("completedAt"):
        changes["completedAt"] = now

    await store.update(TASKS, task_id, changes)
    task = await get_task(store, task_id)
    if task is None:
        raise DocumentNotFoundError(TASKS, task_id)
    logger.info("Task %s updated (%s)", task_id, ", ".join(changes))
    return task


async def delete_task(store: DocumentStore, task_id: str) -> bool:
    return await store.delete(TASKS, task_id)


async def set_recurring_active(store: DocumentStore, task_id: str, active: bool) -> Task:
    """Pause or resume a recurring task template."""
    return await update_task(store, task_id, {"isActive": active})


async def get_tasks_by_status(
    store: DocumentStore,
    user_id: str,
    status: TaskStatus | None = None,
    now: datetime | None = None,
) -> list[Task]:
    """Tasks ordered by deadline.

    Recurring templates are listed under "todo" only once their deadline
    is today or already past.
    """
    filters = [("userId", "==", user_id)]
    if status:
        filters.append(("status", "==", status))
    docs = await store.query(TASKS, filters, order_by="deadline")
    tasks = [Task.model_validate(d) for d in docs]

    now = now or utc_now()
    end_of_today = datetime.combine(now.date() + timedelta(days=1), datetime.min.time(), now.tzinfo)

    def _visible(task: Task) -> bool:
        if not task.is_recurring or status in ("in-progress", "completed"):
            return True
        return parse_iso(task.deadline) < end_of_today

    return [t for t in tasks if _visible(t)]


async def get_board(
    store: DocumentStore, user_id: str, now: datetime | None = None,
) -> dict[str, list[Task]]:
    """Kanban view: tasks grouped by status column."""
    tasks = await get_tasks_by_status(store, user_id, now=now)
    board: dict[str, list[Task]] = {column: [] for column in BOARD_COLUMNS}
    for task in tasks:
        board.setdefault(task.status, []).append(task)
    return board


async def get_upcoming_tasks(
    store: DocumentStore, user_id: str, now: datetime | None = None,
) -> list[Task]:
    """Open tasks whose deadline falls within the next 24 hours."""
    now = now or utc_now()
    horizon = now + timedelta(days=1)
    tasks = await get_tasks_by_status(store, user_id, now=now)
    return [
        t for t in tasks
        if t.status != "completed" and now <= parse_iso(t.deadline) <= horizon
    ]


# ---------------------------------------------------------------------------
# Lifestyle items
# ---------------------------------------------------------------------------


async def _create_item(
    store: DocumentStore, kind: str, item: Document, with_companion: bool, now: str | None,
) -> Document:
    spec = SPECS_BY_KIND[kind]
    now = now or to_iso(utc_now())
    item = item.model_copy(update={"created_at": now})
    item.id = await store.add(spec.collection, item.to_doc())
    logger.info("%s %s created for user %s", kind.capitalize(), item.id, item.user_id)

    if with_companion and spec.build_companion is not None:
        companion = spec.build_companion(item, item.user_id, item.date, now)
        await store.add(TASKS, companion.to_doc())
    return item


async def create_meal(
    store: DocumentStore, meal: Meal, now: str | None = None, today: date | None = None,
) -> Meal:
    """Meals get a companion task unless recurring; day-scheduled meals also
    get one when today is an enabled day."""
    today = today or local_today()
    with_companion = not meal.is_recurring or meal_due_today(meal.day_schedule, today)
    return await _create_item(store, "meal", meal, with_companion, now)


async def create_sleep(store: DocumentStore, sleep: Sleep, now: str | None = None) -> Sleep:
    return await _create_item(store, "sleep", sleep, not sleep.is_recurring, now)


async def create_water_intake(
    store: DocumentStore, water: WaterIntake, now: str | None = None,
) -> WaterIntake:
    return await _create_item(store, "water", water, not water.is_recurring, now)


async def create_schedule(
    store: DocumentStore, item: ScheduleItem, now: str | None = None,
) -> ScheduleItem:
    return await _create_item(store, "schedule", item, not item.is_recurring, now)
