"""
Dayboard — Instance Materializer.

Turns a recurring item (task, meal, sleep, water, schedule) into today's
concrete instance. Every kind goes through the same pipeline:

    due today? -> already materialized? -> write instance -> write companion

The per-kind differences (collection, dedup filters, which fields carry
over, the kanban companion task) live in a small KindSpec table instead of
five copies of the pipeline.

Dedup is a query-then-write check and is not atomic: two concurrent runs
can both pass the check. With `idempotent=True` documents are written under
a deterministic id so the second write collides instead. A collision that
the dedup check cannot explain (the earlier instance was completed) falls
back to a fresh id, so non-concurrent runs behave the same in both modes.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable

from dayboard.core.clock import date_part, parse_iso, time_part, to_iso, utc_now
from dayboard.core.recurrence import meal_due_today, should_materialize_today
from dayboard.data.models import (
    MEALS,
    SCHEDULES,
    SLEEP,
    TASKS,
    WATER_INTAKE,
    Document,
    Meal,
    ScheduleItem,
    Sleep,
    Task,
    WaterIntake,
)
from dayboard.ports.store_port import DocumentStore, DuplicateDocumentError, Filter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KindSpec:
    """Per-kind configuration for the materialize pipeline."""

    kind: str                                                  # Task.type value
    collection: str
    model: type[Document]
    template_filters: Callable[[str], list[Filter]]
    gating_date: Callable[[Any], str]                          # anchor for weekday/day-of-month
    identity: Callable[[Any], str]                             # dedup identity within a day
    dedup_filters: Callable[[Any, str, date], list[Filter]]
    build_instance: Callable[[Any, str, date, str], Document]
    build_companion: Callable[[Any, str, str, str], Task] | None = None
    uses_day_schedule: bool = False


@dataclass
class MaterializedInstance:
    kind: str
    collection: str
    instance_id: str
    title: str
    companion_id: str | None = None


# ---------------------------------------------------------------------------
# Companion tasks (kanban visibility for non-task kinds)
# ---------------------------------------------------------------------------


def companion_priority(kind: str, item: Any) -> str:
    """Priority of the kanban task that accompanies a lifestyle item."""
    if kind == "meal":
        return "medium" if item.meal_type == "supplement" else "high"
    if kind == "sleep":
        return "high"
    return "medium"


def _deadline_on(day: str, anchor: str) -> str:
    """`day` plus the UTC time-of-day of `anchor`, e.g. "2024-01-10T08:00:00.000Z"."""
    try:
        tod = time_part(to_iso(parse_iso(anchor)))
    except ValueError:
        tod = "00:00:00.000Z"
    return f"{day}T{tod}"


def companion_task(
    kind: str,
    item: Any,
    user_id: str,
    day: str,
    now: str,
    *,
    title: str,
    description: str,
    anchor: str,
    location: str | None = None,
) -> Task:
    return Task(
        user_id=user_id,
        title=title,
        description=description,
        status="todo",
        priority=companion_priority(kind, item),
        type=kind,
        deadline=_deadline_on(day, anchor),
        is_recurring=False,
        completed_at=None,
        created_at=now,
        location=location,
    )


def _meal_companion(meal: Meal, user_id: str, day: str, now: str) -> Task:
    prefix = "Supplement" if meal.meal_type == "supplement" else "Meal"
    return companion_task(
        "meal", meal, user_id, day, now,
        title=f"{prefix}: {meal.title}",
        description=meal.description or "",
        anchor=meal.time,
    )


def _sleep_companion(sleep: Sleep, user_id: str, day: str, now: str) -> Task:
    return companion_task(
        "sleep", sleep, user_id, day, now,
        title="Bedtime",
        description="Time to sleep",
        anchor=sleep.bed_time,
    )


def _water_companion(water: WaterIntake, user_id: str, day: str, now: str) -> Task:
    return companion_task(
        "water", water, user_id, day, now,
        title=f"Drink Water ({water.amount}ml)",
        description="Remember to stay hydrated!",
        anchor=water.time,
    )


def _schedule_companion(item: ScheduleItem, user_id: str, day: str, now: str) -> Task:
    description = item.description or ""
    if item.location:
        description += f" @ {item.location}"
    return companion_task(
        "schedule", item, user_id, day, now,
        title=item.title,
        description=description,
        anchor=item.start_time,
        location=item.location,
    )


# ---------------------------------------------------------------------------
# Instance builders
# ---------------------------------------------------------------------------


def _task_instance(task: Task, user_id: str, today: date, now: str) -> Task:
    return Task(
        user_id=user_id,
        title=task.title,
        description=task.description or "",
        status="todo",
        priority=task.priority or "medium",
        type=task.type or "task",
        deadline=_deadline_on(today.isoformat(), task.deadline),
        is_recurring=False,
        completed_at=None,
        created_at=now,
    )


def _meal_instance(meal: Meal, user_id: str, today: date, now: str) -> Meal:
    return Meal(
        user_id=user_id,
        title=meal.title,
        description=meal.description,
        time=meal.time,
        date=today.isoformat(),
        calories=meal.calories,
        meal_type=meal.meal_type or "regular",
        is_recurring=False,
        created_at=now,
    )


def _sleep_instance(sleep: Sleep, user_id: str, today: date, now: str) -> Sleep:
    return Sleep(
        user_id=user_id,
        bed_time=sleep.bed_time,
        wake_time=sleep.wake_time,
        date=today.isoformat(),
        is_recurring=False,
        created_at=now,
    )


def _water_instance(water: WaterIntake, user_id: str, today: date, now: str) -> WaterIntake:
    return WaterIntake(
        user_id=user_id,
        amount=water.amount,
        time=water.time,
        date=today.isoformat(),
        is_recurring=False,
        created_at=now,
    )


def _schedule_instance(
    item: ScheduleItem, user_id: str, today: date, now: str,
) -> ScheduleItem:
    return ScheduleItem(
        user_id=user_id,
        title=item.title,
        description=item.description,
        start_time=item.start_time,
        end_time=item.end_time,
        date=today.isoformat(),
        location=item.location,
        is_recurring=False,
        created_at=now,
    )


# ---------------------------------------------------------------------------
# Kind table
# ---------------------------------------------------------------------------


def _recurring(user_id: str) -> list[Filter]:
    return [("userId", "==", user_id), ("isRecurring", "==", True)]


def _task_dedup(task: Task, user_id: str, today: date) -> list[Filter]:
    day = today.isoformat()
    return [
        ("userId", "==", user_id),
        ("title", "==", task.title),
        ("status", "==", "todo"),
        ("deadline", ">=", f"{day}T00:00:00.000Z"),
        ("deadline", "<=", f"{day}T23:59:59.999Z"),
        ("isRecurring", "==", False),
    ]


def _titled_dedup(item: Any, user_id: str, today: date) -> list[Filter]:
    return [
        ("userId", "==", user_id),
        ("title", "==", item.title),
        ("date", "==", today.isoformat()),
    ]


def _sleep_dedup(sleep: Sleep, user_id: str, today: date) -> list[Filter]:
    return [("userId", "==", user_id), ("date", "==", today.isoformat())]


def _water_dedup(water: WaterIntake, user_id: str, today: date) -> list[Filter]:
    return [
        ("userId", "==", user_id),
        ("date", "==", today.isoformat()),
        ("time", "==", water.time),
    ]


TASK_SPEC = KindSpec(
    kind="task",
    collection=TASKS,
    model=Task,
    template_filters=lambda uid: _recurring(uid) + [
        ("isActive", "==", True), ("type", "==", "task"),
    ],
    gating_date=lambda t: t.deadline,
    identity=lambda t: t.title,
    dedup_filters=_task_dedup,
    build_instance=_task_instance,
)

MEAL_SPEC = KindSpec(
    kind="meal",
    collection=MEALS,
    model=Meal,
    template_filters=_recurring,
    gating_date=lambda m: m.date,
    identity=lambda m: m.title,
    dedup_filters=_titled_dedup,
    build_instance=_meal_instance,
    build_companion=_meal_companion,
    uses_day_schedule=True,
)

SLEEP_SPEC = KindSpec(
    kind="sleep",
    collection=SLEEP,
    model=Sleep,
    template_filters=_recurring,
    gating_date=lambda s: s.date,
    identity=lambda s: "",
    dedup_filters=_sleep_dedup,
    build_instance=_sleep_instance,
    build_companion=_sleep_companion,
)

WATER_SPEC = KindSpec(
    kind="water",
    collection=WATER_INTAKE,
    model=WaterIntake,
    template_filters=_recurring,
    gating_date=lambda w: w.date,
    identity=lambda w: w.time,
    dedup_filters=_water_dedup,
    build_instance=_water_instance,
    build_companion=_water_companion,
)

SCHEDULE_SPEC = KindSpec(
    kind="schedule",
    collection=SCHEDULES,
    model=ScheduleItem,
    template_filters=_recurring,
    gating_date=lambda s: s.date,
    identity=lambda s: s.title,
    dedup_filters=_titled_dedup,
    build_instance=_schedule_instance,
    build_companion=_schedule_companion,
)

# Processing order
KIND_SPECS: tuple[KindSpec, ...] = (
    TASK_SPEC, MEAL_SPEC, SLEEP_SPEC, WATER_SPEC, SCHEDULE_SPEC,
)
SPECS_BY_KIND = {spec.kind: spec for spec in KIND_SPECS}


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def idempotency_key(kind: str, user_id: str, identity: str, day: date) -> str:
    """Deterministic document id for one item's instance on one day."""
    raw = f"{kind}|{user_id}|{identity}|{day.isoformat()}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def is_due(
    spec: KindSpec, item: Any, today: date, *, enforce_interval: bool = False,
) -> bool:
    """Day-schedule meals use their schedule; everything else its pattern."""
    if spec.uses_day_schedule and item.day_schedule:
        return meal_due_today(item.day_schedule, today)
    return should_materialize_today(
        date_part(spec.gating_date(item)),
        item.recurrence_pattern,
        today,
        enforce_interval=enforce_interval,
    )


async def materialize(
    store: DocumentStore,
    spec: KindSpec,
    item: Any,
    user_id: str,
    today: date,
    *,
    now: str | None = None,
    enforce_interval: bool = False,
    idempotent: bool = False,
) -> MaterializedInstance | None:
    """Create today's instance of `item` (and its companion task) if due.

    Returns None when the item is not due or already materialized. Store
    errors propagate; a failure between the two writes leaves the instance
    without its companion.
    """
    if not is_due(spec, item, today, enforce_interval=enforce_interval):
        logger.debug("%s '%s' not due on %s", spec.kind, spec.identity(item), today)
        return None

    existing = await store.query(spec.collection, spec.dedup_filters(item, user_id, today))
    if existing:
        logger.debug(
            "%s '%s' already materialized for %s", spec.kind, spec.identity(item), today,
        )
        return None

    now = now or to_iso(utc_now())
    instance = spec.build_instance(item, user_id, today, now)
    key = idempotency_key(spec.kind, user_id, spec.identity(item), today) if idempotent else None

    try:
        instance_id = await store.add(spec.collection, instance.to_doc(), doc_id=key)
    except DuplicateDocumentError:
        if await store.query(spec.collection, spec.dedup_filters(item, user_id, today)):
            logger.info(
                "%s '%s' for %s was written concurrently, skipping",
                spec.kind, spec.identity(item), today,
            )
            return None
        # The key belongs to an instance the dedup check no longer matches
        # (e.g. a task completed earlier today): write a fresh one.
        key = None
        instance_id = await store.add(spec.collection, instance.to_doc())

    title = getattr(instance, "title", "") or spec.kind
    result = MaterializedInstance(
        kind=spec.kind,
        collection=spec.collection,
        instance_id=instance_id,
        title=title,
    )

    if spec.build_companion is not None:
        companion = spec.build_companion(item, user_id, today.isoformat(), now)
        companion_key = (
            idempotency_key(f"{spec.kind}:companion", user_id, spec.identity(item), today)
            if key is not None else None
        )
        result.companion_id = await store.add(TASKS, companion.to_doc(), doc_id=companion_key)
        result.title = companion.title

    logger.info(
        "Materialized %s '%s' for user %s on %s", spec.kind, result.title, user_id, today,
    )
    return result
