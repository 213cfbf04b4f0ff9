"""
Dayboard — Performance Scorer.

Two views over a user's tasks and daily logs:

- calculate_performance_metrics: aggregates over a window of days
  (completion rate, average completion time, missed deadlines, average
  sleep/work duration).
- calculate_daily_performance: a single day's 0-100 score, written back
  onto that day's log when one exists.

Durations are counted in whole hours (truncated), both in averages and in
the 6-10 hour work bonus.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from dayboard.core.clock import day_bounds, local_today, parse_iso, to_iso, utc_now, whole_hours
from dayboard.core.daily_log import get_daily_log
from dayboard.data.models import DAILY_LOGS, TASKS, DailyLog, PerformanceMetrics, Task
from dayboard.ports.store_port import DocumentStore

logger = logging.getLogger(__name__)

BASE_SCORE = 50.0
MAX_COMPLETION_SCORE = 30.0
PARTIAL_COMPLETION_SCORE = 15.0
MAX_PRIORITY_SCORE = 10.0
PARTIAL_PRIORITY_SCORE = 5.0
WELLNESS_POINTS = 2.0
WORK_HOURS_RANGE = (6, 10)


# ---------------------------------------------------------------------------
# Window metrics
# ---------------------------------------------------------------------------


def is_deadline_missed(task: Task) -> bool:
    """Not completed, or completed after its deadline."""
    if not task.deadline:
        return False
    if task.status == "completed" and not task.completed_at:
        return False
    if not task.completed_at:
        return True
    return parse_iso(task.completed_at) > parse_iso(task.deadline)


def _mean_hours(pairs: list[tuple[str | None, str | None]]) -> float | None:
    """Mean whole-hour span over pairs whose end is strictly after the start."""
    spans: list[int] = []
    for start, end in pairs:
        if not start or not end:
            continue
        start_dt, end_dt = parse_iso(start), parse_iso(end)
        if end_dt > start_dt:
            spans.append(whole_hours(start_dt, end_dt))
    if not spans:
        return None
    return sum(spans) / len(spans)


def summarize_metrics(tasks: list[Task], logs: list[DailyLog]) -> PerformanceMetrics:
    """Pure aggregation step of calculate_performance_metrics."""
    completed = [t for t in tasks if t.status == "completed"]
    created_count = len(tasks)
    completion_rate = len(completed) / created_count * 100 if created_count else 0.0

    by_priority = {
        p: sum(1 for t in completed if t.priority == p)
        for p in ("high", "medium", "low")
    }

    durations: list[int] = []
    for task in completed:
        if task.completed_at and task.created_at:
            hours = whole_hours(parse_iso(task.created_at), parse_iso(task.completed_at))
            if hours > 0:
                durations.append(hours)
    avg_completion = sum(durations) / len(durations) if durations else 0.0

    return PerformanceMetrics(
        total_tasks_created=created_count,
        total_tasks_completed=len(completed),
        completion_rate=completion_rate,
        avg_completion_time=avg_completion,
        tasks_completed_by_priority=by_priority,
        deadlines_missed=sum(1 for t in tasks if is_deadline_missed(t)),
        avg_sleep_duration=_mean_hours([(log.wake_up_time, log.sleep_time) for log in logs]),
        avg_work_duration=_mean_hours(
            [(log.work_start_time, log.work_end_time) for log in logs]
        ),
    )


async def calculate_performance_metrics(
    store: DocumentStore,
    user_id: str,
    days: int = 30,
    *,
    now: datetime | None = None,
) -> PerformanceMetrics:
    """Aggregate metrics over tasks created and logs dated in the last `days` days."""
    end = now or utc_now()
    start = end - timedelta(days=days)

    task_docs = await store.query(
        TASKS,
        [
            ("userId", "==", user_id),
            ("createdAt", ">=", to_iso(start)),
            ("createdAt", "<=", to_iso(end)),
        ],
    )
    log_docs = await store.query(
        DAILY_LOGS,
        [
            ("userId", "==", user_id),
            ("date", ">=", start.date().isoformat()),
            ("date", "<=", end.date().isoformat()),
        ],
        order_by="date",
    )

    metrics = summarize_metrics(
        [Task.model_validate(d) for d in task_docs],
        [DailyLog.model_validate(d) for d in log_docs],
    )
    logger.debug(
        "Metrics for user %s over %d days: %d created, %.1f%% completed",
        user_id, days, metrics.total_tasks_created, metrics.completion_rate,
    )
    return metrics


# ---------------------------------------------------------------------------
# Daily score
# ---------------------------------------------------------------------------


def score_day(
    due_tasks: list[Task], completed_tasks: list[Task], log: DailyLog | None,
) -> float:
    """Base 50 + completion (30) + high priority (10) + wellness (10), clamped to 0-100."""
    score = BASE_SCORE

    completed_due = sum(1 for t in due_tasks if t.status == "completed")
    if due_tasks:
        score += min(MAX_COMPLETION_SCORE, MAX_COMPLETION_SCORE * completed_due / len(due_tasks))
    elif completed_tasks:
        score += PARTIAL_COMPLETION_SCORE

    high_due = sum(1 for t in due_tasks if t.priority == "high")
    high_completed = sum(1 for t in completed_tasks if t.priority == "high")
    if high_due:
        score += min(MAX_PRIORITY_SCORE, MAX_PRIORITY_SCORE * high_completed / high_due)
    elif high_completed:
        score += PARTIAL_PRIORITY_SCORE

    if log is not None:
        stamps = (log.wake_up_time, log.sleep_time, log.work_start_time, log.work_end_time)
        score += WELLNESS_POINTS * sum(1 for s in stamps if s)
        if log.work_start_time and log.work_end_time:
            hours = whole_hours(parse_iso(log.work_start_time), parse_iso(log.work_end_time))
            low, high = WORK_HOURS_RANGE
            if low <= hours <= high:
                score += WELLNESS_POINTS

    return max(0.0, min(100.0, score))


async def calculate_daily_performance(
    store: DocumentStore,
    user_id: str,
    target_date: str | date | None = None,
) -> float:
    """Score one day (default: today) and persist it onto that day's log.

    When the day has no log yet the score is returned but not stored.
    """
    if target_date is None:
        day = local_today()
    elif isinstance(target_date, date):
        day = target_date
    else:
        day = date.fromisoformat(target_date)
    start, end = day_bounds(day)

    log = await get_daily_log(store, user_id, day.isoformat())
    due_docs = await store.query(
        TASKS,
        [("userId", "==", user_id), ("deadline", ">=", start), ("deadline", "<", end)],
    )
    completed_docs = await store.query(
        TASKS,
        [("userId", "==", user_id), ("completedAt", ">=", start), ("completedAt", "<", end)],
    )
    completed = [Task.model_validate(d) for d in completed_docs]

    score = score_day([Task.model_validate(d) for d in due_docs], completed, log)

    if log is not None:
        await store.update(
            DAILY_LOGS, log.id, {"performance": score, "tasksCompleted": len(completed)},
        )
        logger.info("Performance %.1f stored for user %s on %s", score, user_id, day)
    else:
        logger.debug("No daily log for user %s on %s; score %.1f not stored", user_id, day, score)
    return score
