"""Recurrence evaluator — pure business logic.

Decides whether a recurring item is due to spawn an instance "today".

By default only `frequency` gates recurrence:

    daily    -> always
    weekly   -> same weekday as the anchor date
    monthly  -> same day of month as the anchor date

An anchor on the 31st therefore never matches a 30-day month. `interval`
and `endDate` are honoured only when `enforce_interval=True`.

No I/O: this module only transforms data.
"""

from __future__ import annotations

from datetime import date

from dayboard.data.models import MealSchedule, RecurrencePattern


WEEKDAY_NAMES = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)


def should_materialize_today(
    anchor_date: date,
    pattern: RecurrencePattern | None,
    today: date,
    *,
    enforce_interval: bool = False,
) -> bool:
    """Return True if an instance of the item is due on `today`."""
    if pattern is None:
        return False

    if pattern.frequency == "daily":
        due = True
    elif pattern.frequency == "weekly":
        due = anchor_date.weekday() == today.weekday()
    elif pattern.frequency == "monthly":
        due = anchor_date.day == today.day
    else:
        due = False

    if due and enforce_interval:
        due = _within_interval(anchor_date, pattern, today)
    return due


def _within_interval(anchor_date: date, pattern: RecurrencePattern, today: date) -> bool:
    """Apply endDate and the every-N-periods step, counted from the anchor."""
    if pattern.end_date and today > date.fromisoformat(pattern.end_date[:10]):
        return False
    if today < anchor_date:
        return False

    if pattern.frequency == "daily":
        elapsed = (today - anchor_date).days
    elif pattern.frequency == "weekly":
        elapsed = (today - anchor_date).days // 7
    else:
        elapsed = (today.year - anchor_date.year) * 12 + today.month - anchor_date.month
    return elapsed % pattern.interval == 0


def meal_due_today(day_schedule: list[MealSchedule] | None, today: date) -> bool:
    """Look up today's weekday in a meal's day schedule."""
    if not day_schedule:
        return False
    name = WEEKDAY_NAMES[today.weekday()]
    for entry in day_schedule:
        if entry.day_of_week == name:
            return entry.enabled
    return False
