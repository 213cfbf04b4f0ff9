"""
Dayboard — Daily Log Service.

One log per (user, date), created lazily by the first event of the day
(wake-up, sleep, work start/end) and updated by every later one.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from dayboard.core.clock import local_today, to_iso, utc_now
from dayboard.data.models import DAILY_LOGS, DailyLog
from dayboard.ports.store_port import DocumentStore

if TYPE_CHECKING:
    from dayboard.core.recurring_processor import ProcessingSummary

logger = logging.getLogger(__name__)


async def get_daily_log(
    store: DocumentStore, user_id: str, target_date: str | None = None,
) -> DailyLog | None:
    """Fetch the user's log for a date (default: today)."""
    target_date = target_date or local_today().isoformat()
    docs = await store.query(
        DAILY_LOGS,
        [("userId", "==", user_id), ("date", "==", target_date)],
        limit=1,
    )
    if not docs:
        return None
    return DailyLog.model_validate(docs[0])


async def log_daily_activity(
    store: DocumentStore,
    user_id: str,
    fields: dict,
    today: date | None = None,
) -> DailyLog:
    """Merge camelCase `fields` into today's log, creating it if needed."""
    day = (today or local_today()).isoformat()
    existing = await get_daily_log(store, user_id, day)

    if existing is not None:
        await store.update(DAILY_LOGS, existing.id, fields)
        doc = await store.get(DAILY_LOGS, existing.id)
        logger.info("Daily log %s updated for user %s (%s)", day, user_id, ", ".join(fields))
        return DailyLog.model_validate(doc)

    log = DailyLog.model_validate({"userId": user_id, "date": day, **fields})
    log.id = await store.add(DAILY_LOGS, log.to_doc())
    logger.info("Daily log %s created for user %s", day, user_id)
    return log


async def _stamp(
    store: DocumentStore, user_id: str, field: str, now: str | None, today: date | None,
) -> DailyLog:
    return await log_daily_activity(
        store, user_id, {field: now or to_iso(utc_now())}, today=today,
    )


async def log_wake_up_time(
    store: DocumentStore, user_id: str, now: str | None = None, today: date | None = None,
) -> DailyLog:
    return await _stamp(store, user_id, "wakeUpTime", now, today)


async def log_sleep_time(
    store: DocumentStore, user_id: str, now: str | None = None, today: date | None = None,
) -> DailyLog:
    return await _stamp(store, user_id, "sleepTime", now, today)


async def log_work_start_time(
    store: DocumentStore, user_id: str, now: str | None = None, today: date | None = None,
) -> DailyLog:
    return await _stamp(store, user_id, "workStartTime", now, today)


async def log_work_end_time(
    store: DocumentStore, user_id: str, now: str | None = None, today: date | None = None,
) -> DailyLog:
    return await _stamp(store, user_id, "workEndTime", now, today)


async def handle_wake_up(
    store: DocumentStore, user_id: str, now: str | None = None, today: date | None = None,
) -> tuple[DailyLog, ProcessingSummary]:
    """Log the wake-up, then materialize today's recurring items.

    Returns (log, processing summary).
    """
    from dayboard.core.recurring_processor import process_recurring_tasks

    today = today or local_today()
    log = await log_wake_up_time(store, user_id, now=now, today=today)
    summary = await process_recurring_tasks(store, user_id, today, now=now)
    return log, summary
