"""
Dayboard — Recurring-Item Processor.

Runs on demand only (bot /process, the HTTP process endpoint, wake-up
logging): never on a timer. For each kind, in order task, meal, sleep,
water, schedule, loads the user's recurring templates and materializes
whatever is due today.

Per-item failures are not isolated: the first store error aborts the run
and propagates to the caller.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date

from dayboard.core.clock import local_today, to_iso, utc_now
from dayboard.core.materializer import KIND_SPECS, MaterializedInstance, materialize
from dayboard.ports.store_port import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class ProcessingSummary:
    """What a processing run created. Empty when nothing was due."""

    user_id: str
    date: str
    created: list[MaterializedInstance] = field(default_factory=list)

    @property
    def count_by_kind(self) -> dict[str, int]:
        return dict(Counter(item.kind for item in self.created))

    def describe(self) -> str:
        if not self.created:
            return "Nothing new to create for today."
        parts = [f"{n} {kind}" for kind, n in self.count_by_kind.items()]
        return f"Created {len(self.created)} item(s) for {self.date}: " + ", ".join(parts)


async def process_recurring_tasks(
    store: DocumentStore,
    user_id: str,
    today: date | None = None,
    *,
    now: str | None = None,
    enforce_interval: bool | None = None,
    idempotent: bool | None = None,
) -> ProcessingSummary:
    """Materialize every recurring item of `user_id` that is due today.

    Args:
        store: Document store holding the user's items.
        user_id: Owner whose templates are processed.
        today: Calendar day to materialize for (default: today in TIMEZONE).
        now: createdAt stamp for new documents (default: current UTC instant).
        enforce_interval: Honour interval/endDate. Defaults to config.
        idempotent: Write under deterministic ids. Defaults to config.
    """
    if enforce_interval is None or idempotent is None:
        from dayboard.config import settings
        if enforce_interval is None:
            enforce_interval = settings.ENFORCE_RECURRENCE_INTERVAL
        if idempotent is None:
            idempotent = settings.IDEMPOTENT_MATERIALIZATION

    today = today or local_today()
    now = now or to_iso(utc_now())
    summary = ProcessingSummary(user_id=user_id, date=today.isoformat())

    for spec in KIND_SPECS:
        docs = await store.query(spec.collection, spec.template_filters(user_id))
        for doc in docs:
            item = spec.model.model_validate(doc)
            created = await materialize(
                store, spec, item, user_id, today,
                now=now,
                enforce_interval=enforce_interval,
                idempotent=idempotent,
            )
            if created is not None:
                summary.created.append(created)

    logger.info(
        "Recurring items processed for user %s on %s: %d created",
        user_id, summary.date, len(summary.created),
    )
    return summary
