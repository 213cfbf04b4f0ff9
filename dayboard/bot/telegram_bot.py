"""
Dayboard — Telegram Bot.

A chat front-end to the same core the HTTP API serves: the kanban board,
quick task capture, daily logging (wake-up / sleep / work start / work
end), on-demand recurring processing and analytics. The Telegram user id
is the Dayboard user id.

Security-first: unauthorized users are silently ignored.
"""

from __future__ import annotations

import logging
import re
import sys
from datetime import date, datetime
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
)

from dayboard.config import settings
from dayboard.core import daily_log, performance, task_service
from dayboard.core.clock import local_today
from dayboard.core.recurring_processor import process_recurring_tasks
from dayboard.data.models import PerformanceMetrics, Task

if TYPE_CHECKING:
    from dayboard.ports.store_port import DocumentStore

logger = logging.getLogger(__name__)

_PRIORITIES = ("low", "medium", "high")
_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
_COLUMN_TITLES = {"todo": "To do", "in-progress": "In progress", "completed": "Done"}


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that silently ignores messages from unauthorized users.

    Does NOT send any response to strangers — the bot must not reveal
    its existence to unauthorized users.
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        if user is None or user.id not in settings.ALLOWED_USER_IDS:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return  # Silent ignore
        return await func(update, context)

    return wrapper


def _store(context: ContextTypes.DEFAULT_TYPE) -> DocumentStore:
    return context.bot_data["store"]


def _user_id(update: Update) -> str:
    return str(update.effective_user.id)


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def _parse_addtask(text: str, today: date) -> tuple[str, str, str] | None:
    """Parse "<title> [| priority] [| HH:MM]" into (title, priority, deadline).

    The deadline is today at HH:MM (UTC), or end of day when no time is
    given. Returns None on malformed input.
    """
    parts = [p.strip() for p in text.split("|")]
    title = parts[0]
    if not title:
        return None

    priority = "medium"
    hhmm = "23:59"
    for extra in parts[1:]:
        low = extra.lower()
        if low in _PRIORITIES:
            priority = low
        elif _HHMM.match(extra):
            hhmm = extra
        else:
            return None

    deadline = f"{today.isoformat()}T{hhmm}:00.000Z"
    return title, priority, deadline


def _format_task(task: Task) -> str:
    due = task.deadline.split("T")[1][:5] if "T" in task.deadline else task.deadline
    marker = {"high": "🔴", "medium": "🟡", "low": "🟢"}.get(task.priority, "•")
    return f"{marker} {task.title} (due {due})"


def _format_board(board: dict[str, list[Task]]) -> str:
    lines: list[str] = []
    for status, tasks in board.items():
        lines.append(f"*{_COLUMN_TITLES.get(status, status)}* ({len(tasks)})")
        lines.extend(f"  {_format_task(t)}" for t in tasks)
    return "\n".join(lines)


def _format_metrics(metrics: PerformanceMetrics, days: int) -> str:
    p = metrics.tasks_completed_by_priority
    lines = [
        f"*Last {days} days*",
        f"Tasks: {metrics.total_tasks_completed}/{metrics.total_tasks_created} completed "
        f"({metrics.completion_rate:.0f}%)",
        f"By priority: high {p['high']}, medium {p['medium']}, low {p['low']}",
        f"Avg completion time: {metrics.avg_completion_time:.1f}h",
        f"Deadlines missed: {metrics.deadlines_missed}",
    ]
    if metrics.avg_sleep_duration is not None:
        lines.append(f"Avg sleep: {metrics.avg_sleep_duration:.1f}h")
    if metrics.avg_work_duration is not None:
        lines.append(f"Avg work: {metrics.avg_work_duration:.1f}h")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — welcome message."""
    await update.message.reply_text(
        "Welcome to *Dayboard*!\n\n"
        "I keep your tasks and daily rhythm in one place:\n"
        "• /wakeup when you get up — I'll also set up today's recurring items\n"
        "• /board to see your tasks, /addtask to add one, /done to finish one\n"
        "• /score and /stats to see how you're doing\n\n"
        "Type /help for the full command list.",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list available commands."""
    await update.message.reply_text(
        "*Available commands:*\n"
        "/board — Tasks grouped by status\n"
        "/addtask <title> [| high|medium|low] [| HH:MM] — Add a task for today\n"
        "/done — Mark a task as completed\n"
        "/process — Create today's recurring items now\n"
        "/wakeup, /sleep — Log wake-up / sleep time\n"
        "/workstart, /workend — Log start / end of work\n"
        "/score [YYYY-MM-DD] — Daily performance score\n"
        "/stats [days] — Performance over the last days\n"
        "/help — Show this message",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_board(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /board — show the kanban columns."""
    try:
        board = await task_service.get_board(_store(context), _user_id(update))
    except Exception as exc:
        logger.error("/board error: %s", exc)
        await update.message.reply_text("Couldn't load your tasks. Please try again.")
        return

    if not any(board.values()):
        await update.message.reply_text("Your board is empty. Add a task with /addtask.")
        return
    await update.message.reply_text(_format_board(board), parse_mode="Markdown")


@authorized_only
async def cmd_addtask(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addtask <title> [| priority] [| HH:MM]."""
    text = " ".join(context.args or [])
    parsed = _parse_addtask(text, local_today()) if text else None
    if parsed is None:
        await update.message.reply_text(
            "Usage: /addtask <title> [| high|medium|low] [| HH:MM]\n"
            "Example: /addtask Call the bank | high | 14:30"
        )
        return

    title, priority, deadline = parsed
    task = Task(user_id=_user_id(update), title=title, priority=priority, deadline=deadline)
    try:
        await task_service.create_task(_store(context), task)
    except Exception as exc:
        logger.error("/addtask error: %s", exc)
        await update.message.reply_text("Couldn't save the task. Please try again.")
        return
    await update.message.reply_text(
        f"✅ Added *{title}* ({priority}, due {deadline[11:16]})", parse_mode="Markdown",
    )


@authorized_only
async def cmd_done(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /done — show open tasks as buttons to pick from."""
    try:
        board = await task_service.get_board(_store(context), _user_id(update))
    except Exception as exc:
        logger.error("/done error: %s", exc)
        await update.message.reply_text("Couldn't load your tasks. Please try again.")
        return

    open_tasks = board["todo"] + board["in-progress"]
    if not open_tasks:
        await update.message.reply_text("Nothing left to do. 🎉")
        return

    keyboard = [
        [InlineKeyboardButton(t.title, callback_data=f"done:{t.id}")]
        for t in open_tasks
    ]
    await update.message.reply_text(
        "Which task did you finish?",
        reply_markup=InlineKeyboardMarkup(keyboard),
    )


async def _handle_done_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle the inline button tap to complete a task."""
    query = update.callback_query
    await query.answer()

    # Verify the user is authorized
    user = query.from_user
    if user is None or user.id not in settings.ALLOWED_USER_IDS:
        return

    task_id = query.data.split(":", 1)[1]
    store = _store(context)
    try:
        task = await task_service.get_task(store, task_id)
        if task is None or task.user_id != str(user.id):
            await query.edit_message_text("Task not found or already deleted.")
            return
        if task.status == "completed":
            await query.edit_message_text(f"*{task.title}* was already done.", parse_mode="Markdown")
            return
        await task_service.update_task(store, task_id, {"status": "completed"})
    except Exception as exc:
        logger.error("done callback error: %s", exc)
        await query.edit_message_text("Something went wrong. Please try again.")
        return
    await query.edit_message_text(f"✅ *{task.title}* completed.", parse_mode="Markdown")


@authorized_only
async def cmd_process(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /process — materialize today's recurring items now."""
    try:
        summary = await process_recurring_tasks(_store(context), _user_id(update))
    except Exception as exc:
        logger.error("/process error: %s", exc)
        await update.message.reply_text("Couldn't process recurring items. Please try again.")
        return
    await update.message.reply_text(summary.describe())


@authorized_only
async def cmd_wakeup(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /wakeup — log wake-up time and set up today's recurring items."""
    try:
        log, summary = await daily_log.handle_wake_up(_store(context), _user_id(update))
    except Exception as exc:
        logger.error("/wakeup error: %s", exc)
        await update.message.reply_text("Couldn't log your wake-up time. Please try again.")
        return
    await update.message.reply_text(
        f"☀️ Good morning! Wake-up logged at {log.wake_up_time[11:16]} UTC.\n{summary.describe()}"
    )


def _logging_command(
    log_func: Callable[..., Coroutine[Any, Any, Any]], label: str, field: str,
) -> Callable[[Update, ContextTypes.DEFAULT_TYPE], Coroutine[Any, Any, None]]:
    """Build a /sleep-style handler that stamps one daily-log field."""

    @authorized_only
    async def handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        try:
            log = await log_func(_store(context), _user_id(update))
        except Exception as exc:
            logger.error("%s logging error: %s", label, exc)
            await update.message.reply_text(f"Couldn't log {label}. Please try again.")
            return
        stamp = getattr(log, field) or ""
        await update.message.reply_text(f"✅ {label.capitalize()} logged at {stamp[11:16]} UTC.")

    return handler


cmd_sleep = _logging_command(daily_log.log_sleep_time, "sleep time", "sleep_time")
cmd_workstart = _logging_command(daily_log.log_work_start_time, "work start", "work_start_time")
cmd_workend = _logging_command(daily_log.log_work_end_time, "work end", "work_end_time")


@authorized_only
async def cmd_score(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /score [YYYY-MM-DD] — daily performance score."""
    args = context.args or []
    target: str | None = None
    if args:
        try:
            target = datetime.strptime(args[0], "%Y-%m-%d").date().isoformat()
        except ValueError:
            await update.message.reply_text("Usage: /score [YYYY-MM-DD]")
            return

    try:
        score = await performance.calculate_daily_performance(
            _store(context), _user_id(update), target,
        )
    except Exception as exc:
        logger.error("/score error: %s", exc)
        await update.message.reply_text("Couldn't calculate your score. Please try again.")
        return
    await update.message.reply_text(
        f"📊 Performance for {target or 'today'}: *{score:.0f}/100*", parse_mode="Markdown",
    )


@authorized_only
async def cmd_stats(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /stats [days] — aggregate metrics."""
    args = context.args or []
    days = settings.METRICS_WINDOW_DAYS
    if args:
        try:
            days = int(args[0])
        except ValueError:
            days = 0
        if days < 1:
            await update.message.reply_text("Usage: /stats [days] (a positive number)")
            return

    try:
        metrics = await performance.calculate_performance_metrics(
            _store(context), _user_id(update), days,
        )
    except Exception as exc:
        logger.error("/stats error: %s", exc)
        await update.message.reply_text("Couldn't load your stats. Please try again.")
        return
    await update.message.reply_text(_format_metrics(metrics, days), parse_mode="Markdown")


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def build_app(store: DocumentStore | None = None) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        store: Document store implementation. Defaults to SQLiteDocumentStore
               at DATABASE_PATH.
    """
    app = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).build()

    if store is None:
        from dayboard.data.db import SQLiteDocumentStore
        store = SQLiteDocumentStore()

    # Store the port in bot_data for handler access
    app.bot_data["store"] = store

    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("board", cmd_board))
    app.add_handler(CommandHandler("addtask", cmd_addtask))
    app.add_handler(CommandHandler("done", cmd_done))
    app.add_handler(CommandHandler("process", cmd_process))
    app.add_handler(CommandHandler("wakeup", cmd_wakeup))
    app.add_handler(CommandHandler("sleep", cmd_sleep))
    app.add_handler(CommandHandler("workstart", cmd_workstart))
    app.add_handler(CommandHandler("workend", cmd_workend))
    app.add_handler(CommandHandler("score", cmd_score))
    app.add_handler(CommandHandler("stats", cmd_stats))
    app.add_handler(CallbackQueryHandler(_handle_done_callback, pattern=r"^done:\w+$"))

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def main() -> None:
    """Entry point: build the app and start polling."""
    if not settings.TELEGRAM_BOT_TOKEN or settings.TELEGRAM_BOT_TOKEN.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    logger.info("Starting Dayboard bot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
