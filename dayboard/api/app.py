"""
Dayboard — HTTP API.

JSON endpoints for the web UI: wake-up logging (which also materializes
today's recurring items), on-demand recurring processing, analytics,
task CRUD and lifestyle items (meals, sleep, water, schedule). Every handler returns {"error": ...} with a 4xx/5xx status on
failure; store errors are logged here and never retried.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Awaitable, Callable

from fastapi import Body, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dayboard.config import settings
from dayboard.core import daily_log, performance, task_service
from dayboard.core.recurring_processor import ProcessingSummary, process_recurring_tasks
from dayboard.data.models import Document, Meal, ScheduleItem, Sleep, Task, WaterIntake
from dayboard.ports.store_port import DocumentStore

logger = logging.getLogger(__name__)


class UserRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(default=None, alias="userId")


class ActiveRequest(BaseModel):
    active: bool


def _error(message: str, status: int) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


def _doc(model: Document) -> dict:
    return {"id": model.id, **model.to_doc()}


def _created(summary: ProcessingSummary) -> list[dict]:
    return [asdict(item) for item in summary.created]


def _store(request: Request) -> DocumentStore:
    store = request.app.state.store
    if store is None:
        from dayboard.data.db import SQLiteDocumentStore
        store = request.app.state.store = SQLiteDocumentStore()
    return store


def create_app(store: DocumentStore | None = None) -> FastAPI:
    """Build the FastAPI app. A store is created from settings on first use
    when none is injected."""
    app = FastAPI(title="Dayboard API")
    app.state.store = store

    # ── Daily logs ───────────────────────────────────────────────────

    @app.post("/api/logs/wakeup")
    async def log_wakeup(request: Request, body: UserRequest):
        """Log today's wake-up time, then process recurring items."""
        if not body.user_id:
            return _error("User ID is required", 400)
        try:
            existed = await daily_log.get_daily_log(_store(request), body.user_id) is not None
            log, summary = await daily_log.handle_wake_up(_store(request), body.user_id)
        except Exception as exc:
            logger.error("Wake-up logging failed for %s: %s", body.user_id, exc)
            return _error("Failed to log wake up time", 500)

        verb = "updated" if existed else "logged"
        return {
            "success": True,
            "message": f"Wake up time {verb} successfully",
            "log": _doc(log),
            "created": _created(summary),
        }

    # ── Recurring items ──────────────────────────────────────────────

    @app.post("/api/recurring/process")
    async def process_recurring(
        request: Request, body: UserRequest,
    ):
        if not body.user_id:
            return _error("User ID is required", 400)
        try:
            summary = await process_recurring_tasks(_store(request), body.user_id)
        except Exception as exc:
            logger.error("Recurring processing failed for %s: %s", body.user_id, exc)
            return _error("Failed to process recurring tasks", 500)
        return {"success": True, "message": summary.describe(), "created": _created(summary)}

    @app.post("/api/recurring/{task_id}/active")
    async def set_active(request: Request, task_id: str, body: ActiveRequest):
        store = _store(request)
        try:
            if await task_service.get_task(store, task_id) is None:
                return _error("Task not found", 404)
            task = await task_service.set_recurring_active(store, task_id, body.active)
        except Exception as exc:
            logger.error("Toggling recurring task %s failed: %s", task_id, exc)
            return _error("Failed to update task", 500)
        return {"success": True, "task": _doc(task)}

    # ── Analytics ────────────────────────────────────────────────────

    @app.get("/api/analytics/{user_id}")
    async def analytics(
        request: Request,
        user_id: str,
        days: int | None = Query(default=None, ge=1),
        day: str | None = Query(default=None, alias="date"),
    ):
        if day is not None:
            try:
                day = datetime.strptime(day, "%Y-%m-%d").date().isoformat()
            except ValueError:
                return _error("Invalid date, expected YYYY-MM-DD", 400)
        store = _store(request)
        window = days or settings.METRICS_WINDOW_DAYS
        try:
            metrics = await performance.calculate_performance_metrics(store, user_id, window)
            score = await performance.calculate_daily_performance(store, user_id, day)
        except Exception as exc:
            logger.error("Analytics failed for %s: %s", user_id, exc)
            return _error("Failed to calculate performance", 500)
        return {"days": window, "metrics": asdict(metrics), "dailyPerformance": score}

    # ── Tasks ────────────────────────────────────────────────────────

    @app.get("/api/tasks/{user_id}")
    async def board(request: Request, user_id: str):
        try:
            columns = await task_service.get_board(_store(request), user_id)
        except Exception as exc:
            logger.error("Loading board for %s failed: %s", user_id, exc)
            return _error("Failed to load tasks", 500)
        return {status: [_doc(t) for t in tasks] for status, tasks in columns.items()}

    @app.post("/api/tasks")
    async def create_task(request: Request, payload: dict = Body(...)):
        if not payload or not payload.get("userId"):
            return _error("User ID and task data are required", 400)
        try:
            task = Task.model_validate(payload)
        except ValidationError as exc:
            return _error(f"Invalid task data: {exc.error_count()} error(s)", 400)
        try:
            task = await task_service.create_task(_store(request), task)
        except Exception as exc:
            logger.error("Error creating task: %s", exc)
            return _error("Failed to create task", 500)
        return {"success": True, "message": "Task created successfully", "task": _doc(task)}

    @app.put("/api/tasks")
    async def update_task(request: Request, payload: dict = Body(...)):
        task_id = payload.pop("id", None)
        if not task_id:
            return _error("Task ID is required", 400)
        store = _store(request)
        try:
            if await task_service.get_task(store, task_id) is None:
                return _error("Task not found", 404)
            task = await task_service.update_task(store, task_id, payload)
        except Exception as exc:
            logger.error("Error updating task %s: %s", task_id, exc)
            return _error("Failed to update task", 500)
        return {"success": True, "message": "Task updated successfully", "task": _doc(task)}

    @app.delete("/api/tasks")
    async def delete_task(request: Request, id: str | None = Query(default=None)):
        if not id:
            return _error("Task ID is required", 400)
        store = _store(request)
        try:
            if await task_service.get_task(store, id) is None:
                return _error("Task not found", 404)
            await task_service.delete_task(store, id)
        except Exception as exc:
            logger.error("Error deleting task %s: %s", id, exc)
            return _error("Failed to delete task", 500)
        return {"success": True, "message": "Task deleted successfully", "id": id}

    @app.get("/api/tasks/{user_id}/upcoming")
    async def upcoming(request: Request, user_id: str):
        """Open tasks due within the next 24 hours."""
        try:
            tasks = await task_service.get_upcoming_tasks(_store(request), user_id)
        except Exception as exc:
            logger.error("Loading upcoming tasks for %s failed: %s", user_id, exc)
            return _error("Failed to load tasks", 500)
        return {"tasks": [_doc(t) for t in tasks]}

    # ── Lifestyle items ──────────────────────────────────────────────

    async def _create_lifestyle(
        request: Request,
        payload: dict,
        model: type[Document],
        create: Callable[[DocumentStore, Document], Awaitable[Document]],
        label: str,
    ):
        if not payload or not payload.get("userId"):
            return _error(f"User ID and {label} data are required", 400)
        try:
            item = model.model_validate(payload)
        except ValidationError as exc:
            return _error(f"Invalid {label} data: {exc.error_count()} error(s)", 400)
        try:
            item = await create(_store(request), item)
        except Exception as exc:
            logger.error("Error creating %s: %s", label, exc)
            return _error(f"Failed to create {label}", 500)
        return {
            "success": True,
            "message": f"{label.capitalize()} created successfully",
            "item": _doc(item),
        }

    @app.post("/api/meals")
    async def create_meal(request: Request, payload: dict = Body(...)):
        return await _create_lifestyle(request, payload, Meal, task_service.create_meal, "meal")

    @app.post("/api/sleep")
    async def create_sleep(request: Request, payload: dict = Body(...)):
        return await _create_lifestyle(request, payload, Sleep, task_service.create_sleep, "sleep")

    @app.post("/api/water")
    async def create_water(request: Request, payload: dict = Body(...)):
        return await _create_lifestyle(
            request, payload, WaterIntake, task_service.create_water_intake, "water intake",
        )

    @app.post("/api/schedules")
    async def create_schedule(request: Request, payload: dict = Body(...)):
        return await _create_lifestyle(
            request, payload, ScheduleItem, task_service.create_schedule, "schedule item",
        )

    return app


def run() -> None:
    """Serve the API with uvicorn using API_HOST / API_PORT."""
    import uvicorn

    uvicorn.run(create_app(), host=settings.API_HOST, port=settings.API_PORT)
