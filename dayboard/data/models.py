"""
Dayboard — Data Models.

Persisted records are JSON documents with camelCase keys (the wire shape
shared with the web UI). Each model maps them to snake_case attributes:

    Task.model_validate({"userId": "u1", "title": "Gym", "deadline": "..."})
    task.to_doc()  ->  {"userId": "u1", "title": "Gym", ...}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

TaskStatus = Literal["todo", "in-progress", "completed"]
TaskPriority = Literal["low", "medium", "high"]
TaskType = Literal["task", "meal", "sleep", "water", "schedule"]
DayOfWeek = Literal[
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
]

# Store collection names
TASKS = "tasks"
MEALS = "meals"
SLEEP = "sleep"
WATER_INTAKE = "waterIntake"
SCHEDULES = "schedules"
DAILY_LOGS = "dailyLogs"


class Document(BaseModel):
    """Base for every persisted record."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str | None = None

    def to_doc(self) -> dict:
        """Serialize to the camelCase document shape (without the id)."""
        return self.model_dump(by_alias=True, exclude={"id"})


class RecurrencePattern(BaseModel):
    """How often a recurring item repeats.

    `interval` and `end_date` are stored but only enforced when interval
    enforcement is switched on (see dayboard.core.recurrence).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    frequency: Literal["daily", "weekly", "monthly"]
    interval: int = Field(default=1, ge=1)
    end_date: str | None = None     # ISO date YYYY-MM-DD


class MealSchedule(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    day_of_week: DayOfWeek
    enabled: bool


class Task(Document):
    """A kanban task, either a one-off, a recurring template or an instance."""

    user_id: str
    title: str
    description: str = ""
    status: TaskStatus = "todo"
    priority: TaskPriority = "medium"
    type: TaskType = "task"
    deadline: str                          # ISO instant
    created_at: str = ""
    updated_at: str | None = None
    completed_at: str | None = None
    is_recurring: bool = False
    is_active: bool | None = None          # templates only
    recurrence_pattern: RecurrencePattern | None = None
    tags: list[str] | None = None
    location: str | None = None


class Meal(Document):
    user_id: str
    title: str
    description: str | None = None
    calories: int | None = None
    time: str                              # ISO instant; time-of-day is used
    date: str                              # ISO date YYYY-MM-DD
    meal_type: Literal["regular", "supplement"] | None = None
    is_recurring: bool = False
    recurrence_pattern: RecurrencePattern | None = None
    day_schedule: list[MealSchedule] | None = None
    created_at: str = ""


class Sleep(Document):
    user_id: str
    bed_time: str                          # ISO instant
    wake_time: str                         # ISO instant
    date: str
    quality: Literal["poor", "fair", "good", "excellent"] | None = None
    is_recurring: bool = False
    recurrence_pattern: RecurrencePattern | None = None
    created_at: str = ""


class WaterIntake(Document):
    user_id: str
    amount: int                            # ml
    time: str                              # ISO instant
    date: str
    is_recurring: bool = False
    recurrence_pattern: RecurrencePattern | None = None
    created_at: str = ""


class ScheduleItem(Document):
    user_id: str
    title: str
    description: str | None = None
    start_time: str                        # ISO instant
    end_time: str                          # ISO instant
    date: str
    location: str | None = None
    is_recurring: bool = False
    recurrence_pattern: RecurrencePattern | None = None
    created_at: str = ""


class DailyLog(Document):
    """One per (user, date). Created lazily by the first logged event."""

    user_id: str
    date: str
    wake_up_time: str | None = None
    sleep_time: str | None = None
    work_start_time: str | None = None
    work_end_time: str | None = None
    total_work_time: int = 0               # minutes
    total_break_time: int = 0              # minutes
    tasks_completed: int = 0
    performance: float | None = None       # 0-100, written by the scorer
    records: list[dict] = Field(default_factory=list)
    notes: str = ""


@dataclass
class PerformanceMetrics:
    """Aggregate analytics over a window of days. Never persisted."""

    total_tasks_created: int
    total_tasks_completed: int
    completion_rate: float                 # percentage
    avg_completion_time: float             # hours
    tasks_completed_by_priority: dict[str, int] = field(
        default_factory=lambda: {"high": 0, "medium": 0, "low": 0}
    )
    deadlines_missed: int = 0
    avg_sleep_duration: float | None = None    # hours
    avg_work_duration: float | None = None     # hours
