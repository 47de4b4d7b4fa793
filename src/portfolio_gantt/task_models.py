from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Literal


TaskStatus = Literal["not_started", "in_progress", "completed", "on_hold", "cancelled"]
"""Lifecycle states a task moves through."""

TaskPriority = Literal["low", "medium", "high", "critical"]

DependencyType = Literal["finish_to_start", "start_to_start", "finish_to_finish", "start_to_finish"]
"""Relation between predecessor and successor: which edge of each is linked."""

ViewMode = Literal["days", "weeks", "months"]

TASK_STATUSES: tuple[str, ...] = ("not_started", "in_progress", "completed", "on_hold", "cancelled")
TASK_PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "critical")
DEPENDENCY_TYPES: tuple[str, ...] = ("finish_to_start", "start_to_start", "finish_to_finish", "start_to_finish")
VIEW_MODES: tuple[str, ...] = ("days", "weeks", "months")


def as_datetime(value: date | datetime) -> datetime:
    """
    Promote a calendar date to midnight.

    Timezone-aware datetimes are converted to naive UTC so they compare with
    promoted dates; naive datetimes pass through.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    return datetime(value.year, value.month, value.day)


@dataclass
class TaskResource:
    """Allocation of a named resource to a task."""

    id: str
    task_id: str
    resource_name: str
    role: str = ""
    allocation_percentage: float = 100.0
    planned_start_date: date | None = None
    planned_end_date: date | None = None
    actual_start_date: date | None = None
    actual_end_date: date | None = None
    hourly_rate: float = 0.0
    created_at: datetime | None = None


@dataclass
class TaskDependency:
    """Directed edge between two tasks, referenced by id only."""

    id: str
    predecessor_task_id: str
    successor_task_id: str
    dependency_type: DependencyType = "finish_to_start"
    lag_days: int = 0
    created_at: datetime | None = None


@dataclass
class TaskDeviation:
    """Signed day differences between actual and planned dates (actual minus planned)."""

    start_deviation: int = 0
    end_deviation: int = 0
    duration_deviation: int = 0


@dataclass
class Task:
    """Unit of work owned by exactly one project."""

    id: str
    project_id: str
    name: str
    created_at: datetime
    description: str | None = None
    status: TaskStatus = "not_started"
    priority: TaskPriority = "medium"
    planned_start_date: date | None = None
    planned_end_date: date | None = None
    actual_start_date: date | None = None
    actual_end_date: date | None = None
    progress: float = 0
    estimated_hours: float = 0
    actual_hours: float = 0
    updated_at: datetime | None = None
    dependencies: list[TaskDependency] = field(default_factory=list)
    resources: list[TaskResource] = field(default_factory=list)

    @property
    def planned_duration_days(self) -> int | None:
        """Inclusive planned duration, or None when either planned date is missing."""
        if self.planned_start_date is None or self.planned_end_date is None:
            return None
        return (self.planned_end_date - self.planned_start_date).days + 1

    @property
    def actual_duration_days(self) -> int | None:
        if self.actual_start_date is None or self.actual_end_date is None:
            return None
        return (self.actual_end_date - self.actual_start_date).days + 1

    def deviation(self) -> TaskDeviation:
        """
        Compare actual dates against the plan.

        Each component is zero when either side of the comparison is unset.
        """
        start = _day_delta(self.actual_start_date, self.planned_start_date)
        end = _day_delta(self.actual_end_date, self.planned_end_date)
        duration = 0
        if self.actual_duration_days is not None and self.planned_duration_days is not None:
            duration = self.actual_duration_days - self.planned_duration_days
        return TaskDeviation(start_deviation=start, end_deviation=end, duration_deviation=duration)


def _day_delta(actual: date | None, planned: date | None) -> int:
    if actual is None or planned is None:
        return 0
    return (actual - planned).days


@dataclass(frozen=True)
class GanttTask:
    """
    Renderer-facing projection of a Task.

    Built fresh for every render pass and never written back; `dependencies`
    holds predecessor task ids.
    """

    id: str
    name: str
    start: datetime
    end: datetime
    progress: float
    status: str
    priority: str
    dependencies: tuple[str, ...] = ()
    type: Literal["task", "milestone"] = "task"


@dataclass(frozen=True)
class DateRange:
    """Visible time window of the chart."""

    start: datetime
    end: datetime

    @property
    def width(self) -> timedelta:
        return self.end - self.start

    @property
    def days(self) -> float:
        """Fractional number of days covered by the window."""
        return self.width / timedelta(days=1)

    @property
    def midpoint(self) -> datetime:
        return self.start + self.width / 2
