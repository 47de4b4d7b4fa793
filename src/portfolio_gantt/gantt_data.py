from __future__ import annotations

import logging
from datetime import timedelta
from typing import Iterable, List

from .task_models import DateRange, GanttTask, Task, TaskDependency, as_datetime


logger = logging.getLogger(__name__)

RANGE_PAD_DAYS = 7

SUMMARY_LABELS: dict[str, str] = {
    "completed": "Completed",
    "in_progress": "In Progress",
    "on_hold": "On Hold",
    "not_started": "Not Started",
    "cancelled": "Cancelled",
}


def derive_gantt_tasks(tasks: Iterable[Task], dependencies: Iterable[TaskDependency] = ()) -> list[GanttTask]:
    """
    Project tasks into renderer rows, one per task, in input order.

    Missing planned dates fall back to the task's creation timestamp. Predecessor
    ids come from edges whose successor is the task, plus any edges already
    attached to the task. No validation or ordering is applied.
    """

    predecessors: dict[str, List[str]] = {}
    for dep in dependencies:
        predecessors.setdefault(dep.successor_task_id, []).append(dep.predecessor_task_id)

    rows: List[GanttTask] = []
    for task in tasks:
        start = as_datetime(task.planned_start_date or task.created_at)
        end = as_datetime(task.planned_end_date or task.created_at)

        dep_ids = list(predecessors.get(task.id, []))
        for dep in task.dependencies:
            if dep.successor_task_id == task.id and dep.predecessor_task_id not in dep_ids:
                dep_ids.append(dep.predecessor_task_id)

        rows.append(
            GanttTask(
                id=task.id,
                name=task.name,
                start=start,
                end=end,
                progress=task.progress,
                status=task.status,
                priority=task.priority,
                dependencies=tuple(dep_ids),
            )
        )

    logger.debug("Derived %d gantt rows", len(rows))
    return rows


def compute_date_range(gantt_tasks: Iterable[GanttTask]) -> DateRange | None:
    """Span every start/end instant, padded by a week on each side; None when there are no tasks."""

    instants = [instant for task in gantt_tasks for instant in (task.start, task.end)]
    if not instants:
        return None
    pad = timedelta(days=RANGE_PAD_DAYS)
    return DateRange(start=min(instants) - pad, end=max(instants) + pad)


def summarize_statuses(gantt_tasks: Iterable[GanttTask]) -> dict[str, int]:
    """Count rows per status, keyed by status value, in summary display order."""

    counts = {status: 0 for status in SUMMARY_LABELS}
    for task in gantt_tasks:
        counts[task.status] = counts.get(task.status, 0) + 1
    return counts
