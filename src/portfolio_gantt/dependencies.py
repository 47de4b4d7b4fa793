from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Mapping

from .task_models import (
    DEPENDENCY_TYPES,
    TASK_PRIORITIES,
    TASK_STATUSES,
    Task,
    TaskDependency,
)


class TaskValidationError(Exception):
    """Raised when a task carries out-of-range or inconsistent values."""


class DependencyError(Exception):
    """Raised when a dependency edge is invalid (self reference, unknown task, duplicate, cycle)."""


@dataclass(frozen=True)
class ConstraintViolation:
    """A dependency whose planned dates break its type and lag."""

    dependency: TaskDependency
    required: date
    actual: date

    def __str__(self) -> str:
        dep = self.dependency
        return (
            f"{dep.predecessor_task_id} -> {dep.successor_task_id} ({dep.dependency_type}, lag {dep.lag_days}d): "
            f"expected {self.required} or later, planned {self.actual}"
        )


def validate_task(task: Task) -> Task:
    """Check value ranges of a task and its resources; return the task unchanged."""

    if not task.name or not task.name.strip():
        raise TaskValidationError(f"Task '{task.id}' must have a non-empty name")
    if task.status not in TASK_STATUSES:
        raise TaskValidationError(f"Task '{task.id}' has unknown status '{task.status}'")
    if task.priority not in TASK_PRIORITIES:
        raise TaskValidationError(f"Task '{task.id}' has unknown priority '{task.priority}'")
    if not 0 <= task.progress <= 100:
        raise TaskValidationError(f"Task '{task.id}' progress {task.progress} is outside 0..100")
    if task.estimated_hours < 0 or task.actual_hours < 0:
        raise TaskValidationError(f"Task '{task.id}' hours must not be negative")
    if (
        task.planned_start_date is not None
        and task.planned_end_date is not None
        and task.planned_end_date < task.planned_start_date
    ):
        raise TaskValidationError(
            f"Task '{task.id}' planned end {task.planned_end_date} precedes planned start {task.planned_start_date}"
        )
    for resource in task.resources:
        if not 0 <= resource.allocation_percentage <= 100:
            raise TaskValidationError(
                f"Resource '{resource.resource_name}' on task '{task.id}' allocation "
                f"{resource.allocation_percentage} is outside 0..100"
            )
        if resource.hourly_rate < 0:
            raise TaskValidationError(f"Resource '{resource.resource_name}' on task '{task.id}' has negative rate")
    return task


def validate_dependency(
    dependency: TaskDependency,
    tasks_by_id: Mapping[str, Task],
    existing: Iterable[TaskDependency] = (),
) -> TaskDependency:
    """
    Validate a new edge against the known tasks and the edges already stored.

    - Rejects self references and unknown endpoints.
    - Rejects a second edge between the same ordered pair.
    - Rejects edges that would close a cycle.
    """

    pred, succ = dependency.predecessor_task_id, dependency.successor_task_id
    if dependency.dependency_type not in DEPENDENCY_TYPES:
        raise DependencyError(f"Unknown dependency type '{dependency.dependency_type}'")
    if pred == succ:
        raise DependencyError(f"Task '{pred}' cannot depend on itself")
    for task_id in (pred, succ):
        if task_id not in tasks_by_id:
            raise DependencyError(f"Dependency references unknown task '{task_id}'")

    edges = [(dep.predecessor_task_id, dep.successor_task_id) for dep in existing if dep.id != dependency.id]
    if (pred, succ) in edges:
        raise DependencyError(f"Dependency '{pred}' -> '{succ}' already exists")

    cycle = find_cycle(edges + [(pred, succ)])
    if cycle:
        raise DependencyError(f"Dependency cycle detected: {' -> '.join(cycle)}")
    return dependency


def find_cycle(edges: Iterable[tuple[str, str]]) -> list[str] | None:
    """Return one cycle as a list of task ids (first id repeated at the end), or None."""

    successors: dict[str, list[str]] = {}
    order: list[str] = []
    for pred, succ in edges:
        for node in (pred, succ):
            if node not in successors:
                successors[node] = []
                order.append(node)
        successors[pred].append(succ)

    state: dict[str, str] = {}
    stack: list[str] = []
    positions: dict[str, int] = {}

    def dfs(node: str) -> list[str] | None:
        state[node] = "visiting"
        positions[node] = len(stack)
        stack.append(node)

        for nxt in successors.get(node, []):
            nxt_state = state.get(nxt)
            if nxt_state == "visiting":
                return stack[positions[nxt] :] + [nxt]
            if nxt_state is None:
                found = dfs(nxt)
                if found:
                    return found

        stack.pop()
        positions.pop(node, None)
        state[node] = "done"
        return None

    for node in order:
        if state.get(node) is None:
            found = dfs(node)
            if found:
                return found
    return None


def constraint_violations(
    tasks: Iterable[Task],
    dependencies: Iterable[TaskDependency],
) -> list[ConstraintViolation]:
    """
    Report edges whose planned dates do not honour their type and lag.

    Edges with an unknown endpoint or a missing planned date are ignored.
    Nothing is rescheduled.
    """

    lookup = {task.id: task for task in tasks}
    violations: list[ConstraintViolation] = []
    for dep in dependencies:
        pred = lookup.get(dep.predecessor_task_id)
        succ = lookup.get(dep.successor_task_id)
        if pred is None or succ is None:
            continue
        anchor = pred.planned_end_date if dep.dependency_type.startswith("finish") else pred.planned_start_date
        target = succ.planned_start_date if dep.dependency_type.endswith("start") else succ.planned_end_date
        if anchor is None or target is None:
            continue
        required = anchor + timedelta(days=dep.lag_days)
        if target < required:
            violations.append(ConstraintViolation(dependency=dep, required=required, actual=target))
    return violations
