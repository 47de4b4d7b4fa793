from __future__ import annotations

import datetime as _dt
import logging
import uuid
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Iterable

import yaml

from .dependencies import DependencyError, TaskValidationError, validate_dependency, validate_task
from .task_models import Task, TaskDependency, TaskResource, as_datetime


logger = logging.getLogger(__name__)


class DataAccessError(Exception):
    """Raised when the task store cannot be read or written, or holds malformed rows."""


@dataclass(frozen=True)
class _Path:
    """Helper to produce readable YAML path strings like tasks[0].resources[1]."""

    parts: tuple[str, ...] = ()

    def child(self, segment: str) -> "_Path":
        return _Path(self.parts + (segment,))

    def __str__(self) -> str:
        return ".".join(self.parts) if self.parts else "root"


@dataclass
class Project:
    id: str
    name: str


_TASK_FIELDS = {f.name for f in fields(Task)} - {"dependencies", "resources"}
_UPDATABLE_FIELDS = _TASK_FIELDS - {"id", "project_id", "created_at", "updated_at"}
_RESOURCE_FIELDS = {f.name for f in fields(TaskResource)} - {"task_id"}
_EDGE_FIELDS = {"predecessor_task_id", "dependency_type", "lag_days"}


class YamlTaskStore:
    """
    Task and dependency store persisted as a single YAML document.

    The file holds three top-level lists: `projects`, `tasks` and
    `dependencies`. Reads go through `load()`; mutations stay in memory until
    `save()`.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.projects: list[Project] = []
        self.tasks: list[Task] = []
        self.dependencies: list[TaskDependency] = []

    # --- Loading ------------------------------------------------------------

    def load(self) -> "YamlTaskStore":
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh)
        except FileNotFoundError as exc:
            raise DataAccessError(f"task store not found: {self.path}") from exc
        except (OSError, yaml.YAMLError) as exc:
            raise DataAccessError(f"cannot read task store {self.path}: {exc}") from exc

        try:
            self.projects, self.tasks, self.dependencies = _parse_store(raw, _Path())
        except (TaskValidationError, DependencyError) as exc:
            raise DataAccessError(f"{self.path}: {exc}") from exc

        logger.debug(
            "Loaded %d projects, %d tasks, %d dependencies from %s",
            len(self.projects),
            len(self.tasks),
            len(self.dependencies),
            self.path,
        )
        return self

    def save(self) -> None:
        document = {
            "projects": [{"id": p.id, "name": p.name} for p in self.projects],
            "tasks": [_dump_task(task) for task in self.tasks],
            "dependencies": [_dump_dependency(dep) for dep in self.dependencies],
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as fh:
                yaml.safe_dump(document, fh, sort_keys=False, allow_unicode=True)
        except OSError as exc:
            raise DataAccessError(f"cannot write task store {self.path}: {exc}") from exc

    # --- Queries ------------------------------------------------------------

    def list_projects(self) -> list[Project]:
        return list(self.projects)

    def list_tasks(self, project_id: str) -> list[Task]:
        """Tasks of one project, oldest first, each carrying its incoming dependency edges."""
        owned = [self._with_edges(task) for task in self.tasks if task.project_id == project_id]
        return sorted(owned, key=lambda task: task.created_at)

    def list_dependencies(self, task_ids: Iterable[str]) -> list[TaskDependency]:
        """Edges whose successor is one of `task_ids`; predecessors may live anywhere."""
        wanted = set(task_ids)
        return [dep for dep in self.dependencies if dep.successor_task_id in wanted]

    def get_task(self, task_id: str) -> Task | None:
        task = self._find_task(task_id)
        return None if task is None else self._with_edges(task)

    # --- Mutations ----------------------------------------------------------

    def create_task(
        self,
        project_id: str,
        name: str,
        resources: Iterable[TaskResource | dict[str, Any]] = (),
        dependencies: Iterable[TaskDependency | dict[str, Any]] = (),
        **values: Any,
    ) -> Task:
        """
        Add a task with its resource allocations and incoming dependency edges.

        Each entry of `dependencies` names a predecessor; the new task is
        always the successor. Nothing is stored unless the task and every
        edge validate.
        """
        if not any(p.id == project_id for p in self.projects):
            raise DataAccessError(f"unknown project '{project_id}'")
        unknown = set(values) - _UPDATABLE_FIELDS
        if unknown:
            raise TaskValidationError(f"unexpected task fields {sorted(unknown)}")
        now = _dt.datetime.now().replace(microsecond=0)
        task_id = _new_id()
        task = Task(
            id=task_id,
            project_id=project_id,
            name=name,
            created_at=now,
            updated_at=now,
            resources=[_build_resource(r, task_id) for r in resources],
            **values,
        )
        validate_task(task)
        edges = self._validated_edges(task, dependencies, self.dependencies)

        self.tasks.append(task)
        self.dependencies.extend(edges)
        logger.info("Created task %s (%s) in project %s", task.id, task.name, project_id)
        return self._with_edges(task)

    def update_task(
        self,
        task_id: str,
        resources: Iterable[TaskResource | dict[str, Any]] | None = None,
        dependencies: Iterable[TaskDependency | dict[str, Any]] | None = None,
        **changes: Any,
    ) -> Task:
        """
        Change task fields. `resources` and `dependencies` replace the task's
        allocations and incoming edges when given and are left alone when None.
        """
        task = self._require_task(task_id)
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise TaskValidationError(f"unexpected task fields {sorted(unknown)}")
        if resources is not None:
            changes["resources"] = [_build_resource(r, task_id) for r in resources]
        updated = validate_task(replace(task, **changes, updated_at=_dt.datetime.now().replace(microsecond=0)))

        remaining = self.dependencies
        edges: list[TaskDependency] = []
        if dependencies is not None:
            remaining = [dep for dep in self.dependencies if dep.successor_task_id != task_id]
            edges = self._validated_edges(updated, dependencies, remaining)
            logger.debug("Replacing incoming dependencies of task %s with %d edges", task_id, len(edges))

        self.tasks[self.tasks.index(task)] = updated
        self.dependencies = remaining + edges
        return self._with_edges(updated)

    def delete_task(self, task_id: str) -> None:
        """Remove a task together with every dependency edge that references it."""
        task = self._require_task(task_id)
        self.tasks.remove(task)
        before = len(self.dependencies)
        self.dependencies = [
            dep for dep in self.dependencies if task_id not in (dep.predecessor_task_id, dep.successor_task_id)
        ]
        logger.info("Deleted task %s and %d dependencies", task_id, before - len(self.dependencies))

    def create_dependency(
        self,
        predecessor_task_id: str,
        successor_task_id: str,
        dependency_type: str = "finish_to_start",
        lag_days: int = 0,
    ) -> TaskDependency:
        dependency = TaskDependency(
            id=_new_id(),
            predecessor_task_id=predecessor_task_id,
            successor_task_id=successor_task_id,
            dependency_type=dependency_type,  # type: ignore[arg-type]
            lag_days=int(lag_days),
            created_at=_dt.datetime.now().replace(microsecond=0),
        )
        validate_dependency(dependency, {task.id: task for task in self.tasks}, self.dependencies)
        self.dependencies.append(dependency)
        return dependency

    def delete_dependency(self, dependency_id: str) -> None:
        remaining = [dep for dep in self.dependencies if dep.id != dependency_id]
        if len(remaining) == len(self.dependencies):
            raise DataAccessError(f"unknown dependency '{dependency_id}'")
        self.dependencies = remaining

    def _find_task(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def _require_task(self, task_id: str) -> Task:
        task = self._find_task(task_id)
        if task is None:
            raise DataAccessError(f"unknown task '{task_id}'")
        return task

    def _with_edges(self, task: Task) -> Task:
        return replace(task, dependencies=[dep for dep in self.dependencies if dep.successor_task_id == task.id])

    def _validated_edges(
        self,
        successor: Task,
        entries: Iterable[TaskDependency | dict[str, Any]],
        existing: list[TaskDependency],
    ) -> list[TaskDependency]:
        tasks_by_id = {task.id: task for task in self.tasks}
        tasks_by_id[successor.id] = successor
        accepted: list[TaskDependency] = []
        for entry in entries:
            edge = _build_edge(entry, successor.id)
            validate_dependency(edge, tasks_by_id, existing + accepted)
            accepted.append(edge)
        return accepted


def _new_id() -> str:
    return uuid.uuid4().hex


def _build_resource(entry: TaskResource | dict[str, Any], task_id: str) -> TaskResource:
    if isinstance(entry, TaskResource):
        return replace(entry, task_id=task_id)
    unknown = set(entry) - _RESOURCE_FIELDS
    if unknown:
        raise TaskValidationError(f"unexpected resource fields {sorted(unknown)}")
    if not entry.get("resource_name"):
        raise TaskValidationError("resource needs a resource_name")
    values = dict(entry)
    values.setdefault("id", _new_id())
    return TaskResource(task_id=task_id, **values)


def _build_edge(entry: TaskDependency | dict[str, Any], successor_id: str) -> TaskDependency:
    if isinstance(entry, TaskDependency):
        return replace(entry, successor_task_id=successor_id)
    unknown = set(entry) - _EDGE_FIELDS
    if unknown:
        raise DependencyError(f"unexpected dependency fields {sorted(unknown)}")
    if "predecessor_task_id" not in entry:
        raise DependencyError("dependency needs a predecessor_task_id")
    return TaskDependency(
        id=_new_id(),
        predecessor_task_id=entry["predecessor_task_id"],
        successor_task_id=successor_id,
        dependency_type=entry.get("dependency_type", "finish_to_start"),
        lag_days=int(entry.get("lag_days", 0)),
        created_at=_dt.datetime.now().replace(microsecond=0),
    )


# --- Parsing ------------------------------------------------------------------


def _parse_store(data: Any, path: _Path) -> tuple[list[Project], list[Task], list[TaskDependency]]:
    if data is None:
        return [], [], []
    if not isinstance(data, dict):
        raise DataAccessError(f"{path}: expected mapping at top level")
    _assert_allowed_keys(data, {"projects", "tasks", "dependencies"}, path)

    projects = [
        _parse_project(raw, path.child(f"projects[{idx}]"))
        for idx, raw in enumerate(_require_list(data, "projects", path))
    ]
    project_ids = {p.id for p in projects}

    tasks: list[Task] = []
    seen: set[str] = set()
    for idx, raw in enumerate(_require_list(data, "tasks", path)):
        task = _parse_task(raw, path.child(f"tasks[{idx}]"))
        if task.id in seen:
            raise DataAccessError(f"{path.child(f'tasks[{idx}]')}: duplicate task id '{task.id}'")
        if task.project_id not in project_ids:
            raise DataAccessError(f"{path.child(f'tasks[{idx}]')}: unknown project '{task.project_id}'")
        seen.add(task.id)
        tasks.append(task)

    dependencies = [
        _parse_dependency(raw, path.child(f"dependencies[{idx}]"))
        for idx, raw in enumerate(_require_list(data, "dependencies", path))
    ]
    return projects, tasks, dependencies


def _parse_project(data: Any, path: _Path) -> Project:
    if not isinstance(data, dict):
        raise DataAccessError(f"{path}: expected mapping for project")
    _assert_allowed_keys(data, {"id", "name"}, path)
    return Project(id=_require_str(data, "id", path), name=_require_str(data, "name", path))


def _parse_task(data: Any, path: _Path) -> Task:
    if not isinstance(data, dict):
        raise DataAccessError(f"{path}: expected mapping for task")
    _assert_allowed_keys(data, _TASK_FIELDS | {"resources"}, path)

    task_id = _require_str(data, "id", path)
    resources = [
        _parse_resource(raw, path.child(f"resources[{idx}]"), task_id)
        for idx, raw in enumerate(_require_list(data, "resources", path))
    ]
    task = Task(
        id=task_id,
        project_id=_require_str(data, "project_id", path),
        name=_require_str(data, "name", path),
        created_at=_parse_datetime(_require_value(data, "created_at", path), path.child("created_at")),
        description=_optional_str(data, "description", path),
        status=_optional_str(data, "status", path) or "not_started",  # type: ignore[arg-type]
        priority=_optional_str(data, "priority", path) or "medium",  # type: ignore[arg-type]
        planned_start_date=_optional_date(data, "planned_start_date", path),
        planned_end_date=_optional_date(data, "planned_end_date", path),
        actual_start_date=_optional_date(data, "actual_start_date", path),
        actual_end_date=_optional_date(data, "actual_end_date", path),
        progress=_number(data, "progress", path),
        estimated_hours=_number(data, "estimated_hours", path),
        actual_hours=_number(data, "actual_hours", path),
        updated_at=_optional_datetime(data, "updated_at", path),
        resources=resources,
    )
    return validate_task(task)


def _parse_resource(data: Any, path: _Path, task_id: str) -> TaskResource:
    if not isinstance(data, dict):
        raise DataAccessError(f"{path}: expected mapping for resource")
    _assert_allowed_keys(
        data,
        {
            "id",
            "resource_name",
            "role",
            "allocation_percentage",
            "planned_start_date",
            "planned_end_date",
            "actual_start_date",
            "actual_end_date",
            "hourly_rate",
            "created_at",
        },
        path,
    )
    return TaskResource(
        id=_optional_str(data, "id", path) or _new_id(),
        task_id=task_id,
        resource_name=_require_str(data, "resource_name", path),
        role=_optional_str(data, "role", path) or "",
        allocation_percentage=_number(data, "allocation_percentage", path, default=100.0),
        planned_start_date=_optional_date(data, "planned_start_date", path),
        planned_end_date=_optional_date(data, "planned_end_date", path),
        actual_start_date=_optional_date(data, "actual_start_date", path),
        actual_end_date=_optional_date(data, "actual_end_date", path),
        hourly_rate=_number(data, "hourly_rate", path),
        created_at=_optional_datetime(data, "created_at", path),
    )


def _parse_dependency(data: Any, path: _Path) -> TaskDependency:
    if not isinstance(data, dict):
        raise DataAccessError(f"{path}: expected mapping for dependency")
    _assert_allowed_keys(
        data,
        {"id", "predecessor_task_id", "successor_task_id", "dependency_type", "lag_days", "created_at"},
        path,
    )
    lag = data.get("lag_days", 0)
    if isinstance(lag, bool) or not isinstance(lag, int):
        raise DataAccessError(f"{path.child('lag_days')}: expected integer")
    return TaskDependency(
        id=_optional_str(data, "id", path) or _new_id(),
        predecessor_task_id=_require_str(data, "predecessor_task_id", path),
        successor_task_id=_require_str(data, "successor_task_id", path),
        dependency_type=_optional_str(data, "dependency_type", path) or "finish_to_start",  # type: ignore[arg-type]
        lag_days=lag,
        created_at=_optional_datetime(data, "created_at", path),
    )


def _assert_allowed_keys(data: dict[str, Any], allowed: set[str], path: _Path) -> None:
    extras = sorted(set(data.keys()) - allowed)
    if extras:
        raise DataAccessError(f"{path}: unexpected fields {extras}")


def _require_list(data: dict[str, Any], key: str, path: _Path) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise DataAccessError(f"{path.child(key)}: expected list")
    return value


def _require_value(data: dict[str, Any], key: str, path: _Path) -> Any:
    if key not in data:
        raise DataAccessError(f"{path}: missing required field '{key}'")
    return data[key]


def _require_str(data: dict[str, Any], key: str, path: _Path) -> str:
    value = _require_value(data, key, path)
    if not isinstance(value, str) or not value.strip():
        raise DataAccessError(f"{path.child(key)}: expected non-empty string")
    return value


def _optional_str(data: dict[str, Any], key: str, path: _Path) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise DataAccessError(f"{path.child(key)}: expected string")
    return value


def _number(data: dict[str, Any], key: str, path: _Path, default: float = 0) -> float:
    value = data.get(key, default)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DataAccessError(f"{path.child(key)}: expected number")
    return value


def _optional_date(data: dict[str, Any], key: str, path: _Path) -> _dt.date | None:
    value = data.get(key)
    if value is None:
        return None
    return _parse_date(value, path.child(key))


def _optional_datetime(data: dict[str, Any], key: str, path: _Path) -> _dt.datetime | None:
    value = data.get(key)
    if value is None:
        return None
    return _parse_datetime(value, path.child(key))


def _parse_date(value: Any, path: _Path) -> _dt.date:
    # PyYAML already turns unquoted ISO dates into date objects.
    if isinstance(value, _dt.datetime):
        return value.date()
    if isinstance(value, _dt.date):
        return value
    if not isinstance(value, str):
        raise DataAccessError(f"{path}: expected YYYY-MM-DD date")
    try:
        return _dt.date.fromisoformat(value)
    except ValueError as exc:
        raise DataAccessError(f"{path}: expected YYYY-MM-DD date") from exc


def _parse_datetime(value: Any, path: _Path) -> _dt.datetime:
    """Parse a timestamp as naive UTC; offsets are applied, naive values are taken as UTC."""
    if isinstance(value, _dt.datetime):
        return as_datetime(value)
    if isinstance(value, _dt.date):
        return _dt.datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        raise DataAccessError(f"{path}: expected ISO timestamp")
    try:
        parsed = _dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise DataAccessError(f"{path}: expected ISO timestamp") from exc
    return as_datetime(parsed)


# --- Dumping ------------------------------------------------------------------


def _dump_task(task: Task) -> dict[str, Any]:
    document: dict[str, Any] = {
        "id": task.id,
        "project_id": task.project_id,
        "name": task.name,
        "description": task.description,
        "status": task.status,
        "priority": task.priority,
        "planned_start_date": task.planned_start_date,
        "planned_end_date": task.planned_end_date,
        "actual_start_date": task.actual_start_date,
        "actual_end_date": task.actual_end_date,
        "progress": task.progress,
        "estimated_hours": task.estimated_hours,
        "actual_hours": task.actual_hours,
        "created_at": task.created_at,
        "updated_at": task.updated_at,
    }
    if task.resources:
        document["resources"] = [
            {
                "id": r.id,
                "resource_name": r.resource_name,
                "role": r.role,
                "allocation_percentage": r.allocation_percentage,
                "planned_start_date": r.planned_start_date,
                "planned_end_date": r.planned_end_date,
                "actual_start_date": r.actual_start_date,
                "actual_end_date": r.actual_end_date,
                "hourly_rate": r.hourly_rate,
                "created_at": r.created_at,
            }
            for r in task.resources
        ]
    return {key: value for key, value in document.items() if value is not None}


def _dump_dependency(dep: TaskDependency) -> dict[str, Any]:
    document = {
        "id": dep.id,
        "predecessor_task_id": dep.predecessor_task_id,
        "successor_task_id": dep.successor_task_id,
        "dependency_type": dep.dependency_type,
        "lag_days": dep.lag_days,
        "created_at": dep.created_at,
    }
    return {key: value for key, value in document.items() if value is not None}
