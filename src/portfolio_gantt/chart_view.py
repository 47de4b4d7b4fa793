from __future__ import annotations

import logging
from typing import Protocol

from .gantt_data import compute_date_range, derive_gantt_tasks, summarize_statuses
from .scene import Scene, render
from .task_models import VIEW_MODES, DateRange, GanttTask, Task, TaskDependency, ViewMode
from .task_store import DataAccessError
from .timeline import ZOOM_IN_FACTOR, ZOOM_OUT_FACTOR, TimelineSettings, zoom


logger = logging.getLogger(__name__)


class TaskSource(Protocol):
    """Data-access collaborator the chart reads from."""

    def list_tasks(self, project_id: str) -> list[Task]: ...

    def list_dependencies(self, task_ids: list[str]) -> list[TaskDependency]: ...


class GanttChartView:
    """
    Caller-side state for one project's chart: the loaded rows and the visible range.

    Loading is the only operation that touches the store. A failed load keeps
    the previous rows, records the message in `error` and leaves retrying to a
    later `reset()`. Zoom changes only the range; every `render()` lays the
    chart out from scratch.
    """

    def __init__(
        self,
        source: TaskSource,
        project_id: str,
        view_mode: ViewMode = "weeks",
        settings: TimelineSettings | None = None,
    ) -> None:
        self.source = source
        self.project_id = project_id
        self.view_mode: ViewMode = view_mode
        self.settings = settings or TimelineSettings()
        self.tasks: list[GanttTask] = []
        self.date_range: DateRange | None = None
        self.error: str | None = None

    def load(self) -> bool:
        """Fetch tasks and dependencies and recompute the range; return False on failure."""
        try:
            tasks = self.source.list_tasks(self.project_id)
            dependencies = self.source.list_dependencies([task.id for task in tasks])
        except DataAccessError as exc:
            logger.warning("Failed to load gantt data for project %s: %s", self.project_id, exc)
            self.error = str(exc)
            return False

        self.tasks = derive_gantt_tasks(tasks, dependencies)
        self.date_range = compute_date_range(self.tasks)
        self.error = None
        logger.debug("Loaded %d tasks for project %s", len(self.tasks), self.project_id)
        return True

    def reset(self) -> bool:
        return self.load()

    def zoom_in(self) -> DateRange | None:
        return self._zoom(ZOOM_IN_FACTOR)

    def zoom_out(self) -> DateRange | None:
        return self._zoom(ZOOM_OUT_FACTOR)

    def _zoom(self, factor: float) -> DateRange | None:
        if self.date_range is not None:
            self.date_range = zoom(factor, self.date_range)
        return self.date_range

    def set_view_mode(self, view_mode: str) -> None:
        if view_mode not in VIEW_MODES:
            raise ValueError(f"unknown view mode '{view_mode}', expected one of {', '.join(VIEW_MODES)}")
        self.view_mode = view_mode  # type: ignore[assignment]

    def render(self, width: float, height: float, title: str | None = None) -> Scene:
        return render(width, height, self.tasks, self.date_range, self.view_mode, title=title, settings=self.settings)

    def summary(self) -> dict[str, int]:
        return summarize_statuses(self.tasks)

    def preferred_height(self) -> float:
        """Surface height that fits every row plus margins, never below 400px."""
        return max(400, len(self.tasks) * self.settings.row_height + 120)
