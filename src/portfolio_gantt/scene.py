from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Literal, Union

from .task_models import DateRange, GanttTask, ViewMode
from .timeline import TimelineLayout, TimelineSettings, time_scale


logger = logging.getLogger(__name__)

Point = tuple[float, float]
Align = Literal["left", "center", "right"]

STATUS_RGB: dict[str, tuple[int, int, int]] = {
    "completed": (16, 185, 129),
    "in_progress": (59, 130, 246),
    "on_hold": (245, 158, 11),
    "cancelled": (239, 68, 68),
    "not_started": (107, 114, 128),
}
PRIORITY_COLORS: dict[str, str] = {
    "critical": "#dc2626",
    "high": "#ea580c",
    "medium": "#d97706",
    "low": "#65a30d",
}
LEGEND_ITEMS: tuple[tuple[str, str], ...] = (
    ("#10b981", "Completed"),
    ("#3b82f6", "In Progress"),
    ("#f59e0b", "On Hold"),
    ("#6b7280", "Not Started"),
)
BACKGROUND_ALPHA = 0.3

TEXT_COLOR = "#374151"
TITLE_COLOR = "#1f2937"
MUTED_COLOR = "#6b7280"
GRID_COLOR = "#e5e7eb"
ROW_LINE_COLOR = "#f3f4f6"
CONNECTOR_COLOR = "#6b7280"
EMPTY_MESSAGE = "No tasks to display"


def status_color(status: str) -> str:
    """Opaque hex colour for a task status; unknown statuses use the not-started grey."""
    r, g, b = STATUS_RGB.get(status, STATUS_RGB["not_started"])
    return f"#{r:02x}{g:02x}{b:02x}"


def priority_color(priority: str) -> str:
    return PRIORITY_COLORS.get(priority, PRIORITY_COLORS["medium"])


def truncate_name(name: str, limit: int = 25) -> str:
    return name[:limit] + "..." if len(name) > limit else name


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float
    fill: str | None = None
    stroke: str | None = None
    line_width: float = 1.0
    alpha: float = 1.0
    role: str = ""
    key: str | None = None


@dataclass(frozen=True)
class Polyline:
    points: tuple[Point, ...]
    color: str
    line_width: float = 1.0
    role: str = ""
    key: str | None = None


@dataclass(frozen=True)
class Polygon:
    points: tuple[Point, ...]
    fill: str
    role: str = ""
    key: str | None = None


@dataclass(frozen=True)
class Label:
    """Text anchored at its baseline, like a canvas fillText call."""

    x: float
    y: float
    text: str
    size: float = 12
    color: str = TEXT_COLOR
    align: Align = "left"
    bold: bool = False
    role: str = ""
    key: str | None = None


SceneItem = Union[Rect, Polyline, Polygon, Label]


@dataclass
class Scene:
    """
    Retained drawing for one render pass, in surface pixels (origin top-left).

    Items are kept in paint order; `role` and `key` (task id, or
    "pred->succ" for connectors) let callers and tests query the geometry
    without a real drawing surface.
    """

    width: float
    height: float
    items: list[SceneItem] = field(default_factory=list)

    def add(self, item: SceneItem) -> SceneItem:
        self.items.append(item)
        return item

    def by_role(self, role: str) -> list[SceneItem]:
        return [item for item in self.items if item.role == role]

    def find(self, role: str, key: str) -> SceneItem | None:
        for item in self.items:
            if item.role == role and item.key == key:
                return item
        return None

    @property
    def is_empty(self) -> bool:
        return any(item.role == "placeholder" for item in self.items)


@dataclass(frozen=True)
class BarGeometry:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width


def bar_geometry(task: GanttTask, index: int, layout: TimelineLayout) -> BarGeometry:
    """Bar extents for a row; width never drops below the configured minimum."""
    settings = layout.settings
    x = layout.x_for(task.start)
    width = max(layout.x_for(task.end) - x, settings.min_bar_width)
    y = layout.row_top(index) + settings.bar_inset
    return BarGeometry(x=x, y=y, width=width, height=settings.row_height - 2 * settings.bar_inset)


def render(
    width: float,
    height: float,
    tasks: Iterable[GanttTask],
    date_range: DateRange | None,
    view_mode: ViewMode = "weeks",
    title: str | None = None,
    settings: TimelineSettings | None = None,
) -> Scene:
    """
    Lay out a Gantt chart on a `width` x `height` surface.

    - Empty task lists (or a missing range) produce only a centred placeholder.
    - Rows follow input order; bars, ticks and connectors share one affine mapping.
    - Connectors to predecessors missing from `tasks` are skipped.
    """

    rows = list(tasks)
    settings = settings or TimelineSettings()
    scene = Scene(width=width, height=height)

    if not rows or date_range is None:
        scene.add(Label(width / 2, height / 2, EMPTY_MESSAGE, size=16, color=MUTED_COLOR, align="center", role="placeholder"))
        return scene

    layout = TimelineLayout(width=width, height=height, date_range=date_range, settings=settings)

    if title:
        scene.add(Label(20, 30, f"{title} - Gantt Chart", size=18, color=TITLE_COLOR, bold=True, role="title"))

    _draw_time_scale(scene, layout, len(rows), view_mode)

    bars: dict[str, tuple[int, BarGeometry]] = {}
    for index, task in enumerate(rows):
        bars[task.id] = (index, _draw_row(scene, layout, task, index))

    _draw_dependencies(scene, layout, rows, bars)
    _draw_legend(scene, settings, height)
    return scene


def _draw_time_scale(scene: Scene, layout: TimelineLayout, row_count: int, view_mode: ViewMode) -> None:
    top = layout.settings.top_margin
    bottom = top + layout.content_height(row_count)
    for tick in time_scale(layout.date_range, view_mode):
        x = layout.settings.left_margin + tick.position * layout.chart_width
        scene.add(Label(x, top - 10, tick.label, size=12, align="center", role="tick_label"))
        scene.add(Polyline(((x, top), (x, bottom)), color=GRID_COLOR, role="grid"))


def _draw_row(scene: Scene, layout: TimelineLayout, task: GanttTask, index: int) -> BarGeometry:
    settings = layout.settings
    row_top = layout.row_top(index)
    bar = bar_geometry(task, index, layout)
    color = status_color(task.status)

    scene.add(
        Label(
            10,
            row_top + settings.row_height / 2 + 5,
            truncate_name(task.name, settings.name_max_chars),
            size=14,
            role="task_label",
            key=task.id,
        )
    )
    scene.add(Rect(bar.x, bar.y, bar.width, bar.height, fill=color, alpha=BACKGROUND_ALPHA, role="bar", key=task.id))
    if task.progress > 0:
        scene.add(
            Rect(bar.x, bar.y, bar.width * task.progress / 100, bar.height, fill=color, role="progress", key=task.id)
        )
    scene.add(Rect(bar.x, bar.y, bar.width, bar.height, stroke=color, line_width=2, role="border", key=task.id))
    if bar.width > settings.progress_text_min_width:
        scene.add(
            Label(
                bar.x + bar.width / 2,
                bar.y + bar.height / 2 + 4,
                f"{task.progress:g}%",
                size=11,
                color="#ffffff",
                align="center",
                role="progress_label",
                key=task.id,
            )
        )
    scene.add(
        Rect(
            bar.x - settings.priority_tick_offset,
            bar.y,
            settings.priority_tick_width,
            bar.height,
            fill=priority_color(task.priority),
            role="priority",
            key=task.id,
        )
    )
    line_y = row_top + settings.row_height
    scene.add(
        Polyline(
            ((settings.left_margin, line_y), (settings.left_margin + layout.chart_width, line_y)),
            color=ROW_LINE_COLOR,
            role="row_line",
            key=task.id,
        )
    )
    return bar


def _draw_dependencies(
    scene: Scene,
    layout: TimelineLayout,
    rows: list[GanttTask],
    bars: dict[str, tuple[int, BarGeometry]],
) -> None:
    settings = layout.settings
    for task in rows:
        if not task.dependencies:
            continue
        succ_index, succ_bar = bars[task.id]
        for dep_id in task.dependencies:
            source = bars.get(dep_id)
            if source is None:
                logger.debug("Skipping connector %s -> %s: predecessor not loaded", dep_id, task.id)
                continue
            pred_index, pred_bar = source
            start_x, start_y = pred_bar.right, layout.row_mid(pred_index)
            end_x, end_y = succ_bar.x, layout.row_mid(succ_index)
            elbow_x = start_x + settings.connector_stub
            tip_x = end_x - settings.arrow_gap
            key = f"{dep_id}->{task.id}"
            scene.add(
                Polyline(
                    ((start_x, start_y), (elbow_x, start_y), (elbow_x, end_y), (tip_x, end_y)),
                    color=CONNECTOR_COLOR,
                    line_width=2,
                    role="connector",
                    key=key,
                )
            )
            back_x = tip_x - settings.arrow_length
            scene.add(
                Polygon(
                    (
                        (tip_x, end_y),
                        (back_x, end_y - settings.arrow_half_height),
                        (back_x, end_y + settings.arrow_half_height),
                    ),
                    fill=CONNECTOR_COLOR,
                    role="arrowhead",
                    key=key,
                )
            )


def _draw_legend(scene: Scene, settings: TimelineSettings, height: float) -> None:
    y = height - settings.legend_offset
    x = settings.left_margin
    for color, text in LEGEND_ITEMS:
        scene.add(Rect(x, y, settings.legend_swatch, settings.legend_swatch, fill=color, role="legend", key=text))
        scene.add(Label(x + settings.legend_swatch + 5, y + 12, text, size=12, role="legend_label", key=text))
        x += settings.legend_spacing
