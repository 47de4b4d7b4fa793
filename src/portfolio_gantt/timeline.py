from __future__ import annotations

import calendar
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from .task_models import DateRange, ViewMode


ZOOM_IN_FACTOR = 0.8
ZOOM_OUT_FACTOR = 1.2


@dataclass(frozen=True)
class TimelineSettings:
    """Fixed layout knobs for the chart surface, in pixels."""

    left_margin: float = 200
    top_margin: float = 60
    right_margin: float = 50
    bottom_margin: float = 50
    row_height: float = 40
    bar_inset: float = 8  # vertical gap between row edge and bar
    min_bar_width: float = 10
    progress_text_min_width: float = 40
    priority_tick_offset: float = 8
    priority_tick_width: float = 4
    connector_stub: float = 10
    arrow_gap: float = 5
    arrow_length: float = 5
    arrow_half_height: float = 3
    name_max_chars: int = 25
    legend_offset: float = 30
    legend_spacing: float = 120
    legend_swatch: float = 15


@dataclass(frozen=True)
class TimelineLayout:
    """
    Affine date-to-pixel mapping for one render pass.

    Every bar edge, grid line and connector goes through `x_for` so that they
    stay aligned for any range or zoom level.
    """

    width: float
    height: float
    date_range: DateRange
    settings: TimelineSettings = TimelineSettings()

    @property
    def chart_width(self) -> float:
        return self.width - self.settings.left_margin - self.settings.right_margin

    @property
    def chart_height(self) -> float:
        return self.height - self.settings.top_margin - self.settings.bottom_margin

    def x_for(self, instant: datetime) -> float:
        elapsed = (instant - self.date_range.start) / timedelta(days=1)
        return self.settings.left_margin + elapsed / self.date_range.days * self.chart_width

    def row_top(self, index: int) -> float:
        return self.settings.top_margin + index * self.settings.row_height

    def row_mid(self, index: int) -> float:
        return self.row_top(index) + self.settings.row_height / 2

    def content_height(self, rows: int) -> float:
        """Height covered by grid lines: the task rows, capped by the chart area."""
        return min(self.chart_height, rows * self.settings.row_height)


@dataclass(frozen=True)
class Tick:
    instant: datetime
    position: float  # fraction of the range, 0..1
    label: str


def week_number(instant: datetime) -> int:
    """
    Week-of-year as the dashboard labels it.

    `ceil((days since Jan 1 + weekday of Jan 1 + 1) / 7)` with Sunday as
    weekday 0. Not ISO-8601: Jan 1 is always in week 1 and late December can
    reach week 53 or 54.
    """
    first_day = datetime(instant.year, 1, 1, tzinfo=instant.tzinfo)
    past_days = (instant - first_day) / timedelta(days=1)
    first_weekday = (first_day.weekday() + 1) % 7
    return math.ceil((past_days + first_weekday + 1) / 7)


def add_month(instant: datetime) -> datetime:
    """Step one calendar month; days past the end of the target month roll forward (Jan 31 -> Mar 2/3)."""
    year, month = (instant.year + 1, 1) if instant.month == 12 else (instant.year, instant.month + 1)
    first = instant.replace(year=year, month=month, day=1)
    return first + timedelta(days=instant.day - 1)


def tick_label(instant: datetime, view_mode: ViewMode) -> str:
    if view_mode == "days":
        return f"{calendar.month_abbr[instant.month]} {instant.day}"
    if view_mode == "weeks":
        return f"Week {week_number(instant)}"
    if view_mode == "months":
        return f"{calendar.month_abbr[instant.month]} {instant.year}"
    raise ValueError(f"unknown view mode '{view_mode}'")


def time_scale(date_range: DateRange, view_mode: ViewMode) -> list[Tick]:
    """Walk the range from start to end (inclusive) with a step chosen by the view mode."""

    total = date_range.width
    ticks: list[Tick] = []
    current = date_range.start
    while current <= date_range.end:
        position = (current - date_range.start) / total if total else 0.0
        ticks.append(Tick(instant=current, position=position, label=tick_label(current, view_mode)))
        if view_mode == "days":
            current += timedelta(days=1)
        elif view_mode == "weeks":
            current += timedelta(days=7)
        else:
            current = add_month(current)
    return ticks


def zoom(factor: float, date_range: DateRange) -> DateRange:
    """
    Rescale the range width by `factor` around its midpoint.

    Zooming in then out is not an exact inverse: 0.8 * 1.2 leaves 96% of the
    original width.
    """
    if factor <= 0:
        raise ValueError(f"zoom factor must be positive, got {factor}")
    center = date_range.midpoint
    half = date_range.width * factor / 2
    return DateRange(start=center - half, end=center + half)
