import datetime as dt

import pytest

from portfolio_gantt.scene import (
    EMPTY_MESSAGE,
    Label,
    priority_color,
    render,
    status_color,
    truncate_name,
)
from portfolio_gantt.task_models import DateRange, GanttTask
from portfolio_gantt.timeline import TimelineLayout

WIDTH = 1200
HEIGHT = 500


def _task(task_id, start, end, progress=50, dependencies=(), status="in_progress", priority="high", name=None):
    return GanttTask(
        id=task_id,
        name=name or task_id,
        start=start,
        end=end,
        progress=progress,
        status=status,
        priority=priority,
        dependencies=tuple(dependencies),
    )


def _range():
    return DateRange(start=dt.datetime(2024, 1, 1), end=dt.datetime(2024, 2, 1))


def test_empty_task_list_renders_only_placeholder():
    scene = render(WIDTH, HEIGHT, [], None)

    assert len(scene.items) == 1
    placeholder = scene.items[0]
    assert isinstance(placeholder, Label)
    assert placeholder.text == EMPTY_MESSAGE
    assert (placeholder.x, placeholder.y) == (WIDTH / 2, HEIGHT / 2)
    assert scene.by_role("bar") == []
    assert scene.by_role("grid") == []
    assert scene.by_role("legend") == []


def test_single_task_bar_spans_mapped_interval():
    date_range = _range()
    task = _task("A", dt.datetime(2024, 1, 8), dt.datetime(2024, 1, 18))
    layout = TimelineLayout(WIDTH, HEIGHT, date_range)

    scene = render(WIDTH, HEIGHT, [task], date_range, "weeks")

    bar = scene.find("bar", "A")
    assert bar.x == pytest.approx(layout.x_for(task.start))
    assert bar.x + bar.width == pytest.approx(layout.x_for(task.end))
    assert bar.y == pytest.approx(60 + 8)
    assert bar.height == pytest.approx(24)
    assert bar.alpha == pytest.approx(0.3)
    assert scene.by_role("connector") == []
    assert scene.by_role("arrowhead") == []
    assert len(scene.by_role("legend")) == 4
    assert scene.by_role("grid")
    assert scene.by_role("tick_label")[0].text == "Week 1"


def test_short_task_gets_minimum_bar_width():
    date_range = _range()
    same_day = dt.datetime(2024, 1, 10)
    scene = render(WIDTH, HEIGHT, [_task("A", same_day, same_day)], date_range)

    assert scene.find("bar", "A").width == 10
    assert scene.find("border", "A").width == 10


def test_progress_overlay_is_fraction_of_bar():
    date_range = _range()
    scene = render(
        WIDTH,
        HEIGHT,
        [
            _task("A", dt.datetime(2024, 1, 5), dt.datetime(2024, 1, 25), progress=40),
            _task("B", dt.datetime(2024, 1, 5), dt.datetime(2024, 1, 25), progress=100),
            _task("C", dt.datetime(2024, 1, 5), dt.datetime(2024, 1, 25), progress=0),
        ],
        date_range,
    )

    bar_a, overlay_a = scene.find("bar", "A"), scene.find("progress", "A")
    assert overlay_a.width == pytest.approx(bar_a.width * 0.4)
    assert overlay_a.x == bar_a.x
    assert scene.find("progress", "B").width == pytest.approx(scene.find("bar", "B").width)
    assert scene.find("progress", "C") is None


def test_progress_text_only_on_wide_bars():
    date_range = _range()
    scene = render(
        WIDTH,
        HEIGHT,
        [
            _task("wide", dt.datetime(2024, 1, 5), dt.datetime(2024, 1, 25), progress=40),
            _task("narrow", dt.datetime(2024, 1, 5), dt.datetime(2024, 1, 6), progress=40),
        ],
        date_range,
    )

    assert scene.find("progress_label", "wide").text == "40%"
    assert scene.find("progress_label", "narrow") is None


def test_priority_tick_sits_left_of_bar():
    date_range = _range()
    scene = render(WIDTH, HEIGHT, [_task("A", dt.datetime(2024, 1, 8), dt.datetime(2024, 1, 18), priority="critical")], date_range)

    bar = scene.find("bar", "A")
    tick = scene.find("priority", "A")
    assert tick.x == pytest.approx(bar.x - 8)
    assert tick.width == 4
    assert tick.fill == "#dc2626"


def test_long_names_are_truncated():
    assert truncate_name("x" * 25) == "x" * 25
    assert truncate_name("Migrate the billing database to new cluster") == "Migrate the billing datab..."


def test_colour_fallbacks():
    assert status_color("completed") == "#10b981"
    assert status_color("mystery") == status_color("not_started") == "#6b7280"
    assert priority_color("urgent") == priority_color("medium") == "#d97706"


def test_finish_to_start_connector_links_bar_edges():
    date_range = _range()
    pred = _task("A", dt.datetime(2024, 1, 3), dt.datetime(2024, 1, 10))
    succ = _task("B", dt.datetime(2024, 1, 12), dt.datetime(2024, 1, 20), dependencies=["A"])

    scene = render(WIDTH, HEIGHT, [pred, succ], date_range)

    pred_bar, succ_bar = scene.find("bar", "A"), scene.find("bar", "B")
    connector = scene.find("connector", "A->B")
    start, elbow_top, elbow_bottom, end = connector.points
    pred_mid = 60 + 20
    succ_mid = 60 + 40 + 20
    assert start == (pytest.approx(pred_bar.x + pred_bar.width), pred_mid)
    assert elbow_top == (pytest.approx(start[0] + 10), pred_mid)
    assert elbow_bottom == (pytest.approx(start[0] + 10), succ_mid)
    assert end == (pytest.approx(succ_bar.x - 5), succ_mid)

    arrow = scene.find("arrowhead", "A->B")
    tip, upper, lower = arrow.points
    assert tip == end
    assert upper == (pytest.approx(end[0] - 5), succ_mid - 3)
    assert lower == (pytest.approx(end[0] - 5), succ_mid + 3)


def test_connector_to_missing_predecessor_is_omitted():
    date_range = _range()
    succ = _task("B", dt.datetime(2024, 1, 12), dt.datetime(2024, 1, 20), dependencies=["ghost"])

    scene = render(WIDTH, HEIGHT, [succ], date_range)

    assert scene.by_role("connector") == []
    assert scene.by_role("arrowhead") == []
    assert scene.find("bar", "B") is not None


def test_grid_lines_span_task_rows():
    date_range = _range()
    tasks = [_task(str(i), dt.datetime(2024, 1, 5), dt.datetime(2024, 1, 9)) for i in range(3)]

    scene = render(WIDTH, HEIGHT, tasks, date_range, "days")

    grid = scene.by_role("grid")
    assert len(grid) == 32
    (x0, top), (x1, bottom) = grid[0].points
    assert x0 == x1 == pytest.approx(200)
    assert (top, bottom) == (60, 60 + 3 * 40)


def test_legend_sits_at_fixed_position():
    date_range = _range()
    scene = render(WIDTH, HEIGHT, [_task("A", dt.datetime(2024, 1, 5), dt.datetime(2024, 1, 9))], date_range)

    swatches = scene.by_role("legend")
    assert [s.key for s in swatches] == ["Completed", "In Progress", "On Hold", "Not Started"]
    assert [s.x for s in swatches] == [200, 320, 440, 560]
    assert all(s.y == HEIGHT - 30 for s in swatches)


def test_title_is_optional():
    date_range = _range()
    task = _task("A", dt.datetime(2024, 1, 5), dt.datetime(2024, 1, 9))

    assert render(WIDTH, HEIGHT, [task], date_range).by_role("title") == []
    titled = render(WIDTH, HEIGHT, [task], date_range, title="Website")
    assert titled.by_role("title")[0].text == "Website - Gantt Chart"


def test_out_of_range_progress_renders_without_clamping():
    date_range = _range()
    scene = render(
        WIDTH,
        HEIGHT,
        [
            _task("over", dt.datetime(2024, 1, 5), dt.datetime(2024, 1, 25), progress=150),
            _task("under", dt.datetime(2024, 1, 5), dt.datetime(2024, 1, 25), progress=-10),
        ],
        date_range,
    )

    over_bar = scene.find("bar", "over")
    assert scene.find("progress", "over").width == pytest.approx(over_bar.width * 150 / 100)
    assert scene.find("progress_label", "over").text == "150%"
    assert scene.find("bar", "under") is not None
    assert scene.find("progress", "under") is None
    assert scene.find("progress_label", "under").text == "-10%"
