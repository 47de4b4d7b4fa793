import datetime as dt
from pathlib import Path

import pytest

from portfolio_gantt.chart_view import GanttChartView
from portfolio_gantt.task_store import DataAccessError, YamlTaskStore


class FailingSource:
    def __init__(self) -> None:
        self.calls = 0

    def list_tasks(self, project_id):
        self.calls += 1
        raise DataAccessError("store unreachable")

    def list_dependencies(self, task_ids):  # pragma: no cover - never reached
        return []


def test_load_derives_rows_and_padded_range(store_path: Path) -> None:
    view = GanttChartView(YamlTaskStore(store_path).load(), "web")

    assert view.load()

    assert [t.id for t in view.tasks] == ["design", "build", "content"]
    assert view.tasks[1].dependencies == ("design",)
    assert view.tasks[2].dependencies == ("audit",)
    # "content" has no planned dates and falls back to its creation time.
    assert view.date_range.start == dt.datetime(2024, 2, 22, 10, 30) - dt.timedelta(days=7)
    assert view.date_range.end == dt.datetime(2024, 3, 29) + dt.timedelta(days=7)
    assert view.error is None


def test_render_skips_connector_to_task_outside_project(store_path: Path) -> None:
    view = GanttChartView(YamlTaskStore(store_path).load(), "web")
    view.load()

    scene = view.render(1200, view.preferred_height(), title="Website relaunch")

    assert [item.key for item in scene.by_role("connector")] == ["design->build"]
    assert len(scene.by_role("bar")) == 3
    assert scene.height == 400


def test_zoom_and_reset(store_path: Path) -> None:
    view = GanttChartView(YamlTaskStore(store_path).load(), "web")
    view.load()
    original = view.date_range

    zoomed = view.zoom_in()
    assert zoomed.days == pytest.approx(original.days * 0.8)
    assert zoomed.midpoint == original.midpoint

    view.zoom_out()
    assert view.date_range.days == pytest.approx(original.days * 0.96)

    assert view.reset()
    assert view.date_range == original


def test_zoom_without_range_is_a_no_op() -> None:
    view = GanttChartView(FailingSource(), "web")

    assert view.zoom_in() is None
    assert view.zoom_out() is None


def test_failed_load_records_error_without_retrying() -> None:
    source = FailingSource()
    view = GanttChartView(source, "web")

    assert not view.load()

    assert view.error == "store unreachable"
    assert source.calls == 1
    assert view.render(800, 400).is_empty


def test_empty_project_renders_placeholder(store_path: Path) -> None:
    store = YamlTaskStore(store_path).load()
    store.delete_task("audit")
    view = GanttChartView(store, "ops")

    assert view.load()

    assert view.date_range is None
    assert view.render(800, 400).is_empty
    assert view.summary()["on_hold"] == 0


def test_view_mode_switch(store_path: Path) -> None:
    view = GanttChartView(YamlTaskStore(store_path).load(), "web")
    view.load()

    view.set_view_mode("days")
    day_ticks = view.render(1200, 400).by_role("tick_label")
    assert day_ticks[0].text == "Feb 15"

    with pytest.raises(ValueError):
        view.set_view_mode("years")


def test_summary_counts(store_path: Path) -> None:
    view = GanttChartView(YamlTaskStore(store_path).load(), "web")
    view.load()

    assert view.summary() == {
        "completed": 1,
        "in_progress": 1,
        "on_hold": 0,
        "not_started": 1,
        "cancelled": 0,
    }


def test_load_handles_timestamps_with_utc_offsets(tmp_path: Path) -> None:
    path = tmp_path / "offsets.yaml"
    path.write_text(
        "projects:\n"
        "  - id: web\n"
        "    name: Website\n"
        "tasks:\n"
        "  - id: a\n"
        "    project_id: web\n"
        "    name: Planned\n"
        "    planned_start_date: 2024-03-01\n"
        "    planned_end_date: 2024-03-08\n"
        "    created_at: '2024-02-20T09:00:00+00:00'\n"
        "  - id: b\n"
        "    project_id: web\n"
        "    name: Unplanned\n"
        "    created_at: 2024-02-21T11:00:00+02:00\n",
        encoding="utf-8",
    )
    view = GanttChartView(YamlTaskStore(path).load(), "web")

    assert view.load()

    assert view.error is None
    assert view.tasks[1].start == dt.datetime(2024, 2, 21, 9, 0)
    assert view.date_range.start == dt.datetime(2024, 2, 14, 9, 0)
    assert view.date_range.end == dt.datetime(2024, 3, 15)
