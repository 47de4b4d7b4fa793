from __future__ import annotations

import argparse
import logging
import sys
import webbrowser
from pathlib import Path

from .chart_view import GanttChartView
from .dependencies import constraint_violations
from .gantt_data import SUMMARY_LABELS
from .render_gantt import DEFAULT_DPI, paint, tool_version
from .task_models import VIEW_MODES
from .task_store import DataAccessError, YamlTaskStore


logger = logging.getLogger("portfolio_gantt")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portfolio-gantt",
        description="Render a project's tasks and dependencies as a Gantt chart",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("store", help="Path to the task store YAML")
    parser.add_argument("--project", help="Project id; defaults to the first project in the store")
    parser.add_argument("--out", default="output/gantt_chart.png", help="Output image path (.png, .svg or .pdf)")
    parser.add_argument("--view-mode", choices=VIEW_MODES, default="weeks", help="Time-scale tick spacing")
    parser.add_argument("--width", type=int, default=1200, help="Surface width in pixels")
    parser.add_argument("--height", type=int, help="Surface height in pixels; defaults to fit all rows")
    parser.add_argument("--dpi", type=int, default=DEFAULT_DPI, help="Output resolution")
    parser.add_argument("--zoom-in", type=int, default=0, metavar="N", help="Apply N zoom-in steps")
    parser.add_argument("--zoom-out", type=int, default=0, metavar="N", help="Apply N zoom-out steps")
    parser.add_argument("--summary", action="store_true", help="Print task counts per status")
    parser.add_argument(
        "--check-dependencies",
        action="store_true",
        help="Report dependencies whose planned dates break their type and lag",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {tool_version()}")
    parser.add_argument(
        "--view",
        dest="view",
        action="store_true",
        default=True,
        help="Best-effort open the output file after rendering",
    )
    parser.add_argument(
        "--no-view",
        dest="view",
        action="store_false",
        help="Do not open the output file after rendering",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    store = YamlTaskStore(args.store)
    try:
        store.load()
    except DataAccessError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    projects = store.list_projects()
    if args.project:
        project = next((p for p in projects if p.id == args.project), None)
        if project is None:
            print(f"Error: unknown project '{args.project}'", file=sys.stderr)
            return 2
    elif projects:
        project = projects[0]
    else:
        print("Error: task store holds no projects", file=sys.stderr)
        return 2

    view = GanttChartView(store, project.id, view_mode=args.view_mode)
    if not view.load():
        print(f"Error: {view.error}", file=sys.stderr)
        return 2

    for _ in range(args.zoom_in):
        view.zoom_in()
    for _ in range(args.zoom_out):
        view.zoom_out()

    height = args.height or view.preferred_height()
    scene = view.render(args.width, height, title=project.name)

    try:
        out = paint(scene, args.out, dpi=args.dpi)
    except Exception as exc:
        print(f"Unexpected error while rendering: {exc}", file=sys.stderr)
        return 1

    if view.date_range is not None:
        print(f"Showing {len(view.tasks)} tasks from {view.date_range.start:%Y-%m-%d} to {view.date_range.end:%Y-%m-%d}")
    else:
        print("No tasks to display")

    if args.summary:
        for status, count in view.summary().items():
            print(f"{SUMMARY_LABELS.get(status, status)}: {count}")

    if args.check_dependencies:
        tasks = store.list_tasks(project.id)
        violations = constraint_violations(tasks, store.list_dependencies([task.id for task in tasks]))
        for violation in violations:
            print(f"Dependency violation: {violation}")

    if args.view:
        try:
            webbrowser.open(out.resolve().as_uri())
        except webbrowser.Error:
            logger.debug("Could not open %s in a browser", out)

    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
