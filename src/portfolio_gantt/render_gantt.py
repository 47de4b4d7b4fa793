from __future__ import annotations

import logging
from importlib import metadata
from pathlib import Path

import matplotlib

matplotlib.use("Agg")  # ensure headless, deterministic output
import matplotlib.pyplot as plt
from matplotlib.patches import Polygon as PolygonPatch
from matplotlib.patches import Rectangle

from .scene import Label, Polygon, Polyline, Rect, Scene


logger = logging.getLogger(__name__)

DEFAULT_DPI = 100
BACKGROUND = "#ffffff"


def paint(scene: Scene, out_path: str | Path, dpi: int = DEFAULT_DPI) -> Path:
    """
    Paint `scene` onto a figure of exactly scene.width x scene.height pixels and save it.

    The output format follows the file suffix (png, svg, pdf). Scene
    coordinates are pixels with the origin at the top-left corner.
    """

    out = Path(out_path)
    fig = plt.figure(figsize=(scene.width / dpi, scene.height / dpi), dpi=dpi, facecolor=BACKGROUND)
    try:
        ax = fig.add_axes((0, 0, 1, 1))
        ax.set_xlim(0, scene.width)
        ax.set_ylim(scene.height, 0)
        ax.axis("off")

        for zorder, item in enumerate(scene.items, start=1):
            _draw_item(ax, item, dpi, zorder)

        out.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(out, dpi=dpi, facecolor=BACKGROUND)
    finally:
        plt.close(fig)

    logger.debug("Painted %d items to %s", len(scene.items), out)
    return out


def _draw_item(ax: plt.Axes, item, dpi: int, zorder: int) -> None:
    if isinstance(item, Rect):
        ax.add_patch(
            Rectangle(
                (item.x, item.y),
                item.width,
                item.height,
                facecolor=item.fill if item.fill else "none",
                edgecolor=item.stroke if item.stroke else "none",
                linewidth=_points(item.line_width, dpi) if item.stroke else 0,
                alpha=item.alpha,
                zorder=zorder,
            )
        )
    elif isinstance(item, Polyline):
        xs = [x for x, _ in item.points]
        ys = [y for _, y in item.points]
        ax.plot(xs, ys, color=item.color, linewidth=_points(item.line_width, dpi), zorder=zorder)
    elif isinstance(item, Polygon):
        ax.add_patch(PolygonPatch(item.points, closed=True, facecolor=item.fill, edgecolor="none", zorder=zorder))
    elif isinstance(item, Label):
        ax.text(
            item.x,
            item.y,
            item.text,
            ha=item.align,
            va="baseline",
            fontsize=_points(item.size, dpi),
            fontweight="bold" if item.bold else "normal",
            color=item.color,
            zorder=zorder,
        )
    else:
        # Defensive: unreachable with current SceneItem variants.
        raise TypeError(f"Unsupported scene item type: {type(item)}")


def _points(pixels: float, dpi: int) -> float:
    """Convert surface pixels to matplotlib points."""
    return pixels * 72.0 / dpi


def tool_version() -> str:
    try:
        return metadata.version("portfolio-gantt")
    except metadata.PackageNotFoundError:
        return "0.0.0"
