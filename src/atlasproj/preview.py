"""PNG preview of a composite layout for visual QA."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .composite import CompositeProjection
from .path import ProjectedGeometry, project_geojson

_LOGGER = logging.getLogger("atlasproj.preview")


@dataclass(frozen=True, slots=True)
class PreviewStyle:
    fill_color: str = "#d9e3ec"
    edge_color: str = "#3b4a5a"
    edge_width: float = 0.4
    frame_color: str = "#999999"
    frame_width: float = 0.8
    background: str = "white"
    dpi: int = 100


def render_preview(
    projection: CompositeProjection,
    geojson: Mapping[str, Any],
    output_path: Path,
    *,
    style: PreviewStyle | None = None,
    draw_frames: bool = True,
) -> Path:
    """Draw ``geojson`` through ``projection`` into a PNG the size of the canvas."""
    style = style or PreviewStyle()
    plt, patches = _require_matplotlib()
    geometry = project_geojson(projection, geojson)
    if geometry.is_empty:
        _LOGGER.warning("Nothing visible to draw for %s", output_path)

    width, height = projection.width, projection.height
    fig, ax = plt.subplots(figsize=(width / style.dpi, height / style.dpi), dpi=style.dpi)
    fig.subplots_adjust(left=0.0, right=1.0, bottom=0.0, top=1.0)
    try:
        fig.patch.set_facecolor(style.background)
        ax.set_facecolor(style.background)
        ax.set_xlim(0.0, width)
        ax.set_ylim(height, 0.0)
        ax.set_axis_off()
        _draw_geometry(ax, patches, geometry, style)
        if draw_frames:
            _draw_frames(ax, patches, projection, style)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=style.dpi, format="png")
        return output_path
    finally:
        plt.close(fig)


def _draw_geometry(ax: Any, patches: Any, geometry: ProjectedGeometry, style: PreviewStyle) -> None:
    for rings in geometry.polygons:
        for idx, ring in enumerate(rings):
            if len(ring) < 3:
                continue
            ax.add_patch(
                patches.Polygon(
                    ring,
                    closed=True,
                    facecolor=style.fill_color if idx == 0 else style.background,
                    edgecolor=style.edge_color,
                    linewidth=style.edge_width,
                )
            )
    for line in geometry.lines:
        xs, ys = zip(*line)
        ax.plot(xs, ys, color=style.edge_color, linewidth=style.edge_width)
    if geometry.points:
        xs, ys = zip(*geometry.points)
        ax.scatter(xs, ys, s=4, color=style.edge_color)


def _draw_frames(ax: Any, patches: Any, projection: CompositeProjection, style: PreviewStyle) -> None:
    for sub in projection.sub_projections:
        if sub.territory.role == "primary":
            continue
        clip_extent = getattr(sub.projection, "clip_extent", None)
        extent = clip_extent() if callable(clip_extent) else None
        if not extent:
            continue
        (x0, y0), (x1, y1) = extent
        if x1 <= x0 or y1 <= y0:
            continue
        ax.add_patch(
            patches.Rectangle(
                (x0, y0),
                x1 - x0,
                y1 - y0,
                fill=False,
                edgecolor=style.frame_color,
                linewidth=style.frame_width,
            )
        )


def _require_matplotlib() -> tuple[Any, Any]:
    try:
        import matplotlib

        matplotlib.use("Agg", force=False)
        import matplotlib.patches as patches
        import matplotlib.pyplot as plt
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for preview rendering") from exc
    return (plt, patches)
