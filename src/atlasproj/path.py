"""Projected-geometry sinks: SVG path data and plain coordinate collection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from .streams import stream_geojson

_Point = tuple[float, float]


def _fmt(value: float) -> str:
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


class PathStringStream:
    """Pixel stream -> SVG path ``d`` string."""

    def __init__(self, point_radius: float = 4.5) -> None:
        self.point_radius = float(point_radius)
        self._parts: list[str] = []
        self._in_line = False
        self._in_polygon = False
        self._first_in_line = True

    def point(self, x: float, y: float) -> None:
        if self._in_line:
            command = "M" if self._first_in_line else "L"
            self._parts.append(f"{command}{_fmt(x)},{_fmt(y)}")
            self._first_in_line = False
            return
        r = self.point_radius
        self._parts.append(
            f"M{_fmt(x)},{_fmt(y)}m0,{_fmt(r)}"
            f"a{_fmt(r)},{_fmt(r)} 0 1,1 0,{_fmt(-2 * r)}"
            f"a{_fmt(r)},{_fmt(r)} 0 1,1 0,{_fmt(2 * r)}z"
        )

    def line_start(self) -> None:
        self._in_line = True
        self._first_in_line = True

    def line_end(self) -> None:
        if self._in_polygon and not self._first_in_line:
            self._parts.append("Z")
        self._in_line = False

    def polygon_start(self) -> None:
        self._in_polygon = True

    def polygon_end(self) -> None:
        self._in_polygon = False

    def sphere(self) -> None:
        pass

    def result(self) -> str | None:
        if not self._parts:
            return None
        text = "".join(self._parts)
        self._parts = []
        return text


@dataclass(slots=True)
class ProjectedGeometry:
    polygons: list[list[list[_Point]]] = field(default_factory=list)
    lines: list[list[_Point]] = field(default_factory=list)
    points: list[_Point] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.polygons or self.lines or self.points)


class CollectingStream:
    """Pixel stream -> ProjectedGeometry (polygons as ring lists)."""

    def __init__(self) -> None:
        self.geometry = ProjectedGeometry()
        self._line: list[_Point] | None = None
        self._rings: list[list[_Point]] | None = None

    def point(self, x: float, y: float) -> None:
        if self._line is not None:
            self._line.append((x, y))
        else:
            self.geometry.points.append((x, y))

    def line_start(self) -> None:
        self._line = []

    def line_end(self) -> None:
        line = self._line or []
        self._line = None
        if not line:
            return
        if self._rings is not None:
            self._rings.append(line)
        else:
            self.geometry.lines.append(line)

    def polygon_start(self) -> None:
        self._rings = []

    def polygon_end(self) -> None:
        if self._rings:
            self.geometry.polygons.append(self._rings)
        self._rings = None

    def sphere(self) -> None:
        pass


def geo_path(projection: Any, obj: Mapping[str, Any], *, point_radius: float = 4.5) -> str | None:
    """SVG path data for a GeoJSON object drawn through ``projection``."""
    sink = PathStringStream(point_radius=point_radius)
    stream_geojson(obj, projection.stream(sink))
    return sink.result()


def project_geojson(projection: Any, obj: Mapping[str, Any]) -> ProjectedGeometry:
    sink = CollectingStream()
    stream_geojson(obj, projection.stream(sink))
    return sink.geometry
