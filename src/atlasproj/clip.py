"""Clipping stages for projection streams."""

from __future__ import annotations

import math
from functools import lru_cache
from typing import Any, Sequence

_Point = tuple[float, float]
ClipExtent = tuple[tuple[float, float], tuple[float, float]]

_CIRCLE_STEP_DEG = 6.0


def normalize_extent(extent: Sequence[Sequence[float]]) -> ClipExtent:
    """Return ``((xmin, ymin), (xmax, ymax))`` from any two-corner rectangle."""
    if len(extent) != 2 or any(len(corner) != 2 for corner in extent):
        raise ValueError(f"Clip extent must be two [x, y] corners, got {extent!r}")
    (ax, ay), (bx, by) = ((float(c[0]), float(c[1])) for c in extent)
    return ((min(ax, bx), min(ay, by)), (max(ax, bx), max(ay, by)))


def extent_contains(extent: ClipExtent, x: float, y: float) -> bool:
    (x0, y0), (x1, y1) = extent
    return x0 <= x <= x1 and y0 <= y <= y1


class RectangleClipStream:
    """Pixel-space clip against an axis-aligned rectangle.

    Lines are buffered until ``line_end`` and polygons until ``polygon_end``;
    both are then intersected with the rectangle through shapely. Events
    reach ``output`` only once a whole line or polygon is resolved.
    """

    def __init__(self, extent: ClipExtent, output: Any) -> None:
        self.extent = normalize_extent(extent)
        self.output = output
        self._line: list[_Point] | None = None
        self._rings: list[list[_Point]] | None = None

    def point(self, x: float, y: float) -> None:
        if self._line is not None:
            self._line.append((x, y))
        elif extent_contains(self.extent, x, y):
            self.output.point(x, y)

    def line_start(self) -> None:
        self._line = []

    def line_end(self) -> None:
        line = self._line or []
        self._line = None
        if self._rings is not None:
            self._rings.append(line)
            return
        for run in clip_polyline(line, self.extent):
            self.output.line_start()
            for x, y in run:
                self.output.point(x, y)
            self.output.line_end()

    def polygon_start(self) -> None:
        self._rings = []

    def polygon_end(self) -> None:
        rings = self._rings or []
        self._rings = None
        clipped = clip_polygon_rings(rings, self.extent)
        if not clipped:
            return
        self.output.polygon_start()
        for ring in clipped:
            self.output.line_start()
            for x, y in ring:
                self.output.point(x, y)
            self.output.line_end()
        self.output.polygon_end()

    def sphere(self) -> None:
        # The visible sphere of a clipped projection is the clip rectangle itself.
        (x0, y0), (x1, y1) = self.extent
        self.output.polygon_start()
        self.output.line_start()
        for x, y in ((x0, y0), (x1, y0), (x1, y1), (x0, y1)):
            self.output.point(x, y)
        self.output.line_end()
        self.output.polygon_end()


def clip_polyline(points: Sequence[_Point], extent: ClipExtent) -> list[list[_Point]]:
    """Split a polyline into the runs that lie inside ``extent``.

    Runs come back in the order and direction they are walked along the line.
    """
    if not points:
        return []
    if all(extent_contains(extent, x, y) for x, y in points):
        return [list(points)]
    if len(points) == 1:
        return []

    _, line_cls, point_cls, box, _ = _require_shapely()
    (x0, y0), (x1, y1) = extent
    line = line_cls(points)
    clipped = line.intersection(box(x0, y0, x1, y1))

    runs: list[tuple[float, list[_Point]]] = []
    for coords in _iter_line_coords(clipped):
        start = line.project(point_cls(coords[0]))
        end = line.project(point_cls(coords[-1]))
        if end < start:
            coords.reverse()
        runs.append((min(start, end), coords))
    runs.sort(key=lambda item: item[0])
    return [coords for _, coords in runs]


def _iter_line_coords(geometry: Any) -> list[list[_Point]]:
    if geometry.is_empty:
        return []
    kind = geometry.geom_type
    if kind in ("LineString", "LinearRing", "Point"):
        return [[(float(x), float(y)) for x, y, *_ in geometry.coords]]
    if kind in ("MultiLineString", "MultiPoint", "GeometryCollection"):
        out: list[list[_Point]] = []
        for part in geometry.geoms:
            out.extend(_iter_line_coords(part))
        return out
    return []


def clip_polygon_rings(rings: Sequence[Sequence[_Point]], extent: ClipExtent) -> list[list[_Point]]:
    """Intersect one polygon (exterior first, then holes) with ``extent``.

    Returned rings are open (no repeated closing point).
    """
    usable = [list(ring) for ring in rings if len(ring) >= 3]
    if not usable:
        return []
    if all(extent_contains(extent, x, y) for ring in usable for x, y in ring):
        return usable

    polygon_cls, _, _, box, make_valid = _require_shapely()
    (x0, y0), (x1, y1) = extent
    shape = polygon_cls(usable[0], usable[1:])
    if not shape.is_valid:
        shape = make_valid(shape)
    clipped = shape.intersection(box(x0, y0, x1, y1))

    out: list[list[_Point]] = []
    for part in _iter_polygons(clipped):
        out.append(_open_ring(part.exterior.coords))
        for interior in part.interiors:
            out.append(_open_ring(interior.coords))
    return out


def _iter_polygons(geometry: Any) -> list[Any]:
    if geometry.is_empty:
        return []
    kind = geometry.geom_type
    if kind == "Polygon":
        return [geometry]
    if kind in ("MultiPolygon", "GeometryCollection"):
        out: list[Any] = []
        for part in geometry.geoms:
            out.extend(_iter_polygons(part))
        return out
    return []


def _open_ring(coords: Any) -> list[_Point]:
    points = [(float(x), float(y)) for x, y, *_ in coords]
    if len(points) > 1 and points[0] == points[-1]:
        points.pop()
    return points


class SmallCircleClipStream:
    """Clip to a small circle of ``angle`` degrees around the rotated origin.

    Works on rotated spherical coordinates in radians. Invisible points break
    open lines; inside polygons they are dropped so rings stay closed.
    """

    def __init__(self, angle: float, output: Any) -> None:
        self.angle = float(angle)
        self.output = output
        self._cos_radius = math.cos(math.radians(self.angle))
        self._in_line = False
        self._in_polygon = False
        self._line_open = False

    def visible(self, lam: float, phi: float) -> bool:
        return math.cos(lam) * math.cos(phi) > self._cos_radius

    def point(self, lam: float, phi: float) -> None:
        visible = self.visible(lam, phi)
        if not self._in_line:
            if visible:
                self.output.point(lam, phi)
            return
        if visible:
            if not self._line_open:
                self.output.line_start()
                self._line_open = True
            self.output.point(lam, phi)
        elif self._line_open and not self._in_polygon:
            self.output.line_end()
            self._line_open = False

    def line_start(self) -> None:
        self._in_line = True
        if self._in_polygon:
            self.output.line_start()
            self._line_open = True

    def line_end(self) -> None:
        if self._line_open:
            self.output.line_end()
        self._line_open = False
        self._in_line = False

    def polygon_start(self) -> None:
        self._in_polygon = True
        self.output.polygon_start()

    def polygon_end(self) -> None:
        self._in_polygon = False
        self.output.polygon_end()

    def sphere(self) -> None:
        radius = math.radians(self.angle)
        cos_r, sin_r = math.cos(radius), math.sin(radius)
        steps = max(int(round(360.0 / _CIRCLE_STEP_DEG)), 3)
        self.output.polygon_start()
        self.output.line_start()
        for idx in range(steps):
            theta = 2.0 * math.pi * idx / steps
            x = cos_r
            y = sin_r * math.cos(theta)
            z = sin_r * math.sin(theta)
            self.output.point(math.atan2(y, x), math.asin(max(-1.0, min(1.0, z))))
        self.output.line_end()
        self.output.polygon_end()


@lru_cache(maxsize=1)
def _require_shapely() -> tuple[Any, Any, Any, Any, Any]:
    try:
        from shapely.geometry import LineString, Point, Polygon, box
        from shapely.validation import make_valid
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for clipping") from exc
    return (Polygon, LineString, Point, box, make_valid)
