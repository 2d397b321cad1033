"""Push-style geometry stream protocol.

A stream receives geometry as a sequence of events: ``point``, ``line_start``,
``line_end``, ``polygon_start``, ``polygon_end`` and optionally ``sphere``.
Projections wrap an output stream and return an input stream; stages chain
the same way.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol, Sequence, runtime_checkable


@runtime_checkable
class GeoStream(Protocol):
    def point(self, x: float, y: float) -> None: ...

    def line_start(self) -> None: ...

    def line_end(self) -> None: ...

    def polygon_start(self) -> None: ...

    def polygon_end(self) -> None: ...


class NullStream:
    """Stream that ignores every event. Base class for sinks and stages."""

    def point(self, x: float, y: float) -> None:
        pass

    def line_start(self) -> None:
        pass

    def line_end(self) -> None:
        pass

    def polygon_start(self) -> None:
        pass

    def polygon_end(self) -> None:
        pass

    def sphere(self) -> None:
        pass


class MultiplexStream:
    """Fan-out adapter: every event goes to every child stream, in order."""

    def __init__(self, streams: Sequence[Any]) -> None:
        self.streams = tuple(streams)

    def point(self, x: float, y: float) -> None:
        for stream in self.streams:
            stream.point(x, y)

    def line_start(self) -> None:
        for stream in self.streams:
            stream.line_start()

    def line_end(self) -> None:
        for stream in self.streams:
            stream.line_end()

    def polygon_start(self) -> None:
        for stream in self.streams:
            stream.polygon_start()

    def polygon_end(self) -> None:
        for stream in self.streams:
            stream.polygon_end()

    def sphere(self) -> None:
        for stream in self.streams:
            emit_sphere(stream)


class PointCapture(NullStream):
    """Sink that keeps the last point it received."""

    def __init__(self) -> None:
        self.captured: tuple[float, float] | None = None

    def point(self, x: float, y: float) -> None:
        self.captured = (float(x), float(y))


def emit_sphere(stream: Any) -> None:
    """Send ``sphere`` to streams that support it; the event is optional."""
    sphere = getattr(stream, "sphere", None)
    if callable(sphere):
        sphere()


def stream_geojson(obj: Mapping[str, Any] | None, stream: Any) -> None:
    """Feed a GeoJSON object into ``stream``.

    Polygon rings are emitted without their closing coordinate; ``line_end``
    inside a polygon implies closure.
    """
    if obj is None:
        return
    kind = obj.get("type")
    if kind == "FeatureCollection":
        for feature in obj.get("features") or ():
            stream_geojson(feature, stream)
        return
    if kind == "Feature":
        stream_geojson(obj.get("geometry"), stream)
        return
    if kind == "GeometryCollection":
        for geometry in obj.get("geometries") or ():
            stream_geojson(geometry, stream)
        return
    if kind == "Sphere":
        emit_sphere(stream)
        return

    coords = obj.get("coordinates")
    if kind == "Point":
        _stream_point(coords, stream)
    elif kind == "MultiPoint":
        for position in coords or ():
            _stream_point(position, stream)
    elif kind == "LineString":
        _stream_line(coords or (), stream, closed=False)
    elif kind == "MultiLineString":
        for line in coords or ():
            _stream_line(line, stream, closed=False)
    elif kind == "Polygon":
        _stream_polygon(coords or (), stream)
    elif kind == "MultiPolygon":
        for polygon in coords or ():
            _stream_polygon(polygon, stream)
    else:
        raise ValueError(f"Unsupported GeoJSON type: {kind!r}")


def _stream_point(position: Sequence[float], stream: Any) -> None:
    stream.point(float(position[0]), float(position[1]))


def _stream_line(positions: Sequence[Sequence[float]], stream: Any, *, closed: bool) -> None:
    count = len(positions) - 1 if closed else len(positions)
    stream.line_start()
    for idx in range(max(count, 0)):
        _stream_point(positions[idx], stream)
    stream.line_end()


def _stream_polygon(rings: Iterable[Sequence[Sequence[float]]], stream: Any) -> None:
    stream.polygon_start()
    for ring in rings:
        _stream_line(ring, stream, closed=True)
    stream.polygon_end()
