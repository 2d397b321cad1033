"""Composite projection: several territory projections behind one transform."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Sequence

from .config import Bounds, TerritoryConfig
from .streams import MultiplexStream, PointCapture

_LOGGER = logging.getLogger("atlasproj.composite")

_UNSET: Any = object()


@dataclass(frozen=True, slots=True)
class SubProjection:
    territory: TerritoryConfig
    projection: Any

    @property
    def code(self) -> str:
        return self.territory.code

    @property
    def bounds(self) -> Bounds:
        return self.territory.bounds

    def contains(self, lon: float, lat: float) -> bool:
        return self.territory.contains(lon, lat)

    def project(self, lon: float, lat: float) -> tuple[float, float] | None:
        """Project through the stream pipeline so the territory's clipping applies."""
        stream = getattr(self.projection, "stream", None)
        if not callable(stream):
            result = self.projection((lon, lat))
            return None if result is None else (float(result[0]), float(result[1]))
        capture = PointCapture()
        stream(capture).point(lon, lat)
        return capture.captured


class CompositeProjection:
    """Unified projection over an ordered list of territory sub-projections.

    Forward transforms route by geographic bounds, inverse transforms try each
    territory in order, and ``stream`` fans events out to every territory.
    The instance holds no mutable state once built: each forward call
    captures its result in a sink of its own, so concurrent callers may share
    an instance as long as the underlying projections are not reconfigured.
    """

    def __init__(
        self,
        sub_projections: Sequence[SubProjection],
        *,
        width: float,
        height: float,
        debug: bool = False,
    ) -> None:
        if not sub_projections:
            raise ValueError("A composite projection needs at least one sub-projection")
        self._subs = tuple(sub_projections)
        self.width = float(width)
        self.height = float(height)
        self.debug = debug

    def __repr__(self) -> str:
        return f"CompositeProjection(territories={list(self.territory_codes)}, size=({self.width:g}, {self.height:g}))"

    def __len__(self) -> int:
        return len(self._subs)

    @property
    def sub_projections(self) -> tuple[SubProjection, ...]:
        return self._subs

    @property
    def territory_codes(self) -> tuple[str, ...]:
        return tuple(sub.code for sub in self._subs)

    def __call__(self, coordinates: Sequence[float]) -> tuple[float, float] | None:
        return self.project(float(coordinates[0]), float(coordinates[1]))

    def project(self, lon: float, lat: float) -> tuple[float, float] | None:
        """Geographic -> pixel.

        Territories whose bounds contain the point (edges inclusive) are tried
        in configuration order. When none match, or every match clips the
        point away, the first territory is used as a fallback.
        """
        for sub in self._subs:
            if not sub.contains(lon, lat):
                continue
            result = sub.project(lon, lat)
            if result is not None:
                if self.debug:
                    _LOGGER.info("[projection-debug] (%s, %s) -> %s %s", lon, lat, sub.code, result)
                return result

        fallback = self._subs[0]
        result = fallback.project(lon, lat)
        if self.debug:
            _LOGGER.info("[projection-debug] (%s, %s) -> fallback %s %s", lon, lat, fallback.code, result)
        return result

    def territory_at(self, lon: float, lat: float) -> TerritoryConfig | None:
        """First territory whose bounds contain the point, without fallback."""
        for sub in self._subs:
            if sub.contains(lon, lat):
                return sub.territory
        return None

    def invert(self, point: Sequence[float] | None) -> tuple[float, float] | None:
        """Pixel -> geographic, trying each territory's own inverse in order."""
        if point is None or len(point) < 2:
            return None
        x, y = float(point[0]), float(point[1])
        for sub in self._subs:
            invert = getattr(sub.projection, "invert", None)
            if not callable(invert):
                continue
            try:
                result = invert((x, y))
            except Exception as exc:
                if self.debug:
                    _LOGGER.warning("[projection-debug] Invert failed in %s: %s", sub.code, exc)
                else:
                    _LOGGER.debug("Invert failed in %s: %s", sub.code, exc)
                continue
            if _is_coordinate_pair(result):
                return (float(result[0]), float(result[1]))
        return None

    def stream(self, output: Any) -> MultiplexStream:
        """Input stream forwarding every event to every territory's stream of ``output``."""
        streams = []
        for sub in self._subs:
            stream = getattr(sub.projection, "stream", None)
            if callable(stream):
                streams.append(stream(output))
        return MultiplexStream(streams)

    def scale(self, value: Any = _UNSET) -> Any:
        """Reference scale (first territory's).

        Setting is a deliberate no-op: every territory keeps its own scale.
        """
        if value is _UNSET:
            scale = getattr(self._subs[0].projection, "scale", None)
            current = scale() if callable(scale) else None
            return current or 1.0
        _LOGGER.debug("Ignoring scale(%s) on composite projection; territories own their scales", value)
        return self

    def translate(self, value: Any = _UNSET) -> Any:
        """Canvas center.

        Setting is a deliberate no-op: every territory keeps its own translate.
        """
        if value is _UNSET:
            return (self.width / 2.0, self.height / 2.0)
        _LOGGER.debug("Ignoring translate(%s) on composite projection; territories own their offsets", value)
        return self

    def composition_borders(self) -> str:
        """SVG path outlining the pixel frame of every secondary territory."""
        parts: list[str] = []
        for sub in self._subs:
            if sub.territory.role == "primary":
                continue
            clip_extent = getattr(sub.projection, "clip_extent", None)
            extent = clip_extent() if callable(clip_extent) else None
            if not extent:
                continue
            (x0, y0), (x1, y1) = extent
            if x1 <= x0 or y1 <= y0:
                continue
            parts.append(
                f"M{_fmt(x0)},{_fmt(y0)}L{_fmt(x1)},{_fmt(y0)}"
                f"L{_fmt(x1)},{_fmt(y1)}L{_fmt(x0)},{_fmt(y1)}Z"
            )
        return "".join(parts)


def _is_coordinate_pair(value: Any) -> bool:
    if value is None:
        return False
    try:
        if len(value) < 2:
            return False
        return all(math.isfinite(float(v)) for v in value[:2])
    except (TypeError, ValueError):
        return False


def _fmt(value: float) -> str:
    return f"{value:.6g}"
