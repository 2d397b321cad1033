"""Shared fixtures: a clean default registry and deterministic stub projections."""

from __future__ import annotations

import copy
from typing import Any

import pytest

from atlasproj.registry import DEFAULT_REGISTRY

_UNSET: Any = object()


# ── Stub projections ──────────────────────────────────────────────────────

class LinearStubProjection:
    """Plate carrée in pixels: one degree is ``scale / 100`` pixels."""

    def __init__(self) -> None:
        self._center = (0.0, 0.0)
        self._scale = 100.0
        self._translate = (480.0, 250.0)
        self._clip_extent = None

    def center(self, value: Any = _UNSET) -> Any:
        if value is _UNSET:
            return self._center
        self._center = (float(value[0]), float(value[1]))
        return self

    def scale(self, value: Any = _UNSET) -> Any:
        if value is _UNSET:
            return self._scale
        self._scale = float(value)
        return self

    def translate(self, value: Any = _UNSET) -> Any:
        if value is _UNSET:
            return self._translate
        self._translate = (float(value[0]), float(value[1]))
        return self

    def clip_extent(self, value: Any = _UNSET) -> Any:
        if value is _UNSET:
            return self._clip_extent
        self._clip_extent = None if value is None else tuple(tuple(float(v) for v in c) for c in value)
        return self

    def __call__(self, coordinates):
        k = self._scale / 100.0
        return (
            self._translate[0] + k * (coordinates[0] - self._center[0]),
            self._translate[1] - k * (coordinates[1] - self._center[1]),
        )

    def inside(self, x: float, y: float) -> bool:
        if self._clip_extent is None:
            return True
        (x0, y0), (x1, y1) = self._clip_extent
        return x0 <= x <= x1 and y0 <= y <= y1

    def invert(self, point):
        x, y = point
        if not self.inside(x, y):
            return None
        k = self._scale / 100.0
        return (
            self._center[0] + (x - self._translate[0]) / k,
            self._center[1] - (y - self._translate[1]) / k,
        )

    def stream(self, output):
        return _LinearStubStream(self, output)


class _LinearStubStream:
    def __init__(self, projection: LinearStubProjection, output: Any) -> None:
        self.projection = projection
        self.output = output

    def point(self, x, y):
        px, py = self.projection((x, y))
        if self.projection.inside(px, py):
            self.output.point(px, py)

    def line_start(self):
        self.output.line_start()

    def line_end(self):
        self.output.line_end()

    def polygon_start(self):
        self.output.polygon_start()

    def polygon_end(self):
        self.output.polygon_end()


class RecordingStubProjection:
    """No clip extent; its stream logs every event tagged with ``tag``."""

    def __init__(self, tag: str, log: list) -> None:
        self.tag = tag
        self.log = log
        self._scale = 1.0
        self._translate = (0.0, 0.0)

    def scale(self, value: Any = _UNSET) -> Any:
        if value is _UNSET:
            return self._scale
        self._scale = float(value)
        return self

    def translate(self, value: Any = _UNSET) -> Any:
        if value is _UNSET:
            return self._translate
        self._translate = (float(value[0]), float(value[1]))
        return self

    def __call__(self, coordinates):
        return (float(coordinates[0]), float(coordinates[1]))

    def stream(self, output):
        return _RecordingStream(self.tag, self.log)


class _RecordingStream:
    def __init__(self, tag: str, log: list) -> None:
        self.tag = tag
        self.log = log

    def point(self, x, y):
        self.log.append((self.tag, "point", x, y))

    def line_start(self):
        self.log.append((self.tag, "line_start"))

    def line_end(self):
        self.log.append((self.tag, "line_end"))

    def polygon_start(self):
        self.log.append((self.tag, "polygon_start"))

    def polygon_end(self):
        self.log.append((self.tag, "polygon_end"))


# ── Fixtures ──────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def clean_registry():
    DEFAULT_REGISTRY.clear()
    yield DEFAULT_REGISTRY
    DEFAULT_REGISTRY.clear()


@pytest.fixture
def stub_mercator(clean_registry):
    """Registers the linear stub under ``mercator``."""
    clean_registry.register("mercator", LinearStubProjection)
    return LinearStubProjection


_EXAMPLE_CONFIG: dict[str, Any] = {
    "version": "1.0",
    "metadata": {"atlasId": "france-test", "atlasName": "France (test)"},
    "pattern": "single-focus",
    "referenceScale": 100,
    "canvasDimensions": {"width": 960, "height": 500},
    "territories": [
        {
            "code": "FR-MET",
            "name": "France Métropolitaine",
            "role": "primary",
            "projection": {
                "id": "mercator",
                "family": "CYLINDRICAL",
                "parameters": {"center": [2.3, 46.5], "scale": 100},
            },
            "layout": {"translateOffset": [0, 0], "clipExtent": None},
            "bounds": [[-6.5, 41], [10, 51]],
        },
        {
            "code": "FR-GP",
            "name": "Guadeloupe",
            "role": "secondary",
            "projection": {
                "id": "mercator",
                "family": "CYLINDRICAL",
                "parameters": {"center": [-61.5, 16.1], "scale": 100},
            },
            "layout": {"translateOffset": [-300, -50], "clipExtent": None},
            "bounds": [[-62, 15.5], [-61, 16.5]],
        },
    ],
}


@pytest.fixture
def example_config() -> dict[str, Any]:
    """Two-territory document: mainland plus Guadeloupe offset to the left."""
    return copy.deepcopy(_EXAMPLE_CONFIG)


@pytest.fixture
def recording_stub():
    return RecordingStubProjection
