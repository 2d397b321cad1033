"""Projection families backed by pyproj.

Each family wraps a unit-sphere pyproj transform (the *raw* projection) and
adds the pixel-space controls a composite needs: rotation, center, scale,
translate, clip extent, clip angle and adaptive resampling. The pixel model
is the usual one for screen maps::

    px = tx + k * (x - xc)
    py = ty - k * (y - yc)

where ``(x, y)`` is the raw projection of the rotated point and ``(xc, yc)``
the raw projection of the configured center.

Setters follow the chaining accessor style: ``p.scale()`` reads the value and
``p.scale(2700)`` sets it and returns the projection.
"""

from __future__ import annotations

import math
from functools import lru_cache
from typing import Any, Callable, Mapping, NamedTuple, Sequence

from .clip import ClipExtent, RectangleClipStream, SmallCircleClipStream, extent_contains, normalize_extent
from .registry import ProjectionRegistry, resolve_registry
from .streams import emit_sphere

_TAU = 2.0 * math.pi
_EPSILON = 1e-12
_MAX_RESAMPLE_DEPTH = 16
_DEFAULT_TRANSLATE = (480.0, 250.0)
_DEFAULT_PRECISION = math.sqrt(0.5)
_POLE_EPSILON = 1e-9
# Raw transforms that send the poles to infinity.
_POLE_SINGULAR = frozenset({"merc"})

_UNSET: Any = object()


class _Rotation:
    """Spherical rotation by (lambda, phi, gamma), all in radians."""

    def __init__(self, delta_lambda: float, delta_phi: float, delta_gamma: float) -> None:
        self.delta_lambda = delta_lambda % _TAU
        if self.delta_lambda > math.pi:
            self.delta_lambda -= _TAU
        self._has_phi_gamma = bool(delta_phi or delta_gamma)
        self._cos_phi = math.cos(delta_phi)
        self._sin_phi = math.sin(delta_phi)
        self._cos_gamma = math.cos(delta_gamma)
        self._sin_gamma = math.sin(delta_gamma)

    def forward(self, lam: float, phi: float) -> tuple[float, float]:
        if self.delta_lambda:
            lam = _wrap_longitude(lam + self.delta_lambda)
        if self._has_phi_gamma:
            lam, phi = self._phi_gamma(lam, phi)
        return (lam, phi)

    def invert(self, lam: float, phi: float) -> tuple[float, float]:
        if self._has_phi_gamma:
            lam, phi = self._phi_gamma_invert(lam, phi)
        if self.delta_lambda:
            lam = _wrap_longitude(lam - self.delta_lambda)
        return (lam, phi)

    def _phi_gamma(self, lam: float, phi: float) -> tuple[float, float]:
        cos_phi = math.cos(phi)
        x = math.cos(lam) * cos_phi
        y = math.sin(lam) * cos_phi
        z = math.sin(phi)
        k = z * self._cos_phi + x * self._sin_phi
        return (
            math.atan2(y * self._cos_gamma - k * self._sin_gamma, x * self._cos_phi - z * self._sin_phi),
            _asin(k * self._cos_gamma + y * self._sin_gamma),
        )

    def _phi_gamma_invert(self, lam: float, phi: float) -> tuple[float, float]:
        cos_phi = math.cos(phi)
        x = math.cos(lam) * cos_phi
        y = math.sin(lam) * cos_phi
        z = math.sin(phi)
        k = z * self._cos_gamma - y * self._sin_gamma
        return (
            math.atan2(y * self._cos_gamma + z * self._sin_gamma, x * self._cos_phi + k * self._sin_phi),
            _asin(k * self._cos_phi - x * self._sin_phi),
        )


class RawProjection:
    """pyproj transform on a sphere of radius 1, in radians on both sides."""

    def __init__(self, proj_name: str, **params: float) -> None:
        proj_cls, proj_error = _require_pyproj()
        self.proj_name = proj_name
        self.params = dict(params)
        try:
            self._proj = proj_cls(proj=proj_name, R=1.0, lon_0=0.0, **params)
        except proj_error as exc:
            raise ValueError(f"Invalid '{proj_name}' parameters {params}: {exc}") from exc

    def forward(self, lam: float, phi: float) -> tuple[float, float] | None:
        if self.proj_name in _POLE_SINGULAR and abs(phi) >= math.pi / 2.0 - _POLE_EPSILON:
            return None
        x, y = self._proj(math.degrees(lam), math.degrees(phi))
        if not (math.isfinite(x) and math.isfinite(y)):
            return None
        return (float(x), float(y))

    def invert(self, x: float, y: float) -> tuple[float, float] | None:
        lon, lat = self._proj(x, y, inverse=True)
        if not (math.isfinite(lon) and math.isfinite(lat)):
            return None
        return (math.radians(lon), math.radians(lat))


class _Node(NamedTuple):
    lam: float
    phi: float
    x: float
    y: float
    cart: tuple[float, float, float]


class Projection:
    """Pixel projection with the full optional capability set."""

    family = "generic"
    proj_name = ""
    default_scale = 150.0

    def __init__(self, raw: RawProjection | None = None) -> None:
        self._raw = raw if raw is not None else RawProjection(self.proj_name)
        self._scale = float(self.default_scale)
        self._translate = _DEFAULT_TRANSLATE
        self._center = (0.0, 0.0)
        self._center_xy = (0.0, 0.0)
        self._rotate = (0.0, 0.0, 0.0)
        self._rotation = _Rotation(0.0, 0.0, 0.0)
        self._clip_extent: ClipExtent | None = None
        self._clip_angle: float | None = None
        self._delta2 = _DEFAULT_PRECISION**2
        self._recenter()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(scale={self._scale:g}, translate={self._translate})"

    def __call__(self, coordinates: Sequence[float]) -> tuple[float, float] | None:
        lon, lat = float(coordinates[0]), float(coordinates[1])
        lam, phi = self._rotation.forward(math.radians(lon), math.radians(lat))
        return self._project_rotated(lam, phi)

    def invert(self, point: Sequence[float]) -> tuple[float, float] | None:
        """Pixel -> (lon, lat). Pixels outside the clip extent are refused."""
        x, y = float(point[0]), float(point[1])
        if self._clip_extent is not None and not extent_contains(self._clip_extent, x, y):
            return None
        tx, ty = self._translate
        raw = self._raw.invert(
            (x - tx) / self._scale + self._center_xy[0],
            (ty - y) / self._scale + self._center_xy[1],
        )
        if raw is None:
            return None
        lam, phi = self._rotation.invert(*raw)
        return (math.degrees(lam), math.degrees(phi))

    def stream(self, output: Any) -> Any:
        sink = output
        if self._clip_extent is not None:
            sink = RectangleClipStream(self._clip_extent, sink)
        sink = _ProjectStream(self, sink)
        if self._clip_angle:
            sink = SmallCircleClipStream(self._clip_angle, sink)
        return _RotateStream(self._rotation, sink)

    def scale(self, value: Any = _UNSET) -> Any:
        if value is _UNSET:
            return self._scale
        self._scale = float(value)
        return self

    def translate(self, value: Any = _UNSET) -> Any:
        if value is _UNSET:
            return self._translate
        self._translate = _float_pair(value, "translate")
        return self

    def center(self, value: Any = _UNSET) -> Any:
        if value is _UNSET:
            return self._center
        self._center = _float_pair(value, "center")
        self._recenter()
        return self

    def rotate(self, value: Any = _UNSET) -> Any:
        if value is _UNSET:
            return self._rotate
        angles = [float(item) for item in value]
        if len(angles) not in (2, 3):
            raise ValueError(f"rotate expects 2 or 3 angles, got {value!r}")
        if len(angles) == 2:
            angles.append(0.0)
        self._rotate = (angles[0], angles[1], angles[2])
        self._rotation = _Rotation(*(math.radians(angle) for angle in self._rotate))
        return self

    def clip_extent(self, value: Any = _UNSET) -> Any:
        if value is _UNSET:
            return self._clip_extent
        self._clip_extent = None if value is None else normalize_extent(value)
        return self

    def clip_angle(self, value: Any = _UNSET) -> Any:
        if value is _UNSET:
            return self._clip_angle
        self._clip_angle = float(value) if value else None
        return self

    def precision(self, value: Any = _UNSET) -> Any:
        if value is _UNSET:
            return math.sqrt(self._delta2)
        precision = float(value)
        self._delta2 = precision * precision
        return self

    def _recenter(self) -> None:
        lon, lat = self._center
        projected = self._raw.forward(math.radians(lon), math.radians(lat))
        if projected is None:
            raise ValueError(f"Center {self._center} cannot be projected by {self.family}")
        self._center_xy = projected

    def _project_rotated(self, lam: float, phi: float) -> tuple[float, float] | None:
        projected = self._raw.forward(lam, phi)
        if projected is None:
            return None
        tx, ty = self._translate
        return (
            tx + self._scale * (projected[0] - self._center_xy[0]),
            ty - self._scale * (projected[1] - self._center_xy[1]),
        )


class MercatorProjection(Projection):
    family = "mercator"
    proj_name = "merc"
    default_scale = 961.0 / _TAU


class EquirectangularProjection(Projection):
    family = "equirectangular"
    proj_name = "eqc"
    default_scale = 152.63


class AzimuthalEqualAreaProjection(Projection):
    family = "azimuthal-equal-area"
    proj_name = "laea"
    default_scale = 124.75


class ConicProjection(Projection):
    """Two-parallel conic; changing the parallels rebuilds the raw transform."""

    def __init__(self, parallels: Sequence[float] = (0.0, 60.0)) -> None:
        self._parallels = _float_pair(parallels, "parallels")
        super().__init__(self._make_raw(self._parallels))

    def parallels(self, value: Any = _UNSET) -> Any:
        if value is _UNSET:
            return self._parallels
        parallels = _float_pair(value, "parallels")
        self._raw = self._make_raw(parallels)
        self._parallels = parallels
        self._recenter()
        return self

    def _make_raw(self, parallels: tuple[float, float]) -> RawProjection:
        return RawProjection(self.proj_name, lat_1=parallels[0], lat_2=parallels[1])


class ConicConformalProjection(ConicProjection):
    family = "conic-conformal"
    proj_name = "lcc"
    default_scale = 109.5


class ConicEqualAreaProjection(ConicProjection):
    family = "conic-equal-area"
    proj_name = "aea"
    default_scale = 155.424


BUILTIN_FACTORIES: Mapping[str, Callable[[], Projection]] = {
    MercatorProjection.family: MercatorProjection,
    ConicConformalProjection.family: ConicConformalProjection,
    ConicEqualAreaProjection.family: ConicEqualAreaProjection,
    AzimuthalEqualAreaProjection.family: AzimuthalEqualAreaProjection,
    EquirectangularProjection.family: EquirectangularProjection,
}


def register_builtin_projections(registry: ProjectionRegistry | None = None) -> list[str]:
    """Register the pyproj-backed families and return their ids."""
    target = resolve_registry(registry)
    target.register_many(BUILTIN_FACTORIES)
    return list(BUILTIN_FACTORIES)


class _RotateStream:
    """Entry stage: degrees in, rotated radians out."""

    def __init__(self, rotation: _Rotation, output: Any) -> None:
        self._rotation = rotation
        self.output = output

    def point(self, x: float, y: float) -> None:
        lam, phi = self._rotation.forward(math.radians(x), math.radians(y))
        self.output.point(lam, phi)

    def line_start(self) -> None:
        self.output.line_start()

    def line_end(self) -> None:
        self.output.line_end()

    def polygon_start(self) -> None:
        self.output.polygon_start()

    def polygon_end(self) -> None:
        self.output.polygon_end()

    def sphere(self) -> None:
        emit_sphere(self.output)


class _ProjectStream:
    """Rotated radians in, pixels out, with adaptive resampling inside lines."""

    def __init__(self, projection: Projection, output: Any) -> None:
        self._projection = projection
        self._delta2 = projection._delta2
        self.output = output
        self._in_line = False
        self._in_polygon = False
        self._prev: _Node | None = None
        self._first: _Node | None = None

    def point(self, lam: float, phi: float) -> None:
        node = self._node(lam, phi)
        if node is None:
            self._prev = None
            return
        if self._in_line:
            if self._first is None:
                self._first = node
            if self._prev is not None:
                self._resample(self._prev, node, _MAX_RESAMPLE_DEPTH)
            self._prev = node
        self.output.point(node.x, node.y)

    def line_start(self) -> None:
        self._in_line = True
        self._prev = None
        self._first = None
        self.output.line_start()

    def line_end(self) -> None:
        if self._in_polygon and self._prev is not None and self._first is not None:
            if self._prev is not self._first:
                self._resample(self._prev, self._first, _MAX_RESAMPLE_DEPTH)
        self._in_line = False
        self._prev = None
        self._first = None
        self.output.line_end()

    def polygon_start(self) -> None:
        self._in_polygon = True
        self.output.polygon_start()

    def polygon_end(self) -> None:
        self._in_polygon = False
        self.output.polygon_end()

    def sphere(self) -> None:
        emit_sphere(self.output)

    def _node(self, lam: float, phi: float) -> _Node | None:
        projected = self._projection._project_rotated(lam, phi)
        if projected is None:
            return None
        cos_phi = math.cos(phi)
        cart = (cos_phi * math.cos(lam), cos_phi * math.sin(lam), math.sin(phi))
        return _Node(lam, phi, projected[0], projected[1], cart)

    def _resample(self, a: _Node, b: _Node, depth: int) -> None:
        # Emits the intermediate points between a and b, never a or b.
        if self._delta2 <= 0.0 or depth <= 0:
            return
        dx = b.x - a.x
        dy = b.y - a.y
        d2 = dx * dx + dy * dy
        if d2 <= 4.0 * self._delta2:
            return
        mx = a.cart[0] + b.cart[0]
        my = a.cart[1] + b.cart[1]
        mz = a.cart[2] + b.cart[2]
        norm = math.sqrt(mx * mx + my * my + mz * mz)
        if norm < _EPSILON:
            return
        mid = self._node(math.atan2(my, mx), _asin(mz / norm))
        if mid is None:
            return
        dx2 = mid.x - a.x
        dy2 = mid.y - a.y
        dz = dy * dx2 - dx * dy2
        if dz * dz / d2 > self._delta2 or abs((dx * dx2 + dy * dy2) / d2 - 0.5) > 0.3:
            self._resample(a, mid, depth - 1)
            self.output.point(mid.x, mid.y)
            self._resample(mid, b, depth - 1)


def _wrap_longitude(lam: float) -> float:
    if lam > math.pi:
        return lam - _TAU
    if lam < -math.pi:
        return lam + _TAU
    return lam


def _asin(value: float) -> float:
    return math.asin(max(-1.0, min(1.0, value)))


def _float_pair(value: Any, field_name: str) -> tuple[float, float]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"{field_name} expects two numbers, got {value!r}")
    return (float(value[0]), float(value[1]))


@lru_cache(maxsize=1)
def _require_pyproj() -> tuple[Any, Any]:
    try:
        from pyproj import Proj
        from pyproj.exceptions import ProjError
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("pyproj is required for the built-in projection families") from exc
    return (Proj, ProjError)
