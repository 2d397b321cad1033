"""Typed model and validator for composite projection documents.

Documents are camelCase JSON/YAML. Territories may describe their projection
in three shapes, resolved in this priority order and normalized to a single
``ProjectionSpec`` at parse time:

1. nested ``projection: {id, family, parameters}``;
2. legacy ``projectionId`` + ``parameters``;
3. migration ``projectionFamily`` + ``parameters`` (id inferred from family).

Unknown fields are ignored everywhere.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from .errors import ConfigParseError, ConfigurationError

SUPPORTED_VERSION = "1.0"
DEFAULT_REFERENCE_SCALE = 2700.0
DEFAULT_ROTATE = (0.0, 0.0, 0.0)
DEFAULT_PARALLELS = (0.0, 60.0)

_LOGGER = logging.getLogger("atlasproj.config")

Bounds = tuple[tuple[float, float], tuple[float, float]]


def _mapping(value: Any, field_name: str, territory_code: str | None = None) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigurationError(
            f"Expected mapping for '{field_name}'",
            territory_code=territory_code,
            field_name=field_name,
        )
    return cast(Mapping[str, Any], value)


def _str(value: Any, field_name: str, territory_code: str | None = None) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(
            f"Expected non-empty string for '{field_name}'",
            territory_code=territory_code,
            field_name=field_name,
        )
    return value.strip()


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _optional_float(value: Any, field_name: str, territory_code: str | None = None) -> float | None:
    if value is None:
        return None
    if not _is_number(value):
        raise ConfigurationError(
            f"Expected number for '{field_name}'",
            territory_code=territory_code,
            field_name=field_name,
        )
    return float(value)


def _optional_pair(value: Any, field_name: str, territory_code: str | None = None) -> tuple[float, float] | None:
    if value is None:
        return None
    if not isinstance(value, (list, tuple)) or len(value) != 2 or not all(_is_number(v) for v in value):
        raise ConfigurationError(
            f"Expected [number, number] for '{field_name}'",
            territory_code=territory_code,
            field_name=field_name,
        )
    return (float(value[0]), float(value[1]))


def _coerce_components(value: Any, size: int, default: tuple[float, ...]) -> tuple[float, ...]:
    """Pad with zeros and truncate to ``size``; anything malformed -> ``default``."""
    if not isinstance(value, (list, tuple)) or not all(_is_number(v) for v in value):
        return default
    padded = [float(v) for v in value] + [0.0] * size
    return tuple(padded[:size])


@dataclass(frozen=True, slots=True)
class ProjectionParameters:
    center: tuple[float, float] | None = None
    rotate: tuple[float, float, float] | None = None
    parallels: tuple[float, float] | None = None
    scale: float | None = None
    base_scale: float | None = None
    scale_multiplier: float | None = None
    translate: tuple[float, float] | None = None
    clip_angle: float | None = None
    precision: float | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], territory_code: str) -> ProjectionParameters:
        prefix = f"territories[{territory_code}].parameters"
        rotate_raw = raw.get("rotate")
        parallels_raw = raw.get("parallels")
        return cls(
            center=_optional_pair(raw.get("center"), f"{prefix}.center", territory_code),
            rotate=(
                None
                if rotate_raw is None
                else cast(tuple[float, float, float], _coerce_components(rotate_raw, 3, DEFAULT_ROTATE))
            ),
            parallels=(
                None
                if parallels_raw is None
                else cast(tuple[float, float], _coerce_components(parallels_raw, 2, DEFAULT_PARALLELS))
            ),
            scale=_optional_float(raw.get("scale"), f"{prefix}.scale", territory_code),
            base_scale=_optional_float(raw.get("baseScale"), f"{prefix}.baseScale", territory_code),
            scale_multiplier=_optional_float(
                raw.get("scaleMultiplier"), f"{prefix}.scaleMultiplier", territory_code
            ),
            translate=_optional_pair(raw.get("translate"), f"{prefix}.translate", territory_code),
            clip_angle=_optional_float(raw.get("clipAngle"), f"{prefix}.clipAngle", territory_code),
            precision=_optional_float(raw.get("precision"), f"{prefix}.precision", territory_code),
        )

    def to_dict(self) -> dict[str, Any]:
        items = {
            "center": self.center,
            "rotate": self.rotate,
            "parallels": self.parallels,
            "scale": self.scale,
            "baseScale": self.base_scale,
            "scaleMultiplier": self.scale_multiplier,
            "translate": self.translate,
            "clipAngle": self.clip_angle,
            "precision": self.precision,
        }
        return {
            key: list(value) if isinstance(value, tuple) else value
            for key, value in items.items()
            if value is not None
        }


@dataclass(frozen=True, slots=True)
class ProjectionSpec:
    """Canonical projection description of one territory."""

    id: str
    family: str | None
    parameters: ProjectionParameters
    inferred: bool = False


def infer_projection_id(family: str, parameters: Mapping[str, Any]) -> str:
    """Pick a projection id for a bare projection family."""
    chosen = family.strip().upper()
    if chosen == "CYLINDRICAL":
        return "mercator"
    if chosen == "CONIC":
        return "conic-conformal" if parameters.get("parallels") else "conic-equal-area"
    if chosen == "AZIMUTHAL":
        return "azimuthal-equal-area"
    _LOGGER.warning("Unknown projection family '%s', falling back to mercator", family)
    return "mercator"


def resolve_projection_spec(raw: Mapping[str, Any], territory_code: str) -> ProjectionSpec:
    nested = raw.get("projection")
    parameters_raw = raw.get("parameters")

    if isinstance(nested, Mapping) and nested.get("id") and isinstance(nested.get("parameters"), Mapping):
        return ProjectionSpec(
            id=_str(nested.get("id"), f"territories[{territory_code}].projection.id", territory_code),
            family=_optional_str(nested.get("family")),
            parameters=ProjectionParameters.from_mapping(nested["parameters"], territory_code),
        )
    if raw.get("projectionId") and isinstance(parameters_raw, Mapping):
        return ProjectionSpec(
            id=_str(raw.get("projectionId"), f"territories[{territory_code}].projectionId", territory_code),
            family=_optional_str(raw.get("projectionFamily")),
            parameters=ProjectionParameters.from_mapping(parameters_raw, territory_code),
        )
    if raw.get("projectionFamily") and isinstance(parameters_raw, Mapping):
        family = _str(
            raw.get("projectionFamily"), f"territories[{territory_code}].projectionFamily", territory_code
        )
        return ProjectionSpec(
            id=infer_projection_id(family, parameters_raw),
            family=family,
            parameters=ProjectionParameters.from_mapping(parameters_raw, territory_code),
            inferred=True,
        )

    available = ", ".join(str(key) for key in raw.keys())
    raise ConfigurationError(
        f"Territory {territory_code} missing projection configuration. Available fields: {available}",
        territory_code=territory_code,
        field_name="projection",
    )


@dataclass(frozen=True, slots=True)
class TerritoryLayout:
    translate_offset: tuple[float, float] = (0.0, 0.0)
    clip_extent: tuple[tuple[float, float], tuple[float, float]] | None = None
    pixel_clip_extent: tuple[float, float, float, float] | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None, territory_code: str) -> TerritoryLayout:
        if raw is None:
            return cls()
        raw = _mapping(raw, f"territories[{territory_code}].layout", territory_code)
        prefix = f"territories[{territory_code}].layout"
        offset = _optional_pair(raw.get("translateOffset"), f"{prefix}.translateOffset", territory_code)

        clip_raw = raw.get("clipExtent")
        clip_extent = None
        if clip_raw is not None:
            if not isinstance(clip_raw, (list, tuple)) or len(clip_raw) != 2:
                raise ConfigurationError(
                    f"Expected [[x0, y0], [x1, y1]] for '{prefix}.clipExtent'",
                    territory_code=territory_code,
                    field_name=f"{prefix}.clipExtent",
                )
            clip_extent = (
                cast(tuple[float, float], _optional_pair(clip_raw[0], f"{prefix}.clipExtent[0]", territory_code)),
                cast(tuple[float, float], _optional_pair(clip_raw[1], f"{prefix}.clipExtent[1]", territory_code)),
            )

        pixel_raw = raw.get("pixelClipExtent")
        pixel_clip_extent = None
        if pixel_raw is not None:
            if (
                not isinstance(pixel_raw, (list, tuple))
                or len(pixel_raw) != 4
                or not all(_is_number(v) for v in pixel_raw)
            ):
                raise ConfigurationError(
                    f"Expected [x1, y1, x2, y2] for '{prefix}.pixelClipExtent'",
                    territory_code=territory_code,
                    field_name=f"{prefix}.pixelClipExtent",
                )
            pixel_clip_extent = cast(tuple[float, float, float, float], tuple(float(v) for v in pixel_raw))

        return cls(
            translate_offset=offset if offset is not None else (0.0, 0.0),
            clip_extent=clip_extent,
            pixel_clip_extent=pixel_clip_extent,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "translateOffset": list(self.translate_offset),
            "clipExtent": [list(corner) for corner in self.clip_extent] if self.clip_extent else None,
            "pixelClipExtent": list(self.pixel_clip_extent) if self.pixel_clip_extent else None,
        }


def _parse_bounds(value: Any, territory_code: str) -> Bounds:
    field_name = f"territories[{territory_code}].bounds"
    if value is None:
        raise ConfigurationError(
            f"Territory {territory_code} missing bounds",
            territory_code=territory_code,
            field_name="bounds",
        )
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ConfigurationError(
            f"Expected [[lonMin, latMin], [lonMax, latMax]] for '{field_name}'",
            territory_code=territory_code,
            field_name="bounds",
        )
    low = _optional_pair(value[0], f"{field_name}[0]", territory_code)
    high = _optional_pair(value[1], f"{field_name}[1]", territory_code)
    return (cast(tuple[float, float], low), cast(tuple[float, float], high))


@dataclass(frozen=True, slots=True)
class TerritoryConfig:
    code: str
    name: str
    role: str
    projection: ProjectionSpec
    layout: TerritoryLayout
    bounds: Bounds

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], index: int = 0) -> TerritoryConfig:
        raw = _mapping(raw, f"territories[{index}]")
        code_raw = raw.get("code")
        if not isinstance(code_raw, str) or not code_raw.strip():
            raise ConfigurationError(
                f"Territory missing required field 'code': {dict(raw)!r}",
                field_name=f"territories[{index}].code",
            )
        code = code_raw.strip()
        projection = resolve_projection_spec(raw, code)
        bounds = _parse_bounds(raw.get("bounds"), code)
        return cls(
            code=code,
            name=_optional_str(raw.get("name")) or code,
            role=_optional_str(raw.get("role")) or "secondary",
            projection=projection,
            layout=TerritoryLayout.from_mapping(raw.get("layout"), code),
            bounds=bounds,
        )

    def contains(self, lon: float, lat: float) -> bool:
        """Inclusive bounding-box test used for routing."""
        (lon_min, lat_min), (lon_max, lat_max) = self.bounds
        return lon_min <= lon <= lon_max and lat_min <= lat <= lat_max

    def to_dict(self) -> dict[str, Any]:
        projection: dict[str, Any] = {
            "id": self.projection.id,
            "parameters": self.projection.parameters.to_dict(),
        }
        if self.projection.family:
            projection["family"] = self.projection.family
        return {
            "code": self.code,
            "name": self.name,
            "role": self.role,
            "projection": projection,
            "layout": self.layout.to_dict(),
            "bounds": [list(self.bounds[0]), list(self.bounds[1])],
        }


@dataclass(frozen=True, slots=True)
class AtlasMetadata:
    atlas_id: str
    atlas_name: str
    export_date: str | None = None
    created_with: str | None = None
    notes: str | None = None

    @classmethod
    def from_mapping(cls, raw: Any) -> AtlasMetadata:
        if not isinstance(raw, Mapping) or not raw.get("atlasId"):
            raise ConfigurationError("Configuration must have metadata with atlasId", field_name="metadata.atlasId")
        atlas_id = _str(raw.get("atlasId"), "metadata.atlasId")
        return cls(
            atlas_id=atlas_id,
            atlas_name=_optional_str(raw.get("atlasName")) or atlas_id,
            export_date=_optional_str(raw.get("exportDate")),
            created_with=_optional_str(raw.get("createdWith")),
            notes=_optional_str(raw.get("notes")),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"atlasId": self.atlas_id, "atlasName": self.atlas_name}
        for key, value in (
            ("exportDate", self.export_date),
            ("createdWith", self.created_with),
            ("notes", self.notes),
        ):
            if value is not None:
                out[key] = value
        return out


@dataclass(frozen=True, slots=True)
class CanvasDimensions:
    width: float
    height: float

    @classmethod
    def from_mapping(cls, raw: Any) -> CanvasDimensions:
        raw = _mapping(raw, "canvasDimensions")
        width = _optional_float(raw.get("width"), "canvasDimensions.width")
        height = _optional_float(raw.get("height"), "canvasDimensions.height")
        if width is None or height is None:
            raise ConfigurationError(
                "canvasDimensions requires both width and height", field_name="canvasDimensions"
            )
        return cls(width=width, height=height)


@dataclass(frozen=True, slots=True)
class CompositeConfig:
    version: str
    metadata: AtlasMetadata
    pattern: str
    territories: tuple[TerritoryConfig, ...]
    reference_scale: float | None = None
    canvas_dimensions: CanvasDimensions | None = None
    source_path: Path | None = field(default=None, compare=False)

    @classmethod
    def from_mapping(cls, raw: Any, source_path: Path | None = None) -> CompositeConfig:
        if not isinstance(raw, Mapping):
            raise ConfigurationError("Configuration must be an object")
        if not raw.get("version"):
            raise ConfigurationError("Configuration must have a version field", field_name="version")
        metadata = AtlasMetadata.from_mapping(raw.get("metadata"))

        territories_raw = raw.get("territories")
        if not isinstance(territories_raw, list):
            raise ConfigurationError("Configuration must have territories array", field_name="territories")
        if not territories_raw:
            raise ConfigurationError(
                "Configuration must have at least one territory", field_name="territories"
            )
        territories = tuple(
            TerritoryConfig.from_mapping(item, idx) for idx, item in enumerate(territories_raw)
        )

        canvas_raw = raw.get("canvasDimensions")
        return cls(
            version=str(raw.get("version")).strip(),
            metadata=metadata,
            pattern=_optional_str(raw.get("pattern")) or "",
            territories=territories,
            reference_scale=_optional_float(raw.get("referenceScale"), "referenceScale"),
            canvas_dimensions=None if canvas_raw is None else CanvasDimensions.from_mapping(canvas_raw),
            source_path=source_path,
        )

    @property
    def territory_codes(self) -> tuple[str, ...]:
        return tuple(territory.code for territory in self.territories)

    @property
    def effective_reference_scale(self) -> float:
        return self.reference_scale or DEFAULT_REFERENCE_SCALE

    def territory(self, code: str) -> TerritoryConfig:
        for territory in self.territories:
            if territory.code == code:
                return territory
        raise KeyError(code)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "version": self.version,
            "metadata": self.metadata.to_dict(),
            "pattern": self.pattern,
        }
        if self.reference_scale is not None:
            out["referenceScale"] = self.reference_scale
        if self.canvas_dimensions is not None:
            out["canvasDimensions"] = {
                "width": self.canvas_dimensions.width,
                "height": self.canvas_dimensions.height,
            }
        out["territories"] = [territory.to_dict() for territory in self.territories]
        return out


def parse_config(raw: Any, source_path: Path | None = None) -> CompositeConfig:
    """Validate a raw document and return its normalized model."""
    return CompositeConfig.from_mapping(raw, source_path=source_path)


def validate_config(raw: Any) -> bool:
    """Return True for a structurally valid document, raise ConfigurationError otherwise."""
    parse_config(raw)
    return True


def check_version(config: CompositeConfig) -> None:
    if config.version != SUPPORTED_VERSION:
        raise ConfigurationError(
            f"Unsupported configuration version: {config.version} (expected {SUPPORTED_VERSION})",
            field_name="version",
        )


def load_config_file(path: str | Path) -> CompositeConfig:
    """Load a YAML or JSON composite document from disk."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        try:
            raw = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ConfigParseError(f"Invalid configuration syntax in {cfg_path}: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"Top-level configuration in {cfg_path} must be a mapping")
    return parse_config(cast(Mapping[str, Any], raw), source_path=cfg_path)
