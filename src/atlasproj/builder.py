"""Builds one live projection per territory."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .config import DEFAULT_REFERENCE_SCALE, TerritoryConfig
from .errors import ConfigurationError
from .registry import ProjectionRegistry, resolve_registry

_LOGGER = logging.getLogger("atlasproj.builder")

_FALLBACK_CLIP_RATIO = 0.1


def _capability(instance: Any, name: str) -> Any | None:
    method = getattr(instance, name, None)
    return method if callable(method) else None


def build_sub_projection(
    territory: TerritoryConfig | Mapping[str, Any],
    width: float,
    height: float,
    reference_scale: float | None = None,
    *,
    registry: ProjectionRegistry | None = None,
    enable_clipping: bool = True,
    debug: bool = False,
) -> Any:
    """Instantiate and configure the projection of ``territory``.

    Parameters are applied in a fixed order: center/rotate/parallels, scale,
    clip angle/precision, translate, clip extent. Capabilities the instance
    lacks are skipped silently.
    """
    if not isinstance(territory, TerritoryConfig):
        territory = TerritoryConfig.from_mapping(territory)
    target = resolve_registry(registry)
    spec = territory.projection
    params = spec.parameters

    factory = target.get(spec.id)
    if factory is None:
        registered = target.list()
        available = ", ".join(registered) if registered else "none"
        raise ConfigurationError(
            f'Projection "{spec.id}" is not registered (territory {territory.code}). '
            f"Available projections: {available}. "
            f"Use register_projection('{spec.id}', factory) to register it.",
            territory_code=territory.code,
            field_name="projection.id",
            available_projections=registered,
        )

    projection = factory()
    try:
        _apply_geometry(projection, territory)
        _apply_scale(projection, territory, reference_scale)
        clip_angle = _capability(projection, "clip_angle")
        if params.clip_angle and clip_angle is not None:
            clip_angle(params.clip_angle)
        precision = _capability(projection, "precision")
        if params.precision is not None and precision is not None:
            precision(params.precision)
        anchor = _apply_translate(projection, territory, width, height)
        if enable_clipping:
            _apply_clip_extent(projection, territory, anchor, debug=debug)
    except ValueError as exc:
        if isinstance(exc, ConfigurationError):
            raise
        raise ConfigurationError(
            f"Territory {territory.code}: cannot apply projection parameters: {exc}",
            territory_code=territory.code,
            field_name="projection.parameters",
        ) from exc
    return projection


def _apply_geometry(projection: Any, territory: TerritoryConfig) -> None:
    params = territory.projection.parameters
    center = _capability(projection, "center")
    if params.center is not None and center is not None:
        center(params.center)
    rotate = _capability(projection, "rotate")
    if params.rotate is not None and rotate is not None:
        rotate(params.rotate)
    parallels = _capability(projection, "parallels")
    if params.parallels is not None and parallels is not None:
        parallels(params.parallels)


def _apply_scale(projection: Any, territory: TerritoryConfig, reference_scale: float | None) -> None:
    scale = _capability(projection, "scale")
    if scale is None:
        return
    params = territory.projection.parameters
    if params.scale:
        scale(params.scale)
    elif params.scale_multiplier:
        effective_reference = reference_scale or DEFAULT_REFERENCE_SCALE
        scale(effective_reference * params.scale_multiplier)


def _apply_translate(
    projection: Any,
    territory: TerritoryConfig,
    width: float,
    height: float,
) -> tuple[float, float]:
    """Place the projection; returns the layout anchor (canvas center + offset)."""
    offset_x, offset_y = territory.layout.translate_offset
    anchor = (width / 2.0 + offset_x, height / 2.0 + offset_y)
    translate = _capability(projection, "translate")
    if translate is None:
        return anchor
    translate(anchor)
    extra = territory.projection.parameters.translate
    if extra is not None:
        current_x, current_y = translate()
        translate((current_x + extra[0], current_y + extra[1]))
    return anchor


def _apply_clip_extent(
    projection: Any,
    territory: TerritoryConfig,
    anchor: tuple[float, float],
    *,
    debug: bool,
) -> None:
    clip_extent = _capability(projection, "clip_extent")
    if clip_extent is None:
        return
    layout = territory.layout
    if layout.clip_extent is not None:
        clip_extent(layout.clip_extent)
        return
    if layout.pixel_clip_extent is not None:
        x1, y1, x2, y2 = layout.pixel_clip_extent
        clip_extent(((anchor[0] + x1, anchor[1] + y1), (anchor[0] + x2, anchor[1] + y2)))
        return

    scale = _capability(projection, "scale")
    translate = _capability(projection, "translate")
    current_scale = (scale() if scale is not None else None) or 1.0
    center_x, center_y = translate() if translate is not None else (0.0, 0.0)
    padding = current_scale * _FALLBACK_CLIP_RATIO
    fallback = ((center_x - padding, center_y - padding), (center_x + padding, center_y + padding))
    clip_extent(fallback)
    if debug:
        _LOGGER.info("[projection-debug] Applied default clip extent for %s: %s", territory.code, fallback)
    else:
        _LOGGER.debug("Applied default clip extent for %s: %s", territory.code, fallback)
