"""Entry points turning configuration documents into composite projections."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from .builder import build_sub_projection
from .composite import CompositeProjection, SubProjection
from .config import CompositeConfig, check_version, parse_config
from .errors import ConfigParseError, ConfigurationError
from .registry import ProjectionRegistry

_LOGGER = logging.getLogger("atlasproj.loader")


def load_composite_projection(
    config: CompositeConfig | Mapping[str, Any],
    *,
    width: float | None = None,
    height: float | None = None,
    enable_clipping: bool = True,
    debug: bool = False,
    registry: ProjectionRegistry | None = None,
) -> CompositeProjection:
    """Build a composite projection from a document or a parsed config.

    ``width``/``height`` default to the document's ``canvasDimensions``.
    Raises ConfigurationError on any invalid territory; nothing partial is
    returned.
    """
    parsed = config if isinstance(config, CompositeConfig) else parse_config(config)
    check_version(parsed)
    canvas_width, canvas_height = _resolve_canvas(parsed, width, height)

    subs = [
        SubProjection(
            territory=territory,
            projection=build_sub_projection(
                territory,
                canvas_width,
                canvas_height,
                parsed.effective_reference_scale,
                registry=registry,
                enable_clipping=enable_clipping,
                debug=debug,
            ),
        )
        for territory in parsed.territories
    ]

    message = "Created %d sub-projections for %s: %s"
    args = (len(subs), parsed.metadata.atlas_id, ", ".join(parsed.territory_codes))
    if debug:
        _LOGGER.info("[projection-debug] " + message, *args)
    else:
        _LOGGER.debug(message, *args)
    return CompositeProjection(subs, width=canvas_width, height=canvas_height, debug=debug)


def load_from_json(json_text: str | bytes, **options: Any) -> CompositeProjection:
    """Parse, validate and build. Malformed JSON raises ConfigParseError."""
    try:
        raw = json.loads(json_text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigParseError(f"Invalid JSON: {exc}") from exc
    return load_composite_projection(parse_config(raw), **options)


def _resolve_canvas(
    config: CompositeConfig,
    width: float | None,
    height: float | None,
) -> tuple[float, float]:
    dims = config.canvas_dimensions
    if width is None and dims is not None:
        width = dims.width
    if height is None and dims is not None:
        height = dims.height
    if width is None or height is None:
        raise ConfigurationError(
            "Canvas width and height are required (pass them or set canvasDimensions)",
            field_name="canvasDimensions",
        )
    return (float(width), float(height))
