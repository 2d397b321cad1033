"""Composite cartographic projections for France and its overseas territories."""

from .composite import CompositeProjection, SubProjection
from .config import CompositeConfig, load_config_file, parse_config, validate_config
from .errors import AtlasProjError, ConfigParseError, ConfigurationError
from .loader import load_composite_projection, load_from_json
from .path import geo_path
from .presets import available_presets, load_preset
from .projections import register_builtin_projections
from .registry import (
    DEFAULT_REGISTRY,
    ProjectionRegistry,
    clear_projections,
    get_registered_projections,
    is_projection_registered,
    register_projection,
    register_projections,
    unregister_projection,
)
from .streams import stream_geojson

__all__ = [
    "AtlasProjError",
    "CompositeConfig",
    "CompositeProjection",
    "ConfigParseError",
    "ConfigurationError",
    "DEFAULT_REGISTRY",
    "ProjectionRegistry",
    "SubProjection",
    "available_presets",
    "clear_projections",
    "geo_path",
    "get_registered_projections",
    "is_projection_registered",
    "load_composite_projection",
    "load_config_file",
    "load_from_json",
    "load_preset",
    "parse_config",
    "register_builtin_projections",
    "register_projection",
    "register_projections",
    "stream_geojson",
    "unregister_projection",
    "validate_config",
]
