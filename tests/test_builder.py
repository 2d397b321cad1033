"""Tests for building one configured projection per territory."""

from __future__ import annotations

import logging

import pytest

from atlasproj.builder import build_sub_projection
from atlasproj.errors import ConfigurationError
from atlasproj.loader import load_composite_projection
from atlasproj.registry import ProjectionRegistry, register_projection, unregister_projection


def _territory(parameters=None, layout=None, projection_id="mercator"):
    raw = {
        "code": "FR-T",
        "projection": {"id": projection_id, "parameters": parameters or {}},
        "bounds": [[0, 0], [1, 1]],
    }
    if layout is not None:
        raw["layout"] = layout
    return raw


# ── Scale ─────────────────────────────────────────────────────────────────

class TestScale:
    def test_explicit_scale_wins(self, stub_mercator):
        projection = build_sub_projection(_territory({"scale": 1234, "scaleMultiplier": 3}), 960, 500, 1000)
        assert projection.scale() == 1234

    def test_multiplier_times_reference_scale(self, stub_mercator):
        projection = build_sub_projection(_territory({"scaleMultiplier": 2}), 960, 500, 1000)
        assert projection.scale() == 2000

    def test_multiplier_uses_default_reference_scale(self, stub_mercator):
        projection = build_sub_projection(_territory({"scaleMultiplier": 0.5}), 960, 500)
        assert projection.scale() == 1350

    def test_no_scale_keeps_factory_default(self, stub_mercator):
        projection = build_sub_projection(_territory(), 960, 500, 1000)
        assert projection.scale() == 100


# ── Translate ─────────────────────────────────────────────────────────────

class TestTranslate:
    def test_canvas_center_without_offset(self, stub_mercator):
        projection = build_sub_projection(_territory(), 960, 500)
        assert projection.translate() == (480, 250)

    def test_offset_from_canvas_center(self, stub_mercator):
        projection = build_sub_projection(_territory(layout={"translateOffset": [-300, -50]}), 960, 500)
        assert projection.translate() == (180, 200)

    def test_parameter_translate_is_added_after_offset(self, stub_mercator):
        projection = build_sub_projection(
            _territory({"translate": [5, 7]}, layout={"translateOffset": [10, 20]}),
            960,
            500,
        )
        assert projection.translate() == (495, 277)

    def test_center_is_applied(self, stub_mercator):
        projection = build_sub_projection(_territory({"center": [-61.5, 16.1]}), 960, 500)
        assert projection.center() == (-61.5, 16.1)


# ── Clip extent ───────────────────────────────────────────────────────────

class TestClipExtent:
    def test_explicit_clip_extent(self, stub_mercator):
        projection = build_sub_projection(
            _territory(layout={"clipExtent": [[10, 20], [30, 40]], "translateOffset": [100, 0]}),
            960,
            500,
        )
        assert projection.clip_extent() == ((10, 20), (30, 40))

    def test_pixel_clip_extent_relative_to_layout_anchor(self, stub_mercator):
        projection = build_sub_projection(
            _territory(layout={"translateOffset": [-300, -50], "pixelClipExtent": [-50, -40, 60, 30]}),
            960,
            500,
        )
        assert projection.clip_extent() == ((130, 160), (240, 230))

    def test_fallback_clip_is_ten_percent_of_scale(self, stub_mercator):
        projection = build_sub_projection(_territory({"scale": 200}, layout={"clipExtent": None}), 960, 500)
        assert projection.clip_extent() == ((460, 230), (500, 270))

    def test_fallback_logged_at_debug(self, stub_mercator, caplog):
        with caplog.at_level(logging.DEBUG, logger="atlasproj.builder"):
            build_sub_projection(_territory(), 960, 500)
        assert "default clip extent for FR-T" in caplog.text

    def test_fallback_promoted_in_debug_mode(self, stub_mercator, caplog):
        with caplog.at_level(logging.INFO, logger="atlasproj.builder"):
            build_sub_projection(_territory(), 960, 500, debug=True)
        assert "[projection-debug]" in caplog.text

    def test_clipping_disabled(self, stub_mercator):
        projection = build_sub_projection(
            _territory(layout={"clipExtent": [[10, 20], [30, 40]]}),
            960,
            500,
            enable_clipping=False,
        )
        assert projection.clip_extent() is None


# ── Capabilities and errors ───────────────────────────────────────────────

class _Minimal:
    """Projection with no optional capabilities at all."""

    def __call__(self, coordinates):
        return (0.0, 0.0)


class TestCapabilitiesAndErrors:
    def test_missing_capabilities_are_skipped(self):
        registry = ProjectionRegistry({"minimal": _Minimal})
        territory = _territory(
            {"center": [1, 2], "rotate": [1, 2, 3], "parallels": [3, 4], "scale": 10, "clipAngle": 90, "precision": 0.1},
            layout={"translateOffset": [1, 1], "clipExtent": [[0, 0], [1, 1]]},
            projection_id="minimal",
        )
        projection = build_sub_projection(territory, 960, 500, registry=registry)
        assert isinstance(projection, _Minimal)

    def test_unregistered_id_lists_available(self, stub_mercator, clean_registry):
        clean_registry.register("equirectangular", stub_mercator)
        with pytest.raises(ConfigurationError) as excinfo:
            build_sub_projection(_territory(projection_id="conic-conformal"), 960, 500)
        message = str(excinfo.value)
        assert 'Projection "conic-conformal" is not registered' in message
        assert "mercator, equirectangular" in message
        assert excinfo.value.available_projections == ("mercator", "equirectangular")
        assert excinfo.value.territory_code == "FR-T"

    def test_unregistered_id_with_empty_registry(self):
        with pytest.raises(ConfigurationError, match="Available projections: none"):
            build_sub_projection(_territory(), 960, 500)

    def test_unregister_then_reload_fails(self, stub_mercator, example_config):
        register_projection("equirectangular", _Minimal)
        assert load_composite_projection(example_config).territory_codes == ("FR-MET", "FR-GP")

        assert unregister_projection("mercator") is True
        with pytest.raises(ConfigurationError) as excinfo:
            load_composite_projection(example_config)

        error = excinfo.value
        assert error.available_projections == ("equirectangular",)
        assert "mercator" not in error.available_projections
        assert error.territory_code == "FR-MET"
        message = str(error)
        assert "Available projections: equirectangular." in message
        assert "mercator" not in message.split("Available projections:")[1]

    def test_explicit_registry_is_used(self, stub_mercator):
        registry = ProjectionRegistry({"minimal": _Minimal})
        with pytest.raises(ConfigurationError):
            build_sub_projection(_territory(), 960, 500, registry=registry)

    def test_parameter_errors_become_configuration_errors(self, clean_registry):
        class _Picky(_Minimal):
            def center(self, value=None):
                raise ValueError("center out of range")

        clean_registry.register("picky", _Picky)
        with pytest.raises(ConfigurationError, match="center out of range") as excinfo:
            build_sub_projection(_territory({"center": [0, 0]}, projection_id="picky"), 960, 500)
        assert excinfo.value.territory_code == "FR-T"
