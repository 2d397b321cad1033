"""Tests for the bundled France layout, built with the pyproj families."""

from __future__ import annotations

import pytest

from atlasproj.errors import ConfigurationError
from atlasproj.loader import load_composite_projection
from atlasproj.presets import available_presets, load_preset, preset_path
from atlasproj.projections import register_builtin_projections

FRANCE_CODES = (
    "FR-MET",
    "FR-GP",
    "FR-MQ",
    "FR-GF",
    "FR-RE",
    "FR-YT",
    "FR-BL",
    "FR-MF",
    "FR-PM",
    "FR-WF",
    "FR-PF",
    "FR-PF-2",
    "FR-NC",
    "FR-TF",
)


@pytest.fixture
def france():
    register_builtin_projections()
    return load_composite_projection(load_preset("france"))


def _inside_frame(composite, code, pixel):
    sub = next(s for s in composite.sub_projections if s.code == code)
    (x0, y0), (x1, y1) = sub.projection.clip_extent()
    return x0 <= pixel[0] <= x1 and y0 <= pixel[1] <= y1


# ── Catalogue ─────────────────────────────────────────────────────────────

class TestCatalogue:
    def test_france_is_available(self):
        assert "france" in available_presets()

    def test_unknown_preset(self):
        with pytest.raises(KeyError, match="Available presets"):
            preset_path("atlantis")

    def test_france_document(self):
        config = load_preset("France")
        assert config.territory_codes == FRANCE_CODES
        assert config.reference_scale == 2700
        assert config.canvas_dimensions.width == 960
        assert config.territory("FR-MET").role == "primary"
        assert config.territory("FR-MET").projection.parameters.rotate == (-3.0, -46.2, 0.0)

    def test_needs_registered_families(self):
        with pytest.raises(ConfigurationError, match="Available projections: none"):
            load_composite_projection(load_preset("france"))


# ── Built composite ───────────────────────────────────────────────────────

class TestFranceComposite:
    def test_every_territory_is_built(self, france):
        assert france.territory_codes == FRANCE_CODES
        assert france.scale() == pytest.approx(2700)

    def test_paris_lands_in_mainland_frame(self, france):
        pixel = france((2.35, 48.85))
        assert pixel is not None
        assert _inside_frame(france, "FR-MET", pixel)

    @pytest.mark.parametrize(
        "code, lon, lat",
        [
            ("FR-GP", -61.5, 16.2),
            ("FR-MQ", -61.0, 14.6),
            ("FR-GF", -53.0, 4.0),
            ("FR-RE", 55.5, -21.1),
            ("FR-YT", 45.15, -12.8),
            ("FR-NC", 165.8, -21.0),
        ],
    )
    def test_overseas_points_land_in_their_frames(self, france, code, lon, lat):
        assert france.territory_at(lon, lat).code == code
        pixel = france((lon, lat))
        assert pixel is not None
        assert _inside_frame(france, code, pixel)

    def test_round_trip_through_inversion(self, france):
        for lon, lat in ((2.35, 48.85), (-61.5, 16.2), (55.5, -21.1)):
            assert france.invert(france((lon, lat))) == pytest.approx((lon, lat), abs=1e-6)

    def test_composition_borders_skip_empty_frames(self, france):
        borders = france.composition_borders()
        # FR-TF has a zero-area frame and FR-MET is primary.
        assert borders.count("M") == len(FRANCE_CODES) - 2
