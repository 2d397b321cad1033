"""Tests for the layout validation report."""

from __future__ import annotations

from atlasproj.config import parse_config
from atlasproj.presets import load_preset
from atlasproj.projections import register_builtin_projections
from atlasproj.validate import LayoutValidator, format_report_lines


class TestLayoutValidator:
    def test_example_layout_is_clean(self, stub_mercator, example_config):
        report = LayoutValidator(parse_config(example_config)).run()
        assert report.ok
        assert report.warnings == []
        lines = list(format_report_lines(report))
        assert lines[-1] == "[OK] Validation completed with no errors."

    def test_duplicate_codes_warn(self, stub_mercator, example_config):
        example_config["territories"][1]["code"] = "FR-MET"
        report = LayoutValidator(parse_config(example_config)).run()
        assert report.ok
        assert any("Duplicate territory codes: FR-MET" in w for w in report.warnings)

    def test_inverted_bounds_warn(self, stub_mercator, example_config):
        example_config["territories"][1]["bounds"] = [[-61, 16.5], [-62, 15.5]]
        report = LayoutValidator(parse_config(example_config)).run()
        assert any("min > max" in w and "FR-GP" in w for w in report.warnings)

    def test_unregistered_projection_is_an_error(self, example_config):
        report = LayoutValidator(parse_config(example_config)).run()
        assert not report.ok
        assert "Unregistered projection ids: mercator (available: none)" in report.errors[0]
        assert not any(line.startswith("[OK]") for line in format_report_lines(report))

    def test_off_canvas_frame_warns(self, stub_mercator, example_config):
        example_config["territories"][1]["layout"]["translateOffset"] = [-900, 0]
        report = LayoutValidator(parse_config(example_config)).run()
        assert any("off canvas: FR-GP" in w for w in report.warnings)

    def test_missing_canvas_is_reported(self, stub_mercator, example_config):
        del example_config["canvasDimensions"]
        report = LayoutValidator(parse_config(example_config)).run()
        assert any(e.startswith("Build failed") for e in report.errors)
        report = LayoutValidator(parse_config(example_config), width=800, height=400).run()
        assert report.ok

    def test_france_preset_flags_empty_frame(self):
        register_builtin_projections()
        report = LayoutValidator(load_preset("france")).run()
        assert report.ok
        assert any("empty clip extent" in w and "FR-TF" in w for w in report.warnings)
