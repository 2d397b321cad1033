"""Layout checks beyond structural validation.

The loader only rejects what it cannot build. This module reports the softer
problems of a layout (duplicate codes, inverted bounds, empty or off-canvas
frames) the same way for the CLI and for tests.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from .config import CompositeConfig
from .errors import ConfigurationError
from .loader import load_composite_projection
from .registry import ProjectionRegistry, resolve_registry


@dataclass(slots=True)
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


class LayoutValidator:
    """Checks one parsed configuration against a registry and a canvas."""

    def __init__(
        self,
        config: CompositeConfig,
        *,
        width: float | None = None,
        height: float | None = None,
        registry: ProjectionRegistry | None = None,
    ) -> None:
        self.config = config
        self.width = width
        self.height = height
        self.registry = resolve_registry(registry)

    def run(self) -> ValidationReport:
        report = ValidationReport()
        report.add_info(
            f"Atlas '{self.config.metadata.atlas_id}' v{self.config.version}: "
            f"{len(self.config.territories)} territories"
        )
        self._check_codes(report)
        self._check_bounds(report)
        self._check_projection_ids(report)
        self._check_build(report)
        return report

    def _check_codes(self, report: ValidationReport) -> None:
        counts = Counter(self.config.territory_codes)
        duplicates = sorted(code for code, count in counts.items() if count > 1)
        if duplicates:
            report.add_warning(f"Duplicate territory codes: {_format_code_list(duplicates)}")
        inferred = [t.code for t in self.config.territories if t.projection.inferred]
        if inferred:
            report.add_info(f"Projection ids inferred from family: {_format_code_list(inferred)}")

    def _check_bounds(self, report: ValidationReport) -> None:
        inverted: list[str] = []
        out_of_range: list[str] = []
        for territory in self.config.territories:
            (lon_min, lat_min), (lon_max, lat_max) = territory.bounds
            if lon_min > lon_max or lat_min > lat_max:
                inverted.append(territory.code)
            if not (-180.0 <= lon_min <= 180.0 and -180.0 <= lon_max <= 180.0) or not (
                -90.0 <= lat_min <= 90.0 and -90.0 <= lat_max <= 90.0
            ):
                out_of_range.append(territory.code)
        if inverted:
            report.add_warning(
                "Bounds with min > max never match a point (routing falls back to the first territory): "
                f"{_format_code_list(inverted)}"
            )
        if out_of_range:
            report.add_warning(f"Bounds outside lon/lat range: {_format_code_list(out_of_range)}")

    def _check_projection_ids(self, report: ValidationReport) -> None:
        missing = sorted(
            {t.projection.id for t in self.config.territories if not self.registry.has(t.projection.id)}
        )
        if missing:
            available = ", ".join(self.registry.list()) or "none"
            report.add_error(
                f"Unregistered projection ids: {_format_code_list(missing)} (available: {available})"
            )

    def _check_build(self, report: ValidationReport) -> None:
        if not report.ok:
            return
        try:
            composite = load_composite_projection(
                self.config,
                width=self.width,
                height=self.height,
                registry=self.registry,
            )
        except ConfigurationError as exc:
            report.add_error(f"Build failed: {exc}")
            return

        empty_frames: list[str] = []
        off_canvas: list[str] = []
        for sub in composite.sub_projections:
            clip_extent = getattr(sub.projection, "clip_extent", None)
            extent = clip_extent() if callable(clip_extent) else None
            if not extent:
                continue
            (x0, y0), (x1, y1) = extent
            if x1 <= x0 or y1 <= y0:
                empty_frames.append(sub.code)
            elif x1 < 0 or y1 < 0 or x0 > composite.width or y0 > composite.height:
                off_canvas.append(sub.code)
        if empty_frames:
            report.add_warning(
                f"Territories with an empty clip extent (never drawn): {_format_code_list(empty_frames)}"
            )
        if off_canvas:
            report.add_warning(f"Territories clipped entirely off canvas: {_format_code_list(off_canvas)}")
        report.add_info(
            f"Built composite on {composite.width:g}x{composite.height:g} canvas, "
            f"reference scale {composite.scale():g}"
        )


def _format_code_list(values: list[str], limit: int = 12) -> str:
    if len(values) <= limit:
        return ", ".join(values)
    shown = ", ".join(values[:limit])
    return f"{shown}, ... (+{len(values) - limit} more)"


def format_report_lines(report: ValidationReport) -> Iterable[str]:
    for info in report.infos:
        yield f"[INFO] {info}"
    for warning in report.warnings:
        yield f"[WARN] {warning}"
    for error in report.errors:
        yield f"[ERROR] {error}"
    if report.ok:
        yield "[OK] Validation completed with no errors."
