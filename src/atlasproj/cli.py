"""CLI entrypoint for atlasproj."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .composite import CompositeProjection
from .config import CompositeConfig, load_config_file
from .errors import AtlasProjError
from .loader import load_composite_projection
from .path import geo_path
from .presets import available_presets, load_preset
from .projections import register_builtin_projections
from .util import read_json, setup_logging, write_json, write_text
from .validate import LayoutValidator, format_report_lines

LOGGER = logging.getLogger("atlasproj.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="atlasproj",
        description="Composite projections for France and its overseas territories.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        source = p.add_mutually_exclusive_group()
        source.add_argument("--config", default=None, help="Path to a YAML or JSON layout.")
        source.add_argument(
            "--preset",
            default=None,
            help=f"Bundled layout name ({', '.join(available_presets()) or 'none'}). Default: france.",
        )
        p.add_argument("--width", type=float, default=None, help="Canvas width override.")
        p.add_argument("--height", type=float, default=None, help="Canvas height override.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")
        p.add_argument(
            "--debug-projection",
            action="store_true",
            help="Log routing and clipping decisions of the composite.",
        )
        p.add_argument("--log-file", default=None, help="Also write logs to this file.")

    validate_p = subparsers.add_parser("validate", help="Validate a layout and report problems.")
    add_common(validate_p)

    project_p = subparsers.add_parser("project", help="Project one lon/lat point to pixels.")
    add_common(project_p)
    project_p.add_argument("lon", type=float)
    project_p.add_argument("lat", type=float)

    invert_p = subparsers.add_parser("invert", help="Invert one pixel position to lon/lat.")
    add_common(invert_p)
    invert_p.add_argument("x", type=float)
    invert_p.add_argument("y", type=float)

    render_p = subparsers.add_parser("render", help="Draw a GeoJSON file through the layout.")
    add_common(render_p)
    render_p.add_argument("--geojson", required=True, help="GeoJSON input file.")
    render_p.add_argument("--output", required=True, help="Output .svg or .png file.")
    render_p.add_argument(
        "--no-borders",
        action="store_true",
        help="Do not outline the frames of secondary territories.",
    )
    render_p.add_argument(
        "--no-clip",
        action="store_true",
        help="Build territories without clip extents.",
    )

    export_p = subparsers.add_parser("export", help="Write the resolved layout as JSON.")
    add_common(export_p)
    export_p.add_argument("--output", required=True, help="Output JSON file.")

    return parser


def _load_layout(args: argparse.Namespace) -> CompositeConfig:
    if args.config:
        return load_config_file(args.config)
    return load_preset(args.preset or "france")


def _build_composite(
    cfg: CompositeConfig,
    args: argparse.Namespace,
    *,
    enable_clipping: bool = True,
) -> CompositeProjection:
    return load_composite_projection(
        cfg,
        width=args.width,
        height=args.height,
        enable_clipping=enable_clipping,
        debug=bool(args.debug_projection),
    )


def _run_validate(cfg: CompositeConfig, args: argparse.Namespace) -> int:
    report = LayoutValidator(cfg, width=args.width, height=args.height).run()
    for line in format_report_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _run_project(cfg: CompositeConfig, args: argparse.Namespace) -> int:
    composite = _build_composite(cfg, args)
    territory = composite.territory_at(args.lon, args.lat)
    result = composite.project(args.lon, args.lat)
    if result is None:
        LOGGER.warning("(%g, %g) is not visible in any territory.", args.lon, args.lat)
        return 1
    label = territory.code if territory is not None else f"{composite.territory_codes[0]} (fallback)"
    print(f"{result[0]:.3f} {result[1]:.3f} {label}")
    return 0


def _run_invert(cfg: CompositeConfig, args: argparse.Namespace) -> int:
    composite = _build_composite(cfg, args)
    result = composite.invert((args.x, args.y))
    if result is None:
        LOGGER.warning("(%g, %g) does not fall inside any territory frame.", args.x, args.y)
        return 1
    print(f"{result[0]:.6f} {result[1]:.6f}")
    return 0


def _run_render(cfg: CompositeConfig, args: argparse.Namespace) -> int:
    composite = _build_composite(cfg, args, enable_clipping=not args.no_clip)
    geojson = read_json(Path(args.geojson))
    output = Path(args.output)
    suffix = output.suffix.lower()
    if suffix == ".png":
        from .preview import render_preview

        render_preview(composite, geojson, output, draw_frames=not args.no_borders)
    elif suffix == ".svg":
        write_text(output, _svg_document(composite, geojson, borders=not args.no_borders))
    else:
        LOGGER.error("Unsupported output format %r (expected .svg or .png).", suffix or output.name)
        return 1
    LOGGER.info("Rendered %s through %d territories to %s", args.geojson, len(composite), output)
    return 0


def _svg_document(composite: CompositeProjection, geojson: dict, *, borders: bool) -> str:
    width, height = composite.width, composite.height
    lines = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width:g}" height="{height:g}" '
        f'viewBox="0 0 {width:g} {height:g}">'
    ]
    path_data = geo_path(composite, geojson)
    if path_data:
        lines.append(f'  <path class="features" fill="#d9e3ec" stroke="#3b4a5a" stroke-width="0.5" d="{path_data}"/>')
    if borders:
        border_data = composite.composition_borders()
        if border_data:
            lines.append(f'  <path class="composition-borders" fill="none" stroke="#999" d="{border_data}"/>')
    lines.append("</svg>")
    return "\n".join(lines) + "\n"


def _run_export(cfg: CompositeConfig, args: argparse.Namespace) -> int:
    output = Path(args.output)
    write_json(output, cfg.to_dict())
    LOGGER.info("Layout %s written to %s", cfg.metadata.atlas_id, output)
    return 0


def _dispatch(args: argparse.Namespace) -> int:
    log_file = Path(args.log_file) if args.log_file else None
    setup_logging(log_file, verbose=args.verbose)
    register_builtin_projections()
    command = str(args.command)
    try:
        cfg = _load_layout(args)
        if command == "validate":
            return _run_validate(cfg, args)
        if command == "project":
            return _run_project(cfg, args)
        if command == "invert":
            return _run_invert(cfg, args)
        if command == "render":
            return _run_render(cfg, args)
        if command == "export":
            return _run_export(cfg, args)
    except (AtlasProjError, KeyError, OSError, ValueError) as exc:
        LOGGER.error("%s failed: %s", command, exc)
        return 1
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
