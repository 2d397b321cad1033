"""Bundled composite layouts, stored as YAML next to this module."""

from __future__ import annotations

from pathlib import Path

from ..config import CompositeConfig, load_config_file

PRESETS_DIR = Path(__file__).resolve().parent


def available_presets() -> list[str]:
    return sorted(path.stem for path in PRESETS_DIR.glob("*.yaml"))


def preset_path(name: str) -> Path:
    path = PRESETS_DIR / f"{name.strip().lower()}.yaml"
    if not path.exists():
        known = ", ".join(available_presets()) or "none"
        raise KeyError(f"Unknown preset '{name}'. Available presets: {known}")
    return path


def load_preset(name: str) -> CompositeConfig:
    """Parsed configuration of the bundled preset ``name``."""
    return load_config_file(preset_path(name))
