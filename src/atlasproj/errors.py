"""Error taxonomy for composite projection loading."""

from __future__ import annotations

from typing import Sequence


class AtlasProjError(Exception):
    """Base class for every error raised by atlasproj."""


class ConfigurationError(AtlasProjError, ValueError):
    """Invalid composite configuration or unresolvable projection.

    Always fatal to a load: no partial composite is ever returned.
    """

    def __init__(
        self,
        message: str,
        *,
        territory_code: str | None = None,
        field_name: str | None = None,
        available_projections: Sequence[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.territory_code = territory_code
        self.field_name = field_name
        self.available_projections = (
            tuple(available_projections) if available_projections is not None else None
        )


class ConfigParseError(AtlasProjError, ValueError):
    """Configuration text is not valid JSON/YAML."""
