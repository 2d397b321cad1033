"""Name -> factory table for projection families."""

from __future__ import annotations

from typing import Any, Callable, Mapping

ProjectionFactory = Callable[[], Any]


class ProjectionRegistry:
    """Maps projection ids (``"mercator"``, ``"conic-conformal"``...) to factories.

    The registry knows nothing about specific families. Each factory call must
    return a fresh, independent projection instance.
    """

    def __init__(self, factories: Mapping[str, ProjectionFactory] | None = None) -> None:
        self._factories: dict[str, ProjectionFactory] = {}
        if factories:
            self.register_many(factories)

    def register(self, projection_id: str, factory: ProjectionFactory) -> None:
        if not isinstance(projection_id, str) or not projection_id.strip():
            raise ValueError("Projection id must be a non-empty string")
        if not callable(factory):
            raise TypeError(f"Factory for '{projection_id}' must be callable")
        self._factories[projection_id] = factory

    def register_many(self, factories: Mapping[str, ProjectionFactory]) -> None:
        for projection_id, factory in factories.items():
            self.register(projection_id, factory)

    def unregister(self, projection_id: str) -> bool:
        return self._factories.pop(projection_id, None) is not None

    def list(self) -> list[str]:
        return list(self._factories)

    def has(self, projection_id: str) -> bool:
        return projection_id in self._factories

    def clear(self) -> None:
        self._factories.clear()

    def get(self, projection_id: str) -> ProjectionFactory | None:
        return self._factories.get(projection_id)

    def create(self, projection_id: str) -> Any:
        factory = self._factories.get(projection_id)
        if factory is None:
            raise KeyError(projection_id)
        return factory()

    def __contains__(self, projection_id: object) -> bool:
        return projection_id in self._factories

    def __len__(self) -> int:
        return len(self._factories)


DEFAULT_REGISTRY = ProjectionRegistry()


def resolve_registry(registry: ProjectionRegistry | None) -> ProjectionRegistry:
    return DEFAULT_REGISTRY if registry is None else registry


def register_projection(projection_id: str, factory: ProjectionFactory) -> None:
    """Register ``factory`` under ``projection_id`` in the default registry."""
    DEFAULT_REGISTRY.register(projection_id, factory)


def register_projections(factories: Mapping[str, ProjectionFactory]) -> None:
    DEFAULT_REGISTRY.register_many(factories)


def unregister_projection(projection_id: str) -> bool:
    return DEFAULT_REGISTRY.unregister(projection_id)


def clear_projections() -> None:
    DEFAULT_REGISTRY.clear()


def get_registered_projections() -> list[str]:
    return DEFAULT_REGISTRY.list()


def is_projection_registered(projection_id: str) -> bool:
    return DEFAULT_REGISTRY.has(projection_id)
