"""Tests for the projection registry."""

from __future__ import annotations

import pytest

from atlasproj.registry import (
    DEFAULT_REGISTRY,
    ProjectionRegistry,
    clear_projections,
    get_registered_projections,
    is_projection_registered,
    register_projection,
    register_projections,
    unregister_projection,
)


class _Dummy:
    pass


# ── Registry instance ─────────────────────────────────────────────────────

class TestProjectionRegistry:
    def test_register_and_create_returns_fresh_instances(self):
        registry = ProjectionRegistry()
        registry.register("dummy", _Dummy)
        first = registry.create("dummy")
        second = registry.create("dummy")
        assert isinstance(first, _Dummy)
        assert first is not second

    def test_list_preserves_insertion_order(self):
        registry = ProjectionRegistry()
        registry.register_many({"b": _Dummy, "a": _Dummy, "c": _Dummy})
        assert registry.list() == ["b", "a", "c"]

    def test_reregister_replaces_factory(self):
        registry = ProjectionRegistry({"dummy": _Dummy})
        registry.register("dummy", dict)
        assert registry.create("dummy") == {}
        assert len(registry) == 1

    def test_unregister_reports_presence(self):
        registry = ProjectionRegistry({"dummy": _Dummy})
        assert registry.unregister("dummy") is True
        assert registry.unregister("dummy") is False
        assert not registry.has("dummy")
        assert "dummy" not in registry

    def test_get_unknown_returns_none(self):
        assert ProjectionRegistry().get("nope") is None

    def test_create_unknown_raises_key_error(self):
        with pytest.raises(KeyError):
            ProjectionRegistry().create("nope")

    def test_rejects_empty_id(self):
        with pytest.raises(ValueError):
            ProjectionRegistry().register("  ", _Dummy)

    def test_rejects_non_callable_factory(self):
        with pytest.raises(TypeError):
            ProjectionRegistry().register("dummy", object())

    def test_clear(self):
        registry = ProjectionRegistry({"a": _Dummy, "b": _Dummy})
        registry.clear()
        assert registry.list() == []


# ── Module-level helpers ──────────────────────────────────────────────────

class TestDefaultRegistryHelpers:
    def test_starts_empty(self):
        assert get_registered_projections() == []

    def test_register_projection_targets_default_registry(self):
        register_projection("dummy", _Dummy)
        assert DEFAULT_REGISTRY.has("dummy")
        assert is_projection_registered("dummy")

    def test_register_projections_and_clear(self):
        register_projections({"a": _Dummy, "b": _Dummy})
        assert get_registered_projections() == ["a", "b"]
        clear_projections()
        assert get_registered_projections() == []

    def test_unregister_projection(self):
        register_projection("dummy", _Dummy)
        assert unregister_projection("dummy") is True
        assert not is_projection_registered("dummy")
