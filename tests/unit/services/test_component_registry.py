# tests/unit/services/test_component_registry.py
"""Unit tests for the in-memory component registry."""

import json

import pytest
import yaml
from pydantic import ValidationError

from pagebuilder.models.contracts.builder import ComponentManifest
from pagebuilder.services.component_registry import InMemoryComponentRegistry


class TestInMemoryComponentRegistry:

    def test_resolve(self, registry):
        manifest = registry.resolve_manifest("core", "button")

        assert manifest is not None
        assert manifest.display_name == "Button"
        assert registry.resolve_manifest("core", "nope") is None
        assert registry.resolve_manifest("other", "button") is None

    def test_register_replaces(self, registry, caplog):
        import logging

        caplog.set_level(logging.INFO)
        registry.register(ComponentManifest(
            plugin_id="core", component_id="button", display_name="New Button", category="ui",
        ))

        assert registry.resolve_manifest("core", "button").display_name == "New Button"
        assert "Replacing manifest" in caplog.text

    def test_unregister(self, registry):
        assert registry.unregister("core", "button") is True
        assert registry.unregister("core", "button") is False
        assert registry.resolve_manifest("core", "button") is None

    def test_list_by_category(self, registry):
        layouts = registry.list_manifests("layout")

        assert [m.component_id for m in layouts] == ["container", "grid"]
        assert len(registry.list_manifests()) == len(registry) == 6


class TestFromFile:
    """Loading manifests from disk."""

    def test_yaml_list(self, tmp_path):
        path = tmp_path / "components.yaml"
        path.write_text(yaml.safe_dump([
            {"plugin_id": "core", "component_id": "row", "category": "Layout"},
            {"plugin_id": "core", "component_id": "text", "category": "ui"},
        ]))

        registry = InMemoryComponentRegistry.from_file(path)

        assert len(registry) == 2
        assert registry.resolve_manifest("core", "row").category == "layout"

    def test_json_wrapped(self, tmp_path):
        path = tmp_path / "components.json"
        path.write_text(json.dumps({"components": [
            {"plugin_id": "charts", "component_id": "bar", "category": "widget",
             "size_constraints": {"default_width": "100%"}},
        ]}))

        registry = InMemoryComponentRegistry.from_file(str(path))

        manifest = registry.resolve_manifest("charts", "bar")
        assert manifest.size_constraints.default_width == "100%"

    def test_not_a_list(self, tmp_path):
        path = tmp_path / "components.yml"
        path.write_text("name: nothing here\n")

        with pytest.raises(ValueError):
            InMemoryComponentRegistry.from_file(path)

    def test_bad_category(self, tmp_path):
        path = tmp_path / "components.json"
        path.write_text(json.dumps([{"plugin_id": "p", "component_id": "c", "category": "gadget"}]))

        with pytest.raises(ValidationError):
            InMemoryComponentRegistry.from_file(path)
