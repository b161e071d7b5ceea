"""
Pytest fixtures for the page builder core.

This module provides:
1. A component registry with a small palette of manifests
2. An instance factory for hand-built trees
3. A sample page tree with its mutation engine
"""

import pytest

from pagebuilder.config import Settings
from pagebuilder.models.contracts.builder import (
    ComponentInstance,
    ComponentManifest,
    SizeConstraints,
)
from pagebuilder.services.component_registry import InMemoryComponentRegistry
from pagebuilder.services.component_tree import ComponentTree
from pagebuilder.services.tree_mutations import TreeMutationEngine


# ==================== SETTINGS ====================


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults, independent of the caller's environment."""
    return Settings(
        _env_file=None,
        drop_before_ratio=0.25,
        drop_after_ratio=0.75,
        default_instance_width="200px",
        default_instance_height="100px",
        default_column_span=4,
        grid_columns=12,
        manifests_path=None,
    )


# ==================== REGISTRY ====================


@pytest.fixture
def manifests() -> list[ComponentManifest]:
    return [
        ComponentManifest(
            plugin_id="core", component_id="container", display_name="Container",
            category="layout", can_have_children=True,
            default_styles={"padding": "8px"},
        ),
        ComponentManifest(
            plugin_id="core", component_id="grid", display_name="Grid",
            category="Layout",
        ),
        ComponentManifest(
            plugin_id="core", component_id="button", display_name="Button",
            category="ui",
            default_props={"label": "Click me", "action": {"type": "none"}},
            size_constraints=SizeConstraints(default_width="120px", default_height="40px"),
        ),
        ComponentManifest(
            plugin_id="core", component_id="card", display_name="Card",
            category="UI", can_have_children=True,
        ),
        ComponentManifest(
            plugin_id="core", component_id="text-input", display_name="Text Input",
            category="form",
        ),
        ComponentManifest(
            plugin_id="core", component_id="chart", display_name="Chart",
            category="widget",
            size_constraints=SizeConstraints(default_width="100%", default_height="300px"),
        ),
    ]


@pytest.fixture
def registry(manifests) -> InMemoryComponentRegistry:
    return InMemoryComponentRegistry(manifests)


# ==================== INSTANCES ====================


def build_instance(
    instance_id: str,
    category: str = "ui",
    children: list[ComponentInstance] | None = None,
    can_have_children: bool = False,
    component_id: str | None = None,
    **fields,
) -> ComponentInstance:
    """Hand-build an instance; component_id defaults to the id prefix."""
    return ComponentInstance(
        instance_id=instance_id,
        plugin_id="core",
        component_id=component_id or instance_id.rsplit("-", 1)[0],
        category=category,
        can_have_children=can_have_children,
        children=children or [],
        **fields,
    )


@pytest.fixture
def make_instance():
    return build_instance


@pytest.fixture
def sample_components() -> list[ComponentInstance]:
    """
    layout-1
      button-1
      card-1
        input-1
      button-2
    layout-2
    """
    return [
        build_instance(
            "layout-1",
            "layout",
            children=[
                build_instance("button-1"),
                build_instance(
                    "card-1",
                    can_have_children=True,
                    children=[build_instance("input-1", "form")],
                ),
                build_instance("button-2"),
            ],
        ),
        build_instance("layout-2", "layout"),
    ]


@pytest.fixture
def tree(sample_components) -> ComponentTree:
    return ComponentTree.from_snapshot(sample_components)


@pytest.fixture
def engine(tree) -> TreeMutationEngine:
    return TreeMutationEngine(tree)
