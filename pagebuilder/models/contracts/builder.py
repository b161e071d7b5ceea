"""
Page Builder Contracts

Core types for the component tree and page definitions.

This module is the single source of truth for:
- Component instances (ComponentInstance, ComponentPosition, ComponentSize)
- Page definitions (PageDefinition, GridConfig, GlobalStyles)
- Component manifests consumed from the plugin registry (ComponentManifest)
- Clipboard transport payloads (ClipboardPayload)
"""

from __future__ import annotations

import time
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


# -----------------------------------------------------------------------------
# Literal Types
# -----------------------------------------------------------------------------

ComponentCategory = Literal["layout", "ui", "form", "widget"]

ViewMode = Literal["edit", "preview"]

ClipboardMode = Literal["copy", "cut"]

ReorderDirection = Literal["up", "down", "top", "bottom"]


def _normalize_category(value: Any) -> Any:
    # Registry entries ship categories like "Layout" or "UI"
    if isinstance(value, str):
        return value.strip().lower()
    return value


# -----------------------------------------------------------------------------
# Component Instance
# -----------------------------------------------------------------------------


class ComponentPosition(BaseModel):
    """Grid coordinates of an instance."""

    row: int = Field(default=1, ge=1, description="Grid row (1-based)")
    column: int = Field(default=1, ge=1, description="Grid column (1-based)")
    row_span: int = Field(default=1, ge=1, description="Rows covered")
    column_span: int = Field(default=1, ge=1, description="Columns covered")


class ComponentSize(BaseModel):
    """Size tokens such as "200px" or "100%"."""

    width: str = Field(default="200px")
    height: str = Field(default="100px")


class ComponentInstance(BaseModel):
    """
    One placed widget or layout node in a page's component tree.

    ``category`` and ``can_have_children`` are cached from the manifest when
    the instance is created, since the manifest may change independently.
    """

    instance_id: str = Field(min_length=1, description="Unique id within the page")
    plugin_id: str = Field(description="Plugin that provides the component")
    component_id: str = Field(description="Component id inside the plugin")
    category: ComponentCategory = Field(description="Cached manifest category")
    can_have_children: bool = Field(
        default=False, description="Cached manifest capability flag"
    )
    parent_id: str | None = Field(default=None, description="Parent instance id (None for root)")
    position: ComponentPosition = Field(default_factory=ComponentPosition)
    size: ComponentSize = Field(default_factory=ComponentSize)
    props: dict[str, Any] = Field(default_factory=dict)
    styles: dict[str, str] = Field(default_factory=dict)
    children: list[ComponentInstance] = Field(default_factory=list)
    is_visible: bool = True
    z_index: int = 1

    @field_validator("category", mode="before")
    @classmethod
    def _lowercase_category(cls, value: Any) -> Any:
        return _normalize_category(value)

    @property
    def is_layout(self) -> bool:
        return self.category == "layout"

    @property
    def accepts_children(self) -> bool:
        """Layouts always accept children; other components only when the manifest allows it."""
        return self.is_layout or self.can_have_children


# -----------------------------------------------------------------------------
# Page Definition
# -----------------------------------------------------------------------------


class GridConfig(BaseModel):
    """Grid configuration for the builder canvas."""

    columns: int = Field(default=12, ge=1)
    rows: str = Field(default="auto", description='"auto" or a specific number')
    gap: str = Field(default="20px")
    min_row_height: str = Field(default="50px")


class GlobalStyles(BaseModel):
    """Page-wide CSS variables and custom CSS."""

    css_variables: dict[str, str] = Field(default_factory=dict)
    custom_css: str | None = None


class PageDefinition(BaseModel):
    """
    Complete page definition.

    This is the whole-tree snapshot exchanged with the persistence
    collaborator: root components carry their children nested.
    """

    version: str = "1.0"
    page_id: int | None = None
    page_name: str = "Untitled"
    grid: GridConfig = Field(default_factory=GridConfig)
    components: list[ComponentInstance] = Field(default_factory=list)
    global_styles: GlobalStyles | None = None


# -----------------------------------------------------------------------------
# Component Manifest (owned by the plugin registry)
# -----------------------------------------------------------------------------


class SizeConstraints(BaseModel):
    """Size limits and defaults declared by a component manifest."""

    resizable: bool = True
    default_width: str | None = None
    default_height: str | None = None
    min_width: str | None = None
    max_width: str | None = None
    min_height: str | None = None
    max_height: str | None = None
    width_locked: bool = False
    height_locked: bool = False


class ComponentManifest(BaseModel):
    """
    Metadata describing a component's capabilities and defaults.

    Read-only for the builder core: manifests are only consulted when an
    instance is created.
    """

    model_config = ConfigDict(frozen=True)

    plugin_id: str
    component_id: str
    display_name: str = ""
    category: ComponentCategory
    can_have_children: bool = False
    allowed_child_types: list[str] | None = None
    default_props: dict[str, Any] = Field(default_factory=dict)
    default_styles: dict[str, str] = Field(default_factory=dict)
    size_constraints: SizeConstraints = Field(default_factory=SizeConstraints)
    icon: str | None = None
    description: str | None = None
    plugin_version: str | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _lowercase_category(cls, value: Any) -> Any:
        return _normalize_category(value)

    @property
    def key(self) -> tuple[str, str]:
        return (self.plugin_id, self.component_id)


# -----------------------------------------------------------------------------
# Clipboard Transport
# -----------------------------------------------------------------------------


class ClipboardPayload(BaseModel):
    """
    Opaque structured payload written to an external clipboard.

    Pasting a payload applies the same id regeneration as pasting the
    in-memory clipboard.
    """

    version: str = "1.0"
    mode: ClipboardMode = "copy"
    subtrees: list[ComponentInstance] = Field(default_factory=list)
    source_page_id: int | None = None
    timestamp: float = Field(default_factory=time.time)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def generate_instance_id(component_id: str) -> str:
    """
    Generate a new instance id for a component.

    Returns:
        Id prefixed with the component id (e.g., "button-3f2a9c0d41b2")
    """
    return f"{component_id}-{uuid4().hex[:12]}"


def iter_subtree(instance: ComponentInstance):
    """Yield an instance and all its descendants in depth-first preorder."""
    yield instance
    for child in instance.children:
        yield from iter_subtree(child)
