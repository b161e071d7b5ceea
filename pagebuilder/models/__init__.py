"""
Page Builder Models

Pydantic contracts:
    from pagebuilder.models import ComponentInstance, PageDefinition
    from pagebuilder.models.contracts.builder import ComponentManifest  # Granular access
"""

from pagebuilder.models.contracts.builder import (
    ClipboardMode,
    ClipboardPayload,
    ComponentCategory,
    ComponentInstance,
    ComponentManifest,
    ComponentPosition,
    ComponentSize,
    GlobalStyles,
    GridConfig,
    PageDefinition,
    ReorderDirection,
    SizeConstraints,
    ViewMode,
)
from pagebuilder.models.contracts.pages import (
    PageRecord,
    PageReorderUpdate,
    PageTreeNode,
)

__all__ = [
    "ClipboardMode",
    "ClipboardPayload",
    "ComponentCategory",
    "ComponentInstance",
    "ComponentManifest",
    "ComponentPosition",
    "ComponentSize",
    "GlobalStyles",
    "GridConfig",
    "PageDefinition",
    "ReorderDirection",
    "SizeConstraints",
    "ViewMode",
    "PageRecord",
    "PageReorderUpdate",
    "PageTreeNode",
]
