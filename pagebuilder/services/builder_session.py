"""
Builder Session

One editing session over one page. The session owns the component tree and
hands the same tree to the mutation engine, drag/drop resolver and clipboard,
so nothing reaches for ambient global state.

    session = BuilderSession(registry, page)
    layout = session.add_component("core", "container")
    session.add_component("core", "button", parent_id=layout.instance_id)
    page = session.snapshot()
"""

import copy
import logging

from pagebuilder.config import Settings, get_settings
from pagebuilder.core.exceptions import ManifestUnresolvedError
from pagebuilder.models.contracts.builder import (
    ComponentInstance,
    ComponentPosition,
    ComponentSize,
    GridConfig,
    PageDefinition,
    ViewMode,
)
from pagebuilder.services.clipboard import ClipboardEngine
from pagebuilder.services.component_registry import ComponentRegistryClient
from pagebuilder.services.component_tree import ComponentTree
from pagebuilder.services.drag_drop import DragDropResolver
from pagebuilder.services.tree_mutations import TreeChange, TreeListener, TreeMutationEngine

logger = logging.getLogger(__name__)


class BuilderSession:
    """Explicit session object owning one page's component tree."""

    def __init__(
        self,
        registry: ComponentRegistryClient,
        page: PageDefinition | None = None,
        settings: Settings | None = None,
    ):
        self.registry = registry
        self.settings = settings or get_settings()
        self.selected_id: str | None = None
        self.hovered_id: str | None = None
        self.view_mode: ViewMode = "edit"
        self._listeners: list[TreeListener] = []
        self.load(page or PageDefinition(grid=GridConfig(columns=self.settings.grid_columns)))

    # =========================================================================
    # Load / Save
    # =========================================================================

    def load(self, page: PageDefinition) -> None:
        """
        Start editing a page from a full snapshot.

        Raises:
            TreeError: If the snapshot breaks a tree invariant
        """
        tree = ComponentTree.from_snapshot(page.components)
        self.page = page.model_copy(update={"components": []}, deep=True)
        self.tree = tree
        self.engine = TreeMutationEngine(tree)
        self.engine.add_listener(self._on_tree_change)
        for listener in self._listeners:
            self.engine.add_listener(listener)
        self.drag = DragDropResolver(tree, self.engine, self.settings)
        self.clipboard = ClipboardEngine(tree, self.engine)
        self.selected_id = None
        self.hovered_id = None
        logger.info(f"Opened page '{page.page_name}' with {len(tree)} components")

    def snapshot(self) -> PageDefinition:
        """Current page definition including the whole component tree."""
        return self.page.model_copy(update={"components": self.tree.to_snapshot()}, deep=True)

    def on_change(self, listener: TreeListener) -> None:
        """Register a persistence/broadcast listener; it survives load()."""
        self._listeners.append(listener)
        self.engine.add_listener(listener)

    def _on_tree_change(self, change: TreeChange) -> None:
        if change.kind == "remove":
            self._forget_missing()

    # =========================================================================
    # Instance Creation
    # =========================================================================

    def create_instance(
        self,
        plugin_id: str,
        component_id: str,
        position: ComponentPosition | None = None,
    ) -> ComponentInstance:
        """
        Build a new (not yet inserted) instance from its manifest.

        Raises:
            ManifestUnresolvedError: Unknown plugin/component pair
        """
        manifest = self.registry.resolve_manifest(plugin_id, component_id)
        if manifest is None:
            logger.warning(f"Manifest not found for {plugin_id}/{component_id}")
            raise ManifestUnresolvedError(plugin_id, component_id)

        constraints = manifest.size_constraints
        width = constraints.default_width or self.settings.default_instance_width
        height = constraints.default_height or self.settings.default_instance_height
        if position is None:
            full_width = constraints.default_width == "100%"
            position = ComponentPosition(
                column_span=self.page.grid.columns if full_width else self.settings.default_column_span
            )

        return ComponentInstance(
            instance_id=self.tree.issue_id(component_id),
            plugin_id=plugin_id,
            component_id=component_id,
            category=manifest.category,
            can_have_children=manifest.can_have_children,
            position=position,
            size=ComponentSize(width=width, height=height),
            props=copy.deepcopy(manifest.default_props),
            styles=dict(manifest.default_styles),
        )

    def add_component(
        self,
        plugin_id: str,
        component_id: str,
        parent_id: str | None = None,
        index: int | None = None,
    ) -> ComponentInstance:
        """Create an instance from its manifest and insert it."""
        instance = self.create_instance(plugin_id, component_id)
        inserted = self.engine.insert(instance, parent_id, index)
        self.selected_id = inserted.instance_id
        return inserted

    def begin_palette_drag(self, plugin_id: str, component_id: str) -> ComponentInstance:
        """Start dragging a new component from the palette."""
        instance = self.create_instance(plugin_id, component_id)
        self.drag.begin_new(instance)
        return instance

    # =========================================================================
    # Editing Helpers
    # =========================================================================

    def select(self, instance_id: str | None) -> None:
        if instance_id is not None:
            self.tree.parent_of(instance_id)
        self.selected_id = instance_id

    def hover(self, instance_id: str | None) -> None:
        """Track the instance under the pointer (None when leaving the canvas)."""
        if instance_id is not None:
            self.tree.parent_of(instance_id)
        self.hovered_id = instance_id

    def set_view_mode(self, mode: ViewMode) -> None:
        self.view_mode = mode
        if mode == "preview":
            self.drag.cancel()

    def remove(self, instance_id: str) -> ComponentInstance:
        return self.engine.remove(instance_id)

    def copy(self, instance_ids: list[str] | None = None) -> None:
        self.clipboard.copy(self._selection(instance_ids))

    def cut(self, instance_ids: list[str] | None = None) -> None:
        self.clipboard.cut(self._selection(instance_ids))

    def paste(self, parent_id: str | None = None, index: int | None = None) -> list[ComponentInstance]:
        pasted = self.clipboard.paste(parent_id, index)
        if pasted:
            self.selected_id = pasted[-1].instance_id
        return pasted

    def duplicate(self, instance_id: str) -> ComponentInstance:
        clone = self.engine.duplicate(instance_id)
        self.selected_id = clone.instance_id
        return clone

    def _selection(self, instance_ids: list[str] | None) -> list[str]:
        if instance_ids is not None:
            return instance_ids
        return [self.selected_id] if self.selected_id else []

    def _forget_missing(self) -> None:
        if self.selected_id is not None and self.selected_id not in self.tree:
            self.selected_id = None
        if self.hovered_id is not None and self.hovered_id not in self.tree:
            self.hovered_id = None
