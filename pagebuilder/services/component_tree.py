"""
Component Tree Model

Authoritative in-memory representation of one page's component instances.

The tree is an arena of nodes keyed by instance_id. Parent and children are
stored as id references, so cycle checks are id membership tests and
snapshots serialize trivially:

    _nodes:    {"layout-1": _Node(data=<ComponentInstance>, child_ids=["button-1"]),
                "button-1": _Node(data=<ComponentInstance>, child_ids=[])}
    _root_ids: ["layout-1"]

Read methods return detached copies. Structural changes go through the
underscore primitives, which only TreeMutationEngine calls after it has
validated the operation.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from pagebuilder.core.exceptions import DuplicateIdError, LayoutRequiredError, NotFoundError
from pagebuilder.models.contracts.builder import (
    ComponentInstance,
    generate_instance_id,
    iter_subtree,
)

logger = logging.getLogger(__name__)


@dataclass
class _Node:
    # data.children is always empty; child order lives in child_ids
    data: ComponentInstance
    child_ids: list[str] = field(default_factory=list)


class ComponentTree:
    """Arena-backed component forest for one page."""

    def __init__(self) -> None:
        self._nodes: dict[str, _Node] = {}
        self._root_ids: list[str] = []
        # Every id the tree has seen, so generated ids are never reused
        self._issued_ids: set[str] = set()
        # Ids of removed nodes; these can never come back
        self._retired_ids: set[str] = set()

    # =========================================================================
    # Read API
    # =========================================================================

    def __contains__(self, instance_id: object) -> bool:
        return instance_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def find_by_id(self, instance_id: str) -> ComponentInstance | None:
        """Return a copy of the instance with its full subtree, or None."""
        if instance_id not in self._nodes:
            return None
        return self._materialize(instance_id)

    def get(self, instance_id: str) -> ComponentInstance:
        """Like find_by_id, but raises NotFoundError."""
        self._require(instance_id)
        return self._materialize(instance_id)

    def children_of(self, parent_id: str | None = None) -> list[ComponentInstance]:
        """Ordered children of parent_id (None means the root list)."""
        return [self._materialize(child_id) for child_id in self._sibling_list(parent_id)]

    def child_ids(self, parent_id: str | None = None) -> list[str]:
        return list(self._sibling_list(parent_id))

    def root_ids(self) -> list[str]:
        return list(self._root_ids)

    def parent_of(self, instance_id: str) -> str | None:
        return self._require(instance_id).data.parent_id

    def index_of(self, instance_id: str) -> int:
        """Position of an instance among its siblings."""
        parent_id = self.parent_of(instance_id)
        return self._sibling_list(parent_id).index(instance_id)

    def ancestors_of(self, instance_id: str) -> list[str]:
        """Ancestor ids ordered from the immediate parent up to the root."""
        ancestors: list[str] = []
        current = self._require(instance_id).data.parent_id
        while current is not None:
            ancestors.append(current)
            current = self._nodes[current].data.parent_id
        return ancestors

    def descendant_ids(self, instance_id: str) -> list[str]:
        """All descendants of an instance in preorder (excluding itself)."""
        self._require(instance_id)
        result: list[str] = []
        stack = list(reversed(self._nodes[instance_id].child_ids))
        while stack:
            current = stack.pop()
            result.append(current)
            stack.extend(reversed(self._nodes[current].child_ids))
        return result

    def is_descendant(self, instance_id: str, ancestor_id: str) -> bool:
        """True when ancestor_id is a strict ancestor of instance_id."""
        return ancestor_id in self.ancestors_of(instance_id)

    def iter_preorder(self, root_id: str | None = None) -> Iterator[ComponentInstance]:
        """
        Depth-first preorder traversal.

        Yields flat copies (children omitted) of every instance below
        root_id, or of the whole forest when root_id is None.
        """
        start = [root_id] if root_id is not None else list(self._root_ids)
        if root_id is not None:
            self._require(root_id)
        stack = list(reversed(start))
        while stack:
            current = stack.pop()
            node = self._nodes[current]
            yield node.data.model_copy(deep=True)
            stack.extend(reversed(node.child_ids))

    def accepts_children(self, instance_id: str) -> bool:
        data = self._require(instance_id).data
        return data.accepts_children

    def has_layout_ancestor(self, parent_id: str | None) -> bool:
        """True when parent_id itself or one of its ancestors is a layout."""
        current = parent_id
        while current is not None:
            data = self._require(current).data
            if data.is_layout:
                return True
            current = data.parent_id
        return False

    # =========================================================================
    # Invariant checks
    # =========================================================================

    def check_placement(self, instance: ComponentInstance, parent_id: str | None) -> None:
        """
        Validate the layout-first rule for an instance (and its subtree)
        placed under parent_id. parent_id must exist.

        Raises:
            LayoutRequiredError: If the placement breaks the rule
        """
        if parent_id is None:
            _validate_subtree(instance, None, parent_accepts=True, layout_above=False)
            return
        _validate_subtree(
            instance,
            parent_id,
            parent_accepts=self.accepts_children(parent_id),
            layout_above=self.has_layout_ancestor(parent_id),
        )

    def check_new_ids(self, instances: Iterable[ComponentInstance]) -> None:
        """
        Ensure no instance id in the given subtrees exists, repeats, or
        belonged to a removed instance.

        Raises:
            DuplicateIdError: On the first clash
        """
        seen: set[str] = set()
        for root in instances:
            for node in iter_subtree(root):
                if node.instance_id in self._nodes or node.instance_id in seen:
                    raise DuplicateIdError(f"Instance id '{node.instance_id}' is already in use")
                if node.instance_id in self._retired_ids:
                    raise DuplicateIdError(
                        f"Instance id '{node.instance_id}' belonged to a removed component"
                    )
                seen.add(node.instance_id)

    def issue_id(self, component_id: str) -> str:
        """Generate an instance id that this tree has never seen."""
        new_id = generate_instance_id(component_id)
        while new_id in self._issued_ids:
            new_id = generate_instance_id(component_id)
        self._issued_ids.add(new_id)
        return new_id

    # =========================================================================
    # Snapshots
    # =========================================================================

    @classmethod
    def from_snapshot(cls, components: list[ComponentInstance]) -> "ComponentTree":
        """
        Build a tree from a nested root list.

        parent_id values are taken from the nesting, not from the payload.

        Raises:
            DuplicateIdError, LayoutRequiredError: If the snapshot breaks an invariant
        """
        tree = cls()
        tree.check_new_ids(components)
        for component in components:
            tree.check_placement(component, None)
        for component in components:
            tree._attach(component, None, len(tree._root_ids))
        logger.debug(f"Loaded component tree with {len(tree)} instances")
        return tree

    def to_snapshot(self) -> list[ComponentInstance]:
        """Nested root list suitable for persistence."""
        return [self._materialize(root_id) for root_id in self._root_ids]

    # =========================================================================
    # Primitives (TreeMutationEngine only)
    # =========================================================================

    def _attach(self, instance: ComponentInstance, parent_id: str | None, index: int) -> None:
        """Add an instance subtree under parent_id at index."""
        self._add_nodes(instance, parent_id)
        self._sibling_list(parent_id).insert(index, instance.instance_id)

    def _add_nodes(self, instance: ComponentInstance, parent_id: str | None) -> None:
        data = instance.model_copy(update={"parent_id": parent_id, "children": []}, deep=True)
        node = _Node(data=data)
        self._nodes[instance.instance_id] = node
        self._issued_ids.add(instance.instance_id)
        for child in instance.children:
            self._add_nodes(child, instance.instance_id)
            node.child_ids.append(child.instance_id)

    def _detach(self, instance_id: str) -> None:
        """Take an instance out of its sibling list; its nodes stay in the arena."""
        parent_id = self._nodes[instance_id].data.parent_id
        self._sibling_list(parent_id).remove(instance_id)

    def _reattach(self, instance_id: str, parent_id: str | None, index: int) -> None:
        self._nodes[instance_id].data.parent_id = parent_id
        self._sibling_list(parent_id).insert(index, instance_id)

    def _delete(self, instance_id: str) -> ComponentInstance:
        """Remove an instance and its whole subtree. Returns the removed subtree."""
        removed = self._materialize(instance_id)
        doomed = [instance_id, *self.descendant_ids(instance_id)]
        self._detach(instance_id)
        for doomed_id in doomed:
            del self._nodes[doomed_id]
        self._retired_ids.update(doomed)
        return removed

    def _set_child_order(self, parent_id: str | None, ordered_ids: list[str]) -> None:
        siblings = self._sibling_list(parent_id)
        siblings[:] = ordered_ids

    def _update(self, instance_id: str, **fields) -> None:
        node = self._nodes[instance_id]
        node.data = node.data.model_copy(update=fields)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require(self, instance_id: str) -> _Node:
        node = self._nodes.get(instance_id)
        if node is None:
            raise NotFoundError(f"Component instance not found: {instance_id}", entity_id=instance_id)
        return node

    def _sibling_list(self, parent_id: str | None) -> list[str]:
        if parent_id is None:
            return self._root_ids
        return self._require(parent_id).child_ids

    def _materialize(self, instance_id: str) -> ComponentInstance:
        node = self._nodes[instance_id]
        children = [self._materialize(child_id) for child_id in node.child_ids]
        return node.data.model_copy(update={"children": children}, deep=True)


def _validate_subtree(
    instance: ComponentInstance,
    parent_id: str | None,
    *,
    parent_accepts: bool,
    layout_above: bool,
) -> None:
    if not parent_accepts:
        raise LayoutRequiredError(
            f"'{parent_id}' cannot contain children; "
            f"place '{instance.instance_id}' inside a layout or container"
        )
    if not instance.is_layout and not layout_above:
        where = "at the root" if parent_id is None else f"under '{parent_id}'"
        raise LayoutRequiredError(
            f"{instance.category} component '{instance.instance_id}' cannot be placed {where}; "
            f"it must be nested inside a layout"
        )
    for child in instance.children:
        _validate_subtree(
            child,
            instance.instance_id,
            parent_accepts=instance.accepts_children,
            layout_above=layout_above or instance.is_layout,
        )
