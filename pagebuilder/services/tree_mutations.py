"""
Tree Mutation Engine

Single choke point for structural and content edits of a ComponentTree:
- Insert new instances (palette drops, paste)
- Move / reparent / reorder instances
- Remove instances with their subtree
- Update props, styles, position, size and presentation flags

Every operation validates first and mutates second, so a rejected call
leaves the tree exactly as it was. Persistence is not performed here:
listeners registered with add_listener() are told about each committed
change and decide what to do with it.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Literal

from pagebuilder.core.exceptions import (
    CycleDetectedError,
    InvalidPlacementError,
    NotFoundError,
    OrderMismatchError,
)
from pagebuilder.models.contracts.builder import (
    ComponentInstance,
    ComponentPosition,
    ComponentSize,
    ReorderDirection,
)
from pagebuilder.services.component_tree import ComponentTree

logger = logging.getLogger(__name__)


ChangeKind = Literal["insert", "move", "reorder", "remove", "update"]


@dataclass(frozen=True)
class TreeChange:
    """A committed change, as reported to listeners."""

    kind: ChangeKind
    instance_id: str | None
    parent_id: str | None


TreeListener = Callable[[TreeChange], None]


class TreeMutationEngine:
    """Invariant-preserving mutations over one ComponentTree."""

    def __init__(self, tree: ComponentTree):
        self.tree = tree
        self._listeners: list[TreeListener] = []

    # =========================================================================
    # Listeners
    # =========================================================================

    def add_listener(self, listener: TreeListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: TreeListener) -> None:
        self._listeners.remove(listener)

    def _notify(self, kind: ChangeKind, instance_id: str | None, parent_id: str | None) -> None:
        change = TreeChange(kind=kind, instance_id=instance_id, parent_id=parent_id)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                # The in-memory change is already committed
                logger.exception(f"Tree listener failed for {kind} of '{instance_id}'")

    # =========================================================================
    # Structural Mutations
    # =========================================================================

    def insert(
        self,
        instance: ComponentInstance,
        parent_id: str | None = None,
        index: int | None = None,
    ) -> ComponentInstance:
        """
        Splice a new instance (with any children it carries) into the tree.

        Args:
            instance: Instance to insert; its parent_id is overwritten
            parent_id: Target parent (None for root level)
            index: Sibling position, clamped to [0, len]; default appends

        Returns:
            Copy of the inserted subtree as stored

        Raises:
            InvalidPlacementError: parent_id is set but not in the tree
            LayoutRequiredError: Placement breaks the layout-first rule
            DuplicateIdError: An id in the subtree is already in use
        """
        return self.insert_many([instance], parent_id, index)[0]

    def insert_many(
        self,
        instances: list[ComponentInstance],
        parent_id: str | None = None,
        index: int | None = None,
    ) -> list[ComponentInstance]:
        """Insert several subtrees consecutively; all or nothing."""
        return self.transplant(instances, parent_id, index, remove_ids=[])

    def transplant(
        self,
        instances: list[ComponentInstance],
        parent_id: str | None,
        index: int | None,
        remove_ids: list[str],
    ) -> list[ComponentInstance]:
        """
        Insert subtrees and remove others as a single change.

        Listeners are notified only after every insert and removal is
        done, so they never see both the removed and the inserted nodes.

        Raises:
            InvalidPlacementError, LayoutRequiredError, DuplicateIdError: As for insert()
            NotFoundError: An id in remove_ids is absent
        """
        if parent_id is not None and parent_id not in self.tree:
            raise InvalidPlacementError(f"Target parent not found: {parent_id}")
        self.tree.check_new_ids(instances)
        for instance in instances:
            self.tree.check_placement(instance, parent_id)
        removals = [(instance_id, self.tree.parent_of(instance_id)) for instance_id in remove_ids]

        position = self._clamp(index, len(self.tree.child_ids(parent_id)))
        for offset, instance in enumerate(instances):
            self.tree._attach(instance, parent_id, position + offset)
        for instance_id, _ in removals:
            # An earlier removal may already have taken this one with it
            if instance_id in self.tree:
                self.tree._delete(instance_id)

        for instance in instances:
            logger.info(
                f"Inserted '{instance.instance_id}' (type={instance.component_id}) "
                f"under parent={parent_id}"
            )
        for instance_id, _ in removals:
            logger.info(f"Deleted component '{instance_id}' and children")

        for instance in instances:
            self._notify("insert", instance.instance_id, parent_id)
        for instance_id, old_parent_id in removals:
            self._notify("remove", instance_id, old_parent_id)
        return [self.tree.get(instance.instance_id) for instance in instances]

    def move(self, instance_id: str, new_parent_id: str | None, new_index: int | None = None) -> bool:
        """
        Move an instance (with its subtree) to a new parent and/or position.

        new_index refers to the target sibling list after the instance has
        been taken out of its current place; None appends.

        Returns:
            False when the instance already sits at the requested place

        Raises:
            NotFoundError: instance_id or new_parent_id is absent
            CycleDetectedError: new_parent_id is the instance or a descendant
            LayoutRequiredError: Placement breaks the layout-first rule
        """
        self.check_move(instance_id, new_parent_id)

        old_parent_id = self.tree.parent_of(instance_id)
        old_index = self.tree.index_of(instance_id)
        target_siblings = [s for s in self.tree.child_ids(new_parent_id) if s != instance_id]
        position = self._clamp(new_index, len(target_siblings))

        if old_parent_id == new_parent_id and old_index == position:
            logger.debug(f"Move of '{instance_id}' is a no-op")
            return False

        self.tree._detach(instance_id)
        self.tree._reattach(instance_id, new_parent_id, position)

        logger.info(
            f"Moved component '{instance_id}' "
            f"from parent={old_parent_id} order={old_index} "
            f"to parent={new_parent_id} order={position}"
        )
        self._notify("move", instance_id, new_parent_id)
        return True

    def check_move(self, instance_id: str, new_parent_id: str | None) -> None:
        """Raise the error move() would raise, without mutating."""
        if instance_id not in self.tree:
            raise NotFoundError(f"Component instance not found: {instance_id}", entity_id=instance_id)
        if new_parent_id is not None:
            if new_parent_id not in self.tree:
                raise NotFoundError(f"Target parent not found: {new_parent_id}", entity_id=new_parent_id)
            if new_parent_id == instance_id or self.tree.is_descendant(new_parent_id, instance_id):
                raise CycleDetectedError(
                    f"Cannot move '{instance_id}' under itself or its own descendant '{new_parent_id}'"
                )
        shallow = self.tree._nodes[instance_id].data
        self.tree.check_placement(shallow, new_parent_id)

    def reorder(self, parent_id: str | None, ordered_ids: list[str]) -> None:
        """
        Replace the child order of parent_id (None for the root list).

        Raises:
            NotFoundError: parent_id is absent
            OrderMismatchError: ordered_ids is not a permutation of the current children
        """
        current = self.tree.child_ids(parent_id)
        if Counter(ordered_ids) != Counter(current):
            raise OrderMismatchError(
                f"Reorder of parent={parent_id} must list exactly its current children"
            )
        if ordered_ids == current:
            return
        self.tree._set_child_order(parent_id, list(ordered_ids))
        logger.info(f"Reordered children of parent={parent_id}")
        self._notify("reorder", None, parent_id)

    def remove(self, instance_id: str) -> ComponentInstance:
        """
        Delete an instance and all its children (cascade).

        Returns:
            The removed subtree

        Raises:
            NotFoundError: instance_id is absent
        """
        parent_id = self.tree.parent_of(instance_id)
        removed = self.tree._delete(instance_id)
        logger.info(f"Deleted component '{instance_id}' and children")
        self._notify("remove", instance_id, parent_id)
        return removed

    def move_to_index(self, instance_id: str, new_index: int) -> bool:
        """Move an instance within its current parent."""
        return self.move(instance_id, self.tree.parent_of(instance_id), max(0, new_index))

    def reorder_direction(self, instance_id: str, direction: ReorderDirection) -> bool:
        """Move an instance up, down, to the top or to the bottom of its siblings."""
        parent_id = self.tree.parent_of(instance_id)
        index = self.tree.index_of(instance_id)
        last = len(self.tree.child_ids(parent_id)) - 1
        targets = {
            "up": max(0, index - 1),
            "down": min(last, index + 1),
            "top": 0,
            "bottom": last,
        }
        if direction not in targets:
            raise ValueError(f"Unknown reorder direction: {direction}")
        return self.move(instance_id, parent_id, targets[direction])

    def duplicate(self, instance_id: str) -> ComponentInstance:
        """
        Insert a copy of an instance right after it.

        Every id in the copy is freshly generated and the copy is shifted
        one row_span down the grid.
        """
        source = self.tree.get(instance_id)
        clone = regenerate_ids(source, self.tree)
        clone.position = source.position.model_copy(
            update={"row": source.position.row + source.position.row_span}
        )
        parent_id = self.tree.parent_of(instance_id)
        return self.insert(clone, parent_id, self.tree.index_of(instance_id) + 1)

    # =========================================================================
    # Content Updates
    # =========================================================================

    def update_props(self, instance_id: str, props: dict[str, Any], replace: bool = False) -> None:
        """Merge props into the instance (or replace them wholesale)."""
        current = self.tree._require(instance_id).data.props
        merged = dict(props) if replace else {**current, **props}
        self._apply(instance_id, props=merged)

    def update_styles(self, instance_id: str, styles: dict[str, str], replace: bool = False) -> None:
        current = self.tree._require(instance_id).data.styles
        merged = dict(styles) if replace else {**current, **styles}
        self._apply(instance_id, styles=merged)

    def set_position(self, instance_id: str, position: ComponentPosition) -> None:
        self._apply(instance_id, position=position.model_copy())

    def resize(self, instance_id: str, size: ComponentSize) -> None:
        self._apply(instance_id, size=size.model_copy())

    def set_visibility(self, instance_id: str, is_visible: bool) -> None:
        self._apply(instance_id, is_visible=is_visible)

    def set_z_index(self, instance_id: str, z_index: int) -> None:
        self._apply(instance_id, z_index=z_index)

    def _apply(self, instance_id: str, **fields: Any) -> None:
        self.tree._require(instance_id)
        self.tree._update(instance_id, **fields)
        logger.info(f"Updated component '{instance_id}' ({', '.join(fields)})")
        self._notify("update", instance_id, self.tree.parent_of(instance_id))

    @staticmethod
    def _clamp(index: int | None, length: int) -> int:
        if index is None:
            return length
        return max(0, min(index, length))


def regenerate_ids(instance: ComponentInstance, tree: ComponentTree) -> ComponentInstance:
    """
    Deep copy a subtree giving every node a fresh instance id.

    Children's parent_id values are remapped to their parent's new id; the
    root keeps no parent until it is inserted.
    """
    def clone(node: ComponentInstance, parent_id: str | None) -> ComponentInstance:
        new_id = tree.issue_id(node.component_id)
        children = [clone(child, new_id) for child in node.children]
        return node.model_copy(
            update={"instance_id": new_id, "parent_id": parent_id, "children": children},
            deep=True,
        )

    return clone(instance, None)
