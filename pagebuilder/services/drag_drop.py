"""
Drag/Drop Resolver

Maps a pointer position sampled during a drag gesture to a drop intent
(before / after / inside the hovered target) and turns the final intent
into exactly one tree mutation.

Intent bands over the target's rectangle (ratios configurable):

    relative_y < 0.25 * height  -> before
    relative_y > 0.75 * height  -> after
    otherwise                   -> inside (downgraded to after when the
                                   target does not accept children)

The sibling arithmetic in compute_sibling_insert() is shared with the page
tree navigator.
"""

import logging
from dataclasses import dataclass
from typing import Hashable, Literal, Sequence, TypeVar

from pydantic import BaseModel, Field

from pagebuilder.config import Settings, get_settings
from pagebuilder.models.contracts.builder import ComponentInstance
from pagebuilder.services.component_tree import ComponentTree
from pagebuilder.services.tree_mutations import TreeMutationEngine

logger = logging.getLogger(__name__)


DropPosition = Literal["before", "after", "inside"]

IdT = TypeVar("IdT", bound=Hashable)


class DropRect(BaseModel):
    """Screen rectangle of a candidate drop target (only the vertical axis matters)."""

    top: float
    height: float = Field(ge=0)


def resolve_drop_position(
    pointer_y: float,
    rect: DropRect,
    accepts_children: bool,
    *,
    before_ratio: float = 0.25,
    after_ratio: float = 0.75,
) -> DropPosition:
    """Classify a pointer position over a target rectangle."""
    relative_y = pointer_y - rect.top
    if relative_y < rect.height * before_ratio:
        return "before"
    if relative_y > rect.height * after_ratio:
        return "after"
    return "inside" if accepts_children else "after"


def compute_sibling_insert(
    sibling_ids: Sequence[IdT],
    dragged_id: IdT,
    target_id: IdT,
    position: Literal["before", "after"],
) -> tuple[int, list[IdT]]:
    """
    Compute where the dragged item lands next to target_id.

    The dragged item is first taken out of sibling_ids (when it is already
    a sibling), so the returned index is valid for the list without it.

    Returns:
        (insert_index, full sibling order after the drop)
    """
    remaining = [s for s in sibling_ids if s != dragged_id]
    target_index = remaining.index(target_id)
    insert_index = target_index if position == "before" else target_index + 1
    new_order = list(remaining)
    new_order.insert(insert_index, dragged_id)
    return insert_index, new_order


@dataclass
class DragState:
    """Per-gesture state; replaced wholesale by every begin()."""

    dragged_id: str | None = None
    new_instance: ComponentInstance | None = None
    target_id: str | None = None
    position: DropPosition | None = None

    @property
    def active(self) -> bool:
        return self.dragged_id is not None or self.new_instance is not None


@dataclass(frozen=True)
class DropResult:
    """Outcome of a completed drop."""

    instance_id: str
    parent_id: str | None
    index: int
    position: DropPosition | None
    changed: bool


class DragDropResolver:
    """
    Gesture state machine over one tree.

    begin()/begin_new() -> hover()* -> drop() | cancel()

    hover() is read-only and cheap; drop() performs one mutation through the
    engine. Dropping without a valid target is a cancellation, not an error.
    """

    def __init__(
        self,
        tree: ComponentTree,
        engine: TreeMutationEngine,
        settings: Settings | None = None,
    ):
        self.tree = tree
        self.engine = engine
        self.settings = settings or get_settings()
        self.state = DragState()

    @property
    def is_active(self) -> bool:
        return self.state.active

    def begin(self, dragged_id: str) -> None:
        """Start dragging an existing instance."""
        self.state = DragState(dragged_id=dragged_id)
        logger.debug(f"Drag started for '{dragged_id}'")

    def begin_new(self, instance: ComponentInstance) -> None:
        """Start dragging a new instance from the palette."""
        self.state = DragState(new_instance=instance)
        logger.debug(f"Palette drag started for '{instance.component_id}'")

    def cancel(self) -> None:
        self.state = DragState()

    def hover(self, target_id: str | None, pointer_y: float, rect: DropRect | None) -> DropPosition | None:
        """
        Resolve the intent for the current pointer sample.

        Returns None (and clears the target) when nothing is being dragged or
        the target is unknown, the dragged node itself, or inside it.
        """
        if not self.state.active or not self._is_valid_target(target_id) or rect is None:
            self.state.target_id = None
            self.state.position = None
            return None

        position = resolve_drop_position(
            pointer_y,
            rect,
            self.tree.accepts_children(target_id),
            before_ratio=self.settings.drop_before_ratio,
            after_ratio=self.settings.drop_after_ratio,
        )
        self.state.target_id = target_id
        self.state.position = position
        return position

    def drop(
        self,
        target_id: str | None = None,
        pointer_y: float | None = None,
        rect: DropRect | None = None,
    ) -> DropResult | None:
        """
        Finish the gesture.

        With a pointer sample the intent is resolved again from it; otherwise
        the last hover() intent is used. The resolver is reset in every case.

        Returns:
            DropResult, or None when the gesture was cancelled

        Raises:
            TreeError: The engine rejected the resulting mutation
        """
        try:
            if pointer_y is not None:
                self.hover(target_id, pointer_y, rect)
            state = self.state
            if not state.active or state.target_id is None or state.position is None:
                logger.debug("Drop without a valid target; treating as cancel")
                return None
            return self._apply(state, state.target_id, state.position)
        finally:
            self.state = DragState()

    def drop_on_root(self, index: int | None = None) -> DropResult | None:
        """Finish the gesture on empty canvas (root level)."""
        try:
            state = self.state
            if not state.active:
                return None
            if state.new_instance is not None:
                inserted = self.engine.insert(state.new_instance, None, index)
                return self._result(inserted.instance_id, None, None, True)
            changed = self.engine.move(state.dragged_id, None, index)
            return self._result(state.dragged_id, None, None, changed)
        finally:
            self.state = DragState()

    # =========================================================================
    # Internals
    # =========================================================================

    def _is_valid_target(self, target_id: str | None) -> bool:
        if target_id is None or target_id not in self.tree:
            return False
        dragged_id = self.state.dragged_id
        if dragged_id is None:
            return True
        if dragged_id not in self.tree:
            return False
        return target_id != dragged_id and not self.tree.is_descendant(target_id, dragged_id)

    def _apply(self, state: DragState, target_id: str, position: DropPosition) -> DropResult:
        if position == "inside":
            parent_id: str | None = target_id
            index = len(self.tree.child_ids(target_id))
        else:
            parent_id = self.tree.parent_of(target_id)
            dragged_key = state.dragged_id if state.dragged_id is not None else state.new_instance.instance_id
            index, _ = compute_sibling_insert(
                self.tree.child_ids(parent_id), dragged_key, target_id, position
            )

        if state.new_instance is not None:
            inserted = self.engine.insert(state.new_instance, parent_id, index)
            return self._result(inserted.instance_id, parent_id, position, True)

        changed = self.engine.move(state.dragged_id, parent_id, index)
        return self._result(state.dragged_id, parent_id, position, changed)

    def _result(
        self, instance_id: str, parent_id: str | None, position: DropPosition | None, changed: bool
    ) -> DropResult:
        return DropResult(
            instance_id=instance_id,
            parent_id=parent_id,
            index=self.tree.index_of(instance_id),
            position=position,
            changed=changed,
        )
