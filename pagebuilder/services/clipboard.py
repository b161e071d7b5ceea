"""
Clipboard Engine

Cut/copy/paste of component subtrees.

States:
    empty
    holding(copy, subtrees, origin_parent_id, origin_index)
    holding(cut,  subtrees, origin_parent_id, origin_index) + pending source ids

A cut never touches the source tree until a paste succeeds, so a cut that is
never pasted is simply forgotten. Every paste regenerates all instance ids
in the pasted subtrees; pasting one copy twice yields two independent
subtrees.
"""

import logging
import time
from dataclasses import dataclass, field

from pagebuilder.core.exceptions import CycleDetectedError, InvalidPlacementError
from pagebuilder.models.contracts.builder import (
    ClipboardMode,
    ClipboardPayload,
    ComponentInstance,
    PageDefinition,
)
from pagebuilder.services.component_tree import ComponentTree
from pagebuilder.services.tree_mutations import TreeMutationEngine, regenerate_ids

logger = logging.getLogger(__name__)


@dataclass
class ClipboardHolding:
    """Captured subtrees awaiting paste."""

    mode: ClipboardMode
    subtrees: list[ComponentInstance]
    origin_parent_id: str | None
    origin_index: int
    source_ids: list[str] = field(default_factory=list)
    timestamp: float = field(default_factory=time.time)


class ClipboardEngine:
    """Clipboard for one editing session's component tree."""

    def __init__(self, tree: ComponentTree, engine: TreeMutationEngine):
        self.tree = tree
        self.engine = engine
        self.holding: ClipboardHolding | None = None
        self._page: PageDefinition | None = None

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def is_empty(self) -> bool:
        return self.holding is None

    @property
    def mode(self) -> ClipboardMode | None:
        return self.holding.mode if self.holding else None

    def is_cut_source(self, instance_id: str) -> bool:
        """True when the instance is waiting to be moved by a pending cut."""
        return self.holding is not None and instance_id in self.holding.source_ids

    def info(self) -> dict | None:
        """Summary for UI menus: mode and number of captured subtrees."""
        if self.holding is None:
            return None
        return {"mode": self.holding.mode, "count": len(self.holding.subtrees)}

    def clear(self) -> None:
        self.holding = None

    # =========================================================================
    # Capture
    # =========================================================================

    def copy(self, root_ids: list[str]) -> None:
        """
        Snapshot the referenced subtrees. The source tree is untouched.

        Raises:
            NotFoundError: An id is not in the tree
        """
        self._capture("copy", root_ids)

    def cut(self, root_ids: list[str]) -> None:
        """
        Snapshot the referenced subtrees and mark them for removal on paste.

        Raises:
            NotFoundError: An id is not in the tree
        """
        self._capture("cut", root_ids)

    def _capture(self, mode: ClipboardMode, root_ids: list[str]) -> None:
        if not root_ids:
            return
        selected = self._outermost(root_ids)
        subtrees = [self.tree.get(instance_id) for instance_id in selected]
        origin = selected[0]
        self.holding = ClipboardHolding(
            mode=mode,
            subtrees=subtrees,
            origin_parent_id=self.tree.parent_of(origin),
            origin_index=self.tree.index_of(origin),
            source_ids=list(selected) if mode == "cut" else [],
        )
        logger.info(f"Clipboard {mode}: {len(subtrees)} subtree(s)")

    def _outermost(self, root_ids: list[str]) -> list[str]:
        # Drop duplicates and ids already covered by another selected subtree
        unique = list(dict.fromkeys(root_ids))
        chosen = set(unique)
        for instance_id in unique:
            self.tree.parent_of(instance_id)
        return [
            instance_id for instance_id in unique
            if not chosen.intersection(self.tree.ancestors_of(instance_id))
        ]

    # =========================================================================
    # Paste
    # =========================================================================

    def paste(
        self,
        target_parent_id: str | None = None,
        target_index: int | None = None,
        payload: ClipboardPayload | str | None = None,
    ) -> list[ComponentInstance]:
        """
        Insert fresh copies of the clipboard subtrees.

        Args:
            target_parent_id: Parent to paste under (None for root level)
            target_index: Sibling position; default appends
            payload: External clipboard payload to paste instead of the
                in-memory holding (always copy semantics)

        Returns:
            The inserted subtrees with their new ids; [] for an empty clipboard

        Raises:
            InvalidPlacementError, LayoutRequiredError: Placement is invalid
            CycleDetectedError: Pasting a cut under one of its own sources
        """
        if payload is not None:
            if isinstance(payload, str):
                payload = ClipboardPayload.model_validate_json(payload)
            return self._paste_subtrees(payload.subtrees, target_parent_id, target_index)

        holding = self.holding
        if holding is None or not holding.subtrees:
            return []

        if holding.mode == "copy":
            return self._paste_subtrees(holding.subtrees, target_parent_id, target_index)

        self._check_cut_target(holding, target_parent_id)
        sources = []
        for source_id in holding.source_ids:
            if source_id in self.tree:
                sources.append(source_id)
            else:
                logger.warning(f"Cut source '{source_id}' was already removed")
        pasted = self._paste_subtrees(holding.subtrees, target_parent_id, target_index, sources)
        self.holding = None
        return pasted

    def _paste_subtrees(
        self,
        subtrees: list[ComponentInstance],
        target_parent_id: str | None,
        target_index: int | None,
        remove_ids: list[str] | None = None,
    ) -> list[ComponentInstance]:
        if not subtrees:
            return []
        clones = [regenerate_ids(subtree, self.tree) for subtree in subtrees]
        pasted = self.engine.transplant(clones, target_parent_id, target_index, remove_ids or [])
        logger.info(f"Pasted {len(pasted)} subtree(s) under parent={target_parent_id}")
        return pasted

    def _check_cut_target(self, holding: ClipboardHolding, target_parent_id: str | None) -> None:
        if target_parent_id is None:
            return
        if target_parent_id not in self.tree:
            raise InvalidPlacementError(f"Target parent not found: {target_parent_id}")
        chain = {target_parent_id, *self.tree.ancestors_of(target_parent_id)}
        for source_id in holding.source_ids:
            if source_id in chain:
                raise CycleDetectedError(
                    f"Cannot paste cut component '{source_id}' inside itself"
                )

    # =========================================================================
    # Transport
    # =========================================================================

    def export_payload(self, source_page_id: int | None = None) -> str | None:
        """Serialize the holding state for an external clipboard."""
        if self.holding is None:
            return None
        payload = ClipboardPayload(
            mode=self.holding.mode,
            subtrees=self.holding.subtrees,
            source_page_id=source_page_id,
            timestamp=self.holding.timestamp,
        )
        return payload.model_dump_json()

    # =========================================================================
    # Whole Pages
    # =========================================================================

    def copy_page(self, page: PageDefinition) -> None:
        """Capture a complete page definition for paste_page()."""
        self._page = page.model_copy(deep=True)
        logger.info(f"Clipboard copy of page '{page.page_name}'")

    def paste_page(self) -> PageDefinition | None:
        """
        Return a clone of the copied page with fresh instance ids.

        The clone has no page_id; the persistence layer assigns one.
        """
        if self._page is None:
            return None
        scratch = ComponentTree()
        components = [regenerate_ids(component, scratch) for component in self._page.components]
        return self._page.model_copy(update={"page_id": None, "components": components}, deep=True)
