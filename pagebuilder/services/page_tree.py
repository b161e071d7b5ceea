"""
Page Tree Navigator

Manages the page hierarchy of a site: pages nested under parent pages,
siblings ordered by display_order. Reparent/reorder follow the same rules
as the component tree (no cycles, total sibling order) without the
layout-first restriction: any page may nest under any other page.

Mutations return the PageReorderUpdate rows the persistence layer needs
to store the new hierarchy.
"""

import logging
from collections import Counter
from typing import Iterable

from pagebuilder.config import Settings, get_settings
from pagebuilder.core.exceptions import (
    CycleDetectedError,
    DuplicateIdError,
    NotFoundError,
    OrderMismatchError,
)
from pagebuilder.models.contracts.pages import PageRecord, PageReorderUpdate, PageTreeNode
from pagebuilder.services.drag_drop import DropRect, compute_sibling_insert, resolve_drop_position

logger = logging.getLogger(__name__)


class PageTreeNavigator:
    """In-memory page hierarchy for one site."""

    def __init__(
        self,
        pages: Iterable[PageRecord] = (),
        expanded_ids: Iterable[int] = (),
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self._pages: dict[int, PageRecord] = {}
        self._children: dict[int | None, list[int]] = {None: []}
        self._expanded: set[int] = set(expanded_ids)
        self.load(pages)

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self, pages: Iterable[PageRecord]) -> None:
        """
        Build the hierarchy from flat page records.

        Pages whose parent is missing, or that sit in a parent cycle, are
        promoted to the root level.
        """
        records = {page.id: page.model_copy() for page in pages}

        for page_id, page in records.items():
            if page.parent_page_id is not None and page.parent_page_id not in records:
                logger.warning(f"Page {page_id} references missing parent {page.parent_page_id}")
                page.parent_page_id = None
        for page_id in records:
            if self._walks_back_to(records, page_id):
                logger.warning(f"Page {page_id} is part of a parent cycle; moving it to the root")
                records[page_id].parent_page_id = None

        self._pages = records
        self._children = {None: []}
        for page_id in records:
            self._children[page_id] = []
        for page in sorted(records.values(), key=lambda p: (p.display_order, p.id)):
            self._children[page.parent_page_id].append(page.id)
        for parent_id in list(self._children):
            self._renumber(parent_id)
        self._expanded &= set(records)

    @staticmethod
    def _walks_back_to(records: dict[int, PageRecord], page_id: int) -> bool:
        visited: set[int] = set()
        current = records[page_id].parent_page_id
        while current is not None:
            if current == page_id:
                return True
            if current in visited:
                return False
            visited.add(current)
            current = records[current].parent_page_id
        return False

    # =========================================================================
    # Read API
    # =========================================================================

    def __contains__(self, page_id: object) -> bool:
        return page_id in self._pages

    def __len__(self) -> int:
        return len(self._pages)

    def find(self, page_id: int) -> PageRecord | None:
        page = self._pages.get(page_id)
        return page.model_copy() if page else None

    def children_of(self, page_id: int | None = None) -> list[PageRecord]:
        return [self._pages[child_id].model_copy() for child_id in self._siblings(page_id)]

    def ancestors_of(self, page_id: int) -> list[int]:
        """Ancestor page ids from the immediate parent up to the root."""
        ancestors: list[int] = []
        current = self._require(page_id).parent_page_id
        while current is not None:
            ancestors.append(current)
            current = self._pages[current].parent_page_id
        return ancestors

    def flatten(self) -> list[int]:
        """All page ids in depth-first preorder."""
        result: list[int] = []

        def walk(parent_id: int | None) -> None:
            for child_id in self._children[parent_id]:
                result.append(child_id)
                walk(child_id)

        walk(None)
        return result

    def tree(self) -> list[PageTreeNode]:
        """Nested tree for display, with depth and expansion flags."""

        def build(parent_id: int | None, depth: int) -> list[PageTreeNode]:
            return [
                PageTreeNode(
                    page=self._pages[child_id].model_copy(),
                    children=build(child_id, depth + 1),
                    expanded=child_id in self._expanded,
                    depth=depth,
                )
                for child_id in self._children[parent_id]
            ]

        return build(None, 0)

    # =========================================================================
    # Mutations
    # =========================================================================

    def add_page(self, page: PageRecord, index: int | None = None) -> list[PageReorderUpdate]:
        """
        Insert a new page under its parent_page_id.

        Raises:
            DuplicateIdError: A page with the same id exists
            NotFoundError: parent_page_id is unknown
        """
        if page.id in self._pages:
            raise DuplicateIdError(f"Page {page.id} already exists")
        if page.parent_page_id is not None:
            self._require(page.parent_page_id)
        record = page.model_copy()
        self._pages[record.id] = record
        self._children[record.id] = []
        siblings = self._children[record.parent_page_id]
        siblings.insert(_clamp(index, len(siblings)), record.id)
        self._renumber(record.parent_page_id)
        logger.info(f"Added page {record.id} under parent={record.parent_page_id}")
        return self._updates(record.parent_page_id)

    def reorder_pages(self, ordered_ids: list[int]) -> list[PageReorderUpdate]:
        """
        Reorder one sibling group.

        Raises:
            NotFoundError: An id is unknown
            OrderMismatchError: The ids are not exactly one parent's children
        """
        if not ordered_ids:
            return []
        parent_id = self._require(ordered_ids[0]).parent_page_id
        current = self._children[parent_id]
        if Counter(ordered_ids) != Counter(current):
            raise OrderMismatchError(
                f"Page reorder must list exactly the children of parent={parent_id}"
            )
        self._children[parent_id] = list(ordered_ids)
        self._renumber(parent_id)
        logger.info(f"Reordered {len(ordered_ids)} pages under parent={parent_id}")
        return self._updates(parent_id)

    def reparent_page(
        self,
        page_id: int,
        new_parent_id: int | None,
        display_order: int | None = None,
    ) -> list[PageReorderUpdate]:
        """Move a page (with its subpages) under a new parent."""
        return self.move_page(page_id, new_parent_id, display_order)

    def move_page(
        self,
        page_id: int,
        new_parent_id: int | None,
        index: int | None = None,
    ) -> list[PageReorderUpdate]:
        """
        Atomically reparent and position a page.

        index refers to the target siblings without the moved page; None
        appends. Returns the updates for every affected sibling group ([] for
        a no-op).

        Raises:
            NotFoundError: page_id or new_parent_id is unknown
            CycleDetectedError: new_parent_id is the page or one of its descendants
        """
        page = self._require(page_id)
        if new_parent_id is not None:
            self._require(new_parent_id)
            if new_parent_id == page_id or page_id in self.ancestors_of(new_parent_id):
                raise CycleDetectedError(
                    f"Cannot move page {page_id} under itself or its own subpage {new_parent_id}"
                )

        old_parent_id = page.parent_page_id
        old_siblings = self._children[old_parent_id]
        old_index = old_siblings.index(page_id)
        target = [s for s in self._children[new_parent_id] if s != page_id]
        position = _clamp(index, len(target))
        if old_parent_id == new_parent_id and old_index == position:
            return []

        old_siblings.remove(page_id)
        page.parent_page_id = new_parent_id
        self._children[new_parent_id].insert(position, page_id)
        self._renumber(old_parent_id)
        self._renumber(new_parent_id)

        logger.info(
            f"Moved page {page_id} from parent={old_parent_id} to parent={new_parent_id} "
            f"order={position}"
        )
        updates = self._updates(new_parent_id)
        if old_parent_id != new_parent_id:
            updates = self._updates(old_parent_id) + updates
        return updates

    def drop_page(
        self,
        dragged_id: int,
        target_id: int | None,
        pointer_y: float,
        rect: DropRect | None,
    ) -> list[PageReorderUpdate] | None:
        """
        Apply a drag gesture that ended over target_id.

        Every page accepts subpages, so the middle band always means
        "inside". Returns None when the drop is cancelled (no target, the
        dragged page itself, or one of its subpages).
        """
        self._require(dragged_id)
        if (
            target_id is None
            or rect is None
            or target_id not in self._pages
            or target_id == dragged_id
            or dragged_id in self.ancestors_of(target_id)
        ):
            return None

        position = resolve_drop_position(
            pointer_y,
            rect,
            True,
            before_ratio=self.settings.drop_before_ratio,
            after_ratio=self.settings.drop_after_ratio,
        )
        if position == "inside":
            return self.move_page(dragged_id, target_id)

        parent_id = self._pages[target_id].parent_page_id
        index, _ = compute_sibling_insert(self._children[parent_id], dragged_id, target_id, position)
        return self.move_page(dragged_id, parent_id, index)

    def remove_page(self, page_id: int) -> list[int]:
        """Remove a page and all its subpages. Returns the removed ids."""
        page = self._require(page_id)
        doomed: list[int] = []
        stack = [page_id]
        while stack:
            current = stack.pop()
            doomed.append(current)
            stack.extend(self._children[current])

        self._children[page.parent_page_id].remove(page_id)
        for doomed_id in doomed:
            del self._pages[doomed_id]
            del self._children[doomed_id]
            self._expanded.discard(doomed_id)
        self._renumber(page.parent_page_id)
        logger.info(f"Removed page {page_id} and {len(doomed) - 1} subpage(s)")
        return doomed

    # =========================================================================
    # Expansion State
    # =========================================================================

    def is_expanded(self, page_id: int) -> bool:
        return page_id in self._expanded

    def set_expanded(self, page_id: int, expanded: bool) -> None:
        self._require(page_id)
        if expanded:
            self._expanded.add(page_id)
        else:
            self._expanded.discard(page_id)

    def toggle_expanded(self, page_id: int) -> bool:
        self.set_expanded(page_id, not self.is_expanded(page_id))
        return self.is_expanded(page_id)

    def expand_all(self) -> None:
        self._expanded = set(self._pages)

    def collapse_all(self) -> None:
        self._expanded = set()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require(self, page_id: int) -> PageRecord:
        page = self._pages.get(page_id)
        if page is None:
            raise NotFoundError(f"Page not found: {page_id}", entity_id=page_id)
        return page

    def _siblings(self, parent_id: int | None) -> list[int]:
        if parent_id is not None:
            self._require(parent_id)
        return self._children[parent_id]

    def _renumber(self, parent_id: int | None) -> None:
        for order, child_id in enumerate(self._children[parent_id]):
            self._pages[child_id].display_order = order

    def _updates(self, parent_id: int | None) -> list[PageReorderUpdate]:
        return [
            PageReorderUpdate(
                page_id=child_id,
                parent_page_id=parent_id,
                display_order=self._pages[child_id].display_order,
            )
            for child_id in self._children[parent_id]
        ]


def _clamp(index: int | None, length: int) -> int:
    if index is None:
        return length
    return max(0, min(index, length))
