"""
Page hierarchy contracts.

Pages of a site nest under parent pages; siblings are ordered by
``display_order``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class PageRecord(BaseModel):
    """A page as stored by the persistence collaborator."""

    id: int
    site_id: int | None = None
    page_name: str
    page_slug: str = ""
    title: str | None = None
    route_path: str | None = None
    parent_page_id: int | None = None
    display_order: int = Field(default=0, ge=0)
    is_published: bool = False


class PageTreeNode(BaseModel):
    """Page hierarchy node for tree display."""

    page: PageRecord
    children: list[PageTreeNode] = Field(default_factory=list)
    expanded: bool = False
    depth: int = 0


class PageReorderUpdate(BaseModel):
    """Single row of a batch page reorder, handed to persistence."""

    page_id: int
    parent_page_id: int | None
    display_order: int
