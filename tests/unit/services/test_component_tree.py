# tests/unit/services/test_component_tree.py
"""Unit tests for the arena-backed ComponentTree."""

import pytest

from pagebuilder.core.exceptions import DuplicateIdError, LayoutRequiredError, NotFoundError
from pagebuilder.services.component_tree import ComponentTree


class TestSnapshots:
    """Loading and serializing whole trees."""

    def test_from_snapshot_links_parents(self, tree):
        assert len(tree) == 6
        assert tree.root_ids() == ["layout-1", "layout-2"]
        assert tree.child_ids("layout-1") == ["button-1", "card-1", "button-2"]
        assert tree.parent_of("input-1") == "card-1"
        assert tree.parent_of("layout-1") is None

    def test_parent_id_comes_from_nesting(self, make_instance):
        """A stale parent_id in the payload is replaced by the real parent."""
        tree = ComponentTree.from_snapshot([
            make_instance("layout-1", "layout", children=[
                make_instance("button-1", parent_id="somewhere-else"),
            ]),
        ])

        assert tree.parent_of("button-1") == "layout-1"

    def test_to_snapshot_round_trips_structure(self, tree, sample_components):
        snapshot = tree.to_snapshot()

        assert [c.instance_id for c in snapshot] == ["layout-1", "layout-2"]
        card = snapshot[0].children[1]
        assert card.instance_id == "card-1"
        assert [c.instance_id for c in card.children] == ["input-1"]
        assert card.children[0].parent_id == "card-1"

    def test_snapshot_rejects_root_widget(self, make_instance):
        with pytest.raises(LayoutRequiredError):
            ComponentTree.from_snapshot([make_instance("button-1")])

    def test_snapshot_rejects_duplicate_ids(self, make_instance):
        with pytest.raises(DuplicateIdError):
            ComponentTree.from_snapshot([
                make_instance("layout-1", "layout", children=[make_instance("layout-1", "layout")]),
            ])

    def test_snapshot_rejects_child_of_leaf(self, make_instance):
        with pytest.raises(LayoutRequiredError):
            ComponentTree.from_snapshot([
                make_instance("layout-1", "layout", children=[
                    make_instance("button-1", children=[make_instance("button-2")]),
                ]),
            ])

    def test_empty_snapshot(self):
        tree = ComponentTree.from_snapshot([])

        assert len(tree) == 0
        assert tree.to_snapshot() == []


class TestQueries:
    """Read-only lookups."""

    def test_find_by_id_returns_subtree_copy(self, tree):
        card = tree.find_by_id("card-1")

        assert card is not None
        assert [c.instance_id for c in card.children] == ["input-1"]

        card.props["mutated"] = True
        card.children.clear()
        assert "mutated" not in tree.get("card-1").props
        assert tree.child_ids("card-1") == ["input-1"]

    def test_find_by_id_missing(self, tree):
        assert tree.find_by_id("nope") is None

    def test_get_missing_raises(self, tree):
        with pytest.raises(NotFoundError) as exc_info:
            tree.get("nope")
        assert exc_info.value.entity_id == "nope"

    def test_children_of_root(self, tree):
        assert [c.instance_id for c in tree.children_of(None)] == ["layout-1", "layout-2"]

    def test_ancestors_and_descendants(self, tree):
        assert tree.ancestors_of("input-1") == ["card-1", "layout-1"]
        assert tree.descendant_ids("layout-1") == ["button-1", "card-1", "input-1", "button-2"]
        assert tree.is_descendant("input-1", "layout-1")
        assert not tree.is_descendant("layout-1", "input-1")
        assert not tree.is_descendant("button-1", "button-1")

    def test_index_of(self, tree):
        assert tree.index_of("button-2") == 2
        assert tree.index_of("layout-2") == 1

    def test_iter_preorder_whole_forest(self, tree):
        ids = [node.instance_id for node in tree.iter_preorder()]

        assert ids == ["layout-1", "button-1", "card-1", "input-1", "button-2", "layout-2"]

    def test_iter_preorder_from_node_yields_flat_copies(self, tree):
        nodes = list(tree.iter_preorder("card-1"))

        assert [n.instance_id for n in nodes] == ["card-1", "input-1"]
        assert all(n.children == [] for n in nodes)

    def test_accepts_children(self, tree):
        assert tree.accepts_children("layout-2")
        assert tree.accepts_children("card-1")
        assert not tree.accepts_children("button-1")

    def test_has_layout_ancestor_includes_parent_itself(self, tree):
        assert tree.has_layout_ancestor("layout-2")
        assert tree.has_layout_ancestor("card-1")
        assert not tree.has_layout_ancestor(None)


class TestIdentifiers:
    """Id checks and generation."""

    def test_check_new_ids_detects_existing(self, tree, make_instance):
        with pytest.raises(DuplicateIdError):
            tree.check_new_ids([make_instance("button-1")])

    def test_check_new_ids_detects_repeats_within_batch(self, tree, make_instance):
        with pytest.raises(DuplicateIdError):
            tree.check_new_ids([make_instance("new-1"), make_instance("new-1")])

    def test_issue_id_is_prefixed_and_unique(self, tree):
        ids = {tree.issue_id("button") for _ in range(50)}

        assert len(ids) == 50
        assert all(i.startswith("button-") for i in ids)
        assert not ids & set(tree.root_ids())

    def test_issue_id_never_reuses_a_loaded_id(self, tree, monkeypatch):
        """Generated ids skip ids the tree has already seen."""
        from pagebuilder.services import component_tree as module

        candidates = iter(["button-1", "button-1", "button-fresh"])
        monkeypatch.setattr(module, "generate_instance_id", lambda component_id: next(candidates))

        assert tree.issue_id("button") == "button-fresh"
