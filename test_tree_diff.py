"""
Unit tests for tree diff utilities.
"""

import pytest

from tree_engine.tree_diff import (
    TreeChangeSummary, flatten_tree, diff_trees, has_changes, same_structure
)
from tree_engine.identity import generate_tree_with_ids
from tree_engine.operations import (
    add_child_node, delete_node, update_node_name, update_node_icon,
    update_node_custom_props, insert_node_at
)
from tree_engine.lookup import find_node_and_parent
from test_fixtures import TreeFixtures, sample_tree


class TestFlattenTree:
    """Test cases for flatten_tree."""

    def test_records_keyed_by_id(self, sample_tree):
        """Test that every node becomes one record without children."""
        flat = flatten_tree(sample_tree)

        assert len(flat) == 10
        assert flat['1-3'] == {'name': 'Citrus', 'parent_id': '1'}
        assert flat['1'] == {'name': 'Fruits', 'expanded': True, 'parent_id': None}
        assert flat['1-1']['icon'] == 'apple'


class TestDiffTrees:
    """Test cases for diff_trees."""

    def test_identical_trees(self, sample_tree):
        """Test that equal trees produce an empty summary."""
        summary = diff_trees(sample_tree, TreeFixtures.get_sample_tree())

        assert summary.is_empty
        assert summary == TreeChangeSummary()

    def test_added_node(self, sample_tree):
        """Test that a new child is reported as added."""
        new_tree = add_child_node(sample_tree, '3', 'Inbox')
        new_id = new_tree[2]['children'][0]['id']

        summary = diff_trees(sample_tree, new_tree)

        assert summary.added == [new_id]
        assert not summary.removed
        assert not summary.moved

    def test_removed_subtree(self, sample_tree):
        """Test that every id of a deleted subtree is reported."""
        summary = diff_trees(sample_tree, delete_node(sample_tree, '1-3'))

        assert summary.removed == ['1-3', '1-3-1', '1-3-2']
        assert not summary.added

    def test_renamed_node(self, sample_tree):
        """Test that a rename carries old and new names."""
        summary = diff_trees(sample_tree, update_node_name(sample_tree, '1-2', 'Plantain'))

        assert summary.renamed == {'1-2': ('Banana', 'Plantain')}
        assert not summary.changed

    def test_changed_fields(self, sample_tree):
        """Test that icon updates list the changed fields."""
        new_tree = update_node_icon(sample_tree, '1-1', 'pear', True)

        summary = diff_trees(sample_tree, new_tree)

        assert summary.changed == {'1-1': ['icon', 'isUserIcon']}

    def test_changed_custom_list_field(self, sample_tree):
        """Test changes inside a custom list property."""
        old_tree = update_node_custom_props(sample_tree, '4', {'tags': ['a']})
        new_tree = update_node_custom_props(old_tree, '4', {'tags': ['a', 'b']})

        summary = diff_trees(old_tree, new_tree)

        assert summary.changed == {'4': ['tags']}

    def test_moved_node(self, sample_tree):
        """Test that a node re-parented elsewhere is reported as moved."""
        carrot = find_node_and_parent(sample_tree, '2-1').node
        new_tree = insert_node_at(delete_node(sample_tree, '2-1'), '1', 0, carrot)

        summary = diff_trees(sample_tree, new_tree)

        assert summary.moved == ['2-1']
        assert not summary.added
        assert not summary.removed

    def test_root_moved_under_branch(self, sample_tree):
        """Test moving a root node below another node."""
        leaf = find_node_and_parent(sample_tree, '4').node
        new_tree = insert_node_at(delete_node(sample_tree, '4'), '3', 0, leaf)

        assert diff_trees(sample_tree, new_tree).moved == ['4']

    def test_to_dict(self, sample_tree):
        """Test the serialisable summary form."""
        summary = diff_trees(sample_tree, update_node_name(sample_tree, '4', 'Leaf'))

        assert summary.to_dict() == {
            'added': [],
            'removed': [],
            'renamed': {'4': ['Loose Leaf', 'Leaf']},
            'moved': [],
            'changed': {}
        }


class TestHasChanges:
    """Test cases for has_changes."""

    def test_no_changes(self, sample_tree):
        """Test equal trees."""
        assert has_changes(sample_tree, TreeFixtures.get_sample_tree()) is False

    def test_edit_detected(self, sample_tree):
        """Test that any edit is detected."""
        assert has_changes(sample_tree, update_node_name(sample_tree, '4', 'Leaf')) is True

    def test_reorder_detected(self, sample_tree):
        """Test that child order counts as a change."""
        reordered = list(reversed(sample_tree))

        assert has_changes(sample_tree, reordered) is True


class TestSameStructure:
    """Test cases for same_structure."""

    def test_ignores_ids(self):
        """Test two seedings of the same data."""
        source = TreeFixtures.get_idless_tree()

        assert same_structure(generate_tree_with_ids(source), generate_tree_with_ids(source))

    def test_detects_name_change(self, sample_tree):
        """Test that names still matter."""
        assert not same_structure(sample_tree, update_node_name(sample_tree, '1-1', 'Pear'))

    def test_detects_leaf_branch_difference(self):
        """Test that an empty branch differs from a leaf."""
        assert not same_structure([{'id': 'a', 'name': 'A'}], [{'id': 'b', 'name': 'A', 'children': []}])
