"""
Unit tests for the tree node schema.
"""

import pytest

from tree_engine.schema import (
    TreeNode, TreeSettings, validate_tree, validate_node, is_valid_tree,
    validate_settings, find_duplicate_ids, NAME_MAX_LENGTH
)
from tree_engine.exceptions import TreeValidationError, DuplicateIdError
from test_fixtures import TreeFixtures


class TestValidateTree:
    """Test cases for validate_tree."""

    def test_valid_tree_returns_equal_copy(self):
        """Test that a valid tree comes back equal but not identical."""
        tree = TreeFixtures.get_sample_tree()
        result = validate_tree(tree)

        assert result == tree
        assert result is not tree
        assert result[0] is not tree[0]
        assert result[0]['children'] is not tree[0]['children']

    def test_input_not_modified(self):
        """Test that validation never changes its input."""
        tree = [{'id': 7, 'name': 'Seven', 'children': None}]
        validate_tree(tree)

        assert tree == [{'id': 7, 'name': 'Seven', 'children': None}]

    def test_integer_id_normalised_to_string(self):
        """Test that positive integer ids are stored as strings."""
        result = validate_tree([{'id': 42, 'name': 'Answer'}])

        assert result[0]['id'] == '42'

    def test_zero_id_rejected(self):
        """Test that a non-positive integer id is rejected."""
        with pytest.raises(TreeValidationError) as exc_info:
            validate_tree([{'id': 0, 'name': 'Zero'}])

        assert any('ID is required' in e for e in exc_info.value.errors)

    def test_empty_id_rejected(self):
        """Test that an empty string id is rejected."""
        with pytest.raises(TreeValidationError) as exc_info:
            validate_tree([{'id': '', 'name': 'Blank'}])

        assert exc_info.value.errors == ['0 -> id: ID is required']

    def test_missing_name_rejected(self):
        """Test that a node without a name is rejected."""
        with pytest.raises(TreeValidationError) as exc_info:
            validate_tree([{'id': 'x'}])

        assert exc_info.value.errors[0].startswith('0 -> name:')

    def test_empty_name_rejected_with_path(self):
        """Test that the error path points at the nested node."""
        tree = [{'id': 'a', 'name': 'A', 'children': [
            {'id': 'a1', 'name': 'A1'},
            {'id': 'a2', 'name': ''}
        ]}]

        with pytest.raises(TreeValidationError) as exc_info:
            validate_tree(tree)

        assert exc_info.value.errors == ['0 -> children -> 1 -> name: Name is required']

    def test_name_length_limit(self):
        """Test the maximum name length boundary."""
        assert is_valid_tree([{'id': 'a', 'name': 'x' * NAME_MAX_LENGTH}])

        with pytest.raises(TreeValidationError) as exc_info:
            validate_tree([{'id': 'a', 'name': 'x' * (NAME_MAX_LENGTH + 1)}])

        assert 'Name too long' in exc_info.value.errors[0]

    def test_extra_fields_preserved(self):
        """Test that unknown keys survive validation untouched."""
        tree = [{'id': 'a', 'name': 'A', 'color': 'red', 'meta': {'rank': 3}}]
        result = validate_tree(tree)

        assert result[0]['color'] == 'red'
        assert result[0]['meta'] == {'rank': 3}
        assert result[0]['meta'] is not tree[0]['meta']

    def test_user_icon_only_read_from_camel_case(self):
        """Test that isUserIcon is typed while is_user_icon is an extra key."""
        tree = [{'id': 'a', 'name': 'A', 'isUserIcon': True, 'is_user_icon': 'x'}]
        result = validate_tree(tree)

        assert result[0]['isUserIcon'] is True
        assert result[0]['is_user_icon'] == 'x'

        with pytest.raises(TreeValidationError):
            validate_tree([{'id': 'a', 'name': 'A', 'isUserIcon': 'x'}])

    def test_null_children_read_as_leaf(self):
        """Test that an explicit null children value is dropped."""
        result = validate_tree([{'id': 'a', 'name': 'A', 'children': None}])

        assert 'children' not in result[0]

    def test_empty_children_kept(self):
        """Test that an empty children list keeps the node a branch."""
        result = validate_tree([{'id': 'a', 'name': 'A', 'children': []}])

        assert result[0]['children'] == []

    def test_wrong_metadata_types_rejected(self):
        """Test that expanded, icon and isUserIcon are type checked."""
        assert not is_valid_tree([{'id': 'a', 'name': 'A', 'expanded': 'yes'}])
        assert not is_valid_tree([{'id': 'a', 'name': 'A', 'icon': 5}])
        assert not is_valid_tree([{'id': 'a', 'name': 'A', 'isUserIcon': 'no'}])
        assert is_valid_tree([{'id': 'a', 'name': 'A', 'icon': 'star', 'isUserIcon': True}])

    def test_children_must_be_list(self):
        """Test that a non-list children value is rejected."""
        assert not is_valid_tree([{'id': 'a', 'name': 'A', 'children': 'none'}])

    def test_duplicate_ids_rejected(self):
        """Test that duplicated ids raise DuplicateIdError."""
        tree = [
            {'id': 'a', 'name': 'A', 'children': [{'id': 'b', 'name': 'B'}]},
            {'id': 'b', 'name': 'B again'}
        ]

        with pytest.raises(DuplicateIdError) as exc_info:
            validate_tree(tree)

        assert exc_info.value.duplicate_ids == ['b']
        assert isinstance(exc_info.value, TreeValidationError)

    def test_duplicate_check_can_be_disabled(self):
        """Test that unique_ids=False only checks the node shape."""
        tree = [{'id': 'a', 'name': 'A'}, {'id': 'a', 'name': 'A2'}]

        assert len(validate_tree(tree, unique_ids=False)) == 2

    def test_empty_tree_is_valid(self):
        """Test that an empty forest validates."""
        assert validate_tree([]) == []

    def test_non_list_rejected(self):
        """Test that a single node dict is not accepted as a tree."""
        assert not is_valid_tree({'id': 'a', 'name': 'A'})


class TestValidateNode:
    """Test cases for validate_node and the TreeNode model."""

    def test_validate_node_subtree(self):
        """Test validating a single node with children."""
        node = TreeFixtures.get_sample_tree()[0]
        result = validate_node(node)

        assert result == node
        assert result is not node

    def test_validate_node_invalid(self):
        """Test that validate_node raises TreeValidationError."""
        with pytest.raises(TreeValidationError) as exc_info:
            validate_node({'id': 'a', 'name': 'A', 'children': [{'id': 'b', 'name': ''}]})

        assert exc_info.value.errors == ['children -> 0 -> name: Name is required']

    def test_tree_node_alias(self):
        """Test that isUserIcon maps onto is_user_icon."""
        node = TreeNode.model_validate({'id': 'a', 'name': 'A', 'isUserIcon': True})

        assert node.is_user_icon is True
        assert node.model_dump(by_alias=True, exclude_unset=True)['isUserIcon'] is True


class TestFindDuplicateIds:
    """Test cases for find_duplicate_ids."""

    def test_no_duplicates(self):
        """Test a tree with unique ids."""
        assert find_duplicate_ids(TreeFixtures.get_sample_tree()) == []

    def test_nested_duplicates_sorted(self):
        """Test duplicates across levels are found and sorted."""
        tree = [
            {'id': 'z', 'name': 'Z', 'children': [{'id': 'y', 'name': 'Y'}, {'id': 'z', 'name': 'Z'}]},
            {'id': 'y', 'name': 'Y'}
        ]

        assert find_duplicate_ids(tree) == ['y', 'z']


class TestTreeSettings:
    """Test cases for TreeSettings and validate_settings."""

    def test_defaults(self):
        """Test the default policy flags."""
        settings = TreeSettings()

        assert settings.selectable is True
        assert settings.multiple is True
        assert settings.parent_selection is False
        assert settings.tree_lines is True
        assert settings.highlight_active_node is False
        assert settings.enable_search is True
        assert settings.edit_icon is False
        assert settings.title_editable is False
        assert settings.enable_actions is False

    def test_camel_case_keys(self):
        """Test that camelCase keys are accepted."""
        settings = validate_settings({'parentSelection': True, 'enableActions': True})

        assert settings.parent_selection is True
        assert settings.enable_actions is True

    def test_snake_case_keys(self):
        """Test that snake_case keys are accepted."""
        settings = validate_settings({'highlight_active_node': True, 'multiple': False})

        assert settings.highlight_active_node is True
        assert settings.multiple is False

    def test_unknown_keys_ignored(self):
        """Test that unknown settings are ignored."""
        settings = validate_settings({'treeHeight': 400})

        assert settings == TreeSettings()

    def test_non_boolean_rejected(self):
        """Test that settings must be real booleans."""
        with pytest.raises(TreeValidationError):
            validate_settings({'multiple': 'yes'})
