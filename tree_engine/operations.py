"""
Pure tree mutation operations.

Every operation deep-copies the input tree, edits the copy, validates it
(including id uniqueness) and returns it. Inputs are never modified, so
callers must replace their stored snapshot with the returned tree.

Operations that target a missing id return an unchanged (validated) copy.
"""

from copy import deepcopy
from typing import Dict, Any, Optional, Mapping
import logging

from .config_loader import get_config_value
from .exceptions import TreeValidationError, log_error_with_context
from .identity import assign_new_ids
from .lookup import (
    TreeData, clone_tree, collect_ids, find_node_and_parent, iter_nodes, remove_ids
)
from .schema import validate_tree

logger = logging.getLogger(__name__)


def _finalize(tree: TreeData, operation: str) -> TreeData:
    """Validate the edited copy, logging the failure context before re-raising."""
    try:
        return validate_tree(tree)
    except TreeValidationError as e:
        log_error_with_context(e, operation)
        raise


def _set_icon(node: Dict[str, Any], icon: str, is_user_icon: bool) -> None:
    node['icon'] = icon
    node['isUserIcon'] = is_user_icon


def add_sibling_node(tree: TreeData, target_id: str, name: Optional[str] = None,
                     is_leaf: bool = False) -> TreeData:
    """
    Insert a new node immediately after ``target_id`` at the same level.

    Args:
        tree: Current tree
        target_id: Id of the node the new sibling follows
        name: Name of the new node (defaults to tree.sibling_name from config)
        is_leaf: Create a leaf (no children key) instead of an empty branch

    Returns:
        New validated tree; an unchanged copy when ``target_id`` is absent
    """
    if name is None:
        name = get_config_value('tree', 'sibling_name', 'New Sibling')

    copy = clone_tree(tree)
    location = find_node_and_parent(copy, target_id)
    if not location.found:
        logger.debug(f"add_sibling_node: target '{target_id}' not found, tree unchanged")
        return _finalize(copy, 'add_sibling_node')

    new_node: Dict[str, Any] = {'id': '', 'name': name}
    if not is_leaf:
        new_node['children'] = []
    new_node = assign_new_ids(new_node, taken=collect_ids(copy))

    location.siblings(copy).insert(location.index + 1, new_node)
    logger.info(f"Added sibling '{new_node['id']}' after '{target_id}'")
    return _finalize(copy, 'add_sibling_node')


def add_child_node(tree: TreeData, parent_id: str, name: Optional[str] = None) -> TreeData:
    """
    Append a new leaf to the end of ``parent_id``'s children.

    A leaf parent becomes a branch.

    Args:
        tree: Current tree
        parent_id: Id of the parent node
        name: Name of the new node (defaults to tree.child_name from config)

    Returns:
        New validated tree; an unchanged copy when ``parent_id`` is absent
    """
    if name is None:
        name = get_config_value('tree', 'child_name', 'New Child')

    copy = clone_tree(tree)
    parent = find_node_and_parent(copy, parent_id).node
    if parent is None:
        logger.debug(f"add_child_node: parent '{parent_id}' not found, tree unchanged")
        return _finalize(copy, 'add_child_node')

    new_node = assign_new_ids({'id': '', 'name': name}, taken=collect_ids(copy))
    if parent.get('children') is None:
        parent['children'] = [new_node]
    else:
        parent['children'].append(new_node)

    logger.info(f"Added child '{new_node['id']}' under '{parent_id}'")
    return _finalize(copy, 'add_child_node')


def duplicate_node(tree: TreeData, node_id: str) -> TreeData:
    """
    Insert a re-identified deep copy of a subtree right after the original.

    Args:
        tree: Current tree
        node_id: Root of the subtree to duplicate

    Returns:
        New validated tree; an unchanged copy when ``node_id`` is absent
    """
    copy = clone_tree(tree)
    location = find_node_and_parent(copy, node_id)
    if not location.found:
        logger.debug(f"duplicate_node: node '{node_id}' not found, tree unchanged")
        return _finalize(copy, 'duplicate_node')

    duplicate = assign_new_ids(location.node, taken=collect_ids(copy))
    location.siblings(copy).insert(location.index + 1, duplicate)

    logger.info(f"Duplicated '{node_id}' as '{duplicate['id']}'")
    return _finalize(copy, 'duplicate_node')


def delete_node(tree: TreeData, node_id: str) -> TreeData:
    """
    Remove a node and its whole subtree.

    Args:
        tree: Current tree
        node_id: Id of the node to remove

    Returns:
        New validated tree
    """
    result = remove_ids(tree, {node_id})
    logger.info(f"Deleted node '{node_id}'")
    return _finalize(result, 'delete_node')


def update_node_name(tree: TreeData, node_id: str, new_name: str) -> TreeData:
    """
    Rename exactly one node.

    Raises:
        TreeValidationError: If the new name is empty or longer than 100 characters
    """
    copy = clone_tree(tree)
    node = find_node_and_parent(copy, node_id).node
    if node is not None:
        node['name'] = new_name
    else:
        logger.debug(f"update_node_name: node '{node_id}' not found, tree unchanged")
    return _finalize(copy, 'update_node_name')


def update_node_icon(tree: TreeData, node_id: str, icon: str,
                     is_user_icon: bool = False) -> TreeData:
    """Set icon metadata on exactly one node."""
    copy = clone_tree(tree)
    node = find_node_and_parent(copy, node_id).node
    if node is not None:
        _set_icon(node, icon, is_user_icon)
    else:
        logger.debug(f"update_node_icon: node '{node_id}' not found, tree unchanged")
    return _finalize(copy, 'update_node_icon')


def update_all_nodes_icons(tree: TreeData, icon: str, is_user_icon: bool = False) -> TreeData:
    """Set the same icon on every node in the forest."""
    copy = clone_tree(tree)
    for node, _, _ in iter_nodes(copy):
        _set_icon(node, icon, is_user_icon)
    return _finalize(copy, 'update_all_nodes_icons')


def update_all_parent_icons(tree: TreeData, icon: str, is_user_icon: bool = False) -> TreeData:
    """
    Set the icon on every branch node.

    A node counts as a branch when it has a children key, even an empty one.
    Leaves are left untouched.
    """
    copy = clone_tree(tree)

    def dfs(node: Dict[str, Any]) -> None:
        if node.get('children') is not None:
            _set_icon(node, icon, is_user_icon)
            for child in node['children']:
                dfs(child)

    for root in copy:
        dfs(root)
    return _finalize(copy, 'update_all_parent_icons')


def update_all_children_icons(tree: TreeData, icon: str, is_user_icon: bool = False) -> TreeData:
    """
    For every node with children, set the icon on all of its descendants.

    The node itself is not updated, so root-level nodes keep their icons.
    """
    copy = clone_tree(tree)

    def dfs(node: Dict[str, Any]) -> None:
        for child in node.get('children') or []:
            _set_icon(child, icon, is_user_icon)
            dfs(child)

    for root in copy:
        dfs(root)
    return _finalize(copy, 'update_all_children_icons')


def update_node_custom_props(tree: TreeData, node_id: str, props: Mapping[str, Any]) -> TreeData:
    """
    Merge arbitrary key/value pairs onto one node.

    Args:
        tree: Current tree
        node_id: Id of the node to update
        props: Properties to merge (they may also overwrite known keys)

    Returns:
        New validated tree with the updated node
    """
    copy = clone_tree(tree)
    node = find_node_and_parent(copy, node_id).node
    if node is not None:
        node.update(deepcopy(dict(props)))
        logger.debug(f"Merged props {sorted(props)} into node '{node_id}'")
    else:
        logger.debug(f"update_node_custom_props: node '{node_id}' not found, tree unchanged")
    return _finalize(copy, 'update_node_custom_props')


def insert_node_at(tree: TreeData, parent_id: Optional[str], index: int,
                   node: Dict[str, Any]) -> TreeData:
    """
    Insert an existing node at ``index`` under ``parent_id``.

    The node keeps its ids, so it must not collide with ids already in the
    tree (re-identify it with assign_new_ids first when in doubt).

    Args:
        tree: Current tree
        parent_id: Parent id, or None for the root level
        index: Position among the parent's children (list.insert semantics)
        node: Node to insert

    Returns:
        New validated tree; an unchanged copy when ``parent_id`` is absent

    Raises:
        DuplicateIdError: If the inserted subtree reuses an id from the tree
    """
    copy = clone_tree(tree)
    new_node = deepcopy(node)

    if parent_id is None:
        copy.insert(index, new_node)
        return _finalize(copy, 'insert_node_at')

    parent = find_node_and_parent(copy, parent_id).node
    if parent is None:
        logger.debug(f"insert_node_at: parent '{parent_id}' not found, tree unchanged")
        return _finalize(copy, 'insert_node_at')

    if parent.get('children') is None:
        parent['children'] = []
    parent['children'].insert(index, new_node)
    return _finalize(copy, 'insert_node_at')
