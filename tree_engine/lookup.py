"""
Lookup primitives shared by every other tree engine module.

Trees are ordered lists of root-level node dicts; children live nested inside
their parent under the 'children' key.
"""

from copy import deepcopy
from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Set, Iterator, Tuple, Iterable
import logging

logger = logging.getLogger(__name__)

TreeData = List[Dict[str, Any]]


@dataclass
class NodeLocation:
    """Result of find_node_and_parent: the node, its parent and its index among its siblings."""

    node: Optional[Dict[str, Any]]
    parent: Optional[Dict[str, Any]]
    index: int

    @property
    def found(self) -> bool:
        return self.node is not None

    def siblings(self, tree: TreeData) -> Optional[List[Dict[str, Any]]]:
        """Return the list that directly contains the node (the tree itself for roots)."""
        if self.node is None:
            return None
        if self.parent is None:
            return tree
        return self.parent['children']


NOT_FOUND = NodeLocation(None, None, -1)


def is_branch(node: Dict[str, Any]) -> bool:
    """A node is a branch when it carries a children list, even an empty one."""
    return node.get('children') is not None


def has_children(node: Dict[str, Any]) -> bool:
    return bool(node.get('children'))


def find_node_and_parent(tree: TreeData, node_id: str,
                         parent: Optional[Dict[str, Any]] = None) -> NodeLocation:
    """
    Find a node and its parent with a single depth-first traversal.

    Args:
        tree: Nodes to search (root list or a children list)
        node_id: Id to look for
        parent: Parent of ``tree`` when searching a children list

    Returns:
        NodeLocation; ``NodeLocation(None, None, -1)`` when the id is absent
    """
    for i, node in enumerate(tree):
        if node['id'] == node_id:
            return NodeLocation(node, parent, i)
        children = node.get('children')
        if children:
            found = find_node_and_parent(children, node_id, node)
            if found.found:
                return found
    return NOT_FOUND


def iter_nodes(tree: TreeData, parent: Optional[Dict[str, Any]] = None,
               level: int = 0) -> Iterator[Tuple[Dict[str, Any], Optional[Dict[str, Any]], int]]:
    """Yield ``(node, parent, level)`` for every node in pre-order."""
    for node in tree:
        yield node, parent, level
        children = node.get('children')
        if children:
            yield from iter_nodes(children, node, level + 1)


def collect_ids(tree: TreeData) -> Set[str]:
    """Return the set of every id in the tree."""
    return {node['id'] for node, _, _ in iter_nodes(tree)}


def count_nodes(tree: TreeData) -> int:
    return sum(1 for _ in iter_nodes(tree))


def get_nodes_by_ids(tree: TreeData, ids: Iterable[str]) -> TreeData:
    """
    Return the nodes whose ids are in ``ids``, in tree (pre-order) order.

    Args:
        tree: The full tree
        ids: Ids to match, typically the current selection

    Returns:
        List of matching node dicts (the objects inside ``tree``, not copies)
    """
    wanted = {str(node_id) for node_id in ids}
    return [node for node, _, _ in iter_nodes(tree) if str(node['id']) in wanted]


def remove_ids(tree: TreeData, ids_to_remove: Set[str]) -> TreeData:
    """
    Drop every node whose id is in ``ids_to_remove``, at any depth.

    A removed node takes its whole subtree with it. Surviving nodes are
    shallow-copied so the input tree is left untouched.

    Args:
        tree: Nodes to filter
        ids_to_remove: Ids to drop

    Returns:
        New filtered list of nodes
    """
    out = []
    for node in tree:
        if node['id'] in ids_to_remove:
            continue
        copy = dict(node)
        if node.get('children') is not None:
            copy['children'] = remove_ids(node['children'], ids_to_remove)
        out.append(copy)
    return out


def clone_tree(tree: TreeData) -> TreeData:
    """Deep-copy a tree so it can be edited without touching the caller's snapshot."""
    return deepcopy(tree)


def build_ancestor_last_map(node_id: str, tree: TreeData) -> List[bool]:
    """
    Compute the "is last child" flags used to draw tree guide lines.

    For the node itself and each of its ancestors below the root level, record
    whether it is the last child of its parent. The list runs from the top-most
    level down to the node, so its length equals the node's depth. Root-level
    and missing nodes yield an empty list.

    Args:
        node_id: Id of the node being drawn
        tree: The full tree

    Returns:
        List of booleans ordered root -> node
    """
    stack: List[Tuple[Dict[str, Any], List[bool]]] = [(node, []) for node in reversed(tree)]
    while stack:
        node, path = stack.pop()
        if node['id'] == node_id:
            return path
        children = node.get('children') or []
        last = len(children) - 1
        for i in range(last, -1, -1):
            stack.append((children[i], path + [i == last]))

    logger.debug(f"Node '{node_id}' not found while building ancestor map")
    return []


def sample_data(roots: int = 5000, children_per_root: int = 10) -> TreeData:
    """
    Build a large two-level tree with deterministic ids, for load checks.

    Args:
        roots: Number of root-level branches
        children_per_root: Number of leaves under each branch

    Returns:
        Tree with ``roots * (children_per_root + 1)`` nodes
    """
    tree = []
    for i in range(roots):
        node = {'id': f"n-{i}", 'name': f"Item {i}", 'children': []}
        for j in range(children_per_root):
            node['children'].append({'id': f"n-{i}-{j}", 'name': f"Item {i}.{j}"})
        tree.append(node)
    return tree
