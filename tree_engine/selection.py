"""
Selection engine: cascade toggling, tri-state queries and a parent-linked index.

The selection itself is a plain set of node ids owned by the caller. Per-node
selected / unselected / indeterminate status is always derived from that set
and the tree shape, never stored on the nodes.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Any, List, Optional, Set, Union, Iterable
import logging

from .lookup import TreeData, find_node_and_parent, get_nodes_by_ids, collect_ids, has_children

logger = logging.getLogger(__name__)

INDETERMINATE = "indeterminate"

SelectionValue = Union[bool, str]


def toggle_node_selection(tree: TreeData, node_id: str, selected_ids: Set[str],
                          multiple: bool) -> Set[str]:
    """
    Flip a node's checked state and cascade it to every descendant.

    In single-select mode the set is cleared first and the node is always
    selected, so the result is exactly one selected subtree.

    Args:
        tree: Current tree
        node_id: Node that was clicked
        selected_ids: Current selection (not modified)
        multiple: Multi-select policy flag

    Returns:
        New selection set; an unchanged copy when the node is absent
    """
    new_set = set(selected_ids)
    node = find_node_and_parent(tree, node_id).node
    if node is None:
        logger.debug(f"toggle_node_selection: node '{node_id}' not found")
        return new_set

    checked = node_id not in new_set if multiple else True
    if not multiple:
        new_set.clear()

    stack = [node]
    while stack:
        current = stack.pop()
        if checked:
            new_set.add(current['id'])
        else:
            new_set.discard(current['id'])
        stack.extend(current.get('children') or [])

    return new_set


def _node_id(node) -> str:
    return node.id if isinstance(node, IndexedNode) else node['id']


def _node_children(node) -> list:
    if isinstance(node, IndexedNode):
        return node.children or []
    return node.get('children') or []


def get_selection_state(node, selected_ids: Set[str]) -> SelectionValue:
    """
    Derive a node's tri-state selection status.

    A leaf (no children, or an empty children list) is selected when its id is
    in the set. A branch ignores its own membership: it is True when every
    child is fully selected, False when no child has anything selected, and
    "indeterminate" otherwise. The whole subtree is visited.

    Args:
        node: Node dict or IndexedNode
        selected_ids: Current selection

    Returns:
        True, False or INDETERMINATE
    """
    children = _node_children(node)
    if not children:
        return _node_id(node) in selected_ids

    all_selected = True
    any_selected = False

    for child in children:
        child_state = get_selection_state(child, selected_ids)
        if child_state is True:
            any_selected = True
        elif child_state == INDETERMINATE:
            any_selected = True
            all_selected = False
        else:
            all_selected = False

    if all_selected:
        return True
    if any_selected:
        return INDETERMINATE
    return False


def is_indeterminate(node, selected_ids: Set[str]) -> bool:
    return get_selection_state(node, selected_ids) == INDETERMINATE


@dataclass(eq=False)
class IndexedNode:
    """A node in a TreeIndex, with a back-reference to its parent."""

    id: str
    data: Dict[str, Any]
    parent: Optional['IndexedNode']
    level: int
    index: int
    children: Optional[List['IndexedNode']] = None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def __repr__(self) -> str:
        return f"IndexedNode(id='{self.id}', level={self.level}, index={self.index})"


class TreeIndex:
    """
    Flat id -> IndexedNode view of a tree with parent links.

    Gives constant-time lookup and parent access, which the nested tree shape
    cannot offer without re-scanning from the roots.
    """

    def __init__(self, tree: TreeData):
        self._by_id: Dict[str, IndexedNode] = {}
        self.roots: List[IndexedNode] = [
            self._build(node, None, 0, i) for i, node in enumerate(tree)
        ]

    def _build(self, node: Dict[str, Any], parent: Optional[IndexedNode],
               level: int, index: int) -> IndexedNode:
        indexed = IndexedNode(id=node['id'], data=node, parent=parent, level=level, index=index)
        self._by_id[indexed.id] = indexed
        if node.get('children') is not None:
            indexed.children = [
                self._build(child, indexed, level + 1, i)
                for i, child in enumerate(node['children'])
            ]
        return indexed

    def get(self, node_id: str) -> Optional[IndexedNode]:
        return self._by_id.get(node_id)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def parent_id(self, node_id: str) -> Optional[str]:
        node = self._by_id.get(node_id)
        if node is None or node.parent is None:
            return None
        return node.parent.id

    def descendants(self, node_id: str) -> List[str]:
        node = self._by_id.get(node_id)
        return collect_descendants(node) if node is not None else []

    def ancestors(self, node_id: str) -> List[str]:
        node = self._by_id.get(node_id)
        return collect_ancestors(node) if node is not None else []


def collect_descendants(node: IndexedNode) -> List[str]:
    """
    Collect the ids of every node below ``node``, in pre-order.

    Args:
        node: Node from a TreeIndex

    Returns:
        Descendant ids (each child followed by its own descendants)
    """
    ids: List[str] = []
    for child in node.children or []:
        ids.append(child.id)
        ids.extend(collect_descendants(child))
    return ids


def collect_ancestors(node: IndexedNode) -> List[str]:
    """
    Collect the ids of every node above ``node`` by walking parent links.

    Args:
        node: Node from a TreeIndex

    Returns:
        Ancestor ids, nearest parent first and root last
    """
    ids: List[str] = []
    parent = node.parent
    while parent is not None:
        ids.append(parent.id)
        parent = parent.parent
    return ids


@dataclass
class SelectionState:
    """Caller-owned selection set together with its policy flags.

    Every method returns a new SelectionState; the instance is never changed
    in place by the engine.
    """

    selected_ids: Set[str] = field(default_factory=set)
    multiple: bool = True
    parent_selection: bool = False
    highlight_active_node: bool = False

    def __post_init__(self):
        self.selected_ids = {str(node_id) for node_id in self.selected_ids}

    @classmethod
    def from_settings(cls, settings, selected_ids: Optional[Iterable[str]] = None) -> 'SelectionState':
        """Create a selection state from TreeSettings."""
        return cls(
            selected_ids=set(selected_ids or ()),
            multiple=settings.multiple,
            parent_selection=settings.parent_selection,
            highlight_active_node=settings.highlight_active_node
        )

    def is_selected(self, node_id: str) -> bool:
        return node_id in self.selected_ids

    def can_select(self, node: Dict[str, Any]) -> bool:
        """Leaves are always selectable; branches only with parent selection on."""
        return self.parent_selection or not has_children(node)

    def toggle(self, tree: TreeData, node_id: str) -> 'SelectionState':
        """Cascade-toggle a node according to the policy flags."""
        node = find_node_and_parent(tree, node_id).node
        if node is None:
            logger.debug(f"SelectionState.toggle: node '{node_id}' not found")
            return replace(self, selected_ids=set(self.selected_ids))

        if not self.can_select(node):
            logger.debug(f"Branch '{node_id}' is not selectable without parent selection")
            return replace(self, selected_ids=set(self.selected_ids))

        return replace(
            self,
            selected_ids=toggle_node_selection(tree, node_id, self.selected_ids, self.multiple)
        )

    def click(self, node_id: str) -> 'SelectionState':
        """
        Select or deselect a single node without cascading.

        This is the radio / highlight-on-click behaviour: a selected node is
        deselected; otherwise the set is cleared first in single-select mode
        or when the active node is highlighted, and the node is added.
        """
        updated = set(self.selected_ids)
        if node_id in updated:
            updated.discard(node_id)
        else:
            if not self.multiple or self.highlight_active_node:
                updated.clear()
            updated.add(node_id)
        return replace(self, selected_ids=updated)

    def clear(self) -> 'SelectionState':
        return replace(self, selected_ids=set())

    def state_of(self, tree: TreeData, node_id: str) -> SelectionValue:
        """Tri-state status of one node; False for unknown ids."""
        node = find_node_and_parent(tree, node_id).node
        if node is None:
            return False
        return get_selection_state(node, self.selected_ids)

    def selected_nodes(self, tree: TreeData) -> TreeData:
        return get_nodes_by_ids(tree, self.selected_ids)

    def prune(self, tree: TreeData) -> 'SelectionState':
        """Drop selected ids that no longer exist in the tree."""
        existing = collect_ids(tree)
        kept = self.selected_ids & existing
        if len(kept) != len(self.selected_ids):
            logger.debug(f"Pruned {len(self.selected_ids) - len(kept)} stale id(s) from selection")
        return replace(self, selected_ids=kept)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'selected_ids': sorted(self.selected_ids),
            'multiple': self.multiple,
            'parent_selection': self.parent_selection,
            'highlight_active_node': self.highlight_active_node
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SelectionState':
        return cls(
            selected_ids=set(data.get('selected_ids') or ()),
            multiple=bool(data.get('multiple', True)),
            parent_selection=bool(data.get('parent_selection', False)),
            highlight_active_node=bool(data.get('highlight_active_node', False))
        )
