"""
Stateful tree editing session.

TreeEditor wraps the pure engine functions for one tree control: it owns the
current snapshot, the selection, the search term, the pending icon decision
and the last saved snapshot. Every edit replaces the snapshot with the tree
returned by the engine.
"""

from typing import Dict, Any, List, Optional, Set, Callable, Iterable, Mapping, Union
import logging

from .config_loader import get_config_value, get_tree_settings
from .exceptions import TreeActionDisabledError
from .icon_workflow import IconCascadeWorkflow, PendingIcon
from .identity import generate_tree_with_ids
from .lookup import TreeData, build_ancestor_last_map, clone_tree, find_node_and_parent, is_branch
from .operations import (
    add_child_node, add_sibling_node, delete_node, duplicate_node,
    update_node_custom_props, update_node_name
)
from .schema import TreeSettings, validate_settings, validate_tree
from .search import filter_tree
from .selection import SelectionState, SelectionValue
from .tree_diff import TreeChangeSummary, diff_trees, has_changes

logger = logging.getLogger(__name__)

SelectCallback = Callable[[Set[str]], None]


class TreeEditor:
    """
    Editing session for a single tree.

    Args:
        data: Initial tree; an empty or missing tree is seeded with one empty
            root branch
        settings: TreeSettings, a settings mapping, or None for the configured defaults
        selected: Initially selected ids
        on_select: Called with a copy of the selection whenever it changes
    """

    def __init__(self, data: Optional[TreeData] = None,
                 settings: Optional[Union[TreeSettings, Mapping[str, Any]]] = None,
                 selected: Optional[Iterable[str]] = None,
                 on_select: Optional[SelectCallback] = None):
        if settings is None:
            settings = get_tree_settings()
        elif not isinstance(settings, TreeSettings):
            settings = validate_settings(settings)
        self.settings: TreeSettings = settings

        if data:
            self._tree = validate_tree(data)
        else:
            root_name = get_config_value('tree', 'root_name', 'Root Node')
            self._tree = generate_tree_with_ids([{'name': root_name, 'children': []}])
            logger.debug(f"Seeded empty tree with root '{self._tree[0]['id']}'")

        self._saved = clone_tree(self._tree)
        self.selection = SelectionState.from_settings(settings, selected)
        self.search_term = ''
        self.icon_workflow = IconCascadeWorkflow()
        self.on_select = on_select

    # Data access

    def get_data(self) -> TreeData:
        return self._tree

    def set_data(self, new_data: TreeData) -> TreeData:
        """Replace the tree with a validated copy of ``new_data``."""
        self._tree = validate_tree(new_data)
        self._prune_selection()
        return self._tree

    def add_node_props(self, node_id: str, props: Mapping[str, Any]) -> TreeData:
        """Merge custom properties onto a node; available regardless of settings."""
        self._tree = update_node_custom_props(self._tree, node_id, props)
        return self._tree

    # Search

    def set_search(self, term: str) -> None:
        self._require('enable_search', 'search')
        self.search_term = term or ''

    def reset_search(self) -> None:
        self.search_term = ''

    def visible_tree(self) -> TreeData:
        """The tree as displayed: filtered by the search term when search is enabled."""
        if not self.settings.enable_search:
            return self._tree
        return filter_tree(self._tree, self.search_term)

    # Structural actions

    def add_sibling(self, target_id: str, name: Optional[str] = None,
                    is_leaf: bool = False) -> TreeData:
        self._require('enable_actions', 'add sibling')
        self._tree = add_sibling_node(self._tree, target_id, name, is_leaf)
        return self._tree

    def add_child(self, parent_id: str, name: Optional[str] = None) -> TreeData:
        self._require('enable_actions', 'add child')
        self._tree = add_child_node(self._tree, parent_id, name)
        return self._tree

    def duplicate(self, node_id: str) -> TreeData:
        self._require('enable_actions', 'duplicate')
        self._tree = duplicate_node(self._tree, node_id)
        return self._tree

    def delete(self, node_id: str) -> TreeData:
        """Delete a node and its subtree, dropping removed ids from the selection."""
        self._require('enable_actions', 'delete')
        self._tree = delete_node(self._tree, node_id)
        self._prune_selection()
        return self._tree

    def rename(self, node_id: str, new_name: str) -> TreeData:
        self._require('title_editable', 'rename')
        self._tree = update_node_name(self._tree, node_id, new_name)
        return self._tree

    # Icons

    def pick_icon(self, node_id: str, icon: str, is_user_icon: bool = False) -> Optional[PendingIcon]:
        """
        Start an icon change for a node.

        The change is only applied once confirm_icon() is called with the
        cascade decision.

        Returns:
            The pending icon, or None when the node does not exist
        """
        self._require('edit_icon', 'change icon')
        node = find_node_and_parent(self._tree, node_id).node
        if node is None:
            logger.debug(f"pick_icon: node '{node_id}' not found")
            return None
        return self.icon_workflow.pick(node_id, icon, is_user_icon, is_leaf=not is_branch(node))

    def confirm_icon(self, confirmed: Optional[bool]) -> TreeData:
        """Resolve the pending icon change: True cascades, False applies to one node, None discards."""
        self._tree = self.icon_workflow.resolve(self._tree, confirmed)
        return self._tree

    # Selection

    def get_selected(self) -> Set[str]:
        return set(self.selection.selected_ids)

    def set_selected(self, ids: Iterable[str]) -> Set[str]:
        self._update_selection(SelectionState(
            selected_ids=set(ids),
            multiple=self.selection.multiple,
            parent_selection=self.selection.parent_selection,
            highlight_active_node=self.selection.highlight_active_node
        ))
        return self.get_selected()

    def toggle(self, node_id: str) -> Set[str]:
        """Checkbox toggle: flips the node and cascades to its descendants."""
        self._require('selectable', 'select')
        self._update_selection(self.selection.toggle(self._tree, node_id))
        return self.get_selected()

    def click(self, node_id: str) -> Set[str]:
        """Row click: selects or deselects one node without cascading."""
        self._require('selectable', 'select')
        node = find_node_and_parent(self._tree, node_id).node
        if node is None or not self.selection.can_select(node):
            return self.get_selected()
        self._update_selection(self.selection.click(node_id))
        return self.get_selected()

    def selection_state(self, node_id: str) -> SelectionValue:
        return self.selection.state_of(self._tree, node_id)

    def selected_nodes(self) -> TreeData:
        return self.selection.selected_nodes(self._tree)

    def ancestor_last_map(self, node_id: str) -> List[bool]:
        return build_ancestor_last_map(node_id, self._tree)

    # Save / cancel

    def is_dirty(self) -> bool:
        return has_changes(self._saved, self._tree)

    def changes(self) -> TreeChangeSummary:
        """Per-node changes since the last save."""
        return diff_trees(self._saved, self._tree)

    def save(self) -> TreeData:
        """Accept the current tree as the new baseline and return it."""
        self._saved = clone_tree(self._tree)
        logger.info(f"Saved tree with {len(self._tree)} root node(s)")
        return self._tree

    def cancel(self) -> TreeData:
        """Discard unsaved edits and any pending icon change."""
        self.icon_workflow.cancel()
        self._tree = clone_tree(self._saved)
        self._prune_selection()
        logger.info("Discarded unsaved tree changes")
        return self._tree

    # Internal helpers

    def _require(self, setting: str, action: str) -> None:
        if not getattr(self.settings, setting):
            raise TreeActionDisabledError(action, setting)

    def _prune_selection(self) -> None:
        self._update_selection(self.selection.prune(self._tree))

    def _update_selection(self, new_state: SelectionState) -> None:
        changed = new_state.selected_ids != self.selection.selected_ids
        self.selection = new_state
        if changed and self.on_select is not None:
            self.on_select(set(new_state.selected_ids))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'data': self._tree,
            'selected': sorted(self.selection.selected_ids),
            'search': self.search_term,
            'settings': self.settings.model_dump()
        }
