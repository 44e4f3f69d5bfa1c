"""
Two-step icon change: pick an icon, then decide whether to cascade it.

The workflow is an explicit state machine with a pending decision value:

    IDLE --pick--> ICON_PICKED(pending) --resolve(True | False | None)--> IDLE

Resolving with True cascades (all descendants for a leaf pick, all branch
nodes for a branch pick), False applies the icon to the picked node only, and
None (dialog dismissed) applies nothing.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging

from .exceptions import InvalidWorkflowStateError
from .lookup import TreeData
from .operations import update_all_children_icons, update_all_parent_icons, update_node_icon

logger = logging.getLogger(__name__)


class IconWorkflowState(str, Enum):
    IDLE = "idle"
    ICON_PICKED = "icon_picked"


@dataclass(frozen=True)
class PendingIcon:
    """An icon picked for a node, waiting for the cascade decision."""

    target_id: str
    icon: str
    is_user_icon: bool = False
    is_leaf: bool = False


def apply_icon_decision(tree: TreeData, pending: PendingIcon,
                        confirmed: Optional[bool]) -> TreeData:
    """
    Apply a resolved icon decision to a tree.

    Args:
        tree: Current tree
        pending: The picked icon and its target
        confirmed: True to cascade, False for the single node, None to discard

    Returns:
        New tree, or the input tree itself when the decision was discarded
    """
    if confirmed is None:
        logger.debug(f"Icon change for '{pending.target_id}' dismissed")
        return tree

    if confirmed:
        if pending.is_leaf:
            logger.info(f"Cascading icon '{pending.icon}' to all child nodes")
            return update_all_children_icons(tree, pending.icon, pending.is_user_icon)
        logger.info(f"Cascading icon '{pending.icon}' to all parent nodes")
        return update_all_parent_icons(tree, pending.icon, pending.is_user_icon)

    return update_node_icon(tree, pending.target_id, pending.icon, pending.is_user_icon)


class IconCascadeWorkflow:
    """Holds the pending icon decision between the pick and the confirmation."""

    def __init__(self):
        self.pending: Optional[PendingIcon] = None

    @property
    def state(self) -> IconWorkflowState:
        if self.pending is None:
            return IconWorkflowState.IDLE
        return IconWorkflowState.ICON_PICKED

    def pick(self, target_id: str, icon: str, is_user_icon: bool = False,
             is_leaf: bool = False) -> PendingIcon:
        """
        Record a picked icon and move to ICON_PICKED.

        Picking again before resolving replaces the pending icon.
        """
        if self.pending is not None:
            logger.warning(
                f"Replacing pending icon for '{self.pending.target_id}' with a new pick for '{target_id}'"
            )
        self.pending = PendingIcon(target_id, icon, is_user_icon, is_leaf)
        return self.pending

    def resolve(self, tree: TreeData, confirmed: Optional[bool]) -> TreeData:
        """
        Apply the cascade decision and return to IDLE.

        Raises:
            InvalidWorkflowStateError: If no icon has been picked
        """
        if self.pending is None:
            raise InvalidWorkflowStateError(self.state.value, 'resolve an icon change')

        pending = self.pending
        try:
            return apply_icon_decision(tree, pending, confirmed)
        finally:
            self.pending = None

    def cancel(self) -> None:
        """Drop any pending icon without touching the tree."""
        self.pending = None
