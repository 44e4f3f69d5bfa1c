"""
Pydantic schema for tree nodes and tree settings.

The validated node shape is also the interchange format: a tree is a list of
plain dicts, and validation returns a normalised deep copy of that list.
"""

from copy import deepcopy
from typing import Dict, Any, List, Optional, Iterable, Mapping
from pydantic import (
    BaseModel, ConfigDict, Field, StrictBool, StrictStr, TypeAdapter,
    ValidationError, field_validator
)
from pydantic.alias_generators import to_camel
import logging

from .exceptions import TreeValidationError, DuplicateIdError

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 1
NAME_MAX_LENGTH = 100


class TreeNode(BaseModel):
    """One hierarchy entry. Unknown keys are accepted and preserved."""

    model_config = ConfigDict(extra='allow')

    id: str
    name: str
    expanded: Optional[StrictBool] = None
    icon: Optional[StrictStr] = None
    is_user_icon: Optional[StrictBool] = Field(default=None, alias='isUserIcon')
    children: Optional[List['TreeNode']] = None

    @field_validator('id', mode='before')
    @classmethod
    def normalize_id(cls, v):
        # Positive integer ids are accepted and stored as strings
        if isinstance(v, int) and not isinstance(v, bool):
            if v < 1:
                raise ValueError('ID is required')
            return str(v)
        return v

    @field_validator('id')
    @classmethod
    def id_required(cls, v):
        if not v:
            raise ValueError('ID is required')
        return v

    @field_validator('name')
    @classmethod
    def name_length(cls, v):
        if len(v) < NAME_MIN_LENGTH:
            raise ValueError('Name is required')
        if len(v) > NAME_MAX_LENGTH:
            raise ValueError('Name too long')
        return v


TreeNode.model_rebuild()

_TREE_ADAPTER = TypeAdapter(List[TreeNode])


class TreeSettings(BaseModel):
    """Policy flags for a tree picker / tree editor."""

    model_config = ConfigDict(
        extra='ignore',
        alias_generator=to_camel,
        populate_by_name=True
    )

    selectable: StrictBool = True
    multiple: StrictBool = True
    parent_selection: StrictBool = False
    tree_lines: StrictBool = True
    highlight_active_node: StrictBool = False
    enable_search: StrictBool = True
    edit_icon: StrictBool = False
    title_editable: StrictBool = False
    enable_actions: StrictBool = False


def format_validation_errors(error: ValidationError) -> List[str]:
    """
    Convert a pydantic ValidationError into readable messages.

    Args:
        error: Pydantic validation error

    Returns:
        List of ``path: message`` strings
    """
    messages = []
    for item in error.errors():
        field_path = ' -> '.join(str(loc) for loc in item.get('loc', []))
        msg = item.get('msg', '')
        if msg.startswith('Value error, '):
            msg = msg[len('Value error, '):]
        messages.append(f"{field_path}: {msg}" if field_path else msg)
    return messages


def _normalize_node(node: Any) -> Dict[str, Any]:
    """Deep-copy an already validated node, storing its id as a string."""
    if isinstance(node, BaseModel):
        node = node.model_dump(by_alias=True, exclude_unset=True)

    result = {}
    for key, value in node.items():
        if key == 'children':
            # An explicit null children value is read as a leaf
            if value is not None:
                result[key] = [_normalize_node(child) for child in value]
        else:
            result[key] = deepcopy(value)

    result['id'] = str(result['id'])
    return result


def find_duplicate_ids(nodes: Iterable[Mapping[str, Any]]) -> List[str]:
    """
    Find ids that occur more than once anywhere in a tree.

    Args:
        nodes: Root-level nodes

    Returns:
        Sorted list of duplicated ids (empty when all ids are unique)
    """
    seen = set()
    duplicates = set()
    stack = list(nodes)
    while stack:
        node = stack.pop()
        node_id = node['id']
        if node_id in seen:
            duplicates.add(node_id)
        seen.add(node_id)
        stack.extend(node.get('children') or [])
    return sorted(duplicates)


def validate_tree(nodes: Any, unique_ids: bool = True) -> List[Dict[str, Any]]:
    """
    Validate a whole tree and return a normalised copy.

    Args:
        nodes: Ordered list of root-level nodes
        unique_ids: Also reject trees in which an id occurs more than once

    Returns:
        New list of validated node dicts

    Raises:
        TreeValidationError: If any node has an invalid shape
        DuplicateIdError: If unique_ids is set and ids collide
    """
    try:
        _TREE_ADAPTER.validate_python(nodes)
    except ValidationError as e:
        errors = format_validation_errors(e)
        logger.error(f"Tree validation failed with {len(errors)} error(s)")
        raise TreeValidationError(errors) from e

    validated = [_normalize_node(node) for node in nodes]

    if unique_ids:
        duplicates = find_duplicate_ids(validated)
        if duplicates:
            logger.error(f"Tree contains duplicate ids: {duplicates}")
            raise DuplicateIdError(duplicates)

    return validated


def validate_node(node: Any) -> Dict[str, Any]:
    """
    Validate a single node (and its subtree) and return a normalised copy.

    Args:
        node: Node dict

    Returns:
        Validated node dict

    Raises:
        TreeValidationError: If the node has an invalid shape
    """
    try:
        TreeNode.model_validate(node)
    except ValidationError as e:
        errors = format_validation_errors(e)
        logger.error(f"Node validation failed: {errors}")
        raise TreeValidationError(errors) from e

    return _normalize_node(node)


def is_valid_tree(nodes: Any) -> bool:
    """Return True when the tree validates, without raising."""
    try:
        validate_tree(nodes)
        return True
    except TreeValidationError:
        return False


def validate_settings(data: Optional[Mapping[str, Any]] = None) -> TreeSettings:
    """
    Validate tree settings given in snake_case or camelCase keys.

    Args:
        data: Settings mapping (unknown keys are ignored)

    Returns:
        TreeSettings instance

    Raises:
        TreeValidationError: If a setting is not a boolean
    """
    try:
        return TreeSettings.model_validate(dict(data or {}))
    except ValidationError as e:
        raise TreeValidationError(format_validation_errors(e)) from e
