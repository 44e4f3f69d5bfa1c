"""
Node id generation and re-identification.

Ids look like ``<prefix>-<random base36 suffix>``. They are probabilistic and
not cryptographic; when the ids already in use are known, generation re-rolls
until it finds an unused one.
"""

import random
import string
from typing import Dict, Any, List, Optional, Set, Iterable
import logging

from .config_loader import get_config_value
from .exceptions import IdGenerationError
from .schema import validate_node, validate_tree

logger = logging.getLogger(__name__)

BASE36_ALPHABET = string.digits + string.ascii_lowercase


def next_id(prefix: Optional[str] = None, taken: Optional[Iterable[str]] = None,
            suffix_length: Optional[int] = None, max_attempts: Optional[int] = None) -> str:
    """
    Generate a new node id.

    Args:
        prefix: Id prefix (defaults to ids.prefix from config)
        taken: Ids that must not be returned
        suffix_length: Length of the random base36 suffix (defaults to ids.suffix_length)
        max_attempts: Re-rolls allowed when the id is taken (defaults to ids.max_attempts)

    Returns:
        New id string

    Raises:
        IdGenerationError: If every attempt produced a taken id
    """
    if prefix is None:
        prefix = get_config_value('ids', 'prefix', 'node')
    if suffix_length is None:
        suffix_length = get_config_value('ids', 'suffix_length', 7)
    if max_attempts is None:
        max_attempts = get_config_value('ids', 'max_attempts', 10)

    taken_ids = taken if isinstance(taken, (set, frozenset)) else set(taken or ())

    for attempt in range(max_attempts):
        suffix = ''.join(random.choices(BASE36_ALPHABET, k=suffix_length))
        candidate = f"{prefix}-{suffix}"
        if candidate not in taken_ids:
            return candidate
        logger.debug(f"Generated id '{candidate}' already in use (attempt {attempt + 1})")

    raise IdGenerationError(prefix, max_attempts, len(taken_ids))


def _reassign_ids(node: Dict[str, Any], used: Set[str]) -> Dict[str, Any]:
    new_id = next_id(taken=used)
    used.add(new_id)

    new_node = dict(node)
    new_node['id'] = new_id
    if node.get('children') is not None:
        new_node['children'] = [_reassign_ids(child, used) for child in node['children']]
    return new_node


def assign_new_ids(node: Dict[str, Any], taken: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """
    Give a node and all of its descendants fresh ids, top-down.

    Every other field is preserved. Ids generated for the subtree never
    collide with each other or with ``taken``.

    Args:
        node: Node to re-identify (its own id may be missing or empty)
        taken: Ids already in use in the tree the node will join

    Returns:
        Validated copy of the node with new ids
    """
    used = set(taken or ())
    return validate_node(_reassign_ids(node, used))


def generate_tree_with_ids(tree_data: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Generate a tree with fresh ids for all nodes.

    Args:
        tree_data: Root-level nodes, with or without ids

    Returns:
        Validated tree, structurally identical to the input except for ids
    """
    used: Set[str] = set()
    new_tree = [_reassign_ids(node, used) for node in tree_data]
    logger.debug(f"Generated {len(used)} ids for a tree of {len(new_tree)} root node(s)")
    return validate_tree(new_tree)
