"""
Structure-preserving search over a tree.
"""

import re
from typing import List, Tuple
import logging

from .lookup import TreeData

logger = logging.getLogger(__name__)


def filter_tree(tree: TreeData, term: str) -> TreeData:
    """
    Narrow a tree to nodes whose names contain ``term`` (case-insensitive).

    A node survives when its own name matches or when any descendant matches,
    so ancestors of a hit stay visible. When some descendants match, the
    node's children are replaced by the filtered list; a node kept only for
    its own name and with no matching descendants keeps its children as they
    are.

    Args:
        tree: Tree to filter
        term: Search term; blank terms disable filtering

    Returns:
        The input list itself for a blank term, otherwise a new filtered list
    """
    if not term or not term.strip():
        return tree

    return _filter_nodes(tree, term.lower())


def _filter_nodes(nodes: TreeData, lower_term: str) -> TreeData:
    result = []
    for node in nodes:
        children = _filter_nodes(node.get('children') or [], lower_term)
        if lower_term in node['name'].lower() or children:
            copy = dict(node)
            if children:
                copy['children'] = children
            result.append(copy)
    return result


def highlight_segments(text: str, term: str) -> List[Tuple[str, bool]]:
    """
    Split a node name into plain and matching segments for highlighting.

    The term is matched literally and case-insensitively.

    Args:
        text: Node name
        term: Search term

    Returns:
        List of ``(segment, is_match)`` pairs that concatenate back to ``text``
    """
    if not term:
        return [(text, False)]

    parts = re.split(f"({re.escape(term)})", text, flags=re.IGNORECASE)
    lower_term = term.lower()
    return [(part, part.lower() == lower_term) for part in parts if part]
