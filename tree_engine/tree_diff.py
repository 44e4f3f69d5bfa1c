"""
Diff utilities for tree snapshots.

Compares two versions of a tree using DeepDiff over id-keyed flat records,
so changes are reported per node (added, removed, renamed, moved, or with
other field changes) instead of as raw nested list paths.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple, Set
from deepdiff import DeepDiff
import re
import logging

from .lookup import TreeData, iter_nodes

logger = logging.getLogger(__name__)

# root['node-1']['name'] -> ('node-1', "['name']")
_NODE_PATH_RE = re.compile(r"^root\[(?P<q>['\"])(?P<id>.*?)(?P=q)\](?P<rest>.*)$")
_FIELD_RE = re.compile(r"^\[(?P<q>['\"])(?P<field>.*?)(?P=q)\]")

_ID_PATH_RE = r"\['id'\]$"


@dataclass
class TreeChangeSummary:
    """Per-node changes between two tree snapshots."""

    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    renamed: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    moved: List[str] = field(default_factory=list)
    changed: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.renamed or self.moved or self.changed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'added': list(self.added),
            'removed': list(self.removed),
            'renamed': {k: list(v) for k, v in self.renamed.items()},
            'moved': list(self.moved),
            'changed': {k: list(v) for k, v in self.changed.items()}
        }


def flatten_tree(tree: TreeData) -> Dict[str, Dict[str, Any]]:
    """
    Flatten a tree into ``{id: record}``.

    Each record holds the node's own fields (without children) plus its
    ``parent_id``.

    Args:
        tree: Tree to flatten

    Returns:
        Dictionary keyed by node id
    """
    flat = {}
    for node, parent, _ in iter_nodes(tree):
        record = {k: v for k, v in node.items() if k not in ('id', 'children')}
        record['parent_id'] = parent['id'] if parent is not None else None
        flat[node['id']] = record
    return flat


def _split_path(path: str) -> Tuple[Optional[str], Optional[str]]:
    """Return (node id, field name) for a DeepDiff path on a flattened tree."""
    match = _NODE_PATH_RE.match(path)
    if not match:
        return None, None
    rest = match.group('rest')
    if not rest:
        return match.group('id'), None
    field_match = _FIELD_RE.match(rest)
    return match.group('id'), field_match.group('field') if field_match else rest


def diff_trees(old: TreeData, new: TreeData) -> TreeChangeSummary:
    """
    Calculate per-node differences between two trees.

    Args:
        old: Earlier snapshot
        new: Later snapshot

    Returns:
        TreeChangeSummary; ids in each list appear in sorted order
    """
    diff = DeepDiff(flatten_tree(old), flatten_tree(new), verbose_level=2)
    summary = TreeChangeSummary()
    changed: Dict[str, Set[str]] = {}

    for path in diff.get('dictionary_item_added', {}):
        node_id, field_name = _split_path(path)
        if node_id is None:
            continue
        if field_name is None:
            summary.added.append(node_id)
        else:
            changed.setdefault(node_id, set()).add(field_name)

    for path in diff.get('dictionary_item_removed', {}):
        node_id, field_name = _split_path(path)
        if node_id is None:
            continue
        if field_name is None:
            summary.removed.append(node_id)
        else:
            changed.setdefault(node_id, set()).add(field_name)

    for section in ('values_changed', 'type_changes'):
        for path, change in diff.get(section, {}).items():
            node_id, field_name = _split_path(path)
            if node_id is None or field_name is None:
                continue
            if field_name == 'parent_id':
                summary.moved.append(node_id)
            elif field_name == 'name' and path.endswith("['name']"):
                summary.renamed[node_id] = (change.get('old_value'), change.get('new_value'))
            else:
                changed.setdefault(node_id, set()).add(field_name)

    for section in ('iterable_item_added', 'iterable_item_removed'):
        for path in diff.get(section, {}):
            node_id, field_name = _split_path(path)
            if node_id is not None and field_name is not None:
                changed.setdefault(node_id, set()).add(field_name)

    summary.added.sort()
    summary.removed.sort()
    summary.moved.sort()
    summary.changed = {k: sorted(v) for k, v in sorted(changed.items())}

    logger.debug(
        f"Tree diff: {len(summary.added)} added, {len(summary.removed)} removed, "
        f"{len(summary.renamed)} renamed, {len(summary.moved)} moved, {len(summary.changed)} changed"
    )
    return summary


def has_changes(old: TreeData, new: TreeData) -> bool:
    """Return True when the two trees differ in any way, including child order."""
    return bool(DeepDiff(old, new))


def same_structure(a: TreeData, b: TreeData) -> bool:
    """
    Compare two trees while ignoring id values.

    Names, metadata, branch/leaf shape and child order must all match.
    """
    return not DeepDiff(a, b, exclude_regex_paths=[_ID_PATH_RE])
