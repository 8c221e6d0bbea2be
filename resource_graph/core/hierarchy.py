"""
Node Hierarchy
==============

Parent/child structure of the node map and the visibility it implies.

INVARIANTS:
- Only a node with children is ever collapsed
- A node is hidden exactly when one of its ancestors is collapsed
- Helpers that take a ``Dict`` update it in place; callers pass working copies
"""

from __future__ import annotations
from dataclasses import replace
from typing import Dict, Iterable, Iterator, Mapping, Set

from ..contracts.base import ViewSection
from ..contracts.graph import Node, NodeId


def ancestors(nodes: Mapping[NodeId, Node], nid: NodeId) -> Iterator[NodeId]:
    """Parent, grandparent, ... of ``nid``, nearest first."""
    seen = {nid}
    parent = nodes[nid].parent_id
    # Global containers can re-parent a node under its own descendant
    while parent is not None and parent in nodes and parent not in seen:
        yield parent
        seen.add(parent)
        parent = nodes[parent].parent_id


def child_counts(nodes: Mapping[NodeId, Node]) -> Dict[NodeId, int]:
    counts = {nid: 0 for nid in nodes}
    for node in nodes.values():
        if node.parent_id in counts:
            counts[node.parent_id] += 1
    return counts


def is_hidden(nodes: Mapping[NodeId, Node], nid: NodeId) -> bool:
    return any(nodes[ancestor].collapsed for ancestor in ancestors(nodes, nid))


def apply_hidden_flags(nodes: Dict[NodeId, Node]) -> bool:
    """Re-derive every hidden flag from the collapsed flags. True if any changed."""
    hidden = {nid: is_hidden(nodes, nid) for nid in nodes}

    changed = False
    for nid, flag in hidden.items():
        if nodes[nid].hidden != flag:
            nodes[nid] = replace(nodes[nid], hidden=flag)
            changed = True
    return changed


def _initially_expanded(nodes: Mapping[NodeId, Node], section: ViewSection) -> Set[NodeId]:
    if section == ViewSection.SECRETS:
        return set(nodes)

    if section == ViewSection.ENVIRONMENTS:
        # Open the path down to every resource tagged directly
        expanded: Set[NodeId] = set()
        for nid, node in nodes.items():
            if any(badge.inherited_from is None for badge in node.environments):
                expanded.update(ancestors(nodes, nid))
        return expanded

    return set()


def initial_visibility(nodes: Mapping[NodeId, Node], section: ViewSection) -> Dict[NodeId, Node]:
    """
    Child counts, collapsed and hidden flags for a freshly derived node map.

    INVENTORY starts with every parent collapsed, SECRETS fully expanded and
    ENVIRONMENTS expanded only down to directly tagged resources.
    """
    counts = child_counts(nodes)
    expanded = _initially_expanded(nodes, section)

    result: Dict[NodeId, Node] = {}
    for nid, node in nodes.items():
        result[nid] = replace(
            node,
            num_children=counts[nid],
            collapsed=counts[nid] > 0 and nid not in expanded
        )

    apply_hidden_flags(result)
    return result


def reveal(nodes: Dict[NodeId, Node], node_ids: Iterable[NodeId]) -> bool:
    """
    Expand every collapsed ancestor of the hidden nodes among ``node_ids``.

    Siblings along the opened path become visible too. True if any node
    was hidden.
    """
    targets = [nid for nid in node_ids if nodes[nid].hidden]
    if not targets:
        return False

    for nid in targets:
        for ancestor in list(ancestors(nodes, nid)):
            if nodes[ancestor].collapsed:
                nodes[ancestor] = replace(nodes[ancestor], collapsed=False)

    apply_hidden_flags(nodes)
    return True
