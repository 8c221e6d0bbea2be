"""
Collapse and Expand Actions
===========================

Collapsing a node hides its descendants from the rendered graph without
removing them from the snapshot. Selection is untouched by every action
here.

Every change of visibility invalidates the layout: node positions were
computed for a different set of visible nodes.
"""

from __future__ import annotations
from dataclasses import replace
from types import MappingProxyType
from typing import Dict

from ..contracts.base import EntityKind, NotCollapsible, NotFound
from ..contracts.graph import LayoutState, Node, NodeId
from .hierarchy import apply_hidden_flags
from .store import GraphStore


def _with_visibility(state: GraphStore, nodes: Dict[NodeId, Node], refit_view: bool) -> GraphStore:
    changes = dict(
        nodes=MappingProxyType(nodes),
        layout_state=LayoutState.NOT_LAID_OUT
    )
    if refit_view:
        changes.update(fit_view_after_layout=True, fit_to_selection_after_layout=True)
    return replace(state, **changes)


def collapse_all(state: GraphStore) -> GraphStore:
    """Collapse every node with children. Identity when already collapsed."""
    nodes: Dict[NodeId, Node] = dict(state.nodes)
    changed = False
    for nid, node in state.nodes.items():
        if node.num_children > 0 and not node.collapsed:
            nodes[nid] = replace(node, collapsed=True)
            changed = True

    if not (apply_hidden_flags(nodes) or changed):
        return state
    return _with_visibility(state, nodes, refit_view=True)


def expand_all(state: GraphStore) -> GraphStore:
    """Expand every node. Identity when nothing is collapsed."""
    nodes: Dict[NodeId, Node] = dict(state.nodes)
    changed = False
    for nid, node in state.nodes.items():
        if node.collapsed or node.hidden:
            nodes[nid] = replace(node, collapsed=False, hidden=False)
            changed = True

    if not changed:
        return state
    return _with_visibility(state, nodes, refit_view=True)


def toggle_node_collapsed(state: GraphStore, node_id: NodeId) -> GraphStore:
    """
    Collapse an expanded node or expand a collapsed one.

    A descendant stays hidden while another collapsed node lies between it
    and ``node_id``.
    """
    node = state.nodes.get(node_id)
    if node is None:
        raise NotFound(EntityKind.RESOURCE, node_id, "toggle collapsed")
    if node.num_children == 0:
        raise NotCollapsible(
            f"Node with id {node_id} has no children, cannot toggle collapsed state",
            context=(("id", node_id),)
        )

    nodes: Dict[NodeId, Node] = dict(state.nodes)
    nodes[node_id] = replace(node, collapsed=not node.collapsed)
    apply_hidden_flags(nodes)

    return _with_visibility(state, nodes, refit_view=False)
