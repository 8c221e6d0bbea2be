"""
Layout State Machine
====================

Two states gate whether node positions are meaningful:

    NOT_LAID_OUT --update_layout--> LAID_OUT
    LAID_OUT --invalidate_layout / re-derivation--> NOT_LAID_OUT

Positions are produced by an external layout collaborator; this module only
records them and answers "what should the view frame?".
"""

from __future__ import annotations
from dataclasses import replace
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Set

from ..contracts.base import EntityKind, NotFound
from ..contracts.graph import Edge, EdgeId, LayoutState, Node, NodeId, Position, Viewport
from ..core.store import GraphStore


def fit_viewport(
    nodes: Mapping[NodeId, Node],
    edges: Mapping[EdgeId, Edge],
    fit_to_selection: bool = True
) -> Optional[Viewport]:
    """
    Bounding box of the nodes the view should frame.

    With ``fit_to_selection`` this is the selected nodes plus both endpoints
    of every selected edge, falling back to the whole graph when nothing is
    selected. Hidden nodes and nodes without a position are ignored. None
    when no framed node qualifies.
    """
    framed: Set[NodeId] = set()
    if fit_to_selection:
        framed.update(nid for nid, node in nodes.items() if node.selected)
        for edge in edges.values():
            if edge.selected:
                framed.update((edge.source, edge.target))
    if not framed:
        framed.update(nodes.keys())

    positions = [
        nodes[nid].position for nid in framed
        if nid in nodes and nodes[nid].position is not None and not nodes[nid].hidden
    ]
    if not positions:
        return None

    return Viewport(
        x_min=min(p.x for p in positions),
        y_min=min(p.y for p in positions),
        x_max=max(p.x for p in positions),
        y_max=max(p.y for p in positions)
    )


def update_layout(state: GraphStore, positions: Mapping[NodeId, Position]) -> GraphStore:
    """
    Record positions from the layout collaborator and mark the graph laid out.

    A pending fit-view request is honoured here, in the mode it was made.
    """
    for nid in positions:
        if nid not in state.nodes:
            raise NotFound(EntityKind.RESOURCE, nid, "update layout")

    nodes: Dict[NodeId, Node] = dict(state.nodes)
    for nid, position in positions.items():
        if nodes[nid].position != position:
            nodes[nid] = replace(nodes[nid], position=position)

    frozen_nodes = MappingProxyType(nodes)
    viewport = state.viewport
    if state.fit_view_after_layout:
        viewport = fit_viewport(frozen_nodes, state.edges, state.fit_to_selection_after_layout)

    return replace(
        state,
        nodes=frozen_nodes,
        layout_state=LayoutState.LAID_OUT,
        fit_view_after_layout=False,
        fit_to_selection_after_layout=True,
        viewport=viewport
    )


def invalidate_layout(state: GraphStore) -> GraphStore:
    if state.layout_state == LayoutState.NOT_LAID_OUT:
        return state
    return replace(state, layout_state=LayoutState.NOT_LAID_OUT)


def fit_view(state: GraphStore, fit_to_selection: bool = True) -> GraphStore:
    """
    Frame the selection (or the whole graph).

    Before layout there is nothing to frame; the request and its mode are
    remembered and applied by update_layout.
    """
    if state.layout_state == LayoutState.NOT_LAID_OUT:
        if (
            state.fit_view_after_layout
            and state.fit_to_selection_after_layout == fit_to_selection
        ):
            return state
        return replace(
            state,
            fit_view_after_layout=True,
            fit_to_selection_after_layout=fit_to_selection
        )

    viewport = fit_viewport(state.nodes, state.edges, fit_to_selection)
    if viewport == state.viewport and not state.fit_view_after_layout:
        return state

    return replace(state, viewport=viewport, fit_view_after_layout=False)
