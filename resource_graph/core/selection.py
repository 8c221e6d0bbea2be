"""
Selection Engine
================

Pure action handlers over the Selection part of a GraphStore.

Every handler is ``(state, ...) -> state`` and either:
- returns the IDENTICAL input object (strict no-op; consumers skip
  re-rendering on ``new is old``), or
- returns a new snapshot built with ``dataclasses.replace``, replacing
  only ``nodes``, ``edges``, ``selection`` (and fit-view bookkeeping for
  select actions) and sharing every other field by reference.

Selecting a hidden node reveals it by expanding its collapsed ancestors,
which resets the layout to NOT_LAID_OUT.

INVARIANTS (hold after every completed action):
- LOCKSTEP: id in selection.edges <=> edge.selected, and edge.marker == edge.selected;
      id in selection.resources <=> node.selected
- ANCHORED EDGES: a selected edge has at least one endpoint in selection.resources
- COVERED ISSUES: a selected issue has all its resource_ids and edge_ids selected

FAILURE SEMANTICS:
- Every lookup happens before any map is cloned
- A failing action raises NotFound and no new snapshot exists
"""

from __future__ import annotations
from dataclasses import replace
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set

from ..contracts.base import EntityKind, NotFound
from ..contracts.graph import (
    EMPTY_SELECTION, Edge, EdgeId, EventChainLink, Issue, IssueId, LayoutState,
    Node, NodeId
)
from .hierarchy import reveal
from .store import GraphStore


# =============================================================================
# LOOKUPS (raise before any clone is produced)
# =============================================================================

def _require_node(state: GraphStore, nid: NodeId, action: str) -> Node:
    node = state.nodes.get(nid)
    if node is None:
        raise NotFound(EntityKind.RESOURCE, nid, action)
    return node


def _require_edge(state: GraphStore, eid: EdgeId, action: str) -> Edge:
    edge = state.edges.get(eid)
    if edge is None:
        raise NotFound(EntityKind.EDGE, eid, action)
    return edge


def _require_issue(state: GraphStore, iid: IssueId, action: str) -> Issue:
    issue = state.issues.get(iid)
    if issue is None:
        raise NotFound(EntityKind.ISSUE, iid, action)
    return issue


def _require_issue_references(state: GraphStore, issue: Issue, action: str) -> None:
    for nid in issue.resource_ids:
        _require_node(state, nid, action)
    for eid in issue.edge_ids:
        _require_edge(state, eid, action)


def _selected_issues(state: GraphStore, action: str, exclude: Optional[IssueId] = None) -> List[Issue]:
    # A selected id without a definition means the snapshot is corrupt
    return [
        _require_issue(state, iid, action)
        for iid in sorted(state.selection.issues)
        if iid != exclude
    ]


# =============================================================================
# HELPERS
# =============================================================================

def _is_covered(issue: Issue, resources: FrozenSet[NodeId], edges: FrozenSet[EdgeId]) -> bool:
    return (
        all(nid in resources for nid in issue.resource_ids)
        and all(eid in edges for eid in issue.edge_ids)
    )


def _with_covered_issues(
    state: GraphStore,
    resources: FrozenSet[NodeId],
    edges: FrozenSet[EdgeId],
    issues: Iterable[IssueId]
) -> FrozenSet[IssueId]:
    """``issues`` plus every issue whose references are now all selected."""
    selected = set(issues)
    for issue in state.issues.values():
        if issue.id not in selected and _is_covered(issue, resources, edges):
            selected.add(issue.id)
    return frozenset(selected)


def _chain_link(state: GraphStore, eid: EdgeId) -> EventChainLink:
    return state.event_chain_links.get(eid, EventChainLink())


def _view_changes(refit_view: bool, revealed: bool) -> Dict[str, Any]:
    """Fit-view request and layout reset that accompany a select action."""
    changes: Dict[str, Any] = {}
    if refit_view:
        changes.update(fit_view_after_layout=True, fit_to_selection_after_layout=True)
    if revealed:
        changes.update(layout_state=LayoutState.NOT_LAID_OUT)
    return changes


# =============================================================================
# DESELECT ACTIONS
# =============================================================================

def deselect_resource(state: GraphStore, resource_id: NodeId) -> GraphStore:
    """
    Deselect a node and cascade.

    Edges left with no selected endpoint are deselected. Issues
    referencing the node or one of those edges are deselected.
    """
    action = "deselect resource"
    node = _require_node(state, resource_id, action)
    if not node.selected:
        return state

    selected_issues = _selected_issues(state, action)

    nodes = dict(state.nodes)
    nodes[resource_id] = replace(node, selected=False)

    resources = state.selection.resources - {resource_id}

    edges: Optional[Dict[EdgeId, Edge]] = None
    selected_edges: Set[EdgeId] = set(state.selection.edges)

    for edge in state.edges.values():
        if edge.source in resources or edge.target in resources:
            continue
        selected_edges.discard(edge.id)
        if edge.selected:
            if edges is None:
                edges = dict(state.edges)
            edges[edge.id] = edge.with_selected(False)

    remaining_edges = frozenset(selected_edges)
    issues = frozenset(
        issue.id for issue in selected_issues
        if _is_covered(issue, resources, remaining_edges)
    )

    return replace(
        state,
        nodes=MappingProxyType(nodes),
        edges=MappingProxyType(edges) if edges is not None else state.edges,
        selection=replace(
            state.selection,
            resources=resources,
            edges=remaining_edges,
            issues=issues
        )
    )


def deselect_edge(state: GraphStore, edge_id: EdgeId) -> GraphStore:
    """Deselect an edge and every selected issue that references it."""
    action = "deselect edge"
    edge = _require_edge(state, edge_id, action)
    if not edge.selected:
        return state

    selected_issues = _selected_issues(state, action)

    edges = dict(state.edges)
    edges[edge_id] = edge.with_selected(False)

    return replace(
        state,
        edges=MappingProxyType(edges),
        selection=replace(
            state.selection,
            edges=state.selection.edges - {edge_id},
            issues=frozenset(
                issue.id for issue in selected_issues if edge_id not in issue.edge_ids
            )
        )
    )


def deselect_issue(state: GraphStore, issue_id: IssueId) -> GraphStore:
    """
    Deselect an issue together with everything it references.

    Referenced nodes and edges are deselected unconditionally, even when
    another selected issue shares them. Edges left without a selected
    endpoint follow. Every other selected issue is then re-evaluated
    once: only nodes and edges changed above, and dropping an issue changes
    no node or edge, so a second pass could never find anything new.
    """
    action = "deselect issue"
    issue = _require_issue(state, issue_id, action)
    _require_issue_references(state, issue, action)
    other_issues = _selected_issues(state, action, exclude=issue_id)

    nodes = dict(state.nodes)
    for nid in issue.resource_ids:
        if nodes[nid].selected:
            nodes[nid] = replace(nodes[nid], selected=False)

    edges = dict(state.edges)
    for eid in issue.edge_ids:
        if edges[eid].selected:
            edges[eid] = edges[eid].with_selected(False)

    resources = state.selection.resources - set(issue.resource_ids)
    selected_edges = set(state.selection.edges) - set(issue.edge_ids)

    for eid in sorted(selected_edges):
        edge = edges[eid]
        if edge.source not in resources and edge.target not in resources:
            selected_edges.discard(eid)
            edges[eid] = edge.with_selected(False)

    remaining_edges = frozenset(selected_edges)
    issues = frozenset(
        other.id for other in other_issues
        if _is_covered(other, resources, remaining_edges)
    )

    return replace(
        state,
        nodes=MappingProxyType(nodes),
        edges=MappingProxyType(edges),
        selection=replace(
            state.selection,
            resources=resources,
            edges=remaining_edges,
            issues=issues
        )
    )


# =============================================================================
# SELECT ACTIONS
# =============================================================================

def select_resource(
    state: GraphStore,
    resource_id: NodeId,
    select_edges: bool = True,
    refit_view: bool = True
) -> GraphStore:
    """
    Select a node and, by default, every edge touching it.

    Issues whose references become fully selected are selected too.
    """
    node = _require_node(state, resource_id, "select resource")
    if node.selected:
        return state

    nodes = dict(state.nodes)
    nodes[resource_id] = replace(node, selected=True)
    revealed = reveal(nodes, (resource_id,))

    resources = state.selection.resources | {resource_id}

    edges: Optional[Dict[EdgeId, Edge]] = None
    selected_edges: Set[EdgeId] = set(state.selection.edges)

    if select_edges:
        for edge in state.edges.values():
            if resource_id not in (edge.source, edge.target):
                continue
            selected_edges.add(edge.id)
            if not edge.selected:
                if edges is None:
                    edges = dict(state.edges)
                edges[edge.id] = edge.with_selected(True)

    new_edges = frozenset(selected_edges)

    return replace(
        state,
        nodes=MappingProxyType(nodes),
        edges=MappingProxyType(edges) if edges is not None else state.edges,
        selection=replace(
            state.selection,
            resources=resources,
            edges=new_edges,
            issues=_with_covered_issues(state, resources, new_edges, state.selection.issues)
        ),
        **_view_changes(refit_view, revealed)
    )


def _select_edges_with_endpoints(
    edge_ids: Iterable[EdgeId],
    nodes: Dict[NodeId, Node],
    edges: Dict[EdgeId, Edge],
    resources: Set[NodeId],
    selected_edges: Set[EdgeId]
) -> None:
    """
    Mark edges selected in the working copies.

    An edge with neither endpoint selected gets BOTH endpoints selected so
    the edge stays anchored.
    """
    for eid in edge_ids:
        edge = edges[eid]
        if not edge.selected:
            edges[eid] = edge.with_selected(True)
        selected_edges.add(eid)

        if edge.source in resources or edge.target in resources:
            continue
        for nid in (edge.source, edge.target):
            if not nodes[nid].selected:
                nodes[nid] = replace(nodes[nid], selected=True)
            resources.add(nid)


def select_edge(state: GraphStore, edge_id: EdgeId, refit_view: bool = True) -> GraphStore:
    """
    Select an edge along with every edge chained to it.

    Endpoints are auto-selected where an edge would otherwise have none.
    """
    action = "select edge"
    edge = _require_edge(state, edge_id, action)
    if edge.selected:
        return state

    targets = [edge_id] + sorted(_chain_link(state, edge_id).linked)
    for eid in targets:
        _require_edge(state, eid, action)

    nodes = dict(state.nodes)
    edges = dict(state.edges)
    resources = set(state.selection.resources)
    selected_edges = set(state.selection.edges)

    _select_edges_with_endpoints(targets, nodes, edges, resources, selected_edges)
    revealed = reveal(nodes, (edge.source, edge.target))

    new_resources = frozenset(resources)
    new_edges = frozenset(selected_edges)

    return replace(
        state,
        nodes=(
            MappingProxyType(nodes)
            if revealed or new_resources != state.selection.resources
            else state.nodes
        ),
        edges=MappingProxyType(edges),
        selection=replace(
            state.selection,
            resources=new_resources,
            edges=new_edges,
            issues=_with_covered_issues(state, new_resources, new_edges, state.selection.issues)
        ),
        **_view_changes(refit_view, revealed)
    )


def select_issue(state: GraphStore, issue_id: IssueId, refit_view: bool = True) -> GraphStore:
    """
    Select an issue and everything it references.

    Other issues whose references become fully selected are selected too.
    """
    action = "select issue"
    issue = _require_issue(state, issue_id, action)
    _require_issue_references(state, issue, action)
    if issue_id in state.selection.issues:
        return state

    nodes = dict(state.nodes)
    edges = dict(state.edges)
    resources = set(state.selection.resources)
    selected_edges = set(state.selection.edges)

    for nid in issue.resource_ids:
        if not nodes[nid].selected:
            nodes[nid] = replace(nodes[nid], selected=True)
        resources.add(nid)

    _select_edges_with_endpoints(issue.edge_ids, nodes, edges, resources, selected_edges)
    revealed = reveal(nodes, list(issue.resource_ids) + [
        nid for eid in issue.edge_ids for nid in (edges[eid].source, edges[eid].target)
    ])

    new_resources = frozenset(resources)
    new_edges = frozenset(selected_edges)

    return replace(
        state,
        nodes=MappingProxyType(nodes),
        edges=MappingProxyType(edges),
        selection=replace(
            state.selection,
            resources=new_resources,
            edges=new_edges,
            issues=_with_covered_issues(
                state, new_resources, new_edges, state.selection.issues | {issue_id}
            )
        ),
        **_view_changes(refit_view, revealed)
    )


def clear_selection(state: GraphStore) -> GraphStore:
    """Deselect everything. Identity when nothing is selected."""
    if state.selection.is_empty:
        return state

    nodes: Optional[Dict[NodeId, Node]] = None
    for nid, node in state.nodes.items():
        if node.selected:
            if nodes is None:
                nodes = dict(state.nodes)
            nodes[nid] = replace(node, selected=False)

    edges: Optional[Dict[EdgeId, Edge]] = None
    for eid, edge in state.edges.items():
        if edge.selected:
            if edges is None:
                edges = dict(state.edges)
            edges[eid] = edge.with_selected(False)

    return replace(
        state,
        nodes=MappingProxyType(nodes) if nodes is not None else state.nodes,
        edges=MappingProxyType(edges) if edges is not None else state.edges,
        selection=EMPTY_SELECTION
    )
