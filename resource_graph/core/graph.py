"""
Graph Derivation
================

Pure derivation of nodes and edges from a filtered snapshot.

Every address implied by the data becomes a node: each resource, both
endpoints of each flattened event, each global container, and all of their
ancestor addresses. Edges group the flattened events of one
(principal, resource) pair.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Dict, List, Mapping, Tuple

from ..contracts.base import ResourceId, parent_resource_id
from ..contracts.events import GlobalContainer, Resource, ResourceEvent
from ..contracts.graph import (
    MULTIPLE_EVENTS_LABEL, Edge, EdgeId, IssueId, Node, NodeId
)
from ..contracts.identity import edge_id, node_id
from .environments import environment_badges, inherited_environments


def _add_node_and_parents(rid: ResourceId, nodes: Dict[NodeId, Node]) -> NodeId:
    nid = node_id(rid)
    if nid in nodes:
        return nid

    parent = parent_resource_id(rid)
    nodes[nid] = Node(
        id=nid,
        resource_id=rid,
        parent_id=node_id(parent) if parent else None
    )

    if parent:
        _add_node_and_parents(parent, nodes)

    return nid


def derive_nodes(
    resources: Tuple[Resource, ...],
    resource_events: Tuple[ResourceEvent, ...],
    global_containers: Tuple[GlobalContainer, ...],
    all_resources_by_node: Mapping[NodeId, Resource],
    environments: Tuple[str, ...]
) -> Dict[NodeId, Node]:
    """
    Build the node map.

    ``all_resources_by_node`` is the UNFILTERED resource set; environment
    inheritance must not depend on the date filter.
    """
    nodes: Dict[NodeId, Node] = {}

    for resource in resources:
        nid = _add_node_and_parents(resource.id, nodes)
        nodes[nid] = replace(
            nodes[nid],
            first_seen_at=resource.first_seen_at,
            last_seen_at=resource.last_seen_at
        )

    for event in resource_events:
        _add_node_and_parents(event.principal, nodes)
        _add_node_and_parents(event.resource, nodes)

    for container in global_containers:
        container_id = _add_node_and_parents(container.id, nodes)
        contains_id = _add_node_and_parents(container.contains, nodes)
        nodes[contains_id] = replace(nodes[contains_id], parent_id=container_id)

    for nid, node in nodes.items():
        badges = environment_badges(
            inherited_environments(node.resource_id, all_resources_by_node),
            environments
        )
        if badges:
            nodes[nid] = replace(node, environments=badges)

    return nodes


def derive_edges(resource_events: Tuple[ResourceEvent, ...]) -> Dict[EdgeId, Edge]:
    """One edge per (principal, resource) pair, in first-seen order."""
    grouped: Dict[EdgeId, List[ResourceEvent]] = {}
    for event in resource_events:
        grouped.setdefault(edge_id(event.principal, event.resource), []).append(event)

    edges: Dict[EdgeId, Edge] = {}
    for eid, events in grouped.items():
        types = {event.type for event in events}
        edges[eid] = Edge(
            id=eid,
            source=node_id(events[0].principal),
            target=node_id(events[0].resource),
            label=events[0].type if len(types) == 1 else MULTIPLE_EVENTS_LABEL,
            events=tuple(events)
        )
    return edges


def attach_issue_ids(
    nodes: Mapping[NodeId, Node],
    issue_ids_by_node: Mapping[NodeId, Tuple[IssueId, ...]]
) -> Dict[NodeId, Node]:
    """Copy of ``nodes`` whose issue_ids match ``issue_ids_by_node``."""
    attached: Dict[NodeId, Node] = {}
    for nid, node in nodes.items():
        issue_ids = issue_ids_by_node.get(nid, ())
        attached[nid] = node if node.issue_ids == issue_ids else replace(node, issue_ids=issue_ids)
    return attached
