"""
Environment Tagging
===================

Tag or untag an environment on a resource and re-derive everything that
depends on environments: the inheritance map, node badges and issues.

Selection survives the change. Issues that no longer exist leave the
selection; an issue id that survives keeps the same references and stays
covered. Persisting the new tags is the caller's concern.
"""

from __future__ import annotations
from dataclasses import replace
from types import MappingProxyType
from typing import Dict, Tuple

from ..contracts.base import (
    EntityKind, InvalidEnvironment, NotFound, ResourceId, format_resource_id
)
from ..contracts.events import Resource
from ..contracts.graph import Node, NodeId
from ..contracts.identity import node_id
from .environments import (
    build_resources_environments, collect_environments, environment_badges,
    inherited_environments
)
from .graph import attach_issue_ids
from .issues import derive_issues, issue_ids_by_node
from .store import GraphStore


def _replace_resource(
    resources: Tuple[Resource, ...],
    updated: Resource
) -> Tuple[Resource, ...]:
    return tuple(updated if resource.id == updated.id else resource for resource in resources)


def _find_resource(state: GraphStore, rid: ResourceId, action: str) -> Resource:
    for resource in state.query.resources:
        if resource.id == rid:
            return resource
    raise NotFound(EntityKind.RESOURCE, node_id(rid), action)


def _with_environments(state: GraphStore, updated: Resource) -> GraphStore:
    query = replace(state.query, resources=_replace_resource(state.query.resources, updated))
    resources = _replace_resource(state.resources, updated)

    environments = collect_environments(query.resources)
    # Keep colour indices of environments no longer in use
    environments = state.environments + tuple(
        env for env in environments if env not in state.environments
    )
    resources_environments = build_resources_environments(query.resources)
    resources_by_node = {node_id(resource.id): resource for resource in query.resources}

    nodes: Dict[NodeId, Node] = {}
    for nid, node in state.nodes.items():
        badges = environment_badges(
            inherited_environments(node.resource_id, resources_by_node),
            environments
        )
        nodes[nid] = node if node.environments == badges else replace(node, environments=badges)

    issues = derive_issues(state.section, state.resource_events, resources_environments)
    nodes = attach_issue_ids(nodes, issue_ids_by_node(issues))

    return replace(
        state,
        query=query,
        resources=resources,
        environments=environments,
        resources_environments=resources_environments,
        nodes=MappingProxyType(nodes),
        issues=issues,
        selection=replace(
            state.selection,
            issues=frozenset(iid for iid in state.selection.issues if iid in issues)
        )
    )


def tag_environment(state: GraphStore, rid: ResourceId, environment: str) -> GraphStore:
    """Tag ``rid`` with ``environment``. Identity if already tagged."""
    resource = _find_resource(state, rid, "tag environment")
    if not environment:
        raise InvalidEnvironment("Environment name must be a non-empty string")
    if environment in resource.environments:
        return state

    return _with_environments(
        state,
        replace(resource, environments=resource.environments + (environment,))
    )


def untag_environment(state: GraphStore, rid: ResourceId, environment: str) -> GraphStore:
    """Remove ``environment`` from ``rid``'s own tags."""
    resource = _find_resource(state, rid, "untag environment")
    if environment not in resource.environments:
        raise InvalidEnvironment(
            f"Resource {format_resource_id(rid)} does not have environment {environment} tagged",
            context=(("environment", environment),)
        )

    return _with_environments(
        state,
        replace(
            resource,
            environments=tuple(env for env in resource.environments if env != environment)
        )
    )
